from pydantic import BaseModel


class BadRequestResponse(BaseModel):
    detail: str = "Invalid verification link."


class UnauthorizedResponse(BaseModel):
    detail: str = "Could not validate credentials"


class ForbiddenResponse(BaseModel):
    detail: str = "Access restricted to Super Admin."


class NotFoundResponse(BaseModel):
    detail: str = "Not found"


class ConflictResponse(BaseModel):
    detail: str = "Email already in use!"


class TooManyRequestsResponse(BaseModel):
    detail: str = "Please wait 30 seconds before requesting a new code."


class InternalServerErrorResponse(BaseModel):
    detail: str = "Failed to activate your license. Please contact support."


class ServiceUnavailableResponse(BaseModel):
    detail: str = "License service is unavailable. Please try again later."


RATE_LIMIT_HEADERS_DOC = {
    "X-RateLimit-Limit": {
        "description": "Maximum requests allowed in the window",
        "schema": {"type": "integer", "example": 10},
    },
    "X-RateLimit-Remaining": {
        "description": "Requests remaining in current window",
        "schema": {"type": "integer", "example": 9},
    },
    "X-RateLimit-Reset": {
        "description": "Unix timestamp when limit resets",
        "schema": {"type": "integer", "example": 1764425820},
    },
}
