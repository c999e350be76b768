from fastapi import Request
from fastapi.exception_handlers import http_exception_handler
from fastapi.responses import Response
from loguru import logger

from assetgate.core.exceptions import http_exceptions
from assetgate.core.exceptions.base import CustomException, HTTPException
from assetgate.core.exceptions.domain import (
    AuthenticationError,
    DuplicateResourceError,
    PermissionDeniedError,
    ProcessingError,
    ResourceNotFoundError,
    UpstreamServiceError,
    ValidationError,
)
from assetgate.core.exceptions.license_vendor import (
    LicenseForbiddenError,
    LicenseRejectedError,
    LicenseVendorUnavailableError,
)
from assetgate.core.exceptions.rate_limiter import RateLimitExceeded


def _rate_limit_headers(exc: RateLimitExceeded) -> dict[str, str] | None:
    headers: dict[str, str] = {}
    if exc.retry_after is not None:
        headers["Retry-After"] = str(exc.retry_after)
    if getattr(exc, "limit", None) is not None:
        headers["X-RateLimit-Limit"] = str(exc.limit)
        headers["X-RateLimit-Remaining"] = "0"

    return headers or None


def to_http_exception(exc: CustomException) -> HTTPException:
    """
    Translate a domain exception raised by a service into its HTTP counterpart.

    Args:
        exc: Exception raised below the API layer

    Returns:
        HTTPException: Error response carrying the exception message as ``detail``
    """
    match exc:
        case ValidationError() | LicenseRejectedError():
            return http_exceptions.BadRequestException(detail=exc.message)
        case AuthenticationError():
            return http_exceptions.UnauthorizedException(
                detail=exc.message, headers={"WWW-Authenticate": "Bearer"}
            )
        case PermissionDeniedError() | LicenseForbiddenError():
            return http_exceptions.ForbiddenException(detail=exc.message)
        case ResourceNotFoundError():
            return http_exceptions.NotFoundException(detail=exc.message)
        case DuplicateResourceError():
            return http_exceptions.ConflictException(detail=exc.message)
        case RateLimitExceeded():
            return http_exceptions.TooManyRequestsException(
                detail=exc.message, headers=_rate_limit_headers(exc)
            )
        case UpstreamServiceError() | LicenseVendorUnavailableError():
            return http_exceptions.ServiceUnavailableException(detail=exc.message)
        case ProcessingError():
            return http_exceptions.InternalServerErrorException(detail=exc.message)

    logger.error(f"Unmapped service exception {type(exc).__name__}: {exc}")

    return http_exceptions.InternalServerErrorException(detail="Internal server error")


async def service_exception_handler(request: Request, exc: CustomException) -> Response:
    """FastAPI exception handler answering domain exceptions with their HTTP error."""
    return await http_exception_handler(request, to_http_exception(exc))
