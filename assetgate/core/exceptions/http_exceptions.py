from typing import Any, Optional

from starlette import status

from assetgate.core.exceptions.base import HTTPException


class BadRequestException(HTTPException):
    def __init__(
        self,
        detail: Any = None,
        headers: Optional[dict[str, str]] = None,
    ) -> None:
        """
        The request was understood but rejected by a business rule or failed validation,
        e.g. a wrong one-time code or a tampered verification link.
        :param detail: Optional detailed message or data about the exception.
        :param headers: Optional headers to include in the response.
        """
        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=detail,
            headers=headers,
        )


class UnauthorizedException(HTTPException):
    def __init__(
        self,
        detail: Any = None,
        headers: Optional[dict[str, str]] = None,
    ) -> None:
        """
        Authentication is required and has failed or has not been provided.
        Responses should carry a ``WWW-Authenticate`` challenge.
        :param detail: Optional detailed message or data about the exception.
        :param headers: Optional headers to include in the response.
        """
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=detail,
            headers=headers,
        )


class ForbiddenException(HTTPException):
    def __init__(
        self,
        detail: Any = None,
        headers: Optional[dict[str, str]] = None,
    ) -> None:
        """
        The caller is authenticated but not allowed to perform the action,
        or the presented license does not belong to this product.
        :param detail: Optional detailed message or data about the exception.
        :param headers: Optional headers to include in the response.
        """
        super().__init__(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=detail,
            headers=headers,
        )


class NotFoundException(HTTPException):
    def __init__(
        self,
        detail: Any = None,
        headers: Optional[dict[str, str]] = None,
    ) -> None:
        """
        The requested resource does not exist.
        :param detail: Optional detailed message or data about the exception.
        :param headers: Optional headers to include in the response.
        """
        super().__init__(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=detail,
            headers=headers,
        )


class ConflictException(HTTPException):
    def __init__(
        self,
        detail: Any = None,
        headers: Optional[dict[str, str]] = None,
    ) -> None:
        """
        The request conflicts with the current state, e.g. an email that is already registered.
        :param detail: Optional detailed message or data about the exception.
        :param headers: Optional headers to include in the response.
        """
        super().__init__(
            status_code=status.HTTP_409_CONFLICT,
            detail=detail,
            headers=headers,
        )


class TooManyRequestsException(HTTPException):
    def __init__(
        self,
        detail: Any = None,
        headers: Optional[dict[str, str]] = None,
    ) -> None:
        """
        The caller exceeded a rate limit, a code cooldown or a quota.
        :param detail: Optional detailed message or data about the exception.
        :param headers: Optional headers to include in the response.
        """
        super().__init__(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail=detail,
            headers=headers,
        )


class InternalServerErrorException(HTTPException):
    def __init__(
        self,
        detail: Any = None,
        headers: Optional[dict[str, str]] = None,
    ) -> None:
        """
        An unexpected condition prevented the request from completing.
        :param detail: Optional detailed message or data about the exception.
        :param headers: Optional headers to include in the response.
        """
        super().__init__(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=detail,
            headers=headers,
        )


class ServiceUnavailableException(HTTPException):
    def __init__(
        self,
        detail: Any = None,
        headers: Optional[dict[str, str]] = None,
    ) -> None:
        """
        A dependency (license vendor, key-value store) is temporarily unavailable.
        The client may retry later.
        :param detail: Optional detailed message or data about the exception.
        :param headers: Optional headers to include in the response.
        """
        super().__init__(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=detail,
            headers=headers,
        )
