import logging

from fastapi import HTTPException, status

from mentorlink.services.exceptions import (
    BusinessRuleError,
    ConflictError,
    DatabaseError,
    NotAuthorizedError,
    ServiceError,
)

logger = logging.getLogger(__name__)


class APIException(HTTPException):
    """Base class for API specific exceptions."""

    def __init__(
        self, status_code: int, detail: any = None, headers: dict | None = None
    ):
        super().__init__(status_code=status_code, detail=detail, headers=headers)


class NotFoundError(APIException):
    def __init__(self, detail: str = "Resource not found"):
        super().__init__(status_code=status.HTTP_404_NOT_FOUND, detail=detail)


class BadRequestError(APIException):
    def __init__(self, detail: str = "Bad request"):
        super().__init__(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)


class UnauthorizedError(APIException):
    def __init__(self, detail: str = "Unauthorized"):
        super().__init__(status_code=status.HTTP_401_UNAUTHORIZED, detail=detail)


class ForbiddenError(APIException):
    def __init__(self, detail: str = "Forbidden"):
        super().__init__(status_code=status.HTTP_403_FORBIDDEN, detail=detail)


class InternalServerError(APIException):
    def __init__(self, detail: str = "Internal server error"):
        super().__init__(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=detail
        )


def handle_service_error(e: ServiceError):
    """
    Maps ServiceError subclasses to the matching APIException.
    Always raises.
    """
    message = getattr(e, "message", str(e))
    logger.warning(f"Handling service error: {e.__class__.__name__} - {message}")

    if e.status_code == status.HTTP_404_NOT_FOUND:
        raise NotFoundError(detail=message)
    elif isinstance(e, NotAuthorizedError):
        raise ForbiddenError(detail=message)
    elif isinstance(e, BusinessRuleError):
        raise BadRequestError(detail=message)
    elif isinstance(e, ConflictError):
        raise APIException(status_code=status.HTTP_409_CONFLICT, detail=message)
    elif isinstance(e, DatabaseError):
        logger.error(f"Database error: {e}", exc_info=True)
        raise InternalServerError(detail="A database error occurred.")
    else:
        raise APIException(
            status_code=getattr(
                e, "status_code", status.HTTP_500_INTERNAL_SERVER_ERROR
            ),
            detail=message or "A service error occurred.",
        )
