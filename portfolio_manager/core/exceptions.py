from typing import Optional

from fastapi.responses import JSONResponse

from portfolio_manager.core.response_code import ErrorCode, ResponseCode


class BaseException(Exception):
    """The base exception class for portfolio business-rule outcomes."""

    error_code: str = "UNKNOWN_ERROR"
    status_code: int = 500
    message: str = "Unknown Error"
    meta_data: dict = {}

    def __init__(self, message: Optional[str] = None, meta_data: Optional[dict] = None):
        if message:
            self.message = message
        self.meta_data = meta_data or {}
        super().__init__(self.message)

    def __repr__(self):
        return "{}(error_code: {}, status_code: {}, message: {}, meta_data: {})".format(
            self.__class__.__name__,
            self.error_code,
            self.status_code,
            self.message,
            self.meta_data,
        )

    def __str__(self):
        return self.message


def create_exception_response(exception: BaseException):
    error = {"error_code": exception.error_code, "message": exception.message}

    if exception.meta_data:
        error.update(exception.meta_data)

    return JSONResponse(
        status_code=exception.status_code,
        content={"detail": error},
    )


class UnauthorizedException(BaseException):
    status_code = ResponseCode.PERMISSION_DENIED.value
    error_code = ErrorCode.UNAUTHORIZED.name
    message = ErrorCode.UNAUTHORIZED.value


class TierIneligibleException(BaseException):
    status_code = ResponseCode.PERMISSION_DENIED.value
    error_code = ErrorCode.TIER_INELIGIBLE.name
    message = ErrorCode.TIER_INELIGIBLE.value


class AlreadyExistsException(BaseException):
    status_code = ResponseCode.CONFLICT.value
    error_code = ErrorCode.ALREADY_EXISTS.name
    message = ErrorCode.ALREADY_EXISTS.value


class InvalidOrExpiredException(BaseException):
    status_code = ResponseCode.NOT_FOUND.value
    error_code = ErrorCode.INVALID_OR_EXPIRED.name
    message = ErrorCode.INVALID_OR_EXPIRED.value


class EmailMismatchException(BaseException):
    status_code = ResponseCode.BAD_REQUEST.value
    error_code = ErrorCode.EMAIL_MISMATCH.name
    message = ErrorCode.EMAIL_MISMATCH.value


class AlreadyInPortfolioException(BaseException):
    status_code = ResponseCode.CONFLICT.value
    error_code = ErrorCode.ALREADY_IN_PORTFOLIO.name
    message = ErrorCode.ALREADY_IN_PORTFOLIO.value


class NotFoundException(BaseException):
    status_code = ResponseCode.NOT_FOUND.value
    error_code = ErrorCode.NOT_FOUND.name
    message = ErrorCode.NOT_FOUND.value


class StorageFailureException(BaseException):
    status_code = ResponseCode.INTERNAL_SERVER_ERROR.value
    error_code = ErrorCode.STORAGE_FAILURE.name
    message = ErrorCode.STORAGE_FAILURE.value


class RequestValidationException(BaseException):
    status_code = ResponseCode.VALIDATION_ERROR.value
    error_code = ErrorCode.REQUEST_VALIDATION_ERROR.name
    message = ErrorCode.REQUEST_VALIDATION_ERROR.value

    def __init__(self, errors=None):
        super().__init__(meta_data={"errors": str(errors)})


class ValidationException(BaseException):
    status_code = ResponseCode.VALIDATION_ERROR.value
    error_code = ErrorCode.VALIDATION_ERROR.name
    message = ErrorCode.VALIDATION_ERROR.value

    def __init__(self, errors=None):
        super().__init__(meta_data={"errors": str(errors)})
