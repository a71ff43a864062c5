from enum import Enum


class ErrorCode(Enum):
    BAD_REQUEST = "Bad Request"
    UNAUTHORIZED = "Only the portfolio owner can perform this action"
    TIER_INELIGIBLE = "This feature requires the Growth plan"
    ALREADY_EXISTS = "Resource already exists"
    INVALID_OR_EXPIRED = "Invalid or expired invitation"
    EMAIL_MISMATCH = "Invitation email does not match your account"
    ALREADY_IN_PORTFOLIO = "You are already a member of a portfolio"
    NOT_FOUND = "Not found"
    STORAGE_FAILURE = "Failed to save changes"
    VALIDATION_ERROR = "Validation error"
    REQUEST_VALIDATION_ERROR = "Request validation error"
    INTERNAL_SERVER_ERROR = "Internal server error"
    UNKNOWN_ERROR = "Unknown error"


class ResponseCode(Enum):
    BAD_REQUEST = 400
    UNAUTHENTICATED = 401
    PERMISSION_DENIED = 403
    NOT_FOUND = 404
    CONFLICT = 409
    VALIDATION_ERROR = 422
    INTERNAL_SERVER_ERROR = 500
