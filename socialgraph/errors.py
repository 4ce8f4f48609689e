"""
Typed errors raised by the social graph engine.
The transport layer maps them to status codes by `code`, never by message text.
"""
from enum import Enum


class ErrorCode(str, Enum):
    SELF_ACTION = "SELF_ACTION"
    INVALID_CURSOR = "INVALID_CURSOR"
    INVALID_LIMIT = "INVALID_LIMIT"
    INVALID_REQUEST = "INVALID_REQUEST"
    ALREADY_FOLLOWING = "ALREADY_FOLLOWING"
    NOT_FOLLOWING = "NOT_FOLLOWING"
    TARGET_NOT_FOUND = "TARGET_NOT_FOUND"
    STORAGE_UNAVAILABLE = "STORAGE_UNAVAILABLE"


class ErrorCategory(str, Enum):
    VALIDATION = "validation"
    CONFLICT = "conflict"
    ABSENCE = "absence"
    TRANSIENT = "transient"


class SocialGraphError(Exception):
    """Base class for every error the engine reports to its caller"""

    code: ErrorCode
    category: ErrorCategory
    status_code: int = 400
    default_message = "Social graph error"

    def __init__(self, message: str = None, **details):
        super().__init__(message or self.default_message)
        self.message = message or self.default_message
        self.details = details

    def to_dict(self) -> dict:
        payload = {"code": self.code.value, "message": self.message}
        if self.details:
            payload["details"] = self.details
        return payload


class SelfActionError(SocialGraphError):
    code = ErrorCode.SELF_ACTION
    category = ErrorCategory.VALIDATION
    status_code = 400
    default_message = "Cannot follow or unfollow yourself"


class InvalidCursorError(SocialGraphError):
    code = ErrorCode.INVALID_CURSOR
    category = ErrorCategory.VALIDATION
    status_code = 400
    default_message = "Invalid pagination cursor"


class InvalidLimitError(SocialGraphError):
    code = ErrorCode.INVALID_LIMIT
    category = ErrorCategory.VALIDATION
    status_code = 400
    default_message = "limit must be a positive integer"


class InvalidRequestError(SocialGraphError):
    code = ErrorCode.INVALID_REQUEST
    category = ErrorCategory.VALIDATION
    status_code = 422
    default_message = "Request failed validation"


class AlreadyFollowingError(SocialGraphError):
    code = ErrorCode.ALREADY_FOLLOWING
    category = ErrorCategory.CONFLICT
    status_code = 409
    default_message = "Already following this user"


class NotFollowingError(SocialGraphError):
    code = ErrorCode.NOT_FOLLOWING
    category = ErrorCategory.ABSENCE
    status_code = 404
    default_message = "Not following this user"


class TargetNotFoundError(SocialGraphError):
    code = ErrorCode.TARGET_NOT_FOUND
    category = ErrorCategory.ABSENCE
    status_code = 404
    default_message = "User not found"


class StorageUnavailableError(SocialGraphError):
    code = ErrorCode.STORAGE_UNAVAILABLE
    category = ErrorCategory.TRANSIENT
    status_code = 503
    default_message = "Storage temporarily unavailable"
