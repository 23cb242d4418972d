"""Error models"""

from enum import Enum
from typing import Optional
import uuid


class ErrorCode(str, Enum):
    """Error codes"""
    INVALID_INPUT = "INVALID_INPUT"
    FLOW_INTEGRITY = "FLOW_INTEGRITY"
    PROVIDER_RATE_LIMIT = "PROVIDER_RATE_LIMIT"
    PROVIDER_UNAVAILABLE = "PROVIDER_UNAVAILABLE"
    PROVIDER_ERROR = "PROVIDER_ERROR"
    INVALID_RESPONSE = "INVALID_RESPONSE"
    SCREENSHOT_FAILED = "SCREENSHOT_FAILED"
    GENERATION_FAILED = "GENERATION_FAILED"
    PERSISTENCE_ERROR = "PERSISTENCE_ERROR"
    NOTIFICATION_ERROR = "NOTIFICATION_ERROR"
    SESSION_LIMIT = "SESSION_LIMIT"
    SESSION_BUSY = "SESSION_BUSY"
    NOT_FOUND = "NOT_FOUND"
    CONFIGURATION_ERROR = "CONFIGURATION_ERROR"


class ApplicationError(Exception):
    """Base application error, carries a code and a retryable flag"""
    def __init__(self, code: ErrorCode, message: str, retryable: bool = False, hint: Optional[str] = None, session_id: Optional[str] = None):
        self.error_id = str(uuid.uuid4())
        self.code = code
        self.message = message
        self.retryable = retryable
        self.hint = hint
        self.session_id = session_id
        super().__init__(self.message)

    def model_dump(self):
        """Return dict representation for API responses"""
        return {
            "error_id": self.error_id,
            "code": self.code.value,
            "message": self.message,
            "hint": self.hint,
            "retryable": self.retryable,
            "session_id": self.session_id
        }

    @property
    def http_status(self) -> int:
        """Map error code to HTTP status"""
        mapping = {
            ErrorCode.INVALID_INPUT: 400,
            ErrorCode.FLOW_INTEGRITY: 500,
            ErrorCode.NOT_FOUND: 404,
            ErrorCode.SESSION_BUSY: 409,
            ErrorCode.SESSION_LIMIT: 429,
            ErrorCode.PROVIDER_RATE_LIMIT: 503,
            ErrorCode.PROVIDER_UNAVAILABLE: 503,
            ErrorCode.PROVIDER_ERROR: 502,
            ErrorCode.INVALID_RESPONSE: 502,
            ErrorCode.SCREENSHOT_FAILED: 502,
            ErrorCode.GENERATION_FAILED: 500,
            ErrorCode.PERSISTENCE_ERROR: 500,
            ErrorCode.NOTIFICATION_ERROR: 500,
            ErrorCode.CONFIGURATION_ERROR: 500,
        }
        return mapping.get(self.code, 500)


class InputValidationError(ApplicationError):
    """User input failed a rule; recovered locally by re-prompting"""
    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(ErrorCode.INVALID_INPUT, message, retryable=False)
        self.field = field


class FlowIntegrityError(ApplicationError):
    """The catalog has no definition where one is required"""
    def __init__(self, message: str):
        super().__init__(
            ErrorCode.FLOW_INTEGRITY,
            message,
            retryable=False,
            hint="Please refresh the page and try again."
        )


class ProviderError(ApplicationError):
    """Classified failure from an external model provider"""
    def __init__(self, message: str, code: ErrorCode = ErrorCode.PROVIDER_ERROR, retryable: bool = False, status_code: Optional[int] = None):
        super().__init__(code, message, retryable=retryable)
        self.status_code = status_code


class ScreenshotError(ApplicationError):
    """Screenshot capture failed"""
    def __init__(self, message: str, retryable: bool = False):
        super().__init__(ErrorCode.SCREENSHOT_FAILED, message, retryable=retryable)


class GenerationFailure(ApplicationError):
    """Unrecovered error anywhere in a generation run"""
    def __init__(self, message: str, cause: Optional[Exception] = None):
        super().__init__(ErrorCode.GENERATION_FAILED, message, retryable=False)
        self.cause = cause


class PersistenceError(ApplicationError):
    """Reading or writing persisted session state failed"""
    def __init__(self, message: str):
        super().__init__(ErrorCode.PERSISTENCE_ERROR, message, retryable=False)


class NotificationError(ApplicationError):
    """Webhook delivery failed"""
    def __init__(self, message: str, retryable: bool = True):
        super().__init__(ErrorCode.NOTIFICATION_ERROR, message, retryable=retryable)


class SessionLimitError(ApplicationError):
    """Client has used up its completed sessions"""
    def __init__(self, message: str):
        super().__init__(ErrorCode.SESSION_LIMIT, message, retryable=False)
