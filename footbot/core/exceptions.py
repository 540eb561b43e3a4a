"""
Custom Exception Hierarchy

Every error the live events workflow raises on purpose derives from AppException;
the interaction controller and the FastAPI handlers map them to short answers
and JSON bodies.
"""
from typing import Any
from enum import Enum


class ErrorCode(str, Enum):
    """Standard error codes for API responses"""

    # General errors (1xxx)
    INTERNAL_ERROR = "ERR_1000"
    VALIDATION_ERROR = "ERR_1001"
    NOT_FOUND = "ERR_1002"

    # Live event errors (2xxx)
    EVENT_NOT_FOUND = "ERR_2001"
    SEARCH_RESULT_NOT_FOUND = "ERR_2002"

    # Search errors (3xxx)
    SEARCH_NOT_CONFIGURED = "ERR_3001"
    SEARCH_PROVIDER_ERROR = "ERR_3002"

    # External service errors (5xxx)
    TELEGRAM_ERROR = "ERR_5001"
    FOOTBALL_API_ERROR = "ERR_5002"
    EXTERNAL_SERVICE_UNAVAILABLE = "ERR_5003"
    EXTERNAL_SERVICE_TIMEOUT = "ERR_5004"


class AppException(Exception):
    """Base exception for all application errors"""

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.INTERNAL_ERROR,
        status_code: int = 500,
        details: dict[str, Any] | None = None
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.status_code = status_code
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to dictionary for API response"""
        return {
            "error": {
                "code": self.error_code.value,
                "message": self.message,
                "details": self.details
            }
        }


class ValidationException(AppException):
    """Raised when input validation fails"""

    def __init__(
        self,
        message: str,
        field: str | None = None,
        details: dict[str, Any] | None = None
    ):
        super().__init__(
            message=message,
            error_code=ErrorCode.VALIDATION_ERROR,
            status_code=400,
            details=details
        )
        if field:
            self.details["field"] = field


class NotFoundException(AppException):
    """Raised when a requested resource is not found"""

    def __init__(
        self,
        resource: str,
        identifier: Any,
        error_code: ErrorCode = ErrorCode.NOT_FOUND
    ):
        super().__init__(
            message=f"{resource} not found: {identifier}",
            error_code=error_code,
            status_code=404,
            details={"resource": resource, "identifier": str(identifier)}
        )


class EventNotFoundError(NotFoundException):
    """Raised when a live event id is not in the event store"""

    def __init__(self, event_id: str):
        super().__init__("Event", event_id, error_code=ErrorCode.EVENT_NOT_FOUND)


class SearchResultNotFoundError(NotFoundException):
    """Raised when a picked result id is not in the event's current cache"""

    def __init__(self, event_id: str, result_id: str, provider: str):
        super().__init__(
            "Search result", result_id, error_code=ErrorCode.SEARCH_RESULT_NOT_FOUND
        )
        self.details.update({"event_id": event_id, "provider": provider})


class SearchConfigurationError(AppException):
    """Raised when a search provider is used without its credentials"""

    def __init__(self, provider: str, setting: str):
        super().__init__(
            message=f"{provider} search is not configured ({setting} is empty)",
            error_code=ErrorCode.SEARCH_NOT_CONFIGURED,
            status_code=503,
            details={"provider": provider, "setting": setting}
        )


class ExternalServiceException(AppException):
    """Base exception for external service errors"""

    def __init__(
        self,
        service_name: str,
        message: str,
        error_code: ErrorCode = ErrorCode.EXTERNAL_SERVICE_UNAVAILABLE,
        details: dict[str, Any] | None = None
    ):
        super().__init__(
            message=message,
            error_code=error_code,
            status_code=503,
            details=details
        )
        self.details["service"] = service_name

    @classmethod
    def _response_details(
        cls,
        operation: str,
        response: Any,
        max_response_chars: int,
    ) -> tuple[Any, dict[str, Any]]:
        status_code = getattr(response, "status_code", None)
        response_text = getattr(response, "text", "") or ""
        return status_code, {
            "operation": operation,
            "status_code": status_code,
            "response_text": response_text[:max_response_chars],
        }


class TelegramError(ExternalServiceException):
    """Raised when Telegram API fails"""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(
            service_name="telegram",
            message=f"Telegram API error: {message}",
            error_code=ErrorCode.TELEGRAM_ERROR,
            details=details
        )

    @classmethod
    def from_response(
        cls,
        operation: str,
        response: Any,
        *,
        message: str | None = None,
        max_response_chars: int = 500
    ) -> "TelegramError":
        """
        יצירת TelegramError מתוך HTTP response בצורה עקבית.

        Args:
            operation: שם הפעולה (sendMessage, editMessageText, answerCallbackQuery)
            response: אובייקט response (למשל httpx.Response)
            message: הודעת שגיאה מותאמת (אם לא סופק - נבנית אוטומטית)
            max_response_chars: אורך מקסימלי לשמירת response_text (מניעת לוגים גדולים)
        """
        status_code, details = cls._response_details(operation, response, max_response_chars)
        return cls(
            message=message or f"{operation} returned status {status_code}",
            details=details,
        )


class FootballApiError(ExternalServiceException):
    """Raised when the API-Football feed fails"""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(
            service_name="api_football",
            message=f"API-Football error: {message}",
            error_code=ErrorCode.FOOTBALL_API_ERROR,
            details=details
        )

    @classmethod
    def from_response(
        cls,
        operation: str,
        response: Any,
        *,
        max_response_chars: int = 500
    ) -> "FootballApiError":
        status_code, details = cls._response_details(operation, response, max_response_chars)
        return cls(message=f"{operation} returned status {status_code}", details=details)


class SearchProviderError(ExternalServiceException):
    """Raised when a video/post search provider fails"""

    def __init__(self, provider: str, message: str, details: dict[str, Any] | None = None):
        super().__init__(
            service_name=provider,
            message=f"{provider} search error: {message}",
            error_code=ErrorCode.SEARCH_PROVIDER_ERROR,
            details=details
        )

    @classmethod
    def from_response(
        cls,
        provider: str,
        response: Any,
        *,
        max_response_chars: int = 500
    ) -> "SearchProviderError":
        status_code, details = cls._response_details("search", response, max_response_chars)
        return cls(provider, f"search returned status {status_code}", details=details)


class ServiceTimeoutError(ExternalServiceException):
    """Raised when external service times out"""

    def __init__(self, service_name: str, timeout_seconds: float):
        super().__init__(
            service_name=service_name,
            message=f"{service_name} request timed out after {timeout_seconds}s",
            error_code=ErrorCode.EXTERNAL_SERVICE_TIMEOUT,
            details={"timeout_seconds": timeout_seconds}
        )


class CircuitBreakerOpenError(ExternalServiceException):
    """Raised when circuit breaker is open"""

    def __init__(self, service_name: str, retry_after_seconds: float):
        super().__init__(
            service_name=service_name,
            message=f"{service_name} is temporarily unavailable (circuit breaker open)",
            error_code=ErrorCode.EXTERNAL_SERVICE_UNAVAILABLE,
            details={"retry_after_seconds": retry_after_seconds}
        )
