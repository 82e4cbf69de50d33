from typing import Optional, Any


class AnswerBotError(Exception):
    """
    Base exception for the Answer Bot application.
    """
    def __init__(self, message: str, code: str = "INTERNAL_ERROR", status_code: int = 500, details: Optional[Any] = None):
        self.message = message
        self.code = code
        self.status_code = status_code
        self.details = details
        super().__init__(self.message)


class ResourceNotFoundError(AnswerBotError):
    """
    Raised when a requested resource is not found.
    """
    def __init__(self, message: str = "Resource not found", details: Optional[Any] = None):
        super().__init__(message, code="NOT_FOUND", status_code=404, details=details)


class AuthenticationError(AnswerBotError):
    """
    Raised when authentication fails.
    """
    def __init__(self, message: str = "Authentication failed", details: Optional[Any] = None):
        super().__init__(message, code="AUTHENTICATION_FAILED", status_code=401, details=details)


class ValidationError(AnswerBotError):
    """
    Raised when input validation fails.
    """
    def __init__(self, message: str = "Validation error", details: Optional[Any] = None):
        super().__init__(message, code="VALIDATION_ERROR", status_code=422, details=details)


class ExternalServiceError(AnswerBotError):
    """
    Raised when an external service (Messenger, AI provider, MoMo) fails.
    """
    def __init__(self, message: str = "External service error", details: Optional[Any] = None):
        super().__init__(message, code="EXTERNAL_SERVICE_ERROR", status_code=502, details=details)


class AIServiceError(ExternalServiceError):
    """
    Raised when the completion provider cannot produce an answer.
    """
    def __init__(self, message: str = "Failed to generate AI response", details: Optional[Any] = None):
        super().__init__(message, details=details)
        self.code = "AI_SERVICE_ERROR"


class PaymentGatewayError(ExternalServiceError):
    """
    Raised when the payment gateway rejects or fails a request.
    """
    def __init__(self, message: str = "Payment gateway error", details: Optional[Any] = None):
        super().__init__(message, details=details)
        self.code = "PAYMENT_GATEWAY_ERROR"


class InvalidTransitionError(AnswerBotError):
    """
    Raised when a stage change is not allowed from the current stage.
    """
    def __init__(self, message: str = "Invalid stage transition", details: Optional[Any] = None):
        super().__init__(message, code="INVALID_TRANSITION", status_code=409, details=details)


class StaleStateError(AnswerBotError):
    """
    Raised when a user document changed between read and write.
    """
    def __init__(self, message: str = "User state changed concurrently", details: Optional[Any] = None):
        super().__init__(message, code="STALE_STATE", status_code=409, details=details)
