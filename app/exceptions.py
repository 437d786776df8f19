"""
Error taxonomy of the license backend.

Every error carries the HTTP status it maps to and a machine-readable code;
the application renders them as ``{"ok": false, "error": code, "message": ...}``.
"""


class LicenseServiceError(Exception):
    status_code: int = 500
    code: str = "server_error"
    default_message: str = "Internal error"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(LicenseServiceError):
    status_code = 400
    code = "validation_error"
    default_message = "Invalid request"


class ConflictError(LicenseServiceError):
    status_code = 409
    code = "conflict"
    default_message = "Conflict"


class EmailExistsError(ConflictError):
    code = "email_exists"
    default_message = "Email already registered"


class AlreadyRedeemedError(ConflictError):
    status_code = 400
    code = "license_already_redeemed"
    default_message = "License already redeemed"


class LicenseNotAvailableError(ConflictError):
    code = "license_not_available"
    default_message = "License is not available"


class NotFoundError(LicenseServiceError):
    status_code = 404
    code = "not_found"
    default_message = "Not found"


class UserNotFoundError(NotFoundError):
    code = "user_not_found"
    default_message = "User not found"


class LicenseNotFoundError(NotFoundError):
    code = "license_not_found"
    default_message = "License not found"


class UnauthorizedError(LicenseServiceError):
    status_code = 401
    code = "unauthorized"
    default_message = "Unauthorized"


class InvalidCredentialsError(UnauthorizedError):
    code = "invalid_credentials"
    default_message = "Invalid credentials"


class InvalidSignatureError(UnauthorizedError):
    # the payment processor expects 400 for a rejected delivery
    status_code = 400
    code = "invalid_signature"
    default_message = "Invalid webhook signature"


class UpstreamFailure(LicenseServiceError):
    status_code = 500
    code = "upstream_failure"
    default_message = "Upstream service failure"


class WebhookProcessingError(UpstreamFailure):
    # a 5xx makes the payment processor redeliver the event
    code = "webhook_processing_failed"
    default_message = "Failed to process webhook"
