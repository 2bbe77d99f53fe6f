"""
Service-level error taxonomy.

Every error a caller can see derives from ServiceError and carries the HTTP
status and machine-readable code used by the API exception handler.
"""
from typing import Optional


class ServiceError(Exception):
    status_code: int = 500
    code: str = "internal_error"
    default_message: str = "Internal error"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_dict(self) -> dict:
        return {"error": self.code, "detail": self.message}


class AuthenticationRequired(ServiceError):
    status_code = 401
    code = "authentication_required"
    default_message = "Not authenticated"


class Forbidden(ServiceError):
    status_code = 403
    code = "forbidden"
    default_message = "Forbidden"


class ValidationError(ServiceError):
    status_code = 400
    code = "validation_error"
    default_message = "Invalid request"


class NotFound(ServiceError):
    status_code = 404
    code = "not_found"
    default_message = "Not found"


class InvalidTransition(ServiceError):
    status_code = 409
    code = "invalid_transition"
    default_message = "Status change not permitted"


class PersistenceError(ServiceError):
    status_code = 500
    code = "persistence_error"
    default_message = "Storage failure"


class AuditLoggingFailure(Exception):
    """Raised inside the audit recorder only; never escapes record_action()."""
