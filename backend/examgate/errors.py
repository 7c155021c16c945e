"""
Domain errors raised by the service layer.

Each error carries the HTTP status it maps to; main.py renders them as
{"error": message}.
"""


class ServiceError(Exception):
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(ServiceError):
    """A required field is missing or empty."""
    status_code = 400


class AuthError(ServiceError):
    """Wrong password or wrong second-chance secret."""
    status_code = 401


class NotFoundError(ServiceError):
    """No user with the given name."""
    status_code = 404


class ConflictError(ServiceError):
    """Resubmission after a finalized result."""
    status_code = 400
