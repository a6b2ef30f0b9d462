"""
Typed errors raised by the service layer.

Services never build HTTP responses themselves; each error class carries
the status code the boundary layer should use, and ``main.py`` installs a
single exception handler that turns any ``ServiceError`` into a
``{"detail": ...}`` JSON response.
"""


class ServiceError(Exception):
    status_code: int = 500
    default_message: str = "Service error"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class NotAuthorized(ServiceError):
    status_code = 401
    default_message = "Not authorized"


class NotFound(ServiceError):
    status_code = 404
    default_message = "Not found"


class Conflict(ServiceError):
    status_code = 409
    default_message = "Resource already exists"


class ServerError(ServiceError):
    status_code = 500
    default_message = "Database error occurred"
