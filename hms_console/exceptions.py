# hms_console/exceptions.py
from typing import Optional


class ApiError(Exception):
    """Base class for every classified outcome of a call to the records API."""

    kind = "unexpected"

    def __init__(self, message: str = "", status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code

    def __str__(self):
        return self.message or self.kind


class NetworkError(ApiError):
    """No response was received (connection refused, DNS failure, transport timeout)."""
    kind = "network"


class UnauthorizedError(ApiError):
    """401: the session is no longer valid. The gateway logs the user out."""
    kind = "unauthorized"


class ForbiddenError(ApiError):
    """403: valid session, but the role lacks permission."""
    kind = "forbidden"


class ApiValidationError(ApiError):
    """400: the server rejected the request body."""
    kind = "validation"


class ServerError(ApiError):
    kind = "server"


class UnexpectedError(ApiError):
    """Any other non-2xx status, or a 2xx body that is not JSON."""
    kind = "unexpected"


class NotFoundError(UnexpectedError):
    kind = "not_found"


# --- Authentication ---
class AuthError(Exception):
    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidCredentials(AuthError):
    pass


class InactiveAccount(AuthError):
    pass


class AuthNetworkError(AuthError):
    pass


# --- Console-side rules ---
class DepartmentInUseError(Exception):
    """A department still referenced by doctors or appointments cannot be deleted."""

    def __init__(self, department_id: str, doctor_count: int, appointment_count: int):
        self.department_id = department_id
        self.doctor_count = doctor_count
        self.appointment_count = appointment_count
        if doctor_count:
            message = (f"Cannot delete this department. It has {doctor_count} associated doctor(s). "
                       "Please reassign or remove the doctors first.")
        else:
            message = (f"Cannot delete this department. It has {appointment_count} associated appointment(s). "
                       "Please reassign or remove the appointments first.")
        super().__init__(message)
        self.message = message


class FormStateError(Exception):
    """Raised when a form transition is requested from a state that does not allow it."""
