"""Error taxonomy shared by the data layer and the API.

Each error carries the HTTP status the API answers with, so route handlers
can raise them directly and the exception handlers in api/app.py map them
to the standard JSON error body.
"""


class HubError(Exception):
    """Base class for climate hub errors."""

    status_code: int = 500

    def __init__(self, message: str = "Internal server error") -> None:
        super().__init__(message)
        self.message = message


class ValidationError(HubError):
    """A request parameter is missing or malformed."""

    status_code = 400


class NotFoundError(HubError):
    """No row matches the requested identity."""

    status_code = 404


class DataAccessError(HubError):
    """The store is unavailable or rejected a statement."""

    status_code = 500


class ConfigurationError(HubError):
    """Startup-time misconfiguration, e.g. an unreachable database."""

    status_code = 500
