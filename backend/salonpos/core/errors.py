"""
Errors raised by the agenda and cash engine.

Services raise these; the HTTP shell maps each class to a status code in
salonpos.main. Messages are shown to the operator as-is.
"""


class EngineError(Exception):
    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(EngineError, ValueError):
    """Missing field, malformed identifier, non-positive amount, insufficient payment."""
    status_code = 400


class NotFoundError(EngineError, LookupError):
    status_code = 404


class ConflictError(EngineError):
    """Cash session already open, slot no longer available."""
    status_code = 409


class InvariantError(EngineError):
    """A blocking business rule caught late, e.g. settling with the register closed."""
    status_code = 409


class StorageError(EngineError):
    """The database rejected a write. Carries the driver message verbatim."""
    status_code = 500
