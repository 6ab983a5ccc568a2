# errors.py
# Error taxonomy shared by the core operations and the HTTP layer.


class DevMatchError(Exception):
    """Base class for errors surfaced to callers."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(DevMatchError):
    """Malformed input: self-interaction, bad kind, out-of-range content or paging."""

    status_code = 400


class NotFoundError(DevMatchError):
    status_code = 404


class ConflictError(DevMatchError):
    """Duplicate interaction, archived match, or a lost unique-constraint race."""

    status_code = 409
