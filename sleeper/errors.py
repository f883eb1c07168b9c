"""Error taxonomy shared by the engine and the web layer.

Every error carries the HTTP status it maps to, so routes can let them
propagate and a single error handler renders ``{"error": message}``.
"""


class SleeperError(Exception):
    """Base class for errors returned to the calling client."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        return {"error": self.message}


class ValidationError(SleeperError):
    """Malformed input: out-of-range dice, wrong dice count, bad body."""

    status_code = 400


class ForbiddenError(SleeperError):
    """The capability check failed for this caller."""

    status_code = 403


class NotFoundError(SleeperError):
    """A referenced entity does not exist."""

    status_code = 404


class ConflictError(SleeperError):
    """The request lost a race or targets state that already moved on."""

    status_code = 409
