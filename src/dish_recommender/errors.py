"""Error taxonomy for the recommendation flow.

Errors that end a request carry the HTTP status they map to. Stage-internal
and store-internal errors never reach the caller directly: stages turn them
into failed outcomes and the session store turns them into ``False``.
"""


class PipelineError(Exception):
    """Base class for failures that end a pipeline invocation."""

    status_code = 500
    reason = "internal"

    def __init__(self, message: str, detail: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.detail = detail


class ValidationError(PipelineError):
    """A required request field is missing or invalid."""

    status_code = 400
    reason = "validation"


class NotFoundError(PipelineError):
    """The referenced table does not exist."""

    status_code = 404
    reason = "table-not-found"


class StageFailure(PipelineError):
    """An inference stage returned an unsuccessful outcome."""

    status_code = 500

    def __init__(self, reason: str, message: str, detail: str | None = None) -> None:
        super().__init__(message, detail)
        self.reason = reason


class CallFailure(Exception):
    """Outbound model call failed, timed out, or returned no answer."""


class DecodeFailure(Exception):
    """A model answer could not be decoded into the expected shape."""


class PersistenceFailure(Exception):
    """A store write or update did not take effect."""
