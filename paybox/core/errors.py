"""Errors raised by payment-box operations.

All of them are recoverable by the caller: the record is left untouched and the
operation can be retried after a fresh read. ``status_code`` is used by the HTTP
layer, ``code`` is the stable machine-readable name.
"""


class PayBoxError(Exception):
    status_code = 400
    code = "paybox_error"

    def __init__(self, message: str, *, box_id: str | None = None):
        super().__init__(message)
        self.message = message
        self.box_id = box_id


class InvalidActorError(PayBoxError):
    """Caller is not the party the transition belongs to."""

    status_code = 403
    code = "invalid_actor"


class InvalidStateError(PayBoxError):
    """Current state does not allow the transition (terminal records included)."""

    status_code = 409
    code = "invalid_state"


class MissingFieldError(PayBoxError):
    """A required input for the transition is absent or invalid."""

    status_code = 422
    code = "missing_field"

    def __init__(self, message: str, *, field: str | None = None, box_id: str | None = None):
        super().__init__(message, box_id=box_id)
        self.field = field


class ConflictError(PayBoxError):
    status_code = 409
    code = "conflict"


class StaleStateError(ConflictError):
    """Compare-and-set lost: another writer moved the record after it was read."""

    code = "stale_state"


class NotFoundError(PayBoxError):
    status_code = 404
    code = "not_found"
