"""
Error taxonomy for the hand-off subsystem.

None of these are fatal: the workflow controller and the HTTP layer catch
them at the action boundary and turn them into operator-facing notices.
"""


class HandoffError(Exception):
    """Base class for all hand-off errors."""


class WrongStateError(HandoffError):
    """The locally known status does not satisfy the action's precondition."""

    def __init__(self, message: str, *, status: object | None = None) -> None:
        self.status = status
        super().__init__(message)


class ClaimLostError(HandoffError):
    """A conditional update affected zero rows; the local view is stale."""

    def __init__(self, item_id: object, expected_status: object) -> None:
        self.item_id = item_id
        self.expected_status = expected_status
        super().__init__(
            f"Item {item_id} is no longer in status {getattr(expected_status, 'value', expected_status)}."
        )


class StoreUnavailableError(HandoffError):
    """The backing store could not be reached."""


class InvalidReferenceError(HandoffError):
    """The destination reference is not an http(s) URL."""

    def __init__(self, reference: str | None) -> None:
        self.reference = reference
        super().__init__(f"Invalid destination reference: {reference!r}")


class WorkflowIncompleteError(HandoffError):
    """Finalize attempted before every hand-off step was performed."""


class ItemNotFoundError(HandoffError):
    def __init__(self, kind: object, item_id: object) -> None:
        super().__init__(f"{getattr(kind, 'value', kind)} item {item_id} not found.")
