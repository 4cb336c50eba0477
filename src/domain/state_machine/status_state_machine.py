from src.domain.enums.item_status import ItemStatus
from src.domain.errors import WrongStateError


# Mapping of valid transitions: from_status -> set of allowed to_statuses
VALID_TRANSITIONS: dict[ItemStatus, frozenset[ItemStatus]] = {
    ItemStatus.READY: frozenset({ItemStatus.PROCESSING, ItemStatus.ERROR}),
    ItemStatus.PROCESSING: frozenset(
        {ItemStatus.VINTED_DRAFT, ItemStatus.PUBLISHED, ItemStatus.ERROR}
    ),
    # Terminal for the hand-off
    ItemStatus.VINTED_DRAFT: frozenset(),
    ItemStatus.PUBLISHED: frozenset(),
    ItemStatus.ERROR: frozenset(),
    # Owned by the preparation pipeline or sale tracking
    ItemStatus.DRAFT: frozenset(),
    ItemStatus.SCHEDULED: frozenset(),
    ItemStatus.SOLD: frozenset(),
    ItemStatus.SOLD_IN_BUNDLE: frozenset(),
    ItemStatus.RESERVED: frozenset(),
}


class InvalidStatusTransitionError(WrongStateError):
    """Raised when an item's known status does not allow the requested transition."""

    def __init__(self, from_status: ItemStatus, to_status: ItemStatus) -> None:
        self.from_status = from_status
        self.to_status = to_status
        super().__init__(
            f"Invalid transition from {from_status.value} to {to_status.value}. "
            f"Allowed transitions: {sorted(s.value for s in VALID_TRANSITIONS.get(from_status, frozenset()))}",
            status=from_status,
        )


class StatusStateMachine:
    """
    Validates status transitions for hand-off items.

    Stateless: call can_transition() or validate_transition() with explicit statuses.
    """

    def can_transition(self, from_status: ItemStatus, to_status: ItemStatus) -> bool:
        """Return True if moving from_status -> to_status is permitted."""
        if from_status.is_terminal:
            return False
        return to_status in VALID_TRANSITIONS.get(from_status, frozenset())

    def validate_transition(self, from_status: ItemStatus, to_status: ItemStatus) -> None:
        """Raise InvalidStatusTransitionError if the transition is not permitted."""
        if not self.can_transition(from_status, to_status):
            raise InvalidStatusTransitionError(from_status, to_status)
