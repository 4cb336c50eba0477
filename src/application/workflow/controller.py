import json
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, replace
from datetime import datetime
from decimal import Decimal
from typing import Any

import structlog

from src.application.interfaces.event_publisher import EventPublisher
from src.application.interfaces.item_store import ItemStore
from src.application.use_cases.build_queue import BuildQueue, QueueSnapshot
from src.application.use_cases.claim_item import ClaimItem, ClaimItemInput
from src.application.use_cases.finalize_item import (
    FinalizeItem,
    FinalizeItemInput,
    FinalizeOutcome,
)
from src.application.use_cases.mark_item_error import MarkItemError, MarkItemErrorInput
from src.application.use_cases.record_reference import (
    RecordDestinationReference,
    RecordReferenceInput,
)
from src.application.workflow.commands import CommandTable
from src.config import settings
from src.domain.entities.work_item import WorkItem
from src.domain.enums.workflow_step import WorkflowStep
from src.domain.errors import (
    ClaimLostError,
    HandoffError,
    InvalidReferenceError,
    StoreUnavailableError,
    WorkflowIncompleteError,
    WrongStateError,
)
from src.domain.state_machine.workflow_state_machine import (
    EnabledActions,
    WorkflowStateMachine,
)

logger = structlog.get_logger(__name__)

# Receives text the operator should paste elsewhere; returns False on failure
OutputSink = Callable[[str], bool]
# Asks the operator for the destination reference; None means cancelled
ReferencePrompt = Callable[[], Awaitable[str | None]]

_NOTHING_ENABLED = EnabledActions(
    start_run=False, mark_draft=False, mark_published=False, mark_error=False
)


@dataclass(frozen=True)
class ActionResult:
    """Transient operator notice produced by every controller action."""

    ok: bool
    message: str


def _json_default(value: Any) -> Any:
    if isinstance(value, Decimal):
        return float(value)
    if isinstance(value, datetime):
        return value.isoformat()
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


class WorkflowController:
    """
    Drives one operator session through the hand-off of queued items.

    Holds an immutable queue snapshot, a selection that follows its item
    across refreshes (clamped once the item leaves the queue), and the
    workflow cursor for the selected item.
    Every action catches HandoffError at its boundary and reports an
    ActionResult instead of raising.
    """

    def __init__(
        self,
        store: ItemStore,
        event_publisher: EventPublisher,
        session_id: str,
        output: OutputSink,
        reference_prompt: ReferencePrompt | None = None,
        max_copied_photos: int = settings.max_copied_photos,
        currency: str = settings.currency,
    ) -> None:
        self.session_id = session_id
        self._output = output
        self._reference_prompt = reference_prompt
        self._max_copied_photos = max_copied_photos
        self._currency = currency

        self._build_queue = BuildQueue(store)
        self._claim = ClaimItem(store, event_publisher)
        self._record_reference = RecordDestinationReference(store)
        self._finalize = FinalizeItem(store, event_publisher)
        self._mark_error = MarkItemError(store, event_publisher)
        self._workflow = WorkflowStateMachine()

        self._snapshot = QueueSnapshot()
        self._index = 0
        self._cursor = WorkflowStep.START_RUN
        self._stale = False
        self._last_notice: ActionResult | None = None

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def snapshot(self) -> QueueSnapshot:
        return self._snapshot

    @property
    def selected_index(self) -> int:
        return self._index

    @property
    def selected(self) -> WorkItem | None:
        if not self._snapshot.items:
            return None
        return self._snapshot.items[self._index]

    @property
    def cursor(self) -> WorkflowStep:
        return self._cursor

    @property
    def stale(self) -> bool:
        """True while the snapshot could not be refreshed from the store."""
        return self._stale

    @property
    def last_notice(self) -> ActionResult | None:
        return self._last_notice

    @property
    def enabled_actions(self) -> EnabledActions:
        item = self.selected
        if item is None:
            return _NOTHING_ENABLED
        return self._workflow.enabled_actions(item.status, self._cursor, item.external_reference)

    def _notify(self, ok: bool, message: str) -> ActionResult:
        result = ActionResult(ok=ok, message=message)
        self._last_notice = result
        logger.info("operator_notice", ok=ok, message=message, session_id=self.session_id)
        return result

    def _reset_cursor(self) -> None:
        item = self.selected
        self._cursor = (
            self._workflow.initial_step(item.status) if item else WorkflowStep.START_RUN
        )

    def _clamp_index(self) -> None:
        self._index = max(0, min(self._index, len(self._snapshot) - 1))

    def _position_of(self, item: WorkItem | None) -> int | None:
        if item is None:
            return None
        for index, candidate in enumerate(self._snapshot.items):
            if candidate.key == item.key:
                return index
        return None

    def _replace_selected(self, item: WorkItem) -> None:
        items = list(self._snapshot.items)
        items[self._index] = item
        self._snapshot = replace(self._snapshot, items=tuple(items))

    async def _failed(self, exc: HandoffError, message: str | None = None) -> ActionResult:
        logger.warning(
            "action_failed",
            error=type(exc).__name__,
            detail=str(exc),
            session_id=self.session_id,
        )
        if isinstance(exc, ClaimLostError):
            notice = self._notify(False, "UPDATE FAILED - REFRESHING")
            await self.refresh()
            self._last_notice = notice
            return notice
        if isinstance(exc, WrongStateError):
            status = getattr(exc.status, "value", exc.status) or "UNKNOWN"
            notice = self._notify(False, message or f"CANNOT PROCEED - STATUS IS {status.upper()}")
            await self.refresh()
            self._last_notice = notice
            return notice
        if isinstance(exc, StoreUnavailableError):
            return self._notify(False, "STORE UNAVAILABLE - TRY AGAIN")
        if isinstance(exc, InvalidReferenceError):
            return self._notify(False, "PASTE A VALID VINTED URL FIRST")
        if isinstance(exc, WorkflowIncompleteError):
            return self._notify(False, "FINISH ALL STEPS BEFORE PUBLISHING")
        return self._notify(False, str(exc))

    # ------------------------------------------------------------------
    # Queue and navigation
    # ------------------------------------------------------------------

    async def refresh(self) -> ActionResult:
        """Rebuild the queue; the current snapshot is kept when every source fails."""
        previous = self.selected
        snapshot = await self._build_queue.execute()

        if snapshot.retry_suggested:
            self._stale = True
            return self._notify(False, "QUEUE UNAVAILABLE - PRESS R TO RETRY")

        self._snapshot = snapshot
        self._stale = False
        # Follow the selected item; keep the position only once it has left.
        position = self._position_of(previous)
        if position is not None:
            self._index = position
        self._clamp_index()

        current = self.selected
        if (
            previous is None
            or current is None
            or current.key != previous.key
            or current.status != previous.status
        ):
            self._reset_cursor()

        if snapshot.failed_kinds:
            missing = ", ".join(sorted(kind.value for kind in snapshot.failed_kinds))
            return self._notify(False, f"PARTIAL QUEUE - {missing.upper()} UNAVAILABLE")
        return self._notify(True, f"{len(snapshot)} ITEMS IN QUEUE")

    async def select(self, index: int) -> ActionResult:
        if not 0 <= index < len(self._snapshot):
            return self._notify(False, "NO SUCH ITEM")
        self._index = index
        self._reset_cursor()
        return self._notify(True, f"ITEM {index + 1}/{len(self._snapshot)}")

    async def next_item(self) -> ActionResult:
        if self._index >= len(self._snapshot) - 1:
            return self._notify(False, "LAST ITEM")
        return await self.select(self._index + 1)

    async def previous_item(self) -> ActionResult:
        if self._index <= 0:
            return self._notify(False, "FIRST ITEM")
        return await self.select(self._index - 1)

    # ------------------------------------------------------------------
    # Step 1: claim
    # ------------------------------------------------------------------

    async def start_run(self) -> ActionResult:
        item = self.selected
        if item is None:
            return self._notify(False, "NO ITEM SELECTED")

        try:
            claimed = await self._claim.execute(ClaimItemInput(item=item, session_id=self.session_id))
        except WrongStateError as exc:
            return await self._failed(exc, f"CANNOT START - STATUS IS {item.status.value.upper()}")
        except HandoffError as exc:
            return await self._failed(exc)

        self._replace_selected(claimed.item)
        self._cursor = self._workflow.after_step(self._cursor, WorkflowStep.START_RUN)
        notice = self._notify(True, "RUN STARTED")
        await self.refresh()
        self._last_notice = notice
        return notice

    # ------------------------------------------------------------------
    # Steps 2-5: copy
    # ------------------------------------------------------------------

    def _emit(self, step: WorkflowStep | None, text: str, label: str) -> ActionResult:
        try:
            ok = self._output(text)
        except Exception as exc:
            logger.warning("output_sink_failed", error=str(exc), session_id=self.session_id)
            ok = False
        if ok and step is not None:
            self._cursor = self._workflow.after_step(self._cursor, step)
        return self._notify(ok, f"{label} COPIED" if ok else "COPY FAILED")

    async def copy_title(self) -> ActionResult:
        item = self.selected
        if item is None:
            return self._notify(False, "NO ITEM SELECTED")
        return self._emit(WorkflowStep.COPY_TITLE, item.title, "TITLE")

    async def copy_description(self) -> ActionResult:
        item = self.selected
        if item is None:
            return self._notify(False, "NO ITEM SELECTED")
        return self._emit(WorkflowStep.COPY_DESCRIPTION, item.description or "", "DESCRIPTION")

    async def copy_price(self) -> ActionResult:
        item = self.selected
        if item is None:
            return self._notify(False, "NO ITEM SELECTED")
        price = "" if item.price is None else str(item.price)
        return self._emit(WorkflowStep.COPY_PRICE, price, "PRICE")

    async def copy_photos(self) -> ActionResult:
        item = self.selected
        if item is None:
            return self._notify(False, "NO ITEM SELECTED")
        urls = item.photos[: self._max_copied_photos]
        return self._emit(WorkflowStep.COPY_MEDIA, "\n".join(urls), "PHOTOS")

    def export_item(self, item: WorkItem) -> dict[str, Any]:
        """Everything needed to fill the marketplace form, as one document."""
        return {
            "article_id": item.id,
            "status": item.status.value,
            "type": item.kind.value,
            "core_fields": {
                "title": item.title,
                "description": item.description,
                "price": {"amount": item.price, "currency": self._currency},
            },
            "media": {
                "photos_count": len(item.photos),
                "photos_urls": list(item.photos),
            },
            "vinted_mapping": {
                "status": item.status.value,
                "vinted_url": item.external_reference,
                "notes": item.audit_notes,
            },
            "attributes": {key: value or None for key, value in item.attributes.items()},
        }

    async def copy_all_data(self) -> ActionResult:
        item = self.selected
        if item is None:
            return self._notify(False, "NO ITEM SELECTED")
        document = json.dumps(self.export_item(item), indent=2, default=_json_default)
        result = self._emit(None, document, "ALL DATA")
        if result.ok:
            self._cursor = self._workflow.after_copy_all(self._cursor)
        return result

    # ------------------------------------------------------------------
    # Step 6: destination reference
    # ------------------------------------------------------------------

    async def save_reference(self, reference: str) -> ActionResult:
        item = self.selected
        if item is None:
            return self._notify(False, "NO ITEM SELECTED")

        try:
            updated = await self._record_reference.execute(
                RecordReferenceInput(item=item, reference=reference)
            )
        except HandoffError as exc:
            return await self._failed(exc)

        self._replace_selected(updated)
        self._cursor = self._workflow.after_reference_saved(self._cursor, updated.external_reference)
        return self._notify(True, "URL SAVED")

    async def edit_reference(self) -> ActionResult:
        if self.selected is None:
            return self._notify(False, "NO ITEM SELECTED")
        if self._reference_prompt is None:
            return self._notify(False, "NO URL INPUT AVAILABLE")
        reference = await self._reference_prompt()
        if reference is None:
            return self._notify(False, "URL NOT CHANGED")
        return await self.save_reference(reference)

    # ------------------------------------------------------------------
    # Step 7: terminal writes
    # ------------------------------------------------------------------

    async def mark_draft(self) -> ActionResult:
        item = self.selected
        if item is None:
            return self._notify(False, "NO ITEM SELECTED")

        try:
            result = await self._finalize.execute(
                FinalizeItemInput(item=item, session_id=self.session_id, outcome=FinalizeOutcome.DRAFT)
            )
        except HandoffError as exc:
            return await self._failed(exc)

        self._replace_selected(result.item)
        notice = self._notify(True, "MARKED AS DRAFT")
        await self.refresh()
        self._last_notice = notice
        return notice

    async def mark_published(self) -> ActionResult:
        item = self.selected
        if item is None:
            return self._notify(False, "NO ITEM SELECTED")

        try:
            if self._cursor != WorkflowStep.FINALIZE:
                raise WorkflowIncompleteError(
                    f"Cursor is at step {int(self._cursor)}, publishing needs step {int(WorkflowStep.FINALIZE)}."
                )
            result = await self._finalize.execute(
                FinalizeItemInput(
                    item=item, session_id=self.session_id, outcome=FinalizeOutcome.PUBLISHED
                )
            )
        except HandoffError as exc:
            return await self._failed(exc)

        self._replace_selected(result.item)
        # The published item drops out of the queue, so the same index now
        # points at the next item.
        notice = self._notify(True, "PUBLISHED!")
        await self.refresh()
        self._last_notice = notice
        return notice

    async def mark_error(self) -> ActionResult:
        item = self.selected
        if item is None:
            return self._notify(False, "NO ITEM SELECTED")

        try:
            updated = await self._mark_error.execute(
                MarkItemErrorInput(item=item, session_id=self.session_id, reason="operator")
            )
        except HandoffError as exc:
            return await self._failed(exc)

        self._replace_selected(updated)
        notice = self._notify(True, "MARKED AS ERROR")
        await self.refresh()
        self._last_notice = notice
        return notice

    # ------------------------------------------------------------------
    # Keyboard
    # ------------------------------------------------------------------

    def bind_keys(self) -> CommandTable:
        return CommandTable(
            {
                "s": self.start_run,
                "1": self.copy_title,
                "2": self.copy_description,
                "3": self.copy_price,
                "4": self.copy_photos,
                "5": self.copy_all_data,
                "u": self.edit_reference,
                "d": self.mark_draft,
                "p": self.mark_published,
                "e": self.mark_error,
                "n": self.next_item,
                "arrowdown": self.next_item,
                "arrowup": self.previous_item,
                "r": self.refresh,
            }
        )
