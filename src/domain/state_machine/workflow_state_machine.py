from dataclasses import dataclass

from src.domain.enums.item_status import ItemStatus
from src.domain.enums.workflow_step import WorkflowStep
from src.domain.references import is_valid_reference


@dataclass(frozen=True)
class EnabledActions:
    start_run: bool
    mark_draft: bool
    mark_published: bool
    mark_error: bool


class WorkflowStateMachine:
    """
    Computes the operator's position in the 7-step hand-off for one item.

    The cursor only ever moves forward: performing a step at the cursor
    advances it by one, repeating an earlier step leaves it untouched, and
    performing a later step does not skip ahead.
    """

    def initial_step(self, status: ItemStatus) -> WorkflowStep:
        # A processing item was already claimed, so the claim step is satisfied.
        if status == ItemStatus.PROCESSING:
            return WorkflowStep.COPY_TITLE
        return WorkflowStep.START_RUN

    def after_step(self, cursor: WorkflowStep, performed: WorkflowStep) -> WorkflowStep:
        """Return the cursor after `performed` completed successfully."""
        if performed == cursor and cursor < WorkflowStep.FINALIZE:
            return WorkflowStep(cursor + 1)
        return cursor

    def after_copy_all(self, cursor: WorkflowStep) -> WorkflowStep:
        """Copying every field at once satisfies all of the soft steps."""
        if cursor.is_soft:
            return WorkflowStep.RECORD_DESTINATION_REFERENCE
        return cursor

    def after_reference_saved(self, cursor: WorkflowStep, reference: str | None) -> WorkflowStep:
        if is_valid_reference(reference):
            return self.after_step(cursor, WorkflowStep.RECORD_DESTINATION_REFERENCE)
        return cursor

    def can_mark_draft(self, status: ItemStatus, reference: str | None) -> bool:
        return status == ItemStatus.PROCESSING and is_valid_reference(reference)

    def can_mark_published(
        self, status: ItemStatus, cursor: WorkflowStep, reference: str | None
    ) -> bool:
        return (
            status == ItemStatus.PROCESSING
            and cursor == WorkflowStep.FINALIZE
            and is_valid_reference(reference)
        )

    def enabled_actions(
        self, status: ItemStatus, cursor: WorkflowStep, reference: str | None
    ) -> EnabledActions:
        return EnabledActions(
            start_run=status == ItemStatus.READY,
            mark_draft=self.can_mark_draft(status, reference),
            mark_published=self.can_mark_published(status, cursor, reference),
            mark_error=not status.is_terminal,
        )
