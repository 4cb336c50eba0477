from enum import IntEnum


class WorkflowStep(IntEnum):
    """The seven ordered hand-off steps for one item."""

    START_RUN = 1
    COPY_TITLE = 2
    COPY_DESCRIPTION = 3
    COPY_PRICE = 4
    COPY_MEDIA = 5
    RECORD_DESTINATION_REFERENCE = 6
    FINALIZE = 7

    @property
    def is_soft(self) -> bool:
        """Copy steps: idempotent, freely repeatable."""
        return WorkflowStep.COPY_TITLE <= self <= WorkflowStep.COPY_MEDIA

    @property
    def label(self) -> str:
        return _LABELS[self]


_LABELS: dict[WorkflowStep, str] = {
    WorkflowStep.START_RUN: "Start Run",
    WorkflowStep.COPY_TITLE: "Copy Title",
    WorkflowStep.COPY_DESCRIPTION: "Copy Description",
    WorkflowStep.COPY_PRICE: "Copy Price",
    WorkflowStep.COPY_MEDIA: "Copy Photos",
    WorkflowStep.RECORD_DESTINATION_REFERENCE: "Paste Vinted URL",
    WorkflowStep.FINALIZE: "Mark Published",
}
