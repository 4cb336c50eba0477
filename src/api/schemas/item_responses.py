from datetime import datetime
from decimal import Decimal
from typing import Any

from pydantic import BaseModel

from src.domain.audit.tags import AuditTagKind
from src.domain.enums.item_status import ItemKind, ItemStatus


class WorkItemResponse(BaseModel):
    id: str
    kind: ItemKind
    title: str
    description: str | None = None
    price: Decimal | None = None
    photos: list[str]
    status: ItemStatus
    external_reference: str | None = None
    audit_notes: str | None = None
    published_at: datetime | None = None
    created_at: datetime
    attributes: dict[str, Any]

    model_config = {"from_attributes": True}


class QueueResponse(BaseModel):
    items: list[WorkItemResponse]
    total: int
    failed_kinds: list[ItemKind]
    skipped_records: int
    retry_suggested: bool


class ClaimResponse(BaseModel):
    item: WorkItemResponse
    session_id: str
    claimed_at: datetime


class ReferenceRequest(BaseModel):
    reference: str


class MarkErrorRequest(BaseModel):
    reason: str | None = None


class StatusChangeResponse(BaseModel):
    item: WorkItemResponse
    from_status: ItemStatus
    to_status: ItemStatus


class AuditTagResponse(BaseModel):
    kind: AuditTagKind
    session_id: str
    timestamp: datetime


class AuditTrailResponse(BaseModel):
    item_id: str
    kind: ItemKind
    status: ItemStatus
    tags: list[AuditTagResponse]
    notes: str | None = None


class ErrorResponse(BaseModel):
    error: str
    detail: str
