"""
FastAPI dependency injection wiring.

Each dependency function returns a fully-constructed object with its
collaborators injected, keeping the route handlers thin.
"""
from functools import lru_cache

from fastapi import Depends, Header

from src.application.interfaces.event_publisher import EventPublisher
from src.application.interfaces.item_store import ItemStore
from src.application.use_cases.build_queue import BuildQueue
from src.application.use_cases.claim_item import ClaimItem
from src.application.use_cases.finalize_item import FinalizeItem
from src.application.use_cases.get_audit_trail import GetAuditTrail
from src.application.use_cases.mark_item_error import MarkItemError
from src.application.use_cases.record_reference import RecordDestinationReference
from src.infrastructure.messaging.factory import build_event_publisher
from src.infrastructure.store.factory import build_item_store


# ---- Low-level dependencies ------------------------------------------------

@lru_cache(maxsize=1)
def get_item_store() -> ItemStore:
    # One store per process; the in-memory backend keeps its rows here.
    return build_item_store()


def get_event_publisher() -> EventPublisher:
    return build_event_publisher()


def get_session_id(x_agent_session: str = Header(..., alias="X-Agent-Session", min_length=1)) -> str:
    return x_agent_session


# ---- Use-case dependencies -------------------------------------------------

def get_build_queue_use_case(store: ItemStore = Depends(get_item_store)) -> BuildQueue:
    return BuildQueue(store)


def get_claim_item_use_case(
    store: ItemStore = Depends(get_item_store),
    event_publisher: EventPublisher = Depends(get_event_publisher),
) -> ClaimItem:
    return ClaimItem(store, event_publisher)


def get_record_reference_use_case(
    store: ItemStore = Depends(get_item_store),
) -> RecordDestinationReference:
    return RecordDestinationReference(store)


def get_finalize_item_use_case(
    store: ItemStore = Depends(get_item_store),
    event_publisher: EventPublisher = Depends(get_event_publisher),
) -> FinalizeItem:
    return FinalizeItem(store, event_publisher)


def get_mark_item_error_use_case(
    store: ItemStore = Depends(get_item_store),
    event_publisher: EventPublisher = Depends(get_event_publisher),
) -> MarkItemError:
    return MarkItemError(store, event_publisher)


def get_audit_trail_use_case(store: ItemStore = Depends(get_item_store)) -> GetAuditTrail:
    return GetAuditTrail(store)
