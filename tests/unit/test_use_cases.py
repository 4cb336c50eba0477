"""Unit tests for application use cases, run against the in-memory store."""
import asyncio
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest

from src.application.use_cases.build_queue import BuildQueue
from src.application.use_cases.claim_item import ClaimItem, ClaimItemInput
from src.application.use_cases.finalize_item import (
    FinalizeItem,
    FinalizeItemInput,
    FinalizeOutcome,
)
from src.application.use_cases.get_audit_trail import GetAuditTrail, GetAuditTrailInput
from src.application.use_cases.mark_item_error import MarkItemError, MarkItemErrorInput
from src.application.use_cases.record_reference import (
    RecordDestinationReference,
    RecordReferenceInput,
)
from src.domain.audit.tags import AuditTagKind, parse_tags
from src.domain.enums.item_status import ItemKind, ItemStatus
from src.domain.errors import (
    ClaimLostError,
    InvalidReferenceError,
    ItemNotFoundError,
    WrongStateError,
)
from src.domain.events.domain_events import ItemClaimedEvent, ItemStatusChangedEvent
from src.domain.normalization.records import normalize_record
from src.infrastructure.store.in_memory import InMemoryItemStore

T0 = datetime(2026, 1, 1, 9, 0, tzinfo=timezone.utc)
VALID_URL = "https://www.vinted.fr/items/123"


def _make_publisher() -> MagicMock:
    pub = MagicMock()
    pub.publish = AsyncMock()
    return pub


def _item(store: InMemoryItemStore, kind: ItemKind = ItemKind.SINGLE, **fields):
    fields.setdefault("title" if kind is ItemKind.SINGLE else "name", "Levi's 501")
    raw = store.seed(kind, **fields)
    return normalize_record(kind, raw)


class TestBuildQueue:
    @pytest.mark.asyncio
    async def test_merges_both_kinds_oldest_first(self) -> None:
        store = InMemoryItemStore()
        _item(store, ItemKind.SINGLE, id="a-late", created_at=T0 + timedelta(hours=2))
        _item(store, ItemKind.BUNDLE, id="b-mid", created_at=T0 + timedelta(hours=1))
        _item(store, ItemKind.SINGLE, id="a-early", created_at=T0, status="processing")
        _item(store, ItemKind.SINGLE, id="a-draft", created_at=T0, status="draft")
        _item(store, ItemKind.BUNDLE, id="b-done", created_at=T0, status="published")

        snapshot = await BuildQueue(store).execute()

        assert [item.id for item in snapshot.items] == ["a-early", "b-mid", "a-late"]
        assert snapshot.failed_kinds == frozenset()
        assert snapshot.retry_suggested is False

    @pytest.mark.asyncio
    async def test_partial_failure_keeps_other_kind(self) -> None:
        store = InMemoryItemStore()
        _item(store, ItemKind.SINGLE, id="a1", created_at=T0)
        _item(store, ItemKind.BUNDLE, id="b1", created_at=T0)
        store.unavailable.add(ItemKind.BUNDLE)

        snapshot = await BuildQueue(store).execute()

        assert [item.id for item in snapshot.items] == ["a1"]
        assert snapshot.failed_kinds == frozenset({ItemKind.BUNDLE})
        assert snapshot.retry_suggested is False

    @pytest.mark.asyncio
    async def test_both_failing_suggests_retry(self) -> None:
        store = InMemoryItemStore()
        store.unavailable.update(ItemKind)

        snapshot = await BuildQueue(store).execute()

        assert len(snapshot) == 0
        assert snapshot.retry_suggested is True

    @pytest.mark.asyncio
    async def test_unreadable_record_is_skipped(self) -> None:
        store = InMemoryItemStore()
        _item(store, ItemKind.SINGLE, id="good", created_at=T0)
        store.seed(ItemKind.SINGLE, id="bad", created_at=T0, published_at="not a timestamp")

        snapshot = await BuildQueue(store).execute()

        assert [item.id for item in snapshot.items] == ["good"]
        assert snapshot.skipped_records == 1


class TestClaimItem:
    @pytest.mark.asyncio
    async def test_claim_flips_status_and_appends_lock_tag(self) -> None:
        store = InMemoryItemStore()
        item = _item(store, sale_notes="Owner note")
        publisher = _make_publisher()

        claimed = await ClaimItem(store, publisher).execute(
            ClaimItemInput(item=item, session_id="agent_a_1")
        )

        row = store.rows[ItemKind.SINGLE][item.id]
        assert row["status"] == "processing"
        assert row["sale_notes"].startswith("Owner note\n[AGENT_LOCKED_BY:agent_a_1:")
        assert claimed.item.status is ItemStatus.PROCESSING
        assert claimed.item.audit_notes == row["sale_notes"]
        event = publisher.publish.call_args[0][0]
        assert isinstance(event, ItemClaimedEvent)
        assert event.session_id == "agent_a_1"

    @pytest.mark.asyncio
    async def test_non_ready_item_raises_without_write(self) -> None:
        store = InMemoryItemStore()
        item = _item(store, status="processing")
        publisher = _make_publisher()

        with pytest.raises(WrongStateError):
            await ClaimItem(store, publisher).execute(ClaimItemInput(item=item, session_id="s"))

        assert store.writes == []
        publisher.publish.assert_not_called()

    @pytest.mark.asyncio
    async def test_stale_view_loses_claim(self) -> None:
        store = InMemoryItemStore()
        item = _item(store)
        store.rows[ItemKind.SINGLE][item.id]["status"] = "processing"

        with pytest.raises(ClaimLostError):
            await ClaimItem(store, _make_publisher()).execute(
                ClaimItemInput(item=item, session_id="s")
            )

    @pytest.mark.asyncio
    async def test_racing_sessions_only_one_wins(self) -> None:
        store = InMemoryItemStore()
        item = _item(store)
        use_case = ClaimItem(store, _make_publisher())

        results = await asyncio.gather(
            *(
                use_case.execute(ClaimItemInput(item=item, session_id=f"agent_{n}_1"))
                for n in range(5)
            ),
            return_exceptions=True,
        )

        winners = [r for r in results if not isinstance(r, Exception)]
        losers = [r for r in results if isinstance(r, ClaimLostError)]
        assert len(winners) == 1
        assert len(losers) == 4
        notes = store.rows[ItemKind.SINGLE][item.id]["sale_notes"]
        assert len(parse_tags(notes)) == 1
        assert parse_tags(notes)[0].session_id == winners[0].session_id


class TestRecordReference:
    @pytest.mark.asyncio
    async def test_reference_is_stored_as_typed(self) -> None:
        store = InMemoryItemStore()
        item = _item(store, status="processing")

        updated = await RecordDestinationReference(store).execute(
            RecordReferenceInput(item=item, reference="not a url")
        )

        assert store.rows[ItemKind.SINGLE][item.id]["vinted_url"] == "not a url"
        assert updated.external_reference == "not a url"

    @pytest.mark.asyncio
    async def test_empty_reference_clears(self) -> None:
        store = InMemoryItemStore()
        item = _item(store, status="processing", vinted_url=VALID_URL)

        updated = await RecordDestinationReference(store).execute(
            RecordReferenceInput(item=item, reference="")
        )

        assert store.rows[ItemKind.SINGLE][item.id]["vinted_url"] is None
        assert updated.external_reference is None

    @pytest.mark.asyncio
    async def test_terminal_item_is_not_touched(self) -> None:
        store = InMemoryItemStore()
        item = _item(store, status="published")

        with pytest.raises(WrongStateError):
            await RecordDestinationReference(store).execute(
                RecordReferenceInput(item=item, reference=VALID_URL)
            )
        assert store.writes == []


class TestFinalizeItem:
    @pytest.mark.asyncio
    async def test_publish_writes_status_timestamp_and_done_tag(self) -> None:
        store = InMemoryItemStore()
        item = _item(store, status="processing", vinted_url=VALID_URL, sale_notes="n")
        publisher = _make_publisher()

        result = await FinalizeItem(store, publisher).execute(
            FinalizeItemInput(item=item, session_id="agent_a_1", outcome=FinalizeOutcome.PUBLISHED)
        )

        row = store.rows[ItemKind.SINGLE][item.id]
        assert row["status"] == "published"
        assert row["published_at"] is not None
        assert [t.kind for t in parse_tags(row["sale_notes"])] == [AuditTagKind.DONE]
        assert row["vinted_url"] == VALID_URL
        assert result.to_status is ItemStatus.PUBLISHED
        event = publisher.publish.call_args[0][0]
        assert isinstance(event, ItemStatusChangedEvent)
        assert event.to_status is ItemStatus.PUBLISHED
        assert event.external_reference == VALID_URL

    @pytest.mark.asyncio
    async def test_draft_only_changes_status(self) -> None:
        store = InMemoryItemStore()
        item = _item(store, status="processing", vinted_url=VALID_URL, sale_notes="n")

        await FinalizeItem(store, _make_publisher()).execute(
            FinalizeItemInput(item=item, session_id="s", outcome=FinalizeOutcome.DRAFT)
        )

        row = store.rows[ItemKind.SINGLE][item.id]
        assert row["status"] == "vinted_draft"
        assert row["sale_notes"] == "n"
        assert row["published_at"] is None

    @pytest.mark.asyncio
    @pytest.mark.parametrize("reference", [None, "", "   ", "www.x.com"])
    async def test_invalid_reference_blocks_without_write(self, reference) -> None:
        store = InMemoryItemStore()
        item = _item(store, status="processing", vinted_url=reference)

        for outcome in FinalizeOutcome:
            with pytest.raises(InvalidReferenceError):
                await FinalizeItem(store, _make_publisher()).execute(
                    FinalizeItemInput(item=item, session_id="s", outcome=outcome)
                )
        assert store.writes == []

    @pytest.mark.asyncio
    async def test_item_that_left_processing_is_not_rewritten(self) -> None:
        store = InMemoryItemStore()
        item = _item(store, status="processing", vinted_url=VALID_URL)
        store.rows[ItemKind.SINGLE][item.id]["status"] = "sold"

        with pytest.raises(ClaimLostError):
            await FinalizeItem(store, _make_publisher()).execute(
                FinalizeItemInput(item=item, session_id="s", outcome=FinalizeOutcome.PUBLISHED)
            )
        assert store.rows[ItemKind.SINGLE][item.id]["status"] == "sold"

    @pytest.mark.asyncio
    async def test_ready_item_cannot_be_finalized(self) -> None:
        store = InMemoryItemStore()
        item = _item(store, vinted_url=VALID_URL)

        with pytest.raises(WrongStateError):
            await FinalizeItem(store, _make_publisher()).execute(
                FinalizeItemInput(item=item, session_id="s", outcome=FinalizeOutcome.DRAFT)
            )


class TestMarkItemError:
    @pytest.mark.asyncio
    @pytest.mark.parametrize("status", ["ready", "processing"])
    async def test_active_items_can_be_parked(self, status: str) -> None:
        store = InMemoryItemStore()
        item = _item(store, status=status, sale_notes="keep me")

        updated = await MarkItemError(store, _make_publisher()).execute(
            MarkItemErrorInput(item=item, session_id="s", reason="photos missing")
        )

        row = store.rows[ItemKind.SINGLE][item.id]
        assert row["status"] == "error"
        assert row["sale_notes"] == "keep me"
        assert updated.status is ItemStatus.ERROR

    @pytest.mark.asyncio
    async def test_terminal_item_is_rejected(self) -> None:
        store = InMemoryItemStore()
        item = _item(store, status="vinted_draft")

        with pytest.raises(WrongStateError):
            await MarkItemError(store, _make_publisher()).execute(
                MarkItemErrorInput(item=item, session_id="s")
            )
        assert store.writes == []


class TestGetAuditTrail:
    @pytest.mark.asyncio
    async def test_returns_parsed_tags(self) -> None:
        store = InMemoryItemStore()
        item = _item(store, ItemKind.BUNDLE)
        claimed = await ClaimItem(store, _make_publisher()).execute(
            ClaimItemInput(item=item, session_id="agent_a_1")
        )

        trail = await GetAuditTrail(store).execute(
            GetAuditTrailInput(kind=ItemKind.BUNDLE, item_id=claimed.item.id)
        )

        assert trail.status is ItemStatus.PROCESSING
        assert [t.kind for t in trail.tags] == [AuditTagKind.LOCK]

    @pytest.mark.asyncio
    async def test_unknown_item_raises(self) -> None:
        with pytest.raises(ItemNotFoundError):
            await GetAuditTrail(InMemoryItemStore()).execute(
                GetAuditTrailInput(kind=ItemKind.SINGLE, item_id="missing")
            )
