"""
Integration tests for the API layer.

The item store dependency is overridden with the in-memory store and events
go to the no-op publisher, so no database or RabbitMQ is needed.
"""
from datetime import datetime, timezone

import pytest
from fastapi.testclient import TestClient

from src.api.dependencies import get_event_publisher, get_item_store
from src.api.main import app
from src.domain.enums.item_status import ItemKind
from src.infrastructure.messaging.noop_publisher import NoOpEventPublisher
from src.infrastructure.store.in_memory import InMemoryItemStore

T0 = datetime(2026, 1, 1, 9, 0, tzinfo=timezone.utc)
LISTING_URL = "https://www.vinted.fr/items/123"
HEADERS = {"X-Agent-Session": "agent_a_1"}


@pytest.fixture()
def store() -> InMemoryItemStore:
    return InMemoryItemStore()


@pytest.fixture()
def client(store: InMemoryItemStore):
    app.dependency_overrides[get_item_store] = lambda: store
    app.dependency_overrides[get_event_publisher] = NoOpEventPublisher
    yield TestClient(app)
    app.dependency_overrides.clear()


class TestQueue:
    def test_returns_ready_and_processing_items(self, client: TestClient, store: InMemoryItemStore) -> None:
        store.seed(ItemKind.SINGLE, id="a1", title="Jeans", created_at=T0)
        store.seed(ItemKind.BUNDLE, id="b1", name="Summer lot", status="processing", created_at=T0)
        store.seed(ItemKind.SINGLE, id="a2", title="Draft", status="draft", created_at=T0)

        response = client.get("/queue")

        assert response.status_code == 200
        data = response.json()
        assert data["total"] == 2
        assert {item["id"] for item in data["items"]} == {"a1", "b1"}
        assert data["retry_suggested"] is False

    def test_partial_outage_is_reported(self, client: TestClient, store: InMemoryItemStore) -> None:
        store.seed(ItemKind.SINGLE, id="a1", title="Jeans", created_at=T0)
        store.unavailable.add(ItemKind.BUNDLE)

        data = client.get("/queue").json()

        assert data["failed_kinds"] == ["bundle"]
        assert data["total"] == 1


class TestHandoffFlow:
    def test_claim_reference_publish_audit(self, client: TestClient, store: InMemoryItemStore) -> None:
        store.seed(ItemKind.SINGLE, id="a1", title="Jeans", created_at=T0)

        claim = client.post("/items/single/a1/claim", headers=HEADERS)
        assert claim.status_code == 200
        assert claim.json()["item"]["status"] == "processing"
        assert claim.json()["session_id"] == "agent_a_1"

        reference = client.put(
            "/items/single/a1/reference", json={"reference": LISTING_URL}, headers=HEADERS
        )
        assert reference.status_code == 200
        assert reference.json()["external_reference"] == LISTING_URL

        publish = client.post("/items/single/a1/publish", headers=HEADERS)
        assert publish.status_code == 200
        assert publish.json()["from_status"] == "processing"
        assert publish.json()["to_status"] == "published"

        audit = client.get("/items/single/a1/audit")
        assert audit.status_code == 200
        tags = audit.json()["tags"]
        assert [tag["kind"] for tag in tags] == ["AGENT_LOCKED_BY", "AGENT_DONE"]
        assert all(tag["session_id"] == "agent_a_1" for tag in tags)

    def test_second_claim_conflicts(self, client: TestClient, store: InMemoryItemStore) -> None:
        store.seed(ItemKind.BUNDLE, id="b1", name="Lot", created_at=T0)

        first = client.post("/items/bundle/b1/claim", headers=HEADERS)
        second = client.post("/items/bundle/b1/claim", headers={"X-Agent-Session": "agent_b_2"})

        assert first.status_code == 200
        assert second.status_code == 409
        assert second.json()["error"] == "WrongStateError"

    def test_draft(self, client: TestClient, store: InMemoryItemStore) -> None:
        store.seed(
            ItemKind.SINGLE, id="a1", title="Jeans", status="processing", vinted_url=LISTING_URL, created_at=T0
        )

        response = client.post("/items/single/a1/draft", headers=HEADERS)

        assert response.status_code == 200
        assert store.rows[ItemKind.SINGLE]["a1"]["status"] == "vinted_draft"

    def test_mark_error_with_reason(self, client: TestClient, store: InMemoryItemStore) -> None:
        store.seed(ItemKind.SINGLE, id="a1", title="Jeans", created_at=T0)

        response = client.post("/items/single/a1/error", json={"reason": "no photos"}, headers=HEADERS)

        assert response.status_code == 200
        assert response.json()["to_status"] == "error"


class TestErrors:
    def test_missing_session_header(self, client: TestClient, store: InMemoryItemStore) -> None:
        store.seed(ItemKind.SINGLE, id="a1", title="Jeans", created_at=T0)
        assert client.post("/items/single/a1/claim").status_code == 422

    def test_unknown_kind(self, client: TestClient) -> None:
        assert client.post("/items/other/a1/claim", headers=HEADERS).status_code == 422

    def test_unknown_item(self, client: TestClient) -> None:
        response = client.post("/items/single/missing/claim", headers=HEADERS)
        assert response.status_code == 404
        assert client.get("/items/single/missing/audit").status_code == 404

    def test_publish_without_valid_reference(self, client: TestClient, store: InMemoryItemStore) -> None:
        store.seed(
            ItemKind.SINGLE, id="a1", title="Jeans", status="processing", vinted_url="www.x.com", created_at=T0
        )

        response = client.post("/items/single/a1/publish", headers=HEADERS)

        assert response.status_code == 422
        assert response.json()["error"] == "InvalidReferenceError"
        assert store.rows[ItemKind.SINGLE]["a1"]["status"] == "processing"

    def test_finalize_ready_item_conflicts(self, client: TestClient, store: InMemoryItemStore) -> None:
        store.seed(ItemKind.SINGLE, id="a1", title="Jeans", vinted_url=LISTING_URL, created_at=T0)
        assert client.post("/items/single/a1/draft", headers=HEADERS).status_code == 409

    def test_unreadable_row_conflicts(self, client: TestClient, store: InMemoryItemStore) -> None:
        store.seed(ItemKind.SINGLE, id="a1", title="Jeans", status="archived", created_at=T0)
        store.seed(ItemKind.SINGLE, id="a2", title="Coat", created_at="not a timestamp")

        for path in ("/items/single/a1/claim", "/items/single/a2/claim", "/items/single/a1/publish"):
            response = client.post(path, headers=HEADERS)
            assert response.status_code == 409
            assert response.json()["error"] == "WrongStateError"
        assert client.get("/items/single/a1/audit").status_code == 409
        assert store.writes == []

    def test_store_unavailable(self, client: TestClient, store: InMemoryItemStore) -> None:
        store.unavailable.add(ItemKind.SINGLE)
        assert client.post("/items/single/a1/claim", headers=HEADERS).status_code == 503


class TestHealth:
    def test_healthy_without_broker(self, client: TestClient) -> None:
        response = client.get("/health")
        assert response.status_code == 200
        data = response.json()
        assert data["store"] == "connected"
        assert "rabbitmq" in data

    def test_degraded_when_store_down(self, client: TestClient, store: InMemoryItemStore) -> None:
        store.unavailable.update(ItemKind)
        data = client.get("/health").json()
        assert data["status"] == "degraded"
        assert data["store"].startswith("error")
