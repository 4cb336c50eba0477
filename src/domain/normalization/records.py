"""Map raw article (single) and lot (bundle) rows onto the unified WorkItem."""
from collections.abc import Callable, Mapping
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any

from src.domain.entities.work_item import WorkItem
from src.domain.enums.item_status import ItemKind, ItemStatus
from src.domain.normalization.photos import normalize_photos

RawRecord = Mapping[str, Any]

SINGLE_ATTRIBUTE_KEYS: tuple[str, ...] = ("brand", "size", "condition", "color", "material")
BUNDLE_ATTRIBUTE_KEYS: tuple[str, ...] = (
    "category_id",
    "season",
    "original_total_price",
    "discount_percentage",
)


def parse_timestamp(value: Any) -> datetime:
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str):
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    else:
        raise ValueError(f"Unsupported timestamp: {value!r}")
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _optional_timestamp(value: Any) -> datetime | None:
    return parse_timestamp(value) if value is not None else None


def _price(value: Any) -> Decimal | None:
    if value is None:
        return None
    try:
        return Decimal(str(value))
    except InvalidOperation:
        return None


def _common_fields(raw: RawRecord) -> dict[str, Any]:
    return {
        "id": str(raw["id"]),
        "description": raw.get("description"),
        "price": _price(raw.get("price")),
        "photos": tuple(normalize_photos(raw.get("photos"))),
        "status": ItemStatus(raw.get("status") or ItemStatus.DRAFT.value),
        "external_reference": raw.get("vinted_url"),
        "audit_notes": raw.get("sale_notes"),
        "published_at": _optional_timestamp(raw.get("published_at")),
        "created_at": parse_timestamp(raw["created_at"]),
    }


def normalize_single(raw: RawRecord) -> WorkItem:
    return WorkItem(
        kind=ItemKind.SINGLE,
        title=raw.get("title") or "",
        attributes={key: raw.get(key) for key in SINGLE_ATTRIBUTE_KEYS},
        **_common_fields(raw),
    )


def normalize_bundle(raw: RawRecord) -> WorkItem:
    return WorkItem(
        kind=ItemKind.BUNDLE,
        title=raw.get("name") or "",
        attributes={key: raw.get(key) for key in BUNDLE_ATTRIBUTE_KEYS},
        **_common_fields(raw),
    )


NORMALIZERS: dict[ItemKind, Callable[[RawRecord], WorkItem]] = {
    ItemKind.SINGLE: normalize_single,
    ItemKind.BUNDLE: normalize_bundle,
}


def normalize_record(kind: ItemKind, raw: RawRecord) -> WorkItem:
    """Raises KeyError/ValueError for rows missing an id, created_at or a known status."""
    return NORMALIZERS[kind](raw)
