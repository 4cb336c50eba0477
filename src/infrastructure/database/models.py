"""
SQLAlchemy ORM models for the two existing listing tables.

The preparation pipeline owns these tables; the hand-off only reads them and
writes `status`, `sale_notes`, `vinted_url` and `published_at`. Rows are
mapped to WorkItem by the normalizer, never directly.
"""
import uuid
from datetime import datetime
from typing import Any

from sqlalchemy import JSON, DateTime, Integer, Numeric, String, Text, Uuid, func
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from src.domain.enums.item_status import ItemKind
from src.infrastructure.database.connection import Base

_photos_type = JSON().with_variant(JSONB(), "postgresql")


class ArticleModel(Base):
    __tablename__ = "articles"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID | None] = mapped_column(Uuid, nullable=True, index=True)

    title: Mapped[str] = mapped_column(String(512), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    price: Mapped[float | None] = mapped_column(Numeric(10, 2), nullable=True)
    brand: Mapped[str | None] = mapped_column(String(256), nullable=True)
    size: Mapped[str | None] = mapped_column(String(64), nullable=True)
    condition: Mapped[str | None] = mapped_column(String(128), nullable=True)
    color: Mapped[str | None] = mapped_column(String(128), nullable=True)
    material: Mapped[str | None] = mapped_column(String(128), nullable=True)
    photos: Mapped[Any] = mapped_column(_photos_type, nullable=True)

    # Hand-off fields
    status: Mapped[str] = mapped_column(String(32), nullable=False, default="draft", index=True)
    sale_notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    vinted_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    published_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )


class LotModel(Base):
    __tablename__ = "lots"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID | None] = mapped_column(Uuid, nullable=True, index=True)

    name: Mapped[str] = mapped_column(String(512), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    category_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    season: Mapped[str | None] = mapped_column(String(64), nullable=True)
    price: Mapped[float | None] = mapped_column(Numeric(10, 2), nullable=True)
    original_total_price: Mapped[float | None] = mapped_column(Numeric(10, 2), nullable=True)
    discount_percentage: Mapped[float | None] = mapped_column(Numeric(5, 2), nullable=True)
    photos: Mapped[Any] = mapped_column(_photos_type, nullable=True)

    # Hand-off fields
    status: Mapped[str] = mapped_column(String(32), nullable=False, default="draft", index=True)
    sale_notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    vinted_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    published_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )


MODELS_BY_KIND: dict[ItemKind, type[ArticleModel] | type[LotModel]] = {
    ItemKind.SINGLE: ArticleModel,
    ItemKind.BUNDLE: LotModel,
}
