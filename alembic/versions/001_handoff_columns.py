"""hand-off columns on articles and lots

Revision ID: 001_handoff_columns
Revises:
Create Date: 2026-10-19 00:00:00.000000
"""
from typing import Sequence, Union

from alembic import op

revision: str = "001_handoff_columns"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

# Both tables are created by the preparation pipeline; this revision only
# adds what the hand-off reads and writes.
TABLES = ("articles", "lots")

STATUSES = (
    "draft",
    "ready",
    "scheduled",
    "processing",
    "vinted_draft",
    "published",
    "sold",
    "vendu_en_lot",
    "reserved",
    "error",
)


def upgrade() -> None:
    allowed = ", ".join(f"'{status}'" for status in STATUSES)
    for table in TABLES:
        op.execute(f"ALTER TABLE {table} ADD COLUMN IF NOT EXISTS sale_notes TEXT")
        op.execute(f"ALTER TABLE {table} ADD COLUMN IF NOT EXISTS vinted_url TEXT")
        op.execute(
            f"ALTER TABLE {table} ADD COLUMN IF NOT EXISTS published_at TIMESTAMP WITH TIME ZONE"
        )
        op.create_check_constraint(f"ck_{table}_status", table, f"status IN ({allowed})")
        # Queue fetch: WHERE status IN (...) ORDER BY created_at
        op.create_index(f"ix_{table}_status_created_at", table, ["status", "created_at"])


def downgrade() -> None:
    # The columns may predate this revision, so only our own objects are dropped.
    for table in TABLES:
        op.drop_index(f"ix_{table}_status_created_at", table_name=table)
        op.drop_constraint(f"ck_{table}_status", table, type_="check")
