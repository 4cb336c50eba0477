"""
Audit tags appended to an item's notes.

Each hand-off event adds one line of the form
``[KIND:session_id:iso_timestamp]``. Notes are append-only: existing content
is never trimmed or rewritten, so the old value is always a prefix of the new
one. Everything here is pure; callers persist the returned notes in the same
write as the status change the tag accompanies.
"""
import re
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum


class AuditTagKind(str, Enum):
    LOCK = "AGENT_LOCKED_BY"
    DONE = "AGENT_DONE"


_TAG_LINE = re.compile(
    r"^\[(?P<kind>[A-Z_]+):(?P<session_id>[^:\]]+):(?P<timestamp>[^\]]+)\]$"
)


@dataclass(frozen=True)
class AuditTag:
    kind: AuditTagKind
    session_id: str
    timestamp: datetime

    def render(self) -> str:
        return f"[{self.kind.value}:{self.session_id}:{self.timestamp.isoformat()}]"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def format_tag(kind: AuditTagKind, session_id: str, now: datetime | None = None) -> str:
    return AuditTag(kind=kind, session_id=session_id, timestamp=now or _utcnow()).render()


def append_line(notes: str | None, line: str) -> str:
    base = notes or ""
    if not base:
        return line
    return f"{base}\n{line}"


def append_tag(
    notes: str | None,
    kind: AuditTagKind,
    session_id: str,
    now: datetime | None = None,
) -> str:
    """Return the notes value with one new tag line appended."""
    return append_line(notes, format_tag(kind, session_id, now))


def parse_tags(notes: str | None) -> list[AuditTag]:
    """Recover the tag history from a notes value; free-text lines are skipped."""
    tags: list[AuditTag] = []
    for line in (notes or "").splitlines():
        match = _TAG_LINE.match(line.strip())
        if match is None:
            continue
        try:
            kind = AuditTagKind(match["kind"])
            timestamp = datetime.fromisoformat(match["timestamp"])
        except ValueError:
            continue
        tags.append(AuditTag(kind=kind, session_id=match["session_id"], timestamp=timestamp))
    return tags
