from pathlib import Path

import structlog

from src.config import settings
from src.domain.audit.session_identity import new_session_id

logger = structlog.get_logger(__name__)


class FileSessionIdentityStore:
    """Keeps one operator profile's session id in a local file across restarts."""

    def __init__(self, path: Path = settings.session_file) -> None:
        self._path = Path(path)

    def ensure_session_id(self) -> str:
        try:
            existing = self._path.read_text(encoding="utf-8").strip()
        except FileNotFoundError:
            existing = ""
        if existing:
            return existing

        session_id = new_session_id()
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._path.write_text(session_id, encoding="utf-8")
        logger.info("agent_session_created", session_id=session_id, path=str(self._path))
        return session_id
