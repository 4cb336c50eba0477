from collections.abc import Awaitable, Callable, Iterator, Mapping
from contextlib import contextmanager
from typing import Any

import structlog

logger = structlog.get_logger(__name__)

Action = Callable[[], Awaitable[Any]]

# Multi-character names the host may send for non-printable keys
NAMED_KEYS: frozenset[str] = frozenset({"arrowdown", "arrowup"})


class CommandTable:
    """
    Explicit key -> action table owned by one workflow controller.

    The table is inert until attached, and while the host reports that a
    text input has focus. Keys are case-insensitive single characters plus
    the named arrow keys.
    """

    def __init__(self, bindings: Mapping[str, Action]) -> None:
        table: dict[str, Action] = {}
        for key, action in bindings.items():
            normalized = key.lower()
            if len(normalized) != 1 and normalized not in NAMED_KEYS:
                raise ValueError(f"Unsupported shortcut key: {key!r}")
            if normalized in table:
                raise ValueError(f"Shortcut key bound twice: {key!r}")
            table[normalized] = action
        self._bindings = table
        self._attached = False

    @property
    def keys(self) -> tuple[str, ...]:
        return tuple(self._bindings)

    @property
    def is_attached(self) -> bool:
        return self._attached

    def attach(self) -> None:
        self._attached = True
        logger.debug("command_table_attached", keys=list(self._bindings))

    def detach(self) -> None:
        self._attached = False
        logger.debug("command_table_detached")

    @contextmanager
    def attached(self) -> Iterator["CommandTable"]:
        self.attach()
        try:
            yield self
        finally:
            self.detach()

    async def dispatch(self, key: str, *, typing: bool = False) -> Any:
        """Run the action bound to `key`; returns None when nothing ran."""
        if not self._attached or typing:
            return None
        action = self._bindings.get(key.lower())
        if action is None:
            return None
        return await action()
