"""In-memory map from frontend session id to per-session state."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Iterator
from typing import Generic, TypeVar

logger = logging.getLogger(__name__)

StateT = TypeVar("StateT")


class SessionRegistry(Generic[StateT]):
    """Holds at most one state entry per session id.

    Entries are created lazily on first use and removed only by explicit
    cleanup; there is no eviction. Each session id also gets a lock that
    outlives its entry, so operations on one session can be serialized
    across removal and re-creation.
    """

    def __init__(self, kind: str = "session") -> None:
        self._kind = kind
        self._entries: dict[str, StateT] = {}
        self._locks: dict[str, asyncio.Lock] = {}

    def get(self, session_id: str) -> StateT | None:
        return self._entries.get(session_id)

    def lock(self, session_id: str) -> asyncio.Lock:
        lock = self._locks.get(session_id)
        if lock is None:
            lock = self._locks[session_id] = asyncio.Lock()
        return lock

    def get_or_create(self, session_id: str, factory: Callable[[], StateT]) -> StateT:
        state = self._entries.get(session_id)
        if state is None:
            state = factory()
            self._entries[session_id] = state
            logger.debug("Created %s state for %s", self._kind, session_id)
        return state

    def set(self, session_id: str, state: StateT) -> None:
        self._entries[session_id] = state

    def remove(self, session_id: str) -> StateT | None:
        state = self._entries.pop(session_id, None)
        if state is not None:
            logger.debug("Removed %s state for %s", self._kind, session_id)
        return state

    def items(self) -> Iterator[tuple[str, StateT]]:
        return iter(list(self._entries.items()))

    def __contains__(self, session_id: object) -> bool:
        return session_id in self._entries

    def __len__(self) -> int:
        return len(self._entries)
