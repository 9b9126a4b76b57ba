"""Asynchronous prompt queue feeding a long-lived backend session."""

from __future__ import annotations

import asyncio
import logging
from collections import deque

logger = logging.getLogger(__name__)


class PromptChannel:
    """Single-consumer async iterator of user-message frames.

    ``send`` enqueues a prompt and wakes the consumer. ``terminate`` makes
    iteration stop at the next step; prompts still queued at that point
    are dropped. Empty prompts are skipped.
    """

    def __init__(self, session_id: str) -> None:
        self._session_id = session_id
        self._queue: deque[str] = deque()
        self._waiter: asyncio.Future | None = None
        self._terminated = False

    @property
    def terminated(self) -> bool:
        return self._terminated

    def send(self, prompt: str) -> bool:
        if self._terminated:
            logger.warning("Prompt for %s dropped: channel terminated", self._session_id)
            return False
        self._queue.append(prompt)
        self._wake()
        return True

    def terminate(self) -> None:
        self._terminated = True
        self._wake()

    def _wake(self) -> None:
        if self._waiter is not None and not self._waiter.done():
            self._waiter.set_result(None)

    def _frame(self, prompt: str) -> dict:
        return {
            "type": "user",
            "message": {"role": "user", "content": prompt},
            "parent_tool_use_id": None,
            "session_id": self._session_id,
        }

    def __aiter__(self) -> PromptChannel:
        return self

    async def __anext__(self) -> dict:
        while True:
            if self._terminated:
                raise StopAsyncIteration
            if self._queue:
                prompt = self._queue.popleft()
                if not prompt:
                    continue
                return self._frame(prompt)
            self._waiter = asyncio.get_running_loop().create_future()
            try:
                await self._waiter
            finally:
                self._waiter = None
