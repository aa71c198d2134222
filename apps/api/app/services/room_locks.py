"""In-process per-room locks serialising booking mutations."""
from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import Dict


@dataclass
class _LockEntry:
    lock: asyncio.Lock = field(default_factory=asyncio.Lock)
    holders: int = 0


class RoomLockRegistry:
    """One asyncio lock per room id, evicted once nobody holds or waits on it.

    This only orders requests inside one worker; the row lock taken on the room
    inside the database transaction orders requests across workers.
    """

    def __init__(self) -> None:
        self._locks: Dict[str, _LockEntry] = {}

    @asynccontextmanager
    async def hold(self, room_id: str) -> AsyncIterator[None]:
        entry = self._locks.get(room_id)
        if entry is None:
            entry = _LockEntry()
            self._locks[room_id] = entry
        entry.holders += 1
        try:
            async with entry.lock:
                yield
        finally:
            entry.holders -= 1
            if entry.holders == 0:
                self._locks.pop(room_id, None)

    def __len__(self) -> int:
        return len(self._locks)


room_locks = RoomLockRegistry()
