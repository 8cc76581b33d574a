"""In-memory store of invite codes, their client names and usage counts."""

from __future__ import annotations

import asyncio
import threading
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import AsyncIterator, Dict, Mapping, Optional

from .errors import InvalidInput
from .utils import clean_name


@dataclass(slots=True)
class InviteRecord:
    code: str
    assigned_name: Optional[str] = None
    last_known_uses: int = 0


class InviteRegistry:
    """Owns every :class:`InviteRecord` for the lifetime of the process.

    Writes are serialized with a lock. Reads return copies so callers never
    observe a record mid-update. The reconciliation lock is separate: it
    covers one join's fetch/diff/write-back sequence, not the whole store.
    """

    def __init__(self) -> None:
        self._records: Dict[str, InviteRecord] = {}
        self._lock = threading.Lock()
        self._reconcile_lock: Optional[asyncio.Lock] = None

    def __len__(self) -> int:
        return len(self._records)

    def __contains__(self, code: object) -> bool:
        return code in self._records

    def register(self, code: str, name: str) -> InviteRecord:
        code = clean_name(code, field="Invite code")
        name = clean_name(name, field="Client name")
        with self._lock:
            record = self._records.get(code)
            if record is None:
                record = InviteRecord(code=code)
                self._records[code] = record
            record.assigned_name = name
            return InviteRecord(record.code, record.assigned_name, record.last_known_uses)

    def lookup(self, code: str) -> Optional[str]:
        record = self._records.get(code)
        return record.assigned_name if record else None

    def snapshot_usage(self) -> Dict[str, int]:
        with self._lock:
            return {code: record.last_known_uses for code, record in self._records.items()}

    def update_usage(self, code: str, uses: int) -> None:
        if uses < 0:
            raise InvalidInput(f"Invite usage for {code!r} cannot be negative.")
        with self._lock:
            record = self._records.get(code)
            if record is None:
                self._records[code] = InviteRecord(code=code, last_known_uses=uses)
            else:
                record.last_known_uses = uses

    def warm(self, usage: Mapping[str, int]) -> None:
        for code, uses in usage.items():
            self.update_usage(code, uses)

    @asynccontextmanager
    async def reconciliation(self) -> AsyncIterator[None]:
        # Created lazily so the lock binds to the running loop.
        if self._reconcile_lock is None:
            self._reconcile_lock = asyncio.Lock()
        async with self._reconcile_lock:
            yield
