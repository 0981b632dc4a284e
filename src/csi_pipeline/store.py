"""In-process session store and memory log, keyed by customer identity."""
import asyncio
from collections import defaultdict
from typing import Any

from .exceptions import StorageUnavailable
from .models import MemoryRecord, Session


class KeyedStore:
    """Base for stores that serialize mutations per customer identity.

    Each identity gets its own asyncio.Lock, so two items for the same
    customer never interleave, while different customers never contend.
    """

    name = "store"

    def __init__(self):
        self._locks: defaultdict[str, asyncio.Lock] = defaultdict(asyncio.Lock)
        self._closed = False

    def lock_for(self, customer_id: str) -> asyncio.Lock:
        return self._locks[customer_id]

    def _check_open(self) -> None:
        if self._closed:
            raise StorageUnavailable(f"{self.name} is closed")

    async def close(self) -> None:
        self._closed = True

    @property
    def closed(self) -> bool:
        return self._closed


class SessionStore(KeyedStore):
    """Holds one session per customer. Callers only ever receive copies."""

    name = "session store"

    def __init__(self):
        super().__init__()
        self._sessions: dict[str, Session] = {}

    async def get_or_create(self, customer_id: str) -> Session:
        """Return the customer's session, creating it on first reference."""
        self._check_open()
        async with self.lock_for(customer_id):
            session = self._sessions.get(customer_id)
            if session is None:
                session = Session(id=customer_id)
                self._sessions[customer_id] = session
            return session.model_copy()

    async def get(self, customer_id: str) -> Session | None:
        self._check_open()
        async with self.lock_for(customer_id):
            session = self._sessions.get(customer_id)
            return session.model_copy() if session else None

    async def update(
        self,
        customer_id: str,
        patch: dict[str, Any] | None = None,
        increments: dict[str, int] | None = None,
    ) -> Session:
        """Merge fields into the session, creating a minimal one if absent.

        `increments` adds to integer counters inside the same critical
        section, so concurrent updates for one customer are never lost.
        """
        self._check_open()
        async with self.lock_for(customer_id):
            current = self._sessions.get(customer_id) or Session(id=customer_id)
            changes = dict(patch or {})
            changes.pop("id", None)
            for field, amount in (increments or {}).items():
                changes[field] = getattr(current, field) + amount
            updated = Session.model_validate({**current.model_dump(), **changes})
            self._sessions[customer_id] = updated
            return updated.model_copy()

    def __len__(self) -> int:
        return len(self._sessions)


class MemoryLog(KeyedStore):
    """Append-only feedback history per customer."""

    name = "memory log"

    def __init__(self):
        super().__init__()
        self._records: dict[str, list[MemoryRecord]] = {}

    async def append(self, customer_id: str, record: MemoryRecord) -> None:
        self._check_open()
        async with self.lock_for(customer_id):
            self._records.setdefault(customer_id, []).append(record)

    async def read_all(self, customer_id: str) -> list[MemoryRecord]:
        """All records for the customer in append order."""
        self._check_open()
        async with self.lock_for(customer_id):
            return list(self._records.get(customer_id, []))
