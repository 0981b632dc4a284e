"""
Unit tests for SessionStore and MemoryLog.
"""

import asyncio

import pytest

from csi_pipeline.exceptions import StorageUnavailable
from csi_pipeline.models import MemoryRecord, SentimentResult


def record(text: str, score: int = 0) -> MemoryRecord:
    return MemoryRecord(text=text, sentiment=SentimentResult.from_score(score))


class TestSessionStore:
    """Session lookup-or-create and merge updates."""

    @pytest.mark.asyncio
    async def test_get_or_create_is_idempotent(self, sessions):
        first = await sessions.get_or_create("c1")
        second = await sessions.get_or_create("c1")

        assert first.id == second.id == "c1"
        assert first.created_at == second.created_at
        assert len(sessions) == 1

    @pytest.mark.asyncio
    async def test_new_session_defaults(self, sessions):
        session = await sessions.get_or_create("c1")

        assert session.past_escalations == 0
        assert session.customer_name is None
        assert session.last_processed is None

    @pytest.mark.asyncio
    async def test_returned_sessions_are_copies(self, sessions):
        """Mutating a returned session does not change the stored record."""
        session = await sessions.get_or_create("c1")
        session.past_escalations = 99

        stored = await sessions.get("c1")
        assert stored.past_escalations == 0

    @pytest.mark.asyncio
    async def test_get_missing_returns_none(self, sessions):
        assert await sessions.get("nobody") is None

    @pytest.mark.asyncio
    async def test_update_merges_fields(self, sessions):
        created = await sessions.get_or_create("c1")
        updated = await sessions.update("c1", {"customer_name": "Dana"})

        assert updated.customer_name == "Dana"
        assert updated.created_at == created.created_at

    @pytest.mark.asyncio
    async def test_update_creates_minimal_record(self, sessions):
        updated = await sessions.update("c2", {"customer_name": "Lee"})

        assert updated.id == "c2"
        assert (await sessions.get("c2")).customer_name == "Lee"

    @pytest.mark.asyncio
    async def test_update_cannot_change_identity(self, sessions):
        updated = await sessions.update("c1", {"id": "someone-else"})
        assert updated.id == "c1"

    @pytest.mark.asyncio
    async def test_concurrent_increments_are_not_lost(self, sessions):
        await asyncio.gather(
            *[sessions.update("c1", increments={"past_escalations": 1}) for _ in range(50)]
        )
        assert (await sessions.get("c1")).past_escalations == 50

    @pytest.mark.asyncio
    async def test_locks_are_per_identity(self, sessions):
        assert sessions.lock_for("a") is sessions.lock_for("a")
        assert sessions.lock_for("a") is not sessions.lock_for("b")

    @pytest.mark.asyncio
    async def test_other_identities_do_not_contend(self, sessions):
        """A held lock for one customer does not block another."""
        async with sessions.lock_for("a"):
            session = await asyncio.wait_for(sessions.get_or_create("b"), timeout=1)
        assert session.id == "b"

    @pytest.mark.asyncio
    async def test_closed_store_raises(self, sessions):
        await sessions.close()

        assert sessions.closed
        with pytest.raises(StorageUnavailable):
            await sessions.get_or_create("c1")
        with pytest.raises(StorageUnavailable):
            await sessions.update("c1", {})


class TestMemoryLog:
    """Append-only history per customer."""

    @pytest.mark.asyncio
    async def test_read_all_empty(self, memory):
        assert await memory.read_all("c1") == []

    @pytest.mark.asyncio
    async def test_append_preserves_order(self, memory):
        for i in range(5):
            await memory.append("c1", record(f"text {i}"))

        records = await memory.read_all("c1")
        assert [r.text for r in records] == [f"text {i}" for i in range(5)]

    @pytest.mark.asyncio
    async def test_duplicates_are_kept(self, memory):
        await memory.append("c1", record("same"))
        await memory.append("c1", record("same"))

        assert len(await memory.read_all("c1")) == 2

    @pytest.mark.asyncio
    async def test_read_all_returns_a_copy(self, memory):
        await memory.append("c1", record("one"))
        records = await memory.read_all("c1")
        records.clear()

        assert len(await memory.read_all("c1")) == 1

    @pytest.mark.asyncio
    async def test_records_are_immutable(self, memory):
        await memory.append("c1", record("one"))
        stored = (await memory.read_all("c1"))[0]

        with pytest.raises(Exception):
            stored.text = "changed"

    @pytest.mark.asyncio
    async def test_closed_log_raises(self, memory):
        await memory.close()

        with pytest.raises(StorageUnavailable):
            await memory.append("c1", record("one"))
        with pytest.raises(StorageUnavailable):
            await memory.read_all("c1")
