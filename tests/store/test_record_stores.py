"""Tests for the record stores (in-memory and SQLite) and RoomRepository."""

import pytest

from echoroom.errors import PersistenceError, RoomNotFoundError
from echoroom.moderation.models import MODERATOR_ID, Participant
from echoroom.moderation.repository import RoomRepository
from echoroom.store.base import StoreError
from echoroom.store.memory import InMemoryStore
from echoroom.store.sqlite import SQLiteStore

T0 = 1_700_000_000.0


class FakeClock:
    def __init__(self, now: float = T0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture(params=["memory", "sqlite"])
def store(request, tmp_path):
    if request.param == "memory":
        return InMemoryStore()
    return SQLiteStore(tmp_path / "echoroom.db")


# ── RecordStore contract ─────────────────────────────────────────────────


class TestRecordStore:
    @pytest.mark.asyncio
    async def test_insert_assigns_id(self, store):
        rec = await store.insert("sessions", {"category": "Calm", "created_at": "2024-01-01T00:00:00+00:00"})
        assert rec["id"]
        assert rec["category"] == "Calm"

    @pytest.mark.asyncio
    async def test_insert_keeps_given_id(self, store):
        rec = await store.insert("sessions", {"id": "room-1", "created_at": "2024-01-01T00:00:00+00:00"})
        assert rec["id"] == "room-1"

    @pytest.mark.asyncio
    async def test_select_filters_order_limit(self, store):
        for i, ts in enumerate(["2024-01-01T00:00:01+00:00", "2024-01-01T00:00:03+00:00", "2024-01-01T00:00:02+00:00"]):
            await store.insert("messages", {
                "session_id": "r1", "sender": "ana", "user_id": "u1", "text": f"m{i}", "timestamp": ts,
            })
        await store.insert("messages", {
            "session_id": "r2", "sender": "ben", "user_id": "u2", "text": "other", "timestamp": "2024-01-01T00:00:09+00:00",
        })

        rows = await store.select("messages", {"session_id": "r1"}, order_by="timestamp", descending=True, limit=2)
        assert [r["text"] for r in rows] == ["m1", "m2"]

        asc = await store.select("messages", {"session_id": "r1"}, order_by="timestamp")
        assert [r["text"] for r in asc] == ["m0", "m2", "m1"]

    @pytest.mark.asyncio
    async def test_update_and_delete(self, store):
        await store.insert("participants", {
            "user_id": "u1", "session_id": "r1", "user_name": "ana",
            "is_speaking": False, "is_muted": False, "joined_at": "2024-01-01T00:00:00+00:00",
        })
        updated = await store.update("participants", {"user_id": "u1", "session_id": "r1"}, {"is_muted": True})
        assert len(updated) == 1
        assert updated[0]["is_muted"] is True

        assert await store.update("participants", {"user_id": "nobody"}, {"is_muted": True}) == []
        assert await store.delete("participants", {"user_id": "u1", "session_id": "r1"}) == 1
        assert await store.select("participants", {"session_id": "r1"}) == []

    @pytest.mark.asyncio
    async def test_store_error_is_a_persistence_error(self, store):
        assert issubclass(StoreError, PersistenceError)


class TestSQLiteStore:
    @pytest.mark.asyncio
    async def test_unknown_column_rejected(self, tmp_path):
        s = SQLiteStore(tmp_path / "db.sqlite")
        with pytest.raises(StoreError):
            await s.select("messages", {"nope; DROP TABLE messages": 1})
        await s.close()

    @pytest.mark.asyncio
    async def test_unknown_table_rejected(self, tmp_path):
        s = SQLiteStore(tmp_path / "db.sqlite")
        with pytest.raises(StoreError):
            await s.insert("users", {"name": "x"})
        await s.close()

    @pytest.mark.asyncio
    async def test_unique_participant_violation(self, tmp_path):
        s = SQLiteStore(tmp_path / "db.sqlite")
        rec = {"user_id": "u1", "session_id": "r1", "user_name": "ana"}
        await s.insert("participants", rec)
        with pytest.raises(StoreError):
            await s.insert("participants", rec)
        await s.close()

    @pytest.mark.asyncio
    async def test_data_survives_reopen(self, tmp_path):
        path = tmp_path / "db.sqlite"
        s = SQLiteStore(path)
        await s.insert("sessions", {"id": "room-1", "created_at": "2024-01-01T00:00:00+00:00"})
        await s.close()

        reopened = SQLiteStore(path)
        rows = await reopened.select("sessions", {"id": "room-1"})
        assert len(rows) == 1
        await reopened.close()


# ── RoomRepository ───────────────────────────────────────────────────────


class TestRoomRepository:
    @pytest.mark.asyncio
    async def test_room_roundtrip(self, store):
        repo = RoomRepository(store, clock=FakeClock())
        created = await repo.create_room("Books", room_id="room-1")
        room = await repo.get_room("room-1")
        assert room.id == "room-1"
        assert room.category == "Books"
        assert room.created_at == created.created_at == T0

    @pytest.mark.asyncio
    async def test_missing_room(self, store):
        repo = RoomRepository(store)
        with pytest.raises(RoomNotFoundError) as exc:
            await repo.get_room("ghost")
        assert exc.value.room_id == "ghost"

    @pytest.mark.asyncio
    async def test_recent_messages_newest_first(self, store):
        clock = FakeClock()
        repo = RoomRepository(store, clock=clock)
        for text in ["a", "b", "c"]:
            clock.advance(1)
            await repo.save_message("room-1", "ana", "u1", text)
        clock.advance(1)
        await repo.save_message("room-1", "moderator", MODERATOR_ID, "hi all")

        recent = await repo.recent_messages("room-1", 3)
        assert [m.text for m in recent] == ["hi all", "c", "b"]
        assert recent[0].is_moderator
        assert recent[1].timestamp == T0 + 3

    @pytest.mark.asyncio
    async def test_participants(self, store):
        clock = FakeClock()
        repo = RoomRepository(store, clock=clock)
        await repo.upsert_participant(Participant(user_id="u1", session_id="room-1", user_name="ana"))
        clock.advance(1)
        await repo.upsert_participant(Participant(user_id="u2", session_id="room-1", user_name="ben"))
        await repo.upsert_participant(Participant(user_id="u1", session_id="room-1", user_name="ana", mood="joyful"))

        rows = await repo.list_participants("room-1")
        assert [r["user_id"] for r in rows] == ["u1", "u2"]
        assert rows[0]["mood"] == "joyful"
        assert await repo.count_participants("room-1") == 2

        assert await repo.update_voice_status("room-1", "u2", True, True)
        rows = await repo.list_participants("room-1")
        assert rows[1]["is_speaking"] is True and rows[1]["is_muted"] is True

        assert await repo.remove_participant("room-1", "u1")
        assert await repo.count_participants("room-1") == 1


class TestRepositoryFailures:
    @pytest.mark.asyncio
    async def test_write_failures_become_none(self):
        class BrokenStore(InMemoryStore):
            async def insert(self, table, record):
                raise StoreError("disk full")

            async def select(self, *args, **kwargs):
                raise StoreError("disk full")

            async def delete(self, table, filters):
                raise StoreError("disk full")

        repo = RoomRepository(BrokenStore())
        assert await repo.save_message("room-1", "ana", "u1", "hi") is None
        assert await repo.recent_messages("room-1", 5) is None
        assert await repo.list_participants("room-1") is None
        assert await repo.count_participants("room-1") is None
        assert await repo.remove_participant("room-1", "u1") is False
        with pytest.raises(StoreError):
            await repo.get_room("room-1")
