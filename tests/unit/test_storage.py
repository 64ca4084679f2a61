"""Tests for record stores."""

import pytest

from proofsnap.models.enums import CaptureStatus, MediaKind, TrustGrade
from proofsnap.models.schemas import CaptureRecord


class FakeRedis:
    """Minimal in-memory stand-in for the redis client methods the store uses."""

    def __init__(self):
        self.values = {}
        self.sets = {}

    def get(self, key):
        return self.values.get(key)

    def set(self, key, value):
        self.values[key] = value

    def sadd(self, key, member):
        self.sets.setdefault(key, set()).add(member)

    def srem(self, key, member):
        self.sets.get(key, set()).discard(member)

    def smembers(self, key):
        return set(self.sets.get(key, set()))


def _record(name, created_at, **kwargs):
    return CaptureRecord(file_uri=f"/media/{name}", file_name=name, created_at=created_at, **kwargs)


@pytest.fixture(params=["memory", "sqlite", "redis"])
def store(request, tmp_path):
    if request.param == "memory":
        from proofsnap.core.storage.memory import MemoryRecordStore

        return MemoryRecordStore()
    if request.param == "sqlite":
        from proofsnap.core.storage.sqlite_store import SqliteRecordStore

        return SqliteRecordStore(tmp_path / "records.db")
    from proofsnap.core.storage.redis_store import RedisRecordStore

    return RedisRecordStore(client=FakeRedis(), prefix="test")


class TestRecordStores:
    @pytest.mark.asyncio
    async def test_upsert_is_idempotent(self, store):
        record = _record("a.jpg", "2026-01-01T00:00:00+00:00")
        await store.upsert(record)
        await store.upsert(record)
        assert len(await store.list_all()) == 1
        loaded = await store.get(record.id)
        assert loaded == record

    @pytest.mark.asyncio
    async def test_round_trip_all_fields(self, store):
        record = _record(
            "clip.mp4",
            "2026-01-01T00:00:00+00:00",
            media_kind=MediaKind.VIDEO,
            file_size=2048,
            file_hash="ab" * 32,
            signature="cd" * 64,
            public_key="ef" * 32,
            blockchain_tx="0x" + "12" * 32,
            block_number=9,
            ai_deepfake_score=0.12,
            ai_generated_score=0.05,
            plagiarism_score=3.0,
            ai_simulated=True,
            trust_score=92,
            trust_grade=TrustGrade.A,
            watermark_id="PS-ABC-123456",
            image_url="https://abc.supabase.co/storage/v1/object/public/media/thumbnails/x.jpg",
            device_info="Linux 6",
            location="52.52,13.40",
        )
        await store.upsert(record)
        assert await store.get(record.id) == record

    @pytest.mark.asyncio
    async def test_last_writer_wins(self, store):
        record = _record("a.jpg", "2026-01-01T00:00:00+00:00")
        await store.upsert(record)
        record.transition_to(CaptureStatus.VERIFYING)
        record.trust_score = 70
        await store.upsert(record)
        loaded = await store.get(record.id)
        assert loaded.status == CaptureStatus.VERIFYING
        assert loaded.trust_score == 70
        assert await store.list_by_status(CaptureStatus.PENDING) == []

    @pytest.mark.asyncio
    async def test_list_by_status_newest_first(self, store):
        old = _record("old.jpg", "2026-01-01T00:00:00+00:00", status=CaptureStatus.VERIFIED)
        new = _record("new.jpg", "2026-02-01T00:00:00+00:00", status=CaptureStatus.VERIFIED)
        other = _record("failed.jpg", "2026-03-01T00:00:00+00:00", status=CaptureStatus.FAILED)
        for r in (old, other, new):
            await store.upsert(r)
        verified = await store.list_by_status(CaptureStatus.VERIFIED)
        assert [r.file_name for r in verified] == ["new.jpg", "old.jpg"]

    @pytest.mark.asyncio
    async def test_stats(self, store):
        await store.upsert(_record("a.jpg", "2026-01-01", status=CaptureStatus.VERIFIED, blockchain_tx="0x1"))
        await store.upsert(_record("b.jpg", "2026-01-02", status=CaptureStatus.VERIFIED))
        await store.upsert(_record("c.jpg", "2026-01-03", status=CaptureStatus.FAILED))
        stats = await store.stats()
        assert (stats.total, stats.verified, stats.anchored_count) == (3, 2, 1)

    @pytest.mark.asyncio
    async def test_get_missing(self, store):
        assert await store.get("nope") is None


class TestMemoryStore:
    @pytest.mark.asyncio
    async def test_stored_copy_is_isolated(self):
        from proofsnap.core.storage.memory import MemoryRecordStore

        store = MemoryRecordStore()
        record = _record("a.jpg", "2026-01-01")
        await store.upsert(record)
        record.trust_score = 99
        assert (await store.get(record.id)).trust_score == 0


class TestSqliteStore:
    @pytest.mark.asyncio
    async def test_persists_across_connections(self, tmp_path):
        from proofsnap.core.storage.sqlite_store import SqliteRecordStore

        path = tmp_path / "db" / "records.db"
        first = SqliteRecordStore(path)
        record = _record("a.jpg", "2026-01-01", ai_simulated=True)
        await first.upsert(record)
        await first.close()

        second = SqliteRecordStore(path)
        loaded = await second.get(record.id)
        assert loaded.ai_simulated is True
        await second.close()

    def test_path_from_url(self):
        from proofsnap.core.storage.sqlite_store import path_from_url

        assert path_from_url("sqlite:///./proofsnap.db") == "./proofsnap.db"
        assert path_from_url("sqlite://") == ":memory:"
        with pytest.raises(ValueError):
            path_from_url("postgres://x")


class TestStoreFactory:
    def test_open_store(self, tmp_path):
        from proofsnap.core.storage.factory import open_store
        from proofsnap.core.storage.memory import MemoryRecordStore
        from proofsnap.core.storage.sqlite_store import SqliteRecordStore

        assert isinstance(open_store("memory://"), MemoryRecordStore)
        assert isinstance(open_store(f"sqlite:///{tmp_path}/x.db"), SqliteRecordStore)
        with pytest.raises(ValueError):
            open_store("mysql://localhost/db")

    @pytest.mark.asyncio
    async def test_redis_errors_become_storage_errors(self):
        from proofsnap.core.exceptions import StorageError
        from proofsnap.core.storage.redis_store import RedisRecordStore

        class DownRedis(FakeRedis):
            def get(self, key):
                raise ConnectionError("redis down")

        store = RedisRecordStore(client=DownRedis())
        with pytest.raises(StorageError):
            await store.get("abc")
