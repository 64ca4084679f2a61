"""Tests for cloud sync and cloud proof lookups."""

import asyncio
import json
import time

import httpx
import pytest

from proofsnap.core.sync.cloud_sync import CloudSyncClient, to_cloud_row
from proofsnap.models.enums import CaptureStatus
from proofsnap.models.schemas import CaptureRecord


def _record():
    return CaptureRecord(
        file_uri="/media/a.jpg",
        file_name="a.jpg",
        file_hash="ab" * 32,
        trust_score=92,
        status=CaptureStatus.VERIFIED,
    )


def _sync(handler, key="service-role-key", timeout=15.0):
    return CloudSyncClient(
        "https://abc.supabase.co",
        key,
        timeout=timeout,
        client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
    )


class TestCloudSync:
    def test_row_shape(self):
        row = to_cloud_row(_record())
        assert row["file_type"] == "image"
        assert row["status"] == "verified"
        assert row["trust_grade"] == "F"
        assert row["device_info"] is None

    @pytest.mark.asyncio
    async def test_upload(self):
        seen = {}

        def handler(request):
            seen["url"] = str(request.url)
            seen["headers"] = request.headers
            seen["body"] = json.loads(request.content)
            return httpx.Response(201)

        assert await _sync(handler).upload(_record()) is True
        assert seen["url"] == "https://abc.supabase.co/rest/v1/proofs"
        assert seen["headers"]["apikey"] == "service-role-key"
        assert seen["headers"]["authorization"] == "Bearer service-role-key"
        assert "merge-duplicates" in seen["headers"]["prefer"]
        assert seen["body"]["trust_score"] == 92

    @pytest.mark.asyncio
    async def test_rejected(self):
        assert await _sync(lambda r: httpx.Response(401, json={"message": "bad key"})).upload(_record()) is False

    @pytest.mark.asyncio
    async def test_unreachable(self):
        def handler(request):
            raise httpx.ConnectError("offline")

        assert await _sync(handler).upload(_record()) is False

    @pytest.mark.asyncio
    async def test_not_configured(self):
        calls = []
        sync = _sync(lambda r: calls.append(r) or httpx.Response(201), key="")
        assert sync.configured is False
        assert await sync.upload(_record()) is False
        assert calls == []

    @pytest.mark.asyncio
    async def test_slow_cloud_is_cut_off(self):
        async def handler(request):
            await asyncio.sleep(5)
            return httpx.Response(201)

        start = time.perf_counter()
        assert await _sync(handler, timeout=0.2).upload(_record()) is False
        assert time.perf_counter() - start < 1.5

    @pytest.mark.asyncio
    async def test_trickling_response_is_cut_off(self):
        async def trickle():
            for _ in range(20):
                await asyncio.sleep(0.1)
                yield b" "

        start = time.perf_counter()
        sync = _sync(lambda request: httpx.Response(201, content=trickle()), timeout=0.3)
        assert await sync.upload(_record()) is False
        assert time.perf_counter() - start < 1.5

    @pytest.mark.asyncio
    async def test_thumbnail_upload(self):
        seen = {}

        def handler(request):
            seen["method"] = request.method
            seen["path"] = request.url.path
            seen["headers"] = request.headers
            seen["body"] = request.content
            return httpx.Response(200, json={"Key": "media/thumbnails/rec1.jpg"})

        url = await _sync(handler).upload_thumbnail("rec1", b"\xff\xd8jpeg")
        assert url == "https://abc.supabase.co/storage/v1/object/public/media/thumbnails/rec1.jpg"
        assert seen["method"] == "POST"
        assert seen["path"] == "/storage/v1/object/media/thumbnails/rec1.jpg"
        assert seen["headers"]["x-upsert"] == "true"
        assert seen["headers"]["content-type"] == "image/jpeg"
        assert seen["body"] == b"\xff\xd8jpeg"

    @pytest.mark.asyncio
    async def test_thumbnail_rejected(self):
        sync = _sync(lambda r: httpx.Response(403, json={"message": "bucket not found"}))
        assert await sync.upload_thumbnail("rec1", b"\xff\xd8jpeg") is None


def _row(**overrides):
    row = to_cloud_row(_record())
    row.update(overrides)
    return row


class TestCloudLookups:
    @pytest.mark.asyncio
    async def test_find_by_hash(self):
        seen = {}

        def handler(request):
            seen["method"] = request.method
            seen["params"] = dict(request.url.params)
            return httpx.Response(200, json=[_row(blockchain_tx="0xfeed", image_url="https://cdn/x.jpg")])

        proof = await _sync(handler).find_by_hash("ab" * 32)
        assert seen["method"] == "GET"
        assert seen["params"] == {"select": "*", "file_hash": "eq." + "ab" * 32, "limit": "1"}
        assert proof.file_hash == "ab" * 32
        assert proof.blockchain_tx == "0xfeed"
        assert proof.image_url == "https://cdn/x.jpg"
        assert proof.trust_score == 92

    @pytest.mark.asyncio
    async def test_find_by_tx(self):
        seen = {}

        def handler(request):
            seen["params"] = dict(request.url.params)
            return httpx.Response(200, json=[_row(blockchain_tx="0xfeed")])

        proof = await _sync(handler).find_by_tx("0xfeed")
        assert seen["params"]["blockchain_tx"] == "eq.0xfeed"
        assert proof.status == "verified"

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "response",
        [
            httpx.Response(200, json=[]),
            httpx.Response(200, json={"id": "not-a-list"}),
            httpx.Response(200, json=[{"unexpected": True}]),
            httpx.Response(200, text="<html>"),
            httpx.Response(500, json={"message": "boom"}),
        ],
    )
    async def test_find_missing_or_malformed(self, response):
        assert await _sync(lambda request: response).find_by_hash("ab" * 32) is None

    @pytest.mark.asyncio
    async def test_find_unreachable(self):
        def handler(request):
            raise httpx.ConnectError("offline")

        assert await _sync(handler).find_by_tx("0xfeed") is None

    @pytest.mark.asyncio
    async def test_recent_is_newest_first(self):
        seen = {}

        def handler(request):
            seen["params"] = dict(request.url.params)
            return httpx.Response(200, json=[_row(id="b"), _row(id="a")])

        proofs = await _sync(handler).recent(limit=5)
        assert seen["params"]["order"] == "created_at.desc"
        assert seen["params"]["limit"] == "5"
        assert [p.id for p in proofs] == ["b", "a"]

    @pytest.mark.asyncio
    async def test_stats(self):
        def handler(request):
            assert request.method == "HEAD"
            assert request.headers["prefer"] == "count=exact"
            total = "7" if request.url.params.get("status") == "eq.verified" else "12"
            return httpx.Response(200, headers={"Content-Range": f"0-11/{total}"})

        stats = await _sync(handler).stats()
        assert (stats.total_proofs, stats.total_verified) == (12, 7)

    @pytest.mark.asyncio
    async def test_stats_empty_table(self):
        stats = await _sync(lambda request: httpx.Response(200, headers={"Content-Range": "*/0"})).stats()
        assert (stats.total_proofs, stats.total_verified) == (0, 0)

    @pytest.mark.asyncio
    async def test_stats_unavailable(self):
        assert await _sync(lambda request: httpx.Response(503)).stats() is None
        assert await _sync(lambda request: httpx.Response(200)).stats() is None

    @pytest.mark.asyncio
    async def test_reads_need_configuration(self):
        calls = []
        sync = _sync(lambda r: calls.append(r) or httpx.Response(200, json=[]), key="")
        assert await sync.find_by_hash("ab" * 32) is None
        assert await sync.recent() == []
        assert await sync.stats() is None
        assert await sync.upload_thumbnail("rec1", b"x") is None
        assert calls == []
