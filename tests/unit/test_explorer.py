"""Tests for block explorer lookups and anchoring call-data decoding."""

import asyncio

import httpx
import pytest

from proofsnap.core.anchor.explorer import ExplorerClient, decode_proof_input

DIGEST = "ab" * 32
SIG = "cd" * 64
KEY = "ef" * 32
TX = "0x" + "77" * 32


def _word(n):
    return format(n, "064x")


def _string(text):
    data = text.encode().hex()
    return _word(len(text.encode())) + data.ljust(-(-len(data) // 64) * 64, "0")


def _explorer(handler, timeout=15.0):
    return ExplorerClient(
        "https://explorer.test",
        timeout=timeout,
        client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
    )


class TestDecodeProofInput:
    def test_decodes_arguments(self, anchor_call_data):
        decoded = decode_proof_input(anchor_call_data(DIGEST, SIG, KEY))
        assert decoded.file_hash == "0x" + DIGEST
        assert decoded.signature == SIG
        assert decoded.public_key == KEY

    def test_empty_strings(self, anchor_call_data):
        decoded = decode_proof_input(anchor_call_data(DIGEST, signature="", public_key=""))
        assert (decoded.signature, decoded.public_key) == ("", "")

    def test_without_prefix(self, anchor_call_data):
        assert decode_proof_input(anchor_call_data(DIGEST, SIG, KEY)[2:]).signature == SIG

    def test_truncated(self, anchor_call_data):
        assert decode_proof_input(anchor_call_data(DIGEST, SIG, KEY)[:-40]) is None

    @pytest.mark.parametrize(
        "raw",
        [
            "",
            "0x",
            "0xa9059cbb",
            "0x5e1f2a3b" + DIGEST + _word(95) + _word(200),
            "0x5e1f2a3b" + DIGEST + _word(96) + _word(10_000) + _string("x"),
            "0x5e1f2a3b" + "zz" * 32 + _word(96) + _word(160) + _string("a") + _string("b"),
            "0x5e1f2a3b" + DIGEST + _word(96) + _word(160) + _word(1) + "ff".ljust(64, "0") + _string("b"),
        ],
    )
    def test_rejects_foreign_or_broken_input(self, raw):
        assert decode_proof_input(raw) is None


class TestExplorerClient:
    @pytest.mark.asyncio
    async def test_fetch_transaction(self, anchor_call_data):
        seen = {}

        def handler(request):
            seen["path"] = request.url.path
            seen["accept"] = request.headers["accept"]
            return httpx.Response(
                200,
                json={
                    "hash": TX,
                    "from": {"hash": "0xsender"},
                    "to": {"hash": "0xregistry"},
                    "block_number": 1234,
                    "timestamp": "2026-10-01T12:00:00.000000Z",
                    "status": "ok",
                    "value": "0",
                    "fee": {"type": "actual", "value": "21000"},
                    "raw_input": anchor_call_data(DIGEST, SIG, KEY),
                },
            )

        tx = await _explorer(handler).fetch_transaction(TX)
        assert seen["path"] == f"/api/v2/transactions/{TX}"
        assert seen["accept"] == "application/json"
        assert tx.found
        assert (tx.sender, tx.recipient, tx.block_ref) == ("0xsender", "0xregistry", 1234)
        assert tx.status == "ok"
        assert tx.fee == "21000"
        assert tx.decoded_proof.file_hash == "0x" + DIGEST

    @pytest.mark.asyncio
    async def test_legacy_field_names(self):
        def handler(request):
            return httpx.Response(200, json={"hash": TX, "from": "0xa", "to": "0xb", "block": "9", "input": "0x"})

        tx = await _explorer(handler).fetch_transaction(TX)
        assert tx.found
        assert (tx.sender, tx.recipient, tx.block_ref) == ("0xa", "0xb", 9)
        assert tx.decoded_proof is None

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "response",
        [
            httpx.Response(404, json={"message": "Not found"}),
            httpx.Response(200, text="<html>"),
            httpx.Response(200, json=["unexpected"]),
            httpx.Response(200, json={"hash": TX, "block_number": "latest"}),
        ],
    )
    async def test_not_found_or_malformed(self, response):
        tx = await _explorer(lambda request: response).fetch_transaction(TX)
        assert tx.found is False

    @pytest.mark.asyncio
    async def test_unreachable(self):
        def handler(request):
            raise httpx.ConnectError("offline")

        assert (await _explorer(handler).fetch_transaction(TX)).found is False

    @pytest.mark.asyncio
    async def test_slow_explorer_is_cut_off(self):
        async def handler(request):
            await asyncio.sleep(5)
            return httpx.Response(200, json={"hash": TX})

        assert (await _explorer(handler, timeout=0.2).fetch_transaction(TX)).found is False
