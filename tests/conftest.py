"""Shared test fixtures."""

import os

os.environ.setdefault("PROOFSNAP_ENV", "test")
os.environ.setdefault("PROOFSNAP_DATABASE_URL", "memory://")

import pytest  # noqa: E402


@pytest.fixture
def key_store():
    from proofsnap.core.crypto.signer import DeviceIdentity, MemoryKeyStore

    store = MemoryKeyStore()
    DeviceIdentity.generate(store)
    return store


@pytest.fixture
def signer(key_store):
    from proofsnap.core.crypto.signer import Signer

    return Signer(key_store)


@pytest.fixture
def media_file(tmp_path):
    """A 2 MB JPEG-like file (JPEG magic followed by filler)."""
    path = tmp_path / "IMG_0001.jpg"
    path.write_bytes(b"\xff\xd8\xff\xe0" + bytes(range(256)) * 8192)
    return path


@pytest.fixture
def png_file(tmp_path):
    from PIL import Image

    path = tmp_path / "capture.png"
    Image.new("RGB", (320, 240), (40, 120, 200)).save(path, format="PNG")
    return path


def _abi_word(n):
    return format(n, "064x")


def _abi_string(text):
    data = text.encode().hex()
    return _abi_word(len(text.encode())) + data.ljust(-(-len(data) // 64) * 64, "0")


@pytest.fixture
def anchor_call_data():
    """ABI-encode anchorProof(bytes32,string,string) with a dummy selector."""

    def encode(file_hash, signature="cd" * 64, public_key="ef" * 32):
        sig, key = _abi_string(signature), _abi_string(public_key)
        return "0x" + "5e1f2a3b" + file_hash + _abi_word(96) + _abi_word(96 + len(sig) // 2) + sig + key

    return encode
