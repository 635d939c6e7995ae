from __future__ import annotations

import io
import struct
import zlib

import pytest
from PIL import Image


def make_png(width: int = 640, height: int = 480) -> bytes:
    buffer = io.BytesIO()
    Image.new("RGB", (width, height), color=(200, 120, 40)).save(buffer, format="PNG")
    return buffer.getvalue()


def png_header_only(width: int, height: int) -> bytes:
    """A PNG whose header declares the given size but carries no pixel data."""

    def chunk(kind: bytes, data: bytes) -> bytes:
        return struct.pack(">I", len(data)) + kind + data + struct.pack(">I", zlib.crc32(kind + data))

    header = struct.pack(">IIBBBBB", width, height, 8, 2, 0, 0, 0)
    return b"\x89PNG\r\n\x1a\n" + chunk(b"IHDR", header) + chunk(b"IDAT", b"") + chunk(b"IEND", b"")


class FakeClock:
    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def png_bytes() -> bytes:
    return make_png()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def png_factory():
    return make_png


@pytest.fixture
def oversized_png() -> bytes:
    # 20000x20000 exceeds twice Pillow's default pixel limit.
    return png_header_only(20000, 20000)
