"""
Shared pytest fixtures for the BMP toolkit test suite.

Provides sample pixel buffers and a BMP byte builder that is independent of
BmpCodec, so decoder tests do not rely on the encoder.
"""

import struct

# Add project root to path for imports
import sys
from pathlib import Path

import numpy as np
import pytest

sys.path.insert(0, str(Path(__file__).parent.parent))


def build_bmp(pixels, *, signature=b"BM", bit_count=24, compression=0,
              header_size=40, planes=1, width=None, height=None,
              gap=b"", pad_byte=0, x_ppm=2835, y_ppm=2835):
    """Serialise a top-down RGB buffer as bottom-up BGR BMP bytes."""
    h, w = pixels.shape[0], pixels.shape[1]
    width = w if width is None else width
    height = h if height is None else height
    padding = (4 - (w * 3) % 4) % 4
    offset = 54 + len(gap)

    body = bytearray()
    for y in range(h - 1, -1, -1):
        for x in range(w):
            r, g, b = (int(v) for v in pixels[y, x])
            body += bytes((b, g, r))
        body += bytes([pad_byte]) * padding

    file_header = struct.pack("<2sIHHI", signature, offset + len(body), 0, 0, offset)
    info_header = struct.pack("<IiiHHIIiiII", header_size, width, height, planes,
                              bit_count, compression, 0, x_ppm, y_ppm, 0, 0)
    return file_header + info_header + gap + bytes(body)


@pytest.fixture
def make_bmp():
    return build_bmp


# =============================================================================
# Pixel buffer fixtures
# =============================================================================


@pytest.fixture
def rgb_image() -> np.ndarray:
    """Random 7x5 RGB buffer (odd width exercises row padding)."""
    rng = np.random.default_rng(1234)
    return rng.integers(0, 256, (5, 7, 3), dtype=np.uint8)


@pytest.fixture
def gray_image() -> np.ndarray:
    """Random 9x8 buffer with R = G = B."""
    rng = np.random.default_rng(99)
    plane = rng.integers(0, 256, (8, 9), dtype=np.uint8)
    return np.repeat(plane[:, :, np.newaxis], 3, axis=2)


@pytest.fixture
def gradient_image() -> np.ndarray:
    """Horizontal gray gradient, 16x12."""
    img = np.zeros((12, 16, 3), dtype=np.uint8)
    for x in range(16):
        img[:, x, :] = x * 16
    return img
