#!/usr/bin/env python3
"""
Luminance grayscale conversion for RGB pixel buffers.
"""
import numpy as np

import BmpCodec

# ITU-R BT.601 luma weights
LUMA_R = 0.299
LUMA_G = 0.587
LUMA_B = 0.114


def luma(pixels):
    """Return the (height, width) uint8 gray plane without touching `pixels`."""
    try:
        rgb = pixels.astype(np.float64)
        # +0.5 then truncate: round half up for non-negative values
        gray = LUMA_R * rgb[:, :, 0] + LUMA_G * rgb[:, :, 1] + LUMA_B * rgb[:, :, 2] + 0.5
        return np.clip(np.trunc(gray), 0, 255).astype(np.uint8)
    except MemoryError as exc:
        raise BmpCodec.OutOfMemory("cannot allocate grayscale plane") from exc


def apply(pixels):
    """Convert `pixels` to gray in place (R = G = B = luma)."""
    if pixels.size == 0:
        return
    pixels[:, :, :] = luma(pixels)[:, :, np.newaxis]
