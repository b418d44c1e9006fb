#!/usr/bin/env python3
"""
Sequential 3x3 convolution over the intensity plane of a pixel buffer.

The red channel is the authoritative intensity source (R = G = B after
grayscale). Border pixels are copied through unchanged; only the interior
is filtered.
"""
import logging

import numpy as np

import BmpCodec
import Grayscale

logger = logging.getLogger(__name__)

# Kernel presets
KERNEL_VERTICAL_EDGE = np.array([[-1,0,1],[-2,0,2],[-1,0,1]], dtype=float)
KERNEL_HORIZONTAL_EDGE = np.array([[-1,-2,-1],[0,0,0],[1,2,1]], dtype=float)
KERNEL_ISOTROPIC = np.array([[0,-1,0],[-1,4,-1],[0,-1,0]], dtype=float)

PRESETS = {
    "vertical-edge": KERNEL_VERTICAL_EDGE,
    "horizontal-edge": KERNEL_HORIZONTAL_EDGE,
    "isotropic": KERNEL_ISOTROPIC,
}


def as_kernel(kernel):
    k = np.asarray(kernel, dtype=float)
    if k.shape != (3, 3):
        raise ValueError(f"kernel must be 3x3, got shape {k.shape}")
    return k


def normalization_factor(kernel):
    """Sum of the weights, or 1.0 for zero-sum (edge/high-pass) kernels."""
    s = float(kernel.sum())
    return 1.0 if s == 0.0 else s


def convolve_interior(src, kernel, norm):
    """Filter every pixel of `src` that has a full 3x3 neighbourhood.

    Returns a (h-2, w-2) uint8 array. No kernel flip: this is correlation,
    out[y, x] = sum(src[y+dy, x+dx] * kernel[dy+1, dx+1]).
    """
    try:
        windows = np.lib.stride_tricks.sliding_window_view(src.astype(np.float64), (3, 3))
        acc = np.einsum('ijkl,kl->ij', windows, kernel)
        return np.clip(acc / norm + 0.5, 0, 255).astype(np.uint8)
    except MemoryError as exc:
        raise BmpCodec.OutOfMemory("cannot allocate convolution scratch planes") from exc


def convolve_plane(src, kernel):
    """Return a filtered copy of the 2D intensity plane `src`."""
    kernel = as_kernel(kernel)
    norm = normalization_factor(kernel)
    h, w = src.shape
    logger.debug("convolving %dx%d plane, norm=%g", w, h, norm)

    try:
        dst = src.copy()
    except MemoryError as exc:
        raise BmpCodec.OutOfMemory("cannot allocate convolution plane") from exc

    # narrower or shorter than 3 leaves no interior
    if h >= 3 and w >= 3:
        dst[1:h-1, 1:w-1] = convolve_interior(src, kernel, norm)
    return dst


def apply(pixels, kernel):
    """Filter `pixels` in place; the result is written to all three channels."""
    if pixels.size == 0:
        return
    try:
        src = pixels[:, :, 0].copy()
    except MemoryError as exc:
        raise BmpCodec.OutOfMemory("cannot allocate intensity plane") from exc
    dst = convolve_plane(src, kernel)
    pixels[:, :, :] = dst[:, :, np.newaxis]


if __name__ == "__main__":
    # Configuration
    input_path = "place.bmp"
    output_path = "output_sequential.bmp"
    kernel = KERNEL_VERTICAL_EDGE

    pixels, info = BmpCodec.load_image(input_path)
    Grayscale.apply(pixels)
    apply(pixels, kernel)

    BmpCodec.save_image(output_path, pixels, info)
    print(f"Saved: {output_path}")
