#!/usr/bin/env python3
"""
Parallel 3x3 convolution using joblib.
Splits the interior rows into blocks; results are identical to ConvSeq.
"""
import logging
import multiprocessing

import numpy as np
from joblib import Parallel, delayed

import BmpCodec
import ConvSeq
import Grayscale

logger = logging.getLogger(__name__)


def process_block(region, kernel, norm, start_i, end_i):
    """Filter one block; `region` holds interior rows [start_i, end_i) plus one row of overlap on each side."""
    return start_i, end_i, ConvSeq.convolve_interior(region, kernel, norm)


def make_blocks(out_h, n_jobs=-1, block_rows=None):
    if block_rows is None:
        n_cores = multiprocessing.cpu_count() if n_jobs == -1 else max(1, n_jobs)
        # Aim for ~4 blocks per core for better load balancing
        block_rows = max(16, -(-out_h // (n_cores * 4)))
    return [(i, min(i + block_rows, out_h)) for i in range(0, out_h, block_rows)]


def convolve_plane(src, kernel, n_jobs=-1, block_rows=None, prefer="processes"):
    kernel = ConvSeq.as_kernel(kernel)
    norm = ConvSeq.normalization_factor(kernel)
    h, w = src.shape
    try:
        dst = src.copy()
    except MemoryError as exc:
        raise BmpCodec.OutOfMemory("cannot allocate convolution plane") from exc
    if h < 3 or w < 3:
        return dst

    blocks = make_blocks(h - 2, n_jobs=n_jobs, block_rows=block_rows)
    logger.debug("convolving %dx%d plane in %d blocks, n_jobs=%d", w, h, len(blocks), n_jobs)

    results = Parallel(n_jobs=n_jobs, prefer=prefer)(
        delayed(process_block)(src[start_i:end_i + 2], kernel, norm, start_i, end_i)
        for start_i, end_i in blocks
    )

    # Assemble results into output plane
    for start_i, end_i, block_result in results:
        dst[start_i + 1:end_i + 1, 1:w-1] = block_result
    return dst


def apply(pixels, kernel, n_jobs=-1, block_rows=None, prefer="processes"):
    if pixels.size == 0:
        return
    try:
        src = pixels[:, :, 0].copy()
    except MemoryError as exc:
        raise BmpCodec.OutOfMemory("cannot allocate intensity plane") from exc
    dst = convolve_plane(src, kernel, n_jobs=n_jobs, block_rows=block_rows, prefer=prefer)
    pixels[:, :, :] = dst[:, :, np.newaxis]


if __name__ == "__main__":
    # Configuration
    input_path = "banana.bmp"
    output_path = "output_parallel.bmp"
    kernel = ConvSeq.KERNEL_ISOTROPIC
    n_jobs = -1  # -1 uses all available cores
    block_rows = None  # None = automatic

    pixels, info = BmpCodec.load_image(input_path)
    print(f"Processing image: {pixels.shape[0]}x{pixels.shape[1]} pixels")

    Grayscale.apply(pixels)
    apply(pixels, kernel, n_jobs=n_jobs, block_rows=block_rows)

    BmpCodec.save_image(output_path, pixels, info)
    print(f"Saved: {output_path}")
