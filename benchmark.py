#!/usr/bin/env python3
"""
Benchmark script to compare sequential vs parallel 3x3 convolution.
"""
import json
import logging
import multiprocessing
import sys
import time

import numpy as np
from PIL import Image

import BmpCodec
import ConvParallel
import ConvSeq
import Grayscale

logger = logging.getLogger(__name__)


def make_test_image(size, seed=0):
    """Random RGB pixel buffer of size x size."""
    rng = np.random.default_rng(seed)
    return rng.integers(0, 256, (size, size, 3), dtype=np.uint8)


def load_rgb(path):
    """Load any image Pillow understands as an RGB pixel buffer."""
    if str(path).lower().endswith(".bmp"):
        try:
            return BmpCodec.load_image(path)[0]
        except BmpCodec.BmpError as exc:
            logger.debug("BmpCodec cannot read %s (%s), falling back to Pillow", path, exc)
    img = Image.open(path).convert("RGB")
    return np.array(img)


def _time_runs(fn, gray, n_runs):
    times = []
    result = None
    for i in range(n_runs):
        pixels = gray.copy()
        start = time.perf_counter()
        fn(pixels)
        elapsed = time.perf_counter() - start
        times.append(elapsed)
        result = pixels
        print(f"Run {i+1}: {elapsed:.4f} seconds")
    return result, times


def benchmark_convolution(pixels, kernel, n_runs=3, n_jobs=-1, prefer="processes"):
    """Run both engines on the grayscaled image and compare."""
    gray = pixels.copy()
    Grayscale.apply(gray)

    print(f"Image size: {gray.shape[0]}x{gray.shape[1]} pixels")
    print(f"Number of runs: {n_runs}")
    print(f"CPU cores: {multiprocessing.cpu_count()}")
    print("=" * 70)

    print("\n1. SEQUENTIAL VERSION")
    print("-" * 70)
    result_seq, times_seq = _time_runs(lambda p: ConvSeq.apply(p, kernel), gray, n_runs)
    avg_seq = float(np.mean(times_seq))
    print(f"Average: {avg_seq:.4f} ± {np.std(times_seq):.4f} seconds")

    print("\n2. PARALLEL VERSION (row blocks)")
    print("-" * 70)
    result_par, times_par = _time_runs(
        lambda p: ConvParallel.apply(p, kernel, n_jobs=n_jobs, prefer=prefer), gray, n_runs)
    avg_par = float(np.mean(times_par))
    print(f"Average: {avg_par:.4f} ± {np.std(times_par):.4f} seconds")

    speedup = avg_seq / avg_par if avg_par > 0 else float("inf")
    print(f"Speedup: {speedup:.2f}x")

    identical = bool(np.array_equal(result_seq, result_par))
    print("\n" + "=" * 70)
    print("VERIFICATION")
    print("=" * 70)
    if identical:
        print("✓ All results are identical!")
    else:
        diff = np.abs(result_seq.astype(int) - result_par.astype(int)).max()
        print(f"⚠ Results differ (max difference {diff})")

    return {
        "image_size": [int(gray.shape[0]), int(gray.shape[1])],
        "n_jobs": n_jobs,
        "results": [
            {"py_module": "ConvSeq", "python_seconds": avg_seq, "runs": times_seq},
            {"py_module": "ConvParallel", "python_seconds": avg_par, "runs": times_par},
        ],
        "speedup": speedup,
        "identical": identical,
    }


def save_results(results, json_path="benchmark_results.json"):
    with open(json_path, "w") as f:
        json.dump(results, f, indent=2)


if __name__ == "__main__":
    # Configuration
    image_size = 1024
    kernel = ConvSeq.KERNEL_ISOTROPIC
    n_runs = 3
    n_jobs = -1

    print("=" * 70)
    print("CONVOLUTION BENCHMARK: Sequential vs Parallel Versions")
    print("=" * 70)

    if len(sys.argv) > 1:
        pixels = load_rgb(sys.argv[1])
    else:
        pixels = make_test_image(image_size)

    results = benchmark_convolution(pixels, kernel, n_runs=n_runs, n_jobs=n_jobs)
    save_results(results)
    print("\n✓ Results saved to benchmark_results.json")
