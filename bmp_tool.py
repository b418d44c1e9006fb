#!/usr/bin/env python3
"""
Command-line front end: load a 24-bpp BMP, convert to grayscale or run a
3x3 convolution, and save the result as another BMP.

    python bmp_tool.py in.bmp out.bmp grayscale
    python bmp_tool.py in.bmp out.bmp convolve --kernel horizontal-edge
    python bmp_tool.py in.bmp out.bmp convolve --kernel custom --weights 1 1 1 1 1 1 1 1 1
"""
import argparse
import logging
import sys
from dataclasses import dataclass
from typing import List, Optional

import numpy as np

import BmpCodec
import ConvParallel
import ConvSeq
import Grayscale

logger = logging.getLogger(__name__)

OPERATIONS = ("grayscale", "convolve")
DEFAULT_KERNEL = "vertical-edge"

# Menu numbers of the interactive tool this replaces
KERNEL_MENU = {
    "1": "vertical-edge",
    "2": "horizontal-edge",
    "3": "isotropic",
    "4": "custom",
}


# Collaborator contract
load_image = BmpCodec.load_image
save_image = BmpCodec.save_image
grayscale = Grayscale.apply
convolve = ConvSeq.apply


def select_kernel(choice, weights: Optional[List[float]] = None) -> np.ndarray:
    """Resolve a preset name, menu number or "custom" to a 3x3 kernel.

    Unknown choices fall back to the vertical-edge preset.
    """
    name = KERNEL_MENU.get(str(choice), str(choice))
    if name == "custom":
        if weights is None or len(weights) != 9:
            raise ValueError("a custom kernel needs exactly 9 weights")
        return np.array(weights, dtype=float).reshape(3, 3)
    if name not in ConvSeq.PRESETS:
        logger.warning("unknown kernel %r, using %s", choice, DEFAULT_KERNEL)
        name = DEFAULT_KERNEL
    return ConvSeq.PRESETS[name].copy()


@dataclass
class Request:
    input_path: str
    output_path: str
    operation: str = "grayscale"
    kernel: Optional[np.ndarray] = None
    n_jobs: int = 1


def run(request: Request) -> np.ndarray:
    """Execute one load -> transform -> save pass and return the pixels."""
    if request.operation not in OPERATIONS:
        raise ValueError(f"unknown operation {request.operation!r}")

    pixels, info = load_image(request.input_path)
    logger.info("loaded %s (%dx%d)", request.input_path, pixels.shape[1], pixels.shape[0])

    # convolution always works on the gray intensity plane
    grayscale(pixels)
    if request.operation == "convolve":
        kernel = request.kernel if request.kernel is not None else select_kernel(DEFAULT_KERNEL)
        if request.n_jobs == 1:
            convolve(pixels, kernel)
        else:
            ConvParallel.apply(pixels, kernel, n_jobs=request.n_jobs)

    save_image(request.output_path, pixels, info)
    logger.info("wrote %s", request.output_path)
    return pixels


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Grayscale or 3x3 convolution for 24-bpp BMP files.")
    parser.add_argument("input", help="input BMP (24 bpp, uncompressed)")
    parser.add_argument("output", help="output BMP")
    parser.add_argument("operation", choices=OPERATIONS)
    parser.add_argument("--kernel", default=DEFAULT_KERNEL,
                        help="vertical-edge, horizontal-edge, isotropic, custom, or menu number 1-4")
    parser.add_argument("--weights", nargs=9, type=float, metavar="W",
                        help="9 row-major weights for --kernel custom")
    parser.add_argument("--jobs", type=int, default=1,
                        help="joblib workers for convolution (-1 = all cores)")
    parser.add_argument("-v", "--verbose", action="store_true")
    return parser.parse_args(argv)


def main(argv=None) -> int:
    args = parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO,
                        format="%(levelname)s %(name)s: %(message)s")

    try:
        kernel = None
        if args.operation == "convolve":
            kernel = select_kernel(args.kernel, args.weights)
        run(Request(args.input, args.output, args.operation, kernel, args.jobs))
    except ValueError as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        return 2
    except BmpCodec.BmpError as exc:
        print(f"ERROR: {type(exc).__name__}: {exc}", file=sys.stderr)
        return 1

    print(f"Saved: {args.output}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
