#!/usr/bin/env python3
"""
Uncompressed 24-bit BMP reader/writer.

Pixel buffers are numpy uint8 arrays of shape (height, width, 3) holding
red, green, blue, with row 0 as the visual top row. The file stores rows
bottom-to-top in blue, green, red order; decode and encode flip both.
"""
import io
import logging
import struct
from dataclasses import dataclass, replace

import numpy as np

logger = logging.getLogger(__name__)

# Layout constants
BMP_MAGIC = b"BM"
FILE_HEADER_SIZE = 14
INFO_HEADER_SIZE = 40
PIXEL_DATA_OFFSET = FILE_HEADER_SIZE + INFO_HEADER_SIZE
BITS_PER_PIXEL = 24
BI_RGB = 0

_FILE_HEADER = struct.Struct("<2sIHHI")
_INFO_HEADER = struct.Struct("<IiiHHIIiiII")


# =============================================================================
# ERRORS
# =============================================================================

class BmpError(Exception):
    """Base class for every failure the codec reports."""


class IoOpenFailed(BmpError):
    pass


class TruncatedHeader(BmpError):
    pass


class InvalidSignature(BmpError):
    pass


class UnsupportedFormat(BmpError):
    """Wrong bit depth, compression, header size or planes."""


class UnsupportedDimensions(BmpError):
    pass


class TruncatedPixelData(BmpError):
    pass


class WriteFailed(BmpError):
    pass


class OutOfMemory(BmpError):
    pass


# =============================================================================
# HEADERS
# =============================================================================

@dataclass
class FileHeader:
    signature: bytes = BMP_MAGIC
    file_size: int = 0
    reserved1: int = 0
    reserved2: int = 0
    offset: int = PIXEL_DATA_OFFSET

    @classmethod
    def unpack(cls, data):
        return cls(*_FILE_HEADER.unpack(data))

    def pack(self):
        return _FILE_HEADER.pack(self.signature, self.file_size,
                                 self.reserved1, self.reserved2, self.offset)


@dataclass
class InfoHeader:
    header_size: int = INFO_HEADER_SIZE
    width: int = 0
    height: int = 0
    planes: int = 1
    bit_count: int = BITS_PER_PIXEL
    compression: int = BI_RGB
    image_size: int = 0
    x_pels_per_meter: int = 0
    y_pels_per_meter: int = 0
    colors_used: int = 0
    colors_important: int = 0

    @classmethod
    def unpack(cls, data):
        return cls(*_INFO_HEADER.unpack(data))

    def pack(self):
        return _INFO_HEADER.pack(
            self.header_size, self.width, self.height, self.planes,
            self.bit_count, self.compression, self.image_size,
            self.x_pels_per_meter, self.y_pels_per_meter,
            self.colors_used, self.colors_important,
        )


def row_padding(width: int) -> int:
    """Filler bytes that bring a row of `width` pixels to a multiple of 4."""
    return (4 - (width * 3) % 4) % 4


def row_stride(width: int) -> int:
    return width * 3 + row_padding(width)


def new_buffer(width: int, height: int) -> np.ndarray:
    try:
        return np.zeros((height, width, 3), dtype=np.uint8)
    except (MemoryError, ValueError) as exc:
        raise OutOfMemory(f"cannot allocate {width}x{height} pixel buffer") from exc


def check_buffer(pixels):
    """Reject anything that is not a (height, width, 3) uint8 array."""
    if pixels.ndim != 3 or pixels.shape[2] != 3:
        raise ValueError(f"expected a (height, width, 3) buffer, got shape {pixels.shape}")
    if pixels.dtype != np.uint8:
        raise ValueError(f"expected a uint8 buffer, got dtype {pixels.dtype}")


def _validate(fh: FileHeader, ih: InfoHeader) -> None:
    if fh.signature != BMP_MAGIC:
        raise InvalidSignature(f"bad signature {fh.signature!r}, expected {BMP_MAGIC!r}")
    if ih.bit_count != BITS_PER_PIXEL or ih.compression != BI_RGB:
        raise UnsupportedFormat(
            f"only 24-bpp uncompressed BMP is supported "
            f"(got {ih.bit_count} bpp, compression {ih.compression})")
    if ih.header_size != INFO_HEADER_SIZE:
        raise UnsupportedFormat(f"unsupported info header size {ih.header_size}")
    if ih.planes != 1:
        raise UnsupportedFormat(f"unsupported plane count {ih.planes}")
    if fh.offset < PIXEL_DATA_OFFSET:
        raise UnsupportedFormat(f"pixel data offset {fh.offset} overlaps the headers")
    if ih.width <= 0 or ih.height <= 0:
        raise UnsupportedDimensions(
            f"only positive dimensions are supported (got {ih.width}x{ih.height})")


# =============================================================================
# DECODE / ENCODE
# =============================================================================

def decode(stream):
    """Read a BMP from a binary stream.

    Returns (pixels, info_header). The info header is what `encode` needs
    to write the image back with its resolution fields intact.
    """
    head = stream.read(PIXEL_DATA_OFFSET)
    if len(head) < PIXEL_DATA_OFFSET:
        raise TruncatedHeader(f"expected {PIXEL_DATA_OFFSET} header bytes, got {len(head)}")

    fh = FileHeader.unpack(head[:FILE_HEADER_SIZE])
    ih = InfoHeader.unpack(head[FILE_HEADER_SIZE:])
    _validate(fh, ih)

    width, height = ih.width, ih.height
    row_bytes = width * 3
    padding = row_padding(width)
    logger.debug("decoding %dx%d BMP, offset=%d, padding=%d",
                 width, height, fh.offset, padding)

    # pixel data is not assumed to follow the headers directly
    stream.seek(fh.offset)

    pixels = new_buffer(width, height)
    for y in range(height):
        row = stream.read(row_bytes)
        if len(row) != row_bytes:
            raise TruncatedPixelData(
                f"row {y}: expected {row_bytes} bytes, got {len(row)}")
        # stored bottom-up as BGR
        pixels[height - 1 - y] = np.frombuffer(row, dtype=np.uint8).reshape(width, 3)[:, ::-1]
        if padding:
            stream.read(padding)

    return pixels, ih


def encode(pixels, info, stream):
    """Write `pixels` as a 24-bpp BMP to a binary stream.

    `info` is a template InfoHeader (typically the one returned by `decode`);
    size, depth, planes and compression fields are recomputed, the others are
    passed through. Pass None to use a default header.
    """
    check_buffer(pixels)

    height, width = pixels.shape[0], pixels.shape[1]
    padding = row_padding(width)
    image_size = (width * 3 + padding) * height

    ih = replace(info if info is not None else InfoHeader(),
                 header_size=INFO_HEADER_SIZE, width=width, height=height,
                 planes=1, bit_count=BITS_PER_PIXEL, compression=BI_RGB,
                 image_size=image_size)
    fh = FileHeader(file_size=PIXEL_DATA_OFFSET + image_size, offset=PIXEL_DATA_OFFSET)

    pad = bytes(padding)
    try:
        stream.write(fh.pack())
        stream.write(ih.pack())
        # back to bottom-up BGR
        for y in range(height - 1, -1, -1):
            stream.write(np.ascontiguousarray(pixels[y, :, ::-1]).tobytes())
            if padding:
                stream.write(pad)
    except OSError as exc:
        raise WriteFailed(f"write failed: {exc}") from exc

    logger.debug("encoded %dx%d BMP, %d bytes", width, height, fh.file_size)


def decode_bytes(data):
    return decode(io.BytesIO(data))


def encode_bytes(pixels, info=None):
    out = io.BytesIO()
    encode(pixels, info, out)
    return out.getvalue()


# =============================================================================
# PATH-LEVEL I/O
# =============================================================================

def load_image(path):
    """Open `path` and decode it. The file is closed on every exit path."""
    try:
        f = open(path, "rb")
    except OSError as exc:
        raise IoOpenFailed(f"cannot open {path}: {exc}") from exc
    with f:
        return decode(f)


def save_image(path, pixels, info=None):
    # validate before open truncates an existing file
    check_buffer(pixels)
    try:
        f = open(path, "wb")
    except OSError as exc:
        raise IoOpenFailed(f"cannot create {path}: {exc}") from exc
    try:
        with f:
            encode(pixels, info, f)
    except OSError as exc:
        # flush on close
        raise WriteFailed(f"write failed: {exc}") from exc
