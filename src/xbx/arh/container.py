"""xbc1 compressed container.

Layout (little-endian), 0x30 bytes of header followed by the payload::

    magic             4s   'xbc1'
    compression_type  u32  1 = zlib, 3 = zstd
    decompressed_size u32
    compressed_size   u32
    crc32             u32
    name              28s  (unused)
"""

from __future__ import annotations

import logging
import os
import struct
import zlib
from dataclasses import dataclass
from typing import BinaryIO, Optional

import zstandard

from relic.core.logmsg import BraceMessage

from xbx.arh.definitions import (
    XBC1_MAGIC,
    XBC1_HEADER_SIZE,
    CompressionType,
)
from xbx.arh.errors import (
    FormatError,
    DecompressedSizeMismatch,
    UnsupportedCompressionError,
)
from xbx.arh.lazyio import ZLibStreamReader, copy_exact

_HEADER = struct.Struct("<4sIIII")

_logger = logging.getLogger(__name__)


@dataclass(slots=True)
class Xbc1Header:
    compression_type: int
    decompressed_size: int
    compressed_size: int
    crc32: int


def is_container(stream: BinaryIO) -> bool:
    """Peek for the xbc1 magic without moving the stream."""
    now = stream.tell()
    magic = stream.read(len(XBC1_MAGIC))
    stream.seek(now, os.SEEK_SET)
    return magic == XBC1_MAGIC


def read_header(stream: BinaryIO) -> Xbc1Header:
    buffer = stream.read(_HEADER.size)
    if len(buffer) != _HEADER.size:
        raise FormatError(
            f"xbc1 header truncated; expected {_HEADER.size} bytes, got {len(buffer)}."
        )
    magic, compression_type, decompressed_size, compressed_size, crc = _HEADER.unpack(
        buffer
    )
    if magic != XBC1_MAGIC:
        raise FormatError(f"Not an xbc1 stream; magic was {magic!r}.")
    return Xbc1Header(compression_type, decompressed_size, compressed_size, crc)


def open_decompressor(stream: BinaryIO, compression_type: int) -> BinaryIO:
    if compression_type == CompressionType.ZLIB:
        return ZLibStreamReader(stream)
    if compression_type == CompressionType.ZSTD:
        return zstandard.ZstdDecompressor().stream_reader(
            stream, read_across_frames=False, closefd=False
        )
    raise UnsupportedCompressionError(compression_type)


def decompress(
    input: BinaryIO,
    output: BinaryIO,
    *,
    start: Optional[int] = None,
    expected_size: Optional[int] = None,
    logger: Optional[logging.Logger] = None,
) -> int:
    """Decompress the container at `start` (default: current position) into
    `output`, returning the number of bytes written.

    Exactly `decompressed_size` bytes are copied; anything following the
    payload in `input` (sibling entries in a data file) is never consumed as
    output. When `expected_size` is given it must match the header before
    any byte is written.
    """
    logger = logger or _logger
    if start is None:
        start = input.tell()
    else:
        input.seek(start, os.SEEK_SET)

    header = read_header(input)
    if expected_size is not None and header.decompressed_size != expected_size:
        raise DecompressedSizeMismatch(header.decompressed_size, expected_size)

    logger.debug(
        BraceMessage(
            "xbc1 @ {0}: type={1}, size={2}, compressed={3}",
            start,
            header.compression_type,
            header.decompressed_size,
            header.compressed_size,
        )
    )
    input.seek(start + XBC1_HEADER_SIZE, os.SEEK_SET)
    reader = open_decompressor(input, header.compression_type)
    try:
        return copy_exact(
            reader, output, header.decompressed_size, name="Decompressed Size"
        )
    except (zlib.error, zstandard.ZstdError) as e:
        raise FormatError(
            f"Corrupt xbc1 payload (type {header.compression_type}) at {start}; {e}"
        ) from e
    finally:
        reader.close()


__all__ = [
    "Xbc1Header",
    "is_container",
    "read_header",
    "open_decompressor",
    "decompress",
]
