"""Writers for synthetic ARH/ARD archives and xbc1 containers."""
import struct
import zlib
from dataclasses import dataclass
from typing import BinaryIO, Iterable, List, Optional, Tuple, Union

import zstandard

from xbx.arh.definitions import XBC1_MAGIC, XBC1_HEADER_SIZE, CompressionType
from xbx.arh.hashing import hash_path
from xbx.arh.header import align_up

ARH_MAGIC = 0x32485241  # 'ARH2'


@dataclass
class DummyFile:
    name: Union[str, int]  # game path or raw hash
    payload: bytes
    expanded_size: int = 0

    @property
    def hash(self) -> int:
        return self.name if isinstance(self.name, int) else hash_path(self.name)


def make_container(
    data: bytes,
    compression_type: int = CompressionType.ZLIB,
    *,
    decompressed_size: Optional[int] = None,
    payload: Optional[bytes] = None,
) -> bytes:
    """`payload` replaces the compressed bytes, e.g. to write a corrupt stream."""
    if payload is None:
        if compression_type == CompressionType.ZLIB:
            payload = zlib.compress(data)
        elif compression_type == CompressionType.ZSTD:
            payload = zstandard.ZstdCompressor().compress(data)
        else:
            payload = data
    size = len(data) if decompressed_size is None else decompressed_size
    header = struct.pack(
        "<4sIIII",
        XBC1_MAGIC,
        int(compression_type),
        size,
        len(payload),
        zlib.crc32(data),
    )
    return header.ljust(XBC1_HEADER_SIZE, b"\0") + payload


def write_header(
    stream: BinaryIO,
    records: Iterable[Tuple[int, int, int]],
    alignment: int,
    magic: int = ARH_MAGIC,
) -> None:
    records = list(records)
    stream.write(struct.pack("<IIII", magic, len(records), alignment, 0))
    for record in records:
        stream.write(struct.pack("<QII", *record))


def write_archive(
    header: BinaryIO,
    data: BinaryIO,
    files: List[DummyFile],
    alignment: int = 0x10,
    padding: bytes = b"\xCD",
) -> None:
    """Write the header and the aligned data file; padding is filled with
    `padding` so that reads past an entry are noticed."""
    write_header(
        header,
        [(f.hash, len(f.payload), f.expanded_size) for f in files],
        alignment,
    )
    for f in files:
        data.write(f.payload)
        data.write(padding * (align_up(len(f.payload), alignment) - len(f.payload)))
