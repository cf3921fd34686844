"""ARH header parsing.

The header file holds no payload; it lists one record per archived file and
the alignment every record's payload is padded to inside the ARD data file.
Data offsets are not stored, they are the running sum of the aligned sizes.
"""

from __future__ import annotations

import logging
import struct
from dataclasses import dataclass
from types import MappingProxyType
from typing import BinaryIO, Dict, Iterator, List, Mapping, Optional, Tuple

from relic.core.logmsg import BraceMessage

from xbx.arh.errors import FormatError
from xbx.arh.hashing import format_hash

_PREAMBLE = struct.Struct("<IIII")  # magic, file count, file alignment, reserved
_RECORD = struct.Struct("<QII")  # hash, disk size, expanded size

_logger = logging.getLogger(__name__)


def align_up(value: int, alignment: int) -> int:
    return (value + alignment - 1) & ~(alignment - 1)


@dataclass(slots=True, frozen=True)
class FileEntry:
    """A file record with its computed offset in the data file."""

    hash: int
    disk_size: int
    expanded_size: int  # 0 when the header does not flag the entry as compressed
    offset: int

    @property
    def is_compressed(self) -> bool:
        return self.expanded_size != 0

    def __str__(self) -> str:
        return format_hash(self.hash)


def _read_exact(stream: BinaryIO, size: int, what: str) -> bytes:
    buffer = stream.read(size)
    if len(buffer) != size:
        raise FormatError(
            f"Header truncated while reading {what}; expected {size} bytes, got {len(buffer)}."
        )
    return buffer


class ArchiveIndex(Mapping[int, FileEntry]):
    """Read-only hash -> FileEntry table, in header declaration order."""

    def __init__(
        self,
        entries: Dict[int, FileEntry],
        file_alignment: int,
        magic: int = 0,
        duplicates: Tuple[FileEntry, ...] = (),
    ):
        self._entries = MappingProxyType(dict(entries))
        self.file_alignment = file_alignment
        self.magic = magic
        self.duplicates = duplicates

    @classmethod
    def read(
        cls, stream: BinaryIO, *, logger: Optional[logging.Logger] = None
    ) -> ArchiveIndex:
        logger = logger or _logger
        magic, file_count, file_alignment, _ = _PREAMBLE.unpack(
            _read_exact(stream, _PREAMBLE.size, "preamble")
        )
        if file_alignment == 0 or file_alignment & (file_alignment - 1) != 0:
            raise FormatError(
                f"File alignment '{file_alignment}' is not a power of two."
            )

        entries: Dict[int, FileEntry] = {}
        duplicates: List[FileEntry] = []
        offset = 0
        for index in range(file_count):
            file_hash, disk_size, expanded_size = _RECORD.unpack(
                _read_exact(stream, _RECORD.size, f"record {index}/{file_count}")
            )
            entry = FileEntry(file_hash, disk_size, expanded_size, offset)
            offset += align_up(disk_size, file_alignment)

            if file_hash in entries:
                duplicates.append(entry)
                logger.warning(
                    BraceMessage(
                        "Duplicate hash {0} at record {1}; keeping the first record",
                        entry,
                        index,
                    )
                )
                continue
            entries[file_hash] = entry

        logger.debug(
            BraceMessage(
                "Read {0} records (alignment {1}, data size {2})",
                file_count,
                file_alignment,
                offset,
            )
        )
        return cls(entries, file_alignment, magic, tuple(duplicates))

    @classmethod
    def open(
        cls, path: str, *, logger: Optional[logging.Logger] = None
    ) -> ArchiveIndex:
        with open(path, "rb") as handle:
            return cls.read(handle, logger=logger)

    def __getitem__(self, key: int) -> FileEntry:
        return self._entries[key]

    def __iter__(self) -> Iterator[int]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def entries(self) -> Iterator[FileEntry]:
        return iter(self._entries.values())

    @property
    def data_size(self) -> int:
        """Total aligned size of every declared record, duplicates included."""
        ends = [
            entry.offset + align_up(entry.disk_size, self.file_alignment)
            for entry in (*self._entries.values(), *self.duplicates)
        ]
        return max(ends, default=0)


__all__ = ["align_up", "FileEntry", "ArchiveIndex"]
