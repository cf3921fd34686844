"""Extraction of ARH/ARD archives.

An ARH header is paired with an ARD data file of the same name. Entries are
copied out of the data file verbatim, or decoded when they are wrapped in an
xbc1 container.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from types import TracebackType
from typing import BinaryIO, Callable, Optional, TextIO, Type, Union

from fs import open_fs
from fs.base import FS
from fs.errors import FSError, IllegalBackReference
from fs.path import dirname, normpath
from relic.core.logmsg import BraceMessage

from xbx.arh import container
from xbx.arh.definitions import (
    DATA_FILE_EXTENSION,
    DEFAULT_FILELISTS_DIR,
    MULTI_FRAME_SUFFIXES,
    UNMAPPED_DIR,
    UNMAPPED_EXTENSION,
)
from xbx.arh.errors import (
    ArhError,
    EntryNotFoundError,
    MissingCompanionFileError,
)
from xbx.arh.hashing import format_hash, hash_path
from xbx.arh.header import ArchiveIndex, FileEntry
from xbx.arh.lazyio import copy_exact
from xbx.arh.registry import PathRegistry, iter_wordlists

_logger = logging.getLogger(__name__)


@dataclass(slots=True)
class ExtractionStats:
    """Statistics for an extract-all run."""

    total_files: int = 0
    extracted_files: int = 0
    failed_files: int = 0
    unmapped_files: int = 0
    extracted_bytes: int = 0
    failed: list[str] = field(default_factory=list)


def data_path_for(header_path: str) -> str:
    return os.path.splitext(header_path)[0] + DATA_FILE_EXTENSION


def is_multi_frame(name: Optional[str]) -> bool:
    """Sub-archives of many xbc1 frames; these are never auto-unwrapped."""
    return name is not None and name.lower().endswith(MULTI_FRAME_SUFFIXES)


class ArchiveExtractor:
    """Reads entries out of an open ARH/ARD pair.

    The data handle is shared by every extraction and its position is moved
    by each one; use one extractor per thread.
    """

    def __init__(
        self,
        index: ArchiveIndex,
        data: BinaryIO,
        registry: Optional[PathRegistry] = None,
        *,
        auto_unwrap: bool = True,
        close_data: bool = True,
        logger: Optional[logging.Logger] = None,
    ):
        self.index = index
        self.registry = registry if registry is not None else PathRegistry({})
        self.auto_unwrap = auto_unwrap
        self.logger = logger or _logger
        self._data = data
        self._close_data = close_data

    @classmethod
    def open(
        cls,
        header_path: str,
        *,
        filelists: Optional[Union[str, FS]] = None,
        auto_unwrap: bool = True,
        logger: Optional[logging.Logger] = None,
    ) -> ArchiveExtractor:
        logger = logger or _logger
        data_path = data_path_for(header_path)
        if not os.path.isfile(data_path):
            logger.error(
                BraceMessage("`{0}` does not exist next to `{1}`", data_path, header_path)
            )
            raise MissingCompanionFileError(header_path, data_path)

        index = ArchiveIndex.open(header_path, logger=logger)
        logger.info(BraceMessage("Num Files: {0}", len(index)))

        if filelists is None:
            default = os.path.join(
                os.path.dirname(os.path.abspath(header_path)), DEFAULT_FILELISTS_DIR
            )
            filelists = default if os.path.isdir(default) else None

        if filelists is not None:
            logger.info("Parsing file lists...")
            registry = PathRegistry.build(
                index.keys(), iter_wordlists(filelists), logger=logger
            )
        else:
            logger.info("No file lists found; every entry will be unmapped")
            registry = PathRegistry({})
        logger.info(
            BraceMessage(
                "Known Hashes: {0}/{1} ({2:.2f}%)",
                len(registry),
                len(index),
                registry.coverage(index.keys()) * 100,
            )
        )

        data = open(data_path, "rb")
        return cls(index, data, registry, auto_unwrap=auto_unwrap, logger=logger)

    def close(self) -> None:
        if self._close_data:
            self._data.close()

    def __enter__(self) -> ArchiveExtractor:
        return self

    def __exit__(
        self,
        exc_type: Optional[Type[BaseException]],
        exc_val: Optional[BaseException],
        exc_tb: Optional[TracebackType],
    ) -> None:
        self.close()

    def lookup(self, target: Union[int, str]) -> FileEntry:
        key = target if isinstance(target, int) else hash_path(target)
        try:
            return self.index[key]
        except KeyError as e:
            raise EntryNotFoundError(target) from e

    def output_name(self, entry: FileEntry) -> str:
        """Relative output path; unmapped entries go under the unmapped folder."""
        path = self.registry.get_path(entry.hash)
        if path is None:
            return f"{UNMAPPED_DIR}/{format_hash(entry.hash)}{UNMAPPED_EXTENSION}"
        return path.lstrip("/")

    def extract_entry(
        self, entry: FileEntry, sink: BinaryIO, *, name: Optional[str] = None
    ) -> int:
        """Write the contents of `entry` to `sink`, returning the bytes written.

        Entries flagged compressed by the header are always decoded and their
        expanded size checked. Otherwise an xbc1 payload is unwrapped only when
        auto-unwrap is on and `name` is not a multi-frame sub-archive.
        """
        self._data.seek(entry.offset, os.SEEK_SET)
        if entry.is_compressed:
            return container.decompress(
                self._data,
                sink,
                start=entry.offset,
                expected_size=entry.expanded_size,
                logger=self.logger,
            )
        if (
            self.auto_unwrap
            and not is_multi_frame(name)
            and container.is_container(self._data)
        ):
            return container.decompress(
                self._data, sink, start=entry.offset, logger=self.logger
            )
        return copy_exact(self._data, sink, entry.disk_size, name="Disk Size")

    def _extract_to_fs(self, entry: FileEntry, out_fs: FS, path: str) -> int:
        # raises IllegalBackReference for paths escaping out_fs
        path = normpath(path)
        parent = dirname(path)
        if parent:
            out_fs.makedirs(parent, recreate=True)
        try:
            with out_fs.openbin(path, "w") as sink:
                return self.extract_entry(entry, sink, name=path)
        except Exception:
            # no partial output is left behind
            if out_fs.exists(path):
                out_fs.remove(path)
            raise

    def extract_to(self, entry: FileEntry, output_path: str) -> int:
        output_path = os.path.abspath(output_path)
        folder, name = os.path.split(output_path)
        os.makedirs(folder, exist_ok=True)
        with open_fs(folder) as out_fs:
            return self._extract_to_fs(entry, out_fs, name)

    def extract_by_hash(self, value: int, output_path: str) -> int:
        return self.extract_to(self.lookup(value), output_path)

    def extract_by_path(self, path: str, output_path: str) -> int:
        return self.extract_to(self.lookup(path), output_path)

    def extract(self, target: Union[int, str], output_path: str) -> bool:
        try:
            entry = self.lookup(target)
        except EntryNotFoundError as e:
            self.logger.error(BraceMessage("Failed to extract; {0}", e))
            return False
        self.extract_to(entry, output_path)
        return True

    def extract_all(
        self,
        output_dir: Union[str, FS],
        *,
        on_progress: Optional[Callable[[int, int], None]] = None,
    ) -> ExtractionStats:
        """Extract every entry in header order.

        A failing entry is logged, its partial output removed, and counted in
        the returned stats; the remaining entries are still extracted.
        """
        if isinstance(output_dir, FS):
            return self._extract_all(output_dir, on_progress)
        with open_fs(output_dir, writeable=True, create=True) as out_fs:
            return self._extract_all(out_fs, on_progress)

    def _extract_all(
        self,
        out_fs: FS,
        on_progress: Optional[Callable[[int, int], None]],
    ) -> ExtractionStats:
        stats = ExtractionStats(total_files=len(self.index))
        for counter, entry in enumerate(self.index.entries(), start=1):
            path = self.output_name(entry)
            mapped = entry.hash in self.registry
            if not mapped:
                stats.unmapped_files += 1
            self.logger.info(
                BraceMessage(
                    "[{0}/{1}] Extracting{2}: {3}",
                    counter,
                    stats.total_files,
                    "" if mapped else " unmapped",
                    path if mapped else format_hash(entry.hash),
                )
            )
            try:
                stats.extracted_bytes += self._extract_to_fs(entry, out_fs, path)
            except (ArhError, FSError, IllegalBackReference) as e:
                stats.failed_files += 1
                stats.failed.append(path)
                self.logger.warning(
                    BraceMessage("Skipping `{0}` ({1}): {2}", path, entry, e)
                )
            else:
                stats.extracted_files += 1
            if on_progress is not None:
                on_progress(counter, stats.total_files)
        return stats

    def build_hash_list(self, sink: TextIO) -> int:
        """Write one `HASH|path` line per entry in header order."""
        count = 0
        for entry in self.index.entries():
            path = self.registry.get_path(entry.hash) or ""
            sink.write(f"{format_hash(entry.hash)}|{path}\n")
            count += 1
        return count


__all__ = [
    "ExtractionStats",
    "ArchiveExtractor",
    "data_path_for",
    "is_multi_frame",
]
