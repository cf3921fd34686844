"""Reverse mapping of path hashes to readable game paths.

The archive only stores hashes; readable names are recovered by hashing
candidate paths from wordlists (dumped file lists, previous hash lists, ...)
and keeping those that hit an archived hash. Wordlists are lossy and use
older directory layouts, so every candidate is also probed under a handful
of rewrites the game is known to apply.
"""

from __future__ import annotations

import logging
from types import MappingProxyType
from typing import (
    Callable,
    Dict,
    Iterable,
    Iterator,
    Mapping,
    Optional,
    Tuple,
    Union,
)

from fs import open_fs
from fs.base import FS
from relic.core.logmsg import BraceMessage

from xbx.arh.definitions import (
    HASH_LIST_NAME,
    LOCALE_CODES,
    PATCH_PREFIXES,
    PREFIX_REWRITES,
)
from xbx.arh.hashing import hash_path, normalize_path

_logger = logging.getLogger(__name__)

WordlistSource = Tuple[str, Iterable[str]]


def iter_wordlists(
    source: Union[str, FS], *, pattern: str = "*.txt"
) -> Iterator[WordlistSource]:
    """Yield `(name, lines)` for every wordlist in a directory.

    Files are visited in sorted name order so that first-wins registration
    is reproducible regardless of how the platform lists directories.
    """
    if isinstance(source, FS):
        yield from _iter_wordlist_fs(source, pattern)
    else:
        with open_fs(source) as wordlist_fs:
            yield from _iter_wordlist_fs(wordlist_fs, pattern)


def _iter_wordlist_fs(wordlist_fs: FS, pattern: str) -> Iterator[WordlistSource]:
    names = sorted(
        info.name
        for info in wordlist_fs.filterdir("/", files=[pattern])
        if info.is_file
    )
    for name in names:
        text = wordlist_fs.readtext(name, encoding="utf-8", errors="replace")
        yield name, text.splitlines()


def canonicalize(line: str) -> str:
    """Normalize a wordlist line and undo the patch/prefix layouts."""
    path = normalize_path(line)
    for prefix in PATCH_PREFIXES:
        if path.startswith(prefix):
            path = "/" + path[len(prefix) :]
            break
    for old, new in PREFIX_REWRITES.items():
        if path.startswith(old):
            path = new + path[len(old) :]
            break
    return path


def candidate_paths(path: str) -> Iterator[str]:
    """Every variant of an already canonicalized path worth probing, in order."""
    yield path

    if ".ca" in path:
        yield path.replace(".ca", ".wi", 1)

    if path.startswith("/00") and len(path) > 5:
        yield path[5:]

    for code in LOCALE_CODES:
        if code in path:
            for target in LOCALE_CODES:
                yield path.replace(code, target, 1)


class PathRegistry(Mapping[int, str]):
    """Read-only hash -> path table. The first path registered for a hash wins."""

    def __init__(self, paths: Dict[int, str]):
        self._paths = MappingProxyType(dict(paths))

    @classmethod
    def build(
        cls,
        known_hashes: Iterable[int],
        sources: Iterable[WordlistSource],
        *,
        hash_func: Callable[[str], int] = hash_path,
        logger: Optional[logging.Logger] = None,
    ) -> PathRegistry:
        logger = logger or _logger
        targets = set(known_hashes)
        paths: Dict[int, str] = {}

        def register(line: str) -> None:
            for candidate in candidate_paths(canonicalize(line)):
                value = hash_func(candidate)
                if value in targets and value not in paths:
                    paths[value] = candidate

        for name, lines in sources:
            lines = list(lines)
            before = len(paths)
            if name == HASH_LIST_NAME:
                for line in lines:
                    fields = line.split("|")
                    if len(fields) >= 2 and fields[1].strip():
                        register(fields[1])
            for line in lines:
                if line.strip():
                    register(line)
            logger.debug(
                BraceMessage(
                    "Wordlist `{0}`: {1} lines, {2} new paths",
                    name,
                    len(lines),
                    len(paths) - before,
                )
            )

        return cls(paths)

    def __getitem__(self, key: int) -> str:
        return self._paths[key]

    def __iter__(self) -> Iterator[int]:
        return iter(self._paths)

    def __len__(self) -> int:
        return len(self._paths)

    def get_path(self, key: int) -> Optional[str]:
        return self._paths.get(key)

    def coverage(self, known_hashes: Iterable[int]) -> float:
        """Fraction of `known_hashes` with a registered path."""
        hashes = list(known_hashes)
        if len(hashes) == 0:
            return 0.0
        return sum(1 for value in hashes if value in self._paths) / len(hashes)


__all__ = [
    "WordlistSource",
    "iter_wordlists",
    "canonicalize",
    "candidate_paths",
    "PathRegistry",
]
