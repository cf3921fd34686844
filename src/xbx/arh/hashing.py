"""Path hashing used to key archive entries.

Archive entries are addressed by the xxHash64 (seed 0) of their normalized
game path; the path itself is never stored in the archive.
"""

from __future__ import annotations

import string

import xxhash

_ASCII_LOWER = str.maketrans(
    "ABCDEFGHIJKLMNOPQRSTUVWXYZ", "abcdefghijklmnopqrstuvwxyz"
)


def normalize_path(path: str) -> str:
    """Canonicalize a game path before hashing.

    Backslashes become forward slashes, ASCII letters are lowercased and the
    result is rooted with a leading '/'. Applying it twice changes nothing.
    """
    normalized = path.replace("\\", "/").translate(_ASCII_LOWER)
    if not normalized.startswith("/"):
        normalized = "/" + normalized
    return normalized


def hash_path(path: str) -> int:
    # Non-ASCII characters hash as '?', matching the game's own ASCII encoding
    buffer = normalize_path(path).encode("ascii", errors="replace")
    return xxhash.xxh64_intdigest(buffer, seed=0)


def format_hash(value: int) -> str:
    return f"{value:016X}"


def parse_hash(text: str) -> int:
    """Parse a 16 digit hexadecimal hash, optionally prefixed with '0x'."""
    if text[:2].lower() == "0x":
        text = text[2:]
    if len(text) != 16:
        raise ValueError(
            f"Hash string must be 16 characters in length, got '{text}' ({len(text)})."
        )
    if any(c not in string.hexdigits for c in text):
        raise ValueError(f"Unable to parse hash string '{text}'.")
    return int(text, 16)


__all__ = ["normalize_path", "hash_path", "format_hash", "parse_hash"]
