"""Errors raised while reading ARH/ARD archives and xbc1 containers."""

from __future__ import annotations

from typing import Optional, Any

from relic.core.errors import RelicToolError, MismatchError


class ArhError(RelicToolError):
    """Base class for archive errors."""


class FormatError(ArhError):
    """The header or container bytes are malformed or truncated."""


class IntegrityError(MismatchError, ArhError):
    """A declared size disagrees with what the data actually holds."""

    def __init__(
        self, name: str, received: Optional[Any] = None, expected: Optional[Any] = None
    ):
        super().__init__(name, received, expected)


class DecompressedSizeMismatch(IntegrityError):
    def __init__(self, received: Optional[int] = None, expected: Optional[int] = None):
        super().__init__("Decompressed Size", received, expected)


class UnsupportedCompressionError(ArhError):
    def __init__(self, compression_type: int):
        super().__init__(compression_type)
        self.compression_type = compression_type

    def __str__(self) -> str:
        return f"Compression type '{self.compression_type}' is not supported."


class EntryNotFoundError(ArhError):
    def __init__(self, target: Any):
        super().__init__(target)
        self.target = target

    def __str__(self) -> str:
        target = (
            f"{self.target:016X}" if isinstance(self.target, int) else self.target
        )
        return f"'{target}' does not exist in the archive."


class MissingCompanionFileError(ArhError):
    def __init__(self, header_path: str, data_path: str):
        super().__init__(header_path, data_path)
        self.header_path = header_path
        self.data_path = data_path

    def __str__(self) -> str:
        return f"Data file '{self.data_path}' does not exist next to '{self.header_path}'."


__all__ = [
    "ArhError",
    "FormatError",
    "IntegrityError",
    "DecompressedSizeMismatch",
    "UnsupportedCompressionError",
    "EntryNotFoundError",
    "MissingCompanionFileError",
]
