from typing import Optional

import pytest
from relic.core.errors import RelicToolError, MismatchError

from xbx.arh.errors import (
    ArhError,
    DecompressedSizeMismatch,
    EntryNotFoundError,
    FormatError,
    IntegrityError,
    MissingCompanionFileError,
    UnsupportedCompressionError,
)


@pytest.mark.parametrize("received", [None, 2])
@pytest.mark.parametrize("expected", [None, 10])
def test_decompressed_size_mismatch(received: Optional[int], expected: Optional[int]):
    err = DecompressedSizeMismatch(received, expected)
    assert isinstance(err, IntegrityError)
    assert isinstance(err, MismatchError)
    assert isinstance(str(err), str)


@pytest.mark.parametrize(
    "err",
    [
        FormatError("bad"),
        IntegrityError("Stream Length", 1, 2),
        UnsupportedCompressionError(7),
        EntryNotFoundError("/missing.bin"),
        EntryNotFoundError(0xDA7EB7B09B34DD80),
        MissingCompanionFileError("a.arh", "a.ard"),
    ],
)
def test_errors_share_base(err: ArhError):
    assert isinstance(err, ArhError)
    assert isinstance(err, RelicToolError)
    assert isinstance(str(err), str)


def test_entry_not_found_formats_hash():
    assert "DA7EB7B09B34DD80" in str(EntryNotFoundError(0xDA7EB7B09B34DD80))


def test_unsupported_compression_str():
    assert "7" in str(UnsupportedCompressionError(7))
