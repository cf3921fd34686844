from __future__ import annotations

import zlib
from typing import BinaryIO, Callable, Iterable, Optional

from relic.core.lazyio import BinaryWrapper

from xbx.arh.definitions import COPY_BUFFER_SIZE
from xbx.arh.errors import IntegrityError

_KiB = 1024


class ZLibStreamReader(BinaryWrapper):
    """Forward-only zlib decompressor over a parent stream.

    Unlike a whole-buffer decompress, reads are bounded: asking for N bytes
    decompresses no more than N bytes. Bytes following the end of the zlib
    stream in the parent are left unread by the caller's copy loop.
    """

    def __init__(self, parent: BinaryIO, *, chunk_size: int = 16 * _KiB):
        super().__init__(parent, close_parent=False)
        self._source = parent
        self._decompressor = zlib.decompressobj()
        self._chunk_size = chunk_size
        self._pending = b""
        self._now = 0

    def _take_pending(self, size: int) -> bytes:
        if size < 0 or size >= len(self._pending):
            part, self._pending = self._pending, b""
        else:
            part, self._pending = self._pending[:size], self._pending[size:]
        return part

    def read(self, __n: int = -1) -> bytes:
        parts = []
        read = 0
        while __n < 0 or read < __n:
            wanted = -1 if __n < 0 else __n - read
            if self._pending:
                part = self._take_pending(wanted)
            elif self._decompressor.eof:
                break
            else:
                buffer = self._decompressor.unconsumed_tail
                if len(buffer) == 0:
                    buffer = self._source.read(self._chunk_size)
                if len(buffer) == 0:
                    # parent exhausted; drain whatever zlib still holds
                    self._pending = self._decompressor.flush()
                    if len(self._pending) == 0:
                        break
                    continue
                part = self._decompressor.decompress(buffer, max(wanted, 0))
            parts.append(part)
            read += len(part)
        self._now += read
        return b"".join(parts)

    def readable(self) -> bool:
        return True

    def seekable(self) -> bool:
        return False

    def seek(self, __offset: int, __whence: int = 0) -> int:
        raise NotImplementedError

    def tell(self) -> int:
        return self._now

    def writable(self) -> bool:
        return False

    def write(self, __s: bytes) -> int:
        raise NotImplementedError

    def writelines(self, __lines: Iterable[bytes]) -> None:
        raise NotImplementedError


def read_exact_chunks(
    stream: BinaryIO,
    size: int,
    chunk_size: int = COPY_BUFFER_SIZE,
    *,
    name: str = "Stream Length",
):
    """Yield exactly `size` bytes from `stream` in chunks of at most `chunk_size`.

    Short reads are retried; the stream ending early raises IntegrityError.
    End-of-stream is never used to stop, the byte count is.
    """
    remaining = size
    while remaining > 0:
        wanted = min(remaining, chunk_size)
        parts = []
        got = 0
        while got < wanted:
            buffer = stream.read(wanted - got)
            if len(buffer) == 0:
                raise IntegrityError(name, size - remaining + got, size)
            parts.append(buffer)
            got += len(buffer)
        remaining -= wanted
        yield parts[0] if len(parts) == 1 else b"".join(parts)


def copy_exact(
    input: BinaryIO,
    output: BinaryIO,
    size: int,
    chunk_size: int = COPY_BUFFER_SIZE,
    *,
    name: str = "Stream Length",
    on_chunk: Optional[Callable[[int], None]] = None,
) -> int:
    written = 0
    for chunk in read_exact_chunks(input, size, chunk_size, name=name):
        output.write(chunk)
        written += len(chunk)
        if on_chunk is not None:
            on_chunk(written)
    return written


__all__ = ["ZLibStreamReader", "read_exact_chunks", "copy_exact"]
