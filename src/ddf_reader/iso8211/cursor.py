"""
Byte Sources for ISO 8211 Decoding
==================================

The decoder consumes its input through a small seekable byte cursor.
Anything that supplies read/seek/tell/reopen/close can be decoded; two
implementations are provided:

- **FileCursor**: A buffered binary file on disk, reopenable after close
- **BytesCursor**: An in-memory buffer (tests, network payloads, archives)

Every OSError raised by the underlying stream is re-raised as DDFIOError
with the original exception chained, so callers only need to handle the
DDFError hierarchy.
"""

from pathlib import Path
from typing import BinaryIO, Optional, Protocol, Union
import io
import logging

from ddf_reader.errors import DDFIOError

logger = logging.getLogger(__name__)


# =============================================================================
# Cursor Protocol
# =============================================================================

class ByteCursor(Protocol):
    """
    Sequential, seekable, rewindable byte source.

    read() may return fewer bytes than requested at end of stream;
    it returns b"" once the stream is exhausted.
    """

    def read(self, size: int) -> bytes:
        ...

    def seek(self, position: int) -> None:
        ...

    def tell(self) -> int:
        ...

    def reopen(self) -> None:
        ...

    def close(self) -> None:
        ...

    @property
    def closed(self) -> bool:
        ...


# =============================================================================
# Stream-backed Cursor
# =============================================================================

class _StreamCursor:
    """Shared read/seek/tell handling for cursors over a binary stream."""

    name: str = "<stream>"

    def __init__(self) -> None:
        self._stream: Optional[BinaryIO] = None

    @property
    def closed(self) -> bool:
        return self._stream is None

    def _require_stream(self) -> BinaryIO:
        if self._stream is None:
            self.reopen()
        assert self._stream is not None
        return self._stream

    def read(self, size: int) -> bytes:
        if size <= 0:
            return b""
        stream = self._require_stream()
        try:
            return stream.read(size)
        except OSError as e:
            raise DDFIOError(f"cannot read {size} bytes from {self.name}: {e}") from e

    def seek(self, position: int) -> None:
        stream = self._require_stream()
        try:
            stream.seek(position)
        except (OSError, ValueError) as e:
            raise DDFIOError(f"cannot seek {self.name} to {position}: {e}") from e

    def tell(self) -> int:
        stream = self._require_stream()
        try:
            return stream.tell()
        except OSError as e:
            raise DDFIOError(f"cannot get position in {self.name}: {e}") from e

    def close(self) -> None:
        if self._stream is not None:
            try:
                self._stream.close()
            except OSError as e:
                logger.warning("Error closing %s: %s", self.name, e)
            self._stream = None

    def reopen(self) -> None:
        raise NotImplementedError("Subclasses must implement reopen()")

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()


class FileCursor(_StreamCursor):
    """
    Cursor over a file on disk.

    The file is opened on construction. After close() the next read,
    seek or tell reopens it at offset 0.

    Example:
        >>> cursor = FileCursor("US5NY1CM.000")
        >>> leader = cursor.read(24)
    """

    def __init__(self, path: Union[str, Path]):
        super().__init__()
        self.path = Path(path)
        self.name = str(self.path)
        self.reopen()

    def reopen(self) -> None:
        if self._stream is not None:
            return
        try:
            self._stream = open(self.path, "rb")
        except OSError as e:
            raise DDFIOError(f"cannot open {self.path}: {e}") from e
        logger.debug("Opened %s", self.path)


class BytesCursor(_StreamCursor):
    """
    Cursor over an in-memory buffer.

    Example:
        >>> cursor = BytesCursor(Path("chart.000").read_bytes())
    """

    def __init__(self, data: bytes, name: str = "<bytes>"):
        super().__init__()
        self._data = bytes(data)
        self.name = name
        self.reopen()

    def reopen(self) -> None:
        if self._stream is None:
            self._stream = io.BytesIO(self._data)


def open_cursor(source: Union[str, Path, bytes, bytearray, ByteCursor]) -> ByteCursor:
    """
    Build a cursor for any supported source.

    Args:
        source: A path, a bytes-like buffer, or an existing cursor

    Returns:
        A ByteCursor positioned at the start of the source (existing
        cursors are returned unchanged)
    """
    if isinstance(source, (str, Path)):
        return FileCursor(source)
    if isinstance(source, (bytes, bytearray, memoryview)):
        return BytesCursor(bytes(source))
    return source
