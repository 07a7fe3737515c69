"""
Byte Cursor Unit Tests
======================

Test Categories
---------------
1. BytesCursor: In-memory reads, seeks and reopen
2. FileCursor: File reads, reopen-on-demand and error mapping
3. open_cursor: Source dispatch
"""

import pytest

from ddf_reader.errors import DDFIOError
from ddf_reader.iso8211 import BytesCursor, FileCursor, open_cursor


# =============================================================================
# Test Fixtures
# =============================================================================

@pytest.fixture
def data_file(tmp_path):
    path = tmp_path / "data.bin"
    path.write_bytes(b"0123456789")
    return path


# =============================================================================
# BytesCursor Tests
# =============================================================================

class TestBytesCursor:
    """Tests for the in-memory cursor."""

    def test_read_and_tell(self):
        cursor = BytesCursor(b"abcdef")
        assert cursor.read(2) == b"ab"
        assert cursor.tell() == 2
        assert cursor.read(10) == b"cdef"
        assert cursor.read(1) == b""

    def test_read_zero(self):
        assert BytesCursor(b"abc").read(0) == b""

    def test_seek(self):
        cursor = BytesCursor(b"abcdef")
        cursor.seek(4)
        assert cursor.read(2) == b"ef"

    def test_seek_negative(self):
        with pytest.raises(DDFIOError, match="cannot seek"):
            BytesCursor(b"abc").seek(-1)

    def test_close_and_reopen(self):
        cursor = BytesCursor(b"abcdef", name="mem")
        cursor.read(3)
        cursor.close()
        assert cursor.closed
        assert cursor.read(2) == b"ab"
        assert not cursor.closed

    def test_copies_buffer(self):
        buffer = bytearray(b"abc")
        cursor = BytesCursor(buffer)
        buffer[0] = ord("z")
        assert cursor.read(3) == b"abc"

    def test_context_manager(self):
        with BytesCursor(b"abc") as cursor:
            cursor.read(1)
        assert cursor.closed


# =============================================================================
# FileCursor Tests
# =============================================================================

class TestFileCursor:
    """Tests for the file-backed cursor."""

    def test_read(self, data_file):
        cursor = FileCursor(data_file)
        assert cursor.name == str(data_file)
        assert cursor.read(4) == b"0123"
        cursor.seek(8)
        assert cursor.read(5) == b"89"
        cursor.close()

    def test_reopen_on_demand(self, data_file):
        """After close, the next read reopens the file at offset 0."""
        cursor = FileCursor(data_file)
        cursor.read(5)
        cursor.close()
        assert cursor.closed
        assert cursor.tell() == 0
        assert cursor.read(3) == b"012"
        cursor.close()

    def test_close_twice(self, data_file):
        cursor = FileCursor(data_file)
        cursor.close()
        cursor.close()
        assert cursor.closed

    def test_missing_file(self, tmp_path):
        with pytest.raises(DDFIOError, match="cannot open") as exc_info:
            FileCursor(tmp_path / "missing.bin")
        assert isinstance(exc_info.value.__cause__, OSError)

    def test_read_error(self, data_file):
        cursor = FileCursor(data_file)

        class BrokenStream:
            def read(self, size):
                raise OSError("device gone")

            def close(self):
                pass

        cursor._stream.close()
        cursor._stream = BrokenStream()
        with pytest.raises(DDFIOError, match="device gone"):
            cursor.read(1)


# =============================================================================
# open_cursor Tests
# =============================================================================

class TestOpenCursor:
    """Tests for open_cursor."""

    def test_path(self, data_file):
        cursor = open_cursor(data_file)
        assert isinstance(cursor, FileCursor)
        cursor.close()

    def test_string_path(self, data_file):
        cursor = open_cursor(str(data_file))
        assert isinstance(cursor, FileCursor)
        cursor.close()

    @pytest.mark.parametrize("source", [b"abc", bytearray(b"abc"), memoryview(b"abc")])
    def test_buffers(self, source):
        cursor = open_cursor(source)
        assert isinstance(cursor, BytesCursor)
        assert cursor.read(3) == b"abc"

    def test_existing_cursor(self):
        cursor = BytesCursor(b"abc")
        assert open_cursor(cursor) is cursor
