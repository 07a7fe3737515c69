"""
ISO 8211 Module Reader
======================

DDFModule opens an ISO 8211 file, parses its Data Descriptive Record
(DDR) into field definitions, and then reads data records one at a time.

Usage Examples
--------------
Reading every record of an S-57 cell:
    >>> from ddf_reader import DDFModule
    >>> with DDFModule.from_file("US5NY1CM.000") as module:
    ...     for record in module.iter_records():
    ...         frid = record.find_field("FRID")
    ...         if frid:
    ...             print(frid.get_subfield("OBJL").int_value())

Looking at the schema:
    >>> module = DDFModule.from_file("US5NY1CM.000")
    >>> print(module.describe())
    >>> module.find_field_definition("VRID").subfield_count
    4

Fetching single values:
    >>> record = module.read_record()
    >>> record.get_int_subfield("VRID", "RCID")
    12

Record Lifetime
---------------
read_record() returns the same Record object on every call and refreshes
it in place. Finish with one record (or take record.clone()) before
reading the next.

Reference
---------
- ISO/IEC 8211:1994
- GDAL frmts/iso8211 and OpenMap com.bbn.openmap.dataAccess.iso8211
"""

from pathlib import Path
from typing import Iterator, Optional, Union
import logging

from ddf_reader.config import ReaderConfig
from ddf_reader.errors import (
    CorruptRecordError,
    DDFError,
    DDFIOError,
    TruncatedLeaderError,
    TruncatedRecordError,
)
from ddf_reader.iso8211.cursor import ByteCursor, BytesCursor, open_cursor
from ddf_reader.iso8211.field import FieldDefinition
from ddf_reader.iso8211.leader import LEADER_SIZE, Leader, parse_directory
from ddf_reader.iso8211.record import Record

logger = logging.getLogger(__name__)

Source = Union[str, Path, bytes, bytearray, ByteCursor]


class DDFModule:
    """
    An open ISO 8211 file.

    Attributes:
        config: Reader configuration
        name: Name of the source (file path or "<bytes>")
        leader: Parsed DDR leader (None until opened)
        field_definitions: Field definitions in DDR directory order
        first_record_offset: File offset of the first data record

    Example:
        >>> module = DDFModule.from_file("CATALOG.031")
        >>> module.field_count
        3
        >>> module.find_field_definition("catd").description
        'Catalogue Directory field'
    """

    def __init__(self, config: Optional[ReaderConfig] = None):
        self.config = config or ReaderConfig()
        self.cursor: Optional[ByteCursor] = None
        self.name = ""
        self.leader: Optional[Leader] = None
        self.field_definitions: list[FieldDefinition] = []
        self.first_record_offset = 0
        self._record: Optional[Record] = None

    def __repr__(self) -> str:
        return f"DDFModule({self.name!r}, fields={self.field_count})"

    @classmethod
    def from_file(
        cls, filepath: Union[str, Path], config: Optional[ReaderConfig] = None
    ) -> "DDFModule":
        """
        Open an ISO 8211 file from disk.

        Raises:
            DDFIOError: If the file cannot be opened
            DDFFormatError: If the DDR is invalid
        """
        module = cls(config)
        module.open(Path(filepath))
        return module

    @classmethod
    def from_bytes(
        cls, data: bytes, config: Optional[ReaderConfig] = None, name: str = "<bytes>"
    ) -> "DDFModule":
        """Open an ISO 8211 file held in memory."""
        module = cls(config)
        module.open(BytesCursor(data, name=name))
        return module

    # =========================================================================
    # Opening and Closing
    # =========================================================================

    def open(self, source: Source) -> None:
        """
        Open a source and parse its DDR.

        On failure the module is destroyed (source closed, definitions
        cleared) before the error is re-raised.

        Args:
            source: File path, bytes, or a ByteCursor

        Raises:
            DDFIOError: If the source cannot be read
            TruncatedLeaderError: If fewer than 24 bytes are available
            InvalidLeaderError: If the leader is not an ISO 8211 DDR leader
            TruncatedRecordError: If the DDR is shorter than declared
            CorruptRecordError: If the DDR directory is unusable
            SchemaError: If a field definition is malformed
        """
        if self.cursor is not None:
            self.destroy()

        self.cursor = open_cursor(source)
        self.name = getattr(self.cursor, "name", repr(source))

        try:
            self._read_ddr()
        except DDFError as e:
            logger.error("Failed to open %s: %s", self.name, e)
            self.destroy()
            raise

        logger.debug(
            "Opened %s: %d field definitions, first record at %d",
            self.name, len(self.field_definitions), self.first_record_offset,
        )

    def _read_ddr(self) -> None:
        leader_bytes = self.read(LEADER_SIZE)
        if len(leader_bytes) != LEADER_SIZE:
            raise TruncatedLeaderError(
                f"leader is short: expected {LEADER_SIZE} bytes, got {len(leader_bytes)}",
                offset=0,
            )

        leader = Leader.from_bytes(leader_bytes)
        logger.debug("DDR leader: %s", leader.get_info())

        remaining = max(leader.record_length - LEADER_SIZE, 0)
        body = self.read(remaining)
        if len(body) != remaining:
            raise TruncatedRecordError(
                "header record is short", expected=remaining, actual=len(body),
                offset=LEADER_SIZE,
            )
        header = leader_bytes + body

        entries = parse_directory(
            header, LEADER_SIZE, len(header),
            leader.size_field_length, leader.size_field_pos, leader.size_field_tag,
        )

        definitions = []
        for entry in entries:
            start = leader.field_area_start + entry.position
            end = start + entry.length
            if end > len(header):
                raise CorruptRecordError(
                    f"field definition {entry.tag!r} runs past the end of the "
                    "header record",
                    offset=start,
                )
            logger.debug(
                "DDR entry %s: length=%d position=%d",
                entry.tag, entry.length, entry.position,
            )
            definitions.append(
                FieldDefinition.from_bytes(
                    entry.tag, header[start:end], leader.field_control_length,
                    self.config,
                )
            )

        self.leader = leader
        self.field_definitions = definitions
        self.first_record_offset = self.tell()

    def close(self) -> None:
        """Close the source. Reads reopen it on demand."""
        if self.cursor is not None:
            self.cursor.close()

    def destroy(self) -> None:
        """Close the source and forget the schema and current record."""
        self.close()
        self.cursor = None
        self.leader = None
        self.field_definitions = []
        self._record = None

    def reopen(self) -> None:
        """
        Reopen a closed source.

        Raises:
            DDFIOError: If there is no source or it cannot be reopened
        """
        self._require_cursor().reopen()

    @property
    def is_open(self) -> bool:
        return self.cursor is not None and not self.cursor.closed

    def __enter__(self) -> "DDFModule":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    # =========================================================================
    # Byte Access
    # =========================================================================

    def _require_cursor(self) -> ByteCursor:
        if self.cursor is None:
            raise DDFIOError("module has no open source")
        return self.cursor

    def read(self, size: int) -> bytes:
        """Read up to size bytes at the current position."""
        return self._require_cursor().read(size)

    def read_at(self, offset: int, length: int) -> bytes:
        """Read bytes at an absolute offset, leaving the position unchanged."""
        cursor = self._require_cursor()
        saved = cursor.tell()
        try:
            cursor.seek(offset)
            return cursor.read(length)
        finally:
            cursor.seek(saved)

    def seek(self, position: int) -> None:
        self._require_cursor().seek(position)

    def tell(self) -> int:
        return self._require_cursor().tell()

    # =========================================================================
    # Sequential Record Access
    # =========================================================================

    def read_record(self) -> Optional[Record]:
        """
        Read the next data record.

        The returned Record is reused by the next call.

        Returns:
            The record, or None at end of file

        Raises:
            TruncatedRecordError, CorruptRecordError, UndefinedFieldError,
            DDFIOError: If this record cannot be read. The module stays
                usable; the next call continues with the following record.
        """
        if self.leader is None:
            raise DDFIOError("module is not open")

        if self._record is None:
            self._record = Record(self)

        try:
            if self._record.read():
                return self._record
        except DDFError as e:
            logger.error("Failed to read record from %s: %s", self.name, e)
            self._record.clear()
            raise

        return None

    def iter_records(self) -> Iterator[Record]:
        """Iterate over the remaining records (each is the reused Record)."""
        while (record := self.read_record()) is not None:
            yield record

    def rewind(self, offset: Optional[int] = None) -> None:
        """
        Move to a record offset.

        Args:
            offset: File offset of a record, or None (or -1) for the
                first data record. Rewinding to the first data record
                also forces the next read to start from a leader.
        """
        if offset is None or offset == -1:
            offset = self.first_record_offset

        self.seek(offset)
        if offset == self.first_record_offset and self._record is not None:
            self._record.clear()

    # =========================================================================
    # Field Definitions
    # =========================================================================

    @property
    def field_count(self) -> int:
        return len(self.field_definitions)

    def find_field_definition(self, tag: str) -> Optional[FieldDefinition]:
        """Find a field definition by tag (case-insensitive)."""
        wanted = tag.upper()
        for definition in self.field_definitions:
            if definition.tag.upper() == wanted:
                return definition
        return None

    def get_field_definition(self, index: int) -> Optional[FieldDefinition]:
        """Get a field definition by position, or None if out of range."""
        if 0 <= index < len(self.field_definitions):
            return self.field_definitions[index]
        return None

    # =========================================================================
    # Output Methods
    # =========================================================================

    def get_info(self) -> dict:
        """
        Get summary information about the module.

        Returns:
            Dictionary with the source name, leader values and counts
        """
        if self.leader is None:
            return {"name": self.name, "error": "Module not open"}

        info = {"name": self.name}
        info.update(self.leader.get_info())
        info["field_definition_count"] = self.field_count
        info["first_record_offset"] = self.first_record_offset
        info["tags"] = [definition.tag for definition in self.field_definitions]
        return info

    def describe(self) -> str:
        """Human-readable dump of the leader and every field definition."""
        if self.leader is None:
            return "DDFModule: not open\n"
        text = self.leader.describe()
        for definition in self.field_definitions:
            text += definition.describe()
        return text

    def dump_records(self) -> str:
        """
        Human-readable dump of every data record.

        Rewinds to the first data record and reads to the end of file.
        """
        self.rewind()
        lines = []
        for index, record in enumerate(self.iter_records()):
            lines.append(f"  Record {index}({record.data_size} bytes)\n")
            for field in record.fields:
                lines.append(field.describe())
        return "".join(lines)
