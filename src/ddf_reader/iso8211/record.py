"""
ISO 8211 Data Records
=====================

A data record (DR) is a 24-byte leader, a directory of field entries and
a field area holding the data of each field:

    [leader: 24][directory: n entries + FT][field area]

Header Reuse
------------
When a record's leader identifier is 'R', the records that follow it
carry only a field area of the same size and layout. The Record object
keeps its directory and overlays the new field area on its buffer, so
the field tags and positions of successive records are identical.

Deferred Fields
---------------
A record length of zero is written by some producers for very large
records. Only the directory is read; each Field keeps the file location
of its data and reads it when first asked for.
"""

from typing import TYPE_CHECKING, Optional
import logging

from ddf_reader.errors import (
    CorruptRecordError,
    TruncatedRecordError,
    UndefinedFieldError,
)
from ddf_reader.iso8211.field import (
    DeferredData,
    Field,
    FieldDefinition,
    MaterializedData,
)
from ddf_reader.iso8211.leader import (
    LEADER_SIZE,
    DataLeader,
    DirectoryEntry,
    parse_directory,
)

if TYPE_CHECKING:
    from ddf_reader.iso8211.module import DDFModule

logger = logging.getLogger(__name__)


_CORRUPT_HINT = (
    "data record appears to be corrupt; ensure the file was transferred "
    "without modifying carriage returns/line feeds"
)


class Record:
    """
    One data record, reused across successive reads of a module.

    DDFModule.read_record() returns the same Record object each time and
    refreshes it in place. Use clone() to keep a record's contents after
    the next read.

    Attributes:
        module: Module the record is read from
        reuse_header: True if the next read only refreshes the field area
        field_offset: Start of the field area within data
        data_size: Size of the record without its leader
        data: Directory and field area bytes
        fields: Fields in directory order
        offset: File offset of the record's leader (or field area, for
            records read with a reused header)
        is_clone: True for detached snapshots made by clone()
    """

    def __init__(self, module: "DDFModule"):
        self.module = module
        self.reuse_header = False
        self.field_offset = 0
        self.data_size = 0
        self.data = b""
        self.fields: list[Field] = []
        self.offset: Optional[int] = None
        self.is_clone = False
        self._entries: list[DirectoryEntry] = []
        self._definitions: list[FieldDefinition] = []

    def __repr__(self) -> str:
        tags = ", ".join(field.tag for field in self.fields)
        return f"Record(offset={self.offset}, fields=[{tags}])"

    @property
    def field_count(self) -> int:
        return len(self.fields)

    # =========================================================================
    # Reading
    # =========================================================================

    def read(self) -> bool:
        """
        Read the next record from the module.

        Returns:
            True if a record was read, False at end of file

        Raises:
            TruncatedRecordError: If the record is cut short
            CorruptRecordError: If the leader or directory is unusable
            UndefinedFieldError: If a tag has no field definition
            DDFIOError: If the byte source fails
        """
        if not self.reuse_header:
            return self.read_header()

        # Overlay the new field area on the existing layout
        self.offset = self.module.tell()
        size = self.data_size - self.field_offset
        chunk = self.module.read(size)
        if not chunk:
            return False
        if len(chunk) != size:
            raise TruncatedRecordError(
                "data record is short", expected=size, actual=len(chunk),
                offset=self.offset,
            )

        self.data = self.data[:self.field_offset] + chunk
        self._build_fields(deferred=False, header_offset=0)
        logger.debug("Read reused-header record at %d", self.offset)
        return True

    def read_header(self) -> bool:
        """
        Read a complete record: leader, directory and field area.

        Returns:
            True if a record was read, False at end of file
        """
        self.clear()

        start = self.module.tell()
        leader_bytes = self.module.read(LEADER_SIZE)
        if not leader_bytes:
            return False
        if len(leader_bytes) != LEADER_SIZE:
            raise TruncatedRecordError(
                "data record leader is short", expected=LEADER_SIZE,
                actual=len(leader_bytes), offset=start,
            )

        leader = DataLeader.from_bytes(leader_bytes, offset=start)
        config = self.module.config
        logger.debug(
            "Record at %d: length=%d field_area_start=%d identifier=%r",
            start, leader.record_length, leader.field_area_start,
            leader.leader_identifier,
        )

        deferred = leader.record_length == 0
        if deferred:
            if not (LEADER_SIZE <= leader.field_area_start <= config.max_field_area_start):
                raise CorruptRecordError(_CORRUPT_HINT, offset=start)
            data_size = leader.field_area_start - LEADER_SIZE
        elif not (LEADER_SIZE <= leader.record_length <= config.max_record_length) or \
                not (LEADER_SIZE <= leader.field_area_start <= config.max_field_area_start):
            raise CorruptRecordError(_CORRUPT_HINT, offset=start)
        else:
            data_size = leader.record_length - LEADER_SIZE

        data = self.module.read(data_size)
        if len(data) != data_size:
            raise TruncatedRecordError(
                "data record is short", expected=data_size, actual=len(data),
                offset=start + LEADER_SIZE,
            )

        entries = parse_directory(
            data, 0, data_size,
            leader.size_field_length, leader.size_field_pos, leader.size_field_tag,
            base_offset=start + LEADER_SIZE,
        )

        definitions = []
        for entry in entries:
            definition = self.module.find_field_definition(entry.tag)
            if definition is None:
                raise UndefinedFieldError(entry.tag, offset=start)
            definitions.append(definition)

        self.offset = start
        self.data = data
        self.data_size = data_size
        self.field_offset = leader.field_area_start - LEADER_SIZE
        self._entries = entries
        self._definitions = definitions

        header_offset = start + leader.field_area_start
        self._build_fields(deferred=deferred, header_offset=header_offset)

        if deferred:
            # Continue reading after the last field left in the file
            end = max(
                (header_offset + e.position + e.length for e in entries),
                default=header_offset,
            )
            self.module.seek(end)
        else:
            self.reuse_header = leader.reuse_header

        logger.debug("Record at %d has %d fields", start, len(self.fields))
        return True

    def _build_fields(self, deferred: bool, header_offset: int) -> None:
        eager = self.module.config.eager_subfields and not deferred
        fields = []

        for entry, definition in zip(self._entries, self._definitions):
            if deferred:
                source = DeferredData(entry.position, entry.length, header_offset)
            else:
                begin = self.field_offset + entry.position
                end = begin + entry.length
                if end > len(self.data):
                    raise CorruptRecordError(
                        f"field {entry.tag!r} runs past the end of the record",
                        offset=self.offset,
                    )
                source = MaterializedData(bytes(self.data[begin:end]))

            fields.append(
                Field(definition, source, reader=self.module.read_at, build=eager)
            )

        self.fields = fields

    def clear(self) -> None:
        """Forget the current record; the next read starts from a leader."""
        self.fields = []
        self.data = b""
        self.data_size = 0
        self.reuse_header = False
        self._entries = []
        self._definitions = []

    # =========================================================================
    # Field Access
    # =========================================================================

    def find_field(self, tag: str, field_index: int = 0) -> Optional[Field]:
        """
        Find a field by tag (case-insensitive).

        Args:
            tag: Field tag
            field_index: Occurrence of the tag to fetch (0 = first)
        """
        wanted = tag.upper()
        for field in self.fields:
            if field.tag.upper() == wanted:
                if field_index == 0:
                    return field
                field_index -= 1
        return None

    def get_field(self, index: int) -> Optional[Field]:
        """Get a field by position, or None if out of range."""
        if 0 <= index < len(self.fields):
            return self.fields[index]
        return None

    def get_int_subfield(
        self, field: str, subfield: str, subfield_index: int = 0, field_index: int = 0
    ) -> Optional[int]:
        """Extract a subfield value as an int (None if field or subfield is absent)."""
        found = self.find_field(field, field_index)
        if found is None:
            return None
        return found.get_int_subfield(subfield, subfield_index)

    def get_float_subfield(
        self, field: str, subfield: str, subfield_index: int = 0, field_index: int = 0
    ) -> Optional[float]:
        """Extract a subfield value as a float (None if field or subfield is absent)."""
        found = self.find_field(field, field_index)
        if found is None:
            return None
        return found.get_float_subfield(subfield, subfield_index)

    def get_string_subfield(
        self, field: str, subfield: str, subfield_index: int = 0, field_index: int = 0
    ) -> Optional[str]:
        """Extract a subfield value as text (None if field or subfield is absent)."""
        found = self.find_field(field, field_index)
        if found is None:
            return None
        return found.get_string_subfield(subfield, subfield_index)

    # =========================================================================
    # Output Methods
    # =========================================================================

    def clone(self) -> "Record":
        """
        Make a detached copy of this record.

        Later reads through the module do not change the copy.
        """
        copy = Record(self.module)
        copy.reuse_header = self.reuse_header
        copy.field_offset = self.field_offset
        copy.data_size = self.data_size
        copy.data = self.data
        copy.offset = self.offset
        copy.is_clone = True
        copy.fields = [field.clone() for field in self.fields]
        copy._entries = list(self._entries)
        copy._definitions = list(self._definitions)
        return copy

    def describe(self) -> str:
        """Human-readable dump of the record and all of its fields."""
        text = (
            "DDFRecord:\n"
            f"    ReuseHeader = {str(self.reuse_header).lower()}\n"
            f"    DataSize = {self.data_size}\n"
        )
        for field in self.fields:
            text += field.describe()
        return text
