"""
ISO 8211 Leaders and Directories
================================

Every ISO 8211 record starts with a fixed 24-byte leader followed by a
directory of (tag, length, position) entries terminated by a field
terminator byte.

Leader Layout
-------------
    Offset  Size    Description
    ------  ----    -----------
    0       5       Record length (digits)
    5       1       Interchange level ('1', '2' or '3' in the DDR)
    6       1       Leader identifier ('L' = DDR, 'D' = data, 'R' = reuse)
    7       1       In-line code extension indicator
    8       1       Version number ('1' or ' ')
    9       1       Application indicator
    10      2       Field control length (digits)
    12      5       Start address of the field area (digits)
    17      3       Extended character set indicator
    20      1       Size of field length (digit)
    21      1       Size of field position (digit)
    22      1       Reserved ('0')
    23      1       Size of field tag (digit)

Directory Entry Layout
----------------------
    [tag: size_field_tag][length: size_field_length][position: size_field_pos]

Entries repeat until a field terminator (0x1E) appears at an entry
boundary. Positions are relative to the start of the field area.

Reference
---------
- ISO/IEC 8211:1994, clause 6 (DDR) and clause 7 (DR)
- GDAL frmts/iso8211/ddfmodule.cpp, ddfrecord.cpp
"""

from dataclasses import dataclass, field
from typing import Optional

from ddf_reader.errors import CorruptRecordError, InvalidLeaderError


# =============================================================================
# Constants
# =============================================================================

# Every record (DDR or DR) starts with a 24-byte leader
LEADER_SIZE = 24

# Delimiters
FIELD_TERMINATOR = 0x1E
UNIT_TERMINATOR = 0x1F

# Printable ASCII range required of every DDR leader byte
PRINTABLE_MIN = 32
PRINTABLE_MAX = 126

# Leader identifier signalling that the leader and directory are reused
REUSE_LEADER_IDENTIFIER = "R"


def is_printable(byte: int) -> bool:
    """Check if a byte is printable ASCII (32-126)."""
    return PRINTABLE_MIN <= byte <= PRINTABLE_MAX


def _parse_digits(raw: bytes, start: int, length: int) -> Optional[int]:
    """Parse an unsigned decimal entry, or None if it isn't all digits."""
    text = raw[start:start + length]
    if len(text) != length or not text.isdigit():
        return None
    return int(text)


# =============================================================================
# DDR Leader
# =============================================================================

@dataclass(frozen=True)
class Leader:
    """
    The validated leader of a Data Descriptive Record.

    Immutable once parsed. Use Leader.from_bytes() to build one; it
    applies every check a DDR leader has to pass.
    """
    record_length: int
    interchange_level: str
    leader_identifier: str
    inline_code_extension: str
    version_number: str
    application_indicator: str
    field_control_length: int
    field_area_start: int
    extended_char_set: str
    size_field_length: int
    size_field_pos: int
    size_field_tag: int
    raw: bytes = field(repr=False, default=b"")

    @property
    def entry_width(self) -> int:
        """Width in bytes of one directory entry."""
        return self.size_field_length + self.size_field_pos + self.size_field_tag

    @classmethod
    def from_bytes(cls, data: bytes) -> "Leader":
        """
        Parse and validate a DDR leader.

        Args:
            data: Exactly 24 leader bytes

        Returns:
            The parsed Leader

        Raises:
            InvalidLeaderError: If any byte is unprintable, a positional
                check fails, or a numeric entry is malformed or zero
        """
        if len(data) != LEADER_SIZE:
            raise InvalidLeaderError(
                f"leader must be {LEADER_SIZE} bytes, got {len(data)}"
            )

        for index, byte in enumerate(data):
            if not is_printable(byte):
                raise InvalidLeaderError(
                    f"leader byte {index} is not printable (0x{byte:02X})"
                )

        if data[5:6] not in (b"1", b"2", b"3"):
            raise InvalidLeaderError(f"invalid interchange level {data[5:6]!r}")
        if data[6:7] != b"L":
            raise InvalidLeaderError(f"invalid leader identifier {data[6:7]!r}")
        if data[8:9] not in (b"1", b" "):
            raise InvalidLeaderError(f"invalid version number {data[8:9]!r}")

        record_length = _parse_digits(data, 0, 5)
        field_control_length = _parse_digits(data, 10, 2)
        field_area_start = _parse_digits(data, 12, 5)
        size_field_length = _parse_digits(data, 20, 1)
        size_field_pos = _parse_digits(data, 21, 1)
        size_field_tag = _parse_digits(data, 23, 1)

        numbers = {
            "record length": record_length,
            "field control length": field_control_length,
            "field area start": field_area_start,
            "size of field length": size_field_length,
            "size of field position": size_field_pos,
            "size of field tag": size_field_tag,
        }
        for name, value in numbers.items():
            if value is None:
                raise InvalidLeaderError(f"leader {name} is not numeric")

        if record_length < 12:
            raise InvalidLeaderError(f"record length {record_length} is below 12")
        if field_area_start < LEADER_SIZE:
            raise InvalidLeaderError(
                f"field area start {field_area_start} is inside the leader"
            )
        if size_field_length == 0 or size_field_pos == 0 or size_field_tag == 0:
            raise InvalidLeaderError("directory entry sizes must be non-zero")

        text = data.decode("ascii")
        return cls(
            record_length=record_length,
            interchange_level=text[5],
            leader_identifier=text[6],
            inline_code_extension=text[7],
            version_number=text[8],
            application_indicator=text[9],
            field_control_length=field_control_length,
            field_area_start=field_area_start,
            extended_char_set=text[17:20],
            size_field_length=size_field_length,
            size_field_pos=size_field_pos,
            size_field_tag=size_field_tag,
            raw=bytes(data),
        )

    def get_info(self) -> dict:
        """Get the leader values as a dictionary."""
        return {
            "record_length": self.record_length,
            "interchange_level": self.interchange_level,
            "leader_identifier": self.leader_identifier,
            "inline_code_extension": self.inline_code_extension,
            "version_number": self.version_number,
            "application_indicator": self.application_indicator,
            "field_control_length": self.field_control_length,
            "field_area_start": self.field_area_start,
            "extended_char_set": self.extended_char_set,
            "size_field_length": self.size_field_length,
            "size_field_pos": self.size_field_pos,
            "size_field_tag": self.size_field_tag,
        }

    def describe(self) -> str:
        """Human-readable summary of the leader."""
        lines = ["DDFModule:"]
        for name, value in self.get_info().items():
            lines.append(f"    {name} = {value!r}" if isinstance(value, str)
                         else f"    {name} = {value}")
        return "\n".join(lines) + "\n"


# =============================================================================
# Data Record Leader
# =============================================================================

@dataclass(frozen=True)
class DataLeader:
    """
    The parts of a data record leader the reader needs.

    Data record leaders are not validated as strictly as the DDR leader:
    several producers leave the field control length blank, and a record
    length of zero is tolerated (see Record.read_header).
    """
    record_length: int
    field_area_start: int
    leader_identifier: str
    size_field_length: int
    size_field_pos: int
    size_field_tag: int

    @property
    def entry_width(self) -> int:
        return self.size_field_length + self.size_field_pos + self.size_field_tag

    @property
    def reuse_header(self) -> bool:
        """True if the following records reuse this leader and directory."""
        return self.leader_identifier == REUSE_LEADER_IDENTIFIER

    @classmethod
    def from_bytes(cls, data: bytes, offset: Optional[int] = None) -> "DataLeader":
        """
        Extract record length, field area start, identifier and entry sizes.

        Raises:
            CorruptRecordError: If a numeric entry is not made of digits
                or an entry size is zero
        """
        record_length = _parse_digits(data, 0, 5)
        field_area_start = _parse_digits(data, 12, 5)
        if record_length is None or field_area_start is None:
            raise CorruptRecordError(
                "data record leader is not numeric; ensure the file was "
                "transferred without modifying carriage returns/line feeds",
                offset=offset,
            )

        sizes = [_parse_digits(data, 20, 1), _parse_digits(data, 21, 1),
                 _parse_digits(data, 23, 1)]
        if any(size is None or size == 0 for size in sizes):
            raise CorruptRecordError(
                f"invalid directory entry sizes {data[20:24]!r}", offset=offset
            )

        return cls(
            record_length=record_length,
            field_area_start=field_area_start,
            leader_identifier=chr(data[6]),
            size_field_length=sizes[0],
            size_field_pos=sizes[1],
            size_field_tag=sizes[2],
        )


# =============================================================================
# Directory
# =============================================================================

@dataclass(frozen=True)
class DirectoryEntry:
    """One directory entry: a tag and the byte range of its field."""
    tag: str
    length: int
    position: int


def parse_directory(
    data: bytes,
    start: int,
    end: int,
    size_field_length: int,
    size_field_pos: int,
    size_field_tag: int,
    base_offset: int = 0,
) -> list[DirectoryEntry]:
    """
    Parse directory entries until a field terminator or the end.

    Args:
        data: Buffer holding the directory
        start: Offset of the first entry in data
        end: Offset at which scanning stops
        size_field_length: Width of the length entry
        size_field_pos: Width of the position entry
        size_field_tag: Width of the tag entry
        base_offset: Absolute file offset of data[0], used in errors

    Returns:
        The entries in directory order

    Raises:
        CorruptRecordError: If an entry is cut off or not numeric
    """
    entry_width = size_field_length + size_field_pos + size_field_tag
    entries: list[DirectoryEntry] = []

    for offset in range(start, end, entry_width):
        if data[offset] == FIELD_TERMINATOR:
            break

        if offset + entry_width > len(data):
            raise CorruptRecordError(
                "directory entry runs past the end of the record",
                offset=base_offset + offset,
            )

        tag = data[offset:offset + size_field_tag].decode("latin-1")
        length = _parse_digits(data, offset + size_field_tag, size_field_length)
        position = _parse_digits(
            data, offset + size_field_tag + size_field_length, size_field_pos
        )
        if length is None or position is None:
            raise CorruptRecordError(
                f"directory entry for {tag!r} is not numeric",
                offset=base_offset + offset,
            )

        entries.append(DirectoryEntry(tag=tag, length=length, position=position))

    return entries
