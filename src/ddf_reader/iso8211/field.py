"""
ISO 8211 Field Definitions and Field Instances
==============================================

FieldDefinition is the schema for one field tag, parsed from the field
area of the DDR. Field is one occurrence of that tag inside a data
record, holding its bytes and the Subfield values decoded from them.

DDR Field Area Layout
---------------------
    [struct code][type code][...field controls...]
    [field name] UT [subfield name list] UT [format controls] FT

The field controls occupy the leader's field control length; the three
variable strings that follow are each terminated by a unit terminator
(0x1F) or a field terminator (0x1E).

Subfield name lists are '!' separated. A leading '*' marks the subfield
group as repeating: it may occur any number of times in a field, the
count being inferred from the field's data length.

Example (S-57 coordinate field):
    descriptor   = "*YCOO!XCOO"
    format       = "(2b24)"
    -> repeating YCOO/XCOO pairs of 4-byte little-endian signed integers
"""

from dataclasses import dataclass
from enum import IntEnum
from typing import Callable, Optional, Union
import logging

from ddf_reader.config import ReaderConfig
from ddf_reader.errors import DDFIOError, SchemaError, TruncatedRecordError
from ddf_reader.iso8211.formats import (
    expand_bare_repeats,
    expand_format_items,
    require_outer_brackets,
    strip_repeat_prefix,
)
from ddf_reader.iso8211.leader import (
    FIELD_TERMINATOR,
    UNIT_TERMINATOR,
    is_printable,
)
from ddf_reader.iso8211.subfield import (
    Subfield,
    SubfieldDefinition,
    SubfieldValue,
)

logger = logging.getLogger(__name__)

# Bytes of field data shown by Field.describe()
PREVIEW_LENGTH = 40

# Reads `length` bytes at an absolute offset without moving the stream
ByteReader = Callable[[int, int], bytes]


# =============================================================================
# Enumeration Types
# =============================================================================

class DataStructCode(IntEnum):
    """Data structure code (first byte of a DDR field area)."""
    ELEMENTARY = 0
    VECTOR = 1
    ARRAY = 2
    CONCATENATED = 3

    @classmethod
    def from_byte(cls, value: int) -> "DataStructCode":
        """Decode an ASCII digit, defaulting to ELEMENTARY."""
        try:
            return cls(int(chr(value)))
        except ValueError:
            logger.warning(
                "Unrecognised data struct code %r, using elementary", chr(value)
            )
            return cls.ELEMENTARY

    def get_description(self) -> str:
        return self.name.lower()


class DataTypeCode(IntEnum):
    """Data type code (second byte of a DDR field area)."""
    CHAR_STRING = 0
    IMPLICIT_POINT = 1
    EXPLICIT_POINT = 2
    EXPLICIT_POINT_SCALED = 3
    CHAR_BIT_STRING = 4
    BIT_STRING = 5
    MIXED_DATA_TYPE = 6

    @classmethod
    def from_byte(cls, value: int) -> "DataTypeCode":
        """Decode an ASCII digit, defaulting to CHAR_STRING."""
        try:
            return cls(int(chr(value)))
        except ValueError:
            logger.warning(
                "Unrecognised data type code %r, using character string",
                chr(value),
            )
            return cls.CHAR_STRING

    def get_description(self) -> str:
        """Get a human-readable description of the type code."""
        descriptions = {
            DataTypeCode.CHAR_STRING: "character string",
            DataTypeCode.IMPLICIT_POINT: "implicit point",
            DataTypeCode.EXPLICIT_POINT: "explicit point",
            DataTypeCode.EXPLICIT_POINT_SCALED: "explicit point scaled",
            DataTypeCode.CHAR_BIT_STRING: "character bit string",
            DataTypeCode.BIT_STRING: "bit string",
            DataTypeCode.MIXED_DATA_TYPE: "mixed data type",
        }
        return descriptions[self]


def fetch_variable(data: bytes, start: int = 0) -> tuple[bytes, int]:
    """
    Fetch a UT/FT terminated string from data.

    Args:
        data: Buffer to scan
        start: Offset to start at

    Returns:
        (raw bytes without the terminator, bytes consumed including
        the terminator when one was found)
    """
    end = start
    while end < len(data) and data[end] not in (UNIT_TERMINATOR, FIELD_TERMINATOR):
        end += 1
    consumed = end - start
    if end < len(data):
        consumed += 1
    return bytes(data[start:end]), consumed


# =============================================================================
# Field Definition
# =============================================================================

# Stands in for a doubled quote while the subfield list is split on '!'
_QUOTE_SENTINEL = "\0"


class FieldDefinition:
    """
    Schema of one field tag, as declared in the DDR.

    Attributes:
        tag: Field tag (e.g., "FRID")
        struct_code: Data structure code
        type_code: Data type code
        description: Field name from the DDR (e.g., "Feature record identifier")
        array_descriptor: Raw subfield name list
        format_controls: Raw format control string
        repeating: True if the subfield group repeats within a field
        fixed_width: Sum of subfield widths, or 0 if any is variable
        subfield_definitions: Subfield definitions in declared order

    Example:
        >>> defn = FieldDefinition.from_bytes("FRID", area_bytes, 9)
        >>> [sd.name for sd in defn.subfield_definitions]
        ['RCNM', 'RCID', 'PRIM', 'GRUP', 'OBJL', 'RVER', 'RUIN']
    """

    def __init__(self, tag: str, config: Optional[ReaderConfig] = None):
        self.tag = tag
        self.config = config or ReaderConfig()
        self.struct_code = DataStructCode.ELEMENTARY
        self.type_code = DataTypeCode.CHAR_STRING
        self.description = ""
        self.array_descriptor = ""
        self.format_controls = ""
        self.repeating = False
        self.fixed_width = 0
        self.subfield_definitions: list[SubfieldDefinition] = []

    def __repr__(self) -> str:
        return (
            f"FieldDefinition({self.tag!r}, subfields={self.subfield_count}, "
            f"fixed_width={self.fixed_width}, repeating={self.repeating})"
        )

    @classmethod
    def from_bytes(
        cls,
        tag: str,
        data: bytes,
        field_control_length: int,
        config: Optional[ReaderConfig] = None,
    ) -> "FieldDefinition":
        """Create a definition from the DDR field area bytes for a tag."""
        definition = cls(tag, config)
        definition.initialize(data, field_control_length)
        return definition

    # =========================================================================
    # Parsing
    # =========================================================================

    def initialize(self, data: bytes, field_control_length: int) -> None:
        """
        Parse the field area bytes for this tag.

        Raises:
            SchemaError: If the subfield list or format controls are bad
        """
        if len(data) >= 2:
            self.struct_code = DataStructCode.from_byte(data[0])
            self.type_code = DataTypeCode.from_byte(data[1])
        else:
            logger.warning("Field %s: field area too short for control codes", self.tag)

        offset = field_control_length
        decode = self.config.decode

        raw, consumed = fetch_variable(data, offset)
        self.description = decode(raw)
        offset += consumed

        raw, consumed = fetch_variable(data, offset)
        self.array_descriptor = decode(raw)
        offset += consumed

        raw, consumed = fetch_variable(data, offset)
        self.format_controls = decode(raw)

        logger.debug(
            "Field %s: struct=%s type=%s name=%r subfields=%r formats=%r",
            self.tag, self.struct_code.name, self.type_code.name,
            self.description, self.array_descriptor, self.format_controls,
        )

        if self.struct_code != DataStructCode.ELEMENTARY:
            self.build_subfield_definitions(self.array_descriptor)
            self.apply_formats(self.format_controls)

    def build_subfield_definitions(self, subfield_list: str) -> None:
        """
        Create one SubfieldDefinition per '!' separated name.

        A leading '*' marks the group as repeating. Doubled quotes are
        literal characters and never separate names.
        """
        if subfield_list.startswith("*"):
            self.repeating = True
            subfield_list = subfield_list[1:]

        protected = subfield_list.replace('""', _QUOTE_SENTINEL)
        self.subfield_definitions = [
            SubfieldDefinition(name.replace(_QUOTE_SENTINEL, '"'), self.config)
            for name in protected.split("!")
        ]

    def apply_formats(self, format_controls: str) -> None:
        """
        Assign format items to the subfield definitions in order.

        The format controls must be bracketed. After expansion there must
        be exactly one item per subfield; counted bare items such as
        "2b24" are spread over consecutive subfields when that makes the
        counts agree.

        Raises:
            SchemaError: On bracket problems, a count mismatch, or a bad
                format item
        """
        try:
            require_outer_brackets(format_controls)
            items = expand_format_items(format_controls)
        except SchemaError as e:
            raise SchemaError(
                e.message, tag=self.tag, format_controls=format_controls
            ) from e

        subfield_count = len(self.subfield_definitions)
        if len(items) != subfield_count:
            spread = expand_bare_repeats(items)
            if len(spread) != subfield_count:
                raise SchemaError(
                    f"got {len(items)} format items for {subfield_count} subfields",
                    tag=self.tag,
                    format_controls=format_controls,
                )
            items = spread

        for definition, item in zip(self.subfield_definitions, items):
            try:
                definition.set_format(strip_repeat_prefix(item))
            except SchemaError as e:
                raise SchemaError(
                    e.message, tag=self.tag, format_controls=format_controls
                ) from e

        # Fixed width only if every subfield is fixed width
        self.fixed_width = 0
        for definition in self.subfield_definitions:
            if definition.variable or definition.width == 0:
                self.fixed_width = 0
                break
            self.fixed_width += definition.width

    # =========================================================================
    # Accessors
    # =========================================================================

    @property
    def subfield_count(self) -> int:
        return len(self.subfield_definitions)

    def find_subfield_definition(self, name: str) -> Optional[SubfieldDefinition]:
        """Find a subfield definition by name (case-insensitive)."""
        wanted = name.strip().upper()
        for definition in self.subfield_definitions:
            if definition.name.upper() == wanted:
                return definition
        return None

    def get_subfield_definition(self, index: int) -> Optional[SubfieldDefinition]:
        """Get a subfield definition by position, or None if out of range."""
        if 0 <= index < len(self.subfield_definitions):
            return self.subfield_definitions[index]
        return None

    def describe(self) -> str:
        """Human-readable summary of the definition and its subfields."""
        lines = [
            "  DDFFieldDefn:",
            f"      Tag = {self.tag}",
            f"      _fieldName = {self.description}",
            f"      _arrayDescr = {self.array_descriptor}",
            f"      _formatControls = {self.format_controls}",
            f"      _data_struct_code = {self.struct_code.get_description()}",
            f"      _data_type_code = {self.type_code.get_description()}",
        ]
        text = "\n".join(lines) + "\n"
        for definition in self.subfield_definitions:
            text += definition.describe()
        return text


# =============================================================================
# Field Data Sources
# =============================================================================

@dataclass(frozen=True)
class MaterializedData:
    """Field bytes held in memory."""
    data: bytes


@dataclass(frozen=True)
class DeferredData:
    """
    Location of field bytes left in the file.

    The absolute offset of the first byte is header_offset + position.
    """
    position: int
    length: int
    header_offset: int

    @property
    def absolute_position(self) -> int:
        return self.header_offset + self.position


FieldData = Union[MaterializedData, DeferredData]


# =============================================================================
# Field Instance
# =============================================================================

class Field:
    """
    One occurrence of a field within a data record.

    Subfield values are stored as an ordered list per subfield name, so
    repeating groups and single values are accessed the same way:

        >>> field.get_subfields("XCOO")
        [Subfield(...), Subfield(...), ...]
        >>> field.get_subfield("RCNM").int_value()
        100
    """

    def __init__(
        self,
        definition: FieldDefinition,
        source: FieldData,
        reader: Optional[ByteReader] = None,
        build: bool = True,
    ):
        self.definition = definition
        self.source = source
        self._reader = reader
        self._data: Optional[bytes] = (
            source.data if isinstance(source, MaterializedData) else None
        )
        self.subfields: dict[str, list[Subfield]] = {}
        self._built = False
        if build:
            self.build_subfields()

    def __repr__(self) -> str:
        return f"Field({self.tag!r}, {self.data_length} bytes)"

    @property
    def tag(self) -> str:
        return self.definition.tag

    # =========================================================================
    # Data Access
    # =========================================================================

    @property
    def is_deferred(self) -> bool:
        return isinstance(self.source, DeferredData)

    @property
    def data_position(self) -> Optional[int]:
        """Position of deferred data within the record's field area."""
        if isinstance(self.source, DeferredData):
            return self.source.position
        return None

    @property
    def header_offset(self) -> Optional[int]:
        """File offset that data_position is relative to (deferred only)."""
        if isinstance(self.source, DeferredData):
            return self.source.header_offset
        return None

    @property
    def data_length(self) -> int:
        if isinstance(self.source, DeferredData):
            return self.source.length
        return len(self.source.data)

    def get_data(self) -> bytes:
        """
        Get the field's bytes, reading deferred data from the file.

        Raises:
            DDFIOError: If the data is deferred and no reader is attached
            TruncatedRecordError: If the file ends inside the field
        """
        if self._data is not None:
            return self._data

        source = self.source
        assert isinstance(source, DeferredData)
        if self._reader is None:
            raise DDFIOError(
                f"field {self.tag!r} data is deferred but no byte source is attached"
            )

        data = self._reader(source.absolute_position, source.length)
        if len(data) != source.length:
            raise TruncatedRecordError(
                f"field {self.tag!r} data is short",
                expected=source.length,
                actual=len(data),
                offset=source.absolute_position,
            )
        self._data = data
        return data

    # =========================================================================
    # Subfield Decoding
    # =========================================================================

    def get_repeat_count(self) -> int:
        """
        Number of times the subfield group occurs in this field.

        Always 1 for non-repeating fields. Fixed-width groups divide the
        data length; variable-width groups are counted by walking the data.
        """
        definition = self.definition
        if not definition.repeating:
            return 1

        data = self.get_data()
        if definition.fixed_width > 0:
            return len(data) // definition.fixed_width

        offset = 0
        repeat_count = 1
        while True:
            for subfield_defn in definition.subfield_definitions:
                if subfield_defn.width > len(data) - offset:
                    consumed = subfield_defn.width
                else:
                    _, consumed = subfield_defn.get_data_length(data[offset:])
                offset += consumed
                if offset > len(data):
                    return repeat_count - 1
            if offset > len(data) - 2:
                return repeat_count
            repeat_count += 1

    def build_subfields(self) -> None:
        """Decode every subfield occurrence into self.subfields."""
        self.subfields = {}
        data = self.get_data()
        offset = 0

        for _ in range(self.get_repeat_count()):
            for subfield_defn in self.definition.subfield_definitions:
                window = data[offset:]
                subfield = Subfield.from_bytes(subfield_defn, window)
                self.add_subfield(subfield)
                offset += subfield.byte_size
        self._built = True

    def add_subfield(self, subfield: Subfield) -> None:
        self.subfields.setdefault(subfield.name, []).append(subfield)

    def _occurrences(self, name: str) -> list[Subfield]:
        if not self._built:
            self.build_subfields()
        wanted = name.strip().upper()
        for subfield_name, occurrences in self.subfields.items():
            if subfield_name.upper() == wanted:
                return occurrences
        return []

    def get_subfields(self, name: str) -> list[Subfield]:
        """
        All occurrences of a subfield, in data order (empty if absent).

        Subfields are decoded on first access when the field was read
        without them. Names match case-insensitively.
        """
        return list(self._occurrences(name))

    def get_subfield(self, name: str) -> Optional[Subfield]:
        """First occurrence of a subfield, or None."""
        occurrences = self._occurrences(name)
        return occurrences[0] if occurrences else None

    def get_subfield_data(
        self,
        subfield: Union[SubfieldDefinition, str],
        subfield_index: int = 0,
    ) -> Optional[bytes]:
        """
        Locate the raw bytes of one subfield occurrence.

        Args:
            subfield: Subfield definition (or name) from this field's definition
            subfield_index: Occurrence to fetch (0 = first)

        Returns:
            Field bytes from the start of the occurrence to the end of the
            field, or None if the subfield or occurrence does not exist
        """
        if isinstance(subfield, str):
            target = self.definition.find_subfield_definition(subfield)
        else:
            target = subfield
        if target is None:
            return None

        data = self.get_data()
        offset = 0
        fixed_width = self.definition.fixed_width

        # Fixed-width occurrences are uniform, so jump straight there
        if subfield_index > 0 and fixed_width > 0:
            offset = fixed_width * subfield_index
            subfield_index = 0

        while subfield_index >= 0:
            for subfield_defn in self.definition.subfield_definitions:
                if subfield_defn is target and subfield_index == 0:
                    if offset >= len(data):
                        return None
                    return data[offset:]
                _, consumed = subfield_defn.get_data_length(data[offset:])
                offset += consumed
            subfield_index -= 1

        return None

    def _extract(self, name: str, subfield_index: int, extractor: str):
        definition = self.definition.find_subfield_definition(name)
        if definition is None:
            return None
        data = self.get_subfield_data(definition, subfield_index)
        if data is None:
            return None
        value, _ = getattr(definition, extractor)(data)
        return value

    def get_int_subfield(self, name: str, subfield_index: int = 0) -> Optional[int]:
        """Extract one subfield occurrence as an int (None if absent)."""
        return self._extract(name, subfield_index, "extract_int")

    def get_float_subfield(self, name: str, subfield_index: int = 0) -> Optional[float]:
        """Extract one subfield occurrence as a float (None if absent)."""
        return self._extract(name, subfield_index, "extract_float")

    def get_string_subfield(self, name: str, subfield_index: int = 0) -> Optional[str]:
        """Extract one subfield occurrence as text (None if absent)."""
        return self._extract(name, subfield_index, "extract_string")

    def get_subfield_value(self, name: str, subfield_index: int = 0) -> Optional[SubfieldValue]:
        """Extract one subfield occurrence as its natural type (None if absent)."""
        return self._extract(name, subfield_index, "extract_value")

    # =========================================================================
    # Output Methods
    # =========================================================================

    def clone(self) -> "Field":
        """Copy this field; the copy shares no mutable state."""
        copy = Field(self.definition, self.source, self._reader, build=False)
        copy._data = self._data
        copy._built = self._built
        copy.subfields = {name: list(values) for name, values in self.subfields.items()}
        return copy

    def describe(self) -> str:
        """Human-readable dump of the field's data and decoded subfields."""
        lines = [
            "  DDFField:",
            f"\tTag = {self.tag}",
            f"\tDescription = {self.definition.description}",
            f"\tDataSize = {self.data_length}",
        ]

        if self._data is None:
            lines.append(f"\tHeader offset = {self.header_offset}")
            lines.append(f"\tData position = {self.data_position}")
            lines.append(f"\tData length = {self.data_length}")
            return "\n".join(lines) + "\n"

        preview = "".join(
            chr(byte) if is_printable(byte) else f"|{byte:02X}"
            for byte in self._data[:PREVIEW_LENGTH]
        )
        if len(self._data) > PREVIEW_LENGTH:
            preview += "..."
        lines.append(f"\tData = {preview}")

        if not self._built:
            self.build_subfields()
        lines.append("      Subfields:")
        for occurrences in self.subfields.values():
            for subfield in occurrences:
                lines.append(f"        {subfield}")
        return "\n".join(lines) + "\n"
