"""
ISO 8211 Subfield Definitions and Values
========================================

A SubfieldDefinition describes one subfield of a field as declared in the
DDR: its name and the format item that says how its bytes are laid out.
A Subfield is one decoded value taken from a data record.

Format Items
------------
    Item        Kind            Width
    ----        ----            -----
    A, C        STRING          A(n) fixed n bytes, A or A(0) delimited
    R           FLOAT           textual real, width as for A
    I, S        INT             textual integer, width as for A
    B(n)        INT/BINARY      n bits, n % 8 == 0; INT below 5 bytes
    Bdw / bdw   INT or FLOAT    binary code d (0-5), w bytes;
                                'B' = big-endian, 'b' = little-endian
    X           -               not supported

A width slot holding something other than digits, as in A(;), names an
explicit delimiter for a variable-width subfield.

Binary Format Codes
-------------------
    0 = not binary          3 = fixed-point real
    1 = unsigned integer    4 = floating-point real (IEEE 754)
    2 = signed integer      5 = floating-point complex
"""

from dataclasses import dataclass
from enum import Enum, IntEnum, auto
from typing import Optional, Union
import logging
import struct

from ddf_reader.config import ReaderConfig
from ddf_reader.errors import NumericParseError, SchemaError
from ddf_reader.iso8211.leader import FIELD_TERMINATOR, UNIT_TERMINATOR

logger = logging.getLogger(__name__)

SubfieldValue = Union[int, float, str, bytes]

# Format characters whose data is text
TEXT_FORMATS = "AIRSC"
BINARY_FORMATS = "Bb"


# =============================================================================
# Enumeration Types
# =============================================================================

class DataKind(Enum):
    """The Python type a subfield decodes to."""
    INT = auto()            # int
    FLOAT = auto()          # float
    STRING = auto()         # str
    BINARY_STRING = auto()  # bytes

    def __str__(self) -> str:
        return self.name.lower()


class BinaryFormat(IntEnum):
    """Binary representation codes used in 'B'/'b' format items."""
    NOT_BINARY = 0
    UINT = 1
    SINT = 2
    FP_REAL = 3
    FLOAT_REAL = 4
    FLOAT_COMPLEX = 5


# =============================================================================
# Text Number Parsing
# =============================================================================

def parse_int_text(text: str) -> int:
    """
    Parse a textual integer subfield.

    Surrounding blanks are ignored. Text holding a real number is
    truncated toward zero.

    Raises:
        NumericParseError: If the text is not a number
    """
    try:
        return int(text)
    except ValueError:
        pass
    try:
        return int(float(text))
    except (ValueError, OverflowError):
        raise NumericParseError(text, "integer")


def parse_float_text(text: str) -> float:
    """
    Parse a textual real subfield.

    Raises:
        NumericParseError: If the text is not a number
    """
    try:
        return float(text)
    except ValueError:
        raise NumericParseError(text, "real")


# =============================================================================
# Subfield Definition
# =============================================================================

class SubfieldDefinition:
    """
    Layout and type of one subfield, as declared in the DDR.

    Created by FieldDefinition for each name in its subfield list and
    configured by set_format() with the matching format item.

    Attributes:
        name: Subfield label (e.g., "RCNM"), blanks trimmed
        format_string: Format item this definition was built from
        data_kind: Python type the subfield decodes to
        binary_format: Binary code for 'B'/'b' items
        variable: True if the subfield is delimiter-terminated
        delimiter: Terminating byte for variable-width subfields
        width: Byte width of fixed-width subfields (0 when variable)
        big_endian: Byte order of binary items
    """

    def __init__(self, name: str = "", config: Optional[ReaderConfig] = None):
        self.name = name.strip()
        self.config = config or ReaderConfig()
        self.format_string = ""
        self.data_kind = DataKind.STRING
        self.binary_format = BinaryFormat.NOT_BINARY
        self.variable = True
        self.delimiter = UNIT_TERMINATOR
        self.width = 0
        self.big_endian = True

    def __repr__(self) -> str:
        return f"SubfieldDefinition({self.name!r}, {self.format_string!r})"

    # =========================================================================
    # Format Parsing
    # =========================================================================

    def set_format(self, format_string: str) -> None:
        """
        Configure this definition from a single format item.

        Args:
            format_string: Format item with any repeat prefix removed
                (e.g., "A(2)", "R", "b14", "B(40)")

        Raises:
            SchemaError: If the item type is unsupported or unknown, or a
                width is malformed
        """
        self.format_string = format_string
        logger.debug("Subfield %s format %r", self.name, format_string)

        if not format_string:
            raise SchemaError(f"subfield {self.name!r} has an empty format")

        type_char = format_string[0]
        width_slot = self._width_slot(format_string)

        self.variable = True
        self.delimiter = UNIT_TERMINATOR
        self.width = 0
        self.binary_format = BinaryFormat.NOT_BINARY

        if width_slot is not None:
            if width_slot.isdigit():
                self.width = int(width_slot)
                self.variable = self.width == 0
            elif width_slot:
                # A(;) names its own delimiter, A(',') quotes it
                if len(width_slot) >= 3 and width_slot[0] in "\"'" \
                        and width_slot[-1] == width_slot[0]:
                    width_slot = width_slot[1:-1]
                self.delimiter = self.config.encode_byte(width_slot[0])

        if type_char in "AC":
            self.data_kind = DataKind.STRING
        elif type_char == "R":
            self.data_kind = DataKind.FLOAT
        elif type_char in "IS":
            self.data_kind = DataKind.INT
        elif type_char in BINARY_FORMATS:
            self._set_binary_format(format_string, width_slot)
        elif type_char == "X":
            raise SchemaError(
                f"format type {type_char!r} of subfield {self.name!r} not supported"
            )
        else:
            raise SchemaError(
                f"format type {type_char!r} of subfield {self.name!r} not recognised"
            )

    def _width_slot(self, format_string: str) -> Optional[str]:
        """Text inside the "(...)" that follows the type character."""
        if len(format_string) < 2 or format_string[1] != "(":
            return None
        close = format_string.rfind(")")
        if close < 2:
            raise SchemaError(
                f"unterminated width in format {format_string!r} of "
                f"subfield {self.name!r}"
            )
        return format_string[2:close]

    def _set_binary_format(self, format_string: str, width_slot: Optional[str]) -> None:
        self.variable = False
        self.big_endian = format_string[0] == "B"

        if width_slot is not None:
            # B(n): width given in bits
            if not width_slot.isdigit():
                raise SchemaError(
                    f"bit string width {width_slot!r} of subfield "
                    f"{self.name!r} is not a number"
                )
            bits = int(width_slot)
            if bits % 8 != 0 or bits == 0:
                raise SchemaError(
                    f"bit string width {bits} of subfield {self.name!r} "
                    "is not a positive multiple of 8"
                )
            self.width = bits // 8
            self.binary_format = BinaryFormat.SINT
            self.data_kind = DataKind.INT if self.width < 5 else DataKind.BINARY_STRING
            return

        # Bdw: binary code digit then byte width, optionally bracketed
        code = format_string[1:2]
        if not code.isdigit() or int(code) > BinaryFormat.FLOAT_COMPLEX:
            raise SchemaError(
                f"invalid binary format code {code!r} in {format_string!r}"
            )
        self.binary_format = BinaryFormat(int(code))

        width_text = format_string[2:].strip("()")
        if not width_text.isdigit() or int(width_text) == 0:
            raise SchemaError(
                f"invalid binary width in format {format_string!r} of "
                f"subfield {self.name!r}"
            )
        self.width = int(width_text)

        if self.binary_format in (BinaryFormat.UINT, BinaryFormat.SINT):
            self.data_kind = DataKind.INT
        else:
            self.data_kind = DataKind.FLOAT

    # =========================================================================
    # Length Scanning
    # =========================================================================

    def get_data_length(self, data: bytes, max_bytes: Optional[int] = None) -> tuple[int, int]:
        """
        Find how many bytes of data belong to this subfield.

        Args:
            data: Bytes starting at this subfield's data
            max_bytes: Bytes available (default: len(data))

        Returns:
            (length, consumed): data length excluding any delimiter, and
            the number of bytes to skip to reach the next subfield
        """
        if max_bytes is None or max_bytes > len(data):
            max_bytes = len(data)

        if not self.variable:
            if self.width > max_bytes:
                logger.warning(
                    "Only %d bytes available for subfield %s with format %r; "
                    "returning shortened data",
                    max_bytes, self.name, self.format_string,
                )
                return max_bytes, max_bytes
            return self.width, self.width

        if max_bytes == 0:
            return 0, 0

        # Field terminators are legal data in multi-byte text, which is
        # recognised by a first byte outside printable ASCII
        check_field_terminator = 32 <= data[0] < 127

        length = 0
        while length < max_bytes and data[length] != self.delimiter:
            if check_field_terminator and data[length] == FIELD_TERMINATOR:
                break
            length += 1

        return length, length + 1

    # =========================================================================
    # Value Extraction
    # =========================================================================

    def extract_bytes(self, data: bytes, max_bytes: Optional[int] = None) -> tuple[bytes, int]:
        """Extract the raw bytes of this subfield."""
        length, consumed = self.get_data_length(data, max_bytes)
        return bytes(data[:length]), consumed

    def extract_string(self, data: bytes, max_bytes: Optional[int] = None) -> tuple[str, int]:
        """
        Extract this subfield as text.

        The bytes are decoded with the configured codec; nothing is trimmed.

        Returns:
            (text, consumed)
        """
        raw, consumed = self.extract_bytes(data, max_bytes)
        return self.config.decode(raw), consumed

    def extract_int(self, data: bytes, max_bytes: Optional[int] = None) -> tuple[int, int]:
        """
        Extract this subfield as an integer.

        Textual subfields that do not parse yield 0; so do binary
        subfields wider than the available data or with a non-integer
        binary code.

        Returns:
            (value, consumed)
        """
        type_char = self.format_string[:1]

        if type_char in BINARY_FORMATS:
            raw, consumed = self._binary_bytes(data, max_bytes)
            if raw is None:
                return 0, consumed
            if self.binary_format in (BinaryFormat.UINT, BinaryFormat.SINT):
                return self._build_integer(raw), consumed
            if self.binary_format == BinaryFormat.FLOAT_REAL:
                return int(self._build_real(raw)), consumed
            return 0, consumed

        if type_char and type_char in TEXT_FORMATS:
            text, consumed = self.extract_string(data, max_bytes)
            if not text:
                return 0, consumed
            try:
                return parse_int_text(text), consumed
            except NumericParseError as e:
                logger.warning("Subfield %s: %s", self.name, e)
                return 0, consumed

        return 0, 0

    def extract_float(self, data: bytes, max_bytes: Optional[int] = None) -> tuple[float, int]:
        """
        Extract this subfield as a real number.

        Returns:
            (value, consumed)
        """
        type_char = self.format_string[:1]

        if type_char in BINARY_FORMATS:
            raw, consumed = self._binary_bytes(data, max_bytes)
            if raw is None:
                return 0.0, consumed
            if self.binary_format in (BinaryFormat.UINT, BinaryFormat.SINT):
                return float(self._build_integer(raw)), consumed
            if self.binary_format == BinaryFormat.FLOAT_REAL:
                return self._build_real(raw), consumed
            if self.binary_format != BinaryFormat.NOT_BINARY:
                logger.warning(
                    "Subfield %s: binary format %s has no defined "
                    "interpretation; returning 0.0",
                    self.name, self.binary_format.name,
                )
            return 0.0, consumed

        if type_char and type_char in TEXT_FORMATS:
            text, consumed = self.extract_string(data, max_bytes)
            if not text:
                return 0.0, consumed
            try:
                return parse_float_text(text), consumed
            except NumericParseError as e:
                logger.warning("Subfield %s: %s", self.name, e)
                return 0.0, consumed

        return 0.0, 0

    def extract_value(self, data: bytes, max_bytes: Optional[int] = None) -> tuple[SubfieldValue, int]:
        """Extract this subfield as the Python type of its data kind."""
        if self.data_kind == DataKind.INT:
            return self.extract_int(data, max_bytes)
        if self.data_kind == DataKind.FLOAT:
            return self.extract_float(data, max_bytes)
        if self.data_kind == DataKind.BINARY_STRING:
            return self.extract_bytes(data, max_bytes)
        return self.extract_string(data, max_bytes)

    def _binary_bytes(self, data: bytes, max_bytes: Optional[int]) -> tuple[Optional[bytes], int]:
        if max_bytes is None or max_bytes > len(data):
            max_bytes = len(data)
        if self.width > max_bytes:
            logger.warning(
                "Subfield %s: format width %d is greater than the %d bytes "
                "available", self.name, self.width, max_bytes,
            )
            return None, self.width
        return bytes(data[:self.width]), self.width

    def _build_integer(self, raw: bytes) -> int:
        return int.from_bytes(
            raw,
            "big" if self.big_endian else "little",
            signed=self.binary_format == BinaryFormat.SINT,
        )

    def _build_real(self, raw: bytes) -> float:
        order = ">" if self.big_endian else "<"
        if len(raw) == 4:
            return struct.unpack(order + "f", raw)[0]
        if len(raw) == 8:
            return struct.unpack(order + "d", raw)[0]
        logger.warning(
            "Subfield %s: %d-byte floating point value is not IEEE 754 "
            "single or double; returning 0.0", self.name, len(raw),
        )
        return 0.0

    # =========================================================================
    # Output Methods
    # =========================================================================

    def describe(self) -> str:
        """Human-readable summary of the definition."""
        return (
            "    DDFSubfieldDefn:\n"
            f"        Label = {self.name}\n"
            f"        FormatString = {self.format_string}\n"
        )

    def dump_data(self, data: bytes, max_bytes: Optional[int] = None) -> str:
        """Render this subfield's value from data as one dump line."""
        value, _ = self.extract_value(data, max_bytes)
        return f"      Subfield {self.name}={_format_value(value)}\n"


def _format_value(value: SubfieldValue) -> str:
    if isinstance(value, bytes):
        return value.hex().upper()
    return str(value)


# =============================================================================
# Decoded Subfield
# =============================================================================

@dataclass
class Subfield:
    """
    One decoded subfield value.

    Attributes:
        definition: Definition the value was decoded with
        value: Decoded value; its type follows definition.data_kind
        byte_size: Bytes consumed from the field data, delimiter included
    """
    definition: SubfieldDefinition
    value: SubfieldValue
    byte_size: int

    @classmethod
    def from_bytes(
        cls,
        definition: SubfieldDefinition,
        data: bytes,
        max_bytes: Optional[int] = None,
    ) -> "Subfield":
        """Decode a subfield from the start of data."""
        value, consumed = definition.extract_value(data, max_bytes)
        return cls(definition=definition, value=value, byte_size=consumed)

    @property
    def name(self) -> str:
        return self.definition.name

    @property
    def data_kind(self) -> DataKind:
        return self.definition.data_kind

    def int_value(self) -> int:
        """The value as an int, or 0 if it isn't numeric."""
        if isinstance(self.value, (int, float)):
            return int(self.value)
        return 0

    def float_value(self) -> float:
        """The value as a float, or 0.0 if it isn't numeric."""
        if isinstance(self.value, (int, float)):
            return float(self.value)
        return 0.0

    def string_value(self) -> str:
        """The value as text (bytes values are decoded)."""
        if isinstance(self.value, bytes):
            return self.definition.config.decode(self.value)
        return str(self.value)

    def bytes_value(self) -> bytes:
        """The value as bytes (text values are encoded)."""
        if isinstance(self.value, bytes):
            return self.value
        return str(self.value).encode(
            self.definition.config.encoding, self.definition.config.encoding_errors
        )

    def __str__(self) -> str:
        return f"{self.name} = {_format_value(self.value)}"
