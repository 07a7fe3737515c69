"""
DDF Reader Error Hierarchy
==========================

This module defines the exception hierarchy for the ISO 8211 reader.
All exceptions inherit from DDFError, allowing callers to catch every
decoding problem with a single except clause if desired.

Exception Hierarchy
-------------------
DDFError (base)
├── DDFIOError - the byte source failed to read or seek
├── DDFFormatError (structural problems in the file)
│   ├── TruncatedLeaderError - fewer than 24 leader bytes available
│   ├── TruncatedRecordError - record shorter than its declared length
│   ├── InvalidLeaderError - DDR leader failed validation
│   ├── CorruptRecordError - data record leader/directory is unusable
│   └── SchemaError - bad format controls or subfield list in the DDR
├── UndefinedFieldError - data record uses a tag the DDR never defined
└── NumericParseError - textual number did not parse (never propagated)

Disposition
-----------
Errors raised while opening a module (leader, directory, schema) abort the
whole module. Errors raised while reading a data record abort only that
read. NumericParseError is caught inside subfield extraction, logged, and
replaced by a zero value.

Error messages follow this format:
    description (at offset N)
"""

from typing import Optional


# =============================================================================
# Base Exception Class
# =============================================================================

class DDFError(Exception):
    """
    Base exception for all DDF reader errors.

    Attributes:
        message: The error description
        offset: Absolute byte offset in the source where the problem was
            detected (optional)

    Example:
        try:
            module = DDFModule.from_file("US5NY1CM.000")
        except DDFError as e:
            print(f"Error: {e}")
    """

    def __init__(self, message: str, offset: Optional[int] = None):
        self.message = message
        self.offset = offset
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        if self.offset is not None:
            return f"{self.message} (at offset {self.offset})"
        return self.message


# =============================================================================
# I/O Errors
# =============================================================================

class DDFIOError(DDFError):
    """
    The byte source failed.

    Raised when the underlying file cannot be opened, read or seeked.
    The original OSError is chained as __cause__. Callers may reopen
    the module and retry.
    """
    pass


# =============================================================================
# Structural Format Errors
# =============================================================================

class DDFFormatError(DDFError):
    """Base exception for structural problems in an ISO 8211 file."""
    pass


class TruncatedLeaderError(DDFFormatError):
    """
    The 24-byte leader could not be read in full.

    Raised by DDFModule.open() when the file is shorter than a leader.
    """
    pass


class TruncatedRecordError(DDFFormatError):
    """
    A record is shorter than its leader declares.

    Raised when:
    - The DDR body is short of the declared record length
    - A data record body (or a reused-header data block) is short
    - A data record leader is cut off part way
    """

    def __init__(
        self,
        message: str,
        expected: Optional[int] = None,
        actual: Optional[int] = None,
        offset: Optional[int] = None,
    ):
        self.expected = expected
        self.actual = actual
        if expected is not None and actual is not None:
            message = f"{message}: expected {expected} bytes, got {actual}"
        super().__init__(message, offset=offset)


class InvalidLeaderError(DDFFormatError):
    """
    The DDR leader does not look like ISO 8211.

    Raised when:
    - A leader byte is outside printable ASCII (32-126)
    - Interchange level (byte 5) is not '1', '2' or '3'
    - Leader identifier (byte 6) is not 'L'
    - Version number (byte 8) is not '1' or ' '
    - Numeric entries are not digits or are out of range
    """
    pass


class CorruptRecordError(DDFFormatError):
    """
    A record leader or directory cannot be interpreted.

    Typically caused by files transferred in text mode, where carriage
    return/line feed translation shifts every subsequent byte.
    """
    pass


class SchemaError(DDFFormatError):
    """
    A field definition in the DDR is malformed.

    Raised when:
    - Format controls are not wrapped in a single pair of brackets
    - Brackets in the format controls are unbalanced
    - The number of format items differs from the number of subfields
    - A subfield format uses an unsupported ('X') or unknown type
    - A bit string width is not a multiple of eight
    """

    def __init__(
        self,
        message: str,
        tag: Optional[str] = None,
        format_controls: Optional[str] = None,
        offset: Optional[int] = None,
    ):
        self.tag = tag
        self.format_controls = format_controls
        if tag is not None:
            message = f"field {tag!r}: {message}"
        super().__init__(message, offset=offset)


# =============================================================================
# Record Content Errors
# =============================================================================

class UndefinedFieldError(DDFError):
    """
    A data record directory references an undefined tag.

    Every tag used in a data record must have a field definition in the
    DDR. The read of the offending record fails; the module stays usable.
    """

    def __init__(self, tag: str, offset: Optional[int] = None):
        self.tag = tag
        super().__init__(
            f"undefined field {tag!r} encountered in data record",
            offset=offset,
        )


class NumericParseError(DDFError):
    """
    A textual integer or real subfield could not be parsed.

    Subfield extraction catches this, logs it and substitutes zero, so
    it is never seen by callers of the reading API.
    """

    def __init__(self, text: str, kind: str):
        self.text = text
        self.kind = kind
        super().__init__(f"cannot parse {text!r} as {kind}")
