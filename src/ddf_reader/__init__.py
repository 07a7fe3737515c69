"""
DDF Reader - ISO/IEC 8211 Data Descriptive File Decoder
=======================================================

This package reads ISO/IEC 8211 files: the self-describing interchange
format used by S-57 electronic navigational charts, SDTS spatial data
transfers and related geospatial exchange standards.

Main Components
---------------
- **iso8211**: The decoder
    Leader and directory parsing, format control expansion, subfield
    type coercion, and the Module/Record/Field/Subfield object model

- **config**: Reader configuration (text encoding, record limits)

- **errors**: The DDFError exception hierarchy

- **cli**: Command-line inspector (ddfdump)

Quick Start
-----------
Read every record:
    >>> from ddf_reader import DDFModule
    >>> with DDFModule.from_file("US5NY1CM.000") as module:
    ...     for record in module.iter_records():
    ...         print(record.get_int_subfield("FRID", "OBJL"))

Inspect the schema:
    >>> module = DDFModule.from_file("US5NY1CM.000")
    >>> for definition in module.field_definitions:
    ...     print(definition.tag, definition.description)

Or use the command-line tool:
    $ ddfdump info US5NY1CM.000
    $ ddfdump schema US5NY1CM.000 -t FRID
    $ ddfdump get US5NY1CM.000 FRID OBJL

Reference Documentation
-----------------------
- ISO/IEC 8211:1994 Specification for a data descriptive file for
  information interchange
- IHO S-57 Edition 3.1, Part 3 Annex A (ISO 8211 implementation)

Version History
---------------
1.0.0 - Initial release with decoder, configuration and ddfdump
"""

__version__ = "1.0.0"
__author__ = "DDF Reader Contributors"

# =============================================================================
# Public API Exports
# =============================================================================

from ddf_reader.config import ReaderConfig
from ddf_reader.errors import (
    DDFError,
    DDFIOError,
    DDFFormatError,
    TruncatedLeaderError,
    TruncatedRecordError,
    InvalidLeaderError,
    CorruptRecordError,
    SchemaError,
    UndefinedFieldError,
    NumericParseError,
)
from ddf_reader.iso8211 import (
    DDFModule,
    Record,
    Field,
    FieldDefinition,
    Subfield,
    SubfieldDefinition,
    Leader,
    DataKind,
    BinaryFormat,
    DataStructCode,
    DataTypeCode,
    BytesCursor,
    FileCursor,
    expand_format,
)

__all__ = [
    # Version info
    "__version__",
    "__author__",
    # Configuration
    "ReaderConfig",
    # Exception hierarchy
    "DDFError",
    "DDFIOError",
    "DDFFormatError",
    "TruncatedLeaderError",
    "TruncatedRecordError",
    "InvalidLeaderError",
    "CorruptRecordError",
    "SchemaError",
    "UndefinedFieldError",
    "NumericParseError",
    # Decoder
    "DDFModule",
    "Record",
    "Field",
    "FieldDefinition",
    "Subfield",
    "SubfieldDefinition",
    "Leader",
    "DataKind",
    "BinaryFormat",
    "DataStructCode",
    "DataTypeCode",
    "BytesCursor",
    "FileCursor",
    "expand_format",
]
