"""
ISO/IEC 8211 Decoding
=====================

This package decodes ISO 8211 "Data Descriptive Files", the container
format underneath S-57 nautical charts, SDTS transfers and other
geospatial exchange formats.

Overview
--------
An ISO 8211 file starts with a Data Descriptive Record (DDR) that
declares every field tag, its subfields and their format controls. The
Data Records (DR) that follow hold instance data laid out accordingly.

This package provides:
- **DDFModule**: Open a file, inspect its schema, read records in order
- **Record / Field / Subfield**: The decoded record object model
- **FieldDefinition / SubfieldDefinition**: The schema from the DDR
- **Format expansion**: Flattening of bracketed/repeated format controls
- **Byte cursors**: File and in-memory byte sources

Quick Start
-----------
    >>> from ddf_reader.iso8211 import DDFModule
    >>> module = DDFModule.from_file("US5NY1CM.000")
    >>> record = module.read_record()
    >>> for field in record.fields:
    ...     print(field.tag, field.data_length)
"""

from ddf_reader.iso8211.cursor import (
    ByteCursor,
    BytesCursor,
    FileCursor,
    open_cursor,
)
from ddf_reader.iso8211.leader import (
    FIELD_TERMINATOR,
    LEADER_SIZE,
    UNIT_TERMINATOR,
    DataLeader,
    DirectoryEntry,
    Leader,
    parse_directory,
)
from ddf_reader.iso8211.formats import (
    expand_bare_repeats,
    expand_format,
    expand_format_items,
    require_outer_brackets,
    split_repeat_prefix,
    strip_repeat_prefix,
)
from ddf_reader.iso8211.subfield import (
    BinaryFormat,
    DataKind,
    Subfield,
    SubfieldDefinition,
    parse_float_text,
    parse_int_text,
)
from ddf_reader.iso8211.field import (
    DataStructCode,
    DataTypeCode,
    DeferredData,
    Field,
    FieldDefinition,
    MaterializedData,
    fetch_variable,
)
from ddf_reader.iso8211.record import Record
from ddf_reader.iso8211.module import DDFModule

# =============================================================================
# Module-level __all__ for explicit exports
# =============================================================================

__all__ = [
    # Byte sources
    "ByteCursor",
    "BytesCursor",
    "FileCursor",
    "open_cursor",
    # Leaders and directories
    "FIELD_TERMINATOR",
    "LEADER_SIZE",
    "UNIT_TERMINATOR",
    "DataLeader",
    "DirectoryEntry",
    "Leader",
    "parse_directory",
    # Format controls
    "expand_bare_repeats",
    "expand_format",
    "expand_format_items",
    "require_outer_brackets",
    "split_repeat_prefix",
    "strip_repeat_prefix",
    # Subfields
    "BinaryFormat",
    "DataKind",
    "Subfield",
    "SubfieldDefinition",
    "parse_float_text",
    "parse_int_text",
    # Fields
    "DataStructCode",
    "DataTypeCode",
    "DeferredData",
    "Field",
    "FieldDefinition",
    "MaterializedData",
    "fetch_variable",
    # Records and modules
    "Record",
    "DDFModule",
]
