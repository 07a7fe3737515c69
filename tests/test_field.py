"""
Field Definition and Field Unit Tests
=====================================

Test Categories
---------------
1. Definitions: Parsing DDR field areas, subfield lists and formats
2. Repeat counts: Fixed and variable width repeating groups
3. Subfield access: Decoded values and on-demand extraction
4. Deferred data: Field bytes read from the source when first needed
5. Output: describe() dumps
"""

import logging

import pytest

from ddf_reader.errors import DDFIOError, SchemaError, TruncatedRecordError
from ddf_reader.iso8211 import (
    DataStructCode,
    DataTypeCode,
    DeferredData,
    Field,
    FieldDefinition,
    MaterializedData,
    fetch_variable,
)

from ddfbuild import FT, UT, attf, field_definition, frid, name, sg2d, vals


def define(tag, struct_code="1", type_code="6", name_="", subfields="", formats=""):
    area = field_definition(struct_code, type_code, name_, subfields, formats)
    return FieldDefinition.from_bytes(tag, area, 6)


# =============================================================================
# Test Fixtures
# =============================================================================

@pytest.fixture
def frid_defn() -> FieldDefinition:
    return define("FRID", "1", "6", "Feature record identifier field",
                  "RCNM!RCID!PRIM!GRUP!OBJL", "(b11,b14,2b11,b12)")


@pytest.fixture
def name_defn() -> FieldDefinition:
    return define("NAME", "1", "0", "Name field", "OBNM!TEXT", "(A(3),A)")


@pytest.fixture
def sg2d_defn() -> FieldDefinition:
    return define("SG2D", "2", "5", "2-D coordinate field", "*YCOO!XCOO", "(2b24)")


@pytest.fixture
def attf_defn() -> FieldDefinition:
    return define("ATTF", "2", "6", "Attribute field", "*ATTL!ATVL", "(b12,A)")


@pytest.fixture
def vals_defn() -> FieldDefinition:
    return define("VALS", "1", "6", "Values", "INTV!REAL", "(I(4),R)")


# =============================================================================
# Field Definition Tests
# =============================================================================

class TestFieldDefinition:
    """Tests for FieldDefinition parsing."""

    def test_header_values(self, frid_defn):
        assert frid_defn.tag == "FRID"
        assert frid_defn.struct_code == DataStructCode.VECTOR
        assert frid_defn.type_code == DataTypeCode.MIXED_DATA_TYPE
        assert frid_defn.description == "Feature record identifier field"
        assert frid_defn.array_descriptor == "RCNM!RCID!PRIM!GRUP!OBJL"
        assert frid_defn.format_controls == "(b11,b14,2b11,b12)"
        assert not frid_defn.repeating

    def test_bare_repeat_spread_over_subfields(self, frid_defn):
        """Test that '2b11' covers both PRIM and GRUP."""
        formats = [sd.format_string for sd in frid_defn.subfield_definitions]
        assert formats == ["b11", "b14", "b11", "b11", "b12"]
        assert frid_defn.fixed_width == 9

    def test_variable_width_has_no_fixed_width(self, name_defn):
        assert name_defn.subfield_count == 2
        assert name_defn.fixed_width == 0

    def test_repeating_marker(self, sg2d_defn):
        assert sg2d_defn.repeating
        assert [sd.name for sd in sg2d_defn.subfield_definitions] == ["YCOO", "XCOO"]
        assert sg2d_defn.fixed_width == 8

    def test_elementary_field_has_no_subfields(self):
        defn = define("0001", "0", "0", "DDF RECORD IDENTIFIER")
        assert defn.struct_code == DataStructCode.ELEMENTARY
        assert defn.subfield_count == 0
        assert defn.fixed_width == 0

    def test_elementary_field_ignores_formats(self):
        """Elementary fields never parse their format controls."""
        defn = define("0000", "0", "0", "Control", "", "not bracketed")
        assert defn.format_controls == "not bracketed"

    def test_doubled_quote_in_subfield_list(self):
        defn = define("QUOT", subfields='A""B!C', formats="(A,A)")
        assert [sd.name for sd in defn.subfield_definitions] == ['A"B', "C"]

    def test_counted_group_formats(self):
        defn = define("GRUP", subfields="A!B!C!D", formats="(2(A(1),I(2)))")
        assert [sd.width for sd in defn.subfield_definitions] == [1, 2, 1, 2]
        assert defn.fixed_width == 6

    def test_unknown_struct_code(self, caplog):
        with caplog.at_level(logging.WARNING):
            defn = define("ODD1", "9", "6", "Odd", "A", "(A)")
        assert defn.struct_code == DataStructCode.ELEMENTARY
        assert "struct code" in caplog.text

    def test_unknown_type_code(self, caplog):
        with caplog.at_level(logging.WARNING):
            defn = define("ODD2", "1", "x", "Odd", "A", "(A)")
        assert defn.type_code == DataTypeCode.CHAR_STRING
        assert defn.subfield_count == 1

    def test_format_count_mismatch(self):
        with pytest.raises(SchemaError, match="3 format items for 2 subfields") as exc_info:
            define("BAD1", subfields="A!B", formats="(A,I,R)")
        assert exc_info.value.tag == "BAD1"
        assert exc_info.value.format_controls == "(A,I,R)"

    def test_formats_not_bracketed(self):
        with pytest.raises(SchemaError, match="'BAD2'"):
            define("BAD2", subfields="A!B", formats="A,I")

    def test_unsupported_format_reports_tag(self):
        with pytest.raises(SchemaError, match="not supported") as exc_info:
            define("BAD3", subfields="A", formats="(X)")
        assert exc_info.value.tag == "BAD3"

    def test_find_subfield_definition(self, frid_defn):
        assert frid_defn.find_subfield_definition("objl").name == "OBJL"
        assert frid_defn.find_subfield_definition("NOPE") is None

    def test_get_subfield_definition(self, frid_defn):
        assert frid_defn.get_subfield_definition(1).name == "RCID"
        assert frid_defn.get_subfield_definition(5) is None
        assert frid_defn.get_subfield_definition(-1) is None

    def test_code_descriptions(self):
        assert DataStructCode.ARRAY.get_description() == "array"
        assert DataTypeCode.EXPLICIT_POINT_SCALED.get_description() == "explicit point scaled"

    def test_describe(self, name_defn):
        text = name_defn.describe()
        assert text.startswith("  DDFFieldDefn:\n      Tag = NAME\n")
        assert "      _fieldName = Name field\n" in text
        assert "      _formatControls = (A(3),A)\n" in text
        assert "      _data_struct_code = vector\n" in text
        assert "      _data_type_code = character string\n" in text
        assert text.count("DDFSubfieldDefn:") == 2


class TestFetchVariable:
    """Tests for fetch_variable."""

    def test_unit_terminated(self):
        assert fetch_variable(b"NAME\x1fREST") == (b"NAME", 5)

    def test_field_terminated(self):
        assert fetch_variable(b"AB\x1e", 0) == (b"AB", 3)

    def test_unterminated(self):
        assert fetch_variable(b"XYABC", 2) == (b"ABC", 3)


# =============================================================================
# Repeat Count Tests
# =============================================================================

class TestRepeatCount:
    """Tests for Field.get_repeat_count."""

    def test_non_repeating(self, frid_defn):
        assert Field(frid_defn, MaterializedData(frid())).get_repeat_count() == 1

    def test_fixed_width(self, sg2d_defn):
        field = Field(sg2d_defn, MaterializedData(sg2d((1, 2), (3, 4), (5, 6))))
        assert field.get_repeat_count() == 3

    def test_fixed_width_ignores_trailing_terminator(self, sg2d_defn):
        field = Field(sg2d_defn, MaterializedData(sg2d((1, 2))[:-1]))
        assert field.get_repeat_count() == 1

    def test_variable_width(self, attf_defn):
        data = attf((116, b"BUOY"), (117, b"RED"))
        assert Field(attf_defn, MaterializedData(data)).get_repeat_count() == 2

    def test_variable_width_single(self, attf_defn):
        data = attf((116, b"BUOY"))
        assert Field(attf_defn, MaterializedData(data)).get_repeat_count() == 1

    def test_variable_width_many(self, attf_defn):
        pairs = [(code, b"V%d" % code) for code in range(1, 8)]
        assert Field(attf_defn, MaterializedData(attf(*pairs))).get_repeat_count() == 7


# =============================================================================
# Subfield Access Tests
# =============================================================================

class TestFieldSubfields:
    """Tests for decoded subfields and on-demand extraction."""

    def test_decoded_values(self, frid_defn):
        field = Field(frid_defn, MaterializedData(frid(objl=42)))
        assert field.get_subfield("RCNM").value == 100
        assert field.get_subfield("RCID").value == 1234
        assert field.get_subfield("PRIM").value == 1
        assert field.get_subfield("GRUP").value == 2
        assert field.get_subfield("OBJL").value == 42

    def test_repeating_values(self, sg2d_defn):
        field = Field(sg2d_defn, MaterializedData(sg2d((10, 20), (-30, 40))))
        assert [s.value for s in field.get_subfields("YCOO")] == [10, -30]
        assert [s.value for s in field.get_subfields("XCOO")] == [20, 40]

    def test_variable_repeating_values(self, attf_defn):
        field = Field(attf_defn, MaterializedData(attf((116, b"BUOY"), (117, b"RED"))))
        assert [s.value for s in field.get_subfields("ATTL")] == [116, 117]
        assert [s.value for s in field.get_subfields("ATVL")] == ["BUOY", "RED"]

    def test_get_subfields_returns_copy(self, name_defn):
        field = Field(name_defn, MaterializedData(name()))
        field.get_subfields("TEXT").clear()
        assert field.get_subfield("TEXT").value == "Hello World"

    def test_missing_subfield(self, name_defn):
        field = Field(name_defn, MaterializedData(name()))
        assert field.get_subfields("NOPE") == []
        assert field.get_subfield("NOPE") is None

    def test_unbuilt_field_decodes_on_first_access(self, name_defn):
        field = Field(name_defn, MaterializedData(name()), build=False)
        assert field.subfields == {}
        assert field.get_subfield("TEXT").value == "Hello World"
        assert [s.value for s in field.get_subfields("OBNM")] == ["ABC"]
        assert list(field.subfields) == ["OBNM", "TEXT"]

    def test_subfield_names_ignore_case(self, frid_defn):
        field = Field(frid_defn, MaterializedData(frid()))
        assert field.get_subfield("objl").value == 42
        assert [s.value for s in field.get_subfields(" Rcid ")] == [1234]
        assert field.get_int_subfield("objl") == 42

    def test_describe_unbuilt_field(self, name_defn):
        text = Field(name_defn, MaterializedData(name()), build=False).describe()
        assert "        OBNM = ABC\n" in text
        assert "        TEXT = Hello World\n" in text

    def test_get_subfield_data(self, name_defn):
        field = Field(name_defn, MaterializedData(name()))
        assert field.get_subfield_data("OBNM") == b"ABCHello World" + UT + FT
        assert field.get_subfield_data("TEXT") == b"Hello World" + UT + FT

    def test_get_subfield_data_is_repeatable(self, attf_defn):
        field = Field(attf_defn, MaterializedData(attf((116, b"BUOY"), (117, b"RED"))))
        first = field.get_subfield_data("ATVL", 1)
        assert field.get_subfield_data("ATVL", 1) == first == b"RED" + UT + FT

    def test_get_subfield_data_fixed_width_jump(self, sg2d_defn):
        data = sg2d((10, 20), (-30, 40))
        field = Field(sg2d_defn, MaterializedData(data))
        assert field.get_subfield_data("XCOO", 1) == data[12:]

    def test_get_subfield_data_past_end(self, attf_defn):
        field = Field(attf_defn, MaterializedData(attf((116, b"BUOY"))))
        assert field.get_subfield_data("ATTL", 3) is None
        assert field.get_subfield_data("NOPE") is None

    def test_typed_accessors(self, vals_defn):
        field = Field(vals_defn, MaterializedData(vals(b"0123", b"3.25")))
        assert field.get_int_subfield("INTV") == 123
        assert field.get_float_subfield("REAL") == 3.25
        assert field.get_string_subfield("INTV") == "0123"
        assert field.get_int_subfield("REAL") == 3
        assert field.get_subfield_value("REAL") == 3.25
        assert field.get_int_subfield("MISSING") is None

    def test_accessor_by_occurrence(self, sg2d_defn):
        field = Field(sg2d_defn, MaterializedData(sg2d((10, 20), (-30, 40))))
        assert field.get_int_subfield("YCOO", 1) == -30
        assert field.get_float_subfield("XCOO", 1) == 40.0

    def test_bad_number_in_field(self, vals_defn, caplog):
        with caplog.at_level(logging.WARNING):
            field = Field(vals_defn, MaterializedData(vals(b"12x4", b"1.5")))
        assert field.get_subfield("INTV").value == 0
        assert field.get_subfield("REAL").value == 1.5
        assert "cannot parse" in caplog.text

    def test_clone_is_independent(self, sg2d_defn):
        field = Field(sg2d_defn, MaterializedData(sg2d((10, 20))))
        copy = field.clone()
        copy.subfields["YCOO"].clear()
        assert field.get_subfield("YCOO").value == 10
        assert copy.get_data() == field.get_data()


# =============================================================================
# Deferred Data Tests
# =============================================================================

class TestDeferredData:
    """Tests for fields whose bytes stay in the source."""

    def test_absolute_position(self):
        assert DeferredData(position=10, length=4, header_offset=100).absolute_position == 110

    def test_reads_on_demand(self, name_defn):
        blob = b"x" * 50 + name()
        calls = []

        def reader(offset, length):
            calls.append((offset, length))
            return blob[offset:offset + length]

        source = DeferredData(position=20, length=len(name()), header_offset=30)
        field = Field(name_defn, source, reader=reader, build=False)
        assert field.is_deferred
        assert field.data_position == 20
        assert field.header_offset == 30
        assert field.data_length == len(name())
        assert calls == []

        assert field.get_string_subfield("TEXT") == "Hello World"
        assert field.get_string_subfield("OBNM") == "ABC"
        assert calls == [(50, len(name()))]

    def test_subfields_built_on_demand(self, name_defn):
        blob = b"x" * 8 + name()
        source = DeferredData(position=3, length=len(name()), header_offset=5)
        field = Field(name_defn, source,
                      reader=lambda offset, length: blob[offset:offset + length],
                      build=False)
        assert field.subfields == {}
        assert field.get_subfield("OBNM").value == "ABC"
        assert field.get_subfield("TEXT").value == "Hello World"

    def test_materialized_has_no_position(self, name_defn):
        field = Field(name_defn, MaterializedData(name()))
        assert not field.is_deferred
        assert field.data_position is None
        assert field.header_offset is None

    def test_no_reader(self, name_defn):
        field = Field(name_defn, DeferredData(0, 5, 0), build=False)
        with pytest.raises(DDFIOError, match="no byte source"):
            field.get_data()

    def test_short_read(self, name_defn):
        field = Field(name_defn, DeferredData(0, 50, 0),
                      reader=lambda offset, length: b"ABC", build=False)
        with pytest.raises(TruncatedRecordError, match="expected 50 bytes, got 3"):
            field.get_data()


# =============================================================================
# Output Tests
# =============================================================================

class TestFieldDescribe:
    """Tests for Field.describe."""

    def test_describe_materialized(self, name_defn):
        text = Field(name_defn, MaterializedData(name())).describe()
        assert text.startswith("  DDFField:\n\tTag = NAME\n\tDescription = Name field\n")
        assert "\tDataSize = 16\n" in text
        assert "\tData = ABCHello World|1F|1E\n" in text
        assert "      Subfields:\n" in text
        assert "        OBNM = ABC\n" in text
        assert "        TEXT = Hello World\n" in text

    def test_describe_long_data_truncated(self, sg2d_defn):
        data = sg2d(*[(0x41414141, 0x42424242)] * 6)
        text = Field(sg2d_defn, MaterializedData(data)).describe()
        assert "\tData = " + "AAAABBBB" * 5 + "...\n" in text

    def test_describe_deferred(self, name_defn):
        field = Field(name_defn, DeferredData(4, 16, 200), build=False)
        text = field.describe()
        assert "\tHeader offset = 200\n" in text
        assert "\tData position = 4\n" in text
        assert "\tData length = 16\n" in text

