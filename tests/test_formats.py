"""
Format Control Expansion Unit Tests
===================================

Test Categories
---------------
1. Expansion: Groups, counted groups, nesting and pass-through items
2. Errors: Unbalanced brackets and unterminated quotes
3. Helpers: Outer bracket checks and repeat prefix handling
"""

import pytest

from ddf_reader.errors import SchemaError
from ddf_reader.iso8211 import (
    expand_bare_repeats,
    expand_format,
    expand_format_items,
    require_outer_brackets,
    split_repeat_prefix,
    strip_repeat_prefix,
)


# =============================================================================
# Expansion Tests
# =============================================================================

class TestExpandFormat:
    """Tests for expand_format and expand_format_items."""

    @pytest.mark.parametrize("controls,expected", [
        ("(A,I,R)", "A,I,R"),
        ("(3(A,B))", "A,B,A,B,A,B"),
        ("(A(2),I(10),3(B(16)),2(R,A))",
         "A(2),I(10),B(16),B(16),B(16),R,A,R,A"),
        ("(A,2(B,3(C)))", "A,B,C,C,C,B,C,C,C"),
        ("((A,B),C)", "A,B,C"),
        ("(b11,b14,2b11,b12)", "b11,b14,2b11,b12"),
    ])
    def test_expansion(self, controls, expected):
        assert expand_format(controls) == expected

    def test_counted_bare_token_passes_through(self):
        """A count in front of a non-bracketed item is left attached."""
        assert expand_format("(2A,3R)") == "2A,3R"

    def test_items_list(self):
        assert expand_format_items("(A(2),2(I,R))") == ["A(2)", "I", "R", "I", "R"]

    def test_without_outer_brackets(self):
        assert expand_format_items("A,2(B)") == ["A", "B", "B"]

    def test_whitespace_ignored(self):
        assert expand_format_items("( A , 2( B ) )") == ["A", "B", "B"]

    def test_quoted_comma_kept_in_item(self):
        """Commas and brackets inside quotes do not split items."""
        assert expand_format_items("(A(','),B)") == ["A(',')", "B"]
        assert expand_format_items('(A(")"),B)') == ['A(")")', "B"]

    def test_empty_controls(self):
        assert expand_format_items("()") == []

    def test_zero_count_group(self):
        assert expand_format_items("(A,0(B))") == ["A"]


# =============================================================================
# Error Tests
# =============================================================================

class TestExpandErrors:
    """Tests for malformed format controls."""

    def test_missing_close_bracket(self):
        with pytest.raises(SchemaError, match="missing"):
            expand_format("(A,2(B)")

    def test_extra_close_bracket(self):
        with pytest.raises(SchemaError, match="unbalanced"):
            expand_format("(A))")

    def test_unterminated_quote(self):
        with pytest.raises(SchemaError, match="unterminated quote"):
            expand_format("(A('x),B)")

    def test_error_carries_controls(self):
        with pytest.raises(SchemaError) as exc_info:
            expand_format("(A")
        assert exc_info.value.format_controls == "(A"


# =============================================================================
# Helper Tests
# =============================================================================

class TestOuterBrackets:
    """Tests for require_outer_brackets."""

    def test_returns_inner_text(self):
        assert require_outer_brackets("(A(2),I)") == "A(2),I"

    def test_surrounding_blanks_ignored(self):
        assert require_outer_brackets("  (A) ") == "A"

    @pytest.mark.parametrize("controls", ["A,B", "(A,B", "A,B)", "", "("])
    def test_not_bracketed(self, controls):
        with pytest.raises(SchemaError, match="not bracketed"):
            require_outer_brackets(controls)

    def test_two_outer_pairs(self):
        with pytest.raises(SchemaError, match="more than one"):
            require_outer_brackets("(A)(B)")

    def test_unbalanced_inner(self):
        with pytest.raises(SchemaError, match="unbalanced"):
            require_outer_brackets("(A(2)")

    def test_bracket_in_quotes(self):
        assert require_outer_brackets("(A(')'))") == "A(')')"


class TestRepeatPrefix:
    """Tests for repeat prefix helpers."""

    @pytest.mark.parametrize("item,expected", [
        ("3A(2)", (3, "A(2)")),
        ("2b24", (2, "b24")),
        ("A", (1, "A")),
        ("b11", (1, "b11")),
        ("12", (1, "12")),
        ("", (1, "")),
    ])
    def test_split(self, item, expected):
        assert split_repeat_prefix(item) == expected

    def test_strip(self):
        assert strip_repeat_prefix("10R") == "R"
        assert strip_repeat_prefix("R") == "R"

    def test_expand_bare_repeats(self):
        assert expand_bare_repeats(["2A", "R"]) == ["A", "A", "R"]
        assert expand_bare_repeats(["b11", "b14", "2b11", "b12"]) == [
            "b11", "b14", "b11", "b11", "b12",
        ]
