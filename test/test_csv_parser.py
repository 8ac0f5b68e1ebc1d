"""
Unit tests for CSV parsing.
"""

import pytest

from contact_import.contacts.rules import CONTACT_CSV_TEMPLATE
from contact_import.parsing.csv_parser import (
    build_field_keys,
    export_rows,
    normalize_header,
    parse_csv,
    read_table,
    render_template,
)
from contact_import.shared.exceptions import ParseError


class TestNormalizeHeader:
    """Tests for header normalization."""

    def test_lowercase_conversion(self):
        """Test that headers are converted to lowercase."""
        assert normalize_header("Phone_Number") == "phone_number"
        assert normalize_header("EMAIL") == "email"

    def test_whitespace_runs_to_single_underscore(self):
        """Test that runs of whitespace collapse to one underscore."""
        assert normalize_header("phone number") == "phone_number"
        assert normalize_header("first \t  name") == "first_name"

    def test_strip_whitespace(self):
        """Test that surrounding whitespace is stripped."""
        assert normalize_header("  phone_number  ") == "phone_number"

    def test_hyphen_is_kept(self):
        """Test that only whitespace is rewritten."""
        assert normalize_header("E-Mail") == "e-mail"


class TestBuildFieldKeys:
    """Tests for unique field key generation."""

    def test_duplicate_headers_get_suffix(self):
        assert build_field_keys(["name", "Name", " NAME "]) == ["name", "name_1", "name_2"]

    def test_blank_header_uses_position(self):
        assert build_field_keys(["a", "", "c"]) == ["a", "column_2", "c"]

    def test_suffix_does_not_collide_with_real_header(self):
        keys = build_field_keys(["name", "name", "name_1"])
        assert len(set(keys)) == 3
        assert keys[:2] == ["name", "name_1"]


class TestParseCSV:
    """Tests for CSV parsing."""

    def test_parse_with_header(self):
        """Test parsing a CSV with a header row."""
        rows = parse_csv("Full Name,Phone Number\nJohn,+14155551234\nJane,+14155551235\n")

        assert rows == [
            {"full_name": "John", "phone_number": "+14155551234"},
            {"full_name": "Jane", "phone_number": "+14155551235"},
        ]

    def test_values_are_not_trimmed(self):
        rows = parse_csv("name\n  John  \n")
        assert rows[0]["name"] == "  John  "

    def test_short_row_padded_with_empty_strings(self):
        """Test that missing columns default to empty string."""
        rows = parse_csv("a,b,c\n1\n")
        assert rows == [{"a": "1", "b": "", "c": ""}]

    def test_long_row_drops_surplus_cells(self):
        rows = parse_csv("a,b\n1,2,3\n")
        assert rows == [{"a": "1", "b": "2"}]

    def test_empty_lines_skipped(self):
        rows = parse_csv("a,b\n\n1,2\n   \n\n3,4\n")
        assert [row["a"] for row in rows] == ["1", "3"]

    def test_delimiter_only_line_is_a_row(self):
        """A line of bare delimiters keeps its place as a row of empty cells."""
        rows = parse_csv("phone_number,name\n+919876543210,Asha\n,\n+919876543211,Ravi\n")

        assert len(rows) == 3
        assert rows[1] == {"phone_number": "", "name": ""}

    def test_header_only(self):
        """Test that a header-only file yields no rows but keeps the keys."""
        keys, rows = read_table("phone_number,name\n")
        assert keys == ["phone_number", "name"]
        assert rows == []

    def test_empty_input(self):
        assert read_table("") == ([], [])

    def test_without_header(self):
        rows = parse_csv("1,2\n3\n", has_header=False)
        assert rows == [
            {"column_1": "1", "column_2": "2"},
            {"column_1": "3", "column_2": ""},
        ]

    def test_custom_delimiter(self):
        rows = parse_csv("phone;email\n+14155551234;test@example.com\n", delimiter=";")
        assert rows == [{"phone": "+14155551234", "email": "test@example.com"}]

    def test_quoted_fields(self):
        rows = parse_csv('name,note\n"Doe, John","line one\nline two"\n')
        assert rows == [{"name": "Doe, John", "note": "line one\nline two"}]

    def test_bytes_input_with_bom(self):
        rows = parse_csv("\ufeffPhone\n+14155551234\n".encode("utf-8"))
        assert rows == [{"phone": "+14155551234"}]

    def test_undecodable_bytes_raise_parse_error(self):
        with pytest.raises(ParseError) as exc_info:
            parse_csv(b"name\n\xff\xfe\xfa\n")
        assert "encoding" in exc_info.value.message.lower()

    def test_bad_quoting_raises_parse_error(self):
        """Test that strict quoting violations are fatal."""
        with pytest.raises(ParseError) as exc_info:
            parse_csv('a,b\n"x"y,1\n')
        assert "CSV parsing error" in str(exc_info.value)

    def test_every_row_has_same_keys(self):
        rows = parse_csv("a,b,c\n1,2,3\n4\n5,6,7,8\n")
        assert all(list(row.keys()) == ["a", "b", "c"] for row in rows)


class TestExport:
    """Tests for CSV rendering."""

    def test_render_template(self):
        text = render_template(CONTACT_CSV_TEMPLATE)
        lines = text.splitlines()

        assert lines[0] == "phone_number,name,email,company,location"
        assert lines[1] == '+919876543210,John Doe,john@example.com,Acme Inc,"Mumbai, India"'

    def test_export_rows_uses_first_row_keys(self):
        text = export_rows([{"a": "1", "b": "2"}, {"a": "3"}])
        assert text == "a,b\n1,2\n3,\n"

    def test_export_then_parse_keeps_values(self):
        rows = [{"name": "Doe, John", "phone": "+14155551234"}]
        assert parse_csv(export_rows(rows)) == rows
