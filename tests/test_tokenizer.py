"""
Tests for the quoted-field row tokenizer.
"""

import io

import pytest

from civstat.errors import StructuralError, TokenizerError
from civstat.tokenizer import RowReader, iter_chars


def rows_of(text):
    return list(RowReader(text))


class TestBasicRows:
    """Plain, quoted and escaped fields."""

    def test_simple_row(self):
        assert RowReader("a,b,c\n").read_row() == ["a", "b", "c"]

    def test_quoted_comma(self):
        assert RowReader('a,"b,c",d\n').read_row() == ["a", "b,c", "d"]

    def test_doubled_quote(self):
        assert RowReader('a,"b""c",d\n').read_row() == ["a", 'b"c', "d"]

    def test_quoted_newlines_are_kept(self):
        assert rows_of('"line1\nline2","x\r\ny"\n') == [["line1\nline2", "x\r\ny"]]

    def test_empty_fields(self):
        assert RowReader(",,\n").read_row() == ["", "", ""]

    def test_empty_quoted_field(self):
        assert RowReader('"",x\n').read_row() == ["", "x"]

    def test_blank_line_is_single_empty_field(self):
        assert rows_of("a\n\nb\n") == [["a"], [""], ["b"]]


class TestLineEndings:
    """LF, CRLF and end-of-input handling."""

    def test_crlf(self):
        assert rows_of("a,b\r\nc,d\r\n") == [["a", "b"], ["c", "d"]]

    def test_crlf_after_quote(self):
        assert rows_of('"a"\r\n"b"\r\n') == [["a"], ["b"]]

    def test_trailing_comma_before_crlf(self):
        assert rows_of("a,\r\n") == [["a", ""]]

    def test_last_row_without_newline(self):
        assert rows_of("a,b\nc,d") == [["a", "b"], ["c", "d"]]

    def test_trailing_comma_at_end_of_input(self):
        assert rows_of("a,") == [["a", ""]]

    def test_closed_quote_at_end_of_input(self):
        assert rows_of('"a"') == [["a"]]

    def test_empty_input(self):
        assert RowReader("").read_row() is None

    def test_none_after_last_row(self):
        reader = RowReader("a\n")
        assert reader.read_row() == ["a"]
        assert reader.read_row() is None
        assert reader.rows_read == 1


class TestErrors:
    """Grammar violations are structural errors."""

    def test_unclosed_quote(self):
        reader = RowReader('a,"b')
        with pytest.raises(StructuralError, match="Unclosed quoted field"):
            reader.read_row()

    def test_unclosed_quote_alone(self):
        with pytest.raises(TokenizerError):
            RowReader('"a').read_row()

    def test_quote_inside_unquoted_field(self):
        with pytest.raises(TokenizerError, match="Unexpected quote"):
            RowReader('ab"c\n').read_row()

    def test_character_after_closing_quote(self):
        with pytest.raises(TokenizerError, match="after closing quote"):
            RowReader('"a"b\n').read_row()

    def test_lone_cr(self):
        with pytest.raises(TokenizerError, match="CR not followed by LF"):
            RowReader("a\rb\n").read_row()

    def test_cr_at_end_of_input(self):
        with pytest.raises(TokenizerError, match="File ends with CR"):
            RowReader("a\r").read_row()

    def test_error_reports_position(self):
        reader = RowReader('a,b\nc,d"\n')
        assert reader.read_row() == ["a", "b"]
        with pytest.raises(TokenizerError) as exc:
            reader.read_row()
        details = exc.value.details
        assert details["line"] == 2
        assert details["column"] == 4
        assert details["row"] == 1
        assert details["field"] == 1


class TestRoundTrip:
    """Joining plain fields with commas and re-reading gives them back."""

    @pytest.mark.parametrize("fields", [
        ["19103", "2021-05-01 17:22:10", "40", "100"],
        ["", "x", ""],
        ["only"],
        ["a b", " padded ", "ümlaut"],
    ])
    def test_plain_fields(self, fields):
        assert RowReader(",".join(fields) + "\n").read_row() == fields


class TestIterChars:
    """Reading characters from a file object."""

    def test_small_chunks(self):
        fh = io.StringIO('a,"b\r\nc"\r\nd,e\r\n', newline="")
        assert list(RowReader(iter_chars(fh, chunk_size=3))) == [["a", "b\r\nc"], ["d", "e"]]
