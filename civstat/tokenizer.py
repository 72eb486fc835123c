"""
Row tokenizer (quoted CSV grammar)
==================================

Dataset files are parsed one character at a time by a small finite-state
machine. Splitting on newlines or commas is not enough because a quoted field
may contain both:

    zip_code,note
    19103,"Center City, ""East""
    second line of the note"

This file provides:
- `iter_chars` (turns an open text file into a character stream)
- `RowReader` (turns a character stream into rows of field strings)

Grammar, per character:

    START_FIELD      ,  -> emit "" ; "  -> IN_QUOTED_FIELD ; CR -> pending ;
                     LF -> emit "", end row ; other -> buffer, IN_FIELD
    IN_FIELD         ,  -> emit ; "  -> error ; CR -> pending ;
                     LF -> emit, end row ; other -> buffer
    IN_QUOTED_FIELD  "  -> AFTER_QUOTE ; other (CR and LF too) -> buffer
    AFTER_QUOTE      "  -> buffer '"', IN_QUOTED_FIELD ; , -> emit ;
                     CR -> pending ; LF -> emit, end row ; other -> error

A pending CR must be followed by LF.
"""

from __future__ import annotations
from enum import Enum
from typing import IO, Iterable, Iterator, List, Optional

from .errors import TokenizerError

COMMA = ","
QUOTE = '"'
CR = "\r"
LF = "\n"


class State(Enum):
    START_FIELD = "start_field"
    IN_FIELD = "in_field"
    IN_QUOTED_FIELD = "in_quoted_field"
    AFTER_QUOTE = "after_quote"


def iter_chars(fh: IO[str], chunk_size: int = 64 * 1024) -> Iterator[str]:
    """Yield the characters of an open text file.

    Open the file with `newline=""` so CR characters reach the tokenizer
    untranslated.
    """
    while True:
        chunk = fh.read(chunk_size)
        if not chunk:
            return
        yield from chunk


class RowReader:
    """Pull rows out of a character source.

    Any iterable of single characters works as a source, including a plain
    string:

        >>> RowReader('a,"b,c",d\\n').read_row()
        ['a', 'b,c', 'd']
    """

    def __init__(self, chars: Iterable[str]) -> None:
        self._chars = iter(chars)
        # Position of the last character read, for error messages
        self.line = 1
        self.column = 0
        self.rows_read = 0
        self._prev: Optional[str] = None

    def __iter__(self) -> Iterator[List[str]]:
        while True:
            row = self.read_row()
            if row is None:
                return
            yield row

    def read_row(self) -> Optional[List[str]]:
        """Return the next row, or None at a clean end of input.

        Raises:
            TokenizerError: stray quote, bad character after a closing quote,
                CR without LF, or a quoted field left open at end of input.
        """
        fields: List[str] = []
        buf: List[str] = []
        state = State.START_FIELD
        cr_pending = False

        for c in self._chars:
            self._step(c)

            if cr_pending:
                if c != LF:
                    raise self._error("CR not followed by LF", fields)
                fields.append("".join(buf))
                return self._finish(fields)

            if state is State.START_FIELD:
                if c == COMMA:
                    fields.append("")
                elif c == QUOTE:
                    state = State.IN_QUOTED_FIELD
                elif c == CR:
                    cr_pending = True
                elif c == LF:
                    fields.append("")
                    return self._finish(fields)
                else:
                    buf.append(c)
                    state = State.IN_FIELD

            elif state is State.IN_FIELD:
                if c == COMMA:
                    fields.append("".join(buf))
                    buf = []
                    state = State.START_FIELD
                elif c == QUOTE:
                    raise self._error("Unexpected quote", fields)
                elif c == CR:
                    cr_pending = True
                elif c == LF:
                    fields.append("".join(buf))
                    return self._finish(fields)
                else:
                    buf.append(c)

            elif state is State.IN_QUOTED_FIELD:
                if c == QUOTE:
                    state = State.AFTER_QUOTE
                else:
                    buf.append(c)

            else:  # AFTER_QUOTE
                if c == QUOTE:
                    buf.append(QUOTE)
                    state = State.IN_QUOTED_FIELD
                elif c == COMMA:
                    fields.append("".join(buf))
                    buf = []
                    state = State.START_FIELD
                elif c == CR:
                    cr_pending = True
                elif c == LF:
                    fields.append("".join(buf))
                    return self._finish(fields)
                else:
                    raise self._error("Unexpected character after closing quote", fields)

        # End of input
        if cr_pending:
            raise self._error("File ends with CR not followed by LF", fields)
        if state is State.IN_QUOTED_FIELD:
            raise self._error("Unclosed quoted field", fields)
        if state is not State.START_FIELD or buf or fields:
            fields.append("".join(buf))
            return self._finish(fields)
        return None

    # ---------------- Helpers ----------------
    def _step(self, c: str) -> None:
        if self._prev == LF:
            self.line += 1
            self.column = 0
        self.column += 1
        self._prev = c

    def _finish(self, fields: List[str]) -> List[str]:
        self.rows_read += 1
        return fields

    def _error(self, reason: str, fields: List[str]) -> TokenizerError:
        return TokenizerError(reason, self.line, self.column, self.rows_read, len(fields))
