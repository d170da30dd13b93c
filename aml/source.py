"""Character input for the compiler: comments, quotes, pushback, macro streams and tracing."""

from __future__ import annotations

import sys
from dataclasses import dataclass
from typing import TextIO

EOI = "\0"
DIGITS = "0123456789"
WHITESPACE = " \t\n\v\f\r"

MAX_INPUT = 32768
MAX_MACRO_BODY = 2048
MAX_MACRO_DEPTH = 16
PUSHBACK_SLOTS = 2
TRACE_INDENT = 3

_RESYNC = "[]{}() "


class AmlError(Exception):
    """A fatal error that stops compilation."""


class ParseError(AmlError):
    """A syntax error after which the end of the input was reached."""


def _format_value(value: object) -> str:
    if isinstance(value, float):
        return f"{value:f}"
    return str(value)


class Tracer:
    """Indented call tracing, written to ``stream`` (standard error by default)."""

    def __init__(self, enabled: bool = False, stream: TextIO | None = None) -> None:
        self.enabled = enabled
        self.stream = stream
        self._indent = 6

    def _write(self, text: str) -> None:
        print(text, file=self.stream if self.stream is not None else sys.stderr)

    def enter(self, name: str) -> None:
        """Note entry into ``name`` and indent what follows."""
        if not self.enabled:
            return
        self._write(f"{' ' * self._indent}->{name}")
        self._indent += TRACE_INDENT

    def leave(self, name: str, value: object = None) -> None:
        """Note leaving ``name``, optionally with the value it produced."""
        if not self.enabled:
            return
        self._indent -= TRACE_INDENT
        line = f"{' ' * max(self._indent, 0)}<-{name}"
        if value is not None:
            line += f": {_format_value(value)}"
        self._write(line)


@dataclass
class _MacroStream:
    text: str
    pos: int = 0


class Source:
    """The input text of a song, read one character at a time.

    Characters pushed back are read first, then pending macro bodies
    (innermost first), then the main text.  At the end of the input
    :data:`EOI` is returned.
    """

    def __init__(self, text: str, out: TextIO | None = None) -> None:
        if len(text) >= MAX_INPUT:
            raise AmlError("couldn't read entire file")
        nul = text.find(EOI)
        if nul >= 0:
            text = text[:nul]
        self.out = out
        self.error_count = 0
        self._text = text
        self._pos = 0
        self._line = 1
        self._line_start = 0
        self._pushback: list[str] = []
        self._macros: list[_MacroStream] = []
        self._at_end = False

    @property
    def at_end(self) -> bool:
        """True once the end of the main text has been read."""
        return self._at_end

    @property
    def line(self) -> int:
        """The current line number, counting from 1."""
        return self._line

    def _getc(self) -> str:
        if self._pushback:
            return self._pushback.pop()
        while self._macros:
            stream = self._macros[-1]
            if stream.pos < len(stream.text):
                c = stream.text[stream.pos]
                stream.pos += 1
                return c
            self._macros.pop()
        if self._pos >= len(self._text):
            self._at_end = True
            return EOI
        c = self._text[self._pos]
        if c == "\n":
            self._line += 1
            self._line_start = self._pos + 1
        self._pos += 1
        return c

    def next_char(self) -> str:
        """Return the next significant character.

        Quoted text and ``#`` comments are skipped; newlines and ``|``
        read as spaces.
        """
        in_quote = False
        while True:
            c = self._getc()
            if c == EOI:
                return EOI
            if c == '"':
                in_quote = not in_quote
                continue
            if not in_quote:
                break
        if c == "#":
            c = self._getc()
            while c not in ("\n", EOI):
                c = self._getc()
        if c in ("\n", "|"):
            c = " "
        return c

    def push_char(self, c: str) -> None:
        """Push a character back; at most two are held, extras are dropped."""
        if len(self._pushback) < PUSHBACK_SLOTS:
            self._pushback.append(c)

    def push_macro_body(self, body: str) -> None:
        """Insert ``body`` into the input, to be read before what follows."""
        if len(self._macros) >= MAX_MACRO_DEPTH:
            print("macro nesting too deep", file=sys.stderr)
            return
        nul = body.find(EOI)
        if nul >= 0:
            body = body[:nul]
        self._macros.append(_MacroStream(body[: MAX_MACRO_BODY - 1]))

    def get_num(self) -> int:
        """Read an optionally signed integer; return 0 if there are no digits.

        A lone sign is pushed back together with the character after it.
        """
        c = self.next_char()
        while c in WHITESPACE:
            c = self.next_char()
        sign = 1
        if c in ("-", "+"):
            mark = c
            c = self.next_char()
            if c not in DIGITS or c == "":
                self.push_char(c)
                self.push_char(mark)
                return 0
            if mark == "-":
                sign = -1
        value = 0
        while c != "" and c in DIGITS:
            value = value * 10 + int(c)
            c = self.next_char()
        self.push_char(c)
        return sign * value

    def report_error(self, message: str) -> None:
        """Report a syntax error at the current position and resynchronise.

        Input is skipped up to and including the next bracket, parenthesis
        or space.  If the end of the input is reached, :class:`ParseError`
        is raised.
        """
        out = self.out if self.out is not None else sys.stdout
        self.error_count += 1
        last = self._text[self._pos - 1] if self._pos > 0 else EOI
        print(
            f"{message} error in line {self._line}, character is <{last}> (decimal {ord(last)}):",
            file=out,
        )
        end = self._text.find("\n", self._line_start)
        if end < 0:
            end = len(self._text)
        print(self._text[self._line_start:end], file=out)
        print(" " * (self._pos - self._line_start) + "^", file=out)
        c = self.next_char()
        while c != EOI and c not in _RESYNC:
            c = self.next_char()
        if self._at_end:
            print("End of file reached", file=out)
            raise ParseError(message)