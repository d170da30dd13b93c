"""User-defined macros: definition, argument reading and parameter substitution."""

from __future__ import annotations

import sys
from dataclasses import dataclass

from .events import BEGIN_FUN, BEGIN_SEQ, BEGIN_SET, END_FUN, END_SEQ, END_SET
from .source import EOI, MAX_MACRO_BODY, WHITESPACE, Source

MAX_MACROS = 64
MAX_MACRO_NAME = 32
MAX_MACRO_PARAMS = 16
MAX_PARAM_NAME = 32
MAX_ARG_LEN = 256

_OPENERS = (BEGIN_FUN, BEGIN_SEQ, BEGIN_SET)
_CLOSERS = (END_FUN, END_SEQ, END_SET)


@dataclass(frozen=True)
class Macro:
    """A named body of source text, with ``$name`` parameter references."""

    name: str
    body: str
    params: tuple[str, ...] = ()


def _skip_space(source: Source) -> str:
    c = source.next_char()
    while c in WHITESPACE:
        c = source.next_char()
    return c


def _read_word(source: Source, c: str, limit: int) -> tuple[str, str]:
    """Read a word starting with ``c``; return it and the character that ended it."""
    chars: list[str] = []
    while c not in WHITESPACE and c not in (END_FUN, EOI) and len(chars) < limit - 1:
        chars.append(c)
        c = source.next_char()
    return "".join(chars), c


def _is_alnum(text: str) -> bool:
    return text != "" and text.isascii() and text.isalnum()


def read_arg(source: Source) -> str | None:
    """Read one macro argument, or return None once the closing ``)`` is consumed.

    An argument starting with a bracket runs to the matching close and
    includes both brackets; otherwise it runs to whitespace or ``)``.
    """
    c = _skip_space(source)
    if c == END_FUN or source.at_end:
        return None
    chars: list[str] = []
    if c in _OPENERS:
        depth = 1
        chars.append(c)
        while depth > 0 and not source.at_end:
            c = source.next_char()
            if c in _OPENERS:
                depth += 1
            elif c in _CLOSERS:
                depth -= 1
            if c == EOI:
                break
            chars.append(c)
    else:
        while c not in WHITESPACE and c != END_FUN and not source.at_end:
            chars.append(c)
            c = source.next_char()
        if c == END_FUN:
            source.push_char(c)
    return "".join(chars)[: MAX_ARG_LEN - 1]


def substitute_params(body: str, params: list[str] | tuple[str, ...], args: list[str]) -> str:
    """Replace each ``$name`` in ``body`` with the matching argument.

    The longest parameter name that matches and is not followed by a letter
    or digit wins; an unrecognised ``$`` is kept as it is.
    """
    out: list[str] = []
    i = 0
    while i < len(body):
        if body[i] == "$":
            best: int | None = None
            best_len = 0
            for index, param in enumerate(params):
                plen = len(param)
                follow = body[i + 1 + plen : i + 2 + plen]
                if plen > best_len and body.startswith(param, i + 1) and not _is_alnum(follow):
                    best, best_len = index, plen
            if best is not None:
                out.append(args[best] if best < len(args) else "")
                i += 1 + best_len
                continue
        out.append(body[i])
        i += 1
    return "".join(out)[: MAX_MACRO_BODY - 1]


class MacroTable:
    """The macros defined so far in a song."""

    def __init__(self) -> None:
        self._macros: dict[str, Macro] = {}

    def __len__(self) -> int:
        return len(self._macros)

    def define(self, source: Source, warn: bool = True) -> Macro | None:
        """Read a definition following ``(def`` and store it.

        Accepts ``name body...)`` and ``(name p1 p2 ...) body...)``.
        Returns the new macro, or None if the definition was rejected.
        """
        params: list[str] = []
        c = _skip_space(source)
        if c == BEGIN_FUN:
            c = _skip_space(source)
            name, c = _read_word(source, c, MAX_MACRO_NAME)
            while c != END_FUN and not source.at_end:
                c = _skip_space(source)
                if c == END_FUN:
                    break
                word, c = _read_word(source, c, MAX_PARAM_NAME)
                if word and len(params) < MAX_MACRO_PARAMS:
                    params.append(word)
            source.push_char(_skip_space(source))
        else:
            name, c = _read_word(source, c, MAX_MACRO_NAME)
            if c == END_FUN:
                source.report_error("def: empty macro body")
                return None
            source.push_char(c)

        if name in self._macros:
            if warn:
                print(f"warning: redefining macro '{name}'", file=sys.stderr)
        elif len(self._macros) >= MAX_MACROS:
            source.report_error("def: macro table full")
            c = source.next_char()
            while c not in (END_FUN, EOI):
                c = source.next_char()
            return None

        chars: list[str] = []
        depth = 1
        truncated_by_end = False
        while depth > 0 and len(chars) < MAX_MACRO_BODY - 1:
            c = source.next_char()
            if c in _OPENERS:
                depth += 1
            elif c in _CLOSERS:
                depth -= 1
                if depth == 0:
                    break
            if source.at_end:
                truncated_by_end = True
                break
            chars.append(c)
        macro = Macro(name, "".join(chars).rstrip(WHITESPACE), tuple(params))
        self._macros[name] = macro
        if truncated_by_end:
            source.report_error("def: unexpected end of file")
        return macro

    def lookup(self, name: str) -> Macro | None:
        """Return the macro called ``name``, if there is one."""
        return self._macros.get(name)

    def expand(self, macro: Macro, source: Source) -> None:
        """Read the call's arguments and push the expanded body into the input."""
        if not macro.params:
            source.push_macro_body(macro.body)
            return
        args = [read_arg(source) or "" for _ in macro.params]
        while read_arg(source) is not None:
            pass
        source.push_macro_body(substitute_params(macro.body, macro.params, args))