"""The song compiler: elements, sequences, sets, parameters, notes and functions."""

from __future__ import annotations

import sys

from .events import (
    BEGIN_FUN,
    BEGIN_PARAM,
    BEGIN_SEQ,
    BEGIN_SET,
    DEEMPHASIZE,
    DEFAULT_TEMPO,
    EMPHASIZE,
    END_FUN,
    END_SEQ,
    END_SET,
    FORTE,
    OCTAVE_DOWN,
    OCTAVE_UP,
    PIANO,
    TIE,
    Environment,
    Node,
    NodeType,
    merge_events,
)
from .functions import BUILTINS, FunctionResult
from .macros import MacroTable
from .notes import diatonic_step, is_note_name, is_real_note, read_key, read_note_number
from .output import Renderer
from .source import DIGITS, EOI, WHITESPACE, AmlError, Source, Tracer

MAX_FUNCTION_NAME = 32
MIN_TEMPO = 8.0
MAX_TEMPO = 1024.0
MIN_DUTY = 8
MAX_DUTY = 100


def _is_digit(c: str) -> bool:
    return len(c) == 1 and c in DIGITS


def _is_alpha(c: str) -> bool:
    return len(c) == 1 and c.isascii() and c.isalpha()


class Compiler:
    """Parses song text from a source and hands each top-level element to a renderer."""

    def __init__(
        self,
        source: Source,
        renderer: Renderer | None = None,
        warn: bool = True,
        trace: bool = False,
    ) -> None:
        self.source = source
        self.renderer = renderer if renderer is not None else Renderer()
        self.warn = warn
        self.tracer = Tracer(trace)
        if trace:
            self.renderer.tracer.enabled = True
        self.macros = MacroTable()
        self.tempo = DEFAULT_TEMPO
        self.msec_per_beat = 60000.0 / DEFAULT_TEMPO
        self.level = 0
        self.ties = 0
        self.current_note = 60
        self.song_duty = Environment().duty

    def _skip_space(self) -> str:
        c = self.source.next_char()
        while c in WHITESPACE:
            c = self.source.next_char()
        return c

    def song(self, env: Environment | None = None) -> bool:
        """Compile the whole input, rendering each top-level element in turn."""
        env = (env if env is not None else Environment()).copy()
        while True:
            self.renderer.render(self.element(env) or [], self.msec_per_beat)
            self.source.push_char(self._skip_space())
            env.start += self.tempo / DEFAULT_TEMPO
            if self.source.at_end:
                return True

    def element(self, env: Environment) -> list[Node] | None:
        """Parse one top-level element and return its events."""
        self.tracer.enter("element")
        c = self._skip_space()
        self.level += 1
        try:
            if _is_digit(c):
                result, _ = self.dur(c, env)
            elif c == BEGIN_PARAM:
                self.param(env)
                result = None
            elif c == BEGIN_FUN:
                result = self.fun(c, env).events or None
            else:
                result = self.basic(c, env)
        finally:
            self.level -= 1
        self.tracer.leave("element")
        return result

    def dur(self, c: str, env: Environment) -> tuple[list[Node] | None, int]:
        """Parse a duration multiplier and the item it applies to.

        Returns the events and the multiplier; a number followed by a space
        yields no events.
        """
        self.source.push_char(c)
        n = self.source.get_num()
        if n <= 0:
            self.source.report_error("dur: illegal number")
            return None, n
        c = self.source.next_char()
        if c in WHITESPACE:
            return None, n
        env.duration *= n
        events = self.basic(c, env)
        env.duration /= n
        return events, n

    def dyn(self, c: str, env: Environment) -> list[Node] | None:
        """Parse a ``!`` or ``?`` accent and the item it applies to."""
        if c == FORTE:
            mult = EMPHASIZE
        elif c == PIANO:
            mult = DEEMPHASIZE
        else:
            self.source.report_error("dyn: eh? what happened?")
            return None
        env.volume *= mult
        events = self.basic(self.source.next_char(), env)
        env.volume /= mult
        return events

    def basic(self, c: str, env: Environment) -> list[Node] | None:
        """Parse a sequence, set, accent, parameter, function or note."""
        self.tracer.enter("basic")
        if c == BEGIN_SEQ:
            events = self.seq(c, env)
        elif c == BEGIN_SET:
            events = self.set(c, env)
        elif c in (PIANO, FORTE):
            events = self.dyn(c, env)
        elif c == BEGIN_PARAM:
            self.param(env)
            events = None
        elif c == BEGIN_FUN:
            events = self.fun(c, env).events or None
        elif c == ".":
            events = self.dot_note(env)
        elif is_note_name(c):
            events = self.note(c, env)
        else:
            self.source.report_error("basic: ")
            return None
        self.tracer.leave("basic")
        return events

    def seq(self, c: str, env: Environment) -> list[Node] | None:
        """Parse ``[...]``: the items share the enclosing duration equally.

        A leading bare number is a check count that must equal the number
        of time slots used.
        """
        if c != BEGIN_SEQ:
            raise AmlError("seq:  no BEGIN_SEQ")
        self.tracer.enter("seq")
        local = env.copy()
        local.start = 0.0
        local.duration = 1.0
        count = 0
        check = 0
        events: list[Node] = []
        while True:
            c = self._skip_space()
            if c == END_SEQ:
                break
            if _is_digit(c):
                produced, n = self.dur(c, local)
                if not produced:
                    if not events:
                        check = n
                    continue
                count += n
            elif c == BEGIN_FUN:
                result = self.fun(c, local)
                count += result.element_count
                produced = result.events
            else:
                produced = self.basic(c, local)
                if not produced:
                    continue
                count += 1
            local.start = float(count)
            local.duration = 1.0
            local.volume = env.volume
            if produced:
                events.extend(produced)

        if check and check != count:
            self.source.report_error("seq: check doesn't equal count")
        if events and count:
            for node in events:
                node.duration = (node.duration / count) * env.duration
                node.start = (node.start / count) * env.duration + env.start
        self.tracer.leave("seq")
        return events or None

    def set(self, c: str, env: Environment) -> list[Node] | None:
        """Parse ``{...}``: the items all start together."""
        if c != BEGIN_SET:
            raise AmlError("set: no beginning")
        self.tracer.enter("set")
        events: list[Node] = []
        while True:
            c = self._skip_space()
            if _is_digit(c):
                self.source.report_error("set: can't modify duration")
                self.source.report_error("Can't recognize item in a set")
                return None
            if c == END_SET:
                break
            events = merge_events(events, self.basic(c, env) or [])
        self.tracer.leave("set")
        return events or None

    def param(self, env: Environment) -> None:
        """Parse a parameter setting such as ``-o 5``, ``-ch 2`` or ``-t 120``."""
        chars: list[str] = []
        c = self.source.next_char()
        while _is_alpha(c):
            chars.append(c)
            c = self.source.next_char()
        self.source.push_char(c)
        name = "".join(chars)

        if name == "ac":
            read_key(self.source, env)
        elif name == "ch":
            env.channel = self.source.get_num() & 0xFF
        elif name == "o":
            env.octave = self.source.get_num() & 0xFF
        elif name == "v":
            env.volume = float(self.source.get_num())
        elif name in ("t", "tempo"):
            if self.level != 1:
                self.source.report_error("tempo must be at top level")
            else:
                tempo = float(self.source.get_num())
                self.tempo = min(max(tempo, MIN_TEMPO), MAX_TEMPO)
                self.msec_per_beat = 60000.0 / self.tempo
        elif name in ("d", "duty"):
            if self.level != 1:
                self.source.report_error("duty must be at top level")
            else:
                duty = self.source.get_num()
                if duty > MAX_DUTY:
                    self.tempo = float(MAX_DUTY)
                if duty < MIN_DUTY:
                    duty = MIN_DUTY
                self.song_duty = duty & 0xFF
        else:
            self.source.report_error("unknown parameter:")
            out = self.source.out if self.source.out is not None else sys.stdout
            print(f"<{name}>", file=out)

    def _function_name(self) -> str:
        chars: list[str] = []
        while True:
            c = self.source.next_char()
            if c in WHITESPACE or c in (END_FUN, EOI) or len(chars) >= MAX_FUNCTION_NAME:
                return "".join(chars)
            chars.append(c)

    def fun(self, c: str, env: Environment) -> FunctionResult:
        """Parse a ``(name ...)`` call: ``def``, a built-in or a defined macro."""
        if c != BEGIN_FUN:
            raise AmlError("fun: bad beginning")
        self.tracer.enter("fun")
        name = self._function_name()
        if name == "def":
            self.macros.define(self.source, self.warn)
            result = FunctionResult()
        elif name in BUILTINS:
            result = BUILTINS[name](self, env)
        else:
            macro = self.macros.lookup(name)
            if macro is not None:
                self.macros.expand(macro, self.source)
                result = FunctionResult([], 0)
            else:
                self.source.report_error("unknown function")
                result = FunctionResult()
        self.tracer.leave("fun")
        return result

    def note(self, name: str, env: Environment) -> list[Node] | None:
        """Parse a note or rest, with its accidentals, octave marks and ties."""
        end_tie = False
        if name == TIE:
            end_tie = True
            self.ties -= 1
            if self.ties < 0:
                self.source.report_error("dangling end of tie")
                self.ties += 1
                return None
            name = self.source.next_char()
            if not is_real_note(name):
                self.source.report_error("Incorrect note name")
                return None

        number = read_note_number(self.source, name, env)

        start_tie = False
        c = self.source.next_char()
        if c == TIE:
            start_tie = True
            self.ties += 1
        else:
            self.source.push_char(c)

        if start_tie and end_tie:
            return None

        if start_tie:
            kind = NodeType.START_TIE
        elif end_tie:
            kind = NodeType.END_TIE
        else:
            kind = NodeType.NOTE
        if number == 0:
            kind = NodeType.REST
        else:
            self.current_note = number
        self.tracer.leave("note", number)
        return [
            Node(
                type=kind,
                start=env.start,
                duration=env.duration,
                volume=env.volume,
                duty=env.duty,
                channel=env.channel,
                note=number & 0xFF,
            )
        ]

    def dot_note(self, env: Environment) -> list[Node]:
        """Parse ``.``: the last note again, moved one scale degree per ``/`` or ``\\``."""
        steps = 0
        c = self.source.next_char()
        while c in (OCTAVE_UP, OCTAVE_DOWN):
            steps += 1 if c == OCTAVE_UP else -1
            c = self.source.next_char()
        self.source.push_char(c)
        self.current_note = diatonic_step(self.current_note, steps, env)
        return [
            Node(
                type=NodeType.NOTE,
                start=env.start,
                duration=env.duration,
                volume=env.volume,
                duty=env.duty,
                channel=env.channel,
                note=self.current_note & 0xFF,
            )
        ]


def compile_text(
    text: str, warn: bool = True, trace: bool = False, print_object: bool = False
) -> bytes:
    """Compile song text and return the resulting MIDI file."""
    source = Source(text)
    renderer = Renderer(print_object=print_object)
    Compiler(source, renderer, warn=warn, trace=trace).song(Environment())
    return renderer.close()