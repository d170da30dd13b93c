"""Built-in functions: ornaments, repeats, dynamics ramps and MIDI controls."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Protocol

from .events import (
    DEEMPHASIZE,
    EMPHASIZE,
    END_FUN,
    FORTE,
    PIANO,
    TUNING_BIAS,
    Environment,
    Node,
    NodeType,
)
from .notes import NOTE_TABLE, is_real_note, note_index, read_note_number
from .source import DIGITS, EOI, WHITESPACE, Source

MAX_FN_ELEMS = 256


class Parser(Protocol):
    """What the built-in functions need from the compiler."""

    source: Source

    def basic(self, c: str, env: Environment) -> list[Node] | None: ...


@dataclass
class FunctionResult:
    """Events produced by a function and the number of sequence slots they fill."""

    events: list[Node] = field(default_factory=list)
    element_count: int = 1


def _skip_space(source: Source) -> str:
    c = source.next_char()
    while c in WHITESPACE:
        c = source.next_char()
    return c


def _skip_to_close(source: Source) -> None:
    c = source.next_char()
    while c not in (END_FUN, EOI):
        c = source.next_char()


def _finish_call(source: Source) -> None:
    c = _skip_space(source)
    if c != END_FUN:
        source.push_char(c)


def _note_node(env: Environment, start: float, duration: float, note: int) -> Node:
    return Node(
        type=NodeType.NOTE,
        start=start,
        duration=duration,
        volume=env.volume,
        duty=env.duty,
        channel=env.channel,
        note=note,
    )


def _copy_node(node: Node, offset: float) -> Node:
    return Node(
        type=node.type,
        start=node.start + offset,
        duration=node.duration,
        volume=node.volume,
        duty=node.duty,
        channel=node.channel,
        note=node.note,
    )


def turn(parser: Parser, env: Environment) -> FunctionResult:
    """``(turn note)``: upper neighbour, note, lower neighbour, note, each a quarter long."""
    source = parser.source
    c = _skip_space(source)
    if not is_real_note(c):
        source.report_error("turn: expected a note name")
        _skip_to_close(source)
        return FunctionResult()

    base = note_index(c)
    main_note = read_note_number(source, c.lower(), env)
    base_value = NOTE_TABLE[base] + env.key[base]

    def neighbour(index: int, octave_adjust: int) -> int:
        value = NOTE_TABLE[index] + env.key[index]
        return (env.octave + octave_adjust) * 12 + value + TUNING_BIAS + env.transpose

    upper = (base + 1) % 7
    upper_value = NOTE_TABLE[upper] + env.key[upper]
    upper_note = neighbour(upper, 1 if upper_value < base_value else 0)

    lower = (base + 6) % 7
    lower_value = NOTE_TABLE[lower] + env.key[lower]
    lower_note = neighbour(lower, -1 if lower_value > base_value else 0)

    _finish_call(source)

    step = env.duration / 4.0
    notes = (upper_note, main_note, lower_note, main_note)
    events = [_note_node(env, env.start + i * step, step, note) for i, note in enumerate(notes)]
    return FunctionResult(events)


def repeat(parser: Parser, env: Environment) -> FunctionResult:
    """``(rpt n events...)``: play the events ``n`` times (twice if no count is given)."""
    source = parser.source
    c = _skip_space(source)
    source.push_char(c)
    count = source.get_num() if len(c) == 1 and c in DIGITS else 2
    if count <= 0:
        source.report_error("rpt: repeat count must be > 0")
        _skip_to_close(source)
        return FunctionResult()
    if count > MAX_FN_ELEMS:
        source.report_error("rpt: repeat count exceeds maximum")
        count = MAX_FN_ELEMS

    inner = env.copy()
    inner.duration = 1.0
    once: list[Node] = []
    slots = 0
    while True:
        c = _skip_space(source)
        if c in (END_FUN, EOI):
            break
        inner.start = env.start + slots
        produced = parser.basic(c, inner)
        if produced:
            once.extend(produced)
            slots += 1

    if not once:
        return FunctionResult([], count)

    events = list(once)
    for rep in range(1, count):
        events.extend(_copy_node(node, float(rep * slots)) for node in once)
    return FunctionResult(events, count * slots)


def _read_volume_spec(source: Source, env: Environment, default: float) -> float:
    c = _skip_space(source)
    if c in (FORTE, PIANO):
        factor = EMPHASIZE if c == FORTE else DEEMPHASIZE
        mark = c
        volume = env.volume
        while c == mark:
            volume *= factor
            c = source.next_char()
        source.push_char(c)
        return volume
    source.push_char(c)
    return default


def _ramp(parser: Parser, env: Environment, start: float, end: float) -> FunctionResult:
    source = parser.source
    inner = env.copy()
    inner.duration = 1.0
    elements: list[list[Node] | None] = []
    while True:
        c = _skip_space(source)
        if c in (END_FUN, EOI):
            break
        if len(elements) >= MAX_FN_ELEMS:
            source.report_error("cresc: too many elements")
            _skip_to_close(source)
            break
        inner.start = env.start + len(elements)
        elements.append(parser.basic(c, inner))

    if not elements:
        return FunctionResult()

    if len(elements) == 1:
        nodes = elements[0]
        if not nodes:
            return FunctionResult()
        if len(nodes) == 1:
            nodes[0].volume = (start + end) * 0.5
        else:
            last = len(nodes) - 1
            for i, node in enumerate(nodes):
                node.volume = start + (end - start) * i / last
        return FunctionResult(nodes, 1)

    last = len(elements) - 1
    events: list[Node] = []
    for i, nodes in enumerate(elements):
        if not nodes:
            continue
        volume = start + (end - start) * i / last
        for node in nodes:
            node.volume = volume
        events.extend(nodes)
    return FunctionResult(events, len(elements))


def cresc(parser: Parser, env: Environment) -> FunctionResult:
    """``(cresc [start] [end] events...)``: a rising volume ramp over the events."""
    start = _read_volume_spec(parser.source, env, env.volume * DEEMPHASIZE)
    end = _read_volume_spec(parser.source, env, env.volume * EMPHASIZE)
    return _ramp(parser, env, start, end)


def decresc(parser: Parser, env: Environment) -> FunctionResult:
    """``(decresc [start] [end] events...)``: a falling volume ramp over the events."""
    start = _read_volume_spec(parser.source, env, env.volume * EMPHASIZE)
    end = _read_volume_spec(parser.source, env, env.volume * DEEMPHASIZE)
    return _ramp(parser, env, start, end)


def _control(kind: NodeType, number: int, value: int, env: Environment) -> FunctionResult:
    node = Node(
        type=kind,
        start=env.start,
        duration=0.0,
        volume=float(value),
        duty=0,
        channel=env.channel,
        note=number,
    )
    return FunctionResult([node])


def control_change(parser: Parser, env: Environment) -> FunctionResult:
    """``(cc controller value)``: a MIDI control change on the current channel."""
    source = parser.source
    controller = source.get_num()
    value = source.get_num()
    _finish_call(source)
    return _control(NodeType.CC, controller, value, env)


def program_change(parser: Parser, env: Environment) -> FunctionResult:
    """``(prog program)``: a MIDI program change on the current channel."""
    source = parser.source
    program = source.get_num()
    _finish_call(source)
    return _control(NodeType.PROG, program, 0, env)


def pitch_bend(parser: Parser, env: Environment) -> FunctionResult:
    """``(bend value)``: a MIDI pitch bend, 0..16383 with 8192 at centre."""
    source = parser.source
    value = source.get_num()
    _finish_call(source)
    return _control(NodeType.BEND, 0, value, env)


BUILTINS: dict[str, Callable[[Parser, Environment], FunctionResult]] = {
    "turn": turn,
    "rpt": repeat,
    "cresc": cresc,
    "decresc": decresc,
    "cc": control_change,
    "prog": program_change,
    "bend": pitch_bend,
}