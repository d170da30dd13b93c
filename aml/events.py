"""Compiled musical events, the scoping environment, and ordered event lists."""

from __future__ import annotations

import itertools
from dataclasses import dataclass, field, replace
from enum import IntEnum

EMPHASIZE = 1.2
DEEMPHASIZE = 1.0 / 1.2
TUNING_BIAS = -52
DEFAULT_TEMPO = 60.0

OCTAVE_UP = "/"
OCTAVE_DOWN = "\\"
SHARP = "+"
FLAT = "-"
NATURAL = "="
FORTE = "!"
PIANO = "?"
TIE = "_"

BEGIN_SEQ = "["
END_SEQ = "]"
BEGIN_SET = "{"
END_SET = "}"
BEGIN_FUN = "("
END_FUN = ")"
BEGIN_PARAM = "-"


class NodeType(IntEnum):
    """Kinds of compiled events."""

    REST = 0
    NOTE = 3
    START_TIE = 4
    END_TIE = 5
    CC = 6
    PROG = 7
    BEND = 8
    UNDEFINED = 15
    NOTE_OFF = 0x80
    NOTE_ON = 0x90

    @property
    def label(self) -> str:
        return _LABELS[self]


_LABELS = {
    NodeType.REST: "rest",
    NodeType.NOTE_ON: "on  ",
    NodeType.NOTE_OFF: "off ",
    NodeType.NOTE: "note",
    NodeType.START_TIE: "start_tie",
    NodeType.END_TIE: "end_tie",
    NodeType.CC: "cc",
    NodeType.PROG: "prog",
    NodeType.BEND: "bend",
    NodeType.UNDEFINED: "undefined",
}

_serial = itertools.count()


@dataclass
class Node:
    """One musical event; some fields carry other meanings for control events."""

    type: NodeType = NodeType.UNDEFINED
    start: float = 0.0
    duration: float = 0.0
    volume: float = 0.0
    duty: int = 0
    channel: int = 0
    note: int = 0
    n: int = field(default_factory=lambda: next(_serial))


@dataclass
class Environment:
    """The scoped settings that shape the events generated inside it."""

    start: float = 0.0
    duration: float = 1.0
    volume: float = 1.0
    tempo: int = 0
    velocity: int = 0
    channel: int = 0
    key: list[int] = field(default_factory=lambda: [0] * 7)
    octave: int = 4
    duty: int = 90
    transpose: int = 64

    def copy(self) -> Environment:
        """Return an independent copy, including the key signature."""
        return replace(self, key=list(self.key))


def insert_sorted(events: list[Node], node: Node) -> None:
    """Insert ``node`` by start time, after any events with the same start.

    The head and tail of the list are checked first, so a node that belongs
    before the first event or at or after the last one is placed there even
    if the list in between is not ordered.
    """
    if not events:
        events.append(node)
    elif len(events) == 1:
        if node.start >= events[0].start:
            events.append(node)
        else:
            events.insert(0, node)
    elif node.start < events[0].start:
        events.insert(0, node)
    elif node.start >= events[-1].start:
        events.append(node)
    else:
        index = next(i for i, event in enumerate(events) if node.start < event.start)
        events.insert(index, node)


def merge_events(first: list[Node], second: list[Node]) -> list[Node]:
    """Merge two event lists by start time; on ties events of ``first`` come first.

    The first event of ``first`` always leads the result.
    """
    if not first:
        return list(second)
    if not second:
        return list(first)
    result = [first[0]]
    i, j = 1, 0
    while i < len(first) and j < len(second):
        if first[i].start > second[j].start:
            result.append(second[j])
            j += 1
        else:
            result.append(first[i])
            i += 1
    result.extend(first[i:])
    result.extend(second[j:])
    return result


def sort_events(events: list[Node]) -> list[Node]:
    """Return the events ordered by start time, keeping the order of ties."""
    return sorted(events, key=lambda event: event.start)


def format_node(node: Node) -> str:
    """Describe a node on one line, for trace output."""
    return (
        f"{node.n}: {node.type.label}  s={node.start:f},d={node.duration:f},"
        f"v={node.volume:f}  d={node.duty:4d},c={node.channel:2d},n={node.note:3d}"
    )