"""Turning compiled event lists into MIDI track events."""

from __future__ import annotations

import math
import sys
from itertools import zip_longest
from typing import TextIO

from .events import Node, NodeType, format_node, insert_sorted
from .midifile import MidiWriter
from .source import AmlError, Tracer

SONG_VOLUME = 64
MAX_VELOCITY = 127
_DUMP_LIMIT = 100

_PASS_THROUGH = frozenset(
    {NodeType.NOTE_OFF, NodeType.NOTE_ON, NodeType.CC, NodeType.PROG, NodeType.BEND}
)


def _release_time(node: Node) -> float:
    return node.start + node.duration * (node.duty / 100.0)


def expand_notes(events: list[Node]) -> list[Node]:
    """Convert notes, rests and ties into note-on/note-off events, ordered by start.

    Nodes are converted in place.  Each note gets a matching note-off at the
    end of its duty cycle.
    """
    pending = list(events)
    result: list[Node] = []
    while pending:
        node = pending.pop(0)
        kind = node.type
        if kind == NodeType.NOTE:
            node.type = NodeType.NOTE_ON
            off = Node(
                type=NodeType.NOTE_OFF,
                start=_release_time(node),
                duration=0.0,
                volume=0.0,
                duty=100,
                channel=node.channel,
                note=node.note,
            )
            insert_sorted(pending, off)
            insert_sorted(result, node)
        elif kind == NodeType.REST:
            node.type = NodeType.NOTE_OFF
            insert_sorted(result, node)
        elif kind == NodeType.START_TIE:
            node.type = NodeType.NOTE_ON
            insert_sorted(result, node)
        elif kind == NodeType.END_TIE:
            node.type = NodeType.NOTE_OFF
            node.start = _release_time(node)
            node.duration = 0.0
            node.volume = 0.0
            insert_sorted(pending, node)
        elif kind in _PASS_THROUGH:
            insert_sorted(result, node)
        else:
            raise AmlError(f"output: unexpected node type {int(kind)}")
    return result


def _lround(value: float) -> int:
    """Round to the nearest integer, halves away from zero."""
    if value >= 0:
        return math.floor(value + 0.5)
    return -math.floor(-value + 0.5)


def _dump(events: list[Node], stream: TextIO, prefix: str = "") -> None:
    if not events:
        print(f"{prefix}node list:  [NULL]", file=stream)
    else:
        print(f"{prefix}node list: head={events[0].n}, tail={events[-1].n}", file=stream)
        for node in events[: _DUMP_LIMIT + 1]:
            print(format_node(node), file=stream)
        if len(events) > _DUMP_LIMIT + 1:
            print("    print count exceeded", file=stream)
    print("end node list", file=stream)


class Renderer:
    """Writes the events of successive top-level elements to a MIDI writer.

    The delay written before each event is the time after the previous
    one, so the delay owed after the last event carries over from one
    :meth:`render` call to the next and finally ends the track.
    """

    def __init__(
        self,
        writer: MidiWriter | None = None,
        song_volume: int = SONG_VOLUME,
        print_object: bool = False,
        out: TextIO | None = None,
    ) -> None:
        self.writer = writer if writer is not None else MidiWriter()
        self.song_volume = song_volume
        self.print_object = print_object
        self.out = out
        self.tracer = Tracer()
        self._owed_delay = 0

    def _trace_stream(self) -> TextIO:
        return self.tracer.stream if self.tracer.stream is not None else sys.stderr

    def render(self, events: list[Node], msec_per_beat: float) -> None:
        """Write ``events``, timed at ``msec_per_beat`` ticks per beat."""
        if not events:
            return
        tracing = self.tracer.enabled
        if tracing:
            _dump(events, self._trace_stream())
        ordered = expand_notes(events)
        if tracing:
            _dump(ordered, self._trace_stream(), prefix="final ")

        out = self.out if self.out is not None else sys.stdout
        end_time = 0.0
        for node, following in zip_longest(ordered, ordered[1:]):
            end_time = max(end_time, node.start + node.duration)
            kind = int(node.type)
            velocity = int(min(node.volume * self.song_volume + 0.5, MAX_VELOCITY))
            next_start = end_time if following is None else following.start
            wait = _lround((next_start - node.start) * msec_per_beat)
            record = f"{kind:4d},{node.note:4d},{velocity:4d},{node.channel:4d},{wait:8d}"
            if self.print_object:
                print(f"\n{record}", end="", file=out)

            delay, self._owed_delay = self._owed_delay, wait
            if node.type in (NodeType.NOTE_ON, NodeType.NOTE_OFF):
                self.writer.write_note(delay, kind, node.channel, node.note, velocity)
            elif node.type == NodeType.CC:
                self.writer.write_cc(delay, node.channel, node.note, int(node.volume))
            elif node.type == NodeType.PROG:
                self.writer.write_prog(delay, node.channel, node.note)
            elif node.type == NodeType.BEND:
                self.writer.write_bend(delay, node.channel, int(node.volume))
            else:
                print(f"odd event: {kind}", file=out)
            if tracing:
                print(record, file=self._trace_stream())

    def close(self) -> bytes:
        """Return the finished MIDI file, ending the track after the owed delay."""
        return self.writer.to_bytes(self._owed_delay)