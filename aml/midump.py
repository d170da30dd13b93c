"""Printing the contents of a Standard MIDI File as readable text."""

from __future__ import annotations

import math
import sys
from collections.abc import Iterator, Sequence
from pathlib import Path

NOTE_NAMES = ("C", "C#", "D", "D#", "E", "F", "F#", "G", "G#", "A", "A#", "B")

# Indexed by the number of sharps (positive) or flats (negative) plus 7.
MAJOR_KEYS = ("Cb", "Gb", "Db", "Ab", "Eb", "Bb", "F", "C", "G", "D", "A", "E", "B", "F#", "C#")
MINOR_KEYS = ("Ab", "Eb", "Bb", "F", "C", "G", "D", "A", "E", "B", "F#", "C#", "G#", "D#", "A#")

_TEXT_KINDS = {
    0x01: "Text",
    0x02: "Copyright",
    0x03: "Track Name",
    0x04: "Instrument",
    0x05: "Lyric",
    0x06: "Marker",
    0x07: "Cue Point",
}
_SHOWN_BYTES = 255
_PITCH_CENTRE = 8192


class MidiDumpError(Exception):
    """The data is not a readable MIDI file."""


def note_name(note: int) -> str:
    """Name a MIDI note number with its octave, e.g. 60 is ``C4``."""
    return f"{NOTE_NAMES[note % 12]}{note // 12 - 1}"


def _signed_byte(value: int) -> int:
    return value - 256 if value > 127 else value


def describe_meta(kind: int, data: bytes) -> str:
    """Describe a meta event of type ``kind`` carrying ``data``."""
    shown = bytes(data[:_SHOWN_BYTES])
    b = shown + bytes(5)
    if kind == 0x00:
        return f"Sequence Number {(b[0] << 8) | b[1]}"
    if kind in _TEXT_KINDS:
        text = shown.split(b"\0", 1)[0].decode("latin-1")
        return f'{_TEXT_KINDS[kind]} "{text}"'
    if kind == 0x20:
        return f"Channel Prefix {b[0]}"
    if kind == 0x2F:
        return "End of Track"
    if kind == 0x51:
        micros = (b[0] << 16) | (b[1] << 8) | b[2]
        bpm = 60000000.0 / micros if micros else math.inf
        return f"Tempo {micros} us/beat ({bpm:.1f} BPM)"
    if kind == 0x54:
        return f"SMPTE Offset {b[0]:02d}:{b[1]:02d}:{b[2]:02d}.{b[3]:02d}.{b[4]:02d}"
    if kind == 0x58:
        return f"Time Sig {b[0]}/{1 << b[1]}, {b[2]} clocks/click, {b[3]} 32nds/quarter"
    if kind == 0x59:
        index = _signed_byte(b[0]) + 7
        table = MINOR_KEYS if b[1] else MAJOR_KEYS
        key = table[index] if 0 <= index < len(table) else "?"
        return f"Key Sig {key} {'minor' if b[1] else 'major'}"
    if kind == 0x7F:
        return f"Sequencer Specific ({len(data)} bytes)"
    return f"Meta 0x{kind:02x} ({len(data)} bytes)"


class _Reader:
    def __init__(self, data: bytes) -> None:
        self.data = data
        self.pos = 0

    def byte(self) -> int:
        if self.pos >= len(self.data):
            raise MidiDumpError("unexpected end of file")
        value = self.data[self.pos]
        self.pos += 1
        return value

    def take(self, count: int) -> bytes:
        return bytes(self.byte() for _ in range(count))

    def short(self) -> int:
        return int.from_bytes(self.take(2), "big")

    def long(self) -> int:
        return int.from_bytes(self.take(4), "big")

    def varlen(self) -> int:
        value = 0
        while True:
            c = self.byte()
            value = (value << 7) | (c & 0x7F)
            if not c & 0x80:
                return value

    def unread(self) -> None:
        self.pos -= 1

    def skip_to(self, end: int) -> None:
        self.pos = max(self.pos, min(end, len(self.data)))


def _describe_event(reader: _Reader, status: int) -> tuple[str, bool]:
    """Read one event's data; the flag is False for an unknown status."""
    chan = status & 0x0F
    high = status & 0xF0
    if high in (0x80, 0x90, 0xA0):
        note, value = reader.byte(), reader.byte()
        name = f"{note_name(note):<4}"
        if high == 0x80:
            return f"Note Off  ch={chan} note={note:3d} ({name}) vel={value}", True
        if high == 0xA0:
            return f"Aftertouch ch={chan} note={note:3d} ({name}) pressure={value}", True
        if value == 0:
            return f"Note Off  ch={chan} note={note:3d} ({name}) vel=0 [Note On / running]", True
        return f"Note On   ch={chan} note={note:3d} ({name}) vel={value}", True
    if high == 0xB0:
        ctrl, value = reader.byte(), reader.byte()
        return f"Control   ch={chan} ctrl={ctrl:3d} val={value}", True
    if high == 0xC0:
        return f"Program   ch={chan} prog={reader.byte()}", True
    if high == 0xD0:
        return f"Chan Pressure ch={chan} pressure={reader.byte()}", True
    if high == 0xE0:
        lo, hi = reader.byte(), reader.byte()
        return f"Pitch Bend ch={chan} bend={((hi << 7) | lo) - _PITCH_CENTRE}", True
    if status == 0xFF:
        kind = reader.byte()
        length = reader.varlen()
        return describe_meta(kind, reader.take(length)), True
    if status in (0xF0, 0xF7):
        length = reader.varlen()
        reader.take(length)
        return f"SysEx 0x{status:02x} ({length} bytes)", True
    return f"Unknown status 0x{status:02x}", False


def _track_lines(reader: _Reader, number: int) -> Iterator[str]:
    marker = reader.take(4)
    if marker != b"MTrk":
        raise MidiDumpError(f"expected MTrk, got {marker.decode('latin-1')}")
    length = reader.long()
    end = reader.pos + length
    yield ""
    yield f"Track {number} ({length} bytes):"
    yield f"  {'tick':>8}  {'delta':>8}  event"

    tick = 0
    running = 0
    while reader.pos < end:
        delta = reader.varlen()
        tick += delta
        status = reader.byte()
        if status & 0x80:
            if status & 0xF0 != 0xF0:
                running = status
        else:
            reader.unread()
            status = running
        text, known = _describe_event(reader, status)
        yield f"  {tick:8d}  {delta:8d}  {text}"
        if not known:
            break
    reader.skip_to(end)


def _dump_lines(data: bytes, name: str) -> Iterator[str]:
    reader = _Reader(data)
    if reader.take(4) != b"MThd":
        raise MidiDumpError("not a MIDI file")
    header_length = reader.long()
    fmt = reader.short()
    ntracks = reader.short()
    division = reader.short()

    yield f"MIDI File: {name}"
    if division & 0x8000:
        fps = -_signed_byte(division >> 8)
        division_text = f"Division: {fps} fps, {division & 0xFF} ticks/frame"
    else:
        division_text = f"Division: {division} ticks/beat"
    yield f"Format: {fmt}  Tracks: {ntracks}  {division_text}"

    reader.skip_to(8 + header_length)
    for number in range(ntracks):
        yield from _track_lines(reader, number)


def dump_midi(data: bytes, name: str = "-") -> str:
    """Return a text listing of every event in the MIDI file ``data``."""
    return "\n".join(_dump_lines(data, name)) + "\n"


def main(argv: Sequence[str] | None = None) -> int:
    """Print the contents of the MIDI file named on the command line."""
    args = list(sys.argv[1:] if argv is None else argv)
    if len(args) != 1:
        print("Usage: midump file.mid", file=sys.stderr)
        return 1
    path = args[0]
    try:
        data = Path(path).read_bytes()
    except OSError:
        print(f"midump: can't open {path}", file=sys.stderr)
        return 1
    try:
        for line in _dump_lines(data, path):
            print(line)
    except MidiDumpError as err:
        print(f"midump: {err}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())