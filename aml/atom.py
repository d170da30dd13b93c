"""The ``atom`` command: turn a listing of compiled event records into a MIDI file."""

from __future__ import annotations

import re
import sys
from collections.abc import Sequence
from pathlib import Path

from .midifile import NOTE_OFF, NOTE_ON, MidiWriter

DEFAULT_INPUT = "aml.out"

_FIELD = r"\s*([+-]?\d+)"
_RECORD = re.compile(",".join([_FIELD] * 5))


def convert_records(text: str) -> bytes:
    """Convert ``event,note,velocity,channel,wait`` records into a MIDI file.

    Reading stops at the first text that is not a record.  Only note-on and
    note-off records produce events, but every record's wait delays the
    record after it.
    """
    writer = MidiWriter()
    wait = 0
    pos = 0
    while (match := _RECORD.match(text, pos)) is not None:
        pos = match.end()
        event, note, velocity, channel, duration = (int(value) for value in match.groups())
        delay, wait = wait, duration
        if event in (NOTE_ON, NOTE_OFF):
            writer.write_note(delay, event, channel, note, velocity)
    return writer.to_bytes(0)


def main(argv: Sequence[str] | None = None) -> int:
    """Read ``aml.out`` from the current directory and write the named MIDI file."""
    args = list(sys.argv[1:] if argv is None else argv)
    if not args:
        print("usage: atom midifile", file=sys.stderr)
        return 1
    target = args[0]
    try:
        text = Path(DEFAULT_INPUT).read_text(encoding="latin-1")
    except OSError:
        print(f"couldn't open output file <{target}>", file=sys.stderr)
        return 1
    try:
        data = convert_records(text)
    except ValueError as err:
        print(f"atom: {err}", file=sys.stderr)
        return 1
    try:
        Path(target).write_bytes(data)
    except OSError:
        print(f"couldn't open output file <{target}>", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())