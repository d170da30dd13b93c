"""Writing format-0 Standard MIDI Files with a single track."""

from __future__ import annotations

from os import PathLike

NOTE_OFF = 0x80
NOTE_ON = 0x90
POLY_AFTERTOUCH = 0xA0
CONTROL_CHANGE = 0xB0
PROGRAM_CHNG = 0xC0
CHANNEL_AFTERTOUCH = 0xD0
PITCH_WHEEL = 0xE0
SYSTEM_EXCLUSIVE = 0xF0

META_EVENT = 0xFF
END_OF_TRACK = 0x2F

# Ticks per quarter note written into the header.
DIVISION = 500

_HEADER = (
    b"MThd"
    + (6).to_bytes(4, "big")  # header chunk length
    + (0).to_bytes(2, "big")  # format 0
    + (1).to_bytes(2, "big")  # one track
    + DIVISION.to_bytes(2, "big")
)
_TRACK_MARKER = b"MTrk"


def encode_delay(delay: int) -> bytes:
    """Encode a delta time as a MIDI variable-length quantity of up to 3 bytes.

    Only the low 21 bits of the delay can be represented; higher bits are
    dropped.
    """
    if delay < 0:
        raise ValueError(f"negative delay: {delay}")
    if delay < 128:
        return bytes((delay,))
    low = delay & 0x7F
    delay >>= 7
    mid = (delay & 0x7F) | 0x80
    if delay < 128:
        return bytes((mid, low))
    delay >>= 7
    high = (delay & 0x7F) | 0x80
    return bytes((high, mid, low))


class MidiWriter:
    """Accumulates the events of one MIDI track and renders a complete file."""

    def __init__(self) -> None:
        self._track = bytearray()
        self._running_status = 0

    def _start_event(self, delay: int, status: int, *, running: bool) -> None:
        self._track += encode_delay(delay)
        if not running or status != self._running_status:
            self._track.append(status)
        self._running_status = status

    def write_note(self, delay: int, event: int, chan: int, note: int, vel: int) -> None:
        """Write a note-on or note-off event, using running status."""
        status = event | (chan & 0x0F)
        self._start_event(delay, status, running=True)
        self._track += bytes((note & 0x7F, vel & 0x7F))

    def write_cc(self, delay: int, chan: int, controller: int, value: int) -> None:
        """Write a control change event."""
        self._start_event(delay, CONTROL_CHANGE | (chan & 0x0F), running=False)
        self._track += bytes((controller & 0x7F, value & 0x7F))

    def write_prog(self, delay: int, chan: int, program: int) -> None:
        """Write a program change event."""
        self._start_event(delay, PROGRAM_CHNG | (chan & 0x0F), running=False)
        self._track.append(program & 0x7F)

    def write_bend(self, delay: int, chan: int, value: int) -> None:
        """Write a pitch bend event; value runs 0..16383 with 8192 at centre."""
        self._start_event(delay, PITCH_WHEEL | (chan & 0x0F), running=False)
        self._track += bytes((value & 0x7F, (value >> 7) & 0x7F))

    def to_bytes(self, tail: int) -> bytes:
        """Return the whole file, ending the track after ``tail`` ticks."""
        track = bytes(self._track) + encode_delay(tail) + bytes((META_EVENT, END_OF_TRACK, 0))
        length = (len(track) & 0xFFFFFFFF).to_bytes(4, "big")
        return _HEADER + _TRACK_MARKER + length + track

    def save(self, path: str | PathLike[str], tail: int) -> None:
        """Write the file rendered by :meth:`to_bytes` to ``path``."""
        with open(path, "wb") as fh:
            fh.write(self.to_bytes(tail))