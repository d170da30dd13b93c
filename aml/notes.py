"""Note names, accidentals, octave marks and key signatures."""

from __future__ import annotations

from .events import (
    FLAT,
    NATURAL,
    OCTAVE_DOWN,
    OCTAVE_UP,
    SHARP,
    TIE,
    TUNING_BIAS,
    Environment,
)
from .source import DIGITS, WHITESPACE, Source

# Semitones above C for the letters a..g.
NOTE_TABLE = (9, 11, 0, 2, 4, 5, 7)
# Letter indices in scale order c d e f g a b.
_DEGREE_ORDER = (2, 3, 4, 5, 6, 0, 1)


def is_real_note(c: str) -> bool:
    """True for a pitch letter, a to g in either case."""
    return len(c) == 1 and "a" <= c.lower() <= "g"


def is_note_name(c: str) -> bool:
    """True for a pitch letter, a rest ``r`` or a tie mark."""
    return is_real_note(c) or c.lower() == "r" or c == TIE


def note_index(name: str) -> int:
    """Return the index of a pitch letter: 0 for a up to 6 for g."""
    if not is_real_note(name):
        raise ValueError(f"not a note name: {name!r}")
    return ord(name.lower()) - ord("a")


def _is_digit(c: str) -> bool:
    return len(c) == 1 and c in DIGITS


def _skip_space(source: Source) -> str:
    c = source.next_char()
    while c in WHITESPACE:
        c = source.next_char()
    return c


def read_note_number(source: Source, name: str, env: Environment) -> int:
    """Read the accidental and octave marks after ``name`` and return its MIDI number.

    A rest returns 0.  An absolute octave digit changes ``env.octave``;
    ``/`` and ``\\`` shift this note by an octave each.  The character that
    ends the note is pushed back.
    """
    if name.lower() == "r":
        return 0
    base = note_index(name)

    c = source.next_char()
    accidental: int | None = None
    if c == SHARP:
        accidental = 1
        c = source.next_char()
        if c == SHARP:
            accidental = 2
            c = source.next_char()
    elif c == FLAT:
        accidental = -1
        c = source.next_char()
        if c == FLAT:
            accidental = -2
            c = source.next_char()
    elif c == NATURAL:
        accidental = 0
        c = source.next_char()

    offset = env.key[base] if accidental is None else accidental
    pitch = NOTE_TABLE[base] + offset

    if _is_digit(c):
        env.octave = int(c)
        c = source.next_char()

    relative = 0
    while c in (OCTAVE_UP, OCTAVE_DOWN):
        relative += 1 if c == OCTAVE_UP else -1
        c = source.next_char()
    source.push_char(c)

    return (env.octave + relative) * 12 + pitch + TUNING_BIAS + env.transpose


def diatonic_step(midi_note: int, steps: int, env: Environment) -> int:
    """Move ``midi_note`` by ``steps`` degrees of the current key's scale.

    A note that is not on the scale is returned unchanged.
    """
    scale = [(NOTE_TABLE[idx] + env.key[idx]) % 12 for idx in _DEGREE_ORDER]
    octave, pitch_class = divmod(midi_note - TUNING_BIAS - env.transpose, 12)
    if pitch_class not in scale:
        return midi_note
    octave_shift, degree = divmod(scale.index(pitch_class) + steps, 7)
    return (octave + octave_shift) * 12 + scale[degree] + TUNING_BIAS + env.transpose


def read_key(source: Source, env: Environment) -> None:
    """Read a key-signature setting such as ``f+``, ``b--`` or ``c=`` into ``env.key``.

    The character after a run of sharps or flats is consumed.
    """
    c = _skip_space(source)
    if not is_real_note(c):
        source.report_error("not a note name")
        return
    base = note_index(c)
    c = source.next_char()
    if c == NATURAL:
        env.key[base] = 0
    elif c == SHARP:
        while c == SHARP:
            env.key[base] += 1
            c = source.next_char()
    elif c == FLAT:
        while c == FLAT:
            env.key[base] -= 1
            c = source.next_char()
    else:
        source.report_error("improper accidental setting")