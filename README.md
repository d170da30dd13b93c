# aml

`aml` compiles a compact plain-text music notation into a format-0
Standard MIDI File with a single track. The package also has a tool that
prints the contents of a MIDI file, and a converter from event records to
MIDI.

## Installation

```
pip install .
```

To run the tests:

```
pip install ".[test]"
pytest
```

## Compiling a song

```
aml [-t] [-P] [-w] [-p] [-o outfile] song.aml
```

The output goes to `song.aml.mid` unless `-o` names another file. If `-o`
names the input file itself, `song.aml.mid` is used instead.

* `-t`: trace the parser on standard error.
* `-P`: print each event record (`event,note,velocity,channel,delay`) on
  standard output.
* `-w`: turn off warnings, such as the warning that a macro is being
  redefined.
* `-p`: play the result once it has been written. The player command is
  taken from the `AML_PLAYER` environment variable; if that is not set,
  `fluidsynth -i` is used. The file name is added as the last argument.

Without exactly one input file, `aml` prints its usage line. A syntax error
is reported with the line and a caret under the position, and compilation
carries on; it stops with exit status 1 only if the error runs into the end
of the input.

## The notation in brief

* Notes are written `a` to `g`, and a rest is `r`. After a note you may add
  `+`, `++`, `-`, `--` or `=` for an accidental, a digit for an absolute
  octave (which stays in force), and `/` or `\` to move that note up or
  down an octave.
* A note followed by `_` starts a tie; `_` before a note ends it.
* `[ ... ]` is a sequence: its elements share the time of the enclosing
  element equally. A bare number at its start is a check count that must
  equal the number of time slots used.
* `{ ... }` is a set: its elements sound together.
* A number before an element stretches that element, as in `2c`.
* `!` and `?` make the next element louder or softer.
* `.` repeats the current note. `./` and `.\` move it up or down by steps
  of the current key's scale.
* Parameters start with `-`:
  * `-ch n` sets the channel.
  * `-o n` sets the octave.
  * `-v n` sets the volume.
  * `-ac c+` sets an accidental in the key signature (`+`, `-`, runs of
    them, or `=`).
  * `-t n` sets the tempo (clamped to 8..1024) and works only at the top
    level.
  * `-d n` is accepted only at the top level; the value is recorded but
    does not change the notes that follow.
* Functions are written in parentheses:
  * `(turn c)` plays a turn on a note: upper neighbour, note, lower
    neighbour, note.
  * `(rpt 3 a b c)` repeats a group of elements; without a count it
    repeats twice.
  * `(cresc ...)` and `(decresc ...)` ramp the volume up or down. Optional
    runs of `!` or `?` before the elements set the start and end levels.
  * `(cc 7 100)` sends a control change.
  * `(prog 5)` sends a program change.
  * `(bend 8192)` sends a pitch bend.
  * `(def name body)` and `(def (name p1 p2) body ... $p1 ...)` define
    macros, which are then called as `(name)` or `(name arg1 arg2)`.
* `#` starts a comment that runs to the end of the line. Text in double
  quotes is ignored. `|` counts as a space.

## Inspecting a MIDI file

```
midump file.mid
```

This prints the file header, then every event in every track, with its
absolute tick and its delta time. Note, controller, program, pressure and
pitch-bend events, system-exclusive blocks and the common meta events
(text, tempo, time and key signature, SMPTE offset and so on) are named.

## Converting event records

```
atom out.mid
```

This reads `aml.out` from the current directory. Each record in it has the
form `event,note,velocity,channel,delay`, as printed by `aml -P`. The
note-on and note-off records are written to `out.mid`; every record's delay
is counted.

## Library use

```python
from aml.compiler import compile_text
from aml.midump import dump_midi

midi_bytes = compile_text("[c d e f] {c e g}", warn=True, trace=False, print_object=False)
print(dump_midi(midi_bytes, "example"))
```

`aml.midifile.MidiWriter` builds a single-track MIDI file event by event,
and `aml.compiler.Compiler` with `aml.source.Source` and
`aml.output.Renderer` gives finer control over compilation.

## What it does not do

* The MIDI file holds no tempo meta event: the tempo set with `-t` only
  changes the spacing of events in ticks.
* There is no built-in playback; `-p` runs an external player.
* MIDI files cannot be turned back into the notation.