"""The ``aml`` command: compile a song file to a MIDI file and optionally play it."""

from __future__ import annotations

import os
import shlex
import subprocess
import sys
from collections.abc import Sequence
from pathlib import Path

from .compiler import compile_text
from .source import AmlError, ParseError

PROGRAM = "aml"
DEFAULT_PLAYER = "fluidsynth -i"
PLAYER_VARIABLE = "AML_PLAYER"
USAGE = "%s [-t] [-P] [-w] [-p] [-o outfile] filename"


def _fail(message: str) -> int:
    print(f"{PROGRAM}: {message}", file=sys.stderr)
    return 1


def _play(path: str) -> None:
    player = os.environ.get(PLAYER_VARIABLE, DEFAULT_PLAYER)
    try:
        subprocess.run([*shlex.split(player), path], check=False)
    except OSError as err:
        print(f"{PROGRAM}: couldn't start player: {err}", file=sys.stderr)


def main(argv: Sequence[str] | None = None) -> int:
    """Compile the song named on the command line; return the exit status."""
    args = list(sys.argv[1:] if argv is None else argv)
    outname: str | None = None
    trace = False
    print_object = False
    nowarn = False
    play = False

    while args and args[0].startswith("-"):
        option = args.pop(0)
        flag = option[1:2]
        if flag == "o":
            if not args:
                return _fail("no output file name specified")
            outname = args.pop(0)
        elif flag == "t":
            trace = True
        elif flag == "P":
            print_object = True
        elif flag == "w":
            nowarn = True
        elif flag == "p":
            play = True
        else:
            return _fail(f"illegal option: {option}")

    if len(args) != 1:
        print(USAGE % PROGRAM)
        return 0

    inname = args[0]
    if outname is None or outname == inname:
        outname = f"{inname}.mid"

    try:
        text = Path(inname).read_text(encoding="latin-1")
    except OSError:
        return _fail(f"couldn't open {inname}")

    try:
        data = compile_text(text, warn=not nowarn, trace=trace, print_object=print_object)
    except ParseError:
        return 1
    except AmlError as err:
        return _fail(str(err))

    try:
        Path(outname).write_bytes(data)
    except OSError:
        return _fail(f"couldn't open output file <{outname}>")

    if play:
        _play(outname)
    return 0


if __name__ == "__main__":
    sys.exit(main())