import io

import pytest

from aml.compiler import Compiler, compile_text
from aml.events import DEEMPHASIZE, EMPHASIZE, Environment, NodeType
from aml.midump import dump_midi
from aml.source import ParseError, Source


def make(text, out=None):
    source = Source(text, out=out)
    return Compiler(source), source


def run_basic(text, env=None, out=None):
    comp, source = make(text, out=out)
    c = source.next_char()
    return comp, comp.basic(c, env if env is not None else Environment())


def test_seq_divides_time_equally():
    _, events = run_basic("[c d e f]")
    starts = [e.start for e in events]
    assert len(events) == 4
    assert starts == sorted(starts)
    gaps = [b - a for a, b in zip(starts, starts[1:])]
    assert gaps == pytest.approx([gaps[0]] * 3)
    assert sum(e.duration for e in events) == pytest.approx(1.0)
    assert events[0].note == 60


def test_seq_scales_into_environment():
    env = Environment(start=3.0, duration=2.0)
    _, events = run_basic("[c d]", env)
    assert events[0].start == pytest.approx(3.0)
    assert events[-1].start + events[-1].duration == pytest.approx(3.0 + 2.0)


def test_duration_multiplier():
    _, events = run_basic("[2c d]")
    assert events[0].duration == pytest.approx(2 * events[1].duration)
    assert events[1].start == pytest.approx(events[0].duration)


def test_set_starts_together():
    env = Environment()
    _, events = run_basic("{c e g}", env)
    assert {e.start for e in events} == {env.start}
    assert all(e.duration == env.duration for e in events)
    notes = [e.note for e in events]
    assert notes == sorted(notes) and len(set(notes)) == 3


def test_set_rejects_duration():
    out = io.StringIO()
    _, events = run_basic("{2c} x", out=out)
    assert events is None
    assert "can't modify duration" in out.getvalue()


@pytest.mark.parametrize("mark,factor", [("!", EMPHASIZE), ("?", DEEMPHASIZE)])
def test_dynamics(mark, factor):
    env = Environment()
    _, events = run_basic(mark + "c", env)
    assert events[0].volume == pytest.approx(factor)
    assert env.volume == pytest.approx(1.0)


def test_rest():
    _, events = run_basic("r")
    assert events[0].type == NodeType.REST
    assert events[0].note == 0


def test_ties():
    comp, events = run_basic("[c_ _c]")
    assert [e.type for e in events] == [NodeType.START_TIE, NodeType.END_TIE]
    assert comp.ties == 0


def test_dangling_tie():
    out = io.StringIO()
    _, events = run_basic("_c x", out=out)
    assert events is None
    assert "dangling end of tie" in out.getvalue()


def test_dot_note_steps_through_scale():
    _, dotted = run_basic("[c ./ .\\]")
    _, plain = run_basic("[c d c]")
    assert [e.note for e in dotted] == [e.note for e in plain]


def test_octave_parameter_is_scoped():
    env = Environment()
    _, raised = run_basic("[-o5 c]", env)
    _, plain = run_basic("[c]")
    assert raised[0].note == plain[0].note + 12
    assert env.octave == 4


def test_channel_parameter():
    _, events = run_basic("[-ch 3 c]")
    assert events[0].channel == 3


def test_tempo_at_top_level():
    comp, _ = make("-t 120")
    comp.element(Environment())
    assert comp.tempo == 120.0
    assert comp.msec_per_beat == pytest.approx(500.0)


@pytest.mark.parametrize("text,expected", [("-t 2000", 1024.0), ("-t 3", 8.0)])
def test_tempo_is_clamped(text, expected):
    comp, _ = make(text)
    comp.element(Environment())
    assert comp.tempo == expected


def test_tempo_below_top_level_is_refused():
    out = io.StringIO()
    comp, _ = make("t 100 c", out=out)
    comp.param(Environment())
    assert "tempo must be at top level" in out.getvalue()
    assert comp.tempo == 60.0


def test_unknown_parameter():
    out = io.StringIO()
    comp, _ = make("zz 5 x", out=out)
    comp.param(Environment())
    assert "unknown parameter:" in out.getvalue()
    assert "<zz>" in out.getvalue()


def test_check_count():
    out = io.StringIO()
    _, events = run_basic("[3 a b c] x", out=out)
    assert len(events) == 3
    assert out.getvalue() == ""
    out = io.StringIO()
    run_basic("[2 a b c] x", out=out)
    assert "check doesn't equal count" in out.getvalue()


def test_control_change_function():
    comp, source = make("(cc 7 100)")
    result = comp.fun(source.next_char(), Environment())
    node = result.events[0]
    assert (node.type, node.note, node.volume) == (NodeType.CC, 7, 100.0)


def test_repeat_counts_slots():
    comp, source = make("(rpt 3 a b)")
    result = comp.fun(source.next_char(), Environment())
    assert result.element_count == 3 * 2
    assert len(result.events) == result.element_count


def test_unknown_function():
    out = io.StringIO()
    comp, source = make("(zz) c", out=out)
    result = comp.fun(source.next_char(), Environment())
    assert result.events == []
    assert "unknown function" in out.getvalue()


def test_compile_single_note():
    data = compile_text("c")
    assert data[:4] == b"MThd"
    listing = dump_midi(data)
    assert "Note On   ch=0 note= 60" in listing


def test_macro_expansion_matches_plain_text():
    assert compile_text("(def m c e g) (m)", warn=False) == compile_text("c e g")


def test_parametric_macro_matches_plain_text():
    assert compile_text("(def (m x) [$x $x]) (m c)", warn=False) == compile_text("[c c]")


def test_print_object(capsys):
    compile_text("c", print_object=True)
    assert str(int(NodeType.NOTE_ON)) in capsys.readouterr().out


def test_empty_song_is_an_error():
    with pytest.raises(ParseError):
        compile_text("")