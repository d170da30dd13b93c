from unittest.mock import patch

from aml.cli import main
from aml.compiler import compile_text


def _song(tmp_path, text, name="song.aml"):
    path = tmp_path / name
    path.write_text(text)
    return path


def test_default_output_name(tmp_path):
    path = _song(tmp_path, "[c d e]")
    assert main([str(path)]) == 0
    out = tmp_path / "song.aml.mid"
    assert out.read_bytes() == compile_text("[c d e]")


def test_explicit_output_name(tmp_path):
    path = _song(tmp_path, "{c e g}")
    target = tmp_path / "chord.mid"
    assert main(["-o", str(target), str(path)]) == 0
    assert target.read_bytes() == compile_text("{c e g}")


def test_output_same_as_input_gets_suffix(tmp_path):
    path = _song(tmp_path, "[c d]")
    assert main(["-o", str(path), str(path)]) == 0
    assert path.read_text() == "[c d]"
    assert (tmp_path / "song.aml.mid").read_bytes() == compile_text("[c d]")


def test_usage_without_file(capsys):
    assert main([]) == 0
    assert "[-o outfile] filename" in capsys.readouterr().out


def test_illegal_option(tmp_path, capsys):
    path = _song(tmp_path, "c")
    assert main(["-x", str(path)]) == 1
    assert "illegal option: -x" in capsys.readouterr().err


def test_missing_output_name(capsys):
    assert main(["-o"]) == 1
    assert "no output file name specified" in capsys.readouterr().err


def test_missing_input(tmp_path, capsys):
    assert main([str(tmp_path / "absent.aml")]) == 1
    assert "couldn't open" in capsys.readouterr().err


def test_parse_error_at_end_fails(tmp_path):
    path = _song(tmp_path, "x")
    assert main([str(path)]) == 1
    assert not (tmp_path / "song.aml.mid").exists()


def test_print_object_lists_records(tmp_path, capsys):
    path = _song(tmp_path, "[c]")
    assert main(["-P", str(path)]) == 0
    out = capsys.readouterr().out
    assert "\n 144," in out


def test_redefinition_warning_and_nowarn(tmp_path, capsys):
    path = _song(tmp_path, "(def m c) (def m d) (m)")
    assert main([str(path)]) == 0
    assert "warning: redefining macro 'm'" in capsys.readouterr().err
    assert main(["-w", str(path)]) == 0
    assert "redefining" not in capsys.readouterr().err


def test_play_uses_default_player(tmp_path, monkeypatch):
    monkeypatch.delenv("AML_PLAYER", raising=False)
    path = _song(tmp_path, "[c d]")
    with patch("aml.cli.subprocess.run") as run:
        assert main(["-p", str(path)]) == 0
    out = str(tmp_path / "song.aml.mid")
    assert run.call_args.args[0] == ["fluidsynth", "-i", out]


def test_play_uses_environment_player(tmp_path, monkeypatch):
    monkeypatch.setenv("AML_PLAYER", "timidity -q")
    path = _song(tmp_path, "[c d]")
    with patch("aml.cli.subprocess.run") as run:
        assert main(["-p", str(path)]) == 0
    assert run.call_args.args[0][:2] == ["timidity", "-q"]


def test_no_play_without_flag(tmp_path):
    path = _song(tmp_path, "[c d]")
    with patch("aml.cli.subprocess.run") as run:
        assert main([str(path)]) == 0
    assert run.call_count == 0