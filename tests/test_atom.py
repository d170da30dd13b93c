from aml.atom import convert_records, main
from aml.midifile import NOTE_OFF, NOTE_ON, MidiWriter
from aml.midump import dump_midi

HEADER = b"MThd\x00\x00\x00\x06\x00\x00\x00\x01\x01\xf4MTrk"


def test_empty_input_is_bare_track():
    assert convert_records("") == HEADER + b"\x00\x00\x00\x04" + b"\x00\xff\x2f\x00"


def test_records_become_notes_with_previous_wait():
    data = convert_records("144,60,77,0,500\n128,60,0,0,0\n")
    writer = MidiWriter()
    writer.write_note(0, NOTE_ON, 0, 60, 77)
    writer.write_note(500, NOTE_OFF, 0, 60, 0)
    assert data == writer.to_bytes(0)


def test_padded_records_match_compact_ones():
    padded = " 144,  60,  77,   0,     500\n 128,  60,   0,   0,       0"
    assert convert_records(padded) == convert_records("144,60,77,0,500\n128,60,0,0,0")


def test_reading_stops_at_malformed_record():
    good = "144,60,77,0,500\n"
    assert convert_records(good + "junk\n144,62,77,0,0\n") == convert_records(good)


def test_non_note_records_only_delay():
    data = convert_records("176,1,2,0,100\n144,60,77,0,0\n")
    writer = MidiWriter()
    writer.write_note(100, NOTE_ON, 0, 60, 77)
    assert data == writer.to_bytes(0)


def test_output_is_readable_midi():
    listing = dump_midi(convert_records("144,60,77,3,250\n128,60,0,3,0\n"))
    assert "Note On   ch=3 note= 60" in listing
    assert "End of Track" in listing


def test_main_converts_aml_out(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    records = "144,60,77,0,500\n128,60,0,0,0\n"
    (tmp_path / "aml.out").write_text(records)
    assert main(["song.mid"]) == 0
    assert (tmp_path / "song.mid").read_bytes() == convert_records(records)


def test_main_without_input(tmp_path, monkeypatch, capsys):
    monkeypatch.chdir(tmp_path)
    assert main(["song.mid"]) == 1
    assert "couldn't open output file <song.mid>" in capsys.readouterr().err


def test_main_without_arguments():
    assert main([]) == 1


def test_negative_wait_is_reported(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    (tmp_path / "aml.out").write_text("144,60,77,0,-5\n128,60,0,0,0\n")
    assert main(["bad.mid"]) == 1
    assert not (tmp_path / "bad.mid").exists()