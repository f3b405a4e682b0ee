from __future__ import annotations

import io
import json
from pathlib import Path

import pytest

from octwave.io.song import DEMO_SONGS, Song, get_demo_song, load_song, render_song, save_song
from octwave.notation.octave import parse_notes
from octwave.util.config import AppConfig, SynthConfig, load_config, save_config


def test_yaml_song_joins_note_lines(tmp_path: Path) -> None:
    p = tmp_path / "tune.yaml"
    p.write_text(
        "name: tune\n"
        "tempo: 90\n"
        "starting_frequency: 220\n"
        "notes:\n"
        "  - '3031'\n"
        "  - '3-C2_'\n",
        encoding="utf-8",
    )
    s = load_song(p)
    assert s == Song(name="tune", notes="30313-C2_", tempo=90, starting_frequency=220.0)


def test_json_song_defaults_name_to_stem(tmp_path: Path) -> None:
    p = tmp_path / "lead.json"
    p.write_text(json.dumps({"notes": "1010"}), encoding="utf-8")
    s = load_song(p)
    assert s.name == "lead"
    assert s.tempo == 120
    assert s.starting_frequency == 440.0


def test_song_validation(tmp_path: Path) -> None:
    p = tmp_path / "bad.yaml"
    p.write_text("- 1\n- 2\n", encoding="utf-8")
    with pytest.raises(ValueError):
        load_song(p)

    p.write_text("name: x\n", encoding="utf-8")
    with pytest.raises(ValueError):
        load_song(p)

    p.write_text("notes: '10'\ntempo: 0\n", encoding="utf-8")
    with pytest.raises(ValueError):
        load_song(p)


@pytest.mark.parametrize("notes", ["01020304", "1_20", "[3031, '3233']", "3.5"])
def test_unquoted_notes_rejected(tmp_path: Path, notes: str) -> None:
    p = tmp_path / "tune.yaml"
    p.write_text(f"notes: {notes}\n", encoding="utf-8")
    with pytest.raises(ValueError, match="quoted strings"):
        load_song(p)


def test_song_tempo_must_be_whole(tmp_path: Path) -> None:
    p = tmp_path / "tune.yaml"
    p.write_text("notes: '10'\ntempo: 90.9\n", encoding="utf-8")
    with pytest.raises(ValueError):
        load_song(p)

    p.write_text("notes: '10'\ntempo: 1200\n", encoding="utf-8")
    assert load_song(p).tempo == 1200


def test_song_save_load_round_trip(tmp_path: Path) -> None:
    s = Song(name="x", notes="2-52_", tempo=75, starting_frequency=261.63)
    for name in ("x.yaml", "x.json"):
        out = save_song(s, tmp_path / name)
        assert load_song(out) == s


def test_demo_songs_are_valid() -> None:
    for s in DEMO_SONGS.values():
        assert parse_notes(s.notes)
    assert get_demo_song("Scale").notes == "31323334"
    with pytest.raises(KeyError):
        get_demo_song("nope")


def test_render_song_uses_song_pitch_and_tempo() -> None:
    buf = io.BytesIO()
    res = render_song(Song(name="x", notes="20", tempo=60, starting_frequency=100.0), buf)
    data = buf.getvalue()
    assert res.segments == 1
    assert res.data_size == 2 * 2 * 44100
    assert len(data) == 44 + res.data_size
    assert not res.truncated


def test_config_round_trip(tmp_path: Path) -> None:
    p = tmp_path / "cfg" / "config.json"
    assert load_config(p) == AppConfig()

    cfg = AppConfig(tempo=90, synth=SynthConfig(sample_rate=22050, bit_depth=24, starting_frequency=432.0))
    save_config(cfg, p)
    assert load_config(p) == cfg


def test_synth_config_validation() -> None:
    with pytest.raises(ValueError):
        SynthConfig(bit_depth=8)
    with pytest.raises(ValueError):
        SynthConfig(sample_rate=0)
    with pytest.raises(ValueError):
        SynthConfig(starting_frequency=-1.0)
    with pytest.raises(ValueError):
        AppConfig(tempo=0)
    assert SynthConfig().max_amplitude == 32768
    assert SynthConfig(bit_depth=24).sample_width == 3
