from __future__ import annotations

import argparse
import json
import logging
import os
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import BinaryIO

from octwave.audio.wav import FinishResult
from octwave.errors import OctwaveError
from octwave.util.config import AppConfig, SynthConfig
from octwave.util.logging_utils import setup_logging

logger = logging.getLogger("octwave")


@contextmanager
def _open_sink(out: str) -> Iterator[BinaryIO]:
    if out.strip() == "-":
        yield sys.stdout.buffer
        return
    p = Path(out).expanduser()
    p.parent.mkdir(parents=True, exist_ok=True)
    with p.open("wb") as f:
        yield f


def _silence_stdout() -> None:
    # Reader went away: point stdout at devnull so the interpreter's final flush
    # does not raise BrokenPipeError again.
    devnull = os.open(os.devnull, os.O_WRONLY)
    os.dup2(devnull, sys.stdout.fileno())


def _report(res: FinishResult, out: str) -> None:
    if res.truncated:
        if out.strip() == "-":
            _silence_stdout()
        return
    if out.strip() != "-":
        print(f"wrote {out} ({res.bytes_written} bytes, {res.segments} notes)", file=sys.stderr)


def _synth_config(args: argparse.Namespace) -> tuple[AppConfig, SynthConfig]:
    from octwave.util.config import load_config

    cfg = load_config(Path(args.config).expanduser() if args.config else None)
    freq = args.frequency if getattr(args, "frequency", None) is not None else cfg.synth.starting_frequency
    return cfg, SynthConfig(
        sample_rate=cfg.synth.sample_rate,
        bit_depth=cfg.synth.bit_depth,
        starting_frequency=float(freq),
        amplitude=cfg.synth.amplitude,
    )


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="octwave",
        add_help=True,
        formatter_class=argparse.RawTextHelpFormatter,
        description=(
            "octwave — render octave notation to a mono 16-bit WAV\n\n"
            "Notation: <L><N> clusters, L = length 0-F (2^(1-L) measures),\n"
            "N = semitones 0-F from the starting note, '-N' below it, '_' for silence.\n"
            "Example: octwave render 31323334 --tempo 90 | aplay\n"
        ),
    )

    p.add_argument("--version", action="store_true", help="Print version and exit.")
    p.add_argument("-v", "--verbose", action="count", default=0, help="More logging on stderr (-v info, -vv debug).")
    p.add_argument("--config", default=None, help="Path to config JSON (default: ~/.config/octwave/config.json)")
    p.add_argument("--log-file", default=None, dest="log_file", help="Also write logs to this file")

    sub = p.add_subparsers(dest="cmd")

    render = sub.add_parser("render", help="Render a notation string to WAV.")
    render.add_argument("notes", help="Octave notation, e.g. 31323334")
    render.add_argument("--tempo", type=int, default=None, help="Tempo in BPM (4/4)")
    render.add_argument("--frequency", type=float, default=None, help="Starting note in Hz (default 440)")
    render.add_argument("-o", "--out", default="-", help="Output WAV path, or '-' for stdout")

    song = sub.add_parser("song", help="Render a YAML/JSON song file to WAV.")
    song.add_argument("path", help="Song file (.yaml/.yml/.json)")
    song.add_argument("-o", "--out", default="-", help="Output WAV path, or '-' for stdout")

    demo = sub.add_parser("demo", help="Render a built-in song.")
    demo.add_argument("name", nargs="?", default="scale", help="Demo name (see --list)")
    demo.add_argument("--list", action="store_true", help="List demo songs and exit.")
    demo.add_argument("-o", "--out", default="-", help="Output WAV path, or '-' for stdout")

    midi = sub.add_parser("midi", help="Export a notation string as a MIDI file.")
    midi.add_argument("notes", help="Octave notation")
    midi.add_argument("-o", "--out", required=True, help="Output .mid path")
    midi.add_argument("--tempo", type=int, default=None, help="Tempo in BPM (4/4)")
    midi.add_argument("--frequency", type=float, default=None, help="Starting note in Hz (default 440)")

    info = sub.add_parser("info", help="Print the header fields of a WAV file.")
    info.add_argument("path", help="WAV file")

    check = sub.add_parser("check", help="Validate notation and print note count and length.")
    check.add_argument("notes", help="Octave notation")
    check.add_argument("--tempo", type=int, default=None, help="Tempo in BPM (4/4)")

    return p


def _run(args: argparse.Namespace, parser: argparse.ArgumentParser) -> None:
    if args.cmd == "render":
        from octwave.notation.octave import OctaveDecoder

        cfg, synth = _synth_config(args)
        dec = OctaveDecoder(cfg.tempo if args.tempo is None else args.tempo, config=synth)
        dec.read(args.notes)
        with _open_sink(args.out) as sink:
            res = dec.finish(sink)
        _report(res, args.out)
        return

    if args.cmd == "song":
        from octwave.io.song import decode_song, load_song

        _, synth = _synth_config(args)
        dec = decode_song(load_song(args.path), config=synth)
        with _open_sink(args.out) as sink:
            res = dec.finish(sink)
        _report(res, args.out)
        return

    if args.cmd == "demo":
        from octwave.io.song import DEMO_SONGS, decode_song, get_demo_song

        if args.list:
            for name, s in DEMO_SONGS.items():
                print(f"{name}: {s.notes} @ {s.tempo} bpm")
            return
        try:
            s = get_demo_song(args.name)
        except KeyError:
            raise SystemExit(f"ERROR: unknown demo song '{args.name}'. Try: octwave demo --list")
        _, synth = _synth_config(args)
        dec = decode_song(s, config=synth)
        with _open_sink(args.out) as sink:
            res = dec.finish(sink)
        _report(res, args.out)
        return

    if args.cmd == "midi":
        from octwave.io.midi import export_midi

        cfg, synth = _synth_config(args)
        r = export_midi(
            args.notes,
            args.out,
            tempo=cfg.tempo if args.tempo is None else args.tempo,
            starting_frequency=synth.starting_frequency,
        )
        print(f"wrote {r.path} ({r.notes} notes, ppq {r.ticks_per_beat})")
        return

    if args.cmd == "info":
        from octwave.audio.inspect import inspect_wav

        print(json.dumps(inspect_wav(args.path).to_dict(), indent=2, sort_keys=True))
        return

    if args.cmd == "check":
        from octwave.notation.octave import notes_duration_seconds, parse_notes
        from octwave.util.config import load_config

        cfg = load_config(Path(args.config).expanduser() if args.config else None)
        tempo = cfg.tempo if args.tempo is None else args.tempo
        tokens = parse_notes(args.notes)
        seconds = notes_duration_seconds(args.notes, tempo)
        print(f"ok: {len(tokens)} notes, {seconds:.3f} s at {tempo} bpm")
        return

    parser.print_help()


def main(argv: list[str] | None = None) -> None:
    argv = list(sys.argv[1:] if argv is None else argv)

    parser = build_parser()
    args = parser.parse_args(argv)

    if getattr(args, "version", False):
        try:
            from importlib.metadata import version

            v = version("octwave")
        except Exception:
            v = "0.0.0"
        print(f"octwave {v}")
        return

    setup_logging(args.verbose, log_file=args.log_file)

    try:
        _run(args, parser)
    except OctwaveError as e:
        logger.debug("failed", exc_info=True)
        raise SystemExit(f"ERROR: {e}")
    except (ValueError, OSError) as e:
        raise SystemExit(f"ERROR: {e}")


if __name__ == "__main__":
    main()
