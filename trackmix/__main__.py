from __future__ import annotations

import argparse
import logging
import shutil
import sys
import time
from dataclasses import dataclass
from pathlib import Path


@dataclass
class DoctorResult:
    ok: bool
    notes: list[str]


def _which(cmd: str) -> str | None:
    return shutil.which(cmd)


def _doctor() -> DoctorResult:
    notes: list[str] = []
    ok = True

    try:
        import sounddevice as sd

        notes.append(f"sounddevice: OK (PortAudio {sd.get_portaudio_version()[1]})")
    except (ImportError, OSError) as e:
        ok = False
        notes.append(f"sounddevice: MISSING ({e}; needed for live playback/recording)")

    try:
        import soundfile as sf

        notes.append(f"soundfile: OK (libsndfile {sf.__libsndfile_version__})")
    except (ImportError, OSError) as e:
        notes.append(f"soundfile: MISSING ({e}; only integer PCM WAV assets can be decoded)")

    ffmpeg = _which("ffmpeg")
    if ffmpeg:
        notes.append(f"ffmpeg: OK ({ffmpeg})")
    else:
        notes.append("ffmpeg: MISSING (needed for mp3/m4a exports)")

    from trackmix.audio.encode import available_codecs

    notes.append(f"export codecs: {', '.join(available_codecs())}")
    notes.append(f"python: {sys.version.split()[0]}")
    notes.append(f"platform: {sys.platform}")
    return DoctorResult(ok=ok, notes=notes)


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="trackmix",
        add_help=True,
        formatter_class=argparse.RawTextHelpFormatter,
        description="trackmix: timeline-based multi-track audio mixing engine\n",
    )

    p.add_argument("--version", action="store_true", help="Print version and exit.")
    p.add_argument("-v", "--verbose", action="count", default=0, help="More logging (-vv for debug).")
    p.add_argument("--config", default=None, help="Path to a config file (.json or .yaml)")

    sub = p.add_subparsers(dest="cmd")
    sub.add_parser("doctor", help="Check for optional deps (PortAudio/libsndfile/ffmpeg).")
    sub.add_parser("devices", help="List audio input/output devices.")

    render = sub.add_parser("render", help="Render a project document to an audio file.")
    render.add_argument("project", help="Path to a project JSON (.json)")
    render.add_argument("-o", "--out", required=True, help="Output path ('-' for stdout)")
    render.add_argument("--codec", default=None, choices=["wav", "mp3", "m4a"], help="Export codec")
    render.add_argument("--duration", type=float, default=None, help="Length in seconds (default: project end + tail)")
    render.add_argument("--sample-rate", type=int, default=None, dest="sample_rate", help="Output sample rate")

    play = sub.add_parser("play", help="Play a project document through the default output.")
    play.add_argument("project", help="Path to a project JSON (.json)")
    play.add_argument("--start", type=float, default=0.0, help="Timeline position to start from (seconds)")

    return p


def _load_engine(args: argparse.Namespace, project_path: str):
    from trackmix.engine import MixEngine
    from trackmix.errors import ConfigError, ProjectFormatError
    from trackmix.io.project_json import load_project
    from trackmix.util.config import load_config

    try:
        cfg = load_config(Path(args.config).expanduser() if args.config else None)
    except ConfigError as e:
        raise SystemExit(f"ERROR: {e}")
    try:
        doc = load_project(project_path)
    except (OSError, ProjectFormatError) as e:
        raise SystemExit(f"ERROR: could not load project ({e})")

    engine = MixEngine(cfg)
    failed = engine.load_assets(doc.assets)
    for buffer_id in failed:
        print(f"warning: asset {buffer_id} could not be decoded; its clips are silent", file=sys.stderr)
    return engine, doc


def _cmd_render(args: argparse.Namespace) -> None:
    from trackmix.errors import EncoderUnavailable
    from trackmix.util.derived import project_end_time

    engine, doc = _load_engine(args, args.project)
    total = args.duration
    if total is None:
        total = project_end_time(doc.clips, doc.tracks) + engine.config.export_tail_seconds
    codec = args.codec
    if codec is None:
        suffix = Path(args.out).suffix.lower().lstrip(".")
        codec = suffix if suffix in {"wav", "mp3", "m4a"} else engine.config.export_codec

    try:
        data = engine.export_mix(doc.clips, doc.tracks, total, codec, sample_rate=args.sample_rate)
    except EncoderUnavailable as e:
        raise SystemExit(f"ERROR: {e}. Run: trackmix doctor")

    if args.out.strip() == "-":
        sys.stdout.buffer.write(data)
        sys.stdout.buffer.flush()
        return
    out = Path(args.out).expanduser()
    out.parent.mkdir(parents=True, exist_ok=True)
    out.write_bytes(data)
    print(f"wrote {out} ({total:.2f}s, {codec})")


def _cmd_play(args: argparse.Namespace) -> None:
    from trackmix.errors import AudioDeviceError
    from trackmix.util.derived import project_end_time

    engine, doc = _load_engine(args, args.project)
    end = project_end_time(doc.clips, doc.tracks)
    with engine:
        try:
            engine.start_output()
        except AudioDeviceError as e:
            raise SystemExit(f"ERROR: {e}. Run: trackmix devices")

        engine.play(doc.clips, doc.tracks, at=args.start)
        print(f"playing {doc.name} from {args.start:.2f}s (end {end:.2f}s); Ctrl-C to stop")
        try:
            while engine.get_current_position() < end + 0.25:
                time.sleep(0.05)
        except KeyboardInterrupt:
            print("stopped")


def main(argv: list[str] | None = None) -> None:
    argv = list(sys.argv[1:] if argv is None else argv)

    parser = build_parser()
    args = parser.parse_args(argv)

    level = logging.WARNING
    if args.verbose == 1:
        level = logging.INFO
    elif args.verbose >= 2:
        level = logging.DEBUG
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")

    if getattr(args, "version", False):
        try:
            from importlib.metadata import version

            v = version("trackmix")
        except Exception:
            v = "0.0.0"
        print(f"trackmix {v}")
        return

    if args.cmd == "doctor":
        res = _doctor()
        status = "OK" if res.ok else "MISSING_DEPS"
        print(f"trackmix doctor: {status}")
        for n in res.notes:
            print(f"- {n}")
        if not res.ok:
            print("\nLinux (Debian/Ubuntu): sudo apt-get install libportaudio2 libsndfile1 ffmpeg")
            print("macOS: brew install portaudio libsndfile ffmpeg")
        return

    if args.cmd == "devices":
        try:
            from trackmix.audio.device import list_devices

            devices = list_devices()
        except (ImportError, OSError) as e:
            raise SystemExit(f"ERROR: Could not list audio devices ({e}). Run: trackmix doctor")

        if not devices:
            print("(no audio devices found)")
        for d in devices:
            print(
                f"{d['index']:>3}  {d['name']}  "
                f"(in {d['max_input_channels']}, out {d['max_output_channels']}, {d['default_samplerate']:.0f} Hz)"
            )
        return

    if args.cmd == "render":
        _cmd_render(args)
        return

    if args.cmd == "play":
        _cmd_play(args)
        return

    parser.print_help()


if __name__ == "__main__":
    main()
