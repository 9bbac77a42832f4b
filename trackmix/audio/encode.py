from __future__ import annotations

import logging
import shutil
import subprocess

import numpy as np

from trackmix.audio.wav import encode_wav
from trackmix.errors import EncoderUnavailable

logger = logging.getLogger(__name__)

SUPPORTED_CODECS = ("wav", "mp3", "m4a")


def _ffmpeg() -> str | None:
    return shutil.which("ffmpeg")


def available_codecs() -> list[str]:
    """Codecs encode_mix() can produce on this system."""
    if _ffmpeg():
        return list(SUPPORTED_CODECS)
    return ["wav"]


def _ffmpeg_cmd(ffmpeg: str, codec: str, sample_rate: int, bitrate: str) -> list[str]:
    cmd = [
        ffmpeg,
        "-hide_banner",
        "-loglevel",
        "error",
        "-f",
        "wav",
        "-i",
        "pipe:0",
        "-ar",
        str(int(sample_rate)),
    ]
    if codec == "mp3":
        cmd += ["-codec:a", "libmp3lame", "-b:a", bitrate, "-f", "mp3"]
    else:
        # m4a container w/ AAC; ipod is the muxer that can write to a pipe
        cmd += ["-codec:a", "aac", "-b:a", bitrate, "-f", "ipod", "-movflags", "frag_keyframe+empty_moov"]
    cmd.append("pipe:1")
    return cmd


def encode_mix(
    samples: np.ndarray,
    sample_rate: int,
    *,
    codec: str = "wav",
    bitrate: str = "192k",
) -> bytes:
    """Encode a rendered mix to bytes in the requested container.

    wav is always available. mp3 and m4a are produced by piping the WAV
    through ffmpeg; if it is missing or fails, EncoderUnavailable is raised
    instead of falling back to another format.
    """

    codec = str(codec).strip().lower()
    if codec not in SUPPORTED_CODECS:
        raise ValueError(f"codec must be one of {', '.join(SUPPORTED_CODECS)}: {codec!r}")

    wav_bytes = encode_wav(samples, sample_rate)
    if codec == "wav":
        return wav_bytes

    ffmpeg = _ffmpeg()
    if not ffmpeg:
        raise EncoderUnavailable(codec, "ffmpeg not found on PATH")

    cmd = _ffmpeg_cmd(ffmpeg, codec, sample_rate, bitrate)
    try:
        proc = subprocess.run(cmd, input=wav_bytes, capture_output=True, check=True)
    except subprocess.CalledProcessError as e:
        err = (e.stderr or b"").decode("utf-8", "replace").strip()
        raise EncoderUnavailable(codec, err or f"ffmpeg exited with {e.returncode}") from e
    except OSError as e:
        raise EncoderUnavailable(codec, str(e)) from e

    logger.info("encoded %s: %d bytes", codec, len(proc.stdout))
    return proc.stdout
