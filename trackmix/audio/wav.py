from __future__ import annotations

import io
import wave
from pathlib import Path

import numpy as np

from trackmix.audio.store import SampleBuffer
from trackmix.errors import DecodeError


def to_pcm16(samples: np.ndarray) -> np.ndarray:
    """Float [-1, 1] -> little-endian int16, truncating toward zero.

    Negative values scale by 32768 and positive ones by 32767 so both
    full-scale ends map exactly.
    """

    x = np.clip(np.asarray(samples, dtype=np.float64), -1.0, 1.0)
    scaled = np.where(x < 0, x * 32768.0, x * 32767.0)
    return scaled.astype("<i2")


def encode_wav(samples: np.ndarray, sample_rate: int) -> bytes:
    """Encode (frames, channels) or (frames,) floats as a 16-bit PCM WAV file."""
    x = np.asarray(samples)
    if x.ndim == 1:
        x = x[:, None]
    if x.ndim != 2 or x.shape[1] < 1:
        raise ValueError("samples must be shaped (frames, channels)")
    if int(sample_rate) <= 0:
        raise ValueError(f"sample_rate must be > 0: {sample_rate}")

    pcm = to_pcm16(x)
    bio = io.BytesIO()
    with wave.open(bio, "wb") as wf:
        wf.setnchannels(int(x.shape[1]))
        wf.setsampwidth(2)
        wf.setframerate(int(sample_rate))
        wf.writeframes(pcm.tobytes())
    return bio.getvalue()


def write_wav(path: str | Path, samples: np.ndarray, *, sample_rate: int) -> Path:
    p = Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)
    p.write_bytes(encode_wav(samples, sample_rate))
    return p


def _pcm_to_float(raw: bytes, width: int, channels: int) -> np.ndarray:
    if width == 1:
        # 8-bit WAV is unsigned.
        a = (np.frombuffer(raw, dtype=np.uint8).astype(np.float32) - 128.0) / 128.0
    elif width == 2:
        a = np.frombuffer(raw, dtype="<i2").astype(np.float32) / 32768.0
    elif width == 3:
        b = np.frombuffer(raw, dtype=np.uint8).reshape(-1, 3).astype(np.int32)
        v = b[:, 0] | (b[:, 1] << 8) | (b[:, 2] << 16)
        v = np.where(v & 0x800000, v - 0x1000000, v)
        a = v.astype(np.float32) / 8388608.0
    elif width == 4:
        a = (np.frombuffer(raw, dtype="<i4").astype(np.float64) / 2147483648.0).astype(np.float32)
    else:
        raise DecodeError(f"unsupported WAV sample width: {width * 8} bits")
    return a.reshape(-1, channels)


def decode_wav(data: bytes) -> SampleBuffer:
    """Decode integer PCM WAV bytes (8/16/24/32-bit) into a SampleBuffer."""
    if not data:
        raise DecodeError("empty audio data")
    try:
        with wave.open(io.BytesIO(data), "rb") as wf:
            channels = wf.getnchannels()
            width = wf.getsampwidth()
            sr = wf.getframerate()
            raw = wf.readframes(wf.getnframes())
    except (wave.Error, EOFError) as e:
        raise DecodeError(f"invalid WAV data: {e}") from e

    if channels < 1 or sr <= 0:
        raise DecodeError(f"invalid WAV header (channels={channels}, rate={sr})")
    usable = len(raw) - len(raw) % (width * channels)
    if usable == 0:
        raise DecodeError("decoded audio has no frames")
    samples = _pcm_to_float(raw[:usable], width, channels)
    return SampleBuffer(samples=samples, sample_rate=sr)
