from __future__ import annotations

import io

from trackmix.audio.store import SampleBuffer
from trackmix.audio.wav import decode_wav
from trackmix.errors import DecodeError


def _is_riff_wave(data: bytes) -> bool:
    return len(data) >= 12 and data[:4] == b"RIFF" and data[8:12] == b"WAVE"


def _decode_soundfile(data: bytes) -> SampleBuffer:
    try:
        import soundfile as sf
    except (ImportError, OSError) as e:
        raise DecodeError(f"soundfile not available for non-WAV input ({e})") from e

    try:
        samples, sr = sf.read(io.BytesIO(data), dtype="float32", always_2d=True)
    except (RuntimeError, TypeError, ValueError) as e:
        # soundfile.LibsndfileError subclasses RuntimeError
        raise DecodeError(f"could not decode audio: {e}") from e
    if samples.shape[0] == 0:
        raise DecodeError("decoded audio has no frames")
    return SampleBuffer(samples=samples, sample_rate=int(sr))


def decode_audio(data: bytes) -> SampleBuffer:
    """Decode arbitrary encoded audio bytes.

    Integer PCM WAV is read with the stdlib wave module; everything else
    (float WAV, FLAC, OGG, ...) goes through soundfile.
    """

    if not data:
        raise DecodeError("empty audio data")
    data = bytes(data)
    if _is_riff_wave(data):
        try:
            return decode_wav(data)
        except DecodeError:
            # e.g. IEEE float or extensible WAV, which wave cannot read
            return _decode_soundfile(data)
    return _decode_soundfile(data)
