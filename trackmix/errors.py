from __future__ import annotations


class TrackmixError(Exception):
    """Base class for engine errors surfaced to callers."""


class DecodeError(TrackmixError, ValueError):
    """Input bytes could not be decoded as audio."""


class RecordingError(TrackmixError, RuntimeError):
    """The input device is unavailable, denied, or not recording."""


class EncoderUnavailable(TrackmixError, RuntimeError):
    """The requested export codec cannot be produced on this system."""

    def __init__(self, codec: str, reason: str = "") -> None:
        self.codec = codec
        msg = f"codec not available: {codec}"
        if reason:
            msg += f" ({reason})"
        super().__init__(msg)


class ProjectFormatError(TrackmixError, ValueError):
    """A project document has an unknown version or an unusable shape."""


class ConfigError(TrackmixError, ValueError):
    """Raised when a config file cannot be used."""


class AudioDeviceError(TrackmixError, RuntimeError):
    """The output device could not be opened."""
