from __future__ import annotations

import logging
from typing import Any, Callable

from trackmix.audio.bus import MixBus
from trackmix.errors import AudioDeviceError

logger = logging.getLogger(__name__)


def _sounddevice_output(**kwargs: Any) -> Any:
    import sounddevice as sd

    return sd.OutputStream(**kwargs)


def list_devices() -> list[dict[str, Any]]:
    """Audio devices as reported by PortAudio (name, channel counts, default rate)."""
    import sounddevice as sd

    out: list[dict[str, Any]] = []
    for i, d in enumerate(sd.query_devices()):
        out.append(
            {
                "index": i,
                "name": str(d["name"]),
                "max_input_channels": int(d["max_input_channels"]),
                "max_output_channels": int(d["max_output_channels"]),
                "default_samplerate": float(d["default_samplerate"]),
            }
        )
    return out


class AudioOutput:
    """Stereo output stream whose callback pulls blocks from a MixBus.

    stream_factory takes OutputStream keyword arguments and returns an
    object with start()/stop()/close(); it defaults to sounddevice.
    """

    def __init__(
        self,
        bus: MixBus,
        *,
        sample_rate: int,
        block_size: int = 512,
        device: int | str | None = None,
        stream_factory: Callable[..., Any] | None = None,
    ) -> None:
        self.bus = bus
        self.sample_rate = int(sample_rate)
        self.block_size = int(block_size)
        self.device = device
        self._factory = stream_factory or _sounddevice_output
        self._stream: Any = None

    @property
    def running(self) -> bool:
        return self._stream is not None

    def _callback(self, outdata: Any, frames: int, time_info: Any, status: Any) -> None:
        if status:
            logger.debug("output stream status: %s", status)
        outdata[:] = self.bus.render(frames)

    def start(self) -> None:
        if self._stream is not None:
            return
        try:
            stream = self._factory(
                samplerate=self.sample_rate,
                blocksize=self.block_size,
                channels=2,
                dtype="float32",
                device=self.device,
                callback=self._callback,
            )
            stream.start()
        except Exception as e:
            raise AudioDeviceError(f"could not open audio output ({e})") from e
        self._stream = stream
        logger.info("audio output started (%d Hz, block %d)", self.sample_rate, self.block_size)

    def close(self) -> None:
        stream, self._stream = self._stream, None
        if stream is None:
            return
        stream.stop()
        stream.close()
        logger.info("audio output closed")
