from __future__ import annotations

import logging
from typing import Any, Callable

import numpy as np

from trackmix.audio.bus import MixBus
from trackmix.audio.decode import decode_audio
from trackmix.audio.device import AudioOutput
from trackmix.audio.encode import encode_mix
from trackmix.audio.offline import render_offline
from trackmix.audio.record import Recorder
from trackmix.audio.scheduler import schedule_clips
from trackmix.audio.store import SampleBuffer, SampleStore
from trackmix.audio.transport import Transport, TransportState
from trackmix.audio.voice import Voice
from trackmix.errors import DecodeError, RecordingError
from trackmix.model.types import Clip, Track
from trackmix.util.config import EngineConfig

logger = logging.getLogger(__name__)


class MixEngine:
    """Explicit engine handle: one sample store, one live bus, one transport.

    The clock is the bus sample clock, so "now" only advances when the bus
    renders (from the output device callback, or by calling bus.render()).
    """

    def __init__(
        self,
        config: EngineConfig | None = None,
        *,
        output_factory: Callable[..., Any] | None = None,
        recorder_factory: Callable[..., Any] | None = None,
    ) -> None:
        self.config = config or EngineConfig()
        self.sample_rate = self.config.sample_rate
        self.store = SampleStore()
        self.bus = MixBus(self.sample_rate, ramp_seconds=self.config.ramp_seconds)
        self.transport = Transport(lambda: self.bus.current_time)
        self._output_factory = output_factory
        self._recorder_factory = recorder_factory
        self._output: AudioOutput | None = None
        self._recorder: Recorder | None = None

    def __enter__(self) -> "MixEngine":
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()

    # -- buffers --

    def add_buffer(self, buffer_id: str, buffer: SampleBuffer) -> None:
        self.store.put(buffer_id, buffer)

    def get_buffer(self, buffer_id: str) -> SampleBuffer | None:
        return self.store.get(buffer_id)

    def decode_audio(self, data: bytes) -> SampleBuffer:
        return decode_audio(data)

    def load_assets(self, assets: dict[str, bytes]) -> list[str]:
        """Decode and store every asset; returns the ids that failed to decode."""
        failed: list[str] = []
        for buffer_id, data in assets.items():
            try:
                buf = decode_audio(data)
            except DecodeError as e:
                logger.warning("asset %s could not be decoded: %s", buffer_id, e)
                failed.append(str(buffer_id))
                continue
            self.store.put(buffer_id, buf)
        return failed

    # -- tracks --

    def update_track_params(self, track: Track) -> None:
        self.bus.update_track(track)

    def remove_track(self, track_id: str) -> bool:
        return self.bus.remove_track(track_id)

    # -- transport --

    def play(self, clips: list[Clip], tracks: list[Track], at: float = 0.0) -> int:
        """Start playback at timeline position `at`. Returns the number of voices started."""
        self.bus.stop_all()
        for t in tracks:
            self.bus.update_track(t)

        now = self.transport.start(at)
        starts = schedule_clips(clips, tracks, self.store, at=self.transport.offset_at_start, now=now)
        for s in starts:
            buffer = self.store.get(s.buffer_id)
            if buffer is None:
                continue
            self.bus.add_voice(
                Voice(
                    buffer,
                    track_id=s.track_id,
                    start_frame=int(round(s.when * self.sample_rate)),
                    offset=s.offset,
                    duration=s.duration,
                    output_rate=self.sample_rate,
                    playback_rate=s.playback_rate,
                    clip_id=s.clip_id,
                )
            )
        logger.debug("play at %.3fs: %d voices", self.transport.offset_at_start, len(starts))
        return len(starts)

    def stop(self) -> None:
        self.bus.stop_all()
        self.transport.stop()

    def pause(self) -> float:
        self.bus.stop_all()
        return self.transport.pause()

    def seek(self, position: float, clips: list[Clip], tracks: list[Track]) -> None:
        if self.transport.is_playing:
            self.play(clips, tracks, at=position)
        else:
            self.transport.seek(position)

    def get_current_position(self) -> float:
        return self.transport.position()

    @property
    def state(self) -> TransportState:
        return self.transport.state

    def is_playing(self) -> bool:
        return self.transport.is_playing

    def active_voice_count(self) -> int:
        return self.bus.active_count

    # -- offline --

    def render_offline(
        self,
        clips: list[Clip],
        tracks: list[Track],
        total_duration: float,
        *,
        sample_rate: int | None = None,
    ) -> np.ndarray:
        return render_offline(
            clips,
            tracks,
            self.store,
            total_duration,
            sample_rate=sample_rate or self.sample_rate,
            block_size=max(self.config.block_size, 1024),
        )

    def export_mix(
        self,
        clips: list[Clip],
        tracks: list[Track],
        total_duration: float,
        codec: str | None = None,
        *,
        sample_rate: int | None = None,
    ) -> bytes:
        sr = sample_rate or self.sample_rate
        codec = codec or self.config.export_codec
        mix = self.render_offline(clips, tracks, total_duration, sample_rate=sr)
        data = encode_mix(mix, sr, codec=codec)
        logger.info("exported %.2fs mix as %s (%d bytes)", total_duration, codec, len(data))
        return data

    # -- devices --

    def start_output(self) -> None:
        if self._output is None:
            self._output = AudioOutput(
                self.bus,
                sample_rate=self.sample_rate,
                block_size=self.config.block_size,
                device=self.config.output_device,
                stream_factory=self._output_factory,
            )
        self._output.start()

    def start_recording(self) -> None:
        if self._recorder is None:
            self._recorder = Recorder(
                sample_rate=self.sample_rate,
                channels=self.config.input_channels,
                device=self.config.input_device,
                stream_factory=self._recorder_factory,
            )
        self._recorder.start()

    def stop_recording(self) -> SampleBuffer:
        if self._recorder is None:
            raise RecordingError("not recording")
        return self._recorder.stop()

    def close(self) -> None:
        self.stop()
        if self._recorder is not None and self._recorder.recording:
            self._recorder.stop()
        if self._output is not None:
            self._output.close()
