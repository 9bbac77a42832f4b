from __future__ import annotations

import logging
import threading

import numpy as np

from trackmix.audio.chain import ChainParams, TrackChain
from trackmix.audio.voice import Voice
from trackmix.model.types import Track

logger = logging.getLogger(__name__)


class MixBus:
    """Track chains summed into one stereo master, plus the active voice set.

    render() is called from the audio callback thread; everything else from
    the control thread. The voice set and chain map share one lock. The
    bus also owns the sample clock: frames rendered so far.
    """

    def __init__(
        self,
        sample_rate: int,
        *,
        ramp_seconds: float | None = 0.05,
        master_gain: float = 1.0,
    ) -> None:
        self.sample_rate = int(sample_rate)
        self.ramp_seconds = ramp_seconds
        self.master_gain = float(master_gain)
        self._chains: dict[str, TrackChain] = {}
        self._voices: set[Voice] = set()
        self._lock = threading.Lock()
        self._frame = 0

    # -- clock --

    @property
    def frame(self) -> int:
        return self._frame

    @property
    def current_time(self) -> float:
        return self._frame / float(self.sample_rate)

    # -- chains --

    def chain(self, track_id: str) -> TrackChain | None:
        with self._lock:
            return self._chains.get(str(track_id))

    def update_track(self, track: Track) -> TrackChain:
        """Create the track's chain on first use, then update it in place."""
        params = ChainParams.from_track(track)
        with self._lock:
            chain = self._chains.get(track.id)
            if chain is None:
                chain = TrackChain(self.sample_rate, params=params, ramp_seconds=self.ramp_seconds)
                self._chains[track.id] = chain
                logger.debug("created chain for track %s", track.id)
                return chain
        chain.set_params(params)
        return chain

    def remove_track(self, track_id: str) -> bool:
        with self._lock:
            return self._chains.pop(str(track_id), None) is not None

    def track_ids(self) -> list[str]:
        with self._lock:
            return list(self._chains)

    # -- voices --

    def add_voice(self, voice: Voice) -> None:
        if voice.done:
            return
        with self._lock:
            self._voices.add(voice)

    @property
    def active_voices(self) -> list[Voice]:
        with self._lock:
            return list(self._voices)

    @property
    def active_count(self) -> int:
        with self._lock:
            return len(self._voices)

    def stop_all(self) -> int:
        """Halt every active voice and clear the set. Returns how many were halted."""
        with self._lock:
            voices = list(self._voices)
            self._voices.clear()
        for v in voices:
            v.stop()
        return len(voices)

    # -- rendering --

    def render(self, frames: int) -> np.ndarray:
        """Mix the next block of the master bus as float32 (frames, 2)."""
        n = int(frames)
        start = self._frame
        with self._lock:
            voices = list(self._voices)
            chains = list(self._chains.items())

        inputs: dict[str, np.ndarray] = {}
        ended: list[Voice] = []
        for v in voices:
            block = v.render(start, n)
            if block is not None:
                acc = inputs.get(v.track_id)
                if acc is None:
                    inputs[v.track_id] = block
                else:
                    acc += block
            if v.done:
                ended.append(v)

        if ended:
            with self._lock:
                for v in ended:
                    self._voices.discard(v)

        out = np.zeros((n, 2), dtype=np.float64)
        silence = None
        for track_id, chain in chains:
            x = inputs.get(track_id)
            if x is None:
                if silence is None:
                    silence = np.zeros((n, 2), dtype=np.float64)
                x = silence
            out += chain.process(x)

        if self.master_gain != 1.0:
            out *= self.master_gain
        self._frame = start + n
        return out.astype(np.float32)
