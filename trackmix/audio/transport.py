from __future__ import annotations

from enum import Enum
from typing import Callable


class TransportState(str, Enum):
    STOPPED = "stopped"
    PLAYING = "playing"
    PAUSED = "paused"


class Transport:
    """Timeline position derived from an engine clock.

    While playing: clock() - start_clock + offset_at_start.
    Otherwise: the position frozen by the last pause/stop/seek.
    """

    def __init__(self, clock: Callable[[], float]) -> None:
        self._clock = clock
        self.state = TransportState.STOPPED
        self.start_clock = 0.0
        self.offset_at_start = 0.0
        self.paused_position = 0.0

    @property
    def is_playing(self) -> bool:
        return self.state == TransportState.PLAYING

    def now(self) -> float:
        return float(self._clock())

    def position(self) -> float:
        if self.state == TransportState.PLAYING:
            return self.now() - self.start_clock + self.offset_at_start
        return self.paused_position

    def start(self, at: float) -> float:
        """Enter PLAYING at timeline position `at`; returns the clock reading used."""
        now = self.now()
        self.start_clock = now
        self.offset_at_start = max(0.0, float(at))
        self.paused_position = self.offset_at_start
        self.state = TransportState.PLAYING
        return now

    def pause(self) -> float:
        self.paused_position = self.position()
        self.state = TransportState.PAUSED
        return self.paused_position

    def stop(self) -> None:
        self.paused_position = 0.0
        self.state = TransportState.STOPPED

    def seek(self, position: float) -> None:
        """Move the frozen position; only meaningful while not playing."""
        self.paused_position = max(0.0, float(position))
