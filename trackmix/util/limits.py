"""Parameter ranges and hard limits.

Values outside these ranges come from hand-edited or corrupted projects.
They are clamped on load and again when a track chain picks them up.
"""

from __future__ import annotations

EQ_GAIN_DB_MIN = -20.0
EQ_GAIN_DB_MAX = 20.0

# Delay line length is fixed; 0.01s floor avoids a zero-length loop.
DELAY_TIME_MIN = 0.01
DELAY_TIME_MAX = 2.0

# Feedback must stay strictly below 1 for the echo to decay.
DELAY_FEEDBACK_MAX = 0.9

DELAY_MIX_MIN = 0.0
DELAY_MIX_MAX = 1.0

VOLUME_MIN = 0.0
VOLUME_MAX = 2.0

PLAYBACK_RATE_MIN = 0.25
PLAYBACK_RATE_MAX = 4.0

MAX_TRACKS = 64
MAX_CLIPS = 4096

# Keep timeline values sane (avoid pathological floats in JSON)
MAX_TIMELINE_SECONDS = 24 * 3600.0
