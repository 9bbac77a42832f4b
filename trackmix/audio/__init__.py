"""Audio engine internals.

Everything here works on numpy float blocks shaped (frames, channels):
- store: decoded sample buffers keyed by id
- dsp/chain: the fixed per-track EQ + feedback delay + volume chain
- scheduler/transport/voice/bus: live playback of clips through the chains
- offline: deterministic full-length mixdown using the same chains
- wav/encode/decode: PCM container IO; compressed formats shell out to ffmpeg

Device IO (sounddevice) is imported lazily in device/record so the rest of the
package works on machines without PortAudio.
"""
