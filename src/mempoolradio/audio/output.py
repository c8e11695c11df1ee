"""
Audio output contexts.

A context owns the clock, the run state and the master gain; engines
schedule finished sample buffers into it.
- OfflineContext: mixes into an in-memory timeline (replays, tests)
- PygameContext: plays through pygame.mixer in real time
"""

import math
import time

import numpy as np
import pygame
import soundfile as sf

STATE_SUSPENDED = "suspended"
STATE_RUNNING = "running"
STATE_CLOSED = "closed"


class GainParam:
    """
    Gain with first-order smoothing towards a target.

    value(t) = target + (v0 - target) * exp(-(t - t0) / tau)
    """

    def __init__(self, value: float = 1.0):
        self._start_value = value
        self._target = value
        self._t0 = 0.0
        self._tau = 0.0

    def set_target_at_time(self, target: float, start: float, time_constant: float):
        self._start_value = self.value_at(start)
        self._target = target
        self._t0 = start
        self._tau = time_constant

    def value_at(self, t: float) -> float:
        if self._tau <= 0 or t >= self._t0 + self._tau * 30:
            return self._target if t >= self._t0 else self._start_value
        if t < self._t0:
            return self._start_value
        return self._target + (self._start_value - self._target) * math.exp(-(t - self._t0) / self._tau)

    def curve(self, t: np.ndarray) -> np.ndarray:
        """Vectorized value_at for a sorted time axis."""
        if self._tau <= 0:
            return np.where(t >= self._t0, self._target, self._start_value).astype(np.float32)
        elapsed = np.clip(t - self._t0, 0.0, None)
        values = self._target + (self._start_value - self._target) * np.exp(-elapsed / self._tau)
        return values.astype(np.float32)

    @property
    def target(self) -> float:
        return self._target


class OfflineContext:
    """
    Timeline mixer driven by an external clock.

    The driver advances `current_time`; scheduled buffers are summed
    at their start sample. `render()` applies the master gain history.
    """

    def __init__(self, sample_rate: int = 44100):
        self.sample_rate = sample_rate
        self.state = STATE_SUSPENDED
        self.current_time = 0.0
        self.master = GainParam(1.0)
        self._gain_events: list[tuple[float, float, float]] = []
        self._buffer = np.zeros(sample_rate, dtype=np.float32)
        self._length = 0

    def resume(self):
        if self.state != STATE_CLOSED:
            self.state = STATE_RUNNING

    def close(self):
        self.state = STATE_CLOSED

    def advance_to(self, t: float):
        self.current_time = max(self.current_time, t)

    def pump(self):
        """Gain is applied at render time."""

    def set_master_gain(self, target: float, time_constant: float = 0.0):
        self._gain_events.append((self.current_time, target, time_constant))
        self.master.set_target_at_time(target, self.current_time, time_constant)

    def schedule(self, samples: np.ndarray, at: float | None = None):
        start = int(round((self.current_time if at is None else at) * self.sample_rate))
        end = start + len(samples)
        if end > len(self._buffer):
            grown = np.zeros(max(end, len(self._buffer) * 2), dtype=np.float32)
            grown[:len(self._buffer)] = self._buffer
            self._buffer = grown
        self._buffer[start:end] += samples
        self._length = max(self._length, end)

    def render(self, duration: float | None = None) -> np.ndarray:
        """Final mono mix with master gain applied, clipped to [-1, 1]."""
        n = self._length if duration is None else int(round(duration * self.sample_rate))
        out = np.zeros(n, dtype=np.float32)
        available = min(n, self._length)
        out[:available] = self._buffer[:available]

        t = np.arange(n, dtype=np.float64) / self.sample_rate
        gain = GainParam(1.0)
        curve = np.ones(n, dtype=np.float32)
        # Replay gain changes in order; each one takes over from its start time
        for start, target, tau in self._gain_events:
            gain.set_target_at_time(target, start, tau)
            mask = t >= start
            curve[mask] = gain.curve(t[mask])
        return np.clip(out * curve, -1.0, 1.0)

    def write(self, path, duration: float | None = None):
        sf.write(str(path), self.render(duration), self.sample_rate)
        return path


class PygameContext:
    """Real-time output through pygame.mixer."""

    def __init__(self, sample_rate: int = 44100, num_channels: int = 64, buffer_size: int = 512):
        self.sample_rate = sample_rate
        self.num_channels = num_channels
        self.buffer_size = buffer_size
        self.state = STATE_SUSPENDED
        self.master = GainParam(1.0)
        self._t0 = time.perf_counter()
        self._mixer_channels = 1

    @property
    def current_time(self) -> float:
        return time.perf_counter() - self._t0

    def resume(self):
        if self.state == STATE_RUNNING:
            return
        try:
            pygame.mixer.init(
                frequency=self.sample_rate,
                size=-16,
                channels=1,
                buffer=self.buffer_size,
            )
        except pygame.error as e:
            raise RuntimeError(f"Audio output unavailable: {e}") from e

        freq, _, channels = pygame.mixer.get_init()
        self.sample_rate = freq
        self._mixer_channels = channels
        pygame.mixer.set_num_channels(self.num_channels)
        self.state = STATE_RUNNING

    def close(self):
        if self.state == STATE_RUNNING:
            pygame.mixer.stop()
            pygame.mixer.quit()
        self.state = STATE_CLOSED

    def set_master_gain(self, target: float, time_constant: float = 0.0):
        self.master.set_target_at_time(target, self.current_time, time_constant)
        self.pump()

    def pump(self):
        """Push the current master gain to every mixer channel."""
        if self.state != STATE_RUNNING:
            return
        gain = max(0.0, min(1.0, self.master.value_at(self.current_time)))
        for i in range(pygame.mixer.get_num_channels()):
            pygame.mixer.Channel(i).set_volume(gain)

    def schedule(self, samples: np.ndarray, at: float | None = None):
        """Start playing immediately; `at` is accepted for interface parity."""
        if self.state != STATE_RUNNING or len(samples) == 0:
            return
        pcm = (np.clip(samples, -1.0, 1.0) * 32767).astype(np.int16)
        if self._mixer_channels > 1:
            pcm = np.repeat(pcm[:, None], self._mixer_channels, axis=1)
        sound = pygame.sndarray.make_sound(np.ascontiguousarray(pcm))
        channel = sound.play()
        if channel is not None:
            channel.set_volume(max(0.0, min(1.0, self.master.value_at(self.current_time))))
