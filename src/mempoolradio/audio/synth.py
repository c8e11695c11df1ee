"""
Numpy synthesis backend.

Renders voice descriptors to mono float32 sample buffers and provides
the two shared effects:
- Dub delay: 0.45s echo whose feedback path is low-passed at 1kHz
- Plate reverb: convolution with a decaying noise impulse

Both effects are linear and time-invariant, so running each voice's
send through them and summing is the same as a shared effect bus.
"""

import math

import numpy as np
from scipy import signal as scipy_signal

from mempoolradio.audio.voices import SEND_DELAY, SEND_REVERB, Envelope, Voice

DEFAULT_SR = 44100


def oscillator(
    waveform: str,
    frequency: float,
    n_samples: int,
    sample_rate: int = DEFAULT_SR,
    rng: np.random.Generator | None = None,
) -> np.ndarray:
    """Generate `n_samples` of a unit-amplitude waveform."""
    if waveform == "noise":
        rng = rng or np.random.default_rng()
        return rng.uniform(-1.0, 1.0, n_samples).astype(np.float32)

    t = np.arange(n_samples, dtype=np.float64) / sample_rate
    phase = frequency * t

    if waveform == "sine":
        wave = np.sin(2 * math.pi * phase)
    elif waveform == "triangle":
        wave = 2.0 * np.abs(2.0 * (phase - np.floor(phase + 0.5))) - 1.0
    elif waveform == "square":
        wave = np.where(np.sin(2 * math.pi * phase) >= 0, 1.0, -1.0)
    elif waveform == "sawtooth":
        wave = 2.0 * (phase - np.floor(phase + 0.5))
    else:
        raise ValueError(f"Unknown waveform: {waveform}")

    return wave.astype(np.float32)


def envelope_curve(env: Envelope, n_samples: int, sample_rate: int = DEFAULT_SR) -> np.ndarray:
    """
    Gain curve for an envelope.

    Linear attack from 0 to peak, exponential approach from peak to
    floor at `decay_end`, then held at floor.
    """
    t = np.arange(n_samples, dtype=np.float64) / sample_rate
    gain = np.empty(n_samples, dtype=np.float64)

    if env.attack > 0:
        attack = t < env.attack
        gain[attack] = env.peak * (t[attack] / env.attack)
    else:
        attack = np.zeros(n_samples, dtype=bool)

    decay_len = max(env.decay_end - env.attack, 1e-9)
    decaying = ~attack & (t < env.decay_end)
    progress = (t[decaying] - env.attack) / decay_len
    gain[decaying] = env.peak * (env.floor / env.peak) ** progress

    gain[t >= env.decay_end] = env.floor
    return gain.astype(np.float32)


def highpass(samples: np.ndarray, cutoff_hz: float, sample_rate: int = DEFAULT_SR) -> np.ndarray:
    # Cutoff must stay below Nyquist at low output rates
    cutoff_hz = min(cutoff_hz, 0.45 * sample_rate)
    b, a = scipy_signal.butter(2, cutoff_hz, btype="highpass", fs=sample_rate)
    return scipy_signal.lfilter(b, a, samples).astype(np.float32)


def render_voice(
    voice: Voice,
    sample_rate: int = DEFAULT_SR,
    rng: np.random.Generator | None = None,
) -> np.ndarray:
    """Render a voice from its own start (offset is not applied here)."""
    n = max(1, int(round(voice.stop * sample_rate)))
    wave = oscillator(voice.waveform, voice.frequency, n, sample_rate, rng)
    if voice.highpass_hz:
        wave = highpass(wave, voice.highpass_hz, sample_rate)
    return (wave * envelope_curve(voice.envelope, n, sample_rate)).astype(np.float32)


class DubDelay:
    """
    Feedback delay with a low-pass filter inside the loop.

    Echo k arrives k * delay_time later, scaled by feedback^(k-1) and
    low-passed k-1 times. Echoes stop once they drop below `silence`.
    """

    def __init__(
        self,
        delay_time: float = 0.45,
        feedback: float = 0.4,
        cutoff_hz: float = 1000.0,
        sample_rate: int = DEFAULT_SR,
        max_echoes: int = 24,
        silence: float = 1e-4,
    ):
        self.delay_time = delay_time
        self.feedback = feedback
        self.sample_rate = sample_rate
        self.max_echoes = max_echoes
        self.silence = silence
        self._b, self._a = scipy_signal.butter(2, cutoff_hz, btype="lowpass", fs=sample_rate)

    @property
    def delay_samples(self) -> int:
        return int(round(self.delay_time * self.sample_rate))

    def process(self, dry: np.ndarray) -> np.ndarray:
        """Wet output for a dry send; starts at time zero of the send."""
        d = self.delay_samples
        echoes = []
        echo = dry.astype(np.float64)
        for k in range(1, self.max_echoes + 1):
            if np.max(np.abs(echo), initial=0.0) < self.silence:
                break
            echoes.append((k * d, echo))
            echo = scipy_signal.lfilter(self._b, self._a, echo * self.feedback)

        if not echoes:
            return np.zeros(len(dry), dtype=np.float32)

        out = np.zeros(echoes[-1][0] + len(dry), dtype=np.float64)
        for start, e in echoes:
            out[start:start + len(e)] += e
        return out.astype(np.float32)


class PlateReverb:
    """Long diffuse reverb from a cubic-decay noise impulse, two channels summed to mono."""

    def __init__(
        self,
        seconds: float = 2.5,
        sample_rate: int = DEFAULT_SR,
        rng: np.random.Generator | None = None,
    ):
        self.sample_rate = sample_rate
        rng = rng or np.random.default_rng()
        length = int(sample_rate * seconds)
        j = np.arange(length, dtype=np.float64)
        noise = rng.uniform(-1.0, 1.0, (2, length)).sum(axis=0)
        impulse = noise * (1.0 - j / length) ** 3.0
        # Normalized to unit energy, like a normalizing convolver
        self.impulse = (impulse / np.sqrt(np.sum(impulse ** 2))).astype(np.float32)

    def process(self, dry: np.ndarray) -> np.ndarray:
        return scipy_signal.fftconvolve(dry, self.impulse).astype(np.float32)


class EffectBus:
    """The shared delay and reverb returns."""

    def __init__(self, delay: DubDelay, reverb: PlateReverb):
        self.delay = delay
        self.reverb = reverb

    def apply(self, dry: np.ndarray, sends: tuple[str, ...]) -> np.ndarray:
        """Dry signal plus every requested effect return."""
        parts = [dry]
        if SEND_DELAY in sends:
            parts.append(self.delay.process(dry))
        if SEND_REVERB in sends:
            parts.append(self.reverb.process(dry))
        return mix(parts)


def mix(parts: list[np.ndarray], offsets: list[int] | None = None) -> np.ndarray:
    """Sum buffers, each starting at its sample offset."""
    if not parts:
        return np.zeros(0, dtype=np.float32)
    offsets = offsets or [0] * len(parts)
    length = max(o + len(p) for o, p in zip(offsets, parts))
    out = np.zeros(length, dtype=np.float32)
    for o, p in zip(offsets, parts):
        out[o:o + len(p)] += p
    return out


def render_gesture(
    voices: list[Voice],
    bus: EffectBus | None = None,
    sample_rate: int = DEFAULT_SR,
    rng: np.random.Generator | None = None,
) -> np.ndarray:
    """Render several voices into one buffer, honoring offsets and sends."""
    parts = []
    offsets = []
    for voice in voices:
        dry = render_voice(voice, sample_rate, rng)
        if bus is not None and voice.sends:
            dry = bus.apply(dry, voice.sends)
        parts.append(dry)
        offsets.append(int(round(voice.offset * sample_rate)))
    return mix(parts, offsets)
