"""
Voice descriptors.

A voice is a value object: waveform, frequency, envelope, stop time and
effect sends. Instrument builders below return lists of voices; the
synthesis backend turns them into samples. Nothing here touches audio
hardware, so selection logic can be tested directly.
"""

import random
from dataclasses import dataclass

from mempoolradio.core.mapping import (
    TIER_MARIMBA,
    TIER_PLUCK,
    TIER_STEEL_DRUM,
    TIER_WHALE,
    btc_from_sats,
    pitch_from_value,
    select_tier,
)

SEND_DELAY = "delay"
SEND_REVERB = "reverb"

SKANK_BEATS = (4, 12)
SKANK_HZ = 392.00
WHALE_HZ = 49.00
CHIME_HZ = (196.0, 246.94, 293.66, 392.0)

# Every voice rings on for this long after its decay target
STOP_PADDING = 0.1


@dataclass(frozen=True)
class Envelope:
    """
    Attack/decay gain envelope in seconds.

    Linear ramp from silence to `peak` over `attack` (instant when 0),
    then exponential decay reaching `floor` at `decay_end`.
    """
    peak: float
    attack: float
    decay_end: float
    floor: float = 0.001


@dataclass(frozen=True)
class Voice:
    """One oscillator (or noise burst) with its envelope and routing."""
    name: str
    waveform: str  # "sine", "triangle", "square", "sawtooth", "noise"
    frequency: float
    envelope: Envelope
    stop: float
    offset: float = 0.0  # start time relative to the trigger
    sends: tuple[str, ...] = ()
    highpass_hz: float | None = None

    @property
    def end(self) -> float:
        return self.offset + self.stop


def is_skank_beat(beat_pos: int) -> bool:
    return beat_pos % 16 in SKANK_BEATS


def organ_skank(freq: float = SKANK_HZ) -> list[Voice]:
    """Three detuned organ partials with a short percussive chop."""
    duration = 0.15
    vol = 0.08
    voices = []
    for i, ratio in enumerate((1.0, 2.0, 1.5)):
        voices.append(Voice(
            name="organ_skank",
            waveform="triangle" if i == 0 else "sine",
            frequency=freq * ratio,
            envelope=Envelope(peak=vol / (i + 1), attack=0.01, decay_end=duration),
            stop=duration + STOP_PADDING,
            sends=(SEND_DELAY,),
        ))
    return voices


def whale_drone(btc_value: float) -> Voice:
    duration = 5.0
    return Voice(
        name=TIER_WHALE,
        waveform="sine",
        frequency=WHALE_HZ,
        envelope=Envelope(peak=0.4, attack=0.1, decay_end=duration),
        stop=duration + STOP_PADDING,
    )


def steel_drum(freq: float, btc_value: float) -> Voice:
    duration = 1.5
    return Voice(
        name=TIER_STEEL_DRUM,
        waveform="triangle",
        frequency=freq,
        envelope=Envelope(peak=0.2 + (btc_value ** 0.5) * 0.1, attack=0.01, decay_end=duration),
        stop=duration + STOP_PADDING,
        sends=(SEND_REVERB,),
    )


def marimba(freq: float, btc_value: float) -> Voice:
    duration = 0.8
    return Voice(
        name=TIER_MARIMBA,
        waveform="sine",
        frequency=freq,
        envelope=Envelope(peak=0.15 + btc_value * 3.0, attack=0.005, decay_end=duration),
        stop=duration + STOP_PADDING,
    )


def pluck(freq: float, btc_value: float) -> Voice:
    """Ukulele-ish pluck, an octave above the mapped pitch."""
    duration = 0.4
    return Voice(
        name=TIER_PLUCK,
        waveform="triangle",
        frequency=freq * 2.0,
        envelope=Envelope(peak=0.1 + btc_value * 10.0, attack=0.005, decay_end=duration),
        stop=duration + STOP_PADDING,
    )


def chime() -> list[Voice]:
    """Ascending four-note G major arpeggio, used at start-up and on new blocks."""
    return [
        Voice(
            name="chime",
            waveform="sine",
            frequency=f,
            envelope=Envelope(peak=0.2, attack=0.05, decay_end=1.5),
            stop=1.6,
            offset=i * 0.1,
        )
        for i, f in enumerate(CHIME_HZ)
    ]


def shaker() -> Voice:
    """50 ms of high-passed white noise."""
    return Voice(
        name="shaker",
        waveform="noise",
        frequency=0.0,
        envelope=Envelope(peak=0.015, attack=0.0, decay_end=0.04, floor=0.0001),
        stop=0.05,
        highpass_hz=8000.0,
    )


def tier_voice(btc_value: float) -> Voice | None:
    """The single pitched voice for a value, or None for ghost values."""
    tier = select_tier(btc_value)
    if tier is None:
        return None
    if tier.name == TIER_WHALE:
        return whale_drone(btc_value)

    freq = pitch_from_value(btc_value, tier.low, tier.high)
    if tier.name == TIER_STEEL_DRUM:
        return steel_drum(freq, btc_value)
    if tier.name == TIER_MARIMBA:
        return marimba(freq, btc_value)
    return pluck(freq, btc_value)


def voices_for_transaction(
    value_sats: float,
    beat_pos: int,
    rng: random.Random,
    skank_probability: float = 0.3,
) -> list[Voice]:
    """
    Everything a dispatched transaction (or ghost cue) should sound.

    Skank beats add the organ accent for any real transaction, and for a
    ghost with `skank_probability`. Positive values add one tier voice.
    """
    btc_value = btc_from_sats(value_sats)
    voices: list[Voice] = []

    if is_skank_beat(beat_pos) and (btc_value > 0 or rng.random() < skank_probability):
        voices.extend(organ_skank())

    if btc_value <= 0:
        return voices

    voice = tier_voice(btc_value)
    if voice is not None:
        voices.append(voice)
    return voices

