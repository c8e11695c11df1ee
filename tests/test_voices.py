"""Tests for voice descriptors and instrument selection."""

import random

import pytest

from mempoolradio.audio.voices import (
    CHIME_HZ,
    SEND_DELAY,
    SEND_REVERB,
    SKANK_HZ,
    WHALE_HZ,
    chime,
    is_skank_beat,
    organ_skank,
    shaker,
    tier_voice,
    voices_for_transaction,
)
from mempoolradio.core.mapping import SCALE_HZ


class FixedRandom(random.Random):
    def __init__(self, value: float):
        super().__init__(0)
        self.value = value

    def random(self):
        return self.value


def test_skank_beats():
    assert [b for b in range(32) if is_skank_beat(b)] == [4, 12, 20, 28]


class TestTierVoices:
    def test_whale_drone(self):
        voices = voices_for_transaction(250_000_000, 1, random.Random(0))
        assert len(voices) == 1
        whale = voices[0]
        assert whale.name == "whale"
        assert whale.frequency == WHALE_HZ
        assert whale.envelope.decay_end == pytest.approx(5.0)
        assert whale.envelope.peak == pytest.approx(0.4)
        assert whale.stop == pytest.approx(5.1)

    def test_pluck_an_octave_up(self):
        voices = voices_for_transaction(500_000, 1, random.Random(0))
        assert [v.name for v in voices] == ["pluck"]
        assert voices[0].frequency == pytest.approx(SCALE_HZ[1] * 2)
        assert voices[0].envelope.decay_end == pytest.approx(0.4)

    def test_steel_drum_goes_to_reverb(self):
        voice = tier_voice(0.5)
        assert voice.name == "steel_drum"
        assert voice.waveform == "triangle"
        assert SEND_REVERB in voice.sends
        assert voice.envelope.peak == pytest.approx(0.2 + 0.5 ** 0.5 * 0.1)

    def test_marimba(self):
        voice = tier_voice(0.05)
        assert voice.name == "marimba"
        assert voice.waveform == "sine"
        assert voice.envelope.peak == pytest.approx(0.15 + 0.05 * 3)
        assert voice.sends == ()

    def test_ghost_has_no_pitched_voice(self):
        assert tier_voice(0) is None
        assert voices_for_transaction(0, 3, FixedRandom(0.0)) == []

    def test_louder_with_value(self):
        assert tier_voice(0.9).envelope.peak > tier_voice(0.2).envelope.peak
        assert tier_voice(0.009).envelope.peak > tier_voice(0.0001).envelope.peak


class TestSkank:
    def test_organ_partials(self):
        voices = organ_skank()
        assert [v.frequency for v in voices] == pytest.approx([SKANK_HZ, SKANK_HZ * 2, SKANK_HZ * 1.5])
        assert [v.waveform for v in voices] == ["triangle", "sine", "sine"]
        assert all(SEND_DELAY in v.sends for v in voices)
        assert voices[1].envelope.peak == pytest.approx(0.04)

    def test_real_transaction_on_skank_beat(self):
        voices = voices_for_transaction(500_000, 4, FixedRandom(0.99))
        assert [v.name for v in voices] == ["organ_skank"] * 3 + ["pluck"]

    def test_ghost_skank_is_probabilistic(self):
        assert len(voices_for_transaction(0, 12, FixedRandom(0.1))) == 3
        assert voices_for_transaction(0, 12, FixedRandom(0.5)) == []

    def test_off_beat_has_no_skank(self):
        voices = voices_for_transaction(500_000, 5, FixedRandom(0.0))
        assert [v.name for v in voices] == ["pluck"]


def test_chime_arpeggio():
    voices = chime()
    assert [v.frequency for v in voices] == list(CHIME_HZ)
    assert [v.offset for v in voices] == pytest.approx([0.0, 0.1, 0.2, 0.3])
    assert max(v.end for v in voices) == pytest.approx(1.9)


def test_shaker():
    voice = shaker()
    assert voice.waveform == "noise"
    assert voice.highpass_hz == 8000.0
    assert voice.stop == pytest.approx(0.05)
