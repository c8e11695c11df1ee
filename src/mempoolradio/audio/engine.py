"""
Island-rhythm audio engine.

Turns dispatched transactions into fire-and-forget synthesized voices:
- Whales (>= 1 BTC) -> 49 Hz drone, 5s
- 0.1 - 1 BTC -> Steel drum through the plate reverb
- 0.01 - 0.1 BTC -> Marimba
- Below 0.01 BTC -> Ukulele pluck
- Skank beats -> Organ chop into the dub delay
- Always -> Quiet shaker pulse every 400 ms once started

Every trigger is a silent no-op until the output context is running.
"""

import asyncio
import random
from dataclasses import dataclass
from typing import Awaitable, Callable

import numpy as np

from mempoolradio.audio.output import STATE_RUNNING, PygameContext
from mempoolradio.audio.synth import DubDelay, EffectBus, PlateReverb, render_gesture
from mempoolradio.audio.voices import Voice, chime, shaker, voices_for_transaction


@dataclass
class AudioConfig:
    """Configuration for the synthesis engine."""
    sample_rate: int = 44100
    master_gain: float = 0.5
    volume_time_constant: float = 0.05

    # Dub delay
    delay_time: float = 0.45
    delay_feedback: float = 0.4
    delay_cutoff_hz: float = 1000.0

    # Plate reverb
    reverb_seconds: float = 2.5

    # Ambient
    shaker_period: float = 0.4
    ghost_skank_probability: float = 0.3


class AudioEngine:
    """
    Owns the output context and the shared effect bus.

    Holds no reference to any voice once it has been scheduled.
    """

    def __init__(
        self,
        config: AudioConfig | None = None,
        seed: int | None = None,
        context_factory: Callable[[int], object] | None = None,
    ):
        self.cfg = config or AudioConfig()
        self.rng = random.Random(seed)
        self.np_rng = np.random.default_rng(seed)
        self._context_factory = context_factory or (lambda sr: PygameContext(sample_rate=sr))

        self.ctx = None
        self.bus: EffectBus | None = None
        self._shaker_started = False
        self._shaker_running = False

    @property
    def is_running(self) -> bool:
        return self.ctx is not None and self.ctx.state == STATE_RUNNING

    def start(self):
        """
        Open the output, build the effect bus and greet the listener.

        Plays the start-up chime and arms the shaker. Calling it again
        while running does nothing.
        """
        if self.is_running:
            return

        self.ctx = self._context_factory(self.cfg.sample_rate)
        self.ctx.resume()
        sr = self.ctx.sample_rate

        self.bus = EffectBus(
            delay=DubDelay(
                delay_time=self.cfg.delay_time,
                feedback=self.cfg.delay_feedback,
                cutoff_hz=self.cfg.delay_cutoff_hz,
                sample_rate=sr,
            ),
            reverb=PlateReverb(self.cfg.reverb_seconds, sample_rate=sr, rng=self.np_rng),
        )
        self.ctx.set_master_gain(self.cfg.master_gain)

        self._play(chime())
        self._shaker_started = True

    def close(self):
        self.stop_shaker()
        if self.ctx is not None:
            self.ctx.close()

    def set_volume(self, value: float):
        """Glide the master gain to `value` without clicks."""
        if self.ctx is None:
            return
        value = max(0.0, min(1.0, value))
        self.ctx.set_master_gain(value, self.cfg.volume_time_constant)

    def pump(self):
        """Keep live master-gain ramps moving; call once per frame."""
        if self.is_running:
            self.ctx.pump()

    def play_transaction(self, value: float, beat_pos: int):
        if not self.is_running:
            return
        voices = voices_for_transaction(
            value, beat_pos, self.rng, skank_probability=self.cfg.ghost_skank_probability
        )
        self._play(voices)

    def play_block_confirm(self):
        if not self.is_running:
            return
        self._play(chime())

    def shaker_pulse(self):
        """One tick of the ambient shaker."""
        if not self.is_running or not self._shaker_started:
            return
        self._play([shaker()])

    async def run_shaker(self, sleep: Callable[[float], Awaitable[None]] = asyncio.sleep):
        """Steady shaker for the lifetime of the session."""
        self._shaker_running = True
        while self._shaker_running:
            self.shaker_pulse()
            await sleep(self.cfg.shaker_period)

    def stop_shaker(self):
        self._shaker_running = False

    def _play(self, voices: list[Voice]):
        if not voices:
            return
        samples = render_gesture(voices, self.bus, self.ctx.sample_rate, self.np_rng)
        self.ctx.schedule(samples, self.ctx.current_time)
