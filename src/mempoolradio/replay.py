"""
Deterministic offline rendering of a captured session.

The same RadioSession runs on a simulated clock:
- Captured events are delivered at their recorded timestamps
- The dispatcher is ticked at the delays it computes itself
- The shaker pulses every shaker period
- The particle engine advances once per video frame

Rendering takes two passes with the same seed. The audio pass mixes the
soundtrack through an OfflineContext; the frame pass replays identical
dispatch decisions and yields video frames for the encoder.
"""

import math
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Iterator

import numpy as np
import pygame

from mempoolradio.app import RadioSession
from mempoolradio.audio.engine import AudioConfig, AudioEngine
from mempoolradio.audio.output import OfflineContext
from mempoolradio.encoder import encode_video
from mempoolradio.io.capture import CaptureEvent, read_capture
from mempoolradio.types import SessionState
from mempoolradio.visualizers.bubbles import ParticleConfig, ParticleEngine
from mempoolradio.visualizers.renderer import BubbleRenderer, RenderConfig


@dataclass
class ReplayConfig:
    """Configuration for offline rendering."""
    width: int = 1920
    height: int = 1080
    fps: int = 60
    quality: str = "medium"
    sample_rate: int = 44100
    volume: float = 0.5

    # Let the last voices ring out after the final event
    tail_seconds: float = 5.0
    max_duration: float | None = None


class ReplayRenderer:
    """
    Renders a capture file to WAV and MP4.

    Usage:
        renderer = ReplayRenderer(ReplayConfig(fps=30), seed=7)
        renderer.render("session.jsonl", "session.mp4")
    """

    def __init__(self, config: ReplayConfig | None = None, seed: int = 0):
        self.cfg = config or ReplayConfig()
        self.seed = seed

    def _session(self) -> RadioSession:
        cfg = self.cfg
        audio = AudioEngine(
            AudioConfig(sample_rate=cfg.sample_rate, master_gain=cfg.volume),
            seed=self.seed,
            context_factory=OfflineContext,
        )
        particles = ParticleEngine(
            ParticleConfig(width=cfg.width, height=cfg.height, fps=cfg.fps),
            seed=self.seed,
        )
        return RadioSession(
            audio, particles, seed=self.seed, state=SessionState(volume=cfg.volume)
        )

    def duration(self, events: list[CaptureEvent]) -> float:
        last = max((e.t for e in events), default=0.0)
        total = last + self.cfg.tail_seconds
        if self.cfg.max_duration is not None:
            total = min(total, self.cfg.max_duration)
        return total

    def total_frames(self, duration: float) -> int:
        return int(math.ceil(duration * self.cfg.fps))

    def _deliver(self, session: RadioSession, event: CaptureEvent):
        if event.kind == "tx":
            session.on_transaction(event.to_transaction())
        elif event.kind == "block":
            session.on_block(event.to_block())
        elif event.kind == "stats":
            session.on_stats(event.to_stats())

    def _simulate(
        self, session: RadioSession, events: list[CaptureEvent], duration: float
    ) -> Iterator[int]:
        """
        Advance the session frame by frame, yielding each frame index.

        Everything due at or before a frame's time runs before that frame,
        in time order; ties go events, then dispatcher, then shaker.
        """
        audio = session.audio
        ctx = audio.ctx
        shaker_period = audio.cfg.shaker_period

        pending = iter(sorted(events, key=lambda e: e.t))
        event = next(pending, None)
        next_tick = 0.0
        next_shake = 0.0

        for frame in range(self.total_frames(duration)):
            frame_time = frame / self.cfg.fps
            while True:
                t_event = event.t if event is not None else math.inf
                t_shake = next_shake if audio.is_running else math.inf
                t = min(t_event, next_tick, t_shake)
                if t > frame_time:
                    break
                if ctx is not None:
                    ctx.advance_to(t)

                if t == t_event:
                    self._deliver(session, event)
                    event = next(pending, None)
                elif t == next_tick:
                    result = session.dispatcher.tick()
                    next_tick += result.delay_ms / 1000.0
                else:
                    audio.shaker_pulse()
                    next_shake += shaker_period

            session.particles.update()
            yield frame

    def _audio_pass(self, events: list[CaptureEvent]) -> tuple[OfflineContext, float]:
        session = self._session()
        session.start_audio()
        duration = self.duration(events)
        for _ in self._simulate(session, events, duration):
            pass
        return session.audio.ctx, duration

    def render_audio(self, events: list[CaptureEvent]) -> np.ndarray:
        """Mono float32 soundtrack for the capture."""
        ctx, duration = self._audio_pass(events)
        return ctx.render(duration)

    def write_audio(self, capture_path, wav_path) -> Path:
        wav_path = Path(wav_path)
        wav_path.parent.mkdir(parents=True, exist_ok=True)
        ctx, duration = self._audio_pass(list(read_capture(capture_path)))
        ctx.write(wav_path, duration)
        return wav_path

    def iter_frames(
        self,
        events: list[CaptureEvent],
        progress_callback: Callable[[int, int], None] | None = None,
    ) -> Iterator[np.ndarray]:
        """Yield (H, W, 3) uint8 frames."""
        session = self._session()
        # Silent pass; ghost cues must still draw from the dispatcher rng as they did for audio
        session.state.is_audio_started = True

        renderer = BubbleRenderer(RenderConfig(show_tooltip=False, show_status=False))
        surface = pygame.Surface((self.cfg.width, self.cfg.height))
        duration = self.duration(events)
        total = self.total_frames(duration)

        for frame in self._simulate(session, events, duration):
            renderer.render(surface, session.particles, session.state)
            if progress_callback:
                progress_callback(frame + 1, total)
            yield renderer.surface_to_array(surface)

    def render(
        self,
        capture_path,
        output_path,
        wav_path=None,
        progress_callback: Callable[[int, int], None] | None = None,
    ) -> Path:
        """Write the soundtrack, then encode frames muxed with it."""
        output_path = Path(output_path)
        wav_path = Path(wav_path) if wav_path else output_path.with_suffix(".wav")
        self.write_audio(capture_path, wav_path)

        events = list(read_capture(capture_path))
        duration = self.duration(events)
        return encode_video(
            frame_iterator=self.iter_frames(events, progress_callback),
            audio_path=wav_path,
            output_path=output_path,
            width=self.cfg.width,
            height=self.cfg.height,
            fps=self.cfg.fps,
            quality=self.cfg.quality,
            duration=duration,
        )
