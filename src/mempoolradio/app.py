"""
Session wiring and the live pygame/asyncio application.

RadioSession connects ingestion callbacks to the pending queue and fans
each dispatched transaction out to the audio and particle engines.
LiveApp runs everything as cooperative tasks on one event loop:
- Beat dispatcher loop (variable period)
- Frame loop (fixed fps)
- Shaker loop (once audio is started)
- WebSocket feed and price poller
"""

import asyncio
import random
import sys
import time
from dataclasses import dataclass, replace

import pygame

from mempoolradio.audio.engine import AudioConfig, AudioEngine
from mempoolradio.core.dispatcher import BeatDispatcher, DispatcherConfig, PendingQueue
from mempoolradio.io.capture import CaptureWriter
from mempoolradio.io.mempool_socket import WS_URL, MempoolSocket
from mempoolradio.io.price import PricePoller
from mempoolradio.types import Block, ConnectionStatus, MempoolStats, SessionState, Transaction
from mempoolradio.visualizers.bubbles import ParticleConfig, ParticleEngine
from mempoolradio.visualizers.renderer import TITLE, BubbleRenderer, RenderConfig

VOLUME_STEP = 0.1
START_PROMPT = "CLICK OR PRESS SPACE TO TUNE IN"


class RadioSession:
    """
    The presentation core for one listener.

    Callbacks only mutate in-memory state and return.
    """

    def __init__(
        self,
        audio: AudioEngine,
        particles: ParticleEngine,
        dispatcher_config: DispatcherConfig | None = None,
        seed: int | None = None,
        recorder: CaptureWriter | None = None,
        state: SessionState | None = None,
    ):
        cfg = dispatcher_config or DispatcherConfig()
        self.audio = audio
        self.particles = particles
        self.recorder = recorder
        self.state = state or SessionState()

        self.queue = PendingQueue(cfg.queue_cap, cfg.queue_trim)
        self.dispatcher = BeatDispatcher(
            self.queue,
            on_transaction=self._dispatch,
            on_ghost=self._ghost,
            ghosts_enabled=lambda: self.state.is_audio_started,
            config=cfg,
            rng=random.Random(seed),
        )
        self.dropped = 0

    # Ingestion callbacks

    def on_transaction(self, tx: Transaction):
        if self.recorder is not None:
            self.recorder.write_transaction(tx)
        self.dropped += self.queue.push(tx)
        stats = self.state.mempool_stats
        self.state.mempool_stats = replace(stats, count=stats.count + 1)

    def on_block(self, block: Block):
        if self.recorder is not None:
            self.recorder.write_block(block)
        self.state.last_block = block
        self.particles.flash_block()
        self.audio.play_block_confirm()

    def on_stats(self, stats: MempoolStats):
        if self.recorder is not None:
            self.recorder.write_stats(stats)
        previous = self.state.mempool_stats
        self.state.mempool_stats = replace(stats, count=max(previous.count, stats.count))

    def on_status(self, status: ConnectionStatus):
        self.state.connection_status = status

    def on_price(self, price: float):
        self.state.btc_price = price

    # Dispatcher fan-out

    def _dispatch(self, tx: Transaction, beat_index: int):
        self.audio.play_transaction(tx.value, beat_index)
        self.particles.add_transaction(tx)

    def _ghost(self, beat_index: int):
        self.audio.play_transaction(0, beat_index)

    # Listener controls

    def start_audio(self) -> bool:
        """
        Start audio output. Returns False (and stays silent) when no
        output device is available.
        """
        if self.state.is_audio_started:
            return True
        try:
            self.audio.start()
        except RuntimeError as e:
            print(f"Warning: {e}; continuing without sound", file=sys.stderr, flush=True)
            return False
        self.state.is_audio_started = True
        self.audio.set_volume(self.state.volume)
        return True

    def set_volume(self, value: float):
        self.state.volume = max(0.0, min(1.0, value))
        self.audio.set_volume(self.state.volume)


@dataclass
class AppConfig:
    """Configuration for the live window."""
    width: int = 1920
    height: int = 1080
    fps: int = 60
    volume: float = 0.5
    seed: int | None = None
    record_path: str | None = None
    url: str = WS_URL
    poll_price: bool = True
    price_interval: float = 60.0


class LiveApp:
    """Windowed real-time radio."""

    def __init__(self, config: AppConfig | None = None):
        self.cfg = config or AppConfig()
        cfg = self.cfg

        recorder = CaptureWriter(cfg.record_path) if cfg.record_path else None
        audio = AudioEngine(AudioConfig(master_gain=cfg.volume), seed=cfg.seed)
        particles = ParticleEngine(
            ParticleConfig(width=cfg.width, height=cfg.height, fps=cfg.fps), seed=cfg.seed
        )
        self.session = RadioSession(
            audio,
            particles,
            seed=cfg.seed,
            recorder=recorder,
            state=SessionState(volume=cfg.volume),
        )
        self.renderer = BubbleRenderer(RenderConfig())
        self.socket = MempoolSocket(
            on_transaction=self.session.on_transaction,
            on_block=self.session.on_block,
            on_stats=self.session.on_stats,
            on_status=self.session.on_status,
            url=cfg.url,
        )
        self.poller = (
            PricePoller(self.session.on_price, self.session.on_stats, interval=cfg.price_interval)
            if cfg.poll_price
            else None
        )

        self._running = False
        self._tasks: list[asyncio.Task] = []

    def _start_audio(self):
        if self.session.state.is_audio_started:
            return
        if self.session.start_audio():
            self._tasks.append(asyncio.create_task(self.session.audio.run_shaker()))

    def handle_event(self, event: pygame.event.Event):
        session = self.session
        if event.type == pygame.QUIT:
            self._running = False
        elif event.type == pygame.KEYDOWN:
            if event.key == pygame.K_ESCAPE:
                self._running = False
            elif event.key == pygame.K_SPACE:
                self._start_audio()
            elif event.key in (pygame.K_PLUS, pygame.K_EQUALS, pygame.K_KP_PLUS):
                session.set_volume(session.state.volume + VOLUME_STEP)
            elif event.key in (pygame.K_MINUS, pygame.K_KP_MINUS):
                session.set_volume(session.state.volume - VOLUME_STEP)
        elif event.type == pygame.MOUSEBUTTONDOWN:
            self._start_audio()
        elif event.type == pygame.MOUSEMOTION:
            session.particles.set_pointer(*event.pos)
        elif event.type == pygame.WINDOWLEAVE:
            session.particles.leave_pointer()
        elif event.type == pygame.VIDEORESIZE:
            session.particles.resize(event.w, event.h)

    async def _frame_loop(self, screen: pygame.Surface):
        period = 1.0 / self.cfg.fps
        session = self.session
        while self._running:
            started = time.perf_counter()

            for event in pygame.event.get():
                self.handle_event(event)

            session.particles.update()
            session.audio.pump()
            self.renderer.render(screen, session.particles, session.state)
            if not session.state.is_audio_started:
                self.renderer.draw_message(screen, START_PROMPT, 0.55)
            pygame.display.flip()

            elapsed = time.perf_counter() - started
            await asyncio.sleep(max(0.0, period - elapsed))

    async def run(self):
        cfg = self.cfg
        pygame.init()
        pygame.display.set_caption(TITLE)
        screen = pygame.display.set_mode((cfg.width, cfg.height), pygame.RESIZABLE)

        self._running = True
        self._tasks = [
            asyncio.create_task(self.socket.run()),
            asyncio.create_task(self.session.dispatcher.run()),
        ]
        if self.poller is not None:
            self._tasks.append(asyncio.create_task(self.poller.run()))

        try:
            await self._frame_loop(screen)
        finally:
            await self.shutdown()
            pygame.quit()

    async def shutdown(self):
        """Stop every loop and release the output device."""
        self._running = False
        self.session.dispatcher.stop()
        self.session.audio.stop_shaker()
        if self.poller is not None:
            self.poller.stop()
        await self.socket.stop()

        for task in self._tasks:
            task.cancel()
        await asyncio.gather(*self._tasks, return_exceptions=True)
        self._tasks = []

        self.session.audio.close()
        if self.session.recorder is not None:
            self.session.recorder.close()
