"""
Swing-quantized beat dispatcher.

Throttles a bursty transaction stream onto a 16-step beat grid:
- Even beats are long, odd beats short (swing), harder swing when busy
- A congested queue speeds the whole grid up, never below a floor
- Strong beats (every 4th step) almost always fire, weak beats sometimes
- Idle even beats occasionally emit a ghost note to keep the groove alive

Timing policy (`next_delay`) is a pure function. The driving loop only
asks the host to sleep for whatever the last tick computed, so the
policy can be exercised without real timers.
"""

import asyncio
import random
from collections import deque
from dataclasses import dataclass
from typing import Awaitable, Callable, Iterable, Iterator, Optional

from mempoolradio.types import Transaction


@dataclass
class DispatcherConfig:
    """Fixed rhythm policy. Times are in milliseconds."""
    base_interval_ms: float = 200.0
    min_step_ms: float = 40.0
    beats_per_cycle: int = 16

    # Swing
    busy_queue_length: int = 100
    swing_busy: float = 1.8
    swing_calm: float = 1.4

    # Congestion speed-up
    congestion_divisor: float = 150.0
    max_speedup: float = 2.5

    # Trigger probabilities
    strong_beat_every: int = 4
    strong_probability: float = 0.95
    weak_probability: float = 0.6
    ghost_probability: float = 0.2

    # Pending queue bounds
    queue_cap: int = 5000
    queue_trim: int = 500


class PendingQueue:
    """
    FIFO of transactions waiting for a beat.

    A push that would take the queue past its cap first sheds the
    oldest `trim` entries plus the slot the newcomer needs, so the
    queue drops back `trim` entries below where it stood.
    """

    def __init__(self, cap: int = 5000, trim: int = 500, items: Iterable[Transaction] = ()):
        self.cap = cap
        self.trim = trim
        self._items: deque[Transaction] = deque(items)

    def push(self, tx: Transaction) -> int:
        """Append a transaction. Returns how many stale entries were evicted."""
        dropped = 0
        if len(self._items) >= self.cap:
            dropped = min(len(self._items), self.trim + 1)
            for _ in range(dropped):
                self._items.popleft()
        self._items.append(tx)
        return dropped

    def pop(self) -> Optional[Transaction]:
        if not self._items:
            return None
        return self._items.popleft()

    def clear(self):
        self._items.clear()

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[Transaction]:
        return iter(self._items)


@dataclass
class TickResult:
    """What one dispatcher tick did."""
    beat_index: int
    delay_ms: float
    transaction: Optional[Transaction] = None
    ghost: bool = False


def swing_factor(queue_length: int, config: DispatcherConfig) -> float:
    return config.swing_busy if queue_length > config.busy_queue_length else config.swing_calm


def next_delay(beat_index: int, queue_length: int, config: DispatcherConfig | None = None) -> float:
    """
    Duration in milliseconds of the step that starts at `beat_index`.

    Long-short swing pair scaled by the base interval, divided by a
    congestion speed-up and floored at `min_step_ms`.
    """
    cfg = config or DispatcherConfig()
    swing = swing_factor(queue_length, cfg)

    if beat_index % 2 == 0:
        step = cfg.base_interval_ms * swing
    else:
        step = cfg.base_interval_ms * (2.0 - swing)

    speedup = min(cfg.max_speedup, 1.0 + queue_length / cfg.congestion_divisor)
    step = step / speedup

    return max(cfg.min_step_ms, step)


def is_strong_beat(beat_index: int, config: DispatcherConfig | None = None) -> bool:
    cfg = config or DispatcherConfig()
    return beat_index % cfg.strong_beat_every == 0


def trigger_probability(beat_index: int, config: DispatcherConfig | None = None) -> float:
    cfg = config or DispatcherConfig()
    return cfg.strong_probability if is_strong_beat(beat_index, cfg) else cfg.weak_probability


class BeatDispatcher:
    """
    Pops queued transactions on the beat grid and forwards them.

    `on_transaction(tx, beat_index)` receives every popped transaction;
    the caller fans it out to audio and visuals. `on_ghost(beat_index)`
    receives ghost cues. `ghosts_enabled()` gates ghost cues (the live
    app only wants them once audio is running).
    """

    def __init__(
        self,
        queue: PendingQueue,
        on_transaction: Callable[[Transaction, int], None],
        on_ghost: Callable[[int], None] | None = None,
        ghosts_enabled: Callable[[], bool] | None = None,
        config: DispatcherConfig | None = None,
        seed: int | None = None,
        rng: random.Random | None = None,
    ):
        self.cfg = config or DispatcherConfig()
        self.queue = queue
        self.on_transaction = on_transaction
        self.on_ghost = on_ghost
        self.ghosts_enabled = ghosts_enabled or (lambda: True)
        self.rng = rng or random.Random(seed)

        self.beat_index = 0
        self._running = False

    def tick(self) -> TickResult:
        """Run one grid step and return the delay until the next one."""
        beat = self.beat_index
        q_len = len(self.queue)
        delay = next_delay(beat, q_len, self.cfg)
        result = TickResult(beat_index=beat, delay_ms=delay)

        should_play = q_len > 0 and self.rng.random() < trigger_probability(beat, self.cfg)

        if should_play:
            tx = self.queue.pop()
            if tx is not None:
                result.transaction = tx
                self.on_transaction(tx, beat)
        elif (
            beat % 2 == 0
            and self.ghosts_enabled()
            and self.rng.random() < self.cfg.ghost_probability
        ):
            result.ghost = True
            if self.on_ghost is not None:
                self.on_ghost(beat)

        self.beat_index = (beat + 1) % self.cfg.beats_per_cycle
        return result

    async def run(self, sleep: Callable[[float], Awaitable[None]] = asyncio.sleep):
        """Self-rescheduling loop; each tick decides its own delay."""
        self._running = True
        while self._running:
            result = self.tick()
            await sleep(result.delay_ms / 1000.0)

    def stop(self):
        self._running = False

    @property
    def running(self) -> bool:
        return self._running
