"""
Transaction bubble simulation.

Each dispatched transaction becomes a drifting, wobbling blob:
- Value -> Radius (whales get a warm fixed hue and drift slowly)
- Fee rate -> Hue, and a glowing rim above 100 sat/vB
- Smoothed fee rate -> Congestion intensity for the background

This module only advances state; drawing lives in the renderer.
"""

import math
import random
from dataclasses import dataclass, field

from mempoolradio.core.mapping import (
    btc_from_sats,
    display_hue,
    hue_from_fee_rate,
    is_whale,
    radius_from_value,
)
from mempoolradio.types import Transaction


@dataclass
class Bubble:
    """A live transaction particle."""
    id: str
    x: float
    y: float
    radius: float
    vx: float
    vy: float
    base_hue: float
    alpha: float
    life: float  # 1.0 to 0.0
    value: int
    fee_rate: float
    noise_offsets: list[float] = field(default_factory=list)
    is_whale: bool = False
    pulse_offset: float = 0.0

    @property
    def btc(self) -> float:
        return btc_from_sats(self.value)

    @property
    def hue(self) -> float:
        return display_hue(self.fee_rate, self.is_whale)

    @property
    def saturation(self) -> float:
        return 1.0 if self.is_whale else 0.9

    @property
    def lightness(self) -> float:
        return 0.75 if self.is_whale else 0.55

    @property
    def has_rim(self) -> bool:
        return self.is_whale or self.fee_rate > 100


@dataclass
class ParticleConfig:
    """Configuration for the bubble field."""
    width: int = 1920
    height: int = 1080
    fps: int = 60

    num_vertices: int = 14
    time_step: float = 0.015
    life_decay: float = 0.0007
    alpha_ceiling: float = 0.9
    drift_amplitude: float = 0.4

    # Outline wobble
    wobble_primary: float = 0.12
    wobble_secondary: float = 0.08
    wobble_lookahead: int = 3

    # Block flash
    flash_decay: float = 0.008

    # Congestion smoothing
    fee_smoothing: float = 0.98
    congestion_fee_rate: float = 300.0


class ParticleEngine:
    """
    Owns every live bubble. Nothing outside holds bubble references
    except the `hovered` snapshot for tooltips.
    """

    def __init__(self, config: ParticleConfig | None = None, seed: int | None = None):
        self.cfg = config or ParticleConfig()
        self.rng = random.Random(seed)

        self.bubbles: list[Bubble] = []
        self.time = 0.0
        self.flash_alpha = 0.0
        self.avg_fee_rate = 1.0

        self.pointer = (-1000.0, -1000.0)
        self.pointer_inside = False
        self.hovered: Bubble | None = None

    @property
    def congestion_intensity(self) -> float:
        return min(1.0, max(0.0, self.avg_fee_rate / self.cfg.congestion_fee_rate))

    def resize(self, width: int, height: int):
        self.cfg.width = width
        self.cfg.height = height

    def set_pointer(self, x: float, y: float, inside: bool = True):
        self.pointer = (x, y)
        self.pointer_inside = inside

    def leave_pointer(self):
        self.pointer_inside = False
        self.hovered = None

    def add_transaction(self, tx: Transaction) -> Bubble:
        """Spawn a bubble just below the bottom edge."""
        rng = self.rng
        radius = radius_from_value(tx.value)
        whale = is_whale(tx.value)

        noise_offsets = [rng.random() * math.pi * 2 for _ in range(self.cfg.num_vertices)]

        if whale:
            vy = -(rng.random() * 0.2 + 0.1)
        else:
            vy = -(rng.random() * 1.5 + 0.4)

        bubble = Bubble(
            id=tx.id or f"{rng.random():.16f}",
            x=rng.random() * self.cfg.width,
            y=self.cfg.height + radius * 2,
            radius=radius,
            vx=(rng.random() - 0.5) * 0.7,
            vy=vy,
            base_hue=hue_from_fee_rate(tx.fee_rate),
            alpha=0.85,
            life=1.0,
            value=tx.value,
            fee_rate=tx.fee_rate,
            noise_offsets=noise_offsets,
            is_whale=whale,
            pulse_offset=rng.random() * 1000,
        )
        self.bubbles.append(bubble)

        s = self.cfg.fee_smoothing
        self.avg_fee_rate = self.avg_fee_rate * s + tx.fee_rate * (1.0 - s)
        return bubble

    def flash_block(self):
        self.flash_alpha = 1.0

    def update(self):
        """Advance one frame: drift, fade, hover and cull."""
        cfg = self.cfg
        self.time += cfg.time_step
        t = self.time

        px, py = self.pointer
        current_hover = None
        bubbles = self.bubbles

        # Newest first so removal by index stays valid
        for i in range(len(bubbles) - 1, -1, -1):
            b = bubbles[i]
            b.x += b.vx + math.sin(t * 0.5 + b.pulse_offset) * cfg.drift_amplitude
            b.y += b.vy
            b.life -= cfg.life_decay
            b.alpha = min(cfg.alpha_ceiling, b.life * 3)

            if b.life <= 0 or b.y + b.radius * 3 < 0:
                del bubbles[i]
                continue

            if math.hypot(b.x - px, b.y - py) < b.radius:
                current_hover = b

        self.hovered = current_hover if self.pointer_inside else None

        if self.flash_alpha > 0:
            self.flash_alpha = max(0.0, self.flash_alpha - cfg.flash_decay)

    def outline(self, bubble: Bubble) -> list[tuple[float, float]]:
        """
        Organic blob outline.

        Each vertex radius is wobbled by two sinusoids: one at the
        vertex's own phase, one at the phase of the vertex three steps
        ahead.
        """
        cfg = self.cfg
        t = self.time
        offsets = bubble.noise_offsets
        n = len(offsets)
        points = []
        for j in range(n):
            angle = (j / n) * math.pi * 2
            noise = (
                math.sin(t * 1.5 + offsets[j]) * cfg.wobble_primary
                + math.cos(t * 0.8 + offsets[(j + cfg.wobble_lookahead) % n]) * cfg.wobble_secondary
            )
            r = bubble.radius * (1 + noise)
            points.append((bubble.x + math.cos(angle) * r, bubble.y + math.sin(angle) * r))
        return points

    def gradient_center(self, bubble: Bubble) -> tuple[float, float]:
        """Orbiting highlight for the radial fill."""
        t = self.time
        return (
            bubble.x + math.sin(t * 2 + bubble.pulse_offset) * (bubble.radius * 0.3),
            bubble.y + math.cos(t * 1.5 + bubble.pulse_offset) * (bubble.radius * 0.2),
        )
