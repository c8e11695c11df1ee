"""
Pygame renderer for the bubble field.

Draws, in order:
- Congestion-tinted background
- Scrolling cyber grid (more visible when congested)
- Bubbles: additive radial-gradient blobs with an optional glow rim
- Title overlay and hover tooltip
- Block flash
"""

import colorsys
from dataclasses import dataclass

import numpy as np
import pygame

from mempoolradio.types import SessionState
from mempoolradio.visualizers.bubbles import Bubble, ParticleEngine

# (offset, lightness or None for the bubble's own, alpha multiplier)
GRADIENT_STOPS = (
    (0.0, None, 1.0),
    (0.4, None, 0.8),
    (0.7, 0.40, 0.6),
    (1.0, 0.20, 0.0),
)

GRID_COLOR = (34, 197, 94)
TITLE = "MEMPOOL.RADIO"
TAGLINE = "NATURAL MYSTIC • ONE CHAIN • ONE LOVE"


@dataclass
class RenderConfig:
    """Drawing options."""
    grid_size: int = 120
    grid_scroll_speed: float = 15.0
    gradient_steps: int = 8
    gradient_extent: float = 1.3  # gradient radius relative to bubble radius
    rim_width: int = 2
    show_title: bool = True
    show_tooltip: bool = True
    show_status: bool = True


def hsl_to_rgb(hue: float, saturation: float, lightness: float) -> tuple[int, int, int]:
    """Hue in degrees, saturation and lightness in [0, 1]."""
    r, g, b = colorsys.hls_to_rgb((hue % 360) / 360.0, lightness, saturation)
    return (int(r * 255), int(g * 255), int(b * 255))


def background_color(congestion: float) -> tuple[int, int, int]:
    """Deep navy when calm, warming towards maroon under congestion."""
    c = min(1.0, max(0.0, congestion))
    return (int(6 + c * 35), int(10 + c * 5), 20)


def grid_alpha(congestion: float) -> float:
    return 0.03 + min(1.0, max(0.0, congestion)) * 0.07


def gradient_color(bubble: Bubble, offset: float) -> tuple[tuple[int, int, int], float]:
    """Interpolated (rgb, alpha) of a bubble's radial fill at `offset` in [0, 1]."""
    offset = min(1.0, max(0.0, offset))
    stops = []
    for stop_offset, lightness, alpha_mul in GRADIENT_STOPS:
        light = bubble.lightness if lightness is None else lightness
        stops.append((stop_offset, hsl_to_rgb(bubble.hue, bubble.saturation, light), bubble.alpha * alpha_mul))

    for (o0, c0, a0), (o1, c1, a1) in zip(stops, stops[1:]):
        if offset <= o1:
            f = (offset - o0) / (o1 - o0)
            rgb = tuple(int(c0[i] + (c1[i] - c0[i]) * f) for i in range(3))
            return rgb, a0 + (a1 - a0) * f
    return stops[-1][1], stops[-1][2]


def premultiply(rgb: tuple[int, int, int], alpha: float) -> tuple[int, int, int]:
    a = min(1.0, max(0.0, alpha))
    return (int(rgb[0] * a), int(rgb[1] * a), int(rgb[2] * a))


class BubbleRenderer:
    """Stateless apart from cached overlay surfaces and fonts."""

    def __init__(self, config: RenderConfig | None = None):
        self.cfg = config or RenderConfig()
        self._overlay: pygame.Surface | None = None
        self._fonts: dict[int, pygame.font.Font] = {}

    def _get_overlay(self, size: tuple[int, int]) -> pygame.Surface:
        if self._overlay is None or self._overlay.get_size() != size:
            self._overlay = pygame.Surface(size, pygame.SRCALPHA)
        self._overlay.fill((0, 0, 0, 0))
        return self._overlay

    def _font(self, size: int) -> pygame.font.Font:
        if size not in self._fonts:
            if not pygame.font.get_init():
                pygame.font.init()
            self._fonts[size] = pygame.font.Font(None, size)
        return self._fonts[size]

    def draw_background(self, surface: pygame.Surface, engine: ParticleEngine):
        surface.fill(background_color(engine.congestion_intensity))

    def draw_grid(self, surface: pygame.Surface, engine: ParticleEngine):
        cfg = self.cfg
        width, height = surface.get_size()
        overlay = self._get_overlay((width, height))
        color = (*GRID_COLOR, int(255 * grid_alpha(engine.congestion_intensity)))

        for x in range(0, width + 1, cfg.grid_size):
            pygame.draw.line(overlay, color, (x, 0), (x, height))

        y = (engine.time * cfg.grid_scroll_speed) % cfg.grid_size
        while y <= height:
            pygame.draw.line(overlay, color, (0, int(y)), (width, int(y)))
            y += cfg.grid_size

        surface.blit(overlay, (0, 0))

    def draw_bubble(self, surface: pygame.Surface, engine: ParticleEngine, bubble: Bubble):
        """Additive blob: concentric outlines shrinking towards the moving highlight."""
        cfg = self.cfg
        points = engine.outline(bubble)
        gx, gy = engine.gradient_center(bubble)

        pad = cfg.rim_width + 1
        left = int(min(p[0] for p in points)) - pad
        top = int(min(p[1] for p in points)) - pad
        right = int(max(p[0] for p in points)) + pad
        bottom = int(max(p[1] for p in points)) + pad

        sw, sh = surface.get_size()
        if right < 0 or bottom < 0 or left > sw or top > sh:
            return

        layer = pygame.Surface((right - left, bottom - top))
        cx, cy = gx - left, gy - top
        local = [(x - left, y - top) for x, y in points]

        steps = cfg.gradient_steps
        for s in range(steps, 0, -1):
            k = s / steps
            rgb, alpha = gradient_color(bubble, k / cfg.gradient_extent)
            ring = [(cx + (x - cx) * k, cy + (y - cy) * k) for x, y in local]
            pygame.draw.polygon(layer, premultiply(rgb, alpha), ring)

        if bubble.has_rim:
            rim = hsl_to_rgb(bubble.hue, bubble.saturation, 0.8)
            pygame.draw.polygon(layer, premultiply(rim, bubble.alpha * 0.3), local, cfg.rim_width)

        surface.blit(layer, (left, top), special_flags=pygame.BLEND_RGB_ADD)

    def draw_flash(self, surface: pygame.Surface, engine: ParticleEngine):
        if engine.flash_alpha <= 0:
            return
        overlay = self._get_overlay(surface.get_size())
        overlay.fill((255, 255, 255, int(255 * engine.flash_alpha * 0.4)))
        surface.blit(overlay, (0, 0))

    def draw_title(self, surface: pygame.Surface):
        center_x = surface.get_width() // 2

        title = self._font(48).render(TITLE, True, (250, 204, 21))
        surface.blit(title, title.get_rect(center=(center_x, 60)))

        tagline = self._font(20).render(TAGLINE, True, (255, 255, 255))
        tagline.set_alpha(128)
        surface.blit(tagline, tagline.get_rect(center=(center_x, 90)))

    def draw_tooltip(self, surface: pygame.Surface, bubble: Bubble, pointer: tuple[float, float], btc_price: float):
        lines = [
            ("LEGENDARY WHALE" if bubble.is_whale else "ISLAND TRANSFERS", (74, 222, 128)),
            (f"{bubble.btc:.4f} BTC", (255, 255, 255)),
            (f"Priority {bubble.fee_rate:.1f} sat/vB", (236, 72, 153)),
            (f"USD ${bubble.btc * btc_price:,.2f}", (34, 211, 238)),
        ]
        font = self._font(24)
        rendered = [font.render(text, True, color) for text, color in lines]
        box_w = max(r.get_width() for r in rendered) + 32
        box_h = sum(r.get_height() + 6 for r in rendered) + 26

        sw, sh = surface.get_size()
        x = int(min(sw - box_w, pointer[0] + 25))
        y = int(min(sh - box_h, pointer[1] + 25))

        box = pygame.Surface((box_w, box_h), pygame.SRCALPHA)
        box.fill((10, 18, 11, 242))
        pygame.draw.rect(box, (34, 197, 94, 60), box.get_rect(), 1)
        surface.blit(box, (x, y))

        ty = y + 13
        for r in rendered:
            surface.blit(r, (x + 16, ty))
            ty += r.get_height() + 6

    def draw_message(self, surface: pygame.Surface, text: str, y_fraction: float = 0.5):
        label = self._font(32).render(text, True, (255, 255, 255))
        surface.blit(label, label.get_rect(center=(surface.get_width() // 2, int(surface.get_height() * y_fraction))))

    def draw_status(self, surface: pygame.Surface, state: SessionState):
        """Connection, block, mempool and volume readout in the bottom-left corner."""
        block = f"#{state.last_block.height:,}" if state.last_block is not None else "--"
        price = f"${state.btc_price:,.0f}" if state.btc_price > 0 else "--"
        lines = [
            f"{state.connection_status.upper()}  BLOCK {block}  PRICE {price}",
            f"MEMPOOL {state.mempool_stats.count:,} TX  VOL {int(round(state.volume * 100))}%",
        ]
        font = self._font(20)
        y = surface.get_height() - 16 - len(lines) * 22
        for text in lines:
            label = font.render(text, True, (134, 239, 172))
            label.set_alpha(180)
            surface.blit(label, (16, y))
            y += 22

    def render(
        self,
        surface: pygame.Surface,
        engine: ParticleEngine,
        state: SessionState | None = None,
    ) -> pygame.Surface:
        """Draw a complete frame of the current engine state."""
        self.draw_background(surface, engine)
        self.draw_grid(surface, engine)

        for bubble in engine.bubbles:
            self.draw_bubble(surface, engine, bubble)

        if self.cfg.show_title:
            self.draw_title(surface)

        if state is not None and self.cfg.show_status:
            self.draw_status(surface, state)

        if self.cfg.show_tooltip and engine.hovered is not None:
            price = state.btc_price if state is not None else 0.0
            self.draw_tooltip(surface, engine.hovered, engine.pointer, price)

        self.draw_flash(surface, engine)
        return surface

    def surface_to_array(self, surface: pygame.Surface) -> np.ndarray:
        """(H, W, 3) uint8 frame for the video encoder."""
        arr = pygame.surfarray.array3d(surface)
        return np.ascontiguousarray(np.transpose(arr, (1, 0, 2)))
