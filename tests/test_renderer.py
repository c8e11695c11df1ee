"""Tests for the pygame bubble renderer."""

import numpy as np
import pygame
import pytest

from mempoolradio.types import Block, SessionState
from mempoolradio.visualizers.bubbles import ParticleConfig, ParticleEngine
from mempoolradio.visualizers.renderer import (
    BubbleRenderer,
    RenderConfig,
    background_color,
    gradient_color,
    grid_alpha,
    hsl_to_rgb,
    premultiply,
)


@pytest.fixture
def engine():
    return ParticleEngine(ParticleConfig(width=320, height=240), seed=5)


@pytest.fixture
def surface():
    return pygame.Surface((320, 240))


def test_hsl_to_rgb():
    assert hsl_to_rgb(0, 1.0, 0.5) == (255, 0, 0)
    assert hsl_to_rgb(120, 1.0, 0.5) == (0, 255, 0)
    assert hsl_to_rgb(360, 0.0, 1.0) == (255, 255, 255)


def test_background_and_grid_follow_congestion():
    assert background_color(0.0) == (6, 10, 20)
    assert background_color(1.0) == (41, 15, 20)
    assert background_color(5.0) == background_color(1.0)
    assert grid_alpha(0.0) == pytest.approx(0.03)
    assert grid_alpha(1.0) == pytest.approx(0.10)


def test_gradient_fades_out(engine, make_tx):
    bubble = engine.add_transaction(make_tx(value=50_000_000, fee_rate=20))
    _, inner = gradient_color(bubble, 0.0)
    _, outer = gradient_color(bubble, 1.0)
    assert inner == pytest.approx(bubble.alpha)
    assert outer == 0.0
    _, mid = gradient_color(bubble, 0.4)
    assert mid == pytest.approx(bubble.alpha * 0.8)


def test_premultiply():
    assert premultiply((200, 100, 50), 0.5) == (100, 50, 25)
    assert premultiply((200, 100, 50), 2.0) == (200, 100, 50)


class TestRender:
    def test_empty_frame(self, engine, surface):
        renderer = BubbleRenderer(RenderConfig(show_title=False))
        renderer.render(surface, engine)
        frame = renderer.surface_to_array(surface)
        assert frame.shape == (240, 320, 3)
        assert frame.dtype == np.uint8

    def test_bubble_brightens_frame(self, engine, surface, make_tx):
        renderer = BubbleRenderer(RenderConfig(show_title=False))
        renderer.render(surface, engine)
        empty = renderer.surface_to_array(surface).astype(int).sum()

        b = engine.add_transaction(make_tx(value=20_000_000, fee_rate=150))
        b.x, b.y = 160, 120
        renderer.render(surface, engine)
        assert renderer.surface_to_array(surface).astype(int).sum() > empty

    def test_flash_brightens_frame(self, engine, surface):
        renderer = BubbleRenderer(RenderConfig(show_title=False))
        renderer.render(surface, engine)
        before = renderer.surface_to_array(surface).astype(int).sum()
        engine.flash_block()
        renderer.render(surface, engine)
        assert renderer.surface_to_array(surface).astype(int).sum() > before

    def test_offscreen_bubble_skipped(self, engine, surface, make_tx):
        renderer = BubbleRenderer()
        b = engine.add_transaction(make_tx(value=20_000_000))
        b.y = 10_000
        renderer.draw_bubble(surface, engine, b)

    def test_full_overlay(self, engine, surface, make_tx):
        renderer = BubbleRenderer()
        b = engine.add_transaction(make_tx(value=150_000_000, fee_rate=300))
        b.x, b.y = 160, 120
        engine.set_pointer(160, 120)
        engine.update()
        state = SessionState(btc_price=65_000.0, last_block=Block(id="b", height=850_000, timestamp=0))
        renderer.render(surface, engine, state)
        assert engine.hovered is b
