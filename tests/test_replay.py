"""Tests for deterministic offline replay."""

import json
from dataclasses import replace

import numpy as np
import pytest
import soundfile as sf

from mempoolradio.io.capture import read_capture
from mempoolradio.replay import ReplayConfig, ReplayRenderer


@pytest.fixture
def capture(tmp_path):
    events = [
        (0.0, "stats", {"count": 1000, "vsize": 500_000, "total_fee": 1_000_000}),
        (0.1, "tx", {"id": "a", "value": 500_000, "fee_rate": 200.0}),
        (0.2, "tx", {"id": "b", "value": 30_000_000, "fee_rate": 12.0}),
        (0.3, "tx", {"id": "c", "value": 250_000_000, "fee_rate": 5.0}),
        (0.6, "block", {"id": "00", "height": 850_000, "timestamp": 1700000000}),
        (0.7, "tx", {"id": "d", "value": 2_000_000, "fee_rate": 60.0}),
    ]
    path = tmp_path / "session.jsonl"
    with open(path, "w") as f:
        for t, kind, data in events:
            f.write(json.dumps({"t": t, "kind": kind, "data": data}) + "\n")
    return path


@pytest.fixture
def config():
    return ReplayConfig(width=64, height=48, fps=10, sample_rate=22050, tail_seconds=1.0)


def test_duration(capture, config):
    renderer = ReplayRenderer(config, seed=1)
    events = list(read_capture(capture))
    assert renderer.duration(events) == pytest.approx(1.7)
    assert renderer.total_frames(1.7) == 17

    limited = ReplayRenderer(ReplayConfig(max_duration=0.5, tail_seconds=1.0))
    assert limited.duration(events) == 0.5


def test_same_seed_same_audio(capture, config):
    events = list(read_capture(capture))
    a = ReplayRenderer(config, seed=4).render_audio(events)
    b = ReplayRenderer(config, seed=4).render_audio(events)
    assert len(a) == round(1.7 * 22050)
    assert np.max(np.abs(a)) > 0
    np.testing.assert_array_equal(a, b)


def test_write_audio(capture, config, tmp_path):
    path = ReplayRenderer(config, seed=2).write_audio(capture, tmp_path / "out" / "session.wav")
    data, sr = sf.read(path)
    assert sr == 22050
    assert len(data) == round(1.7 * 22050)


def test_frames(capture, config):
    events = list(read_capture(capture))
    progress = []
    frames = list(ReplayRenderer(config, seed=3).iter_frames(events, lambda c, t: progress.append((c, t))))
    assert len(frames) == 17
    assert frames[0].shape == (48, 64, 3)
    assert frames[0].dtype == np.uint8
    assert progress[-1] == (17, 17)


def test_empty_capture_is_ambient_only(tmp_path, config):
    path = tmp_path / "empty.jsonl"
    path.write_text("")
    audio = ReplayRenderer(config, seed=0).render_audio(list(read_capture(path)))
    # Start-up chime and shaker only
    assert len(audio) == round(1.0 * 22050)
    assert np.max(np.abs(audio)) > 0


def test_volume_scales_soundtrack(capture, config):
    events = list(read_capture(capture))
    quiet = ReplayRenderer(replace(config, volume=0.1), seed=5)
    ctx, _ = quiet._audio_pass(events)
    assert ctx.master.target == pytest.approx(0.1)

    low = quiet.render_audio(events)
    high = ReplayRenderer(replace(config, volume=0.5), seed=5).render_audio(events)
    assert np.max(np.abs(low)) > 0
    np.testing.assert_allclose(low * 5.0, high, atol=1e-5)


def test_low_sample_rate_replay(capture, config):
    events = list(read_capture(capture))
    audio = ReplayRenderer(replace(config, sample_rate=8000), seed=6).render_audio(events)
    assert len(audio) == round(1.7 * 8000)
    assert np.all(np.isfinite(audio))
