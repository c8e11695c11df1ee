"""
CLI entry points.

Usage:
    mempoolradio [--profile low|medium|high] [--volume 0.5] [--record session.jsonl]
    mempoolradio-render <capture.jsonl> [-o out.mp4] [options]
"""

import argparse
import asyncio
import sys
import time
from pathlib import Path
from typing import Callable

from mempoolradio import __version__
from mempoolradio.app import AppConfig, LiveApp
from mempoolradio.encoder import encode_video
from mempoolradio.io.capture import read_capture
from mempoolradio.io.mempool_socket import WS_URL
from mempoolradio.replay import ReplayConfig, ReplayRenderer

PROFILES = {
    "low": {"width": 1280, "height": 720, "fps": 30, "quality": "fast"},
    "medium": {"width": 1920, "height": 1080, "fps": 60, "quality": "medium"},
    "high": {"width": 3840, "height": 2160, "fps": 60, "quality": "high"},
}


def _replay_progress(fps: int, event_count: int, width: int = 30) -> Callable[[int, int], None]:
    """Progress callback showing replayed session time against its length."""

    def report(current: int, total: int):
        frac = current / max(total, 1)
        bar = "=" * int(width * frac) + " " * (width - int(width * frac))
        line = f"{current / fps:7.1f}s / {total / fps:.1f}s  ({event_count} events)"
        if sys.stdout.isatty():
            sys.stdout.write(f"\r|{bar}| {line}")
            sys.stdout.flush()
            if current >= total:
                sys.stdout.write("\n")
        elif current % max(1, total // 10) == 0 or current >= total:
            print(f"{frac * 100:3.0f}%  {line}", flush=True)

    return report


def _add_profile_args(parser: argparse.ArgumentParser, default: str):
    parser.add_argument(
        "-p", "--profile", type=str, default=default,
        choices=list(PROFILES),
        help="Target profile (low: 720p 30fps, medium: 1080p 60fps, high: 4k 60fps)",
    )
    parser.add_argument("--width", type=int, default=None, help="Width (overrides profile)")
    parser.add_argument("--height", type=int, default=None, help="Height (overrides profile)")
    parser.add_argument("-f", "--fps", type=int, default=None, help="Frames per second (overrides profile)")
    parser.add_argument("--seed", type=int, default=None, help="Random seed for reproducible runs")


def _resolve_profile(args) -> dict:
    p_cfg = PROFILES[args.profile]
    return {
        "width": args.width or p_cfg["width"],
        "height": args.height or p_cfg["height"],
        "fps": args.fps or p_cfg["fps"],
        "quality": getattr(args, "quality", None) or p_cfg["quality"],
    }


def _volume(text: str) -> float:
    value = float(text)
    if not 0.0 <= value <= 1.0:
        raise argparse.ArgumentTypeError("volume must be between 0 and 1")
    return value


def main(argv=None):
    parser = argparse.ArgumentParser(
        prog="mempoolradio",
        description="Live Bitcoin mempool radio: every transaction becomes a note and a bubble",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    _add_profile_args(parser, default="low")
    parser.add_argument("--volume", type=_volume, default=0.5, help="Initial master volume 0-1 (default: 0.5)")
    parser.add_argument("--record", type=Path, default=None, help="Capture ingested events to a JSONL file")
    parser.add_argument("--url", type=str, default=WS_URL, help="Mempool WebSocket URL")
    parser.add_argument("--no-price", action="store_true", help="Disable price and mempool polling")

    args = parser.parse_args(argv)
    profile = _resolve_profile(args)

    config = AppConfig(
        width=profile["width"],
        height=profile["height"],
        fps=profile["fps"],
        volume=args.volume,
        seed=args.seed,
        record_path=str(args.record) if args.record else None,
        url=args.url,
        poll_price=not args.no_price,
    )

    print(f"mempool.radio {__version__}")
    print(f"  Window: {config.width}x{config.height} @ {config.fps}fps")
    print(f"  Feed: {config.url}")
    if config.record_path:
        print(f"  Recording to: {config.record_path}")
    print("  Click or press SPACE to start audio, +/- for volume, ESC to quit", flush=True)

    try:
        asyncio.run(LiveApp(config).run())
    except KeyboardInterrupt:
        pass


def render_main(argv=None):
    parser = argparse.ArgumentParser(
        prog="mempoolradio-render",
        description="Render a captured mempool session to video",
    )
    parser.add_argument("capture", type=Path, help="Capture file written by `mempoolradio --record`")
    parser.add_argument(
        "-o", "--output", type=Path, default=None,
        help="Output MP4 path (default: <capture>.mp4)",
    )
    _add_profile_args(parser, default="medium")
    parser.add_argument("--volume", type=_volume, default=0.5, help="Master volume 0-1 (default: 0.5)")
    parser.add_argument("--wav-only", action="store_true", help="Only write the soundtrack")
    parser.add_argument("--max-duration", type=float, default=None, help="Limit output to N seconds")
    parser.add_argument(
        "-q", "--quality", type=str, default=None,
        choices=["high", "medium", "fast"],
        help="Encoding quality (defaults to profile quality)",
    )

    args = parser.parse_args(argv)

    if not args.capture.exists():
        print(f"Error: Capture file not found: {args.capture}", file=sys.stderr)
        sys.exit(1)

    profile = _resolve_profile(args)
    output = args.output or args.capture.with_suffix(".mp4")
    wav_path = output.with_suffix(".wav")

    config = ReplayConfig(
        width=profile["width"],
        height=profile["height"],
        fps=profile["fps"],
        quality=profile["quality"],
        volume=args.volume,
        max_duration=args.max_duration,
    )
    renderer = ReplayRenderer(config, seed=args.seed if args.seed is not None else 0)

    try:
        events = list(read_capture(args.capture))
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    duration = renderer.duration(events)
    print(f"Replaying capture: {args.capture}")
    print(f"  Events: {len(events)}")
    print(f"  Duration: {duration:.1f}s")

    t0 = time.time()
    renderer.write_audio(args.capture, wav_path)
    print(f"  Soundtrack: {wav_path} ({time.time() - t0:.1f}s)", flush=True)

    if args.wav_only:
        return

    total_frames = renderer.total_frames(duration)
    print(f"\nRendering {total_frames} frames at {config.width}x{config.height} @ {config.fps}fps")
    print(f"  Profile: {args.profile}, Quality: {config.quality}")

    t1 = time.time()
    try:
        encode_video(
            frame_iterator=renderer.iter_frames(
                events, progress_callback=_replay_progress(config.fps, len(events))
            ),
            audio_path=wav_path,
            output_path=output,
            width=config.width,
            height=config.height,
            fps=config.fps,
            quality=config.quality,
            duration=duration,
        )
    except RuntimeError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    elapsed = time.time() - t1
    file_size_mb = output.stat().st_size / 1024 / 1024
    print(f"\nDone! {file_size_mb:.1f} MB")
    print(f"  Render+encode took {elapsed:.1f}s ({total_frames / max(elapsed, 0.01):.1f} fps)")
    print(f"  Output: {output}")


if __name__ == "__main__":
    main()
