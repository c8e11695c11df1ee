"""Mapping functions and the beat dispatcher."""

from mempoolradio.core.dispatcher import BeatDispatcher, DispatcherConfig, PendingQueue, next_delay

__all__ = ["BeatDispatcher", "DispatcherConfig", "PendingQueue", "next_delay"]
