"""REST polling for the BTC spot price and the mempool snapshot."""

from __future__ import annotations

import asyncio
import sys
from typing import Callable

import aiohttp

from mempoolradio.io.normalize import normalize_stats
from mempoolradio.types import MempoolStats

PRICE_URL = "https://api.coinbase.com/v2/prices/BTC-USD/spot"
MEMPOOL_URL = "https://mempool.space/api/mempool"


def parse_price(payload: dict) -> float | None:
    """Coinbase spot response -> USD per BTC."""
    try:
        return float(payload["data"]["amount"])
    except (KeyError, TypeError, ValueError):
        return None


class PricePoller:
    """
    Polls both endpoints every `interval` seconds.

    Failures are reported and retried on the next interval; they never
    reach the callbacks.
    """

    def __init__(
        self,
        on_price: Callable[[float], None],
        on_stats: Callable[[MempoolStats], None] | None = None,
        interval: float = 60.0,
        price_url: str = PRICE_URL,
        mempool_url: str = MEMPOOL_URL,
        timeout: float = 10.0,
    ) -> None:
        self.on_price = on_price
        self.on_stats = on_stats
        self.interval = interval
        self.price_url = price_url
        self.mempool_url = mempool_url
        self.timeout = aiohttp.ClientTimeout(total=timeout)
        self._running = False

    async def _get_json(self, session: aiohttp.ClientSession, url: str):
        async with session.get(url) as resp:
            resp.raise_for_status()
            return await resp.json(content_type=None)

    async def poll_once(self, session: aiohttp.ClientSession) -> None:
        try:
            price = parse_price(await self._get_json(session, self.price_url))
            if price is not None:
                self.on_price(price)
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
            print(f"[Price] Fetch failed: {e}", file=sys.stderr, flush=True)

        if self.on_stats is None:
            return
        try:
            stats = normalize_stats(await self._get_json(session, self.mempool_url))
            if stats is not None:
                self.on_stats(stats)
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
            print(f"[Price] Mempool snapshot failed: {e}", file=sys.stderr, flush=True)

    async def run(self) -> None:
        self._running = True
        async with aiohttp.ClientSession(timeout=self.timeout) as session:
            while self._running:
                await self.poll_once(session)
                await asyncio.sleep(self.interval)

    def stop(self) -> None:
        self._running = False
