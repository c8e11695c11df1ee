"""
mempool.space WebSocket client.

Handles:
1. Subscription to blocks, stats and live mempool transactions
2. Routing of every known message shape to the three core callbacks
3. Reconnect after a fixed back-off until stopped

Callbacks only enqueue and return; nothing here blocks the event loop.
"""

from __future__ import annotations

import asyncio
import json
import sys
from typing import Any, Callable

import aiohttp

from mempoolradio.io.normalize import normalize_block, normalize_stats, normalize_tx
from mempoolradio.types import Block, ConnectionStatus, MempoolStats, Transaction

WS_URL = "wss://mempool.space/api/v1/ws"

SUBSCRIBE_MESSAGES = (
    {"action": "want", "data": ["blocks", "stats", "mempool-blocks"]},
    {"track-mempool": True},
)


class MempoolSocket:
    """
    Async mempool feed.

    Usage:
        socket = MempoolSocket(on_tx, on_block, on_stats, on_status)
        task = asyncio.create_task(socket.run())
        ...
        await socket.stop()
    """

    def __init__(
        self,
        on_transaction: Callable[[Transaction], None],
        on_block: Callable[[Block], None],
        on_stats: Callable[[MempoolStats], None],
        on_status: Callable[[ConnectionStatus], None] | None = None,
        url: str = WS_URL,
        reconnect_delay: float = 5.0,
    ) -> None:
        self.on_transaction = on_transaction
        self.on_block = on_block
        self.on_stats = on_stats
        self.on_status = on_status
        self.url = url
        self.reconnect_delay = reconnect_delay

        self._running = False
        self._ws: aiohttp.ClientWebSocketResponse | None = None

    def _set_status(self, status: ConnectionStatus) -> None:
        if self.on_status is not None:
            self.on_status(status)

    def handle_message(self, raw: str | bytes) -> None:
        """
        Route one WebSocket text frame.

        A frame can carry several payloads at once; each one is
        normalized and delivered. Frames that fail to parse or route are
        reported and skipped; the connection stays open.
        """
        try:
            message = json.loads(raw)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            print(f"[WS] Parse error: {e}", file=sys.stderr, flush=True)
            return
        if not isinstance(message, dict):
            return

        try:
            self._route(message)
        except (TypeError, ValueError, AttributeError, KeyError) as e:
            print(f"[WS] Parse error: {e}", file=sys.stderr, flush=True)

    def _route(self, message: dict[str, Any]) -> None:
        if message.get("block"):
            block = normalize_block(message["block"])
            if block is not None:
                self.on_block(block)

        if message.get("stats"):
            stats = normalize_stats(message["stats"])
            if stats is not None:
                self.on_stats(stats)

        info = message.get("mempoolInfo")
        if isinstance(info, dict) and info:
            stats = normalize_stats({
                "count": info.get("size"),
                "vsize": info.get("bytes"),
                "total_fee": info.get("total_fee"),
            })
            if stats is not None:
                self.on_stats(stats)

        mempool_txs = message.get("mempool-transactions")
        if isinstance(mempool_txs, dict) and isinstance(mempool_txs.get("added"), list):
            for tx in mempool_txs["added"]:
                self._deliver_tx(tx)

        if message.get("tx"):
            self._deliver_tx(message["tx"])

        if isinstance(message.get("transactions"), list):
            for tx in message["transactions"]:
                self._deliver_tx(tx)

        if message.get("txid") and message.get("value") is not None:
            self._deliver_tx(message)

    def _deliver_tx(self, raw: Any) -> None:
        if isinstance(raw, dict):
            self.on_transaction(normalize_tx(raw))

    async def _session(self, session: aiohttp.ClientSession) -> None:
        """One connection lifetime."""
        self._set_status("connecting")
        async with session.ws_connect(self.url, heartbeat=30.0) as ws:
            self._ws = ws
            print(f"[WS] Connected to {self.url}", flush=True)
            self._set_status("connected")

            for payload in SUBSCRIBE_MESSAGES:
                await ws.send_str(json.dumps(payload))

            async for msg in ws:
                if not self._running:
                    break
                if msg.type == aiohttp.WSMsgType.TEXT:
                    self.handle_message(msg.data)
                elif msg.type == aiohttp.WSMsgType.ERROR:
                    break
        self._ws = None

    async def run(self) -> None:
        """Connect, stream and reconnect until `stop()`."""
        self._running = True
        async with aiohttp.ClientSession() as session:
            while self._running:
                try:
                    await self._session(session)
                except asyncio.CancelledError:
                    raise
                except (aiohttp.ClientError, asyncio.TimeoutError, OSError) as e:
                    print(f"[WS] Connection error: {e}", file=sys.stderr, flush=True)

                self._set_status("disconnected")
                if not self._running:
                    break
                print(f"[WS] Reconnecting in {self.reconnect_delay:.0f}s...", flush=True)
                await asyncio.sleep(self.reconnect_delay)

    async def stop(self) -> None:
        """Stop streaming and close the socket if open."""
        self._running = False
        self._set_status("disconnected")
        if self._ws is not None and not self._ws.closed:
            await self._ws.close()
