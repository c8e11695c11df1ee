"""Tests for the price and mempool snapshot poller."""

import asyncio
from unittest.mock import AsyncMock, patch

import aiohttp

from mempoolradio.io.price import MEMPOOL_URL, PRICE_URL, PricePoller, parse_price


def test_parse_price():
    assert parse_price({"data": {"amount": "64123.45", "currency": "USD"}}) == 64123.45
    assert parse_price({"data": {}}) is None
    assert parse_price({"data": {"amount": "n/a"}}) is None


def _responses(url_map):
    async def fake_get_json(session, url):
        result = url_map[url]
        if isinstance(result, Exception):
            raise result
        return result
    return fake_get_json


def test_poll_once_delivers_both():
    prices, stats = [], []
    poller = PricePoller(prices.append, stats.append)
    fake = _responses({
        PRICE_URL: {"data": {"amount": "70000"}},
        MEMPOOL_URL: {"count": 45_000, "vsize": 20_000_000, "total_fee": 0.8},
    })
    with patch.object(poller, "_get_json", side_effect=fake):
        asyncio.run(poller.poll_once(session=None))
    assert prices == [70000.0]
    assert stats[0].count == 45_000
    assert stats[0].total_fee == 80_000_000


def test_failures_are_reported_not_raised(capsys):
    prices, stats = [], []
    poller = PricePoller(prices.append, stats.append)
    fake = _responses({
        PRICE_URL: aiohttp.ClientConnectionError("down"),
        MEMPOOL_URL: {"count": 3},
    })
    with patch.object(poller, "_get_json", side_effect=fake):
        asyncio.run(poller.poll_once(session=None))
    assert prices == []
    assert stats[0].count == 3
    assert "Fetch failed" in capsys.readouterr().err


def test_price_only():
    prices = []
    poller = PricePoller(prices.append, on_stats=None)
    mock = AsyncMock(return_value={"data": {"amount": "1"}})
    with patch.object(poller, "_get_json", mock):
        asyncio.run(poller.poll_once(session=None))
    assert prices == [1.0]
    assert mock.await_count == 1
