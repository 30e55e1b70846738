"""Tests for quantalpha.market: CoinGecko client with mocked HTTP, coin
aliases, simulated series and the market data loader."""

import math

import httpx
import pytest

from quantalpha.config import Config
from quantalpha.factors.models import PricePoint
from quantalpha.market import coingecko_client
from quantalpha.market.coingecko_client import (
    CoinGeckoClient,
    parse_market_chart,
    synthesize_point,
)
from quantalpha.market.coins import resolve_coin_id
from quantalpha.market.loader import latest_change_pct, load_market_data
from quantalpha.market.simulator import DAY_MS, display_time, generate_simulated_series

_END_MS = 1_735_689_600_000  # 2025-01-01T00:00:00Z


def _make_config(api_key: str = "") -> Config:
    return Config(
        coingecko_base_url="https://api.coingecko.com",
        coingecko_api_key=api_key,
        default_coin="bitcoin",
        reference_coin="bitcoin",
        history_days=90,
        window_short=5,
        window_long=20,
        volatility_window=14,
        adx_period=14,
        disabled_factors=(),
        simulate_on_error=True,
        log_level="INFO",
        api_port=8080,
    )


# ── Mock CoinGecko responses ─────────────────────────────────────────────

MOCK_MARKET_CHART = {
    "prices": [
        [1735689600000, 93429.2],
        [1735776000000, 94419.8],
        [1735862400000, 96886.9],
    ],
    "market_caps": [
        [1735689600000, 1.85e12],
        [1735776000000, 1.87e12],
        [1735862400000, 1.92e12],
    ],
    "total_volumes": [
        [1735689600000, 2.1e10],
        [1735776000000, 3.4e10],
    ],
}


# ── Parsing ──────────────────────────────────────────────────────────────


class TestParseMarketChart:
    def test_points_in_order(self):
        points = parse_market_chart(MOCK_MARKET_CHART)
        assert [p.timestamp for p in points] == [1735689600000, 1735776000000, 1735862400000]
        assert points[0].price == pytest.approx(93429.2)
        assert points[1].volume == pytest.approx(3.4e10)

    def test_missing_volume_is_zero(self):
        points = parse_market_chart(MOCK_MARKET_CHART)
        assert points[2].volume == 0.0

    def test_empty_payload(self):
        assert parse_market_chart({}) == []

    def test_synthetic_bar_shape(self):
        point = synthesize_point(1735689600000, 100.0, 5.0)
        seed = 1735689600000 % 10000
        assert point.high == pytest.approx(100.0 + abs(math.cos(seed)) * 4.0)
        assert point.low == pytest.approx(100.0 - abs(math.cos(seed)) * 4.0)
        assert point.open == pytest.approx(100.0 + (math.sin(seed) - 0.5) * 4.0)
        assert point.low <= point.price <= point.high
        assert point.time == "1/1"

    def test_synthetic_bar_is_stable(self):
        assert synthesize_point(1735776000123, 50.0, 1.0) == synthesize_point(1735776000123, 50.0, 1.0)


# ── Client ───────────────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_fetch_series(monkeypatch):
    """Request URL/params built correctly, payload parsed into points."""
    client = CoinGeckoClient(_make_config())
    captured = {}

    async def _mock_get(self, url, *, headers=None, params=None, timeout=None):
        captured.update(url=url, headers=headers, params=params)
        return httpx.Response(200, json=MOCK_MARKET_CHART, request=httpx.Request("GET", url))

    monkeypatch.setattr(httpx.AsyncClient, "get", _mock_get)

    points = await client.fetch_series("solana", days=30)
    assert len(points) == 3
    assert captured["url"] == "https://api.coingecko.com/api/v3/coins/solana/market_chart"
    assert captured["params"] == {"vs_currency": "usd", "days": 30, "interval": "daily"}
    assert "x-cg-demo-api-key" not in captured["headers"]


@pytest.mark.asyncio
async def test_api_key_header(monkeypatch):
    client = CoinGeckoClient(_make_config(api_key="demo-key"))
    captured = {}

    async def _mock_get(self, url, *, headers=None, params=None, timeout=None):
        captured.update(headers=headers)
        return httpx.Response(200, json=MOCK_MARKET_CHART, request=httpx.Request("GET", url))

    monkeypatch.setattr(httpx.AsyncClient, "get", _mock_get)

    await client.fetch_series("bitcoin")
    assert captured["headers"]["x-cg-demo-api-key"] == "demo-key"


@pytest.mark.asyncio
async def test_retries_then_succeeds(monkeypatch):
    """A rate-limited response is retried."""
    client = CoinGeckoClient(_make_config())
    calls = []

    async def _mock_get(self, url, *, headers=None, params=None, timeout=None):
        calls.append(url)
        status = 429 if len(calls) == 1 else 200
        return httpx.Response(status, json=MOCK_MARKET_CHART, request=httpx.Request("GET", url))

    monkeypatch.setattr(httpx.AsyncClient, "get", _mock_get)
    monkeypatch.setattr(coingecko_client, "_RETRY_BASE_DELAY", 0.0)

    points = await client.fetch_series("bitcoin")
    assert len(calls) == 2
    assert len(points) == 3


@pytest.mark.asyncio
async def test_retries_exhausted(monkeypatch):
    client = CoinGeckoClient(_make_config())

    async def _mock_get(self, url, *, headers=None, params=None, timeout=None):
        return httpx.Response(503, request=httpx.Request("GET", url))

    monkeypatch.setattr(httpx.AsyncClient, "get", _mock_get)
    monkeypatch.setattr(coingecko_client, "_RETRY_BASE_DELAY", 0.0)

    with pytest.raises(httpx.HTTPStatusError):
        await client.fetch_series("bitcoin")


@pytest.mark.asyncio
async def test_no_backoff_after_final_attempt(monkeypatch):
    client = CoinGeckoClient(_make_config())
    delays = []

    async def _mock_get(self, url, *, headers=None, params=None, timeout=None):
        return httpx.Response(503, request=httpx.Request("GET", url))

    async def _record_sleep(delay):
        delays.append(delay)

    monkeypatch.setattr(httpx.AsyncClient, "get", _mock_get)
    monkeypatch.setattr(coingecko_client.asyncio, "sleep", _record_sleep)

    with pytest.raises(httpx.HTTPStatusError):
        await client.fetch_series("bitcoin")
    assert delays == [2.0, 4.0]


@pytest.mark.asyncio
async def test_not_found_is_not_retried(monkeypatch):
    client = CoinGeckoClient(_make_config())
    calls = []

    async def _mock_get(self, url, *, headers=None, params=None, timeout=None):
        calls.append(url)
        return httpx.Response(404, request=httpx.Request("GET", url))

    monkeypatch.setattr(httpx.AsyncClient, "get", _mock_get)

    with pytest.raises(httpx.HTTPStatusError):
        await client.fetch_series("no-such-coin")
    assert len(calls) == 1


# ── Coin aliases ─────────────────────────────────────────────────────────


class TestResolveCoinId:
    def test_ticker_alias(self):
        assert resolve_coin_id("SOL") == "solana"
        assert resolve_coin_id(" avax ") == "avalanche-2"

    def test_passthrough(self):
        assert resolve_coin_id("Polkadot") == "polkadot"


# ── Simulator ────────────────────────────────────────────────────────────


class TestSimulatedSeries:
    def test_length_and_spacing(self):
        points = generate_simulated_series(30, seed=1, end_ms=_END_MS)
        assert len(points) == 30
        assert points[0].timestamp == _END_MS - 30 * DAY_MS
        assert points[-1].timestamp == _END_MS - DAY_MS
        assert all(b.timestamp - a.timestamp == DAY_MS for a, b in zip(points, points[1:]))

    def test_seed_is_reproducible(self):
        first = generate_simulated_series(40, seed=9, end_ms=_END_MS)
        second = generate_simulated_series(40, seed=9, end_ms=_END_MS)
        assert first == second

    def test_bar_shape(self):
        for p in generate_simulated_series(20, seed=2, end_ms=_END_MS):
            assert p.low < p.open < p.price < p.high
            assert p.open == pytest.approx(p.price * 0.99)
            assert 0 <= p.volume < 10_000_000

    def test_display_time(self):
        assert display_time(0) == "1/1"
        assert display_time(_END_MS + 40 * DAY_MS) == "2/10"


# ── Loader ───────────────────────────────────────────────────────────────


class _FakeClient:
    def __init__(self, fail: bool = False):
        self.fail = fail
        self.calls: list[tuple[str, int]] = []

    async def fetch_series(self, coin_id: str, days: int):
        self.calls.append((coin_id, days))
        if self.fail:
            raise httpx.ConnectError("connection refused")
        seed = sum(ord(c) for c in coin_id)
        return generate_simulated_series(days, seed=seed, end_ms=_END_MS)


@pytest.mark.asyncio
async def test_loader_fetches_target_and_reference():
    client = _FakeClient()
    data = await load_market_data(client, "solana", 60, reference_coin="bitcoin")
    assert sorted(client.calls) == [("bitcoin", 60), ("solana", 60)]
    assert data.coin_id == "solana"
    assert len(data.series) == 60
    assert data.series != data.reference
    assert data.simulated is False
    assert data.error is None


@pytest.mark.asyncio
async def test_loader_reference_coin_reuses_series():
    client = _FakeClient()
    data = await load_market_data(client, "bitcoin", 60, reference_coin="bitcoin")
    assert client.calls == [("bitcoin", 60)]
    assert data.reference is data.series


@pytest.mark.asyncio
async def test_loader_falls_back_to_simulation():
    data = await load_market_data(_FakeClient(fail=True), "solana", 45, seed=4)
    assert data.simulated is True
    assert "connection refused" in data.error
    assert len(data.series) == 45
    assert data.reference == data.series


@pytest.mark.asyncio
async def test_loader_propagates_without_fallback():
    with pytest.raises(httpx.ConnectError):
        await load_market_data(
            _FakeClient(fail=True), "solana", 45, simulate_on_error=False
        )


def _make_point(i: int, price: float) -> PricePoint:
    return PricePoint(
        timestamp=i * DAY_MS, price=price, open=price, high=price, low=price, volume=1.0
    )


class TestLatestChange:
    def test_last_two_closes(self):
        series = [_make_point(0, 90.0), _make_point(1, 100.0), _make_point(2, 95.0)]
        assert latest_change_pct(series) == pytest.approx(-5.0)

    def test_single_point_is_zero(self):
        assert latest_change_pct([_make_point(0, 100.0)]) == 0.0
        assert latest_change_pct([]) == 0.0

    def test_zero_previous_close_is_zero(self):
        series = [_make_point(0, 0.0), _make_point(1, 10.0)]
        assert latest_change_pct(series) == 0.0
