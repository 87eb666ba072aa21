"""
Tests for fixed-window rate limiting.
"""
import pytest
from httpx import AsyncClient
from starlette.requests import Request

from app.core.exceptions import RateLimitError
from app.services.security.rate_limiter import FixedWindowRateLimiter, RateLimit, rate_limit_response


class FakeClock:
    def __init__(self, now: float = 1_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


class TestFixedWindowRateLimiter:

    @pytest.fixture
    def clock(self):
        return FakeClock()

    @pytest.fixture
    def limiter(self, clock):
        return FixedWindowRateLimiter(clock=clock)

    def test_limit_within_window(self, limiter):
        results = [limiter.is_rate_limited("1.2.3.4:login", 3, 60_000) for _ in range(5)]
        assert results == [False, False, False, True, True]

    def test_window_resets(self, limiter, clock):
        for _ in range(4):
            limiter.is_rate_limited("k", 3, 60_000)
        assert limiter.is_rate_limited("k", 3, 60_000) is True

        clock.now += 60.001
        assert limiter.is_rate_limited("k", 3, 60_000) is False
        assert limiter.is_rate_limited("k", 3, 60_000) is False

    def test_boundary_still_inside_window(self, limiter, clock):
        for _ in range(3):
            limiter.is_rate_limited("k", 3, 60_000)

        clock.now += 60
        assert limiter.is_rate_limited("k", 3, 60_000) is True

    def test_keys_are_independent(self, limiter):
        for _ in range(3):
            limiter.is_rate_limited("a", 3, 60_000)
        assert limiter.is_rate_limited("a", 3, 60_000) is True
        assert limiter.is_rate_limited("b", 3, 60_000) is False

    def test_reset(self, limiter):
        for _ in range(4):
            limiter.is_rate_limited("k", 3, 60_000)
        limiter.reset("k")
        assert limiter.is_rate_limited("k", 3, 60_000) is False

    def test_retry_after(self, limiter, clock):
        assert limiter.retry_after("k") == 0
        limiter.is_rate_limited("k", 3, 60_000)
        clock.now += 30
        assert limiter.retry_after("k") == 31

    def test_expired_windows_are_swept(self, limiter, clock):
        for i in range(1000):
            limiter.is_rate_limited(f"10.0.{i // 256}.{i % 256}:login", 3, 1_000)
        assert len(limiter) == 1000

        clock.now += 3600
        limiter.is_rate_limited("10.9.9.9:login", 3, 1_000)

        assert len(limiter) == 1

    def test_live_windows_survive_sweep(self, limiter, clock):
        for _ in range(3):
            limiter.is_rate_limited("busy", 3, 600_000)
        limiter.is_rate_limited("idle", 3, 1_000)

        clock.now += 120
        assert limiter.sweep() == 1
        assert limiter.is_rate_limited("busy", 3, 600_000) is True


@pytest.mark.asyncio
async def test_dependency_reports_time_left_in_window():
    clock = FakeClock()
    guard = RateLimit("admin:login", max_requests=1, window_ms=60_000, limiter=FixedWindowRateLimiter(clock=clock))
    request = Request({"type": "http", "headers": [], "client": ("10.0.0.7", 5000)})

    await guard(request)
    clock.now += 45

    with pytest.raises(RateLimitError) as exc_info:
        await guard(request)

    assert exc_info.value.retry_after == 16

def test_rate_limit_response():
    response = rate_limit_response()

    assert response.status_code == 429
    assert response.headers["Retry-After"] == "60"


@pytest.mark.asyncio
async def test_admin_login_is_rate_limited(client: AsyncClient):
    """Sixth attempt in a window is rejected with 429."""
    statuses = []
    for _ in range(6):
        response = await client.post(
            "/api/admin/login",
            json={"email": "admin@xentro.io", "password": "wrong"},
        )
        statuses.append(response.status_code)

    assert statuses == [401] * 5 + [429]
    assert 1 <= int(response.headers["Retry-After"]) <= 60
    assert response.json()["code"] == "RATE_LIMITED"


@pytest.mark.asyncio
async def test_limit_is_per_client_ip(client: AsyncClient):
    for _ in range(6):
        await client.post(
            "/api/admin/login",
            json={"email": "admin@xentro.io", "password": "wrong"},
            headers={"X-Forwarded-For": "10.0.0.1"},
        )

    response = await client.post(
        "/api/admin/login",
        json={"email": "admin@xentro.io", "password": "wrong"},
        headers={"X-Forwarded-For": "10.0.0.2"},
    )
    assert response.status_code == 401
