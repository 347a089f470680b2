import asyncio

import pytest

from bggproxy.infrastructure.resilience.rate_limiter import RateLimiter


@pytest.mark.asyncio
async def test_first_request_is_not_delayed(fake_clock):
    limiter = RateLimiter(min_spacing=5.0, clock=fake_clock, sleep=fake_clock.sleep)

    waited = await limiter.wait_for_permission()

    assert waited == 0
    assert fake_clock.sleeps == []
    assert limiter.watermark == fake_clock.now


@pytest.mark.asyncio
async def test_sequential_requests_are_spaced(fake_clock):
    limiter = RateLimiter(min_spacing=5.0, clock=fake_clock, sleep=fake_clock.sleep)
    grants = []

    for _ in range(4):
        await limiter.wait_for_permission()
        grants.append(fake_clock.now)

    assert grants[-1] - grants[0] >= 3 * 5.0
    assert all(b - a >= 5.0 for a, b in zip(grants, grants[1:]))


@pytest.mark.asyncio
async def test_only_remaining_spacing_is_waited(fake_clock):
    limiter = RateLimiter(min_spacing=5.0, clock=fake_clock, sleep=fake_clock.sleep)
    await limiter.wait_for_permission()

    fake_clock.advance(3.0)
    assert limiter.get_wait_time() == pytest.approx(2.0)
    waited = await limiter.wait_for_permission()

    assert waited == pytest.approx(2.0)


@pytest.mark.asyncio
async def test_no_wait_once_spacing_has_elapsed(fake_clock):
    limiter = RateLimiter(min_spacing=5.0, clock=fake_clock, sleep=fake_clock.sleep)
    await limiter.wait_for_permission()

    fake_clock.advance(10.0)

    assert await limiter.wait_for_permission() == 0
    assert fake_clock.sleeps == []


@pytest.mark.asyncio
async def test_concurrent_callers_are_serialized(fake_clock):
    limiter = RateLimiter(min_spacing=5.0, clock=fake_clock, sleep=fake_clock.sleep)
    grants = []

    async def caller():
        await limiter.wait_for_permission()
        grants.append(fake_clock.now)

    await asyncio.gather(*(caller() for _ in range(3)))

    assert sorted(grants) == grants
    assert grants[-1] - grants[0] >= 2 * 5.0


@pytest.mark.asyncio
async def test_limiters_do_not_share_state(fake_clock):
    first = RateLimiter(min_spacing=5.0, clock=fake_clock, sleep=fake_clock.sleep)
    second = RateLimiter(min_spacing=5.0, clock=fake_clock, sleep=fake_clock.sleep)

    await first.wait_for_permission()

    assert await second.wait_for_permission() == 0
