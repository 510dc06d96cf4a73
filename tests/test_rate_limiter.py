"""Tests for the sliding window rate limiters guarding login and registration."""

from __future__ import annotations

import time

import fakeredis
import pytest

from account_admin.security.rate_limiter import SlidingWindowRateLimiter
from account_admin.security.redis_rate_limiter import RedisSlidingWindowRateLimiter


@pytest.fixture()
def redis_client() -> fakeredis.FakeStrictRedis:
    client = fakeredis.FakeStrictRedis()
    client.flushall()
    return client


def test_memory_limiter_blocks_excess_and_resets():
    limiter = SlidingWindowRateLimiter(max_requests=2, window_seconds=60)
    key = "login:ada@example.com"

    assert limiter.allow(key)
    assert limiter.allow(key)
    assert not limiter.allow(key)
    assert limiter.allow("login:bob@example.com")

    limiter.reset(key)
    assert limiter.allow(key)


def test_redis_rate_limiter_allows_within_threshold(redis_client):
    limiter = RedisSlidingWindowRateLimiter(
        redis_client, max_requests=3, window_seconds=1, key_prefix="test"
    )
    key = "login:ada@example.com"
    assert limiter.allow(key)
    assert limiter.allow(key)
    assert limiter.allow(key)


def test_redis_rate_limiter_blocks_excess_until_reset(redis_client):
    limiter = RedisSlidingWindowRateLimiter(
        redis_client, max_requests=2, window_seconds=60, key_prefix="test"
    )
    key = "register:10.0.0.1"
    assert limiter.allow(key)
    assert limiter.allow(key)
    assert not limiter.allow(key)

    limiter.reset(key)
    assert limiter.allow(key)


def test_redis_rate_limiter_expires_entries(redis_client):
    limiter = RedisSlidingWindowRateLimiter(
        redis_client, max_requests=1, window_seconds=1, key_prefix="test"
    )
    key = "login:ada@example.com"
    assert limiter.allow(key)
    assert not limiter.allow(key)
    time.sleep(1.1)
    assert limiter.allow(key)
