"""Tests for the shared fetch deadline."""

import asyncio

import pytest

from newsfab.feeds.deadline import Deadline


@pytest.mark.asyncio
async def test_remaining_counts_down():
    deadline = Deadline(5.0)

    assert 4.5 < deadline.remaining() <= 5.0
    assert deadline.expired is False


@pytest.mark.asyncio
async def test_zero_timeout_is_already_expired():
    deadline = Deadline(0.0)

    assert deadline.remaining() == 0.0
    assert deadline.expired is True


@pytest.mark.asyncio
async def test_shorten_only_moves_earlier():
    deadline = Deadline(5.0)

    assert deadline.shorten(10.0) is False
    assert deadline.remaining() > 4.5

    assert deadline.shorten(0.5) is True
    assert deadline.remaining() <= 0.5


@pytest.mark.asyncio
async def test_wait_returns_at_expiry():
    deadline = Deadline(0.05)

    await asyncio.wait_for(deadline.wait(), timeout=1.0)

    assert deadline.expired


@pytest.mark.asyncio
async def test_wait_follows_shortening():
    deadline = Deadline(30.0)
    waiter = asyncio.create_task(deadline.wait())

    await asyncio.sleep(0.01)
    deadline.shorten(0.02)

    await asyncio.wait_for(waiter, timeout=1.0)
    assert deadline.expired
