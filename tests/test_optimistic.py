"""Tests for optimistic follow/share toggles."""

import asyncio
from unittest.mock import AsyncMock

from news_junkie.errors import FetchError
from news_junkie.optimistic import (
    FollowToggle,
    OptimisticToggle,
    ShareToggle,
    ToggleState,
)


class TestOptimisticToggle:
    def test_commit(self):
        toggle = OptimisticToggle(False)
        commit = AsyncMock()

        assert asyncio.run(toggle.toggle(commit)) is True
        commit.assert_awaited_once_with(True)
        assert toggle.state is ToggleState.COMMITTED
        assert toggle.error is None

    def test_rollback_on_fetch_error(self):
        toggle = OptimisticToggle(True)
        commit = AsyncMock(side_effect=FetchError("network down"))

        assert asyncio.run(toggle.toggle(commit)) is True
        assert toggle.value is True
        assert toggle.state is ToggleState.ROLLED_BACK
        assert toggle.error == "network down"

    def test_value_flips_before_commit_resolves(self):
        toggle = OptimisticToggle(False)
        observed = []

        async def commit(value):
            observed.append((toggle.value, toggle.state))

        asyncio.run(toggle.toggle(commit))
        assert observed == [(True, ToggleState.PENDING)]

    def test_toggle_while_pending_is_ignored(self):
        toggle = OptimisticToggle(False)
        gate_calls = []

        async def scenario():
            gate = asyncio.Event()

            async def commit(value):
                gate_calls.append(value)
                await gate.wait()

            first = asyncio.create_task(toggle.toggle(commit))
            await asyncio.sleep(0)
            await toggle.toggle(commit)
            gate.set()
            await first

        asyncio.run(scenario())
        assert gate_calls == [True]
        assert toggle.value is True


class TestFollowToggle:
    def test_cannot_follow_self(self):
        client = AsyncMock()
        toggle = FollowToggle(client, "me", "me")
        assert not toggle.enabled
        assert asyncio.run(toggle.toggle()) is False
        client.follow.assert_not_awaited()

    def test_signed_out(self):
        client = AsyncMock()
        toggle = FollowToggle(client, None, "them")
        assert asyncio.run(toggle.load()) is False
        client.is_following.assert_not_awaited()

    def test_load_then_unfollow(self):
        client = AsyncMock()
        client.is_following.return_value = True
        toggle = FollowToggle(client, "me", "them")

        async def scenario():
            await toggle.load()
            return await toggle.toggle()

        assert asyncio.run(scenario()) is False
        client.unfollow.assert_awaited_once_with("me", "them")

    def test_follow_failure_rolls_back(self):
        client = AsyncMock()
        client.follow.side_effect = FetchError("duplicate key")
        toggle = FollowToggle(client, "me", "them")

        assert asyncio.run(toggle.toggle()) is False
        assert toggle.error == "duplicate key"


class TestShareToggle:
    def test_share_and_unshare(self):
        client = AsyncMock()
        toggle = ShareToggle(client, "me", "p1")

        asyncio.run(toggle.toggle())
        assert toggle.shared is True
        client.share_post.assert_awaited_once_with("me", "p1")

        asyncio.run(toggle.toggle())
        assert toggle.shared is False
        client.unshare_post.assert_awaited_once_with("me", "p1")

    def test_signed_out_is_noop(self):
        client = AsyncMock()
        toggle = ShareToggle(client, None, "p1", initial=True)
        assert asyncio.run(toggle.toggle()) is True
        client.unshare_post.assert_not_awaited()
