"""Tests for the poll scheduler (mirror/orchestrator/scheduler.py)."""

import asyncio
from unittest.mock import patch

from mirror.orchestrator.scheduler import PollScheduler
from mirror.schemas.lists import ListCategory
from mirror.schemas.mail import PollResult

_POLL_PATH = "mirror.orchestrator.scheduler.poll_category"


def _make_scheduler(store, mailbox_config, **overrides) -> PollScheduler:
    kwargs = dict(
        store=store,
        mailbox_config=mailbox_config,
        categories=list(ListCategory),
        interval=60.0,
        timeout=None,
    )
    kwargs.update(overrides)
    return PollScheduler(**kwargs)


class _RecordingPoll:
    """Stand-in for poll_category that records calls."""

    def __init__(self, delay: float = 0.0) -> None:
        self.calls: list[ListCategory] = []
        self.delay = delay

    async def __call__(self, category, **kwargs):
        self.calls.append(category)
        if self.delay:
            await asyncio.sleep(self.delay)
        return PollResult(category=category)


class TestStartup:
    async def test_first_tick_fires_immediately(self, store, mailbox_config):
        poll = _RecordingPoll()
        scheduler = _make_scheduler(store, mailbox_config)

        with patch(_POLL_PATH, poll):
            scheduler.start()
            await asyncio.sleep(0.01)
            await scheduler.stop()

        assert sorted(poll.calls) == sorted(ListCategory)
        assert scheduler.ticks == 1

    async def test_start_twice_is_harmless(self, store, mailbox_config):
        poll = _RecordingPoll()
        scheduler = _make_scheduler(store, mailbox_config)

        with patch(_POLL_PATH, poll):
            scheduler.start()
            scheduler.start()
            await asyncio.sleep(0.01)
            await scheduler.stop()

        assert len(poll.calls) == 3


class TestInterval:
    async def test_repeats_on_interval(self, store, mailbox_config):
        poll = _RecordingPoll()
        scheduler = _make_scheduler(
            store, mailbox_config, categories=[ListCategory.AMAZON], interval=0.02
        )

        with patch(_POLL_PATH, poll):
            scheduler.start()
            await asyncio.sleep(0.11)
            await scheduler.stop()

        assert scheduler.ticks >= 3
        assert len(poll.calls) >= 3

    async def test_overlapping_polls_are_allowed(self, store, mailbox_config):
        poll = _RecordingPoll(delay=1.0)
        scheduler = _make_scheduler(
            store, mailbox_config, categories=[ListCategory.COSTCO], interval=0.02
        )

        with patch(_POLL_PATH, poll):
            scheduler.start()
            await asyncio.sleep(0.07)
            assert scheduler.inflight >= 2
            await scheduler.stop()

        assert scheduler.inflight == 0
        assert not scheduler.running


class TestFireTick:
    async def test_fire_tick_launches_one_task_per_category(self, store, mailbox_config):
        poll = _RecordingPoll()
        scheduler = _make_scheduler(store, mailbox_config)

        with patch(_POLL_PATH, poll):
            tasks = scheduler.fire_tick()
            results = await asyncio.gather(*tasks)

        assert [r.category for r in results] == list(ListCategory)
        assert scheduler.inflight == 0

    async def test_passes_store_config_and_timeout(self, store, mailbox_config):
        seen = {}

        async def _poll(category, **kwargs):
            seen.update(kwargs)
            return PollResult(category=category)

        scheduler = _make_scheduler(
            store, mailbox_config, categories=[ListCategory.SHOPPING], timeout=30.0
        )

        with patch(_POLL_PATH, _poll):
            await asyncio.gather(*scheduler.fire_tick())

        assert seen["store"] is store
        assert seen["mailbox_config"] is mailbox_config
        assert seen["timeout"] == 30.0
        assert seen["audit_log"] is None


class TestStop:
    async def test_stop_without_start(self, store, mailbox_config):
        scheduler = _make_scheduler(store, mailbox_config)
        await scheduler.stop()
        assert not scheduler.running
