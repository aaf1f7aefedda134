"""Process-wide poll scheduler.

Fires one poll per category immediately on start, then again every
``interval`` seconds. Each poll is an independent fire-and-forget task:
there is no skip-if-still-running, so a slow category can overlap with
its next tick. That is tolerated because merge is idempotent and
re-flagging a deleted message is a no-op.
"""

import asyncio
import logging
from collections.abc import Iterable

from mirror.audit.ingest_logger import IngestAuditLog
from mirror.lists.store import ListStore
from mirror.orchestrator.poller import poll_category
from mirror.schemas.lists import ListCategory
from mirror.schemas.mail import MailboxConfig

logger = logging.getLogger(__name__)


class PollScheduler:
    """Drives ``poll_category`` for every category on a fixed interval.

    Usage::

        scheduler = PollScheduler(store=store, mailbox_config=cfg, categories=list(ListCategory))
        scheduler.start()
        ...
        await scheduler.stop()
    """

    def __init__(
        self,
        *,
        store: ListStore,
        mailbox_config: MailboxConfig,
        categories: Iterable[ListCategory],
        interval: float = 60.0,
        timeout: float | None = 30.0,
        audit_log: IngestAuditLog | None = None,
    ) -> None:
        self._store = store
        self._mailbox_config = mailbox_config
        self._categories = list(categories)
        self._interval = interval
        self._timeout = timeout
        self._audit_log = audit_log
        self._loop_task: asyncio.Task | None = None
        self._inflight: set[asyncio.Task] = set()
        self.ticks = 0

    @property
    def running(self) -> bool:
        return self._loop_task is not None and not self._loop_task.done()

    @property
    def inflight(self) -> int:
        return len(self._inflight)

    def start(self) -> None:
        """Start the timer loop on the running event loop. The first tick fires at once."""
        if self.running:
            return
        self._loop_task = asyncio.create_task(self._run(), name="mirror-poll-scheduler")
        logger.info(
            "Polling %s every %gs",
            ", ".join(c.value for c in self._categories),
            self._interval,
        )

    async def stop(self) -> None:
        """Cancel the timer loop and any polls still in flight."""
        tasks = list(self._inflight)
        if self._loop_task is not None:
            tasks.append(self._loop_task)
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        self._loop_task = None
        self._inflight.clear()
        logger.info("Poll scheduler stopped.")

    def fire_tick(self) -> list[asyncio.Task]:
        """Launch one poll task per category without waiting for them."""
        self.ticks += 1
        launched = []
        for category in self._categories:
            task = asyncio.create_task(
                poll_category(
                    category,
                    store=self._store,
                    mailbox_config=self._mailbox_config,
                    audit_log=self._audit_log,
                    timeout=self._timeout,
                ),
                name=f"mirror-poll-{category.value}-{self.ticks}",
            )
            # Hold a reference until done so the task is not garbage collected.
            self._inflight.add(task)
            task.add_done_callback(self._inflight.discard)
            launched.append(task)
        return launched

    async def _run(self) -> None:
        while True:
            self.fire_tick()
            await asyncio.sleep(self._interval)
