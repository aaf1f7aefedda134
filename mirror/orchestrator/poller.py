"""Mailbox poller: the email-to-list ingestion pipeline.

For one category and one tick:

1. Open a fresh IMAP connection (categories never share one).
2. Select the inbox read-write.
3. Search unread messages whose subject matches the category rule.
4. For each match: fetch, flag \\Deleted, extract items, merge into the list.
5. Expunge once every match has been fetched and flagged, then close.

Every failure is terminal but local: it is logged, recorded on the
PollResult and never propagates. A message whose flagging fails stays in
the inbox and is re-ingested next tick, which is safe because merge dedups.
"""

import asyncio
import logging
from collections.abc import Iterable

from mirror.audit.ingest_logger import IngestAuditLog
from mirror.executors.item_extractor import extract_items
from mirror.integrations.imap import ImapClient
from mirror.lists.categories import build_search_criteria, rule_for
from mirror.lists.store import ListStore
from mirror.schemas.lists import ListCategory
from mirror.schemas.mail import MailboxConfig, PollResult

logger = logging.getLogger(__name__)


async def poll_category(
    category: ListCategory,
    *,
    store: ListStore,
    mailbox_config: MailboxConfig,
    audit_log: IngestAuditLog | None = None,
    timeout: float | None = None,
) -> PollResult:
    """Run one ingestion pass for a category.

    Args:
        category: The list category to poll for.
        store: The process-wide list store to merge into.
        mailbox_config: Mailbox connection parameters.
        audit_log: Optional audit log recording each consumed message.
        timeout: Upper bound in seconds for the whole pass (None = unbounded).

    Returns:
        PollResult with counts; ``error`` is set if the pass was aborted.
    """
    result = PollResult(category=category)
    logger.info("Checking for new %s list emails...", category.value)

    try:
        run = _run_poll(
            category,
            result,
            store=store,
            mailbox_config=mailbox_config,
            audit_log=audit_log,
        )
        if timeout:
            await asyncio.wait_for(run, timeout)
        else:
            await run
    except TimeoutError:
        # Also raised by socket timeouts inside imap-tools when no bound is set.
        result.error = f"Poll timed out after {timeout:g}s" if timeout else "Poll timed out"
        logger.error("Polling %s list emails timed out", category.value)
    except Exception as e:
        result.error = str(e) or type(e).__name__
        logger.exception("Error polling %s list emails", category.value)

    return result


async def _run_poll(
    category: ListCategory,
    result: PollResult,
    *,
    store: ListStore,
    mailbox_config: MailboxConfig,
    audit_log: IngestAuditLog | None,
) -> None:
    criteria = build_search_criteria(rule_for(category))

    async with ImapClient(mailbox_config) as imap:
        await imap.select_folder(mailbox_config.folder)

        uids = await imap.search_uids(criteria)
        result.matched = len(uids)
        if not uids:
            logger.info("No new %s emails found", category.value)
            return

        logger.info("Found %d new %s email(s)", len(uids), category.value)

        for uid in uids:
            email = await imap.fetch_message(uid)
            if email is None:
                logger.info("Email uid=%s is gone, skipping", uid)
                continue

            logger.info("Email from: %s, subject: %s", email.from_address, email.subject)

            # Consume the message whatever it yields, so it is not re-read next tick.
            flagged = await _flag_for_deletion(imap, uid)
            if flagged:
                result.flagged += 1

            extracted = extract_items(email.body_text)
            logger.debug("Extracted items: %s", extracted)
            added = store.merge(category, extracted)

            result.processed += 1
            result.items_added += added

            if audit_log is not None:
                audit_log.log_ingested(category, email, extracted, added, flagged=flagged)

        await imap.expunge()
        result.expunged = True
        logger.info(
            "Done with %s emails: %d processed, %d item(s) added",
            category.value,
            result.processed,
            result.items_added,
        )


async def _flag_for_deletion(imap: ImapClient, uid: str) -> bool:
    try:
        await imap.flag_deleted([uid])
    except Exception:
        logger.exception("Error marking email uid=%s for deletion", uid)
        return False
    return True


async def run_poll_cycle(
    categories: Iterable[ListCategory],
    *,
    store: ListStore,
    mailbox_config: MailboxConfig,
    audit_log: IngestAuditLog | None = None,
    timeout: float | None = None,
) -> list[PollResult]:
    """Poll every category concurrently and wait for all of them.

    Used by ``mirror poll``; the scheduler fires categories without waiting.
    """
    return list(
        await asyncio.gather(
            *(
                poll_category(
                    category,
                    store=store,
                    mailbox_config=mailbox_config,
                    audit_log=audit_log,
                    timeout=timeout,
                )
                for category in categories
            )
        )
    )
