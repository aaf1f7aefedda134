"""CLI entry point for the mirror list backend.

Commands:
    mirror serve    — run the HTTP API with background email polling
    mirror poll     — run one email ingestion pass and exit
    mirror show     — print one or all lists
    mirror add      — add items to a list by hand
    mirror clear    — empty a list
    mirror status   — list sizes, integrations and recent ingestion activity
"""

import asyncio
import logging
import sys

import click

from mirror.config import (
    API_HOST,
    API_PORT,
    INGEST_AUDIT_LOG_PATH,
    LIST_DATA_DIR,
    POLL_INTERVAL_SECONDS,
    POLL_TIMEOUT_SECONDS,
    google_calendar_configured,
    mailbox_config,
    mailbox_configured,
)
from mirror.schemas.lists import ListCategory

logger = logging.getLogger("mirror")

CATEGORY_CHOICE = click.Choice([c.value for c in ListCategory], case_sensitive=False)


def _validate_mailbox_config() -> None:
    """Fail loudly if the mailbox is not configured."""
    if not mailbox_configured():
        click.echo(
            "Error: Missing required config: IMAP_HOST, IMAP_USER, IMAP_PASSWORD", err=True
        )
        click.echo("Set these in secrets/internal.env or the environment.", err=True)
        sys.exit(1)


def _open_store():
    from mirror.lists.store import ListStore

    return ListStore.open(LIST_DATA_DIR, list(ListCategory))


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging.")
def cli(verbose: bool) -> None:
    """Mirror — household lists for the smart mirror, fed by email."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)-8s %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )


# ------------------------------------------------------------------
# mirror serve
# ------------------------------------------------------------------


@cli.command()
@click.option("--host", default=API_HOST, show_default=True, help="Interface to bind.")
@click.option("--port", default=API_PORT, show_default=True, type=int, help="Port to listen on.")
@click.option("--poll/--no-poll", default=True, show_default=True, help="Poll the mailbox in the background.")
def serve(host: str, port: int, poll: bool) -> None:
    """Run the HTTP API (and the email poller) until interrupted."""
    import uvicorn

    from mirror.api.app import create_app
    from mirror.audit.ingest_logger import IngestAuditLog
    from mirror.orchestrator.scheduler import PollScheduler

    store = _open_store()

    scheduler = None
    if poll:
        if mailbox_configured():
            scheduler = PollScheduler(
                store=store,
                mailbox_config=mailbox_config(),
                categories=list(ListCategory),
                interval=POLL_INTERVAL_SECONDS,
                timeout=POLL_TIMEOUT_SECONDS,
                audit_log=IngestAuditLog(INGEST_AUDIT_LOG_PATH),
            )
        else:
            click.echo("Mailbox not configured; serving lists without email polling.", err=True)

    click.echo(f"Mirror backend running on http://{host}:{port}")
    for category, count in store.counts().items():
        click.echo(f"  {category}: {count} item(s)")

    uvicorn.run(create_app(store, scheduler=scheduler), host=host, port=port, log_level="info")


# ------------------------------------------------------------------
# mirror poll
# ------------------------------------------------------------------


@cli.command()
@click.option(
    "--category",
    "-c",
    "categories",
    type=CATEGORY_CHOICE,
    multiple=True,
    help="Category to poll (repeatable; default: all).",
)
def poll(categories: tuple[str, ...]) -> None:
    """Run one email ingestion pass and print what it did."""
    _validate_mailbox_config()
    selected = [ListCategory(c.lower()) for c in categories] or list(ListCategory)
    asyncio.run(_poll_async(selected))


async def _poll_async(categories: list[ListCategory]) -> None:
    from mirror.audit.ingest_logger import IngestAuditLog
    from mirror.orchestrator.poller import run_poll_cycle

    store = _open_store()
    results = await run_poll_cycle(
        categories,
        store=store,
        mailbox_config=mailbox_config(),
        audit_log=IngestAuditLog(INGEST_AUDIT_LOG_PATH),
        timeout=POLL_TIMEOUT_SECONDS,
    )

    errors = 0
    for result in results:
        line = (
            f"{result.category.value}: matched={result.matched} "
            f"processed={result.processed} added={result.items_added}"
        )
        if result.error:
            errors += 1
            click.echo(f"{line}  ERROR: {result.error}", err=True)
        else:
            click.echo(line)

    if errors:
        sys.exit(1)


# ------------------------------------------------------------------
# mirror show / add / clear
# ------------------------------------------------------------------


@cli.command()
@click.argument("category", type=CATEGORY_CHOICE, required=False)
def show(category: str | None) -> None:
    """Print one list, or all of them."""
    store = _open_store()
    selected = [ListCategory(category.lower())] if category else store.categories

    for cat in selected:
        items = store.items(cat)
        click.echo(f"{cat.value} ({len(items)})")
        if not items:
            click.echo("  (empty)")
        for item in items:
            click.echo(f"  - {item}")


@cli.command()
@click.argument("category", type=CATEGORY_CHOICE)
@click.argument("items", nargs=-1, required=True)
def add(category: str, items: tuple[str, ...]) -> None:
    """Add ITEMS to CATEGORY (existing items are skipped)."""
    store = _open_store()
    cat = ListCategory(category.lower())
    added = store.merge(cat, [i.strip() for i in items if i.strip()])
    click.echo(f"Added {added} item(s) to {cat.value}. Now {len(store.items(cat))} item(s).")


@cli.command()
@click.argument("category", type=CATEGORY_CHOICE)
@click.option("--yes", "-y", is_flag=True, help="Do not ask for confirmation.")
def clear(category: str, yes: bool) -> None:
    """Remove every item from CATEGORY."""
    cat = ListCategory(category.lower())
    if not yes:
        click.confirm(f"Clear the {cat.value} list?", abort=True)
    store = _open_store()
    store.clear(cat)
    click.echo(f"{cat.value} list cleared.")


# ------------------------------------------------------------------
# mirror status
# ------------------------------------------------------------------


@cli.command()
@click.option("--hours", default=24, show_default=True, help="Lookback period for ingestion activity.")
def status(hours: int) -> None:
    """Quick overview of lists, integrations and recent ingestion."""
    from datetime import UTC, datetime, timedelta

    from mirror.audit.ingest_logger import IngestAuditLog

    store = _open_store()
    since = datetime.now(UTC) - timedelta(hours=hours)
    entries = IngestAuditLog(INGEST_AUDIT_LOG_PATH).read_entries(since=since)

    click.echo("Mirror Status")
    for category, count in store.counts().items():
        click.echo(f"  {category + ':':<20}{count} item(s)")
    click.echo(f"  Mailbox:            {'configured' if mailbox_configured() else 'not configured'}")
    click.echo(
        f"  Google Calendar:    {'configured' if google_calendar_configured() else 'not configured'}"
    )
    click.echo(f"  Emails ingested ({hours}h): {len(entries)}")
    click.echo(f"  Items added ({hours}h):     {sum(e.items_added for e in entries)}")
