"""Async IMAP client wrapping imap-tools.

imap-tools is synchronous; all public methods use asyncio.to_thread()
so a slow mail server never blocks the HTTP API or other categories'
polls. One client owns one connection; calls on it are sequential.

Usage::

    async with ImapClient(mailbox_config) as imap:
        await imap.select_folder("INBOX")
        uids = await imap.search_uids(criteria)
        msg = await imap.fetch_message(uids[0])
        await imap.flag_deleted([msg.uid])
        await imap.expunge()
"""

import asyncio
import logging
import socket
from email.utils import parseaddr

from imap_tools import AND, MailBox, MailboxLoginError, MailMessage, MailMessageFlags
from imap_tools.query import LogicOperator

from mirror.schemas.mail import ListEmail, MailboxConfig

logger = logging.getLogger(__name__)


def _parse_message(msg: MailMessage) -> ListEmail:
    """Convert an imap-tools MailMessage to a ListEmail."""
    _from_name, from_addr = parseaddr(msg.from_)
    return ListEmail(
        uid=msg.uid,
        from_address=from_addr or msg.from_,
        subject=msg.subject or "(no subject)",
        date=msg.date,
        body_text=msg.text or "",
    )


class ImapClient:
    """Async IMAP client wrapping imap-tools.

    Usage::

        async with ImapClient(mailbox_config) as imap:
            uids = await imap.search_uids(AND(seen=False, subject="costco"))
    """

    def __init__(self, config: MailboxConfig) -> None:
        self._config = config
        self._mailbox: MailBox | None = None

    async def __aenter__(self) -> "ImapClient":
        self._mailbox = await asyncio.to_thread(self._connect)
        return self

    async def __aexit__(self, exc_type: type[BaseException] | None, *exc: object) -> None:
        if not self._mailbox:
            return
        if exc_type is not None and issubclass(exc_type, asyncio.CancelledError):
            # A worker thread may still be blocked on this connection; a LOGOUT
            # would queue behind it. Drop the socket instead so that thread wakes.
            self._abort()
        else:
            await asyncio.to_thread(self._disconnect)
        self._mailbox = None

    def _connect(self) -> MailBox:
        """Connect and login (sync, called via to_thread)."""
        if self._config.ssl:
            mb = MailBox(self._config.server, port=self._config.port, timeout=self._config.timeout)
        else:
            from imap_tools import MailBoxUnencrypted

            mb = MailBoxUnencrypted(
                self._config.server, port=self._config.port, timeout=self._config.timeout
            )

        try:
            mb.login(self._config.email, self._config.password, initial_folder=None)
        except MailboxLoginError:
            logger.error("IMAP login failed for %s", self._config.email)
            try:
                mb.logout()
            except Exception:
                logger.debug("Error closing connection after failed login", exc_info=True)
            raise

        logger.debug("Connected to %s as %s", self._config.server, self._config.email)
        return mb

    def _disconnect(self) -> None:
        """Logout and close (sync, called via to_thread)."""
        if self._mailbox:
            try:
                self._mailbox.logout()
            except Exception:
                logger.debug("Error during IMAP logout", exc_info=True)

    def _abort(self) -> None:
        """Shut the socket down without talking to the server. Never blocks."""
        sock = getattr(self._mailbox.client, "sock", None) if self._mailbox else None
        if sock is None:
            return
        try:
            sock.shutdown(socket.SHUT_RDWR)
        except OSError:
            pass
        try:
            sock.close()
        except OSError:
            pass
        logger.debug("Aborted IMAP connection to %s", self._config.server)

    @property
    def mailbox(self) -> MailBox:
        if self._mailbox is None:
            raise RuntimeError("ImapClient is not connected. Use 'async with' context.")
        return self._mailbox

    # --- Folder ---

    async def select_folder(self, folder: str | None = None) -> None:
        """Select a folder read-write (required to flag deletions)."""
        target = folder or self._config.folder
        await asyncio.to_thread(self.mailbox.folder.set, target, False)

    # --- Search / fetch ---

    async def search_uids(self, criteria: LogicOperator | str) -> list[str]:
        """Return the UIDs matching ``criteria`` in the selected folder."""

        def _search() -> list[str]:
            return list(self.mailbox.uids(criteria))

        return await asyncio.to_thread(_search)

    async def fetch_message(self, uid: str) -> ListEmail | None:
        """Fetch one full message by UID without setting \\Seen.

        Returns None if the message no longer exists (e.g. an overlapping
        poll already expunged it).
        """

        def _fetch() -> ListEmail | None:
            msgs = list(self.mailbox.fetch(AND(uid=uid), mark_seen=False, limit=1))
            if not msgs:
                return None
            return _parse_message(msgs[0])

        return await asyncio.to_thread(_fetch)

    # --- Deletion (two-phase) ---

    async def flag_deleted(self, uids: list[str]) -> None:
        """Phase 1: set \\Deleted on messages.

        Setting the flag again on an already flagged or already expunged
        message is accepted by the server and changes nothing.
        """
        if not uids:
            return

        def _do() -> None:
            self.mailbox.flag(uids, MailMessageFlags.DELETED, True)
            logger.debug("Flagged %d email(s) for deletion", len(uids))

        await asyncio.to_thread(_do)

    async def expunge(self) -> None:
        """Phase 2: permanently remove every \\Deleted message in the folder."""

        def _do() -> None:
            self.mailbox.expunge()
            logger.debug("Expunged deleted emails")

        await asyncio.to_thread(_do)
