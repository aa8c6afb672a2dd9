"""Periodic profanity scan and auto-ban over stored chat messages."""

from __future__ import annotations

import asyncio
import logging
import re
from collections.abc import Callable, Iterable
from dataclasses import dataclass

from sqlalchemy.orm import Session

from yakka_chat.core.errors import CryptoError
from yakka_chat.core.settings import settings
from yakka_chat.db.time import utcnow
from yakka_chat.repositories import ModerationRepository, SweepWrite, UnscannedMessage
from yakka_chat.services.crypto import KeyVault, MessageCipher
from yakka_chat.services.notifications import PushMessage, PushNotificationSender

logger = logging.getLogger(__name__)

BAN_NOTIFICATION_TITLE = "You have been banned"
BAN_NOTIFICATION_BODY = "You have been banned from YAKKA for saying a banned word"
BAN_NOTIFICATION_TYPE = "BLACKLISTED"

_INNER_APOSTROPHE = re.compile(r"(?<=\w)['’](?=\w)")
_PUNCTUATION = re.compile(r"[^\w\s]+")


def _tokenize(text: str) -> list[str]:
    """Lowercase ``text`` and split it into words.

    Apostrophes inside a word are dropped ("don't" -> "dont"); any other
    punctuation separates words.
    """
    text = _INNER_APOSTROPHE.sub("", text.lower())
    return _PUNCTUATION.sub(" ", text).split()


class WordFilter:
    """Case-insensitive whole-word matcher.

    Punctuation separates words in both the text and the entries, so
    "damn!" and "well...damn" match "damn" while "damnation" does not.
    Entries containing spaces match as a contiguous phrase.
    """

    def __init__(self, words: Iterable[str]) -> None:
        phrases = {tuple(_tokenize(word)) for word in words}
        self._phrases = {phrase for phrase in phrases if phrase}
        self._lengths = sorted({len(phrase) for phrase in self._phrases})

    def __bool__(self) -> bool:
        return bool(self._phrases)

    def matches(self, text: str) -> bool:
        if not self._phrases:
            return False
        tokens = _tokenize(text)
        for length in self._lengths:
            for start in range(len(tokens) - length + 1):
                if tuple(tokens[start:start + length]) in self._phrases:
                    return True
        return False


@dataclass(frozen=True)
class SweepResult:
    """Outcome of one sweep cycle."""

    scanned: int = 0
    flagged: int = 0
    banned_user_ids: tuple[int, ...] = ()
    revoked_sessions: int = 0
    declined_yakkas: int = 0
    undecryptable: int = 0
    notifications_sent: int = 0


class ModerationSweep:
    """Scans unscanned TEXT messages against the flagged and auto-ban lists."""

    def __init__(
        self,
        session_factory: Callable[[], Session],
        key_vault: KeyVault,
        cipher: MessageCipher,
        push_sender: PushNotificationSender,
        ban_reason: str | None = None,
    ) -> None:
        self._session_factory = session_factory
        self._key_vault = key_vault
        self._cipher = cipher
        self._push = push_sender
        self.ban_reason = ban_reason or settings.auto_ban_reason

    async def run_once(self) -> SweepResult:
        """Run one full sweep cycle.

        Every fetched message is marked scanned in the same transaction that
        records flags and bans, so a message is scanned exactly once. Ban
        notifications are only sent after that transaction commits.
        """
        scan = await asyncio.to_thread(self._scan_and_record)
        if scan is None:
            return SweepResult()
        write, offenders, undecryptable = scan

        logger.info(
            "Moderation sweep scanned %s messages: %s flagged, %s users banned",
            write.scanned,
            write.flagged,
            len(write.banned_user_ids),
        )

        notifications_sent = 0
        if write.banned_user_ids:
            notifications_sent = await self._push.send(
                PushMessage(
                    token=offenders[user_id],
                    title=BAN_NOTIFICATION_TITLE,
                    body=BAN_NOTIFICATION_BODY,
                    data={"type": BAN_NOTIFICATION_TYPE},
                )
                for user_id in write.banned_user_ids
            )

        return SweepResult(
            scanned=write.scanned,
            flagged=write.flagged,
            banned_user_ids=write.banned_user_ids,
            revoked_sessions=write.revoked_sessions,
            declined_yakkas=write.declined_yakkas,
            undecryptable=undecryptable,
            notifications_sent=notifications_sent,
        )

    def _scan_and_record(self) -> tuple[SweepWrite, dict[int, str | None], int] | None:
        """Blocking scan and write; runs in a worker thread."""
        with self._session_factory() as db:
            repo = ModerationRepository(db)
            messages = repo.fetch_unscanned_text_messages()
            if not messages:
                return None

            # Lists are read fresh each cycle so edits apply on the next tick.
            flagged_filter = WordFilter(repo.flagged_words())
            ban_filter = WordFilter(repo.auto_ban_words())

            flagged_ids: list[int] = []
            offenders: dict[int, str | None] = {}
            undecryptable = 0
            keys: dict[str, bytes] = {}
            for message in messages:
                text = self._decrypt(message, keys)
                if text is None:
                    undecryptable += 1
                    continue
                if flagged_filter.matches(text):
                    flagged_ids.append(message.id)
                if ban_filter.matches(text):
                    offenders.setdefault(message.sender_id, message.sender_push_token)
            keys.clear()

            write = repo.apply_sweep(
                scanned_ids=[message.id for message in messages],
                flagged_ids=flagged_ids,
                ban_user_ids=offenders.keys(),
                reason=self.ban_reason,
                now=utcnow(),
            )
        return write, offenders, undecryptable

    async def tick(self) -> SweepResult | None:
        """Run one cycle, logging instead of raising on failure."""
        try:
            return await self.run_once()
        except Exception:
            logger.exception("Moderation sweep failed; retrying on the next tick")
            return None

    def _decrypt(self, message: UnscannedMessage, keys: dict[str, bytes]) -> str | None:
        try:
            key = keys.get(message.wrapped_key)
            if key is None:
                key = keys[message.wrapped_key] = self._key_vault.unwrap(message.wrapped_key)
            return self._cipher.decrypt(message.content, key)
        except CryptoError as err:
            logger.warning("Could not decrypt message %s for moderation: %s", message.id, err)
            return None


class ModerationSweepWorker:
    """Runs a :class:`ModerationSweep` on a fixed interval in the background."""

    def __init__(self, sweep: ModerationSweep, interval: float | None = None) -> None:
        self.sweep = sweep
        self.interval = max(
            0.1,
            float(interval if interval is not None else settings.moderation_sweep_interval_seconds),
        )
        self._task: asyncio.Task[None] | None = None
        self._stopping = asyncio.Event()

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def start(self) -> None:
        """Start the background sweep loop."""
        if self._task is None or self._task.done():
            self._stopping.clear()
            self._task = asyncio.create_task(self._run())

    async def stop(self) -> None:
        """Stop the loop; an in-flight sweep runs to completion first."""
        if self._task is None:
            return

        self._stopping.set()
        await self._task
        self._task = None

    async def _run(self) -> None:
        while not self._stopping.is_set():
            await self.sweep.tick()
            try:
                await asyncio.wait_for(self._stopping.wait(), timeout=self.interval)
            except asyncio.TimeoutError:
                continue
