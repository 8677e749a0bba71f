"""Per (channel, ticket) cool-down gate for ticket notifications."""

import logging
import threading

from jira_slack_bot.store import NOTIFIED, KeyValueStore, StoreError

logger = logging.getLogger(__name__)

DEFAULT_COOLDOWN_SECONDS = 30 * 60


def _key(channel_id: str, ticket_id: str) -> str:
    return f"{channel_id}:{ticket_id}"


class NotificationThrottle:
    """Decides whether a ticket may be announced again in a channel.

    Call ``should_notify`` before looking the ticket up, and
    ``mark_notified`` only once the notification was actually posted, so a
    failed lookup never suppresses a later attempt.
    """

    def __init__(
        self,
        store: KeyValueStore,
        cooldown_seconds: float = DEFAULT_COOLDOWN_SECONDS,
        prune_every: int = 500,
    ) -> None:
        self._store = store
        self.cooldown_seconds = cooldown_seconds
        self._prune_every = prune_every
        self._marks = 0
        self._marks_lock = threading.Lock()

    def should_notify(self, channel_id: str, ticket_id: str, now: float) -> bool:
        try:
            raw = self._store.get(NOTIFIED, _key(channel_id, ticket_id))
        except StoreError as exc:
            # Fail closed: a flapping store must not cause a notification storm.
            logger.warning(
                "Throttle lookup failed for %s in %s; suppressing: %s",
                ticket_id,
                channel_id,
                exc,
            )
            return False

        if raw is None:
            return True
        try:
            last = float(raw)
        except ValueError:
            # Same policy as an unreadable store; prune clears the entry.
            logger.warning("Corrupt throttle entry %r for %s in %s", raw, ticket_id, channel_id)
            return False
        return now - last >= self.cooldown_seconds

    def mark_notified(self, channel_id: str, ticket_id: str, now: float) -> None:
        self._store.set(NOTIFIED, _key(channel_id, ticket_id), repr(float(now)))

        with self._marks_lock:
            self._marks += 1
            due = self._prune_every > 0 and self._marks % self._prune_every == 0
        if due:
            self.prune(now)

    def prune(self, now: float) -> int:
        """Drop entries whose cool-down has expired. Returns how many went.

        An entry re-marked after the snapshot was taken no longer holds the
        value that was read, so it is left alone.
        """
        removed = 0
        try:
            for key, raw in self._store.get_all(NOTIFIED).items():
                try:
                    expired = now - float(raw) >= self.cooldown_seconds
                except ValueError:
                    expired = True
                if expired and self._store.delete_if_equal(NOTIFIED, key, raw):
                    removed += 1
        except StoreError as exc:
            logger.warning("Throttle prune failed: %s", exc)
        if removed:
            logger.debug("Pruned %d expired throttle entries", removed)
        return removed
