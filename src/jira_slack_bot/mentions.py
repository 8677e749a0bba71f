"""Per-channel last ticket and per-user JIRA identity bookkeeping."""

import logging

from jira_slack_bot.store import IDENTITY, LAST_TICKET, KeyValueStore

logger = logging.getLogger(__name__)


class MentionTracker:
    """Accessors over the ``last_ticket`` and ``identity`` namespaces.

    Every method talks to the store and may raise ``StoreError``.
    """

    def __init__(self, store: KeyValueStore) -> None:
        self._store = store

    def record_last_ticket(self, channel_id: str, ticket_id: str) -> None:
        self._store.set(LAST_TICKET, channel_id, ticket_id)
        logger.debug("Last ticket in %s is now %s", channel_id, ticket_id)

    def last_ticket(self, channel_id: str) -> str | None:
        return self._store.get(LAST_TICKET, channel_id)

    def bind_identity(self, chat_user_id: str, jira_username: str) -> None:
        self._store.set(IDENTITY, chat_user_id, jira_username)
        logger.info("Bound %s to JIRA user %s", chat_user_id, jira_username)

    def identity_for(self, chat_user_id: str) -> str | None:
        return self._store.get(IDENTITY, chat_user_id)

    def chat_user_for(self, jira_username: str) -> str | None:
        """Reverse lookup; scans all bindings, which are bounded by workspace size."""
        if not jira_username:
            return None
        wanted = jira_username.lower()
        for chat_user_id, username in self._store.get_all(IDENTITY).items():
            if username.lower() == wanted:
                return chat_user_id
        return None
