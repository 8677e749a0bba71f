"""Slack event listener and poster using Socket Mode.

Connects to Slack via the bolt framework, converts raw events into
SlackMessage dataclass instances and posts replies back to channels.
"""

from __future__ import annotations

import collections
import logging
import os
import threading

from slack_bolt import App
from slack_bolt.adapter.socket_mode import SocketModeHandler
from slack_sdk.errors import SlackApiError

from jira_slack_bot.commands import is_directed_at
from jira_slack_bot.models import OutgoingMessage, SlackMessage, SlackUser

logger = logging.getLogger(__name__)

# Event subtypes that carry no useful message content.
_IGNORED_SUBTYPES = frozenset({
    "channel_join",
    "channel_leave",
    "channel_topic",
    "channel_purpose",
    "channel_name",
    "channel_archive",
    "channel_unarchive",
    "group_join",
    "group_leave",
    "group_topic",
    "group_purpose",
    "group_name",
    "group_archive",
    "group_unarchive",
    "message_changed",
    "message_deleted",
})


class SlackListener:
    """Wraps a Slack Bolt ``App`` with Socket Mode for real-time events.

    Responsibilities
    ----------------
    * Connects to Slack and retrieves the bot's own user ID.
    * Converts raw ``message`` event dicts into :class:`SlackMessage` objects.
    * De-duplicates events using a bounded deque.
    * Caches user look-ups in memory.
    * Posts ticket summaries and command replies.
    """

    def __init__(self) -> None:
        bot_token = os.environ["SLACK_BOT_TOKEN"]
        app_token = os.environ["SLACK_APP_TOKEN"]

        self._app = App(token=bot_token)
        self._handler = SocketModeHandler(self._app, app_token)

        auth_response = self._app.client.auth_test()
        self._bot_user_id: str = auth_response["user_id"]
        logger.info("Bot user ID resolved: %s", self._bot_user_id)

        # Bolt runs listeners on a thread pool.
        self._lock = threading.Lock()

        # Deduplication: keep the last 1 000 event identifiers.
        self._seen_events: collections.deque[str] = collections.deque(maxlen=1000)

        # Simple in-memory cache (no TTL).
        self._user_cache: dict[str, SlackUser] = {}

    # -- public properties / helpers -----------------------------------------

    @property
    def bot_user_id(self) -> str:
        """The Slack user ID of the bot itself."""
        return self._bot_user_id

    @property
    def app(self) -> App:
        """The underlying ``slack_bolt.App`` instance."""
        return self._app

    # -- lifecycle -----------------------------------------------------------

    def start(self) -> None:
        """Start the Socket Mode handler (blocking)."""
        logger.info("Starting Socket Mode handler")
        self._handler.start()

    def close(self) -> None:
        """Shut down the Socket Mode handler gracefully."""
        logger.info("Closing Socket Mode handler")
        self._handler.close()

    # -- event parsing -------------------------------------------------------

    def parse_event(self, event: dict, client=None) -> SlackMessage | None:
        """Convert a raw Slack ``message`` event into a :class:`SlackMessage`.

        Returns ``None`` when the event should be silently dropped (duplicate,
        irrelevant subtype, or missing required fields).

        Parameters
        ----------
        event:
            The ``event`` dict delivered by the Slack Events API.
        client:
            A ``slack_sdk.web.client.WebClient`` instance (provided by bolt
            event handlers). Defaults to the app's own client.
        """

        # -- deduplication ---------------------------------------------------
        event_id = event.get("client_msg_id") or event.get("ts")
        if event_id is None:
            logger.debug("Event has no client_msg_id or ts; dropping")
            return None

        with self._lock:
            if event_id in self._seen_events:
                logger.debug("Duplicate event %s; dropping", event_id)
                return None
            self._seen_events.append(event_id)

        # -- filter irrelevant subtypes --------------------------------------
        subtype = event.get("subtype")
        if subtype is not None and subtype in _IGNORED_SUBTYPES:
            logger.debug("Ignored subtype %s; dropping", subtype)
            return None

        # -- required fields -------------------------------------------------
        channel_id = event.get("channel")
        sender_id = event.get("user")

        if not channel_id:
            logger.debug("Event missing 'channel'; dropping")
            return None

        # bot_message subtypes may lack a "user" field; that is acceptable
        # only when we can still identify it as a bot.
        is_bot = event.get("bot_id") is not None or subtype == "bot_message"
        if not sender_id:
            if is_bot:
                sender_id = event.get("bot_id", "unknown_bot")
            else:
                logger.debug("Event missing 'user'; dropping")
                return None

        text = event.get("text", "") or ""

        if is_bot:
            sender = sender_id
        else:
            user = self.lookup_user(sender_id, client)
            sender = user.name
            is_bot = user.is_bot

        return SlackMessage(
            channel_id=channel_id,
            sender_id=sender_id,
            text=text,
            sender=sender,
            is_mention=is_directed_at(text, self._bot_user_id),
            is_bot=is_bot,
        )

    # -- users -------------------------------------------------------------

    def lookup_user(self, user_id: str, client=None) -> SlackUser:
        """Return name and bot flag for a user, using cache when possible."""

        cached = self._user_cache.get(user_id)
        if cached is not None:
            return cached

        logger.debug("User cache miss for %s", user_id)
        client = client or self._app.client

        try:
            info = client.users_info(user=user_id)
            profile = info["user"].get("profile", {})
            name = (
                profile.get("display_name")
                or profile.get("real_name")
                or info["user"].get("real_name")
                or info["user"].get("name")
                or user_id
            )
            user = SlackUser(id=user_id, name=name, is_bot=bool(info["user"].get("is_bot")))
        except Exception:
            # Not cached, so the next message retries the lookup.
            logger.warning("Failed to resolve user %s; using ID", user_id)
            return SlackUser(id=user_id, name=user_id)

        self._user_cache[user_id] = user
        return user

    # -- posting -----------------------------------------------------------

    def post_message(self, channel_id: str, message: OutgoingMessage) -> bool:
        """Post ``message`` to a channel. Returns False if Slack refused it."""
        kwargs = {"channel": channel_id, "text": message.text}
        attachments = message.attachments()
        if attachments:
            kwargs["attachments"] = attachments
        try:
            self._app.client.chat_postMessage(**kwargs)
        except SlackApiError as exc:
            logger.warning(
                "Failed to post to %s: %s", channel_id, exc.response.get("error", exc)
            )
            return False
        return True
