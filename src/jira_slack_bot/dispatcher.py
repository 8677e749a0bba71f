"""Top-level entry point: filter a message, then run the command pipeline."""

from __future__ import annotations

import collections
import logging
import threading

from jira_slack_bot.config import Config
from jira_slack_bot.filters import pre_filter
from jira_slack_bot.handlers import HANDLERS, BotContext, Handler, run_pipeline
from jira_slack_bot.jira_client import JiraError
from jira_slack_bot.models import SlackMessage

logger = logging.getLogger(__name__)


class MessageDispatcher:
    """Drives one inbound message through filtering and the handler chain.

    Messages from the same channel are processed one at a time so that
    last-ticket and throttle updates are never lost; different channels may
    run concurrently on Bolt's listener threads.
    """

    def __init__(
        self,
        ctx: BotContext,
        config: Config,
        bot_user_id: str,
        handlers: tuple[Handler, ...] = HANDLERS,
    ) -> None:
        self.ctx = ctx
        self.config = config
        self.bot_user_id = bot_user_id
        self._handlers = handlers
        self._locks_guard = threading.Lock()
        self._channel_locks: dict[str, threading.Lock] = collections.defaultdict(threading.Lock)

    def _channel_lock(self, channel_id: str) -> threading.Lock:
        with self._locks_guard:
            return self._channel_locks[channel_id]

    def refresh_projects(self) -> bool:
        """Reload project keys from JIRA. On failure the old keys stay in use."""
        try:
            keys = self.ctx.jira.list_projects()
        except JiraError as exc:
            logger.warning("Could not load JIRA projects: %s", exc)
            return False
        self.ctx.matcher.update_project_keys(keys)
        return True

    def initialize(self) -> bool:
        """Load the known projects. False means the fallback pattern is in use."""
        ok = self.refresh_projects()
        if ok:
            logger.info("Loaded %d JIRA projects", len(self.ctx.matcher.project_keys))
        else:
            logger.warning("Starting with the generic ticket pattern")
        return ok

    def handle_inbound_message(self, msg: SlackMessage) -> str | None:
        """Process one message. Never raises; returns the claiming handler."""
        try:
            result = pre_filter(msg, self.config, self.bot_user_id)
            if result.skip:
                logger.debug("Skipped (%s) message in %s", result.reason.value, msg.channel_id)
                return None

            with self._channel_lock(msg.channel_id):
                return run_pipeline(self.ctx, msg, self._handlers)
        except Exception:
            logger.exception("Failed to handle message in %s", msg.channel_id)
            return None
