"""Pre-pipeline filter deciding which messages the bot reacts to at all."""

import logging

from jira_slack_bot.config import Config
from jira_slack_bot.models import FilterResult, SkipReason, SlackMessage

logger = logging.getLogger(__name__)


def pre_filter(msg: SlackMessage, config: Config, bot_user_id: str) -> FilterResult:
    """Decide whether a Slack message should enter the command pipeline.

    Evaluation order (first match wins):
      1. self: message from the bot's own user
      2. bots: message from any other bot user
      3. ignored channel: channel listed in ``channels_to_ignore``
      4. empty: message without text

    Args:
        msg: The parsed Slack message.
        config: The loaded application config.
        bot_user_id: The bot's own Slack user ID (e.g. "U12345").

    Returns:
        A FilterResult; ``skip`` is True when the message must be dropped
        without any side effect.
    """
    if msg.sender_id == bot_user_id:
        return FilterResult(skip=True, reason=SkipReason.SELF)

    if msg.is_bot:
        return FilterResult(skip=True, reason=SkipReason.BOTS)

    if msg.channel_id in config.channels_to_ignore:
        return FilterResult(skip=True, reason=SkipReason.IGNORED_CHANNEL)

    if not msg.text or not msg.text.strip():
        return FilterResult(skip=True, reason=SkipReason.EMPTY)

    return FilterResult(skip=False)
