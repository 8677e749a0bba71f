"""Ordered command handlers; the first one that claims a message wins.

Each handler is a pure ``parse`` step over the immutable message plus an
``action`` step that performs the side effects. The order is fixed:
identity binding, assignment, then ticket info as the terminal fallback.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any, Protocol

from jira_slack_bot.commands import parse_assign_command, parse_identity_command
from jira_slack_bot.jira_client import JiraClient, JiraError
from jira_slack_bot.matcher import TicketMatcher
from jira_slack_bot.mentions import MentionTracker
from jira_slack_bot.models import (
    AssigneeKind,
    AssignCommand,
    IdentityCommand,
    OutgoingMessage,
    SlackMessage,
    SlackUser,
    TicketInfoCommand,
    TicketOperand,
)
from jira_slack_bot.notifier import message_from_issue, text_message
from jira_slack_bot.store import StoreError
from jira_slack_bot.throttle import NotificationThrottle

logger = logging.getLogger(__name__)


class ChatClient(Protocol):
    def post_message(self, channel_id: str, message: OutgoingMessage) -> bool: ...

    def lookup_user(self, user_id: str) -> SlackUser: ...


@dataclass
class BotContext:
    """Collaborators a handler may use."""

    chat: ChatClient
    jira: JiraClient
    matcher: TicketMatcher
    mentions: MentionTracker
    throttle: NotificationThrottle
    url_root: str
    clock: Callable[[], float] = field(default=time.time)

    def reply(self, msg: SlackMessage, text: str) -> bool:
        return self.chat.post_message(msg.channel_id, text_message(text))

    def user_name(self, user_id: str) -> str:
        return self.chat.lookup_user(user_id).name


@dataclass(frozen=True)
class Handler:
    name: str
    parse: Callable[[BotContext, SlackMessage], Any]
    action: Callable[[BotContext, SlackMessage, Any], None]


# -- identity binding ------------------------------------------------------


def _parse_identity(ctx: BotContext, msg: SlackMessage) -> IdentityCommand | None:
    if not msg.is_mention:
        return None
    return parse_identity_command(msg.text)


def bind_identity(ctx: BotContext, msg: SlackMessage, cmd: IdentityCommand) -> None:
    try:
        ctx.mentions.bind_identity(msg.sender_id, cmd.username)
    except StoreError as exc:
        logger.warning("Could not bind %s to %s: %s", msg.sender_id, cmd.username, exc)
        ctx.reply(msg, "Sorry, I could not save your JIRA username. Please try again later.")
        return
    ctx.reply(msg, f"Okay! I will remember that you are {cmd.username} in JIRA.")


# -- assignment ------------------------------------------------------------


def _parse_assign(ctx: BotContext, msg: SlackMessage) -> AssignCommand | None:
    if not msg.is_mention:
        return None
    return parse_assign_command(msg.text)


def _resolve_ticket(ctx: BotContext, msg: SlackMessage, cmd: AssignCommand) -> str | None:
    if cmd.operand is TicketOperand.LITERAL:
        return cmd.ticket_id
    try:
        ticket_id = ctx.mentions.last_ticket(msg.channel_id)
    except StoreError as exc:
        logger.warning("Could not read last ticket for %s: %s", msg.channel_id, exc)
        ctx.reply(msg, "Sorry, I could not look up the last ticket mentioned here.")
        return None
    if ticket_id is None:
        ctx.reply(msg, "Sorry, I don't know which ticket you mean. Mention it first.")
    return ticket_id


def assign_ticket(ctx: BotContext, msg: SlackMessage, cmd: AssignCommand) -> None:
    ticket_id = _resolve_ticket(ctx, msg, cmd)
    if ticket_id is None:
        return

    if cmd.assignee_kind is AssigneeKind.SELF:
        assignee_id = msg.sender_id
    else:
        assignee_id = cmd.mention_id
    assignee_name = ctx.user_name(assignee_id)

    try:
        username = ctx.mentions.identity_for(assignee_id)
    except StoreError as exc:
        logger.warning("Could not read identity for %s: %s", assignee_id, exc)
        ctx.reply(msg, f"Sorry, I could not look up the JIRA username for {assignee_name}.")
        return
    if username is None:
        ctx.reply(msg, f"Sorry, I do not know the JIRA username for {assignee_name}.")
        return

    try:
        ctx.jira.update_issue(ticket_id, username)
    except JiraError as exc:
        logger.warning("Assigning %s to %s failed: %s", ticket_id, username, exc)
        ctx.reply(msg, f"Sorry, I could not assign {ticket_id} to {assignee_name}.")
        return
    ctx.reply(msg, f"Okay! I have assigned {ticket_id} to {assignee_name}.")


# -- ticket info -----------------------------------------------------------


def _parse_ticket_info(ctx: BotContext, msg: SlackMessage) -> TicketInfoCommand:
    return TicketInfoCommand(ticket_ids=tuple(ctx.matcher.extract(msg.text)))


def _assignee_slack_id(ctx: BotContext, jira_username: str | None) -> str | None:
    if not jira_username:
        return None
    try:
        return ctx.mentions.chat_user_for(jira_username)
    except StoreError as exc:
        logger.warning("Reverse identity lookup for %s failed: %s", jira_username, exc)
        return None


def notify_tickets(ctx: BotContext, msg: SlackMessage, cmd: TicketInfoCommand) -> None:
    """Post a summary for each ticket, one at a time, in mention order."""
    channel_id = msg.channel_id
    for ticket_id in cmd.ticket_ids:
        if not ctx.throttle.should_notify(channel_id, ticket_id, ctx.clock()):
            logger.debug("Throttled %s in %s", ticket_id, channel_id)
            continue

        try:
            issue = ctx.jira.find_issue(ticket_id)
        except JiraError as exc:
            logger.warning("Lookup of %s failed: %s", ticket_id, exc)
            continue
        if issue is None:
            continue

        message = message_from_issue(
            ticket_id,
            issue,
            ctx.url_root,
            _assignee_slack_id(ctx, issue.assignee_name),
        )
        if not ctx.chat.post_message(channel_id, message):
            continue
        logger.info("Posted %s to %s", ticket_id, channel_id)

        try:
            ctx.mentions.record_last_ticket(channel_id, ticket_id)
        except StoreError as exc:
            logger.warning("Could not record last ticket %s in %s: %s", ticket_id, channel_id, exc)
        try:
            ctx.throttle.mark_notified(channel_id, ticket_id, ctx.clock())
        except StoreError as exc:
            logger.warning("Could not mark %s notified in %s: %s", ticket_id, channel_id, exc)


HANDLERS: tuple[Handler, ...] = (
    Handler("bind_identity", _parse_identity, bind_identity),
    Handler("assign_ticket", _parse_assign, assign_ticket),
    Handler("ticket_info", _parse_ticket_info, notify_tickets),
)


def run_pipeline(
    ctx: BotContext,
    msg: SlackMessage,
    handlers: tuple[Handler, ...] = HANDLERS,
) -> str | None:
    """Run the first handler whose parse step claims ``msg``.

    Returns the claiming handler's name, or None if nothing claimed it.
    """
    for handler in handlers:
        command = handler.parse(ctx, msg)
        if command is None:
            continue
        logger.debug("Handler %s claimed message in %s", handler.name, msg.channel_id)
        handler.action(ctx, msg, command)
        return handler.name
    return None
