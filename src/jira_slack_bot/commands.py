"""Parsing of the fixed phrases the bot understands when addressed directly."""

from __future__ import annotations

import re

from jira_slack_bot.models import (
    AssigneeKind,
    AssignCommand,
    IdentityCommand,
    TicketOperand,
)

_LEADING_MENTION = re.compile(r"^\s*<@(?P<user>\w+)(?:\|[^>]*)?>[:,]?\s*", re.IGNORECASE)

IDENTITY_PATTERN = re.compile(r"\bi am (?P<username>[0-9a-z.]+)", re.IGNORECASE)

# Anchored at the end: "assign that to me please" is not an assignment.
ASSIGN_PATTERN = re.compile(
    r"\bassign (?:(?P<that>that)|(?P<ticket>[A-Z]{2,8}-[0-9]{1,8}))"
    r" to (?:(?P<me>me)|<@(?P<mention>\w+)(?:\|[^>]*)?>)$",
    re.IGNORECASE,
)


def is_directed_at(text: str, bot_user_id: str) -> bool:
    """True when ``text`` opens with a mention of ``bot_user_id``."""
    m = _LEADING_MENTION.match(text or "")
    return bool(m) and m.group("user").upper() == bot_user_id.upper()


def strip_bot_mention(text: str) -> str:
    """Drop the leading ``<@U123>`` token (and a ``:`` after it)."""
    return _LEADING_MENTION.sub("", text or "", count=1).strip()


def parse_identity_command(text: str) -> IdentityCommand | None:
    m = IDENTITY_PATTERN.search(strip_bot_mention(text))
    if m is None:
        return None
    return IdentityCommand(username=m.group("username"))


def parse_assign_command(text: str) -> AssignCommand | None:
    """Parse ``assign (that|KEY-123) to (me|<@U123>)``.

    Returns None when the phrase does not match exactly.
    """
    m = ASSIGN_PATTERN.search(strip_bot_mention(text))
    if m is None:
        return None

    if m.group("that"):
        operand, ticket_id = TicketOperand.THAT, None
    else:
        operand, ticket_id = TicketOperand.LITERAL, m.group("ticket").upper()

    if m.group("me"):
        kind, mention_id = AssigneeKind.SELF, None
    else:
        kind, mention_id = AssigneeKind.MENTION, m.group("mention").upper()

    return AssignCommand(
        operand=operand,
        assignee_kind=kind,
        ticket_id=ticket_id,
        mention_id=mention_id,
    )
