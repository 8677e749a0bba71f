"""Shared data structures used across all components."""

from dataclasses import dataclass, field
from enum import Enum


class SkipReason(Enum):
    SELF = "self"
    BOTS = "bots"
    IGNORED_CHANNEL = "ignored_channel"
    EMPTY = "empty"


class TicketOperand(Enum):
    LITERAL = "literal"
    THAT = "that"


class AssigneeKind(Enum):
    SELF = "self"
    MENTION = "mention"


@dataclass(frozen=True)
class SlackMessage:
    channel_id: str  # raw channel ID
    sender_id: str  # raw user ID
    text: str  # message body
    sender: str = ""  # display name, falls back to the user ID
    is_mention: bool = False  # true if the text starts with a mention of the bot
    is_bot: bool = False  # true if the sender is a bot user


@dataclass(frozen=True)
class SlackUser:
    id: str
    name: str
    is_bot: bool = False


@dataclass
class FilterResult:
    skip: bool
    reason: SkipReason | None = None


@dataclass(frozen=True)
class Issue:
    key: str
    summary: str
    issue_type: str | None = None
    priority: str | None = None
    status: str | None = None
    assignee_name: str | None = None  # JIRA username, used for reverse lookup
    assignee_display: str | None = None
    created: str | None = None  # raw JIRA timestamps
    updated: str | None = None


@dataclass(frozen=True)
class AttachmentField:
    title: str
    value: str
    short: bool = True

    def to_dict(self) -> dict:
        return {"title": self.title, "value": self.value, "short": self.short}


@dataclass(frozen=True)
class OutgoingMessage:
    text: str
    fields: tuple[AttachmentField, ...] = ()
    fallback: str = ""

    def attachments(self) -> list[dict]:
        """Slack ``attachments`` payload, empty when there are no fields."""
        if not self.fields:
            return []
        return [
            {
                "fallback": self.fallback,
                "fields": [f.to_dict() for f in self.fields],
            }
        ]


@dataclass(frozen=True)
class IdentityCommand:
    username: str


@dataclass(frozen=True)
class AssignCommand:
    operand: TicketOperand
    assignee_kind: AssigneeKind
    ticket_id: str | None = None  # set when operand is LITERAL
    mention_id: str | None = None  # set when assignee_kind is MENTION


@dataclass(frozen=True)
class TicketInfoCommand:
    ticket_ids: tuple[str, ...] = field(default_factory=tuple)
