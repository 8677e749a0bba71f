"""Shared fakes and fixtures for the dispatcher and handler tests."""

from __future__ import annotations

import pytest

from jira_slack_bot.config import Config
from jira_slack_bot.dispatcher import MessageDispatcher
from jira_slack_bot.handlers import BotContext
from jira_slack_bot.jira_client import JiraError
from jira_slack_bot.matcher import TicketMatcher
from jira_slack_bot.mentions import MentionTracker
from jira_slack_bot.models import Issue, OutgoingMessage, SlackMessage, SlackUser
from jira_slack_bot.store import MemoryStore
from jira_slack_bot.throttle import NotificationThrottle

BOT_USER_ID = "MY_ID"
T0 = 1_700_000_000.0


class FakeSlack:
    """Records outgoing messages instead of talking to Slack."""

    def __init__(self, names: dict[str, str] | None = None) -> None:
        self.names = names or {}
        self.sent: list[tuple[str, OutgoingMessage]] = []
        self.fail_posts = False

    def post_message(self, channel_id: str, message: OutgoingMessage) -> bool:
        if self.fail_posts:
            return False
        self.sent.append((channel_id, message))
        return True

    def lookup_user(self, user_id: str) -> SlackUser:
        return SlackUser(id=user_id, name=self.names.get(user_id, user_id))

    def texts(self) -> list[str]:
        return [m.text for _, m in self.sent]


class FakeJira:
    """Knows a fixed set of issues; anything else is an error, like a 404."""

    def __init__(self, valid_keys=("ABC-12345",), projects=("ABC", "PBL")) -> None:
        self.valid_keys = set(valid_keys)
        self.projects = list(projects)
        self.lookups: list[str] = []
        self.updates: list[tuple[str, str]] = []
        self.fail_updates = False
        self.fail_projects = False

    def list_projects(self) -> list[str]:
        if self.fail_projects:
            raise JiraError("unreachable")
        return list(self.projects)

    def find_issue(self, ticket_id: str) -> Issue | None:
        self.lookups.append(ticket_id)
        if ticket_id not in self.valid_keys:
            raise JiraError("Cannot find issue")
        return Issue(
            key=ticket_id,
            summary="This is a JIRA summary",
            issue_type="TYPE",
            priority="PRIORITY",
            status="STATUS",
            assignee_name="person",
            assignee_display="PERSON",
        )

    def update_issue(self, ticket_id: str, assignee: str) -> None:
        if self.fail_updates:
            raise JiraError("forbidden")
        self.updates.append((ticket_id, assignee))


class Clock:
    def __init__(self, now: float = T0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


def make_msg(**overrides) -> SlackMessage:
    """Create a SlackMessage with sensible defaults, overriding specific fields."""
    defaults = dict(
        channel_id="C123",
        sender_id="U_ALICE",
        sender="alice",
        text="ABC-12345",
    )
    defaults.update(overrides)
    return SlackMessage(**defaults)


def make_command(text: str, **overrides) -> SlackMessage:
    """A message addressed to the bot."""
    return make_msg(text=f"<@{BOT_USER_ID}> {text}", is_mention=True, **overrides)


@pytest.fixture()
def slack():
    return FakeSlack(names={"U_ALICE": "alice", "U_BOB": "bob"})


@pytest.fixture()
def jira():
    return FakeJira()


@pytest.fixture()
def clock():
    return Clock()


@pytest.fixture()
def store():
    return MemoryStore()


@pytest.fixture()
def ctx(slack, jira, clock, store):
    return BotContext(
        chat=slack,
        jira=jira,
        matcher=TicketMatcher(),
        mentions=MentionTracker(store),
        throttle=NotificationThrottle(store),
        url_root="URL_ROOT",
        clock=clock,
    )


@pytest.fixture()
def dispatcher(ctx):
    config = Config(channels_to_ignore=["BADCHANNEL"])
    return MessageDispatcher(ctx, config, BOT_USER_ID)
