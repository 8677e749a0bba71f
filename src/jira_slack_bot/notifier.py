"""Slack message builders for ticket summaries and command replies."""

import logging
from datetime import datetime

from jira_slack_bot.models import AttachmentField, Issue, OutgoingMessage

logger = logging.getLogger(__name__)

UNKNOWN = "Unknown"
NO_ASSIGNEE = "None"

_JIRA_TIME_FORMATS = ("%Y-%m-%dT%H:%M:%S.%f%z", "%Y-%m-%dT%H:%M:%S%z")


def make_issue_link(url_root: str, ticket_id: str) -> str:
    return f"{url_root}{ticket_id}"


def format_date(value: str | None) -> str:
    """Render a JIRA timestamp as ``YYYY-MM-DD HH:MM``, or ``Unknown``."""
    if not value:
        return UNKNOWN
    for fmt in _JIRA_TIME_FORMATS:
        try:
            return datetime.strptime(value, fmt).strftime("%Y-%m-%d %H:%M")
        except ValueError:
            continue
    logger.debug("Unparseable JIRA timestamp %r", value)
    return UNKNOWN


def _assignee_value(issue: Issue, slack_user_id: str | None) -> str:
    display = issue.assignee_display or issue.assignee_name
    if not display:
        return NO_ASSIGNEE
    if slack_user_id:
        return f"{display} (<@{slack_user_id}>)"
    return display


def message_from_issue(
    ticket_id: str,
    issue: Issue,
    url_root: str,
    assignee_slack_id: str | None = None,
) -> OutgoingMessage:
    """Build the channel notification for one ticket.

    Args:
        ticket_id: The ticket ID as matched in the message.
        issue: The issue fetched from JIRA.
        url_root: Prefix for browser links to tickets.
        assignee_slack_id: Slack user bound to the assignee, if any.
    """
    link = make_issue_link(url_root, ticket_id)
    summary = issue.summary or UNKNOWN
    fields = (
        AttachmentField("Type", issue.issue_type or UNKNOWN),
        AttachmentField("Priority", issue.priority or UNKNOWN),
        AttachmentField("Status", issue.status or UNKNOWN),
        AttachmentField("Assignee", _assignee_value(issue, assignee_slack_id)),
        AttachmentField("Created", format_date(issue.created)),
        AttachmentField("Updated", format_date(issue.updated)),
    )
    return OutgoingMessage(
        text=f"<{link}|*{ticket_id}*: {summary}>",
        fields=fields,
        fallback=f"{ticket_id}: {summary}",
    )


def text_message(text: str) -> OutgoingMessage:
    return OutgoingMessage(text=text)
