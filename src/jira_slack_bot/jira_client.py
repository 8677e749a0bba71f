"""Thin JIRA REST v2 client built on requests."""

import logging
from urllib.parse import quote

import requests

from jira_slack_bot.config import Config
from jira_slack_bot.models import Issue

logger = logging.getLogger(__name__)


class JiraError(Exception):
    """A JIRA call failed (transport error, timeout or non-2xx response)."""


def _name(fields: dict, key: str, attr: str = "name") -> str | None:
    value = fields.get(key)
    if isinstance(value, dict):
        return value.get(attr)
    return None


def parse_issue(key: str, data: dict) -> Issue:
    """Build an Issue from the ``GET /issue/{key}`` JSON body."""
    fields = data.get("fields") or {}
    return Issue(
        key=data.get("key") or key,
        summary=fields.get("summary") or "",
        issue_type=_name(fields, "issuetype"),
        priority=_name(fields, "priority"),
        status=_name(fields, "status"),
        assignee_name=_name(fields, "assignee"),
        assignee_display=_name(fields, "assignee", "displayName"),
        created=fields.get("created"),
        updated=fields.get("updated"),
    )


class JiraClient:
    def __init__(self, config: Config, session: requests.Session | None = None) -> None:
        self._base = config.jira_url.rstrip("/") + "/rest/api/2"
        self._timeout = config.jira_timeout
        self._session = session or requests.Session()
        if config.jira_username:
            self._session.auth = (config.jira_username, config.jira_password)
        self._session.headers.update({"Accept": "application/json"})

    def _request(self, method: str, path: str, **kwargs) -> requests.Response:
        url = f"{self._base}{path}"
        try:
            return self._session.request(method, url, timeout=self._timeout, **kwargs)
        except requests.RequestException as exc:
            raise JiraError(f"{method} {path} failed: {exc}") from exc

    def list_projects(self) -> list[str]:
        """Return the keys of every project visible to the bot user."""
        resp = self._request("GET", "/project")
        if not resp.ok:
            raise JiraError(f"listing projects returned HTTP {resp.status_code}")
        try:
            projects = resp.json()
            return [p["key"] for p in projects if p.get("key")]
        except (AttributeError, KeyError, TypeError, ValueError) as exc:
            raise JiraError(f"unexpected project list: {exc}") from exc

    def find_issue(self, ticket_id: str) -> Issue | None:
        """Fetch an issue; None when JIRA says it does not exist."""
        resp = self._request("GET", f"/issue/{quote(ticket_id)}")
        if resp.status_code == 404:
            logger.debug("Issue %s not found", ticket_id)
            return None
        if not resp.ok:
            raise JiraError(f"fetching {ticket_id} returned HTTP {resp.status_code}")
        try:
            data = resp.json()
        except ValueError as exc:
            raise JiraError(f"unexpected body for {ticket_id}: {exc}") from exc
        if not isinstance(data, dict):
            raise JiraError(f"unexpected body for {ticket_id}: {type(data).__name__}")
        return parse_issue(ticket_id, data)

    def update_issue(self, ticket_id: str, assignee: str) -> None:
        """Assign ``ticket_id`` to the JIRA user ``assignee``."""
        body = {"fields": {"assignee": {"name": assignee}}}
        resp = self._request("PUT", f"/issue/{quote(ticket_id)}", json=body)
        if not resp.ok:
            raise JiraError(
                f"assigning {ticket_id} to {assignee} returned HTTP {resp.status_code}"
            )
        logger.info("Assigned %s to %s in JIRA", ticket_id, assignee)
