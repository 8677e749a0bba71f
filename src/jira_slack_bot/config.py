"""Configuration loading and validation for jira-slack-bot."""

import logging
import os
from dataclasses import dataclass, field

import yaml

logger = logging.getLogger(__name__)

KNOWN_KEYS = {
    "jira_url",
    "jira_username",
    "jira_url_root",
    "jira_timeout",
    "channels_to_ignore",
    "cooldown_minutes",
    "redis_url",
    "project_refresh_minutes",
}


@dataclass
class Config:
    jira_url: str = "https://jira.example.com"
    jira_username: str = ""
    jira_password: str = field(default="", repr=False)  # from JIRA_PASSWORD only
    jira_url_root: str = ""
    jira_timeout: int = 10
    channels_to_ignore: list[str] = field(default_factory=list)
    cooldown_minutes: float = 30
    redis_url: str | None = None
    project_refresh_minutes: float = 0

    @property
    def issue_url_root(self) -> str:
        """Prefix that a ticket ID is appended to for a browser link."""
        if self.jira_url_root:
            return self.jira_url_root
        return f"{self.jira_url.rstrip('/')}/browse/"


def _parse_channels(value) -> list[str]:
    """Accept a YAML list or a comma-separated string of channel IDs."""
    if isinstance(value, str):
        return [c.strip() for c in value.split(",") if c.strip()]
    if isinstance(value, list):
        return [str(c) for c in value]
    raise ValueError("'channels_to_ignore' must be a list or a comma-separated string")


def _validate_config(config: Config) -> None:
    """Validate config values, raising ValueError on invalid fields."""
    for name in ("cooldown_minutes", "project_refresh_minutes", "jira_timeout"):
        value = getattr(config, name)
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise ValueError(f"{name} must be a number, got {type(value).__name__}")
        if value < 0:
            raise ValueError(f"{name} must not be negative, got {value}")

    if config.jira_timeout == 0:
        raise ValueError("jira_timeout must be positive, got 0")

    if not config.jira_url.startswith(("http://", "https://")):
        raise ValueError(f"jira_url must be an http(s) URL, got '{config.jira_url}'")


def load_config(path: str | None = None) -> Config:
    """Load configuration from a YAML file.

    Config path resolution order:
    1. Explicit path argument
    2. JIRA_SLACK_BOT_CONFIG environment variable
    3. ~/.config/jira-slack-bot/config.yaml

    Secrets never live in the file: the JIRA password is read from
    JIRA_PASSWORD. REDIS_URL is used when the file has no redis_url.
    """
    if path is None:
        path = os.environ.get("JIRA_SLACK_BOT_CONFIG")
    if path is None:
        path = os.path.expanduser("~/.config/jira-slack-bot/config.yaml")

    with open(path) as f:
        raw = yaml.safe_load(f)

    if raw is None:
        raw = {}

    if not isinstance(raw, dict):
        raise ValueError(f"Config file must contain a YAML mapping, got {type(raw).__name__}")

    for key in raw:
        if key not in KNOWN_KEYS:
            logger.warning("Unknown config key '%s' - ignoring", key)

    config = Config()

    if "jira_url" in raw:
        config.jira_url = str(raw["jira_url"])
    if "jira_username" in raw:
        config.jira_username = str(raw["jira_username"])
    if "jira_url_root" in raw:
        config.jira_url_root = str(raw["jira_url_root"])
    if "jira_timeout" in raw:
        config.jira_timeout = raw["jira_timeout"]
    if "cooldown_minutes" in raw:
        config.cooldown_minutes = raw["cooldown_minutes"]
    if "project_refresh_minutes" in raw:
        config.project_refresh_minutes = raw["project_refresh_minutes"]
    if raw.get("redis_url"):
        config.redis_url = str(raw["redis_url"])
    elif os.environ.get("REDIS_URL"):
        config.redis_url = os.environ["REDIS_URL"]

    if "channels_to_ignore" in raw and raw["channels_to_ignore"] is not None:
        config.channels_to_ignore = _parse_channels(raw["channels_to_ignore"])

    config.jira_password = os.environ.get("JIRA_PASSWORD", "")

    _validate_config(config)

    return config
