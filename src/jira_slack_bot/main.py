"""Entry point and wiring for jira-slack-bot."""

from __future__ import annotations

import argparse
import logging
import signal
import sys
import threading

from jira_slack_bot.config import Config, load_config
from jira_slack_bot.dispatcher import MessageDispatcher
from jira_slack_bot.handlers import BotContext
from jira_slack_bot.jira_client import JiraClient
from jira_slack_bot.matcher import TicketMatcher
from jira_slack_bot.mentions import MentionTracker
from jira_slack_bot.slack_listener import SlackListener
from jira_slack_bot.store import create_store
from jira_slack_bot.throttle import NotificationThrottle

logger = logging.getLogger(__name__)


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="jira-slack-bot",
        description="Post JIRA ticket summaries into the Slack channels that mention them.",
    )
    parser.add_argument(
        "--config",
        metavar="PATH",
        default=None,
        help="Path to config YAML (default: ~/.config/jira-slack-bot/config.yaml)",
    )
    parser.add_argument(
        "--log-level",
        metavar="LEVEL",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Log level (default: INFO)",
    )
    return parser.parse_args(argv)


def handle_message(event, client, *, listener: SlackListener, dispatcher: MessageDispatcher) -> None:
    """Process a single Slack message event: parse, then dispatch."""
    msg = listener.parse_event(event, client)
    if msg is None:
        return
    dispatcher.handle_inbound_message(msg)


def build_dispatcher(config: Config, listener: SlackListener) -> MessageDispatcher:
    store = create_store(config)
    ctx = BotContext(
        chat=listener,
        jira=JiraClient(config),
        matcher=TicketMatcher(),
        mentions=MentionTracker(store),
        throttle=NotificationThrottle(store, cooldown_seconds=config.cooldown_minutes * 60),
        url_root=config.issue_url_root,
    )
    return MessageDispatcher(ctx, config, listener.bot_user_id)


def _start_project_refresh(
    dispatcher: MessageDispatcher, minutes: float, stop: threading.Event
) -> threading.Thread | None:
    if minutes <= 0:
        return None

    def _loop():
        while not stop.wait(minutes * 60):
            dispatcher.refresh_projects()

    thread = threading.Thread(target=_loop, name="project-refresh", daemon=True)
    thread.start()
    logger.info("Refreshing JIRA projects every %s minutes", minutes)
    return thread


def main(argv: list[str] | None = None) -> None:
    args = _parse_args(argv)

    logging.basicConfig(
        format="%(asctime)s %(levelname)-8s [%(name)s] %(message)s",
        level=getattr(logging, args.log_level),
    )

    try:
        config = load_config(args.config)
    except FileNotFoundError as exc:
        logger.error("Config file not found: %s", exc)
        sys.exit(1)
    except ValueError as exc:
        logger.error("Invalid configuration: %s", exc)
        sys.exit(1)

    logger.info("Configuration loaded successfully")

    listener = SlackListener()
    dispatcher = build_dispatcher(config, listener)
    dispatcher.initialize()

    @listener.app.event("message")
    def _on_message(event, client):
        handle_message(event, client, listener=listener, dispatcher=dispatcher)

    stop = threading.Event()
    _start_project_refresh(dispatcher, config.project_refresh_minutes, stop)

    # Graceful shutdown on SIGTERM / SIGINT.
    def _shutdown(signum, _frame):
        sig_name = signal.Signals(signum).name
        logger.info("Received %s, shutting down", sig_name)
        stop.set()
        listener.close()

    signal.signal(signal.SIGTERM, _shutdown)
    signal.signal(signal.SIGINT, _shutdown)

    logger.info("Starting jira-slack-bot")
    listener.start()
