"""Ticket ID recognition driven by the project keys JIRA knows about."""

import logging
import re
import threading
from collections.abc import Iterable

logger = logging.getLogger(__name__)

# Used until the project list has been loaded. Case-sensitive on purpose:
# without known keys, lowercase words like "utf-8" must not look like tickets.
FALLBACK_PATTERN = re.compile(r"\b[A-Z]{2,8}-[0-9]{1,8}\b")


class TicketMatcher:
    """Builds and caches the ticket regex for the current project key set."""

    def __init__(self, project_keys: Iterable[str] = ()) -> None:
        self._lock = threading.Lock()
        self._keys: tuple[str, ...] = ()
        self._pattern: re.Pattern = FALLBACK_PATTERN
        self.update_project_keys(project_keys)

    @property
    def project_keys(self) -> tuple[str, ...]:
        return self._keys

    def update_project_keys(self, keys: Iterable[str]) -> None:
        """Replace the known key set, rebuilding the pattern only on change."""
        # Keep discovery order, drop blanks and duplicates.
        cleaned = tuple(dict.fromkeys(k.strip() for k in keys if k and k.strip()))
        with self._lock:
            if cleaned == self._keys:
                return
            self._keys = cleaned
            self._pattern = self._build(cleaned)
        logger.info("Ticket matcher now knows %d project keys", len(cleaned))

    @staticmethod
    def _build(keys: tuple[str, ...]) -> re.Pattern:
        if not keys:
            return FALLBACK_PATTERN
        alternation = "|".join(re.escape(k) for k in keys)
        return re.compile(rf"\b(?:{alternation})-[0-9]{{1,8}}\b", re.IGNORECASE)

    def current_pattern(self) -> re.Pattern:
        return self._pattern

    def extract(self, text: str) -> list[str]:
        """Return distinct ticket IDs in ``text``, upper-cased, first-seen order."""
        if not text:
            return []
        found = (m.group(0).upper() for m in self.current_pattern().finditer(text))
        return list(dict.fromkeys(found))
