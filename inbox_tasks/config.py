"""Environment-driven settings for fetching and refreshing the inbox."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass

logger = logging.getLogger(__name__)


def _int_env(name: str, default: int, minimum: int = 1) -> int:
    """Read a positive integer env var. Falls back to default on parse error."""
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = int(raw.strip())
    except ValueError:
        logger.warning("Invalid %s %r; defaulting to %d", name, raw, default)
        return default
    if value < minimum:
        logger.warning("%s must be >= %d, got %d; defaulting to %d", name, minimum, value, default)
        return default
    return value


@dataclass
class InboxConfig:
    """Controls what is fetched and how often."""

    user_email: str = ""
    query: str = "in:inbox"
    max_results: int = 10
    fetch_concurrency: int = 5
    refresh_seconds: int = 300

    @classmethod
    def from_env(cls) -> InboxConfig:
        """Build InboxConfig from environment variables."""
        return cls(
            user_email=os.environ.get("USER_GOOGLE_EMAIL", ""),
            query=os.environ.get("INBOX_QUERY", "").strip() or "in:inbox",
            max_results=_int_env("INBOX_MAX_RESULTS", 10),
            fetch_concurrency=_int_env("INBOX_FETCH_CONCURRENCY", 5),
            refresh_seconds=_int_env("INBOX_REFRESH_SECONDS", 300),
        )
