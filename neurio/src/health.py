"""
Health file writer for the bridge daemon.

Writes a JSON health file with four fields:
- last_poll_ts: ISO timestamp of the most recent poll attempt.
- last_publish_ts: ISO timestamp of the most recent cycle that wrote values.
- published_count: Number of variables written in the last publishing cycle.
- consecutive_failures: Failed polls since the last successful one.

The file is rewritten after every cycle so a supervisor (systemd watchdog
script, Docker HEALTHCHECK) can tell whether data is still flowing.

CHANGELOG:
- 2026-10-17: Initial creation (STORY-010)

TODO:
- None
"""

from __future__ import annotations

import json
from datetime import UTC, datetime
from pathlib import Path


class HealthWriter:
    """Writes bridge health status to a JSON file.

    Args:
        path: Filesystem path for the health JSON file. Accepts str or Path.
    """

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)
        self._last_poll_ts: str | None = None
        self._last_publish_ts: str | None = None
        self._published_count: int = 0
        self._consecutive_failures: int = 0

    def record_poll(self, consecutive_failures: int) -> None:
        """Record a poll attempt and write the health file."""
        self._last_poll_ts = datetime.now(tz=UTC).isoformat()
        self._consecutive_failures = consecutive_failures
        self._write()

    def record_publish(self, count: int) -> None:
        """Record a publishing cycle and write the health file.

        Args:
            count: Number of variables written in that cycle.
        """
        self._last_publish_ts = datetime.now(tz=UTC).isoformat()
        self._published_count = count
        self._write()

    def _write(self) -> None:
        data = {
            "last_poll_ts": self._last_poll_ts,
            "last_publish_ts": self._last_publish_ts,
            "published_count": self._published_count,
            "consecutive_failures": self._consecutive_failures,
        }
        self.path.write_text(json.dumps(data))
