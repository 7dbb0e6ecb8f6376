"""Application context: single source of truth for runtime paths.

Every service and router receives this object instead of individual path
strings. It is a plain object rather than a module-level singleton so tests
can build as many isolated contexts as they need.
"""

from __future__ import annotations

import os


class AppContext:
    """Holds the runtime directory paths for the relay."""

    def __init__(self, *, data_dir: str, logs_dir: str) -> None:
        self._data_dir = data_dir
        self._logs_dir = logs_dir
        self._app_dir = os.path.dirname(__file__)

    # ── Persisted collections ──────────────────────────────────────────

    @property
    def data_dir(self) -> str:
        return self._data_dir

    @property
    def sessions_path(self) -> str:
        return os.path.join(self._data_dir, "sessions.json")

    @property
    def transcripts_path(self) -> str:
        return os.path.join(self._data_dir, "transcripts.json")

    # ── App-relative paths (never change) ──────────────────────────────

    @property
    def static_dir(self) -> str:
        return os.path.join(self._app_dir, "static")

    # ── Logs ───────────────────────────────────────────────────────────

    @property
    def logs_dir(self) -> str:
        return self._logs_dir

    def ensure_dirs(self) -> None:
        """Create all required directories if they don't exist."""
        for d in (self.data_dir, self.logs_dir):
            os.makedirs(d, exist_ok=True)
