from __future__ import annotations

import json
import logging
import os
import threading
import time
import uuid
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Optional


class SessionStatus(str, Enum):
    STARTED = "started"
    STOPPED = "stopped"


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class RecordStore:
    """JSON-file backed store for sessions and transcript entries.

    Each collection is a single JSON array rewritten wholesale on every
    mutation. All access goes through one re-entrant lock, so concurrent
    webhook handlers never interleave a read-modify-write.
    """

    def __init__(self, sessions_path: str, transcripts_path: str) -> None:
        self._sessions_path = sessions_path
        self._transcripts_path = transcripts_path
        self._lock = threading.RLock()
        self._last_session_ms = 0
        self._logger = logging.getLogger("relay.store")
        for path in (sessions_path, transcripts_path):
            os.makedirs(os.path.dirname(path) or ".", exist_ok=True)
            if not os.path.exists(path):
                self._write_collection(path, [])

    # ── Collection I/O ─────────────────────────────────────────────────

    def _read_collection(self, path: str) -> list[dict]:
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as exc:
            self._logger.warning("Failed to read collection: %s error=%s", path, exc)
            return []
        if not isinstance(data, list):
            self._logger.warning("Collection is not a list: %s", path)
            return []
        return [item for item in data if isinstance(item, dict)]

    def _write_collection(self, path: str, items: list[dict]) -> bool:
        temp_path = f"{path}.tmp"
        try:
            with open(temp_path, "w", encoding="utf-8") as f:
                json.dump(items, f, indent=2)
            os.replace(temp_path, path)
        except (OSError, TypeError, ValueError) as exc:
            self._logger.error("Failed to write collection: %s error=%s", path, exc)
            return False
        return True

    def _next_session_id(self) -> str:
        # Millisecond clock that never hands out the same value twice.
        now_ms = int(time.time() * 1000)
        self._last_session_ms = max(now_ms, self._last_session_ms + 1)
        return str(self._last_session_ms)

    @staticmethod
    def _next_timestamp(previous: Optional[str]) -> str:
        now = _utc_now()
        if previous:
            try:
                prev = datetime.fromisoformat(previous)
            except ValueError:
                prev = None
            if prev is not None:
                if prev.tzinfo is None:
                    prev = prev.replace(tzinfo=timezone.utc)
                if now <= prev:
                    now = prev + timedelta(microseconds=1)
        return now.isoformat()

    # ── Sessions ───────────────────────────────────────────────────────

    def list_sessions(self) -> list[dict]:
        with self._lock:
            return self._read_collection(self._sessions_path)

    def get_session(self, session_id: str) -> Optional[dict]:
        with self._lock:
            for session in self._read_collection(self._sessions_path):
                if session.get("id") == session_id:
                    return session
            return None

    def find_session_by_meeting_uuid(self, meeting_uuid: str) -> Optional[dict]:
        with self._lock:
            for session in self._read_collection(self._sessions_path):
                zoom_rtms = session.get("zoom_rtms")
                if isinstance(zoom_rtms, dict) and zoom_rtms.get("meeting_uuid") == meeting_uuid:
                    return session
            return None

    def create_session(self, data: dict) -> Optional[dict]:
        with self._lock:
            sessions = self._read_collection(self._sessions_path)
            session_id = data.get("id")
            session_id = str(session_id) if session_id else self._next_session_id()
            if any(s.get("id") == session_id for s in sessions):
                self._logger.warning("Session already exists: id=%s", session_id)
                return None
            now = _utc_now().isoformat()
            session = {"created_at": now, **data, "id": session_id}
            session.setdefault("updated_at", session["created_at"])
            if isinstance(session.get("status"), SessionStatus):
                session["status"] = session["status"].value
            sessions.append(session)
            if not self._write_collection(self._sessions_path, sessions):
                return None
            self._logger.info("Session created: id=%s status=%s", session_id, session.get("status"))
            return session

    def update_session(self, session_id: str, updates: dict) -> Optional[dict]:
        with self._lock:
            sessions = self._read_collection(self._sessions_path)
            for index, session in enumerate(sessions):
                if session.get("id") != session_id:
                    continue
                changes = {k: v for k, v in updates.items() if k not in ("id", "created_at")}
                if isinstance(changes.get("status"), SessionStatus):
                    changes["status"] = changes["status"].value
                updated = {**session, **changes}
                updated["updated_at"] = self._next_timestamp(session.get("updated_at"))
                sessions[index] = updated
                if not self._write_collection(self._sessions_path, sessions):
                    return None
                return updated
            return None

    def delete_session(self, session_id: str) -> bool:
        with self._lock:
            sessions = self._read_collection(self._sessions_path)
            remaining = [s for s in sessions if s.get("id") != session_id]
            if len(remaining) == len(sessions):
                return False
            if not self._write_collection(self._sessions_path, remaining):
                return False
            self._logger.info("Session deleted: id=%s", session_id)
            return True

    # ── Transcript entries ─────────────────────────────────────────────

    def list_transcripts(self) -> list[dict]:
        with self._lock:
            return self._read_collection(self._transcripts_path)

    def list_transcripts_by_session(self, session_id: str) -> list[dict]:
        with self._lock:
            return [
                t
                for t in self._read_collection(self._transcripts_path)
                if t.get("app_session_id") == session_id
            ]

    def create_transcript(self, data: dict) -> Optional[dict]:
        with self._lock:
            transcripts = self._read_collection(self._transcripts_path)
            transcript_id = data.get("id") or f"{int(time.time() * 1000)}-{uuid.uuid4().hex[:9]}"
            entry = {"created_at": _utc_now().isoformat(), **data, "id": str(transcript_id)}
            transcripts.append(entry)
            if not self._write_collection(self._transcripts_path, transcripts):
                return None
            return entry

    def delete_transcript(self, transcript_id: str) -> bool:
        with self._lock:
            transcripts = self._read_collection(self._transcripts_path)
            remaining = [t for t in transcripts if t.get("id") != transcript_id]
            if len(remaining) == len(transcripts):
                return False
            return self._write_collection(self._transcripts_path, remaining)

    def delete_transcripts_by_session(self, session_id: str) -> int:
        with self._lock:
            transcripts = self._read_collection(self._transcripts_path)
            remaining = [t for t in transcripts if t.get("app_session_id") != session_id]
            deleted = len(transcripts) - len(remaining)
            if deleted == 0:
                return 0
            if not self._write_collection(self._transcripts_path, remaining):
                return 0
            self._logger.info("Transcripts deleted: session_id=%s count=%d", session_id, deleted)
            return deleted
