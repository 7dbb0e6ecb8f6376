from __future__ import annotations

from typing import Optional

from meeting_relay.services.record_store import RecordStore


class SessionLookupService:
    """Read-only view over the record store.

    No caching: every call re-reads the sessions collection.
    """

    def __init__(self, store: RecordStore) -> None:
        self._store = store

    def get_by_id(self, session_id: Optional[str]) -> Optional[dict]:
        if not session_id:
            return None
        return self._store.get_session(session_id)

    def get_by_external_meeting_id(self, meeting_uuid: Optional[str]) -> Optional[dict]:
        if not meeting_uuid:
            return None
        return self._store.find_session_by_meeting_uuid(meeting_uuid)

    @staticmethod
    def meeting_id_for(session: Optional[dict]) -> Optional[str]:
        """Zoom meeting uuid embedded in a session's provider payload, if any."""
        if not session:
            return None
        zoom_rtms = session.get("zoom_rtms")
        if not isinstance(zoom_rtms, dict):
            return None
        return zoom_rtms.get("meeting_uuid")
