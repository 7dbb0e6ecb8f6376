import logging

from fastapi import APIRouter, HTTPException

from meeting_relay.services.record_store import RecordStore
from meeting_relay.services.session_lookup import SessionLookupService


def create_sessions_router(store: RecordStore, lookup: SessionLookupService) -> APIRouter:
    router = APIRouter(tags=["sessions"])
    logger = logging.getLogger("relay.api.sessions")

    @router.get("/api/sessions")
    def list_sessions() -> list[dict]:
        return store.list_sessions()

    # Zoom meeting uuids may contain "/", so this route takes the whole path.
    @router.get("/api/sessions/by-meeting/{meeting_uuid:path}")
    def get_session_by_meeting(meeting_uuid: str) -> dict:
        logger.info("Finding session by meeting id: %s", meeting_uuid)
        session = lookup.get_by_external_meeting_id(meeting_uuid)
        if not session:
            raise HTTPException(status_code=404, detail="Session not found for meeting ID")
        return session

    @router.get("/api/sessions/{session_id}")
    def get_session(session_id: str) -> dict:
        session = lookup.get_by_id(session_id)
        if not session:
            raise HTTPException(status_code=404, detail="Session not found")
        return session

    @router.delete("/api/sessions/{session_id}")
    def delete_session(session_id: str) -> dict:
        if not store.delete_session(session_id):
            raise HTTPException(status_code=404, detail="Session not found")
        transcripts_deleted = store.delete_transcripts_by_session(session_id)
        logger.info(
            "Session deleted via API: id=%s transcripts_deleted=%d", session_id, transcripts_deleted
        )
        return {"deleted": True, "transcripts_deleted": transcripts_deleted}

    @router.get("/api/sessions/{session_id}/transcripts")
    def list_session_transcripts(session_id: str) -> list[dict]:
        return store.list_transcripts_by_session(session_id)

    @router.get("/api/transcripts")
    def list_transcripts() -> list[dict]:
        return store.list_transcripts()

    @router.delete("/api/transcripts/{transcript_id}")
    def delete_transcript(transcript_id: str) -> dict:
        if not store.delete_transcript(transcript_id):
            raise HTTPException(status_code=404, detail="Transcript not found")
        return {"deleted": True}

    return router
