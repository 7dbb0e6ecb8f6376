"""
Turns Zoom and Attendee webhooks into broadcast messages and session records.

Session registration on ``meeting.rtms_started`` is best effort: the Zoom
event is broadcast first, the Attendee call is made once, and a failure is
logged and dropped. Zoom retries any non-200 response, so callers only see
an error for the URL validation handshake or a missing credential.
"""

from __future__ import annotations

import hashlib
import hmac
import logging
from typing import Any, Optional

from meeting_relay.config import Settings
from meeting_relay.services.attendee_client import AttendeeClient, AttendeeError
from meeting_relay.services.broadcast_hub import BroadcastHub
from meeting_relay.services.record_store import RecordStore, SessionStatus
from meeting_relay.services.session_lookup import SessionLookupService

URL_VALIDATION_EVENT = "endpoint.url_validation"
RTMS_STARTED_EVENT = "meeting.rtms_started"
RTMS_STOPPED_EVENT = "meeting.rtms_stopped"


class WebhookValidationError(ValueError):
    """The webhook is well-formed JSON but cannot be acted on."""


def sign_plain_token(plain_token: str, secret: str) -> str:
    return hmac.new(secret.encode("utf-8"), plain_token.encode("utf-8"), hashlib.sha256).hexdigest()


class EventCorrelator:
    def __init__(
        self,
        store: RecordStore,
        lookup: SessionLookupService,
        hub: BroadcastHub,
        attendee: AttendeeClient,
        settings: Settings,
    ) -> None:
        self._store = store
        self._lookup = lookup
        self._hub = hub
        self._attendee = attendee
        self._settings = settings
        self._logger = logging.getLogger("relay.correlator")

    # ── Zoom ───────────────────────────────────────────────────────────

    def handle_zoom_event(self, event: str, payload: dict) -> Optional[dict]:
        """Process one Zoom webhook.

        Returns the synchronous response body for the URL validation
        handshake, and None for every other event.
        """
        if event == URL_VALIDATION_EVENT:
            return self.answer_url_validation(payload)

        self._hub.publish({"source": "zoom", "event": event, "payload": payload})

        if event == RTMS_STARTED_EVENT:
            self._start_session(payload)
        elif event == RTMS_STOPPED_EVENT:
            self._stop_session(payload)
        return None

    def answer_url_validation(self, payload: dict) -> dict:
        plain_token = payload.get("plainToken")
        if not plain_token or not isinstance(plain_token, str):
            self._logger.warning("No plainToken found in validation request")
            raise WebhookValidationError("Invalid validation request")
        secret = self._settings.require("zoom_webhook_secret_token")
        encrypted_token = sign_plain_token(plain_token, secret)
        self._logger.info("Validation request received. Responding with encrypted token.")
        return {"plainToken": plain_token, "encryptedToken": encrypted_token}

    def _start_session(self, payload: dict) -> Optional[dict]:
        # ConfigurationError propagates: a missing credential is not transient.
        try:
            response = self._attendee.create_app_session(payload)
        except AttendeeError as exc:
            self._logger.error(
                "App session registration failed: meeting_uuid=%s error=%s",
                payload.get("meeting_uuid"),
                exc,
            )
            return None

        session = self._store.create_session(
            {
                "id": response["id"],
                "zoom_rtms": payload,
                "attendee_response": response,
                "status": SessionStatus.STARTED.value,
            }
        )
        if session is None:
            self._logger.error("App session %s was not saved", response["id"])
            return None
        self._logger.info("Saved app session: id=%s", session["id"])
        return session

    def _stop_session(self, payload: dict) -> Optional[dict]:
        session = self._lookup.get_by_external_meeting_id(payload.get("meeting_uuid"))
        if not session:
            self._logger.info(
                "rtms_stopped for unknown meeting: meeting_uuid=%s", payload.get("meeting_uuid")
            )
            return None
        return self._store.update_session(session["id"], {"status": SessionStatus.STOPPED.value})

    # ── Attendee ───────────────────────────────────────────────────────

    def handle_attendee_event(
        self, trigger: str, data: Any, app_session_id: Optional[str]
    ) -> dict:
        session = self._lookup.get_by_id(app_session_id)
        meeting_id = self._lookup.meeting_id_for(session)
        message = {
            "source": "attendee",
            "trigger": trigger,
            "data": data,
            "app_session_id": app_session_id,
            "meeting_id": meeting_id,
        }
        self._hub.publish(message)

        persist = self._settings.persist_transcripts
        if persist and trigger.startswith("transcript.") and app_session_id:
            entry = self._store.create_transcript({"app_session_id": app_session_id, "data": data})
            if entry is None:
                self._logger.error("Transcript for session %s was not saved", app_session_id)
        return message
