from __future__ import annotations

import logging

import requests

from meeting_relay.config import Settings


class AttendeeError(RuntimeError):
    """Transient failure talking to the Attendee API."""


class AttendeeClient:
    """Minimal client for the Attendee app-session API."""

    def __init__(self, settings: Settings) -> None:
        self._settings = settings
        self._logger = logging.getLogger("relay.attendee")

    def create_app_session(self, zoom_rtms: dict) -> dict:
        """Register a Zoom RTMS stream with Attendee and return its app session.

        Raises:
            ConfigurationError: the API key or base URL was never set
            AttendeeError: the call failed, timed out, or returned garbage
        """
        api_key = self._settings.require("attendee_api_key")
        base_url = self._settings.require("attendee_base_url").rstrip("/")

        url = f"{base_url}/api/v1/app_sessions"
        try:
            response = requests.post(
                url,
                headers={
                    "Authorization": f"Token {api_key}",
                    "Content-Type": "application/json",
                },
                json={"zoom_rtms": zoom_rtms},
                timeout=self._settings.upstream_timeout,
            )
        except requests.RequestException as exc:
            raise AttendeeError(f"Failed to reach Attendee: {exc}") from exc

        if response.status_code < 200 or response.status_code >= 300:
            raise AttendeeError(
                f"Attendee error: {response.status_code} {response.text[:300]}"
            )

        try:
            data = response.json()
        except ValueError as exc:
            raise AttendeeError("Attendee response is not JSON") from exc
        if not isinstance(data, dict) or not data.get("id"):
            raise AttendeeError("Attendee response missing app session id")

        self._logger.info("Attendee app session created: id=%s", data.get("id"))
        return data
