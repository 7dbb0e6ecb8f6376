"""
Shared fixtures for the relay test suite.
"""

import pytest

from meeting_relay.config import Settings
from meeting_relay.services.broadcast_hub import BroadcastHub
from meeting_relay.services.record_store import RecordStore
from meeting_relay.services.session_lookup import SessionLookupService


@pytest.fixture
def store(tmp_path):
    return RecordStore(str(tmp_path / "sessions.json"), str(tmp_path / "transcripts.json"))


@pytest.fixture
def lookup(store):
    return SessionLookupService(store)


@pytest.fixture
def hub():
    hub = BroadcastHub(heartbeat_interval=3600)
    yield hub
    hub.stop()


@pytest.fixture
def settings(tmp_path):
    return Settings(
        attendee_api_key="attendee-key",
        attendee_base_url="https://attendee.test",
        zoom_webhook_secret_token="topsecret",
        data_dir=str(tmp_path / "data"),
        logs_dir=str(tmp_path / "logs"),
    )
