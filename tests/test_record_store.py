import json
import threading
from datetime import datetime

import pytest

from meeting_relay.services import record_store as record_store_module
from meeting_relay.services.record_store import RecordStore, SessionStatus


class TestSessions:
    def test_create_then_get_returns_all_fields(self, store):
        zoom_rtms = {"meeting_uuid": "m-1", "rtms_stream_id": "s-1"}
        created = store.create_session(
            {"id": "sess-1", "zoom_rtms": zoom_rtms, "attendee_response": {"id": "sess-1"}, "status": "started"}
        )

        fetched = store.get_session("sess-1")
        assert fetched == created
        assert fetched["id"] == "sess-1"
        assert fetched["zoom_rtms"] == zoom_rtms
        assert fetched["attendee_response"] == {"id": "sess-1"}
        assert fetched["status"] == "started"
        assert fetched["created_at"]
        assert fetched["updated_at"] == fetched["created_at"]

    def test_generated_ids_are_unique_under_bursts(self, store):
        ids = [store.create_session({"status": "started"})["id"] for _ in range(50)]
        assert len(set(ids)) == 50
        assert all(i.isdigit() for i in ids)
        assert [int(i) for i in ids] == sorted(int(i) for i in ids)

    def test_duplicate_id_does_not_take_effect(self, store):
        store.create_session({"id": "dup", "status": "started"})
        assert store.create_session({"id": "dup", "status": "other"}) is None
        assert len(store.list_sessions()) == 1
        assert store.get_session("dup")["status"] == "started"

    def test_status_enum_is_stored_as_string(self, store):
        store.create_session({"id": "e", "status": SessionStatus.STARTED})
        with open(store._sessions_path, "r", encoding="utf-8") as f:
            assert json.load(f)[0]["status"] == "started"

    def test_list_preserves_insertion_order(self, store):
        for session_id in ("c", "a", "b"):
            store.create_session({"id": session_id})
        assert [s["id"] for s in store.list_sessions()] == ["c", "a", "b"]

    def test_get_unknown_returns_none(self, store):
        assert store.get_session("missing") is None

    def test_update_preserves_other_fields_and_advances_timestamp(self, store):
        created = store.create_session({"id": "s", "status": "started", "zoom_rtms": {"meeting_uuid": "m"}})

        first = store.update_session("s", {"status": "stopped"})
        second = store.update_session("s", {"note": "x"})

        assert first["zoom_rtms"] == {"meeting_uuid": "m"}
        assert first["status"] == "stopped"
        assert second["status"] == "stopped"
        assert second["note"] == "x"
        assert datetime.fromisoformat(first["updated_at"]) > datetime.fromisoformat(created["updated_at"])
        assert datetime.fromisoformat(second["updated_at"]) > datetime.fromisoformat(first["updated_at"])
        assert store.get_session("s") == second

    def test_update_cannot_change_identity(self, store):
        created = store.create_session({"id": "s"})
        updated = store.update_session("s", {"id": "other", "created_at": "1999-01-01T00:00:00"})
        assert updated["id"] == "s"
        assert updated["created_at"] == created["created_at"]
        assert store.get_session("other") is None

    def test_update_unknown_returns_none(self, store):
        assert store.update_session("missing", {"status": "x"}) is None

    def test_delete(self, store):
        store.create_session({"id": "s"})
        assert store.delete_session("s") is True
        assert store.delete_session("s") is False
        assert store.get_session("s") is None

    def test_find_by_meeting_uuid(self, store):
        store.create_session({"id": "no-payload"})
        store.create_session({"id": "s1", "zoom_rtms": {"meeting_uuid": "abc/def=="}})
        assert store.find_session_by_meeting_uuid("abc/def==")["id"] == "s1"
        assert store.find_session_by_meeting_uuid("nope") is None

    def test_concurrent_creates_are_all_persisted(self, store):
        def create(i):
            store.create_session({"id": f"s-{i}"})

        threads = [threading.Thread(target=create, args=(i,)) for i in range(20)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert sorted(s["id"] for s in store.list_sessions()) == sorted(f"s-{i}" for i in range(20))


class TestStorageFailures:
    def test_corrupt_file_reads_as_empty(self, store):
        with open(store._sessions_path, "w", encoding="utf-8") as f:
            f.write("{not json")
        assert store.list_sessions() == []
        assert store.get_session("anything") is None

    def test_missing_file_reads_as_empty(self, tmp_path):
        store = RecordStore(str(tmp_path / "a" / "sessions.json"), str(tmp_path / "a" / "transcripts.json"))
        (tmp_path / "a" / "transcripts.json").unlink()
        assert store.list_transcripts() == []

    def test_write_failure_reports_no_effect(self, store, monkeypatch):
        store.create_session({"id": "kept"})

        def broken_replace(src, dst):
            raise OSError("disk full")

        monkeypatch.setattr(record_store_module.os, "replace", broken_replace)

        assert store.create_session({"id": "lost"}) is None
        assert store.update_session("kept", {"status": "x"}) is None
        assert store.delete_session("kept") is False

        monkeypatch.undo()
        assert [s["id"] for s in store.list_sessions()] == ["kept"]


class TestTranscripts:
    def test_create_assigns_collision_resistant_ids(self, store):
        entries = [store.create_transcript({"app_session_id": "s", "data": {"n": i}}) for i in range(20)]
        ids = [e["id"] for e in entries]
        assert len(set(ids)) == 20
        prefix, suffix = ids[0].split("-")
        assert prefix.isdigit()
        assert len(suffix) == 9

    def test_list_by_session(self, store):
        store.create_transcript({"app_session_id": "a", "data": {}})
        store.create_transcript({"app_session_id": "b", "data": {}})
        store.create_transcript({"app_session_id": "a", "data": {}})
        assert len(store.list_transcripts()) == 3
        assert len(store.list_transcripts_by_session("a")) == 2
        assert store.list_transcripts_by_session("zzz") == []

    def test_delete_by_session_counts_then_zero(self, store):
        for sid in ("a", "b", "a", "a"):
            store.create_transcript({"app_session_id": sid, "data": {}})

        assert store.delete_transcripts_by_session("a") == 3
        assert store.delete_transcripts_by_session("a") == 0
        assert [t["app_session_id"] for t in store.list_transcripts()] == ["b"]

    def test_delete_single(self, store):
        entry = store.create_transcript({"app_session_id": "a", "data": {}})
        assert store.delete_transcript(entry["id"]) is True
        assert store.delete_transcript(entry["id"]) is False

    def test_dangling_reference_survives_session_delete(self, store):
        store.create_session({"id": "s"})
        store.create_transcript({"app_session_id": "s", "data": {}})
        store.delete_session("s")
        assert len(store.list_transcripts_by_session("s")) == 1


class TestSessionLookup:
    def test_lookup_reads_through_to_store(self, store, lookup):
        assert lookup.get_by_id("s") is None
        store.create_session({"id": "s", "zoom_rtms": {"meeting_uuid": "m-9"}})

        session = lookup.get_by_id("s")
        assert lookup.meeting_id_for(session) == "m-9"
        assert lookup.get_by_external_meeting_id("m-9")["id"] == "s"

    @pytest.mark.parametrize("session", [None, {}, {"zoom_rtms": "opaque"}, {"zoom_rtms": {}}])
    def test_meeting_id_absent(self, lookup, session):
        assert lookup.meeting_id_for(session) is None

    def test_empty_keys_short_circuit(self, lookup):
        assert lookup.get_by_id(None) is None
        assert lookup.get_by_external_meeting_id("") is None
