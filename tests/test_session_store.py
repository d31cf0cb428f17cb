"""Tests for the session store."""

import pytest

from conversation_tts.session_store import SessionNotFoundError, SessionStore


def test_create_session_makes_directories(store, tmp_path):
    session_id = store.create_session()
    for kind in ("audio", "transcripts", "prompts"):
        assert (tmp_path / "sessions" / session_id / kind).is_dir()
    session = store.get_session(session_id)
    assert session["id"] == session_id
    assert session["files"] == {"audio": [], "transcripts": [], "prompts": []}


def test_get_unknown_session(store):
    with pytest.raises(SessionNotFoundError):
        store.get_session("missing")


def test_ensure_session(store, session_id):
    assert store.ensure_session(session_id) == session_id
    fresh = store.ensure_session(None)
    assert fresh != session_id
    assert store.session_count() == 2
    with pytest.raises(SessionNotFoundError):
        store.ensure_session("missing")


def test_session_found_on_disk_after_restart(tmp_path):
    """A new store re-registers sessions that only exist on disk."""
    session_id = SessionStore(tmp_path).create_session()
    restarted = SessionStore(tmp_path)

    assert restarted.has_session(session_id)
    assert restarted.ensure_session(session_id) == session_id
    assert restarted.get_session(session_id)["id"] == session_id


@pytest.mark.parametrize("filename", ["../escape.wav", "a/b.wav", "..", ""])
def test_path_for_rejects_escape(store, session_id, filename):
    with pytest.raises(ValueError):
        store.path_for(session_id, "audio", filename)


def test_path_for_rejects_unknown_kind(store, session_id):
    with pytest.raises(ValueError, match="kind"):
        store.path_for(session_id, "secrets", "x.json")


def test_path_for_rejects_bad_session_id(store):
    with pytest.raises(ValueError):
        store.path_for("../other", "audio", "x.wav")


def test_write_json_is_stable(store, session_id):
    path = store.write_json(session_id, "prompts", "p.json", {"b": 1, "a": "한글"})
    assert path.read_text(encoding="utf-8") == '{\n  "a": "한글",\n  "b": 1\n}\n'
    assert store.read_json(session_id, "prompts", "p.json") == {"a": "한글", "b": 1}


def test_register_file_is_append_only(store, session_id):
    store.write_bytes(session_id, "audio", "one.wav", b"1")
    store.write_bytes(session_id, "audio", "two.wav", b"2")
    store.write_bytes(session_id, "audio", "one.wav", b"3")
    assert store.get_session(session_id)["files"]["audio"] == ["one.wav", "two.wav"]


def test_list_files_filters_by_extension(store, session_id):
    store.write_bytes(session_id, "audio", "a.wav", b"RIFF")
    store.write_bytes(session_id, "audio", "notes.txt", b"x")
    store.write_json(session_id, "transcripts", "t.json", {})
    store.write_bytes(session_id, "prompts", "p.txt", b"x")

    files = store.list_files(session_id)

    assert [f["name"] for f in files["audio"]] == ["a.wav"]
    assert files["audio"][0]["size"] == 4
    assert files["audio"][0]["url"] == f"/api/audio/{session_id}/a.wav"
    assert files["transcripts"][0]["url"] == f"/api/file/{session_id}/transcripts/t.json"
    assert files["prompts"] == []


def test_list_files_unknown_session(store):
    with pytest.raises(SessionNotFoundError):
        store.list_files("missing")
