from typing import Any
from unittest.mock import MagicMock

import pytest
import requests
from pytest_httpserver import HTTPServer

from requests_replay.adapters.requests import RecordingHTTPAdapter
from requests_replay.core.errors import PolicyError, ReplayMissError
from requests_replay.core.persister import Persister
from requests_replay.core.recording import recording_id_for
from requests_replay.storage.in_memory_storage import InMemoryStorage


def session_with(adapter: RecordingHTTPAdapter, httpserver: HTTPServer) -> requests.Session:
    session = requests.Session()
    session.mount(httpserver.url_for("/"), adapter)
    return session


def test_custom_persister(httpserver: HTTPServer) -> None:
    httpserver.expect_request("/test").respond_with_json({}, 200)
    persister = MagicMock(spec=Persister)
    adapter = RecordingHTTPAdapter(persister=persister, recording_name="custom")
    session_with(adapter, httpserver).get(httpserver.url_for("/test"))
    persister.record_request.assert_called_once()


def test_record_then_replay(httpserver: HTTPServer) -> None:
    httpserver.expect_ordered_request("/pet/1").respond_with_json({"name": "Rex"})
    httpserver.expect_ordered_request("/pet/1").respond_with_json({"name": "Max"})
    storage = InMemoryStorage()

    recorder = RecordingHTTPAdapter(Persister(storage), recording_name="pets")
    session = session_with(recorder, httpserver)
    assert session.get(httpserver.url_for("/pet/1")).json() == {"name": "Rex"}
    assert session.get(httpserver.url_for("/pet/1")).json() == {"name": "Max"}
    recorder.flush()

    recording = storage.recordings[recording_id_for("pets")]
    assert [x["_order"] for x in recording["log"]["entries"]] == [0, 1]
    assert recording["log"]["_recordingName"] == "pets"

    httpserver.clear()
    replayer = RecordingHTTPAdapter(Persister(storage), recording_name="pets", mode="replay")
    session = session_with(replayer, httpserver)
    first = session.get(httpserver.url_for("/pet/1"))
    second = session.get(httpserver.url_for("/pet/1"))

    assert first.status_code == 200
    assert first.json() == {"name": "Rex"}
    assert second.json() == {"name": "Max"}
    assert first.headers["Content-Type"] == "application/json"
    assert len(httpserver.log) == 0

    with pytest.raises(ReplayMissError):
        session.get(httpserver.url_for("/pet/1"))


def test_before_persist_handler(httpserver: HTTPServer) -> None:
    httpserver.expect_request("/login").respond_with_json({"token": "secret"})
    storage = InMemoryStorage()
    adapter = RecordingHTTPAdapter(Persister(storage), recording_name="login")

    def redact(entry: dict[str, Any]) -> None:
        entry["response"]["content"]["text"] = "{}"

    adapter.on_before_persist(redact)
    session_with(adapter, httpserver).post(httpserver.url_for("/login"), json={"user": "a"})
    adapter.flush()

    entry = storage.recordings[recording_id_for("login")]["log"]["entries"][0]
    assert entry["response"]["content"]["text"] == "{}"
    assert entry["request"]["postData"]["text"] == '{"user": "a"}'


def test_failed_responses_are_not_persisted(httpserver: HTTPServer) -> None:
    httpserver.expect_request("/broken").respond_with_data("oops", status=500)
    persister = Persister(InMemoryStorage())
    adapter = RecordingHTTPAdapter(persister, recording_name="broken")
    response = session_with(adapter, httpserver).get(httpserver.url_for("/broken"))
    assert response.status_code == 500

    with pytest.raises(PolicyError, match="500"):
        adapter.flush()
    assert persister.has_pending


def test_invalid_mode() -> None:
    with pytest.raises(ValueError):
        RecordingHTTPAdapter(Persister(InMemoryStorage()), recording_name="x", mode="live")


def test_binary_bodies_replay_byte_for_byte(httpserver: HTTPServer) -> None:
    payload = b"\x89PNG\r\n\x1a\n\x00\xff\xfe"
    httpserver.expect_request("/logo.png").respond_with_data(payload, content_type="image/png")
    storage = InMemoryStorage()

    recorder = RecordingHTTPAdapter(Persister(storage), recording_name="logo")
    assert session_with(recorder, httpserver).get(httpserver.url_for("/logo.png")).content == payload
    recorder.flush()

    content = storage.recordings[recording_id_for("logo")]["log"]["entries"][0]["response"]["content"]
    assert content["encoding"] == "base64"

    httpserver.clear()
    replayer = RecordingHTTPAdapter(Persister(storage), recording_name="logo", mode="replay")
    replayed = session_with(replayer, httpserver).get(httpserver.url_for("/logo.png"))
    assert replayed.content == payload
    assert replayed.headers["Content-Type"] == "image/png"
