import copy
from typing import Any

from requests_replay.core.base_backend import Backend


class InMemoryStorage(Backend):
    def __init__(self) -> None:
        self.recordings: dict[str, dict[str, Any]] = {}

    def find_recording(self, recording_id: str) -> dict[str, Any] | None:
        recording = self.recordings.get(recording_id)
        return copy.deepcopy(recording) if recording is not None else None

    def save_recording(self, recording_id: str, data: dict[str, Any]) -> None:
        self.recordings[recording_id] = copy.deepcopy(data)

    def delete_recording(self, recording_id: str) -> None:
        self.recordings.pop(recording_id, None)
