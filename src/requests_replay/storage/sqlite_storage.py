import json
import sqlite3
from typing import Any

from requests_replay.core.base_backend import Backend


class SQLiteStorage(Backend):
    def __init__(self, filepath: str = "recordings.db") -> None:
        self.connection = sqlite3.connect(filepath)
        self.cursor = self.connection.cursor()
        self.cursor.execute(
            "CREATE TABLE IF NOT EXISTS recordings(recording_id TEXT PRIMARY KEY, data TEXT)"
        )

    def find_recording(self, recording_id: str) -> dict[str, Any] | None:
        row = self.cursor.execute(
            "SELECT data FROM recordings WHERE recording_id = ?", [recording_id]
        ).fetchone()
        return json.loads(row[0]) if row else None

    def save_recording(self, recording_id: str, data: dict[str, Any]) -> None:
        self.cursor.execute(
            "INSERT INTO recordings VALUES (?, ?) "
            "ON CONFLICT(recording_id) DO UPDATE SET data = excluded.data",
            [recording_id, json.dumps(data)],
        )
        self.connection.commit()

    def delete_recording(self, recording_id: str) -> None:
        self.cursor.execute("DELETE FROM recordings WHERE recording_id = ?", [recording_id])
        self.connection.commit()

    def close(self) -> None:
        self.connection.close()
