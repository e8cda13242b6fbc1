import json
import logging
from pathlib import Path
from typing import Any

from requests_replay.core.base_backend import Backend

logger = logging.getLogger(__name__)

HAR_FILENAME = "recording.har"


class HarStorage(Backend):
    """Stores each recording as ``<path>/<recording_id>/recording.har``."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    def _get_path(self, recording_id: str) -> Path:
        safe_id = recording_id.replace("/", "_").replace("\\", "_")
        if safe_id in ("", ".", ".."):
            raise ValueError(f"Invalid recording id: {recording_id!r}")
        return self.path / safe_id / HAR_FILENAME

    def find_recording(self, recording_id: str) -> dict[str, Any] | None:
        filepath = self._get_path(recording_id)
        if not filepath.is_file():
            return None
        return json.loads(filepath.read_text("utf8"))

    def save_recording(self, recording_id: str, data: dict[str, Any]) -> None:
        filepath = self._get_path(recording_id)
        filepath.parent.mkdir(parents=True, exist_ok=True)
        filepath.write_text(json.dumps(data, indent=2), encoding="utf8")
        logger.debug("Wrote %s", filepath)

    def delete_recording(self, recording_id: str) -> None:
        filepath = self._get_path(recording_id)
        filepath.unlink(missing_ok=True)
        directory = filepath.parent
        if directory.is_dir() and not any(directory.iterdir()):
            directory.rmdir()

    def list_recordings(self) -> list[str]:
        if not self.path.is_dir():
            raise IOError(f"{self.path} is not a directory.")
        return sorted(x.parent.name for x in self.path.glob(f"*/{HAR_FILENAME}"))
