from typing import Any, Awaitable, Protocol


class Backend(Protocol):
    """Interface of a storage backend.

    The persister hands complete HAR payloads (``{"log": {...}}``) to the
    backend and asks it for them again by recording id. Backends hold no
    in-memory state of the persister. Every hook may be a plain method or a
    coroutine.
    """

    def find_recording(
        self, recording_id: str
    ) -> dict[str, Any] | None | Awaitable[dict[str, Any] | None]:
        """Return the stored payload or None."""
        ...

    def save_recording(
        self, recording_id: str, data: dict[str, Any]
    ) -> None | Awaitable[None]:
        """Store the payload, replacing any previous one."""
        ...

    def delete_recording(self, recording_id: str) -> None | Awaitable[None]:
        """Remove the payload."""
        ...
