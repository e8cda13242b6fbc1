import asyncio
import inspect
import itertools
import logging
from collections import Counter
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import Any

from requests_replay.core.base_backend import Backend
from requests_replay.core.config import PersisterConfig
from requests_replay.core.errors import PolicyError, PreconditionError
from requests_replay.core.har import Har, build_entry, find_entry
from requests_replay.core.recording import BEFORE_PERSIST, RecordedRequest

logger = logging.getLogger(__name__)


@dataclass
class PendingBucket:
    name: str
    requests: list[RecordedRequest] = field(default_factory=list)
    sequence: list[int] = field(default_factory=list, repr=False)

    def add(self, request: RecordedRequest, sequence: int) -> None:
        self.requests.append(request)
        self.sequence.append(sequence)

    def merge(self, other: "PendingBucket") -> None:
        """Take over the requests of ``other``, keeping record order."""
        merged = sorted(
            zip(self.sequence + other.sequence, self.requests + other.requests),
            key=lambda pair: pair[0],
        )
        self.sequence = [sequence for sequence, _ in merged]
        self.requests = [request for _, request in merged]


async def _resolve(result: Any) -> Any:
    if inspect.isawaitable(result):
        return await result
    return result


class Persister:
    """Buffers recorded requests and writes them to a storage backend as HAR.

    Reads go through a cache keyed by recording id which is evicted by every
    save or delete of that id. Durability is delegated to the three hooks
    ``find_recording``, ``save_recording`` and ``delete_recording``, which use
    the injected backend unless a subclass overrides them.
    """

    def __init__(
        self, backend: Backend | None = None, config: PersisterConfig | None = None
    ) -> None:
        self.backend = backend
        self.config = config or PersisterConfig()
        self.cache: dict[str, dict[str, Any]] = {}
        self.pending: dict[str, PendingBucket] = {}
        self._sequence = itertools.count()
        self._locks: dict[str, asyncio.Lock] = {}
        self._lock_users: Counter[str] = Counter()

    @property
    def has_pending(self) -> bool:
        # Buckets are created together with their first request.
        return len(self.pending) > 0

    def record_request(self, request: RecordedRequest | None) -> None:
        if request is None:
            raise PreconditionError("You must pass a RecordedRequest to 'record_request'.")
        if not request.did_respond:
            raise PreconditionError("Cannot save a request with no response.")

        bucket = self.pending.get(request.recording_id)
        if bucket is None:
            logger.debug("Opening pending bucket for %s", request.recording_id)
            bucket = PendingBucket(name=request.recording_name)
            self.pending[request.recording_id] = bucket
        bucket.add(request, next(self._sequence))

    async def persist(self) -> None:
        if not self.has_pending:
            return

        # Taken before the first await so overlapping calls never see the same requests.
        snapshot = self.pending
        self.pending = {}
        logger.debug("Persisting %d recording(s)", len(snapshot))
        try:
            await asyncio.gather(
                *(
                    self._persist_recording(recording_id, bucket)
                    for recording_id, bucket in snapshot.items()
                )
            )
        except BaseException:
            self._restore(snapshot)
            raise
        logger.debug("Persisted %d recording(s)", len(snapshot))

    def _restore(self, snapshot: dict[str, PendingBucket]) -> None:
        recorded_meanwhile = self.pending
        self.pending = snapshot
        for recording_id, bucket in recorded_meanwhile.items():
            if recording_id in snapshot:
                snapshot[recording_id].merge(bucket)
            else:
                snapshot[recording_id] = bucket

    @asynccontextmanager
    async def _recording_lock(self, recording_id: str) -> AsyncIterator[None]:
        # Locks only live while in use, so none outlives the event loop it waited on.
        lock = self._locks.setdefault(recording_id, asyncio.Lock())
        self._lock_users[recording_id] += 1
        try:
            async with lock:
                yield
        finally:
            self._lock_users[recording_id] -= 1
            if not self._lock_users[recording_id]:
                del self._lock_users[recording_id]
                del self._locks[recording_id]

    async def _persist_recording(self, recording_id: str, bucket: PendingBucket) -> None:
        # Serialized per recording so an overlapping persist finds the previous save.
        async with self._recording_lock(recording_id):
            await self._write_recording(recording_id, bucket)

    async def _write_recording(self, recording_id: str, bucket: PendingBucket) -> None:
        recording = await self.find(recording_id) or {"log": {}}
        har = Har(
            {
                "log": {
                    "creator": {
                        "name": self.config.creator_name,
                        "version": self.config.creator_version,
                    },
                    "_recordingName": bucket.name,
                    **recording.get("log", {}),
                }
            }
        )

        entries = []
        for request in bucket.requests:
            entry = build_entry(request)
            response = request.response
            if not (response.ok or self.config.record_failed_requests):
                raise PolicyError(
                    entry["request"]["method"],
                    entry["request"]["url"],
                    entry["response"]["status"],
                )
            # Handlers may rewrite the payload, so they run on the finished entry.
            await request.trigger(BEFORE_PERSIST, entry)
            entries.append(entry)

        har.add_entries(entries)
        await self.save(recording_id, har.to_dict())

    async def find(self, recording_id: str) -> dict[str, Any] | None:
        if recording_id in self.cache:
            logger.debug("Cache hit for %s", recording_id)
            return self.cache[recording_id]

        recording = await _resolve(self.find_recording(recording_id))
        if recording is not None:
            self.cache[recording_id] = recording
        return recording

    async def save(self, recording_id: str, *args: Any) -> None:
        await _resolve(self.save_recording(recording_id, *args))
        self.cache.pop(recording_id, None)

    async def delete(self, recording_id: str, *args: Any) -> None:
        await _resolve(self.delete_recording(recording_id, *args))
        self.cache.pop(recording_id, None)

    async def find_entry(self, request: RecordedRequest) -> dict[str, Any] | None:
        recording = await self.find(request.recording_id)
        if recording is None:
            return None
        return find_entry(recording, request.id, request.order)

    def find_recording(self, recording_id: str) -> Any:
        if self.backend is None:
            raise NotImplementedError("[Persister] Must implement the `find_recording` hook.")
        return self.backend.find_recording(recording_id)

    def save_recording(self, recording_id: str, *args: Any) -> Any:
        if self.backend is None:
            raise NotImplementedError("[Persister] Must implement the `save_recording` hook.")
        return self.backend.save_recording(recording_id, *args)

    def delete_recording(self, recording_id: str, *args: Any) -> Any:
        if self.backend is None:
            raise NotImplementedError("[Persister] Must implement the `delete_recording` hook.")
        return self.backend.delete_recording(recording_id, *args)
