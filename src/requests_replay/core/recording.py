import hashlib
import inspect
import logging
import re
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable

logger = logging.getLogger(__name__)

BEFORE_PERSIST = "before_persist"

Handler = Callable[..., Any]


def request_identifier(method: str, url: str, body: str | None = None) -> str:
    digest = hashlib.md5()
    digest.update(method.upper().encode("utf-8"))
    digest.update(url.encode("utf-8"))
    digest.update((body or "").encode("utf-8"))
    return digest.hexdigest()


def recording_id_for(name: str) -> str:
    slug = re.sub(r"[^\w-]+", "-", name).strip("-").lower() or "recording"
    return f"{slug}_{hashlib.md5(name.encode('utf-8')).hexdigest()[:8]}"


@dataclass
class RecordedResponse:
    status_code: int
    headers: dict[str, str] = field(default_factory=dict)
    body: str = ""
    status_text: str = ""
    # HAR content encoding of ``body``, "base64" for binary payloads.
    body_encoding: str | None = None

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300


@dataclass
class RecordedRequest:
    method: str
    url: str
    recording_id: str
    recording_name: str
    id: str
    order: int = 0
    headers: dict[str, str] = field(default_factory=dict)
    body: str | None = None
    response: RecordedResponse | None = None
    started_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    duration: float = 0.0
    _handlers: dict[str, list[Handler]] = field(
        default_factory=lambda: defaultdict(list), repr=False, compare=False
    )

    @property
    def did_respond(self) -> bool:
        return self.response is not None

    def respond(self, response: RecordedResponse, duration: float = 0.0) -> None:
        self.response = response
        self.duration = duration

    def on(self, event: str, handler: Handler) -> None:
        self._handlers[event].append(handler)

    async def trigger(self, event: str, *args: Any) -> None:
        """Run the handlers registered for ``event`` one after another.

        Handlers may be coroutine functions; their results are awaited
        before the next handler runs.
        """
        for handler in self._handlers.get(event, []):
            logger.debug("Triggering %s handler %r for %s", event, handler, self.url)
            result = handler(*args)
            if inspect.isawaitable(result):
                await result
