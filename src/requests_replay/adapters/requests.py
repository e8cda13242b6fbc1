import asyncio
import base64
import logging
from collections import Counter
from typing import Any, Mapping

from requests import PreparedRequest, Response
from requests.adapters import HTTPAdapter, Retry
from requests.structures import CaseInsensitiveDict
from requests.utils import get_encoding_from_headers

from requests_replay.core.errors import ReplayMissError
from requests_replay.core.persister import Persister
from requests_replay.core.recording import (
    BEFORE_PERSIST,
    Handler,
    RecordedRequest,
    RecordedResponse,
    recording_id_for,
    request_identifier,
)

logger = logging.getLogger(__name__)

MISSING = "UNKNOWN"
RECORD = "record"
REPLAY = "replay"


def _text(body: bytes | str | None) -> str | None:
    if isinstance(body, bytes):
        return body.decode("utf-8", errors="replace")
    return body


def _response_body(content: bytes) -> tuple[str, str | None]:
    # Bodies that are not valid UTF-8 are kept byte for byte as base64.
    try:
        return content.decode("utf-8"), None
    except UnicodeDecodeError:
        return base64.b64encode(content).decode("ascii"), "base64"


class RecordingHTTPAdapter(HTTPAdapter):
    """Transport adapter recording responses into, or replaying them from, a persister.

    Mount it on a ``requests.Session``. In ``record`` mode requests go to the
    network and are buffered in the persister until :meth:`flush`. In
    ``replay`` mode responses come from the stored recording and nothing is
    sent.
    """

    def __init__(
        self,
        persister: Persister,
        recording_name: str,
        mode: str = RECORD,
        pool_connections: int = 10,
        pool_maxsize: int = 10,
        max_retries: Retry | int | None = 0,
        pool_block: bool = False,
    ) -> None:
        if mode not in (RECORD, REPLAY):
            raise ValueError(f"mode must be {RECORD!r} or {REPLAY!r}, got {mode!r}")
        super().__init__(pool_connections, pool_maxsize, max_retries, pool_block)
        self.persister = persister
        self.recording_name = recording_name
        self.recording_id = recording_id_for(recording_name)
        self.mode = mode
        self._orders: Counter[str] = Counter()
        self._before_persist: list[Handler] = []

    def on_before_persist(self, handler: Handler) -> None:
        self._before_persist.append(handler)

    def send(
        self,
        request: PreparedRequest,
        stream: bool = False,
        timeout: None | float | tuple[float, float] | tuple[float, None] = None,
        verify: bool | str = True,
        cert: None | bytes | str | tuple[bytes | str, bytes | str] = None,
        proxies: Mapping[str, str] | None = None,
    ) -> Response:
        recorded = self._recorded_request(request)
        if self.mode == REPLAY:
            return self._replay(request, recorded)

        response = super().send(request, stream, timeout, verify, cert, proxies)
        body, body_encoding = _response_body(response.content)
        recorded.respond(
            RecordedResponse(
                status_code=response.status_code,
                headers=dict(response.headers),
                body=body,
                body_encoding=body_encoding,
                status_text=response.reason or "",
            ),
            duration=response.elapsed.total_seconds(),
        )
        self.persister.record_request(recorded)
        return response

    def flush(self) -> None:
        """Write everything recorded so far to the persister's backend."""
        asyncio.run(self.persister.persist())

    def _recorded_request(self, request: PreparedRequest) -> RecordedRequest:
        method = request.method or MISSING
        url = request.url or MISSING
        body = _text(request.body)
        id = request_identifier(method, url, body)
        order = self._orders[id]
        self._orders[id] += 1
        recorded = RecordedRequest(
            method=method,
            url=url,
            recording_id=self.recording_id,
            recording_name=self.recording_name,
            id=id,
            order=order,
            headers=dict(request.headers),
            body=body,
        )
        for handler in self._before_persist:
            recorded.on(BEFORE_PERSIST, handler)
        return recorded

    def _replay(self, request: PreparedRequest, recorded: RecordedRequest) -> Response:
        entry = asyncio.run(self.persister.find_entry(recorded))
        if entry is None:
            raise ReplayMissError(recorded.method, recorded.url, recorded.recording_id)
        logger.debug("Replaying [%s] %s (order %d)", recorded.method, recorded.url, recorded.order)
        return self._build_response(request, entry["response"])

    def _build_response(self, request: PreparedRequest, har_response: dict[str, Any]) -> Response:
        response = Response()
        response.status_code = har_response["status"]
        response.reason = har_response.get("statusText", "")
        response.headers = CaseInsensitiveDict(
            {header["name"]: header["value"] for header in har_response.get("headers", [])}
        )
        content = har_response.get("content", {})
        text = content.get("text", "")
        if content.get("encoding") == "base64":
            response._content = base64.b64decode(text)
        else:
            response._content = text.encode("utf-8")
        response.encoding = get_encoding_from_headers(response.headers)
        response.url = request.url or ""
        response.request = request
        response.connection = self
        return response
