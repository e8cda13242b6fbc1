"""HAR 1.2 containers for recorded requests.

Entries carry two extension fields, ``_id`` and ``_order``, which identify
the logical request and its position among repeated calls of that request.
"""

import base64
import copy
from typing import Any
from urllib.parse import parse_qsl, urlparse

from requests_replay.core.errors import PreconditionError
from requests_replay.core.recording import RecordedRequest, RecordedResponse

HAR_VERSION = "1.2"
HTTP_VERSION = "HTTP/1.1"


def _headers(headers: dict[str, str]) -> list[dict[str, str]]:
    return [{"name": name, "value": value} for name, value in headers.items()]


def _header_value(headers: dict[str, str], name: str) -> str | None:
    for key, value in headers.items():
        if key.lower() == name:
            return value
    return None


def _content(response: RecordedResponse) -> dict[str, Any]:
    if response.body_encoding == "base64":
        size = len(base64.b64decode(response.body))
    else:
        size = len(response.body.encode("utf-8"))
    content: dict[str, Any] = {
        "size": size,
        "mimeType": _header_value(response.headers, "content-type") or "",
        "text": response.body,
    }
    if response.body_encoding:
        content["encoding"] = response.body_encoding
    return content


def build_entry(request: RecordedRequest) -> dict[str, Any]:
    response = request.response
    if response is None:
        raise PreconditionError("Cannot build an entry for a request with no response.")
    parsed = urlparse(request.url)
    body = request.body or ""
    har_request: dict[str, Any] = {
        "method": request.method,
        "url": request.url,
        "httpVersion": HTTP_VERSION,
        "headers": _headers(request.headers),
        "queryString": [
            {"name": name, "value": value}
            for name, value in parse_qsl(parsed.query, keep_blank_values=True)
        ],
        "cookies": [],
        "headersSize": -1,
        "bodySize": len(body.encode("utf-8")),
    }
    if request.body is not None:
        har_request["postData"] = {
            "mimeType": _header_value(request.headers, "content-type") or "",
            "text": request.body,
        }
    time_ms = round(request.duration * 1000, 3)
    return {
        "_id": request.id,
        "_order": request.order,
        "startedDateTime": request.started_at.isoformat(),
        "time": time_ms,
        "request": har_request,
        "response": {
            "status": response.status_code,
            "statusText": response.status_text,
            "httpVersion": HTTP_VERSION,
            "headers": _headers(response.headers),
            "cookies": [],
            "content": _content(response),
            "redirectURL": _header_value(response.headers, "location") or "",
            "headersSize": -1,
            "bodySize": -1,
        },
        "cache": {},
        "timings": {"send": 0, "wait": time_ms, "receive": 0},
    }


def find_entry(
    recording: dict[str, Any], id: str, order: int
) -> dict[str, Any] | None:
    for entry in recording.get("log", {}).get("entries", []):
        if entry.get("_id") == id and entry.get("_order") == order:
            return entry
    return None


class Har:
    def __init__(self, data: dict[str, Any]) -> None:
        log = copy.deepcopy(data.get("log", {}))
        log.setdefault("version", HAR_VERSION)
        log.setdefault("pages", [])
        log.setdefault("entries", [])
        self.log = log

    @property
    def entries(self) -> list[dict[str, Any]]:
        return self.log["entries"]

    def add_entries(self, entries: list[dict[str, Any]]) -> None:
        """Merge ``entries`` into the log.

        A new entry replaces a stored one with the same ``(_id, _order)``.
        The merged list is ordered by start time.
        """
        replaced = {(entry["_id"], entry["_order"]) for entry in entries}
        kept = [
            entry
            for entry in self.entries
            if (entry.get("_id"), entry.get("_order")) not in replaced
        ]
        merged = kept + list(entries)
        merged.sort(key=lambda entry: entry.get("startedDateTime", ""))
        self.log["entries"] = merged

    def to_dict(self) -> dict[str, Any]:
        return {"log": self.log}
