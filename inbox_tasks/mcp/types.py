"""Raw message records supplied by the mail provider, before normalisation."""

from __future__ import annotations

import base64
import binascii
from dataclasses import dataclass, field
from typing import Any

# Characters of decoded body kept when it stands in for a missing snippet.
BODY_PREVIEW_CHARS = 200


@dataclass(frozen=True)
class MessageHeader:
    """A single ``name: value`` header line as returned by Gmail."""

    name: str
    value: str


@dataclass(frozen=True)
class MessageSummary:
    """An entry of the inbox listing — only the id is guaranteed."""

    id: str
    thread_id: str = ""


@dataclass(frozen=True)
class RawMessage:
    """A message detail as returned by the provider.

    Only the headers and the snippet are consumed downstream. The snippet may
    be a preview of the decoded body when the provider sent none.
    """

    id: str
    headers: list[MessageHeader] = field(default_factory=list)
    snippet: str | None = None

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> RawMessage:
        """Build a RawMessage from a Gmail-API-shaped ``users.messages.get`` dict.

        When the message has no snippet, a preview of the decoded body stands
        in for it.

        Example::

            RawMessage.from_api({
                "id": "abc",
                "snippet": "Hello",
                "payload": {"headers": [{"name": "Subject", "value": "Hi"}]},
            })
        """
        payload = data.get("payload") or {}
        headers = [
            MessageHeader(name=str(h.get("name", "")), value=str(h.get("value", "")))
            for h in payload.get("headers") or []
            if isinstance(h, dict)
        ]
        snippet = data.get("snippet")
        if snippet:
            snippet = str(snippet)
        else:
            snippet = body_preview(extract_body(payload)) or None
        return cls(
            id=str(data.get("id", "")),
            headers=headers,
            snippet=snippet,
        )


# ── Body decoding ──────────────────────────────────────────────────────────────


def _decode(data: str) -> str:
    """Decode a base64url body, tolerating missing padding. Returns "" on bad data."""
    try:
        raw = base64.urlsafe_b64decode(data + "=" * (-len(data) % 4))
    except (binascii.Error, ValueError):
        return ""
    return raw.decode("utf-8", errors="replace")


def extract_body(payload: dict[str, Any]) -> str:
    """Return the message body from a Gmail payload.

    The top-level ``body.data`` wins; otherwise the first ``text/plain`` or
    ``text/html`` part found depth-first is used.
    """
    data = (payload.get("body") or {}).get("data")
    if data:
        return _decode(str(data))
    for part in payload.get("parts") or []:
        if not isinstance(part, dict):
            continue
        part_data = (part.get("body") or {}).get("data")
        if part.get("mimeType") in ("text/plain", "text/html") and part_data:
            return _decode(str(part_data))
        if part.get("parts"):
            nested = extract_body(part)
            if nested:
                return nested
    return ""


def body_preview(body: str) -> str:
    """First BODY_PREVIEW_CHARS characters of body, with ``...`` when cut."""
    if len(body) > BODY_PREVIEW_CHARS:
        return body[:BODY_PREVIEW_CHARS] + "..."
    return body
