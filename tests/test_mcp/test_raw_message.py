"""Tests for RawMessage.from_api and Gmail body decoding."""

import base64

from inbox_tasks.mcp.types import (
    BODY_PREVIEW_CHARS,
    MessageHeader,
    RawMessage,
    body_preview,
    extract_body,
)


def encode(text: str) -> str:
    """base64url without padding, the way the Gmail API sends body data."""
    return base64.urlsafe_b64encode(text.encode("utf-8")).decode("ascii").rstrip("=")


class TestFromApi:
    def test_reads_payload_headers(self) -> None:
        message = RawMessage.from_api({
            "id": "abc",
            "snippet": "Hello",
            "payload": {
                "headers": [
                    {"name": "Subject", "value": "Hi"},
                    {"name": "From", "value": "Alice <alice@example.com>"},
                ]
            },
        })
        assert message.id == "abc"
        assert message.snippet == "Hello"
        assert message.headers == [
            MessageHeader("Subject", "Hi"),
            MessageHeader("From", "Alice <alice@example.com>"),
        ]

    def test_missing_payload(self) -> None:
        message = RawMessage.from_api({"id": "abc"})
        assert message.headers == []
        assert message.snippet is None

    def test_malformed_headers_are_skipped(self) -> None:
        message = RawMessage.from_api({"id": "abc", "payload": {"headers": ["oops", {"name": "Date"}]}})
        assert message.headers == [MessageHeader("Date", "")]

    def test_snippet_preferred_over_body(self) -> None:
        message = RawMessage.from_api({
            "id": "abc",
            "snippet": "至急ご確認ください",
            "payload": {"body": {"data": encode("本文")}},
        })
        assert message.snippet == "至急ご確認ください"

    def test_body_stands_in_for_missing_snippet(self) -> None:
        message = RawMessage.from_api({
            "id": "abc",
            "payload": {"body": {"data": encode("明日の会議について確認してください")}},
        })
        assert message.snippet == "明日の会議について確認してください"

    def test_body_from_text_part(self) -> None:
        message = RawMessage.from_api({
            "id": "abc",
            "snippet": "",
            "payload": {
                "body": {"size": 0},
                "parts": [
                    {"mimeType": "image/png", "body": {"data": encode("png")}},
                    {"mimeType": "text/plain", "body": {"data": encode("提出してください")}},
                ],
            },
        })
        assert message.snippet == "提出してください"

    def test_long_body_is_cut_with_ellipsis(self) -> None:
        body = "あ" * (BODY_PREVIEW_CHARS + 50)
        message = RawMessage.from_api({"id": "abc", "payload": {"body": {"data": encode(body)}}})
        assert message.snippet == "あ" * BODY_PREVIEW_CHARS + "..."


class TestExtractBody:
    def test_nested_multipart(self) -> None:
        payload = {
            "mimeType": "multipart/mixed",
            "parts": [
                {
                    "mimeType": "multipart/alternative",
                    "parts": [
                        {"mimeType": "text/html", "body": {"data": encode("<p>hello</p>")}},
                    ],
                },
            ],
        }
        assert extract_body(payload) == "<p>hello</p>"

    def test_invalid_data_yields_empty(self) -> None:
        # One leftover data character can never be valid base64.
        assert extract_body({"body": {"data": "a"}}) == ""

    def test_no_body(self) -> None:
        assert extract_body({}) == ""


class TestBodyPreview:
    def test_short_body_unchanged(self) -> None:
        assert body_preview("short") == "short"

    def test_exact_limit_has_no_ellipsis(self) -> None:
        body = "x" * BODY_PREVIEW_CHARS
        assert body_preview(body) == body
