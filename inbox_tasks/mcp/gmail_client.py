"""Gmail MCP client — wraps workspace-mcp Gmail tools behind a typed async API."""

import asyncio
import json
import logging
import os
import re
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

from mcp import ClientSession
from mcp.client.stdio import StdioServerParameters, stdio_client
from mcp.types import TextContent

from inbox_tasks.mcp.types import MessageHeader, MessageSummary, RawMessage

logger = logging.getLogger(__name__)

# Characters of body text kept as the snippet when the server sends no snippet.
SNIPPET_CHAR_LIMIT = 200

# Lines of a text response that describe the message rather than mail headers.
_NON_HEADER_FIELDS = {"message id", "thread id", "web link"}

# Legacy JSON keys → canonical header names.
_LEGACY_HEADER_KEYS = {"subject": "Subject", "from": "From", "date": "Date", "to": "To"}

# JSON-decoded value from an MCP tool response
_JsonValue = dict[str, Any] | list[Any] | str | None


class MCPError(Exception):
    """Raised when a workspace-mcp tool call returns an error."""


class GmailClient:
    """Thin async wrapper around the workspace-mcp Gmail tools.

    Holds a single MCP session; detail fetches for one batch are issued
    concurrently over it.  Use the `gmail_client()` context manager to
    construct and tear down correctly.
    """

    def __init__(self, session: ClientSession, user_email: str) -> None:
        self._session = session
        self._user_email = user_email

    # ── Public API ─────────────────────────────────────────────────────────────

    async def list_inbox(
        self, query: str = "in:inbox", max_results: int = 10
    ) -> list[MessageSummary]:
        """Return summaries (id, thread id) of the newest matching messages."""
        raw = await self._call(
            "search_gmail_messages",
            {"query": query, "page_size": max_results,
             "user_google_email": self._user_email},
        )
        return self._parse_summaries(raw)[:max_results]

    async def get_message(self, message_id: str) -> RawMessage:
        """Return the headers and snippet of a single message.

        Raises:
            MCPError: if the tool fails or the response cannot be parsed.
        """
        raw = await self._call(
            "get_gmail_message_content",
            {"message_id": message_id, "user_google_email": self._user_email},
        )
        if isinstance(raw, list):
            raw = next((m for m in raw if isinstance(m, dict)), None)
        if isinstance(raw, dict):
            return self._parse_message_dict(raw, message_id)
        if isinstance(raw, str):
            message = self._parse_message_text(raw, message_id)
            if message is not None:
                return message
        raise MCPError(f"Could not parse message {message_id} from response")

    # ── Internal helpers ───────────────────────────────────────────────────────

    async def _call(self, tool_name: str, arguments: dict[str, Any]) -> _JsonValue:
        """Call a workspace-mcp tool and return the parsed JSON result.

        Raises MCPError if the tool returns an error.  Plain-string responses
        are returned as-is.
        """
        logger.debug("MCP → %s %s", tool_name, arguments)
        result = await self._session.call_tool(tool_name, arguments)

        if result.isError:
            raise MCPError(f"Tool {tool_name!r} returned error: {result.content}")

        if not result.content:
            return None

        # Extract text from the first TextContent block
        text: str | None = None
        for item in result.content:
            if isinstance(item, TextContent):
                text = item.text
                break

        if text is None:
            return None

        try:
            parsed: _JsonValue = json.loads(text)
            return parsed
        except json.JSONDecodeError:
            return text

    @staticmethod
    def _parse_summaries(raw: _JsonValue) -> list[MessageSummary]:
        """Extract message summaries from a search response (text or JSON list).

        workspace-mcp returns text like::

            Message ID: abc123
            Thread ID: t-abc123
        """
        if isinstance(raw, list):
            return [
                MessageSummary(
                    id=str(m.get("message_id") or m.get("id")),
                    thread_id=str(m.get("thread_id") or m.get("threadId") or ""),
                )
                for m in raw
                if isinstance(m, dict) and (m.get("message_id") or m.get("id"))
            ]
        if isinstance(raw, dict):
            return GmailClient._parse_summaries(raw.get("messages") or [])
        if isinstance(raw, str):
            summaries: list[MessageSummary] = []
            blocks = re.split(r"(?=^\s*Message ID:)", raw, flags=re.MULTILINE)
            for block in blocks:
                msg = re.search(r"Message ID:\s*(\S+)", block)
                if not msg:
                    continue
                thread = re.search(r"Thread ID:\s*(\S+)", block)
                summaries.append(
                    MessageSummary(id=msg.group(1), thread_id=thread.group(1) if thread else "")
                )
            return summaries
        return []

    @staticmethod
    def _parse_message_text(raw: str, message_id: str) -> RawMessage | None:
        """Parse a single message from a text content response.

        workspace-mcp returns a block like::

            Message ID: abc123
            Subject: Hello
            From: Alice <alice@example.com>
            Date: Mon, 1 Jan 2026 12:00:00 +0000
            Web Link: https://mail.google.com/...

            Body text follows after a blank line...
        """
        text = raw.strip()
        if not text:
            return None
        # Headers end at the first blank line; the body follows.
        parts = re.split(r"\n\s*\n", text, maxsplit=1)
        head = parts[0]
        body = parts[1] if len(parts) > 1 else ""

        headers: list[MessageHeader] = []
        parsed_id = message_id
        for line in head.splitlines():
            name, sep, value = line.partition(":")
            if not sep or not name.strip():
                continue
            key = name.strip()
            if key.lower() == "message id":
                parsed_id = value.strip() or message_id
            if key.lower() in _NON_HEADER_FIELDS:
                continue
            headers.append(MessageHeader(name=key, value=value.strip()))

        if not headers:
            return None
        snippet = " ".join(body.split())[:SNIPPET_CHAR_LIMIT] or None
        return RawMessage(id=parsed_id, headers=headers, snippet=snippet)

    @staticmethod
    def _parse_message_dict(data: dict[str, Any], message_id: str) -> RawMessage:
        """Map a message dict to RawMessage.

        Accepts the Gmail API shape (``payload.headers``) as well as the
        flat legacy shape (``subject``/``from``/``date`` keys).
        """
        if "payload" in data:
            message = RawMessage.from_api(data)
            if not message.id:
                message = RawMessage(id=message_id, headers=message.headers, snippet=message.snippet)
            return message

        headers = [
            MessageHeader(name=header, value=str(data[key]))
            for key, header in _LEGACY_HEADER_KEYS.items()
            if data.get(key)
        ]
        snippet = data.get("snippet") or " ".join(str(data.get("body") or "").split())[
            :SNIPPET_CHAR_LIMIT
        ]
        return RawMessage(
            id=str(data.get("message_id") or data.get("id") or message_id),
            headers=headers,
            snippet=str(snippet) if snippet else None,
        )


_MCP_CONNECT_RETRIES = 5
_MCP_RETRY_DELAY_SECONDS = 3


@asynccontextmanager
async def gmail_client(
    *,
    user_email: str | None = None,
    server_command: str | None = None,
) -> AsyncIterator[GmailClient]:
    """Async context manager that yields a connected, ready-to-use GmailClient.

    Spawns `workspace-mcp` as a subprocess via the MCP stdio transport,
    initialises the session, and tears everything down cleanly on exit.

    Retries up to ``_MCP_CONNECT_RETRIES`` times on startup failure because
    ``workspace-mcp`` binds a port for its internal OAuth server and will
    crash if a previous instance hasn't fully released it yet.

    Args:
        user_email: Google account email. Falls back to USER_GOOGLE_EMAIL env var.
        server_command: Command used to launch the MCP server.
                        Defaults to GMAIL_MCP_SERVER_PATH env var (or "uvx").

    Example::

        async with gmail_client() as client:
            summaries = await client.list_inbox()
    """
    email = user_email or os.environ.get("USER_GOOGLE_EMAIL", "")
    if not email:
        raise ValueError(
            "user_email must be provided or USER_GOOGLE_EMAIL env var must be set"
        )

    cmd = server_command or os.environ.get("GMAIL_MCP_SERVER_PATH", "uvx")
    # Detect uvx by name or full path (e.g. C:\...\uvx.exe) and pass workspace-mcp args
    _cmd_basename = os.path.basename(cmd).lower().replace(".exe", "")
    args = ["workspace-mcp", "--tools", "gmail"] if _cmd_basename == "uvx" else []

    mcp_port = os.environ.get("WORKSPACE_MCP_PORT", "18741")

    server_params = StdioServerParameters(
        command=cmd,
        args=args,
        env={
            **os.environ,
            "GOOGLE_OAUTH_CLIENT_ID": os.environ.get("GOOGLE_OAUTH_CLIENT_ID", ""),
            "GOOGLE_OAUTH_CLIENT_SECRET": os.environ.get("GOOGLE_OAUTH_CLIENT_SECRET", ""),
            "USER_GOOGLE_EMAIL": email,
            "MCP_SINGLE_USER_MODE": "1",
            "WORKSPACE_MCP_PORT": mcp_port,
            # Japanese subjects and senders must survive the subprocess pipes.
            "PYTHONUTF8": "1",
        },
    )

    last_err: BaseException | None = None
    for attempt in range(1, _MCP_CONNECT_RETRIES + 1):
        connected = False
        try:
            async with stdio_client(server_params) as (read, write):
                async with ClientSession(read, write) as session:
                    await session.initialize()
                    client = GmailClient(session, email)
                    logger.info("Gmail MCP client connected (%s)", email)
                    connected = True
                    yield client
                    return  # clean exit from the context manager
        except Exception as exc:
            # Only startup failures are retried; errors raised by the caller
            # while connected propagate unchanged.
            if connected:
                raise
            last_err = exc
            if attempt < _MCP_CONNECT_RETRIES:
                logger.warning(
                    "MCP server connection failed (attempt %d/%d) — retrying in %ds",
                    attempt,
                    _MCP_CONNECT_RETRIES,
                    _MCP_RETRY_DELAY_SECONDS,
                )
                await asyncio.sleep(_MCP_RETRY_DELAY_SECONDS)
            else:
                raise

    raise MCPError(f"Failed to connect after {_MCP_CONNECT_RETRIES} attempts") from last_err
