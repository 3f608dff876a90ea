"""HTTP fetch capability."""

from __future__ import annotations

import logging
from http.client import HTTPException
from typing import TYPE_CHECKING
from urllib import request
from urllib.error import HTTPError, URLError
from urllib.parse import urlparse

from promptline.tools.base import ToolContext, ToolDefinition, ToolResult, object_schema, string_arg

if TYPE_CHECKING:
    from promptline.config import AppConfig

LOGGER = logging.getLogger(__name__)
MAX_RESPONSE_BYTES = 100_000


class WebGetTool:
    name = "web_get"

    def definition(self) -> ToolDefinition:
        return ToolDefinition(
            name=self.name,
            description="Fetch a web page over HTTP(S). Args: url (string).",
            parameters=object_schema({"url": {"type": "string"}}, ["url"]),
        )

    def execute(self, args: object, ctx: ToolContext, config: AppConfig) -> ToolResult:
        url = string_arg(args, "url")
        if url is None:
            return ToolResult.failure("Missing required argument: url")
        if urlparse(url).scheme not in {"http", "https"}:
            return ToolResult.failure(f"Unsupported URL scheme: {url}")

        req = request.Request(url, headers={"User-Agent": "promptline"}, method="GET")
        try:
            with request.urlopen(req, timeout=config.request_timeout) as resp:  # noqa: S310
                raw = resp.read(MAX_RESPONSE_BYTES + 1)
                charset = resp.headers.get_content_charset() or "utf-8"
        except HTTPError as exc:
            LOGGER.warning("web_get_http_error", extra={"url": url, "http_status": exc.code})
            return ToolResult.failure(f"HTTP {exc.code}: {exc.reason}")
        except URLError as exc:
            return ToolResult.failure(f"Request failed: {exc.reason}")
        except TimeoutError:
            return ToolResult.failure(f"Request timed out after {config.request_timeout:.1f}s")
        except (OSError, HTTPException) as exc:
            LOGGER.warning("web_get_read_failed", extra={"url": url, "error": str(exc)})
            return ToolResult.failure(f"Request failed: {exc}")

        truncated = len(raw) > MAX_RESPONSE_BYTES
        try:
            text = raw[:MAX_RESPONSE_BYTES].decode(charset, errors="replace")
        except LookupError:
            text = raw[:MAX_RESPONSE_BYTES].decode("utf-8", errors="replace")
        if truncated:
            text = f"{text}\n... (response truncated at {MAX_RESPONSE_BYTES} bytes)"
        return ToolResult.ok(text)
