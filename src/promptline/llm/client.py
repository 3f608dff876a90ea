"""Thin chat-completions client used as the agent's model."""

from __future__ import annotations

import json
import logging
from collections.abc import Sequence
from urllib import request
from urllib.error import HTTPError, URLError

from promptline.agent.models import Message, ModelResponse, TokenUsage
from promptline.errors import ModelError

LOGGER = logging.getLogger(__name__)


class LLMClient:
    """Small HTTP client for OpenAI-compatible chat completion endpoints."""

    def __init__(
        self,
        *,
        api_key: str | None,
        model: str,
        api_url: str = "https://api.openai.com/v1/chat/completions",
        timeout: float = 60.0,
        temperature: float | None = None,
    ) -> None:
        self.api_key = api_key
        self.model = model
        self.api_url = api_url
        self.timeout = timeout
        self.temperature = temperature

    def chat(self, messages: Sequence[Message]) -> ModelResponse:
        payload = self._build_payload(messages)
        body = json.dumps(payload).encode("utf-8")
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"

        LOGGER.debug(
            "llm_request_prepared",
            extra={
                "api_url": self.api_url,
                "model": self.model,
                "payload_bytes": len(body),
                "messages": len(messages),
            },
        )

        req = request.Request(self.api_url, data=body, headers=headers, method="POST")
        try:
            with request.urlopen(req, timeout=self.timeout) as resp:  # noqa: S310
                raw_response = json.loads(resp.read().decode("utf-8"))
        except HTTPError as exc:
            body_excerpt = self._read_error_body_excerpt(exc)
            LOGGER.error(
                "llm_request_http_error",
                extra={
                    "api_url": self.api_url,
                    "model": self.model,
                    "http_status": exc.code,
                    "reason": exc.reason,
                    "response_excerpt": body_excerpt,
                },
            )
            details = f"Model request failed with HTTP {exc.code}: {exc.reason}"
            if body_excerpt:
                details = f"{details}. Response body: {body_excerpt}"
            raise ModelError(details) from exc
        except URLError as exc:
            LOGGER.error(
                "llm_request_transport_error",
                extra={"api_url": self.api_url, "model": self.model, "reason": str(exc.reason)},
            )
            raise ModelError(f"Model request transport error: {exc.reason}") from exc
        except TimeoutError as exc:
            LOGGER.error(
                "llm_request_timeout",
                extra={
                    "api_url": self.api_url,
                    "model": self.model,
                    "timeout_seconds": self.timeout,
                },
            )
            raise ModelError(f"Model request timed out after {self.timeout:.1f}s") from exc
        except (UnicodeDecodeError, json.JSONDecodeError) as exc:
            LOGGER.error(
                "llm_response_parse_error",
                extra={"api_url": self.api_url, "model": self.model, "error": str(exc)},
            )
            raise ModelError(f"Model response parsing error: {exc}") from exc

        return self._to_model_response(raw_response)

    def _build_payload(self, messages: Sequence[Message]) -> dict[str, object]:
        payload: dict[str, object] = {
            "model": self.model,
            "messages": [message.to_dict() for message in messages],
        }
        if self.temperature is not None:
            payload["temperature"] = self.temperature
        return payload

    @staticmethod
    def _to_model_response(raw_response: object) -> ModelResponse:
        if not isinstance(raw_response, dict):
            raise ModelError("Model response parsing error: expected top-level object")

        choices = raw_response.get("choices")
        if not isinstance(choices, list) or not choices or not isinstance(choices[0], dict):
            raise ModelError("Model response contained no choices")
        choice = choices[0]
        message = choice.get("message")
        content = message.get("content") if isinstance(message, dict) else None
        if not isinstance(content, str):
            content = ""

        finish_reason = choice.get("finish_reason")
        return ModelResponse(
            content=content,
            usage=LLMClient._to_usage(raw_response.get("usage")),
            finish_reason=finish_reason if isinstance(finish_reason, str) else None,
        )

    @staticmethod
    def _to_usage(raw_usage: object) -> TokenUsage:
        if not isinstance(raw_usage, dict):
            return TokenUsage()

        def _count(key: str) -> int:
            value = raw_usage.get(key)
            return value if isinstance(value, int) and not isinstance(value, bool) else 0

        return TokenUsage(
            prompt_tokens=_count("prompt_tokens"),
            completion_tokens=_count("completion_tokens"),
            total_tokens=_count("total_tokens"),
        )

    @staticmethod
    def _read_error_body_excerpt(exc: HTTPError, *, max_chars: int = 500) -> str | None:
        if exc.fp is None:
            return None
        try:
            raw = exc.read()
        except OSError:
            return None

        if not raw:
            return None

        excerpt = raw.decode("utf-8", errors="replace").replace("\n", " ").strip()
        if len(excerpt) > max_chars:
            return f"{excerpt[:max_chars]}..."
        return excerpt
