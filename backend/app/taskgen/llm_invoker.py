"""Generation invoker: one schema-constrained call to the OpenAI Responses API.

The request runs on a worker thread and is read as a stream against a total
deadline. When the deadline passes the in-flight response is closed and
UpstreamTimeoutError is raised, even if the connect or first read has stalled.
There is no retry.
"""
from __future__ import annotations

import concurrent.futures
import json as _json
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Dict, Protocol, runtime_checkable

import httpx

from backend.app.constants import (
    MODE_TEMPERATURE,
    REASONING_MODEL_KEYWORDS,
    REASONING_MODEL_PREFIXES,
    REASONING_SAMPLING_KEYS,
)
from backend.app.core.error_handling import ConfigurationError, UpstreamError, UpstreamTimeoutError
from backend.app.models.taskgen import PromptMessage, ResponseFormat
from backend.app.taskgen.diagnostics import DiagnosticsSink
from backend.app.taskgen.templates import response_format_config
from shared.runtime_settings import TaskgenSettings

logger = logging.getLogger(__name__)


@dataclass
class LlmResponse:
    text: str
    model: str
    duration_ms: int
    filtered_params: list[str] = field(default_factory=list)


@runtime_checkable
class ModelInvoker(Protocol):
    """Anything that turns rendered messages into raw model text."""

    def invoke(
        self,
        messages: list[PromptMessage],
        mode: str,
        response_format: ResponseFormat | None,
    ) -> LlmResponse: ...


def is_reasoning_model(model: str | None) -> bool:
    normalized = (model or "").strip().lower()
    if not normalized:
        return False
    if any(normalized.startswith(prefix) for prefix in REASONING_MODEL_PREFIXES):
        return True
    return any(keyword in normalized for keyword in REASONING_MODEL_KEYWORDS)


def sanitize_reasoning_parameters(body: Dict[str, Any], model: str | None) -> tuple[Dict[str, Any], list[str]]:
    """Drop sampling parameters reasoning models reject. Returns (body, removed keys)."""
    if not is_reasoning_model(model):
        return body, []
    cleaned = dict(body)
    removed = [key for key in REASONING_SAMPLING_KEYS if key in cleaned]
    for key in removed:
        del cleaned[key]
    return cleaned, removed


def extract_output_text(body: Any) -> str:
    """``output_text`` if present, else the concatenated output_text parts of ``output``."""
    if not isinstance(body, dict):
        return ""
    if isinstance(body.get("output_text"), str):
        return body["output_text"]
    chunks: list[str] = []
    for item in body.get("output") or []:
        if not isinstance(item, dict):
            continue
        for part in item.get("content") or []:
            if isinstance(part, dict) and part.get("type") == "output_text" and isinstance(part.get("text"), str):
                chunks.append(part["text"])
    return "".join(chunks)


class ResponsesClient:
    """Client for the OpenAI Responses endpoint (``POST {base_url}/responses``)."""

    def __init__(
        self,
        settings: TaskgenSettings,
        diagnostics: DiagnosticsSink | None = None,
        transport: httpx.BaseTransport | None = None,
    ):
        self.settings = settings
        self.model = settings.model
        self.diagnostics = diagnostics or DiagnosticsSink(settings.exports_dirs)
        self.client = httpx.Client(timeout=settings.timeout_seconds, transport=transport)

    def close(self) -> None:
        self.client.close()

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.close()

    def build_request(
        self,
        messages: list[PromptMessage],
        mode: str,
        response_format: ResponseFormat | None,
    ) -> tuple[Dict[str, Any], list[str]]:
        body: Dict[str, Any] = {
            "model": self.model,
            "input": [{"role": m.role, "content": m.content} for m in messages],
        }
        if mode in MODE_TEMPERATURE:
            body["temperature"] = MODE_TEMPERATURE[mode]
        fmt = response_format_config(response_format)
        if fmt is not None:
            body["text"] = {"format": fmt}
        return sanitize_reasoning_parameters(body, self.model)

    def invoke(
        self,
        messages: list[PromptMessage],
        mode: str,
        response_format: ResponseFormat | None,
    ) -> LlmResponse:
        if not self.settings.api_key:
            raise ConfigurationError("OPENAI_API_KEY is not configured")

        body, removed = self.build_request(messages, mode, response_format)
        param_filter = "on" if removed or is_reasoning_model(self.model) else "off"
        fmt = body.get("text", {}).get("format") if isinstance(body.get("text"), dict) else None
        self.diagnostics.info(
            "OPENAI_REQUEST",
            {
                "model": self.model,
                "messageCount": len(messages),
                "response_format": fmt.get("type") if fmt else None,
                "paramFilter": param_filter,
                "filteredParams": removed,
            },
        )

        started = time.monotonic()
        try:
            raw = self._post_within_deadline(body)
        except UpstreamError as exc:
            exc.duration_ms = int((time.monotonic() - started) * 1000)
            self.diagnostics.error(
                "OpenAI invocation failed",
                {"model": self.model, "mode": mode, "message": str(exc), "llm_duration_ms": exc.duration_ms},
            )
            raise

        duration_ms = int((time.monotonic() - started) * 1000)
        try:
            data = _json.loads(raw)
        except _json.JSONDecodeError as exc:
            raise UpstreamError("OpenAI returned non-JSON response", duration_ms=duration_ms) from exc

        self.diagnostics.info(
            "OpenAI invocation succeeded",
            {"model": self.model, "mode": mode, "llm_duration_ms": duration_ms, "paramFilter": param_filter},
        )
        return LlmResponse(
            text=extract_output_text(data),
            model=str((data.get("model") if isinstance(data, dict) else None) or self.model),
            duration_ms=duration_ms,
            filtered_params=removed,
        )

    def _post_within_deadline(self, body: Dict[str, Any]) -> bytes:
        """Run ``_post`` on a worker so a stalled connect or read cannot outlive ``timeout_ms``."""
        budget = self.settings.timeout_seconds
        in_flight: Dict[str, httpx.Response] = {}
        executor = concurrent.futures.ThreadPoolExecutor(max_workers=1)
        future = executor.submit(self._post, body, time.monotonic() + budget, in_flight)
        try:
            return future.result(timeout=budget)
        except concurrent.futures.TimeoutError as exc:
            response = in_flight.get("response")
            if response is not None:
                response.close()
            raise UpstreamTimeoutError(
                f"OpenAI request exceeded {self.settings.timeout_ms} ms and was cancelled"
            ) from exc
        finally:
            executor.shutdown(wait=False)

    def _post(
        self,
        body: Dict[str, Any],
        deadline: float,
        in_flight: Dict[str, httpx.Response] | None = None,
    ) -> bytes:
        headers: Dict[str, str] = {
            "content-type": "application/json",
            "authorization": f"Bearer {self.settings.api_key}",
        }
        url = f"{self.settings.base_url}/responses"
        try:
            with self.client.stream("POST", url, json=body, headers=headers) as response:
                if in_flight is not None:
                    in_flight["response"] = response
                if response.status_code >= 400:
                    response.read()
                    raise UpstreamError(
                        f"OpenAI HTTP error {response.status_code}: {response.text[:500]}",
                        status_code=response.status_code,
                    )
                chunks: list[bytes] = []
                for chunk in response.iter_bytes():
                    if time.monotonic() > deadline:
                        # leaving the context closes the stream and aborts the request
                        raise UpstreamTimeoutError(
                            f"OpenAI request exceeded {self.settings.timeout_ms} ms and was cancelled"
                        )
                    chunks.append(chunk)
                return b"".join(chunks)
        except httpx.TimeoutException as exc:
            raise UpstreamTimeoutError(f"OpenAI request timed out after {self.settings.timeout_ms} ms") from exc
        except httpx.ConnectError as exc:
            raise UpstreamError(f"Cannot connect to OpenAI API at {self.settings.base_url}") from exc
        except httpx.HTTPError as exc:
            raise UpstreamError(f"OpenAI network error: {exc}") from exc
