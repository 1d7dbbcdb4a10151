"""Shared Gemini client helpers for the job hunter (text + vision)."""
from __future__ import annotations

import asyncio
import base64
import json
import os
from dataclasses import dataclass
from typing import Any, Dict, Optional

import requests
from tenacity import RetryError, Retrying, retry_if_exception_type, stop_after_attempt, wait_exponential

from utils.config import DEFAULT_GEMINI_BASE, DEFAULT_GEMINI_MODEL, ConfigurationError
from utils.logging import get_logger
from utils.mock_llm import get_mock_response, mock_enabled

logger = get_logger(__name__)

_RETRYABLE_STATUS = {429, 500, 502, 503, 504}
_AUTH_STATUS = {401, 403}


class LLMProviderError(RuntimeError):
    """Raised when the model provider cannot serve a request (outage, quota, bad request)."""


class LLMAuthError(LLMProviderError):
    """Raised when the provider rejects the configured credentials."""


class _TransientGeminiError(RuntimeError):
    """Internal marker for responses worth retrying."""


@dataclass
class GeminiConfig:
    model: str = DEFAULT_GEMINI_MODEL
    system_instruction: str | None = None
    temperature: float = 0.0
    max_output_tokens: int = 4096
    mock_bucket: str | None = None
    api_base: str = DEFAULT_GEMINI_BASE
    timeout_seconds: float = 60.0
    max_attempts: int = 3


def strip_code_fence(text: str) -> str:
    """Remove a leading/trailing markdown code fence from a model response."""
    cleaned = text.strip()
    if cleaned.startswith("```"):
        lines = cleaned.splitlines()
        if lines and lines[0].startswith("```"):
            lines = lines[1:]
        if lines and lines[-1].strip().startswith("```"):
            lines = lines[:-1]
        cleaned = "\n".join(lines).strip()
    return cleaned


class GeminiClient:
    """Minimal REST client for the Gemini Generative Language API.

    ``generate_text`` is blocking; ``complete`` runs it in a worker thread so
    the hunt event loop only suspends while the request is in flight.
    """

    def __init__(self, config: GeminiConfig | None = None, api_key: str | None = None) -> None:
        resolved_key = api_key or os.getenv("GEMINI_API_KEY") or os.getenv("GOOGLE_API_KEY")
        if not resolved_key and not mock_enabled():
            raise ConfigurationError("Set GEMINI_API_KEY or GOOGLE_API_KEY before running the job hunter.")
        self.api_key = resolved_key or ""
        self.config = config or GeminiConfig()

    async def complete(
        self,
        prompt: str,
        *,
        image: bytes | None = None,
        temperature: Optional[float] = None,
        bucket: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> str:
        return await asyncio.to_thread(
            self.generate_text,
            prompt,
            image=image,
            temperature=temperature,
            bucket=bucket,
            metadata=metadata,
        )

    def generate_text(
        self,
        prompt: str,
        *,
        image: bytes | None = None,
        temperature: Optional[float] = None,
        bucket: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> str:
        mock_value = get_mock_response(bucket or self.config.mock_bucket, metadata=metadata)
        if mock_value is not None:
            if isinstance(mock_value, (dict, list)):
                return json.dumps(mock_value)
            return str(mock_value)

        payload = self._build_payload(prompt, image=image, temperature=temperature)
        try:
            for attempt in Retrying(
                retry=retry_if_exception_type(_TransientGeminiError),
                wait=wait_exponential(multiplier=1.0, min=1.0, max=16.0),
                stop=stop_after_attempt(self.config.max_attempts),
            ):
                with attempt:
                    return self._post(payload)
        except RetryError as exc:
            last = exc.last_attempt.exception()
            raise LLMProviderError(
                f"Gemini request failed after {self.config.max_attempts} attempts: {last}"
            ) from last
        raise LLMProviderError("Unexpected retry termination")

    def generate_json(self, prompt: str, **kwargs: Any) -> Any:
        response_text = self.generate_text(prompt, **kwargs)
        cleaned = strip_code_fence(response_text)
        try:
            return json.loads(cleaned)
        except json.JSONDecodeError as exc:
            logger.error("Failed to parse JSON. Payload (%d chars): %s", len(cleaned), cleaned[:1000])
            raise ValueError(f"Gemini response was not valid JSON: {cleaned[:200]}") from exc

    def _build_payload(self, prompt: str, *, image: bytes | None, temperature: Optional[float]) -> Dict[str, Any]:
        parts: list[Dict[str, Any]] = []
        if image is not None:
            parts.append(
                {
                    "inline_data": {
                        "mime_type": "image/png",
                        "data": base64.b64encode(image).decode("ascii"),
                    }
                }
            )
        parts.append({"text": prompt})

        payload: Dict[str, Any] = {
            "contents": [{"role": "user", "parts": parts}],
            "generationConfig": {
                "temperature": temperature if temperature is not None else self.config.temperature,
                "maxOutputTokens": self.config.max_output_tokens,
            },
        }
        if self.config.system_instruction:
            payload["systemInstruction"] = {"parts": [{"text": self.config.system_instruction}]}
        return payload

    def _post(self, payload: Dict[str, Any]) -> str:
        url = f"{self.config.api_base}/models/{self.config.model}:generateContent"
        try:
            response = requests.post(
                url,
                params={"key": self.api_key},
                json=payload,
                timeout=self.config.timeout_seconds,
            )
        except (requests.Timeout, requests.ConnectionError) as exc:
            logger.warning("Gemini request did not complete: %s", exc)
            raise _TransientGeminiError(str(exc)) from exc

        if response.status_code in _AUTH_STATUS:
            raise LLMAuthError(f"Gemini rejected the API key (status {response.status_code}).")
        if response.status_code in _RETRYABLE_STATUS:
            logger.warning("Gemini API transient error %s: %s", response.status_code, response.text[:200])
            raise _TransientGeminiError(f"status {response.status_code}")
        if response.status_code >= 400:
            logger.error("Gemini API error %s: %s", response.status_code, response.text)
            raise LLMProviderError(
                f"Gemini API request failed with status {response.status_code}: {response.text[:200]}"
            )

        data = response.json()
        candidates = data.get("candidates", [])
        if not candidates:
            return ""
        parts = candidates[0].get("content", {}).get("parts", [])
        texts = [part.get("text", "") for part in parts if isinstance(part, dict)]
        return "\n".join(filter(None, texts)).strip()
