"""Google Gemini completion provider."""

from __future__ import annotations

from typing import Any

import httpx

from ...errors import ProviderError
from ..tracing import record_span_error, set_span_output, start_span
from .base import Completion, CompletionProvider, decode_json_object


class GeminiProvider(CompletionProvider):
    """Gemini `generateContent` backed provider."""

    async def complete(
        self,
        prompt: str,
        model: str | None = None,
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> Completion:
        model = model or self.cfg.model
        payload: dict[str, Any] = {"contents": [{"role": "user", "parts": [{"text": prompt}]}]}
        generation: dict[str, Any] = {}
        if temperature is not None:
            generation["temperature"] = temperature
        if max_tokens is not None:
            generation["maxOutputTokens"] = max_tokens
        if generation:
            payload["generationConfig"] = generation

        with start_span(
            "gemini.complete",
            kind="llm",
            input_value=prompt,
            attributes={"llm.model": model, "llm.provider": "gemini"},
        ) as span:
            try:
                data = await self._post(model, payload)
            except (httpx.HTTPError, ProviderError) as exc:
                record_span_error(span, exc)
                self._log_llm_response("llm_completion", "provider_error", prompt, str(exc), model)
                raise
            content = _extract_text(data)
            if not content:
                exc = ProviderError("No response generated from Gemini API")
                record_span_error(span, exc)
                self._log_llm_response("llm_completion", "empty_response", prompt, "", model)
                raise exc
            set_span_output(span, content)
            self._log_llm_response("llm_completion", "ok", prompt, content, model)
            return Completion(text=content, usage=data.get("usageMetadata") or {}, model=model)

    async def _post(self, model: str, payload: dict[str, Any]) -> dict[str, Any]:
        url = f"{self.cfg.base_url.rstrip('/')}/v1beta/models/{model}:generateContent"
        params = {"key": self.api_key}
        async with httpx.AsyncClient(timeout=self.cfg.timeout_seconds, trust_env=self.cfg.trust_env) as client:
            resp = await client.post(url, params=params, json=payload)
            resp.raise_for_status()
            return decode_json_object(resp, "Gemini")


def _extract_text(data: dict[str, Any]) -> str:
    """Join the text parts of the first candidate, skipping thought parts.

    Falls back to all text parts when the model returned only thoughts.
    """
    try:
        parts = data["candidates"][0]["content"]["parts"]
    except (KeyError, IndexError, TypeError):
        return ""
    if not isinstance(parts, list):
        return ""
    texts = [p.get("text", "") for p in parts if isinstance(p, dict) and not p.get("thought")]
    joined = "".join(texts)
    if joined:
        return joined
    return "".join(p.get("text", "") for p in parts if isinstance(p, dict))
