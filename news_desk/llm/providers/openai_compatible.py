"""OpenAI-compatible chat completion provider."""

from __future__ import annotations

from typing import Any

import httpx

from ...errors import ProviderError
from ..tracing import record_span_error, set_span_output, start_span
from .base import Completion, CompletionProvider, decode_json_object


class OpenAICompatibleProvider(CompletionProvider):
    """Provider for any `/chat/completions` endpoint speaking the OpenAI schema."""

    async def complete(
        self,
        prompt: str,
        model: str | None = None,
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> Completion:
        model = model or self.cfg.model
        payload: dict[str, Any] = {
            "model": model,
            "messages": [{"role": "user", "content": prompt}],
        }
        if temperature is not None:
            payload["temperature"] = temperature
        if max_tokens is not None:
            payload["max_tokens"] = max_tokens

        with start_span(
            "openai.complete",
            kind="llm",
            input_value=prompt,
            attributes={"llm.model": model, "llm.provider": "openai_compatible"},
        ) as span:
            try:
                data = await self._post(payload)
            except (httpx.HTTPError, ProviderError) as exc:
                record_span_error(span, exc)
                self._log_llm_response("llm_completion", "provider_error", prompt, str(exc), model)
                raise
            content = _extract_text(data)
            if not content:
                exc = ProviderError("No response generated from chat completion API")
                record_span_error(span, exc)
                self._log_llm_response("llm_completion", "empty_response", prompt, "", model)
                raise exc
            set_span_output(span, content)
            self._log_llm_response("llm_completion", "ok", prompt, content, model)
            return Completion(text=content, usage=data.get("usage") or {}, model=data.get("model") or model)

    async def _post(self, payload: dict[str, Any]) -> dict[str, Any]:
        url = f"{self.cfg.base_url.rstrip('/')}/chat/completions"
        headers = {"Authorization": f"Bearer {self.api_key}"}
        async with httpx.AsyncClient(timeout=self.cfg.timeout_seconds, trust_env=self.cfg.trust_env) as client:
            resp = await client.post(url, headers=headers, json=payload)
            resp.raise_for_status()
            return decode_json_object(resp, "Chat completions endpoint")


def _extract_text(data: dict[str, Any]) -> str:
    try:
        content = data["choices"][0]["message"]["content"]
    except (KeyError, IndexError, TypeError):
        return ""
    return content if isinstance(content, str) else ""
