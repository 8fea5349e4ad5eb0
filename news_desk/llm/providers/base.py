"""Abstract interface for text-completion providers."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
import logging
from typing import Any

import httpx

from ...config import LoggingConfig, ProviderConfig
from ...errors import ProviderError
from ...utils.logging import log_event, redact_text, truncate_text


@dataclass
class Completion:
    """Result of one completion call.

    Attributes:
        text: Generated text
        usage: Provider-reported token usage
        model: Model that produced the text
    """

    text: str
    usage: dict[str, Any] = field(default_factory=dict)
    model: str = ""


class CompletionProvider(ABC):
    """Provider interface for single-prompt text completion."""

    def __init__(
        self,
        cfg: ProviderConfig,
        api_key: str,
        log_cfg: LoggingConfig | None = None,
        llm_logger: logging.Logger | None = None,
    ):
        self.cfg = cfg
        self.api_key = api_key
        self.log_cfg = log_cfg or LoggingConfig()
        self.llm_logger = llm_logger

    @abstractmethod
    async def complete(
        self,
        prompt: str,
        model: str | None = None,
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> Completion:
        """Return the completion for prompt.

        Raises:
            httpx.HTTPError: Transport or HTTP status failure
            ProviderError: The provider answered without usable text or with a malformed body
        """
        raise NotImplementedError

    def _log_llm_response(self, event: str, status: str, prompt: str, content: str, model: str) -> None:
        if self.llm_logger is None:
            return
        redaction = self.log_cfg.llm_log_redaction
        payload = {
            "event": event,
            "status": status,
            "model": model,
            "raw_response": truncate_text(redact_text(content, redaction)),
        }
        if self.log_cfg.llm_log_detail == "prompt_response":
            payload["raw_prompt"] = truncate_text(redact_text(prompt, redaction))
        log_event(self.llm_logger, "LLM response", **payload)


def decode_json_object(resp: httpx.Response, provider: str) -> dict[str, Any]:
    """Decode a response body that must be a JSON object.

    Raises:
        ProviderError: The body is not JSON (a gateway error page, say) or not an object
    """
    try:
        data = resp.json()
    except ValueError as exc:
        raise ProviderError(f"{provider} returned a non-JSON body: {truncate_text(resp.text, 200)}") from exc
    if not isinstance(data, dict):
        raise ProviderError(f"{provider} returned a JSON {type(data).__name__} instead of an object")
    return data
