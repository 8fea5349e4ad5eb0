"""
Chunked LLM orchestration.

Large item sets are split into consecutive fixed-size chunks and sent to the
completion provider one chunk at a time, with a pause between chunks to stay
under provider rate limits. Chunks are never dispatched concurrently.

A failing chunk never fails the run:
- Transport or provider errors skip the chunk (its items get no results)
- Unparseable responses contribute zero results

Only MissingApiKeyError propagates, since no chunk can succeed without a key.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
import json
import logging
from typing import Any, Callable, Sequence, TypeVar

import httpx

from ..errors import ProviderError
from ..llm.providers.base import CompletionProvider
from ..utils.logging import log_event

logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")

PromptBuilder = Callable[[Sequence[T]], str]
ResponseParser = Callable[[str, Sequence[T], int], list[R]]
ProgressCallback = Callable[[int, int, int], None]


@dataclass
class BatchStats:
    """Counters collected during one orchestrated run.

    Attributes:
        chunks: Number of chunks the items were split into
        calls: Completion calls issued
        failed_chunks: Chunk indexes skipped after an invocation error
        parse_failures: Chunk indexes whose response could not be parsed
        results: Total results accumulated
    """

    chunks: int = 0
    calls: int = 0
    failed_chunks: list[int] = field(default_factory=list)
    parse_failures: list[int] = field(default_factory=list)
    results: int = 0


def chunked(items: Sequence[T], size: int) -> list[Sequence[T]]:
    """Split items into consecutive slices of at most size elements."""
    if size < 1:
        raise ValueError("chunk size must be positive")
    return [items[start : start + size] for start in range(0, len(items), size)]


async def analyze_in_chunks(
    items: Sequence[T],
    chunk_size: int,
    prompt_builder: PromptBuilder,
    parse_response: ResponseParser,
    provider: CompletionProvider,
    delay_seconds: float = 1.0,
    completion_options: dict[str, Any] | None = None,
    on_progress: ProgressCallback | None = None,
    stats: BatchStats | None = None,
) -> list[R]:
    """Run one completion per chunk and accumulate parsed results.

    Args:
        items: Items to analyze
        chunk_size: Items per prompt
        prompt_builder: Builds the prompt text for one chunk
        parse_response: Turns response text into results; receives the chunk
            and its offset within items. May raise ValueError (including
            json.JSONDecodeError) to signal an unparseable response.
        provider: Completion provider
        delay_seconds: Pause between consecutive chunks
        completion_options: Extra keyword arguments for provider.complete
        on_progress: Called with (chunk_index, first_item, last_item) before each call
        stats: Optional counters to fill in

    Returns:
        Results from every chunk that succeeded, in chunk order
    """
    stats = stats if stats is not None else BatchStats()
    options = completion_options or {}
    chunks = chunked(items, chunk_size)
    stats.chunks = len(chunks)
    results: list[R] = []

    for index, chunk in enumerate(chunks):
        offset = index * chunk_size
        if on_progress is not None:
            on_progress(index, offset + 1, offset + len(chunk))

        prompt = prompt_builder(chunk)
        stats.calls += 1
        try:
            completion = await provider.complete(prompt, **options)
        except (httpx.HTTPError, ProviderError) as exc:
            logger.error("Error processing chunk %d: %s: %s", index, type(exc).__name__, exc)
            stats.failed_chunks.append(index)
        else:
            try:
                parsed = parse_response(completion.text, chunk, offset)
            except ValueError as exc:
                kind = "JSON" if isinstance(exc, json.JSONDecodeError) else "value"
                logger.warning("Could not parse response for chunk %d (%s error): %s", index, kind, exc)
                stats.parse_failures.append(index)
            else:
                results.extend(parsed)

        if index < len(chunks) - 1 and delay_seconds > 0:
            await asyncio.sleep(delay_seconds)

    stats.results = len(results)
    log_event(
        logger,
        "Chunked analysis finished",
        event="chunks_analyzed",
        items=len(items),
        chunks=len(chunks),
        failed=len(stats.failed_chunks),
        unparseable=len(stats.parse_failures),
        results=len(results),
    )
    return results
