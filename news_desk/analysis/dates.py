"""
Publish-date normalization.

Scraped dates arrive in whatever form the source prints them: ISO strings,
day-first numeric dates, RFC 2822 headers, or Arabic relative phrases such
as "منذ ساعتين". Dates that parse locally are kept; the rest are sent to the
LLM in chunks and anything still unresolved falls back to the current time.
"""

from __future__ import annotations

from dataclasses import replace
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
import logging
import re
from typing import Callable, Sequence

from ..config import AnalysisConfig
from ..core.types import Article
from ..llm.json_extract import extract_json_array
from ..llm.providers.base import CompletionProvider
from ..utils.timeutil import parse_iso, to_iso, utc_now
from .batch import BatchStats, ProgressCallback, analyze_in_chunks

logger = logging.getLogger(__name__)

ORIGINAL_DATE_KEY = "originalDate"

_ISO_DAY_RE = re.compile(r"(\d{4})-(\d{2})-(\d{2})")
_SLASH_RE = re.compile(r"(\d{1,2})/(\d{1,2})/(\d{4})")
_DASH_RE = re.compile(r"(\d{1,2})-(\d{1,2})-(\d{4})")
_DOTTED_RE = re.compile(r"(\d{4})\.(\d{2})\.(\d{2})")


def _build(year: int, month: int, day: int) -> datetime | None:
    try:
        return datetime(year, month, day, tzinfo=timezone.utc)
    except ValueError:
        return None


def _day_first(match: re.Match) -> datetime | None:
    first, second, year = (int(part) for part in match.groups())
    return _build(year, second, first) or _build(year, first, second)


def parse_standard_date(text: str | None) -> datetime | None:
    """Parse common machine-readable date forms, or return None.

    Numeric dates with slashes or dashes are read day-first, then
    month-first when the day-first reading is impossible.
    """
    if not text:
        return None
    cleaned = text.strip()

    parsed = parse_iso(cleaned)
    if parsed is not None:
        return parsed
    try:
        parsed = parsedate_to_datetime(cleaned)
    except (TypeError, ValueError, IndexError):
        parsed = None
    if parsed is not None:
        return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)

    match = _ISO_DAY_RE.search(cleaned)
    if match:
        year, month, day = (int(part) for part in match.groups())
        if (result := _build(year, month, day)) is not None:
            return result
    for pattern in (_SLASH_RE, _DASH_RE):
        match = pattern.search(cleaned)
        if match and (result := _day_first(match)) is not None:
            return result
    match = _DOTTED_RE.search(cleaned)
    if match:
        year, month, day = (int(part) for part in match.groups())
        return _build(year, month, day)
    return None


def build_date_prompt(chunk: Sequence[Article], now: datetime) -> str:
    lines = []
    for index, article in enumerate(chunk, start=1):
        lines.append(
            f'{index}. Date: "{article.date or "No date"}"\n'
            f'   Title: "{article.title or "No title"}"'
        )
    listing = "\n".join(lines)
    return f"""You are a date parsing expert. Parse the following date/time strings and convert each to ISO 8601 format.

Current date/time: {to_iso(now)}

Articles with dates to parse:
{listing}

For each article, parse the date considering:
- Arabic dates and relative times
- English dates and relative times
- Missing information (assume current year/date)
- Relative terms like "منذ ساعتين" (2 hours ago), "أمس" (yesterday), etc.

Respond with ONLY a JSON array of ISO 8601 date strings in the same order:
["2024-01-15T14:30:00Z", "2024-01-15T12:00:00Z", ...]"""


def parse_date_list(text: str, chunk: Sequence[Article], offset: int) -> list[tuple[int, datetime]]:
    """Pair each parseable ISO string with the global index of its article."""
    values = extract_json_array(text)
    pairs = []
    for index, value in enumerate(values[: len(chunk)]):
        parsed = parse_iso(value) if isinstance(value, str) else None
        if parsed is None:
            logger.warning("AI returned invalid date: %r", value)
            continue
        pairs.append((offset + index, parsed))
    return pairs


class DateNormalizer:
    """Rewrites article dates as ISO timestamps and orders articles newest first."""

    def __init__(
        self,
        provider: CompletionProvider | None,
        cfg: AnalysisConfig | None = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.provider = provider
        self.cfg = cfg or AnalysisConfig()
        self.clock = clock
        self.last_stats: BatchStats | None = None

    async def normalize(
        self,
        articles: list[Article],
        on_progress: ProgressCallback | None = None,
    ) -> list[Article]:
        """Return copies of articles with ISO dates, sorted newest first.

        The raw date string is kept in extra["originalDate"]. Articles
        without a date, or whose date neither parses locally nor through the
        LLM, are stamped with the current time.
        """
        now = self.clock()
        resolved: dict[int, datetime] = {}
        pending: list[int] = []
        for index, article in enumerate(articles):
            if not article.date:
                resolved[index] = now
                continue
            parsed = parse_standard_date(article.date)
            if parsed is None:
                pending.append(index)
            else:
                resolved[index] = parsed

        if pending and self.provider is not None:
            stats = BatchStats()
            pending_articles = [articles[index] for index in pending]
            pairs = await analyze_in_chunks(
                pending_articles,
                self.cfg.date_chunk_size,
                lambda chunk: build_date_prompt(chunk, now),
                parse_date_list,
                self.provider,
                delay_seconds=self.cfg.date_delay_seconds,
                completion_options={"temperature": 0.1, "max_tokens": 2000},
                on_progress=on_progress,
                stats=stats,
            )
            self.last_stats = stats
            for position, parsed in pairs:
                resolved[pending[position]] = parsed
        elif pending:
            logger.info("No completion provider; %d unparsed dates fall back to now", len(pending))

        normalized = []
        for index, article in enumerate(articles):
            moment = resolved.get(index, now)
            extra = dict(article.extra)
            extra[ORIGINAL_DATE_KEY] = article.date
            normalized.append((moment, replace(article, date=to_iso(moment), extra=extra)))

        normalized.sort(key=lambda pair: pair[0], reverse=True)
        return [article for _, article in normalized]
