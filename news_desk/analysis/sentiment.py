"""
Topic sentiment and relevance scoring.

Articles are scored in chunks; each judgment is re-attached to its article
through its position in the chunk plus the chunk offset. The aggregate
report uses two relevance cut-offs:
- relevance > 40: counted in the supporting/opposing/neutral composition
- relevance > 25: eligible for the related-articles shortlist
"""

from __future__ import annotations

from functools import cmp_to_key
import logging
import math
from typing import Any, Sequence

import httpx

from ..config import AnalysisConfig
from ..core.types import AnalysisResult, Article, Sentiment, SentimentReport
from ..errors import ProviderError
from ..llm.json_extract import extract_json_array
from ..llm.providers.base import CompletionProvider
from ..utils.timeutil import to_iso, utc_now
from .batch import BatchStats, ProgressCallback, analyze_in_chunks

logger = logging.getLogger(__name__)

COMPOSITION_THRESHOLD = 40
RELATED_THRESHOLD = 25
RELATED_LIMIT = 12
TIE_WINDOW = 10


def build_sentiment_prompt(chunk: Sequence[Article], topic: str) -> str:
    blocks = []
    for index, article in enumerate(chunk):
        content = article.summary or article.processed_content or article.title
        blocks.append(
            f"Article {index + 1}:\n"
            f"Title: {article.title}\n"
            f"Source: {article.source}\n"
            f"Content: {content}\n"
            "---"
        )
    articles_block = "\n".join(blocks)
    return f"""You are a REALISTIC political analyst. Analyze these articles about "{topic}".

IMPORTANT INSTRUCTIONS:
- BE REALISTIC - avoid extreme percentages like 100% or 0%
- Most real political topics have mixed coverage
- Look for SUBTLE differences in tone, emphasis, and framing
- Consider that articles can be PARTIALLY supportive or have MIXED messages

User Interest: "{topic}"

Articles to analyze:
{articles_block}

For each article, determine:
1. RELEVANCE: How relevant is this to "{topic}"? (0-100)
2. SENTIMENT: One of STRONGLY_SUPPORTING, MODERATELY_SUPPORTING, SLIGHTLY_SUPPORTING,
   NEUTRAL, SLIGHTLY_OPPOSING, MODERATELY_OPPOSING, STRONGLY_OPPOSING
3. CONFIDENCE: How sure are you? (0-100)

Return one JSON object per article, in the same order as the articles:
[
  {{
    "articleIndex": 0,
    "relevance": 65,
    "sentiment": "MODERATELY_SUPPORTING",
    "confidence": 75,
    "reasoning": "Article shows support but mentions some concerns"
  }}
]"""


def _score(value: Any) -> int:
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0
    if math.isnan(number):
        return 0
    return int(min(max(number, 0), 100))


def parse_judgments(text: str, chunk: Sequence[Article], offset: int) -> list[AnalysisResult]:
    """Turn a JSON array of judgments into AnalysisResults.

    The n-th judgment belongs to the n-th article of the chunk; judgments
    beyond the chunk length are ignored.

    Raises:
        json.JSONDecodeError: The response holds no JSON array
    """
    values = extract_json_array(text)
    results: list[AnalysisResult] = []
    for index, item in enumerate(values[: len(chunk)]):
        if not isinstance(item, dict):
            continue
        results.append(
            AnalysisResult(
                article_index=index,
                global_index=offset + index,
                relevance=_score(item.get("relevance")),
                sentiment=Sentiment.parse(item.get("sentiment")),
                confidence=_score(item.get("confidence")),
                reasoning=str(item.get("reasoning") or ""),
                article=chunk[index],
            )
        )
    return results


def _percent(part: int, whole: int) -> int:
    if whole == 0:
        return 0
    return int(math.floor(part / whole * 100 + 0.5))


def _related_order(a: AnalysisResult, b: AnalysisResult) -> int:
    # Close relevance scores are ordered by sentiment label to mix stances
    if abs(a.relevance - b.relevance) < TIE_WINDOW:
        return (a.sentiment.value > b.sentiment.value) - (a.sentiment.value < b.sentiment.value)
    return b.relevance - a.relevance


def related_articles(results: list[AnalysisResult], limit: int = RELATED_LIMIT) -> list[Article]:
    eligible = [result for result in results if result.relevance > RELATED_THRESHOLD]
    eligible.sort(key=cmp_to_key(_related_order))
    return [result.article for result in eligible[:limit]]


def build_report(results: list[AnalysisResult], total_articles: int, topic: str = "") -> SentimentReport:
    """Aggregate judgments into composition percentages and a related shortlist."""
    relevant = [result for result in results if result.relevance > COMPOSITION_THRESHOLD]
    counts = {sentiment: 0 for sentiment in Sentiment}
    for result in relevant:
        counts[result.sentiment] += 1

    supporting = sum(count for sentiment, count in counts.items() if sentiment.is_supporting)
    opposing = sum(count for sentiment, count in counts.items() if sentiment.is_opposing)
    neutral = counts[Sentiment.NEUTRAL]

    sources: dict[str, None] = {}
    for result in relevant:
        if result.article.source:
            sources.setdefault(result.article.source, None)

    return SentimentReport(
        topic=topic,
        total_articles=total_articles,
        relevant_articles=len(relevant),
        counts=counts,
        supporting_count=supporting,
        opposing_count=opposing,
        neutral_count=neutral,
        supporting_percentage=_percent(supporting, len(relevant)),
        opposing_percentage=_percent(opposing, len(relevant)),
        neutral_percentage=_percent(neutral, len(relevant)),
        sources=list(sources),
        related=related_articles(results),
        results=results,
        last_updated=to_iso(utc_now()),
    )


def build_study_prompt(report: SentimentReport) -> str:
    top = [result for result in report.results if result.relevance > COMPOSITION_THRESHOLD][:8]
    lines = []
    for index, result in enumerate(top, start=1):
        lines.append(
            f"{index}. {result.article.title}\n"
            f"   Source: {result.article.source}\n"
            f"   Sentiment: {result.sentiment.value}\n"
            f"   Relevance: {result.relevance}%\n"
            f"   Reasoning: {result.reasoning}"
        )
    breakdown = "\n".join(
        f"- {sentiment.value.replace('_', ' ').title()}: {report.counts[sentiment]}"
        for sentiment in Sentiment
    )
    top_block = "\n".join(lines) or "(none)"
    return (
        "You are a SENIOR POLITICAL ANALYST. Provide a realistic, nuanced analysis "
        "in both English and Arabic. Use plain text only, no bold or asterisk formatting. "
        "Acknowledge complexity and mention the limitations of the data.\n\n"
        f'DATABASE ANALYSIS RESULTS for "{report.topic}":\n'
        f"- Total database articles: {report.total_articles}\n"
        f"- Relevant articles: {report.relevant_articles}\n"
        f"{breakdown}\n"
        f"- Coverage sources: {', '.join(report.sources)}\n\n"
        f"TOP RELEVANT ARTICLES:\n{top_block}\n\n"
        "Cover: political landscape, media analysis, balanced assessment, "
        "professional insights, and limitations."
    )


class SentimentAnalyzer:
    """Scores articles against a topic and aggregates the composition."""

    def __init__(self, provider: CompletionProvider, cfg: AnalysisConfig | None = None):
        self.provider = provider
        self.cfg = cfg or AnalysisConfig()
        self.last_stats: BatchStats | None = None

    async def score(
        self,
        articles: list[Article],
        topic: str,
        on_progress: ProgressCallback | None = None,
    ) -> list[AnalysisResult]:
        stats = BatchStats()
        results = await analyze_in_chunks(
            articles,
            self.cfg.sentiment_chunk_size,
            lambda chunk: build_sentiment_prompt(chunk, topic),
            parse_judgments,
            self.provider,
            delay_seconds=self.cfg.sentiment_delay_seconds,
            completion_options={"max_tokens": 3000},
            on_progress=on_progress,
            stats=stats,
        )
        self.last_stats = stats
        return results

    async def analyze(
        self,
        articles: list[Article],
        topic: str,
        with_study: bool = True,
        on_progress: ProgressCallback | None = None,
    ) -> SentimentReport:
        """Score articles and build the topic report.

        Raises:
            ValueError: topic is blank
        """
        topic = topic.strip()
        if not topic:
            raise ValueError("Please enter a topic before analyzing.")

        results = await self.score(articles, topic, on_progress=on_progress)
        report = build_report(results, len(articles), topic)
        if with_study and report.relevant_articles:
            report.study = await self._study(report)
        logger.info(
            "Analysis complete: %d%% supporting, %d%% opposing, %d%% neutral",
            report.supporting_percentage,
            report.opposing_percentage,
            report.neutral_percentage,
        )
        return report

    async def _study(self, report: SentimentReport) -> str | None:
        try:
            completion = await self.provider.complete(build_study_prompt(report), max_tokens=2000)
        except (httpx.HTTPError, ProviderError) as exc:
            logger.error("Error generating study text: %s", exc)
            return None
        return completion.text.strip()
