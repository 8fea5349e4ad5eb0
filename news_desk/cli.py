"""
Command-line interface for the news desk.

Uses Typer to expose loading, cache status, AI filtering, sentiment analysis
and favorites. Supports loading .env files for API key configuration.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from datetime import timedelta
from pathlib import Path

from dotenv import load_dotenv
import typer
from rich.console import Console
from rich.table import Table

from .analysis import DateNormalizer, SemanticFilter, SentimentAnalyzer
from .auth import (
    ConfigProfileStore,
    DocumentProfileStore,
    Identity,
    IdentityProvider,
    StaticIdentityProvider,
)
from .config import AppConfig, get_store_key, load_config
from .core.types import Article, LoadResult, SentimentReport
from .errors import MissingApiKeyError, NewsDeskError
from .favorites import FavoritesManager
from .llm.providers import CompletionProvider, provider_for_identity
from .llm.tracing import flush, setup_langfuse
from .pipeline import CacheFreshnessPolicy, Reconciler, filter_by_category, filter_by_keywords, filter_by_source
from .pipeline.reconcile import summarize_result
from .scraper import ScraperClient
from .storage import (
    ArticleRepository,
    CircuitBreaker,
    DocumentStore,
    JsonFileDocumentStore,
    LocalCacheStore,
    MemoryDocumentStore,
    RestDocumentStore,
)
from .utils.logging import setup_llm_logger, setup_logging

app = typer.Typer(add_completion=False, help="News admin desk: load, filter and analyze scraped articles.")
console = Console()


@dataclass
class Desk:
    """Components wired from one AppConfig."""

    cfg: AppConfig
    store: DocumentStore
    identity: IdentityProvider
    repository: ArticleRepository
    reconciler: Reconciler

    async def provider(self) -> CompletionProvider:
        profiles = ConfigProfileStore(self.cfg.provider, primary=DocumentProfileStore(self.store))
        return await provider_for_identity(
            self.cfg.provider,
            profiles,
            self.identity,
            log_cfg=self.cfg.logging,
            llm_logger=setup_llm_logger(self.cfg.logging),
        )

    async def aclose(self) -> None:
        await self.store.aclose()


def build_store(cfg: AppConfig) -> DocumentStore:
    backend = cfg.store.backend.lower().strip()
    if backend == "memory":
        return MemoryDocumentStore()
    if backend == "file":
        return JsonFileDocumentStore(cfg.store.path)
    if backend == "rest":
        if not cfg.store.base_url:
            raise typer.BadParameter("store.base_url is required for the rest backend")
        return RestDocumentStore(cfg.store.base_url, get_store_key(cfg.store), timeout=cfg.store.timeout_seconds)
    raise typer.BadParameter(f"Unsupported store backend: {cfg.store.backend}")


def build_desk(cfg: AppConfig, user: str | None) -> Desk:
    store = build_store(cfg)
    identity = StaticIdentityProvider(Identity(uid=user) if user else None)
    repository = ArticleRepository(
        store,
        identity,
        breaker=CircuitBreaker(cfg.store.failure_cooldown_ms),
        batch_size=cfg.reconcile.persist_batch_size,
    )
    cache = LocalCacheStore(cfg.cache.path)
    reconciler = Reconciler(ScraperClient(cfg.scraper), repository, cache, freshness=_policy(cache, cfg))
    return Desk(cfg=cfg, store=store, identity=identity, repository=repository, reconciler=reconciler)


def _policy(cache: LocalCacheStore, cfg: AppConfig) -> CacheFreshnessPolicy:
    return CacheFreshnessPolicy(cache, duration=timedelta(minutes=cfg.cache.duration_minutes))


def _prepare(config: Path | None, log_level: str | None, api_key: str | None) -> AppConfig:
    load_dotenv()
    cfg = load_config(str(config) if config else None)
    if api_key:
        cfg.provider.api_key = api_key
    if log_level:
        cfg.logging.level = log_level
    setup_logging(cfg.logging)
    setup_langfuse(cfg.langfuse)
    return cfg


def _run(coro):
    try:
        return asyncio.run(coro)
    except MissingApiKeyError as exc:
        console.print(f"[red]{exc}[/red]")
        raise typer.Exit(code=2) from exc
    except NewsDeskError as exc:
        console.print(f"[red]Error:[/red] {exc}")
        raise typer.Exit(code=1) from exc
    finally:
        flush()


def _articles_table(articles: list[Article], title: str, limit: int | None = None) -> Table:
    table = Table(title=title, show_lines=False)
    table.add_column("ID", style="dim", no_wrap=True)
    table.add_column("Date", no_wrap=True)
    table.add_column("Source")
    table.add_column("Title")
    table.add_column("Fav", justify="center")
    shown = articles if limit is None else articles[:limit]
    for article in shown:
        table.add_row(
            str(article.id),
            article.date or "",
            article.source,
            article.title,
            "*" if article.is_favorited else "",
        )
    return table


def _print_load_result(result: LoadResult, limit: int) -> None:
    summary = summarize_result(result)
    origin = "cache" if result.from_cache else "scraper"
    console.print(
        f"Loaded [bold]{summary['total']}[/bold] articles from {origin} "
        f"({summary['new']} new, {len(result.available_sources)} sources)"
    )
    if result.error:
        console.print(f"[yellow]Scraper unavailable, showing cached articles: {result.error}[/yellow]")
    console.print(_articles_table(result.articles, "Articles", limit=limit))


def _print_report(report: SentimentReport) -> None:
    console.print(f"[bold]Topic:[/bold] {report.topic}")
    console.print(
        f"Relevant articles: {report.relevant_articles} of {report.total_articles} "
        f"from {len(report.sources)} sources"
    )
    table = Table(title="Composition")
    table.add_column("Stance")
    table.add_column("Articles", justify="right")
    table.add_column("Share", justify="right")
    table.add_row("Supporting", str(report.supporting_count), f"{report.supporting_percentage}%")
    table.add_row("Opposing", str(report.opposing_count), f"{report.opposing_percentage}%")
    table.add_row("Neutral", str(report.neutral_count), f"{report.neutral_percentage}%")
    console.print(table)
    if report.related:
        console.print(_articles_table(report.related, "Related articles"))
    if report.study:
        console.print(report.study)


ConfigOption = typer.Option(Path("config.yaml"), "--config", "-c", help="YAML config file.")
UserOption = typer.Option(None, "--user", "-u", envvar="NEWS_DESK_USER", help="Signed-in user id.")
LogLevelOption = typer.Option(None, "--log-level", help="Logging level.")
ApiKeyOption = typer.Option(
    None,
    "--api-key",
    envvar="GOOGLE_API_KEY",
    help="Override provider API key (or set GOOGLE_API_KEY / .env).",
)


@app.command()
def load(
    refresh: bool = typer.Option(False, "--refresh", help="Pull the scraper even when the cache is warm."),
    sort_dates: bool = typer.Option(False, "--sort-dates", help="Normalize dates and sort newest first."),
    limit: int = typer.Option(20, "--limit", help="Rows to display."),
    config: Path | None = ConfigOption,
    user: str | None = UserOption,
    log_level: str | None = LogLevelOption,
    api_key: str | None = ApiKeyOption,
):
    """Load articles, pulling the scraper when asked to or when the cache is stale."""
    cfg = _prepare(config, log_level, api_key)

    async def _load() -> None:
        desk = build_desk(cfg, user)
        try:
            if refresh:
                result = await desk.reconciler.force_refresh()
            else:
                result = await desk.reconciler.refresh_if_expired()
            if sort_dates:
                try:
                    provider = await desk.provider()
                except MissingApiKeyError:
                    provider = None
                result.articles = await DateNormalizer(provider, cfg.analysis).normalize(result.articles)
            _print_load_result(result, limit)
        finally:
            await desk.aclose()

    _run(_load())


@app.command()
def status(
    config: Path | None = ConfigOption,
    log_level: str | None = LogLevelOption,
):
    """Show local cache freshness."""
    cfg = _prepare(config, log_level, None)
    cache = LocalCacheStore(cfg.cache.path)
    state = _policy(cache, cfg).status()
    console.print(f"Cached articles: {state.article_count}")
    console.print(f"Last fetched: {state.last_fetched or 'never'}")
    if state.is_expired:
        console.print("[yellow]Cache expired; the next load pulls the scraper.[/yellow]")
    else:
        minutes = int(state.next_refresh_in.total_seconds() // 60)
        console.print(f"[green]Cache fresh[/green] for another {minutes} minutes")


@app.command("filter")
def filter_articles(
    query: str = typer.Argument(..., help="Natural-language description of the articles to keep."),
    source: str = typer.Option("all", "--source", help="Restrict to one source first."),
    category: str = typer.Option("all", "--category", help="Restrict to one category first."),
    keyword: list[str] = typer.Option([], "--keyword", "-k", help="Keyword prefilter, repeatable."),
    mode: str = typer.Option("OR", "--mode", help="Keyword mode: AND or OR."),
    config: Path | None = ConfigOption,
    user: str | None = UserOption,
    log_level: str | None = LogLevelOption,
    api_key: str | None = ApiKeyOption,
):
    """Keep the loaded articles an LLM judges to match QUERY."""
    cfg = _prepare(config, log_level, api_key)

    async def _filter() -> None:
        desk = build_desk(cfg, user)
        try:
            result = await desk.reconciler.load_articles()
            articles = filter_by_source(result.articles, source)
            articles = filter_by_category(articles, category)
            articles = filter_by_keywords(articles, keyword, mode)
            provider = await desk.provider()
            semantic = SemanticFilter(provider, cfg.analysis)
            matches = await semantic.filter(
                articles,
                query,
                on_progress=lambda _, first, last: console.print(
                    f"[dim]Analyzing articles {first}-{last} of {len(articles)}...[/dim]"
                ),
            )
            console.print(_articles_table(matches, f"{len(matches)} articles matching {query!r}"))
        finally:
            await desk.aclose()

    _run(_filter())


@app.command()
def sentiment(
    topic: str = typer.Argument(..., help="Topic to score articles against."),
    study: bool = typer.Option(True, "--study/--no-study", help="Generate the written study."),
    config: Path | None = ConfigOption,
    user: str | None = UserOption,
    log_level: str | None = LogLevelOption,
    api_key: str | None = ApiKeyOption,
):
    """Score stored articles for relevance and stance towards TOPIC."""
    cfg = _prepare(config, log_level, api_key)

    async def _sentiment() -> None:
        desk = build_desk(cfg, user)
        try:
            articles = await desk.repository.fetch_articles()
            if not articles:
                articles = (await desk.reconciler.load_articles()).articles
            provider = await desk.provider()
            analyzer = SentimentAnalyzer(provider, cfg.analysis)
            report = await analyzer.analyze(articles, topic, with_study=study)
            _print_report(report)
        finally:
            await desk.aclose()

    _run(_sentiment())


@app.command()
def favorite(
    article_ids: list[str] = typer.Argument(..., help="Article ids to change."),
    off: bool = typer.Option(False, "--off", help="Remove from favorites instead of adding."),
    toggle: bool = typer.Option(False, "--toggle", help="Flip the current flag of each article."),
    config: Path | None = ConfigOption,
    user: str | None = UserOption,
    log_level: str | None = LogLevelOption,
):
    """Add articles to favorites, remove them, or flip their flag."""
    cfg = _prepare(config, log_level, None)

    async def _favorite() -> None:
        desk = build_desk(cfg, user)
        try:
            manager = FavoritesManager(desk.repository, delay_seconds=cfg.analysis.favorites_delay_seconds)
            wanted = set(article_ids)
            articles = [article for article in await desk.repository.fetch_articles() if article.id in wanted]
            missing = wanted - {article.id for article in articles}
            if missing:
                console.print(f"[yellow]Unknown article ids: {', '.join(sorted(missing))}[/yellow]")
            if toggle:
                for article in articles:
                    state = await manager.toggle(article)
                    console.print(f"{article.id}: {'favorited' if state else 'not favorited'}")
            elif off:
                removal = await manager.remove_many(articles)
                console.print(f"Removed {removal.removed} articles from favorites ({removal.failed} failed)")
            else:
                summary = await manager.add_many(articles)
                console.print(summary.message)
        finally:
            await desk.aclose()

    _run(_favorite())


@app.command()
def favorites(
    config: Path | None = ConfigOption,
    user: str | None = UserOption,
    log_level: str | None = LogLevelOption,
):
    """List favorited articles, most recently changed first."""
    cfg = _prepare(config, log_level, None)

    async def _favorites() -> None:
        desk = build_desk(cfg, user)
        try:
            articles = await FavoritesManager(desk.repository).list()
            if not articles:
                console.print("No favorite articles found.")
                return
            console.print(_articles_table(articles, "Favorite articles"))
        finally:
            await desk.aclose()

    _run(_favorites())


if __name__ == "__main__":
    app()
