"""
Command-line interface for the WikiAtlas client.

Uses Typer to expose search, listing, cleanup and a file-watching draft
editor with auto-save. Supports loading .env files for the API URL,
credentials and the Gemini API key.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, replace
from pathlib import Path

from dotenv import load_dotenv
import typer
from rich.console import Console
from rich.table import Table

from .atlas import Atlas, build_provider
from .config import AppConfig, load_config
from .core.types import Article, DraftSnapshot, Identity
from .errors import AtlasError, NotFoundError, PermissionDeniedError
from .llm.tracing import flush, setup_langfuse
from .utils.logging import setup_llm_logger, setup_logging

app = typer.Typer(add_completion=False, help="WikiAtlas client.")
console = Console()


@dataclass
class CliState:
    cfg: AppConfig
    log_dir: Path | None


@app.callback()
def main(
    ctx: typer.Context,
    config: Path | None = typer.Option(None, "--config", "-c", exists=True, help="YAML config file."),
    api_url: str | None = typer.Option(None, "--api-url", envvar="WIKIATLAS_API_URL", help="API base URL."),
    api_key: str | None = typer.Option(
        None,
        "--api-key",
        envvar="GEMINI_API_KEY",
        help="Override provider API key (or set GEMINI_API_KEY / .env).",
    ),
    log_level: str | None = typer.Option(None, "--log-level", help="Logging level."),
    log_dir: Path | None = typer.Option(None, "--log-dir", help="Directory for JSONL log files."),
):
    """Load configuration shared by all commands."""
    load_dotenv()

    cfg = load_config(str(config) if config else None)
    if api_url:
        cfg.gateway.base_url = api_url
    if api_key:
        cfg.provider.api_key = api_key
    if log_level:
        cfg.logging.level = log_level
    if log_dir is not None:
        cfg.logging.file = True
        cfg.logging.llm_log_enabled = True

    setup_logging(cfg.logging, log_dir)
    setup_langfuse(cfg.langfuse)
    ctx.obj = CliState(cfg=cfg, log_dir=log_dir)


@app.command()
def search(ctx: typer.Context, query: str = typer.Argument(..., help="Free-text query.")):
    """Search articles, falling back to semantic matching when nothing matches."""
    state: CliState = ctx.obj

    async def _run():
        async with _open_atlas(state, with_provider=True) as atlas:
            return await atlas.search(query)

    result = _run_async(_run())
    if not result.articles:
        console.print(f"No articles match [bold]{query}[/bold].")
        return
    console.print(_articles_table(result.articles, title=f"{len(result)} result(s), {result.strategy} match"))


@app.command()
def articles(
    ctx: typer.Context,
    page: int = typer.Option(0, "--page", "-p", min=0),
    limit: int = typer.Option(6, "--limit", "-n", min=1),
):
    """List one page of deduplicated articles."""
    state: CliState = ctx.obj

    async def _run():
        async with _open_atlas(state) as atlas:
            return await atlas.articles_page(page, limit), await atlas.article_count()

    items, total = _run_async(_run())
    console.print(_articles_table(items, title=f"Page {page + 1} of {total} article(s)"))


@app.command()
def show(ctx: typer.Context, article_id: str = typer.Argument(..., help="Article id.")):
    """Show one article with its comments."""
    state: CliState = ctx.obj

    async def _run():
        async with _open_atlas(state) as atlas:
            return await atlas.gateway.get_article(article_id)

    article = _run_async(_run())
    if article is None:
        console.print(f"[red]Article {article_id} not found.[/red]")
        raise typer.Exit(code=1)

    console.print(f"[bold]{article.title}[/bold]")
    console.print(
        f"{article.category} | {article.author_name} | {article.reading_time} min | {article.status}"
    )
    console.print()
    console.print(article.content)
    for source in article.sources:
        console.print(f"- {source.title} {source.url or ''}".rstrip())
    if article.comments:
        console.print()
        console.print(f"[bold]Comments ({len(article.comments)})[/bold]")
        for comment in article.comments:
            console.print(f"[cyan]{comment.author_name}[/cyan]: {comment.content}")


@app.command()
def cleanup(
    ctx: typer.Context,
    apply: bool = typer.Option(False, "--apply", help="Ask the server to delete them."),
    email: str | None = typer.Option(None, "--email", envvar="WIKIATLAS_EMAIL"),
    password: str | None = typer.Option(None, "--password", envvar="WIKIATLAS_PASSWORD", hide_input=True),
):
    """Preview garbage articles, optionally running the server sweep."""
    state: CliState = ctx.obj

    async def _run():
        async with _open_atlas(state) as atlas:
            garbage = await atlas.find_garbage()
            deleted = None
            if apply and garbage:
                identity = await atlas.gateway.login(email or "", password or "")
                deleted = await atlas.gateway.admin_cleanup(identity)
            return garbage, deleted

    garbage, deleted = _run_async(_run())
    if not garbage:
        console.print("No garbage articles found.")
        return
    console.print(_articles_table(garbage, title=f"{len(garbage)} garbage article(s)"))
    if deleted is not None:
        console.print(f"Server deleted {deleted} article(s).")


@app.command()
def draft(
    ctx: typer.Context,
    path: Path = typer.Argument(..., exists=True, readable=True, help="Markdown file to watch."),
    article_id: str | None = typer.Option(None, "--id", help="Continue editing an existing article."),
    email: str | None = typer.Option(None, "--email", envvar="WIKIATLAS_EMAIL"),
    password: str | None = typer.Option(None, "--password", envvar="WIKIATLAS_PASSWORD", hide_input=True),
    poll_seconds: float = typer.Option(1.0, "--poll", help="File polling interval in seconds."),
):
    """Watch a Markdown draft and auto-save it after each quiet period.

    The first "# " heading is the title; everything else is the body.
    """
    state: CliState = ctx.obj

    async def _run():
        async with _open_atlas(state) as atlas:
            identity = await atlas.gateway.login(email or "", password or "")
            await _watch_draft(atlas, path, identity, article_id, poll_seconds)

    try:
        _run_async(_run())
    except KeyboardInterrupt:
        console.print("Stopped watching.")


async def _watch_draft(
    atlas: Atlas,
    path: Path,
    identity: Identity,
    article_id: str | None,
    poll_seconds: float,
) -> None:
    def _saved(article: Article) -> None:
        console.print(f"Saved draft [bold]{article.title}[/bold] ({article.id})")

    coordinator = atlas.new_autosave(on_saved=_saved)
    if coordinator is None:
        console.print("[yellow]Auto-save is disabled in config.[/yellow]")
        return

    base = DraftSnapshot()
    if article_id:
        article = await atlas.gateway.get_article(article_id)
        if article is None:
            raise NotFoundError(f"Article {article_id} not found.")
        if not article.owned_by(identity):
            raise PermissionDeniedError("You can only edit your own articles.")
        base = DraftSnapshot.from_article(article)

    console.print(f"Watching {path} (auto-save after {coordinator.delay_seconds:g}s of inactivity)")
    last_text: str | None = None
    try:
        while True:
            text = path.read_text(encoding="utf-8")
            if text != last_text:
                last_text = text
                title, content = split_markdown(text)
                coordinator.observe(replace(base, title=title, content=content), identity)
            await asyncio.sleep(poll_seconds)
    finally:
        await coordinator.flush()


def split_markdown(text: str) -> tuple[str, str]:
    """Split a Markdown document into (title, body) on its first "# " heading."""
    lines = text.splitlines()
    for idx, line in enumerate(lines):
        if line.startswith("# "):
            title = line[2:].strip()
            body = "\n".join(lines[:idx] + lines[idx + 1 :]).strip()
            return title, body
    return "", text.strip()


class _open_atlas:
    """Async context manager building an Atlas from CLI state."""

    def __init__(self, state: CliState, with_provider: bool = False):
        provider = None
        if with_provider:
            provider = build_provider(state.cfg, setup_llm_logger(state.cfg.logging, state.log_dir))
        self.atlas = Atlas(state.cfg, provider=provider)

    async def __aenter__(self) -> Atlas:
        return self.atlas

    async def __aexit__(self, *exc_info) -> None:
        await self.atlas.aclose()


def _run_async(coro):
    try:
        return asyncio.run(coro)
    except AtlasError as exc:
        console.print(f"[red]{exc.message}[/red]")
        raise typer.Exit(code=1) from exc
    finally:
        flush()


def _articles_table(items: list[Article], title: str) -> Table:
    table = Table(title=title)
    table.add_column("ID", style="dim")
    table.add_column("Title", style="bold")
    table.add_column("Category")
    table.add_column("Author")
    table.add_column("Min", justify="right")
    for article in items:
        table.add_row(
            article.id or "",
            article.title,
            article.category,
            article.author_name or "",
            str(article.reading_time),
        )
    return table


if __name__ == "__main__":
    app()
