from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

import typer

from media_catalog import __version__
from media_catalog.config import Settings, SettingsError, SettingsLoadResult, load_settings
from media_catalog.context import catalog_context
from media_catalog.models import AnimeVariant, MediaRecord, StreamOptions
from media_catalog.providers.factory import BULK_PRESETS
from media_catalog.services.catalog import CatalogService

T = TypeVar("T")

# Categories that only TMDB can serve
TMDB_CATEGORIES = {"movies", "tv", "cartoons"}

app = typer.Typer(
    add_completion=False,
    help="Aggregate movie, TV and anime listings and resolve streaming links.",
)


@app.callback()
def _cli_entry(ctx: typer.Context) -> None:
    """Entrypoint for the media-catalog CLI."""
    ctx.obj = {} if ctx.obj is None else ctx.obj


@app.command()
def version() -> None:
    """Print the installed version."""
    typer.echo(__version__)


@app.command()
def config(show_sources: bool = typer.Option(False, help="Display where settings came from.")) -> None:
    """Describe the resolved configuration."""
    load_result = _safe_load_settings(load_even_if_missing=True)
    if load_result is None:
        raise typer.Exit(code=1)

    settings = load_result.settings
    values: dict[str, Any] = {
        "tmdb_api_key": "<set>" if settings.tmdb_api_key else "<unset>",
        "omdb_api_key": "<set>" if settings.omdb_api_key else "<unset>",
        "use_cinetaro": settings.use_cinetaro,
        "cache_dir": str(settings.cache_dir),
        "cache_ttl_hours": settings.cache_ttl_hours,
        "language": settings.language,
        "fallback_sources": ", ".join(
            f"{source.name}({source.priority}{'' if source.enabled else ', disabled'})"
            for source in settings.fallback_sources
        ),
    }
    for key, value in values.items():
        typer.echo(f"{key}: {value}")

    if show_sources:
        source_hint = load_result.source_path or "<env/.env>"
        typer.echo(f"resolved_from: {source_hint}")
        typer.echo(
            "Provider keys: TMDB_API_KEY, OMDB_API_KEY."
            " Configure ~/.config/media-catalog/config.toml for persistent settings.",
        )


@app.command()
def bulk(
    category: str = typer.Argument(..., help="One of: movies, tv, anime, cartoons."),
    start: int = typer.Option(1, help="First page to load (1-indexed)."),
    pages: int | None = typer.Option(None, help="Number of pages per provider (max 20)."),
    debug: bool = typer.Option(False, help="Enable debug logging."),
) -> None:
    """Load several pages from every provider of a category and deduplicate them."""
    category = category.lower()
    if category not in BULK_PRESETS:
        typer.secho(
            f"Unknown category '{category}'. Valid categories: {', '.join(BULK_PRESETS)}",
            fg=typer.colors.RED,
        )
        raise typer.Exit(code=1)

    settings = _load_or_exit(debug, require_tmdb=category in TMDB_CATEGORIES)
    records = _run(settings, lambda catalog: catalog.bulk(category, start, pages), debug)
    _echo_records(records)


@app.command()
def search(
    query: str = typer.Argument(..., help="Text to search for."),
    page: int = typer.Option(1, help="Result page."),
    movies: bool = typer.Option(True, help="Include TMDB movies."),
    tv: bool = typer.Option(True, help="Include TMDB TV shows."),
    anime: bool = typer.Option(True, help="Include Jikan anime."),
    limit: int | None = typer.Option(None, help="Maximum number of results."),
    debug: bool = typer.Option(False, help="Enable debug logging."),
) -> None:
    """Search movies, TV shows and anime at once."""
    settings = _load_or_exit(debug)
    records = _run(
        settings,
        lambda catalog: catalog.universal_search(
            query,
            page,
            include_movies=movies,
            include_tv=tv,
            include_anime=anime,
            limit=limit,
        ),
        debug,
    )
    _echo_records(records)


@app.command()
def featured(debug: bool = typer.Option(False, help="Enable debug logging.")) -> None:
    """A shuffled mix of popular movies and anime."""
    settings = _load_or_exit(debug)
    _echo_records(_run(settings, lambda catalog: catalog.featured(), debug))


@app.command()
def stream(
    media_id: str = typer.Argument(..., help="Catalog id, e.g. tmdb_movie_27205."),
    season: int = typer.Option(1, help="Season number (TV and anime)."),
    episode: int = typer.Option(1, help="Episode number (TV and anime)."),
    language: str = typer.Option("english", help="Preferred audio/subtitle language."),
    variant: AnimeVariant = typer.Option(AnimeVariant.SUB, help="Anime variant."),
    anilist_id: int | None = typer.Option(None, help="AniList id for anime titles."),
    verify: bool = typer.Option(True, help="Probe sources before choosing one."),
    debug: bool = typer.Option(False, help="Enable debug logging."),
) -> None:
    """Resolve a playable embed URL for one title."""
    settings = _load_or_exit(debug)
    options = StreamOptions(season=season, episode=episode, language=language, variant=variant)
    link = _run(
        settings,
        lambda catalog: catalog.stream_link(
            media_id, options, verify=verify, anilist_id=anilist_id
        ),
        debug,
    )
    _echo_json(link.model_dump(mode="json", by_alias=True))
    if not link.playable:
        raise typer.Exit(code=1)


@app.command()
def check(
    media_id: str = typer.Argument(..., help="Catalog id, e.g. tmdb_tv_1399."),
    debug: bool = typer.Option(False, help="Enable debug logging."),
) -> None:
    """Report whether any fallback source answers as live for a title."""
    settings = _load_or_exit(debug)
    available = _run(settings, lambda catalog: catalog.check_stream(media_id), debug)
    _echo_json({"mediaId": media_id, "available": available})


@app.command()
def genres(debug: bool = typer.Option(False, help="Enable debug logging.")) -> None:
    """List the TMDB genre names for movies and TV."""
    settings = _load_or_exit(debug, require_tmdb=True)
    _echo_json(_run(settings, lambda catalog: catalog.genres(), debug))


@app.command()
def details(
    media_id: str = typer.Argument(..., help="TMDB catalog id, e.g. tmdb_movie_27205."),
    seasons: bool = typer.Option(False, help="Include season listings for TV shows."),
    debug: bool = typer.Option(False, help="Enable debug logging."),
) -> None:
    """Full details for one TMDB title, enriched with OMDb when configured."""
    settings = _load_or_exit(debug, require_tmdb=True)

    async def _collect(catalog: CatalogService) -> dict[str, Any] | None:
        record = await catalog.media_details(media_id)
        if record is None:
            return None
        payload = record.to_json()
        if seasons:
            payload["seasons"] = [
                season.model_dump(mode="json", by_alias=True)
                for season in await catalog.tv_details(media_id)
            ]
        return payload

    payload = _run(settings, _collect, debug)
    if payload is None:
        typer.secho(f"No details found for {media_id}", fg=typer.colors.YELLOW)
        raise typer.Exit(code=1)
    _echo_json(payload)


def main() -> None:
    """Expose Typer app for the console script."""
    app()


def _safe_load_settings(load_even_if_missing: bool = False) -> SettingsLoadResult | None:
    try:
        return load_settings()
    except SettingsError as exc:
        if load_even_if_missing:
            typer.secho(
                f"Warning: configuration incomplete – {exc}",
                fg=typer.colors.YELLOW,
            )
            return SettingsLoadResult(settings=Settings(), source_path=None)
        typer.secho(str(exc), fg=typer.colors.RED)
        return None


def _load_or_exit(debug: bool, *, require_tmdb: bool = False) -> Settings:
    if debug:
        _setup_logging(logging.INFO)

    load_result = _safe_load_settings()
    if load_result is None:
        raise typer.Exit(code=1)

    settings = load_result.settings
    if require_tmdb:
        try:
            settings.require_tmdb()
        except SettingsError as exc:
            typer.secho(str(exc), fg=typer.colors.RED)
            raise typer.Exit(code=1) from exc
    return settings


def _run(
    settings: Settings,
    action: Callable[[CatalogService], Awaitable[T]],
    debug: bool = False,
) -> T:
    async def _execute() -> T:
        async with catalog_context(settings) as context:
            return await action(CatalogService(context, debug=debug))

    return asyncio.run(_execute())


def _setup_logging(level: int = logging.INFO) -> None:
    """Configure logging for debug mode."""
    logging.basicConfig(
        format="%(message)s",
        level=level,
        force=True,
    )


def _echo_records(records: list[MediaRecord]) -> None:
    _echo_json([record.to_json() for record in records])


def _echo_json(payload: Any) -> None:
    typer.echo(json.dumps(payload, indent=2, ensure_ascii=False))


if __name__ == "__main__":
    main()
