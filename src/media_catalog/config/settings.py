from __future__ import annotations

import os
import tomllib
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from dotenv import load_dotenv
from pydantic import BaseModel, Field, ValidationError

from media_catalog.models import FallbackSource

CONFIG_PATH_ENV = "MEDIA_CATALOG_CONFIG"
DEFAULT_CACHE_DIR = Path.home() / ".cache" / "media-catalog" / "api"

DEFAULT_FALLBACK_SOURCES: tuple[FallbackSource, ...] = (
    FallbackSource(
        name="cinetaro",
        base_url="https://apicinetaro.falex43350.workers.dev",
        priority=1,
    ),
    FallbackSource(name="vidsrc", base_url="https://vidsrc.xyz", priority=2),
    FallbackSource(name="embedsu", base_url="https://embed.su", priority=3),
    FallbackSource(name="vidlink", base_url="https://vidlink.pro", priority=4),
)


def _default_sources() -> list[FallbackSource]:
    return [source.model_copy() for source in DEFAULT_FALLBACK_SOURCES]


class Settings(BaseModel):
    """Application configuration resolved from env vars and optional TOML files."""

    tmdb_api_key: str | None = Field(default=None, alias="TMDB_API_KEY")
    omdb_api_key: str | None = Field(default=None, alias="OMDB_API_KEY")
    use_cinetaro: bool = Field(default=True, alias="USE_CINETARO")

    cache_dir: Path = Field(default=DEFAULT_CACHE_DIR, alias="MEDIA_CATALOG_CACHE_DIR")
    cache_ttl_hours: int = Field(default=24, ge=0)
    request_timeout: float = Field(default=10.0, gt=0)
    probe_timeout: float = Field(default=3.0, gt=0)
    language: str = Field(default="en-US")

    fallback_sources: list[FallbackSource] = Field(default_factory=_default_sources)

    model_config = {
        "populate_by_name": True,
        "str_strip_whitespace": True,
        "extra": "ignore",
    }

    @property
    def streaming_enabled(self) -> bool:
        """Streaming links are built only when the embed aggregator is switched on."""
        return self.use_cinetaro

    def require_tmdb(self) -> None:
        """Ensure the primary metadata provider credential is available."""
        if not self.tmdb_api_key:
            raise SettingsError(
                "Missing TMDB_API_KEY. Configure environment or TOML file.",
            )


class SettingsError(RuntimeError):
    """Raised when configuration cannot be resolved."""


@dataclass(frozen=True)
class SettingsLoadResult:
    settings: Settings
    source_path: Path | None


def load_settings(config_path: Path | None = None, *, load_env: bool = True) -> SettingsLoadResult:
    """Load settings from .env files, environment variables, and optional TOML configuration."""

    if load_env:
        load_dotenv()

    resolved_path = _determine_config_path(config_path)
    config_data: dict[str, Any] = {}

    if resolved_path and resolved_path.exists():
        try:
            with resolved_path.open("rb") as handle:
                toml_payload = tomllib.load(handle)
        except tomllib.TOMLDecodeError as exc:
            raise SettingsError(f"Invalid TOML in {resolved_path}: {exc}") from exc
        config_data = _flatten_toml(toml_payload)

    env_data = _collect_env_overrides()
    disabled = env_data.pop("disabled_sources", None)
    merged = {**config_data, **env_data}

    try:
        settings = Settings.model_validate(merged)
    except ValidationError as exc:  # pragma: no cover - surfaced via CLI messaging
        raise SettingsError(str(exc)) from exc

    if disabled:
        settings.fallback_sources = [
            source.model_copy(update={"enabled": False}) if source.name in disabled else source
            for source in settings.fallback_sources
        ]

    return SettingsLoadResult(settings=settings, source_path=resolved_path)


def _determine_config_path(config_path: Path | None) -> Path | None:
    if config_path:
        return config_path

    env_override = os.getenv(CONFIG_PATH_ENV)
    if env_override:
        return Path(env_override).expanduser().resolve()

    default_path = Path.home() / ".config" / "media-catalog" / "config.toml"
    return default_path if default_path.exists() else None


def _flatten_toml(payload: dict[str, Any]) -> dict[str, Any]:
    result: dict[str, Any] = {}

    providers_cfg = payload.get("providers", {})
    if not isinstance(providers_cfg, dict):
        providers_cfg = {}

    tmdb_cfg = providers_cfg.get("tmdb", {})
    if "api_key" in tmdb_cfg:
        result["tmdb_api_key"] = tmdb_cfg.get("api_key")
    if "language" in tmdb_cfg:
        result["language"] = tmdb_cfg.get("language")

    omdb_cfg = providers_cfg.get("omdb", {})
    if "api_key" in omdb_cfg:
        result["omdb_api_key"] = omdb_cfg.get("api_key")

    http_cfg = payload.get("http", {})
    if "timeout" in http_cfg:
        result["request_timeout"] = float(http_cfg.get("timeout"))

    cache_cfg = payload.get("cache", {})
    if "dir" in cache_cfg:
        result["cache_dir"] = Path(str(cache_cfg.get("dir"))).expanduser()
    if "ttl_hours" in cache_cfg:
        result["cache_ttl_hours"] = int(cache_cfg.get("ttl_hours"))

    streaming_cfg = payload.get("streaming", {})
    if "enabled" in streaming_cfg:
        result["use_cinetaro"] = bool(streaming_cfg.get("enabled"))
    if "probe_timeout" in streaming_cfg:
        result["probe_timeout"] = float(streaming_cfg.get("probe_timeout"))
    sources_cfg = streaming_cfg.get("sources")
    if isinstance(sources_cfg, list):
        result["fallback_sources"] = [
            {
                "name": str(entry.get("name")),
                "base_url": str(entry.get("base_url")),
                "priority": int(entry.get("priority", 100)),
                "enabled": bool(entry.get("enabled", True)),
            }
            for entry in sources_cfg
            if isinstance(entry, dict) and entry.get("name") and entry.get("base_url")
        ]

    return result


def _collect_env_overrides() -> dict[str, Any]:
    mapping: dict[str, str] = {
        "TMDB_API_KEY": "tmdb_api_key",
        "OMDB_API_KEY": "omdb_api_key",
        "USE_CINETARO": "use_cinetaro",
        "MEDIA_CATALOG_CACHE_DIR": "cache_dir",
        "MEDIA_CATALOG_CACHE_TTL_HOURS": "cache_ttl_hours",
        "MEDIA_CATALOG_TIMEOUT": "request_timeout",
        "MEDIA_CATALOG_PROBE_TIMEOUT": "probe_timeout",
        "MEDIA_CATALOG_LANGUAGE": "language",
        "DISABLED_SOURCES": "disabled_sources",
    }

    result: dict[str, Any] = {}
    for env_name, field in mapping.items():
        if env_name not in os.environ:
            continue
        value = os.environ[env_name]
        if field == "cache_ttl_hours":
            result[field] = int(value)
        elif field in {"request_timeout", "probe_timeout"}:
            result[field] = float(value)
        elif field == "use_cinetaro":
            result[field] = value.lower() not in {"false", "0", "no"}
        elif field == "cache_dir":
            result[field] = Path(value).expanduser()
        elif field == "disabled_sources":
            result[field] = {item.strip() for item in value.split(",") if item.strip()}
        else:
            result[field] = value
    return result


__all__ = [
    "DEFAULT_FALLBACK_SOURCES",
    "Settings",
    "SettingsError",
    "SettingsLoadResult",
    "load_settings",
]
