from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

import httpx

from media_catalog.models import MediaRecord, MediaType

if TYPE_CHECKING:
    from media_catalog.context import CatalogContext

logger = logging.getLogger(__name__)

_PAYLOAD_ERRORS = (KeyError, TypeError, ValueError, AttributeError)


class ProviderError(RuntimeError):
    """Raised when a provider fails to produce records."""

    def __init__(self, provider: str, message: str) -> None:
        super().__init__(f"{provider}: {message}")
        self.provider = provider


class EndOfResults(Exception):
    """Signals that a provider has no page at the requested position."""


@dataclass
class ProviderResult:
    """Records from one page, or the error that prevented producing them."""

    provider: str
    page: int
    records: list[MediaRecord] = field(default_factory=list)
    error: ProviderError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def failure(cls, provider: str, page: int, error: ProviderError) -> ProviderResult:
        return cls(provider=provider, page=page, records=[], error=error)


class CatalogProvider(ABC):
    """Base class for listing adapters over one upstream metadata provider.

    Subclasses describe how to request a page and how to map the provider's
    payload. The base class owns the shared contract: cache lookup first, one
    upstream call on a miss, every failure folded into an empty result.
    """

    name: str = "base"
    source: str = "base"
    media_type: MediaType = MediaType.MOVIE
    require_poster: bool = True

    def __init__(self, context: CatalogContext) -> None:
        self._context = context

    @property
    def settings(self):
        return self._context.settings

    def is_configured(self) -> bool:
        return True

    def cache_key(self, page: int, **params: Any) -> str:
        parts = [self.name]
        for key in sorted(params):
            value = params[key]
            if value is None:
                continue
            parts.append(f"{key}-{value}")
        parts.append(str(page))
        return "_".join(parts)

    @abstractmethod
    async def request(self, page: int, **params: Any) -> Any:
        """Issue the single upstream call for a 1-indexed page and return decoded JSON.

        Raises:
            EndOfResults: when the provider reports there is no such page
            httpx.HTTPError: on network failures or non-2xx statuses
        """

    @abstractmethod
    def parse(self, payload: Any, **params: Any) -> list[MediaRecord]:
        """Map a raw provider payload into media records."""

    async def prepare(self) -> None:
        """Hook awaited before mapping, for lookups the mapping depends on."""

    async def fetch(self, page: int = 1, **params: Any) -> ProviderResult:
        if not self.is_configured():
            logger.warning(f"[{self.name}] Provider not configured; returning no results")
            return ProviderResult(provider=self.name, page=page)

        try:
            await self.prepare()
        except (httpx.HTTPError, *_PAYLOAD_ERRORS) as exc:
            return self._fail(page, f"could not prepare page {page}: {exc!r}")

        key = self.cache_key(page, **params)
        cached = await self._context.cache.get(key)
        if cached is not None:
            try:
                return self._result(page, cached, **params)
            except _PAYLOAD_ERRORS as exc:
                logger.warning(f"[{self.name}] Ignoring unreadable cached page {page}: {exc}")

        try:
            payload = await self.request(page, **params)
        except EndOfResults:
            logger.debug(f"[{self.name}] No results past page {page}")
            return ProviderResult(provider=self.name, page=page)
        except httpx.HTTPStatusError as exc:
            return self._fail(page, f"HTTP {exc.response.status_code} for page {page}")
        except httpx.HTTPError as exc:
            return self._fail(page, f"request failed for page {page}: {exc!r}")
        except ValueError as exc:
            return self._fail(page, f"malformed response for page {page}: {exc}")

        try:
            result = self._result(page, payload, **params)
        except _PAYLOAD_ERRORS as exc:
            return self._fail(page, f"unexpected payload shape for page {page}: {exc}")

        # Only payloads that mapped cleanly are worth keeping.
        await self._context.cache.set(key, payload)
        return result

    async def fetch_page(self, page: int = 1, **params: Any) -> list[MediaRecord]:
        result = await self.fetch(page, **params)
        return result.records

    def _result(self, page: int, payload: Any, **params: Any) -> ProviderResult:
        records = self.parse(payload, **params)
        accepted = [record for record in records if self.accepts(record)]
        return ProviderResult(provider=self.name, page=page, records=accepted)

    def accepts(self, record: MediaRecord) -> bool:
        if not record.title:
            return False
        return bool(record.poster_url) or not self.require_poster

    async def _get_json(self, url: str, *, params: dict[str, Any] | None = None) -> Any:
        response = await self._context.http.get(
            url,
            params=params,
            timeout=self.settings.request_timeout,
        )
        response.raise_for_status()
        return response.json()

    def _fail(self, page: int, message: str) -> ProviderResult:
        error = ProviderError(self.name, message)
        logger.warning(f"[{self.name}] {message}")
        return ProviderResult.failure(self.name, page, error)


def first_year(date_text: str | None) -> str | None:
    if not date_text or len(date_text) < 4 or not date_text[:4].isdigit():
        return None
    return date_text[:4]


def scaled_rating(value: Any, *, scale: float = 10.0) -> float | None:
    """Normalize a provider score onto 0-10."""
    if value is None:
        return None
    try:
        score = float(value)
    except (TypeError, ValueError):
        return None
    if scale != 10.0:
        score = score * 10.0 / scale
    return round(score, 2)


__all__ = [
    "CatalogProvider",
    "EndOfResults",
    "ProviderError",
    "ProviderResult",
    "first_year",
    "scaled_rating",
]
