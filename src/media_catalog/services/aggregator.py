from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Sequence

from media_catalog.models import MediaRecord
from media_catalog.providers.base import CatalogProvider, ProviderResult

logger = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[None]]


class BulkAggregator:
    """Pulls page ranges from several providers in small concurrent batches.

    Providers are walked one after another. Within a provider the pages are
    split into batches that are fetched together, with a pause between
    batches to stay under upstream rate limits. A page that fails counts as
    an empty page and never aborts the load.
    """

    def __init__(self, *, sleep: Sleep = asyncio.sleep) -> None:
        self._sleep = sleep

    async def bulk_load(
        self,
        providers: Sequence[CatalogProvider],
        start_page: int,
        page_count: int,
        batch_size: int = 2,
        inter_batch_delay_ms: int = 100,
    ) -> list[MediaRecord]:
        if page_count <= 0:
            return []
        batch_size = max(batch_size, 1)
        end_page = start_page + page_count - 1

        collected: list[MediaRecord] = []
        for provider in providers:
            provider_records: list[MediaRecord] = []
            for batch_start in range(start_page, end_page + 1, batch_size):
                batch_end = min(batch_start + batch_size - 1, end_page)
                pages = list(range(batch_start, batch_end + 1))
                results = await asyncio.gather(
                    *(provider.fetch(page) for page in pages),
                    return_exceptions=True,
                )
                for page, result in zip(pages, results):
                    provider_records.extend(_page_records(provider, page, result))

                if batch_end < end_page:
                    await self._sleep(inter_batch_delay_ms / 1000)

            logger.info(
                f"[BULK] {provider.name}: loaded {len(provider_records)} items "
                f"(pages {start_page}-{end_page})"
            )
            collected.extend(provider_records)

        return collected


def _page_records(
    provider: CatalogProvider, page: int, result: ProviderResult | BaseException
) -> list[MediaRecord]:
    if isinstance(result, BaseException):
        logger.warning(f"[BULK] {provider.name}: error loading page {page}: {result!r}")
        return []
    if not result.ok:
        logger.warning(f"[BULK] {provider.name}: page {page} failed: {result.error}")
        return []
    return result.records


__all__ = ["BulkAggregator"]
