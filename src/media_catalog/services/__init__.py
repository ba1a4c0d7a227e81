from .aggregator import BulkAggregator
from .catalog import CatalogService, MediaIdError, combine_media, parse_media_id
from .dedup import Deduplicator
from .enrichment import EnrichmentService
from .genres import GenreResolver
from .streaming import StreamingResolver

__all__ = [
    "BulkAggregator",
    "CatalogService",
    "Deduplicator",
    "EnrichmentService",
    "GenreResolver",
    "MediaIdError",
    "StreamingResolver",
    "combine_media",
    "parse_media_id",
]
