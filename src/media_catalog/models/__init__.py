from .media import MediaRecord, MediaType, TVEpisode, TVSeason
from .streaming import AnimeVariant, FallbackSource, StreamLink, StreamOptions, StreamStatus

__all__ = [
    "AnimeVariant",
    "FallbackSource",
    "MediaRecord",
    "MediaType",
    "StreamLink",
    "StreamOptions",
    "StreamStatus",
    "TVEpisode",
    "TVSeason",
]
