from .anilist import AniListProvider
from .base import CatalogProvider, EndOfResults, ProviderError, ProviderResult
from .factory import BULK_PRESETS, BulkPreset, build_providers, get_preset
from .jikan import JikanProvider
from .tmdb import TMDBProvider
from .tvmaze import TVMazeProvider

__all__ = [
    "AniListProvider",
    "BULK_PRESETS",
    "BulkPreset",
    "CatalogProvider",
    "EndOfResults",
    "JikanProvider",
    "ProviderError",
    "ProviderResult",
    "TMDBProvider",
    "TVMazeProvider",
    "build_providers",
    "get_preset",
]
