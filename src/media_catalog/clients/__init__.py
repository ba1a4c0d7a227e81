from .omdb import OMDB_BASE_URL, OMDbClient, OMDbTitle

__all__ = ["OMDB_BASE_URL", "OMDbClient", "OMDbTitle"]
