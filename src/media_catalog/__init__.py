"""Multi-source media catalog: provider aggregation, deduplication and stream fallback."""

__version__ = "0.1.0"

__all__ = ["__version__"]
