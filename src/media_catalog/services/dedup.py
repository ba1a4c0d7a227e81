"""Cross-provider deduplication keyed by normalized title and year."""

from __future__ import annotations

import re
from collections.abc import Iterable

from media_catalog.models import MediaRecord

# Unicode word characters, so non-Latin titles keep their letters.
_PUNCTUATION = re.compile(r"[^\w\s]")
_WHITESPACE = re.compile(r"\s+")
_KEY_SEPARATOR = "_"


def normalize_title(title: str | None) -> str:
    if not title or not isinstance(title, str):
        return ""
    lowered = _PUNCTUATION.sub("", title.lower())
    return _WHITESPACE.sub(" ", lowered).strip()


def record_year(record: MediaRecord) -> str:
    if record.year:
        return str(record.year)
    if record.release_date:
        return record.release_date.split("-")[0][:4]
    return ""


def dedup_key(record: MediaRecord) -> str:
    normalized = normalize_title(record.title or record.original_title)
    return f"{normalized}{_KEY_SEPARATOR}{record_year(record)}"


def is_improvement(incoming: MediaRecord, stored: MediaRecord) -> bool:
    """Whether ``incoming`` carries better evidence than ``stored``.

    Checked in order: provider-backed over local, streamable over not,
    poster over none, genres over none.
    """
    if incoming.source and not stored.source:
        return True
    if incoming.has_streaming and not stored.has_streaming:
        return True
    if incoming.poster_url and not stored.poster_url:
        return True
    return bool(incoming.genres) and not stored.genres


class Deduplicator:
    """Merges records from many providers into one entry per title and year.

    First seen wins unless a later record is an improvement, in which case the
    earlier one is discarded entirely. A single pass; the outcome can depend
    on input order when two candidates each improve on the other.
    """

    def merge(self, records: Iterable[MediaRecord | None]) -> list[MediaRecord]:
        seen: dict[str, MediaRecord] = {}
        for record in records:
            if record is None or not (record.title or record.original_title):
                continue

            key = dedup_key(record)
            if key == _KEY_SEPARATOR:
                continue

            existing = seen.get(key)
            if existing is None or is_improvement(record, existing):
                seen[key] = record

        return list(seen.values())


def merge(records: Iterable[MediaRecord | None]) -> list[MediaRecord]:
    return Deduplicator().merge(records)


__all__ = ["Deduplicator", "dedup_key", "is_improvement", "merge", "normalize_title", "record_year"]
