"""Disk-backed response cache shielding rate-limited upstream providers."""

from __future__ import annotations

import asyncio
import hashlib
import json
import logging
import re
import time
from collections.abc import Callable
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

DEFAULT_TTL_MS = 24 * 60 * 60 * 1000
_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9_.-]+")
_MAX_STEM_LENGTH = 120


def _now_ms() -> int:
    return int(time.time() * 1000)


class ResponseCache:
    """Key -> (timestamp, payload) store with one JSON file per key.

    Entries are written as ``{"timestamp": <epoch millis>, "data": <payload>}``.
    A read returns the payload only while ``now - timestamp < ttl``; stale
    files are left in place and overwritten by the next ``set``. Every I/O or
    decoding failure degrades to a miss.
    """

    def __init__(
        self,
        root: Path,
        *,
        ttl_ms: int = DEFAULT_TTL_MS,
        clock: Callable[[], int] = _now_ms,
    ) -> None:
        self._root = Path(root)
        self._ttl_ms = ttl_ms
        self._clock = clock

    @property
    def root(self) -> Path:
        return self._root

    @property
    def ttl_ms(self) -> int:
        return self._ttl_ms

    def path_for(self, key: str) -> Path:
        """Map a cache key to its file, keeping distinct keys in distinct files."""
        safe = _UNSAFE_CHARS.sub("_", key).strip("._") or "key"
        if safe == key and len(key) <= _MAX_STEM_LENGTH:
            return self._root / f"{key}.json"
        digest = hashlib.sha1(key.encode("utf-8")).hexdigest()[:12]
        return self._root / f"{safe[:_MAX_STEM_LENGTH]}-{digest}.json"

    async def get(self, key: str) -> Any | None:
        path = self.path_for(key)
        try:
            entry = await asyncio.to_thread(_read_entry, path)
        except (OSError, ValueError) as exc:
            logger.warning(f"[CACHE] Read error for {key}: {exc}")
            return None

        if entry is None:
            return None

        timestamp = entry.get("timestamp") if isinstance(entry, dict) else None
        if not isinstance(timestamp, (int, float)):
            logger.warning(f"[CACHE] Ignoring malformed entry for {key}")
            return None

        if self._clock() - timestamp < self._ttl_ms:
            return entry.get("data")
        logger.debug(f"[CACHE] Expired entry for {key}")
        return None

    async def set(self, key: str, payload: Any) -> None:
        path = self.path_for(key)
        entry = {"timestamp": self._clock(), "data": payload}
        try:
            await asyncio.to_thread(_write_entry, path, entry)
        except (OSError, TypeError, ValueError) as exc:
            logger.warning(f"[CACHE] Write error for {key}: {exc}")


def _read_entry(path: Path) -> Any | None:
    if not path.exists():
        return None
    with path.open("r", encoding="utf-8") as handle:
        return json.load(handle)


def _write_entry(path: Path, entry: dict[str, Any]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8") as handle:
        json.dump(entry, handle)


__all__ = ["DEFAULT_TTL_MS", "ResponseCache"]
