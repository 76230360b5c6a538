"""Local key-value cache for offline fallback of GET responses.

Every key is stored as its own JSON file inside the cache directory, named
by a hash of the key so arbitrary request paths can be used as keys.
"""

import hashlib
import json
import logging
from pathlib import Path
from typing import Any, Optional

logger = logging.getLogger(__name__)


class LocalCache:
    """Flat string-keyed store of JSON-serialisable values."""

    def __init__(self, cache_dir: Optional[Path] = None):
        """Initialize the cache.

        Args:
            cache_dir: Directory holding cache files. Defaults to
                      ~/.config/pylivedb/cache/
        """
        if cache_dir is None:
            cache_dir = Path.home() / ".config" / "pylivedb" / "cache"
        self.cache_dir = Path(cache_dir)

    def _get_cache_file(self, key: str) -> Path:
        digest = hashlib.sha256(key.encode("utf-8")).hexdigest()
        return self.cache_dir / f"{digest}.json"

    def get(self, key: str) -> Optional[Any]:
        """Load a cached value.

        Args:
            key: Cache key

        Returns:
            The decoded value, or None if the key is missing or unreadable
        """
        cache_file = self._get_cache_file(key)

        if not cache_file.exists():
            logger.debug(f"No cached data for {key}")
            return None

        try:
            with open(cache_file, encoding="utf-8") as f:
                entry = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"Error loading from local storage: {e}")
            return None

        if not isinstance(entry, dict) or entry.get("key") != key:
            return None
        return entry.get("value")

    def set(self, key: str, value: Any) -> bool:
        """Store a value under a key.

        Failures are logged and reported through the return value so that a
        broken cache never breaks the request that produced the value.

        Returns:
            True if the value was written
        """
        cache_file = self._get_cache_file(key)

        try:
            payload = json.dumps({"key": key, "value": value})
        except (TypeError, ValueError) as e:
            logger.warning(f"Error saving to local storage: {e}")
            return False

        try:
            self.cache_dir.mkdir(parents=True, exist_ok=True)
            with open(cache_file, "w", encoding="utf-8") as f:
                f.write(payload)
        except OSError as e:
            logger.warning(f"Error saving to local storage: {e}")
            return False

        logger.debug(f"Saved to local storage: {key}")
        return True

    def remove(self, key: str) -> bool:
        """Remove a key. Returns False if it was not cached or not removable."""
        cache_file = self._get_cache_file(key)
        if not cache_file.exists():
            return False
        try:
            cache_file.unlink()
        except OSError as e:
            logger.warning(f"Error removing from local storage: {e}")
            return False
        return True

    def clear(self) -> int:
        """Remove all cached entries.

        Entries that cannot be deleted are logged and skipped.

        Returns:
            Number of entries removed
        """
        if not self.cache_dir.exists():
            return 0
        removed = 0
        for cache_file in self.cache_dir.glob("*.json"):
            try:
                cache_file.unlink()
            except OSError as e:
                logger.warning(f"Error removing from local storage: {e}")
                continue
            removed += 1
        logger.debug(f"Cleared {removed} cached entries from {self.cache_dir}")
        return removed

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and self.get(key) is not None
