"""
Download cache for remote tabular datasets.

Remote CSVs are fetched once and stored under the project cache directory,
keyed by a hash of their URL.
"""

import hashlib
from pathlib import Path

import pandas as pd

from casebook.utils.logging import get_logger

log = get_logger(__name__)


class DatasetCache:
    """
    URL-addressed cache of downloaded CSV files.

    Cache files are named ``{stem}_{hash}.csv`` where ``hash`` is derived
    from the source URL, so changing a configured URL never reuses a
    stale copy.
    """

    def __init__(self, cache_dir: Path) -> None:
        """
        Initialize dataset cache.

        Args:
            cache_dir: Directory for cached files.
        """
        self.cache_dir = cache_dir

    def get_cache_path(self, url: str) -> Path:
        """
        Get path for the cached copy of a URL.

        Args:
            url: Source URL.

        Returns:
            Path to cache file (may not exist yet).
        """
        key_hash = hashlib.md5(url.encode()).hexdigest()[:12]
        stem = Path(url.split("?", 1)[0]).stem or "dataset"
        return self.cache_dir / f"{stem}_{key_hash}.csv"

    def fetch(self, url: str, *, refresh: bool = False) -> Path:
        """
        Return a local copy of ``url``, downloading it if needed.

        Args:
            url: Source URL (anything ``pandas.read_csv`` accepts).
            refresh: Re-download even if a cached copy exists.

        Returns:
            Path to the cached CSV file.
        """
        cache_path = self.get_cache_path(url)

        if cache_path.exists() and not refresh:
            log.debug("Cache hit", url=url, path=str(cache_path))
            return cache_path

        log.info("Downloading dataset", url=url)
        df = pd.read_csv(url)

        self.cache_dir.mkdir(parents=True, exist_ok=True)
        df.to_csv(cache_path, index=False)
        log.info("Cached dataset", url=url, path=str(cache_path), rows=len(df))
        return cache_path

    def invalidate(self, url: str) -> bool:
        """
        Remove the cached copy of a URL.

        Args:
            url: Source URL.

        Returns:
            True if a cached file was removed.
        """
        cache_path = self.get_cache_path(url)
        if cache_path.exists():
            cache_path.unlink()
            log.debug("Cache invalidated", url=url)
            return True
        return False

    def clear(self) -> int:
        """
        Clear all cached datasets.

        Returns:
            Number of files removed.
        """
        if not self.cache_dir.exists():
            return 0

        count = 0
        for cache_file in self.cache_dir.glob("*.csv"):
            cache_file.unlink()
            count += 1

        log.info("Cache cleared", files_removed=count)
        return count
