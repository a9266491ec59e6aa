# cache.py
"""
Local dataset cache.

One JSON file per (page kind, scope) under the store directory, e.g.
.store/players_all.json or .store/players_7.json:

    {
      "format_version": 1,
      "page_kind": "players",
      "scope": "all",
      "season": "5",
      "saved_at": "2026-10-19T12:00:00+00:00",
      "headers": ["Name", "#", "Race", "Team", ...],
      "rows": [["Grug", "#27", "Common Orc", "Red Star Pathfinders", ...], ...]
    }

Unreadable entries are logged and treated as a miss so callers fall back to
a live fetch. Entries never expire by time; `is_stale` only compares seasons.
"""
from __future__ import annotations

import json
import os
import tempfile
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from .errors import CacheError, ScrapeError
from .logging_utils import get_logger
from .models import Dataset, PageKind, Scope, TeamDirectory
from .settings import STORE_DIR

logger = get_logger(__name__)

FORMAT_VERSION = 1

CacheKey = Tuple[str, str]


class CacheStore:
    """Interface shared by the on-disk and in-memory stores."""

    def load(self, page_kind: PageKind | str, scope: Scope) -> Optional[Dataset]:
        raise NotImplementedError

    def save(self, dataset: Dataset) -> Optional[Path]:
        raise NotImplementedError

    def clear(self) -> int:
        raise NotImplementedError

    def is_stale(self, dataset: Dataset, current_season: Optional[str]) -> bool:
        """
        True only when both seasons are known and differ. A hint for the
        caller, never an automatic invalidation.
        """
        cached = (dataset.season or "").strip()
        current = (current_season or "").strip()
        return bool(cached and current and cached != current)

    # Team directory rides on the teams dataset entry
    def load_teams(self) -> Optional[TeamDirectory]:
        dataset = self.load(PageKind.TEAMS, Scope.all())
        if dataset is None or not dataset.records:
            return None
        try:
            return TeamDirectory.from_dataset(dataset)
        except ValueError as e:
            logger.warning("Ignoring cached team list: %s", e)
            return None

    def save_teams(self, teams: TeamDirectory, season: str = "") -> Optional[Path]:
        return self.save(teams.to_dataset(season))


class MemoryCacheStore(CacheStore):
    """Dict-backed store for tests and dry runs."""

    def __init__(self) -> None:
        self._data: Dict[CacheKey, Dataset] = {}
        self._lock = threading.Lock()

    def load(self, page_kind: PageKind | str, scope: Scope) -> Optional[Dataset]:
        key = (PageKind.parse(page_kind).value, scope.key)
        with self._lock:
            return self._data.get(key)

    def save(self, dataset: Dataset) -> Optional[Path]:
        with self._lock:
            self._data[dataset.key] = dataset
        return None

    def clear(self) -> int:
        with self._lock:
            count = len(self._data)
            self._data.clear()
        return count

    def keys(self) -> List[CacheKey]:
        with self._lock:
            return sorted(self._data)


class JsonCacheStore(CacheStore):
    def __init__(self, directory: Path | str = STORE_DIR) -> None:
        self.directory = Path(directory)
        self._locks: Dict[CacheKey, threading.Lock] = {}
        self._locks_guard = threading.Lock()

    def _lock_for(self, key: CacheKey) -> threading.Lock:
        with self._locks_guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = self._locks[key] = threading.Lock()
            return lock

    def path_for(self, page_kind: PageKind | str, scope: Scope) -> Path:
        kind = PageKind.parse(page_kind)
        return self.directory / f"{kind.value}_{scope.key}.json"

    # ===================== READ =====================

    def load(self, page_kind: PageKind | str, scope: Scope) -> Optional[Dataset]:
        kind = PageKind.parse(page_kind)
        path = self.path_for(kind, scope)
        if not path.exists():
            logger.debug("Cache miss: %s", path)
            return None

        with self._lock_for((kind.value, scope.key)):
            try:
                with open(path, "r", encoding="utf-8") as f:
                    data = json.load(f)
            except (OSError, ValueError) as e:
                logger.warning("Unreadable cache entry %s: %s", path, e)
                return None

        try:
            dataset = self._decode(data, kind, scope)
        except (ScrapeError, KeyError, TypeError, ValueError) as e:
            logger.warning("Ignoring corrupt cache entry %s: %s", path, e)
            return None

        logger.info("Loaded %s from cache: %d rows (season %s)", path.name, len(dataset), dataset.season or "?")
        return dataset

    @staticmethod
    def _decode(data: dict, kind: PageKind, scope: Scope) -> Dataset:
        if not isinstance(data, dict):
            raise ValueError("top level is not an object")
        version = data.get("format_version")
        if version != FORMAT_VERSION:
            raise ValueError(f"format_version {version!r} != {FORMAT_VERSION}")
        if data.get("page_kind") != kind.value or data.get("scope") != scope.key:
            raise ValueError(
                f"entry is for {data.get('page_kind')}/{data.get('scope')}, "
                f"expected {kind.value}/{scope.key}"
            )
        rows = data["rows"]
        headers = data.get("headers") or []
        if not isinstance(rows, list) or not all(isinstance(r, list) for r in rows):
            raise ValueError("rows must be a list of lists")
        return Dataset(
            page_kind=kind,
            scope=scope,
            season=data.get("season") or "",
            headers=tuple(headers),
            records=tuple(tuple(r) for r in rows),
        )

    # ===================== WRITE =====================

    def save(self, dataset: Dataset) -> Optional[Path]:
        """
        Replace the entry for the dataset's key with a whole new file.
        Raises CacheError if the file cannot be written.
        """
        path = self.path_for(dataset.page_kind, dataset.scope)
        payload = {
            "format_version": FORMAT_VERSION,
            "page_kind": dataset.page_kind.value,
            "scope": dataset.scope.key,
            "season": dataset.season,
            "saved_at": datetime.now(timezone.utc).isoformat(timespec="seconds"),
            "headers": list(dataset.headers),
            "rows": [list(r) for r in dataset.records],
        }

        with self._lock_for(dataset.key):
            tmp_path = None
            try:
                self.directory.mkdir(parents=True, exist_ok=True)
                fd, tmp_path = tempfile.mkstemp(dir=self.directory, prefix=path.stem, suffix=".tmp")
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    json.dump(payload, f, indent=2, ensure_ascii=False)
                os.replace(tmp_path, path)
            except OSError as e:
                if tmp_path and os.path.exists(tmp_path):
                    os.remove(tmp_path)
                raise CacheError(f"Could not write cache entry {path}: {e}", context={"path": str(path)}) from e

        logger.info("Saved %s: %d rows", path.name, len(dataset))
        return path

    def clear(self) -> int:
        """Delete every cache entry in the store directory; returns how many."""
        if not self.directory.exists():
            return 0
        removed = 0
        for path in sorted(self.directory.glob("*.json")):
            try:
                path.unlink()
                removed += 1
            except OSError as e:
                logger.warning("Could not remove %s: %s", path, e)
        logger.info("Cleared %d cache entries from %s", removed, self.directory)
        return removed
