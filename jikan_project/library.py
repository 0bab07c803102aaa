"""
Favorites and recently viewed anime, kept in an injected key-value storage.
"""
from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from .client import JikanError


logger = logging.getLogger(__name__)

FAVORITES_KEY = "anime_favorites"
RECENTS_KEY = "anime_recents"
MAX_RECENTS = 10


class LibraryError(JikanError):
    """Invalid use of the anime library."""


class KeyValueStorage:
    """String slots addressed by key. Subclasses provide the backing store."""

    def get(self, key: str) -> Optional[str]:
        raise NotImplementedError

    def set(self, key: str, value: str) -> None:
        raise NotImplementedError


class MemoryStorage(KeyValueStorage):
    def __init__(self, initial: Optional[Dict[str, str]] = None) -> None:
        self.data: Dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self.data.get(key)

    def set(self, key: str, value: str) -> None:
        self.data[key] = value


class JsonFileStorage(KeyValueStorage):
    """All slots stored in one JSON object file; a missing file reads as empty."""

    def __init__(self, path: Path) -> None:
        self.path = Path(path)

    def get(self, key: str) -> Optional[str]:
        value = self._read().get(key)
        return value if isinstance(value, str) else None

    def set(self, key: str, value: str) -> None:
        data = self._read()
        data[key] = value
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with self.path.open("w", encoding="utf-8") as fh:
            json.dump(data, fh, ensure_ascii=False, indent=2)

    def _read(self) -> Dict[str, Any]:
        if not self.path.exists():
            return {}
        with self.path.open("r", encoding="utf-8") as fh:
            data = json.load(fh)
        if not isinstance(data, dict):
            raise LibraryError(f"Storage file {self.path} does not hold a JSON object")
        return data


class AnimeLibrary:
    """User favorites and recently viewed anime.

    Call :meth:`load` once before use; every mutation is written back to the
    storage immediately.
    """

    def __init__(self, storage: KeyValueStorage, *, max_recents: int = MAX_RECENTS) -> None:
        self.storage = storage
        self.max_recents = max_recents
        self._favorites: List[Dict[str, Any]] = []
        self._recents: List[Dict[str, Any]] = []
        self._loaded = False

    @property
    def loaded(self) -> bool:
        return self._loaded

    @property
    def favorites(self) -> Tuple[Dict[str, Any], ...]:
        return tuple(self._favorites)

    @property
    def recents(self) -> Tuple[Dict[str, Any], ...]:
        return tuple(self._recents)

    def load(self) -> None:
        self._favorites = self._load_slot(FAVORITES_KEY)
        self._recents = self._load_slot(RECENTS_KEY)
        self._loaded = True
        logger.debug("Library loaded: %d favorites, %d recents", len(self._favorites), len(self._recents))

    def is_favorite(self, mal_id: Any) -> bool:
        return any(item.get("mal_id") == mal_id for item in self._favorites)

    def toggle_favorite(self, anime: Dict[str, Any]) -> bool:
        """Add ``anime`` to favorites, or remove it if present. Returns the new state."""
        mal_id = self._require_ready(anime)
        if self.is_favorite(mal_id):
            self._favorites = [item for item in self._favorites if item.get("mal_id") != mal_id]
            added = False
        else:
            self._favorites.append(anime)
            added = True
        self._save_slot(FAVORITES_KEY, self._favorites)
        return added

    def add_to_recents(self, anime: Dict[str, Any]) -> None:
        mal_id = self._require_ready(anime)
        rest = [item for item in self._recents if item.get("mal_id") != mal_id]
        self._recents = [anime, *rest][: self.max_recents]
        self._save_slot(RECENTS_KEY, self._recents)

    # ------------------------------------------------------------------ #
    # Storage
    # ------------------------------------------------------------------ #
    def _require_ready(self, anime: Dict[str, Any]) -> Any:
        if not self._loaded:
            raise LibraryError("Library must be loaded before it is modified")
        mal_id = anime.get("mal_id") if isinstance(anime, dict) else None
        if mal_id is None:
            raise LibraryError("Anime entry has no mal_id")
        return mal_id

    def _load_slot(self, key: str) -> List[Dict[str, Any]]:
        raw = self.storage.get(key)
        if not raw:
            return []
        try:
            items = json.loads(raw)
        except json.JSONDecodeError as exc:
            logger.error("Discarding unreadable %s slot: %s", key, exc)
            return []
        if not isinstance(items, list):
            logger.error("Discarding %s slot: expected a list, got %s", key, type(items).__name__)
            return []
        return [item for item in items if isinstance(item, dict)]

    def _save_slot(self, key: str, items: List[Dict[str, Any]]) -> None:
        self.storage.set(key, json.dumps(items, ensure_ascii=False))
