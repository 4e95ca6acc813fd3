"""Local key/value storage and the persisted favorite set."""
import json
import os
from typing import Optional, List, Protocol
import logging

logger = logging.getLogger(__name__)

FAVORITES_KEY = "bookFavorites"


class StorageError(Exception):
    """Raised when persisted state cannot be read or written."""


class KeyValueStore(Protocol):
    def get_item(self, key: str) -> Optional[str]: ...

    def set_item(self, key: str, value: str) -> None: ...


class JsonFileStorage:
    """String key/value store kept in a single JSON file."""

    def __init__(self, path: str):
        self.path = path

    def _load(self) -> dict:
        if not os.path.exists(self.path):
            return {}
        try:
            with open(self.path, encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            raise StorageError(f"Cannot read {self.path}: {e}") from e
        return data if isinstance(data, dict) else {}

    def get_item(self, key: str) -> Optional[str]:
        value = self._load().get(key)
        return value if isinstance(value, str) else None

    def set_item(self, key: str, value: str):
        data = self._load()
        data[key] = value
        directory = os.path.dirname(self.path)
        tmp_path = f"{self.path}.tmp"
        try:
            if directory:
                os.makedirs(directory, exist_ok=True)
            # Write aside and swap in so a failed write keeps the old file.
            with open(tmp_path, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2)
            os.replace(tmp_path, self.path)
        except OSError as e:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
            raise StorageError(f"Cannot write {self.path}: {e}") from e


class FavoriteStore:
    """
    Set of favorited book ids.

    The whole list lives under one key as a JSON array and is read and
    rewritten on every toggle.
    """

    def __init__(self, storage: KeyValueStore, key: str = FAVORITES_KEY):
        self.storage = storage
        self.key = key

    def all(self) -> List[str]:
        """Favorited ids in the order they were added, without repeats."""
        raw = self.storage.get_item(self.key)
        if not raw:
            return []
        try:
            ids = json.loads(raw)
        except ValueError:
            logger.warning(f"Ignoring unreadable favorites under '{self.key}'")
            return []
        if not isinstance(ids, list):
            return []
        favorites = []
        for i in ids:
            if isinstance(i, str) and i not in favorites:
                favorites.append(i)
        return favorites

    def contains(self, book_id: str) -> bool:
        return book_id in self.all()

    def toggle(self, book_id: str) -> bool:
        """
        Flip membership of a book id and persist the list.

        Returns:
            True if the book is now a favorite
        """
        favorites = self.all()
        if book_id in favorites:
            favorites.remove(book_id)
            added = False
        else:
            favorites.append(book_id)
            added = True

        self.storage.set_item(self.key, json.dumps(favorites))
        logger.info(f"{'Added' if added else 'Removed'} favorite: {book_id}")
        return added
