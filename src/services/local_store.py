"""
Local (browser-style) bookmark persistence over a string key/value store.

All users' bookmarks live together as one JSON array under ``bookmarks``; each
user's custom order is a JSON array of id strings under
``bookmark_order_{user_id}``. Reads are forgiving (corrupt data reads as empty),
while failed writes of new data raise ``StorageError``.
"""
from __future__ import annotations

import json
import logging
import os
import uuid
from pathlib import Path
from typing import Any, Protocol

from schemas.bookmark import LocalBookmark, LocalBookmarkCreate
from services.bookmark_ordering import apply_custom_order
from services.exceptions import StorageError

logger = logging.getLogger(__name__)

BOOKMARKS_KEY = "bookmarks"
ORDER_KEY_PREFIX = "bookmark_order"


def order_key(user_id: str) -> str:
    """Storage key holding a user's custom bookmark order."""
    return f"{ORDER_KEY_PREFIX}_{user_id}"


class KeyValueStorage(Protocol):
    """String key/value storage with the same surface as a browser's localStorage."""

    def get_item(self, key: str) -> str | None:
        ...

    def set_item(self, key: str, value: str) -> None:
        ...

    def remove_item(self, key: str) -> None:
        ...


class MemoryStorage:
    """Dict-backed storage; contents are lost with the process."""

    def __init__(self, items: dict[str, str] | None = None) -> None:
        self._items: dict[str, str] = dict(items or {})

    def get_item(self, key: str) -> str | None:
        return self._items.get(key)

    def set_item(self, key: str, value: str) -> None:
        self._items[key] = value

    def remove_item(self, key: str) -> None:
        self._items.pop(key, None)


class JsonFileStorage:
    """
    Storage persisted as a single JSON object on disk.

    Every ``set_item``/``remove_item`` rewrites the whole file. The write goes to
    a temporary file that then replaces the original, so an interrupted write
    never leaves a truncated store behind.

    Raises:
        OSError: If the file cannot be read or written.
        ValueError: If the file does not hold a JSON object.
    """

    def __init__(self, path: str | os.PathLike) -> None:
        self.path = Path(path)

    def _read(self) -> dict[str, str]:
        if not self.path.exists():
            return {}
        text = self.path.read_text(encoding="utf-8")
        if not text.strip():
            return {}
        data = json.loads(text)
        if not isinstance(data, dict):
            raise ValueError(f"Storage file {self.path} does not contain a JSON object")
        return data

    def _write(self, data: dict[str, str]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_name(self.path.name + ".tmp")
        tmp_path.write_text(json.dumps(data, indent=2), encoding="utf-8")
        tmp_path.replace(self.path)

    def get_item(self, key: str) -> str | None:
        return self._read().get(key)

    def set_item(self, key: str, value: str) -> None:
        data = self._read()
        data[key] = value
        self._write(data)

    def remove_item(self, key: str) -> None:
        data = self._read()
        if key in data:
            del data[key]
            self._write(data)


class LocalBookmarkStore:
    """
    Bookmark store backed by a ``KeyValueStorage``.

    Records are kept as raw dicts in storage (unknown fields are preserved) and
    returned as ``LocalBookmark`` models. Ids are compared as strings, since
    older records may carry numeric ids.
    """

    def __init__(self, storage: KeyValueStorage) -> None:
        self.storage = storage

    def _load_records(self) -> list[dict[str, Any]]:
        raw = self.storage.get_item(BOOKMARKS_KEY)
        if not raw:
            return []
        data = json.loads(raw)
        if not isinstance(data, list):
            raise ValueError("Stored bookmarks are not a JSON array")
        return data

    def _save_records(self, records: list[dict[str, Any]]) -> None:
        self.storage.set_item(BOOKMARKS_KEY, json.dumps(records))

    def _load_order(self, user_id: str) -> list[str]:
        raw = self.storage.get_item(order_key(user_id))
        if not raw:
            return []
        data = json.loads(raw)
        if not isinstance(data, list):
            raise ValueError("Stored bookmark order is not a JSON array")
        return [str(bookmark_id) for bookmark_id in data]

    @staticmethod
    def _find(records: list[dict[str, Any]], bookmark_id: str, user_id: str) -> int | None:
        for index, record in enumerate(records):
            if (
                str(record.get("id")) == str(bookmark_id)
                and str(record.get("user_id")) == str(user_id)
            ):
                return index
        return None

    def list(self, user_id: str) -> list[LocalBookmark]:
        """
        Return the user's bookmarks in custom order, then newest first.

        Corrupt storage is logged and reads as an empty list.
        """
        try:
            records = self._load_records()
            order_ids = self._load_order(user_id)
            bookmarks = [
                LocalBookmark.model_validate(record)
                for record in records
                if str(record.get("user_id")) == str(user_id)
            ]
        except (OSError, ValueError):
            logger.exception("Error reading bookmarks from local storage")
            return []
        return apply_custom_order(bookmarks, order_ids)

    def get(self, bookmark_id: str, user_id: str) -> LocalBookmark | None:
        """Return one of the user's bookmarks, or None if missing or unreadable."""
        try:
            records = self._load_records()
            index = self._find(records, bookmark_id, user_id)
            if index is None:
                return None
            return LocalBookmark.model_validate(records[index])
        except (OSError, ValueError):
            logger.exception("Error reading bookmark %s from local storage", bookmark_id)
            return None

    def add(self, data: LocalBookmarkCreate) -> LocalBookmark:
        """
        Store a new bookmark at the head of the list and return it with its generated id.

        Raises:
            StorageError: If the storage cannot be read or written.
        """
        bookmark = LocalBookmark(id=str(uuid.uuid4()), **data.model_dump())
        try:
            records = self._load_records()
            records.insert(0, bookmark.model_dump())
            self._save_records(records)
        except (OSError, ValueError) as e:
            logger.exception("Error adding bookmark to local storage")
            raise StorageError("Failed to save bookmark") from e
        return bookmark

    def delete(self, bookmark_id: str, user_id: str) -> bool:
        """
        Delete one of the user's bookmarks and prune it from the user's order.

        Returns False if nothing matched or the storage failed.
        """
        try:
            records = self._load_records()
            index = self._find(records, bookmark_id, user_id)
            if index is None:
                return False
            del records[index]
            self._save_records(records)

            key = order_key(user_id)
            if self.storage.get_item(key):
                order_ids = [
                    order_id for order_id in self._load_order(user_id)
                    if order_id != str(bookmark_id)
                ]
                self.storage.set_item(key, json.dumps(order_ids))
        except (OSError, ValueError):
            logger.exception("Error deleting bookmark %s from local storage", bookmark_id)
            return False
        return True

    def add_tag(self, bookmark_id: str, tag: str, user_id: str) -> bool:
        """
        Append a tag to one of the user's bookmarks.

        Returns True if the tag was added. Returns False (and writes nothing) if
        the bookmark is missing, already has the tag, or the storage failed.
        """
        try:
            records = self._load_records()
            index = self._find(records, bookmark_id, user_id)
            if index is None:
                return False
            tags = list(records[index].get("tags") or [])
            if tag in tags:
                return False
            records[index]["tags"] = [*tags, tag]
            self._save_records(records)
        except (OSError, ValueError):
            logger.exception("Error adding tag to bookmark %s in local storage", bookmark_id)
            return False
        return True

    def save_order(self, ordered_ids: list[str | int], user_id: str) -> None:
        """
        Replace the user's custom order. Ids are stored as strings and not validated.

        Raises:
            StorageError: If the storage cannot be written.
        """
        try:
            self.storage.set_item(
                order_key(user_id),
                json.dumps([str(bookmark_id) for bookmark_id in ordered_ids]),
            )
        except (OSError, ValueError) as e:
            logger.exception("Error saving bookmark order to local storage")
            raise StorageError("Failed to save bookmark order") from e
