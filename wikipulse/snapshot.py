"""
Snapshot storage for collections.

Snapshots are stored one JSON file per key under a root directory:

    db_collection/<key>.json

The store treats the blob as opaque; encode_pages / decode_pages define
the page snapshot shape (page id -> flattened PageRecord).
"""

from __future__ import annotations

import json
import re
from pathlib import Path
from typing import Any, Iterable

from .models import PageRecord

_UNSAFE_KEY_CHARS = re.compile(r"[^A-Za-z0-9._-]")


class SnapshotStore:
    """Key -> JSON blob store backed by a directory."""

    def __init__(self, root: Path):
        """
        Initialize snapshot store.

        Args:
            root: Directory holding snapshot files (created on first write)
        """
        self.root = Path(root)

    @staticmethod
    def _file_name(key: str) -> str:
        cleaned = _UNSAFE_KEY_CHARS.sub("_", str(key)).strip("._")
        if not cleaned:
            raise ValueError(f"invalid snapshot key: {key!r}")
        return f"{cleaned}.json"

    def _path(self, key: str) -> Path:
        return self.root / self._file_name(key)

    def put(self, key: str, data: dict[str, Any]) -> Path:
        """Write a blob, replacing any previous one atomically."""
        self.root.mkdir(parents=True, exist_ok=True)
        path = self._path(key)
        temp_path = path.with_suffix(".tmp")
        temp_path.write_text(json.dumps(data, sort_keys=True), encoding="utf-8")
        temp_path.replace(path)
        return path

    def get(self, key: str) -> dict[str, Any] | None:
        """
        Read a blob.

        Returns None if no blob exists. Raises json.JSONDecodeError or
        OSError for unreadable files.
        """
        path = self._path(key)
        if not path.exists():
            return None
        data = json.loads(path.read_text(encoding="utf-8"))
        if not isinstance(data, dict):
            raise ValueError(f"snapshot {key!r} is not a JSON object")
        return data

    def exists(self, key: str) -> bool:
        return self._path(key).exists()

    def delete(self, key: str) -> bool:
        path = self._path(key)
        if path.exists():
            path.unlink()
            return True
        return False

    def keys(self) -> list[str]:
        """List stored snapshot keys (file stems)."""
        if not self.root.exists():
            return []
        return sorted(p.stem for p in self.root.glob("*.json"))


def encode_pages(pages: Iterable[PageRecord]) -> dict[str, Any]:
    """Flatten records into the snapshot shape."""
    return {page.id: page.to_dict() for page in pages}


def decode_pages(blob: dict[str, Any]) -> list[PageRecord]:
    """Rebuild records from the snapshot shape."""
    return [PageRecord.from_dict(data, page_id=page_id) for page_id, data in blob.items()]
