"""Local filesystem attachment store for product images."""
from __future__ import annotations

import logging
import shutil
from pathlib import Path
from uuid import uuid4

logger = logging.getLogger(__name__)


class ImageStorage:
    """Stores image bytes under ``root`` and hands back a storage key.

    Keys have the form ``<hex>/<filename>`` so two images with the same
    filename never collide.
    """

    def __init__(self, root: str | Path) -> None:
        self._root = Path(root)

    @property
    def root(self) -> Path:
        return self._root

    def path_for(self, key: str) -> Path:
        """Return the file path of a storage key."""
        path = (self._root / key).resolve()
        if self._root.resolve() not in path.parents:
            raise ValueError(f"Storage key escapes the media root: {key!r}")
        return path

    def save(self, data: bytes, filename: str) -> str:
        """Persist ``data`` and return the key it was stored under."""
        safe_name = Path(filename).name or "image"
        key = f"{uuid4().hex}/{safe_name}"
        path = self.path_for(key)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)
        return key

    def open(self, key: str) -> bytes:
        """Return the bytes stored under ``key``."""
        return self.path_for(key).read_bytes()

    def exists(self, key: str) -> bool:
        return self.path_for(key).exists()

    def delete(self, key: str) -> None:
        """Remove a stored image and its key directory. Missing keys are ignored."""
        path = self.path_for(key)
        path.unlink(missing_ok=True)
        if path.parent != self._root.resolve() and path.parent.is_dir() and not any(path.parent.iterdir()):
            path.parent.rmdir()

    def clear(self) -> int:
        """Remove every stored image.

        Returns:
            Number of key directories removed
        """
        if not self._root.exists():
            return 0
        removed = 0
        for entry in self._root.iterdir():
            if entry.is_dir():
                shutil.rmtree(entry)
            else:
                entry.unlink()
            removed += 1
        logger.debug(f"Cleared {removed} stored image(s) from {self._root}")
        return removed
