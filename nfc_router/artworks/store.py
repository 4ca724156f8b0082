"""Artwork store abstraction + JSON file implementation."""

import json
import os
from abc import ABC, abstractmethod

from nfc_router.artworks.models import ArtworkRecord
from nfc_router.errors import ArtworkStoreError


class ArtworkStore(ABC):
    """Abstract base for read-only artwork lookups by slug."""

    @abstractmethod
    async def get(self, slug: str) -> ArtworkRecord | None:
        """Look up an artwork. Returns None if absent.

        Raises ArtworkStoreError if the backing store cannot be read.
        """
        ...

    async def close(self) -> None:
        pass


class JSONArtworkStore(ArtworkStore):
    """File-backed artwork store. Reloads on mtime change.

    Expected layout: {"artworks": {"<slug>": {"title": ..., ...}, ...}}
    """

    def __init__(self, path: str):
        self._path = path
        self._artworks: dict[str, ArtworkRecord] = {}
        self._last_mtime: float = 0.0
        self._load()

    def _load(self) -> None:
        try:
            mtime = os.path.getmtime(self._path)
        except OSError:
            self._artworks = {}
            return

        if mtime == self._last_mtime:
            return

        try:
            with open(self._path, encoding="utf-8") as f:
                data = json.load(f)
            artworks = {
                slug: ArtworkRecord.from_mapping(slug, entry)
                for slug, entry in data.get("artworks", {}).items()
            }
        except (OSError, ValueError, TypeError, AttributeError) as e:
            raise ArtworkStoreError(f"Cannot read artwork file {self._path}: {e}") from e

        self._artworks = artworks
        self._last_mtime = mtime

    async def get(self, slug: str) -> ArtworkRecord | None:
        self._load()  # reload if file changed
        return self._artworks.get(slug)
