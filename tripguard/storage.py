"""Itinerary persistence: the storage protocol plus JSON-file and in-memory backends."""

import logging
import re
from pathlib import Path
from typing import Iterable, Optional, Protocol

from pydantic import ValidationError

from tripguard.models import Itinerary

logger = logging.getLogger(__name__)

_DEFAULT_DATA_DIR = Path.home() / ".tripguard" / "itineraries"
_SAFE_ID = re.compile(r"[A-Za-z0-9_\-]+")


class StorageError(Exception):
    """Raised when an itinerary cannot be loaded or saved."""


class ItineraryNotFoundError(StorageError):
    """Raised when no itinerary exists for the requested id."""

    def __init__(self, itinerary_id: str) -> None:
        super().__init__(f"Itinerary {itinerary_id} not found")
        self.itinerary_id = itinerary_id


class ItineraryStorage(Protocol):
    """What the segment service needs from a storage backend.

    Implementations must round-trip ``version`` verbatim.
    """

    def load(self, itinerary_id: str) -> Itinerary: ...

    def save(self, itinerary: Itinerary) -> Itinerary: ...

    def exists(self, itinerary_id: str) -> bool: ...

    def delete(self, itinerary_id: str) -> None: ...

    def list_ids(self) -> list[str]: ...


class JsonItineraryStorage:
    """One pretty-printed JSON file per itinerary under ``data_dir``."""

    def __init__(self, data_dir: Optional[Path] = None) -> None:
        self.data_dir = Path(data_dir) if data_dir else _DEFAULT_DATA_DIR

    def _path_for(self, itinerary_id: str) -> Path:
        if not _SAFE_ID.fullmatch(itinerary_id):
            raise StorageError(f"Invalid itinerary id: {itinerary_id!r}")
        return self.data_dir / f"{itinerary_id}.json"

    def load(self, itinerary_id: str) -> Itinerary:
        path = self._path_for(itinerary_id)
        if not path.exists():
            raise ItineraryNotFoundError(itinerary_id)
        try:
            return Itinerary.model_validate_json(path.read_text(encoding="utf-8"))
        except (OSError, ValidationError) as exc:
            raise StorageError(f"Failed to load itinerary {itinerary_id}: {exc}") from exc

    def save(self, itinerary: Itinerary) -> Itinerary:
        path = self._path_for(itinerary.id)
        tmp_path = path.with_suffix(".json.tmp")
        try:
            self.data_dir.mkdir(parents=True, exist_ok=True)
            tmp_path.write_text(itinerary.model_dump_json(indent=2), encoding="utf-8")
            tmp_path.replace(path)
        except OSError as exc:
            raise StorageError(f"Failed to save itinerary {itinerary.id}: {exc}") from exc
        logger.info("Itinerary saved: %s (version %d)", path, itinerary.version)
        return itinerary

    def exists(self, itinerary_id: str) -> bool:
        return self._path_for(itinerary_id).exists()

    def delete(self, itinerary_id: str) -> None:
        path = self._path_for(itinerary_id)
        if not path.exists():
            raise ItineraryNotFoundError(itinerary_id)
        try:
            path.unlink()
        except OSError as exc:
            raise StorageError(f"Failed to delete itinerary {itinerary_id}: {exc}") from exc

    def list_ids(self) -> list[str]:
        if not self.data_dir.exists():
            return []
        return sorted(p.stem for p in self.data_dir.glob("*.json"))


class InMemoryItineraryStorage:
    """Dict-backed storage; hands out deep copies so callers can't alias stored state."""

    def __init__(self, itineraries: Optional[Iterable[Itinerary]] = None) -> None:
        self._items: dict[str, Itinerary] = {}
        for itinerary in itineraries or ():
            self.save(itinerary)

    def load(self, itinerary_id: str) -> Itinerary:
        try:
            return self._items[itinerary_id].model_copy(deep=True)
        except KeyError:
            raise ItineraryNotFoundError(itinerary_id) from None

    def save(self, itinerary: Itinerary) -> Itinerary:
        self._items[itinerary.id] = itinerary.model_copy(deep=True)
        return itinerary

    def exists(self, itinerary_id: str) -> bool:
        return itinerary_id in self._items

    def delete(self, itinerary_id: str) -> None:
        if itinerary_id not in self._items:
            raise ItineraryNotFoundError(itinerary_id)
        del self._items[itinerary_id]

    def list_ids(self) -> list[str]:
        return sorted(self._items)
