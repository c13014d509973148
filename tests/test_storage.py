"""Tests for JSON-file and in-memory itinerary storage."""

import json

import pytest

from tripguard.models import Itinerary
from tripguard.storage import (
    InMemoryItineraryStorage,
    ItineraryNotFoundError,
    JsonItineraryStorage,
    StorageError,
)


class TestJsonStorage:
    def test_save_and_load(self, tmp_path, tokyo_itinerary):
        storage = JsonItineraryStorage(tmp_path)
        storage.save(tokyo_itinerary)
        loaded = storage.load("tokyo-2025")
        assert loaded == tokyo_itinerary
        assert (tmp_path / "tokyo-2025.json").exists()

    def test_version_preserved(self, tmp_path, tokyo_itinerary):
        storage = JsonItineraryStorage(tmp_path)
        storage.save(tokyo_itinerary.model_copy(update={"version": 7}))
        assert storage.load("tokyo-2025").version == 7

    def test_file_is_readable_json(self, tmp_path, tokyo_itinerary):
        JsonItineraryStorage(tmp_path).save(tokyo_itinerary)
        data = json.loads((tmp_path / "tokyo-2025.json").read_text())
        assert data["segments"][0]["type"] == "FLIGHT"
        assert data["segments"][0]["flight_number"] == "UA837"

    def test_no_temp_file_left(self, tmp_path, tokyo_itinerary):
        JsonItineraryStorage(tmp_path).save(tokyo_itinerary)
        assert [p.name for p in tmp_path.iterdir()] == ["tokyo-2025.json"]

    def test_creates_directory(self, tmp_path, tokyo_itinerary):
        storage = JsonItineraryStorage(tmp_path / "nested" / "dir")
        storage.save(tokyo_itinerary)
        assert storage.exists("tokyo-2025")

    def test_missing(self, tmp_path):
        with pytest.raises(ItineraryNotFoundError) as exc_info:
            JsonItineraryStorage(tmp_path).load("nope")
        assert exc_info.value.itinerary_id == "nope"

    def test_corrupt_file(self, tmp_path):
        (tmp_path / "broken.json").write_text("{not json")
        with pytest.raises(StorageError):
            JsonItineraryStorage(tmp_path).load("broken")

    def test_unsafe_id_rejected(self, tmp_path):
        with pytest.raises(StorageError):
            JsonItineraryStorage(tmp_path).load("../etc/passwd")

    def test_list_and_delete(self, tmp_path, tokyo_itinerary, empty_itinerary):
        storage = JsonItineraryStorage(tmp_path)
        assert storage.list_ids() == []
        storage.save(tokyo_itinerary)
        storage.save(empty_itinerary)
        assert storage.list_ids() == ["empty-trip", "tokyo-2025"]
        storage.delete("empty-trip")
        assert storage.list_ids() == ["tokyo-2025"]
        with pytest.raises(ItineraryNotFoundError):
            storage.delete("empty-trip")

    def test_missing_directory_lists_nothing(self, tmp_path):
        assert JsonItineraryStorage(tmp_path / "absent").list_ids() == []


class TestInMemoryStorage:
    def test_seeded(self, tokyo_itinerary):
        storage = InMemoryItineraryStorage([tokyo_itinerary])
        assert storage.exists("tokyo-2025")
        assert storage.list_ids() == ["tokyo-2025"]

    def test_load_returns_copy(self, tokyo_itinerary):
        storage = InMemoryItineraryStorage([tokyo_itinerary])
        loaded = storage.load("tokyo-2025")
        loaded.segments.clear()
        assert len(storage.load("tokyo-2025").segments) == 3

    def test_save_stores_copy(self):
        itinerary = Itinerary(id="x", title="X")
        storage = InMemoryItineraryStorage()
        storage.save(itinerary)
        itinerary.title = "changed"
        assert storage.load("x").title == "X"

    def test_missing(self):
        with pytest.raises(ItineraryNotFoundError):
            InMemoryItineraryStorage().load("nope")

    def test_delete(self, tokyo_itinerary):
        storage = InMemoryItineraryStorage([tokyo_itinerary])
        storage.delete("tokyo-2025")
        assert not storage.exists("tokyo-2025")
        with pytest.raises(ItineraryNotFoundError):
            storage.delete("tokyo-2025")
