"""Shared test fixtures for tripguard."""

from datetime import datetime
from pathlib import Path

import pytest
import yaml

from tripguard.models import (
    ActivitySegment,
    FlightSegment,
    HotelSegment,
    Itinerary,
    Location,
    TransferSegment,
)
from tripguard.storage import InMemoryItineraryStorage

FIXTURES_DIR = Path(__file__).parent / "fixtures"


@pytest.fixture
def load_yaml():
    """Return a function that loads a YAML fixture file."""

    def _load(name: str) -> dict:
        path = FIXTURES_DIR / name
        with open(path) as f:
            return yaml.safe_load(f)

    return _load


@pytest.fixture
def tokyo_itinerary(load_yaml):
    """Clean Tokyo trip: flight, hotel, breakfast tour."""
    return Itinerary(**load_yaml("tokyo_trip.yaml"))


@pytest.fixture
def barcelona_itinerary(load_yaml):
    """Barcelona trip with a flight inside a hotel stay."""
    return Itinerary(**load_yaml("barcelona_conflicts.yaml"))


@pytest.fixture
def empty_itinerary():
    """Itinerary with no segments and no trip dates."""
    return Itinerary(id="empty-trip", title="Empty trip")


@pytest.fixture
def storage(empty_itinerary, tokyo_itinerary):
    """In-memory storage seeded with the empty and Tokyo itineraries."""
    return InMemoryItineraryStorage([empty_itinerary, tokyo_itinerary])


# ---------------------------------------------------------------------------
# Segment builders
# ---------------------------------------------------------------------------


def _dt(value):
    return datetime.fromisoformat(value) if isinstance(value, str) else value


@pytest.fixture
def make_flight():
    """Return a FlightSegment builder with sensible defaults."""

    def _make(
        flight_number="UA123",
        start="2025-01-10T10:00",
        end="2025-01-10T13:00",
        origin="SFO",
        destination="LAX",
        destination_city=None,
        **kwargs,
    ) -> FlightSegment:
        return FlightSegment(
            airline={"name": "United Airlines", "code": "UA"},
            flight_number=flight_number,
            origin=Location(name=origin, code=origin),
            destination=Location(name=destination, code=destination, city=destination_city),
            start_datetime=_dt(start),
            end_datetime=_dt(end),
            **kwargs,
        )

    return _make


@pytest.fixture
def make_hotel():
    """Return a HotelSegment builder; dates are check-in/check-out days."""

    def _make(
        property_name="Grand Hotel",
        check_in="2025-01-10",
        check_out="2025-01-12",
        city="Paris",
        **kwargs,
    ) -> HotelSegment:
        return HotelSegment(
            property_name=property_name,
            location=Location(name=property_name, city=city),
            start_datetime=_dt(f"{check_in}T15:00"),
            end_datetime=_dt(f"{check_out}T11:00"),
            **kwargs,
        )

    return _make


@pytest.fixture
def make_activity():
    """Return an ActivitySegment builder."""

    def _make(
        name="Louvre visit",
        start="2025-01-11T10:00",
        end="2025-01-11T13:00",
        city=None,
        location_name=None,
        **kwargs,
    ) -> ActivitySegment:
        location = None
        if city or location_name:
            location = Location(name=location_name or name, city=city)
        return ActivitySegment(
            name=name,
            location=location,
            start_datetime=_dt(start),
            end_datetime=_dt(end),
            **kwargs,
        )

    return _make


@pytest.fixture
def make_transfer():
    """Return a TransferSegment builder."""

    def _make(
        pickup="Hotel",
        dropoff="Museum",
        start="2025-01-11T09:00",
        end="2025-01-11T09:30",
        pickup_city=None,
        dropoff_city=None,
        **kwargs,
    ) -> TransferSegment:
        return TransferSegment(
            pickup_location=Location(name=pickup, city=pickup_city),
            dropoff_location=Location(name=dropoff, city=dropoff_city),
            start_datetime=_dt(start),
            end_datetime=_dt(end),
            **kwargs,
        )

    return _make
