"""Domain models for tripguard.

Pydantic models for itineraries and their segments, rule outcomes,
validation results, time-of-day checks, and segment mutation results.
"""

import uuid
from datetime import date, datetime
from enum import Enum
from typing import Annotated, Any, Literal, Optional, Union

from pydantic import BaseModel, Field, TypeAdapter, field_validator, model_validator


# --- Enums ---


class SegmentType(str, Enum):
    """Kinds of itinerary segment."""

    FLIGHT = "FLIGHT"
    HOTEL = "HOTEL"
    ACTIVITY = "ACTIVITY"
    TRANSFER = "TRANSFER"
    MEETING = "MEETING"
    CUSTOM = "CUSTOM"


class SegmentStatus(str, Enum):
    """Booking status of a segment."""

    CONFIRMED = "CONFIRMED"
    TENTATIVE = "TENTATIVE"
    COMPLETED = "COMPLETED"


class SegmentSource(str, Enum):
    """Where a segment came from."""

    USER = "user"  # Entered by hand
    AGENT = "agent"  # Added by the trip designer assistant
    IMPORT = "import"  # Parsed from a confirmation email, PDF, etc.


class TransferType(str, Enum):
    """Ground transfer modes."""

    TAXI = "TAXI"
    SHUTTLE = "SHUTTLE"
    PRIVATE = "PRIVATE"
    PUBLIC = "PUBLIC"
    RAIL = "RAIL"
    FERRY = "FERRY"
    OTHER = "OTHER"


class Severity(str, Enum):
    """Rule and time-check severity."""

    ERROR = "error"  # Blocks the mutation
    WARNING = "warning"  # Allowed, surfaced to the user
    INFO = "info"  # Advisory only


class TimeIssueCategory(str, Enum):
    """Grouping for time-of-day issues."""

    TOO_EARLY = "too_early"
    TOO_LATE = "too_late"
    UNUSUAL = "unusual"
    MEAL_TIMING = "meal_timing"
    BUSINESS_HOURS = "business_hours"
    SEMANTIC_MISMATCH = "semantic_mismatch"


class ErrorKind(str, Enum):
    """Rejection classes returned by the segment service."""

    CONFLICT = "conflict"
    VALIDATION = "validation"
    STORAGE = "storage"


class ErrorCode(str, Enum):
    """Machine-readable rejection codes."""

    DUPLICATE_SEGMENT = "DUPLICATE_SEGMENT"
    SEGMENT_EXISTS = "SEGMENT_EXISTS"
    CONSTRAINT_VIOLATION = "CONSTRAINT_VIOLATION"
    NOT_FOUND = "NOT_FOUND"
    STORAGE_ERROR = "STORAGE_ERROR"


def generate_id() -> str:
    """Return a new random identifier."""
    return str(uuid.uuid4())


# --- Shared value objects ---


class Coordinates(BaseModel):
    """Latitude/longitude in decimal degrees."""

    latitude: float = Field(ge=-90, le=90)
    longitude: float = Field(ge=-180, le=180)


class Location(BaseModel):
    """A named place: airport, venue, hotel, station."""

    name: str
    code: Optional[str] = None
    city: Optional[str] = None
    country: Optional[str] = None
    coordinates: Optional[Coordinates] = None

    @field_validator("code", mode="before")
    @classmethod
    def uppercase_code(cls, v: Optional[str]) -> Optional[str]:
        return v.upper() if isinstance(v, str) else v


class Company(BaseModel):
    """Carrier or operator."""

    name: str
    code: Optional[str] = None


class Traveler(BaseModel):
    """A person on the trip."""

    id: str = Field(default_factory=generate_id)
    first_name: str
    last_name: str = ""
    email: Optional[str] = None

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


# --- Segments ---


class SegmentBase(BaseModel):
    """Fields common to every segment type."""

    id: str = Field(default_factory=generate_id)
    status: SegmentStatus = SegmentStatus.CONFIRMED
    start_datetime: datetime
    end_datetime: datetime
    traveler_ids: list[str] = Field(default_factory=list)
    source: SegmentSource = SegmentSource.USER
    notes: Optional[str] = None
    metadata: dict[str, Any] = Field(default_factory=dict)

    @field_validator("start_datetime", "end_datetime")
    @classmethod
    def drop_timezone(cls, v: datetime) -> datetime:
        # Stored as wall-clock instants; no conversion
        return v.replace(tzinfo=None) if v.tzinfo is not None else v

    @property
    def segment_type(self) -> SegmentType:
        return SegmentType(self.type)

    @property
    def label(self) -> str:
        """Short human-readable name for messages and tables."""
        return self.segment_type.value.title()


class FlightSegment(SegmentBase):
    """A scheduled flight."""

    type: Literal["FLIGHT"] = "FLIGHT"
    airline: Company
    flight_number: str = Field(min_length=1)
    origin: Location
    destination: Location

    @field_validator("flight_number", mode="before")
    @classmethod
    def normalize_flight_number(cls, v: str) -> str:
        return "".join(v.split()).upper() if isinstance(v, str) else v

    @property
    def label(self) -> str:
        return f"Flight {self.flight_number}"


class HotelSegment(SegmentBase):
    """A hotel stay.

    Check-in/check-out dates default to the calendar days of the start and
    end timestamps when omitted. When given, they must be those same days.
    """

    type: Literal["HOTEL"] = "HOTEL"
    property_name: str = Field(min_length=1)
    location: Location
    check_in_date: Optional[date] = None
    check_out_date: Optional[date] = None
    room_count: int = Field(default=1, ge=1)

    @model_validator(mode="after")
    def default_stay_dates(self) -> "HotelSegment":
        if self.check_in_date is None:
            self.check_in_date = self.start_datetime.date()
        elif self.check_in_date != self.start_datetime.date():
            raise ValueError(
                f"check_in_date {self.check_in_date} does not match start_datetime "
                f"{self.start_datetime.date()}"
            )
        if self.check_out_date is None:
            self.check_out_date = self.end_datetime.date()
        elif self.check_out_date != self.end_datetime.date():
            raise ValueError(
                f"check_out_date {self.check_out_date} does not match end_datetime "
                f"{self.end_datetime.date()}"
            )
        return self

    @property
    def nights(self) -> int:
        return (self.check_out_date - self.check_in_date).days

    @property
    def label(self) -> str:
        return self.property_name


class ActivitySegment(SegmentBase):
    """A tour, meal, show, or other planned activity."""

    type: Literal["ACTIVITY"] = "ACTIVITY"
    name: str = Field(min_length=1)
    description: Optional[str] = None
    location: Optional[Location] = None
    category: Optional[str] = None

    @property
    def is_dining(self) -> bool:
        category = (self.category or "").lower()
        return any(word in category for word in ("dining", "restaurant", "food"))

    @property
    def label(self) -> str:
        return self.name


class TransferSegment(SegmentBase):
    """Ground transport between two places."""

    type: Literal["TRANSFER"] = "TRANSFER"
    transfer_type: TransferType = TransferType.TAXI
    pickup_location: Location
    dropoff_location: Location

    @property
    def label(self) -> str:
        return f"{self.transfer_type.value.title()} transfer"


class MeetingSegment(SegmentBase):
    """A business meeting."""

    type: Literal["MEETING"] = "MEETING"
    title: str = Field(min_length=1)
    location: Optional[Location] = None
    attendees: list[str] = Field(default_factory=list)

    @property
    def label(self) -> str:
        return self.title


class CustomSegment(SegmentBase):
    """Anything that doesn't fit the other types."""

    type: Literal["CUSTOM"] = "CUSTOM"
    title: str = Field(min_length=1)
    location: Optional[Location] = None
    description: Optional[str] = None

    @property
    def label(self) -> str:
        return self.title


Segment = Annotated[
    Union[
        FlightSegment,
        HotelSegment,
        ActivitySegment,
        TransferSegment,
        MeetingSegment,
        CustomSegment,
    ],
    Field(discriminator="type"),
]

_SEGMENT_ADAPTER: TypeAdapter = TypeAdapter(Segment)


def parse_segment(data: Any) -> Segment:
    """Validate a raw mapping (or segment) into the matching segment model."""
    if isinstance(data, SegmentBase):
        return data
    return _SEGMENT_ADAPTER.validate_python(data)


# --- Itinerary ---


class Itinerary(BaseModel):
    """Aggregate root: one trip and all of its segments."""

    id: str = Field(default_factory=generate_id)
    version: int = Field(default=1, ge=0)
    created_at: datetime = Field(default_factory=datetime.now)
    updated_at: datetime = Field(default_factory=datetime.now)
    title: str
    description: Optional[str] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    destinations: list[Location] = Field(default_factory=list)
    travelers: list[Traveler] = Field(default_factory=list)
    segments: list[Segment] = Field(default_factory=list)
    tags: list[str] = Field(default_factory=list)
    metadata: dict[str, Any] = Field(default_factory=dict)

    @field_validator("created_at", "updated_at")
    @classmethod
    def to_local_naive(cls, v: datetime) -> datetime:
        # Audit timestamps compare against datetime.now(), so aware values become local time
        return v.astimezone().replace(tzinfo=None) if v.tzinfo is not None else v

    @property
    def has_trip_dates(self) -> bool:
        return self.start_date is not None and self.end_date is not None

    def get_segment(self, segment_id: str) -> Optional[Segment]:
        """Return the segment with the given id, or None."""
        for seg in self.segments:
            if seg.id == segment_id:
                return seg
        return None

    def sorted_segments(self) -> list[Segment]:
        """Segments in start-time order (display order)."""
        return sorted(self.segments, key=lambda s: s.start_datetime)

    def segments_of_type(self, segment_type: SegmentType) -> list[Segment]:
        return [s for s in self.segments if s.type == segment_type.value]


# --- Result Models ---


class RuleOutcome(BaseModel):
    """Result of evaluating one rule against a candidate segment."""

    rule_id: str = ""
    rule_name: str = ""
    passed: bool
    severity: Severity = Severity.ERROR
    message: str = ""
    suggestion: str = ""
    related_segment_ids: list[str] = Field(default_factory=list)
    confidence: Optional[float] = Field(default=None, ge=0, le=1)


class ValidationResult(BaseModel):
    """Aggregated rule outcomes for one candidate segment."""

    segment_id: Optional[str] = None
    operation: str = "add"
    errors: list[RuleOutcome] = Field(default_factory=list)
    warnings: list[RuleOutcome] = Field(default_factory=list)
    info: list[RuleOutcome] = Field(default_factory=list)

    @property
    def valid(self) -> bool:
        return not self.errors

    @property
    def first_error(self) -> Optional[RuleOutcome]:
        return self.errors[0] if self.errors else None

    @property
    def error_count(self) -> int:
        return len(self.errors)

    @property
    def warning_count(self) -> int:
        return len(self.warnings)


class TimeCheck(BaseModel):
    """Time-of-day plausibility check for one segment."""

    is_valid: bool = True
    severity: Optional[Severity] = None
    issue: str = ""
    details: str = ""
    suggested_time: Optional[str] = None  # "HH:MM"
    category: Optional[TimeIssueCategory] = None


class SegmentTimeIssue(BaseModel):
    """A segment paired with its failed time check."""

    segment: Segment
    check: TimeCheck


class MutationError(BaseModel):
    """Why a segment mutation was rejected."""

    kind: ErrorKind
    code: ErrorCode
    message: str
    suggestion: str = ""
    rule_id: Optional[str] = None
    existing_segment_id: Optional[str] = None
    related_segment_ids: list[str] = Field(default_factory=list)


class MutationResult(BaseModel):
    """Outcome of a segment add/update/delete/reorder.

    On success ``itinerary`` is the persisted copy and ``segment_id`` names
    the segment that was touched; on rejection ``error`` says why and the
    stored itinerary is unchanged.
    """

    accepted: bool
    itinerary: Optional[Itinerary] = None
    segment_id: Optional[str] = None
    error: Optional[MutationError] = None
    warnings: list[RuleOutcome] = Field(default_factory=list)
    info: list[RuleOutcome] = Field(default_factory=list)
    time_check: Optional[TimeCheck] = None

    @property
    def segment(self) -> Optional[Segment]:
        """The added or updated segment, looked up by ``segment_id``."""
        if self.itinerary is None or self.segment_id is None:
            return None
        return self.itinerary.get_segment(self.segment_id)
