"""Segment mutation service.

Every mutation follows the same path: load the itinerary, reject duplicates,
run the rule engine, then build a new itinerary (new segment list, version
+1, fresh ``updated_at``) and hand it to storage. Rejections and storage
failures come back as a ``MutationResult`` with ``error`` set; nothing here
raises for an expected failure.
"""

import logging
import threading
import weakref
from datetime import datetime
from typing import Any, Optional, Union

from pydantic import ValidationError

from tripguard.dedup import DuplicateResolver
from tripguard.engine import RuleEngine
from tripguard.models import (
    ErrorCode,
    ErrorKind,
    HotelSegment,
    Itinerary,
    MutationError,
    MutationResult,
    RuleOutcome,
    Segment,
    SegmentBase,
    ValidationResult,
    parse_segment,
)
from tripguard.storage import ItineraryNotFoundError, ItineraryStorage, StorageError
from tripguard.timecheck import validate_segment_time

logger = logging.getLogger(__name__)

SegmentInput = Union[SegmentBase, dict[str, Any]]


def _rejected(error: MutationError, warnings: Optional[list[RuleOutcome]] = None) -> MutationResult:
    return MutationResult(accepted=False, error=error, warnings=warnings or [])


def _schema_error(exc: ValidationError) -> MutationError:
    details = "; ".join(
        f"{' -> '.join(str(x) for x in err['loc'])}: {err['msg']}" for err in exc.errors()
    )
    return MutationError(
        kind=ErrorKind.VALIDATION,
        code=ErrorCode.CONSTRAINT_VIOLATION,
        message=f"Invalid segment: {details}",
        suggestion="Correct the segment fields and resubmit.",
    )


def _rule_error(result: ValidationResult) -> MutationError:
    outcome = result.first_error
    return MutationError(
        kind=ErrorKind.VALIDATION,
        code=ErrorCode.CONSTRAINT_VIOLATION,
        message=outcome.message,
        suggestion=outcome.suggestion,
        rule_id=outcome.rule_id,
        related_segment_ids=outcome.related_segment_ids,
    )


def _storage_error(exc: StorageError) -> MutationError:
    code = ErrorCode.NOT_FOUND if isinstance(exc, ItineraryNotFoundError) else ErrorCode.STORAGE_ERROR
    return MutationError(kind=ErrorKind.STORAGE, code=code, message=str(exc))


def _segment_not_found(itinerary_id: str, segment_id: str) -> MutationError:
    return MutationError(
        kind=ErrorKind.STORAGE,
        code=ErrorCode.NOT_FOUND,
        message=f"Segment {segment_id} not found in itinerary {itinerary_id}",
    )


def _next_version(itinerary: Itinerary, segments: list[Segment]) -> Itinerary:
    """Copy of ``itinerary`` with new segments, version +1 and a later ``updated_at``."""
    return itinerary.model_copy(
        update={
            "segments": segments,
            "version": itinerary.version + 1,
            "updated_at": max(datetime.now(), itinerary.updated_at),
        }
    )


class _ItineraryLock:
    """Mutex for one itinerary id; weak-referenceable, unlike ``threading.Lock``."""

    def __init__(self) -> None:
        self._lock = threading.Lock()

    def __enter__(self) -> "_ItineraryLock":
        self._lock.acquire()
        return self

    def __exit__(self, *exc_info) -> None:
        self._lock.release()


class SegmentService:
    """Adds, updates, deletes, and reorders segments on stored itineraries.

    Mutations of the same itinerary are serialized with an in-process lock
    keyed by itinerary id, so load -> validate -> save cannot interleave
    within one process. Nothing guards against other processes writing the
    same storage.
    """

    def __init__(
        self,
        storage: ItineraryStorage,
        engine: Optional[RuleEngine] = None,
        resolver: Optional[DuplicateResolver] = None,
    ) -> None:
        self.storage = storage
        self.engine = engine or RuleEngine()
        self.resolver = resolver or DuplicateResolver()
        # Entries vanish once no mutation holds them
        self._locks: "weakref.WeakValueDictionary[str, _ItineraryLock]" = (
            weakref.WeakValueDictionary()
        )
        self._locks_guard = threading.Lock()

    def _lock_for(self, itinerary_id: str) -> _ItineraryLock:
        with self._locks_guard:
            lock = self._locks.get(itinerary_id)
            if lock is None:
                lock = _ItineraryLock()
                self._locks[itinerary_id] = lock
            return lock

    def _commit(
        self,
        updated: Itinerary,
        segment: Optional[Segment],
        validation: Optional[ValidationResult] = None,
    ) -> MutationResult:
        try:
            saved = self.storage.save(updated)
        except StorageError as exc:
            logger.error("Save failed for itinerary %s: %s", updated.id, exc)
            return _rejected(_storage_error(exc))

        return MutationResult(
            accepted=True,
            itinerary=saved,
            segment_id=segment.id if segment is not None else None,
            warnings=validation.warnings if validation else [],
            info=validation.info if validation else [],
            time_check=validate_segment_time(segment) if validation else None,
        )

    def add(self, itinerary_id: str, candidate: SegmentInput) -> MutationResult:
        """Add a segment to an itinerary.

        Args:
            itinerary_id: Target itinerary.
            candidate: Segment model or raw mapping; an id is generated if absent.

        Returns:
            MutationResult whose ``segment_id`` is the new segment's id.
        """
        try:
            segment = parse_segment(candidate)
        except ValidationError as exc:
            return _rejected(_schema_error(exc))

        with self._lock_for(itinerary_id):
            try:
                itinerary = self.storage.load(itinerary_id)
            except StorageError as exc:
                return _rejected(_storage_error(exc))

            match = self.resolver.find_duplicate(itinerary.segments, segment)
            if match is not None:
                logger.info("Rejected duplicate %s on itinerary %s", segment.label, itinerary_id)
                return _rejected(
                    MutationError(
                        kind=ErrorKind.CONFLICT,
                        code=ErrorCode.DUPLICATE_SEGMENT,
                        message=match.message,
                        suggestion="Update the existing segment instead of adding a new one.",
                        existing_segment_id=match.existing.id,
                        related_segment_ids=[match.existing.id],
                    )
                )

            if itinerary.get_segment(segment.id) is not None:
                return _rejected(
                    MutationError(
                        kind=ErrorKind.CONFLICT,
                        code=ErrorCode.SEGMENT_EXISTS,
                        message=f"Segment {segment.id} already exists",
                        suggestion="Update the existing segment or omit the id.",
                        existing_segment_id=segment.id,
                        related_segment_ids=[segment.id],
                    )
                )

            validation = self.engine.validate_add(itinerary, segment)
            if not validation.valid:
                logger.info(
                    "Rejected %s on itinerary %s: %s",
                    segment.label,
                    itinerary_id,
                    validation.first_error.message,
                )
                return _rejected(_rule_error(validation), validation.warnings)

            updated = _next_version(itinerary, [*itinerary.segments, segment])
            result = self._commit(updated, segment, validation)
            if result.accepted:
                logger.info(
                    "Added %s %s to itinerary %s (version %d)",
                    segment.type,
                    segment.id,
                    itinerary_id,
                    updated.version,
                )
            return result

    def update(
        self, itinerary_id: str, segment_id: str, patch: Union[SegmentInput, dict[str, Any]]
    ) -> MutationResult:
        """Apply a partial update to one segment.

        ``patch`` is merged over the stored segment; the id never changes.
        The result is re-validated, checked for duplicates against the other
        segments, and run through the rule engine.
        """
        if isinstance(patch, SegmentBase):
            patch = patch.model_dump(exclude_unset=True)

        with self._lock_for(itinerary_id):
            try:
                itinerary = self.storage.load(itinerary_id)
            except StorageError as exc:
                return _rejected(_storage_error(exc))

            existing = itinerary.get_segment(segment_id)
            if existing is None:
                return _rejected(_segment_not_found(itinerary_id, segment_id))

            merged = {**existing.model_dump(), **patch, "id": segment_id}
            # Stored check dates follow the old timestamps; re-derive them when the stay moves
            if isinstance(existing, HotelSegment):
                if "start_datetime" in patch and "check_in_date" not in patch:
                    merged.pop("check_in_date", None)
                if "end_datetime" in patch and "check_out_date" not in patch:
                    merged.pop("check_out_date", None)
            try:
                updated_segment = parse_segment(merged)
            except ValidationError as exc:
                return _rejected(_schema_error(exc))

            match = self.resolver.find_duplicate(
                itinerary.segments, updated_segment, exclude_id=segment_id
            )
            if match is not None:
                return _rejected(
                    MutationError(
                        kind=ErrorKind.CONFLICT,
                        code=ErrorCode.DUPLICATE_SEGMENT,
                        message=match.message,
                        suggestion="Edit the existing segment instead of creating a second copy.",
                        existing_segment_id=match.existing.id,
                        related_segment_ids=[match.existing.id],
                    )
                )

            validation = self.engine.validate_update(itinerary, segment_id, updated_segment)
            if not validation.valid:
                return _rejected(_rule_error(validation), validation.warnings)

            segments = [updated_segment if s.id == segment_id else s for s in itinerary.segments]
            result = self._commit(_next_version(itinerary, segments), updated_segment, validation)
            if result.accepted:
                logger.info("Updated segment %s on itinerary %s", segment_id, itinerary_id)
            return result

    def delete(self, itinerary_id: str, segment_id: str) -> MutationResult:
        """Remove a segment. No duplicate or rule checks apply."""
        with self._lock_for(itinerary_id):
            try:
                itinerary = self.storage.load(itinerary_id)
            except StorageError as exc:
                return _rejected(_storage_error(exc))

            target = itinerary.get_segment(segment_id)
            if target is None:
                return _rejected(_segment_not_found(itinerary_id, segment_id))

            segments = [s for s in itinerary.segments if s.id != segment_id]
            result = self._commit(_next_version(itinerary, segments), None)
            if result.accepted:
                result.segment_id = segment_id
                logger.info("Deleted segment %s from itinerary %s", segment_id, itinerary_id)
            return result

    def reorder(self, itinerary_id: str, segment_ids: list[str]) -> MutationResult:
        """Store segments in the given order; ``segment_ids`` must name every segment once."""
        with self._lock_for(itinerary_id):
            try:
                itinerary = self.storage.load(itinerary_id)
            except StorageError as exc:
                return _rejected(_storage_error(exc))

            by_id = {s.id: s for s in itinerary.segments}
            unknown = [sid for sid in segment_ids if sid not in by_id]
            if unknown:
                return _rejected(
                    MutationError(
                        kind=ErrorKind.VALIDATION,
                        code=ErrorCode.CONSTRAINT_VIOLATION,
                        message=f"Unknown segment ids: {', '.join(unknown)}",
                        related_segment_ids=unknown,
                    )
                )
            if len(segment_ids) != len(by_id) or len(set(segment_ids)) != len(segment_ids):
                return _rejected(
                    MutationError(
                        kind=ErrorKind.VALIDATION,
                        code=ErrorCode.CONSTRAINT_VIOLATION,
                        message=(
                            f"Segment order must list all {len(by_id)} segments exactly once, "
                            f"got {len(segment_ids)}"
                        ),
                    )
                )

            return self._commit(
                _next_version(itinerary, [by_id[sid] for sid in segment_ids]), None
            )
