"""Create, update, import and delete schedule entries.

Every mutation runs the same pipeline: normalize the request, check the
per-kind rules, check room capacity, then look for a colliding entry. Checks
and the write share one session transaction, guarded by a per-date lock, so
two requests racing for the same slot cannot both pass validation.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import datetime, timezone
import logging

from sqlalchemy.orm import Session

from medsched.core.config import get_settings
from medsched.core.exceptions import (
    BatchImportError,
    ReferenceNotFoundError,
    ResourceNotFoundError,
    ScheduleConflictError,
    ScheduleRejection,
    ScheduleRuleError,
)
from medsched.models.course import Course
from medsched.models.schedule import ActivityKind, ScheduleEntry
from medsched.schemas.schedule import BatchValidationOutcome, ScheduleEntryIn, ValidationOutcome
from medsched.services.activity_kinds import default_session_count, get_descriptor
from medsched.services.capacity import CapacityValidator
from medsched.services.cohorts import CohortRef, CohortResolver
from medsched.services.conflict_service import Conflict, ConflictDetector
from medsched.services.explainer import ConflictExplainer
from medsched.services.repository import ScheduleRepository
from medsched.services.rules import check_scheduling_rules
from medsched.services.slots import ScheduleSlot

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MutationContext:
    actor_id: str | None = None


@dataclass
class MutationResult:
    entry: ScheduleEntry
    instructor_ids: list[str] = field(default_factory=list)
    student_ids: list[str] = field(default_factory=list)


class _Engine:
    """One resolver and its dependents, shared for the length of a single mutation."""

    def __init__(self, repository: ScheduleRepository) -> None:
        self.resolver = CohortResolver(repository)
        self.capacity = CapacityValidator(repository, self.resolver)
        self.detector = ConflictDetector(repository, self.resolver)
        self.explainer = ConflictExplainer(repository, self.resolver)


class ScheduleMutationService:
    def __init__(self, db: Session, context: MutationContext) -> None:
        self.db = db
        self.context = context
        self.repository = ScheduleRepository(db)

    def _load_course(self, course_code: str) -> Course:
        course = self.repository.get_course(course_code)
        if course is None:
            raise ReferenceNotFoundError("course", course_code, "Mata kuliah tidak ditemukan")
        return course

    def _build_slot(
        self,
        kind: ActivityKind,
        request: ScheduleEntryIn,
        course: Course,
        *,
        entry_id: str | None = None,
    ) -> ScheduleSlot:
        cohorts: tuple[CohortRef, ...] = ()
        if request.cohort is not None:
            cohorts = CohortRef.many(request.cohort.type, request.cohort.ids)
        return ScheduleSlot(
            kind=kind,
            course_code=course.code,
            date=request.date,
            start_time=request.start_time,
            end_time=request.end_time,
            semester=course.semester,
            room_id=request.room_id,
            instructor_ids=tuple(request.instructor_ids),
            coordinator_ids=tuple(request.coordinator_ids),
            cohorts=cohorts,
            session_count=request.session_count or default_session_count(kind, request.pbl_type),
            pbl_type=request.pbl_type,
            topic=request.topic,
            entry_id=entry_id,
        )

    def _conflict_error(
        self,
        engine: _Engine,
        candidate: ScheduleSlot,
        conflict: Conflict,
        *,
        subject: str | None = None,
        extra: dict | None = None,
    ) -> ScheduleConflictError:
        fragments = engine.explainer.explain(candidate, conflict.existing)
        details = conflict.as_details()
        details.update(extra or {})
        return ScheduleConflictError(
            engine.explainer.message(conflict, fragments, subject=subject),
            conflict=details,
            fragments=fragments,
        )

    def _check(self, engine: _Engine, candidate: ScheduleSlot, course: Course, ignore_id: str | None) -> None:
        check_scheduling_rules(candidate, course, self.repository)
        engine.capacity.validate(candidate)
        conflict = engine.detector.find_conflict(candidate, ignore_id=ignore_id)
        if conflict is not None:
            raise self._conflict_error(engine, candidate, conflict)

    def _result(self, engine: _Engine, entry: ScheduleEntry, candidate: ScheduleSlot) -> MutationResult:
        instructor_ids = list(dict.fromkeys(candidate.instructor_ids + candidate.coordinator_ids))
        return MutationResult(
            entry=entry,
            instructor_ids=instructor_ids,
            student_ids=sorted(engine.resolver.members_of_all(candidate.cohorts)),
        )

    @staticmethod
    def _apply(entry: ScheduleEntry, candidate: ScheduleSlot) -> None:
        entry.course_code = candidate.course_code
        entry.date = candidate.date
        entry.start_time = candidate.start_time
        entry.end_time = candidate.end_time
        entry.session_count = candidate.session_count
        entry.pbl_type = candidate.pbl_type
        entry.room_id = candidate.room_id
        entry.instructor_ids = list(candidate.instructor_ids)
        entry.coordinator_ids = list(candidate.coordinator_ids)
        entry.cohort_type = candidate.cohorts[0].type if candidate.cohorts else None
        entry.cohort_ids = [ref.id for ref in candidate.cohorts]
        entry.topic = candidate.topic

    def _log_rejection(self, action: str, kind: ActivityKind, exc: ScheduleRejection) -> None:
        logger.info("Rejected %s of %s (%s): %s", action, kind.value, exc.kind.value, exc.message)

    def create(self, kind: ActivityKind, request: ScheduleEntryIn) -> MutationResult:
        kind = ActivityKind(kind)
        try:
            self.repository.lock_dates([request.date])
            course = self._load_course(request.course_code)
            engine = _Engine(self.repository)
            candidate = self._build_slot(kind, request, course)
            self._check(engine, candidate, course, ignore_id=None)

            entry = ScheduleEntry(kind=kind, created_by_id=self.context.actor_id)
            self._apply(entry, candidate)
            self.repository.add(entry)
            self.db.commit()
        except ScheduleRejection as exc:
            self.db.rollback()
            self._log_rejection("create", kind, exc)
            raise
        except Exception:
            self.db.rollback()
            raise

        self.db.refresh(entry)
        logger.info("Created %s entry %s on %s %s-%s", kind.value, entry.id, entry.date, entry.start_time, entry.end_time)
        return self._result(engine, entry, candidate)

    def _get_entry(self, kind: ActivityKind, entry_id: str) -> ScheduleEntry:
        entry = self.repository.get_entry(entry_id)
        if entry is None or entry.kind != kind:
            raise ResourceNotFoundError("Schedule entry", entry_id)
        return entry

    def update(self, kind: ActivityKind, entry_id: str, request: ScheduleEntryIn) -> MutationResult:
        kind = ActivityKind(kind)
        try:
            entry = self._get_entry(kind, entry_id)
            self.repository.lock_dates([entry.date, request.date])
            course = self._load_course(request.course_code)
            engine = _Engine(self.repository)
            candidate = self._build_slot(kind, request, course, entry_id=entry.id)
            self._check(engine, candidate, course, ignore_id=entry.id)

            self._apply(entry, candidate)
            self.repository.flush()
            self.db.commit()
        except ScheduleRejection as exc:
            self.db.rollback()
            self._log_rejection("update", kind, exc)
            raise
        except Exception:
            self.db.rollback()
            raise

        self.db.refresh(entry)
        logger.info("Updated %s entry %s", kind.value, entry.id)
        return self._result(engine, entry, candidate)

    def validate(
        self,
        kind: ActivityKind,
        request: ScheduleEntryIn,
        ignore_id: str | None = None,
    ) -> ValidationOutcome:
        """Run every check a create or update would, without writing anything."""
        kind = ActivityKind(kind)
        try:
            course = self._load_course(request.course_code)
            engine = _Engine(self.repository)
            candidate = self._build_slot(kind, request, course, entry_id=ignore_id)
            self._check(engine, candidate, course, ignore_id=ignore_id)
        except ScheduleRejection as exc:
            return ValidationOutcome.rejected(exc.message, exc.kind.value, exc.details)
        return ValidationOutcome.accepted()

    def _check_row_limit(self, rows: Sequence[ScheduleEntryIn]) -> None:
        limit = get_settings().max_import_rows
        if len(rows) > limit:
            raise ScheduleRuleError(f"Import maksimal {limit} baris", details={"field": "rows", "limit": limit})

    def _check_batch(
        self,
        engine: _Engine,
        kind: ActivityKind,
        course: Course,
        rows: Sequence[ScheduleEntryIn],
    ) -> tuple[list[dict], list[tuple[int, ScheduleSlot]]]:
        """Check every row against the database and against the accepted rows before it."""
        label = get_descriptor(kind).label
        errors: list[dict] = []
        accepted: list[tuple[int, ScheduleSlot]] = []
        for number, row in enumerate(rows, start=1):
            request = row.model_copy(update={"course_code": course.code})
            candidate = self._build_slot(kind, request, course)
            try:
                if row.course_code and row.course_code != course.code:
                    raise ScheduleRuleError(
                        f"Baris ini milik mata kuliah {row.course_code}, bukan {course.code}",
                        details={"field": "course_code"},
                    )
                self._check(engine, candidate, course, ignore_id=None)
                for earlier_number, earlier in accepted:
                    matched = engine.detector.pair_conflicts(candidate, earlier)
                    if matched:
                        conflict = Conflict(
                            kind=earlier.kind,
                            entry_id=None,
                            date=earlier.date,
                            start_time=earlier.start_time,
                            end_time=earlier.end_time,
                            dimensions=frozenset(matched),
                            existing=earlier,
                        )
                        raise self._conflict_error(
                            engine,
                            candidate,
                            conflict,
                            subject=f"baris {earlier_number} ({label})",
                            extra={"row": earlier_number},
                        )
            except ScheduleRejection as exc:
                errors.append({"row": number, "message": exc.message, **exc.details})
                continue
            accepted.append((number, candidate))
        return errors, accepted

    def validate_batch(
        self,
        kind: ActivityKind,
        course_code: str,
        rows: Sequence[ScheduleEntryIn],
    ) -> BatchValidationOutcome:
        """Preview an import: the same per-row report as ``import_batch``, nothing written."""
        kind = ActivityKind(kind)
        try:
            self._check_row_limit(rows)
            course = self._load_course(course_code)
        except ScheduleRejection as exc:
            return BatchValidationOutcome(
                status="rejected",
                row_count=len(rows),
                errors=[{"row": None, "message": exc.message, **exc.details}],
            )
        errors, _ = self._check_batch(_Engine(self.repository), kind, course, rows)
        return BatchValidationOutcome(
            status="rejected" if errors else "accepted",
            row_count=len(rows),
            errors=errors,
        )

    def import_batch(
        self,
        kind: ActivityKind,
        course_code: str,
        rows: Sequence[ScheduleEntryIn],
    ) -> list[MutationResult]:
        """Store every row or none of them.

        All failures are collected so the caller sees every bad row at once.
        """
        kind = ActivityKind(kind)
        self._check_row_limit(rows)

        errors: list[dict] = []
        try:
            self.repository.lock_dates(row.date for row in rows)
            course = self._load_course(course_code)
            engine = _Engine(self.repository)
            errors, accepted = self._check_batch(engine, kind, course, rows)
            if errors:
                raise BatchImportError(errors)

            entries = []
            for _, candidate in accepted:
                entry = ScheduleEntry(kind=kind, created_by_id=self.context.actor_id)
                self._apply(entry, candidate)
                self.repository.add(entry)
                entries.append(entry)
            self.repository.flush()
            self.db.commit()
        except BatchImportError:
            self.db.rollback()
            logger.info("Rejected import of %d %s rows: %d failed", len(rows), kind.value, len(errors))
            raise
        except ScheduleRejection as exc:
            self.db.rollback()
            self._log_rejection("import", kind, exc)
            raise
        except Exception:
            self.db.rollback()
            raise

        logger.info("Imported %d %s entries for %s", len(entries), kind.value, course.code)
        return [self._result(engine, entry, candidate) for entry, (_, candidate) in zip(entries, accepted)]

    def delete(self, kind: ActivityKind, entry_id: str) -> ScheduleEntry:
        kind = ActivityKind(kind)
        try:
            entry = self._get_entry(kind, entry_id)
            entry.deleted_at = datetime.now(timezone.utc)
            self.repository.flush()
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        logger.info("Deleted %s entry %s", kind.value, entry_id)
        return entry

