from datetime import date
from types import SimpleNamespace

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import OperationalError

from medsched.core.exceptions import (
    BatchImportError,
    CapacityExceededError,
    InfrastructureError,
    ReferenceNotFoundError,
    ResourceNotFoundError,
    ScheduleConflictError,
    ScheduleRuleError,
)
from medsched.models.schedule import ActivityKind, ScheduleEntry
from medsched.schemas.schedule import ScheduleEntryIn, ScheduleImportRow
from medsched.services import scheduling
from medsched.services.scheduling import MutationContext, ScheduleMutationService

from conftest import SEMESTER_3_STUDENTS, SMALL_GROUPS_SEMESTER_3


@pytest.fixture()
def service(db, seeded):
    return ScheduleMutationService(db, MutationContext(actor_id="staff-1"))


def lecture(**overrides) -> ScheduleEntryIn:
    values = {
        "course_code": "BLK301",
        "date": "2026-10-05",
        "start_time": "09.00",
        "end_time": "10.40",
        "room_id": "room-aula",
        "instructor_ids": ["dosen-andi"],
        "cohort": {"type": "large_group", "ids": ["lg-3-1"]},
    }
    values.update(overrides)
    return ScheduleEntryIn(**values)


def pbl(**overrides) -> ScheduleEntryIn:
    values = {
        "course_code": "BLK301",
        "date": "2026-10-05",
        "start_time": "13:00",
        "end_time": "14:40",
        "room_id": "room-5",
        "instructor_ids": ["dosen-budi"],
        "cohort": {"type": "small_group", "ids": ["sg-3-1-1"]},
    }
    values.update(overrides)
    return ScheduleEntryIn(**values)


def count_entries(db) -> int:
    return db.execute(select(func.count(ScheduleEntry.id)).where(ScheduleEntry.deleted_at.is_(None))).scalar_one()


def test_create_persists_normalized_entry(service, db):
    result = service.create(ActivityKind.large_lecture, lecture())
    entry = result.entry
    assert entry.id
    assert (entry.start_time, entry.end_time) == ("09:00", "10:40")
    assert entry.created_by_id == "staff-1"
    assert result.instructor_ids == ["dosen-andi"]
    assert result.student_ids == sorted(SEMESTER_3_STUDENTS)
    assert count_entries(db) == 1


def test_conflicting_create_is_rejected_and_nothing_is_stored(service, db):
    service.create(ActivityKind.large_lecture, lecture())
    with pytest.raises(ScheduleConflictError) as excinfo:
        service.create(ActivityKind.pbl, pbl(start_time="10:00", end_time="11:00"))
    error = excinfo.value
    assert error.details["kind"] == "conflict"
    assert error.details["conflict"]["kind"] == "large_lecture"
    assert "Kelompok: Kelompok Kecil 1 vs Kelompok Besar Semester 3 (10 Mahasiswa)" in error.message
    assert count_entries(db) == 1


def test_capacity_runs_before_conflict(service):
    service.create(ActivityKind.large_lecture, lecture())
    with pytest.raises(CapacityExceededError):
        service.create(ActivityKind.large_lecture, lecture(room_id="room-kecil", instructor_ids=["dosen-budi"]))


def test_update_does_not_conflict_with_itself(service):
    created = service.create(ActivityKind.large_lecture, lecture())
    updated = service.update(
        ActivityKind.large_lecture, created.entry.id, lecture(start_time="09:30", end_time="11:10")
    )
    assert updated.entry.id == created.entry.id
    assert updated.entry.start_time == "09:30"


def test_update_into_another_entry_is_rejected(service, db):
    service.create(ActivityKind.pbl, pbl())
    other = service.create(ActivityKind.pbl, pbl(start_time="15:00", end_time="16:00"))
    with pytest.raises(ScheduleConflictError):
        service.update(ActivityKind.pbl, other.entry.id, pbl(start_time="14:00", end_time="15:00"))
    db.expire_all()
    assert db.get(ScheduleEntry, other.entry.id).start_time == "15:00"


def test_update_of_unknown_entry_is_404(service):
    with pytest.raises(ResourceNotFoundError):
        service.update(ActivityKind.pbl, "missing", pbl())


def test_validate_is_a_dry_run(service, db):
    assert service.validate(ActivityKind.large_lecture, lecture()).status == "accepted"
    assert count_entries(db) == 0

    service.create(ActivityKind.large_lecture, lecture())
    outcome = service.validate(ActivityKind.large_lecture, lecture(room_id="room-5", instructor_ids=["dosen-budi"]))
    assert outcome.status == "rejected"
    assert outcome.kind == "conflict"
    assert "Jadwal Kuliah Besar" in outcome.reason


def test_delete_frees_the_slot(service, db):
    created = service.create(ActivityKind.large_lecture, lecture())
    service.delete(ActivityKind.large_lecture, created.entry.id)
    assert count_entries(db) == 0
    assert db.get(ScheduleEntry, created.entry.id).deleted_at is not None
    service.create(ActivityKind.large_lecture, lecture())


def test_delete_checks_the_kind(service):
    created = service.create(ActivityKind.large_lecture, lecture())
    with pytest.raises(ResourceNotFoundError):
        service.delete(ActivityKind.pbl, created.entry.id)


@pytest.mark.parametrize(
    "kind, request_overrides, error_type, fragment",
    [
        (ActivityKind.large_lecture, {"instructor_ids": ["dosen-andi", "dosen-budi"]}, ScheduleRuleError, "tepat satu dosen"),
        (
            ActivityKind.practicum,
            {"instructor_ids": [], "cohort": {"type": "small_group", "ids": ["sg-3-1-1"]}},
            ScheduleRuleError,
            "minimal satu dosen",
        ),
        (ActivityKind.large_lecture, {"date": "2027-01-04"}, ScheduleRuleError, "rentang tanggal"),
        (ActivityKind.large_lecture, {"cohort": {"type": "small_group", "ids": ["sg-3-1-1"]}}, ScheduleRuleError, "Kelompok Besar"),
        (
            ActivityKind.large_lecture,
            {"cohort": {"type": "large_group_intersession", "ids": ["lgi-a"]}},
            ScheduleRuleError,
            "Kelompok Besar",
        ),
        (ActivityKind.large_lecture, {"room_id": None}, ScheduleRuleError, "Ruangan wajib"),
        (ActivityKind.large_lecture, {"instructor_ids": ["dosen-nonaktif"]}, ReferenceNotFoundError, "Dosen"),
        (ActivityKind.large_lecture, {"instructor_ids": ["mhs-01"]}, ReferenceNotFoundError, "Dosen"),
        (ActivityKind.large_lecture, {"course_code": "XXX999"}, ReferenceNotFoundError, "Mata kuliah"),
        (ActivityKind.large_lecture, {"room_id": "room-hilang"}, ReferenceNotFoundError, "Ruangan"),
    ],
)
def test_scheduling_rules(service, kind, request_overrides, error_type, fragment):
    with pytest.raises(error_type) as excinfo:
        service.create(kind, lecture(**request_overrides))
    assert fragment in excinfo.value.message


def test_only_practicum_takes_several_groups(service):
    groups = {"type": "small_group", "ids": ["sg-3-1-1", "sg-3-2-1"]}
    with pytest.raises(ScheduleRuleError):
        service.create(ActivityKind.pbl, pbl(cohort=groups, room_id="room-aula"))
    result = service.create(ActivityKind.practicum, pbl(cohort=groups, room_id="room-aula"))
    assert result.entry.cohort_ids == ["sg-3-1-1", "sg-3-2-1"]
    assert result.student_ids == sorted(SMALL_GROUPS_SEMESTER_3["1"] + SMALL_GROUPS_SEMESTER_3["2"])


def test_plenary_seminar_coordinator_rules(service):
    base = {"instructor_ids": ["dosen-andi", "dosen-budi"]}
    with pytest.raises(ScheduleRuleError):
        service.create(ActivityKind.plenary_seminar, lecture(**base, coordinator_ids=["dosen-andi"]))
    with pytest.raises(ScheduleRuleError):
        service.create(
            ActivityKind.large_lecture,
            lecture(instructor_ids=["dosen-andi"], coordinator_ids=["dosen-citra"]),
        )
    result = service.create(ActivityKind.plenary_seminar, lecture(**base, coordinator_ids=["dosen-citra"]))
    assert result.instructor_ids == ["dosen-andi", "dosen-budi", "dosen-citra"]


def test_special_agenda_needs_no_room_or_instructor(service):
    result = service.create(ActivityKind.special_agenda, lecture(room_id=None, instructor_ids=[]))
    assert result.entry.room_id is None
    with pytest.raises(ScheduleRuleError):
        service.create(ActivityKind.special_agenda, lecture(room_id=None, start_time="13:00", end_time="14:00"))


def test_intersession_lecture_accepts_several_instructors(service):
    result = service.create(
        ActivityKind.large_lecture,
        lecture(
            course_code="ANT101",
            instructor_ids=["dosen-andi", "dosen-budi"],
            cohort={"type": "large_group_intersession", "ids": ["lgi-a"]},
        ),
    )
    assert result.student_ids == ["mhs-01", "mhs-02", "mhs-51"]


def import_row(start: str, end: str, group: str, instructor: str, room: str = "room-5") -> ScheduleImportRow:
    return ScheduleImportRow(
        date=date(2026, 10, 5),
        start_time=start,
        end_time=end,
        room_id=room,
        instructor_ids=[instructor],
        cohort={"type": "small_group", "ids": [group]},
    )


def test_import_rejects_whole_batch_when_row_three_hits_row_one(service, db):
    rows = [
        import_row("08:00", "09:40", "sg-3-1-1", "dosen-andi"),
        import_row("08:00", "09:40", "sg-3-2-1", "dosen-budi", room="room-aula"),
        import_row("09:00", "10:00", "sg-3-3-1", "dosen-andi", room="room-kecil"),
        import_row("10:00", "11:40", "sg-3-1-1", "dosen-citra"),
        import_row("13:00", "14:40", "sg-3-2-1", "dosen-budi"),
    ]
    with pytest.raises(BatchImportError) as excinfo:
        service.import_batch(ActivityKind.pbl, "BLK301", rows)

    errors = excinfo.value.row_errors
    assert [item["row"] for item in errors] == [3]
    assert errors[0]["kind"] == "conflict"
    assert "baris 1" in errors[0]["message"]
    assert "Dosen: dr. Andi" in errors[0]["message"]
    assert count_entries(db) == 0


def test_import_reports_every_bad_row(service, db):
    service.create(ActivityKind.pbl, pbl(start_time="08:00", end_time="09:40"))
    rows = [
        import_row("08:30", "09:30", "sg-3-2-1", "dosen-budi"),
        import_row("10:00", "11:00", "sg-3-2-1", "dosen-andi", room="room-hilang"),
        import_row("11:00", "12:00", "sg-3-3-1", "dosen-citra"),
    ]
    with pytest.raises(BatchImportError) as excinfo:
        service.import_batch(ActivityKind.pbl, "BLK301", rows)
    assert [(item["row"], item["kind"]) for item in excinfo.value.row_errors] == [(1, "conflict"), (2, "not_found")]
    assert count_entries(db) == 1


def test_import_stores_all_rows_when_clean(service, db):
    rows = [
        import_row("08:00", "09:40", "sg-3-1-1", "dosen-andi"),
        import_row("08:00", "09:40", "sg-3-2-1", "dosen-budi", room="room-aula"),
        import_row("09:40", "11:20", "sg-3-1-1", "dosen-andi"),
    ]
    results = service.import_batch(ActivityKind.pbl, "BLK301", rows)
    assert len(results) == 3
    assert {result.entry.course_code for result in results} == {"BLK301"}
    assert count_entries(db) == 3


def test_import_row_for_another_course_is_flagged(service):
    row = import_row("08:00", "09:40", "sg-3-1-1", "dosen-andi").model_copy(update={"course_code": "BLK501"})
    with pytest.raises(BatchImportError) as excinfo:
        service.import_batch(ActivityKind.pbl, "BLK301", [row])
    assert excinfo.value.row_errors[0]["kind"] == "invalid"


def test_unknown_cohort_is_not_found_even_without_a_room(service, db):
    with pytest.raises(ReferenceNotFoundError) as excinfo:
        service.create(
            ActivityKind.special_agenda,
            lecture(room_id=None, instructor_ids=[], cohort={"type": "large_group", "ids": ["lg-hilang"]}),
        )
    assert excinfo.value.resource_type == "cohort"
    assert count_entries(db) == 0


def test_plenary_seminar_may_run_without_a_room(service):
    result = service.create(ActivityKind.plenary_seminar, lecture(room_id=None, instructor_ids=["dosen-andi"]))
    assert result.entry.room_id is None
    assert result.entry.kind == ActivityKind.plenary_seminar


def test_pbl_session_count_follows_pbl_type(service):
    first = service.create(ActivityKind.pbl, pbl())
    second = service.create(ActivityKind.pbl, pbl(start_time="15:00", end_time="16:40", pbl_type="PBL 2"))
    explicit = service.create(
        ActivityKind.pbl, pbl(start_time="08:00", end_time="09:40", pbl_type="PBL 2", session_count=4)
    )

    assert (first.entry.session_count, first.entry.pbl_type) == (2, None)
    assert (second.entry.session_count, second.entry.pbl_type) == (3, "PBL 2")
    assert explicit.entry.session_count == 4


def test_pbl_type_is_only_for_pbl(service):
    with pytest.raises(ScheduleRuleError, match="Tipe PBL"):
        service.create(ActivityKind.large_lecture, lecture(pbl_type="PBL 1"))


def test_batch_preview_reports_rows_and_stores_nothing(service, db):
    rows = [
        import_row("08:00", "09:40", "sg-3-1-1", "dosen-andi"),
        import_row("09:00", "10:00", "sg-3-3-1", "dosen-andi", room="room-kecil"),
        import_row("10:00", "11:00", "sg-3-2-1", "dosen-budi", room="room-hilang"),
    ]
    outcome = service.validate_batch(ActivityKind.pbl, "BLK301", rows)

    assert outcome.status == "rejected"
    assert outcome.row_count == 3
    assert [(item["row"], item["kind"]) for item in outcome.errors] == [(2, "conflict"), (3, "not_found")]
    assert count_entries(db) == 0

    clean = service.validate_batch(ActivityKind.pbl, "BLK301", rows[:1])
    assert (clean.status, clean.errors) == ("accepted", [])
    assert count_entries(db) == 0


def test_batch_preview_for_unknown_course(service):
    rows = [import_row("08:00", "09:40", "sg-3-1-1", "dosen-andi")]
    outcome = service.validate_batch(ActivityKind.pbl, "BLK999", rows)
    assert outcome.status == "rejected"
    assert outcome.errors[0]["row"] is None
    assert outcome.errors[0]["kind"] == "not_found"


def test_import_row_limit(service, db, monkeypatch):
    monkeypatch.setattr(scheduling, "get_settings", lambda: SimpleNamespace(max_import_rows=2))
    rows = [
        import_row("08:00", "09:00", "sg-3-1-1", "dosen-andi"),
        import_row("09:00", "10:00", "sg-3-1-1", "dosen-andi"),
        import_row("10:00", "11:00", "sg-3-1-1", "dosen-andi"),
    ]

    with pytest.raises(ScheduleRuleError) as excinfo:
        service.import_batch(ActivityKind.pbl, "BLK301", rows)
    assert excinfo.value.details["limit"] == 2
    assert count_entries(db) == 0

    preview = service.validate_batch(ActivityKind.pbl, "BLK301", rows)
    assert preview.status == "rejected"
    assert preview.errors[0]["field"] == "rows"

    assert len(service.import_batch(ActivityKind.pbl, "BLK301", rows[:2])) == 2


def _failing_flush(*args, **kwargs):
    raise OperationalError("INSERT INTO schedule_entries", {}, Exception("disk I/O error"))


def test_storage_failure_on_create_propagates_and_stores_nothing(service, db, monkeypatch):
    monkeypatch.setattr(db, "flush", _failing_flush)
    with pytest.raises(InfrastructureError) as excinfo:
        service.create(ActivityKind.large_lecture, lecture())
    assert excinfo.value.status_code == 503

    monkeypatch.undo()
    assert count_entries(db) == 0


def test_storage_failure_during_import_stores_nothing(service, db, monkeypatch):
    rows = [
        import_row("08:00", "09:40", "sg-3-1-1", "dosen-andi"),
        import_row("08:00", "09:40", "sg-3-2-1", "dosen-budi", room="room-aula"),
    ]
    monkeypatch.setattr(db, "flush", _failing_flush)
    with pytest.raises(InfrastructureError):
        service.import_batch(ActivityKind.pbl, "BLK301", rows)

    monkeypatch.undo()
    assert count_entries(db) == 0
