import pytest

from medsched.models.schedule import ActivityKind
from medsched.services.conflict_service import ConflictDetector
from medsched.services.explainer import ConflictExplainer


@pytest.fixture()
def detector(repository, resolver):
    return ConflictDetector(repository, resolver)


@pytest.fixture()
def explainer(repository, resolver):
    return ConflictExplainer(repository, resolver)


def test_room_clash_message(detector, explainer, make_entry, make_slot):
    make_entry(start_time="09:00", end_time="10:40")
    candidate = make_slot(start_time="10:30", end_time="12:00", instructor_ids=("dosen-budi",))
    conflict = detector.find_conflict(candidate)

    fragments = explainer.explain(candidate, conflict.existing)
    assert fragments == ["Ruangan: Ruang 5"]
    assert explainer.message(conflict, fragments) == (
        "Jadwal bentrok dengan Jadwal Kuliah Besar pada tanggal 05/10/2026 jam 09.00-10.40. "
        "Bentrok: (Ruangan: Ruang 5)"
    )


def test_every_matching_dimension_is_listed(detector, explainer, make_entry, make_slot, seeded):
    make_entry(
        kind=ActivityKind.pbl,
        instructor_ids=["dosen-andi", "dosen-budi"],
        cohorts=(seeded.small_3_2,),
    )
    candidate = make_slot(instructor_ids=("dosen-budi",), cohorts=(seeded.large_3,))
    conflict = detector.find_conflict(candidate)

    fragments = explainer.explain(candidate, conflict.existing)
    assert fragments == [
        "Dosen: dr. Budi",
        "Ruangan: Ruang 5",
        "Kelompok: Kelompok Besar Semester 3 vs Kelompok Kecil 2 (10 Mahasiswa)",
    ]
    assert explainer.message(conflict, fragments).startswith("Jadwal bentrok dengan Jadwal PBL pada tanggal 05/10/2026")


def test_practicum_names_only_groups_that_share_students(explainer, make_slot, seeded):
    candidate = make_slot(room_id="room-aula", cohorts=(seeded.large_antara,), course_code="ANT101", semester="Antara")
    existing = make_slot(
        kind=ActivityKind.practicum,
        room_id="room-kecil",
        instructor_ids=("dosen-citra",),
        cohorts=(seeded.small_3_1, seeded.small_3_3),
    )
    assert explainer.explain(candidate, existing) == [
        "Kelompok: Kelompok Besar Antara A vs Kelompok Kecil 1 (2 Mahasiswa)",
    ]


def test_unresolvable_names_fall_back_to_ids(explainer, make_slot):
    candidate = make_slot(instructor_ids=("dosen-hilang",), room_id="room-hilang")
    existing = make_slot(instructor_ids=("dosen-hilang",), room_id="room-hilang")
    assert explainer.explain(candidate, existing) == ["Dosen: dosen-hilang", "Ruangan: room-hilang"]


def test_never_empty_when_nothing_matches(explainer, make_slot):
    candidate = make_slot(room_id="room-aula", instructor_ids=("dosen-budi",))
    existing = make_slot(room_id="room-5", instructor_ids=("dosen-andi",), entry_id="entry-1")
    assert explainer.explain(candidate, existing) == [
        "Mata Kuliah: BLK301",
        "Ruangan: room-5",
        "Dosen: dosen-andi",
        "ID Jadwal: entry-1",
    ]
