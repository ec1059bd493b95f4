import os
import tempfile
from datetime import date
from types import SimpleNamespace

# The app engine is built at import time; point it at a throwaway file before anything imports it.
os.environ.setdefault(
    "DATABASE_URL",
    f"sqlite+pysqlite:///{os.path.join(tempfile.mkdtemp(prefix='medsched-tests-'), 'app.db')}",
)

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from medsched.api.deps import get_db  # noqa: E402
from medsched.core.security import create_access_token  # noqa: E402
from medsched.db.base import Base  # noqa: E402
from medsched.main import app  # noqa: E402
from medsched.models import (  # noqa: E402
    Course,
    LargeGroup,
    LargeGroupIntersession,
    Room,
    ScheduleEntry,
    SmallGroup,
    SmallGroupIntersession,
    User,
    UserRole,
)
from medsched.models.schedule import ActivityKind, CohortType  # noqa: E402
from medsched.services.cohorts import CohortRef, CohortResolver  # noqa: E402
from medsched.services.repository import ScheduleRepository  # noqa: E402
from medsched.services.slots import ScheduleSlot  # noqa: E402

DAY = date(2026, 10, 5)

SEMESTER_3_STUDENTS = [f"mhs-{n:02d}" for n in range(1, 29)]
SEMESTER_5_STUDENTS = ["mhs-51", "mhs-52", "mhs-53"]
SMALL_GROUPS_SEMESTER_3 = {
    "1": SEMESTER_3_STUDENTS[0:10],
    "2": SEMESTER_3_STUDENTS[10:20],
    "3": SEMESTER_3_STUDENTS[20:28],
}


@pytest.fixture()
def engine():
    engine = create_engine(
        "sqlite+pysqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture()
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture()
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


def _seed(db) -> SimpleNamespace:
    people = [
        User(id="admin-1", name="Admin Akademik", email="admin@example.com", role=UserRole.admin),
        User(id="staff-1", name="Staf Akademik", email="staff@example.com", role=UserRole.academic_staff),
        User(id="dosen-andi", name="dr. Andi", email="andi@example.com", role=UserRole.lecturer),
        User(id="dosen-budi", name="dr. Budi", email="budi@example.com", role=UserRole.lecturer),
        User(id="dosen-citra", name="dr. Citra", email="citra@example.com", role=UserRole.lecturer),
        User(id="dosen-nonaktif", name="dr. Dewi", role=UserRole.lecturer, is_active=False),
    ]
    for student_id in SEMESTER_3_STUDENTS + SEMESTER_5_STUDENTS:
        people.append(User(id=student_id, name=f"Mahasiswa {student_id}", role=UserRole.student, nim=student_id))
    db.add_all(people)

    db.add_all(
        [
            Room(id="room-5", name="Ruang 5", capacity=30),
            Room(id="room-aula", name="Aula", capacity=200),
            Room(id="room-kecil", name="Ruang Kecil", capacity=10),
        ]
    )
    db.add_all(
        [
            Course(code="BLK301", name="Blok Kardiovaskular", semester="3", start_date=date(2026, 9, 1), end_date=date(2026, 12, 31)),
            Course(code="BLK501", name="Blok Neurologi", semester="5"),
            Course(code="ANT101", name="Blok Antara", semester="Antara"),
        ]
    )

    for index, student_id in enumerate(SEMESTER_3_STUDENTS, start=1):
        db.add(LargeGroup(id=f"lg-3-{index}", semester="3", student_id=student_id))
    for index, student_id in enumerate(SEMESTER_5_STUDENTS, start=1):
        db.add(LargeGroup(id=f"lg-5-{index}", semester="5", student_id=student_id))
    for name, members in SMALL_GROUPS_SEMESTER_3.items():
        for index, student_id in enumerate(members, start=1):
            db.add(SmallGroup(id=f"sg-3-{name}-{index}", name=name, semester="3", student_id=student_id))
    for index, student_id in enumerate(SEMESTER_5_STUDENTS, start=1):
        db.add(SmallGroup(id=f"sg-5-1-{index}", name="1", semester="5", student_id=student_id))

    db.add(LargeGroupIntersession(id="lgi-a", name="A", student_ids=["mhs-01", "mhs-02", "mhs-51"]))
    db.add(SmallGroupIntersession(id="sgi-a1", name="A1", student_ids=["mhs-01", "mhs-02"]))
    db.add(SmallGroupIntersession(id="sgi-b1", name="B1", student_ids=["mhs-51"]))
    db.commit()

    return SimpleNamespace(
        day=DAY,
        large_3=CohortRef(CohortType.large_group, "lg-3-1"),
        large_5=CohortRef(CohortType.large_group, "lg-5-1"),
        small_3_1=CohortRef(CohortType.small_group, "sg-3-1-1"),
        small_3_2=CohortRef(CohortType.small_group, "sg-3-2-1"),
        small_3_3=CohortRef(CohortType.small_group, "sg-3-3-1"),
        small_5_1=CohortRef(CohortType.small_group, "sg-5-1-1"),
        large_antara=CohortRef(CohortType.large_group_intersession, "lgi-a"),
        small_antara_a1=CohortRef(CohortType.small_group_intersession, "sgi-a1"),
        small_antara_b1=CohortRef(CohortType.small_group_intersession, "sgi-b1"),
    )


@pytest.fixture()
def seeded(db):
    return _seed(db)


@pytest.fixture()
def repository(db, seeded):
    return ScheduleRepository(db)


@pytest.fixture()
def resolver(repository):
    return CohortResolver(repository)


@pytest.fixture()
def make_slot():
    def factory(**overrides) -> ScheduleSlot:
        values = {
            "kind": ActivityKind.large_lecture,
            "course_code": "BLK301",
            "semester": "3",
            "date": DAY,
            "start_time": "09:00",
            "end_time": "10:40",
            "room_id": "room-5",
            "instructor_ids": ("dosen-andi",),
        }
        values.update(overrides)
        return ScheduleSlot(**values)

    return factory


@pytest.fixture()
def make_entry(db):
    def factory(**overrides) -> ScheduleEntry:
        cohorts = overrides.pop("cohorts", ())
        values = {
            "kind": ActivityKind.large_lecture,
            "course_code": "BLK301",
            "date": DAY,
            "start_time": "09:00",
            "end_time": "10:40",
            "room_id": "room-5",
            "instructor_ids": ["dosen-andi"],
            "coordinator_ids": [],
            "cohort_type": cohorts[0].type if cohorts else None,
            "cohort_ids": [ref.id for ref in cohorts],
        }
        values.update(overrides)
        entry = ScheduleEntry(**values)
        db.add(entry)
        db.commit()
        return entry

    return factory


@pytest.fixture()
def client(session_factory, seeded):
    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


@pytest.fixture()
def auth_headers():
    def factory(user_id: str = "staff-1") -> dict[str, str]:
        return {"Authorization": f"Bearer {create_access_token(user_id)}"}

    return factory
