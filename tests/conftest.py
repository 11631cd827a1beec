import copy
import json
import os
from datetime import datetime, timedelta, timezone

import httpx
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from gradedesk.client.api import GradingApi
from gradedesk.client.credentials import static_token
from gradedesk.core.deps import get_db
from gradedesk.core.security import hash_password
from gradedesk.db.base import Base
from gradedesk.main import app
from gradedesk.models.course import Course
from gradedesk.models.enrollment import Enrollment
from gradedesk.models.gradable_item import GradableItem, ItemKind
from gradedesk.models.submission import Submission
from gradedesk.models.user import User
from gradedesk.schemas.roster import RosterSnapshot

TEST_DB_FILE = "test_gradedesk.db"
TEST_DB_URL = f"sqlite:///./{TEST_DB_FILE}"

PASSWORD = "password123"
# hashing is slow on purpose; do it once for every seeded user
PASSWORD_HASH = hash_password(PASSWORD)

engine = create_engine(
    TEST_DB_URL,
    connect_args={"check_same_thread": False},
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# (full_name, username, group) -- first six have turned something in
ROSTER = [
    ("Ada Lovelace", "ada", "B"),
    ("Grace Hopper", "grace", "A"),
    ("Alan Turing", "alan", None),
    ("Katherine Johnson", "kj", "A"),
    ("Edsger Dijkstra", "edsger", "C"),
    ("Barbara Liskov", "barbara", "B"),
    ("Donald Knuth", "don", "C"),
    (None, "mhamilton", "A"),
    ("Claude Shannon", "claude", None),
    ("Frances Allen", "fran", "B"),
]
SUBMITTED_COUNT = 6


def override_get_db():
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture(scope="session", autouse=True)
def setup_test_db():
    """Create a fresh schema once for the whole test session."""
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)
    engine.dispose()
    if os.path.exists(TEST_DB_FILE):
        os.remove(TEST_DB_FILE)


@pytest.fixture(autouse=True)
def seed_data():
    """
    Seed one course with ten students and one essay worth 100 points.

    Students 0-5 have submitted; student 5's submission is already
    returned with a grade of 70. Yields the ids tests need.
    """
    db = TestingSessionLocal()
    try:
        # Clear tables (child -> parent)
        db.query(Submission).delete()
        db.query(Enrollment).delete()
        db.query(GradableItem).delete()
        db.query(Course).delete()
        db.query(User).delete()
        db.commit()

        instructor = User(
            email="instructor1@example.com",
            full_name="Instructor One",
            role="instructor",
            hashed_password=PASSWORD_HASH,
        )
        other_instructor = User(
            email="instructor2@example.com",
            full_name="Instructor Two",
            role="instructor",
            hashed_password=PASSWORD_HASH,
        )
        students = [
            User(
                email=f"student{i}@example.com",
                full_name=full_name,
                username=username,
                role="student",
                hashed_password=PASSWORD_HASH,
            )
            for i, (full_name, username, _group) in enumerate(ROSTER)
        ]
        db.add_all([instructor, other_instructor, *students])
        db.commit()

        course = Course(title="CS5004", instructor_id=instructor.id)
        db.add(course)
        db.commit()
        db.refresh(course)

        for student, (_name, _username, group) in zip(students, ROSTER):
            db.add(Enrollment(course_id=course.id, student_id=student.id, group_label=group))

        item = GradableItem(
            course_id=course.id,
            kind=ItemKind.assignment,
            title="Essay 1",
            max_points=100,
            accepting_submissions=True,
        )
        db.add(item)
        db.commit()
        db.refresh(item)

        now = datetime.now(timezone.utc)
        submissions = [
            Submission(
                item_id=item.id,
                student_id=student.id,
                content=f"essay by {student.username}",
                attachments=[],
                submitted_at=now - timedelta(hours=i),
            )
            for i, student in enumerate(students[:SUBMITTED_COUNT])
        ]
        submissions[-1].returned = True
        submissions[-1].returned_at = now
        submissions[-1].grade = 70
        db.add_all(submissions)
        db.commit()

        yield {
            "item_id": item.id,
            "course_id": course.id,
            "student_ids": [s.id for s in students],
            "submission_ids": [s.id for s in submissions],
        }
    finally:
        db.close()


@pytest.fixture()
def client():
    """Test client that uses the test DB session via dependency override."""
    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


def login(client, email: str, password: str = PASSWORD) -> str:
    r = client.post("/auth/login", json={"email": email, "password": password})
    assert r.status_code == 200, r.text
    return r.json()["access_token"]


@pytest.fixture()
def instructor_token(client):
    return login(client, "instructor1@example.com")


@pytest.fixture()
def service_api(client, instructor_token):
    """GradingApi talking to the real service through the TestClient."""
    return GradingApi(client, static_token(instructor_token))


# === scripted backend for the grading core ===

FAKE_ROSTER = {
    "itemId": 7,
    "title": "Question 3",
    "maxPoints": 100,
    "acceptingSubmissions": True,
    "assignedCount": 2,
    "turnedInCount": 4,
    "rows": [
        {
            "student": {"id": 1, "name": "Ada Lovelace", "email": "ada@example.com", "group": "B"},
            "submitted": True,
            "submissionId": 101,
            "submittedAt": "2026-01-10T10:00:00Z",
            "grade": None,
            "returned": False,
        },
        {
            "student": {"id": 2, "name": "Grace Hopper", "email": "grace@example.com", "group": "A"},
            "submitted": True,
            "submissionId": 102,
            "submittedAt": "2026-01-10T12:00:00Z",
            "grade": None,
            "returned": False,
        },
        {
            "student": {"id": 3, "name": "Alan Turing", "email": "alan@example.com"},
            "submitted": True,
            "submissionId": 103,
            "submittedAt": "2026-01-09T09:00:00Z",
            "grade": None,
            "returned": False,
        },
        {
            "student": {"id": 4, "name": "Katherine Johnson", "email": "kj@example.com", "group": "A"},
            "submitted": True,
            "submissionId": 104,
            "submittedAt": "2026-01-08T08:00:00Z",
            "grade": 70,
            "returned": True,
        },
        {
            "student": {"id": 5, "name": "Edsger Dijkstra", "email": "ewd@example.com", "group": "C"},
            "submitted": False,
            "submissionId": None,
            "submittedAt": None,
        },
        {
            "student": {"id": 6, "username": "bliskov", "email": "barbara@example.com"},
            "submitted": False,
            "submissionId": None,
            "submittedAt": None,
        },
    ],
}


class FakeBackend:
    """
    In-memory grading service served through ``httpx.MockTransport``.

    Records every request. ``fail`` maps (method, path) or
    (method, path, n) to a status code; the three-tuple form fails only the
    n-th matching request (1-based). ``offline`` makes every request raise
    a transport error. ``reply`` maps (method, path) to a JSON body that is
    answered with 200 in place of the normal handling.
    """

    def __init__(self, roster: dict):
        self.roster = copy.deepcopy(roster)
        self.requests: list[httpx.Request] = []
        self.fail: dict[tuple, int] = {}
        self.reply: dict[tuple[str, str], object] = {}
        self.offline = False
        self._seen: dict[tuple[str, str], int] = {}

    @property
    def calls(self) -> list[tuple[str, str]]:
        return [(r.method, r.url.path) for r in self.requests]

    def http(self) -> httpx.Client:
        return httpx.Client(
            transport=httpx.MockTransport(self.handler),
            base_url="http://grading.test",
        )

    def row(self, submission_id: int) -> dict:
        return next(r for r in self.roster["rows"] if r.get("submissionId") == submission_id)

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.offline:
            raise httpx.ConnectError("connection refused", request=request)

        key = (request.method, request.url.path)
        self._seen[key] = self._seen.get(key, 0) + 1
        status = self.fail.get((*key, self._seen[key]), self.fail.get(key))
        if status is not None:
            return httpx.Response(status, json={"detail": "injected failure"})
        if key in self.reply:
            return httpx.Response(200, json=self.reply[key])

        if request.headers.get("Authorization") != "Bearer teacher-token":
            return httpx.Response(401, json={"detail": "Not authenticated"})

        item = self.roster["itemId"]
        body = json_body(request)
        parts = request.url.path.strip("/").split("/")

        if key == ("GET", f"/grading/item/{item}/stats"):
            return httpx.Response(200, json=self.roster)

        if key == ("PATCH", f"/grading/item/{item}/accepting"):
            self.roster["acceptingSubmissions"] = body["accepting"]
            return httpx.Response(200, json={"itemId": item, "accepting": body["accepting"]})

        if key == ("POST", f"/grading/item/{item}/return"):
            for sid in body["submissionIds"]:
                self.row(sid)["returned"] = True
            return httpx.Response(200, json=body["submissionIds"])

        if request.method == "PATCH" and len(parts) == 3 and parts[0] == "submission" and parts[2] == "grade":
            sid = int(parts[1])
            row = self.row(sid)
            row["grade"] = body["grade"]
            return httpx.Response(
                200,
                json={
                    "id": sid,
                    "itemId": item,
                    "studentId": row["student"]["id"],
                    "content": None,
                    "submittedAt": row["submittedAt"],
                    "grade": body["grade"],
                    "returned": row["returned"],
                },
            )

        return httpx.Response(404, json={"detail": "Not Found"})


def json_body(request: httpx.Request):
    return json.loads(request.content) if request.content else None


@pytest.fixture()
def backend():
    return FakeBackend(FAKE_ROSTER)


@pytest.fixture()
def api(backend):
    return GradingApi(backend.http(), static_token("teacher-token"))


@pytest.fixture()
def snapshot():
    return RosterSnapshot.model_validate(copy.deepcopy(FAKE_ROSTER))
