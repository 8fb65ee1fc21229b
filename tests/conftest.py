"""
Shared test fixtures for Coursework Portal.
An in-memory store replaces the storage file and a fake LMS client replaces
the REST API. Zero network calls.
"""
import copy
from datetime import datetime, timedelta, timezone

import jwt
import pytest

from coursework.services.draft_store import MemoryStore
from coursework.services.lms_client import NotFoundError


TEST_SECRET = "coursework-test-secret-0123456789abcdef"

QUIZ = {
    "_id": "a1",
    "title": "Unit 3 Quiz",
    "course": {"_id": "c1", "title": "Biology"},
    "isGradedQuiz": True,
    "published": True,
    "questions": [
        {
            "_id": "q0",
            "type": "multiple-choice",
            "text": "Powerhouse of the cell?",
            "points": 5,
            "options": [
                {"text": "Nucleus", "isCorrect": False},
                {"text": "Mitochondria", "isCorrect": True},
            ],
        },
        {
            "_id": "q1",
            "type": "matching",
            "text": "Match the organelles",
            "points": 3,
            "leftItems": [
                {"id": 1, "text": "Ribosome"},
                {"id": 2, "text": "Lysosome"},
                {"id": 3, "text": "Golgi"},
            ],
            "rightItems": [
                {"id": 3, "text": "Packaging"},
                {"id": 1, "text": "Protein synthesis"},
                {"id": 2, "text": "Digestion"},
            ],
        },
        {
            "_id": "q2",
            "type": "text",
            "text": "Explain osmosis",
            "points": 10,
        },
    ],
}


class FakeLMSClient:
    """In-memory stand-in for LMSClient; records every call."""

    def __init__(self, assignments=None, submissions=None, student_submission=None):
        self.assignments = assignments or {}
        self.submissions = submissions or []
        self.student_submission = student_submission
        self.calls = []
        self.uploaded = []

    def _record(self, name, *args, **kwargs):
        self.calls.append((name, args, kwargs))

    def get_assignment(self, assignment_id):
        self._record("get_assignment", assignment_id)
        if assignment_id not in self.assignments:
            raise NotFoundError("Assignment not found", 404)
        return copy.deepcopy(self.assignments[assignment_id])

    def toggle_publish(self, assignment_id):
        self._record("toggle_publish", assignment_id)
        assignment = self.assignments[assignment_id]
        assignment["published"] = not assignment.get("published")
        return {"published": assignment["published"]}

    def get_student_submission(self, assignment_id):
        self._record("get_student_submission", assignment_id)
        if self.student_submission is None:
            raise NotFoundError("No submission found", 404)
        return copy.deepcopy(self.student_submission)

    def list_submissions(self, assignment_id):
        self._record("list_submissions", assignment_id)
        return copy.deepcopy(self.submissions)

    def create_submission(self, payload):
        self._record("create_submission", payload)
        created = {"_id": "s-new", "assignment": payload["assignment"], "answers": payload["answers"]}
        self.student_submission = created
        return copy.deepcopy(created)

    def update_submission(self, submission_id, payload, files=None):
        self._record("update_submission", submission_id, payload, files=files)
        for submission in self.submissions:
            if submission["_id"] == submission_id:
                for key, value in payload.items():
                    if key in ("feedback", "showCorrectAnswers", "showStudentAnswers", "grade"):
                        submission[key] = value
                if payload.get("questionGrades"):
                    grades = dict(submission.get("questionGrades") or {})
                    grades.update(payload["questionGrades"])
                    submission["questionGrades"] = grades
                return copy.deepcopy(submission)
        raise NotFoundError("Submission not found", 404)

    def delete_submission(self, submission_id):
        self._record("delete_submission", submission_id)
        self.submissions = [s for s in self.submissions if s["_id"] != submission_id]
        return {"success": True}

    def download_submission(self, submission_id):
        self._record("download_submission", submission_id)
        return b"single-zip"

    def download_all_submissions(self, assignment_id):
        self._record("download_all_submissions", assignment_id)
        return b"all-zip"

    def upload_files(self, files):
        self._record("upload_files", files)
        result = [{"originalname": name, "path": f"/uploads/{name}", "size": 10} for name, _, _ in files]
        self.uploaded.extend(result)
        return result

    def get_module_view(self, module_id):
        self._record("get_module_view", module_id)
        return {"_id": module_id, "title": "Module"}

    def get_course_average(self, course_id):
        self._record("get_course_average", course_id)
        return {"average": 87.5}

    def get_student_course_grades(self, course_id):
        self._record("get_student_course_grades", course_id)
        return {"grades": [{"assignment": "a1", "grade": 8}]}

    def called(self, name):
        return [c for c in self.calls if c[0] == name]


class FrozenClock:
    """Callable returning a fixed, advanceable UTC time."""

    def __init__(self, start=None):
        self.current = start or datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc)

    def __call__(self):
        return self.current

    def advance(self, seconds):
        self.current = self.current + timedelta(seconds=seconds)


@pytest.fixture
def quiz_data():
    return copy.deepcopy(QUIZ)


@pytest.fixture
def store():
    return MemoryStore()


@pytest.fixture
def clock():
    return FrozenClock()


@pytest.fixture
def student():
    return {"id": "u1", "role": "student"}


@pytest.fixture
def teacher():
    return {"id": "t1", "role": "teacher"}


@pytest.fixture
def fake_client(quiz_data):
    return FakeLMSClient(assignments={"a1": quiz_data})


def make_token(user_id, role):
    return jwt.encode({"id": user_id, "role": role}, TEST_SECRET, algorithm="HS256")


@pytest.fixture
def app_client(monkeypatch, store, fake_client):
    """Flask test client wired to the in-memory store and fake LMS client."""
    from coursework.config import config
    from coursework.app import create_app

    monkeypatch.setattr(config, "lms_jwt_secret", TEST_SECRET)
    app = create_app(store=store, client_factory=lambda token: fake_client)
    app.config["TESTING"] = True
    return app.test_client()


@pytest.fixture
def student_headers():
    return {"Authorization": "Bearer " + make_token("u1", "student")}


@pytest.fixture
def teacher_headers():
    return {"Authorization": "Bearer " + make_token("t1", "teacher")}
