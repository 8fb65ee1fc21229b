"""
Assignment Viewer
=================
Student/teacher view of a single assignment: loads the assignment and any
submission, restores the student's draft, records answer and file changes,
submits, and derives feedback for display.

One AssignmentViewer is built per request; anything that must survive
between requests lives in the LMS (submissions) or the store (drafts,
quiz start times).
"""

import logging
from datetime import datetime, timezone

from coursework.models import (
    MATCHING, Assignment, Submission, UploadedFile, deserialize_answer,
    is_answered, parse_answers, parse_uploaded_files, serialize_answer, serialize_answers,
)
from coursework.services.draft_store import DraftPersistence
from coursework.services.feedback_visibility import build_feedback, feedback_mode
from coursework.services.lms_client import NotFoundError
from coursework.services.quiz_clock import QuizClock

logger = logging.getLogger(__name__)

STUDENT = "student"
INSTRUCTOR_ROLES = ("teacher", "admin")


class ViewerError(Exception):
    """A user action that cannot be carried out in the current state."""

    def __init__(self, message, status_code=400):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class AssignmentViewer:
    """Everything one user sees and does on one assignment page."""

    def __init__(self, client, store, user, assignment_id, now=None):
        self.client = client
        self.store = store
        self.user = user or {}
        self.assignment_id = str(assignment_id)
        self._now = now
        self.assignment = None
        self.submission = None
        self.answers = {}
        self.uploaded_files = []
        self.drafts = DraftPersistence(store, self.assignment_id, self.user_id)

    @property
    def user_id(self):
        return self.user.get("id")

    @property
    def role(self):
        return self.user.get("role")

    @property
    def is_student(self):
        return self.role == STUDENT

    @property
    def is_instructor(self):
        return self.role in INSTRUCTOR_ROLES

    # ============ Loading ============

    def load(self):
        """Fetch the assignment, the relevant submission and any saved draft."""
        self.assignment = Assignment.model_validate(self.client.get_assignment(self.assignment_id) or {})
        questions = self.assignment.question_list()
        self.answers = parse_answers(questions, {})

        if self.is_student:
            try:
                data = self.client.get_student_submission(self.assignment_id)
            except NotFoundError:
                data = None
            self.submission = Submission.model_validate(data) if data else None

            if self.submission is not None:
                self.answers = parse_answers(questions, self.submission.answers)
                # a submission exists, so any leftover draft is stale
                self.drafts.clear()
            else:
                draft = self.drafts.load(questions)
                if draft is not None:
                    # upload-only assignments keep files in the draft too
                    if questions:
                        self.answers = draft.answers
                    self.uploaded_files = draft.uploaded_files
                    logger.debug("Restored draft %s", self.drafts.key)

        elif self.is_instructor:
            submissions = self.client.list_submissions(self.assignment_id)
            self.submission = Submission.model_validate(submissions[0]) if submissions else None
            if self.submission is not None:
                self.answers = parse_answers(questions, self.submission.answers)

        return self

    # ============ Drafts ============

    def _can_autosave(self):
        return self.is_student and self.submission is None and self.user_id is not None

    def _autosave(self):
        if self._can_autosave():
            self.drafts.save(answers=self.answers, uploaded_files=self.uploaded_files)

    def change_answer(self, index, value):
        """Record an answer (raw string, or mapping for matching questions)."""
        self._require_open_for_answers()
        questions = self.assignment.question_list()
        index = int(index)
        if not 0 <= index < len(questions):
            raise ViewerError(f"Question {index + 1} does not exist", 404)

        self.answers[index] = deserialize_answer(questions[index].type, value)
        self._autosave()
        return self.answers[index]

    def upload_files(self, files):
        """Upload files to the LMS and add them to this attempt."""
        self._require_open_for_answers()
        uploaded = self.client.upload_files(files)
        for item in uploaded:
            self.uploaded_files.append(UploadedFile(
                name=item.get("originalname") or item.get("name") or "",
                url=item.get("path") or item.get("url") or "",
                size=item.get("size"),
            ))
        self._autosave()
        return self.uploaded_files

    def remove_file(self, index):
        self._require_open_for_answers()
        index = int(index)
        if not 0 <= index < len(self.uploaded_files):
            raise ViewerError("File not found", 404)
        del self.uploaded_files[index]
        self._autosave()
        return self.uploaded_files

    def _require_open_for_answers(self):
        if not self.is_student:
            raise ViewerError("Only students can answer assignments", 403)
        if self.submission is not None:
            raise ViewerError("This assignment has already been submitted", 409)

    def answered_questions(self):
        return sorted(index for index, answer in self.answers.items() if is_answered(answer))

    # ============ Submitting ============

    def submission_payload(self, group_id=None):
        payload = {
            "assignment": self.assignment_id,
            "answers": serialize_answers(self.answers),
            "submittedAt": self._timestamp().isoformat(),
            "uploadedFiles": [f.to_submission_file() for f in self.uploaded_files],
        }
        if self.assignment is not None and self.assignment.is_group_assignment:
            if not group_id:
                raise ViewerError("You are not a member of any group for this group assignment.")
            payload["groupId"] = group_id
        return payload

    def _merge_posted(self, answers=None, uploaded_files=None):
        """Apply answers/files sent with the submit request over the draft state."""
        if answers is not None:
            if not isinstance(answers, dict):
                raise ViewerError("answers must be an object keyed by question index")
            parsed = parse_answers(self.assignment.question_list(), answers)
            for key in answers:
                try:
                    index = int(key)
                except (TypeError, ValueError):
                    continue
                self.answers[index] = parsed[index]
        if uploaded_files is not None:
            if not isinstance(uploaded_files, list):
                raise ViewerError("uploadedFiles must be a list")
            self.uploaded_files = parse_uploaded_files(uploaded_files)

    def submit(self, group_id=None, answers=None, uploaded_files=None):
        """
        POST the answers; on success the draft is deleted.

        answers/uploaded_files, when given, come from the request and take
        precedence over what the draft restored.
        """
        if not self.is_student:
            raise ViewerError("Only students can submit assignments", 403)
        if self.submission is not None:
            raise ViewerError("This assignment has already been submitted", 409)

        self._merge_posted(answers, uploaded_files)
        data = self.client.create_submission(self.submission_payload(group_id))
        self.submission = Submission.model_validate(data or {})
        if self.submission.answers:
            self.answers = parse_answers(self.assignment.question_list(), self.submission.answers)
        self.drafts.clear()
        logger.info("Submitted assignment %s for user %s", self.assignment_id, self.user_id)
        return self.submission

    def _timestamp(self):
        return self._now() if self._now else datetime.now(timezone.utc)

    # ============ Timed quizzes ============

    def quiz_clock(self):
        """The quiz clock, or None when no clock applies (never once submitted)."""
        assignment = self.assignment
        if assignment is None or not (assignment.is_timed_quiz and assignment.quiz_time_limit):
            return None
        if not self.is_student or self.submission is not None or self.user_id is None:
            return None
        clock = QuizClock(self.store, self.assignment_id, self.user_id,
                          assignment.quiz_time_limit, now=self._now)
        clock.resume()
        return clock

    def start_quiz(self):
        clock = self.quiz_clock()
        if clock is None:
            raise ViewerError("This assignment has no quiz timer to start")
        if not clock.started:
            clock.start()
        return clock

    # ============ Feedback / view model ============

    def feedback(self):
        return build_feedback(self.assignment, self.submission, self.answers,
                              teacher_preview=self.is_instructor)

    def to_dict(self):
        clock = self.quiz_clock()
        return {
            "assignment": self.assignment.model_dump(mode="json") if self.assignment else None,
            "submission": self.submission.model_dump(mode="json") if self.submission else None,
            "answers": {str(i): _answer_view(a) for i, a in self.answers.items()},
            "uploaded_files": [f.model_dump(exclude_none=True) for f in self.uploaded_files],
            "answered_questions": self.answered_questions(),
            "feedback_mode": feedback_mode(self.assignment, self.submission).value,
            "feedback": self.feedback()["questions"],
            "quiz": clock.status() if clock else None,
        }


def _answer_view(answer):
    if answer.kind == MATCHING:
        if answer.raw is not None and not answer.pairs:
            return answer.raw
        return {str(k): v for k, v in answer.pairs.items()}
    return serialize_answer(answer)

