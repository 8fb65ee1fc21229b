"""
Grading Interface
=================
Teacher-side grading of one assignment's submissions: pick a submission,
edit per-question grades, feedback text and feedback files, then send only
the grades that actually need sending. Also handles the feedback
visibility toggles and the bulk download.
"""

import logging
import re

from coursework.models import Assignment, Submission
from coursework.services.grade_reconciliation import reconcile

logger = logging.getLogger(__name__)


class GradingError(Exception):
    def __init__(self, message, status_code=400):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


def visibility_defaults(assignment: Assignment, submission: Submission) -> dict:
    """Toggle states shown to the teacher: the submission's value, else the assignment's."""
    def pick(own, inherited):
        return own if own is not None else bool(inherited)

    return {
        "showCorrectAnswers": pick(submission.show_correct_answers, assignment.show_correct_answers),
        "showStudentAnswers": pick(submission.show_student_answers, assignment.show_student_answers),
    }


def download_filename(title) -> str:
    return re.sub(r'[^a-z0-9]', '_', title or '', flags=re.IGNORECASE) + "_submissions.zip"


class GradingSession:
    """Grading state for one assignment, with at most one selected submission."""

    def __init__(self, client, assignment_id):
        self.client = client
        self.assignment_id = str(assignment_id)
        self.assignment = None
        self.submissions = []
        self.selected = None
        self.question_grades = {}
        self.feedback = ""
        self.grade = None
        self.teacher_feedback_files = []
        self.pending_files = []

    def load(self):
        self.assignment = Assignment.model_validate(self.client.get_assignment(self.assignment_id) or {})
        self.submissions = [Submission.model_validate(s) for s in self.client.list_submissions(self.assignment_id)]
        return self

    @property
    def questions(self):
        return self.assignment.question_list() if self.assignment else []

    def find(self, submission_id):
        for submission in self.submissions:
            if submission.id == str(submission_id):
                return submission
        return None

    def select(self, submission_id):
        """Select a submission and rebuild the edit state from it."""
        submission = self.find(submission_id)
        if submission is None:
            raise GradingError("Submission not found", 404)
        self._reset_from(submission)
        return self.selected

    def _reset_from(self, submission):
        self.selected = submission
        result = reconcile(self.questions, submission.question_grades, submission.auto_question_grades)
        self.question_grades = dict(result.display)
        self.feedback = submission.feedback or ""
        if not self.assignment.has_questions:
            existing = submission.grade if submission.grade is not None else submission.final_grade
            self.grade = existing
        else:
            self.grade = None
        self.teacher_feedback_files = list(submission.teacher_feedback_files or [])
        self.pending_files = []

    # ============ Editing ============

    def _require_selected(self):
        if self.selected is None:
            raise GradingError("No submission selected")

    def set_question_grade(self, index, value):
        self._require_selected()
        index = int(index)
        if not 0 <= index < len(self.questions):
            raise GradingError(f"Question {index + 1} does not exist", 404)
        if isinstance(value, bool):
            raise GradingError(f"Invalid grade for question {index + 1}")
        try:
            self.question_grades[index] = float(value)
        except (TypeError, ValueError):
            raise GradingError(f"Invalid grade for question {index + 1}")

    def set_question_grades(self, grades):
        """Apply an index -> grade mapping (or [index, grade] pairs); any bad entry is an error."""
        if isinstance(grades, dict):
            items = list(grades.items())
        elif isinstance(grades, (list, tuple)) and all(
                isinstance(pair, (list, tuple)) and len(pair) == 2 for pair in grades):
            items = list(grades)
        else:
            raise GradingError("questionGrades must map question index to grade")

        for key, value in items:
            try:
                index = int(key)
            except (TypeError, ValueError):
                raise GradingError(f"Invalid question index {key!r}")
            self.set_question_grade(index, value)

    def set_feedback(self, text):
        self._require_selected()
        self.feedback = text or ""

    def set_grade(self, value):
        """Overall grade, only meaningful for upload-only assignments."""
        self._require_selected()
        if value in (None, ""):
            self.grade = None
            return
        try:
            self.grade = float(value)
        except (TypeError, ValueError):
            raise GradingError("Invalid grade")

    def attach_feedback_file(self, file_tuple):
        """Queue a (filename, stream, mimetype) tuple to upload with the next save."""
        self._require_selected()
        self.pending_files.append(file_tuple)

    # ============ Saving ============

    def reconciliation(self):
        self._require_selected()
        return reconcile(self.questions, self.question_grades, self.selected.auto_question_grades)

    def build_payload(self, approve_grade=False):
        payload = {"feedback": self.feedback, "approveGrade": bool(approve_grade)}
        if not self.assignment.has_questions and self.grade is not None:
            payload["grade"] = self.grade
        if not approve_grade:
            payload["questionGrades"] = self.reconciliation().payload_for_request()
        return payload

    def save(self, approve_grade=False):
        """Send the grading update and re-derive state from the saved submission."""
        self._require_selected()
        payload = self.build_payload(approve_grade)
        data = self.client.update_submission(self.selected.id, payload, files=self.pending_files or None)
        updated = Submission.model_validate(data or {})
        if updated.id is None:
            updated.id = self.selected.id
        self._replace(updated)
        self._reset_from(updated)
        logger.info("Saved grades for submission %s (approved=%s)", updated.id, bool(approve_grade))
        return updated

    def set_visibility(self, show_correct_answers=None, show_student_answers=None):
        """Toggle per-submission feedback flags; only the given ones are sent."""
        self._require_selected()
        payload = {}
        if show_correct_answers is not None:
            payload["showCorrectAnswers"] = bool(show_correct_answers)
        if show_student_answers is not None:
            payload["showStudentAnswers"] = bool(show_student_answers)
        if not payload:
            raise GradingError("Nothing to update")

        data = self.client.update_submission(self.selected.id, payload)
        updated = Submission.model_validate(data or {})
        if updated.id is None:
            updated.id = self.selected.id
        self._replace(updated)
        self.selected = updated
        return updated

    def _replace(self, updated):
        self.submissions = [updated if s.id == updated.id else s for s in self.submissions]

    # ============ Downloads ============

    def download_all(self):
        if not self.submissions:
            raise GradingError("There are no submissions to download", 404)
        content = self.client.download_all_submissions(self.assignment_id)
        return download_filename(self.assignment.title), content

    def to_dict(self):
        state = {
            "assignment": self.assignment.model_dump(mode="json") if self.assignment else None,
            "submissions": [s.model_dump(mode="json") for s in self.submissions],
            "selected": None,
        }
        if self.selected is not None:
            result = self.reconciliation()
            state["selected"] = {
                "submission": self.selected.model_dump(mode="json"),
                "question_grades": {str(k): v for k, v in self.question_grades.items()},
                "pending_question_grades": result.payload_for_request(),
                "feedback": self.feedback,
                "grade": self.grade,
                "teacher_feedback_files": self.teacher_feedback_files,
                "visibility": visibility_defaults(self.assignment, self.selected),
            }
        return state
