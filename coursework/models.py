"""
Data models for assignments, questions and submissions.

The LMS API is the source of truth; these are transient copies parsed
defensively (missing fields fall back to empty/zero values). Field names
are snake_case and accept the API's camelCase keys as aliases.
"""
import json
import logging
from datetime import datetime
from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError, field_validator

logger = logging.getLogger(__name__)

TEXT = "text"
MULTIPLE_CHOICE = "multiple-choice"
MATCHING = "matching"

QUESTION_TYPES = (TEXT, MULTIPLE_CHOICE, MATCHING)


class LMSModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


def _id_field(**kwargs):
    return Field(None, validation_alias=AliasChoices("_id", "id"), **kwargs)


class Option(LMSModel):
    text: str = ""
    is_correct: bool = Field(False, alias="isCorrect")


class MatchItem(LMSModel):
    id: Optional[str] = _id_field()
    text: str = ""

    @field_validator("id", mode="before")
    @classmethod
    def _coerce_id(cls, value):
        return None if value is None else str(value)


class Question(LMSModel):
    id: Optional[str] = _id_field()
    type: str = TEXT
    text: str = ""
    points: float = 0
    options: List[Option] = Field(default_factory=list)
    left_items: List[MatchItem] = Field(default_factory=list, alias="leftItems")
    right_items: List[MatchItem] = Field(default_factory=list, alias="rightItems")

    @field_validator("points", mode="before")
    @classmethod
    def _non_negative_points(cls, value):
        try:
            return max(float(value or 0), 0.0)
        except (TypeError, ValueError):
            return 0.0

    @field_validator("options", "left_items", "right_items", mode="before")
    @classmethod
    def _none_to_list(cls, value):
        return value or []

    @property
    def is_auto_graded(self) -> bool:
        return self.type in (MULTIPLE_CHOICE, MATCHING)

    def correct_option(self) -> Optional[Option]:
        for option in self.options:
            if option.is_correct:
                return option
        return None

    def right_item_for(self, left_item: MatchItem) -> Optional[MatchItem]:
        """The right-hand item sharing the left item's id."""
        for item in self.right_items:
            if item.id == left_item.id:
                return item
        return None


class Assignment(LMSModel):
    id: Optional[str] = _id_field()
    title: str = ""
    description: str = ""
    content: str = ""
    due_date: Optional[datetime] = Field(None, alias="dueDate")
    course: Optional[str] = None
    module: Optional[str] = None
    # None means an upload-only assignment
    questions: Optional[List[Question]] = None
    is_graded_quiz: bool = Field(False, alias="isGradedQuiz")
    is_timed_quiz: bool = Field(False, alias="isTimedQuiz")
    quiz_time_limit: Optional[float] = Field(None, alias="quizTimeLimit")
    display_mode: Optional[str] = Field(None, alias="displayMode")
    show_correct_answers: bool = Field(False, alias="showCorrectAnswers")
    show_student_answers: bool = Field(False, alias="showStudentAnswers")
    published: bool = False
    is_group_assignment: bool = Field(False, alias="isGroupAssignment")

    @field_validator("course", "module", mode="before")
    @classmethod
    def _ref_to_id(cls, value):
        return _reference_id(value)

    @field_validator("show_correct_answers", "show_student_answers", "published",
                     "is_graded_quiz", "is_timed_quiz", "is_group_assignment", mode="before")
    @classmethod
    def _none_to_false(cls, value):
        return bool(value)

    @property
    def has_questions(self) -> bool:
        return bool(self.questions)

    def question_list(self) -> List[Question]:
        return list(self.questions or [])


class UploadedFile(LMSModel):
    name: str = ""
    url: str = ""
    size: Optional[int] = None

    def to_submission_file(self) -> Dict[str, str]:
        """Shape sent with a submission: url plus display/original names."""
        fallback = self.url.rstrip("/").split("/")[-1] if self.url else ""
        name = self.name or fallback or "file"
        return {"url": self.url or "", "name": name, "originalname": name}


def parse_uploaded_files(items) -> List[UploadedFile]:
    """
    Build UploadedFile entries from stored or posted data.

    Entries may be file objects or bare URL strings. Entries that fail
    validation are logged and skipped.
    """
    if not isinstance(items, list):
        return []
    files = []
    for item in items:
        if isinstance(item, str):
            files.append(UploadedFile(url=item))
            continue
        if not isinstance(item, dict):
            logger.warning("Skipping uploaded file entry of type %s", type(item).__name__)
            continue
        try:
            files.append(UploadedFile.model_validate(item))
        except ValidationError as e:
            logger.warning("Skipping invalid uploaded file entry %r: %s", item, e)
    return files


class Submission(LMSModel):
    id: Optional[str] = _id_field()
    assignment: Optional[str] = None
    student: Optional[str] = None
    submitted_at: Optional[datetime] = Field(None, alias="submittedAt")
    answers: Dict[str, Any] = Field(default_factory=dict)
    grade: Optional[float] = None
    final_grade: Optional[float] = Field(None, alias="finalGrade")
    feedback: str = ""
    files: List[Any] = Field(default_factory=list)
    auto_graded: bool = Field(False, alias="autoGraded")
    auto_grade: Optional[float] = Field(None, alias="autoGrade")
    auto_question_grades: Dict[int, float] = Field(default_factory=dict, alias="autoQuestionGrades")
    question_grades: Dict[int, float] = Field(default_factory=dict, alias="questionGrades")
    teacher_approved: bool = Field(False, alias="teacherApproved")
    teacher_feedback_files: List[Any] = Field(default_factory=list, alias="teacherFeedbackFiles")
    # Per-submission overrides; None means "not set"
    show_correct_answers: Optional[bool] = Field(None, alias="showCorrectAnswers")
    show_student_answers: Optional[bool] = Field(None, alias="showStudentAnswers")

    @field_validator("assignment", "student", mode="before")
    @classmethod
    def _ref_to_id(cls, value):
        return _reference_id(value)

    @field_validator("auto_question_grades", "question_grades", mode="before")
    @classmethod
    def _normalize_grades(cls, value):
        return normalize_grades(value)

    @field_validator("answers", mode="before")
    @classmethod
    def _answers_to_dict(cls, value):
        if not isinstance(value, dict):
            return {}
        return {str(k): v for k, v in value.items()}

    @field_validator("feedback", mode="before")
    @classmethod
    def _none_to_empty(cls, value):
        return value or ""

    @field_validator("files", "teacher_feedback_files", mode="before")
    @classmethod
    def _none_to_list(cls, value):
        return value or []

    @field_validator("auto_graded", "teacher_approved", mode="before")
    @classmethod
    def _none_to_false(cls, value):
        return bool(value)


def _reference_id(value):
    """Populated references arrive as objects, bare ones as ids."""
    if value is None:
        return None
    if isinstance(value, dict):
        ref = value.get("_id") or value.get("id")
        return str(ref) if ref is not None else None
    return str(value)


def normalize_grades(raw) -> Dict[int, float]:
    """
    Collapse a per-question grade map into {index: points}, ordered by index.

    Accepts dicts keyed by int or numeric string, and lists of [key, value]
    pairs (a serialized Map). Entries that are not numeric are dropped.
    """
    if not raw:
        return {}
    if isinstance(raw, dict):
        items = raw.items()
    elif isinstance(raw, (list, tuple)):
        items = [pair for pair in raw if isinstance(pair, (list, tuple)) and len(pair) == 2]
    else:
        return {}

    grades = {}
    for key, value in items:
        try:
            index = int(key)
        except (TypeError, ValueError):
            continue
        if value is None or isinstance(value, bool):
            continue
        try:
            grades[index] = float(value)
        except (TypeError, ValueError):
            continue
    return dict(sorted(grades.items()))


# ============ Answers ============

class TextAnswer(LMSModel):
    kind: Literal["text"] = "text"
    value: str = ""


class ChoiceAnswer(LMSModel):
    kind: Literal["multiple-choice"] = "multiple-choice"
    value: str = ""


class MatchAnswer(LMSModel):
    kind: Literal["matching"] = "matching"
    # left item index -> chosen right item text
    pairs: Dict[int, str] = Field(default_factory=dict)
    # stored text that could not be parsed, kept verbatim
    raw: Optional[str] = None


Answer = Union[TextAnswer, ChoiceAnswer, MatchAnswer]


def empty_answer(question_type: str) -> Answer:
    if question_type == MATCHING:
        return MatchAnswer()
    if question_type == MULTIPLE_CHOICE:
        return ChoiceAnswer()
    return TextAnswer()


def _pairs_from(value) -> Dict[int, str]:
    pairs = {}
    for key, text in value.items():
        try:
            index = int(key)
        except (TypeError, ValueError):
            continue
        pairs[index] = "" if text is None else str(text)
    return dict(sorted(pairs.items()))


def deserialize_answer(question_type: str, raw) -> Answer:
    """
    Build an Answer from its wire/storage form.

    Matching answers may arrive as a dict or as JSON text; text that is not
    a JSON object is kept as-is in MatchAnswer.raw rather than raising.
    """
    if question_type == MATCHING:
        if isinstance(raw, dict):
            return MatchAnswer(pairs=_pairs_from(raw))
        if isinstance(raw, str) and raw.strip():
            try:
                decoded = json.loads(raw)
            except ValueError:
                decoded = None
            if isinstance(decoded, dict):
                return MatchAnswer(pairs=_pairs_from(decoded))
            logger.warning("Unparseable matching answer: %r", raw[:80])
            return MatchAnswer(raw=raw)
        return MatchAnswer()

    if raw is None:
        value = ""
    elif isinstance(raw, dict):
        value = json.dumps(raw)
    else:
        value = str(raw)
    if question_type == MULTIPLE_CHOICE:
        return ChoiceAnswer(value=value)
    return TextAnswer(value=value)


def serialize_answer(answer: Answer) -> str:
    """Wire/storage form: plain string, or JSON text for matching answers."""
    if isinstance(answer, MatchAnswer):
        if answer.raw is not None and not answer.pairs:
            return answer.raw
        return json.dumps({str(k): v for k, v in answer.pairs.items()})
    return answer.value or ""


def is_answered(answer: Optional[Answer]) -> bool:
    if answer is None:
        return False
    if isinstance(answer, MatchAnswer):
        if answer.raw is not None and not answer.pairs:
            return bool(answer.raw.strip())
        return any(text.strip() for text in answer.pairs.values())
    return bool(answer.value.strip())


def parse_answers(questions: List[Question], raw_answers: Dict[str, Any]) -> Dict[int, Answer]:
    """
    Parse an index -> raw answer map against the question list.

    Every question gets an entry (empty if unanswered). Answers for indices
    beyond the question list are kept as text.
    """
    answers = {index: empty_answer(q.type) for index, q in enumerate(questions)}
    for key, raw in (raw_answers or {}).items():
        try:
            index = int(key)
        except (TypeError, ValueError):
            continue
        question_type = questions[index].type if 0 <= index < len(questions) else TEXT
        answers[index] = deserialize_answer(question_type, raw)
    return dict(sorted(answers.items()))


def serialize_answers(answers: Dict[int, Answer]) -> Dict[str, str]:
    return {str(index): serialize_answer(answer) for index, answer in answers.items()}
