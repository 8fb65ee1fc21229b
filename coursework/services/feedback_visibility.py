"""
Feedback Visibility
===================
Decides what a student sees about each question once their work is
submitted: their own answer, whether it was correct, and the correct
answer itself.

The mode is derived from the current flags on every call and never cached,
since teachers can toggle the flags at any time.
"""

import enum
from typing import Dict, List, Optional

from coursework.models import (
    MATCHING, MULTIPLE_CHOICE, Assignment, ChoiceAnswer, MatchAnswer,
    Question, Submission, TextAnswer, serialize_answer,
)


class FeedbackMode(enum.Enum):
    FULL = "full"
    CORRECTNESS_ONLY = "correctness-only"
    NONE = "none"


class QuestionStatus(enum.Enum):
    CORRECT = "correct"
    INCORRECT = "incorrect"
    PARTIAL = "partial"
    # no correctness shown (text questions, or no feedback)
    NEUTRAL = "neutral"


def feedback_mode(assignment: Assignment, submission: Optional[Submission]) -> FeedbackMode:
    """
    Full feedback when correct answers are enabled (on the submission or the
    assignment) or the submission was auto-graded. Correctness-only when just
    student answers are enabled. Otherwise none.
    """
    if submission is None:
        return FeedbackMode.NONE
    show_correct = bool(submission.show_correct_answers) or assignment.show_correct_answers
    if show_correct or submission.auto_graded:
        return FeedbackMode.FULL
    show_student = bool(submission.show_student_answers) or assignment.show_student_answers
    if show_student:
        return FeedbackMode.CORRECTNESS_ONLY
    return FeedbackMode.NONE


def matching_pairs(question: Question, answer: Optional[MatchAnswer]) -> List[Dict]:
    """One row per left item: what the student chose and what was correct."""
    pairs = answer.pairs if isinstance(answer, MatchAnswer) else {}
    rows = []
    for left_index, left_item in enumerate(question.left_items):
        student = pairs.get(left_index, "")
        right = question.right_item_for(left_item)
        correct = right.text if right is not None else ""
        rows.append({
            "left": left_item.text,
            "student": student,
            "correct": correct,
            "is_correct": student == correct,
        })
    return rows


def percentage_correct(question: Question, answer: Optional[MatchAnswer]) -> float:
    rows = matching_pairs(question, answer)
    if not rows:
        return 0.0
    return sum(1 for row in rows if row["is_correct"]) / len(rows)


def _fmt_points(value) -> str:
    value = float(value or 0)
    return str(int(value)) if value.is_integer() else f"{value:.2f}"


def format_points(earned, total) -> str:
    """'3 / 5 pts', with non-integers to two decimals."""
    return f"{_fmt_points(earned)} / {_fmt_points(total)} pts"


def question_feedback(index: int, question: Question, answer, mode: FeedbackMode,
                      submission: Optional[Submission] = None, teacher_preview: bool = False) -> Dict:
    """Build the feedback view for one question under the given mode."""
    result = {
        "index": index,
        "type": question.type,
        "mode": mode.value,
        "status": QuestionStatus.NEUTRAL.value,
        "student_answer": None,
        "correct_answer": None,
        "points": _points_label(index, question, submission),
    }

    if teacher_preview and question.type == MULTIPLE_CHOICE:
        correct = question.correct_option()
        result["correct_answer"] = correct.text if correct else None

    if mode == FeedbackMode.NONE:
        return result

    show_correct = mode == FeedbackMode.FULL

    if question.type == MULTIPLE_CHOICE:
        chosen = answer.value if isinstance(answer, ChoiceAnswer) else ""
        correct = question.correct_option()
        correct_text = correct.text if correct else ""
        is_correct = correct is not None and str(chosen) == str(correct_text)
        result["student_answer"] = chosen
        result["status"] = (QuestionStatus.CORRECT if is_correct else QuestionStatus.INCORRECT).value
        if show_correct and not is_correct:
            result["correct_answer"] = correct_text or None

    elif question.type == MATCHING:
        rows = matching_pairs(question, answer)
        ratio = percentage_correct(question, answer)
        # correct text only for misses, and only under full feedback
        for row in rows:
            if not show_correct or row["is_correct"]:
                row["correct"] = None
        result["student_answer"] = rows
        result["percentage_correct"] = ratio
        if ratio == 1:
            status = QuestionStatus.CORRECT
        elif ratio > 0 and show_correct:
            status = QuestionStatus.PARTIAL
        else:
            status = QuestionStatus.INCORRECT
        result["status"] = status.value

    else:
        result["student_answer"] = answer.value if isinstance(answer, TextAnswer) else (
            serialize_answer(answer) if answer is not None else "")

    return result


def _points_label(index, question, submission):
    if submission is not None and submission.auto_graded and question.is_auto_graded:
        return format_points(submission.auto_question_grades.get(index, 0), question.points)
    return f"{_fmt_points(question.points)} pts"


def build_feedback(assignment: Assignment, submission: Optional[Submission], answers: Dict,
                   teacher_preview: bool = False) -> Dict:
    """Feedback for every question of the assignment, recomputed per call."""
    mode = feedback_mode(assignment, submission)
    questions = [
        question_feedback(index, question, answers.get(index), mode, submission, teacher_preview)
        for index, question in enumerate(assignment.question_list())
    ]
    return {"mode": mode.value, "questions": questions}
