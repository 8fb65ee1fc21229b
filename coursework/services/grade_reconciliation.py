"""
Grade Reconciliation
====================
Decides, per question, which grade the teacher edits and which grades are
sent back when saving.

Text questions are never auto-graded, so their grade is always sent.
Multiple-choice and matching grades stay "automatic" (omitted, the server
recomputes them) unless the teacher's value is a real override of the
auto-grade.
"""

from typing import Dict, List, Optional

from coursework.models import Question, normalize_grades

OVERRIDE_TOLERANCE = 0.01


class Reconciliation:
    """Result of reconciling stored grades against auto-grades.

    display: index -> grade for every question (what the edit form shows)
    payload: index -> grade to transmit (text grades plus real overrides)
    """

    def __init__(self, display, payload):
        self.display = display
        self.payload = payload

    def payload_for_request(self) -> Dict[str, float]:
        """Payload keyed by string index, as the API expects."""
        return {str(index): grade for index, grade in self.payload.items()}

    def to_dict(self):
        return {
            "display": {str(k): v for k, v in self.display.items()},
            "payload": self.payload_for_request(),
        }


def is_manual_override(entered: Optional[float], auto: Optional[float]) -> bool:
    """
    True when an entered grade should replace the auto-grade.

    Both values must exist and differ by more than the tolerance. An entered
    0 against a positive auto-grade is treated as stale data, not an override.
    """
    if entered is None or auto is None:
        return False
    if abs(entered - auto) <= OVERRIDE_TOLERANCE:
        return False
    # Suspected stale-data workaround: a cleared input reads as 0
    if entered == 0 and auto > 0:
        return False
    return True


def reconcile(questions: List[Question], question_grades=None, auto_question_grades=None) -> Reconciliation:
    """
    Reconcile grades for every question.

    question_grades and auto_question_grades may be partial, keyed by int or
    string index, or absent entirely.
    """
    entered_grades = normalize_grades(question_grades)
    auto_grades = normalize_grades(auto_question_grades)

    display = {}
    payload = {}
    for index, question in enumerate(questions or []):
        entered = entered_grades.get(index)
        auto = auto_grades.get(index)

        if not question.is_auto_graded:
            if entered is not None:
                value = entered
            elif auto is not None:
                value = auto
            else:
                value = 0.0
            display[index] = value
            payload[index] = value
            continue

        if is_manual_override(entered, auto):
            display[index] = entered
            payload[index] = entered
        else:
            display[index] = auto if auto is not None else 0.0

    return Reconciliation(display, payload)


def outgoing_grades(questions: List[Question], question_grades=None, auto_question_grades=None) -> Dict[str, float]:
    """Shortcut for the transmitted part of a reconciliation."""
    return reconcile(questions, question_grades, auto_question_grades).payload_for_request()
