"""
Coursework Portal Services
==========================

Business logic for the Coursework Portal application.

Services:
- lms_client: REST client for the LMS API
- grade_reconciliation: which per-question grades to show and send
- feedback_visibility: what a student may see after submitting
- draft_store: key-value storage and draft autosave
- quiz_clock: timed-quiz countdown
- assignment_viewer: student/teacher assignment page session
- grading_interface: teacher grading session
"""

# Services are imported directly when needed to avoid circular imports
# Example: from coursework.services.grade_reconciliation import reconcile

__all__ = [
    'lms_client',
    'grade_reconciliation',
    'feedback_visibility',
    'draft_store',
    'quiz_clock',
    'assignment_viewer',
    'grading_interface',
]
