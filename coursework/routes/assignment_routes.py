"""
Assignment viewer routes for Coursework Portal.
Handles viewing an assignment, answer/file autosave, submission and the
timed-quiz clock.
"""
import logging
from flask import Blueprint, request, jsonify

from coursework.routes import common
from coursework.services.assignment_viewer import AssignmentViewer, ViewerError

logger = logging.getLogger(__name__)

assignment_bp = Blueprint('assignment', __name__)


def _load_viewer(assignment_id):
    viewer = AssignmentViewer(common.get_client(), common.store, common.current_user(), assignment_id)
    return viewer.load()


def _viewer_action(assignment_id, action, fallback):
    """Load the viewer, run one action on it and return the refreshed view."""
    try:
        viewer = _load_viewer(assignment_id)
        action(viewer)
        return jsonify(viewer.to_dict())
    except ViewerError as e:
        return jsonify({"error": e.message}), e.status_code
    except Exception as e:
        return common.lms_error_response(e, fallback)


@assignment_bp.route('/api/view/assignments/<assignment_id>', methods=['GET'])
def view_assignment(assignment_id):
    """Assignment, submission, answers (or restored draft) and feedback."""
    return _viewer_action(assignment_id, lambda viewer: None, "Error fetching assignment details")


@assignment_bp.route('/api/view/assignments/<assignment_id>/answers/<int:index>', methods=['PUT'])
def change_answer(assignment_id, index):
    """Record one answer; body is {"value": <string or {leftIndex: text}>}."""
    data = request.get_json(silent=True) or {}
    if 'value' not in data:
        return jsonify({"error": "No answer provided"}), 400
    return _viewer_action(
        assignment_id,
        lambda viewer: viewer.change_answer(index, data.get('value')),
        "Error saving answer",
    )


@assignment_bp.route('/api/view/assignments/<assignment_id>/files', methods=['POST'])
def upload_files(assignment_id):
    """Upload files for this attempt (multipart field 'files')."""
    files = request.files.getlist('files')
    if not files:
        return jsonify({"error": "No files provided"}), 400
    payload = [(f.filename, f.stream, f.mimetype) for f in files]
    return _viewer_action(
        assignment_id,
        lambda viewer: viewer.upload_files(payload),
        "Error uploading files. Please try again.",
    )


@assignment_bp.route('/api/view/assignments/<assignment_id>/files/<int:index>', methods=['DELETE'])
def remove_file(assignment_id, index):
    return _viewer_action(
        assignment_id,
        lambda viewer: viewer.remove_file(index),
        "Error removing file",
    )


@assignment_bp.route('/api/view/assignments/<assignment_id>/submit', methods=['POST'])
def submit_assignment(assignment_id):
    """
    Submit and clear the saved draft.
    Body: {groupId?, answers?, uploadedFiles?}; answers and files default to the draft.
    """
    data = request.get_json(silent=True) or {}
    return _viewer_action(
        assignment_id,
        lambda viewer: viewer.submit(
            group_id=data.get('groupId'),
            answers=data.get('answers'),
            uploaded_files=data.get('uploadedFiles'),
        ),
        "Error submitting assignment",
    )


@assignment_bp.route('/api/view/assignments/<assignment_id>/quiz/start', methods=['POST'])
def start_quiz(assignment_id):
    try:
        viewer = _load_viewer(assignment_id)
        clock = viewer.start_quiz()
        return jsonify(clock.status())
    except ViewerError as e:
        return jsonify({"error": e.message}), e.status_code
    except Exception as e:
        return common.lms_error_response(e, "Error starting quiz")


@assignment_bp.route('/api/view/assignments/<assignment_id>/quiz', methods=['GET'])
def quiz_status(assignment_id):
    """Countdown state; null when the assignment is not a running timed quiz."""
    try:
        viewer = _load_viewer(assignment_id)
        clock = viewer.quiz_clock()
        return jsonify({"quiz": clock.status() if clock else None})
    except Exception as e:
        return common.lms_error_response(e, "Error fetching quiz status")


@assignment_bp.route('/api/view/assignments/<assignment_id>/publish', methods=['PATCH'])
def toggle_publish(assignment_id):
    user = common.current_user()
    if user.get('role') not in ('teacher', 'admin'):
        return jsonify({"error": "Only instructors can publish assignments"}), 403
    try:
        result = common.get_client().toggle_publish(assignment_id)
        return jsonify(result or {})
    except Exception as e:
        return common.lms_error_response(e, "Error updating publish status")
