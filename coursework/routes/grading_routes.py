"""
Grading routes for Coursework Portal.
Teacher-facing: submission lists, per-question grade edits, feedback,
feedback visibility toggles, downloads and deletion.
"""
import io
import json
import logging
from flask import Blueprint, request, jsonify, send_file

from coursework.routes import common
from coursework.services.grading_interface import GradingSession, GradingError

logger = logging.getLogger(__name__)

grading_bp = Blueprint('grading', __name__)

INSTRUCTOR_ROLES = ('teacher', 'admin')


def _require_instructor():
    if common.current_user().get('role') not in INSTRUCTOR_ROLES:
        return jsonify({"error": "Only instructors can grade submissions"}), 403
    return None


def _assignment_param():
    assignment_id = request.args.get('assignment') or request.form.get('assignment')
    if not assignment_id:
        data = request.get_json(silent=True) or {}
        assignment_id = data.get('assignment')
    return assignment_id


def _session_for(assignment_id, submission_id=None):
    session = GradingSession(common.get_client(), assignment_id).load()
    if submission_id is not None:
        session.select(submission_id)
    return session


def _grading_request_data():
    """Grading fields from either a JSON body or a multipart form."""
    if request.is_json:
        return request.get_json(silent=True) or {}
    data = request.form.to_dict()
    if 'questionGrades' in data:
        try:
            data['questionGrades'] = json.loads(data['questionGrades'] or '{}')
        except ValueError:
            # left as text; GradingSession rejects it with a 400
            pass
    if 'approveGrade' in data:
        data['approveGrade'] = data['approveGrade'].lower() == 'true'
    return data


@grading_bp.route('/api/grading/assignments/<assignment_id>', methods=['GET'])
def list_submissions(assignment_id):
    denied = _require_instructor()
    if denied:
        return denied
    try:
        return jsonify(_session_for(assignment_id).to_dict())
    except Exception as e:
        return common.lms_error_response(e, "Error fetching assignment data")


@grading_bp.route('/api/grading/submissions/<submission_id>', methods=['GET'])
def get_grading_state(submission_id):
    """Edit state for one submission: display grades and what a save would send."""
    denied = _require_instructor()
    if denied:
        return denied
    assignment_id = _assignment_param()
    if not assignment_id:
        return jsonify({"error": "assignment parameter is required"}), 400
    try:
        return jsonify(_session_for(assignment_id, submission_id).to_dict())
    except GradingError as e:
        return jsonify({"error": e.message}), e.status_code
    except Exception as e:
        return common.lms_error_response(e, "Error fetching submission")


@grading_bp.route('/api/grading/submissions/<submission_id>', methods=['PUT'])
def save_grades(submission_id):
    """
    Save grades and feedback.
    Body: {assignment, approveGrade, questionGrades, feedback, grade};
    feedback files may be attached as multipart field 'teacherFeedbackFiles'.
    """
    denied = _require_instructor()
    if denied:
        return denied
    data = _grading_request_data()
    assignment_id = data.get('assignment') or request.args.get('assignment')
    if not assignment_id:
        return jsonify({"error": "assignment is required"}), 400

    try:
        session = _session_for(assignment_id, submission_id)
        if 'questionGrades' in data:
            session.set_question_grades(data.get('questionGrades') or {})
        if 'feedback' in data:
            session.set_feedback(data.get('feedback'))
        if 'grade' in data:
            session.set_grade(data.get('grade'))
        for f in request.files.getlist('teacherFeedbackFiles'):
            session.attach_feedback_file((f.filename, f.stream, f.mimetype))

        session.save(approve_grade=bool(data.get('approveGrade', False)))
        return jsonify(session.to_dict())
    except GradingError as e:
        return jsonify({"error": e.message}), e.status_code
    except Exception as e:
        return common.lms_error_response(e, "Error grading submission")


@grading_bp.route('/api/grading/submissions/<submission_id>/visibility', methods=['PUT'])
def set_visibility(submission_id):
    """Toggle showCorrectAnswers / showStudentAnswers on one submission."""
    denied = _require_instructor()
    if denied:
        return denied
    data = request.get_json(silent=True) or {}
    assignment_id = data.get('assignment') or request.args.get('assignment')
    if not assignment_id:
        return jsonify({"error": "assignment is required"}), 400

    try:
        session = _session_for(assignment_id, submission_id)
        session.set_visibility(
            show_correct_answers=data.get('showCorrectAnswers'),
            show_student_answers=data.get('showStudentAnswers'),
        )
        return jsonify(session.to_dict())
    except GradingError as e:
        return jsonify({"error": e.message}), e.status_code
    except Exception as e:
        return common.lms_error_response(e, "Error updating feedback settings")


@grading_bp.route('/api/grading/submissions/<submission_id>', methods=['DELETE'])
def delete_submission(submission_id):
    denied = _require_instructor()
    if denied:
        return denied
    try:
        common.get_client().delete_submission(submission_id)
        return jsonify({"success": True})
    except Exception as e:
        return common.lms_error_response(e, "Error deleting submission")


@grading_bp.route('/api/grading/assignments/<assignment_id>/download', methods=['GET'])
def download_all(assignment_id):
    """Zip of every submission for the assignment."""
    denied = _require_instructor()
    if denied:
        return denied
    try:
        filename, content = _session_for(assignment_id).download_all()
        return send_file(io.BytesIO(content or b''), mimetype='application/zip',
                         as_attachment=True, download_name=filename)
    except GradingError as e:
        return jsonify({"error": e.message}), e.status_code
    except Exception as e:
        return common.lms_error_response(e, "Error downloading submissions")


@grading_bp.route('/api/grading/submissions/<submission_id>/download', methods=['GET'])
def download_submission(submission_id):
    try:
        content = common.get_client().download_submission(submission_id)
        return send_file(io.BytesIO(content or b''), mimetype='application/octet-stream',
                         as_attachment=True, download_name=f"submission_{submission_id}.zip")
    except Exception as e:
        return common.lms_error_response(e, "Error downloading submission")
