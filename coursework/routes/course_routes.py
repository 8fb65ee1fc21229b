"""
Course-level routes for Coursework Portal.
Grade summaries for the course sidebar and module views for navigation.
"""
import logging
from flask import Blueprint, jsonify

from coursework.routes import common

logger = logging.getLogger(__name__)

course_bp = Blueprint('course', __name__)


@course_bp.route('/api/courses/<course_id>/grades', methods=['GET'])
def course_grades(course_id):
    """Course average for instructors, the student's own grades otherwise."""
    role = common.current_user().get('role')
    try:
        client = common.get_client()
        if role in ('teacher', 'admin'):
            data = client.get_course_average(course_id)
        else:
            data = client.get_student_course_grades(course_id)
        return jsonify({"role": role, "grades": data})
    except Exception as e:
        return common.lms_error_response(e, "Error fetching course grades")


@course_bp.route('/api/modules/<module_id>', methods=['GET'])
def module_view(module_id):
    try:
        return jsonify(common.get_client().get_module_view(module_id) or {})
    except Exception as e:
        return common.lms_error_response(e, "Error fetching module")
