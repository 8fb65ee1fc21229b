"""
LMS REST API Client
===================
Thin requests-based client for the LMS backend. Every call carries the
user's bearer token; responses are JSON except downloads (raw bytes).

Errors are raised as LMSError subclasses:
- AuthenticationError: no token, or HTTP 401
- NotFoundError: HTTP 404 (often a valid empty state, e.g. no submission yet)
- RequestError: any other non-2xx, message taken from the response body
- LMSConnectionError: transport failure
"""

import json
import logging

import requests

from coursework.config import config

logger = logging.getLogger(__name__)


class LMSError(Exception):
    """Base error for LMS API calls."""

    def __init__(self, message, status_code=None, payload=None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.payload = payload


class AuthenticationError(LMSError):
    pass


class NotFoundError(LMSError):
    pass


class RequestError(LMSError):
    pass


class LMSConnectionError(LMSError):
    pass


def error_message(payload, fallback):
    """Pick the server's message out of an error body, else the fallback."""
    if isinstance(payload, dict):
        for key in ("message", "error"):
            value = payload.get(key)
            if isinstance(value, str) and value:
                return value
    return fallback


class LMSClient:
    """Client for the LMS API, scoped to one user's token.

    Usage:
        client = LMSClient(token)
        assignment = client.get_assignment("abc123")
    """

    def __init__(self, token, base_url=None, timeout=None, session=None):
        self.token = token
        self.base_url = (base_url or config.lms_api_url).rstrip("/")
        self.timeout = timeout if timeout is not None else config.request_timeout
        self.session = session or requests.Session()

    def _request(self, method, path, fallback="Error contacting the server", raw=False, **kwargs):
        if not self.token:
            raise AuthenticationError("Authentication token not found. Please log in again.", 401)

        headers = kwargs.pop("headers", {})
        headers["Authorization"] = f"Bearer {self.token}"
        url = self.base_url + path

        try:
            response = self.session.request(method, url, headers=headers, timeout=self.timeout, **kwargs)
        except requests.RequestException as e:
            logger.error("%s %s failed: %s", method, path, e)
            raise LMSConnectionError(fallback) from e

        if response.status_code >= 400:
            payload = _safe_json(response)
            message = error_message(payload, fallback)
            logger.warning("%s %s -> %s: %s", method, path, response.status_code, message)
            if response.status_code == 401:
                raise AuthenticationError(message, 401, payload)
            if response.status_code == 404:
                raise NotFoundError(message, 404, payload)
            raise RequestError(message, response.status_code, payload)

        if raw:
            return response.content
        if not response.content:
            return None
        return _safe_json(response)

    # ============ Assignments ============

    def get_assignment(self, assignment_id):
        return self._request("GET", f"/api/assignments/{assignment_id}",
                             fallback="Error fetching assignment details")

    def toggle_publish(self, assignment_id):
        return self._request("PATCH", f"/api/assignments/{assignment_id}/publish",
                             fallback="Error updating publish status")

    # ============ Submissions ============

    def get_student_submission(self, assignment_id):
        """The current student's submission; raises NotFoundError if none yet."""
        return self._request("GET", f"/api/submissions/student/{assignment_id}",
                             fallback="Error fetching submission")

    def list_submissions(self, assignment_id):
        data = self._request("GET", f"/api/submissions/assignment/{assignment_id}",
                             fallback="Error fetching submissions")
        return data if isinstance(data, list) else []

    def create_submission(self, payload):
        return self._request("POST", "/api/submissions", json=payload,
                             fallback="Error submitting assignment")

    def update_submission(self, submission_id, payload, files=None):
        """
        PUT a grading update. With files the payload goes as multipart form
        data (nested values JSON-encoded), otherwise as a JSON body.
        """
        path = f"/api/submissions/{submission_id}"
        if not files:
            return self._request("PUT", path, json=payload, fallback="Error grading submission")

        form = {}
        for key, value in payload.items():
            if isinstance(value, (dict, list)):
                form[key] = json.dumps(value)
            elif isinstance(value, bool):
                form[key] = "true" if value else "false"
            else:
                form[key] = "" if value is None else str(value)
        multipart = [("teacherFeedbackFiles", f) for f in files]
        return self._request("PUT", path, data=form, files=multipart, fallback="Error grading submission")

    def delete_submission(self, submission_id):
        return self._request("DELETE", f"/api/submissions/{submission_id}",
                             fallback="Error deleting submission")

    def download_submission(self, submission_id):
        return self._request("GET", f"/api/submissions/{submission_id}/download", raw=True,
                             fallback="Error downloading submission")

    def download_all_submissions(self, assignment_id):
        return self._request("GET", f"/api/submissions/assignment/{assignment_id}/download", raw=True,
                             fallback="Error downloading submissions")

    # ============ Files ============

    def upload_files(self, files):
        """Upload (filename, stream, mimetype) tuples; returns the server's file list."""
        multipart = [("files", f) for f in files]
        data = self._request("POST", "/api/upload", files=multipart, fallback="Error uploading files")
        return (data or {}).get("files", []) if isinstance(data, dict) else []

    # ============ Modules / Grades ============

    def get_module_view(self, module_id):
        return self._request("GET", f"/api/modules/view/{module_id}",
                             fallback="Error fetching module")

    def get_course_average(self, course_id):
        return self._request("GET", f"/api/grades/course/{course_id}/average",
                             fallback="Error fetching course grades")

    def get_student_course_grades(self, course_id):
        return self._request("GET", f"/api/grades/student/course/{course_id}",
                             fallback="Error fetching course grades")


def _safe_json(response):
    try:
        return response.json()
    except ValueError:
        return None
