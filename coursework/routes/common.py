"""
Shared state and error translation for the route blueprints.
"""
import logging
from flask import jsonify, g

from coursework.services.lms_client import (
    LMSClient, LMSError, AuthenticationError, NotFoundError, LMSConnectionError,
)

logger = logging.getLogger(__name__)

# These will be set by register_routes during initialization
store = None
client_factory = LMSClient


def init_route_state(store_ref, factory=None):
    """Initialize the routes with the storage backend and LMS client factory."""
    global store, client_factory
    store = store_ref
    if factory is not None:
        client_factory = factory


def get_client():
    """LMS client for the current request's token."""
    return client_factory(g.get('token'))


def current_user():
    return g.get('user') or {}


def lms_error_response(e, fallback):
    """Translate an LMS error into a JSON error body and status code."""
    if isinstance(e, AuthenticationError):
        return jsonify({"error": e.message}), 401
    if isinstance(e, NotFoundError):
        return jsonify({"error": e.message or "Not found"}), 404
    if isinstance(e, LMSConnectionError):
        return jsonify({"error": e.message or fallback}), 502
    if isinstance(e, LMSError):
        status = e.status_code if e.status_code and 400 <= e.status_code < 600 else 502
        return jsonify({"error": e.message or fallback}), status
    logger.error("%s: %s", fallback, e, exc_info=True)
    return jsonify({"error": fallback}), 500
