"""
Coursework Portal API Routes
============================

All API route blueprints for the Coursework Portal application.

Usage:
    from coursework.routes import register_routes
    register_routes(app, store)
"""
from .common import init_route_state
from .assignment_routes import assignment_bp
from .grading_routes import grading_bp
from .course_routes import course_bp


def register_routes(app, store, client_factory=None):
    """Register all route blueprints with the Flask app."""
    init_route_state(store, client_factory)

    app.register_blueprint(assignment_bp)
    app.register_blueprint(grading_bp)
    app.register_blueprint(course_bp)


__all__ = [
    'register_routes',
    'assignment_bp',
    'grading_bp',
    'course_bp',
]
