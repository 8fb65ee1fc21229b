"""
Coursework Portal Package
=========================

Flask-based view layer for an LMS: assignment viewing, quiz taking,
draft autosave and teacher grading on top of the LMS REST API.

Structure:
- routes/: API route blueprints
- services/: Viewer, grading and storage logic
- models.py: Assignment / Question / Submission models
- config.py: Configuration management
"""

from .config import config, Config

__version__ = "1.0.0"

__all__ = ['config', 'Config']
