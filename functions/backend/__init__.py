"""
Backend package for the KPSS flashcard service.

This package provides a FastAPI application that binds to a Firebase
project, serves the built study UI and tells open pages when a newer
build is ready.
"""

__version__ = "0.1.0"
