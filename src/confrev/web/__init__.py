"""Web interface for the conference review platform.

This package contains the FastAPI application and API routes that
expose conference management, paper submission and review decisions
over HTTP.
"""

from .app import create_app, start_server  # noqa: F401
