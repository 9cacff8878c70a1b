"""FastAPI application for the conference review platform.

This module builds the FastAPI application, wires the repository,
document store and lifecycle engine into ``app.state``, maps domain
errors onto HTTP status codes and provides a convenience function to
launch the server via Uvicorn.
"""

from __future__ import annotations

from typing import Optional

import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from ..config.settings import settings
from ..core.errors import (
    AuthenticationError,
    AuthorizationError,
    ConfrevError,
    NotFoundError,
    ValidationError,
)
from ..lifecycle.engine import PaperLifecycleEngine
from ..papers.documents import DocumentStore
from ..storage import open_repository
from ..storage.base import Repository
from ..utils.logging import get_logger
from .routes import router

logger = get_logger(__name__)

ERROR_STATUS = {
    ValidationError: 400,
    AuthenticationError: 401,
    AuthorizationError: 403,
    NotFoundError: 404,
}


async def domain_error_handler(request: Request, exc: ConfrevError) -> JSONResponse:
    """Translate a domain error into a JSON error response."""
    status_code = next(
        (code for kind, code in ERROR_STATUS.items() if isinstance(exc, kind)),
        400,
    )
    if status_code in (401, 403):
        logger.warning(f"Rejected {request.method} {request.url.path}: {exc.message}")
    return JSONResponse(status_code=status_code, content={"message": exc.message})


async def request_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Report malformed request bodies with the same shape as domain errors."""
    errors = exc.errors()
    message = errors[0]["msg"] if errors else "Invalid request"
    return JSONResponse(status_code=400, content={"message": message})


def create_app(
    repo: Optional[Repository] = None,
    documents: Optional[DocumentStore] = None,
    reviewers_per_paper: Optional[int] = None,
) -> FastAPI:
    """Build an application bound to ``repo`` (SQLite from settings by default)."""
    app = FastAPI(
        title="Conference Review Platform",
        description="Paper submission and review workflow API",
        version="0.1.0",
    )
    app.state.repo = repo or open_repository()
    app.state.documents = documents or DocumentStore()
    app.state.engine = PaperLifecycleEngine(app.state.repo, reviewers_per_paper=reviewers_per_paper)

    app.add_exception_handler(ConfrevError, domain_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, request_error_handler)  # type: ignore[arg-type]
    app.include_router(router)
    app.mount(
        "/uploads",
        StaticFiles(directory=str(app.state.documents.upload_dir)),
        name="uploads",
    )

    @app.get("/")
    async def index() -> dict:
        return {"message": "Conference Management API is running."}

    return app


def start_server(host: str = "0.0.0.0", port: int = 5001, reload: bool = False) -> None:
    """Start the Uvicorn web server.

    Parameters
    ----------
    host: str
        Host to bind the server to. Defaults to ``0.0.0.0``.
    port: int
        Port to listen on. Defaults to 5001.
    reload: bool
        Whether to enable auto-reload. Useful during development.
    """
    logger.info(f"Serving with database {settings.database_path}")
    uvicorn.run(
        "confrev.web.app:create_app",
        host=host,
        port=port,
        reload=reload,
        factory=True,
    )


if __name__ == "__main__":
    start_server()
