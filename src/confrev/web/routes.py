"""API routes for conferences, papers and reviews.

The acting user is identified by the ``X-User-Id`` header; credential
handling happens in front of this service.  Domain errors are turned
into HTTP responses by the handlers registered in ``app.py``.
"""

from __future__ import annotations

from datetime import date
from typing import Any, Callable, Dict, List, Optional

from fastapi import APIRouter, Depends, File, Form, Header, Request, UploadFile
from pydantic import BaseModel
from starlette.concurrency import run_in_threadpool

from ..auth.context import AuthContext
from ..auth.users import register_user
from ..conferences.service import ConferenceDraft, ConferenceService
from ..core.errors import AuthenticationError, ValidationError
from ..core.models import (
    Conference,
    ConferenceDetail,
    Paper,
    PaperDetail,
    Review,
    ReviewAssignment,
    ReviewDetail,
    User,
)
from ..lifecycle.engine import PaperLifecycleEngine
from ..papers.documents import DocumentStore
from ..papers.queries import PaperQueries
from ..storage.base import Repository
from ..utils.logging import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/api")


class UserRequest(BaseModel):
    """User registration parameters."""

    name: str
    email: str
    role: str


class ConferenceRequest(BaseModel):
    """Conference create/update parameters."""

    name: Optional[str] = None
    location: Optional[str] = None
    description: Optional[str] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None


class ReviewerAssignmentRequest(BaseModel):
    """Reviewer pool replacement; shape is checked by the pool itself."""

    reviewer_ids: Any = None


class ReviewDecisionRequest(BaseModel):
    """A reviewer's decision on one review."""

    status: Optional[str] = None
    feedback: Optional[str] = None


# Dependencies


def get_repo(request: Request) -> Repository:
    return request.app.state.repo


def get_documents(request: Request) -> DocumentStore:
    return request.app.state.documents


def get_engine(request: Request) -> PaperLifecycleEngine:
    return request.app.state.engine


def get_auth(
    repo: Repository = Depends(get_repo),
    x_user_id: Optional[str] = Header(None),
) -> AuthContext:
    if not x_user_id:
        raise AuthenticationError("Missing X-User-Id header")
    user = repo.get_user(x_user_id)
    if user is None:
        raise AuthenticationError("Unknown user")
    return AuthContext.for_user(user)


# Users


@router.post("/users", status_code=201)
def create_user(body: UserRequest, repo: Repository = Depends(get_repo)) -> User:
    """Register a user with one role."""
    return register_user(repo, body.name, body.email, body.role)


# Conferences


@router.get("/conferences")
def list_conferences(repo: Repository = Depends(get_repo)) -> List[ConferenceDetail]:
    """Conferences by start date, with organizer and reviewers named."""
    return ConferenceService(repo).list_details()


@router.get("/conferences/users/reviewers")
def list_reviewer_candidates(
    repo: Repository = Depends(get_repo),
    ctx: AuthContext = Depends(get_auth),
) -> List[User]:
    """All reviewers, for building a conference's pool."""
    return ConferenceService(repo).reviewer_candidates()


@router.get("/conferences/{conference_id}")
def get_conference(conference_id: str, repo: Repository = Depends(get_repo)) -> ConferenceDetail:
    return ConferenceService(repo).detail(conference_id)


@router.post("/conferences", status_code=201)
def create_conference(
    body: ConferenceRequest,
    repo: Repository = Depends(get_repo),
    ctx: AuthContext = Depends(get_auth),
) -> Conference:
    draft = ConferenceDraft(**body.model_dump())
    return ConferenceService(repo).create(ctx, draft)


@router.put("/conferences/{conference_id}")
def update_conference(
    conference_id: str,
    body: ConferenceRequest,
    repo: Repository = Depends(get_repo),
    ctx: AuthContext = Depends(get_auth),
) -> Conference:
    draft = ConferenceDraft(**body.model_dump(exclude_unset=True))
    return ConferenceService(repo).update(ctx, conference_id, draft)


@router.delete("/conferences/{conference_id}")
def delete_conference(
    conference_id: str,
    repo: Repository = Depends(get_repo),
    ctx: AuthContext = Depends(get_auth),
) -> Dict[str, str]:
    ConferenceService(repo).delete(ctx, conference_id)
    return {"message": "Conference deleted"}


@router.post("/conferences/{conference_id}/reviewers")
def assign_reviewers(
    conference_id: str,
    body: ReviewerAssignmentRequest,
    repo: Repository = Depends(get_repo),
    engine: PaperLifecycleEngine = Depends(get_engine),
    ctx: AuthContext = Depends(get_auth),
) -> ConferenceDetail:
    service = ConferenceService(repo, pool=engine.pool)
    return service.describe(service.assign_reviewers(ctx, conference_id, body.reviewer_ids))


# Papers


def _apply_with_upload(
    repo: Repository,
    documents: DocumentStore,
    filename: str,
    content: bytes,
    transition: Callable[[str], Paper],
) -> PaperDetail:
    """Store an upload, run ``transition`` on its reference and describe the result.

    Runs in the threadpool: storage writes and the engine's locks must not
    block the event loop.
    """
    with documents.stored(filename, content) as document_ref:
        paper = transition(document_ref)
    return PaperQueries(repo).paper_detail(paper.id)


@router.get("/papers")
def list_papers(
    repo: Repository = Depends(get_repo),
    ctx: AuthContext = Depends(get_auth),
) -> List[PaperDetail]:
    """Papers visible to the acting user's role, with their reviews."""
    return PaperQueries(repo).visible_papers(ctx)


@router.post("/papers", status_code=201)
async def submit_paper(
    title: Optional[str] = Form(None),
    conference_id: Optional[str] = Form(None),
    file: Optional[UploadFile] = File(None),
    repo: Repository = Depends(get_repo),
    documents: DocumentStore = Depends(get_documents),
    engine: PaperLifecycleEngine = Depends(get_engine),
    ctx: AuthContext = Depends(get_auth),
) -> PaperDetail:
    """Submit a paper; reviewers are assigned from the conference pool."""
    ctx.require("submit_paper", "Only authors can submit papers")
    if not title or not conference_id or file is None:
        raise ValidationError("Title, conference, and file are required")
    content = await file.read()
    return await run_in_threadpool(
        _apply_with_upload,
        repo,
        documents,
        file.filename or "",
        content,
        lambda ref: engine.submit_paper(conference_id, ctx.user_id, title, ref),
    )


@router.put("/papers/{paper_id}/revision")
async def upload_revision(
    paper_id: str,
    file: Optional[UploadFile] = File(None),
    repo: Repository = Depends(get_repo),
    documents: DocumentStore = Depends(get_documents),
    engine: PaperLifecycleEngine = Depends(get_engine),
    ctx: AuthContext = Depends(get_auth),
) -> PaperDetail:
    """Upload a new version of a paper and restart its review."""
    if file is None:
        raise ValidationError("File is required")
    content = await file.read()
    return await run_in_threadpool(
        _apply_with_upload,
        repo,
        documents,
        file.filename or "",
        content,
        lambda ref: engine.upload_revision(paper_id, ctx.user_id, ref),
    )


@router.get("/papers/{paper_id}")
def get_paper(
    paper_id: str,
    repo: Repository = Depends(get_repo),
    ctx: AuthContext = Depends(get_auth),
) -> PaperDetail:
    return PaperQueries(repo).paper_detail(paper_id)


# Reviews


@router.get("/reviews/my")
def my_reviews(
    repo: Repository = Depends(get_repo),
    ctx: AuthContext = Depends(get_auth),
) -> List[ReviewAssignment]:
    """The acting reviewer's reviews, each with the paper and its author."""
    return PaperQueries(repo).my_reviews(ctx)


@router.get("/reviews/paper/{paper_id}")
def reviews_for_paper(
    paper_id: str,
    repo: Repository = Depends(get_repo),
    ctx: AuthContext = Depends(get_auth),
) -> List[ReviewDetail]:
    return PaperQueries(repo).reviews_for_paper(paper_id)


@router.put("/reviews/{review_id}")
def submit_review(
    review_id: str,
    body: ReviewDecisionRequest,
    engine: PaperLifecycleEngine = Depends(get_engine),
    ctx: AuthContext = Depends(get_auth),
) -> Review:
    """Record ACCEPTED or REVISION_REQUESTED on an assigned review."""
    return engine.record_review_decision(review_id, ctx.user_id, body.status, body.feedback)
