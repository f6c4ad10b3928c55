"""FastAPI web application for incantations."""

import logging
import os
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, List

from dotenv import load_dotenv
from fastapi import Body, Depends, FastAPI, Request, Response, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from incantations import __version__
from incantations.api.auth_models import AuthResponse, GoogleLoginRequest, ProfileUpdateRequest
from incantations.api.sync_models import (
    PreferenceSyncRequest,
    PreferenceSyncResponse,
    SuccessResponse,
    TaskCreateRequest,
    TaskUpdateRequest,
    UploadResponse,
    task_to_response,
)
from incantations.auth.account_resolver import AccountResolver
from incantations.auth.dependencies import get_current_claims, get_token_authority
from incantations.auth.google_oauth import verify_google_token
from incantations.auth.jwt import TokenAuthority, TokenClaims
from incantations.auth.token_sources import extract_token
from incantations.database.database import get_db, init_db
from incantations.database.repository import TaskRepository
from incantations.database.user_repository import UserRepository
from incantations.errors import IdentityRejected, NotFound, TransactionError, Unauthenticated, ValidationError
from incantations.models.constants import AUTH_COOKIE_NAME
from incantations.models.snapshot import to_storage_datetime, validate_preferences, validate_snapshot
from incantations.models.user import User
from incantations.sync import PreferenceSync, SyncDownloadSerializer, SyncUploadTransaction

load_dotenv()

logger = logging.getLogger(__name__)

IS_PRODUCTION = os.getenv("ENVIRONMENT", "development").lower() == "production"
CORS_ORIGINS = [
    origin.strip()
    for origin in os.getenv("CORS_ORIGINS", "http://localhost:5173,http://localhost:5174").split(",")
    if origin.strip()
]


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    yield


# Initialize FastAPI app
app = FastAPI(
    title="incantations API",
    description="Sync backend for the offline-capable voice task manager",
    version=__version__,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "PATCH"],
    allow_headers=["Content-Type", "Authorization"],
)


# Error mapping
@app.exception_handler(ValidationError)
async def handle_validation_error(request: Request, exc: ValidationError):
    return JSONResponse(status_code=400, content={"error": exc.message, "fields": exc.fields})


@app.exception_handler(RequestValidationError)
async def handle_request_validation_error(request: Request, exc: RequestValidationError):
    fields = []
    for err in exc.errors():
        # Drop the leading "body"/"path"/"query" marker
        loc = [str(part) for part in err.get("loc", ())][1:]
        fields.append(".".join(loc) or "body")
    return JSONResponse(status_code=400, content={"error": "Validation error", "fields": fields})


@app.exception_handler(Unauthenticated)
async def handle_unauthenticated(request: Request, exc: Unauthenticated):
    return JSONResponse(
        status_code=401,
        content={"error": str(exc) or "Invalid token"},
        headers={"WWW-Authenticate": "Bearer"},
    )


@app.exception_handler(IdentityRejected)
async def handle_identity_rejected(request: Request, exc: IdentityRejected):
    return JSONResponse(status_code=400, content={"error": str(exc) or "Invalid Google token"})


@app.exception_handler(TransactionError)
async def handle_transaction_error(request: Request, exc: TransactionError):
    return JSONResponse(status_code=500, content={"error": "Upload failed"})


@app.exception_handler(NotFound)
async def handle_not_found(request: Request, exc: NotFound):
    return JSONResponse(status_code=404, content={"error": str(exc) or "Not found"})


def _set_auth_cookie(response: Response, token: str, authority: TokenAuthority) -> None:
    # Cookie max-age always equals the token lifetime.
    response.set_cookie(
        AUTH_COOKIE_NAME,
        token,
        max_age=int(authority.lifetime.total_seconds()),
        httponly=True,
        samesite="lax",
        secure=IS_PRODUCTION,
    )


def get_current_user(
    claims: TokenClaims = Depends(get_current_claims),
    db: Session = Depends(get_db),
) -> User:
    """Load the token's user; a token for a vanished user is not accepted."""
    user = UserRepository(db).get(claims.user_id)
    if not user:
        raise Unauthenticated("User not found")
    return user


@app.get("/health")
async def health():
    """Health check endpoint."""
    return {
        "status": "ok",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "version": __version__,
    }


# Auth
@app.post("/api/auth/google", response_model=AuthResponse)
def login_with_google(
    body: GoogleLoginRequest,
    response: Response,
    db: Session = Depends(get_db),
    authority: TokenAuthority = Depends(get_token_authority),
):
    """Exchange a Google ID token for a session token (body + HTTP-only cookie)."""
    identity = verify_google_token(body.credential)
    user = AccountResolver(db).resolve(identity)
    token = authority.issue(user)
    _set_auth_cookie(response, token, authority)
    return AuthResponse(user=user.to_public_dict(), token=token)


@app.post("/api/auth/refresh", response_model=AuthResponse)
def refresh_token(
    request: Request,
    response: Response,
    db: Session = Depends(get_db),
    authority: TokenAuthority = Depends(get_token_authority),
):
    """Re-issue a full-lifetime token for a still-valid one, with fresh profile data."""
    token = extract_token(request)
    if not token:
        raise Unauthenticated("No token provided")
    claims = authority.verify(token)

    user = UserRepository(db).get(claims.user_id)
    if not user:
        raise Unauthenticated("User not found")

    new_token = authority.issue(user)
    _set_auth_cookie(response, new_token, authority)
    return AuthResponse(user=user.to_public_dict(), token=new_token)


@app.post("/api/auth/logout", response_model=SuccessResponse)
async def logout(response: Response):
    """Clear the auth cookie. Tokens are stateless, so nothing is revoked server-side."""
    response.delete_cookie(AUTH_COOKIE_NAME, httponly=True, samesite="lax", secure=IS_PRODUCTION)
    return SuccessResponse()


@app.get("/api/auth/me")
def me(user: User = Depends(get_current_user)):
    """Current user profile."""
    return {**user.to_public_dict(), "createdAt": user.created_at.isoformat()}


# User profile and preferences
@app.get("/api/user/profile")
def get_profile(user: User = Depends(get_current_user)):
    return {**user.to_public_dict(), "createdAt": user.created_at.isoformat()}


@app.patch("/api/user/profile", response_model=SuccessResponse)
def update_profile(
    body: ProfileUpdateRequest,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    if not UserRepository(db).update_name(user.id, body.name):
        raise NotFound("User not found")
    return SuccessResponse()


@app.get("/api/user/preferences")
def get_preferences(
    claims: TokenClaims = Depends(get_current_claims),
    db: Session = Depends(get_db),
):
    """Stored preferences ({} is created and returned on first read)."""
    return PreferenceSync(db).get(claims.user_id)


@app.put("/api/user/preferences", response_model=SuccessResponse)
def put_preferences(
    payload: Any = Body(...),
    claims: TokenClaims = Depends(get_current_claims),
    db: Session = Depends(get_db),
):
    """Replace stored preferences wholesale."""
    PreferenceSync(db).replace(claims.user_id, validate_preferences(payload))
    return SuccessResponse()


@app.post("/api/user/preferences/sync", response_model=PreferenceSyncResponse)
def sync_preferences(
    body: PreferenceSyncRequest,
    claims: TokenClaims = Depends(get_current_claims),
    db: Session = Depends(get_db),
):
    """Merge local preferences into the stored copy (stored values win) and persist the result."""
    merged = PreferenceSync(db).sync(claims.user_id, body.localPreferences)
    return PreferenceSyncResponse(preferences=merged)


# Snapshot sync
@app.post("/api/sync/upload", response_model=UploadResponse)
def upload_snapshot(
    payload: Any = Body(...),
    claims: TokenClaims = Depends(get_current_claims),
    db: Session = Depends(get_db),
):
    """Replace the user's tasks, conversations and preferences with the uploaded snapshot."""
    snapshot = validate_snapshot(payload)
    result = SyncUploadTransaction(db).apply(claims.user_id, snapshot)
    return UploadResponse(tasks=result.tasks_written, conversations=result.conversations_written)


@app.get("/api/sync/download")
def download_snapshot(
    claims: TokenClaims = Depends(get_current_claims),
    db: Session = Depends(get_db),
):
    """Full snapshot of the user's server-side state."""
    return SyncDownloadSerializer(db).serialize(claims.user_id).to_wire()


@app.post("/api/sync/preferences", response_model=SuccessResponse)
def overwrite_preferences(
    payload: Any = Body(...),
    claims: TokenClaims = Depends(get_current_claims),
    db: Session = Depends(get_db),
):
    """Overwrite stored preferences wholesale (no merge)."""
    PreferenceSync(db).replace(claims.user_id, validate_preferences(payload))
    return SuccessResponse()


# Tasks (non-sync CRUD)
@app.get("/api/tasks")
def list_tasks(
    claims: TokenClaims = Depends(get_current_claims),
    db: Session = Depends(get_db),
) -> List[dict]:
    """All tasks for the user, newest first."""
    return [task_to_response(t) for t in TaskRepository(db).get_all(claims.user_id)]


@app.post("/api/tasks", status_code=status.HTTP_201_CREATED)
def create_task(
    body: TaskCreateRequest,
    claims: TokenClaims = Depends(get_current_claims),
    db: Session = Depends(get_db),
):
    task = TaskRepository(db).create(
        user_id=claims.user_id,
        title=body.title,
        description=body.description,
        priority=body.priority,
        due_date=to_storage_datetime(body.dueDate),
        project=body.project,
        tags=body.tags,
    )
    return task_to_response(task)


@app.get("/api/tasks/{task_id}")
def get_task(
    task_id: int,
    claims: TokenClaims = Depends(get_current_claims),
    db: Session = Depends(get_db),
):
    task = TaskRepository(db).get(claims.user_id, task_id)
    if not task:
        raise NotFound("Task not found")
    return task_to_response(task)


@app.patch("/api/tasks/{task_id}")
def update_task(
    task_id: int,
    body: TaskUpdateRequest,
    claims: TokenClaims = Depends(get_current_claims),
    db: Session = Depends(get_db),
):
    changes = {
        "title": body.title,
        "description": body.description,
        "priority": body.priority,
        "status": body.status,
        "due_date": to_storage_datetime(body.dueDate),
        "project": body.project,
        "tags": body.tags,
    }
    task = TaskRepository(db).update(claims.user_id, task_id, changes)
    return task_to_response(task)


@app.delete("/api/tasks/{task_id}", response_model=SuccessResponse)
def delete_task(
    task_id: int,
    claims: TokenClaims = Depends(get_current_claims),
    db: Session = Depends(get_db),
):
    if not TaskRepository(db).delete(claims.user_id, task_id):
        raise NotFound("Task not found")
    return SuccessResponse()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=3001)
