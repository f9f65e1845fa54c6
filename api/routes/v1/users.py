"""
api/routes/v1/users.py -- User directory and self-service account management.

Routes:
  GET    /users             -- list users (public, no emails)
  GET    /users/{user_id}   -- one user (public, no email)
  PATCH  /users/{user_id}   -- update own account (requires auth + self)
  DELETE /users/{user_id}   -- delete own account and its posts (requires auth + self)

A user is the owner of their own record: PATCH/DELETE on someone else's id
answers 403 whether or not that id exists.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Request, Response
from sqlalchemy.exc import IntegrityError

from api.models import UserPublic, UserSummary, UserUpdate
from auth.dependencies import get_current_identity
from auth.guard import ensure_self
from auth.models import AuthenticatedIdentity, User
from auth.passwords import PasswordHasher
from auth.store import UserStore
from auth.strategies import SESSION_COOKIE
from blog.store import PostStore
from core.errors import DuplicateKeyError, NotFoundError, ValidationError

logger = logging.getLogger("quill.api.users")

router = APIRouter()


def _get_user_or_404(user_store: UserStore, user_id: int) -> User:
    user = user_store.get_by_id(user_id)
    if user is None:
        raise NotFoundError("User not found.")
    return user


@router.get("/users", response_model=list[UserSummary])
def list_users(request: Request) -> list[UserSummary]:
    user_store: UserStore = request.app.state.user_store
    return [UserSummary.from_user(u) for u in user_store.list_users()]


@router.get("/users/{user_id}", response_model=UserSummary)
def get_user(request: Request, user_id: int) -> UserSummary:
    user_store: UserStore = request.app.state.user_store
    return UserSummary.from_user(_get_user_or_404(user_store, user_id))


@router.patch("/users/{user_id}", response_model=UserPublic)
def update_user(
    request: Request,
    user_id: int,
    body: UserUpdate,
    identity: AuthenticatedIdentity = Depends(get_current_identity),
) -> UserPublic:
    """Update name, email, username, or password on the caller's own account.

    A new password is re-hashed with a fresh salt. Email/username collisions
    with another account answer 409.
    """
    ensure_self(request, identity, user_id)
    user_store: UserStore = request.app.state.user_store
    target = _get_user_or_404(user_store, user_id)

    updates: dict = {}
    if body.name is not None:
        updates["name"] = body.name
    if body.email is not None:
        other = user_store.get_by_email(body.email)
        if other is not None and other.id != target.id:
            raise DuplicateKeyError("An account with that email already exists.", code="duplicate_email")
        updates["email"] = body.email
    if body.username is not None:
        other = user_store.get_by_username(body.username)
        if other is not None and other.id != target.id:
            raise DuplicateKeyError("That username is already taken.", code="duplicate_username")
        updates["username"] = body.username
    if body.password is not None:
        hasher: PasswordHasher = request.app.state.hasher
        record = hasher.hash(body.password)
        updates["hashed_password"] = record.hash
        updates["salt"] = record.salt

    if not updates:
        raise ValidationError("No fields to update.", code="no_changes")

    try:
        user_store.update_user(target.id, **updates)
    except IntegrityError as exc:
        raise DuplicateKeyError("An account with that email or username already exists.") from exc

    return UserPublic.from_user(_get_user_or_404(user_store, target.id))


@router.delete("/users/{user_id}", status_code=204)
def delete_user(
    request: Request,
    user_id: int,
    identity: AuthenticatedIdentity = Depends(get_current_identity),
) -> Response:
    """Delete the caller's account, its sessions, and every post it authored.

    Outstanding bearer tokens for the account stop working immediately because
    the guard re-fetches the user on every request.
    """
    ensure_self(request, identity, user_id)
    user_store: UserStore = request.app.state.user_store
    post_store: PostStore = request.app.state.post_store

    target = _get_user_or_404(user_store, user_id)

    # Account first. If the post delete then fails, the leftovers have no
    # owner because user ids are never reused.
    user_store.delete_user(target.id)
    removed = post_store.delete_posts_by_author(target.id)
    logger.info("Deleted user_id=%d and %d post(s)", target.id, removed)

    resp = Response(status_code=204)
    resp.delete_cookie(SESSION_COOKIE)
    return resp
