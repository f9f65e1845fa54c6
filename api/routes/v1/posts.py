"""
api/routes/v1/posts.py -- Blog post CRUD.

Routes:
  GET    /posts             -- list posts, newest first (public)
  GET    /posts/{post_id}   -- one post (public)
  POST   /posts             -- create a post authored by the caller (requires auth)
  PUT    /posts/{post_id}   -- replace title/content (requires auth + ownership)
  DELETE /posts/{post_id}   -- delete (requires auth + ownership)

Check order for PUT/DELETE: authentication (401), existence (404),
ownership (403). The guard dependency runs before the handler body, so an
unauthenticated caller never learns whether a post id exists.
"""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request, Response

from api.models import PostCreate, PostListResponse, PostResponse
from auth.dependencies import get_current_identity
from auth.guard import ensure_owner
from auth.models import AuthenticatedIdentity, User
from auth.store import UserStore
from blog.models import Post
from blog.store import PostStore
from core.errors import NotFoundError

logger = logging.getLogger("quill.api.posts")

router = APIRouter()


def _get_post_or_404(post_store: PostStore, post_id: int) -> Post:
    post = post_store.get_post(post_id)
    if post is None:
        raise NotFoundError("Post not found.")
    return post


def _authors_for(user_store: UserStore, posts: list[Post]) -> dict[int, User]:
    """Resolve each distinct author once."""
    authors: dict[int, User] = {}
    for author_id in {p.author_id for p in posts if p.author_id is not None}:
        user = user_store.get_by_id(author_id)
        if user is not None:
            authors[author_id] = user
    return authors


@router.get("/posts", response_model=PostListResponse)
def list_posts(
    request: Request,
    author_id: Optional[int] = Query(default=None, ge=1),
    limit: int = Query(default=20, ge=1, le=100),
    offset: int = Query(default=0, ge=0),
) -> PostListResponse:
    post_store: PostStore = request.app.state.post_store
    user_store: UserStore = request.app.state.user_store
    posts = post_store.list_posts(author_id=author_id, limit=limit, offset=offset)
    authors = _authors_for(user_store, posts)
    return PostListResponse(
        total=post_store.count_posts(author_id=author_id),
        limit=limit,
        offset=offset,
        posts=[PostResponse.from_post(p, authors.get(p.author_id)) for p in posts],
    )


@router.get("/posts/{post_id}", response_model=PostResponse)
def get_post(request: Request, post_id: int) -> PostResponse:
    post_store: PostStore = request.app.state.post_store
    user_store: UserStore = request.app.state.user_store
    post = _get_post_or_404(post_store, post_id)
    author = user_store.get_by_id(post.author_id) if post.author_id is not None else None
    return PostResponse.from_post(post, author)


@router.post("/posts", response_model=PostResponse, status_code=201)
def create_post(
    request: Request,
    body: PostCreate,
    identity: AuthenticatedIdentity = Depends(get_current_identity),
) -> PostResponse:
    """Create a post. The author is always the caller; clients cannot set it."""
    post_store: PostStore = request.app.state.post_store
    post_id = post_store.create_post(Post(title=body.title, content=body.content, author_id=identity.user_id))
    created = _get_post_or_404(post_store, post_id)
    logger.info("Post %d created by user_id=%d", post_id, identity.user_id)
    return PostResponse.from_post(created, identity.user)


@router.put("/posts/{post_id}", response_model=PostResponse)
def update_post(
    request: Request,
    post_id: int,
    body: PostCreate,
    identity: AuthenticatedIdentity = Depends(get_current_identity),
) -> PostResponse:
    post_store: PostStore = request.app.state.post_store
    post = _get_post_or_404(post_store, post_id)
    ensure_owner(request, identity, post)

    post_store.update_post(post_id, title=body.title, content=body.content)
    return PostResponse.from_post(_get_post_or_404(post_store, post_id), identity.user)


@router.delete("/posts/{post_id}", status_code=204)
def delete_post(
    request: Request,
    post_id: int,
    identity: AuthenticatedIdentity = Depends(get_current_identity),
) -> Response:
    post_store: PostStore = request.app.state.post_store
    post = _get_post_or_404(post_store, post_id)
    ensure_owner(request, identity, post)

    post_store.delete_post(post_id)
    logger.info("Post %d deleted by user_id=%d", post_id, identity.user_id)
    return Response(status_code=204)
