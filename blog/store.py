"""
blog/store.py -- SQLAlchemy Core persistence for posts.

Pattern: Repository + Data Mapper, same shape as auth/store.py.
Ownership is not checked here -- the store does what it is told. Route
handlers call auth.guard.ensure_owner() before update_post()/delete_post().
"""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import Column, Integer, MetaData, String, Table, Text, func, select
from sqlalchemy.engine import Engine

from blog.models import Post
from core.config import get_settings
from core.db import make_engine

_metadata = MetaData()

_posts = Table(
    "posts",
    _metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("title", String(200), nullable=False),
    Column("content", Text, nullable=False),
    Column("author_id", Integer, index=True),
    Column("created_at", String(32), nullable=False),
    Column("updated_at", String(32), nullable=False),
)


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class PostStore:
    """Repository for Post entities."""

    def __init__(self, db_url: str | None = None) -> None:
        self.engine: Engine = make_engine(db_url or get_settings().database_url)
        _metadata.create_all(self.engine)

    def create_post(self, post: Post) -> int:
        now = _now_iso()
        with self.engine.connect() as conn:
            result = conn.execute(
                _posts.insert().values(
                    title=post.title,
                    content=post.content,
                    author_id=post.author_id,
                    created_at=now,
                    updated_at=now,
                )
            )
            conn.commit()
            return result.inserted_primary_key[0]

    def get_post(self, post_id: int) -> Post | None:
        with self.engine.connect() as conn:
            row = conn.execute(_posts.select().where(_posts.c.id == post_id)).fetchone()
        return _row_to_post(row) if row is not None else None

    def list_posts(self, author_id: int | None = None, limit: int = 50, offset: int = 0) -> list[Post]:
        """Return posts newest first, optionally filtered by author."""
        query = _posts.select()
        if author_id is not None:
            query = query.where(_posts.c.author_id == author_id)
        query = query.order_by(_posts.c.id.desc()).limit(limit).offset(offset)
        with self.engine.connect() as conn:
            rows = conn.execute(query).fetchall()
        return [_row_to_post(r) for r in rows]

    def count_posts(self, author_id: int | None = None) -> int:
        query = select(func.count()).select_from(_posts)
        if author_id is not None:
            query = query.where(_posts.c.author_id == author_id)
        with self.engine.connect() as conn:
            return conn.execute(query).scalar() or 0

    def update_post(self, post_id: int, title: str, content: str) -> bool:
        """Replace title and content. Returns False if the post does not exist."""
        with self.engine.connect() as conn:
            result = conn.execute(
                _posts.update()
                .where(_posts.c.id == post_id)
                .values(title=title, content=content, updated_at=_now_iso())
            )
            conn.commit()
        return result.rowcount > 0

    def delete_post(self, post_id: int) -> bool:
        with self.engine.connect() as conn:
            result = conn.execute(_posts.delete().where(_posts.c.id == post_id))
            conn.commit()
        return result.rowcount > 0

    def delete_posts_by_author(self, author_id: int) -> int:
        """Remove every post written by author_id. Used when an account is deleted."""
        with self.engine.connect() as conn:
            result = conn.execute(_posts.delete().where(_posts.c.author_id == author_id))
            conn.commit()
        return result.rowcount

    def close(self) -> None:
        self.engine.dispose()


def _row_to_post(row) -> Post:
    return Post(
        id=row.id,
        title=row.title,
        content=row.content,
        author_id=row.author_id,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )
