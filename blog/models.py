"""
blog/models.py -- Domain dataclasses for blog content.

These are pure data containers with zero logic. Persistence lives in
blog/store.py; ownership rules live in auth/guard.py.
"""

from dataclasses import dataclass
from typing import Optional


@dataclass
class Post:
    """A blog post.

    author_id references users.id. It becomes None only if a post outlives its
    author, in which case nobody can edit it (see auth.guard.require_owner).

    id is None before the record is written to the database.
    """

    title: str
    content: str
    author_id: Optional[int]
    id: Optional[int] = None
    created_at: str = ""  # ISO 8601, set by store on insert
    updated_at: str = ""
