"""
API request and response models for Quill REST endpoints.

These Pydantic v2 models define the HTTP transport contract for the API layer.
They are intentionally separate from the dataclasses in auth/models.py and
blog/models.py, which own the internal domain representation. Route handlers
map between the two.

No response model has a hashed_password or salt field. Building responses
field by field (the from_* factories below) is what keeps credentials out of
every payload.
"""

from datetime import datetime
from typing import Annotated, Literal, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, StringConstraints

from auth.models import User
from blog.models import Post

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"
USERNAME_PATTERN = r"^[A-Za-z0-9_.-]+$"

# bcrypt reads at most 72 bytes; PasswordHasher re-checks the byte length.
_PASSWORD_MAX = 72

# Profile fields are stripped. Passwords never are: they reach the hasher as typed.
Name = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=100)]
Email = Annotated[str, StringConstraints(strip_whitespace=True, max_length=255, pattern=EMAIL_PATTERN)]
Username = Annotated[str, StringConstraints(strip_whitespace=True, min_length=3, max_length=30, pattern=USERNAME_PATTERN)]


# ---------------------------------------------------------------------------
# Auth -- request models
# ---------------------------------------------------------------------------


class RegisterRequest(BaseModel):
    """Request body for POST /api/v1/auth/register."""

    name: Name
    email: Email
    password: str = Field(min_length=1, max_length=_PASSWORD_MAX)
    username: Optional[Username] = None


class LoginRequest(BaseModel):
    """Request body for POST /api/v1/auth/login.

    identifier accepts an email or a username. "email" and "username" are
    accepted as aliases so older clients that post {email, password} work.
    """

    identifier: str = Field(
        min_length=1,
        max_length=255,
        validation_alias=AliasChoices("identifier", "email", "username"),
    )
    password: str = Field(min_length=1, max_length=255)


class UserUpdate(BaseModel):
    """Request body for PATCH /api/v1/users/{user_id}. Omitted fields are left unchanged."""

    name: Optional[Name] = None
    email: Optional[Email] = None
    username: Optional[Username] = None
    password: Optional[str] = Field(default=None, min_length=1, max_length=_PASSWORD_MAX)


# ---------------------------------------------------------------------------
# Auth -- response models
# ---------------------------------------------------------------------------


class UserPublic(BaseModel):
    """The account owner's own profile (GET /auth/me, registration)."""

    model_config = ConfigDict(frozen=True)

    id: int
    name: str
    email: str
    username: Optional[str]
    created_at: str
    updated_at: str

    @classmethod
    def from_user(cls, user: User) -> "UserPublic":
        return cls(
            id=user.id,
            name=user.name,
            email=user.email,
            username=user.username,
            created_at=user.created_at or "",
            updated_at=user.updated_at or "",
        )


class UserSummary(BaseModel):
    """What anyone may see about another user. No email."""

    model_config = ConfigDict(frozen=True)

    id: int
    name: str
    username: Optional[str]

    @classmethod
    def from_user(cls, user: User) -> "UserSummary":
        return cls(id=user.id, name=user.name, username=user.username)


class TokenResponse(BaseModel):
    """Response for POST /auth/login."""

    model_config = ConfigDict(frozen=True)

    success: Literal[True] = True
    token: str
    token_type: str = "bearer"
    expires_in: int
    expires_at: datetime


class RegisterResponse(TokenResponse):
    """Response for POST /auth/register: the token plus the new profile."""

    user: UserPublic


class MessageResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    success: bool = True
    message: str


# ---------------------------------------------------------------------------
# Posts
# ---------------------------------------------------------------------------


class PostCreate(BaseModel):
    """Request body for POST /api/v1/posts and PUT /api/v1/posts/{post_id}."""

    model_config = ConfigDict(str_strip_whitespace=True)

    title: str = Field(min_length=1, max_length=200)
    content: str = Field(min_length=1, max_length=20000)


class PostResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    title: str
    content: str
    author_id: Optional[int]
    author: Optional[UserSummary] = None
    created_at: str
    updated_at: str

    @classmethod
    def from_post(cls, post: Post, author: Optional[User] = None) -> "PostResponse":
        return cls(
            id=post.id,
            title=post.title,
            content=post.content,
            author_id=post.author_id,
            author=UserSummary.from_user(author) if author is not None else None,
            created_at=post.created_at,
            updated_at=post.updated_at,
        )


class PostListResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    total: int
    limit: int
    offset: int
    posts: list[PostResponse]


# ---------------------------------------------------------------------------
# Errors and health
# ---------------------------------------------------------------------------


class ErrorDetail(BaseModel):
    """Machine-readable error payload."""

    model_config = ConfigDict(frozen=True)

    code: str
    message: str
    detail: Optional[str] = None


class ErrorResponse(BaseModel):
    """Top-level error envelope returned on every 4xx/5xx response.

    success and msg are kept at the top level for clients written against the
    {success, msg} login contract; error carries the structured form.
    """

    model_config = ConfigDict(frozen=True)

    success: Literal[False] = False
    msg: str
    error: ErrorDetail

    @classmethod
    def build(cls, code: str, message: str, detail: Optional[str] = None) -> "ErrorResponse":
        return cls(msg=message, error=ErrorDetail(code=code, message=message, detail=detail))


class HealthResponse(BaseModel):
    """Response for GET /api/v1/health."""

    model_config = ConfigDict(frozen=True)

    status: str = "healthy"
    version: str
    components: dict[str, str] = Field(default_factory=dict)
