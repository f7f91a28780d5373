from pydantic import BaseModel, Field, model_validator
from datetime import datetime

_EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"


# --- Authentication ---

class SignInRequest(BaseModel):
    email: str = Field(max_length=255)
    password: str = Field(max_length=128)


class TokenPair(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"


class RefreshRequest(BaseModel):
    access_token: str = Field(min_length=1)
    refresh_token: str = Field(min_length=1)


# --- User ---

class UserUpsert(BaseModel):
    """Payload for both sign-up and profile update."""
    email: str = Field(max_length=255, pattern=_EMAIL_PATTERN)
    password: str = Field(min_length=6, max_length=128)
    first_name: str = Field(min_length=1, max_length=100)
    last_name: str = Field(min_length=1, max_length=100)


class UserPatch(BaseModel):
    """
    Partial profile update.  Omitted fields keep their stored value; a
    field that is sent must satisfy the same rules as in ``UserUpsert``.
    """
    email: str | None = Field(default=None, max_length=255, pattern=_EMAIL_PATTERN)
    password: str | None = Field(default=None, min_length=6, max_length=128)
    first_name: str | None = Field(default=None, min_length=1, max_length=100)
    last_name: str | None = Field(default=None, min_length=1, max_length=100)

    @model_validator(mode="after")
    def _reject_nulls(self) -> "UserPatch":
        for name in self.model_fields_set:
            if getattr(self, name) is None:
                raise ValueError(f"{name} cannot be null")
        return self


class UserResponse(BaseModel):
    id: int
    email: str
    name: str
    followers_count: int = 0
    following_count: int = 0


# --- Article ---

class ArticleUpsert(BaseModel):
    title: str = Field(min_length=1, max_length=300)
    content: str = Field(min_length=1)


class ArticleResponse(BaseModel):
    id: int
    title: str
    author_id: int
    author_name: str | None = None
    publish_date: datetime
    last_updated: datetime
    content: str
    favorited_count: int = 0


# --- Comment ---

class CommentCreate(BaseModel):
    content: str = Field(min_length=1)


class CommentResponse(BaseModel):
    id: int
    author_id: int
    author_name: str | None = None
    article_id: int
    article_title: str | None = None
    content: str
    publish_date: datetime


# --- Pagination ---

class PaginatedResponse(BaseModel):
    items: list[ArticleResponse]
    total: int
    page: int
    page_size: int
    pages: int
