"""Post data models."""

import datetime as dt

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

UNCATEGORIZED = "Uncategorized"
READ_TIME_UNKNOWN = "reading time unknown"


def _scalar_to_str(value: object) -> object:
    # YAML reads "title: 1984" or "readTime: 5" as numbers
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return value


class PostMetadata(BaseModel):
    """Frontmatter fields of a single post.

    ``title`` and ``date`` are required; ``read_time`` and ``category`` fall
    back to placeholder values. Content files use the ``readTime`` key.
    """

    model_config = ConfigDict(frozen=True, extra="ignore", populate_by_name=True)

    title: str
    date: dt.date
    read_time: str = Field(
        default=READ_TIME_UNKNOWN,
        validation_alias=AliasChoices("readTime", "read_time"),
    )
    category: str = UNCATEGORIZED

    @field_validator("title", mode="before")
    @classmethod
    def _require_title(cls, value: object) -> object:
        value = _scalar_to_str(value)
        if isinstance(value, str):
            value = value.strip()
            if not value:
                raise ValueError("title must not be empty")
        return value

    @field_validator("date", mode="before")
    @classmethod
    def _coerce_date(cls, value: object) -> object:
        """Accept a calendar date, a datetime, or an ISO-8601 string."""
        if isinstance(value, dt.datetime):
            return value.date()
        if isinstance(value, str):
            text = value.strip()
            try:
                return dt.date.fromisoformat(text)
            except ValueError:
                # Full timestamps ("2025-01-01T09:30:00Z") keep only the day
                return dt.datetime.fromisoformat(text).date()
        return value

    @field_validator("read_time", mode="before")
    @classmethod
    def _default_read_time(cls, value: object) -> object:
        value = _scalar_to_str(value)
        if value is None or (isinstance(value, str) and not value.strip()):
            return READ_TIME_UNKNOWN
        return value.strip() if isinstance(value, str) else value

    @field_validator("category", mode="before")
    @classmethod
    def _default_category(cls, value: object) -> object:
        value = _scalar_to_str(value)
        if value is None or (isinstance(value, str) and not value.strip()):
            return UNCATEGORIZED
        return value.strip() if isinstance(value, str) else value


class Post(BaseModel):
    """A parsed post. Immutable once built."""

    model_config = ConfigDict(frozen=True)

    slug: str
    metadata: PostMetadata
    body: str

    @property
    def title(self) -> str:
        return self.metadata.title

    @property
    def date(self) -> dt.date:
        return self.metadata.date

    @property
    def read_time(self) -> str:
        return self.metadata.read_time

    @property
    def category(self) -> str:
        return self.metadata.category

    def excerpt(self, length: int = 150) -> str:
        """Return the first *length* characters of the raw body plus an ellipsis."""
        return f"{self.body[:length]}..."


class RejectedUnit(BaseModel):
    """A content unit that was excluded from the index, and why."""

    slug: str
    source: str
    reason: str


class PostSummary(BaseModel):
    """Post metadata for list display."""

    slug: str
    title: str
    date: dt.date
    read_time: str
    category: str
    excerpt: str

    @classmethod
    def from_post(cls, post: Post, excerpt_length: int = 150) -> "PostSummary":
        return cls(
            slug=post.slug,
            title=post.title,
            date=post.date,
            read_time=post.read_time,
            category=post.category,
            excerpt=post.excerpt(excerpt_length),
        )


class PostDetail(PostSummary):
    """Full post data, including the raw markdown body."""

    body: str

    @classmethod
    def from_post(cls, post: Post, excerpt_length: int = 150) -> "PostDetail":
        summary = PostSummary.from_post(post, excerpt_length)
        return cls(**summary.model_dump(), body=post.body)


class PostList(BaseModel):
    """A page of posts in canonical order."""

    posts: list[PostSummary]
    total: int


class CategoryCount(BaseModel):
    name: str
    count: int


class CategoryList(BaseModel):
    """Categories in first-appearance order with post counts."""

    categories: list[CategoryCount]
    total: int


class ArchiveYear(BaseModel):
    year: int
    posts: list[PostSummary]


class Archive(BaseModel):
    """Posts grouped by year, newest year first."""

    years: list[ArchiveYear]
    total: int


class RenderedPost(BaseModel):
    """HTML produced from a post body. Transient, regenerated per request."""

    slug: str
    html: str
