"""Frontmatter parser: splits a content unit into metadata and markdown body.

A content unit must start with a YAML block fenced by ``---`` lines::

    ---
    title: Understanding Two-Phase Commit
    date: 2025-01-01
    readTime: 12 min read
    category: Distributed Systems
    ---
    Markdown body...

Leading whitespace (and a UTF-8 BOM) before the opening marker is trimmed;
any other text there is rejected. The body is everything after the closing
marker, stripped of surrounding whitespace.
"""

import re
from typing import Any

import yaml
from pydantic import ValidationError

from blog_api.models.post import Post, PostMetadata

_FRONTMATTER_RE = re.compile(
    r"\A---[ \t]*\r?\n(?P<meta>.*?)^---[ \t]*\r?$(?P<body>.*)\Z",
    re.DOTALL | re.MULTILINE,
)


class FrontmatterError(ValueError):
    """A content unit could not be turned into a post."""

    def __init__(self, reason: str, slug: str = "") -> None:
        self.reason = reason
        self.slug = slug
        super().__init__(f"{slug}: {reason}" if slug else reason)


def split_frontmatter(text: str) -> tuple[dict[str, Any], str]:
    """Return the metadata mapping and the stripped body of *text*.

    Raises:
        FrontmatterError: No metadata block, malformed YAML, or a block
            that is not a key/value mapping.
    """
    text = text.lstrip("\ufeff").lstrip()
    match = _FRONTMATTER_RE.match(text)
    if not match:
        raise FrontmatterError("missing '---' metadata block at start of file")

    try:
        meta = yaml.safe_load(match.group("meta"))
    except (yaml.YAMLError, ValueError) as e:
        # PyYAML raises ValueError for well-formed but impossible dates
        raise FrontmatterError(f"malformed metadata block: {e}") from e

    if meta is None:
        meta = {}
    if not isinstance(meta, dict):
        raise FrontmatterError("metadata block must be a mapping of key: value pairs")

    return meta, match.group("body").strip()


def _describe_validation_error(error: ValidationError) -> str:
    parts = []
    for err in error.errors():
        field_name = ".".join(str(loc) for loc in err["loc"]) or "metadata"
        parts.append(f"{field_name}: {err['msg']}")
    return "; ".join(parts)


def parse_metadata(meta: dict[str, Any]) -> PostMetadata:
    """Validate a raw metadata mapping, applying defaults for optional fields."""
    try:
        return PostMetadata.model_validate(meta)
    except ValidationError as e:
        raise FrontmatterError(_describe_validation_error(e)) from e


def parse_post(slug: str, text: str) -> Post:
    """Parse one content unit into a Post.

    Raises:
        FrontmatterError: The unit is malformed, or ``title``/``date`` are
            missing or invalid. ``slug`` is attached to the error.
    """
    try:
        meta, body = split_frontmatter(text)
        metadata = parse_metadata(meta)
    except FrontmatterError as e:
        raise FrontmatterError(e.reason, slug=slug) from e.__cause__
    return Post(slug=slug, metadata=metadata, body=body)
