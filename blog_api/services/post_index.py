"""Post index: the immutable, fully-derived view of all posts.

Every structure (ordered posts, slug map, categories, counts) is computed in
one pass from the same post list, and the whole index is replaced rather than
updated when content changes.
"""

import hashlib
import logging
import time
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType

from blog_api.models.post import Post, RejectedUnit
from blog_api.services.content_store import (
    ContentRootNotFoundError,
    ContentStore,
    scan_content,
)
from blog_api.services.frontmatter import FrontmatterError, parse_post

logger = logging.getLogger(__name__)


def sort_posts(posts: Iterable[Post]) -> list[Post]:
    """Newest first; posts sharing a date keep their discovery order."""
    return sorted(posts, key=lambda p: p.date, reverse=True)


def _index_version(posts: Iterable[Post]) -> str:
    digest = hashlib.sha256()
    for post in posts:
        digest.update(post.model_dump_json().encode())
    return digest.hexdigest()[:16]


@dataclass(frozen=True)
class PostIndex:
    """Posts in canonical order plus lookup structures derived from them."""

    posts: tuple[Post, ...] = ()
    by_slug: Mapping[str, Post] = field(default_factory=lambda: MappingProxyType({}))
    categories: tuple[str, ...] = ()
    category_counts: Mapping[str, int] = field(
        default_factory=lambda: MappingProxyType({})
    )
    rejected: tuple[RejectedUnit, ...] = ()
    content_root_missing: bool = False
    version: str = ""

    @classmethod
    def from_posts(
        cls,
        posts: Iterable[Post],
        rejected: Iterable[RejectedUnit] = (),
        content_root_missing: bool = False,
    ) -> "PostIndex":
        """Build an index from posts given in discovery order.

        A slug that appears twice keeps its first post; the later one is
        recorded as rejected instead of replacing it.
        """
        rejected_units = list(rejected)
        unique: dict[str, Post] = {}
        for post in posts:
            if post.slug in unique:
                logger.warning("Duplicate slug %r, keeping the first post", post.slug)
                rejected_units.append(
                    RejectedUnit(
                        slug=post.slug,
                        source=post.slug,
                        reason="duplicate slug",
                    )
                )
                continue
            unique[post.slug] = post

        ordered = sort_posts(unique.values())

        counts: dict[str, int] = {}
        for post in ordered:
            # dict insertion order == first appearance in canonical order
            counts[post.category] = counts.get(post.category, 0) + 1

        return cls(
            posts=tuple(ordered),
            by_slug=MappingProxyType({p.slug: p for p in ordered}),
            categories=tuple(counts),
            category_counts=MappingProxyType(counts),
            rejected=tuple(rejected_units),
            content_root_missing=content_root_missing,
            version=_index_version(ordered),
        )

    def __len__(self) -> int:
        return len(self.posts)

    def by_year(self) -> list[tuple[int, list[Post]]]:
        """Group posts by publication year, newest year first."""
        years: dict[int, list[Post]] = {}
        for post in self.posts:
            years.setdefault(post.date.year, []).append(post)
        return list(years.items())


def build_index(store: ContentStore) -> PostIndex:
    """Scan, parse, and index every content unit in *store*.

    A missing content root yields an empty index flagged
    ``content_root_missing``; a unit that fails to read or parse is left out
    and recorded in ``rejected``.
    """
    start = time.perf_counter()
    try:
        scan = scan_content(store)
    except ContentRootNotFoundError as e:
        logger.error("Cannot build post index: %s", e)
        return PostIndex.from_posts([], content_root_missing=True)

    posts: list[Post] = []
    rejected = list(scan.rejected)
    for unit in scan.units:
        try:
            posts.append(parse_post(unit.slug, unit.text))
        except FrontmatterError as e:
            logger.warning("Excluding %s from index: %s", unit.source, e.reason)
            rejected.append(
                RejectedUnit(slug=unit.slug, source=unit.source, reason=e.reason)
            )

    index = PostIndex.from_posts(posts, rejected=rejected)
    logger.info(
        "Built post index: %d posts, %d rejected in %.1f ms",
        len(index),
        len(index.rejected),
        (time.perf_counter() - start) * 1000,
    )
    return index
