"""Post queries: the read-side surface used by routers and page templates.

The index behind a repository is built at most once (guarded by a lock, so
concurrent first requests all see the same fully-built index). In reload
mode the content root is fingerprinted on every access and a changed root
triggers a rebuild; the new index replaces the old one in a single
assignment, so a reader only ever holds a complete index.
"""

import logging
import threading

from blog_api.config import Settings, get_settings
from blog_api.models.post import CategoryCount, Post
from blog_api.services.content_store import ContentStore, FileSystemContentStore
from blog_api.services.post_index import PostIndex, build_index

logger = logging.getLogger(__name__)

# Lazy singleton, lives for the process lifetime
_repository: "PostRepository | None" = None
_repository_lock = threading.Lock()


class PostRepository:
    """Read-only queries over a lazily built PostIndex."""

    def __init__(self, store: ContentStore, reload: bool = False) -> None:
        self._store = store
        self._reload = reload
        self._lock = threading.Lock()
        self._index: PostIndex | None = None
        self._fingerprint: object = None

    @property
    def index(self) -> PostIndex:
        """Return the current index, building (or rebuilding) it if needed."""
        index = self._index
        if index is not None and not self._reload:
            return index

        with self._lock:
            if self._index is None:
                self._fingerprint = self._current_fingerprint()
                self._index = build_index(self._store)
            elif self._reload:
                fingerprint = self._current_fingerprint()
                if fingerprint != self._fingerprint:
                    logger.info("Content changed on disk, rebuilding post index")
                    rebuilt = build_index(self._store)
                    self._fingerprint = fingerprint
                    self._index = rebuilt
            return self._index

    def _current_fingerprint(self) -> object:
        if not self._reload:
            return None
        return self._store.fingerprint()

    def reload(self) -> PostIndex:
        """Rebuild the index now and swap it in."""
        with self._lock:
            fingerprint = self._current_fingerprint()
            rebuilt = build_index(self._store)
            self._fingerprint = fingerprint
            self._index = rebuilt
            return rebuilt

    def get_all(self) -> tuple[Post, ...]:
        """All posts, newest first."""
        return self.index.posts

    def get_by_slug(self, slug: str) -> Post | None:
        """Return the post with *slug*, or None when there is no such post."""
        return self.index.by_slug.get(slug)

    def get_by_category(self, category: str) -> tuple[Post, ...]:
        """Posts whose category equals *category* exactly, in canonical order.

        Matching is case-sensitive; an unknown category yields ``()``.
        """
        return tuple(p for p in self.index.posts if p.category == category)

    def list_categories(self) -> list[CategoryCount]:
        """Categories in first-appearance order, with post counts."""
        index = self.index
        return [
            CategoryCount(name=name, count=index.category_counts[name])
            for name in index.categories
        ]

    def get_all_slugs(self) -> list[str]:
        return [p.slug for p in self.index.posts]

    def get_archive(self) -> list[tuple[int, list[Post]]]:
        return self.index.by_year()


def create_post_repository(settings: Settings | None = None) -> PostRepository:
    """Build a repository over the configured content root."""
    settings = settings or get_settings()
    store = FileSystemContentStore(settings.content_dir, settings.content_extensions)
    return PostRepository(store, reload=settings.reload_content)


def get_post_repository() -> PostRepository:
    """Return the shared PostRepository, creating it on first call."""
    global _repository
    if _repository is None:
        with _repository_lock:
            if _repository is None:
                _repository = create_post_repository()
    return _repository
