"""Content store access: discovers raw post files and reads them.

The content root is a read-only data source reached through a narrow
interface (``list_slugs`` / ``read``), so the parser and index never touch
the filesystem directly.
"""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Protocol

from blog_api.models.post import RejectedUnit

logger = logging.getLogger(__name__)


class ContentRootNotFoundError(FileNotFoundError):
    """The configured content root does not exist or is not a directory."""


@dataclass(frozen=True)
class ContentUnit:
    """One raw post file: its slug, where it came from, and its text."""

    slug: str
    source: str
    text: str


@dataclass
class ScanResult:
    """Units read successfully plus the ones that had to be skipped."""

    units: list[ContentUnit] = field(default_factory=list)
    rejected: list[RejectedUnit] = field(default_factory=list)


class ContentStore(Protocol):
    collisions: list[RejectedUnit]

    def list_slugs(self) -> list[str]:
        """Return every slug in discovery order."""
        ...

    def read(self, slug: str) -> str:
        """Return the raw text of the unit identified by *slug*."""
        ...

    def describe(self, slug: str) -> str:
        """Return a human-readable location for *slug* (for logs)."""
        ...

    def fingerprint(self) -> object:
        """Return a value that changes whenever the stored content changes."""
        ...


class FileSystemContentStore:
    """Markdown files in a single directory; the slug is the file stem.

    Files are discovered in sorted filename order. When two files map to
    the same slug (``intro.md`` and ``intro.markdown``) the first one in that
    order wins and the other is reported as a collision.
    """

    def __init__(self, root: Path, extensions: list[str] | None = None) -> None:
        self.root = Path(root)
        self.extensions = tuple(
            ext.lower() for ext in (extensions or [".md", ".markdown"])
        )
        self._paths: dict[str, Path] = {}
        self.collisions: list[RejectedUnit] = []

    def _check_root(self) -> None:
        if not self.root.is_dir():
            raise ContentRootNotFoundError(f"Content root not found: {self.root}")

    def list_slugs(self) -> list[str]:
        self._check_root()
        paths: dict[str, Path] = {}
        collisions: list[RejectedUnit] = []
        for path in sorted(self.root.iterdir(), key=lambda p: p.name):
            if not path.is_file() or path.suffix.lower() not in self.extensions:
                continue
            slug = path.stem
            if slug in paths:
                logger.warning(
                    "Slug collision for %r: keeping %s, skipping %s",
                    slug,
                    paths[slug].name,
                    path.name,
                )
                collisions.append(
                    RejectedUnit(
                        slug=slug,
                        source=str(path),
                        reason=f"slug collides with {paths[slug].name}",
                    )
                )
                continue
            paths[slug] = path
        self._paths = paths
        self.collisions = collisions
        return list(paths)

    def read(self, slug: str) -> str:
        path = self._paths.get(slug)
        if path is None:
            raise KeyError(slug)
        return path.read_text(encoding="utf-8")

    def describe(self, slug: str) -> str:
        path = self._paths.get(slug)
        return str(path) if path is not None else slug

    def fingerprint(self) -> tuple[tuple[str, int, int], ...]:
        """Cheap change detector: (name, size, mtime) of every content file.

        Returns an empty tuple when the root is missing so a root that
        appears later still triggers a rebuild.
        """
        try:
            entries = list(os.scandir(self.root))
        except OSError:
            return ()
        result = []
        for entry in entries:
            if not entry.is_file():
                continue
            if os.path.splitext(entry.name)[1].lower() not in self.extensions:
                continue
            try:
                stat = entry.stat()
            except OSError:
                continue
            result.append((entry.name, stat.st_size, stat.st_mtime_ns))
        return tuple(sorted(result))


class InMemoryContentStore:
    """Content held in a dict of slug -> text, in insertion order."""

    def __init__(self, units: dict[str, str]) -> None:
        self._units = dict(units)
        self.collisions: list[RejectedUnit] = []

    def list_slugs(self) -> list[str]:
        return list(self._units)

    def read(self, slug: str) -> str:
        return self._units[slug]

    def describe(self, slug: str) -> str:
        return f"memory:{slug}"

    def fingerprint(self) -> tuple[tuple[str, str], ...]:
        return tuple(self._units.items())

    def put(self, slug: str, text: str) -> None:
        self._units[slug] = text


def scan_content(store: ContentStore) -> ScanResult:
    """Read every unit the store offers.

    Raises ContentRootNotFoundError when the store's root is missing.
    Units that cannot be read or decoded are skipped with a warning.
    """
    result = ScanResult()
    for slug in store.list_slugs():
        source = store.describe(slug)
        try:
            text = store.read(slug)
        except (OSError, UnicodeDecodeError) as e:
            logger.warning("Skipping unreadable content unit %s: %s", source, e)
            result.rejected.append(
                RejectedUnit(slug=slug, source=source, reason=f"unreadable: {e}")
            )
            continue
        result.units.append(ContentUnit(slug=slug, source=source, text=text))
    result.rejected.extend(store.collisions)
    return result
