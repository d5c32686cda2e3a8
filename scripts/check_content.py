"""Check the content root and report posts that would be left out of the index.

Usage:
    python -m scripts.check_content                  # Use the content_dir setting
    python -m scripts.check_content content/posts    # Check a specific directory
    python -m scripts.check_content --strict         # Exit 1 if any unit is rejected
"""

import argparse
import logging
import sys
from pathlib import Path

from blog_api.config import get_settings
from blog_api.services.content_store import FileSystemContentStore
from blog_api.services.post_index import build_index

logging.basicConfig(
    level=logging.WARNING,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("content_dir", nargs="?", type=Path, default=None)
    parser.add_argument(
        "--strict", action="store_true", help="Treat rejected units as errors"
    )
    args = parser.parse_args(argv)

    settings = get_settings()
    root = args.content_dir or settings.content_dir
    index = build_index(FileSystemContentStore(root, settings.content_extensions))

    if index.content_root_missing:
        print(f"Content root not found: {root}")
        return 1

    print(f"{len(index)} posts in {root}")
    for name, count in index.category_counts.items():
        print(f"  {name}: {count}")

    if index.rejected:
        print(f"\n{len(index.rejected)} rejected:")
        for unit in index.rejected:
            print(f"  {unit.source}: {unit.reason}")

    return 1 if args.strict and index.rejected else 0


if __name__ == "__main__":
    sys.exit(main())
