"""Tests for content discovery: slugs, collisions, partial read failures."""

import pytest

from blog_api.services.content_store import (
    ContentRootNotFoundError,
    FileSystemContentStore,
    InMemoryContentStore,
    scan_content,
)


def test_slug_is_file_stem(write_post, content_dir):
    write_post("two-phase-commit.md", "x")
    write_post("B-Tree_Notes.markdown", "y")

    store = FileSystemContentStore(content_dir)

    assert store.list_slugs() == ["B-Tree_Notes", "two-phase-commit"]


def test_non_content_files_are_ignored(write_post, content_dir):
    write_post("post.md", "x")
    write_post("notes.txt", "y")
    write_post("image.png", "z")
    (content_dir / "drafts.md").mkdir()

    assert FileSystemContentStore(content_dir).list_slugs() == ["post"]


def test_extension_match_is_case_insensitive(write_post, content_dir):
    write_post("LOUD.MD", "x")
    assert FileSystemContentStore(content_dir).list_slugs() == ["LOUD"]


def test_slug_collision_keeps_first_file(write_post, content_dir):
    write_post("intro.markdown", "from markdown")
    write_post("intro.md", "from md")

    result = scan_content(FileSystemContentStore(content_dir))

    # "intro.markdown" sorts before "intro.md"
    assert [u.text for u in result.units] == ["from markdown"]
    assert len(result.rejected) == 1
    assert result.rejected[0].slug == "intro"
    assert "collides" in result.rejected[0].reason
    assert result.rejected[0].source.endswith("intro.md")


def test_missing_root_raises(tmp_path):
    store = FileSystemContentStore(tmp_path / "does-not-exist")
    with pytest.raises(ContentRootNotFoundError):
        scan_content(store)


def test_root_that_is_a_file_raises(tmp_path):
    not_a_dir = tmp_path / "posts"
    not_a_dir.write_text("")
    with pytest.raises(ContentRootNotFoundError):
        FileSystemContentStore(not_a_dir).list_slugs()


def test_undecodable_file_is_skipped(write_post, content_dir):
    write_post("good.md", "fine")
    (content_dir / "bad.md").write_bytes(b"\xff\xfe\xfa not utf-8")

    result = scan_content(FileSystemContentStore(content_dir))

    assert [u.slug for u in result.units] == ["good"]
    assert [r.slug for r in result.rejected] == ["bad"]
    assert result.rejected[0].reason.startswith("unreadable")


def test_unreadable_file_is_skipped(write_post, content_dir, mocker):
    write_post("a.md", "A")
    write_post("b.md", "B")
    store = FileSystemContentStore(content_dir)
    original_read = store.read

    def flaky_read(slug):
        if slug == "a":
            raise PermissionError("denied")
        return original_read(slug)

    mocker.patch.object(store, "read", side_effect=flaky_read)

    result = scan_content(store)

    assert [u.slug for u in result.units] == ["b"]
    assert result.rejected[0].slug == "a"


def test_fingerprint_changes_when_file_changes(write_post, content_dir):
    path = write_post("post.md", "v1")
    store = FileSystemContentStore(content_dir)
    before = store.fingerprint()

    path.write_text("version two", encoding="utf-8")

    assert store.fingerprint() != before


def test_fingerprint_of_missing_root_is_empty(tmp_path):
    assert FileSystemContentStore(tmp_path / "missing").fingerprint() == ()


def test_in_memory_store_preserves_insertion_order():
    store = InMemoryContentStore({"b": "1", "a": "2"})
    result = scan_content(store)
    assert [u.slug for u in result.units] == ["b", "a"]
    assert result.units[0].source == "memory:b"
