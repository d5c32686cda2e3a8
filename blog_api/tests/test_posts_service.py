"""Tests for the query layer: lookups, filters, guarded-once builds, reload."""

import threading
from concurrent.futures import ThreadPoolExecutor

from blog_api.services.content_store import InMemoryContentStore
from blog_api.services.post_index import build_index
from blog_api.services.posts import (
    PostRepository,
    create_post_repository,
    get_post_repository,
)


def _repo(post_text, **kwargs):
    return PostRepository(
        InMemoryContentStore(
            {
                "raft": post_text(
                    title="Raft", date="2025-03-01", category="Distributed Systems"
                ),
                "lsm": post_text(
                    title="LSM Trees", date="2025-02-01", category="Database Internals"
                ),
                "paxos": post_text(
                    title="Paxos", date="2025-01-01", category="Distributed Systems"
                ),
                "misc": post_text(title="Misc", date="2024-12-01"),
                "broken": post_text(title=None, category="Distributed Systems"),
            }
        ),
        **kwargs,
    )


def test_get_all_counts_only_parsed_units(post_text):
    repo = _repo(post_text)
    assert len(repo.get_all()) == 4


def test_get_all_is_newest_first(post_text):
    repo = _repo(post_text)
    dates = [p.date for p in repo.get_all()]
    assert dates == sorted(dates, reverse=True)


def test_get_all_is_immutable(post_text):
    repo = _repo(post_text)
    posts = repo.get_all()
    assert isinstance(posts, tuple)
    assert repo.get_all() == posts


def test_get_by_slug_hit_and_miss(post_text):
    repo = _repo(post_text)

    for post in repo.get_all():
        assert repo.get_by_slug(post.slug).slug == post.slug
    assert repo.get_by_slug("nope") is None


def test_rejected_unit_is_invisible(post_text):
    repo = _repo(post_text)

    assert repo.get_by_slug("broken") is None
    assert "broken" not in [p.slug for p in repo.get_by_category("Distributed Systems")]
    assert "broken" in [r.slug for r in repo.index.rejected]


def test_get_by_category_is_ordered_subsequence(post_text):
    repo = _repo(post_text)
    everything = [p.slug for p in repo.get_all()]

    filtered = [p.slug for p in repo.get_by_category("Distributed Systems")]

    assert filtered == ["raft", "paxos"]
    positions = [everything.index(s) for s in filtered]
    assert positions == sorted(positions)


def test_unknown_category_is_empty_not_error(post_text):
    repo = _repo(post_text)
    assert repo.get_by_category("Cooking") == ()
    assert repo.get_by_category("distributed systems") == ()


def test_list_categories_counts_partition_posts(post_text):
    repo = _repo(post_text)

    categories = repo.list_categories()

    assert [(c.name, c.count) for c in categories] == [
        ("Distributed Systems", 2),
        ("Database Internals", 1),
        ("Uncategorized", 1),
    ]
    assert sum(c.count for c in categories) == len(repo.get_all())


def test_slugs_and_archive(post_text):
    repo = _repo(post_text)

    assert repo.get_all_slugs() == ["raft", "lsm", "paxos", "misc"]
    assert [year for year, _ in repo.get_archive()] == [2025, 2024]


def test_index_is_built_once_under_concurrent_first_access(post_text, mocker):
    repo = _repo(post_text)
    build = mocker.patch(
        "blog_api.services.posts.build_index",
        wraps=build_index,
    )
    barrier = threading.Barrier(8)

    def first_access():
        barrier.wait()
        return repo.index

    with ThreadPoolExecutor(max_workers=8) as pool:
        indexes = list(pool.map(lambda _: first_access(), range(8)))

    assert build.call_count == 1
    assert all(index is indexes[0] for index in indexes)
    assert len(indexes[0]) == 4


def test_without_reload_content_changes_are_not_seen(post_text):
    store = InMemoryContentStore({"a": post_text(title="A")})
    repo = PostRepository(store)
    assert len(repo.get_all()) == 1

    store.put("b", post_text(title="B"))

    assert len(repo.get_all()) == 1


def test_reload_mode_swaps_in_a_new_index(post_text):
    store = InMemoryContentStore({"a": post_text(title="A")})
    repo = PostRepository(store, reload=True)
    before = repo.index

    store.put("b", post_text(title="B", date="2026-01-01"))
    after = repo.index

    assert after is not before
    assert [p.slug for p in after.posts] == ["b", "a"]
    # the old snapshot is untouched
    assert [p.slug for p in before.posts] == ["a"]


def test_reload_mode_reuses_index_when_unchanged(post_text):
    repo = PostRepository(InMemoryContentStore({"a": post_text()}), reload=True)
    assert repo.index is repo.index


def test_explicit_reload_rebuilds(post_text):
    store = InMemoryContentStore({"a": post_text()})
    repo = PostRepository(store)
    repo.get_all()

    store.put("b", post_text(title="B"))
    repo.reload()

    assert len(repo.get_all()) == 2


def test_shared_repository_uses_settings(mock_settings, write_post, post_text):
    write_post("hello.md", post_text(title="Hello"))

    repo = get_post_repository()

    assert repo is get_post_repository()
    assert repo.get_all_slugs() == ["hello"]


def test_create_repository_from_settings(mock_settings, write_post, post_text):
    write_post("one.md", post_text(title="One"))
    mock_settings.reload_content = True

    repo = create_post_repository(mock_settings)
    assert repo.get_all_slugs() == ["one"]

    write_post("two.md", post_text(title="Two", date="2026-01-01"))

    assert repo.get_all_slugs() == ["two", "one"]
