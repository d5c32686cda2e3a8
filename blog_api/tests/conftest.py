"""Shared fixtures for blog API tests."""

import pytest


@pytest.fixture(autouse=True)
def _reset_global_state():
    """Reset all module-level singletons and caches between tests."""
    yield

    # 1. Settings LRU cache
    from blog_api.config import get_settings

    get_settings.cache_clear()

    # 2. Post repository singleton
    import blog_api.services.posts as posts_mod

    posts_mod._repository = None

    # 3. Shared markdown renderer
    from blog_api.services.markdown_renderer import get_renderer

    get_renderer.cache_clear()

    # 4. Rendered HTML cache
    import blog_api.routers.posts as posts_router

    posts_router._render_cache = None

    # 5. FastAPI dependency overrides
    from blog_api.main import app

    app.dependency_overrides.clear()


def make_post_text(
    title: str | None = "A Post",
    date: str | None = "2025-01-01",
    read_time: str | None = None,
    category: str | None = None,
    body: str = "Body text.",
) -> str:
    """Build a content unit with only the given metadata keys."""
    lines = ["---"]
    if title is not None:
        lines.append(f"title: {title}")
    if date is not None:
        lines.append(f"date: {date}")
    if read_time is not None:
        lines.append(f"readTime: {read_time}")
    if category is not None:
        lines.append(f"category: {category}")
    lines.append("---")
    lines.append(body)
    return "\n".join(lines) + "\n"


@pytest.fixture
def post_text():
    """Factory for content-unit text (see make_post_text)."""
    return make_post_text


@pytest.fixture
def content_dir(tmp_path):
    """An empty content root under tmp_path."""
    root = tmp_path / "posts"
    root.mkdir()
    return root


@pytest.fixture
def write_post(content_dir):
    """Write a content unit into the content root and return its path."""

    def _write(filename: str, text: str):
        path = content_dir / filename
        path.write_text(text, encoding="utf-8")
        return path

    return _write


@pytest.fixture
def mock_settings(monkeypatch, content_dir):
    """Provide a Settings object pointing at the temporary content root."""
    from blog_api.config import Settings, get_settings

    test_settings = Settings(
        content_dir=content_dir,
        reload_content=False,
        render_cache_ttl=60,
        render_cache_size=10,
        excerpt_length=20,
    )

    get_settings.cache_clear()
    monkeypatch.setattr("blog_api.config.get_settings", lambda: test_settings)

    # Patch get_settings in all modules that import it directly
    # (from blog_api.config import get_settings creates a local binding that
    # the blog_api.config monkeypatch above does not affect)
    for mod_path in [
        "blog_api.services.posts",
        "blog_api.services.markdown_renderer",
        "blog_api.routers.posts",
        "blog_api.routers.archive",
        "blog_api.main",
    ]:
        monkeypatch.setattr(f"{mod_path}.get_settings", lambda: test_settings)

    return test_settings
