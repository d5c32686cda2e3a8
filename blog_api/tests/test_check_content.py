"""Tests for the content check script."""

from scripts.check_content import main


def test_reports_posts_and_categories(write_post, content_dir, post_text, capsys):
    write_post("a.md", post_text(title="A", category="Databases"))
    write_post("b.md", post_text(title="B", category="Databases"))

    assert main([str(content_dir)]) == 0

    out = capsys.readouterr().out
    assert "2 posts" in out
    assert "Databases: 2" in out


def test_rejected_units_are_listed(write_post, content_dir, post_text, capsys):
    write_post("a.md", post_text(title="A"))
    write_post("broken.md", post_text(date=None))

    assert main([str(content_dir)]) == 0

    out = capsys.readouterr().out
    assert "1 rejected" in out
    assert "broken.md" in out


def test_strict_fails_on_rejected_units(write_post, content_dir, post_text):
    write_post("broken.md", post_text(title=None))
    assert main([str(content_dir), "--strict"]) == 1


def test_missing_root_fails(tmp_path, capsys):
    assert main([str(tmp_path / "missing")]) == 1
    assert "not found" in capsys.readouterr().out


def test_defaults_to_configured_root(
    mock_settings, write_post, post_text, capsys, monkeypatch
):
    monkeypatch.setattr("scripts.check_content.get_settings", lambda: mock_settings)
    write_post("a.md", post_text(title="A"))

    assert main([]) == 0
    assert "1 posts" in capsys.readouterr().out
