from pathlib import Path

import pytest

from folio.config import (
    BUILTIN_THEMES_DIR,
    absolute_url,
    load_config,
    load_theme_config,
    normalize_root,
    resolve_theme_dirs,
    resolve_timezone,
    site_path,
)
from folio.errors import ConfigError


def write_config(project: Path, text: str) -> None:
    (project / "_config.yml").write_text(text, encoding="utf-8")


def test_load_config_defaults_without_file(tmp_path):
    config = load_config(tmp_path)
    assert config["title"] == "Folio"
    assert config["root"] == "/"
    assert config["per_page"] == 10
    assert config["feed"] == {"enable": True, "limit": 20, "content": False}
    assert config["deploy"]["branch"] == "gh-pages"


def test_load_config_merges_nested_values(tmp_path):
    write_config(
        tmp_path,
        "title: Notes\nurl: https://example.com/\nroot: blog\nfeed:\n  limit: 5\nper_page: '3'\n",
    )
    config = load_config(tmp_path)
    assert config["title"] == "Notes"
    assert config["url"] == "https://example.com"
    assert config["root"] == "/blog/"
    assert config["feed"] == {"enable": True, "limit": 5, "content": False}
    assert config["per_page"] == 3


def test_empty_config_file_uses_defaults(tmp_path):
    write_config(tmp_path, "")
    assert load_config(tmp_path)["title"] == "Folio"


@pytest.mark.parametrize(
    "text, message",
    [
        ("title: [unclosed\n", "not valid YAML"),
        ("- just\n- a list\n", "must contain a mapping"),
        ("feed: yes\n", "'feed'"),
        ("per_page: many\n", "per_page"),
        ("per_page: -1\n", "per_page"),
        ("timezone: Mars/Olympus\n", "Unknown timezone"),
        ("public_dir: ''\n", "must be a folder inside the project"),
        ("public_dir: .\n", "must be a folder inside the project"),
        ("public_dir: ../elsewhere\n", "must be a folder inside the project"),
        ("public_dir: source\n", "overlaps the source/ folder"),
        ("public_dir: source/out\n", "overlaps the source/ folder"),
        ("public_dir: themes\n", "overlaps the themes/ folder"),
        ("source_dir: site/src\npublic_dir: site\n", "overlaps the site/src/ folder"),
    ],
)
def test_load_config_rejects_bad_values(tmp_path, text, message):
    write_config(tmp_path, text)
    with pytest.raises(ConfigError, match=message):
        load_config(tmp_path)


def test_load_config_accepts_nested_public_dir(tmp_path):
    write_config(tmp_path, "public_dir: build/site\n")
    assert load_config(tmp_path)["public_dir"] == "build/site"


def test_normalize_root_and_urls():
    assert normalize_root("") == "/"
    assert normalize_root("/") == "/"
    assert normalize_root("blog") == "/blog/"
    assert normalize_root("/a/b/") == "/a/b/"

    config = {"url": "https://example.com", "root": "/blog/"}
    assert site_path(config, "/about/") == "/blog/about/"
    assert absolute_url(config, "/about/") == "https://example.com/blog/about/"
    assert absolute_url(config, "https://other.example/x") == "https://other.example/x"

    bare = {"url": "https://example.com", "root": "/"}
    assert absolute_url(bare, "/") == "https://example.com/"


def test_resolve_timezone():
    assert resolve_timezone("Europe/Paris").key == "Europe/Paris"
    with pytest.raises(ConfigError):
        resolve_timezone("Nowhere/Special")


def test_resolve_theme_dirs(tmp_path):
    builtin = BUILTIN_THEMES_DIR / "default"
    assert resolve_theme_dirs(tmp_path, {"theme": "default"}) == [builtin]

    (tmp_path / "themes" / "minimal").mkdir(parents=True)
    assert resolve_theme_dirs(tmp_path, {"theme": "minimal"}) == [
        tmp_path / "themes" / "minimal",
        builtin,
    ]

    with pytest.raises(ConfigError, match="Theme 'missing' not found"):
        resolve_theme_dirs(tmp_path, {"theme": "missing"})


def test_theme_config_layers(tmp_path):
    theme_dir = tmp_path / "themes" / "minimal"
    theme_dir.mkdir(parents=True)
    (theme_dir / "_config.yml").write_text(
        "avatar: /img/theme.png\nfooter: Theme footer\nrecent_posts: 3\n", encoding="utf-8"
    )
    (tmp_path / "_config.minimal.yml").write_text("footer: Project footer\n", encoding="utf-8")
    write_config(tmp_path, "theme: minimal\ntheme_config:\n  recent_posts: 8\n")

    config = load_config(tmp_path)
    theme = load_theme_config(tmp_path, config)

    assert theme["avatar"] == "/img/theme.png"
    assert theme["footer"] == "Project footer"
    assert theme["recent_posts"] == 8
    # Keys only the built-in theme defines are still present
    assert theme["menu"][0] == {"name": "Home", "url": "/"}
