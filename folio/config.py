"""Site and theme configuration for Folio.

A blog project is configured by ``_config.yml`` at its root. Themes ship
their own ``_config.yml`` which the project can override with
``_config.<theme>.yml`` or a ``theme_config`` mapping.

Key functions:
- load_config: Load the site configuration with defaults applied.
- load_theme_config: Merge theme configuration layers.
- resolve_theme_dirs: Locate the theme folders used for layouts and assets.
- resolve_timezone: Turn a timezone name into a tzinfo.
"""

from __future__ import annotations

import copy
from datetime import tzinfo
from pathlib import Path
from typing import Any
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import yaml

from .errors import ConfigError
from .html_utils import join_root_url

CONFIG_FILENAME = "_config.yml"

BUILTIN_THEMES_DIR = Path(__file__).parent / "themes"

DEFAULT_CONFIG: dict[str, Any] = {
    "title": "Folio",
    "subtitle": "",
    "description": "",
    "author": "",
    "language": "en",
    "timezone": "UTC",
    "url": "",
    "root": "/",
    "permalink": ":year/:month/:day/:title/",
    "source_dir": "source",
    "public_dir": "public",
    "per_page": 10,
    "pagination_dir": "page",
    "archive_dir": "archives",
    "category_dir": "categories",
    "tag_dir": "tags",
    "date_format": "%Y-%m-%d",
    "new_post_name": ":year-:month-:day-:title.md",
    "default_layout": "post",
    "theme": "default",
    "theme_config": {},
    "highlight": {"enable": True, "style": "default"},
    "feed": {"enable": True, "limit": 20, "content": False},
    "sitemap": {"enable": True},
    "port": 4000,
    "ws_port": 4001,
    "deploy": {"repo": "", "branch": "gh-pages", "message": "Site updated: {now}"},
}

_NESTED_KEYS = ("highlight", "feed", "sitemap", "deploy", "theme_config")


def _read_yaml(path: Path) -> dict[str, Any]:
    """Read a YAML mapping from ``path``.

    Raises:
        ConfigError: If the file is not valid YAML or not a mapping.
    """
    try:
        with open(path, encoding="utf-8") as f:
            loaded = yaml.safe_load(f)
    except yaml.YAMLError as exc:
        raise ConfigError(f"{path.name} is not valid YAML: {exc}") from exc
    if loaded is None:
        return {}
    if not isinstance(loaded, dict):
        raise ConfigError(f"{path.name} must contain a mapping of settings")
    return loaded


def _merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Recursively merge ``override`` into ``base`` and return ``base``."""
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(base.get(key), dict):
            _merge(base[key], value)
        else:
            base[key] = value
    return base


def normalize_root(root: Any) -> str:
    """Normalise the ``root`` setting to ``/`` or ``/sub/path/``."""
    text = str(root or "").strip().strip("/")
    return f"/{text}/" if text else "/"


def resolve_timezone(name: str) -> tzinfo:
    """Return the tzinfo for an IANA timezone name.

    Raises:
        ConfigError: If the zone is unknown.
    """
    try:
        return ZoneInfo(str(name))
    except (ZoneInfoNotFoundError, ValueError) as exc:
        raise ConfigError(f"Unknown timezone: {name!r}") from exc


def _check_public_dir(project_root: Path, config: dict[str, Any]) -> None:
    """Refuse output folders that cleaning would wipe project files with.

    Raises:
        ConfigError: If ``public_dir`` is not strictly inside the project, or
            overlaps the source, themes or scaffolds folders.
    """
    root = project_root.resolve()
    name = str(config.get("public_dir") or "").strip()
    public = (root / name).resolve()
    if not name or public == root or not public.is_relative_to(root):
        raise ConfigError(f"'public_dir' must be a folder inside the project, got {name!r}")
    for protected in (str(config.get("source_dir") or "source"), "themes", "scaffolds"):
        other = (root / protected).resolve()
        if public.is_relative_to(other) or other.is_relative_to(public):
            raise ConfigError(f"'public_dir' {name!r} overlaps the {protected}/ folder")


def load_config(project_root: Path) -> dict[str, Any]:
    """Load site configuration from _config.yml.

    Args:
        project_root: Root directory of the blog project.

    Returns:
        Dictionary containing configuration values, with defaults applied.

    Raises:
        ConfigError: If the file is malformed or a value is invalid.
    """
    config = copy.deepcopy(DEFAULT_CONFIG)
    config_path = project_root / CONFIG_FILENAME
    if config_path.exists():
        loaded = _read_yaml(config_path)
        for key in _NESTED_KEYS:
            if key in loaded and not isinstance(loaded[key], dict):
                raise ConfigError(f"'{key}' in {CONFIG_FILENAME} must be a mapping")
        _merge(config, loaded)

    config["root"] = normalize_root(config.get("root"))
    config["url"] = str(config.get("url") or "").rstrip("/")
    try:
        config["per_page"] = int(config.get("per_page") or 0)
    except (TypeError, ValueError) as exc:
        raise ConfigError("'per_page' must be a whole number") from exc
    if config["per_page"] < 0:
        raise ConfigError("'per_page' must not be negative")
    resolve_timezone(config["timezone"])
    _check_public_dir(project_root, config)
    return config


def resolve_theme_dirs(project_root: Path, config: dict[str, Any]) -> list[Path]:
    """Return theme folders in lookup order: the project's theme, then the built-in one.

    Raises:
        ConfigError: If a non-default theme is configured but not installed.
    """
    name = str(config.get("theme") or "default")
    builtin = BUILTIN_THEMES_DIR / "default"
    project_theme = project_root / "themes" / name
    if project_theme.is_dir():
        return [project_theme, builtin]
    if name != "default":
        raise ConfigError(f"Theme '{name}' not found in {project_root / 'themes'}")
    return [builtin]


def load_theme_config(
    project_root: Path,
    config: dict[str, Any],
    theme_dirs: list[Path] | None = None,
) -> dict[str, Any]:
    """Merge the theme configuration layers.

    Later layers win:
    1. The built-in theme's ``_config.yml``.
    2. The project theme's ``_config.yml``.
    3. ``_config.<theme>.yml`` at the project root.
    4. The ``theme_config`` mapping in ``_config.yml``.
    """
    dirs = theme_dirs if theme_dirs is not None else resolve_theme_dirs(project_root, config)
    merged: dict[str, Any] = {}
    for theme_dir in reversed(dirs):
        theme_file = theme_dir / CONFIG_FILENAME
        if theme_file.exists():
            _merge(merged, _read_yaml(theme_file))
    override = project_root / f"_config.{config.get('theme') or 'default'}.yml"
    if override.exists():
        _merge(merged, _read_yaml(override))
    _merge(merged, copy.deepcopy(config.get("theme_config") or {}))
    return merged


def site_path(config: dict[str, Any], path: str) -> str:
    """Prefix a site-relative path with the configured ``root``."""
    return join_root_url(config.get("root", "/").rstrip("/"), path)


def absolute_url(config: dict[str, Any], path: str) -> str:
    """Return the absolute public URL for a site-relative path."""
    if path.startswith(("http://", "https://", "//")):
        return path
    return join_root_url(config.get("url", ""), site_path(config, path))
