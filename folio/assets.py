"""Asset pipeline for Folio.

Copies the theme's ``source/`` folder and the blog's static files (images,
downloads, CNAME, ...) into the output directory, running each file through
the matching asset processor.
"""

from __future__ import annotations

from pathlib import Path

from .asset_processors import AssetProcessorRegistry, create_default_registry
from .utils import is_hidden_path


class AssetPipeline:
    """Copies and optimizes static assets for the site.

    Theme assets are processed first, the built-in theme before the project
    theme, then the blog's own static files, so later sources overwrite
    earlier ones at the same output path.

    Attributes:
        theme_dirs: Theme folders in lookup order (highest precedence first).
        source_dir: Blog source directory.
        static_files: Static files found in ``source_dir``.
        output_dir: Directory where processed assets are written.
        processor_registry: Registry of asset processors.
    """

    def __init__(
        self,
        theme_dirs: list[Path],
        source_dir: Path,
        static_files: list[Path],
        output_dir: Path,
        processor_registry: AssetProcessorRegistry | None = None,
    ):
        self.theme_dirs = theme_dirs
        self.source_dir = source_dir
        self.static_files = static_files
        self.output_dir = output_dir
        self.processor_registry = processor_registry or create_default_registry()

    def run(self) -> list[Path]:
        """Process every asset and return the output paths written."""
        written: dict[Path, None] = {}
        for theme_dir in reversed(self.theme_dirs):
            theme_source = theme_dir / "source"
            if not theme_source.is_dir():
                continue
            for item in sorted(theme_source.rglob("*")):
                rel = item.relative_to(theme_source)
                if item.is_dir() or is_hidden_path(rel):
                    continue
                written[self._process(item, rel)] = None

        for item in self.static_files:
            rel = item.relative_to(self.source_dir)
            written[self._process(item, rel)] = None
        return list(written)

    def _process(self, source: Path, rel: Path) -> Path:
        dest = self.output_dir / rel
        self.processor_registry.process(source, dest)
        return dest
