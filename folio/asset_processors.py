"""Asset processors for Folio.

Each processor handles a single type of static asset.

Key classes:
- ImageProcessor: Re-saves images with Pillow's optimizer.
- JSProcessor: Minifies JavaScript with rjsmin.
- StaticAssetProcessor: Copies everything else unchanged.
- AssetProcessorRegistry: Picks a processor for each file.
"""

from __future__ import annotations

import shutil
from abc import ABC, abstractmethod
from pathlib import Path

from PIL import Image, UnidentifiedImageError
from rjsmin import jsmin


class BaseAssetProcessor(ABC):
    """Base class for asset processors."""

    @property
    @abstractmethod
    def priority(self) -> int:
        """Return processor priority (higher = checked first)."""
        ...

    @abstractmethod
    def can_process(self, path: Path) -> bool:
        """Check if this processor can handle the given asset."""
        ...

    @abstractmethod
    def process(self, source: Path, dest: Path) -> bool:
        """Process an asset file into ``dest``; return True on success."""
        ...

    def ensure_dest_dir(self, dest: Path) -> None:
        dest.parent.mkdir(parents=True, exist_ok=True)


class ImageProcessor(BaseAssetProcessor):
    """Optimizes PNG, JPEG and WebP images using Pillow.

    Images Pillow cannot read are copied unchanged.
    """

    SUPPORTED_EXTENSIONS = {".png", ".jpg", ".jpeg", ".webp"}

    @property
    def priority(self) -> int:
        return 100

    def can_process(self, path: Path) -> bool:
        return path.suffix.lower() in self.SUPPORTED_EXTENSIONS

    def process(self, source: Path, dest: Path) -> bool:
        self.ensure_dest_dir(dest)
        try:
            with Image.open(source) as img:
                img.save(dest, optimize=True)
            return True
        except (OSError, UnidentifiedImageError, ValueError):
            # Unreadable or unsupported image: ship the original bytes
            pass
        shutil.copy2(source, dest)
        return True


class JSProcessor(BaseAssetProcessor):
    """Minifies JavaScript files with rjsmin.

    Files already named ``*.min.js`` are copied as they are.
    """

    @property
    def priority(self) -> int:
        return 80

    def can_process(self, path: Path) -> bool:
        return path.suffix.lower() == ".js" and not path.name.lower().endswith(".min.js")

    def process(self, source: Path, dest: Path) -> bool:
        self.ensure_dest_dir(dest)
        try:
            text = source.read_text(encoding="utf-8")
        except UnicodeDecodeError:
            shutil.copy2(source, dest)
            return True
        dest.write_text(jsmin(text), encoding="utf-8")
        return True


class StaticAssetProcessor(BaseAssetProcessor):
    """Copies assets without modification (fonts, CSS, SVGs, downloads...)."""

    @property
    def priority(self) -> int:
        return 0

    def can_process(self, path: Path) -> bool:
        return True

    def process(self, source: Path, dest: Path) -> bool:
        self.ensure_dest_dir(dest)
        shutil.copy2(source, dest)
        return True


class AssetProcessorRegistry:
    """Registry for managing asset processors.

    Processors are kept sorted by priority; the first one that accepts a
    file processes it.
    """

    def __init__(self):
        self._processors: list[BaseAssetProcessor] = []

    def register(self, processor: BaseAssetProcessor) -> None:
        self._processors.append(processor)
        self._processors.sort(key=lambda p: p.priority, reverse=True)

    def get_processor(self, path: Path) -> BaseAssetProcessor | None:
        for processor in self._processors:
            if processor.can_process(path):
                return processor
        return None

    def process(self, source: Path, dest: Path) -> bool:
        """Process ``source`` into ``dest``; False if no processor accepts it."""
        processor = self.get_processor(source)
        if processor:
            return processor.process(source, dest)
        return False


def create_default_registry() -> AssetProcessorRegistry:
    """Create a registry with the image, JavaScript and copy processors."""
    registry = AssetProcessorRegistry()
    registry.register(ImageProcessor())
    registry.register(JSProcessor())
    registry.register(StaticAssetProcessor())
    return registry
