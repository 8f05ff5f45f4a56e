"""Exception types for Folio.

Every error Folio reports to the user derives from FolioError so the CLI can
turn it into a short message and a non-zero exit status instead of a
traceback.

Classes:
    FolioError: Base class.
    ConfigError: Invalid or unreadable configuration.
    FrontMatterError: Malformed front matter in a content document.
    BuildError: Failure while building a specific source file.
    ScaffoldError: A project or document could not be created.
    DeployError: Deployment to the pages branch failed.
"""

from __future__ import annotations

from pathlib import Path


class FolioError(Exception):
    """Base class for errors reported to the user."""


class ConfigError(FolioError):
    """Raised when _config.yml or a theme config cannot be used."""


class FrontMatterError(FolioError):
    """Malformed front matter in a content document.

    Attributes:
        message: Human-readable description of the problem.
        path: Source file, when known.
        line: 1-based line number in the source file, when known.
    """

    def __init__(self, message: str, path: Path | None = None, line: int | None = None):
        self.message = message
        self.path = path
        self.line = line
        location = str(path) if path else "front matter"
        if line is not None:
            location = f"{location}:{line}"
        super().__init__(f"{location}: {message}")


class BuildError(FolioError):
    """Error during site build with file context.

    Attributes:
        source_path: Path to the source file that caused the error.
        message: Human-readable error message.
        original_error: The original exception that was caught.
    """

    def __init__(
        self,
        source_path: Path,
        message: str,
        original_error: Exception | None = None,
    ):
        self.source_path = source_path
        self.message = message
        self.original_error = original_error
        super().__init__(f"{source_path}: {message}")


class ScaffoldError(FolioError):
    """Raised when a project, post or page cannot be created."""


class DeployError(FolioError):
    """Raised when the site cannot be pushed to its deploy target."""
