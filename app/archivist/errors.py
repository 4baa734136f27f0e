"""Exception taxonomy for the scraping run.

Each error carries the recovery strategy the orchestrator applies and the
context it was raised in. ``fatal`` errors end the run after teardown;
``skip`` errors skip the current author or play and are recorded in the
review queue.
"""
from __future__ import annotations

from typing import Optional

FATAL = "fatal"
SKIP = "skip"


class ArchivistError(Exception):
    recovery_strategy: str = SKIP
    context: str = "scraping"

    def __init__(self, message: str, cause: Optional[BaseException] = None) -> None:
        super().__init__(message)
        self.cause = cause
        if cause is not None:
            self.__cause__ = cause

    @property
    def is_fatal(self) -> bool:
        return self.recovery_strategy == FATAL

    def __str__(self) -> str:  # pragma: no cover - inherited behaviour
        return str(self.args[0]) if self.args else ""


class SetupError(ArchivistError):
    """Index load failure or a dependency that is not ready."""

    recovery_strategy = FATAL
    context = "setup"


class ScrapingError(ArchivistError):
    """Navigation or extraction failure; skips the current author."""

    context = "scraping"


class AuthorProcessingError(ArchivistError):
    context = "processing-author"


class WriteAuthorError(ArchivistError):
    context = "writing-author"


class PlayProcessingError(ArchivistError):
    context = "processing-play"


class WritePlayError(ArchivistError):
    context = "writing-play"


class TemplateError(Exception):
    """Profile page shows neither or both of the template markers."""


class FileWriteError(Exception):
    """Raised by the file output adapter for invalid or failed writes."""


__all__ = [
    "FATAL",
    "SKIP",
    "ArchivistError",
    "SetupError",
    "ScrapingError",
    "AuthorProcessingError",
    "WriteAuthorError",
    "PlayProcessingError",
    "WritePlayError",
    "TemplateError",
    "FileWriteError",
]
