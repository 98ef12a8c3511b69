"""
Progress reporting — the pipeline's only output channel.

The generator, patcher and registry client announce what they do
through a ``Reporter`` rather than printing. The CLI plugs in a
colored console reporter; library callers get ``LoggingReporter``;
tests use ``RecordingReporter`` and assert on the captured events.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

logger = logging.getLogger("toolforge.progress")


class Reporter:
    """Base reporter. Every hook is a no-op; override what you need."""

    def on_stage(self, name: str) -> None:
        """A pipeline stage is starting (e.g. "Rendering templates")."""

    def on_directory_created(self, path: Path) -> None:
        """A directory that did not exist was created."""

    def on_file_written(self, path: Path, size: int) -> None:
        """A file was written; ``size`` is in bytes."""

    def on_file_skipped(self, path: Path, reason: str) -> None:
        """A file was deliberately not written."""

    def on_info(self, message: str) -> None:
        """Neutral progress message."""

    def on_warning(self, message: str) -> None:
        """Something failed but the run continues."""

    def on_error(self, message: str) -> None:
        """A stage failed."""

    def on_retry(self, attempt: int, max_retries: int, delay: float) -> None:
        """A network call is about to be retried after ``delay`` seconds."""


class LoggingReporter(Reporter):
    """Reporter that forwards every event to the ``toolforge.progress`` logger."""

    def on_stage(self, name: str) -> None:
        logger.info("%s", name)

    def on_directory_created(self, path: Path) -> None:
        logger.info("Created directory %s", path)

    def on_file_written(self, path: Path, size: int) -> None:
        logger.info("Wrote %s (%.1f KB)", path, size / 1024)

    def on_file_skipped(self, path: Path, reason: str) -> None:
        logger.info("Skipped %s (%s)", path, reason)

    def on_info(self, message: str) -> None:
        logger.info("%s", message)

    def on_warning(self, message: str) -> None:
        logger.warning("%s", message)

    def on_error(self, message: str) -> None:
        logger.error("%s", message)

    def on_retry(self, attempt: int, max_retries: int, delay: float) -> None:
        logger.warning("Retry %d/%d in %.1fs...", attempt, max_retries, delay)


@dataclass
class RecordingReporter(Reporter):
    """Reporter that records events as (kind, payload) tuples."""

    events: list[tuple[str, Any]] = field(default_factory=list)

    def of(self, kind: str) -> list[Any]:
        """Payloads of every event of one kind."""
        return [payload for k, payload in self.events if k == kind]

    def on_stage(self, name: str) -> None:
        self.events.append(("stage", name))

    def on_directory_created(self, path: Path) -> None:
        self.events.append(("directory", path))

    def on_file_written(self, path: Path, size: int) -> None:
        self.events.append(("file", (path, size)))

    def on_file_skipped(self, path: Path, reason: str) -> None:
        self.events.append(("skipped", (path, reason)))

    def on_info(self, message: str) -> None:
        self.events.append(("info", message))

    def on_warning(self, message: str) -> None:
        self.events.append(("warning", message))

    def on_error(self, message: str) -> None:
        self.events.append(("error", message))

    def on_retry(self, attempt: int, max_retries: int, delay: float) -> None:
        self.events.append(("retry", (attempt, max_retries, delay)))
