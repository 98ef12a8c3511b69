"""
Registration cache — local record of the last registration attempt per tool.

Stored as a JSON object keyed by tool identifier:

    {
      "data-exporter": {"tool_id": "data-exporter", "status": "success", ...}
    }

Writes are atomic (temp file in the same directory, then rename), so a
crash mid-write never leaves a half-written cache. A corrupt or
unreadable cache is logged and treated as empty.
"""

from __future__ import annotations

import json
import logging
import tempfile
from pathlib import Path
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from toolforge.core.errors import FileSystemError
from toolforge.core.models.config import DEFAULT_CACHE_FILE
from toolforge.core.models.registration import RegistrationRecord, RegistrationStatus

logger = logging.getLogger(__name__)


class RegistrationCache:
    """JSON-file backed map of tool id → RegistrationRecord."""

    def __init__(self, path: Path | None = None):
        self.path = path or DEFAULT_CACHE_FILE

    # ── Read ─────────────────────────────────────────────────────

    def all(self) -> list[RegistrationRecord]:
        """Every cached record, newest first."""
        records = sorted(self._load().values(), key=lambda r: r.timestamp, reverse=True)
        return records

    def get(self, tool_id: str) -> RegistrationRecord | None:
        return self._load().get(tool_id)

    def _load(self) -> dict[str, RegistrationRecord]:
        if not self.path.is_file():
            return {}

        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            logger.warning("Corrupt registration cache %s: %s — starting fresh", self.path, e)
            return {}

        if not isinstance(data, dict):
            logger.warning("Registration cache %s is not a JSON object — starting fresh", self.path)
            return {}

        records: dict[str, RegistrationRecord] = {}
        for tool_id, raw in data.items():
            try:
                records[tool_id] = RegistrationRecord.model_validate(raw)
            except PydanticValidationError as e:
                logger.warning("Ignoring invalid cache entry %s: %s", tool_id, e)
        return records

    # ── Write ────────────────────────────────────────────────────

    def save(
        self,
        tool_id: str,
        status: RegistrationStatus,
        details: dict[str, Any] | None = None,
        error: str | None = None,
    ) -> RegistrationRecord:
        """Record the outcome of a registration attempt, replacing any earlier one.

        Raises:
            FileSystemError: if the cache cannot be written.
        """
        record = RegistrationRecord(tool_id=tool_id, status=status, details=details, error=error)
        records = self._load()
        records[tool_id] = record
        self._write(records)
        logger.debug("Cached registration %s for %s", status, tool_id)
        return record

    def clear(self) -> bool:
        """Delete the cache file. Returns whether it existed."""
        try:
            self.path.unlink()
        except FileNotFoundError:
            return False
        except OSError as e:
            raise FileSystemError("delete registration cache", self.path, e) from e
        logger.info("Cleared registration cache %s", self.path)
        return True

    def _write(self, records: dict[str, RegistrationRecord]) -> None:
        data = {tool_id: r.model_dump(mode="json") for tool_id, r in records.items()}
        content = json.dumps(data, indent=2, ensure_ascii=False) + "\n"

        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(
                dir=self.path.parent,
                prefix=".registrations_",
                suffix=".tmp",
            )
            tmp = Path(tmp_path)
            try:
                with open(fd, "w", encoding="utf-8") as f:
                    f.write(content)
                tmp.replace(self.path)
            except OSError:
                tmp.unlink(missing_ok=True)
                raise
        except OSError as e:
            logger.error("Failed to save registration cache %s: %s", self.path, e)
            raise FileSystemError("write registration cache", self.path, e) from e
