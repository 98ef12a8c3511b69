"""
Registration models — registry payloads, sessions and cached outcomes.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field


def _now_iso() -> str:
    """Current UTC time as ISO string."""
    return datetime.now(UTC).isoformat()


RegistrationStatus = Literal["success", "failed", "skipped"]


class ToolRoutes(BaseModel):
    frontend: str
    api: str


class ToolManifestPayload(BaseModel):
    """Descriptor block sent to the registry as ``manifestJson``."""

    id: str
    name: str
    version: str
    description: str = ""
    icon: str
    features: list[str] = Field(default_factory=list)
    routes: ToolRoutes
    permissions: list[str] = Field(default_factory=list)


class RegistrySession(BaseModel):
    """An authenticated registry session.

    Returned by ``RegistryClient.authenticate`` and passed explicitly
    to ``register``; lives for one CLI invocation.
    """

    model_config = ConfigDict(frozen=True)

    token: str
    email: str
    authenticated_at: str = Field(default_factory=_now_iso)

    @property
    def headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self.token}"}


class RegistrationResult(BaseModel):
    """Successful registration as reported by the registry."""

    success: bool = True
    tool_id: str
    registered_at: str = ""
    message: str = ""


class RegistrationRecord(BaseModel):
    """Last registration attempt for one tool, as cached locally."""

    tool_id: str
    status: RegistrationStatus
    timestamp: str = Field(default_factory=_now_iso)
    details: dict[str, Any] | None = None
    error: str | None = None
