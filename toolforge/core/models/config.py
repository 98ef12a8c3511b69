"""
Configuration model — loaded from toolforge.yml plus environment overrides.
"""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, Field

DEFAULT_API_URL = "http://localhost:3000"
DEFAULT_ADMIN_EMAIL = "admin@example.com"
DEFAULT_CACHE_FILE = Path.home() / ".toolforge" / "registrations.json"


class RegistrySettings(BaseModel):
    """Where and how to reach the tool registry."""

    api_url: str = DEFAULT_API_URL
    admin_email: str | None = None
    admin_password: str | None = None
    timeout: float = 30.0
    max_attempts: int = Field(default=3, ge=1)
    base_delay: float = Field(default=1.0, ge=0)


class ToolforgeConfig(BaseModel):
    """Root configuration.

    Every field has a default, so a workspace without toolforge.yml
    still works.
    """

    workspace_root: Path | None = None
    templates_dir: Path | None = None
    cache_file: Path = DEFAULT_CACHE_FILE
    registry: RegistrySettings = Field(default_factory=RegistrySettings)

    # Where the config was loaded from (None = defaults only)
    source: Path | None = Field(default=None, exclude=True)

    def resolve_root(self, cwd: Path | None = None) -> Path:
        """Workspace root: explicit setting, else the config's directory, else cwd."""
        base = self.source.parent if self.source else (cwd or Path.cwd())
        if self.workspace_root is None:
            return base.resolve()
        root = self.workspace_root.expanduser()
        return (root if root.is_absolute() else base / root).resolve()
