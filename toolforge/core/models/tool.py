"""
Tool metadata model — the canonical description of a module to scaffold.

Instances are produced by ``validation.validate_metadata`` and are frozen:
the identifier cannot change once file-system work begins. Derived names
are properties recomputed through the naming helpers on every access.
"""

from __future__ import annotations

from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field

from toolforge.core.services.naming import to_camel_case, to_pascal_case, to_snake_case

DEFAULT_VERSION = "1.0.0"


class Feature(StrEnum):
    """Capability flags controlling which optional files are generated."""

    BACKEND = "backend"
    DATABASE = "database"
    SERVICE = "service"
    COMPONENT = "component"
    TESTS = "tests"
    INTEGRATION_TESTS = "integration_tests"


class ToolMetadata(BaseModel):
    """A validated tool description."""

    model_config = ConfigDict(frozen=True)

    identifier: str
    display_name: str
    description: str = ""
    icon: str = "pi-box"
    version: str = DEFAULT_VERSION
    permissions: tuple[str, ...] = Field(default_factory=tuple)
    features: frozenset[Feature] = Field(default_factory=frozenset)

    # ── Derived routing ──────────────────────────────────────────

    @property
    def route(self) -> str:
        return f"/tools/{self.identifier}"

    @property
    def api_base_path(self) -> str:
        return f"/api/tools/{self.identifier}"

    # ── Derived names ────────────────────────────────────────────

    @property
    def class_name(self) -> str:
        """Type-name form: inventory-tracker → InventoryTracker."""
        return to_pascal_case(self.identifier)

    @property
    def member_name(self) -> str:
        """Member-name form: inventory-tracker → inventoryTracker."""
        return to_camel_case(self.identifier)

    @property
    def table_name(self) -> str:
        """Storage form: inventory-tracker → inventory_tracker."""
        return to_snake_case(self.identifier)

    def has(self, feature: Feature) -> bool:
        return feature in self.features

    def sorted_features(self) -> list[str]:
        """Feature names in declaration order (stable for payloads)."""
        return [f.value for f in Feature if f in self.features]
