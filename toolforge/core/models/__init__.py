"""
Domain models — Pydantic types for toolforge.

All models are re-exported here for convenient access:

    from toolforge.core.models import ToolMetadata, Manifest, GenerationResult
"""

from toolforge.core.models.config import RegistrySettings, ToolforgeConfig
from toolforge.core.models.manifest import Manifest, ManifestArea, ManifestEntry
from toolforge.core.models.registration import (
    RegistrationRecord,
    RegistrationResult,
    RegistrationStatus,
    RegistrySession,
    ToolManifestPayload,
    ToolRoutes,
)
from toolforge.core.models.result import GenerationResult
from toolforge.core.models.template import RenderedFile
from toolforge.core.models.tool import DEFAULT_VERSION, Feature, ToolMetadata

__all__ = [
    "DEFAULT_VERSION",
    "Feature",
    # result.py
    "GenerationResult",
    # manifest.py
    "Manifest",
    "ManifestArea",
    "ManifestEntry",
    # registration.py
    "RegistrationRecord",
    "RegistrationResult",
    "RegistrationStatus",
    "RegistrySession",
    # config.py
    "RegistrySettings",
    # template.py
    "RenderedFile",
    "ToolManifestPayload",
    # tool.py
    "ToolMetadata",
    "ToolforgeConfig",
    "ToolRoutes",
]
