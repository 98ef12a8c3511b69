"""
Template rendering — bind tool metadata to every manifest entry.

Each manifest role maps to one template asset. The data context is
derived from metadata alone, so the same metadata always renders the
same content.
"""

from __future__ import annotations

import logging
from typing import Any

from toolforge.core.models.manifest import Manifest
from toolforge.core.models.template import RenderedFile
from toolforge.core.models.tool import Feature, ToolMetadata
from toolforge.core.services.templates import TemplateEngine

logger = logging.getLogger(__name__)

# manifest role → template asset
TEMPLATES: dict[str, str] = {
    "frontend.component": "frontend/component.ts.j2",
    "frontend.component_html": "frontend/component.html.j2",
    "frontend.component_css": "frontend/component.scss.j2",
    "frontend.service": "frontend/service.ts.j2",
    "frontend.routes": "frontend/routes.ts.j2",
    "frontend.menu_item": "frontend/menu-item.ts.j2",
    "frontend.integration": "frontend/INTEGRATION.md.j2",
    "frontend.component_spec": "frontend/component.spec.ts.j2",
    "frontend.service_spec": "frontend/service.spec.ts.j2",
    "backend.controller": "backend/controller.ts.j2",
    "backend.service": "backend/service.ts.j2",
    "backend.repository": "backend/repository.ts.j2",
    "backend.routes": "backend/routes.ts.j2",
    "backend.validator": "backend/validator.ts.j2",
    "tests.integration": "backend/integration.test.ts.j2",
    "shared.types": "shared/types.ts.j2",
    "config.readme": "config/README.md.j2",
}


def template_context(metadata: ToolMetadata) -> dict[str, Any]:
    """Map metadata to the variables templates may reference."""
    return {
        "tool_id": metadata.identifier,
        "tool_name": metadata.display_name,
        "description": metadata.description,
        "icon": metadata.icon,
        "version": metadata.version,
        "permissions": list(metadata.permissions),
        "features": {f.value: metadata.has(f) for f in Feature},
        "class_name": metadata.class_name,
        "member_name": metadata.member_name,
        "service_name": f"{metadata.member_name}Service",
        "table_name": metadata.table_name,
        "selector": f"app-{metadata.identifier}",
        "route": metadata.route,
        "api_base": metadata.api_base_path,
    }


def render_manifest(
    metadata: ToolMetadata,
    manifest: Manifest,
    engine: TemplateEngine | None = None,
) -> list[RenderedFile]:
    """Render every file in the manifest.

    Raises:
        TemplateError: on the first asset that fails; nothing is written.
        KeyError: if a manifest role has no template mapping.
    """
    engine = engine or TemplateEngine()
    context = template_context(metadata)

    rendered: list[RenderedFile] = []
    for entry in manifest.entries():
        content = engine.render_named(TEMPLATES[entry.role], context)
        rendered.append(RenderedFile(role=entry.role, path=entry.path, content=content))

    logger.debug("Rendered %d template(s) for %s", len(rendered), metadata.identifier)
    return rendered
