"""
Metadata validation — normalize a raw tool description into ToolMetadata.

Accepts the shapes produced by the CLI, a YAML/JSON metadata file, or a
caller building a dict by hand (camelCase keys such as ``toolId`` and
``toolName`` are accepted alongside snake_case).

Every rule is checked and every violation collected before raising, so
the operator fixes all problems in one pass.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable, Mapping
from typing import Any

from toolforge.core.errors import FieldViolation, ValidationError
from toolforge.core.models.tool import DEFAULT_VERSION, Feature, ToolMetadata
from toolforge.core.services.naming import to_kebab_case, to_snake_case

logger = logging.getLogger(__name__)

IDENTIFIER_PATTERN = re.compile(r"^[a-z][a-z0-9-]*$")
SEMVER_PATTERN = re.compile(
    r"^\d+\.\d+\.\d+(?:-[0-9A-Za-z.-]+)?(?:\+[0-9A-Za-z.-]+)?$"
)

IDENTIFIER_MIN, IDENTIFIER_MAX = 2, 50
NAME_MIN, NAME_MAX = 3, 50
DESCRIPTION_MIN, DESCRIPTION_MAX = 10, 500

# Accepted spellings for each canonical field
_ALIASES: dict[str, tuple[str, ...]] = {
    "identifier": ("identifier", "tool_id", "toolId", "id"),
    "display_name": ("display_name", "displayName", "tool_name", "toolName", "name"),
    "description": ("description",),
    "icon": ("icon",),
    "version": ("version",),
    "permissions": ("permissions",),
    "features": ("features",),
}


def validate_metadata(raw: Mapping[str, Any]) -> ToolMetadata:
    """Validate and normalize raw metadata.

    Args:
        raw: Mapping with identifier, display name, icon, permissions,
            features and optional description/version.

    Returns:
        A frozen ToolMetadata.

    Raises:
        ValidationError: listing every violated field.
    """
    fields = _canonicalize(raw)
    violations: list[FieldViolation] = []

    identifier = _clean_str(fields.get("identifier"))
    violations.extend(check_identifier(identifier))

    display_name = _clean_str(fields.get("display_name"))
    if not display_name:
        violations.append(FieldViolation(field="display_name", message="display name is required"))
    elif not NAME_MIN <= len(display_name) <= NAME_MAX:
        violations.append(FieldViolation(
            field="display_name",
            message=f"display name must be between {NAME_MIN} and {NAME_MAX} characters",
        ))

    description = _clean_str(fields.get("description"))
    if description and not DESCRIPTION_MIN <= len(description) <= DESCRIPTION_MAX:
        violations.append(FieldViolation(
            field="description",
            message=(
                f"description must be empty or between {DESCRIPTION_MIN} "
                f"and {DESCRIPTION_MAX} characters"
            ),
        ))

    icon = _clean_str(fields.get("icon"))
    if not icon:
        violations.append(FieldViolation(field="icon", message="icon is required"))

    version = _clean_str(fields.get("version")) or DEFAULT_VERSION
    if not SEMVER_PATTERN.match(version):
        violations.append(FieldViolation(
            field="version",
            message=f"version '{version}' is not a semantic version (e.g. 1.0.0)",
        ))

    permissions, perm_violations = _parse_permissions(fields.get("permissions"))
    violations.extend(perm_violations)

    features, feat_violations = _parse_features(fields.get("features"))
    violations.extend(feat_violations)

    if violations:
        logger.debug("Metadata rejected: %s", [str(v) for v in violations])
        raise ValidationError(violations)

    return ToolMetadata(
        identifier=identifier,
        display_name=display_name,
        description=description,
        icon=icon,
        version=version,
        permissions=tuple(permissions),
        features=frozenset(features),
    )


def check_identifier(identifier: str) -> list[FieldViolation]:
    """Identifier rules, shared with the registry client's pre-flight check."""
    if not identifier:
        return [FieldViolation(field="identifier", message="identifier is required")]

    problems: list[FieldViolation] = []
    if not IDENTIFIER_PATTERN.match(identifier):
        problems.append(FieldViolation(
            field="identifier",
            message=(
                f"identifier '{identifier}' is invalid: must be kebab-case "
                "(lowercase letters, numbers and hyphens only, starting with a letter)"
            ),
        ))
    if identifier.startswith("-") or identifier.endswith("-"):
        problems.append(FieldViolation(
            field="identifier",
            message="identifier cannot start or end with a hyphen",
        ))
    if "--" in identifier:
        problems.append(FieldViolation(
            field="identifier",
            message="identifier cannot contain consecutive hyphens",
        ))
    if not IDENTIFIER_MIN <= len(identifier) <= IDENTIFIER_MAX:
        problems.append(FieldViolation(
            field="identifier",
            message=f"identifier must be between {IDENTIFIER_MIN} and {IDENTIFIER_MAX} characters",
        ))
    return problems


def suggest_identifier(display_name: str) -> str:
    """Derive a kebab-case identifier from a display name.

    "Inventory Tracker" → "inventory-tracker". Leading digits are
    dropped so the result starts with a letter.
    """
    slug = to_kebab_case(display_name)
    slug = re.sub(r"^[^a-z]+", "", slug)
    return slug[:IDENTIFIER_MAX].rstrip("-")


def parse_feature(name: str) -> Feature:
    """Resolve a feature name in any casing ("integrationTests", "integration-tests")."""
    return Feature(to_snake_case(name))


# ── Helpers ─────────────────────────────────────────────────────


def _canonicalize(raw: Mapping[str, Any]) -> dict[str, Any]:
    fields: dict[str, Any] = {}
    for canonical, names in _ALIASES.items():
        for name in names:
            if name in raw and raw[name] is not None:
                fields[canonical] = raw[name]
                break
    return fields


def _clean_str(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


def _parse_permissions(value: Any) -> tuple[list[str], list[FieldViolation]]:
    if value is None:
        return [], [FieldViolation(field="permissions", message="permissions are required")]
    if isinstance(value, str) or not isinstance(value, Iterable):
        return [], [FieldViolation(field="permissions", message="permissions must be a list")]

    permissions: list[str] = []
    for item in value:
        tag = _clean_str(item)
        if tag and tag not in permissions:
            permissions.append(tag)

    if not permissions:
        return [], [FieldViolation(
            field="permissions",
            message="permissions cannot be empty (at least one permission required)",
        )]
    return permissions, []


def _parse_features(value: Any) -> tuple[set[Feature], list[FieldViolation]]:
    if value is None:
        return set(), [FieldViolation(field="features", message="features are required")]

    # {"backend": True, "tests": False} as produced by older metadata files
    if isinstance(value, Mapping):
        names = [name for name, enabled in value.items() if enabled]
    elif isinstance(value, str) or not isinstance(value, Iterable):
        return set(), [FieldViolation(field="features", message="features must be a list")]
    else:
        names = [_clean_str(item) for item in value if _clean_str(item)]

    features: set[Feature] = set()
    problems: list[FieldViolation] = []
    for name in names:
        try:
            features.add(parse_feature(name))
        except ValueError:
            expected = ", ".join(f.value for f in Feature)
            problems.append(FieldViolation(
                field="features",
                message=f"unknown feature '{name}' (expected one of: {expected})",
            ))

    if not features and not problems:
        problems.append(FieldViolation(
            field="features",
            message="features cannot be empty (at least one feature required)",
        ))
    return features, problems
