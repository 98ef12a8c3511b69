"""
Naming — casing transforms shared by templates, manifests and patches.

Every derived name (class name, member name, table name) is computed
from the tool identifier through these functions, never cached.

    to_kebab_case("UserProfile")    → "user-profile"
    to_pascal_case("user-profile")  → "UserProfile"
    to_camel_case("user-profile")   → "userProfile"
    to_snake_case("user-profile")   → "user_profile"

All transforms are total: empty strings, digits and single characters
pass through without raising.
"""

from __future__ import annotations

import re

# lower/digit followed by upper: "myTool" → "my Tool"
_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z0-9])(?=[A-Z])")
# acronym followed by a word: "HTTPServer" → "HTTP Server"
_ACRONYM_BOUNDARY = re.compile(r"(?<=[A-Z])(?=[A-Z][a-z])")
_SEPARATORS = re.compile(r"[^A-Za-z0-9]+")


def split_words(value: str) -> list[str]:
    """Split any casing style into lowercase words."""
    if not value:
        return []
    spaced = _CAMEL_BOUNDARY.sub(" ", value)
    spaced = _ACRONYM_BOUNDARY.sub(" ", spaced)
    return [w.lower() for w in _SEPARATORS.split(spaced) if w]


def to_kebab_case(value: str) -> str:
    return "-".join(split_words(value))


def to_snake_case(value: str) -> str:
    return "_".join(split_words(value))


def to_pascal_case(value: str) -> str:
    return "".join(w[:1].upper() + w[1:] for w in split_words(value))


def to_camel_case(value: str) -> str:
    pascal = to_pascal_case(value)
    return pascal[:1].lower() + pascal[1:]


def to_title_case(value: str) -> str:
    """Human-readable title: "inventory-tracker" → "Inventory Tracker"."""
    return " ".join(w[:1].upper() + w[1:] for w in split_words(value))
