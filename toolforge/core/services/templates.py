"""
Template engine — load Jinja2 assets and bind a data context.

Templates live under ``toolforge/templates/`` (or a configured
directory) and are addressed by relative name, e.g.
``backend/repository.ts.j2``.

Rendering is plain textual substitution: ``StrictUndefined`` turns a
missing variable into an error instead of an empty string, HTML
templates are autoescaped, and the ``tsstr`` filter quotes a value as a
string literal for generated code. Data values are never evaluated.

Failures surface as the typed errors in ``toolforge.core.errors``:
not-found, permission, syntax (with line number) and missing-variable
(with the list of supplied variables).
"""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import jinja2

from toolforge.core.errors import (
    MissingVariableError,
    TemplateNotFoundError,
    TemplatePermissionError,
    TemplateSyntaxError,
)

logger = logging.getLogger(__name__)

DEFAULT_TEMPLATES_DIR = Path(__file__).resolve().parents[2] / "templates"

_INLINE_NAME = "<string>"


def _autoescape(name: str | None) -> bool:
    """Autoescape HTML templates only; code templates use ``tsstr``."""
    if not name:
        return False
    stem = name[:-3] if name.endswith(".j2") else name
    return stem.endswith((".html", ".htm"))


def _tsstr(value: Any) -> str:
    """Render a value as a quoted string literal."""
    return json.dumps("" if value is None else str(value), ensure_ascii=False)


class TemplateEngine:
    """Load and render named template assets.

    Args:
        search_dir: Directory holding template files.
    """

    def __init__(self, search_dir: Path | None = None):
        self.search_dir = Path(search_dir or DEFAULT_TEMPLATES_DIR)
        self._env = jinja2.Environment(
            loader=jinja2.FileSystemLoader(str(self.search_dir)),
            undefined=jinja2.StrictUndefined,
            autoescape=_autoescape,
            keep_trailing_newline=True,
            trim_blocks=True,
            lstrip_blocks=True,
        )
        self._env.filters["tsstr"] = _tsstr

    def load(self, name: str) -> str:
        """Return the raw text of a template asset."""
        path = self.search_dir / name
        if not path.is_file():
            raise TemplateNotFoundError(name, self.search_dir)
        try:
            return path.read_text(encoding="utf-8")
        except PermissionError as e:
            raise TemplatePermissionError(name, e) from e
        except OSError as e:
            raise TemplatePermissionError(name, e) from e

    def render(self, text: str, context: Mapping[str, Any], name: str = _INLINE_NAME) -> str:
        """Render template text with the given context."""
        try:
            template = self._env.from_string(text)
            template.name = name
        except jinja2.TemplateSyntaxError as e:
            raise TemplateSyntaxError(name, e.message or str(e), e.lineno) from e
        return self._render(template, context, name)

    def render_named(self, name: str, context: Mapping[str, Any]) -> str:
        """Load and render a template asset by name."""
        try:
            template = self._env.get_template(name)
        except jinja2.TemplateNotFound as e:
            raise TemplateNotFoundError(name, self.search_dir) from e
        except jinja2.TemplateSyntaxError as e:
            raise TemplateSyntaxError(name, e.message or str(e), e.lineno) from e
        except PermissionError as e:
            raise TemplatePermissionError(name, e) from e

        logger.debug("Rendering template %s", name)
        return self._render(template, context, name)

    def _render(self, template: jinja2.Template, context: Mapping[str, Any], name: str) -> str:
        try:
            return template.render(**context)
        except jinja2.UndefinedError as e:
            raise MissingVariableError(name, e.message or str(e), context.keys()) from e
        except jinja2.TemplateSyntaxError as e:
            raise TemplateSyntaxError(name, e.message or str(e), e.lineno) from e
