"""
Error taxonomy — every failure the scaffolding pipeline can surface.

The set is closed: each class carries an ``ErrorKind`` tag so callers
(the CLI, the use case, tests) can ``match error.kind`` instead of
probing exception shapes.

    ToolforgeError
    ├── ValidationError          bad metadata (local or server-side)
    │   └── PathOutsideRootError a computed path escapes the workspace
    ├── ConflictError            target files already exist (abort policy)
    ├── TemplateError            not-found / permission / syntax / missing-variable
    ├── FileSystemError          directory / file / permission operation failed
    ├── AuthError                invalid credentials, locked account, no password
    ├── RegistrationConflictError tool already registered remotely
    ├── TransientNetworkError    connection or 5xx failure after retries
    └── ConfigError              unreadable or invalid toolforge.yml
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from enum import StrEnum
from pathlib import Path

from pydantic import BaseModel


class ErrorKind(StrEnum):
    """Tag attached to every ToolforgeError subclass."""

    VALIDATION = "validation"
    CONFLICT = "conflict"
    TEMPLATE = "template"
    FILE_SYSTEM = "file_system"
    AUTH = "auth"
    REGISTRATION_CONFLICT = "registration_conflict"
    TRANSIENT_NETWORK = "transient_network"
    CONFIG = "config"


class TemplateErrorKind(StrEnum):
    """Sub-kinds of template failures."""

    NOT_FOUND = "not_found"
    PERMISSION = "permission"
    SYNTAX = "syntax"
    MISSING_VARIABLE = "missing_variable"


class FieldViolation(BaseModel):
    """A single field-level validation problem."""

    field: str
    message: str

    def __str__(self) -> str:
        return f"{self.field}: {self.message}"


class ToolforgeError(Exception):
    """Base class for all expected toolforge failures."""

    kind: ErrorKind


# ── Validation ──────────────────────────────────────────────────


class ValidationError(ToolforgeError):
    """Metadata failed validation.

    All violations are collected before raising so the caller sees
    every problem at once.
    """

    kind = ErrorKind.VALIDATION

    def __init__(
        self,
        violations: Sequence[FieldViolation],
        prefix: str = "Metadata validation failed",
    ):
        self.violations = list(violations)
        joined = "; ".join(v.message for v in self.violations)
        super().__init__(f"{prefix}: {joined}" if joined else prefix)

    @property
    def fields(self) -> list[str]:
        return [v.field for v in self.violations]


class PathOutsideRootError(ValidationError):
    """A manifest path resolved outside the workspace root."""

    def __init__(self, path: Path, root: Path):
        self.path = path
        self.root = root
        super().__init__(
            [FieldViolation(field="identifier", message=f"path {path} escapes workspace root {root}")],
            prefix="Unsafe target path",
        )


# ── Conflicts ───────────────────────────────────────────────────


class ConflictError(ToolforgeError):
    """Target paths already exist and the policy is abort."""

    kind = ErrorKind.CONFLICT

    def __init__(self, tool_id: str, paths: Iterable[Path], root: Path | None = None):
        self.tool_id = tool_id
        self.paths = list(paths)
        shown = [_relative(p, root) for p in self.paths]
        listing = "\n".join(f"  - {p}" for p in shown)
        super().__init__(
            f"Tool '{tool_id}' already exists. Conflicting files:\n\n{listing}\n\n"
            "Use --force to overwrite or --skip-existing to skip conflicts."
        )


# ── Templates ───────────────────────────────────────────────────


class TemplateError(ToolforgeError):
    """Base class for template loading and rendering failures."""

    kind = ErrorKind.TEMPLATE
    template_kind: TemplateErrorKind

    def __init__(self, message: str, template: str):
        self.template = template
        super().__init__(message)


class TemplateNotFoundError(TemplateError):
    template_kind = TemplateErrorKind.NOT_FOUND

    def __init__(self, template: str, search_dir: Path):
        self.search_dir = search_dir
        super().__init__(
            f"Template not found: {template}. "
            f"Check that the file exists under {search_dir}",
            template,
        )


class TemplatePermissionError(TemplateError):
    template_kind = TemplateErrorKind.PERMISSION

    def __init__(self, template: str, cause: BaseException):
        self.cause = cause
        super().__init__(f"Cannot read template {template}: {cause}", template)


class TemplateSyntaxError(TemplateError):
    template_kind = TemplateErrorKind.SYNTAX

    def __init__(self, template: str, detail: str, lineno: int | None = None):
        self.lineno = lineno
        self.detail = detail
        where = f" (line {lineno})" if lineno else ""
        super().__init__(f"Template syntax error in {template}{where}: {detail}", template)


class MissingVariableError(TemplateError):
    template_kind = TemplateErrorKind.MISSING_VARIABLE

    def __init__(self, template: str, detail: str, supplied: Iterable[str]):
        self.supplied = sorted(supplied)
        self.detail = detail
        available = ", ".join(self.supplied) or "(none)"
        super().__init__(
            f"Missing template variable in {template}: {detail}. "
            f"Available variables: {available}",
            template,
        )


# ── File system ─────────────────────────────────────────────────


class FileSystemError(ToolforgeError):
    """A file-system operation failed on a specific path."""

    kind = ErrorKind.FILE_SYSTEM

    def __init__(self, operation: str, path: Path | str, cause: BaseException):
        self.operation = operation
        self.path = Path(path)
        self.cause = cause
        super().__init__(f"Failed to {operation} {path}: {cause}")


# ── Registry ────────────────────────────────────────────────────


class AuthError(ToolforgeError):
    """Authentication against the registry failed (terminal)."""

    kind = ErrorKind.AUTH


class RegistrationConflictError(ToolforgeError):
    """The tool is already registered remotely (terminal)."""

    kind = ErrorKind.REGISTRATION_CONFLICT

    def __init__(self, tool_id: str):
        self.tool_id = tool_id
        super().__init__(f"Tool '{tool_id}' already registered")


class TransientNetworkError(ToolforgeError):
    """Connection or server failure that outlived the retry budget."""

    kind = ErrorKind.TRANSIENT_NETWORK

    def __init__(self, message: str, status_code: int | None = None, attempts: int = 0):
        self.status_code = status_code
        self.attempts = attempts
        super().__init__(message)


# ── Config ──────────────────────────────────────────────────────


class ConfigError(ToolforgeError):
    """Raised when toolforge configuration is invalid or unreadable."""

    kind = ErrorKind.CONFIG


def _relative(path: Path, root: Path | None) -> str:
    if root is None:
        return str(path)
    try:
        return str(path.relative_to(root))
    except ValueError:
        return str(path)
