"""
Registry client — register generated tools with the platform API.

    client = RegistryClient(settings=config.registry)
    async with client:
        session = await client.authenticate()
        result = await client.register(metadata, session)

Endpoints:
    POST /api/v1/auth/login       {email, password} → {data: {accessToken}}
    POST /api/v1/tools/register   bearer auth, tool payload → {data: {toolId, createdAt}, message}

The client keeps no token of its own: ``authenticate`` returns a
``RegistrySession`` that the caller threads into ``register``. Every
request goes through ``retry_async`` (network errors and 5xx only).
"""

from __future__ import annotations

import asyncio
import logging
import re
from collections.abc import Mapping
from typing import Any

import httpx

from toolforge.core.errors import (
    AuthError,
    FieldViolation,
    RegistrationConflictError,
    TransientNetworkError,
    ValidationError,
)
from toolforge.core.models.config import DEFAULT_ADMIN_EMAIL, RegistrySettings
from toolforge.core.models.registration import (
    RegistrationResult,
    RegistrySession,
    ToolManifestPayload,
    ToolRoutes,
)
from toolforge.core.models.tool import ToolMetadata
from toolforge.core.observability.reporter import LoggingReporter, Reporter
from toolforge.core.reliability.backoff import RetryPolicy, SleepFn, retry_async
from toolforge.core.services.validation import validate_metadata

logger = logging.getLogger(__name__)

LOGIN_PATH = "/api/v1/auth/login"
REGISTER_PATH = "/api/v1/tools/register"
INITIAL_STATUS = "alpha"

_KEBAB = re.compile(r"^[a-z0-9]+(-[a-z0-9]+)*$")


class RegistryClient:
    """HTTP client for the tool registry API.

    Args:
        base_url: Registry API root; overrides ``settings.api_url``.
        settings: Registry URL, credentials and retry budget.
        transport: Optional httpx transport (tests pass ``httpx.MockTransport``).
        sleep: Coroutine used for backoff delays.
        reporter: Receives retry announcements.
    """

    def __init__(
        self,
        base_url: str | None = None,
        settings: RegistrySettings | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        sleep: SleepFn = asyncio.sleep,
        reporter: Reporter | None = None,
    ):
        self.settings = settings or RegistrySettings()
        self._policy = RetryPolicy(
            max_attempts=self.settings.max_attempts,
            base_delay=self.settings.base_delay,
        )
        self._sleep = sleep
        self._reporter = reporter or LoggingReporter()
        self._client = httpx.AsyncClient(
            base_url=base_url or self.settings.api_url,
            timeout=self.settings.timeout,
            headers={"Content-Type": "application/json"},
            transport=transport,
        )

    async def __aenter__(self) -> RegistryClient:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    # ── Authentication ───────────────────────────────────────────

    async def authenticate(
        self,
        email: str | None = None,
        password: str | None = None,
    ) -> RegistrySession:
        """Log in with admin credentials.

        Credentials come from the arguments, then from settings
        (toolforge.yml / TOOLFORGE_ADMIN_* variables).

        Raises:
            AuthError: no password, 401 (invalid credentials) or 403 (locked).
            TransientNetworkError: network/5xx failures after retries.
        """
        email = email or self.settings.admin_email or DEFAULT_ADMIN_EMAIL
        password = password or self.settings.admin_password
        if not password:
            raise AuthError(
                "Admin password not provided. Set TOOLFORGE_ADMIN_PASSWORD "
                "or use --admin-password"
            )

        response = await self._post(
            LOGIN_PATH,
            {"email": email, "password": password},
            failure_prefix="Authentication failed",
        )

        if response.status_code == 401:
            raise AuthError("Authentication failed: Invalid credentials")
        if response.status_code == 403:
            raise AuthError("Authentication failed: Account locked or disabled")
        if response.is_error:
            raise AuthError(f"Authentication failed: HTTP {response.status_code}")

        token = _data(response).get("accessToken")
        if not token or not isinstance(token, str):
            raise AuthError("Authentication failed: response did not include an access token")

        logger.info("Authenticated with registry as %s", email)
        return RegistrySession(token=token, email=email)

    # ── Validation ───────────────────────────────────────────────

    def validate(self, metadata: ToolMetadata | Mapping[str, Any]) -> None:
        """Pre-flight check mirroring the registry's own rules.

        Runs before any network call.

        Raises:
            ValidationError: listing every violation.
        """
        fields = _wire_fields(metadata)
        errors: list[FieldViolation] = []

        tool_id = fields["toolId"]
        if not tool_id:
            errors.append(FieldViolation(field="toolId", message="toolId is required"))
        elif not _KEBAB.match(tool_id):
            errors.append(FieldViolation(
                field="toolId",
                message=(
                    "toolId must be kebab-case (lowercase letters, numbers, and hyphens "
                    "only, cannot start or end with hyphen)"
                ),
            ))

        if not fields["name"]:
            errors.append(FieldViolation(field="name", message="toolName is required"))
        if not fields["icon"]:
            errors.append(FieldViolation(field="icon", message="icon is required"))

        for key, noun in (("permissions", "permission"), ("features", "feature")):
            value = fields[key]
            if value is None:
                errors.append(FieldViolation(field=key, message=f"{key} must be an array"))
            elif not value:
                errors.append(FieldViolation(
                    field=key,
                    message=f"{key} array cannot be empty (at least one {noun} required)",
                ))

        if errors:
            raise ValidationError(errors)

    # ── Registration ─────────────────────────────────────────────

    def generate_manifest(self, metadata: ToolMetadata) -> ToolManifestPayload:
        """Build the ``manifestJson`` descriptor for a tool."""
        return ToolManifestPayload(
            id=metadata.identifier,
            name=metadata.display_name,
            version=metadata.version,
            description=metadata.description,
            icon=metadata.icon,
            features=metadata.sorted_features(),
            routes=ToolRoutes(frontend=metadata.route, api=metadata.api_base_path),
            permissions=list(metadata.permissions),
        )

    def build_payload(self, metadata: ToolMetadata) -> dict[str, Any]:
        """Request body for POST /api/v1/tools/register."""
        return {
            "toolId": metadata.identifier,
            "name": metadata.display_name,
            "version": metadata.version,
            "description": metadata.description,
            "route": metadata.route,
            "apiBase": metadata.api_base_path,
            "permissions": list(metadata.permissions),
            "status": INITIAL_STATUS,
            "manifestJson": self.generate_manifest(metadata).model_dump(),
        }

    async def register(
        self,
        metadata: ToolMetadata | Mapping[str, Any],
        session: RegistrySession | None = None,
    ) -> RegistrationResult:
        """Register a tool, authenticating first if no session is given.

        Raises:
            ValidationError: local pre-flight failure or server 400.
            RegistrationConflictError: server 409.
            AuthError: authentication failed or the session was rejected.
            TransientNetworkError: network/5xx failures after retries.
        """
        self.validate(metadata)
        if not isinstance(metadata, ToolMetadata):
            metadata = validate_metadata(metadata)

        session = session or await self.authenticate()
        response = await self._post(
            REGISTER_PATH,
            self.build_payload(metadata),
            headers=session.headers,
            failure_prefix="Registration failed",
        )

        status = response.status_code
        if status == 400:
            raise _server_validation_error(_json(response))
        if status == 409:
            raise RegistrationConflictError(metadata.identifier)
        if status in (401, 403):
            raise AuthError(f"Registration failed: registry rejected the session (HTTP {status})")
        if response.is_error:
            body = _json(response)
            raise ValidationError(
                [FieldViolation(field="request", message=f"HTTP {status}: {body.get('error', response.text)}")],
                prefix="Registration rejected",
            )

        body = _json(response)
        data = _data(response)
        logger.info("Registered %s with the registry", metadata.identifier)
        return RegistrationResult(
            success=True,
            tool_id=str(data.get("toolId") or metadata.identifier),
            registered_at=str(data.get("createdAt") or ""),
            message=str(body.get("message") or ""),
        )

    # ── Transport ────────────────────────────────────────────────

    async def _post(
        self,
        path: str,
        payload: dict[str, Any],
        failure_prefix: str,
        headers: dict[str, str] | None = None,
    ) -> httpx.Response:
        """POST with retries. 4xx responses are returned to the caller."""

        async def call() -> httpx.Response:
            response = await self._client.post(path, json=payload, headers=headers)
            if response.status_code >= 500:
                response.raise_for_status()
            return response

        try:
            return await retry_async(
                call,
                self._policy,
                sleep=self._sleep,
                on_retry=self._reporter.on_retry,
            )
        except httpx.HTTPStatusError as e:
            raise TransientNetworkError(
                f"{failure_prefix}: server error {e.response.status_code}",
                status_code=e.response.status_code,
                attempts=self._policy.max_attempts,
            ) from e
        except httpx.TransportError as e:
            raise TransientNetworkError(
                f"{failure_prefix}: {type(e).__name__}: {e}",
                attempts=self._policy.max_attempts,
            ) from e


# ── Helpers ─────────────────────────────────────────────────────


def _json(response: httpx.Response) -> dict[str, Any]:
    try:
        body = response.json()
    except ValueError:
        return {}
    return body if isinstance(body, dict) else {}


def _data(response: httpx.Response) -> dict[str, Any]:
    """The ``data`` object of a reply; empty when absent, null or not an object."""
    data = _json(response).get("data")
    return data if isinstance(data, dict) else {}


def _wire_fields(metadata: ToolMetadata | Mapping[str, Any]) -> dict[str, Any]:
    """Extract the fields the registry checks, from a model or a raw mapping."""
    if isinstance(metadata, ToolMetadata):
        return {
            "toolId": metadata.identifier,
            "name": metadata.display_name.strip(),
            "icon": metadata.icon.strip(),
            "permissions": list(metadata.permissions),
            "features": list(metadata.features),
        }

    def pick(*keys: str) -> Any:
        for key in keys:
            if key in metadata and metadata[key] is not None:
                return metadata[key]
        return None

    def as_list(value: Any) -> list | None:
        if value is None or isinstance(value, str):
            return None
        if isinstance(value, Mapping):
            return [k for k, enabled in value.items() if enabled]
        try:
            return list(value)
        except TypeError:
            return None

    return {
        "toolId": str(pick("toolId", "identifier", "tool_id", "id") or ""),
        "name": str(pick("toolName", "display_name", "displayName", "name") or "").strip(),
        "icon": str(pick("icon") or "").strip(),
        "permissions": as_list(pick("permissions")),
        "features": as_list(pick("features")),
    }


def _server_validation_error(body: dict[str, Any]) -> ValidationError:
    details = body.get("details") or []
    violations = [
        FieldViolation(
            field=str(d.get("field", "request")),
            message=f"{d.get('field', 'request')}: {d.get('message', '')}",
        )
        for d in details
        if isinstance(d, dict)
    ]
    if not violations:
        violations = [FieldViolation(field="request", message=str(body.get("error", "invalid request")))]
    return ValidationError(violations, prefix="Validation failed")
