"""
Tests for the registry client and its retry policy.
"""

import json

import httpx
import pytest
from conftest import make_metadata, raw_metadata

from toolforge.core.errors import (
    AuthError,
    ErrorKind,
    RegistrationConflictError,
    TransientNetworkError,
    ValidationError,
)
from toolforge.core.models.config import RegistrySettings
from toolforge.core.models.registration import RegistrySession
from toolforge.core.models.tool import Feature
from toolforge.core.observability.reporter import RecordingReporter
from toolforge.core.reliability.backoff import RetryPolicy, is_transient, retry_async
from toolforge.core.services.registry_client import RegistryClient

API_URL = "http://registry.test"
LOGIN_OK = {"data": {"accessToken": "tok-123", "user": {"email": "admin@example.com"}}}
REGISTER_OK = {
    "data": {"toolId": "inventory-tracker", "createdAt": "2026-01-01T00:00:00Z"},
    "message": "Tool registered",
}


class Registry:
    """Scripted registry: pops one response per request, records every request."""

    def __init__(self, *responses):
        self.responses = list(responses)
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        reply = self.responses.pop(0)
        if isinstance(reply, Exception):
            raise reply
        status, body = reply
        return httpx.Response(status, json=body)

    @property
    def paths(self) -> list[str]:
        return [r.url.path for r in self.requests]


class SleepRecorder:
    def __init__(self):
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


def _client(registry: Registry, sleep=None, reporter=None, **settings) -> RegistryClient:
    values = {"api_url": API_URL, "admin_password": "secret"}
    values.update(settings)
    return RegistryClient(
        settings=RegistrySettings(**values),
        transport=httpx.MockTransport(registry),
        sleep=sleep or SleepRecorder(),
        reporter=reporter or RecordingReporter(),
    )


# ── Retry policy ─────────────────────────────────────────────────


class TestRetryPolicy:
    def test_delays_double(self):
        policy = RetryPolicy(base_delay=1.0)
        assert [policy.delay_for(n) for n in (1, 2, 3)] == [1.0, 2.0, 4.0]
        assert policy.max_retries == 2

    def test_delay_capped(self):
        assert RetryPolicy(base_delay=10, max_delay=15).delay_for(3) == 15

    def test_transient_classification(self):
        request = httpx.Request("POST", API_URL)
        assert is_transient(httpx.ConnectError("down", request=request))
        server_error = httpx.HTTPStatusError(
            "boom", request=request, response=httpx.Response(503, request=request)
        )
        assert is_transient(server_error)
        client_error = httpx.HTTPStatusError(
            "bad", request=request, response=httpx.Response(400, request=request)
        )
        assert not is_transient(client_error)
        assert not is_transient(ValueError("nope"))

    async def test_non_transient_not_retried(self):
        calls = []

        async def call():
            calls.append(1)
            raise ValueError("terminal")

        with pytest.raises(ValueError):
            await retry_async(call, RetryPolicy(), sleep=SleepRecorder())
        assert len(calls) == 1

    async def test_announces_before_sleeping(self):
        events = []
        request = httpx.Request("POST", API_URL)

        async def call():
            raise httpx.ConnectError("down", request=request)

        async def sleep(delay):
            events.append(("sleep", delay))

        with pytest.raises(httpx.ConnectError):
            await retry_async(
                call, RetryPolicy(), sleep=sleep,
                on_retry=lambda a, m, d: events.append(("retry", a, m, d)),
            )
        assert events == [
            ("retry", 1, 2, 1.0), ("sleep", 1.0),
            ("retry", 2, 2, 2.0), ("sleep", 2.0),
        ]


# ── Authentication ───────────────────────────────────────────────


class TestAuthenticate:
    async def test_success(self):
        registry = Registry((200, LOGIN_OK))
        async with _client(registry) as client:
            session = await client.authenticate()

        assert session.token == "tok-123"
        assert session.email == "admin@example.com"
        assert registry.paths == ["/api/v1/auth/login"]
        assert json.loads(registry.requests[0].content) == {
            "email": "admin@example.com", "password": "secret",
        }

    async def test_arguments_override_settings(self):
        registry = Registry((200, LOGIN_OK))
        async with _client(registry) as client:
            await client.authenticate("ops@example.com", "other")
        assert json.loads(registry.requests[0].content)["email"] == "ops@example.com"

    async def test_missing_password_fails_fast(self):
        registry = Registry()
        async with _client(registry, admin_password=None) as client:
            with pytest.raises(AuthError, match="Admin password not provided"):
                await client.authenticate()
        assert registry.requests == []

    async def test_invalid_credentials_single_attempt(self):
        registry = Registry((401, {"error": "Invalid credentials"}))
        async with _client(registry) as client:
            with pytest.raises(AuthError, match="Authentication failed: Invalid credentials"):
                await client.authenticate()
        assert len(registry.requests) == 1

    async def test_locked_account_not_retried(self):
        registry = Registry((403, {"error": "locked"}))
        sleep = SleepRecorder()
        async with _client(registry, sleep=sleep) as client:
            with pytest.raises(AuthError, match="Account locked"):
                await client.authenticate()
        assert len(registry.requests) == 1
        assert sleep.delays == []

    async def test_server_errors_exhaust_retries(self):
        """Three 503s: three attempts, at least three delay units, then failure."""
        registry = Registry((503, {}), (503, {}), (503, {}))
        sleep = SleepRecorder()
        reporter = RecordingReporter()
        async with _client(registry, sleep=sleep, reporter=reporter) as client:
            with pytest.raises(TransientNetworkError) as exc:
                await client.authenticate()

        assert len(registry.requests) == 3
        assert sleep.delays == [1.0, 2.0]
        assert sum(sleep.delays) >= 3
        assert reporter.of("retry") == [(1, 2, 1.0), (2, 2, 2.0)]
        assert exc.value.kind is ErrorKind.TRANSIENT_NETWORK
        assert exc.value.status_code == 503
        assert str(exc.value).startswith("Authentication failed:")

    async def test_recovers_after_transient_failure(self):
        request_error = httpx.ConnectError("connection refused")
        registry = Registry(request_error, (200, LOGIN_OK))
        async with _client(registry) as client:
            session = await client.authenticate()
        assert session.token == "tok-123"
        assert len(registry.requests) == 2

    async def test_succeeds_on_third_attempt(self):
        """Two network failures, then success: three requests, 1 + 2 delay units."""
        registry = Registry(httpx.ConnectError("refused"), httpx.ConnectError("refused"), (200, LOGIN_OK))
        sleep = SleepRecorder()
        reporter = RecordingReporter()
        async with _client(registry, sleep=sleep, reporter=reporter) as client:
            session = await client.authenticate()

        assert session.token == "tok-123"
        assert len(registry.requests) == 3
        assert sleep.delays == [1.0, 2.0]
        assert sum(sleep.delays) >= 3
        assert reporter.of("retry") == [(1, 2, 1.0), (2, 2, 2.0)]

    async def test_network_error_after_retries(self):
        registry = Registry(*(httpx.ConnectError("refused") for _ in range(3)))
        async with _client(registry) as client:
            with pytest.raises(TransientNetworkError, match="Authentication failed: ConnectError"):
                await client.authenticate()
        assert len(registry.requests) == 3


# ── Validation ───────────────────────────────────────────────────


class TestValidate:
    def test_accepts_valid_metadata(self):
        client = _client(Registry())
        client.validate(make_metadata())
        client.validate(raw_metadata())

    def test_collects_violations(self):
        client = _client(Registry())
        with pytest.raises(ValidationError) as exc:
            client.validate(raw_metadata(toolId="Bad Id", toolName="", permissions=[], features=[]))
        assert set(exc.value.fields) == {"toolId", "name", "permissions", "features"}
        assert "toolId must be kebab-case" in str(exc.value)

    def test_non_list_fields(self):
        client = _client(Registry())
        with pytest.raises(ValidationError, match="permissions must be an array"):
            client.validate(raw_metadata(permissions="inventory:read"))


# ── Registration ─────────────────────────────────────────────────


class TestRegister:
    async def test_empty_permissions_makes_no_request(self):
        """Pre-flight validation runs before any network call."""
        registry = Registry()
        metadata = make_metadata(permissions=())
        async with _client(registry) as client:
            with pytest.raises(ValidationError, match="permissions array cannot be empty"):
                await client.register(metadata)
        assert registry.requests == []

    async def test_success_with_session(self):
        registry = Registry((201, REGISTER_OK))
        session = RegistrySession(token="tok-123", email="admin@example.com")
        async with _client(registry) as client:
            result = await client.register(make_metadata(), session)

        assert result.success
        assert result.tool_id == "inventory-tracker"
        assert result.registered_at == "2026-01-01T00:00:00Z"
        request = registry.requests[0]
        assert request.url.path == "/api/v1/tools/register"
        assert request.headers["Authorization"] == "Bearer tok-123"

        body = json.loads(request.content)
        assert body["toolId"] == "inventory-tracker"
        assert body["route"] == "/tools/inventory-tracker"
        assert body["apiBase"] == "/api/tools/inventory-tracker"
        assert body["status"] == "alpha"
        assert body["permissions"] == ["inventory:read"]
        assert body["manifestJson"]["routes"] == {
            "frontend": "/tools/inventory-tracker", "api": "/api/tools/inventory-tracker",
        }
        assert body["manifestJson"]["features"] == ["backend", "service", "component"]

    async def test_authenticates_when_no_session(self):
        registry = Registry((200, LOGIN_OK), (201, REGISTER_OK))
        async with _client(registry) as client:
            await client.register(raw_metadata())
        assert registry.paths == ["/api/v1/auth/login", "/api/v1/tools/register"]

    async def test_server_validation_error(self):
        details = {"error": "Validation failed", "details": [
            {"field": "toolId", "message": "Tool ID must be kebab-case"},
            {"field": "route", "message": "Route must start with /tools/"},
        ]}
        registry = Registry((400, details))
        session = RegistrySession(token="t", email="e")
        async with _client(registry) as client:
            with pytest.raises(ValidationError) as exc:
                await client.register(make_metadata(), session)
        assert str(exc.value) == (
            "Validation failed: toolId: Tool ID must be kebab-case; route: Route must start with /tools/"
        )
        assert len(registry.requests) == 1

    async def test_conflict(self):
        registry = Registry((409, {"error": "exists"}))
        session = RegistrySession(token="t", email="e")
        async with _client(registry) as client:
            with pytest.raises(RegistrationConflictError, match="already registered"):
                await client.register(make_metadata(), session)
        assert len(registry.requests) == 1

    async def test_server_errors_retried(self):
        registry = Registry((500, {}), (502, {}), (500, {}))
        session = RegistrySession(token="t", email="e")
        async with _client(registry) as client:
            with pytest.raises(TransientNetworkError, match="Registration failed"):
                await client.register(make_metadata(), session)
        assert len(registry.requests) == 3


class TestGenerateManifest:
    def test_descriptor(self):
        metadata = make_metadata(features=(Feature.DATABASE, Feature.BACKEND))
        payload = _client(Registry()).generate_manifest(metadata)
        assert payload.id == "inventory-tracker"
        assert payload.features == ["backend", "database"]
        assert payload.routes.api == "/api/tools/inventory-tracker"


class TestMalformedReplies:
    async def test_login_with_null_data(self):
        registry = Registry((200, {"data": None}))
        async with _client(registry) as client:
            with pytest.raises(AuthError, match="did not include an access token"):
                await client.authenticate()

    async def test_login_with_non_string_token(self):
        registry = Registry((200, {"data": {"accessToken": 42}}))
        async with _client(registry) as client:
            with pytest.raises(AuthError):
                await client.authenticate()

    async def test_register_with_null_fields(self):
        registry = Registry((201, {"data": None, "message": None}))
        session = RegistrySession(token="t", email="e")
        async with _client(registry) as client:
            result = await client.register(make_metadata(), session)
        assert result.tool_id == "inventory-tracker"
        assert result.registered_at == ""
        assert result.message == ""
