"""Shared fixtures: an in-process fake sidecar behind httpx.MockTransport."""

from __future__ import annotations

import json
from typing import Any

import httpx
import pytest

from dapr_core.client import DaprClient
from dapr_core.runtime.options import ClientOptions
from dapr_core.runtime.pool import ConnectionPool

SIDECAR_URL = "http://sidecar.test:3500"


class FakeSidecar:
    """Records every request and answers from a table of canned responses.

    Unregistered routes answer 404, like a sidecar without the component.
    """

    def __init__(self):
        self.requests: list[httpx.Request] = []
        self._routes: dict[tuple[str, str], tuple[int, bytes | str, dict[str, str]]] = {}
        self.error: Exception | None = None

    def respond(
        self,
        method: str,
        path: str,
        status_code: int = 200,
        json_body: Any = None,
        content: bytes | str | None = None,
        headers: dict[str, str] | None = None,
    ) -> None:
        if json_body is not None:
            content = json.dumps(json_body)
        self._routes[(method, path)] = (status_code, content or b"", headers or {})

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.error is not None:
            raise self.error
        canned = self._routes.get((request.method, request.url.path))
        if canned is None:
            return httpx.Response(404, content=b"not found")
        status_code, content, headers = canned
        return httpx.Response(status_code, content=content, headers=headers)

    @property
    def last_request(self) -> httpx.Request:
        return self.requests[-1]

    def last_json(self) -> Any:
        return json.loads(self.last_request.content)


@pytest.fixture
def sidecar():
    """Create a fake sidecar."""
    return FakeSidecar()


@pytest.fixture
def pool(sidecar):
    """Create a connection pool routed to the fake sidecar."""
    return ConnectionPool(transport=httpx.MockTransport(sidecar.handler))


@pytest.fixture
def options():
    """Create fail-fast client options for the fake sidecar."""
    return ClientOptions(endpoint=SIDECAR_URL, request_timeout=2.0, fail_fast=True)


@pytest.fixture
def client(options, pool):
    """Create a DaprClient wired to the fake sidecar."""
    return DaprClient(options, pool=pool)
