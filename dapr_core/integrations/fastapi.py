"""
FastAPI integration.

Provides dependency injection for:
- The application's DaprClient (registered once with ``use_dapr``)
- The callback context of requests the sidecar forwards to this app

Usage:
    app = FastAPI()
    use_dapr(app)

    @app.post("/orders")
    @dapr_callback
    async def create_order(
        order: Order,
        dapr: DaprClient = Depends(get_dapr_client),
        caller: DaprCallbackContext = Depends(get_callback_context),
    ):
        await dapr.save_state("statestore", order.id, order)
"""

from __future__ import annotations

from typing import Any, Callable, Mapping, TypeVar

from fastapi import FastAPI, Request
from pydantic import BaseModel

from dapr_core.client import DaprClient
from dapr_core.runtime.options import ClientOptions
from dapr_core.runtime.pool import ConnectionPool

CALLER_APP_ID_HEADER = "dapr-caller-app-id"
CALLER_NAMESPACE_HEADER = "dapr-caller-namespace"
CALLEE_APP_ID_HEADER = "dapr-callee-app-id"

F = TypeVar("F", bound=Callable[..., Any])


class DaprCallbackContext(BaseModel):
    """Identity headers the sidecar attaches to forwarded invocations.

    Attributes:
        caller_app_id: App ID of the invoking application.
        caller_namespace: Namespace of the invoking application.
        callee_app_id: App ID of this application.
    """

    caller_app_id: str = ""
    caller_namespace: str = ""
    callee_app_id: str = ""

    model_config = {"frozen": True}

    @property
    def has_dapr_headers(self) -> bool:
        """True if the request came through a Dapr sidecar."""
        return bool(self.caller_app_id.strip() or self.callee_app_id.strip())

    @classmethod
    def empty(cls) -> "DaprCallbackContext":
        return cls()

    @classmethod
    def from_headers(cls, headers: Mapping[str, str]) -> "DaprCallbackContext":
        """Build a context from request headers.

        Args:
            headers: Header mapping (case-insensitive mappings such as
                Starlette's Headers are supported).
        """
        if headers is None:
            raise TypeError("headers must not be None")
        return cls(
            caller_app_id=headers.get(CALLER_APP_ID_HEADER) or "",
            caller_namespace=headers.get(CALLER_NAMESPACE_HEADER) or "",
            callee_app_id=headers.get(CALLEE_APP_ID_HEADER) or "",
        )


def use_dapr(
    app: FastAPI,
    options: ClientOptions | None = None,
    *,
    pool: ConnectionPool | None = None,
) -> DaprClient:
    """Create the application's DaprClient and register it on ``app.state``.

    Args:
        app: The FastAPI application.
        options: Client options; resolved from the environment if None.
        pool: Connection pool; the process-wide pool if None.

    Returns:
        The registered client.
    """
    if app is None:
        raise TypeError("app must not be None")
    client = DaprClient(options, pool=pool)
    app.state.dapr = client
    return client


def get_dapr_client(request: Request) -> DaprClient:
    """Get the DaprClient registered with ``use_dapr``.

    Raises:
        RuntimeError: If ``use_dapr`` was not called for this application.
    """
    client = getattr(request.app.state, "dapr", None)
    if client is None:
        raise RuntimeError(
            "DaprClient is not registered. Call use_dapr(app) during application setup."
        )
    return client


def get_callback_context(request: Request) -> DaprCallbackContext:
    """Get the Dapr callback context of the current request."""
    return DaprCallbackContext.from_headers(request.headers)


def dapr_callback(func: F) -> F:
    """Mark a route handler as a target of Dapr service invocation."""
    func.__dapr_callback__ = True  # type: ignore[attr-defined]
    return func


def is_dapr_callback(func: Callable[..., Any]) -> bool:
    return bool(getattr(func, "__dapr_callback__", False))
