"""FastAPI surface: maps HTTP requests onto the two handlers.

Config and store are resolved per request unless injected, so every
invocation reads fresh settings and opens (then closes) its own store
client. Run with ``uvicorn orbitalscan.app:app``.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from contextlib import AsyncExitStack

from fastapi import FastAPI, Request, Response

from orbitalscan.config import MembershipConfig
from orbitalscan.handlers import handle_get_membership, handle_payment_webhook
from orbitalscan.http_types import HandlerRequest, HandlerResponse
from orbitalscan.store_backend import MembershipStore
from orbitalscan.stores.supabase import SupabaseStore

Handler = Callable[
    [HandlerRequest, MembershipConfig, MembershipStore | None],
    Awaitable[HandlerResponse],
]

_ALL_METHODS = ["GET", "POST", "PUT", "PATCH", "DELETE"]


async def _to_handler_request(request: Request) -> HandlerRequest:
    return HandlerRequest(
        method=request.method,
        headers=dict(request.headers),
        body=await request.body(),
        query=dict(request.query_params),
    )


def _to_response(result: HandlerResponse) -> Response:
    return Response(
        content=result.body,
        status_code=result.status_code,
        headers=result.headers,
    )


def create_app(
    config: MembershipConfig | None = None,
    store: MembershipStore | None = None,
) -> FastAPI:
    """Build the ASGI app. Injected ``config``/``store`` are shared by all requests."""
    app = FastAPI(title="OrbitalScan Membership")

    async def _dispatch(request: Request, handler: Handler) -> Response:
        cfg = config or MembershipConfig.from_env()
        async with AsyncExitStack() as stack:
            active_store = store
            if active_store is None and cfg.store_configured:
                active_store = await stack.enter_async_context(
                    SupabaseStore(
                        cfg.supabase_url or "",
                        cfg.supabase_service_key or "",
                        table=cfg.store_namespace,
                    )
                )
            result = await handler(await _to_handler_request(request), cfg, active_store)
        return _to_response(result)

    @app.api_route("/payment-webhook", methods=_ALL_METHODS)
    async def payment_webhook(request: Request) -> Response:
        return await _dispatch(request, handle_payment_webhook)

    @app.api_route("/get-membership", methods=_ALL_METHODS)
    async def get_membership(request: Request) -> Response:
        return await _dispatch(request, handle_get_membership)

    return app


app = create_app()
