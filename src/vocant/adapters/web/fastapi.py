# vocant/adapters/web/fastapi.py
from contextlib import asynccontextmanager
from typing import Callable

import uuid

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from vocant.core.interfaces.http_client import HttpClientPort
from vocant.core.logging_config import correlation_id_var
from vocant.core.managers.callback_receiver import CallbackReceiver
from vocant.core.settings import logger


# Driver adapter: it only calls into the core (CallbackReceiver); the core
# knows nothing about FastAPI.
def create_app(
    http_client: HttpClientPort,
    callback_receiver_factory: Callable[[HttpClientPort], CallbackReceiver],
    callback_path: str = "/webhook",
) -> FastAPI:
    """Create the FastAPI app hosting the inbound callback endpoint.

    The transport and the receiver are assembled by the composition root;
    the app owns only their lifecycle (the transport session is opened for
    the lifetime of the app).
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        async with http_client as client:
            app.state.callback_receiver = callback_receiver_factory(client)
            logger.info(f"[callback] receiver ready path={callback_path}")
            yield

    app = FastAPI(title="Vocant callback receiver", lifespan=lifespan)

    # Correlation ID middleware: per-request id (inbound header wins) exposed to logging
    @app.middleware("http")
    async def correlation_id_middleware(request: Request, call_next):
        cid = request.headers.get("x-request-id") or uuid.uuid4().hex[:12]
        token = correlation_id_var.set(cid)
        try:
            response = await call_next(request)
        finally:
            correlation_id_var.reset(token)
        response.headers["X-Request-ID"] = cid
        return response

    @app.get("/health")
    async def health():
        return {"status": "ok"}

    @app.post(callback_path)
    async def receive_callback(request: Request):
        # Always acknowledge with 200; failures are described in the body.
        body = await request.body()
        receiver: CallbackReceiver = request.app.state.callback_receiver
        result = await receiver.handle(
            headers=dict(request.headers),
            body=body,
            content_type=request.headers.get("content-type"),
            query=dict(request.query_params),
        )
        return JSONResponse(status_code=200, content=result)

    return app
