"""
netmeta REST API and live dashboard feed.

Endpoints:
    GET  /api/v1/bgp/peers
    GET  /api/v1/bgp/peers/{address}
    GET  /api/v1/ospf/topology
    GET  /api/v1/remediation/events?limit=N
    POST /api/v1/remediation
    GET  /api/v1/mpls/corruption
    POST /api/v1/mpls/validate
    GET  /metrics
    WS   /ws        pushes peers, topology and recent events every few seconds

Usage:
    app = create_app(service, manage_lifecycle=True)
    uvicorn.run(app, host="0.0.0.0", port=8080)

Copyright (c) 2025 DNS Science.io, an After Dark Systems, LLC company.
All rights reserved.
"""

import asyncio
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, Response, WebSocket, WebSocketDisconnect
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from netmeta import __version__
from netmeta.errors import (
    ExternalCallFailure,
    NotFound,
    ValidationFailure,
)
from netmeta.monitor.metrics import CONTENT_TYPE_LATEST
from netmeta.service import NetmetaService
from netmeta.snapshots import (
    events_snapshot,
    peers_snapshot,
    topology_snapshot,
    update_message,
)

logger = logging.getLogger(__name__)

DEFAULT_EVENT_LIMIT = 100


class RemediationRequest(BaseModel):
    peer: str = ""
    prefix: str = ""
    reason: str = "manual"


class LabelsRequest(BaseModel):
    labels: list[int] = Field(default_factory=list)


def create_app(service: NetmetaService, manage_lifecycle: bool = False) -> FastAPI:
    """Build the API around an existing service.

    Args:
        service: Service whose registries the handlers read
        manage_lifecycle: Start and stop the service with the app
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if manage_lifecycle:
            service.start()
        try:
            yield
        finally:
            if manage_lifecycle:
                service.stop()

    app = FastAPI(title="netmeta", version=__version__, lifespan=lifespan)
    app.state.service = service

    # Error mapping
    @app.exception_handler(NotFound)
    async def not_found_handler(request: Request, exc: NotFound):
        return JSONResponse(status_code=404, content={"detail": str(exc)})

    @app.exception_handler(ValidationFailure)
    async def validation_handler(request: Request, exc: ValidationFailure):
        return JSONResponse(status_code=400, content={"detail": str(exc)})

    @app.exception_handler(ExternalCallFailure)
    async def upstream_handler(request: Request, exc: ExternalCallFailure):
        return JSONResponse(status_code=502, content={"detail": str(exc)})

    @app.get("/health")
    async def health():
        return {"status": "ok", "version": __version__}

    @app.get("/api/v1/bgp/peers")
    async def list_peers():
        return peers_snapshot(service.peers)

    @app.get("/api/v1/bgp/peers/{address}")
    async def get_peer(address: str):
        return service.peers.get_peer(address).to_dict()

    @app.get("/api/v1/ospf/topology")
    async def get_topology():
        return topology_snapshot(service.topology)

    @app.get("/api/v1/remediation/events")
    async def list_events(limit: int = DEFAULT_EVENT_LIMIT):
        return events_snapshot(service.remediation, limit)

    @app.post("/api/v1/remediation")
    async def remediate(body: RemediationRequest):
        # Blocking calls into the session engine
        event = await asyncio.to_thread(
            service.remediation.remediate_manual,
            body.peer,
            body.prefix,
            body.reason,
        )
        return event.to_dict()

    @app.get("/api/v1/mpls/corruption")
    async def corruption_count():
        return {"count": service.validator.corruption_count}

    @app.post("/api/v1/mpls/validate")
    async def validate_labels(body: LabelsRequest):
        try:
            stack = service.validator.validate_label_stack(body.labels)
        except ValidationFailure as e:
            stack = getattr(e, "stack", None)
            return {
                "valid": False,
                "error": str(e),
                "labels": [label.to_dict() for label in stack.labels] if stack else [],
            }
        return stack.to_dict()

    @app.get("/metrics")
    async def metrics():
        return Response(content=service.metrics.render(), media_type=CONTENT_TYPE_LATEST)

    @app.websocket("/ws")
    async def live_updates(websocket: WebSocket):
        await websocket.accept()
        interval = service.config.api.push_interval
        loop = asyncio.get_running_loop()
        next_push = loop.time()
        try:
            while True:
                now = loop.time()
                if now >= next_push:
                    await websocket.send_json(update_message(
                        service.peers, service.topology, service.remediation,
                    ))
                    next_push += interval
                    if next_push <= now:
                        next_push = now + interval
                # Client messages are drained but never trigger a push
                try:
                    message = await asyncio.wait_for(
                        websocket.receive(),
                        timeout=max(0.0, next_push - loop.time()),
                    )
                except asyncio.TimeoutError:
                    continue
                if message["type"] == "websocket.disconnect":
                    break
        except WebSocketDisconnect:
            pass
        logger.debug("Dashboard client disconnected")

    return app
