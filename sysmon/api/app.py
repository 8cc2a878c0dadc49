"""sysmon: FastAPI application factory.

Endpoints:
    GET  /health                        Liveness probe (no monitor access)
    GET  /api/system/info               System information
    GET  /api/system/cpu                CPU information
    GET  /api/system/memory             Memory information
    GET  /api/system/disks              Disk information
    GET  /api/system/networks           Network interfaces
    GET  /api/system/processes          Process list
    GET  /api/system/processes/{pid}    One process
    GET  /api/system/metrics            Everything above in one snapshot
    POST /api/monitoring/start          Set the monitoring flag
    POST /api/monitoring/stop           Clear the monitoring flag
    GET  /api/monitoring/status         Monitoring flag and last update
    POST /                              Raw JSON-RPC 2.0
    GET  /                              SSE heartbeat stream

The REST endpoints are sugar: each builds a JSON-RPC request and runs it
through the same router as ``POST /``.

Usage:
    uvicorn sysmon.api.app:create_app --factory --port 57996
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from datetime import datetime, timezone
from typing import Any, AsyncIterator, Awaitable, Callable

import uvicorn
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse, Response
from starlette.responses import StreamingResponse

from sysmon import __version__
from sysmon.config.settings import Settings, get_settings
from sysmon.mcp.protocol import (
    ErrorCode,
    MCPRequest,
    RequestDecodeError,
    decode_request,
    encode_response,
)
from sysmon.mcp.server import MCPServer
from sysmon.mcp.tools import (
    METHOD_GET_CPU_INFO,
    METHOD_GET_DISK_INFO,
    METHOD_GET_MEMORY_INFO,
    METHOD_GET_MONITORING_STATUS,
    METHOD_GET_NETWORK_INFO,
    METHOD_GET_PROCESS_BY_PID,
    METHOD_GET_PROCESSES,
    METHOD_GET_SYSTEM_INFO,
    METHOD_GET_SYSTEM_METRICS,
    METHOD_START_MONITORING,
    METHOD_STOP_MONITORING,
)

logger = logging.getLogger(__name__)

SERVICE_NAME = "MCP System Monitor"
EVENT_STREAM = "text/event-stream"

# Error code -> HTTP status for the REST endpoints; anything else is 500
_ERROR_STATUS = {
    ErrorCode.PROCESS_NOT_FOUND: 404,
}


async def heartbeat_events(
    is_disconnected: Callable[[], Awaitable[bool]],
    interval: float,
) -> AsyncIterator[str]:
    """Yield an empty event, then a heartbeat comment every ``interval`` seconds."""
    yield "data: \n\n"
    while True:
        await asyncio.sleep(interval)
        if await is_disconnected():
            logger.info("SSE client disconnected")
            break
        yield ": heartbeat\n\n"


def create_app(
    server: MCPServer | None = None,
    settings: Settings | None = None,
) -> FastAPI:
    """Build and return the FastAPI application."""
    settings = settings or get_settings()
    mcp = server if server is not None else MCPServer(settings=settings)

    app = FastAPI(
        title="sysmon",
        description="Host telemetry over HTTP and the Model Context Protocol",
        version=__version__,
    )
    app.state.mcp = mcp

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        response = await call_next(request)
        logger.info(
            "%s %s accept=%s content-type=%s -> %d",
            request.method,
            request.url.path,
            request.headers.get("accept", "-"),
            request.headers.get("content-type", "-"),
            response.status_code,
        )
        return response

    async def dispatch(method: str, params: dict[str, Any] | None = None) -> JSONResponse:
        """Run one synthesized request through the router."""
        request = MCPRequest(method=method, params=params or {}, id=str(uuid.uuid4()))
        response = await mcp.handle_request(request)
        if response.ok:
            return JSONResponse(response.result)
        status = _ERROR_STATUS.get(response.error.code, 500)
        return JSONResponse(response.to_dict(), status_code=status)

    # --- Health ---

    @app.get("/health")
    async def health() -> dict[str, Any]:
        return {
            "status": "healthy",
            "service": SERVICE_NAME,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }

    # --- REST sugar ---

    @app.get("/api/system/info")
    async def system_info() -> JSONResponse:
        return await dispatch(METHOD_GET_SYSTEM_INFO)

    @app.get("/api/system/cpu")
    async def cpu_info() -> JSONResponse:
        return await dispatch(METHOD_GET_CPU_INFO)

    @app.get("/api/system/memory")
    async def memory_info() -> JSONResponse:
        return await dispatch(METHOD_GET_MEMORY_INFO)

    @app.get("/api/system/disks")
    async def disk_info() -> JSONResponse:
        return await dispatch(METHOD_GET_DISK_INFO)

    @app.get("/api/system/networks")
    async def network_info() -> JSONResponse:
        return await dispatch(METHOD_GET_NETWORK_INFO)

    @app.get("/api/system/processes")
    async def processes() -> JSONResponse:
        return await dispatch(METHOD_GET_PROCESSES)

    @app.get("/api/system/processes/{pid}")
    async def process_by_pid(pid: str) -> JSONResponse:
        # pid stays a string here; the router validates it
        return await dispatch(METHOD_GET_PROCESS_BY_PID, {"pid": pid})

    @app.get("/api/system/metrics")
    async def system_metrics() -> JSONResponse:
        return await dispatch(METHOD_GET_SYSTEM_METRICS)

    @app.post("/api/monitoring/start")
    async def start_monitoring() -> JSONResponse:
        return await dispatch(METHOD_START_MONITORING)

    @app.post("/api/monitoring/stop")
    async def stop_monitoring() -> JSONResponse:
        return await dispatch(METHOD_STOP_MONITORING)

    @app.get("/api/monitoring/status")
    async def monitoring_status() -> JSONResponse:
        return await dispatch(METHOD_GET_MONITORING_STATUS)

    # --- JSON-RPC ---

    @app.post("/")
    async def jsonrpc(request: Request) -> Response:
        """JSON-RPC 2.0 endpoint."""
        body = await request.body()
        try:
            rpc_request = decode_request(body)
        except RequestDecodeError as exc:
            logger.warning("Rejected JSON-RPC body: %s", exc)
            return PlainTextResponse(f"JSON parse error: {exc}", status_code=400)

        response = await mcp.handle_request(rpc_request)
        data = encode_response(rpc_request, response)
        if data is None:
            return Response(status_code=202)
        return Response(content=data, media_type="application/json")

    @app.get("/")
    async def sse(request: Request) -> Response:
        """SSE stream carrying only heartbeats."""
        if EVENT_STREAM not in request.headers.get("accept", ""):
            return PlainTextResponse(
                f"Not Acceptable: client must accept {EVENT_STREAM}", status_code=406
            )

        return StreamingResponse(
            heartbeat_events(request.is_disconnected, settings.SSE_HEARTBEAT_INTERVAL),
            media_type=EVENT_STREAM,
            headers={
                "Cache-Control": "no-cache",
                "Connection": "keep-alive",
                "X-Accel-Buffering": "no",
            },
        )

    return app


async def run_http(app: FastAPI, host: str, port: int, log_level: str = "info") -> None:
    """Serve ``app`` with uvicorn until interrupted.

    Raises:
        RuntimeError: if the server never started (e.g. the port is taken).
    """
    logger.info("sysmon HTTP server starting on http://%s:%d", host, port)
    config = uvicorn.Config(app, host=host, port=port, log_level=log_level.lower())
    server = uvicorn.Server(config)
    await server.serve()
    if not server.started:
        raise RuntimeError(f"HTTP server failed to start on {host}:{port}")
