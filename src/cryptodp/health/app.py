"""FastAPI health and stats endpoints.

The platform instance is read from ``app.state.platform`` so the same app
can be served by uvicorn in the platform's event loop or driven by a test
client with a stub.
"""

from __future__ import annotations

from typing import Any

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse


def create_health_app(lifespan: Any = None) -> FastAPI:
    """Create the health application.

    Args:
        lifespan: Optional async context manager for startup/shutdown.
    """
    app = FastAPI(title="Crypto Data Platform", lifespan=lifespan)

    @app.get("/health")
    async def health(request: Request) -> JSONResponse:
        platform = request.app.state.platform
        report = await platform.health_check()
        status_code = 200 if report["status"] == "healthy" else 503
        return JSONResponse(content=report, status_code=status_code)

    @app.get("/stats")
    async def stats(request: Request) -> dict[str, Any]:
        return request.app.state.platform.get_stats()

    return app
