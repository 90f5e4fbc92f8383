"""
Standalone FastAPI app wiring for PartLink.
"""

from __future__ import annotations

from contextlib import asynccontextmanager

from fastapi import FastAPI

import core.config as config
from core.db import DB, init_db
from core.mcp import mcp_stream_app, MCPRouteNormalizerASGI
from app.routes.associations import router as associations_router
from app.routes.audit import router as audit_router
from app.routes.health import router as health_router
from app.routes.parts import router as parts_router
from app.routes.root import router as root_router


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Initialize on startup, cleanup on shutdown."""
    init_db()
    try:
        async with mcp_stream_app.lifespan(mcp_stream_app):
            yield
    finally:
        if DB.engine:
            DB.engine.dispose()
        config.logger.info("PartLink stopped")


app = FastAPI(title="PartLink", redirect_slashes=False, lifespan=lifespan)

# Health and root endpoints
app.include_router(health_router)
app.include_router(root_router)

# Domain endpoints
app.include_router(parts_router)
app.include_router(associations_router)
app.include_router(audit_router)

app.mount("/mcp/", mcp_stream_app)


# =============================================================================
# ASGI Application (module-level for production deployment)
# =============================================================================

asgi_app = MCPRouteNormalizerASGI(app)
