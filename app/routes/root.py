"""
Root endpoint with service metadata.
"""

from __future__ import annotations

from fastapi import APIRouter

import core.config as config
from core.models import ASSOCIATION_TYPE_LABEL_KEYS


router = APIRouter()


@router.get("/")
async def root():
    """Root endpoint with service info."""
    return {
        "service": "PartLink",
        "version": "0.1.0",
        "description": "Typed associations between inventory parts",
        "db_backend": config.DB_BACKEND,
        "association_types": {
            member.value: label_key
            for member, label_key in ASSOCIATION_TYPE_LABEL_KEYS.items()
        },
        "endpoints": {
            "health": "/health",
            "health_tools": "/health/tools",
            "parts": "/parts",
            "associations": "/associations",
            "audit": "/audit/events",
            "mcp": "/mcp",
        },
    }
