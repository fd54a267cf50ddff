#!/usr/bin/env python3
"""Startup script for the API server."""
import uvicorn

from app.config import settings

if __name__ == "__main__":
    print(f"Starting EventMate API on {settings.host}:{settings.port}")
    uvicorn.run(
        "app.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.is_development,
        log_level="info"
    )
