# src/yakka_chat/main.py
"""Main entry point for the Yakka chat application."""

from __future__ import annotations

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from yakka_chat.api.v1 import chat_socket_router, chats_router
from yakka_chat.core.settings import settings
from yakka_chat.services.container import ChatServices, build_services

logger = logging.getLogger(__name__)

# Initialize FastAPI app
app = FastAPI(
    title=settings.app_name,
    description="Encrypted realtime chat and moderation for Yakka",
    version=settings.app_version,
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=settings.cors_allow_credentials,
    allow_methods=settings.cors_allow_methods,
    allow_headers=settings.cors_allow_headers,
)

# Include API routers
app.include_router(chats_router, prefix="/api/v1")
app.include_router(chat_socket_router, prefix="/api/v1")


@app.on_event("startup")
async def on_startup() -> None:
    # Tests install their own container before the app starts.
    services: ChatServices | None = getattr(app.state, "services", None)
    if services is None:
        services = build_services()
        app.state.services = services
    if settings.moderation_sweep_enabled:
        await services.sweep_worker.start()
        logger.info(
            "Moderation sweep running every %ss", services.sweep_worker.interval
        )


@app.on_event("shutdown")
async def on_shutdown() -> None:
    services: ChatServices | None = getattr(app.state, "services", None)
    if services:
        await services.aclose()


@app.get("/health")
async def health_check() -> dict[str, str]:
    """Health check endpoint to verify the service is running."""
    return {"status": "ok"}


@app.get("/")
async def root() -> dict[str, str]:
    """Root endpoint with basic information about the API."""
    return {
        "name": settings.app_name,
        "version": settings.app_version,
        "docs": "/docs",
        "redoc": "/redoc",
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("yakka_chat.main:app", host="0.0.0.0", port=8000, reload=settings.debug)
