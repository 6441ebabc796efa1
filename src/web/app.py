"""
FastAPI application factory for the detection console.

Routes:
- /api/* -> REST API (status, policy, logs, analytics, latest frame)
"""

from __future__ import annotations

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from runtime.session import Session

from .routes import api


def create_app(session: Session) -> FastAPI:
    """Create the FastAPI app bound to one monitoring session."""
    app = FastAPI(
        title="Neural Eye",
        version="0.1.0",
        description="Live object detection console",
    )
    app.state.session = session

    # CORS for development (Vite dev server)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["http://localhost:5173", "http://127.0.0.1:5173"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(api.router, prefix="/api")
    return app
