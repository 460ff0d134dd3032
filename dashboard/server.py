#!/usr/bin/env python3
"""
Mission Control Dashboard Server
================================

Tracks coding agents, the tasks they work on, the reports they file and
the projects those tasks belong to. Serves the JSON API under ``/api``
and a polling single-page dashboard at ``/``.

Usage:
    python -m dashboard.server
"""

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import HTMLResponse, JSONResponse
import uvicorn

from tracker.store import get_store

from .agents import router as agents_router
from .config import get_settings
from .projects import router as projects_router
from .reports import router as reports_router
from .tasks import router as tasks_router
from .ui import render_dashboard

VERSION = "1.0.0"

settings = get_settings()

# Configure logging
logging.basicConfig(
    level=getattr(logging, str(settings['logging']['level']).upper(), logging.INFO),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

app = FastAPI(title="Mission Control", version=VERSION)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings['dashboard'].get('cors_origins') or [],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Register routers
app.include_router(agents_router)
app.include_router(tasks_router)
app.include_router(reports_router)
app.include_router(projects_router)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    """Malformed request bodies get the same ``{"error": ...}`` shape as other failures."""
    details = "; ".join(
        f"{'.'.join(str(part) for part in err.get('loc', ()) if part != 'body')}: {err.get('msg')}"
        for err in exc.errors()
    )
    return JSONResponse({"error": f"Invalid request: {details}"}, status_code=400)


@app.on_event("startup")
async def startup_event():
    """Open the store (creating tables) before the first request."""
    try:
        get_store(config={'database': settings['database']})
    except Exception as e:
        logger.error(f"Failed to initialize store: {e}")
        raise


@app.get("/health")
async def health_check():
    """Health check endpoint for Docker/load balancer."""
    return {"status": "healthy", "service": "mission-control", "version": VERSION}


@app.get("/", response_class=HTMLResponse)
async def dashboard():
    """Serve the dashboard page."""
    return HTMLResponse(render_dashboard(settings['dashboard'].get('poll_interval_ms', 5000)))


def main():
    """Run the dashboard server."""
    host = settings['dashboard']['host']
    port = settings['dashboard']['port']

    logger.info(f"Starting Mission Control on {host}:{port}")

    uvicorn.run(
        "dashboard.server:app",
        host=host,
        port=port,
        reload=False,
        log_level=str(settings['logging']['level']).lower()
    )


if __name__ == "__main__":
    main()
