"""
Serving the built web client (Home, admin dashboard and join views) from the API process.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional
import logging

from fastapi import FastAPI
from fastapi.responses import FileResponse, JSONResponse
from fastapi.staticfiles import StaticFiles


logger = logging.getLogger("attendance.frontend")

API_PREFIXES = ("api/", "healthz")


def resolve_frontend_path(configured: Optional[Path]) -> Optional[Path]:
    """Return the client dist directory if it has been built, else None."""
    if configured is not None:
        candidate = Path(configured)
    else:
        # Running from source: client/dist next to backend/
        candidate = Path(__file__).resolve().parent.parent.parent / "client" / "dist"
    if (candidate / "index.html").is_file():
        return candidate
    return None


def mount_frontend(app: FastAPI, frontend_path: Path) -> None:
    """Mount static assets and an SPA fallback route. Call after the API routers are included."""
    logger.info(f"Serving frontend from: {frontend_path}")

    assets_path = frontend_path / "assets"
    if assets_path.exists():
        app.mount("/assets", StaticFiles(directory=str(assets_path)), name="assets")

    index_file = frontend_path / "index.html"
    root = frontend_path.resolve()

    @app.get("/{full_path:path}", include_in_schema=False)
    async def serve_spa(full_path: str):
        if full_path.startswith(API_PREFIXES):
            return JSONResponse(status_code=404, content={"error": "Not Found"})

        # Top-level files such as favicon.ico; anything else is a client-side route
        if full_path:
            file_path = (frontend_path / full_path).resolve()
            if file_path.is_file() and root in file_path.parents:
                return FileResponse(str(file_path))

        return FileResponse(str(index_file))
