from __future__ import annotations

from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.engine import Engine
import logging
from logging.handlers import RotatingFileHandler

from attendance.config import Settings
from attendance.errors import AttendanceError
from attendance.frontend import mount_frontend, resolve_frontend_path
from attendance.models.base import create_db_engine, init_db
from attendance.api.attend import router as attend_router
from attendance.api.meetings import router as meetings_router
from attendance.api.network import router as network_router


def _configure_logging(settings: Settings) -> None:
    # Minimal structured logging to local file
    try:
        log_file = settings.logs_dir / "backend.log"
        handler = RotatingFileHandler(str(log_file), maxBytes=5_000_000, backupCount=2)
        formatter = logging.Formatter(
            fmt='%(asctime)s %(levelname)s %(name)s %(message)s'
        )
        handler.setFormatter(formatter)
        root = logging.getLogger()
        if not any(isinstance(h, RotatingFileHandler) for h in root.handlers):
            root.addHandler(handler)
        root.setLevel(logging.INFO)
    except OSError:
        logging.getLogger("attendance").warning("File logging disabled", exc_info=True)


def create_app(settings: Optional[Settings] = None, engine: Optional[Engine] = None) -> FastAPI:
    settings = settings or Settings()
    app = FastAPI(title="Attendance Backend", version="0.1.0")
    app.state.settings = settings
    app.state.engine = engine or create_db_engine(settings)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.on_event("startup")
    def _startup() -> None:
        settings.ensure_dirs()
        _configure_logging(settings)
        init_db(app.state.engine)
        logging.getLogger("attendance").info("Database ready at %s", settings.database_path)

    @app.on_event("shutdown")
    def _shutdown() -> None:
        app.state.engine.dispose()

    @app.middleware("http")
    async def _log_requests(request: Request, call_next):  # type: ignore[no-untyped-def]
        response = await call_next(request)
        # Path only: query strings carry the admin secret
        logging.getLogger("attendance.http").info(
            "%s %s -> %s", request.method, request.url.path, response.status_code
        )
        return response

    @app.get("/healthz")
    def healthz() -> dict[str, str]:
        return {"status": "ok"}

    app.include_router(network_router, prefix="/api")
    app.include_router(meetings_router, prefix="/api")
    app.include_router(attend_router, prefix="/api")

    @app.exception_handler(AttendanceError)
    async def _domain_error_handler(request: Request, exc: AttendanceError):  # type: ignore[override]
        return JSONResponse(status_code=exc.status_code, content={"error": exc.message})

    @app.exception_handler(RequestValidationError)
    async def _request_validation_handler(request: Request, exc: RequestValidationError):  # type: ignore[override]
        errors = exc.errors()
        first = errors[0] if errors else {}
        field = ".".join(str(p) for p in first.get("loc", ()) if p != "body")
        message = f"{field}: {first.get('msg', 'invalid')}" if field else "Invalid request"
        return JSONResponse(status_code=400, content={"error": message})

    @app.exception_handler(Exception)
    async def _unhandled_exception_handler(request: Request, exc: Exception):  # type: ignore[override]
        logging.getLogger("attendance").exception("Unhandled exception")
        return JSONResponse(status_code=500, content={"error": "Internal server error"})

    frontend_path = resolve_frontend_path(settings.frontend_dist)
    if frontend_path is not None:
        mount_frontend(app, frontend_path)

    return app


app = create_app()


def main() -> None:
    import argparse
    import os
    import uvicorn

    defaults = app.state.settings
    parser = argparse.ArgumentParser(description="Attendance Backend Server")
    parser.add_argument("--host", default=defaults.host, help="Host to bind to")
    parser.add_argument("--port", type=int, default=defaults.port, help="Port to bind to")
    parser.add_argument("--reload", action="store_true", help="Enable auto-reload (dev only)")

    args = parser.parse_args()

    # /api/config reports the port the server actually listens on; the
    # environment carries it into the worker that --reload re-imports
    defaults.port = args.port
    os.environ["ATTENDANCE_PORT"] = str(args.port)

    uvicorn.run(
        "attendance.main:app" if args.reload else app,
        host=args.host,
        port=args.port,
        reload=args.reload
    )


if __name__ == "__main__":
    main()
