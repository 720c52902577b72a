import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.engine import Engine

from moodtracker.core.config import settings
from moodtracker.core.errors import install_exception_handlers
from moodtracker.db.base import engine as default_engine, init_db, make_sessionmaker
from moodtracker.routers import tracker as tracker_router
from moodtracker.services.entry_store import SqlEntryStore
from moodtracker.services.tracker import Clock, TrackerController, wall_clock_ms

logger = logging.getLogger(__name__)


def configure_logging(level: str = settings.LOG_LEVEL) -> None:
    logging.basicConfig(
        level=level.upper(),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )


def create_app(engine: Optional[Engine] = None, clock: Clock = wall_clock_ms) -> FastAPI:
    bind = engine if engine is not None else default_engine

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        init_db(bind)
        store = SqlEntryStore(make_sessionmaker(bind))
        controller = TrackerController(store, clock=clock, notice_history=settings.NOTICE_HISTORY)
        app.state.store = store
        app.state.controller = controller
        await controller.start()
        logger.info("tracker controller started (db=%s)", bind.url.render_as_string(hide_password=True))
        try:
            yield
        finally:
            await controller.aclose()
            logger.info("tracker controller stopped")

    app = FastAPI(
        title="Mood Tracker API",
        description=(
            "**Mood observations replayed as an ordered history.**\n\n"
            "Renderers send intents, then observe snapshots via `GET /tracker/state` "
            "or the `/tracker/ws` stream.\n\n"
            "All error responses follow the `{code, message, details}` envelope."
        ),
        version="1.0.0",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    # Browser renderers post intents and poll state; they never send cookies.
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_methods=["GET", "POST"],
        allow_headers=["Content-Type"],
    )
    install_exception_handlers(app)
    app.include_router(tracker_router.router)

    @app.get("/health", tags=["health"], summary="Health check")
    def health():
        """
        Liveness: the entry store answers `SELECT 1` and the controller worker
        is alive. 503 otherwise, with the failing part named.
        """
        db_ok = app.state.store.ping()
        worker_ok = app.state.controller.running
        body = {
            "status": "ok" if db_ok and worker_ok else "error",
            "db": "ok" if db_ok else "unreachable",
            "controller": "running" if worker_ok else "stopped",
            "env": settings.APP_ENV,
        }
        return JSONResponse(status_code=200 if body["status"] == "ok" else 503, content=body)

    return app


configure_logging()
app = create_app()
