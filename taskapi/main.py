from contextlib import asynccontextmanager
import logging
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from .config import Settings, load_settings
from .database import create_db_engine, create_tables, session_factory
from .logger import setup_logging
from .routers import auth, tasks

logger = logging.getLogger(__name__)

SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "Referrer-Policy": "no-referrer",
    "Cross-Origin-Resource-Policy": "same-origin",
}


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings: Settings = app.state.settings
    setup_logging(settings.log_level)
    create_tables(app.state.engine)
    logger.info("Task API ready (database: %s)", app.state.engine.url.render_as_string(hide_password=True))
    yield
    app.state.engine.dispose()


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """Build the application.

    Without explicit settings the process environment is read; a missing
    JWT_SECRET raises ConfigurationError and the app is not built.
    """
    if settings is None:
        settings = load_settings()

    app = FastAPI(
        title="Task Management API",
        description="Multi-user task tracking with role-based updates",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.engine = create_db_engine(settings.database_url)
    app.state.session_factory = session_factory(app.state.engine)

    # Configure CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def security_headers(request: Request, call_next):
        response = await call_next(request)
        for header, value in SECURITY_HEADERS.items():
            response.headers.setdefault(header, value)
        return response

    # Include routers
    app.include_router(auth.router, prefix="/api/users", tags=["users"])
    app.include_router(tasks.router, prefix="/api/tasks", tags=["tasks"])

    @app.get("/")
    def read_root():
        return {"message": "Task Management API"}

    @app.get("/health")
    def health_check():
        return {"status": "healthy"}

    return app


app = create_app()
