"""FastAPI application factory for the seatshare API."""
from __future__ import annotations

from fastapi import FastAPI

from seatshare import __version__
from seatshare.container import Container, build_container
from seatshare.core.exception_handlers import register_exception_handlers
from seatshare.core.logger import configure_logging
from seatshare.db.create_tables import create_all
from seatshare.routers import admin as admin_router
from seatshare.routers import slots as slots_router


def create_app(container: Container | None = None, *, init_db: bool = False) -> FastAPI:
    """Factory compatible with ``uvicorn seatshare.app:create_app --factory``."""
    container = container or build_container()
    configure_logging(container.settings.log_level)
    if init_db:
        create_all()

    app = FastAPI(title="Seatshare API", version=__version__)
    app.state.container = container
    register_exception_handlers(app)

    @app.get("/health", tags=["system"])
    def health():
        return {"status": "ok", "env": container.settings.app_env}

    app.include_router(slots_router.router)
    app.include_router(admin_router.router)
    return app
