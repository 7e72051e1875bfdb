"""
app.py: FastAPI application factory and startup lifecycle.

This is the ASGI application object imported by uvicorn.
It wires the repository and services, registers routers, and prepares the
database on startup.

Usage (via launcher):
    python main.py

Usage (direct uvicorn):
    uvicorn app:app --reload
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI

from housekeeping.controllers.assignment_controller import router as assignment_router
from housekeeping.controllers.roster_controller import router as roster_router
from housekeeping.repository.data_repository import DataRepository
from housekeeping.services.auth_service import AuthService
from housekeeping.services.auto_assignment_service import AutoAssignmentService
from housekeeping.services.roster_service import RosterService
from housekeeping.utils.config import Settings, get_settings
from housekeeping.utils.logger import get_logger


logger = get_logger("housekeeping.app")


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """
    Build and wire the FastAPI application.

    Every service receives its repository and settings explicitly and is
    published on app.state for dependency resolution.
    """
    settings = settings or get_settings()

    repository = DataRepository(settings)
    roster_service = RosterService(repository=repository, settings=settings)
    assignment_service = AutoAssignmentService(repository=repository, settings=settings)
    auth_service = AuthService(settings=settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        _startup(app)
        yield

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        lifespan=lifespan,
    )

    app.include_router(roster_router)
    app.include_router(assignment_router)

    app.state.settings = settings
    app.state.repository = repository
    app.state.roster_service = roster_service
    app.state.assignment_service = assignment_service
    app.state.auth_service = auth_service

    if not auth_service.auth_enabled:
        logger.warning("No ADMIN_TOKEN or MANAGER_TOKEN configured; endpoints are unprotected")

    return app


def _startup(app: FastAPI) -> None:
    """Idempotent startup: schema first, then optional demo roster."""
    repository: DataRepository = app.state.repository
    settings: Settings = app.state.settings

    logger.info("Startup: initializing database schema")
    repository.initialize_database()

    if settings.seed_demo_data:
        logger.info("Startup: seeding demo staff and rooms (skipped if not empty)")
        repository.seed_demo_data()

    logger.info("Startup complete, system ready")


# Module-level app object for uvicorn
app = create_app()
