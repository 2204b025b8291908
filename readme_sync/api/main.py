"""FastAPI application entry point."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from readme_sync.api.routes import hook_router, router
from readme_sync.config import Settings, get_settings
from readme_sync.database.session import close_db, get_session_maker, init_db
from readme_sync.database.store import JobStore
from readme_sync.generator import PackageDocGenerator
from readme_sync.github import GitHubApp
from readme_sync.jobs import JobOrchestrator


logger = logging.getLogger(__name__)


def configure_logging(settings: Settings) -> None:
    logging.basicConfig(
        level=logging.DEBUG if settings.debug else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


def create_app(
    settings: Settings | None = None,
    orchestrator: JobOrchestrator | None = None,
) -> FastAPI:
    """Create the FastAPI application.

    Args:
        settings: Application settings, loaded from the environment if None
        orchestrator: Prebuilt orchestrator; when None the lifespan builds one
            backed by the configured database and GitHub App

    Returns:
        The application
    """
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan handler."""
        # Startup
        logger.info(f"Starting {settings.app_name} v{settings.app_version}")
        github_app = None

        if orchestrator is None:
            if settings.environment == "development":
                await init_db()
                logger.info("Database initialized")

            github_app = GitHubApp.from_settings(settings)
            app.state.orchestrator = JobOrchestrator(
                store=JobStore(get_session_maker()),
                host_factory=github_app.installation_client,
                generator=PackageDocGenerator(),
                settings=settings,
            )
            app.state.store = app.state.orchestrator.store

        yield

        # Shutdown
        logger.info(f"Shutting down, waiting for {app.state.orchestrator.running} jobs...")
        await app.state.orchestrator.drain()
        if github_app is not None:
            await github_app.close()
            await close_db()

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="Keeps repository READMEs in sync with package documentation",
        lifespan=lifespan,
    )
    app.state.settings = settings
    if orchestrator is not None:
        app.state.orchestrator = orchestrator
        app.state.store = orchestrator.store

    # Configure CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Include routes
    app.include_router(router, prefix="/api")
    app.include_router(hook_router, prefix="/github")

    @app.get("/")
    async def root():
        """Root endpoint."""
        return {
            "name": settings.app_name,
            "version": settings.app_version,
            "docs": "/docs",
        }

    return app


def get_app() -> FastAPI:
    """Application factory used by uvicorn."""
    settings = get_settings()
    configure_logging(settings)
    return create_app(settings)


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "readme_sync.api.main:get_app",
        factory=True,
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.debug,
    )
