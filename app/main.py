import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.api_routers.v1 import api_router
from app.features.health.routes.health import router as health_router
from app.platform.config import Settings, settings
from app.platform.db.session import Database
from app.platform.exceptions import add_exception_handlers

logging.basicConfig(
    level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)


def create_app(app_settings: Settings = settings) -> FastAPI:
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        database = Database.from_settings(app_settings)
        if app_settings.DB_CREATE_TABLES:
            await database.create_tables()
        app.state.database = database
        try:
            yield
        finally:
            await database.dispose()

    app = FastAPI(
        title=f"{app_settings.APP_NAME} API",
        description="Email verification codes for the QuickCourt booking platform",
        version="1.0.0",
        debug=app_settings.DEBUG,
        lifespan=lifespan,
    )

    @app.get("/", tags=["Info"])
    def root():
        return {
            "app_name": f"{app_settings.APP_NAME} API",
            "description": "Issues and verifies one-time email codes for QuickCourt accounts.",
            "version": "1.0.0",
            "docs_url": "/docs",
            "api_base": "/api/v1",
        }

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    add_exception_handlers(app)

    app.include_router(health_router)
    app.include_router(api_router, prefix="/api/v1")

    return app


app = create_app()
