import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles
from pymongo.database import Database
from pymongo.errors import PyMongoError

from database import connect, ensure_indexes
from dependencies import DbDep
from errors import register_error_handlers
from logging_config import configure_logging
from routers import (
    about,
    admin,
    blogs,
    company,
    contact,
    contact_info,
    features,
    founders,
    gallery,
    services,
    subservices,
    team_members,
    testimonials,
)
from settings import Settings, get_settings
from storage import LocalStorage, StorageBackend, build_storage

logger = logging.getLogger(__name__)

ROUTERS = (
    admin,
    blogs,
    services,
    subservices,
    team_members,
    founders,
    testimonials,
    gallery,
    features,
    company,
    contact,
    contact_info,
    about,
)


def create_app(
    settings: Optional[Settings] = None,
    database: Optional[Database] = None,
    storage: Optional[StorageBackend] = None,
) -> FastAPI:
    settings = settings or get_settings()
    configure_logging(settings.log_level)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        ensure_indexes(app.state.db)
        logger.info(
            "%s started (env=%s, storage=%s)",
            settings.app_name,
            settings.environment,
            app.state.storage.name,
        )
        yield

    app = FastAPI(title=settings.app_name, lifespan=lifespan)
    app.state.settings = settings
    app.state.db = database if database is not None else connect(settings)
    app.state.storage = storage or build_storage(settings)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    register_error_handlers(app)

    # ---------------------- Static uploads ----------------------
    if isinstance(app.state.storage, LocalStorage):
        upload_dir = app.state.storage.ensure_dir()
        app.mount("/uploads", StaticFiles(directory=str(upload_dir)), name="uploads")

    # ---------------------- Health ----------------------
    @app.get("/")
    def read_root():
        return {"success": True, "message": f"{settings.app_name} running"}

    @app.get("/health")
    def health(db: DbDep):
        try:
            db.command("ping")
            database_status = "up"
        except PyMongoError as exc:
            logger.warning("Database ping failed: %s", exc)
            database_status = "down"
        return {"success": database_status == "up", "database": database_status}

    for module in ROUTERS:
        app.include_router(module.router, prefix=settings.api_prefix)

    return app


if __name__ == "__main__":
    import uvicorn

    config = get_settings()
    uvicorn.run(create_app(config), host=config.host, port=config.port)
