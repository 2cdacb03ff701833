"""
FastAPI dependencies for the per-app singletons.

`create_app` builds the settings, database handle and storage backend once and
keeps them on `app.state`; routes reach them only through these functions.
"""
from typing import Annotated

from fastapi import Depends, Request
from pymongo.database import Database

from settings import Settings
from storage import StorageBackend


def get_config(request: Request) -> Settings:
    return request.app.state.settings


def get_db(request: Request) -> Database:
    return request.app.state.db


def get_storage(request: Request) -> StorageBackend:
    return request.app.state.storage


ConfigDep = Annotated[Settings, Depends(get_config)]
DbDep = Annotated[Database, Depends(get_db)]
StorageDep = Annotated[StorageBackend, Depends(get_storage)]
