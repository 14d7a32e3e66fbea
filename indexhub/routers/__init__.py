"""Router package: collects all API routers and registers them on the FastAPI app."""

from fastapi import FastAPI

from indexhub.routers import (
    overview,
    accounts,
    indexers,
    ingest,
    query,
    cache,
    admin,
)


def register_all_routers(app: FastAPI):
    app.include_router(overview.router)
    app.include_router(accounts.router)
    app.include_router(indexers.router)
    app.include_router(ingest.router)
    app.include_router(query.router)
    app.include_router(cache.router)
    app.include_router(admin.router)
