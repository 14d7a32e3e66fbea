"""Overview router: service info and indexing status."""

from fastapi import APIRouter
from starlette.requests import Request

from indexhub.deps import get_server

router = APIRouter()


@router.get("/")
async def root(request: Request):
    srv = get_server(request)
    return {
        "service": "IndexHub",
        "api_port": srv.api_port,
        "owner_id": srv.owner_id,
        "current_slot": srv.clock.now(),
    }


@router.get("/api/status")
async def indexing_status(request: Request):
    srv = get_server(request)
    status = await srv.ingest.get_status()
    status.update(await srv.metering.current_fees())
    return status
