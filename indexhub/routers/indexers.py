"""Indexer router: /api/indexers/* endpoints."""

from fastapi import APIRouter, Depends, HTTPException
from starlette.requests import Request

from indexhub.deps import get_caller, get_server
from indexhub.models import RegisterIndexerRequest

router = APIRouter()


@router.post("/api/indexers/register")
async def register_indexer(
    request: Request,
    req: RegisterIndexerRequest,
    caller: dict = Depends(get_caller),
):
    srv = get_server(request)
    return await srv.registry.register(caller["account_id"], req.name, req.indexer_type)


@router.get("/api/indexers")
async def list_indexers(request: Request):
    srv = get_server(request)
    return await srv.registry.list_indexers()


@router.get("/api/indexers/{indexer_id}")
async def get_indexer(request: Request, indexer_id: str):
    srv = get_server(request)
    record = await srv.registry.get(indexer_id)
    if record is None:
        raise HTTPException(status_code=404, detail="Indexer not found")
    return record
