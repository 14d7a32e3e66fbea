"""Cache router: query digests and cached result lookups."""

from fastapi import APIRouter, Depends, HTTPException
from starlette.requests import Request

from indexhub.deps import get_caller, get_server
from indexhub.metering import query_digest
from indexhub.models import CacheDigestRequest, CachePutRequest, decode_hex, encode_record

router = APIRouter()


@router.post("/api/cache/digest")
async def cache_digest(req: CacheDigestRequest):
    return {"query_hash": encode_record(query_digest(req.query_type, req.parameters))}


@router.post("/api/cache")
async def cache_put(request: Request, req: CachePutRequest, caller: dict = Depends(get_caller)):
    """Only registered, active indexers populate the cache."""
    srv = get_server(request)
    entry = await srv.metering.cache_put(
        req.query_hash, req.result_digest, req.result_count, writer=caller["account_id"],
    )
    return encode_record(entry)


@router.get("/api/cache/{query_hash}")
async def cache_get(request: Request, query_hash: str):
    srv = get_server(request)
    try:
        key = decode_hex(query_hash)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=f"query_hash {e}")
    entry = await srv.metering.cache_get(key)
    if entry is None:
        raise HTTPException(status_code=404, detail="No live cache entry")
    return encode_record(entry)
