"""Query router: metered queries (fee + rate limit) and the unmetered contract lookup."""

from fastapi import APIRouter, Depends, HTTPException
from starlette.requests import Request

from indexhub.deps import get_caller, get_server
from indexhub.models import (
    EventsQueryRequest,
    PremiumQueryRequest,
    RangeQueryRequest,
    TokenTransfersQueryRequest,
    encode_record,
)

router = APIRouter()


@router.post("/api/query/blocks")
async def query_blocks_by_height_range(
    request: Request, req: RangeQueryRequest, caller: dict = Depends(get_caller),
):
    srv = get_server(request)
    return await srv.metering.query_blocks_by_height_range(
        caller["account_id"], req.start_height, req.end_height,
    )


@router.post("/api/query/premium")
async def premium_query(request: Request, req: PremiumQueryRequest, caller: dict = Depends(get_caller)):
    srv = get_server(request)
    return await srv.metering.premium_query(
        caller["account_id"], req.query_type, req.parameters, req.max_results,
    )


@router.get("/api/query/address/{address}")
async def query_address_activity(request: Request, address: str, caller: dict = Depends(get_caller)):
    srv = get_server(request)
    return await srv.metering.query_address_activity(caller["account_id"], address)


@router.post("/api/query/events")
async def query_events(request: Request, req: EventsQueryRequest, caller: dict = Depends(get_caller)):
    srv = get_server(request)
    return await srv.metering.query_events(caller["account_id"], **req.model_dump())


@router.post("/api/query/token-transfers")
async def query_token_transfers(
    request: Request, req: TokenTransfersQueryRequest, caller: dict = Depends(get_caller),
):
    srv = get_server(request)
    return await srv.metering.query_token_transfers(caller["account_id"], **req.model_dump())


@router.get("/api/query/stats")
async def my_query_stats(request: Request, caller: dict = Depends(get_caller)):
    srv = get_server(request)
    return await srv.metering.get_user_query_stats(caller["account_id"])


@router.get("/api/contracts/{address}")
async def query_contract_info(request: Request, address: str):
    srv = get_server(request)
    record = await srv.metering.query_contract_info(address)
    if record is None:
        raise HTTPException(status_code=404, detail="Contract not found")
    return encode_record(record)
