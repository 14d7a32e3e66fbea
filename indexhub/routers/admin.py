"""Admin router: owner-only /api/admin/* endpoints."""

from typing import Optional

from fastapi import APIRouter, Depends
from starlette.requests import Request

from indexhub.deps import get_caller, get_server
from indexhub.errors import NotAuthorized
from indexhub.models import AnalyticsRequest, FeesRequest, PauseRequest, WithdrawFeesRequest

router = APIRouter()


@router.post("/api/admin/indexers/{indexer_id}/toggle")
async def toggle_indexer(request: Request, indexer_id: str, caller: dict = Depends(get_caller)):
    srv = get_server(request)
    active = await srv.admin.toggle_indexer(caller["account_id"], indexer_id)
    return {"indexer_id": indexer_id, "active": active}


@router.post("/api/admin/fees")
async def update_fees(request: Request, req: FeesRequest, caller: dict = Depends(get_caller)):
    srv = get_server(request)
    return await srv.admin.update_fees(caller["account_id"], req.basic_fee, req.premium_fee)


@router.post("/api/admin/withdraw")
async def withdraw_fees(request: Request, req: WithdrawFeesRequest, caller: dict = Depends(get_caller)):
    srv = get_server(request)
    balance = await srv.admin.withdraw_fees(caller["account_id"], req.amount)
    return {"withdrawn": req.amount, "owner_balance": balance}


@router.post("/api/admin/pause")
async def set_paused(request: Request, req: PauseRequest, caller: dict = Depends(get_caller)):
    srv = get_server(request)
    return {"paused": await srv.admin.set_paused(caller["account_id"], req.paused)}


@router.post("/api/admin/analytics")
async def generate_analytics_report(
    request: Request, req: AnalyticsRequest, caller: dict = Depends(get_caller),
):
    srv = get_server(request)
    return await srv.admin.generate_analytics_report(
        caller["account_id"], req.metric_type, req.time_period,
    )


@router.get("/api/admin/analytics")
async def get_system_analytics(
    request: Request,
    metric_type: Optional[str] = None,
    caller: dict = Depends(get_caller),
):
    srv = get_server(request)
    return await srv.admin.get_system_analytics(caller["account_id"], metric_type)


@router.get("/api/accounts")
async def list_accounts(request: Request, caller: dict = Depends(get_caller)):
    srv = get_server(request)
    if caller["account_id"] != srv.owner_id:
        raise NotAuthorized("Only the owner can list accounts")
    accounts = await srv.accounts.list_accounts()
    # Strip api_key from response
    return {
        k: {"account_id": v["account_id"], "balance": v["balance"]}
        for k, v in accounts.items()
    }
