"""Account router: /api/auth/*, /api/accounts/{id}/* endpoints."""

from fastapi import APIRouter, Depends, HTTPException, Query
from starlette.requests import Request

from indexhub.deps import get_caller, get_server
from indexhub.models import DepositRequest, RegisterRequest

router = APIRouter()


def _require_self_or_owner(srv, caller: dict, account_id: str, action: str):
    if caller["account_id"] not in (account_id, srv.owner_id):
        raise HTTPException(status_code=403, detail=f"You can only {action} your own account")


@router.post("/api/auth/register")
async def auth_register(request: Request, req: RegisterRequest):
    srv = get_server(request)
    if req.balance < 0:
        raise HTTPException(status_code=400, detail="balance must not be negative")
    acct = await srv.auth.register(account_id=req.account_id, balance=req.balance)
    return {
        "account_id": acct["account_id"],
        "balance": acct["balance"],
        "api_key": acct["api_key"],
    }


@router.get("/api/auth/me")
async def auth_me(caller: dict = Depends(get_caller)):
    return {
        "account_id": caller["account_id"],
        "balance": caller["balance"],
    }


@router.get("/api/accounts/{account_id}/balance")
async def get_balance(request: Request, account_id: str, caller: dict = Depends(get_caller)):
    srv = get_server(request)
    _require_self_or_owner(srv, caller, account_id, "view")
    acct = await srv.accounts.get_account(account_id)
    if acct is None:
        raise HTTPException(status_code=404, detail="Account not found")
    return {"account_id": acct["account_id"], "balance": acct["balance"]}


@router.post("/api/accounts/{account_id}/deposit")
async def deposit(
    request: Request,
    account_id: str,
    req: DepositRequest,
    caller: dict = Depends(get_caller),
):
    srv = get_server(request)
    _require_self_or_owner(srv, caller, account_id, "deposit to")
    if req.amount <= 0:
        raise HTTPException(status_code=400, detail="amount must be positive")
    try:
        acct = await srv.accounts.deposit(account_id, req.amount)
    except KeyError:
        raise HTTPException(status_code=404, detail="Account not found")
    return {"account_id": acct["account_id"], "balance": acct["balance"]}


@router.get("/api/accounts/{account_id}/transfers")
async def list_transfers(
    request: Request,
    account_id: str,
    limit: int = Query(default=50, ge=1, le=200),
    caller: dict = Depends(get_caller),
):
    srv = get_server(request)
    _require_self_or_owner(srv, caller, account_id, "view")
    return {"items": await srv.accounts.list_transfers(account_id, limit=limit)}
