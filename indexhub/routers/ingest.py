"""Ingestion router: indexer submissions and exact-key record lookups."""

from fastapi import APIRouter, Depends, HTTPException
from starlette.requests import Request

from indexhub.deps import get_caller, get_server
from indexhub.models import (
    BatchTransactionsRequest,
    BlockRequest,
    ContractRequest,
    EventRequest,
    TokenTransferRequest,
    TransactionRequest,
    encode_record,
)

router = APIRouter()


# ---------------------------------------------------------------------------
# Submissions (caller is the indexer)
# ---------------------------------------------------------------------------

@router.post("/api/ingest/blocks")
async def index_block(request: Request, req: BlockRequest, caller: dict = Depends(get_caller)):
    srv = get_server(request)
    block_id = await srv.ingest.index_block(caller["account_id"], **req.model_dump())
    return {"block_id": block_id}


@router.post("/api/ingest/transactions")
async def index_transaction(
    request: Request, req: TransactionRequest, caller: dict = Depends(get_caller),
):
    srv = get_server(request)
    tx_id = await srv.ingest.index_transaction(caller["account_id"], **req.model_dump())
    return {"transaction_id": tx_id}


@router.post("/api/ingest/transactions/batch")
async def batch_index_transactions(
    request: Request, req: BatchTransactionsRequest, caller: dict = Depends(get_caller),
):
    srv = get_server(request)
    count = await srv.ingest.batch_index_transactions(
        caller["account_id"], [tx.model_dump() for tx in req.transactions],
    )
    return {"count": count}


@router.post("/api/ingest/events")
async def index_event(request: Request, req: EventRequest, caller: dict = Depends(get_caller)):
    srv = get_server(request)
    event_id = await srv.ingest.index_event(caller["account_id"], **req.model_dump())
    return {"event_id": event_id}


@router.post("/api/ingest/token-transfers")
async def index_token_transfer(
    request: Request, req: TokenTransferRequest, caller: dict = Depends(get_caller),
):
    srv = get_server(request)
    transfer_id = await srv.ingest.index_token_transfer(caller["account_id"], **req.model_dump())
    return {"transfer_id": transfer_id}


@router.post("/api/ingest/contracts")
async def index_contract(request: Request, req: ContractRequest, caller: dict = Depends(get_caller)):
    srv = get_server(request)
    record = await srv.ingest.index_contract(caller["account_id"], **req.model_dump())
    return encode_record(record)


# ---------------------------------------------------------------------------
# Lookups (public, unmetered)
# ---------------------------------------------------------------------------

def _found(record, what: str):
    if record is None:
        raise HTTPException(status_code=404, detail=f"{what} not found")
    return encode_record(record)


@router.get("/api/blocks/{block_id}")
async def get_block(request: Request, block_id: int):
    srv = get_server(request)
    return _found(await srv.ingest.get_block(block_id), "Block")


@router.get("/api/blocks/height/{height}")
async def get_block_by_height(request: Request, height: int):
    srv = get_server(request)
    return _found(await srv.ingest.get_block_by_height(height), "Block")


@router.get("/api/transactions/{tx_id}")
async def get_transaction(request: Request, tx_id: int):
    srv = get_server(request)
    return _found(await srv.ingest.get_transaction(tx_id), "Transaction")


@router.get("/api/events/{event_id}")
async def get_event(request: Request, event_id: int):
    srv = get_server(request)
    return _found(await srv.ingest.get_event(event_id), "Event")


@router.get("/api/token-transfers/{transfer_id}")
async def get_token_transfer(request: Request, transfer_id: int):
    srv = get_server(request)
    return _found(await srv.ingest.get_token_transfer(transfer_id), "Token transfer")
