"""Pydantic request models for the REST API.

Binary fields travel as 0x-prefixed hex strings and are decoded to bytes
here; width checks happen in the services.
"""

from typing import Any, List, Optional

from pydantic import BaseModel, field_validator


def decode_hex(value: Any) -> Any:
    if isinstance(value, str):
        text = value[2:] if value.startswith(("0x", "0X")) else value
        try:
            return bytes.fromhex(text)
        except ValueError:
            raise ValueError("must be a hex string")
    return value


def encode_record(value: Any) -> Any:
    """Render bytes (also nested in dicts and lists) as 0x-prefixed hex."""
    if isinstance(value, (bytes, bytearray)):
        return "0x" + bytes(value).hex()
    if isinstance(value, dict):
        return {k: encode_record(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [encode_record(v) for v in value]
    return value


# ---------------------------------------------------------------------------
# Accounts
# ---------------------------------------------------------------------------

class RegisterRequest(BaseModel):
    account_id: str
    balance: int = 0


class DepositRequest(BaseModel):
    amount: int


# ---------------------------------------------------------------------------
# Indexers and ingestion
# ---------------------------------------------------------------------------

class RegisterIndexerRequest(BaseModel):
    name: str
    indexer_type: str


class BlockRequest(BaseModel):
    height: int
    block_hash: bytes
    parent_hash: bytes
    timestamp: int
    miner: Optional[str] = None
    tx_count: int = 0
    total_fees: int = 0
    size: int = 0
    difficulty: int = 0

    @field_validator("block_hash", "parent_hash", mode="before")
    @classmethod
    def _hex(cls, v):
        return decode_hex(v)


class TransactionRequest(BaseModel):
    tx_hash: bytes
    height: int
    tx_type: str
    sender: str
    recipient: Optional[str] = None
    amount: Optional[int] = None
    fee: int = 0
    nonce: int = 0
    contract_address: Optional[str] = None
    function_name: Optional[str] = None
    success: bool = True
    error_code: Optional[int] = None
    events_count: int = 0

    @field_validator("tx_hash", mode="before")
    @classmethod
    def _hex(cls, v):
        return decode_hex(v)


class BatchTransactionsRequest(BaseModel):
    transactions: List[TransactionRequest]


class EventRequest(BaseModel):
    tx_hash: bytes
    tx_index: int
    height: int
    contract_address: str
    event_type: str
    event_data: bytes = b""
    topics: List[bytes] = []

    @field_validator("tx_hash", "event_data", mode="before")
    @classmethod
    def _hex(cls, v):
        return decode_hex(v)

    @field_validator("topics", mode="before")
    @classmethod
    def _hex_list(cls, v):
        if isinstance(v, list):
            return [decode_hex(t) for t in v]
        return v


class TokenTransferRequest(BaseModel):
    tx_hash: bytes
    height: int
    token_contract: str
    from_address: str
    to_address: str
    amount: int
    transfer_type: str
    memo: Optional[bytes] = None

    @field_validator("tx_hash", "memo", mode="before")
    @classmethod
    def _hex(cls, v):
        return decode_hex(v)


class ContractRequest(BaseModel):
    contract_address: str
    deployer: str
    name: str
    deployed_at_height: int
    source_hash: bytes
    contract_type: str
    deployed_at_time: Optional[int] = None

    @field_validator("source_hash", mode="before")
    @classmethod
    def _hex(cls, v):
        return decode_hex(v)


# ---------------------------------------------------------------------------
# Queries and cache
# ---------------------------------------------------------------------------

class RangeQueryRequest(BaseModel):
    start_height: int
    end_height: int


class PremiumQueryRequest(BaseModel):
    query_type: int
    parameters: bytes = b""
    max_results: int

    @field_validator("parameters", mode="before")
    @classmethod
    def _hex(cls, v):
        return decode_hex(v)


class EventsQueryRequest(BaseModel):
    contract: str
    event_type: Optional[str] = None
    from_block: int
    to_block: int


class TokenTransfersQueryRequest(BaseModel):
    token: str
    from_address: Optional[str] = None
    to_address: Optional[str] = None
    from_block: int
    to_block: int


class CacheDigestRequest(BaseModel):
    query_type: int
    parameters: bytes = b""

    @field_validator("parameters", mode="before")
    @classmethod
    def _hex(cls, v):
        return decode_hex(v)


class CachePutRequest(BaseModel):
    query_hash: bytes
    result_digest: bytes
    result_count: int

    @field_validator("query_hash", "result_digest", mode="before")
    @classmethod
    def _hex(cls, v):
        return decode_hex(v)


# ---------------------------------------------------------------------------
# Admin
# ---------------------------------------------------------------------------

class FeesRequest(BaseModel):
    basic_fee: int
    premium_fee: int


class WithdrawFeesRequest(BaseModel):
    amount: int


class PauseRequest(BaseModel):
    paused: bool


class AnalyticsRequest(BaseModel):
    metric_type: str
    time_period: int
