SCHEMA_VERSION = 1

SCHEMA_SQL = """
-- Schema version tracking
CREATE TABLE IF NOT EXISTS schema_version (
    version    INTEGER NOT NULL,
    applied_at REAL NOT NULL
);

-- Global scalars: id sequences, indexed height, admin parameters
CREATE TABLE IF NOT EXISTS index_state (
    key   TEXT PRIMARY KEY,
    value INTEGER NOT NULL
);

-- Accounts: balances moved by the transfer primitive
CREATE TABLE IF NOT EXISTS accounts (
    account_id TEXT PRIMARY KEY,
    balance    INTEGER NOT NULL DEFAULT 0 CHECK (balance >= 0),
    api_key    TEXT NOT NULL DEFAULT '',
    created_at REAL NOT NULL,
    updated_at REAL NOT NULL
);

-- Ledger transfers: audit trail for every balance change
CREATE TABLE IF NOT EXISTS ledger_transfers (
    id           INTEGER PRIMARY KEY AUTOINCREMENT,
    from_account TEXT NOT NULL,
    to_account   TEXT NOT NULL,
    amount       INTEGER NOT NULL,
    memo         TEXT NOT NULL DEFAULT '',
    created_at   REAL NOT NULL
);

-- Indexers: bonded, reputation-scored submitters
CREATE TABLE IF NOT EXISTS indexers (
    indexer_id          TEXT PRIMARY KEY,
    name                TEXT NOT NULL,
    indexer_type        TEXT NOT NULL CHECK (indexer_type IN ('full', 'specialized', 'archive')),
    bond_amount         INTEGER NOT NULL,
    active              INTEGER NOT NULL DEFAULT 1,
    blocks_indexed      INTEGER NOT NULL DEFAULT 0,
    last_indexed_height INTEGER NOT NULL DEFAULT 0,
    reputation_score    INTEGER NOT NULL DEFAULT 500 CHECK (reputation_score BETWEEN 0 AND 1000),
    registered_at       INTEGER NOT NULL
);

-- Blocks: keyed by sequence id, looked up by height through idx_blocks_height
CREATE TABLE IF NOT EXISTS blocks (
    id           INTEGER PRIMARY KEY,
    height       INTEGER NOT NULL,
    block_hash   BLOB NOT NULL,
    parent_hash  BLOB NOT NULL,
    timestamp    INTEGER NOT NULL,
    miner        TEXT,
    tx_count     INTEGER NOT NULL DEFAULT 0,
    total_fees   INTEGER NOT NULL DEFAULT 0,
    size         INTEGER NOT NULL DEFAULT 0,
    difficulty   INTEGER NOT NULL DEFAULT 0,
    indexed_by   TEXT NOT NULL,
    indexed_at   INTEGER NOT NULL
);

CREATE TABLE IF NOT EXISTS transactions (
    id               INTEGER PRIMARY KEY,
    tx_hash          BLOB NOT NULL,
    height           INTEGER NOT NULL,
    tx_type          TEXT NOT NULL,
    sender           TEXT NOT NULL,
    recipient        TEXT,
    amount           INTEGER,
    fee              INTEGER NOT NULL DEFAULT 0,
    nonce            INTEGER NOT NULL DEFAULT 0,
    contract_address TEXT,
    function_name    TEXT,
    success          INTEGER NOT NULL DEFAULT 1,
    error_code       INTEGER,
    events_count     INTEGER NOT NULL DEFAULT 0,
    indexed_at       INTEGER NOT NULL
);

CREATE TABLE IF NOT EXISTS events (
    id               INTEGER PRIMARY KEY,
    tx_hash          BLOB NOT NULL,
    tx_index         INTEGER NOT NULL,
    height           INTEGER NOT NULL,
    contract_address TEXT NOT NULL,
    event_type       TEXT NOT NULL,
    event_data       BLOB NOT NULL,
    topics           BLOB NOT NULL,
    indexed_at       INTEGER NOT NULL
);

CREATE TABLE IF NOT EXISTS token_transfers (
    id             INTEGER PRIMARY KEY,
    tx_hash        BLOB NOT NULL,
    height         INTEGER NOT NULL,
    token_contract TEXT NOT NULL,
    from_address   TEXT NOT NULL,
    to_address     TEXT NOT NULL,
    amount         INTEGER NOT NULL,
    memo           BLOB,
    transfer_type  TEXT NOT NULL,
    indexed_at     INTEGER NOT NULL
);

CREATE TABLE IF NOT EXISTS contracts (
    contract_address   TEXT PRIMARY KEY,
    deployer           TEXT NOT NULL,
    name               TEXT NOT NULL,
    deployed_at_height INTEGER NOT NULL,
    deployed_at_time   INTEGER NOT NULL,
    source_hash        BLOB NOT NULL,
    total_calls        INTEGER NOT NULL DEFAULT 0,
    unique_callers     INTEGER NOT NULL DEFAULT 0,
    last_call_height   INTEGER NOT NULL DEFAULT 0,
    contract_type      TEXT NOT NULL,
    active             INTEGER NOT NULL DEFAULT 1
);

-- Distinct callers per contract (feeds contracts.unique_callers)
CREATE TABLE IF NOT EXISTS contract_callers (
    contract_address TEXT NOT NULL,
    caller           TEXT NOT NULL,
    PRIMARY KEY (contract_address, caller)
);

CREATE TABLE IF NOT EXISTS address_activity (
    address            TEXT PRIMARY KEY,
    first_seen_height  INTEGER NOT NULL,
    last_seen_height   INTEGER NOT NULL,
    tx_count           INTEGER NOT NULL DEFAULT 0,
    sent_amount        INTEGER NOT NULL DEFAULT 0,
    received_amount    INTEGER NOT NULL DEFAULT 0,
    contract_calls     INTEGER NOT NULL DEFAULT 0,
    contracts_deployed INTEGER NOT NULL DEFAULT 0,
    tokens_held_json   TEXT NOT NULL DEFAULT '[]',
    nft_count          INTEGER NOT NULL DEFAULT 0,
    address_type       TEXT NOT NULL DEFAULT 'standard'
);

CREATE TABLE IF NOT EXISTS query_cache (
    query_hash    BLOB PRIMARY KEY,
    result_digest BLOB NOT NULL,
    result_count  INTEGER NOT NULL,
    cached_at     INTEGER NOT NULL,
    expires_at    INTEGER NOT NULL,
    hit_count     INTEGER NOT NULL DEFAULT 0
);

CREATE TABLE IF NOT EXISTS query_stats (
    reader_id          TEXT PRIMARY KEY,
    total_queries      INTEGER NOT NULL DEFAULT 0,
    successful_queries INTEGER NOT NULL DEFAULT 0,
    failed_queries     INTEGER NOT NULL DEFAULT 0,
    premium_queries    INTEGER NOT NULL DEFAULT 0,
    last_query_slot    INTEGER NOT NULL DEFAULT 0,
    queries_this_slot  INTEGER NOT NULL DEFAULT 0,
    total_fees_paid    INTEGER NOT NULL DEFAULT 0
);

CREATE TABLE IF NOT EXISTS analytics_reports (
    metric_type  TEXT PRIMARY KEY,
    time_period  INTEGER NOT NULL,
    requested_by TEXT NOT NULL,
    requested_at INTEGER NOT NULL,
    status       TEXT NOT NULL DEFAULT 'pending'
);

-- Indexes for common queries
CREATE INDEX IF NOT EXISTS idx_blocks_height ON blocks(height);
CREATE INDEX IF NOT EXISTS idx_blocks_indexed_by ON blocks(indexed_by);
CREATE INDEX IF NOT EXISTS idx_transactions_height ON transactions(height);
CREATE INDEX IF NOT EXISTS idx_transactions_sender ON transactions(sender);
CREATE INDEX IF NOT EXISTS idx_events_contract_height ON events(contract_address, height);
CREATE INDEX IF NOT EXISTS idx_transfers_token_height ON token_transfers(token_contract, height);
CREATE INDEX IF NOT EXISTS idx_accounts_api_key ON accounts(api_key);
CREATE INDEX IF NOT EXISTS idx_ledger_transfers_from ON ledger_transfers(from_account);
"""

# Initial values for index_state rows; INSERT OR IGNORE keeps existing values.
STATE_DEFAULTS = {
    "next_block_id": 1,
    "next_transaction_id": 1,
    "next_event_id": 1,
    "next_transfer_id": 1,
    "next_query_id": 1,
    "current_indexed_height": 0,
    "total_queries_processed": 0,
    "basic_query_fee": 100_000,
    "premium_query_fee": 500_000,
    "paused": 0,
}
