"""
IndexHub - Permissioned secondary-index and metered query service.

Bonded indexers submit derived ledger records (blocks, transactions, events,
token transfers, contracts); readers pay per query under a per-slot rate
limit. Includes SQLite storage, a REST API and owner-only admin controls.
"""

__version__ = "0.1.0"

__all__ = [
    "account",
    "admin",
    "auth",
    "clock",
    "errors",
    "fields",
    "ingest",
    "metering",
    "registry",
    "server",
    "storage",
]
