from ._schema import SCHEMA_VERSION, SCHEMA_SQL, STATE_DEFAULTS
from .accounts import AccountRepo, InsufficientBalance
from .state import StateRepo
from .indexers import IndexerRepo
from .blocks import BlockRepo
from .transactions import TransactionRepo
from .events import EventRepo
from .token_transfers import TokenTransferRepo
from .contracts import ContractRepo
from .activity import ActivityRepo, empty_activity
from .query_cache import QueryCacheRepo
from .query_stats import QueryStatsRepo, empty_stats
from .analytics import AnalyticsRepo
from .manager import StorageManager

__all__ = [
    "SCHEMA_VERSION",
    "SCHEMA_SQL",
    "STATE_DEFAULTS",
    "AccountRepo",
    "InsufficientBalance",
    "StateRepo",
    "IndexerRepo",
    "BlockRepo",
    "TransactionRepo",
    "EventRepo",
    "TokenTransferRepo",
    "ContractRepo",
    "ActivityRepo",
    "empty_activity",
    "QueryCacheRepo",
    "QueryStatsRepo",
    "empty_stats",
    "AnalyticsRepo",
    "StorageManager",
]
