"""
errors.py - Error kinds raised by the registry, ingestion and metering services.

Every kind carries the numeric code the on-ledger contract used, so clients
that already switch on those codes keep working:

  100 NotAuthorized            105 IndexerNotRegistered / AlreadyRegistered
  101 InvalidBlockSequence     106 InsufficientPayment
  101 InvalidBlock             107 RateLimitExceeded
  102 InvalidTransactionRef    108 InvalidTimeRange
  103 IndexNotFound            109 TooManyResults
  104 InvalidQuery             110 InvalidContractAddress

A raised error always means the whole operation was rolled back.
"""


class IndexHubError(Exception):
    """Base class for all service errors."""

    code = 0
    status_code = 400

    def __init__(self, detail: str = ""):
        super().__init__(detail or self.__class__.__name__)
        self.detail = detail or self.__class__.__name__

    @property
    def kind(self) -> str:
        return self.__class__.__name__

    def to_dict(self) -> dict:
        return {"error": self.kind, "code": self.code, "detail": self.detail}


class NotAuthorized(IndexHubError):
    code = 100
    status_code = 403


class InvalidBlockSequence(IndexHubError):
    code = 101
    status_code = 409


class InvalidBlock(IndexHubError):
    """Referenced block height has not been indexed."""

    code = 101
    status_code = 404


class InvalidTransactionReference(IndexHubError):
    code = 102


class IndexNotFound(IndexHubError):
    code = 103
    status_code = 404


class InvalidQuery(IndexHubError):
    code = 104


class IndexerNotRegistered(IndexHubError):
    code = 105
    status_code = 403


class AlreadyRegistered(IndexHubError):
    # The contract reused the not-registered code for duplicate registration.
    code = 105
    status_code = 409


class InsufficientPayment(IndexHubError):
    code = 106
    status_code = 402


class RateLimitExceeded(IndexHubError):
    code = 107
    status_code = 429


class InvalidTimeRange(IndexHubError):
    code = 108


class TooManyResults(IndexHubError):
    code = 109


class InvalidContractAddress(IndexHubError):
    code = 110


ALL_ERRORS = (
    NotAuthorized,
    InvalidBlockSequence,
    InvalidBlock,
    InvalidTransactionReference,
    IndexNotFound,
    InvalidQuery,
    IndexerNotRegistered,
    AlreadyRegistered,
    InsufficientPayment,
    RateLimitExceeded,
    InvalidTimeRange,
    TooManyResults,
    InvalidContractAddress,
)
