"""
Crowdfunding Client Errors

Every failure the client can report falls into one of a few kinds:
- DecodeError: an account buffer is malformed or truncated
- ValidationError: a local value cannot be encoded or sent
- PreconditionError: the signer is unavailable, nothing was sent
- NetworkError: transport failure or a rejection reported by the RPC node
- ConfirmationTimeout: a caller-imposed wait for confirmation ran out

Errors are raised where they happen and propagate unmodified. Presentation
code that prefers values over exceptions can wrap a call with `capture()`.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Generic, Optional, TypeVar


T = TypeVar("T")


class ErrorKind(str, Enum):
    """Stable error categories for display layers."""
    DECODE = "decode"
    VALIDATION = "validation"
    PRECONDITION = "precondition"
    NETWORK = "network"
    TRANSACTION_FAILED = "transaction_failed"
    CONFIRMATION_TIMEOUT = "confirmation_timeout"
    CONFIGURATION = "configuration"


class CrowdfundError(Exception):
    """Base exception for all crowdfunding client errors."""

    kind = ErrorKind.NETWORK

    def __init__(self, message: str, details: Optional[dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class DecodeError(CrowdfundError):
    """Raised when an account buffer cannot be decoded into a record."""

    kind = ErrorKind.DECODE

    def __init__(self, message: str, field: Optional[str] = None,
                 address: Optional[str] = None):
        super().__init__(message, {"field": field, "address": address})
        self.field = field
        self.address = address


class ValidationError(CrowdfundError, ValueError):
    """Raised when a value is out of range for its wire representation."""

    kind = ErrorKind.VALIDATION

    def __init__(self, message: str, field: Optional[str] = None, value: Any = None):
        super().__init__(message, {"field": field, "value": value})
        self.field = field
        self.value = value


class PreconditionError(CrowdfundError):
    """Raised before any network call when the signer cannot sign."""

    kind = ErrorKind.PRECONDITION


class ConfigurationError(CrowdfundError, ValueError):
    """Raised when client configuration is missing or invalid."""

    kind = ErrorKind.CONFIGURATION


class NetworkError(CrowdfundError):
    """Raised when the RPC transport fails or the node rejects a request."""

    kind = ErrorKind.NETWORK

    def __init__(self, message: str, method: Optional[str] = None,
                 details: Optional[dict[str, Any]] = None):
        details = dict(details or {})
        details.setdefault("method", method)
        super().__init__(message, details)
        self.method = method


class RPCError(NetworkError):
    """A JSON-RPC error object returned by the node, surfaced verbatim."""

    def __init__(self, message: str, code: int, method: Optional[str] = None,
                 data: Any = None):
        super().__init__(message, method=method, details={"code": code, "data": data})
        self.code = code
        self.data = data

    @property
    def is_blockhash_expired(self) -> bool:
        """True when the node rejected the transaction for a stale blockhash."""
        if isinstance(self.data, dict) and self.data.get("err") == "BlockhashNotFound":
            return True
        return "blockhash not found" in self.message.lower()


class TransactionFailedError(NetworkError):
    """The transaction landed on the ledger but the program returned an error."""

    kind = ErrorKind.TRANSACTION_FAILED

    def __init__(self, signature: str, err: Any):
        super().__init__(f"Transaction {signature} failed: {err}",
                         method="getSignatureStatuses",
                         details={"signature": signature, "err": err})
        self.signature = signature
        self.err = err


class ConfirmationTimeout(CrowdfundError):
    """The caller's deadline passed before the transaction was confirmed."""

    kind = ErrorKind.CONFIRMATION_TIMEOUT

    def __init__(self, signature: str, timeout: float):
        super().__init__(
            f"Transaction {signature} not confirmed within {timeout:g}s; "
            "its outcome on the ledger is unknown",
            {"signature": signature, "timeout": timeout},
        )
        self.signature = signature
        self.timeout = timeout


@dataclass(frozen=True)
class OperationResult(Generic[T]):
    """Outcome of a client call as a value instead of an exception."""
    value: Optional[T] = None
    error_kind: Optional[ErrorKind] = None
    message: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error_kind is None


async def capture(awaitable: Awaitable[T]) -> OperationResult[T]:
    """
    Await a client call and fold crowdfunding errors into a result.

    Only CrowdfundError subclasses are captured; anything else is a bug and
    keeps propagating.
    """
    try:
        value = await awaitable
    except CrowdfundError as e:
        return OperationResult(error_kind=e.kind, message=e.message)
    return OperationResult(value=value)
