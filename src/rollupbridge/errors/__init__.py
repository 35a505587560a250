"""rollupbridge error handling.

Exception hierarchy and the retry/backoff/cancellation primitives used by
polling operations.
"""

from .exceptions import (
    AlreadyRedeemed,
    AlreadyRegistered,
    BridgeSdkError,
    ConfigurationError,
    ErrorCategory,
    ErrorContext,
    ErrorSeverity,
    Expired,
    InsufficientFunds,
    InvalidStatusTransition,
    MessageNotReady,
    MessageTimeout,
    MissingSigner,
    NetworkMismatch,
    NoMessageFound,
    OperationCancelled,
    ProtocolStateError,
    TokenNotBridgeable,
    TransactionNotMined,
    TransientChainError,
    UnknownNetwork,
    UnsupportedGateway,
)
from .recovery import (
    BackoffStrategy,
    CancelToken,
    RetryPolicy,
    cancellable_sleep,
    retry_async,
    with_retry,
)

__all__ = [
    # Exceptions
    "BridgeSdkError",
    "ErrorCategory",
    "ErrorContext",
    "ErrorSeverity",
    "ConfigurationError",
    "UnknownNetwork",
    "NetworkMismatch",
    "MissingSigner",
    "UnsupportedGateway",
    "TokenNotBridgeable",
    "TransientChainError",
    "TransactionNotMined",
    "MessageTimeout",
    "ProtocolStateError",
    "AlreadyRedeemed",
    "Expired",
    "MessageNotReady",
    "AlreadyRegistered",
    "InvalidStatusTransition",
    "NoMessageFound",
    "InsufficientFunds",
    "OperationCancelled",
    # Recovery
    "RetryPolicy",
    "BackoffStrategy",
    "CancelToken",
    "cancellable_sleep",
    "retry_async",
    "with_retry",
]
