"""
rollupbridge: client library for bridging assets between an L1 chain and a
rollup that communicate through retryable tickets.
"""

from .bridger import (
    AdminErc20Bridger,
    AssetBridger,
    BridgeTransactionPair,
    Direction,
    Erc20Bridger,
    EthBridger,
    GatewayKind,
    GatewayResolver,
    GatewayRoute,
)
from .chain import ChainClient
from .config import BridgeSettings, ChainClientConfig, PollingConfig
from .errors import (
    AlreadyRedeemed,
    AlreadyRegistered,
    BridgeSdkError,
    CancelToken,
    ConfigurationError,
    Expired,
    InsufficientFunds,
    MessageNotReady,
    MessageTimeout,
    NoMessageFound,
    OperationCancelled,
    ProtocolStateError,
    TokenNotBridgeable,
    TransientChainError,
    UnsupportedGateway,
)
from .inbox import ForceInclusionEvent, InboxForcer
from .message import (
    GasOverride,
    GasOverrides,
    MessageStatus,
    MessageStatusTracker,
    RedeemHandle,
    RetryableRequest,
    RetryableTicket,
    StatusResult,
    SubmittedMessage,
    WithdrawalRecord,
)
from .networks import ChainPair, ChainRegistry, L1Network, L2Network

__version__ = "0.1.0"

__all__ = [
    "AdminErc20Bridger",
    "AssetBridger",
    "BridgeTransactionPair",
    "Direction",
    "Erc20Bridger",
    "EthBridger",
    "GatewayKind",
    "GatewayResolver",
    "GatewayRoute",
    "ChainClient",
    "BridgeSettings",
    "ChainClientConfig",
    "PollingConfig",
    "AlreadyRedeemed",
    "AlreadyRegistered",
    "BridgeSdkError",
    "CancelToken",
    "ConfigurationError",
    "Expired",
    "InsufficientFunds",
    "MessageNotReady",
    "MessageTimeout",
    "NoMessageFound",
    "OperationCancelled",
    "ProtocolStateError",
    "TokenNotBridgeable",
    "TransientChainError",
    "UnsupportedGateway",
    "ForceInclusionEvent",
    "InboxForcer",
    "GasOverride",
    "GasOverrides",
    "MessageStatus",
    "MessageStatusTracker",
    "RedeemHandle",
    "RetryableRequest",
    "RetryableTicket",
    "StatusResult",
    "SubmittedMessage",
    "WithdrawalRecord",
    "ChainPair",
    "ChainRegistry",
    "L1Network",
    "L2Network",
]
