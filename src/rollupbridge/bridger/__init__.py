"""Asset bridgers and gateway resolution."""

from .base import AssetBridger, BridgeTransactionPair
from .erc20 import MAX_UINT256, AdminErc20Bridger, Erc20Bridger
from .eth import EthBridger
from .gateway import (
    Direction,
    GatewayKind,
    GatewayResolver,
    GatewayRoute,
    call_value_for_route,
)

__all__ = [
    "AssetBridger",
    "BridgeTransactionPair",
    "MAX_UINT256",
    "AdminErc20Bridger",
    "Erc20Bridger",
    "EthBridger",
    "Direction",
    "GatewayKind",
    "GatewayResolver",
    "GatewayRoute",
    "call_value_for_route",
]
