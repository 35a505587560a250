"""
Gateway resolution.

Decides which gateway pair moves a token between the two chains. The router
on the side the transfer starts from is authoritative: a registered custom
gateway wins, no registration means the standard ERC-20 gateway, and the
chain's wrapped native token always goes through its dedicated gateway.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional, Tuple

from ..chain import ChainClient, checksum, is_zero_address, same_address
from ..chain.contracts import DISABLED_GATEWAY, L1Gateway, L1GatewayRouter, L2GatewayRouter
from ..errors import NetworkMismatch, TokenNotBridgeable, UnsupportedGateway
from ..logging import LogContext, get_logger
from ..networks import ChainPair

logger = get_logger(__name__)


class Direction(Enum):
    DEPOSIT = "deposit"
    WITHDRAW = "withdraw"


class GatewayKind(Enum):
    STANDARD = "standard"
    CUSTOM = "custom"
    WRAPPED_NATIVE = "wrapped_native"


@dataclass(frozen=True)
class GatewayRoute:
    """Gateways handling one token in one direction.

    ``gateway_address_source`` is on the chain the transfer starts from,
    ``gateway_address_dest`` on the other. ``dest_token`` is the token
    address on the destination chain.
    """

    gateway_address_source: str
    gateway_address_dest: str
    kind: GatewayKind
    l1_token: str
    dest_token: str
    direction: Direction = Direction.DEPOSIT

    @property
    def l1_gateway(self) -> str:
        if self.direction is Direction.DEPOSIT:
            return self.gateway_address_source
        return self.gateway_address_dest

    @property
    def l2_gateway(self) -> str:
        if self.direction is Direction.DEPOSIT:
            return self.gateway_address_dest
        return self.gateway_address_source


class GatewayResolver:
    """Resolves and memoises gateway routes for one chain pair."""

    def __init__(self, l1_client: ChainClient, l2_client: ChainClient, chain_pair: ChainPair):
        self.l1_client = l1_client
        self.l2_client = l2_client
        self.chain_pair = chain_pair
        self._routes: Dict[Tuple[str, Direction], GatewayRoute] = {}
        self._l2_tokens: Dict[str, str] = {}

    def _check_pair(self, chain_pair: Optional[ChainPair]) -> None:
        if chain_pair is None:
            return
        if (chain_pair.source_chain_id, chain_pair.dest_chain_id) != (
            self.chain_pair.source_chain_id,
            self.chain_pair.dest_chain_id,
        ):
            raise NetworkMismatch(
                f"Resolver is bound to {self.chain_pair.source_chain_id}->"
                f"{self.chain_pair.dest_chain_id}, not {chain_pair.source_chain_id}->"
                f"{chain_pair.dest_chain_id}",
                chain_id=chain_pair.dest_chain_id,
            )

    def forget(self, token: str) -> None:
        """Drop memoised routes of ``token`` after its registration changed."""
        for direction in Direction:
            self._routes.pop((token.lower(), direction), None)
        self._l2_tokens.pop(token.lower(), None)

    async def get_l2_token_address(self, l1_token: str) -> str:
        """Counterpart of ``l1_token`` on L2 as computed by the L1 router."""
        key = l1_token.lower()
        if key not in self._l2_tokens:
            router = self.chain_pair.token_bridge.l1_gateway_router
            if not router:
                raise TokenNotBridgeable(l1_token, "no L1 gateway router deployed")
            l2_token = await self.l1_client.call(
                router, L1GatewayRouter.CALCULATE_L2_TOKEN_ADDRESS, checksum(l1_token)
            )
            self._l2_tokens[key] = checksum(l2_token)
        return self._l2_tokens[key]

    async def resolve_gateway(
        self,
        token: str,
        direction: Direction = Direction.DEPOSIT,
        chain_pair: Optional[ChainPair] = None,
    ) -> GatewayRoute:
        """Route for the L1 token ``token`` in ``direction``.

        Raises ``TokenNotBridgeable`` when the router disables the token or no
        standard gateway is deployed to fall back to.
        """
        self._check_pair(chain_pair)
        key = (token.lower(), direction)
        route = self._routes.get(key)
        if route is None:
            route = await self._resolve(checksum(token), direction)
            self._routes[key] = route
            logger.info(
                f"Resolved {direction.value} route for {route.l1_token}: {route.kind.value} "
                f"via {route.gateway_address_source}",
                context=LogContext(
                    chain_id=self.chain_pair.dest_chain_id, operation="resolve_gateway"
                ),
            )
        return route

    async def _resolve(self, token: str, direction: Direction) -> GatewayRoute:
        tb = self.chain_pair.token_bridge
        if direction is Direction.DEPOSIT:
            client, router, fn = self.l1_client, tb.l1_gateway_router, L1GatewayRouter
        else:
            client, router, fn = self.l2_client, tb.l2_gateway_router, L2GatewayRouter
        if not router:
            raise TokenNotBridgeable(token, f"no gateway router deployed for {direction.value}")

        if tb.l1_weth and same_address(token, tb.l1_weth):
            kind = GatewayKind.WRAPPED_NATIVE
            l1_gateway, l2_gateway = tb.l1_weth_gateway, tb.l2_weth_gateway
        else:
            mapped = await client.call(router, fn.L1_TOKEN_TO_GATEWAY, token)
            if same_address(mapped, DISABLED_GATEWAY):
                raise TokenNotBridgeable(token, "bridging is disabled by the router")
            if is_zero_address(mapped):
                kind = GatewayKind.STANDARD
                l1_gateway, l2_gateway = tb.l1_erc20_gateway, tb.l2_erc20_gateway
            else:
                l1_gateway, l2_gateway = await self._custom_pair(mapped, direction)
                standard = (
                    tb.l1_erc20_gateway if direction is Direction.DEPOSIT else tb.l2_erc20_gateway
                )
                kind = (
                    GatewayKind.STANDARD if same_address(mapped, standard) else GatewayKind.CUSTOM
                )

        if not l1_gateway or not l2_gateway:
            raise TokenNotBridgeable(token, f"no {kind.value} gateway deployed")

        if direction is Direction.DEPOSIT:
            return GatewayRoute(
                gateway_address_source=checksum(l1_gateway),
                gateway_address_dest=checksum(l2_gateway),
                kind=kind,
                l1_token=token,
                dest_token=await self.get_l2_token_address(token),
            )
        return GatewayRoute(
            gateway_address_source=checksum(l2_gateway),
            gateway_address_dest=checksum(l1_gateway),
            kind=kind,
            l1_token=token,
            dest_token=token,
            direction=Direction.WITHDRAW,
        )

    async def _custom_pair(self, mapped: str, direction: Direction) -> Tuple[str, str]:
        """(L1 gateway, L2 gateway) for a router mapping found on the source side."""
        tb = self.chain_pair.token_bridge
        known = [
            (tb.l1_erc20_gateway, tb.l2_erc20_gateway),
            (tb.l1_custom_gateway, tb.l2_custom_gateway),
            (tb.l1_weth_gateway, tb.l2_weth_gateway),
        ]
        side = 0 if direction is Direction.DEPOSIT else 1
        for pair in known:
            if pair[side] and same_address(pair[side], mapped):
                return pair

        client = self.l1_client if direction is Direction.DEPOSIT else self.l2_client
        counterpart = await client.call(mapped, L1Gateway.COUNTERPART_GATEWAY)
        return (mapped, counterpart) if direction is Direction.DEPOSIT else (counterpart, mapped)


def call_value_for_route(route: GatewayRoute, amount: int) -> int:
    """L2 call value a deposit through ``route`` carries."""
    if route.kind is GatewayKind.WRAPPED_NATIVE:
        return amount
    if route.kind in (GatewayKind.STANDARD, GatewayKind.CUSTOM):
        return 0
    raise UnsupportedGateway(f"Unsupported gateway kind {route.kind}", token=route.l1_token)
