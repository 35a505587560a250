"""
Unit tests for gateway resolution.
"""

import logging

logger = logging.getLogger(__name__)
from unittest.mock import AsyncMock, patch

import pytest

from fakes import CUSTOM_L2_TOKEN, standard_l2_token_address
from rollupbridge.bridger import (
    Direction,
    GatewayKind,
    GatewayResolver,
    GatewayRoute,
    call_value_for_route,
)
from rollupbridge.chain import checksum
from rollupbridge.chain.contracts import DISABLED_GATEWAY, L1Gateway
from rollupbridge.errors import NetworkMismatch, TokenNotBridgeable, UnsupportedGateway
from rollupbridge.networks import ChainRegistry

OTHER_TOKEN = "0x0000000000000000000000000000000000000D0D"


@pytest.fixture
def resolver(l1, l2, chain_pair):
    return GatewayResolver(l1, l2, chain_pair)


class TestResolveGateway:
    """Test GatewayResolver routes."""

    @pytest.mark.asyncio
    async def test_standard_token(self, resolver, chain_pair, standard_token):
        """Tokens without a router entry use the standard ERC-20 gateway."""
        tb = chain_pair.token_bridge
        route = await resolver.resolve_gateway(standard_token)
        assert route.kind is GatewayKind.STANDARD
        assert route.gateway_address_source == checksum(tb.l1_erc20_gateway)
        assert route.gateway_address_dest == checksum(tb.l2_erc20_gateway)
        assert route.dest_token == standard_l2_token_address(standard_token)
        assert route.l1_gateway == route.gateway_address_source

    @pytest.mark.asyncio
    async def test_withdraw_route(self, resolver, chain_pair, standard_token):
        tb = chain_pair.token_bridge
        route = await resolver.resolve_gateway(standard_token, Direction.WITHDRAW)
        assert route.direction is Direction.WITHDRAW
        assert route.gateway_address_source == checksum(tb.l2_erc20_gateway)
        assert route.l1_gateway == checksum(tb.l1_erc20_gateway)
        assert route.l2_gateway == checksum(tb.l2_erc20_gateway)
        assert route.dest_token == standard_token

    @pytest.mark.asyncio
    async def test_wrapped_native(self, resolver, chain_pair):
        tb = chain_pair.token_bridge
        route = await resolver.resolve_gateway(tb.l1_weth)
        assert route.kind is GatewayKind.WRAPPED_NATIVE
        assert route.l1_gateway == checksum(tb.l1_weth_gateway)
        assert route.l2_gateway == checksum(tb.l2_weth_gateway)
        assert call_value_for_route(route, 77) == 77

    @pytest.mark.asyncio
    async def test_custom_gateway(self, resolver, l1, chain_pair, custom_token):
        tb = chain_pair.token_bridge
        l1.router_gateways[custom_token.lower()] = checksum(tb.l1_custom_gateway)
        l1.custom_gateway_tokens[custom_token.lower()] = checksum(CUSTOM_L2_TOKEN)

        route = await resolver.resolve_gateway(custom_token)
        assert route.kind is GatewayKind.CUSTOM
        assert route.l2_gateway == checksum(tb.l2_custom_gateway)
        assert route.dest_token == checksum(CUSTOM_L2_TOKEN)
        assert call_value_for_route(route, 77) == 0

    @pytest.mark.asyncio
    async def test_unknown_gateway_uses_counterpart(self, resolver, l1):
        """A gateway outside the registry is paired through counterpartGateway."""
        gateway = checksum("0x00000000000000000000000000000000000000ee")
        counterpart = checksum("0x00000000000000000000000000000000000000ff")
        l1.router_gateways[OTHER_TOKEN.lower()] = gateway
        l1.register(gateway, L1Gateway.COUNTERPART_GATEWAY, lambda ctx: counterpart)
        route = await resolver.resolve_gateway(OTHER_TOKEN)
        assert route.kind is GatewayKind.CUSTOM
        assert (route.l1_gateway, route.l2_gateway) == (gateway, counterpart)

    @pytest.mark.asyncio
    async def test_disabled_token(self, resolver, l1):
        l1.router_gateways[OTHER_TOKEN.lower()] = DISABLED_GATEWAY
        with pytest.raises(TokenNotBridgeable) as exc_info:
            await resolver.resolve_gateway(OTHER_TOKEN)
        assert exc_info.value.token == checksum(OTHER_TOKEN)

    @pytest.mark.asyncio
    async def test_route_is_memoised(self, resolver, l1, standard_token):
        """Resolving twice gives the same route without asking the router again."""
        first = await resolver.resolve_gateway(standard_token)
        with patch.object(l1, "call", AsyncMock(side_effect=AssertionError("router queried"))):
            second = await resolver.resolve_gateway(standard_token.lower())
        assert first == second

    @pytest.mark.asyncio
    async def test_forget(self, resolver, l1, chain_pair, standard_token):
        await resolver.resolve_gateway(standard_token)
        l1.router_gateways[standard_token.lower()] = checksum(
            chain_pair.token_bridge.l1_custom_gateway
        )
        resolver.forget(standard_token)
        route = await resolver.resolve_gateway(standard_token)
        assert route.kind is GatewayKind.CUSTOM

    @pytest.mark.asyncio
    async def test_wrong_chain_pair(self, resolver):
        other = ChainRegistry().lookup(621)
        with pytest.raises(NetworkMismatch):
            await resolver.resolve_gateway(OTHER_TOKEN, chain_pair=other)

    @pytest.mark.asyncio
    async def test_no_token_bridge(self, l1, l2):
        """Networks without a token bridge cannot route tokens."""
        pair = ChainRegistry().lookup(621)
        resolver = GatewayResolver(l1, l2, pair)
        with pytest.raises(TokenNotBridgeable):
            await resolver.resolve_gateway(OTHER_TOKEN)


class TestGatewayRoute:
    def test_deposit_orientation(self):
        route = GatewayRoute("0x01", "0x02", GatewayKind.STANDARD, "0x03", "0x04")
        assert (route.l1_gateway, route.l2_gateway) == ("0x01", "0x02")

    def test_withdraw_orientation(self):
        route = GatewayRoute(
            "0x02", "0x01", GatewayKind.STANDARD, "0x03", "0x03", Direction.WITHDRAW
        )
        assert (route.l1_gateway, route.l2_gateway) == ("0x01", "0x02")

    def test_unknown_kind_is_unsupported(self):
        route = GatewayRoute("0x01", "0x02", "bespoke", "0x03", "0x04")
        with pytest.raises(UnsupportedGateway):
            call_value_for_route(route, 1)
