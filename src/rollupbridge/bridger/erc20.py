"""
ERC-20 bridgers.

Token deposits go through the L1 gateway router, which forwards them to the
gateway registered for the token; the gateway escrows the tokens and creates
a retryable ticket that mints them on L2. Withdrawals burn on L2 through the
L2 router. The admin bridger also registers custom gateways.
"""

from typing import List, Optional, Sequence

from eth_abi import encode as abi_encode

from ..chain import checksum, is_zero_address, to_hex_str
from ..chain.contracts import (
    ERC20,
    CustomToken,
    L1Gateway,
    L1GatewayRouter,
    L2Gateway,
    L2GatewayRouter,
)
from ..errors import AlreadyRegistered, TokenNotBridgeable
from ..logging import get_logger
from ..message import (
    GasOverrides,
    RetryableGasEstimate,
    RetryableRequest,
    get_base_fee,
)
from .base import AssetBridger, BridgeTransactionPair
from .gateway import Direction, GatewayResolver, GatewayRoute, call_value_for_route

logger = get_logger(__name__)

MAX_UINT256 = 2**256 - 1


class Erc20Bridger(AssetBridger):
    """Moves ERC-20 tokens between L1 and L2."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.resolver = GatewayResolver(self.l1_client, self.l2_client, self.chain_pair)

    @property
    def _tb(self):
        return self.chain_pair.token_bridge

    async def resolve_gateway(
        self, l1_token: str, direction: Direction = Direction.DEPOSIT
    ) -> GatewayRoute:
        return await self.resolver.resolve_gateway(l1_token, direction, self.chain_pair)

    async def get_l1_gateway_address(self, l1_token: str) -> str:
        return (await self.resolve_gateway(l1_token, Direction.DEPOSIT)).gateway_address_source

    async def get_l2_gateway_address(self, l1_token: str) -> str:
        return (await self.resolve_gateway(l1_token, Direction.WITHDRAW)).gateway_address_source

    async def get_l2_token_address(self, l1_token: str) -> str:
        return await self.resolver.get_l2_token_address(l1_token)

    async def allowance(self, l1_token: str, owner: Optional[str] = None) -> int:
        """Allowance the token's L1 gateway has over ``owner``'s tokens."""
        gateway = await self.get_l1_gateway_address(l1_token)
        owner = checksum(owner) if owner else self.l1_client.address
        return await self.l1_client.call(l1_token, ERC20.ALLOWANCE, owner, gateway)

    async def approve_token(self, l1_token: str, amount: int = MAX_UINT256):
        """Let the token's L1 gateway pull ``amount`` tokens from the signer."""
        gateway = await self.get_l1_gateway_address(l1_token)
        receipt = await self.l1_client.transact(l1_token, ERC20.APPROVE, gateway, amount)
        logger.info(
            f"Approved {gateway} for {amount} of {l1_token}",
            context=self._log_context(
                "approve_token", tx_hash=to_hex_str(receipt["transactionHash"])
            ),
        )
        return receipt

    async def _estimate_deposit(
        self,
        route: GatewayRoute,
        sender: str,
        to: str,
        amount: int,
        overrides: Optional[GasOverrides],
    ) -> RetryableGasEstimate:
        l2_call_data = await self.l1_client.call(
            route.gateway_address_source,
            L1Gateway.GET_OUTBOUND_CALLDATA,
            route.l1_token,
            sender,
            to,
            amount,
            b"",
        )
        request = RetryableRequest(
            sender=route.gateway_address_source,
            to=route.gateway_address_dest,
            l2_call_value=call_value_for_route(route, amount),
            excess_fee_refund_address=sender,
            call_value_refund_address=to,
            data=l2_call_data,
        )
        l1_base_fee = await get_base_fee(self.l1_client)
        return await self.gas_estimator.estimate_all(request, l1_base_fee, overrides)

    async def deposit(
        self,
        l1_token: str,
        amount: int,
        destination: Optional[str] = None,
        overrides: Optional[GasOverrides] = None,
    ) -> BridgeTransactionPair:
        """Deposit ``amount`` of ``l1_token`` to ``destination`` on L2.

        Approves the gateway first when its allowance is too low. A
        ``deposit`` override sets the whole retryable deposit; the L1 value
        sent is that total less the L2 call value the gateway funds itself.
        """
        route = await self.resolve_gateway(l1_token, Direction.DEPOSIT)
        sender = self.l1_client.address
        to = checksum(destination) if destination else sender

        await self._require_token(self.l1_client, route.l1_token, amount)
        estimate = await self._estimate_deposit(route, sender, to, amount, overrides)
        value = estimate.deposit - call_value_for_route(route, amount)
        await self._require_eth(self.l1_client, value)

        if await self.allowance(route.l1_token) < amount:
            await self.approve_token(route.l1_token)

        receipt = await self.l1_client.transact(
            self._tb.l1_gateway_router,
            L1GatewayRouter.OUTBOUND_TRANSFER,
            route.l1_token,
            to,
            amount,
            estimate.gas_limit,
            estimate.max_fee_per_gas,
            abi_encode(["uint256", "bytes"], [estimate.max_submission_cost, b""]),
            value=value,
        )
        logger.info(
            f"Deposited {amount} of {route.l1_token} through {route.kind.value} gateway",
            context=self._log_context(
                "deposit_erc20", tx_hash=to_hex_str(receipt["transactionHash"])
            ),
        )
        return self._deposit_result(receipt)

    async def withdraw(
        self,
        l1_token: str,
        amount: int,
        destination: Optional[str] = None,
    ) -> BridgeTransactionPair:
        """Withdraw ``amount`` of the L2 counterpart of ``l1_token`` to L1."""
        route = await self.resolve_gateway(l1_token, Direction.WITHDRAW)
        to = checksum(destination) if destination else self.l2_client.address
        l2_token = await self.get_l2_token_address(route.l1_token)
        await self._require_token(self.l2_client, l2_token, amount)

        receipt = await self.l2_client.transact(
            self._tb.l2_gateway_router,
            L2GatewayRouter.OUTBOUND_TRANSFER,
            route.l1_token,
            to,
            amount,
            b"",
        )
        logger.info(
            f"Withdrew {amount} of {route.l1_token} through {route.gateway_address_source}",
            context=self._log_context(
                "withdraw_erc20",
                self.chain_pair.dest_chain_id,
                tx_hash=to_hex_str(receipt["transactionHash"]),
            ),
        )
        return self._withdrawal_result(receipt)


class AdminErc20Bridger(Erc20Bridger):
    """Token bridger with gateway registration."""

    async def register_custom_token(
        self, l1_token: str, l2_token: str, overrides: Optional[GasOverrides] = None
    ) -> BridgeTransactionPair:
        """Register ``l1_token`` with the custom gateway, paired with ``l2_token``.

        The L1 token contract must implement ``registerTokenOnL2``. Raises
        ``AlreadyRegistered`` without sending anything when the custom
        gateway or the router already maps the token.
        """
        tb = self._tb
        if not tb.l1_custom_gateway or not tb.l2_custom_gateway:
            raise TokenNotBridgeable(l1_token, "no custom gateway deployed")
        l1_token, l2_token = checksum(l1_token), checksum(l2_token)

        existing = await self.l1_client.call(
            tb.l1_custom_gateway, L1Gateway.L1_TO_L2_TOKEN, l1_token
        )
        if not is_zero_address(existing):
            raise AlreadyRegistered(l1_token, gateway=checksum(tb.l1_custom_gateway))
        routed = await self.l1_client.call(
            tb.l1_gateway_router, L1GatewayRouter.L1_TOKEN_TO_GATEWAY, l1_token
        )
        if not is_zero_address(routed):
            raise AlreadyRegistered(l1_token, gateway=checksum(routed))

        sender = self.l1_client.address
        l1_base_fee = await get_base_fee(self.l1_client)
        gateway_estimate = await self.gas_estimator.estimate_all(
            RetryableRequest(
                sender=tb.l1_custom_gateway,
                to=tb.l2_custom_gateway,
                l2_call_value=0,
                excess_fee_refund_address=sender,
                call_value_refund_address=sender,
                data=L2Gateway.REGISTER_TOKEN_FROM_L1.encode([l1_token], [l2_token]),
            ),
            l1_base_fee,
            overrides,
        )
        router_estimate = await self.gas_estimator.estimate_all(
            RetryableRequest(
                sender=tb.l1_gateway_router,
                to=tb.l2_gateway_router,
                l2_call_value=0,
                excess_fee_refund_address=sender,
                call_value_refund_address=sender,
                data=L2GatewayRouter.SET_GATEWAY.encode([l1_token], [tb.l2_custom_gateway]),
            ),
            l1_base_fee,
            overrides,
        )

        gas_price_bid = max(gateway_estimate.max_fee_per_gas, router_estimate.max_fee_per_gas)
        value_gateway = (
            gateway_estimate.gas_limit * gas_price_bid + gateway_estimate.max_submission_cost
        )
        value_router = router_estimate.gas_limit * gas_price_bid + router_estimate.max_submission_cost
        await self._require_eth(self.l1_client, value_gateway + value_router)

        receipt = await self.l1_client.transact(
            l1_token,
            CustomToken.REGISTER_TOKEN_ON_L2,
            l2_token,
            gateway_estimate.max_submission_cost,
            router_estimate.max_submission_cost,
            gateway_estimate.gas_limit,
            router_estimate.gas_limit,
            gas_price_bid,
            value_gateway,
            value_router,
            sender,
            value=value_gateway + value_router,
        )
        self.resolver.forget(l1_token)
        logger.info(
            f"Registered {l1_token} -> {l2_token} on the custom gateway",
            context=self._log_context(
                "register_custom_token", tx_hash=to_hex_str(receipt["transactionHash"])
            ),
        )
        return self._deposit_result(receipt)

    async def set_gateways(
        self,
        l1_tokens: Sequence[str],
        l1_gateways: Sequence[str],
        overrides: Optional[GasOverrides] = None,
    ) -> BridgeTransactionPair:
        """Point the router at ``l1_gateways`` for ``l1_tokens`` (router owner only)."""
        if len(l1_tokens) != len(l1_gateways):
            raise ValueError("l1_tokens and l1_gateways must have the same length")
        tb = self._tb
        tokens: List[str] = [checksum(t) for t in l1_tokens]
        gateways: List[str] = [checksum(g) for g in l1_gateways]
        sender = self.l1_client.address

        estimate = await self.gas_estimator.estimate_all(
            RetryableRequest(
                sender=tb.l1_gateway_router,
                to=tb.l2_gateway_router,
                l2_call_value=0,
                excess_fee_refund_address=sender,
                call_value_refund_address=sender,
                data=L2GatewayRouter.SET_GATEWAY.encode(tokens, gateways),
            ),
            overrides=overrides,
        )
        await self._require_eth(self.l1_client, estimate.deposit)

        receipt = await self.l1_client.transact(
            tb.l1_gateway_router,
            L1GatewayRouter.SET_GATEWAYS,
            tokens,
            gateways,
            estimate.gas_limit,
            estimate.max_fee_per_gas,
            estimate.max_submission_cost,
            value=estimate.deposit,
        )
        for token in tokens:
            self.resolver.forget(token)
        logger.info(
            f"Set gateways for {len(tokens)} tokens",
            context=self._log_context(
                "set_gateways", tx_hash=to_hex_str(receipt["transactionHash"])
            ),
        )
        return self._deposit_result(receipt)
