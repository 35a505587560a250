"""
Fee and gas estimation for retryable tickets.

A ticket needs three values to auto-execute on L2: the submission cost that
pays for storing its calldata, the gas limit of the auto-redeem and the max
fee per gas it may pay. Each comes from the chains and is padded by a
percentage margin unless overridden.
"""

from typing import Optional

from ..chain import ChainClient
from ..chain.contracts import NODE_INTERFACE_ADDRESS, Inbox, NodeInterface
from ..errors import ConfigurationError
from ..logging import LogContext, get_logger
from ..networks import ChainPair
from .types import GasOverride, GasOverrides, RetryableGasEstimate, RetryableRequest

logger = get_logger(__name__)

DEFAULT_SUBMISSION_FEE_PERCENT_INCREASE = 300
DEFAULT_GAS_LIMIT_PERCENT_INCREASE = 0
DEFAULT_GAS_PRICE_PERCENT_INCREASE = 200

# Extra balance the NodeInterface estimate assumes the sender holds
ESTIMATE_SENDER_DEPOSIT = 10**18


def percent_increase(num: int, increase: int) -> int:
    return num + num * increase // 100


def _apply(base: int, override: GasOverride, default_percent: int) -> int:
    percent = default_percent if override.percent_increase is None else override.percent_increase
    return max(percent_increase(base, percent), override.minimum)


async def get_base_fee(client: ChainClient) -> int:
    block = await client.get_block("latest")
    base_fee = block.get("baseFeePerGas")
    if base_fee is None:
        raise ConfigurationError(
            "Latest block did not contain a base fee; the chain must support EIP-1559",
            chain_id=client.chain_id,
        )
    return int(base_fee)


class RetryableGasEstimator:
    """Estimates the fee parameters of a retryable ticket."""

    def __init__(self, l1_client: ChainClient, l2_client: ChainClient, chain_pair: ChainPair):
        self.l1_client = l1_client
        self.l2_client = l2_client
        self.chain_pair = chain_pair

    async def estimate_submission_fee(
        self,
        l1_base_fee: int,
        call_data_size: int,
        override: Optional[GasOverride] = None,
    ) -> int:
        override = override or GasOverride()
        if override.base is not None:
            base = override.base
        else:
            base = await self.l1_client.call(
                self.chain_pair.eth_bridge.inbox,
                Inbox.CALCULATE_RETRYABLE_SUBMISSION_FEE,
                call_data_size,
                l1_base_fee,
            )
        return _apply(base, override, DEFAULT_SUBMISSION_FEE_PERCENT_INCREASE)

    async def estimate_max_fee_per_gas(self, override: Optional[GasOverride] = None) -> int:
        override = override or GasOverride()
        base = override.base if override.base is not None else await self.l2_client.gas_price()
        return _apply(base, override, DEFAULT_GAS_PRICE_PERCENT_INCREASE)

    async def estimate_gas_limit(
        self, request: RetryableRequest, override: Optional[GasOverride] = None
    ) -> int:
        override = override or GasOverride()
        if override.base is not None:
            base = override.base
        else:
            data = NodeInterface.ESTIMATE_RETRYABLE_TICKET.encode(
                request.sender,
                ESTIMATE_SENDER_DEPOSIT + request.l2_call_value,
                request.to,
                request.l2_call_value,
                request.excess_fee_refund_address,
                request.call_value_refund_address,
                request.data,
            )
            base = await self.l2_client.estimate_gas(NODE_INTERFACE_ADDRESS, data)
        return _apply(base, override, DEFAULT_GAS_LIMIT_PERCENT_INCREASE)

    async def estimate_all(
        self,
        request: RetryableRequest,
        l1_base_fee: Optional[int] = None,
        overrides: Optional[GasOverrides] = None,
    ) -> RetryableGasEstimate:
        """Estimate every fee knob for ``request`` and the total L1 deposit."""
        overrides = overrides or GasOverrides()
        if l1_base_fee is None:
            l1_base_fee = await get_base_fee(self.l1_client)

        max_submission_cost = await self.estimate_submission_fee(
            l1_base_fee, len(request.data), overrides.max_submission_fee
        )
        max_fee_per_gas = await self.estimate_max_fee_per_gas(overrides.max_fee_per_gas)
        gas_limit = await self.estimate_gas_limit(request, overrides.gas_limit)

        if overrides.deposit.base is not None:
            deposit = overrides.deposit.base
        else:
            deposit = gas_limit * max_fee_per_gas + max_submission_cost + request.l2_call_value

        logger.debug(
            f"Retryable estimate gas_limit={gas_limit} max_fee_per_gas={max_fee_per_gas} "
            f"max_submission_cost={max_submission_cost} deposit={deposit}",
            context=LogContext(
                chain_id=self.chain_pair.dest_chain_id, operation="estimate_retryable"
            ),
        )
        return RetryableGasEstimate(
            gas_limit=gas_limit,
            max_fee_per_gas=max_fee_per_gas,
            max_submission_cost=max_submission_cost,
            deposit=deposit,
        )
