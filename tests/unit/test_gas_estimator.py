"""
Unit tests for retryable ticket fee estimation.
"""

import logging

logger = logging.getLogger(__name__)
from unittest.mock import AsyncMock, Mock

import pytest

from fakes import L1_BASE_FEE, L2_GAS_PRICE, TRANSFER_GAS
from rollupbridge.chain.contracts import NODE_INTERFACE_ADDRESS, NodeInterface
from rollupbridge.errors import ConfigurationError
from rollupbridge.message import (
    GasOverride,
    GasOverrides,
    RetryableGasEstimator,
    RetryableRequest,
    get_base_fee,
    percent_increase,
)


@pytest.fixture
def estimator(l1, l2, chain_pair):
    return RetryableGasEstimator(l1, l2, chain_pair)


@pytest.fixture
def eth_request(l1):
    return RetryableRequest(
        sender=l1.address,
        to=l1.address,
        l2_call_value=1000,
        excess_fee_refund_address=l1.address,
        call_value_refund_address=l1.address,
    )


class TestPercentIncrease:
    def test_values(self):
        assert percent_increase(100, 0) == 100
        assert percent_increase(100, 300) == 400
        assert percent_increase(3, 50) == 4


class TestRetryableGasEstimator:
    """Test RetryableGasEstimator defaults and overrides."""

    @pytest.mark.asyncio
    async def test_defaults(self, estimator, eth_request):
        """Submission fee +300%, gas limit unchanged, max fee per gas +200%."""
        estimate = await estimator.estimate_all(eth_request)
        submission_base = 1400 * L1_BASE_FEE
        assert estimate.max_submission_cost == submission_base * 4
        assert estimate.gas_limit == TRANSFER_GAS
        assert estimate.max_fee_per_gas == L2_GAS_PRICE * 3
        assert estimate.deposit == (
            estimate.gas_limit * estimate.max_fee_per_gas
            + estimate.max_submission_cost
            + eth_request.l2_call_value
        )

    @pytest.mark.asyncio
    async def test_submission_fee_grows_with_calldata(self, estimator):
        small = await estimator.estimate_submission_fee(L1_BASE_FEE, 0)
        large = await estimator.estimate_submission_fee(L1_BASE_FEE, 100)
        assert large - small == 4 * 600 * L1_BASE_FEE

    @pytest.mark.asyncio
    async def test_zero_base_override_is_honoured(self, estimator, eth_request):
        """A gas limit of zero skips auto-redeem and must not be replaced."""
        overrides = GasOverrides(gas_limit=GasOverride(base=0))
        estimate = await estimator.estimate_all(eth_request, overrides=overrides)
        assert estimate.gas_limit == 0
        assert estimate.deposit == estimate.max_submission_cost + eth_request.l2_call_value

    @pytest.mark.asyncio
    async def test_percent_override(self, estimator):
        fee = await estimator.estimate_max_fee_per_gas(GasOverride(percent_increase=0))
        assert fee == L2_GAS_PRICE

    @pytest.mark.asyncio
    async def test_minimum_override(self, estimator):
        fee = await estimator.estimate_max_fee_per_gas(
            GasOverride(base=1, percent_increase=0, minimum=5000)
        )
        assert fee == 5000

    @pytest.mark.asyncio
    async def test_deposit_override(self, estimator, eth_request):
        overrides = GasOverrides(deposit=GasOverride(base=123))
        estimate = await estimator.estimate_all(eth_request, overrides=overrides)
        assert estimate.deposit == 123

    @pytest.mark.asyncio
    async def test_gas_limit_estimate_funds_the_sender(self, chain_pair, eth_request):
        """The NodeInterface estimate assumes the sender holds the call value plus 1 ETH."""
        l2 = Mock()
        l2.estimate_gas = AsyncMock(return_value=50000)
        estimator = RetryableGasEstimator(Mock(), l2, chain_pair)

        assert await estimator.estimate_gas_limit(eth_request) == 50000
        to, data = l2.estimate_gas.await_args.args
        assert to == NODE_INTERFACE_ADDRESS
        args = NodeInterface.ESTIMATE_RETRYABLE_TICKET.decode_input(data)
        assert args[1] == 10**18 + eth_request.l2_call_value


class TestGetBaseFee:
    @pytest.mark.asyncio
    async def test_reads_latest_block(self, l1):
        assert await get_base_fee(l1) == L1_BASE_FEE

    @pytest.mark.asyncio
    async def test_missing_base_fee(self):
        client = Mock(chain_id=5)
        client.get_block = AsyncMock(return_value={"number": 1})
        with pytest.raises(ConfigurationError):
            await get_base_fee(client)
