"""
Unit tests for manual redemption, lifetime extension and cancellation.
"""

import logging

logger = logging.getLogger(__name__)

import pytest

from fakes import FINALIZE_GAS, REDEEM_OVERHEAD_GAS
from rollupbridge.chain import to_hex_str
from rollupbridge.errors import AlreadyRedeemed, Expired, MessageNotReady, NoMessageFound
from rollupbridge.message import GasOverride, GasOverrides, MessageStatus, RedeemHandle

ONE_ETH = 10**18
UNDERFUNDED = GasOverrides(gas_limit=GasOverride(base=5))
NO_AUTO_REDEEM = GasOverrides(gas_limit=GasOverride(base=0))


class TestManualRedeem:
    """Test redeeming tickets whose auto-redeem failed."""

    @pytest.mark.asyncio
    async def test_failed_auto_redeem_leaves_ticket_redeemable(
        self, erc20_bridger, standard_token
    ):
        ticket = (await erc20_bridger.deposit(standard_token, 100, overrides=UNDERFUNDED)).ticket
        auto = await ticket.get_auto_redeem_attempt()
        assert auto is not None and auto["status"] == 0
        assert await ticket.status() is MessageStatus.FUNDS_DEPOSITED_ON_L2

    @pytest.mark.asyncio
    async def test_redeem_with_too_little_gas_then_with_estimate(
        self, erc20_bridger, standard_token, l2
    ):
        """A retry that runs out of gas leaves the ticket open for another attempt."""
        ticket = (await erc20_bridger.deposit(standard_token, 100, overrides=UNDERFUNDED)).ticket

        handle = await ticket.redeem(gas_limit=130000)
        failed = await handle.wait_for_redeem()
        assert failed["status"] == 0
        assert await ticket.status() is MessageStatus.FUNDS_DEPOSITED_ON_L2

        handle = await ticket.redeem()
        succeeded = await handle.wait_for_redeem()
        assert succeeded["status"] == 1

        result = await ticket.get_successful_redeem()
        assert result.status is MessageStatus.REDEEMED
        assert result.l2_tx_receipt["transactionHash"] == succeeded["transactionHash"]
        assert ticket.record.redeem_tx_hash == to_hex_str(succeeded["transactionHash"])

        l2_token = await erc20_bridger.get_l2_token_address(standard_token)
        assert l2.token_balance(l2_token, l2.address) == 100

    @pytest.mark.asyncio
    async def test_estimate_redeem_gas(self, erc20_bridger, standard_token):
        ticket = (await erc20_bridger.deposit(standard_token, 100, overrides=UNDERFUNDED)).ticket
        assert await ticket.estimate_redeem_gas() == REDEEM_OVERHEAD_GAS + FINALIZE_GAS

    @pytest.mark.asyncio
    async def test_estimate_redeem_gas_after_redeem(self, eth_bridger):
        ticket = (await eth_bridger.deposit(ONE_ETH)).ticket
        with pytest.raises(AlreadyRedeemed) as exc_info:
            await ticket.estimate_redeem_gas()
        assert exc_info.value.ticket_id == ticket.ticket_id

    @pytest.mark.asyncio
    async def test_estimate_redeem_gas_when_expired(self, eth_bridger, l2, chain_pair):
        ticket = (await eth_bridger.deposit(ONE_ETH, overrides=NO_AUTO_REDEEM)).ticket
        l2.advance_time(chain_pair.retryable_lifetime_seconds + 1)
        with pytest.raises(Expired):
            await ticket.estimate_redeem_gas()

    @pytest.mark.asyncio
    async def test_estimate_redeem_gas_before_creation(self, eth_bridger, l1):
        l1.auto_relay = False
        ticket = (await eth_bridger.deposit(ONE_ETH)).ticket
        with pytest.raises(MessageNotReady):
            await ticket.estimate_redeem_gas()

    @pytest.mark.asyncio
    async def test_redeem_of_missing_ticket_reverts(self, eth_bridger, l2):
        """Redeeming an executed ticket reverts on L2 and schedules nothing."""
        ticket = (await eth_bridger.deposit(ONE_ETH)).ticket
        handle = await ticket.redeem(gas_limit=100000)
        with pytest.raises(NoMessageFound):
            await handle.wait_for_redeem()

    @pytest.mark.asyncio
    async def test_handle_fields(self, eth_bridger):
        ticket = (await eth_bridger.deposit(ONE_ETH, overrides=NO_AUTO_REDEEM)).ticket
        handle = await ticket.redeem()
        assert isinstance(handle, RedeemHandle)
        assert handle.ticket_id == ticket.ticket_id
        assert (await handle.wait_for_redeem())["status"] == 1
        assert await ticket.status() is MessageStatus.REDEEMED


class TestLifetime:
    """Test keepalive and ticket metadata reads."""

    @pytest.mark.asyncio
    async def test_keep_alive_extends_timeout(self, eth_bridger, l2, chain_pair):
        ticket = (await eth_bridger.deposit(ONE_ETH, overrides=NO_AUTO_REDEEM)).ticket
        timeout = await ticket.get_timeout()
        lifetime = await ticket.get_lifetime()
        assert lifetime == chain_pair.retryable_lifetime_seconds

        receipt = await ticket.keep_alive()
        assert receipt["status"] == 1
        assert await ticket.get_timeout() == timeout + lifetime

        l2.advance_time(lifetime + 1)
        assert await ticket.status() is MessageStatus.FUNDS_DEPOSITED_ON_L2

    @pytest.mark.asyncio
    async def test_redeem_found_after_lifetime_extension(self, eth_bridger, l2, chain_pair):
        """The redeem scan follows LifetimeExtended past the original timeout."""
        eth_bridger.tracker.polling.redeem_search_block_range = 1
        ticket = (await eth_bridger.deposit(ONE_ETH, overrides=NO_AUTO_REDEEM)).ticket
        lifetime = chain_pair.retryable_lifetime_seconds
        l2.advance_time(lifetime - 5)
        await ticket.keep_alive()
        l2.advance_time(lifetime)

        handle = await ticket.redeem()
        assert (await handle.wait_for_redeem())["status"] == 1
        assert await ticket.status() is MessageStatus.REDEEMED

    @pytest.mark.asyncio
    async def test_beneficiary(self, eth_bridger, l1):
        ticket = (await eth_bridger.deposit(ONE_ETH, overrides=NO_AUTO_REDEEM)).ticket
        assert await ticket.get_beneficiary() == l1.address


class TestCancel:
    """Test cancelling tickets."""

    @pytest.mark.asyncio
    async def test_cancel_refunds_beneficiary(self, eth_bridger, l2):
        ticket = (await eth_bridger.deposit(ONE_ETH, overrides=NO_AUTO_REDEEM)).ticket
        before = await l2.get_balance(l2.address)

        receipt = await ticket.cancel()
        assert receipt["status"] == 1
        assert not await ticket.exists()
        assert await l2.get_balance(l2.address) == before + ONE_ETH
        assert await ticket.status() is MessageStatus.EXPIRED

    @pytest.mark.asyncio
    async def test_cancel_redeemed_ticket(self, eth_bridger):
        ticket = (await eth_bridger.deposit(ONE_ETH)).ticket
        with pytest.raises(AlreadyRedeemed):
            await ticket.cancel()
