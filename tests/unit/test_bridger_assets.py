"""
Unit tests for the ETH and ERC-20 bridgers.
"""

import logging

logger = logging.getLogger(__name__)

import pytest

from fakes import CUSTOM_L2_TOKEN, FINALIZE_INBOUND_TRANSFER
from rollupbridge import ChainRegistry, EthBridger
from rollupbridge.bridger import MAX_UINT256, GatewayKind
from rollupbridge.chain import checksum
from rollupbridge.chain.contracts import ARB_SYS_ADDRESS, Inbox
from rollupbridge.errors import (
    AlreadyRegistered,
    InsufficientFunds,
    MissingSigner,
    NetworkMismatch,
    NoMessageFound,
)
from rollupbridge.message import GasOverride, GasOverrides, MessageStatus

ONE_ETH = 10**18


class TestEthBridger:
    """Test EthBridger deposits and withdrawals."""

    @pytest.mark.asyncio
    async def test_deposit(self, eth_bridger, l1, l2):
        """The deposit value covers the amount and every fee."""
        l1_before = await l1.get_balance(l1.address)
        l2_before = await l2.get_balance(l2.address)

        result = await eth_bridger.deposit(ONE_ETH)

        sent = l1.sent[-1]
        assert sent["to"] == checksum(eth_bridger.chain_pair.eth_bridge.inbox)
        assert sent["data"][:4] == Inbox.CREATE_RETRYABLE_TICKET.selector
        assert sent["value"] > ONE_ETH
        assert await l1.get_balance(l1.address) == l1_before - sent["value"]

        assert len(result.tickets) == 1
        assert (await result.ticket.wait_for_status()).status is MessageStatus.REDEEMED
        assert await l2.get_balance(l2.address) == l2_before + ONE_ETH

    @pytest.mark.asyncio
    async def test_deposit_to_destination(self, eth_bridger, l2):
        destination = checksum("0x00000000000000000000000000000000000000d1")
        result = await eth_bridger.deposit(ONE_ETH, destination=destination)
        assert result.ticket.params.dest_address == destination
        assert await result.ticket.status() is MessageStatus.REDEEMED
        assert await l2.get_balance(destination) == ONE_ETH

    @pytest.mark.asyncio
    async def test_deposit_insufficient_funds(self, eth_bridger, l1):
        """Nothing is sent when the balance cannot cover amount plus fees."""
        balance = await l1.get_balance(l1.address)
        with pytest.raises(InsufficientFunds) as exc_info:
            await eth_bridger.deposit(balance)
        assert exc_info.value.available == balance
        assert exc_info.value.required > balance
        assert l1.sent == []

    @pytest.mark.asyncio
    async def test_withdraw(self, eth_bridger, l2):
        before = await l2.get_balance(l2.address)
        result = await eth_bridger.withdraw(ONE_ETH)

        withdrawal = result.withdrawal
        assert withdrawal.destination == l2.address
        assert withdrawal.callvalue == ONE_ETH
        assert withdrawal.caller == l2.address
        assert withdrawal.data == b""
        assert result.tickets == []
        assert await l2.get_balance(l2.address) == before - ONE_ETH
        assert l2.sent[-1]["to"] == checksum(ARB_SYS_ADDRESS)

    @pytest.mark.asyncio
    async def test_withdraw_insufficient_funds(self, eth_bridger, l2):
        with pytest.raises(InsufficientFunds):
            await eth_bridger.withdraw(100 * ONE_ETH)
        assert l2.sent == []

    def test_wrong_client_pair(self, l1, l2):
        pair = ChainRegistry().lookup(621)
        with pytest.raises(NetworkMismatch):
            EthBridger(l1, l2, pair)

    def test_from_registry(self, l1, l2):
        registry = ChainRegistry()
        registry.add_default_local_network()
        bridger = EthBridger.from_registry(registry, l1, l2)
        assert bridger.chain_pair.dest_chain_id == l2.chain_id

    @pytest.mark.asyncio
    async def test_read_only_client_cannot_deposit(self, l1, l2, chain_pair):
        l1.account = None
        with pytest.raises(MissingSigner):
            await EthBridger(l1, l2, chain_pair).deposit(ONE_ETH)


class TestErc20Bridger:
    """Test Erc20Bridger deposits and withdrawals."""

    @pytest.mark.asyncio
    async def test_deposit_approves_and_mints(self, erc20_bridger, l1, l2, standard_token):
        assert await erc20_bridger.allowance(standard_token) == 0

        result = await erc20_bridger.deposit(standard_token, 100)

        gateway = await erc20_bridger.get_l1_gateway_address(standard_token)
        assert await erc20_bridger.allowance(standard_token) == MAX_UINT256
        assert l1.token_balance(standard_token, l1.address) == 900
        assert l1.token_balance(standard_token, gateway) == 100

        ticket = result.ticket
        assert ticket.params.dest_address == await erc20_bridger.get_l2_gateway_address(
            standard_token
        )
        assert ticket.params.data[:4] == FINALIZE_INBOUND_TRANSFER.selector
        assert (await ticket.wait_for_status()).status is MessageStatus.REDEEMED

        l2_token = await erc20_bridger.get_l2_token_address(standard_token)
        assert l2.token_balance(l2_token, l2.address) == 100

    @pytest.mark.asyncio
    async def test_existing_allowance_is_reused(self, erc20_bridger, l1, standard_token):
        await erc20_bridger.approve_token(standard_token, 500)
        sent_before = len(l1.sent)
        await erc20_bridger.deposit(standard_token, 100)
        assert len(l1.sent) == sent_before + 1
        assert await erc20_bridger.allowance(standard_token) == 400

    @pytest.mark.asyncio
    async def test_deposit_insufficient_tokens(self, erc20_bridger, l1, standard_token):
        with pytest.raises(InsufficientFunds) as exc_info:
            await erc20_bridger.deposit(standard_token, 1001)
        assert exc_info.value.asset == standard_token
        assert l1.sent == []

    @pytest.mark.asyncio
    async def test_insufficient_eth_sends_no_approval(self, erc20_bridger, l1, standard_token):
        """Fees are checked before the gateway is approved."""
        l1.balances[l1.address.lower()] = 1
        with pytest.raises(InsufficientFunds) as exc_info:
            await erc20_bridger.deposit(standard_token, 100)
        assert exc_info.value.asset == "ETH"
        assert exc_info.value.available == 1
        assert l1.sent == []
        assert await erc20_bridger.allowance(standard_token) == 0

    @pytest.mark.asyncio
    async def test_deposit_override_sets_value(self, erc20_bridger, l1, standard_token):
        overrides = GasOverrides(deposit=GasOverride(base=ONE_ETH))
        result = await erc20_bridger.deposit(standard_token, 100, overrides=overrides)
        assert l1.sent[-1]["value"] == ONE_ETH
        assert result.ticket.params.l1_value == ONE_ETH

    @pytest.mark.asyncio
    async def test_withdraw(self, erc20_bridger, l2, chain_pair, standard_token):
        """The withdrawal message is addressed to the token's L1 gateway."""
        await erc20_bridger.deposit(standard_token, 100)
        l2_token = await erc20_bridger.get_l2_token_address(standard_token)

        result = await erc20_bridger.withdraw(standard_token, 10)

        withdrawal = result.withdrawal
        assert withdrawal.destination == checksum(chain_pair.token_bridge.l1_erc20_gateway)
        assert withdrawal.caller == checksum(chain_pair.token_bridge.l2_erc20_gateway)
        assert withdrawal.callvalue == 0
        args = FINALIZE_INBOUND_TRANSFER.decode_input(withdrawal.data)
        assert args[0] == standard_token
        assert args[3] == 10
        assert l2.token_balance(l2_token, l2.address) == 90

    @pytest.mark.asyncio
    async def test_withdraw_insufficient_tokens(self, erc20_bridger, standard_token):
        await erc20_bridger.deposit(standard_token, 100)
        with pytest.raises(InsufficientFunds):
            await erc20_bridger.withdraw(standard_token, 101)

    @pytest.mark.asyncio
    async def test_withdrawal_record_requires_event(self, erc20_bridger, standard_token):
        result = await erc20_bridger.deposit(standard_token, 100)
        with pytest.raises(NoMessageFound):
            erc20_bridger._withdrawal_result(result.source_receipt)


class TestAdminErc20Bridger:
    """Test custom gateway registration."""

    @pytest.mark.asyncio
    async def test_register_custom_token(self, admin_bridger, l1, l2, chain_pair, custom_token):
        """Registration creates two tickets: gateway and router."""
        tb = chain_pair.token_bridge
        result = await admin_bridger.register_custom_token(custom_token, CUSTOM_L2_TOKEN)

        assert len(result.tickets) == 2
        gateway_ticket, router_ticket = result.tickets
        assert gateway_ticket.params.dest_address == checksum(tb.l2_custom_gateway)
        assert router_ticket.params.dest_address == checksum(tb.l2_gateway_router)
        assert gateway_ticket.params.max_fee_per_gas == router_ticket.params.max_fee_per_gas
        for ticket in result.tickets:
            assert (await ticket.wait_for_status()).status is MessageStatus.REDEEMED

        assert l1.custom_gateway_tokens[custom_token.lower()] == checksum(CUSTOM_L2_TOKEN)
        assert l2.router_gateways[custom_token.lower()] == checksum(tb.l2_custom_gateway)
        assert l2.custom_gateway_tokens[custom_token.lower()] == checksum(CUSTOM_L2_TOKEN)

        route = await admin_bridger.resolve_gateway(custom_token)
        assert route.kind is GatewayKind.CUSTOM
        assert route.dest_token == checksum(CUSTOM_L2_TOKEN)

    @pytest.mark.asyncio
    async def test_register_twice(self, admin_bridger, l1, custom_token):
        """A second registration fails before sending and leaves the mapping alone."""
        await admin_bridger.register_custom_token(custom_token, CUSTOM_L2_TOKEN)
        sent = len(l1.sent)
        other_l2 = checksum("0x00000000000000000000000000000000000beef1")

        with pytest.raises(AlreadyRegistered) as exc_info:
            await admin_bridger.register_custom_token(custom_token, other_l2)

        assert exc_info.value.token == custom_token
        assert len(l1.sent) == sent
        assert l1.custom_gateway_tokens[custom_token.lower()] == checksum(CUSTOM_L2_TOKEN)

    @pytest.mark.asyncio
    async def test_deposit_through_custom_gateway(
        self, admin_bridger, l1, l2, chain_pair, custom_token
    ):
        await admin_bridger.register_custom_token(custom_token, CUSTOM_L2_TOKEN)
        result = await admin_bridger.deposit(custom_token, 50)

        l1_gateway = checksum(chain_pair.token_bridge.l1_custom_gateway)
        assert l1.token_balance(custom_token, l1_gateway) == 50
        assert (await result.ticket.wait_for_status()).status is MessageStatus.REDEEMED
        assert l2.token_balance(CUSTOM_L2_TOKEN, l2.address) == 50

    @pytest.mark.asyncio
    async def test_set_gateways(self, admin_bridger, l1, l2, chain_pair, standard_token):
        tb = chain_pair.token_bridge
        result = await admin_bridger.set_gateways([standard_token], [tb.l1_custom_gateway])
        assert (await result.ticket.wait_for_status()).status is MessageStatus.REDEEMED
        assert l1.router_gateways[standard_token.lower()] == checksum(tb.l1_custom_gateway)
        assert l2.router_gateways[standard_token.lower()] == checksum(tb.l2_custom_gateway)

    @pytest.mark.asyncio
    async def test_set_gateways_length_mismatch(self, admin_bridger, standard_token):
        with pytest.raises(ValueError):
            await admin_bridger.set_gateways([standard_token], [])

