"""ETH bridger: deposits through a retryable ticket, withdrawals through ArbSys."""

from typing import Optional

from ..chain import checksum, to_hex_str
from ..chain.contracts import ARB_SYS_ADDRESS, ArbSys
from ..logging import get_logger
from ..message import (
    GasOverrides,
    RetryableRequest,
    create_retryable_ticket_calldata,
    get_base_fee,
)
from .base import AssetBridger, BridgeTransactionPair

logger = get_logger(__name__)


class EthBridger(AssetBridger):
    """Moves native currency between L1 and L2."""

    async def deposit(
        self,
        amount: int,
        destination: Optional[str] = None,
        overrides: Optional[GasOverrides] = None,
    ) -> BridgeTransactionPair:
        """Deposit ``amount`` wei to ``destination`` (default: the signer) on L2.

        The funds travel as the call value of a retryable ticket with empty
        calldata, so the deposit follows the same lifecycle as token deposits.
        """
        sender = self.l1_client.address
        to = checksum(destination) if destination else sender
        request = RetryableRequest(
            sender=sender,
            to=to,
            l2_call_value=amount,
            excess_fee_refund_address=to,
            call_value_refund_address=to,
            data=b"",
        )
        l1_base_fee = await get_base_fee(self.l1_client)
        estimate = await self.gas_estimator.estimate_all(request, l1_base_fee, overrides)
        await self._require_eth(self.l1_client, estimate.deposit)

        tx_hash = await self.l1_client.send_transaction(
            self.chain_pair.eth_bridge.inbox,
            create_retryable_ticket_calldata(request, estimate),
            value=estimate.deposit,
        )
        logger.info(
            f"Depositing {amount} wei to {to}",
            context=self._log_context("deposit_eth", tx_hash=tx_hash),
        )
        receipt = await self.l1_client.wait_for_receipt(tx_hash)
        return self._deposit_result(receipt)

    async def withdraw(
        self, amount: int, destination: Optional[str] = None
    ) -> BridgeTransactionPair:
        """Withdraw ``amount`` wei from L2 to ``destination`` on L1."""
        to = checksum(destination) if destination else self.l2_client.address
        await self._require_eth(self.l2_client, amount)
        receipt = await self.l2_client.transact(
            ARB_SYS_ADDRESS, ArbSys.WITHDRAW_ETH, to, value=amount
        )
        logger.info(
            f"Withdrew {amount} wei to {to}",
            context=self._log_context(
                "withdraw_eth",
                self.chain_pair.dest_chain_id,
                tx_hash=to_hex_str(receipt["transactionHash"]),
            ),
        )
        return self._withdrawal_result(receipt)
