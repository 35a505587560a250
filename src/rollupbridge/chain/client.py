"""
Async JSON-RPC client for one ledger.

Wraps web3's ``AsyncWeb3`` with the handful of calls the bridge needs:
contract reads, gas estimation, signed transaction submission, receipts,
blocks and log queries. Transport failures are retried with the client's
``RetryPolicy``; a missing receipt is reported as ``None`` rather than raised.
"""

import asyncio
import time
from typing import Any, Dict, List, Mapping, Optional, Sequence, Union

from eth_account.signers.local import LocalAccount
from web3 import AsyncHTTPProvider, AsyncWeb3
from web3.exceptions import TransactionNotFound

from ..config import ChainClientConfig
from ..errors import (
    CancelToken,
    MissingSigner,
    TransactionNotMined,
    TransientChainError,
    cancellable_sleep,
    retry_async,
)
from ..logging import LogContext, get_logger
from .abi import ContractFunction, HexLike, checksum, to_bytes, to_hex_str

logger = get_logger(__name__)

Receipt = Mapping[str, Any]
BlockIdentifier = Union[int, str]


class ChainClient:
    """Chain client for one ledger (L1 or L2)."""

    def __init__(
        self,
        config: ChainClientConfig,
        account: Optional[LocalAccount] = None,
        w3: Optional[AsyncWeb3] = None,
    ):
        self.config = config
        self.account = account
        self._w3 = w3
        self._send_lock = asyncio.Lock()

    @property
    def w3(self) -> AsyncWeb3:
        if self._w3 is None:
            self._w3 = AsyncWeb3(AsyncHTTPProvider(self.config.rpc_url))
        return self._w3

    @property
    def chain_id(self) -> int:
        return self.config.chain_id

    @property
    def has_signer(self) -> bool:
        return self.account is not None

    @property
    def address(self) -> str:
        if self.account is None:
            raise MissingSigner(
                f"No signer configured for chain {self.chain_id}", chain_id=self.chain_id
            )
        return checksum(self.account.address)

    async def _request(self, operation: str, func, *args, **kwargs):
        async def attempt():
            try:
                return await func(*args, **kwargs)
            except (OSError, asyncio.TimeoutError) as e:
                logger.warning(
                    f"RPC {operation} failed: {e}",
                    context=LogContext(chain_id=self.chain_id, operation=operation),
                )
                raise TransientChainError(f"RPC {operation} failed: {e}", cause=e) from e

        return await retry_async(attempt, policy=self.config.retry_policy())

    # Reads

    async def raw_call(
        self,
        to: str,
        data: HexLike,
        sender: Optional[str] = None,
        value: int = 0,
        block: BlockIdentifier = "latest",
    ) -> bytes:
        tx: Dict[str, Any] = {"to": checksum(to), "data": to_hex_str(data), "value": value}
        if sender is not None:
            tx["from"] = checksum(sender)
        result = await self._request("eth_call", self.w3.eth.call, tx, block)
        return bytes(result)

    async def call(
        self,
        to: str,
        function: ContractFunction,
        *args: Any,
        sender: Optional[str] = None,
        value: int = 0,
        block: BlockIdentifier = "latest",
    ) -> Any:
        """Call a view function and decode its return value."""
        data = function.encode(*args)
        result = await self.raw_call(to, data, sender=sender, value=value, block=block)
        return function.decode_output(result)

    async def estimate_gas(
        self,
        to: str,
        data: HexLike = b"",
        sender: Optional[str] = None,
        value: int = 0,
    ) -> int:
        tx: Dict[str, Any] = {"to": checksum(to), "data": to_hex_str(data), "value": value}
        if sender is not None:
            tx["from"] = checksum(sender)
        elif self.account is not None:
            tx["from"] = self.address
        return int(await self._request("eth_estimateGas", self.w3.eth.estimate_gas, tx))

    async def get_balance(self, address: str, block: BlockIdentifier = "latest") -> int:
        return int(
            await self._request("eth_getBalance", self.w3.eth.get_balance, checksum(address), block)
        )

    async def get_block(self, block: BlockIdentifier = "latest") -> Mapping[str, Any]:
        return await self._request("eth_getBlockByNumber", self.w3.eth.get_block, block)

    async def block_number(self) -> int:
        async def fetch():
            return await self.w3.eth.block_number

        return int(await self._request("eth_blockNumber", fetch))

    async def gas_price(self) -> int:
        async def fetch():
            return await self.w3.eth.gas_price

        return int(await self._request("eth_gasPrice", fetch))

    async def get_logs(
        self,
        address: str,
        topics: Sequence[Optional[HexLike]],
        from_block: BlockIdentifier,
        to_block: BlockIdentifier,
    ) -> List[Mapping[str, Any]]:
        params = {
            "address": checksum(address),
            "topics": [to_hex_str(t) if t is not None else None for t in topics],
            "fromBlock": from_block,
            "toBlock": to_block,
        }
        return list(await self._request("eth_getLogs", self.w3.eth.get_logs, params))

    async def get_receipt(self, tx_hash: HexLike) -> Optional[Receipt]:
        """Receipt of ``tx_hash`` or ``None`` when it is not mined yet."""

        async def fetch():
            try:
                return await self.w3.eth.get_transaction_receipt(to_hex_str(tx_hash))
            except TransactionNotFound:
                return None

        return await self._request("eth_getTransactionReceipt", fetch)

    async def wait_for_receipt(
        self,
        tx_hash: HexLike,
        timeout: Optional[float] = None,
        cancel_token: Optional[CancelToken] = None,
    ) -> Receipt:
        """Poll until ``tx_hash`` is mined.

        Raises ``TransactionNotMined`` once ``timeout`` (default
        ``config.receipt_timeout``) elapses.
        """
        timeout = self.config.receipt_timeout if timeout is None else timeout
        deadline = time.monotonic() + timeout
        tx_hex = to_hex_str(tx_hash)

        while True:
            receipt = await self.get_receipt(tx_hex)
            if receipt is not None:
                return receipt
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                raise TransactionNotMined(tx_hex, timeout=timeout)
            logger.debug(
                "Waiting for receipt",
                context=LogContext(chain_id=self.chain_id, tx_hash=tx_hex),
            )
            await cancellable_sleep(
                min(self.config.receipt_poll_interval, remaining),
                cancel_token,
                "wait_for_receipt",
            )

    # Writes

    async def _fee_fields(self) -> Dict[str, int]:
        block = await self.get_block("latest")
        base_fee = block.get("baseFeePerGas")
        if base_fee is None:
            return {"gasPrice": await self.gas_price()}

        async def fetch_priority():
            return await self.w3.eth.max_priority_fee

        priority = int(await self._request("eth_maxPriorityFeePerGas", fetch_priority))
        return {"maxFeePerGas": 2 * int(base_fee) + priority, "maxPriorityFeePerGas": priority}

    async def send_transaction(
        self,
        to: str,
        data: HexLike = b"",
        value: int = 0,
        gas: Optional[int] = None,
    ) -> str:
        """Sign and broadcast a transaction; returns its hash."""
        sender = self.address
        if gas is None:
            estimate = await self.estimate_gas(to, data, sender=sender, value=value)
            gas = estimate + estimate * self.config.gas_limit_buffer_percent // 100

        async with self._send_lock:
            nonce = await self._request(
                "eth_getTransactionCount",
                self.w3.eth.get_transaction_count,
                sender,
                "pending",
            )
            tx = {
                "from": sender,
                "to": checksum(to),
                "value": value,
                "data": to_bytes(data),
                "nonce": nonce,
                "chainId": self.chain_id,
                "gas": gas,
            }
            tx.update(await self._fee_fields())
            signed = self.account.sign_transaction(tx)
            tx_hash = await self.w3.eth.send_raw_transaction(signed.raw_transaction)

        tx_hex = to_hex_str(tx_hash)
        logger.info(
            f"Submitted transaction to {tx['to']}",
            context=LogContext(chain_id=self.chain_id, tx_hash=tx_hex, operation="send"),
            extra={"value": value, "gas": gas},
        )
        return tx_hex

    async def transact(
        self,
        to: str,
        function: ContractFunction,
        *args: Any,
        value: int = 0,
        gas: Optional[int] = None,
    ) -> Receipt:
        """Send a contract call and wait for its receipt."""
        tx_hash = await self.send_transaction(to, function.encode(*args), value=value, gas=gas)
        return await self.wait_for_receipt(tx_hash)
