"""
Chain registry.

Static tables of the supported L1/L2 chain pairs and the contract addresses
deployed on them. A ``ChainRegistry`` owns its own copy of the tables; custom
pairs are added through ``add_custom_network`` which validates that both sides
agree on their partnership.
"""

import os
import threading
from dataclasses import dataclass, field, replace
from typing import Dict, Optional, Tuple

from .errors import ConfigurationError, NetworkMismatch, UnknownNetwork
from .logging import get_logger

logger = get_logger(__name__)

SEVEN_DAYS_IN_SECONDS = 7 * 24 * 60 * 60


@dataclass(frozen=True)
class EthBridge:
    """Core rollup contracts on L1."""

    bridge: str = ""
    inbox: str = ""
    outbox: str = ""
    rollup: str = ""
    sequencer_inbox: str = ""


@dataclass(frozen=True)
class TokenBridge:
    """Token gateway contracts on both sides."""

    l1_custom_gateway: str = ""
    l1_erc20_gateway: str = ""
    l1_gateway_router: str = ""
    l1_multicall: str = ""
    l1_proxy_admin: str = ""
    l1_weth: str = ""
    l1_weth_gateway: str = ""
    l2_custom_gateway: str = ""
    l2_erc20_gateway: str = ""
    l2_gateway_router: str = ""
    l2_multicall: str = ""
    l2_proxy_admin: str = ""
    l2_weth: str = ""
    l2_weth_gateway: str = ""


@dataclass(frozen=True)
class L1Network:
    chain_id: int
    name: str
    block_time: int
    partner_chain_ids: Tuple[int, ...] = ()
    rpc_url: str = ""
    explorer_url: str = ""
    is_custom: bool = False


@dataclass(frozen=True)
class L2Network:
    chain_id: int
    name: str
    partner_chain_id: int
    confirm_period_blocks: int
    eth_bridge: EthBridge = field(default_factory=EthBridge)
    token_bridge: TokenBridge = field(default_factory=TokenBridge)
    retryable_lifetime_seconds: int = SEVEN_DAYS_IN_SECONDS
    deposit_timeout_ms: int = 1800000
    rpc_url: str = ""
    explorer_url: str = ""
    is_custom: bool = False
    nitro_genesis_block: int = 0
    nitro_genesis_l1_block: int = 0


@dataclass(frozen=True)
class ChainPair:
    """An L1 (source) and L2 (destination) chain that bridge to each other."""

    source_chain_id: int
    dest_chain_id: int
    confirmation_period_blocks: int
    retryable_lifetime_seconds: int
    deposit_timeout_ms: int
    l1: L1Network
    l2: L2Network

    @property
    def eth_bridge(self) -> EthBridge:
        return self.l2.eth_bridge

    @property
    def token_bridge(self) -> TokenBridge:
        return self.l2.token_bridge


def _rpc(env_name: str, default: str) -> str:
    return os.environ.get(env_name) or default


def _builtin_l1_networks() -> Dict[int, L1Network]:
    return {
        1: L1Network(
            chain_id=1,
            name="Mainnet",
            block_time=14,
            partner_chain_ids=(620,),
            rpc_url=_rpc("L1_MAINNET_RPC_URL", "https://rpc.ankr.com/eth"),
            explorer_url="https://etherscan.io",
        ),
        11155111: L1Network(
            chain_id=11155111,
            name="Sepolia",
            block_time=12,
            partner_chain_ids=(621,),
            rpc_url=_rpc("L1_SEPOLIA_RPC_URL", "https://rpc.sepolia.org"),
            explorer_url="https://sepolia.etherscan.io",
        ),
        56: L1Network(
            chain_id=56,
            name="Binance Smart Chain",
            block_time=3,
            partner_chain_ids=(630,),
            rpc_url=_rpc("L1_BSC_MAINNET_RPC_URL", "https://bsc-dataseed1.binance.org"),
            explorer_url="https://bscscan.com",
        ),
        97: L1Network(
            chain_id=97,
            name="Binance Smart Chain Testnet",
            block_time=3,
            partner_chain_ids=(631,),
            rpc_url=_rpc(
                "L1_BSC_TESTNET_RPC_URL", "https://data-seed-prebsc-1-s1.binance.org:8545"
            ),
            explorer_url="https://testnet.bscscan.com",
        ),
    }


def _builtin_l2_networks() -> Dict[int, L2Network]:
    mainnet_rpc = _rpc("L2_ECOBLOCK_MAINNET_RPC_URL", "https://rpc.ecoblock.tech")
    testnet_rpc = _rpc("L2_ECOBLOCK_TESTNET_RPC_URL", "https://rpc.ecoblock.tech")
    return {
        620: L2Network(
            chain_id=620,
            name="EcoBlock Mainnet",
            partner_chain_id=1,
            confirm_period_blocks=45818,
            eth_bridge=EthBridge(
                bridge="0x7bebf467ecbfe4e70814e10622e20474216f6329",
                inbox="0x0a1a2b5e9e86f28ede54e1b3821496a61fcf06bc",
                outbox="0xa8c62f6e47d4d3013f0daadc4a5b74b87f53f583",
                rollup="0x84fe05f541cee93d0b02e03cd4319c29ba0030a2",
                sequencer_inbox="0xe66a9277357f695b312e3d90045853e8b4b25e1b",
            ),
            rpc_url=mainnet_rpc,
            explorer_url="https://ecoscan.io",
        ),
        621: L2Network(
            chain_id=621,
            name="EcoBlock Sepolia Testnet",
            partner_chain_id=11155111,
            confirm_period_blocks=20,
            eth_bridge=EthBridge(
                bridge="0x043d53d7883f81c947963f11d25130b97061c22a",
                inbox="0xe44f80a5d59975e058b33cd62569b4ae2cbe30e1",
                outbox="0xd7560ec4ec67350830222c616f590cb3efce2347",
                rollup="0x8da4f0c8e6ffb168a6e9ae75af2866a9d24ae30c",
                sequencer_inbox="0xc5eca22b8f79a11bde3f304021b7e6abbf60f851",
            ),
            rpc_url=testnet_rpc,
            explorer_url="https://testnet.ecoscan.io",
        ),
        630: L2Network(
            chain_id=630,
            name="EcoBlock Mainnet",
            partner_chain_id=1,
            confirm_period_blocks=20,
            rpc_url=mainnet_rpc,
            explorer_url="https://ecoscan.io",
        ),
        631: L2Network(
            chain_id=631,
            name="EcoBlock Testnet",
            partner_chain_id=97,
            confirm_period_blocks=20,
            eth_bridge=EthBridge(
                bridge="0xed16681b27f3239ef352f51fa5b03460b863c29f",
                inbox="0x812f40cc7b0fdaa7387de75368e175367e6fec56",
                outbox="0x04bf8e8aeb38139bd4ab88971ee44c0ddaa6cbe8",
                rollup="0x719adb12dbadc772b5160a5fbf32e398229c0939",
                sequencer_inbox="0x70f3117c714c9e09c53db431afd10360a6c17a56",
            ),
            rpc_url=testnet_rpc,
            explorer_url="https://testnet.ecoscan.io",
        ),
    }


LOCAL_L1_NETWORK = L1Network(
    chain_id=1337,
    name="EthLocal",
    block_time=10,
    partner_chain_ids=(412346,),
    is_custom=True,
)

LOCAL_L2_NETWORK = L2Network(
    chain_id=412346,
    name="ArbLocal",
    partner_chain_id=1337,
    confirm_period_blocks=20,
    eth_bridge=EthBridge(
        bridge="0x2b360a9881f21c3d7aa0ea6ca0de2a3341d4ef3c",
        inbox="0xff4a24b22f94979e9ba5f3eb35838aa814bad6f1",
        outbox="0x49940929c7cA9b50Ff57a01d3a92817A414E6B9B",
        rollup="0x65a59d67da8e710ef9a01eca37f83f84aedec416",
        sequencer_inbox="0xe7362d0787b51d8c72d504803e5b1d6dcda89540",
    ),
    token_bridge=TokenBridge(
        l1_custom_gateway="0x3DF948c956e14175f43670407d5796b95Bb219D8",
        l1_erc20_gateway="0x4A2bA922052bA54e29c5417bC979Daaf7D5Fe4f4",
        l1_gateway_router="0x525c2aBA45F66987217323E8a05EA400C65D06DC",
        l1_multicall="0xDB2D15a3EB70C347E0D2C2c7861cAFb946baAb48",
        l1_proxy_admin="0xe1080224B632A93951A7CFA33EeEa9Fd81558b5e",
        l1_weth="0x408Da76E87511429485C32E4Ad647DD14823Fdc4",
        l1_weth_gateway="0xF5FfD11A55AFD39377411Ab9856474D2a7Cb697e",
        l2_custom_gateway="0x525c2aBA45F66987217323E8a05EA400C65D06DC",
        l2_erc20_gateway="0xe1080224B632A93951A7CFA33EeEa9Fd81558b5e",
        l2_gateway_router="0x1294b86822ff4976BfE136cB06CF43eC7FCF2574",
        l2_multicall="0xDB2D15a3EB70C347E0D2C2c7861cAFb946baAb48",
        l2_proxy_admin="0xda52b25ddB0e3B9CC393b0690Ac62245Ac772527",
        l2_weth="0x408Da76E87511429485C32E4Ad647DD14823Fdc4",
        l2_weth_gateway="0x4A2bA922052bA54e29c5417bC979Daaf7D5Fe4f4",
    ),
    retryable_lifetime_seconds=604800,
    deposit_timeout_ms=900000,
    is_custom=True,
)


class ChainRegistry:
    """Owned store of L1/L2 network definitions.

    Each registry starts from its own copy of the built-in tables, so
    registering a custom network on one instance never leaks into another.
    """

    def __init__(
        self,
        l1_networks: Optional[Dict[int, L1Network]] = None,
        l2_networks: Optional[Dict[int, L2Network]] = None,
    ):
        self._l1: Dict[int, L1Network] = dict(
            _builtin_l1_networks() if l1_networks is None else l1_networks
        )
        self._l2: Dict[int, L2Network] = dict(
            _builtin_l2_networks() if l2_networks is None else l2_networks
        )
        self._lock = threading.RLock()

    @property
    def l1_networks(self) -> Dict[int, L1Network]:
        with self._lock:
            return dict(self._l1)

    @property
    def l2_networks(self) -> Dict[int, L2Network]:
        with self._lock:
            return dict(self._l2)

    def is_l1(self, chain_id: int) -> bool:
        with self._lock:
            return chain_id in self._l1

    def get_l1_network(self, chain_id: int) -> L1Network:
        with self._lock:
            network = self._l1.get(chain_id)
        if network is None:
            raise UnknownNetwork(chain_id)
        return network

    def get_l2_network(self, chain_id: int) -> L2Network:
        with self._lock:
            network = self._l2.get(chain_id)
        if network is None:
            raise UnknownNetwork(chain_id)
        return network

    def lookup(self, chain_id: int) -> ChainPair:
        """Return the chain pair identified by an L2 id, or an L1 id with one partner."""
        with self._lock:
            if chain_id in self._l2:
                l2 = self._l2[chain_id]
            elif chain_id in self._l1:
                partners = self._l1[chain_id].partner_chain_ids
                if len(partners) != 1:
                    raise ConfigurationError(
                        f"L1 network {chain_id} has {len(partners)} partner chains; "
                        "look up the pair by its L2 chain id",
                        chain_id=chain_id,
                    )
                l2 = self.get_l2_network(partners[0])
            else:
                raise UnknownNetwork(chain_id)

            l1 = self._l1.get(l2.partner_chain_id)
            if l1 is None:
                raise UnknownNetwork(l2.partner_chain_id)
            if l2.chain_id not in l1.partner_chain_ids:
                raise NetworkMismatch(
                    f"L1 network {l1.chain_id} does not list {l2.chain_id} as a partner",
                    chain_id=l2.chain_id,
                )

        return ChainPair(
            source_chain_id=l1.chain_id,
            dest_chain_id=l2.chain_id,
            confirmation_period_blocks=l2.confirm_period_blocks,
            retryable_lifetime_seconds=l2.retryable_lifetime_seconds,
            deposit_timeout_ms=l2.deposit_timeout_ms,
            l1=l1,
            l2=l2,
        )

    def lookup_pair(self, l1_chain_id: int, l2_chain_id: int) -> ChainPair:
        """Look up ``l2_chain_id`` and check that it is paired with ``l1_chain_id``."""
        pair = self.lookup(l2_chain_id)
        if pair.dest_chain_id != l2_chain_id or pair.source_chain_id != l1_chain_id:
            raise NetworkMismatch(
                f"Chain {l2_chain_id} is not the L2 partner of chain {l1_chain_id}",
                chain_id=l2_chain_id,
            )
        return pair

    def add_custom_network(
        self, l2_network: L2Network, l1_network: Optional[L1Network] = None
    ) -> ChainPair:
        """Register a custom L2 (and optionally its L1).

        Both networks must be flagged ``is_custom`` and must not already be
        registered. The L2's partner must be a known L1; that L1 gains the L2
        in its partner list when it does not already have it.
        """
        with self._lock:
            if l1_network is not None:
                if l1_network.chain_id in self._l1:
                    raise ConfigurationError(
                        f"Network {l1_network.chain_id} already included",
                        chain_id=l1_network.chain_id,
                    )
                if not l1_network.is_custom:
                    raise ConfigurationError(
                        f"Custom network {l1_network.chain_id} must have is_custom set",
                        chain_id=l1_network.chain_id,
                    )

            if l2_network.chain_id in self._l2:
                raise ConfigurationError(
                    f"Network {l2_network.chain_id} already included",
                    chain_id=l2_network.chain_id,
                )
            if not l2_network.is_custom:
                raise ConfigurationError(
                    f"Custom network {l2_network.chain_id} must have is_custom set",
                    chain_id=l2_network.chain_id,
                )

            if l1_network is not None and l1_network.chain_id != l2_network.partner_chain_id:
                raise NetworkMismatch(
                    f"Network {l2_network.chain_id} names {l2_network.partner_chain_id} "
                    f"as its partner, not {l1_network.chain_id}",
                    chain_id=l2_network.chain_id,
                )

            partner = l1_network
            if partner is None:
                partner = self._l1.get(l2_network.partner_chain_id)
            if partner is None:
                raise NetworkMismatch(
                    f"Network {l2_network.chain_id}'s partner network, "
                    f"{l2_network.partner_chain_id}, not recognized",
                    chain_id=l2_network.chain_id,
                )

            if l1_network is not None:
                self._l1[l1_network.chain_id] = l1_network
            if l2_network.chain_id not in partner.partner_chain_ids:
                partner = replace(
                    partner,
                    partner_chain_ids=partner.partner_chain_ids + (l2_network.chain_id,),
                )
            self._l1[partner.chain_id] = partner
            self._l2[l2_network.chain_id] = l2_network

            logger.info(
                f"Registered custom network {l2_network.name} ({l2_network.chain_id}) "
                f"with partner {partner.chain_id}"
            )
            return self.lookup(l2_network.chain_id)

    def add_default_local_network(self) -> Tuple[L1Network, L2Network]:
        """Register the pair run by a local Nitro dev node."""
        self.add_custom_network(LOCAL_L2_NETWORK, LOCAL_L1_NETWORK)
        return self.get_l1_network(LOCAL_L1_NETWORK.chain_id), self.get_l2_network(
            LOCAL_L2_NETWORK.chain_id
        )
