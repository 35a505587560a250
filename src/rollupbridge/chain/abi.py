"""
ABI codec for the bridge contracts.

Functions and events are described by their Solidity signatures and encoded
with ``eth_abi``, so the library does not depend on JSON ABI artifacts or on a
particular web3 contract factory.
"""

from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

from eth_abi import decode as abi_decode
from eth_abi import encode as abi_encode
from eth_utils import keccak, to_checksum_address
from hexbytes import HexBytes

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"

HexLike = Union[str, bytes, bytearray, HexBytes]


def to_bytes(value: HexLike) -> bytes:
    """Coerce a hex string or bytes-like value to ``bytes``."""
    if isinstance(value, str):
        return bytes(HexBytes(value))
    return bytes(value)


def to_hex_str(value: HexLike) -> str:
    """Lowercase ``0x``-prefixed hex string."""
    return "0x" + to_bytes(value).hex()


def checksum(address: HexLike) -> str:
    if isinstance(address, (bytes, bytearray)):
        address = to_hex_str(address)
    return to_checksum_address(address)


def is_zero_address(address: Optional[str]) -> bool:
    return address is None or int(address, 16) == 0


def same_address(a: Optional[str], b: Optional[str]) -> bool:
    if a is None or b is None:
        return False
    return a.lower() == b.lower()


def _split_types(types: str) -> Tuple[str, ...]:
    types = types.strip()
    return tuple(t.strip() for t in types.split(",")) if types else ()


def _normalize(abi_type: str, value: Any) -> Any:
    if abi_type == "address":
        return to_checksum_address(value)
    if abi_type == "address[]":
        return [to_checksum_address(v) for v in value]
    return value


def decode_values(types: Sequence[str], data: HexLike) -> Tuple[Any, ...]:
    """Decode ABI data, returning addresses in checksum form."""
    values = abi_decode(list(types), to_bytes(data))
    return tuple(_normalize(t, v) for t, v in zip(types, values))


@dataclass(frozen=True)
class ContractFunction:
    """A contract function identified by its signature."""

    name: str
    inputs: Tuple[str, ...] = ()
    outputs: Tuple[str, ...] = ()

    @classmethod
    def parse(cls, signature: str, returns: str = "") -> "ContractFunction":
        """Build from ``"name(type1,type2)"`` and an optional ``"out1,out2"``."""
        name, _, rest = signature.partition("(")
        return cls(name.strip(), _split_types(rest.rstrip(")")), _split_types(returns))

    @property
    def signature(self) -> str:
        return f"{self.name}({','.join(self.inputs)})"

    @property
    def selector(self) -> bytes:
        return keccak(text=self.signature)[:4]

    def encode(self, *args: Any) -> bytes:
        if len(args) != len(self.inputs):
            raise ValueError(
                f"{self.signature} expects {len(self.inputs)} arguments, got {len(args)}"
            )
        return self.selector + abi_encode(list(self.inputs), list(args))

    def decode_input(self, data: HexLike) -> Tuple[Any, ...]:
        raw = to_bytes(data)
        if raw[:4] != self.selector:
            raise ValueError(f"Calldata is not a call to {self.signature}")
        return decode_values(self.inputs, raw[4:])

    def decode_output(self, data: HexLike) -> Any:
        """Decode return data; a single output is unwrapped."""
        if not self.outputs:
            return None
        values = decode_values(self.outputs, data)
        return values[0] if len(values) == 1 else tuple(values)

    def encode_output(self, *values: Any) -> bytes:
        return abi_encode(list(self.outputs), list(values))


@dataclass(frozen=True)
class EventParam:
    name: str
    type: str
    indexed: bool = False


@dataclass(frozen=True)
class ContractEvent:
    """A contract event with named, optionally indexed parameters.

    Indexed parameters are restricted to static types, which is all the
    bridge contracts use.
    """

    name: str
    params: Tuple[EventParam, ...]

    @classmethod
    def parse(cls, name: str, params: Sequence[Tuple[str, str, bool]]) -> "ContractEvent":
        return cls(name, tuple(EventParam(n, t, i) for n, t, i in params))

    @property
    def signature(self) -> str:
        return f"{self.name}({','.join(p.type for p in self.params)})"

    @property
    def topic(self) -> bytes:
        return keccak(text=self.signature)

    @property
    def topic_hex(self) -> str:
        return to_hex_str(self.topic)

    def _indexed(self) -> List[EventParam]:
        return [p for p in self.params if p.indexed]

    def _unindexed(self) -> List[EventParam]:
        return [p for p in self.params if not p.indexed]

    def matches(self, log: Mapping[str, Any], address: Optional[str] = None) -> bool:
        topics = log.get("topics") or []
        if not topics or to_bytes(topics[0]) != self.topic:
            return False
        if address is not None and not same_address(log.get("address"), address):
            return False
        return len(topics) == len(self._indexed()) + 1

    def decode_log(self, log: Mapping[str, Any]) -> Dict[str, Any]:
        """Decode a log into a dict of event arguments."""
        if not self.matches(log):
            raise ValueError(f"Log is not a {self.signature} event")

        args: Dict[str, Any] = {}
        for param, topic in zip(self._indexed(), log["topics"][1:]):
            args[param.name] = decode_values([param.type], topic)[0]

        unindexed = self._unindexed()
        if unindexed:
            values = decode_values([p.type for p in unindexed], log.get("data", b""))
            for param, value in zip(unindexed, values):
                args[param.name] = value
        return args

    def filter_logs(
        self, logs: Iterable[Mapping[str, Any]], address: Optional[str] = None
    ) -> List[Dict[str, Any]]:
        """Decode every log matching this event (and ``address`` when given)."""
        return [self.decode_log(log) for log in logs if self.matches(log, address)]

    def build_log(self, address: str, **values: Any) -> Dict[str, Any]:
        """Encode arguments into the ``address``/``topics``/``data`` log shape."""
        topics = [self.topic]
        for param in self._indexed():
            topics.append(abi_encode([param.type], [values[param.name]]))
        unindexed = self._unindexed()
        data = abi_encode([p.type for p in unindexed], [values[p.name] for p in unindexed])
        return {
            "address": checksum(address),
            "topics": [HexBytes(t) for t in topics],
            "data": HexBytes(data),
        }
