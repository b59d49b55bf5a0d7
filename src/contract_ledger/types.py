"""Data types and dataclasses for contract-ledger library."""

from dataclasses import dataclass, field, replace
from typing import Any, Dict, List, Mapping, Optional, Union


@dataclass(frozen=True)
class ContractRecord:
    """Metadata and binding for one contract known to the registry."""

    # Required fields
    key: str  # Registry key, e.g. "token"

    # Optional fields (filled by artifact loading and deployment)
    name: Optional[str] = None  # Declared contract name, e.g. "Token"
    abi: Optional[List[Dict[str, Any]]] = None  # Interface descriptor
    bytecode: Optional[str] = None  # Creation bytecode without 0x prefix
    address: Optional[str] = None  # Set once deployed
    instance: Any = None  # Callable bound to address + abi
    forwards_to: Optional[str] = None  # Key of the contract this one proxies

    @property
    def artifact_name(self) -> str:
        """Name used to locate build artifacts."""
        return self.name or self.key

    def merged(self, partial: Mapping[str, Any]) -> "ContractRecord":
        """
        Return a copy with the fields of `partial` applied.

        Fields absent from `partial` keep their current value.

        Raises:
            TypeError: If `partial` names a field ContractRecord does not have
        """
        return replace(self, **dict(partial))

    def metadata(self) -> "ContractRecord":
        """Return a copy without abi, bytecode and instance."""
        return replace(self, abi=None, bytecode=None, instance=None)


@dataclass
class EventLog:
    """An enriched event log as delivered to replay callbacks."""

    address: str
    event: str  # Normalized identifier, e.g. "Transfer" or "value-changed"
    args: Dict[str, Any]
    block_number: int
    transaction_index: int
    log_index: int
    transaction_hash: Optional[str] = None
    block_hash: Optional[str] = None
    contract: Optional[ContractRecord] = None  # Metadata-only owner record
    error: Optional[BaseException] = None  # Error of the source this log came from

    @property
    def ordering_key(self) -> tuple[int, int, int]:
        return (self.block_number, self.transaction_index, self.log_index)


@dataclass
class ContractArtifact:
    """Interface descriptor and bytecode loaded from build output."""

    abi: Optional[List[Dict[str, Any]]] = None
    bytecode: Optional[str] = None
    source_format: Optional[str] = None  # "build-json" or "abi-bin"


# Contract references


@dataclass(frozen=True)
class ByKey:
    """Reference to a registry entry by key."""

    key: str


@dataclass(frozen=True)
class AtAddress:
    """Reference reusing `key`'s interface at another address or contract."""

    key: str
    target: str  # Address literal or registry key


@dataclass(frozen=True)
class Bound:
    """Reference to an already-bound contract instance."""

    instance: Any = field(compare=False)


ContractRef = Union[ByKey, AtAddress, Bound]


def as_contract_ref(value: Any) -> ContractRef:
    """
    Coerce a caller-supplied contract reference into its tagged form.

    Args:
        value: One of
            - a registry key, e.g. "token"
            - a (key, address-or-key) pair, e.g. ("token", "0x1234...")
            - a bound contract instance
            - an already tagged ByKey / AtAddress / Bound

    Returns:
        Tagged contract reference
    """
    if isinstance(value, (ByKey, AtAddress, Bound)):
        return value
    if isinstance(value, str):
        return ByKey(value)
    if isinstance(value, (tuple, list)) and len(value) == 2:
        return AtAddress(value[0], value[1])
    return Bound(value)
