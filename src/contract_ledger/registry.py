"""Process-wide contract registry for contract-ledger library."""

import threading
from typing import Any, Dict, Iterator, List, Mapping, Optional, Union

from .types import ContractRecord


class ContractRegistry:
    """
    Mapping from contract key to its current ContractRecord.

    Records are immutable; an update builds a merged copy and swaps it in
    under a lock, so readers see either the old or the new record.
    """

    def __init__(
        self,
        initial: Optional[Mapping[str, Union[ContractRecord, Mapping[str, Any]]]] = None,
    ):
        """
        Initialize the registry.

        Args:
            initial: Initial contract set, key -> record or key -> field mapping
        """
        self._lock = threading.RLock()
        self._contracts: Dict[str, ContractRecord] = {}
        for key, contract in (initial or {}).items():
            self.update(key, contract)

    def get(self, key: str) -> Optional[ContractRecord]:
        """
        Get the record stored under a key.

        Returns:
            ContractRecord, or None if the key is unknown
        """
        return self._contracts.get(key)

    def lookup_by_address(self, address: Optional[str]) -> Optional[ContractRecord]:
        """
        Find the first record deployed at an address.

        Hex addresses are compared case-insensitively, so checksummed and
        lowercase forms match.

        Args:
            address: Contract address

        Returns:
            ContractRecord, or None if no record has this address
        """
        if address is None:
            return None

        wanted = address.lower()
        # Linear scan, first match wins
        for record in list(self._contracts.values()):
            if record.address is not None and record.address.lower() == wanted:
                return record
        return None

    def update(
        self, key: str, partial: Union[ContractRecord, Mapping[str, Any]]
    ) -> ContractRecord:
        """
        Merge fields into the record for a key, creating it if absent.

        Fields not present in `partial` keep their stored value.

        Args:
            key: Contract key
            partial: Field mapping (or a record, whose non-None fields are used)

        Returns:
            The stored record after the merge

        Raises:
            TypeError: If `partial` names an unknown field
        """
        if isinstance(partial, ContractRecord):
            changes = {
                name: value
                for name, value in vars(partial).items()
                if value is not None and name != "key"
            }
        else:
            changes = {name: value for name, value in partial.items() if name != "key"}

        with self._lock:
            current = self._contracts.get(key) or ContractRecord(key=key)
            merged = current.merged(changes)
            self._contracts[key] = merged
            return merged

    def address(self, key: str) -> Optional[str]:
        record = self.get(key)
        return record.address if record else None

    def name(self, key: str) -> Optional[str]:
        record = self.get(key)
        return record.name if record else None

    def abi(self, key: str) -> Optional[List[Dict[str, Any]]]:
        record = self.get(key)
        return record.abi if record else None

    def bytecode(self, key: str) -> Optional[str]:
        record = self.get(key)
        return record.bytecode if record else None

    def keys(self) -> List[str]:
        return list(self._contracts.keys())

    def snapshot(self) -> Dict[str, ContractRecord]:
        """
        Get metadata-only copies of every record.

        Returns:
            Dictionary mapping key -> record without abi, bytecode and instance
        """
        with self._lock:
            return {key: record.metadata() for key, record in self._contracts.items()}

    def __contains__(self, key: object) -> bool:
        return key in self._contracts

    def __len__(self) -> int:
        return len(self._contracts)

    def __iter__(self) -> Iterator[str]:
        return iter(self.keys())
