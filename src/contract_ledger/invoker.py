"""Contract reference resolution and method dispatch."""

from typing import Any, Dict, List, Mapping, Optional, Sequence

from eth_utils import is_hex_address

from .constants import DEFAULT_GAS, MAX_FORWARD_DEPTH
from .exceptions import ContractNotFoundError, ForwardingCycleError
from .ledger import Ledger
from .registry import ContractRegistry
from .types import AtAddress, Bound, ByKey, ContractRecord, as_contract_ref


async def apply_tx_defaults(ledger: Ledger, options: Optional[Mapping[str, Any]]) -> Dict[str, Any]:
    """
    Fill the default sender and gas limit into transaction options.

    Args:
        ledger: Ledger used to look up the first account
        options: Caller options, left unmodified

    Returns:
        New options dict with "from" and "gas" set
    """
    params = dict(options or {})
    if not params.get("from"):
        accounts = await ledger.accounts()
        params["from"] = accounts[0] if accounts else None
    if not params.get("gas"):
        params["gas"] = DEFAULT_GAS
    return params


class ContractInvoker:
    """Resolves contract references to bound instances and calls methods on them."""

    def __init__(self, registry: ContractRegistry, ledger: Ledger):
        self.registry = registry
        self.ledger = ledger

    def _record(self, key: str) -> ContractRecord:
        record = self.registry.get(key)
        if record is None:
            raise ContractNotFoundError(f"Contract '{key}' not found in registry")
        return record

    def interface_record(self, key: str) -> ContractRecord:
        """
        Follow the forwards-to chain from a key to the record owning the interface.

        Args:
            key: Contract key

        Returns:
            Last record of the chain (the key's own record if it does not forward)

        Raises:
            ContractNotFoundError: If a key in the chain is unknown
            ForwardingCycleError: If the chain loops or exceeds MAX_FORWARD_DEPTH
        """
        seen: List[str] = [key]
        record = self._record(key)
        while record.forwards_to:
            target = record.forwards_to
            if target in seen:
                raise ForwardingCycleError(
                    f"Forwarding cycle: {' -> '.join(seen + [target])}"
                )
            if len(seen) > MAX_FORWARD_DEPTH:
                raise ForwardingCycleError(
                    f"Forwarding chain from '{key}' longer than {MAX_FORWARD_DEPTH}"
                )
            seen.append(target)
            record = self._record(target)
        return record

    def _target_address(self, target: str) -> Optional[str]:
        record = self.registry.get(target)
        if record is not None:
            return record.address
        if is_hex_address(target):
            return target
        raise ContractNotFoundError(f"'{target}' is neither a contract key nor an address")

    def resolve(self, contract: Any, ignore_forward: bool = False) -> Any:
        """
        Resolve a contract reference to a callable instance.

        Args:
            contract: Registry key, (key, address-or-key) pair, bound instance,
                      or a ByKey / AtAddress / Bound reference
            ignore_forward: Bind a forwarding key's own interface instead of
                            the interface it forwards to

        Returns:
            Bound contract instance

        Raises:
            ContractNotFoundError: If a referenced key is unknown
            ForwardingCycleError: If forwarding does not terminate
        """
        ref = as_contract_ref(contract)

        match ref:
            case ByKey(key=key) if ignore_forward:
                record = self._record(key)
                return self.ledger.bind_instance(record.abi, record.address)
            case ByKey(key=key):
                record = self._record(key)
                if not record.forwards_to:
                    if record.instance is None:
                        return self.ledger.bind_instance(record.abi, record.address)
                    return record.instance
                # Proxy: implementation interface at the proxy's own address
                interface = self.interface_record(key)
                return self.ledger.bind_instance(interface.abi, record.address)
            case AtAddress(key=key, target=target):
                record = self._record(key)
                return self.ledger.bind_instance(record.abi, self._target_address(target))
            case Bound(instance=instance):
                return instance

    async def call(
        self,
        contract: Any,
        method: str,
        args: Sequence[Any] = (),
        options: Optional[Mapping[str, Any]] = None,
    ) -> Any:
        """
        Call a contract method.

        Read-only methods return their value, state-changing methods return
        the transaction hash; the ledger decides which from the interface.

        Args:
            contract: Contract reference (see resolve)
            method: Contract function name
            args: Positional arguments for the function
            options: Transaction options ("from", "gas", "value", ...) plus
                     "ignore_forward"

        Returns:
            Method return value or transaction hash

        Raises:
            TransportError: If the ledger rejects the call
            MalformedReferenceError: If the reference cannot be resolved
        """
        options = dict(options or {})
        ignore_forward = bool(options.pop("ignore_forward", False))
        instance = self.resolve(contract, ignore_forward=ignore_forward)
        tx_params = await apply_tx_defaults(self.ledger, options)
        return await self.ledger.invoke(instance, method, list(args), tx_params)

    async def events_in_tx(
        self, tx_hash: str, contract: Any, event: str
    ) -> List[Dict[str, Any]]:
        """
        Get the events of one type a contract emitted in a transaction.

        Args:
            tx_hash: Transaction hash
            contract: Contract reference; only logs from its address are kept
            event: Event name

        Returns:
            Decoded raw logs, in receipt order
        """
        instance = self.resolve(contract)
        address = getattr(instance, "address", None)
        logs = await self.ledger.decode_receipt_events(instance, event, tx_hash)
        return [
            log
            for log in logs
            if address is None or str(log["address"]).lower() == str(address).lower()
        ]

    async def event_in_tx(
        self, tx_hash: str, contract: Any, event: str
    ) -> Optional[Dict[str, Any]]:
        """First event of a type emitted by a contract in a transaction, or None."""
        logs = await self.events_in_tx(tx_hash, contract, event)
        return logs[0] if logs else None
