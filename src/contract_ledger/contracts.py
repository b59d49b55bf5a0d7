"""Main API for contract-ledger library."""

import os
from functools import partial
from pathlib import Path
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Union

from .artifacts import load_contract_artifact, load_contract_files
from .constants import CONTRACTS_BUILD_PATH_ENV, EVENT_POLL_INTERVAL, LEDGER_RPC_URL_ENV
from .deployer import Deployer
from .enrichment import EventLogEnricher
from .filters import EventCallback, EventLogSource, parse_block_range
from .invoker import ContractInvoker
from .ledger import Ledger, Web3Ledger
from .receipts import TransactionConfirmationPoller
from .registry import ContractRegistry
from .replay import (
    MultiSourceOrderedReplayer,
    ReplayCallback,
    ReplayHandle,
    SingleSourceReplayer,
)
from .types import AtAddress, ContractRecord

ContractSet = Mapping[str, Union[ContractRecord, Mapping[str, Any]]]


class SmartContracts:
    """Manages contract metadata and all interaction with the ledger."""

    def __init__(
        self,
        registry: ContractRegistry,
        ledger: Ledger,
        build_dir: Optional[Union[Path, str]] = None,
        print_gas_usage: bool = False,
        poll_interval: Optional[float] = None,
    ):
        """
        Wire the registry and ledger into the contract services.

        Args:
            registry: Contract registry
            ledger: Ledger transport
            build_dir: Build artifacts directory
                       (defaults to ./resources/public/contracts/build)
            print_gas_usage: Log gas used by each deployment
            poll_interval: Seconds between receipt queries
        """
        self.registry = registry
        self.ledger = ledger
        self.build_dir = build_dir

        if poll_interval is None:
            self.poller = TransactionConfirmationPoller(ledger)
        else:
            self.poller = TransactionConfirmationPoller(ledger, poll_interval)
        self.invoker = ContractInvoker(registry, ledger)
        self.deployer = Deployer(
            registry,
            ledger,
            self.poller,
            partial(load_contract_artifact, build_dir=build_dir),
            print_gas_usage=print_gas_usage,
        )
        self.enricher = EventLogEnricher(registry)
        self.single_replayer = SingleSourceReplayer(self.enricher)
        self.ordered_replayer = MultiSourceOrderedReplayer(self.enricher)

    @classmethod
    def start(
        cls,
        contracts: ContractSet,
        ledger: Ledger,
        build_dir: Optional[Union[Path, str]] = None,
        **kwargs: Any,
    ) -> "SmartContracts":
        """
        Build the registry from an initial contract set and load its artifacts.

        Args:
            contracts: key -> record (or field mapping with name/address/forwards_to)
            ledger: Ledger transport
            build_dir: Build artifacts directory
            **kwargs: Passed to SmartContracts()

        Returns:
            SmartContracts instance
        """
        registry = ContractRegistry(contracts)
        for key in registry.keys():
            registry.update(key, load_contract_files(registry.get(key), ledger, build_dir))
        return cls(registry, ledger, build_dir=build_dir, **kwargs)

    @classmethod
    def from_env(
        cls,
        contracts: ContractSet,
        rpc_url: Optional[str] = None,
        build_dir: Optional[Union[Path, str]] = None,
        **kwargs: Any,
    ) -> "SmartContracts":
        """
        Start against a JSON-RPC node configured by arguments or environment.

        Args:
            contracts: Initial contract set
            rpc_url: Node URL (defaults to $LEDGER_RPC_URL)
            build_dir: Build artifacts directory (defaults to $CONTRACTS_BUILD_PATH,
                       then ./resources/public/contracts/build)
            **kwargs: Passed to SmartContracts()

        Raises:
            ValueError: If no RPC URL is configured
        """
        if rpc_url is None:
            rpc_url = os.environ.get(LEDGER_RPC_URL_ENV)
        if rpc_url is None:
            raise ValueError(
                f"RPC URL required: set ${LEDGER_RPC_URL_ENV} environment variable "
                "or pass rpc_url parameter"
            )
        if build_dir is None:
            build_dir = os.environ.get(CONTRACTS_BUILD_PATH_ENV)

        return cls.start(contracts, Web3Ledger(rpc_url), build_dir=build_dir, **kwargs)

    # Registry access

    def contract(self, contract_key: str) -> Optional[ContractRecord]:
        return self.registry.get(contract_key)

    def contract_address(self, contract_key: str) -> Optional[str]:
        return self.registry.address(contract_key)

    def contract_name(self, contract_key: str) -> Optional[str]:
        return self.registry.name(contract_key)

    def contract_abi(self, contract_key: str) -> Optional[List[Dict[str, Any]]]:
        return self.registry.abi(contract_key)

    def contract_bytecode(self, contract_key: str) -> Optional[str]:
        return self.registry.bytecode(contract_key)

    def contract_by_address(self, address: str) -> Optional[ContractRecord]:
        return self.registry.lookup_by_address(address)

    def update_contract(
        self, contract_key: str, contract: Union[ContractRecord, Mapping[str, Any]]
    ) -> ContractRecord:
        return self.registry.update(contract_key, contract)

    def instance(self, contract_key: str, contract_key_or_address: Optional[str] = None) -> Any:
        """
        Get a bound instance for a key.

        Args:
            contract_key: Contract key
            contract_key_or_address: Bind the key's interface at this address
                                     (or at this other contract's address)
        """
        if contract_key_or_address is None:
            return self.invoker.resolve(contract_key)
        return self.invoker.resolve(AtAddress(contract_key, contract_key_or_address))

    # Ledger interaction

    async def deploy_smart_contract(
        self,
        contract_key: str,
        args: Sequence[Any] = (),
        options: Optional[Mapping[str, Any]] = None,
        **wait_options: Any,
    ) -> ContractRecord:
        """Deploy a contract; see Deployer.deploy."""
        return await self.deployer.deploy(contract_key, args, options, **wait_options)

    async def contract_call(
        self,
        contract: Any,
        method: str,
        args: Sequence[Any] = (),
        options: Optional[Mapping[str, Any]] = None,
    ) -> Any:
        """Call a contract method; see ContractInvoker.call."""
        return await self.invoker.call(contract, method, args, options)

    async def wait_for_tx_receipt(self, tx_hash: str, **wait_options: Any) -> Dict[str, Any]:
        """Wait until a transaction is mined; see TransactionConfirmationPoller."""
        return await self.poller.wait_for_receipt(tx_hash, **wait_options)

    async def contract_event_in_tx(self, tx_hash: str, contract: Any, event: str) -> Optional[Dict[str, Any]]:
        return await self.invoker.event_in_tx(tx_hash, contract, event)

    async def contract_events_in_tx(self, tx_hash: str, contract: Any, event: str) -> List[Dict[str, Any]]:
        return await self.invoker.events_in_tx(tx_hash, contract, event)

    # Events

    def create_event_filter(
        self,
        contract: Any,
        event: str,
        argument_filters: Optional[Dict[str, Any]] = None,
        block_range: Union[str, Mapping[str, Any], None] = None,
        on_event: Optional[EventCallback] = None,
        ignore_forward: bool = False,
        poll_interval: float = EVENT_POLL_INTERVAL,
    ) -> EventLogSource:
        """
        Create a log source for one contract event.

        Args:
            contract: Contract reference (key, (key, address-or-key) pair, instance)
            event: Event name as declared in the ABI
            argument_filters: Indexed argument values to match, e.g. {"owner": "0x..."}
            block_range: "latest" for new events only, or
                         {"from_block": 0, "to_block": 100}
            on_event: If given, watch live: on_event(error, log) per new log.
                      Requires a running event loop.
            ignore_forward: Use a forwarding key's own interface
            poll_interval: Seconds between filter queries while watching

        Returns:
            EventLogSource usable for replay or live watching
        """
        from_block, to_block = parse_block_range(block_range)
        source = EventLogSource(
            self.ledger,
            self.invoker.resolve(contract, ignore_forward=ignore_forward),
            event,
            argument_filters,
            from_block,
            to_block,
        )
        if on_event is not None:
            source.watch(on_event, self.enricher, poll_interval)
        return source

    def replay_past_events(
        self,
        source: EventLogSource,
        callback: ReplayCallback,
        delay: float = 0,
        transform: Optional[Callable[[list], Any]] = None,
        on_finish: Optional[Callable[[], Any]] = None,
    ) -> ReplayHandle:
        """Replay one source's history; see SingleSourceReplayer.start."""
        return self.single_replayer.start(
            source, callback, delay=delay, transform=transform, on_finish=on_finish
        )

    def replay_past_events_in_order(
        self,
        sources: Sequence[EventLogSource],
        callback: Optional[ReplayCallback],
        delay: float = 0,
        transform: Optional[Callable[[list], Any]] = None,
        on_finish: Optional[Callable[[list], Any]] = None,
    ) -> ReplayHandle:
        """Replay several sources in block order; see MultiSourceOrderedReplayer.start."""
        return self.ordered_replayer.start(
            sources, callback, delay=delay, transform=transform, on_finish=on_finish
        )
