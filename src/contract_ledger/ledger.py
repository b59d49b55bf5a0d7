"""Ledger transport interface and its web3.py implementation."""

import asyncio
from abc import ABC, abstractmethod
from concurrent.futures import ThreadPoolExecutor
from functools import partial
from typing import Any, Callable, Dict, List, Optional, Sequence, Union

import requests
from loguru import logger
from web3 import HTTPProvider, Web3
from web3.exceptions import TransactionNotFound, Web3Exception
from web3.logs import DISCARD

from .constants import RPC_TIMEOUT
from .exceptions import TransportError

BlockSpec = Union[int, str]

READ_ONLY_MUTABILITY = ("view", "pure")


class Ledger(ABC):
    """
    Primitives the core needs from a ledger node.

    Every coroutine raises TransportError when the node cannot serve the
    request. Raw logs are dictionaries with the keys address, event, args,
    block_number, transaction_index, log_index, transaction_hash and
    block_hash.
    """

    @abstractmethod
    async def accounts(self) -> List[str]:
        """Accounts available for signing, first one is the default sender."""

    @abstractmethod
    async def get_transaction_receipt(self, tx_hash: str) -> Optional[Dict[str, Any]]:
        """Receipt for a transaction, or None if it is not mined yet."""

    @abstractmethod
    async def submit_contract_creation(
        self,
        abi: List[Dict[str, Any]],
        bytecode: str,
        args: Sequence[Any],
        tx_params: Dict[str, Any],
    ) -> str:
        """Send a contract creation transaction and return its hash."""

    @abstractmethod
    def bind_instance(self, abi: Optional[List[Dict[str, Any]]], address: Optional[str]) -> Any:
        """Bind an interface descriptor to an address."""

    @abstractmethod
    async def invoke(
        self, instance: Any, method: str, args: Sequence[Any], tx_params: Dict[str, Any]
    ) -> Any:
        """Call a read-only method or transact a state-changing one."""

    @abstractmethod
    async def get_logs(
        self,
        instance: Any,
        event: str,
        argument_filters: Optional[Dict[str, Any]],
        from_block: BlockSpec,
        to_block: BlockSpec,
    ) -> List[Dict[str, Any]]:
        """Fetch historical logs of one event of a bound instance."""

    @abstractmethod
    async def install_log_filter(
        self,
        instance: Any,
        event: str,
        argument_filters: Optional[Dict[str, Any]],
        from_block: BlockSpec,
        to_block: BlockSpec,
    ) -> Any:
        """Install a node-side filter and return its handle."""

    @abstractmethod
    async def get_filter_changes(self, log_filter: Any) -> List[Dict[str, Any]]:
        """Logs matched by a filter since the previous query."""

    @abstractmethod
    async def uninstall_log_filter(self, log_filter: Any) -> None:
        """Remove a node-side filter."""

    @abstractmethod
    async def decode_receipt_events(
        self, instance: Any, event: str, tx_hash: str
    ) -> List[Dict[str, Any]]:
        """Decode the logs of one event type emitted in a transaction."""


def is_read_only(abi: Optional[List[Dict[str, Any]]], method: str) -> bool:
    """
    Check whether every ABI overload of a method is read-only.

    Args:
        abi: Contract interface descriptor
        method: Function name

    Returns:
        True for view/pure (or legacy constant) functions
    """
    entries = [
        item
        for item in abi or []
        if item.get("type", "function") == "function" and item.get("name") == method
    ]
    if not entries:
        return False
    return all(
        item.get("stateMutability") in READ_ONLY_MUTABILITY or item.get("constant") is True
        for item in entries
    )


def _present(tx_params: Dict[str, Any]) -> Dict[str, Any]:
    return {k: v for k, v in tx_params.items() if v is not None}


def _to_raw_log(entry: Any) -> Dict[str, Any]:
    """Convert a decoded web3 event entry into the raw log shape."""
    return {
        "address": entry["address"],
        "event": entry["event"],
        "args": dict(entry["args"]),
        "block_number": entry["blockNumber"],
        "transaction_index": entry["transactionIndex"],
        "log_index": entry["logIndex"],
        "transaction_hash": Web3.to_hex(entry["transactionHash"]) if entry.get("transactionHash") else None,
        "block_hash": Web3.to_hex(entry["blockHash"]) if entry.get("blockHash") else None,
    }


class Web3Ledger(Ledger):
    """
    Ledger backed by a synchronous web3.py client.

    Blocking JSON-RPC calls run in a thread pool; their results are handed
    back to the event loop that awaited them.
    """

    def __init__(
        self,
        rpc_url: str,
        session: Optional[requests.Session] = None,
        max_workers: int = 4,
        web3: Optional[Web3] = None,
    ):
        """
        Initialize the ledger client.

        Args:
            rpc_url: JSON-RPC endpoint URL
            session: requests session used by the HTTP provider
            max_workers: Thread pool size for blocking RPC calls
            web3: Preconfigured Web3 instance (overrides rpc_url/session)
        """
        if web3 is None:
            web3 = Web3(
                HTTPProvider(
                    rpc_url,
                    request_kwargs={"timeout": RPC_TIMEOUT},
                    session=session or requests.Session(),
                )
            )
        self.web3 = web3
        self.rpc_url = rpc_url
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="web3")

    async def _run(self, func: Callable[..., Any], *args: Any, **kwargs: Any) -> Any:
        loop = asyncio.get_running_loop()
        try:
            return await loop.run_in_executor(self._executor, partial(func, *args, **kwargs))
        except (Web3Exception, requests.RequestException) as e:
            raise TransportError(f"Ledger request failed: {e}") from e

    def close(self) -> None:
        self._executor.shutdown(wait=False)

    async def accounts(self) -> List[str]:
        return list(await self._run(lambda: self.web3.eth.accounts))

    async def get_transaction_receipt(self, tx_hash: str) -> Optional[Dict[str, Any]]:
        def fetch() -> Optional[Dict[str, Any]]:
            try:
                return dict(self.web3.eth.get_transaction_receipt(tx_hash))
            except TransactionNotFound:
                return None

        return await self._run(fetch)

    async def submit_contract_creation(
        self,
        abi: List[Dict[str, Any]],
        bytecode: str,
        args: Sequence[Any],
        tx_params: Dict[str, Any],
    ) -> str:
        factory = self.web3.eth.contract(abi=abi, bytecode=bytecode)
        tx_hash = await self._run(factory.constructor(*args).transact, _present(tx_params))
        return Web3.to_hex(tx_hash)

    def bind_instance(self, abi: Optional[List[Dict[str, Any]]], address: Optional[str]) -> Any:
        if address is None:
            return self.web3.eth.contract(abi=abi or [])
        return self.web3.eth.contract(address=Web3.to_checksum_address(address), abi=abi or [])

    async def invoke(
        self, instance: Any, method: str, args: Sequence[Any], tx_params: Dict[str, Any]
    ) -> Any:
        function = instance.functions[method](*args)
        if is_read_only(instance.abi, method):
            logger.debug(f"call {method} on {instance.address}")
            return await self._run(function.call, _present(tx_params))

        logger.debug(f"transact {method} on {instance.address}")
        tx_hash = await self._run(function.transact, _present(tx_params))
        return Web3.to_hex(tx_hash)

    async def get_logs(
        self,
        instance: Any,
        event: str,
        argument_filters: Optional[Dict[str, Any]],
        from_block: BlockSpec,
        to_block: BlockSpec,
    ) -> List[Dict[str, Any]]:
        contract_event = instance.events[event]()
        entries = await self._run(
            contract_event.get_logs,
            argument_filters=argument_filters,
            from_block=from_block,
            to_block=to_block,
        )
        return [_to_raw_log(entry) for entry in entries]

    async def install_log_filter(
        self,
        instance: Any,
        event: str,
        argument_filters: Optional[Dict[str, Any]],
        from_block: BlockSpec,
        to_block: BlockSpec,
    ) -> Any:
        contract_event = instance.events[event]()
        return await self._run(
            contract_event.create_filter,
            argument_filters=argument_filters,
            from_block=from_block,
            to_block=to_block,
        )

    async def get_filter_changes(self, log_filter: Any) -> List[Dict[str, Any]]:
        entries = await self._run(log_filter.get_new_entries)
        return [_to_raw_log(entry) for entry in entries]

    async def uninstall_log_filter(self, log_filter: Any) -> None:
        await self._run(self.web3.eth.uninstall_filter, log_filter.filter_id)

    async def decode_receipt_events(
        self, instance: Any, event: str, tx_hash: str
    ) -> List[Dict[str, Any]]:
        def decode() -> List[Dict[str, Any]]:
            receipt = self.web3.eth.get_transaction_receipt(tx_hash)
            entries = instance.events[event]().process_receipt(receipt, errors=DISCARD)
            return [_to_raw_log(entry) for entry in entries]

        return await self._run(decode)
