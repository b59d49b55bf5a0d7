"""Shared pytest fixtures for contract-ledger tests."""

import asyncio
import json
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Sequence

import pytest

from contract_ledger.exceptions import TransportError
from contract_ledger.ledger import Ledger, is_read_only
from contract_ledger.registry import ContractRegistry

ACCOUNT_0 = "0x90F8bf6A479f320ead074411a4B0e7944Ea8c9C1"
ACCOUNT_1 = "0xFFcf8FDEE72ac11b5c542428B35EEF5769C409f0"
TOKEN_ADDRESS = "0x1111111111111111111111111111111111111111"
PROXY_ADDRESS = "0x2222222222222222222222222222222222222222"
IMPL_ADDRESS = "0x3333333333333333333333333333333333333333"
LIB_ADDRESS = "0xABCDEF0123456789ABCDEF0123456789ABCDEF01"

TOKEN_ABI: List[Dict[str, Any]] = [
    {
        "type": "constructor",
        "stateMutability": "nonpayable",
        "inputs": [{"name": "supply", "type": "uint256"}],
    },
    {
        "type": "function",
        "name": "balanceOf",
        "stateMutability": "view",
        "inputs": [{"name": "owner", "type": "address"}],
        "outputs": [{"name": "", "type": "uint256"}],
    },
    {
        "type": "function",
        "name": "transfer",
        "stateMutability": "nonpayable",
        "inputs": [
            {"name": "to", "type": "address"},
            {"name": "value", "type": "uint256"},
        ],
        "outputs": [{"name": "", "type": "bool"}],
    },
    {
        "type": "event",
        "name": "Transfer",
        "anonymous": False,
        "inputs": [
            {"name": "from", "type": "address", "indexed": True},
            {"name": "to", "type": "address", "indexed": True},
            {"name": "value", "type": "uint256", "indexed": False},
        ],
    },
]

PROXY_ABI: List[Dict[str, Any]] = [
    {
        "type": "function",
        "name": "setImplementation",
        "stateMutability": "nonpayable",
        "inputs": [{"name": "impl", "type": "address"}],
        "outputs": [],
    },
]

IMPL_ABI: List[Dict[str, Any]] = [
    {
        "type": "function",
        "name": "value",
        "stateMutability": "view",
        "inputs": [],
        "outputs": [{"name": "", "type": "uint256"}],
    },
    {
        "type": "event",
        "name": "valueChanged",
        "anonymous": False,
        "inputs": [{"name": "value", "type": "uint256", "indexed": False}],
    },
]


class FakeInstance:
    """Stand-in for a bound web3 contract."""

    def __init__(self, abi: Optional[List[Dict[str, Any]]], address: Optional[str]):
        self.abi = abi
        self.address = address

    def __repr__(self) -> str:
        return f"FakeInstance({self.address})"


class FakeLedger(Ledger):
    """
    In-memory ledger.

    Receipt answers are scripted per transaction hash: each query consumes
    the next entry (None, a receipt dict, or an exception to raise); the
    last entry repeats.
    """

    def __init__(self, accounts: Optional[List[str]] = None):
        self._accounts = list(accounts) if accounts is not None else [ACCOUNT_0, ACCOUNT_1]
        self.receipt_script: Dict[str, List[Any]] = {}
        self.receipt_queries: List[str] = []
        self.submissions: List[Dict[str, Any]] = []
        self.invocations: List[Dict[str, Any]] = []
        self.results: Dict[str, Any] = {}
        self.logs: Dict[str, List[Dict[str, Any]]] = {}
        self.tx_events: Dict[str, List[Dict[str, Any]]] = {}
        self.filter_changes: List[Any] = []
        self.installed_filters: List[Any] = []
        self.uninstalled_filters: List[Any] = []
        self.next_tx_hash = "0x" + "ab" * 32

    async def accounts(self) -> List[str]:
        return list(self._accounts)

    async def get_transaction_receipt(self, tx_hash: str) -> Optional[Dict[str, Any]]:
        self.receipt_queries.append(tx_hash)
        script = self.receipt_script.get(tx_hash, [None])
        answer = script.pop(0) if len(script) > 1 else script[0]
        if isinstance(answer, BaseException):
            raise answer
        return answer

    async def submit_contract_creation(
        self,
        abi: List[Dict[str, Any]],
        bytecode: str,
        args: Sequence[Any],
        tx_params: Dict[str, Any],
    ) -> str:
        self.submissions.append(
            {"abi": abi, "bytecode": bytecode, "args": list(args), "tx_params": dict(tx_params)}
        )
        return self.next_tx_hash

    def bind_instance(self, abi: Optional[List[Dict[str, Any]]], address: Optional[str]) -> Any:
        return FakeInstance(abi, address)

    async def invoke(
        self, instance: Any, method: str, args: Sequence[Any], tx_params: Dict[str, Any]
    ) -> Any:
        self.invocations.append(
            {
                "instance": instance,
                "method": method,
                "args": list(args),
                "tx_params": dict(tx_params),
                "read_only": is_read_only(instance.abi, method),
            }
        )
        result = self.results.get(method)
        if isinstance(result, BaseException):
            raise result
        return result

    async def get_logs(self, instance, event, argument_filters, from_block, to_block):
        return list(self.logs.get(event, []))

    async def install_log_filter(self, instance, event, argument_filters, from_block, to_block):
        handle = {"event": event, "id": len(self.installed_filters)}
        self.installed_filters.append(handle)
        return handle

    async def get_filter_changes(self, log_filter):
        if not self.filter_changes:
            return []
        answer = self.filter_changes.pop(0)
        if isinstance(answer, BaseException):
            raise answer
        return answer

    async def uninstall_log_filter(self, log_filter) -> None:
        self.uninstalled_filters.append(log_filter)

    async def decode_receipt_events(self, instance, event, tx_hash):
        return [log for log in self.tx_events.get(tx_hash, []) if log["event"] == event]


class StaticSource:
    """Log source answering after an optional delay, or failing."""

    def __init__(
        self,
        logs: Sequence[Dict[str, Any]] = (),
        delay: float = 0,
        error: Optional[BaseException] = None,
        on_fetch: Optional[Callable[[], Any]] = None,
    ):
        self.logs = list(logs)
        self.delay = delay
        self.error = error
        self.on_fetch = on_fetch
        self.fetched = False
        self._stop_listeners: List[Callable[[], Any]] = []

    async def fetch(self) -> List[Dict[str, Any]]:
        if self.delay:
            await asyncio.sleep(self.delay)
        self.fetched = True
        if self.on_fetch is not None:
            self.on_fetch()
        if self.error is not None:
            raise self.error
        return list(self.logs)

    def add_stop_listener(self, listener: Callable[[], Any]) -> None:
        self._stop_listeners.append(listener)

    def remove_stop_listener(self, listener: Callable[[], Any]) -> None:
        if listener in self._stop_listeners:
            self._stop_listeners.remove(listener)

    def stop_watching(self) -> None:
        for listener in self._stop_listeners:
            listener()


def make_raw_log(
    block_number: int,
    transaction_index: int = 0,
    log_index: int = 0,
    event: str = "Transfer",
    address: str = TOKEN_ADDRESS,
    **args: Any,
) -> Dict[str, Any]:
    return {
        "address": address,
        "event": event,
        "args": args,
        "block_number": block_number,
        "transaction_index": transaction_index,
        "log_index": log_index,
        "transaction_hash": f"0x{block_number:064x}",
        "block_hash": None,
    }


@pytest.fixture
def ledger() -> FakeLedger:
    """Return an in-memory ledger."""
    return FakeLedger()


@pytest.fixture
def registry(ledger: FakeLedger) -> ContractRegistry:
    """Return a registry with a token, a library and a proxy -> impl pair."""
    return ContractRegistry(
        {
            "token": {
                "name": "Token",
                "abi": TOKEN_ABI,
                "address": TOKEN_ADDRESS,
                "instance": ledger.bind_instance(TOKEN_ABI, TOKEN_ADDRESS),
            },
            "lib": {"name": "SafeMath", "address": LIB_ADDRESS},
            "impl": {
                "name": "Impl",
                "abi": IMPL_ABI,
                "address": IMPL_ADDRESS,
                "instance": ledger.bind_instance(IMPL_ABI, IMPL_ADDRESS),
            },
            "proxy": {
                "name": "Proxy",
                "abi": PROXY_ABI,
                "address": PROXY_ADDRESS,
                "forwards_to": "impl",
            },
        }
    )


@pytest.fixture
def build_dir(tmp_path: Path) -> Path:
    """Create a build directory with a JSON artifact and an abi/bin pair."""
    build = tmp_path / "build"
    build.mkdir()
    (build / "Token.json").write_text(
        json.dumps({"abi": TOKEN_ABI, "bytecode": "0x6060604052"})
    )
    (build / "Impl.abi").write_text(json.dumps(IMPL_ABI))
    (build / "Impl.bin").write_text("60606040\n")
    return build
