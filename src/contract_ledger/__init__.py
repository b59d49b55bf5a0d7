"""
contract-ledger: Python library for managing smart contract metadata, deployments and event replay
"""

from importlib.metadata import PackageNotFoundError, version

from .contracts import SmartContracts
from .deployer import Deployer
from .enrichment import EventLogEnricher, normalize_event_name
from .exceptions import (
    ArtifactNotFoundError,
    ConfirmationCancelledError,
    ConfirmationTimeoutError,
    ContractNotFoundError,
    DeploymentError,
    ForwardingCycleError,
    IncompleteReceiptError,
    LedgerError,
    LinkingError,
    MalformedReferenceError,
    TransportError,
)
from .filters import EventLogSource
from .invoker import ContractInvoker
from .ledger import Ledger, Web3Ledger
from .linking import link_contract_libraries, link_library
from .receipts import TransactionConfirmationPoller
from .registry import ContractRegistry
from .replay import MultiSourceOrderedReplayer, ReplayHandle, ReplayState, SingleSourceReplayer
from .types import AtAddress, Bound, ByKey, ContractArtifact, ContractRecord, EventLog

try:
    __version__ = version("contract-ledger")
except PackageNotFoundError:
    __version__ = None

__all__ = [
    "SmartContracts",
    "ContractRegistry",
    "TransactionConfirmationPoller",
    "ContractInvoker",
    "Deployer",
    "EventLogEnricher",
    "EventLogSource",
    "SingleSourceReplayer",
    "MultiSourceOrderedReplayer",
    "ReplayHandle",
    "ReplayState",
    "Ledger",
    "Web3Ledger",
    "link_library",
    "link_contract_libraries",
    "normalize_event_name",
    "ContractRecord",
    "ContractArtifact",
    "EventLog",
    "ByKey",
    "AtAddress",
    "Bound",
    "LedgerError",
    "TransportError",
    "ConfirmationTimeoutError",
    "ConfirmationCancelledError",
    "MalformedReferenceError",
    "ContractNotFoundError",
    "ForwardingCycleError",
    "LinkingError",
    "ArtifactNotFoundError",
    "DeploymentError",
    "IncompleteReceiptError",
]
