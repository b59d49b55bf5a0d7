"""Custom exception classes for contract-ledger library."""

from typing import Any, Dict, Optional


class LedgerError(Exception):
    """Base exception for contract-ledger errors."""

    pass


class TransportError(LedgerError, RuntimeError):
    """Raised when the ledger node cannot be reached or rejects a request."""

    pass


class ConfirmationTimeoutError(LedgerError, TimeoutError):
    """Raised when bounded receipt polling runs out of attempts or time."""

    pass


class ConfirmationCancelledError(LedgerError):
    """Raised when receipt polling is cancelled through its cancel event."""

    pass


class MalformedReferenceError(LedgerError, ValueError):
    """Raised when a contract reference cannot be resolved to an instance."""

    pass


class ContractNotFoundError(MalformedReferenceError):
    """Raised when a contract key is not present in the registry."""

    pass


class ForwardingCycleError(MalformedReferenceError):
    """Raised when a forwards-to chain loops or grows past the depth limit."""

    pass


class LinkingError(LedgerError, ValueError):
    """Raised when a library placeholder cannot be resolved to an address."""

    pass


class ArtifactNotFoundError(LedgerError, FileNotFoundError):
    """Raised when no build artifact exists for a contract."""

    pass


class DeploymentError(LedgerError):
    """Base exception for deployment-related errors."""

    pass


class IncompleteReceiptError(DeploymentError):
    """
    Raised when a deployment receipt lacks gas used or block number.

    The registry is left untouched; the receipt is kept for inspection.
    """

    def __init__(self, message: str, receipt: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.receipt = receipt
