"""Contract deployment for contract-ledger library."""

import asyncio
from typing import Any, Callable, Mapping, Optional, Sequence

from loguru import logger

from .constants import TX_PARAM_KEYS
from .exceptions import ContractNotFoundError, DeploymentError, IncompleteReceiptError
from .invoker import apply_tx_defaults
from .ledger import Ledger
from .linking import link_contract_libraries
from .receipts import TransactionConfirmationPoller
from .registry import ContractRegistry
from .types import ContractArtifact, ContractRecord


class Deployer:
    """Links, submits and confirms contract creation transactions."""

    def __init__(
        self,
        registry: ContractRegistry,
        ledger: Ledger,
        poller: TransactionConfirmationPoller,
        artifact_loader: Callable[[str], ContractArtifact],
        print_gas_usage: bool = False,
    ):
        """
        Initialize the deployer.

        Args:
            registry: Contract registry updated after each deployment
            ledger: Ledger transport
            poller: Receipt poller used to wait for confirmation
            artifact_loader: Loads a fresh artifact by contract name
            print_gas_usage: Log gas used by every deployment
        """
        self.registry = registry
        self.ledger = ledger
        self.poller = poller
        self.artifact_loader = artifact_loader
        self.print_gas_usage = print_gas_usage

    async def deploy(
        self,
        contract_key: str,
        args: Sequence[Any] = (),
        options: Optional[Mapping[str, Any]] = None,
        *,
        max_attempts: Optional[int] = None,
        timeout: Optional[float] = None,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> ContractRecord:
        """
        Deploy a contract and record its address in the registry.

        Args:
            contract_key: Registry key of the contract, e.g. "token"
            args: Constructor arguments
            options: Transaction options:
                - placeholder_replacements: placeholder -> address or registry key
                - from: deploying address (defaults to the first account)
                - gas: gas limit (defaults to DEFAULT_GAS)
            max_attempts: Bound on receipt queries (unbounded by default)
            timeout: Bound on confirmation wait in seconds (unbounded by default)
            cancel_event: Event that cancels the confirmation wait

        Returns:
            Updated ContractRecord with address and instance

        Raises:
            ContractNotFoundError: If the key is not in the registry
            DeploymentError: If no bytecode is available
            LinkingError: If a library placeholder cannot be resolved
            TransportError: If submission or a receipt query fails
            IncompleteReceiptError: If the receipt lacks gas used or block number
        """
        record = self.registry.get(contract_key)
        if record is None:
            raise ContractNotFoundError(f"Contract '{contract_key}' not found in registry")

        # Always deploy the freshest build output
        artifact = self.artifact_loader(record.artifact_name)
        if not artifact.bytecode:
            raise DeploymentError(f"No bytecode available for '{record.artifact_name}'")

        options = dict(options or {})
        bytecode = link_contract_libraries(
            self.registry, artifact.bytecode, options.pop("placeholder_replacements", None)
        )

        params = await apply_tx_defaults(self.ledger, options)
        tx_params = {k: v for k, v in params.items() if k in TX_PARAM_KEYS}

        tx_hash = await self.ledger.submit_contract_creation(
            artifact.abi or [], "0x" + bytecode, list(args), tx_params
        )
        logger.debug(f"Submitted {contract_key} creation in {tx_hash}")

        receipt = await self.poller.wait_for_receipt(
            tx_hash, max_attempts=max_attempts, timeout=timeout, cancel_event=cancel_event
        )
        return self._handle_deployed_contract(contract_key, artifact, receipt)

    def _handle_deployed_contract(
        self,
        contract_key: str,
        artifact: ContractArtifact,
        receipt: Mapping[str, Any],
    ) -> ContractRecord:
        gas_used = receipt.get("gasUsed")
        block_number = receipt.get("blockNumber")
        contract_address = receipt.get("contractAddress")

        if gas_used is None or block_number is None:
            raise IncompleteReceiptError(
                f"Receipt for {contract_key} is missing gas used or block number; "
                "registry not updated",
                receipt=dict(receipt),
            )

        record = self.registry.update(
            contract_key,
            {
                "abi": artifact.abi,
                "bytecode": artifact.bytecode,
                "address": contract_address,
                "instance": self.ledger.bind_instance(artifact.abi, contract_address),
            },
        )

        if self.print_gas_usage:
            logger.info(f"{record.artifact_name} {contract_address} {gas_used:,}")
        else:
            logger.debug(f"Deployed {contract_key} at {contract_address}")

        return record
