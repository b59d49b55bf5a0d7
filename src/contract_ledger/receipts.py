"""Transaction receipt confirmation polling for contract-ledger library."""

import asyncio
from typing import Any, Dict, Optional

from loguru import logger

from .constants import RECEIPT_POLL_INTERVAL
from .exceptions import ConfirmationCancelledError, ConfirmationTimeoutError
from .ledger import Ledger


class TransactionConfirmationPoller:
    """Waits for a submitted transaction to be mined."""

    def __init__(self, ledger: Ledger, poll_interval: float = RECEIPT_POLL_INTERVAL):
        """
        Initialize the poller.

        Args:
            ledger: Ledger transport
            poll_interval: Seconds between receipt queries
        """
        self.ledger = ledger
        self.poll_interval = poll_interval

    async def wait_for_receipt(
        self,
        tx_hash: str,
        *,
        max_attempts: Optional[int] = None,
        timeout: Optional[float] = None,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> Dict[str, Any]:
        """
        Poll the ledger until the transaction receipt exists.

        With no bounds given this polls forever; it only ends when the
        receipt appears or the transport fails.

        Args:
            tx_hash: Transaction hash
            max_attempts: Give up after this many receipt queries
            timeout: Give up after this many seconds
            cancel_event: Stop polling as soon as this event is set

        Returns:
            Transaction receipt

        Raises:
            TransportError: If a receipt query fails (not retried)
            ConfirmationTimeoutError: If max_attempts or timeout is exhausted
            ConfirmationCancelledError: If cancel_event is set
        """
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout if timeout is not None else None
        attempts = 0

        while True:
            if cancel_event is not None and cancel_event.is_set():
                raise ConfirmationCancelledError(f"Stopped waiting for {tx_hash}")

            receipt = await self.ledger.get_transaction_receipt(tx_hash)
            attempts += 1
            if receipt:
                logger.debug(f"Receipt for {tx_hash} after {attempts} attempt(s)")
                return receipt

            if max_attempts is not None and attempts >= max_attempts:
                raise ConfirmationTimeoutError(
                    f"No receipt for {tx_hash} after {attempts} attempts"
                )

            delay = self.poll_interval
            if deadline is not None:
                remaining = deadline - loop.time()
                if remaining <= 0:
                    raise ConfirmationTimeoutError(
                        f"No receipt for {tx_hash} within {timeout} seconds"
                    )
                delay = min(delay, remaining)

            logger.debug(f"Transaction {tx_hash} pending, retrying in {delay}s")
            await self._sleep(delay, cancel_event)

    @staticmethod
    async def _sleep(delay: float, cancel_event: Optional[asyncio.Event]) -> None:
        if cancel_event is None:
            await asyncio.sleep(delay)
            return
        try:
            await asyncio.wait_for(cancel_event.wait(), timeout=delay)
        except asyncio.TimeoutError:
            pass
