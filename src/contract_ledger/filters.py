"""Event log sources backed by ledger log queries and filters."""

import asyncio
from typing import Any, Callable, Dict, List, Mapping, Optional, Union

from loguru import logger

from .constants import EVENT_POLL_INTERVAL
from .enrichment import EventLogEnricher
from .exceptions import TransportError
from .ledger import BlockSpec, Ledger

EventCallback = Callable[[Optional[BaseException], Any], Any]


def parse_block_range(block_range: Union[str, Mapping[str, BlockSpec], None]) -> tuple[BlockSpec, BlockSpec]:
    """
    Parse a block range into (from_block, to_block).

    Args:
        block_range: "latest" for new blocks only, or a mapping with
                     from_block / to_block keys

    Returns:
        Tuple of (from_block, to_block)
    """
    if block_range is None:
        return (0, "latest")
    if isinstance(block_range, str):
        return (block_range, block_range)
    return (block_range.get("from_block", 0), block_range.get("to_block", "latest"))


class EventLogSource:
    """
    One event of one contract instance over a block range.

    `fetch` returns the full history once. `stop_watching` notifies every
    stop listener, which is how replays attached to this source are halted.
    """

    def __init__(
        self,
        ledger: Ledger,
        instance: Any,
        event: str,
        argument_filters: Optional[Dict[str, Any]] = None,
        from_block: BlockSpec = 0,
        to_block: BlockSpec = "latest",
    ):
        self.ledger = ledger
        self.instance = instance
        self.event = event
        self.argument_filters = argument_filters
        self.from_block = from_block
        self.to_block = to_block
        self._stop_listeners: List[Callable[[], Any]] = []
        self._watch_task: Optional[asyncio.Task] = None
        self.callback_errors: List[BaseException] = []

    async def fetch(self) -> List[Dict[str, Any]]:
        """Fetch every matching historical log in one round trip."""
        return await self.ledger.get_logs(
            self.instance, self.event, self.argument_filters, self.from_block, self.to_block
        )

    def add_stop_listener(self, listener: Callable[[], Any]) -> None:
        self._stop_listeners.append(listener)

    def remove_stop_listener(self, listener: Callable[[], Any]) -> None:
        if listener in self._stop_listeners:
            self._stop_listeners.remove(listener)

    def stop_watching(self) -> None:
        if self._watch_task is not None and not self._watch_task.done():
            self._watch_task.cancel()
        for listener in list(self._stop_listeners):
            listener()

    def watch(
        self,
        on_event: EventCallback,
        enricher: EventLogEnricher,
        poll_interval: float = EVENT_POLL_INTERVAL,
    ) -> asyncio.Task:
        """
        Deliver new matching logs to a callback until stopped.

        on_event(None, log) is called per enriched log; an exception raised
        by on_event is logged, kept in callback_errors and watching goes on.
        When the ledger query or enrichment fails, on_event(error, None) is
        called once and watching ends.

        Must be called from a running event loop.
        """
        self._watch_task = asyncio.get_running_loop().create_task(
            self._watch(on_event, enricher, poll_interval)
        )
        return self._watch_task

    async def _watch(
        self, on_event: EventCallback, enricher: EventLogEnricher, poll_interval: float
    ) -> None:
        log_filter = None
        try:
            log_filter = await self.ledger.install_log_filter(
                self.instance, self.event, self.argument_filters, self.from_block, self.to_block
            )
            while True:
                for raw_log in await self.ledger.get_filter_changes(log_filter):
                    self._deliver(on_event, None, enricher.enrich(raw_log))
                await asyncio.sleep(poll_interval)
        except Exception as e:
            logger.warning(f"Watching {self.event} stopped: {e}")
            self._deliver(on_event, e, None)
        finally:
            if log_filter is not None:
                try:
                    await self.ledger.uninstall_log_filter(log_filter)
                except TransportError as e:
                    logger.warning(f"Could not uninstall {self.event} filter: {e}")

    def _deliver(self, on_event: EventCallback, error: Optional[BaseException], log: Any) -> None:
        try:
            on_event(error, log)
        except Exception as e:
            logger.exception(f"Event callback for {self.event} failed: {e}")
            self.callback_errors.append(e)
