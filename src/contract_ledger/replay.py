"""Historical event log replay for contract-ledger library."""

import asyncio
import inspect
from enum import Enum
from operator import attrgetter
from typing import Any, Callable, Iterable, List, Mapping, Optional, Protocol, Sequence

from loguru import logger

from .enrichment import EventLogEnricher
from .types import EventLog

ReplayCallback = Callable[[Optional[BaseException], EventLog], Any]
Transform = Callable[[List[EventLog]], Iterable[EventLog]]


class LogSource(Protocol):
    """Anything that can fetch its full log history and accept stop listeners."""

    async def fetch(self) -> List[Mapping[str, Any]]: ...

    def add_stop_listener(self, listener: Callable[[], Any]) -> None: ...

    def remove_stop_listener(self, listener: Callable[[], Any]) -> None: ...


class ReplayState(Enum):
    """Lifecycle of a replay: idle -> fetching -> replaying -> stopped | finished."""

    IDLE = "idle"
    FETCHING = "fetching"
    REPLAYING = "replaying"
    STOPPED = "stopped"
    FINISHED = "finished"
    FAILED = "failed"


class ReplayHandle:
    """
    Control handle of a running replay.

    Stopping is cooperative: the flag is checked before every pacing delay
    and again before every callback, so no callback fires once `stop` has
    returned. A wait on a value returned by a callback is never interrupted.
    """

    def __init__(self) -> None:
        self.state = ReplayState.IDLE
        self.task: Optional[asyncio.Task] = None
        self.delivered = 0
        self.source_errors: List[BaseException] = []
        self.callback_errors: List[BaseException] = []
        self._stopped = False

    @property
    def stopped(self) -> bool:
        return self._stopped

    def stop(self) -> None:
        self._stopped = True

    async def wait(self) -> List[EventLog]:
        """Wait for the replay to end and return the replayed sequence."""
        return await self.task

    def __await__(self):
        return self.wait().__await__()


def _is_deferred_collection(result: Any) -> bool:
    return isinstance(result, Iterable) and not isinstance(result, (str, bytes, Mapping))


async def settle(result: Any, handle: ReplayHandle) -> None:
    """
    Wait for whatever a callback returned.

    The result may be None, an awaitable, or an iterable whose awaitable
    items are awaited one after another. A failed awaitable is logged and
    recorded on the handle; the replay carries on.
    """
    if result is None:
        return
    if inspect.isawaitable(result):
        pending = [result]
    elif _is_deferred_collection(result):
        pending = [item for item in result if inspect.isawaitable(item)]
    else:
        return

    for item in pending:
        try:
            await item
        except Exception as e:
            logger.warning(f"Replay callback result failed: {e}")
            handle.callback_errors.append(e)


def _apply_transform(logs: List[EventLog], transform: Optional[Transform]) -> List[EventLog]:
    if transform is None:
        return logs
    return list(transform(logs))


class SingleSourceReplayer:
    """Replays the history of one log source, in the order the source returned it."""

    def __init__(self, enricher: EventLogEnricher):
        self.enricher = enricher

    def start(
        self,
        source: LogSource,
        callback: ReplayCallback,
        delay: float = 0,
        transform: Optional[Transform] = None,
        on_finish: Optional[Callable[[], Any]] = None,
    ) -> ReplayHandle:
        """
        Start replaying a source on the running event loop.

        Args:
            source: Log source; its stop_watching() halts this replay
            callback: Called as callback(None, log) for every log
            delay: Milliseconds to wait before each callback
            transform: Applied once to the full list of logs before replay
            on_finish: Called with no arguments after the last log

        Returns:
            ReplayHandle; await it to get the replayed list or the fetch error
        """
        handle = ReplayHandle()
        source.add_stop_listener(handle.stop)
        handle.task = asyncio.get_running_loop().create_task(
            self._run(handle, source, callback, delay, transform, on_finish)
        )
        return handle

    async def replay(self, source: LogSource, callback: ReplayCallback, **options: Any) -> ReplayHandle:
        """Start a replay and wait for it to end."""
        handle = self.start(source, callback, **options)
        await handle.wait()
        return handle

    async def _run(
        self,
        handle: ReplayHandle,
        source: LogSource,
        callback: ReplayCallback,
        delay: float,
        transform: Optional[Transform],
        on_finish: Optional[Callable[[], Any]],
    ) -> List[EventLog]:
        try:
            return await self._replay(handle, source, callback, delay, transform, on_finish)
        except Exception:
            handle.state = ReplayState.FAILED
            raise
        finally:
            source.remove_stop_listener(handle.stop)

    async def _replay(
        self,
        handle: ReplayHandle,
        source: LogSource,
        callback: ReplayCallback,
        delay: float,
        transform: Optional[Transform],
        on_finish: Optional[Callable[[], Any]],
    ) -> List[EventLog]:
        handle.state = ReplayState.FETCHING
        raw_logs = await source.fetch()

        logs = _apply_transform([self.enricher.enrich(raw) for raw in raw_logs], transform)
        logger.debug(f"Replaying {len(logs)} logs")

        handle.state = ReplayState.REPLAYING
        for log in logs:
            if handle.stopped:
                break
            await asyncio.sleep(delay / 1000)
            if handle.stopped:
                break
            await settle(callback(None, log), handle)
            handle.delivered += 1

        if handle.stopped:
            handle.state = ReplayState.STOPPED
            return logs

        handle.state = ReplayState.FINISHED
        if on_finish is not None:
            on_finish()
        return logs


class MultiSourceOrderedReplayer:
    """
    Replays several log sources as one sequence ordered by
    (block number, transaction index, log index).

    All sources are fetched concurrently and the replay only begins once
    every one of them has answered, failed sources included.
    """

    def __init__(self, enricher: EventLogEnricher):
        self.enricher = enricher

    def start(
        self,
        sources: Sequence[LogSource],
        callback: Optional[ReplayCallback],
        delay: float = 0,
        transform: Optional[Transform] = None,
        on_finish: Optional[Callable[[List[EventLog]], Any]] = None,
    ) -> ReplayHandle:
        """
        Start an ordered replay on the running event loop.

        Args:
            sources: Log sources; stop_watching() on any of them halts the replay
            callback: Called as callback(error, log). A failed source contributes
                      no logs, so error is None in practice; source failures
                      are collected in handle.source_errors instead.
                      The callback may return an awaitable (or an iterable of
                      them); each is awaited before the next log.
            delay: Milliseconds to wait before each callback
            transform: Applied once to the sorted list before replay
            on_finish: Called with the full ordered list after the last log

        Returns:
            ReplayHandle; await it to get the ordered list. A callback that
            raises ends the replay in the FAILED state.
        """
        sources = list(sources)
        handle = ReplayHandle()
        for source in sources:
            source.add_stop_listener(handle.stop)
        handle.task = asyncio.get_running_loop().create_task(
            self._run(handle, sources, callback, delay, transform, on_finish)
        )
        return handle

    async def replay(
        self, sources: Sequence[LogSource], callback: Optional[ReplayCallback], **options: Any
    ) -> ReplayHandle:
        """Start an ordered replay and wait for it to end."""
        handle = self.start(sources, callback, **options)
        await handle.wait()
        return handle

    async def _collect(self, source: LogSource) -> tuple[Optional[BaseException], List[EventLog]]:
        # A log that cannot be enriched fails its whole source
        try:
            raw_logs = await source.fetch()
            logs = [self.enricher.enrich(raw) for raw in raw_logs]
        except Exception as e:
            logger.warning(f"Log source {source!r} failed: {e}")
            return e, []
        return None, logs

    async def _run(
        self,
        handle: ReplayHandle,
        sources: List[LogSource],
        callback: Optional[ReplayCallback],
        delay: float,
        transform: Optional[Transform],
        on_finish: Optional[Callable[[List[EventLog]], Any]],
    ) -> List[EventLog]:
        try:
            return await self._replay(handle, sources, callback, delay, transform, on_finish)
        except Exception:
            handle.state = ReplayState.FAILED
            raise
        finally:
            for source in sources:
                source.remove_stop_listener(handle.stop)

    async def _replay(
        self,
        handle: ReplayHandle,
        sources: List[LogSource],
        callback: Optional[ReplayCallback],
        delay: float,
        transform: Optional[Transform],
        on_finish: Optional[Callable[[List[EventLog]], Any]],
    ) -> List[EventLog]:
        handle.state = ReplayState.FETCHING
        # Barrier: every source reports before anything is sorted
        results = await asyncio.gather(*(self._collect(source) for source in sources))

        all_logs: List[EventLog] = []
        for error, logs in results:
            if error is not None:
                handle.source_errors.append(error)
            all_logs.extend(logs)

        sorted_logs = _apply_transform(sorted(all_logs, key=attrgetter("ordering_key")), transform)
        logger.debug(f"Replaying {len(sorted_logs)} logs from {len(sources)} sources")

        handle.state = ReplayState.REPLAYING
        for log in sorted_logs:
            if handle.stopped:
                break
            if delay > 0:
                await asyncio.sleep(delay / 1000)
                if handle.stopped:
                    break
            if callback is not None:
                await settle(callback(log.error, log), handle)
            handle.delivered += 1

        if handle.stopped:
            handle.state = ReplayState.STOPPED
            return sorted_logs

        handle.state = ReplayState.FINISHED
        if on_finish is not None:
            on_finish(sorted_logs)
        return sorted_logs
