"""
Transfer Event Protocol

Every transfer reports progress as an ordered, append-only stream of
``TransferEvent`` objects:

    pending -> signing -> confirming|processing -> success|failed

Rules enforced by ``TransferEventEmitter``:
1. The first event is ``status_change(pending)``
2. Nothing is emitted after a terminal ``status_change`` (success/failed)
3. A failed transfer emits ``error`` followed by ``status_change(failed)``

Callbacks are dispatched from a bounded queue by a separate task, so a slow
consumer does not hold up the backend's own timers.
"""

import asyncio
import inspect
from typing import Any, Awaitable, Callable, Dict, List, Optional, Union

from loguru import logger

from .exceptions import EventSequenceError
from .types import (
    TransferEvent,
    TransferEventType,
    TransferParams,
    TransferResult,
    TransferStatus,
    utc_now,
)


TransferEventCallback = Callable[[TransferEvent], Union[None, Awaitable[None]]]

_STOP = object()


class TransferEventEmitter:
    """
    Event log and dispatcher for a single transfer

    Usage:
        async with TransferEventEmitter(on_event, backend='mock') as emitter:
            await emitter.status(TransferStatus.PENDING, "Preparing")
            ...
            return await emitter.succeed(result)
    """

    DEFAULT_QUEUE_SIZE = 256

    def __init__(
        self,
        callback: Optional[TransferEventCallback] = None,
        backend: str = "",
        queue_size: int = DEFAULT_QUEUE_SIZE
    ):
        """
        Initialize emitter

        Args:
            callback: Optional consumer (plain function or coroutine function)
            backend: Backend name used in log lines
            queue_size: Maximum number of undelivered events
        """
        self.callback = callback
        self.backend = backend
        self.events: List[TransferEvent] = []

        self._queue: Optional[asyncio.Queue] = (
            asyncio.Queue(maxsize=queue_size) if callback is not None else None
        )
        self._dispatcher: Optional[asyncio.Task] = None
        self._terminal: Optional[TransferStatus] = None

    async def __aenter__(self) -> 'TransferEventEmitter':
        return self

    async def __aexit__(self, exc_type, exc, tb) -> bool:
        await self.aclose()
        return False

    @property
    def terminal_status(self) -> Optional[TransferStatus]:
        return self._terminal

    @property
    def started(self) -> bool:
        return bool(self.events)

    # ── Dispatch ───────────────────────────────────────────────────

    def _ensure_dispatcher(self):
        if self._dispatcher is None:
            self._dispatcher = asyncio.create_task(self._dispatch())

    async def _dispatch(self):
        while True:
            event = await self._queue.get()
            try:
                if event is _STOP:
                    return
                await self._deliver(event)
            finally:
                self._queue.task_done()

    async def _deliver(self, event: TransferEvent):
        try:
            outcome = self.callback(event)
            if inspect.isawaitable(outcome):
                await outcome
        except Exception:
            # Consumer faults never change the transfer outcome
            logger.exception(f"[{self.backend}] Transfer event callback failed on {event!r}")

    async def aclose(self):
        """Deliver every queued event and stop the dispatcher"""
        if self._dispatcher is None:
            return
        await self._queue.put(_STOP)
        await self._dispatcher
        self._dispatcher = None

    # ── Emission ───────────────────────────────────────────────────

    async def emit(
        self,
        event_type: Union[TransferEventType, str],
        *,
        status: Optional[Union[TransferStatus, str]] = None,
        tx_hash: Optional[str] = None,
        error: Optional[str] = None,
        data: Optional[Dict[str, Any]] = None
    ) -> TransferEvent:
        """
        Append an event to the log and queue it for the callback

        Raises:
            EventSequenceError: If the event breaks the protocol order
        """
        event_type = TransferEventType(event_type)
        status = TransferStatus(status) if status is not None else None

        if self._terminal is not None:
            raise EventSequenceError(
                f"{event_type.value} emitted after terminal status '{self._terminal.value}'"
            )
        if event_type == TransferEventType.STATUS_CHANGE and status is None:
            raise EventSequenceError("status_change event requires a status")
        if not self.events and not (
            event_type == TransferEventType.STATUS_CHANGE and status == TransferStatus.PENDING
        ):
            raise EventSequenceError("First transfer event must be status_change(pending)")

        event = TransferEvent(
            type=event_type,
            timestamp=utc_now(),
            status=status,
            tx_hash=tx_hash,
            error=error,
            data=dict(data or {}),
        )
        self.events.append(event)

        if event.is_terminal:
            self._terminal = event.status

        logger.debug(f"[{self.backend}] {event!r}")

        if self._queue is not None:
            self._ensure_dispatcher()
            await self._queue.put(event)

        return event

    async def status(
        self,
        status: Union[TransferStatus, str],
        message: Optional[str] = None,
        **data: Any
    ) -> TransferEvent:
        if message is not None:
            data = {'message': message, **data}
        return await self.emit(TransferEventType.STATUS_CHANGE, status=status, data=data)

    async def tx_submitted(self, tx_hash: str, **data: Any) -> TransferEvent:
        return await self.emit(TransferEventType.TX_SUBMITTED, tx_hash=tx_hash, data=data)

    async def tx_confirmed(self, tx_hash: str, **data: Any) -> TransferEvent:
        return await self.emit(TransferEventType.TX_CONFIRMED, tx_hash=tx_hash, data=data)

    async def proof_generated(self, **data: Any) -> TransferEvent:
        return await self.emit(TransferEventType.PROOF_GENERATED, data=data)

    # ── Terminal transitions ───────────────────────────────────────

    async def succeed(
        self,
        result: TransferResult,
        message: str = "Transfer complete"
    ) -> TransferResult:
        """Emit the terminal success status and hand back the result"""
        if result.status != TransferStatus.SUCCESS:
            raise EventSequenceError(f"succeed() called with {result.status.value} result")
        await self.status(TransferStatus.SUCCESS, message)
        return result

    async def fail(self, error: str, **metadata: Any) -> TransferResult:
        """
        Emit ``error`` then ``status_change(failed)``

        Args:
            error: Human-readable error message
            **metadata: Backend-specific data for the result

        Returns:
            Failed TransferResult carrying the same error string
        """
        if not self.started:
            await self.status(TransferStatus.PENDING)
        await self.emit(TransferEventType.ERROR, error=error)
        await self.status(TransferStatus.FAILED, error)
        return TransferResult(status=TransferStatus.FAILED, error=error, metadata=metadata)


class TransferEventStream:
    """
    Async-iterator view of a transfer

    Example:
        stream = stream_transfer(backend, params)
        async for event in stream:
            render(event)
        result = await stream.result()
    """

    def __init__(self, backend, params: TransferParams, queue_size: int = TransferEventEmitter.DEFAULT_QUEUE_SIZE):
        self.backend = backend
        self.params = params
        self._queue: asyncio.Queue = asyncio.Queue(maxsize=queue_size)
        self._task: Optional[asyncio.Task] = None
        self._finished = False

    def _start(self) -> asyncio.Task:
        if self._task is None:
            self._task = asyncio.create_task(self.backend.transfer(self.params, self._queue.put))
        return self._task

    def __aiter__(self) -> 'TransferEventStream':
        return self

    async def __anext__(self) -> TransferEvent:
        if self._finished:
            raise StopAsyncIteration
        task = self._start()

        if self._queue.empty() and task.done():
            self._finished = True
            raise StopAsyncIteration

        getter = asyncio.ensure_future(self._queue.get())
        done, _ = await asyncio.wait({getter, task}, return_when=asyncio.FIRST_COMPLETED)

        if getter not in done:
            getter.cancel()
            if self._queue.empty():
                self._finished = True
                raise StopAsyncIteration
            event = self._queue.get_nowait()
        else:
            event = getter.result()

        if event.is_terminal:
            self._finished = True
        return event

    async def result(self) -> TransferResult:
        """Wait for the transfer and return its terminal result"""
        return await self._start()

    def cancel(self) -> bool:
        """Cancel the running transfer (it still emits its failed events)"""
        return self._task.cancel() if self._task is not None else False


def stream_transfer(backend, params: TransferParams, queue_size: int = TransferEventEmitter.DEFAULT_QUEUE_SIZE) -> TransferEventStream:
    """
    Run ``backend.transfer`` and consume its events as an async iterator

    Args:
        backend: Any PrivacyBackend
        params: Transfer parameters
        queue_size: Maximum buffered events

    Returns:
        TransferEventStream
    """
    return TransferEventStream(backend, params, queue_size=queue_size)
