"""TransactionWatcher — polls a node for a transaction's confirmation depth.

Each watcher drives one asyncio task:

    IDLE ──start()──► POLLING ──tick ok──► CONFIRMED ─┐
                         ▲      └─tick failed─► ERRORED ─┤
                         └───────── fixed backoff ───────┘
    any state ──stop() / cancel_event / last listener removed──► STOPPED

A tick fetches the transaction by hash.  When the node does not know it yet
or it has no ``blockNumber``, a ``NotMinedYetError`` is emitted on ``error``.
Otherwise ``confirmation(confirmation_number, transaction)`` is emitted with
``confirmation_number = current_block - transaction.blockNumber``.  Errors
never end the loop; only cancellation or ``target_confirmations`` does.

Cancellation is cooperative: the flag is checked at the top of each tick and
wakes the backoff wait early, but an in-flight fetch always completes.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, AsyncIterator, Callable, Optional

import structlog
from web3 import AsyncWeb3
from web3.exceptions import TransactionNotFound

from daisy_sdk.config.settings import settings
from daisy_sdk.core.emitter import EventEmitter
from daisy_sdk.core.errors import NotMinedYetError, ValidationError

logger = structlog.get_logger("daisy_sdk.web3_infra.tx_watcher")

EVENT_CONFIRMATION = "confirmation"
EVENT_ERROR = "error"
EVENTS = (EVENT_CONFIRMATION, EVENT_ERROR)


class WatcherState(str, Enum):
    """Lifecycle state of a TransactionWatcher."""

    IDLE = "IDLE"
    POLLING = "POLLING"
    CONFIRMED = "CONFIRMED"
    ERRORED = "ERRORED"
    STOPPED = "STOPPED"


@dataclass
class WatcherConfig:
    """Configuration for the transaction watcher."""

    # Fixed delay between ticks, in seconds
    poll_interval_s: float = field(default_factory=lambda: settings.TX_POLL_INTERVAL_SECONDS)

    # Stop once this depth is reached; None keeps reporting depth until stopped
    target_confirmations: Optional[int] = None


@dataclass(frozen=True)
class ConfirmationUpdate:
    """One ``confirmation`` event, as yielded by ``confirmations()``."""

    confirmation_number: int
    transaction: Any


class TransactionWatcher:
    """Confirmation tracker for a single transaction hash.

    Usage::

        watcher = TransactionWatcher(w3, "0xabc...")
        watcher.on("confirmation", lambda n, tx: print(n, tx["blockNumber"]))
        watcher.on("error", lambda err: print(err))
        watcher.start()
        ...
        watcher.stop()

    or, as an async sequence::

        watcher = TransactionWatcher(w3, tx_hash, WatcherConfig(target_confirmations=3))
        watcher.start()
        async for update in watcher.confirmations():
            print(update.confirmation_number)

    Parameters
    ----------
    w3:
        ``AsyncWeb3`` instance used for ``get_transaction`` / ``block_number``.
    transaction_hash:
        Hash of the transaction to watch.
    config:
        ``WatcherConfig``; defaults come from ``settings``.
    cancel_event:
        Optional caller-owned ``asyncio.Event``; setting it stops the watcher.
    """

    def __init__(
        self,
        w3: AsyncWeb3,
        transaction_hash: str,
        config: WatcherConfig | None = None,
        cancel_event: asyncio.Event | None = None,
    ) -> None:
        if not transaction_hash:
            raise ValidationError("Missing transaction hash.")

        self.w3 = w3
        self.transaction_hash = transaction_hash
        self._config = config or WatcherConfig()
        self._cancel_event = cancel_event or asyncio.Event()
        self._emitter = EventEmitter()
        self._state = WatcherState.IDLE
        self._started = False
        self._task: asyncio.Task[None] | None = None
        self._ticks = 0
        self._last_confirmation: int | None = None

    # ── Introspection ────────────────────────────────────────────

    @property
    def config(self) -> WatcherConfig:
        """Return current configuration (read-only)."""
        return self._config

    @property
    def state(self) -> WatcherState:
        return self._state

    @property
    def started(self) -> bool:
        """True while the loop is allowed to schedule further ticks."""
        return self._started and not self._cancel_event.is_set()

    @property
    def ticks(self) -> int:
        """Number of completed ticks."""
        return self._ticks

    # ── Listeners ────────────────────────────────────────────────

    def on(self, event: str, listener: Callable[..., Any]) -> TransactionWatcher:
        """Register a ``confirmation`` or ``error`` listener."""
        if event not in EVENTS:
            raise ValidationError(f"Unknown watcher event: {event!r}")
        self._emitter.on(event, listener)
        return self

    def off(self, event: str, listener: Callable[..., Any] | None = None) -> TransactionWatcher:
        """Remove a listener.  Polling stops once nobody is listening."""
        self._emitter.off(event, listener)
        if self._started and self._emitter.listener_count() == 0:
            logger.info("tx_watcher.no_listeners", tx_hash=self.transaction_hash)
            self.stop()
        return self

    async def confirmations(self) -> AsyncIterator[ConfirmationUpdate]:
        """Yield confirmation updates until the watcher stops."""
        async for confirmation_number, transaction in self._emitter.stream(EVENT_CONFIRMATION):
            yield ConfirmationUpdate(confirmation_number, transaction)

    # ── Lifecycle ────────────────────────────────────────────────

    def start(self) -> TransactionWatcher:
        """Schedule the polling loop on the running event loop.  Idempotent."""
        if self._started or self._cancel_event.is_set():
            return self

        self._started = True
        self._state = WatcherState.POLLING
        self._task = asyncio.get_running_loop().create_task(
            self._run(), name=f"tx_watcher:{self.transaction_hash}"
        )
        logger.info(
            "tx_watcher.started",
            tx_hash=self.transaction_hash,
            poll_interval_s=self._config.poll_interval_s,
            target_confirmations=self._config.target_confirmations,
        )
        return self

    def stop(self) -> None:
        """Request cancellation.  An in-flight fetch is allowed to finish."""
        if self._cancel_event.is_set():
            return
        self._started = False
        self._cancel_event.set()
        if self._task is None:
            self._state = WatcherState.STOPPED
        logger.info("tx_watcher.stop_requested", tx_hash=self.transaction_hash)

    async def wait(self) -> None:
        """Wait for the polling loop to exit."""
        if self._task is not None:
            await self._task

    async def __aenter__(self) -> TransactionWatcher:
        return self.start()

    async def __aexit__(self, *exc: Any) -> None:
        self.stop()
        await self.wait()

    # ── Polling ──────────────────────────────────────────────────

    async def _run(self) -> None:
        try:
            while self.started:
                await self.execute()
                if self._reached_target():
                    logger.info(
                        "tx_watcher.target_reached",
                        tx_hash=self.transaction_hash,
                        target=self._config.target_confirmations,
                    )
                    self._started = False
                    break
                if not self.started:
                    break
                try:
                    await asyncio.wait_for(
                        self._cancel_event.wait(), timeout=self._config.poll_interval_s
                    )
                except asyncio.TimeoutError:
                    pass
        finally:
            self._started = False
            if not self._reached_target():
                self._state = WatcherState.STOPPED
            self._emitter.close()
            logger.info("tx_watcher.stopped", tx_hash=self.transaction_hash, ticks=self._ticks)

    async def execute(self) -> Any:
        """Run one tick; returns the mined transaction, or None on failure.

        Does nothing (and returns None) once the watcher has been stopped.
        """
        if not self.started:
            return None

        self._state = WatcherState.POLLING
        self._last_confirmation = None
        try:
            transaction = await self._fetch_mined_transaction()
            current_block = await self.w3.eth.block_number
        except Exception as exc:
            self._ticks += 1
            self._state = WatcherState.ERRORED
            logger.debug(
                "tx_watcher.tick_failed",
                tx_hash=self.transaction_hash,
                error=str(exc),
                error_type=type(exc).__name__,
            )
            self._emitter.emit(EVENT_ERROR, exc)
            return None

        self._ticks += 1
        confirmation_number = current_block - transaction["blockNumber"]
        self._last_confirmation = confirmation_number
        self._state = WatcherState.CONFIRMED
        logger.debug(
            "tx_watcher.confirmation",
            tx_hash=self.transaction_hash,
            confirmation_number=confirmation_number,
            block_number=transaction["blockNumber"],
        )
        self._emitter.emit(EVENT_CONFIRMATION, confirmation_number, transaction)
        return transaction

    async def _fetch_mined_transaction(self) -> Any:
        try:
            transaction = await self.w3.eth.get_transaction(self.transaction_hash)
        except TransactionNotFound:
            raise NotMinedYetError(self.transaction_hash) from None
        if transaction is None or transaction.get("blockNumber") is None:
            raise NotMinedYetError(self.transaction_hash)
        return transaction

    def _reached_target(self) -> bool:
        target = self._config.target_confirmations
        last = self._last_confirmation
        return target is not None and last is not None and last >= target
