"""Tests for web3_infra.tx_watcher — polling, backoff, confirmation depth, cancellation."""

from __future__ import annotations

import asyncio

import pytest
from web3.exceptions import TransactionNotFound

from daisy_sdk.core.errors import NotMinedYetError, ValidationError
from daisy_sdk.web3_infra.tx_watcher import (
    TransactionWatcher,
    WatcherConfig,
    WatcherState,
)
from tests.conftest import FakeEth, FakeWeb3

FAST = WatcherConfig(poll_interval_s=0.01)


async def _stop(watcher: TransactionWatcher) -> None:
    watcher.stop()
    await asyncio.wait_for(watcher.wait(), timeout=1.0)


class TestConfig:

    def test_defaults(self) -> None:
        cfg = WatcherConfig()
        assert cfg.poll_interval_s == 3.0
        assert cfg.target_confirmations is None

    def test_missing_hash_rejected(self) -> None:
        with pytest.raises(ValidationError):
            TransactionWatcher(FakeWeb3(), "")

    def test_unknown_event_rejected(self) -> None:
        watcher = TransactionWatcher(FakeWeb3(), "0xabc")
        with pytest.raises(ValidationError):
            watcher.on("receipt", lambda *a: None)


class TestNotMined:

    @pytest.mark.asyncio
    async def test_null_block_number_retries_without_confirmation(self) -> None:
        eth = FakeEth(transaction={"hash": "0xabc", "blockNumber": None}, block_number=105)
        watcher = TransactionWatcher(FakeWeb3(eth), "0xabc", FAST)
        confirmations: list = []
        errors: list = []
        watcher.on("confirmation", lambda n, tx: confirmations.append(n))
        watcher.on("error", errors.append)

        watcher.start()
        await asyncio.sleep(0.08)
        await _stop(watcher)

        assert confirmations == []
        assert eth.get_transaction_calls >= 2
        assert errors and all(isinstance(e, NotMinedYetError) for e in errors)
        assert errors[0].transaction_hash == "0xabc"

    @pytest.mark.asyncio
    async def test_unknown_transaction_is_not_mined(self) -> None:
        eth = FakeEth(transaction=TransactionNotFound("missing"))
        watcher = TransactionWatcher(FakeWeb3(eth), "0xabc", FAST)
        errors: list = []
        watcher.on("error", errors.append)

        watcher.start()
        await asyncio.sleep(0.03)
        await _stop(watcher)

        assert isinstance(errors[0], NotMinedYetError)

    @pytest.mark.asyncio
    async def test_backoff_is_fixed_interval(self) -> None:
        eth = FakeEth(transaction=None)
        watcher = TransactionWatcher(FakeWeb3(eth), "0xabc", WatcherConfig(poll_interval_s=0.2))
        watcher.on("error", lambda err: None)

        watcher.start()
        await asyncio.sleep(0.05)
        assert eth.get_transaction_calls == 1
        assert watcher.state is WatcherState.ERRORED
        await _stop(watcher)

    @pytest.mark.asyncio
    async def test_fetch_failures_do_not_end_the_loop(self) -> None:
        eth = FakeEth(transaction=RuntimeError("node down"))
        watcher = TransactionWatcher(FakeWeb3(eth), "0xabc", FAST)
        errors: list = []
        watcher.on("error", errors.append)

        watcher.start()
        await asyncio.sleep(0.05)
        assert watcher.started

        eth.transaction = {"blockNumber": 1}
        confirmed = asyncio.Event()
        watcher.on("confirmation", lambda n, tx: confirmed.set())
        await asyncio.wait_for(confirmed.wait(), timeout=1.0)
        await _stop(watcher)

        assert isinstance(errors[0], RuntimeError)


class TestConfirmation:

    @pytest.mark.asyncio
    async def test_confirmation_depth_grows_until_cancelled(self) -> None:
        tx = {"hash": "0xabc", "blockNumber": 100}
        eth = FakeEth(transaction=tx, block_number=105)
        watcher = TransactionWatcher(FakeWeb3(eth), "0xabc", FAST)
        events: list = []

        def on_confirmation(number: int, transaction: dict) -> None:
            events.append((number, transaction))
            eth.current_block += 1
            if len(events) == 3:
                watcher.stop()

        watcher.on("confirmation", on_confirmation)
        watcher.start()
        await asyncio.wait_for(watcher.wait(), timeout=1.0)

        assert events[0] == (5, tx)
        assert [n for n, _ in events] == [5, 6, 7]
        assert watcher.ticks == 3
        assert watcher.state is WatcherState.STOPPED

    @pytest.mark.asyncio
    async def test_raising_listener_does_not_end_polling(self) -> None:
        eth = FakeEth(transaction={"blockNumber": 100}, block_number=105)
        watcher = TransactionWatcher(FakeWeb3(eth), "0xabc", FAST)
        good: list = []

        def broken(number: int, transaction: dict) -> None:
            raise RuntimeError("listener bug")

        watcher.on("confirmation", broken)
        watcher.on("confirmation", lambda n, tx: good.append(n))
        watcher.start()
        await asyncio.sleep(0.08)

        assert watcher.started
        assert watcher.state is WatcherState.CONFIRMED
        assert watcher.ticks >= 2
        assert len(good) == watcher.ticks
        await _stop(watcher)
        assert watcher.state is WatcherState.STOPPED

    @pytest.mark.asyncio
    async def test_raising_error_listener_does_not_end_polling(self) -> None:
        eth = FakeEth(transaction=None)
        watcher = TransactionWatcher(FakeWeb3(eth), "0xabc", FAST)

        def broken(err: Exception) -> None:
            raise RuntimeError("listener bug")

        watcher.on("error", broken).start()
        await asyncio.sleep(0.05)

        assert watcher.started
        assert eth.get_transaction_calls >= 2
        await _stop(watcher)

    @pytest.mark.asyncio
    async def test_one_confirmation_per_tick(self) -> None:
        eth = FakeEth(transaction={"blockNumber": 100}, block_number=105)
        watcher = TransactionWatcher(FakeWeb3(eth), "0xabc", FAST)
        events: list = []
        watcher.on("confirmation", lambda n, tx: events.append(n))

        watcher.start()
        await asyncio.sleep(0.05)
        await _stop(watcher)

        assert len(events) == watcher.ticks
        assert set(events) == {5}

    @pytest.mark.asyncio
    async def test_target_confirmations_ends_stream(self) -> None:
        eth = FakeEth(transaction={"blockNumber": 100}, block_number=100)
        watcher = TransactionWatcher(
            FakeWeb3(eth), "0xabc", WatcherConfig(poll_interval_s=0.01, target_confirmations=2)
        )
        watcher.on("confirmation", lambda n, tx: setattr(eth, "current_block", eth.current_block + 1))
        watcher.start()

        seen = []
        async for update in watcher.confirmations():
            seen.append(update.confirmation_number)

        assert seen == [0, 1, 2]
        assert watcher.state is WatcherState.CONFIRMED
        assert not watcher.started

    @pytest.mark.asyncio
    async def test_execute_returns_transaction(self) -> None:
        tx = {"blockNumber": 7}
        watcher = TransactionWatcher(FakeWeb3(FakeEth(tx, 9)), "0xabc", WatcherConfig(poll_interval_s=10))
        watcher.on("confirmation", lambda n, t: None)
        watcher.start()
        assert await watcher.execute() == tx
        await _stop(watcher)


class TestCancellation:

    @pytest.mark.asyncio
    async def test_stop_before_start(self) -> None:
        eth = FakeEth(transaction={"blockNumber": 1})
        watcher = TransactionWatcher(FakeWeb3(eth), "0xabc", FAST)
        watcher.stop()
        watcher.start()
        await asyncio.sleep(0.03)

        assert eth.get_transaction_calls == 0
        assert watcher.state is WatcherState.STOPPED

    @pytest.mark.asyncio
    async def test_stop_wakes_backoff_wait(self) -> None:
        eth = FakeEth(transaction={"blockNumber": 1}, block_number=1)
        watcher = TransactionWatcher(FakeWeb3(eth), "0xabc", WatcherConfig(poll_interval_s=60))
        watcher.on("confirmation", lambda n, tx: None)
        watcher.start()
        await asyncio.sleep(0.02)

        await _stop(watcher)
        assert eth.get_transaction_calls == 1

    @pytest.mark.asyncio
    async def test_external_cancel_event(self) -> None:
        cancel = asyncio.Event()
        eth = FakeEth(transaction={"blockNumber": 1}, block_number=3)
        watcher = TransactionWatcher(FakeWeb3(eth), "0xabc", FAST, cancel_event=cancel)
        watcher.on("confirmation", lambda n, tx: None)
        watcher.start()
        await asyncio.sleep(0.03)

        cancel.set()
        await asyncio.wait_for(watcher.wait(), timeout=1.0)
        calls = eth.get_transaction_calls
        await asyncio.sleep(0.03)

        assert eth.get_transaction_calls == calls
        assert watcher.state is WatcherState.STOPPED

    @pytest.mark.asyncio
    async def test_removing_last_listener_stops_polling(self) -> None:
        eth = FakeEth(transaction=None)
        watcher = TransactionWatcher(FakeWeb3(eth), "0xabc", FAST)

        def listener(err: Exception) -> None:
            pass

        watcher.on("error", listener).start()
        await asyncio.sleep(0.03)
        watcher.off("error", listener)
        await asyncio.wait_for(watcher.wait(), timeout=1.0)

        assert not watcher.started
        assert watcher.state is WatcherState.STOPPED

    @pytest.mark.asyncio
    async def test_start_is_idempotent(self) -> None:
        eth = FakeEth(transaction={"blockNumber": 1}, block_number=1)
        watcher = TransactionWatcher(FakeWeb3(eth), "0xabc", WatcherConfig(poll_interval_s=60))
        watcher.on("confirmation", lambda n, tx: None)
        watcher.start()
        task = watcher._task
        watcher.start()
        assert watcher._task is task
        await _stop(watcher)

    @pytest.mark.asyncio
    async def test_watchers_are_independent(self) -> None:
        eth_a = FakeEth(transaction={"blockNumber": 10}, block_number=12)
        eth_b = FakeEth(transaction={"blockNumber": 10}, block_number=20)
        a = TransactionWatcher(FakeWeb3(eth_a), "0xa", FAST)
        b = TransactionWatcher(FakeWeb3(eth_b), "0xb", FAST)
        seen_a: list = []
        seen_b: list = []
        a.on("confirmation", lambda n, tx: seen_a.append(n)).start()
        b.on("confirmation", lambda n, tx: seen_b.append(n)).start()
        await asyncio.sleep(0.03)

        await _stop(a)
        assert b.started
        await _stop(b)
        assert set(seen_a) == {2}
        assert set(seen_b) == {10}
