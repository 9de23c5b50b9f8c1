"""Shared fakes: an in-memory AsyncWeb3 stand-in and HTTP mock transports."""

from __future__ import annotations

import json
from typing import Any, Callable
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest

MANAGER_ADDRESS = "0x" + "aa" * 20
TOKEN_ADDRESS = "0x" + "bb" * 20
ACCOUNT = "0x" + "cc" * 20
PLAN_ID = "0x" + "01" * 32
SUBSCRIPTION_HASH = "0x" + "02" * 32


class FakeEth:
    """Async ``w3.eth`` with a scripted transaction and block number."""

    def __init__(self, transaction: Any = None, block_number: int = 0) -> None:
        self.transaction = transaction
        self.current_block = block_number
        self.get_transaction_calls = 0
        self.contract = MagicMock(name="contract")

    async def get_transaction(self, transaction_hash: str) -> Any:
        self.get_transaction_calls += 1
        if isinstance(self.transaction, Exception):
            raise self.transaction
        return self.transaction

    @property
    async def block_number(self) -> int:
        return self.current_block


class FakeWeb3:
    """Just enough of ``AsyncWeb3`` for the SDK: ``eth`` and ``manager``."""

    def __init__(self, eth: FakeEth | None = None, signature: str = "0x" + "5a" * 65) -> None:
        self.eth = eth or FakeEth()
        self.manager = MagicMock(name="manager")
        self.manager.coro_request = AsyncMock(return_value=signature)

    def last_typed_data(self) -> dict[str, Any]:
        """Return the typed data passed to the last ``eth_signTypedData_v4``."""
        method, params = self.manager.coro_request.await_args.args
        assert method == "eth_signTypedData_v4"
        return json.loads(params[1])


class RecordingTransport(httpx.MockTransport):
    """MockTransport that keeps every request it served."""

    def __init__(self, handler: Callable[[httpx.Request], httpx.Response]) -> None:
        self.requests: list[httpx.Request] = []

        def _record(request: httpx.Request) -> httpx.Response:
            self.requests.append(request)
            return handler(request)

        super().__init__(_record)


def json_response(body: Any, status_code: int = 200) -> Callable[[httpx.Request], httpx.Response]:
    return lambda request: httpx.Response(status_code, json=body)


@pytest.fixture
def manager_data() -> dict[str, Any]:
    return {
        "identifier": "mgr-identifier",
        "secretKey": "mgr-secret",
        "address": MANAGER_ADDRESS,
        "tokenAddress": TOKEN_ADDRESS,
    }


@pytest.fixture
def plan_data() -> dict[str, Any]:
    return {
        "id": "plan-1",
        "onChainId": PLAN_ID,
        "name": "Gold",
        "price": "1000",
        "period": 2,
        "periodUnit": "WEEKS",
        "maxExecutions": "12",
        "private": True,
    }
