"""Wallet-side EIP-712 signing through the web3 provider (MetaMask & co)."""

from __future__ import annotations

import json
from typing import Any, Mapping

import structlog
from web3 import AsyncWeb3, Web3

from daisy_sdk.core.errors import ValidationError

logger = structlog.get_logger("daisy_sdk.web3_infra.wallet")

SIGN_TYPED_DATA_METHOD = "eth_signTypedData_v4"


async def sign_typed_data_with_wallet(
    w3: AsyncWeb3,
    account: str,
    typed_data: Mapping[str, Any],
) -> str:
    """Ask the provider's wallet to sign *typed_data* as *account*.

    The payload is sent JSON-encoded, as ``eth_signTypedData_v4`` requires.
    Provider errors (user rejection, unknown account) propagate unchanged.
    """
    if not account:
        raise ValidationError("Missing account.")

    result = await w3.manager.coro_request(
        SIGN_TYPED_DATA_METHOD,
        [account, json.dumps(typed_data)],
    )
    signature = result if isinstance(result, str) else Web3.to_hex(result)

    logger.debug(
        "wallet.signed",
        account=account,
        primary_type=typed_data.get("primaryType"),
    )
    return signature
