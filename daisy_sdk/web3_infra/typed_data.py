"""EIP-712 typed-data composition for subscription-manager actions.

Builds the ``{types, domain, primaryType, message}`` object that wallets and
``eth_account`` sign.  The domain carries only ``verifyingContract`` (the
manager address), matching the contract's domain separator.
"""

from __future__ import annotations

import copy
import math
import secrets
import time
from datetime import datetime
from typing import Any, Mapping, Union

from web3 import Web3

from daisy_sdk.config.settings import settings
from daisy_sdk.core.errors import ValidationError

# ── Type table (must match the SubscriptionManager contract) ─────────

TYPES: dict[str, list[dict[str, str]]] = {
    "EIP712Domain": [
        {"name": "verifyingContract", "type": "address"},
    ],
    "Subscription": [
        {"name": "subscriber", "type": "address"},
        {"name": "token", "type": "address"},
        {"name": "amount", "type": "uint256"},
        {"name": "periodUnit", "type": "string"},
        {"name": "periods", "type": "uint256"},
        {"name": "maxExecutions", "type": "uint256"},
        {"name": "signatureExpiresAt", "type": "uint256"},
        {"name": "plan", "type": "bytes32"},
        {"name": "nonce", "type": "bytes32"},
    ],
    "SubscriptionAction": [
        {"name": "action", "type": "string"},
        {"name": "subscriptionHash", "type": "bytes32"},
        {"name": "signatureExpiresAt", "type": "uint256"},
    ],
    "AddPlan": [
        {"name": "plan", "type": "bytes32"},
        {"name": "price", "type": "uint256"},
        {"name": "periods", "type": "uint256"},
        {"name": "periodUnit", "type": "string"},
        {"name": "maxExecutions", "type": "uint256"},
        {"name": "private", "type": "bool"},
        {"name": "signatureExpiresAt", "type": "uint256"},
    ],
    "RemovePlan": [
        {"name": "plan", "type": "bytes32"},
        {"name": "signatureExpiresAt", "type": "uint256"},
    ],
    "SetActive": [
        {"name": "plan", "type": "bytes32"},
        {"name": "active", "type": "bool"},
        {"name": "nonce", "type": "bytes32"},
        {"name": "signatureExpiresAt", "type": "uint256"},
    ],
    "SetWallet": [
        {"name": "wallet", "type": "address"},
        {"name": "nonce", "type": "bytes32"},
        {"name": "signatureExpiresAt", "type": "uint256"},
    ],
    "SetAuthorizer": [
        {"name": "authorizer", "type": "address"},
        {"name": "nonce", "type": "bytes32"},
        {"name": "signatureExpiresAt", "type": "uint256"},
    ],
    "PlanAuthorization": [
        {"name": "subscriptionHash", "type": "bytes32"},
    ],
}

PRIMARY_TYPES = frozenset(name for name in TYPES if name != "EIP712Domain")

# ── Period units ─────────────────────────────────────────────────────

# Plan unit -> (contract unit, multiplier).  The contract has no week unit.
PERIOD_UNITS: dict[str, tuple[str, int]] = {
    "SECONDS": ("SECONDS", 1),
    "MINUTES": ("MINUTES", 1),
    "HOURS": ("HOURS", 1),
    "DAYS": ("DAYS", 1),
    "WEEKS": ("DAYS", 7),
    "MONTHS": ("MONTHS", 1),
    "YEARS": ("YEARS", 1),
}

Timestamp = Union[int, float, str, datetime, None]


def build_typed_data(
    primary_type: str,
    message: Mapping[str, Any],
    verifying_contract: str,
) -> dict[str, Any]:
    """Compose the EIP-712 payload for *primary_type*.

    The result shares no objects with ``TYPES`` or *message*, so callers may
    mutate it freely and composing the same input twice yields equal output.
    """
    if primary_type not in PRIMARY_TYPES:
        raise ValidationError(f"Unknown primary type: {primary_type!r}")
    if not verifying_contract:
        raise ValidationError("Missing verifying contract (manager address).")

    return {
        "types": copy.deepcopy(TYPES),
        "domain": {"verifyingContract": verifying_contract},
        "primaryType": primary_type,
        "message": copy.deepcopy(dict(message)),
    }


def get_expiration_in_seconds(
    signature_expires_at: Timestamp = None,
    now_ms: float | None = None,
) -> str:
    """Convert a millisecond timestamp into whole seconds, as a string.

    A falsy *signature_expires_at* means "now + SIGNATURE_TTL_SECONDS".
    ``datetime`` values are accepted too.  No check is made that the result
    lies in the future; expired signatures are rejected on-chain.
    """
    millis = _to_millis(signature_expires_at)
    if not millis:
        if now_ms is None:
            now_ms = time.time() * 1000
        millis = now_ms + settings.SIGNATURE_TTL_SECONDS * 1000
    return str(math.floor(millis / 1000))


def _to_millis(value: Timestamp) -> float:
    if value is None or value == "":
        return 0
    if isinstance(value, datetime):
        return value.timestamp() * 1000
    if isinstance(value, bool):
        raise ValidationError("signature_expires_at must be a timestamp, not a bool")
    try:
        return float(value)
    except (TypeError, ValueError):
        raise ValidationError(
            f"signature_expires_at must be milliseconds since epoch, got {value!r}"
        ) from None


def transform_period(period: int | str, period_unit: str) -> tuple[str, str]:
    """Map a plan's ``(period, periodUnit)`` to the contract's representation.

    Returns ``(periods, period_unit)`` with *periods* as a decimal string.
    """
    try:
        unit, multiplier = PERIOD_UNITS[str(period_unit).upper()]
    except KeyError:
        raise ValidationError(f"Unsupported period unit: {period_unit!r}") from None
    return str(int(period) * multiplier), unit


def gen_nonce() -> str:
    """Return 32 random bytes as a ``0x`` hex string."""
    return Web3.to_hex(secrets.token_bytes(32))
