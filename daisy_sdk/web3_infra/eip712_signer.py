"""Signer — EIP-712 signing and struct hashing with a raw private key.

Used in trusted backend contexts only (e.g. authorizing private-plan
subscriptions).  The key is held for the lifetime of the object and never
stored, rotated or logged.
"""

from __future__ import annotations

from typing import Any, Mapping

import structlog
from eth_account import Account
from eth_account.messages import SignableMessage, encode_typed_data
from web3 import Web3

from daisy_sdk.core.errors import ValidationError
from daisy_sdk.web3_infra.typed_data import TYPES, build_typed_data

logger = structlog.get_logger("daisy_sdk.web3_infra.eip712_signer")


class Signer:
    """Private-key EIP-712 signer bound to one manager contract.

    Parameters
    ----------
    private_key:
        Hex string (with or without ``0x``) or raw 32 bytes.
    verifying_contract:
        Subscription-manager address used as the EIP-712 domain.
    """

    def __init__(self, private_key: str | bytes, verifying_contract: str) -> None:
        if not private_key:
            raise ValidationError("Missing private key.")
        self._private_key = private_key
        self.domain = {"verifyingContract": verifying_contract}

    @property
    def address(self) -> str:
        """Checksummed address controlled by the private key."""
        return Account.from_key(self._private_key).address

    def encode(self, primary_type: str, message: Mapping[str, Any]) -> SignableMessage:
        """Return the ``SignableMessage`` for *message* under this domain."""
        typed_data = build_typed_data(
            primary_type,
            normalize_message(primary_type, message),
            self.domain["verifyingContract"],
        )
        # eth_account derives the primary type from the table, so it may
        # only hold the domain and the struct being signed.
        typed_data["types"] = {
            name: typed_data["types"][name] for name in ("EIP712Domain", primary_type)
        }
        return encode_typed_data(full_message=typed_data)

    def sign_typed_data(self, primary_type: str, message: Mapping[str, Any]) -> str:
        """Sign *message* as *primary_type*; returns the 65-byte signature as hex."""
        signed = Account.sign_message(self.encode(primary_type, message), self._private_key)
        signature = Web3.to_hex(signed.signature)
        logger.debug(
            "eip712_signer.signed",
            primary_type=primary_type,
            verifying_contract=self.domain["verifyingContract"],
        )
        return signature

    def hash(self, primary_type: str, message: Mapping[str, Any]) -> str:
        """Return the EIP-712 struct hash (``hashStruct``) of *message* as hex."""
        return Web3.to_hex(self.encode(primary_type, message).body)


def normalize_message(primary_type: str, message: Mapping[str, Any]) -> dict[str, Any]:
    """Coerce wire-format values into what the EIP-712 encoder expects.

    Numeric strings for ``uint``/``int`` fields become ints and ``0x`` strings
    for fixed-size ``bytesN`` fields become bytes.  Unknown keys are dropped.
    """
    normalized: dict[str, Any] = {}
    for fld in TYPES[primary_type]:
        name, type_ = fld["name"], fld["type"]
        if name not in message:
            raise ValidationError(f"{primary_type} is missing field {name!r}")
        value = message[name]
        if type_.startswith(("uint", "int")) and isinstance(value, str):
            value = int(value, 16) if value.startswith(("0x", "0X")) else int(value)
        elif type_.startswith("bytes") and type_ != "bytes" and isinstance(value, str):
            value = Web3.to_bytes(hexstr=value)
        normalized[name] = value
    return normalized
