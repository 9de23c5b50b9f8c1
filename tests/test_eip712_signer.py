"""Tests for web3_infra.eip712_signer — private-key signing and struct hashes."""

from __future__ import annotations

import pytest
from eth_account import Account
from web3 import Web3

from daisy_sdk.core.errors import ValidationError
from daisy_sdk.web3_infra.eip712_signer import Signer, normalize_message
from tests.conftest import ACCOUNT, MANAGER_ADDRESS, PLAN_ID, SUBSCRIPTION_HASH, TOKEN_ADDRESS

PRIVATE_KEY = "0x" + "11" * 32


def _subscription() -> dict:
    return {
        "subscriber": ACCOUNT,
        "token": TOKEN_ADDRESS,
        "amount": "1000",
        "periodUnit": "DAYS",
        "periods": "14",
        "maxExecutions": "0",
        "signatureExpiresAt": "1700000000",
        "plan": PLAN_ID,
        "nonce": "0x" + "03" * 32,
    }


class TestSigner:

    @pytest.fixture
    def signer(self) -> Signer:
        return Signer(PRIVATE_KEY, MANAGER_ADDRESS)

    def test_missing_key_rejected(self) -> None:
        with pytest.raises(ValidationError):
            Signer("", MANAGER_ADDRESS)

    def test_address(self, signer: Signer) -> None:
        assert signer.address == Account.from_key(PRIVATE_KEY).address

    def test_signature_recovers_to_signer(self, signer: Signer) -> None:
        message = {"wallet": ACCOUNT, "nonce": "0x" + "04" * 32, "signatureExpiresAt": "1700000000"}
        signature = signer.sign_typed_data("SetWallet", message)

        assert signature.startswith("0x")
        assert len(signature) == 2 + 65 * 2
        recovered = Account.recover_message(
            signer.encode("SetWallet", message), signature=signature
        )
        assert recovered == signer.address

    def test_deterministic(self, signer: Signer) -> None:
        assert signer.sign_typed_data("Subscription", _subscription()) == signer.sign_typed_data(
            "Subscription", _subscription()
        )

    def test_domain_changes_signature(self) -> None:
        a = Signer(PRIVATE_KEY, MANAGER_ADDRESS).sign_typed_data("Subscription", _subscription())
        b = Signer(PRIVATE_KEY, "0x" + "dd" * 20).sign_typed_data("Subscription", _subscription())
        assert a != b

    def test_hash_matches_eip712_struct_hash(self, signer: Signer) -> None:
        type_hash = Web3.keccak(text="PlanAuthorization(bytes32 subscriptionHash)")
        expected = Web3.to_hex(Web3.keccak(type_hash + Web3.to_bytes(hexstr=SUBSCRIPTION_HASH)))
        assert signer.hash("PlanAuthorization", {"subscriptionHash": SUBSCRIPTION_HASH}) == expected

    def test_hash_depends_on_message(self, signer: Signer) -> None:
        other = {**_subscription(), "amount": "1001"}
        assert signer.hash("Subscription", _subscription()) != signer.hash("Subscription", other)

    def test_hash_ignores_domain(self) -> None:
        a = Signer(PRIVATE_KEY, MANAGER_ADDRESS).hash("Subscription", _subscription())
        b = Signer(PRIVATE_KEY, "0x" + "dd" * 20).hash("Subscription", _subscription())
        assert a == b


class TestNormalizeMessage:

    def test_numeric_strings_become_ints(self) -> None:
        normalized = normalize_message("Subscription", _subscription())
        assert normalized["amount"] == 1000
        assert normalized["periods"] == 14
        assert normalized["periodUnit"] == "DAYS"

    def test_hex_uint_accepted(self) -> None:
        message = {"plan": PLAN_ID, "signatureExpiresAt": "0x10"}
        assert normalize_message("RemovePlan", message)["signatureExpiresAt"] == 16

    def test_bytes32_become_bytes(self) -> None:
        normalized = normalize_message("Subscription", _subscription())
        assert normalized["plan"] == b"\x01" * 32

    def test_unknown_keys_dropped(self) -> None:
        message = {"plan": PLAN_ID, "signatureExpiresAt": "1", "extra": True}
        assert "extra" not in normalize_message("RemovePlan", message)

    def test_missing_field_rejected(self) -> None:
        with pytest.raises(ValidationError, match="missing field 'plan'"):
            normalize_message("RemovePlan", {"signatureExpiresAt": "1"})
