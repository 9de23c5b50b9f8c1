"""Agreements — the action-specific payloads signed with EIP-712.

Each model mirrors one struct in ``web3_infra.typed_data.TYPES``; field
declaration order matches the struct so ``to_message()`` yields the keys in
the same order the contract hashes them.  Agreements are frozen: a fresh one
is built for every signing call.
"""

from __future__ import annotations

from typing import Any, ClassVar, Literal, Union

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

# uint256 values travel as decimal strings but callers may hand us ints.
Uint = Union[str, int]


class Agreement(BaseModel):
    """Base class: camelCase aliases, immutable, dumped as a typed-data message."""

    model_config = ConfigDict(
        frozen=True,
        populate_by_name=True,
        alias_generator=to_camel,
    )

    PRIMARY_TYPE: ClassVar[str]

    def to_message(self) -> dict[str, Any]:
        """Return the EIP-712 ``message`` dict (camelCase keys)."""
        return self.model_dump(by_alias=True)


class SubscriptionAgreement(Agreement):
    """A subscriber's consent to be charged for a plan."""

    PRIMARY_TYPE: ClassVar[str] = "Subscription"

    subscriber: str
    token: str
    amount: Uint
    period_unit: str
    periods: Uint
    max_executions: Uint = "0"
    signature_expires_at: str
    plan: str
    nonce: str


class CancelAgreement(Agreement):
    PRIMARY_TYPE: ClassVar[str] = "SubscriptionAction"

    action: Literal["cancel"] = "cancel"
    subscription_hash: str
    signature_expires_at: str


class AddPlanAgreement(Agreement):
    PRIMARY_TYPE: ClassVar[str] = "AddPlan"

    plan: str
    price: Uint
    periods: Uint
    period_unit: str
    max_executions: Uint = "0"
    private: bool = False
    signature_expires_at: str


class RemovePlanAgreement(Agreement):
    PRIMARY_TYPE: ClassVar[str] = "RemovePlan"

    plan: str
    signature_expires_at: str


class SetActiveAgreement(Agreement):
    PRIMARY_TYPE: ClassVar[str] = "SetActive"

    plan: str
    active: bool
    nonce: str
    signature_expires_at: str


class SetWalletAgreement(Agreement):
    PRIMARY_TYPE: ClassVar[str] = "SetWallet"

    wallet: str
    nonce: str
    signature_expires_at: str


class SetAuthorizerAgreement(Agreement):
    PRIMARY_TYPE: ClassVar[str] = "SetAuthorizer"

    authorizer: str
    nonce: str
    signature_expires_at: str


class PlanAuthorizationAgreement(Agreement):
    """Authorizer's approval of a specific subscription (private plans)."""

    PRIMARY_TYPE: ClassVar[str] = "PlanAuthorization"

    subscription_hash: str


class SignResult(BaseModel):
    """A signature together with the agreement message that was signed.

    Both are submitted to the backend, which validates them against the
    on-chain contract state.
    """

    model_config = ConfigDict(frozen=True)

    signature: str
    agreement: dict[str, Any]
