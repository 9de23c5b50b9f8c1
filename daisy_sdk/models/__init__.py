"""Daisy SDK — models package."""

from .agreement import (
    AddPlanAgreement,
    Agreement,
    CancelAgreement,
    PlanAuthorizationAgreement,
    RemovePlanAgreement,
    SetActiveAgreement,
    SetAuthorizerAgreement,
    SetWalletAgreement,
    SignResult,
    SubscriptionAgreement,
)
from .manager import Plan, SubscriptionManager

__all__ = [
    "AddPlanAgreement",
    "Agreement",
    "CancelAgreement",
    "Plan",
    "PlanAuthorizationAgreement",
    "RemovePlanAgreement",
    "SetActiveAgreement",
    "SetAuthorizerAgreement",
    "SetWalletAgreement",
    "SignResult",
    "SubscriptionAgreement",
    "SubscriptionManager",
]
