"""SubscriptionManager / Plan — backend payloads describing a manager contract."""

from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class _Payload(BaseModel):
    model_config = ConfigDict(
        populate_by_name=True,
        alias_generator=to_camel,
        extra="allow",
    )


class Plan(_Payload):
    """Subscription plan as returned by the backend."""

    id: Optional[str] = None
    on_chain_id: str = Field(..., min_length=1, description="bytes32 plan id on the manager")
    name: Optional[str] = None
    price: str | int
    period: str | int
    period_unit: str
    max_executions: str | int = "0"
    private: bool = False
    active: bool = True


class SubscriptionManager(_Payload):
    """Manager contract data plus the API credentials used to reach it.

    Only ``identifier`` is needed up front; the rest is filled by
    ``DaisySDK.sync()`` or ``SubscriptionProductClient.get_plans()``.
    """

    identifier: Optional[str] = None
    secret_key: Optional[str] = Field(default=None, repr=False)
    address: Optional[str] = None
    token_address: Optional[str] = None
    publisher: Optional[str] = None
    authorizer: Optional[str] = None
    wallet: Optional[str] = None
    name: Optional[str] = None
    plans: list[Plan] = Field(default_factory=list)

    def merge(self, data: dict[str, Any]) -> SubscriptionManager:
        """Return a copy updated with backend *data* (camelCase keys)."""
        current = self.model_dump(by_alias=True, exclude_none=True)
        return SubscriptionManager.model_validate({**current, **data})
