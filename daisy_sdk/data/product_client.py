"""SubscriptionProductClient — REST calls for plans, subscriptions and receipts.

Authenticates with the manager's ``identifier`` / ``secretKey`` pair (HTTP
basic auth) and delegates transport to a ``Client`` it owns.
"""

from __future__ import annotations

from typing import Any, Mapping

import httpx
import pydantic
import structlog

from daisy_sdk.core.errors import ValidationError
from daisy_sdk.data.rest_client import Client, ClientConfig, ClientResponse
from daisy_sdk.models.manager import SubscriptionManager

logger = structlog.get_logger("daisy_sdk.data.product_client")

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"


class SubscriptionProductClient:
    """Backend client bound to one subscription manager.

    Parameters
    ----------
    manager:
        ``SubscriptionManager`` (or its camelCase dict).  ``identifier`` and
        ``secretKey`` are used as credentials when both are present.
    config:
        Optional ``ClientConfig`` or mapping overriding the defaults.
    transport:
        Optional httpx transport, forwarded to ``Client``.
    """

    ZERO_ADDRESS = ZERO_ADDRESS

    def __init__(
        self,
        manager: SubscriptionManager | Mapping[str, Any],
        config: ClientConfig | Mapping[str, Any] | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        if not isinstance(manager, SubscriptionManager):
            try:
                manager = SubscriptionManager.model_validate(dict(manager))
            except pydantic.ValidationError as exc:
                raise ValidationError(f"Invalid manager: {exc}") from exc

        client_config = ClientConfig().merged(config)
        if manager.identifier and manager.secret_key and client_config.auth is None:
            client_config.auth = (manager.identifier, manager.secret_key)

        self.manager = manager
        self.client = Client(client_config, transport=transport)

    async def request(
        self,
        method: str = "get",
        url: str = "/",
        headers: Mapping[str, str] | None = None,
        data: Mapping[str, Any] | None = None,
    ) -> ClientResponse:
        """Send a raw request through the owned ``Client``."""
        return await self.client.request(method, url, headers=headers, data=data)

    # ── Manager / plans ──────────────────────────────────────────

    async def get_manager(self) -> dict[str, Any]:
        """Fetch the raw manager payload (``body["data"]`` of ``GET /``)."""
        response = await self.request("get", "/")
        return _unwrap(response)

    async def get_plans(self) -> SubscriptionManager:
        """Fetch the manager with its plans; also refreshes ``self.manager``."""
        data = await self.get_manager()
        self.manager = self.manager.merge(data)
        logger.info(
            "product_client.get_plans",
            manager=self.manager.address,
            plans=len(self.manager.plans),
        )
        return self.manager

    # ── Subscriptions / receipts ─────────────────────────────────

    async def get_receipts(self, account: str) -> list[dict[str, Any]]:
        """List on-chain approval receipts stored for *account*."""
        if not account:
            raise ValidationError("Missing account.")
        response = await self.request("get", "/receipts/", data={"account": account})
        return _unwrap(response)

    async def get_subscriptions(self, account: str) -> list[dict[str, Any]]:
        """List subscriptions of *account* under this manager."""
        if not account:
            raise ValidationError("Missing account.")
        response = await self.request("get", "/subscriptions/", data={"account": account})
        return _unwrap(response)

    async def get_subscription(
        self,
        id: str | None = None,
        subscription_hash: str | None = None,
    ) -> dict[str, Any] | None:
        """Fetch one subscription by backend *id* or on-chain *subscription_hash*."""
        if id:
            response = await self.request("get", f"/subscriptions/{id}/")
            return _unwrap(response)
        if subscription_hash:
            response = await self.request(
                "get", "/subscriptions/", data={"subscriptionHash": subscription_hash}
            )
            found = _unwrap(response) or []
            return found[0] if found else None
        raise ValidationError("Missing id or subscription_hash.")

    async def submit(
        self,
        agreement: Mapping[str, Any],
        signature: str,
        receipt: Mapping[str, Any] | str | None = None,
        auth_signature: str | None = None,
    ) -> dict[str, Any]:
        """Submit a signed subscription agreement to the backend.

        Parameters
        ----------
        agreement:
            ``SignResult.agreement`` from ``DaisySDKToken.sign``.
        signature:
            Subscriber's signature over *agreement*.
        receipt:
            Approval transaction receipt (or hash), when one exists.
        auth_signature:
            Authorizer signature for private plans
            (``ServiceSubscriptions.authorize``).
        """
        if not agreement or not signature:
            raise ValidationError("Missing agreement or signature.")

        payload: dict[str, Any] = {
            "agreement": dict(agreement),
            "signature": signature,
        }
        if receipt is not None:
            payload["receipt"] = receipt if isinstance(receipt, str) else dict(receipt)
        if auth_signature is not None:
            payload["authSignature"] = auth_signature

        response = await self.request("post", "/subscriptions/", data=payload)
        logger.info("product_client.submitted", plan=agreement.get("plan"))
        return _unwrap(response)

    # ── Lifecycle ────────────────────────────────────────────────

    async def aclose(self) -> None:
        await self.client.aclose()

    async def __aenter__(self) -> SubscriptionProductClient:
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.aclose()


def _unwrap(response: ClientResponse) -> Any:
    """Return the ``data`` member of the backend's ``{"data": ...}`` envelope."""
    body = response.data
    if isinstance(body, dict) and "data" in body:
        return body["data"]
    return body
