"""ServiceSubscriptions — server-side flows that need the authorizer's key."""

from __future__ import annotations

from typing import Any, Mapping

import httpx
import structlog

from daisy_sdk.core.errors import ValidationError
from daisy_sdk.data.product_client import SubscriptionProductClient
from daisy_sdk.data.rest_client import ClientConfig
from daisy_sdk.models.manager import SubscriptionManager
from daisy_sdk.web3_infra.eip712_signer import Signer

logger = structlog.get_logger("daisy_sdk.private.service_subscriptions")


class ServiceSubscriptions:
    """Backend-only operations for a subscription manager.

    Parameters
    ----------
    manager:
        ``SubscriptionManager`` or its camelCase dict, with ``identifier``
        and ``secretKey``.
    config:
        Optional HTTP ``ClientConfig`` override.
    """

    def __init__(
        self,
        manager: SubscriptionManager | Mapping[str, Any],
        config: ClientConfig | Mapping[str, Any] | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.product = SubscriptionProductClient(manager, config, transport=transport)

    async def authorize(
        self,
        authorizer_private_key: str | bytes | None,
        agreement: Mapping[str, Any],
    ) -> str:
        """Authorize a subscription to a private plan.

        Safe to use on public plans too.  The key must belong to the
        ``authorizer`` configured for the manager.

        Parameters
        ----------
        authorizer_private_key:
            Authorizer's private key (hex string or raw bytes).
        agreement:
            ``SignResult.agreement`` from ``DaisySDKToken.sign``.

        Returns
        -------
        str
            Signature to pass as ``auth_signature`` to ``submit``.
        """
        if not authorizer_private_key:
            raise ValidationError("Missing authorizer private key.")
        if not agreement:
            raise ValidationError("Missing agreement.")

        manager = await self.product.get_plans()
        if not manager.address:
            raise ValidationError("Manager has no address.")

        signer = Signer(authorizer_private_key, manager.address)
        subscription_hash = signer.hash("Subscription", agreement)
        auth_signature = signer.sign_typed_data(
            "PlanAuthorization", {"subscriptionHash": subscription_hash}
        )
        logger.info(
            "service_subscriptions.authorized",
            manager=manager.address,
            plan=agreement.get("plan"),
            subscription_hash=subscription_hash,
        )
        return auth_signature

    async def submit(
        self,
        agreement: Mapping[str, Any],
        signature: str,
        receipt: Mapping[str, Any] | str | None = None,
        auth_signature: str | None = None,
    ) -> dict[str, Any]:
        return await self.product.submit(agreement, signature, receipt, auth_signature)

    async def aclose(self) -> None:
        await self.product.aclose()

    async def __aenter__(self) -> ServiceSubscriptions:
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.aclose()
