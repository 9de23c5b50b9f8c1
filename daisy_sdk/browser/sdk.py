"""DaisySDK — wallet-facing façade over the product client, signing and ERC20.

Binds an ``AsyncWeb3`` instance (whose provider holds the user's wallet) to
one subscription manager.  Every ``sign*`` call composes a fresh agreement,
asks the wallet for an EIP-712 signature and returns a ``SignResult`` ready
for ``SubscriptionProductClient.submit``.
"""

from __future__ import annotations

from typing import Any, Mapping

import httpx
import pydantic
import structlog
from web3 import AsyncWeb3, Web3
from web3.contract import AsyncContract

from daisy_sdk.core.errors import ValidationError
from daisy_sdk.data.product_client import ZERO_ADDRESS, SubscriptionProductClient
from daisy_sdk.data.rest_client import ClientConfig
from daisy_sdk.models.agreement import (
    AddPlanAgreement,
    Agreement,
    CancelAgreement,
    RemovePlanAgreement,
    SetActiveAgreement,
    SetAuthorizerAgreement,
    SetWalletAgreement,
    SignResult,
    SubscriptionAgreement,
)
from daisy_sdk.models.manager import Plan, SubscriptionManager
from daisy_sdk.web3_infra.erc20 import ERC20_ABI
from daisy_sdk.web3_infra.tx_watcher import TransactionWatcher, WatcherConfig
from daisy_sdk.web3_infra.typed_data import (
    Timestamp,
    build_typed_data,
    gen_nonce,
    get_expiration_in_seconds,
    transform_period,
)
from daisy_sdk.web3_infra.wallet import sign_typed_data_with_wallet

logger = structlog.get_logger("daisy_sdk.browser.sdk")


def _as_plan(plan: Plan | Mapping[str, Any] | None) -> Plan:
    if plan is None:
        raise ValidationError("Missing plan.")
    if isinstance(plan, Plan):
        return plan
    try:
        return Plan.model_validate(dict(plan))
    except pydantic.ValidationError as exc:
        raise ValidationError(f"Invalid plan: {exc}") from exc


class DaisySDK:
    """Entry point for wallet-side integrations.

    Usage::

        w3 = AsyncWeb3(AsyncWeb3.AsyncHTTPProvider(...))
        daisy = await DaisySDK({"identifier": DAISY_ID}, w3).sync()

        token = daisy.prepare_token(daisy.load_token())
        result = await token.sign(account=account, plan=daisy.manager.plans[0])
        await daisy.submit(result.agreement, result.signature)

    Parameters
    ----------
    manager:
        ``SubscriptionManager`` or its camelCase dict.  When only
        ``identifier`` is known, call ``sync()`` before anything else.
    w3:
        ``AsyncWeb3`` bound to the user's wallet provider.
    config:
        Optional HTTP ``ClientConfig`` override.
    """

    def __init__(
        self,
        manager: SubscriptionManager | Mapping[str, Any],
        w3: AsyncWeb3,
        config: ClientConfig | Mapping[str, Any] | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.product = SubscriptionProductClient(manager, config, transport=transport)
        self.w3 = w3

    @property
    def manager(self) -> SubscriptionManager:
        return self.product.manager

    async def sync(self) -> DaisySDK:
        """Fetch the manager's data from the backend and merge it in."""
        await self.product.get_plans()
        logger.info("daisy_sdk.synced", manager=self.manager.address)
        return self

    # ── Backend pass-through ─────────────────────────────────────

    async def get_plans(self) -> SubscriptionManager:
        return await self.product.get_plans()

    async def get_subscriptions(self, account: str) -> list[dict[str, Any]]:
        return await self.product.get_subscriptions(account)

    async def get_receipts(self, account: str) -> list[dict[str, Any]]:
        return await self.product.get_receipts(account)

    async def submit(
        self,
        agreement: Mapping[str, Any],
        signature: str,
        receipt: Mapping[str, Any] | str | None = None,
        auth_signature: str | None = None,
    ) -> dict[str, Any]:
        return await self.product.submit(agreement, signature, receipt, auth_signature)

    # ── Tokens ───────────────────────────────────────────────────

    def load_token(self, address: str | None = None, symbol: str | None = None) -> AsyncContract:
        """Return the ERC20 contract at *address*, or the manager's token.

        Lookup by *symbol* is not supported.
        """
        if address:
            return self.w3.eth.contract(address=Web3.to_checksum_address(address), abi=ERC20_ABI)
        if symbol:
            raise NotImplementedError("Loading a token by symbol is not implemented yet")
        if not self.manager.token_address:
            raise ValidationError("Manager has no tokenAddress; call sync() first.")
        return self.w3.eth.contract(
            address=Web3.to_checksum_address(self.manager.token_address), abi=ERC20_ABI
        )

    def prepare_token(self, token: AsyncContract) -> DaisySDKToken:
        """Wrap a token contract from ``load_token`` into a ``DaisySDKToken``."""
        return DaisySDKToken(self.w3, self.manager, token)

    async def aclose(self) -> None:
        await self.product.aclose()

    async def __aenter__(self) -> DaisySDK:
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.aclose()


class DaisySDKToken:
    """Token operations and agreement signing for one manager.

    Obtain through ``DaisySDK.prepare_token``; not meant to be built directly.
    """

    def __init__(self, w3: AsyncWeb3, manager: SubscriptionManager, token: AsyncContract) -> None:
        self.w3 = w3
        self.manager = manager
        self.token = token

    # ── ERC20 ────────────────────────────────────────────────────

    async def approve(self, amount: int | str, send_args: Mapping[str, Any]) -> str:
        """Approve the manager to spend *amount* of the token.

        ``send_args`` are web3 transaction params and must include ``from``.
        Returns the transaction hash; pass it to ``resume`` to follow it.
        """
        if not send_args or not send_args.get("from"):
            raise ValidationError("Missing send_args['from'].")
        tx_hash = await self.token.functions.approve(self._manager_address(), int(amount)).transact(
            dict(send_args)
        )
        tx_hash_hex = tx_hash if isinstance(tx_hash, str) else Web3.to_hex(tx_hash)
        logger.info("daisy_sdk.approve_sent", tx_hash=tx_hash_hex, owner=send_args["from"])
        return tx_hash_hex

    async def allowance(self, token_owner: str) -> int:
        """How much of the token *token_owner* lets the manager spend."""
        if not token_owner:
            raise ValidationError("Missing token_owner.")
        return await self.token.functions.allowance(token_owner, self._manager_address()).call()

    async def balance_of(self, token_owner: str) -> int:
        """Token balance of *token_owner*."""
        if not token_owner:
            raise ValidationError("Missing token_owner.")
        return await self.token.functions.balanceOf(token_owner).call()

    def resume(
        self,
        receipt: Mapping[str, Any] | str,
        config: WatcherConfig | None = None,
    ) -> TransactionWatcher:
        """Follow an ``approve`` transaction from its receipt or hash.

        Returns a started ``TransactionWatcher``; attach ``confirmation`` and
        ``error`` listeners or iterate ``confirmations()``.
        """
        if not receipt:
            raise ValidationError("Missing argument.")
        if isinstance(receipt, str):
            transaction_hash = receipt
        else:
            transaction_hash = receipt.get("transactionHash")
            if not isinstance(transaction_hash, str) and transaction_hash is not None:
                transaction_hash = Web3.to_hex(transaction_hash)
        if not transaction_hash:
            raise ValidationError("Receipt has no transactionHash.")
        return TransactionWatcher(self.w3, transaction_hash, config).start()

    # ── Subscriber signatures ────────────────────────────────────

    async def sign(
        self,
        account: str,
        plan: Plan | Mapping[str, Any],
        signature_expires_at: Timestamp = None,
        max_executions: int | str = "0",
        nonce: str | None = None,
    ) -> SignResult:
        """Sign a subscription to *plan* as *account*.

        *max_executions* is the number of periods to pay for; ``0`` renews
        indefinitely.  *nonce* is generated unless given.
        """
        if not account or not plan:
            raise ValidationError("Missing required arguments.")
        plan = _as_plan(plan)
        periods, period_unit = transform_period(plan.period, plan.period_unit)

        agreement = SubscriptionAgreement(
            subscriber=account,
            token=self.token.address,
            amount=plan.price,
            period_unit=period_unit,
            periods=periods,
            max_executions=max_executions,
            signature_expires_at=get_expiration_in_seconds(signature_expires_at),
            plan=plan.on_chain_id,
            nonce=nonce or gen_nonce(),
        )
        return await self._sign(account, agreement)

    async def sign_authorization(
        self,
        account: str,
        agreement: Mapping[str, Any],
        allow_any_address: bool = False,
    ) -> SignResult:
        """Sign a subscriber's agreement with the authorizer's wallet.

        With *allow_any_address* the subscriber is replaced by the zero
        address, authorizing any account to use the agreement.
        """
        if not agreement:
            raise ValidationError("Missing agreement.")
        message = {
            **agreement,
            "subscriber": ZERO_ADDRESS if allow_any_address else agreement.get("subscriber"),
        }
        try:
            subscription = SubscriptionAgreement.model_validate(message)
        except pydantic.ValidationError as exc:
            raise ValidationError(f"Invalid agreement: {exc}") from exc
        return await self._sign(account, subscription)

    async def sign_cancel(
        self,
        account: str,
        subscription_hash: str,
        signature_expires_at: Timestamp = None,
    ) -> SignResult:
        """Sign the cancellation of the subscription identified by its hash."""
        if not subscription_hash:
            raise ValidationError("Missing subscription_hash.")
        agreement = CancelAgreement(
            subscription_hash=subscription_hash,
            signature_expires_at=get_expiration_in_seconds(signature_expires_at),
        )
        return await self._sign(account, agreement)

    # ── Publisher / owner signatures ─────────────────────────────

    async def sign_new_plan(
        self,
        account: str,
        plan: Plan | Mapping[str, Any],
        signature_expires_at: Timestamp = None,
    ) -> SignResult:
        """Sign the creation of *plan*; *account* must be the publisher."""
        plan = _as_plan(plan)
        periods, period_unit = transform_period(plan.period, plan.period_unit)
        agreement = AddPlanAgreement(
            plan=plan.on_chain_id,
            price=plan.price,
            periods=periods,
            period_unit=period_unit,
            max_executions=plan.max_executions,
            private=plan.private,
            signature_expires_at=get_expiration_in_seconds(signature_expires_at),
        )
        return await self._sign(account, agreement)

    async def sign_set_plan_active(
        self,
        account: str,
        plan: Plan | Mapping[str, Any],
        active: bool,
        signature_expires_at: Timestamp = None,
        nonce: str | None = None,
    ) -> SignResult:
        """Sign (de)activation of *plan*."""
        plan = _as_plan(plan)
        agreement = SetActiveAgreement(
            plan=plan.on_chain_id,
            active=active,
            nonce=nonce or gen_nonce(),
            signature_expires_at=get_expiration_in_seconds(signature_expires_at),
        )
        return await self._sign(account, agreement)

    async def sign_remove_plan(
        self,
        account: str,
        plan: Plan | Mapping[str, Any],
        signature_expires_at: Timestamp = None,
    ) -> SignResult:
        plan = _as_plan(plan)
        agreement = RemovePlanAgreement(
            plan=plan.on_chain_id,
            signature_expires_at=get_expiration_in_seconds(signature_expires_at),
        )
        return await self._sign(account, agreement)

    async def sign_set_wallet(
        self,
        account: str,
        wallet: str,
        signature_expires_at: Timestamp = None,
        nonce: str | None = None,
    ) -> SignResult:
        """Sign a change of the manager's receiving wallet (owner only)."""
        if not wallet:
            raise ValidationError("Missing wallet.")
        agreement = SetWalletAgreement(
            wallet=wallet,
            nonce=nonce or gen_nonce(),
            signature_expires_at=get_expiration_in_seconds(signature_expires_at),
        )
        return await self._sign(account, agreement)

    async def sign_set_authorizer(
        self,
        account: str,
        authorizer: str,
        signature_expires_at: Timestamp = None,
        nonce: str | None = None,
    ) -> SignResult:
        """Sign a change of the manager's authorizer (owner only)."""
        if not authorizer:
            raise ValidationError("Missing authorizer.")
        agreement = SetAuthorizerAgreement(
            authorizer=authorizer,
            nonce=nonce or gen_nonce(),
            signature_expires_at=get_expiration_in_seconds(signature_expires_at),
        )
        return await self._sign(account, agreement)

    # ── Internals ────────────────────────────────────────────────

    def _manager_address(self) -> str:
        if not self.manager.address:
            raise ValidationError("Manager has no address; call DaisySDK.sync() first.")
        return self.manager.address

    async def _sign(self, account: str, agreement: Agreement) -> SignResult:
        message = agreement.to_message()
        typed_data = build_typed_data(agreement.PRIMARY_TYPE, message, self._manager_address())
        signature = await sign_typed_data_with_wallet(self.w3, account, typed_data)
        logger.info(
            "daisy_sdk.signed",
            primary_type=agreement.PRIMARY_TYPE,
            account=account,
            manager=self.manager.address,
        )
        return SignResult(signature=signature, agreement=message)
