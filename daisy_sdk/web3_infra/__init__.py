"""Daisy SDK — web3_infra package.

- typed_data: EIP-712 type table and payload composition
- eip712_signer: private-key signing and struct hashing
- wallet: provider-side signing (``eth_signTypedData_v4``)
- tx_watcher: transaction confirmation polling
"""

from .eip712_signer import Signer
from .erc20 import ERC20_ABI
from .tx_watcher import ConfirmationUpdate, TransactionWatcher, WatcherConfig, WatcherState
from .typed_data import (
    TYPES,
    build_typed_data,
    gen_nonce,
    get_expiration_in_seconds,
    transform_period,
)
from .wallet import sign_typed_data_with_wallet

__all__ = [
    "ConfirmationUpdate",
    "ERC20_ABI",
    "Signer",
    "TYPES",
    "TransactionWatcher",
    "WatcherConfig",
    "WatcherState",
    "build_typed_data",
    "gen_nonce",
    "get_expiration_in_seconds",
    "sign_typed_data_with_wallet",
    "transform_period",
]
