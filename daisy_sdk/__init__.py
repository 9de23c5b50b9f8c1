"""Daisy SDK — client for Daisy's on-chain subscription payments.

- ``daisy_sdk.browser``: ``DaisySDK`` façade bound to a wallet provider
- ``daisy_sdk.private``: ``ServiceSubscriptions`` for backend authorization
- ``daisy_sdk.data``: HTTP and product clients
- ``daisy_sdk.web3_infra``: EIP-712 composition, signing, tx watching
"""

from .browser import DaisySDK, DaisySDKToken
from .core.errors import DaisyError, NetworkError, NotMinedYetError, ValidationError
from .data import Client, ClientConfig, SubscriptionProductClient
from .models import SignResult, SubscriptionManager
from .private import ServiceSubscriptions
from .web3_infra import Signer, TransactionWatcher, WatcherConfig

__version__ = "0.11.1"

__all__ = [
    "Client",
    "ClientConfig",
    "DaisyError",
    "DaisySDK",
    "DaisySDKToken",
    "NetworkError",
    "NotMinedYetError",
    "ServiceSubscriptions",
    "SignResult",
    "Signer",
    "SubscriptionManager",
    "SubscriptionProductClient",
    "TransactionWatcher",
    "ValidationError",
    "WatcherConfig",
]
