"""Daisy SDK — data package: HTTP client and backend product client."""

from .product_client import ZERO_ADDRESS, SubscriptionProductClient
from .rest_client import Client, ClientConfig, ClientResponse

__all__ = [
    "Client",
    "ClientConfig",
    "ClientResponse",
    "SubscriptionProductClient",
    "ZERO_ADDRESS",
]
