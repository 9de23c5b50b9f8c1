"""Daisy SDK — browser package: wallet-facing façade."""

from .sdk import DaisySDK, DaisySDKToken

__all__ = ["DaisySDK", "DaisySDKToken"]
