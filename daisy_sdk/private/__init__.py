"""Daisy SDK — private package: flows that hold secret keys (backend only)."""

from .service_subscriptions import ServiceSubscriptions

__all__ = ["ServiceSubscriptions"]
