"""Daisy SDK — core package: errors, event emitter, logging setup."""

from .emitter import EventEmitter
from .errors import DaisyError, NetworkError, NotMinedYetError, ValidationError
from .logger import get_logger, setup_logging

__all__ = [
    "DaisyError",
    "EventEmitter",
    "NetworkError",
    "NotMinedYetError",
    "ValidationError",
    "get_logger",
    "setup_logging",
]
