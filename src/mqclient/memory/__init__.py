"""In-memory connector for testing."""

from __future__ import annotations

from .broker import Delivery, InMemoryBroker
from .connector import InMemoryConnector

__all__ = [
    "Delivery",
    "InMemoryBroker",
    "InMemoryConnector",
]
