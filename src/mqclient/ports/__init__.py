"""Ports — protocol definitions implemented by the connectors."""

from __future__ import annotations

from .connector import IConnector

__all__ = ["IConnector"]
