"""Broker-agnostic message queue client — connectors selected by URI scheme."""

from __future__ import annotations

from .config import ConnectionPolicy, ConnectorOptions
from .envelope import Envelope
from .exceptions import (
    ConfigurationError,
    ConnectorRegistrationError,
    HandlerError,
    MessagingConnectionError,
    MessagingError,
    MQClientError,
    TopologyError,
    UnsupportedSchemeError,
)
from .factory import ConnectorFactory, create_connector, get_connector_factory
from .memory import InMemoryBroker, InMemoryConnector
from .message import Message, Outcome
from .ports import IConnector
from .queue import Queue
from .uri import ConnectionUri

__all__ = [
    "ConfigurationError",
    "ConnectionPolicy",
    "ConnectionUri",
    "ConnectorFactory",
    "ConnectorOptions",
    "ConnectorRegistrationError",
    "Envelope",
    "HandlerError",
    "IConnector",
    "InMemoryBroker",
    "InMemoryConnector",
    "MQClientError",
    "Message",
    "MessagingConnectionError",
    "MessagingError",
    "Outcome",
    "Queue",
    "TopologyError",
    "UnsupportedSchemeError",
    "create_connector",
    "get_connector_factory",
]
