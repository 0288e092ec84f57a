"""RabbitMQ connector (AMQP 0-9-1 over aio-pika)."""

from __future__ import annotations

from .connection import RabbitMQConnectionManager, build_ssl_context
from .connector import RabbitMQConnector, from_amqp_message, to_amqp_message
from .topology import Topology, create_topology

__all__ = [
    "RabbitMQConnectionManager",
    "RabbitMQConnector",
    "Topology",
    "build_ssl_context",
    "create_topology",
    "from_amqp_message",
    "to_amqp_message",
]
