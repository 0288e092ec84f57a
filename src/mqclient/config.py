"""Connector options and topology constants."""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any
from enum import Enum

# Queue property keys recognized by topology provisioning.
EXCHANGE_TYPE_KEY = "exchange_type"
ROUTING_KEY_PROPERTY = "_x_routing_key"

DEFAULT_EXCHANGE_TYPE = "direct"
DEAD_LETTER_EXCHANGE_TYPE = "fanout"

# Queue argument keys attached to a queue that owns a dead-letter queue.
DEAD_LETTER_EXCHANGE_ARG = "x-dead-letter-exchange"
MESSAGE_TTL_ARG = "x-message-ttl"
QUEUE_EXPIRES_ARG = "x-expires"

# Milliseconds.
DEFAULT_MESSAGE_TTL_MS = 3600 * 72 * 1000
DEFAULT_QUEUE_EXPIRES_MS = DEFAULT_MESSAGE_TTL_MS + 1000

AMQP_PORT = 5672
AMQPS_PORT = 5671

DEFAULT_CONTENT_TYPE = "text/plain"
PERSISTENT_DELIVERY_MODE = 2


class ConnectionPolicy(str, Enum):
    """How a connector obtains transport connections."""

    PER_CALL = "per_call"
    """Open a fresh connection for every publish/consume and close it after."""

    POOLED = "pooled"
    """Open one connection lazily and reuse it until the connector is closed."""


@dataclass(frozen=True)
class ConnectorOptions:
    """Keyword options accepted by every connector constructor.

    Attributes:
        policy: Connection reuse policy; see :class:`ConnectionPolicy`.
        prefetch_count: QoS prefetch for consumers; ``None`` keeps the
            broker default.
        handle_signals: Install SIGINT/SIGTERM handlers while ``consume``
            runs so the open channel and connection get closed on shutdown.
        connect_timeout: Seconds to wait for the transport connection.
    """

    policy: ConnectionPolicy = ConnectionPolicy.PER_CALL
    prefetch_count: int | None = None
    handle_signals: bool = True
    connect_timeout: float | None = None

    def __post_init__(self) -> None:
        # Accept the plain string values, e.g. from a config file.
        object.__setattr__(self, "policy", ConnectionPolicy(self.policy))
        if self.prefetch_count is not None and self.prefetch_count < 0:
            raise ValueError("prefetch_count must be >= 0")
        if self.connect_timeout is not None and self.connect_timeout <= 0:
            raise ValueError("connect_timeout must be > 0")

    @classmethod
    def merge(
        cls, options: ConnectorOptions | None, **overrides: Any
    ) -> ConnectorOptions:
        """Return *options* with *overrides* applied on top.

        Unknown keys raise TypeError, like the constructor does.
        """
        if options is None:
            return cls(**overrides)
        if not overrides:
            return options
        return replace(options, **overrides)
