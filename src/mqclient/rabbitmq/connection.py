"""RabbitMQ connection settings, TLS and per-call or pooled connections."""

from __future__ import annotations

import logging
import ssl
from typing import TYPE_CHECKING, Any

import aio_pika
from aio_pika.exceptions import AMQPError

from ..config import AMQP_PORT, AMQPS_PORT, ConnectionPolicy, ConnectorOptions
from ..exceptions import ConfigurationError, MessagingConnectionError

if TYPE_CHECKING:
    from aio_pika.abc import AbstractConnection

    from ..uri import ConnectionUri

logger = logging.getLogger("mqclient.rabbitmq")

SECURE_SCHEME = "amqps"

_FALSE_VALUES = frozenset({"0", "false", "no", "off", ""})


def _flag(value: str | None, default: bool = True) -> bool:
    if value is None:
        return default
    return value.strip().lower() not in _FALSE_VALUES


def build_ssl_context(options: dict[str, str]) -> ssl.SSLContext:
    """Build a client TLS context from URI query options.

    ``capath`` is mandatory. Optional: ``cafile``, ``local_cert``/``certfile``,
    ``local_pk``/``keyfile``, ``passphrase``, ``verify_peer``,
    ``verify_peer_name``.
    """
    capath = options.get("capath")
    if not capath:
        raise ConfigurationError("The 'capath' parameter is required for AMQPS")

    context = ssl.create_default_context(
        ssl.Purpose.SERVER_AUTH,
        cafile=options.get("cafile") or None,
        capath=capath,
    )
    certfile = options.get("local_cert") or options.get("certfile")
    if certfile:
        context.load_cert_chain(
            certfile,
            keyfile=options.get("local_pk") or options.get("keyfile") or None,
            password=options.get("passphrase") or None,
        )
    if not _flag(options.get("verify_peer_name")):
        context.check_hostname = False
    if not _flag(options.get("verify_peer")):
        context.check_hostname = False
        context.verify_mode = ssl.CERT_NONE
    return context


def connection_kwargs(
    uri: ConnectionUri, options: ConnectorOptions | None = None
) -> dict[str, Any]:
    """Translate a parsed URI into ``aio_pika.connect`` keyword arguments.

    Raises ConfigurationError before any network I/O when the URI is unusable.
    """
    secure = uri.scheme == SECURE_SCHEME
    kwargs: dict[str, Any] = {
        "host": uri.host or "localhost",
        "port": uri.port or (AMQPS_PORT if secure else AMQP_PORT),
        "login": uri.username or "guest",
        "password": uri.password or "guest",
        "virtualhost": uri.vhost,
    }
    if secure:
        kwargs["ssl"] = True
        kwargs["ssl_context"] = build_ssl_context(uri.options)
    if options is not None and options.connect_timeout is not None:
        kwargs["timeout"] = options.connect_timeout
    return kwargs


class RabbitMQConnectionManager:
    """Hands out RabbitMQ connections according to a :class:`ConnectionPolicy`.

    Under ``PER_CALL`` every :meth:`acquire` opens a new connection which
    :meth:`release` closes. Under ``POOLED`` one robust connection is opened
    on first use and shared until :meth:`close`.
    """

    def __init__(
        self,
        uri: ConnectionUri,
        options: ConnectorOptions | None = None,
    ) -> None:
        """Validate the URI eagerly; no connection is opened here."""
        self._uri = uri
        self._options = options or ConnectorOptions()
        self._kwargs = connection_kwargs(uri, self._options)
        self._connection: AbstractConnection | None = None

    @property
    def policy(self) -> ConnectionPolicy:
        return self._options.policy

    async def acquire(self) -> AbstractConnection:
        """Return a connection for one publish or consume call."""
        if self.policy is ConnectionPolicy.POOLED:
            if self._connection is None or self._connection.is_closed:
                self._connection = await self._open(aio_pika.connect_robust)
            return self._connection
        return await self._open(aio_pika.connect)

    async def release(self, connection: AbstractConnection) -> None:
        """Give back a connection obtained from :meth:`acquire`."""
        if connection is self._connection:
            return
        if not connection.is_closed:
            await connection.close()

    async def _open(self, connect: Any) -> AbstractConnection:
        logger.debug(
            "Connecting to %s:%s vhost=%r",
            self._kwargs["host"],
            self._kwargs["port"],
            self._kwargs["virtualhost"],
        )
        try:
            connection: AbstractConnection = await connect(**self._kwargs)
        except (AMQPError, ConnectionError, OSError, ValueError) as e:
            raise MessagingConnectionError(str(e)) from e
        return connection

    async def close(self) -> None:
        """Close the pooled connection, if any."""
        if self._connection is not None:
            connection, self._connection = self._connection, None
            if not connection.is_closed:
                await connection.close()

    async def health_check(self) -> bool:
        """Return True if the pooled connection is open."""
        if self._connection is None:
            return False
        return not self._connection.is_closed
