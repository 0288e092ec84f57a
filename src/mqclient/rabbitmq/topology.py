"""Declarative topology provisioning for RabbitMQ.

A :class:`~mqclient.queue.Queue` descriptor is turned into broker objects:

* a durable queue named after the descriptor,
* a durable exchange named after its topic (``direct`` unless
  ``exchange_type`` says otherwise),
* a binding between the two using the routing key,
* the same again for every queue of the dead-letter chain, depth first, with
  the dead-letter exchanges forced to ``fanout``.

Declarations are declare-if-absent on the broker, so provisioning runs on
every publish and consume.
"""

from __future__ import annotations

import contextlib
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from aio_pika.exceptions import AMQPError

from ..config import DEAD_LETTER_EXCHANGE_TYPE, EXCHANGE_TYPE_KEY
from ..exceptions import TopologyError

if TYPE_CHECKING:
    from aio_pika.abc import (
        AbstractChannel,
        AbstractConnection,
        AbstractExchange,
        AbstractQueue,
    )

    from ..queue import Queue

logger = logging.getLogger("mqclient.topology")


@dataclass
class Topology:
    """Live handle on a provisioned queue and exchange.

    ``descriptor`` is the normalized copy of the queue that was declared.
    """

    channel: AbstractChannel
    queue: AbstractQueue
    exchange: AbstractExchange
    descriptor: Queue
    routing_key: str

    async def close(self) -> None:
        if not self.channel.is_closed:
            await self.channel.close()


async def create_topology(
    connection: AbstractConnection,
    queue: Queue,
    *,
    prefetch_count: int | None = None,
) -> Topology:
    """Declare *queue*, its exchange, binding and dead-letter chain.

    Returns the open :class:`Topology` of the primary queue; the caller owns
    it and must close it. Channels opened for the dead-letter queues are
    closed before returning.

    Raises:
        TopologyError: the broker rejected a declaration (e.g. an exchange
            redeclared with a different kind).
    """
    routing_key = queue.routing_key
    descriptor = queue.normalized()

    arguments: dict[str, Any] = {}
    if descriptor.dead_letter_queue is not None:
        dlq = descriptor.dead_letter_queue.with_property(
            EXCHANGE_TYPE_KEY, DEAD_LETTER_EXCHANGE_TYPE
        )
        dlq_topology = await create_topology(connection, dlq)
        await dlq_topology.close()
        descriptor = descriptor.with_dead_letter_queue(dlq_topology.descriptor)
        arguments = dlq_topology.descriptor.dead_letter_arguments()

    channel: AbstractChannel | None = None
    try:
        channel = await connection.channel()
        if prefetch_count is not None:
            await channel.set_qos(prefetch_count=prefetch_count)
        amqp_queue = await channel.declare_queue(
            descriptor.name,
            durable=True,
            exclusive=False,
            auto_delete=False,
            passive=False,
            arguments=arguments,
        )
        exchange = await channel.declare_exchange(
            descriptor.effective_topic,
            descriptor.exchange_type,
            durable=True,
            auto_delete=False,
            passive=False,
        )
        await amqp_queue.bind(exchange, routing_key=routing_key)
    except AMQPError as e:
        if channel is not None and not channel.is_closed:
            with contextlib.suppress(AMQPError):
                await channel.close()
        raise TopologyError(
            f"Could not provision queue {descriptor.name!r}: {e}",
            queue_name=descriptor.name,
        ) from e

    logger.debug(
        "Provisioned queue %r on %s exchange %r (routing_key=%r, arguments=%s)",
        descriptor.name,
        descriptor.exchange_type,
        descriptor.effective_topic,
        routing_key,
        arguments,
    )
    return Topology(
        channel=channel,
        queue=amqp_queue,
        exchange=exchange,
        descriptor=descriptor,
        routing_key=routing_key,
    )
