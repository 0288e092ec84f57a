"""InMemoryConnector — IConnector backed by an InMemoryBroker."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from ..config import (
    DEAD_LETTER_EXCHANGE_TYPE,
    DEFAULT_CONTENT_TYPE,
    EXCHANGE_TYPE_KEY,
    PERSISTENT_DELIVERY_MODE,
    ConnectorOptions,
)
from ..dispatch import run_handlers
from ..envelope import Envelope
from ..message import Message
from ..uri import ConnectionUri
from .broker import InMemoryBroker

if TYPE_CHECKING:
    from ..ports.connector import ErrorHandler, ReceiveHandler
    from ..queue import Queue
    from .broker import Delivery

logger = logging.getLogger("mqclient.memory")


class InMemoryConnector:
    """In-memory connector with the same topology and outcome rules as AMQP.

    The URI host names the broker (``memory://orders-test``); connectors built
    from the same host share it. Useful in tests and local runs::

        connector = InMemoryConnector("memory://test")
        await connector.publish(Envelope(queue=q, message=Message(body=b"x")))
        await connector.consume(q, on_receive, on_error)  # drains q, returns

    ``consume`` returns once the queue is empty unless ``wait=True``, in
    which case it blocks for new messages until a handler asks to exit.
    """

    @classmethod
    def schema(cls) -> frozenset[str]:
        return frozenset({"memory", "mock"})

    def __init__(
        self,
        uri: str | ConnectionUri = "memory://default",
        options: ConnectorOptions | None = None,
        *,
        broker: InMemoryBroker | None = None,
        wait: bool = False,
        **kwargs: Any,
    ) -> None:
        self._uri = ConnectionUri(uri)
        self._options = ConnectorOptions.merge(options, **kwargs)
        self._broker = broker or InMemoryBroker.named(self._uri.host or "default")
        self._wait = wait

    @property
    def broker(self) -> InMemoryBroker:
        return self._broker

    @property
    def options(self) -> ConnectorOptions:
        return self._options

    async def connect(self) -> InMemoryBroker:
        return self._broker

    def create_topology(self, queue: Queue) -> Queue:
        """Declare *queue* and its dead-letter chain; return the normalized copy."""
        routing_key = queue.routing_key
        descriptor = queue.normalized()

        arguments: dict[str, Any] = {}
        if descriptor.dead_letter_queue is not None:
            dlq = self.create_topology(
                descriptor.dead_letter_queue.with_property(
                    EXCHANGE_TYPE_KEY, DEAD_LETTER_EXCHANGE_TYPE
                )
            )
            descriptor = descriptor.with_dead_letter_queue(dlq)
            arguments = dlq.dead_letter_arguments()

        self._broker.declare_queue(descriptor.name, arguments)
        self._broker.declare_exchange(
            descriptor.effective_topic, descriptor.exchange_type
        )
        self._broker.bind(descriptor.name, descriptor.effective_topic, routing_key)
        return descriptor

    async def publish(self, envelope: Envelope) -> None:
        descriptor = self.create_topology(envelope.queue)
        headers = dict(envelope.message.headers)
        headers.setdefault("content_type", DEFAULT_CONTENT_TYPE)
        headers.setdefault("delivery_mode", PERSISTENT_DELIVERY_MODE)
        self._broker.publish(
            descriptor.effective_topic,
            descriptor.name,
            Message(body=envelope.message.body, headers=headers),
        )

    async def consume(
        self,
        queue: Queue,
        on_receive: ReceiveHandler,
        on_error: ErrorHandler,
        identification: str | None = None,
    ) -> None:
        consumer_tag = identification or queue.name
        descriptor = self.create_topology(queue)
        self._broker.add_consumer(descriptor.name, consumer_tag)
        try:
            while True:
                delivery = self._broker.get(descriptor.name)
                if delivery is None:
                    if not self._wait:
                        return
                    await self._broker.wait(descriptor.name)
                    continue

                envelope = Envelope(
                    queue=descriptor,
                    message=self._to_message(delivery, consumer_tag, descriptor.name),
                )
                try:
                    outcome = await run_handlers(
                        envelope, on_receive, on_error, consumer_tag=consumer_tag
                    )
                except BaseException:
                    # Unsettled deliveries go back to the queue, as on a
                    # closed AMQP channel.
                    self._broker.requeue(descriptor.name, delivery)
                    raise

                if outcome.nack and outcome.requeue:
                    self._broker.requeue(descriptor.name, delivery)
                elif outcome.nack:
                    self._broker.reject(descriptor.name, delivery)

                if outcome.exit:
                    logger.info("Consumer %s requested exit", consumer_tag)
                    return
        finally:
            self._broker.cancel(descriptor.name, consumer_tag)

    def _to_message(self, delivery: Delivery, consumer_tag: str, queue: str) -> Message:
        headers = dict(delivery.message.headers)
        headers.update(
            consumer_tag=consumer_tag,
            delivery_tag=delivery.delivery_tag,
            redelivered=delivery.redelivered,
            exchange=delivery.exchange,
            routing_key=delivery.routing_key,
            body_size=len(delivery.message.body),
            message_count=len(self._broker.messages(queue)),
        )
        return Message(body=delivery.message.body, headers=headers)
