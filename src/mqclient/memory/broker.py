"""In-memory broker for testing — exchanges, queues, bindings and dead-lettering."""

from __future__ import annotations

import asyncio
import itertools
import logging
from collections import deque
from dataclasses import dataclass, field
from typing import Any, ClassVar

from ..config import DEAD_LETTER_EXCHANGE_ARG
from ..exceptions import MessagingError, TopologyError
from ..message import Message

logger = logging.getLogger("mqclient.memory")


@dataclass
class Delivery:
    """A message sitting in an in-memory queue."""

    message: Message
    exchange: str
    routing_key: str
    delivery_tag: int
    redelivered: bool = False


@dataclass
class _MemoryQueue:
    name: str
    arguments: dict[str, Any]
    deliveries: deque[Delivery] = field(default_factory=deque)
    arrivals: asyncio.Event = field(default_factory=asyncio.Event)
    consumers: set[str] = field(default_factory=set)


def _topic_matches(pattern: str, routing_key: str) -> bool:
    """AMQP topic matching: ``*`` is one word, ``#`` is zero or more words."""
    words = routing_key.split(".") if routing_key else []
    parts = pattern.split(".") if pattern else []

    def match(i: int, j: int) -> bool:
        if i == len(parts):
            return j == len(words)
        if parts[i] == "#":
            return any(match(i + 1, k) for k in range(j, len(words) + 1))
        if j == len(words):
            return False
        return parts[i] in ("*", words[j]) and match(i + 1, j + 1)

    return match(0, 0)


class InMemoryBroker:
    """Shared broker: connectors built from the same URI host use one instance.

    Mirrors the AMQP declare-if-absent rules: redeclaring a queue with other
    arguments, or an exchange with another kind, raises TopologyError.
    Exchanges route as ``direct`` (exact key), ``fanout``/``headers`` (every
    binding) or ``topic`` (``*``/``#`` patterns).
    """

    _instances: ClassVar[dict[str, InMemoryBroker]] = {}

    def __init__(self) -> None:
        self._exchanges: dict[str, str] = {}
        self._queues: dict[str, _MemoryQueue] = {}
        self._bindings: list[tuple[str, str, str]] = []
        self._published: list[tuple[str, str, Message]] = []
        self._tags = itertools.count(1)

    @classmethod
    def named(cls, name: str) -> InMemoryBroker:
        """Return the process-wide broker called *name*, creating it if needed."""
        if name not in cls._instances:
            cls._instances[name] = cls()
        return cls._instances[name]

    @classmethod
    def reset_all(cls) -> None:
        """Forget every named broker (for test teardown)."""
        cls._instances.clear()

    # -- topology ---------------------------------------------------------

    def declare_exchange(self, name: str, kind: str) -> None:
        existing = self._exchanges.get(name)
        if existing is not None and existing != kind:
            raise TopologyError(
                f"Exchange {name!r} already declared as {existing!r}, not {kind!r}"
            )
        self._exchanges[name] = kind

    def declare_queue(self, name: str, arguments: dict[str, Any] | None = None) -> None:
        arguments = dict(arguments or {})
        existing = self._queues.get(name)
        if existing is None:
            self._queues[name] = _MemoryQueue(name=name, arguments=arguments)
        elif existing.arguments != arguments:
            raise TopologyError(
                f"Queue {name!r} already declared with arguments "
                f"{existing.arguments!r}",
                queue_name=name,
            )

    def bind(self, queue: str, exchange: str, routing_key: str) -> None:
        if queue not in self._queues:
            raise TopologyError(f"Queue {queue!r} not declared", queue_name=queue)
        if exchange not in self._exchanges:
            raise TopologyError(f"Exchange {exchange!r} not declared", queue_name=queue)
        binding = (exchange, queue, routing_key)
        if binding not in self._bindings:
            self._bindings.append(binding)

    # -- messages ---------------------------------------------------------

    def publish(self, exchange: str, routing_key: str, message: Message) -> list[str]:
        """Route a copy of *message*; return the names of the queues reached."""
        if exchange not in self._exchanges:
            raise MessagingError(f"Exchange {exchange!r} not declared")
        self._published.append((exchange, routing_key, message.model_copy(deep=True)))
        return self._route(exchange, routing_key, message)

    def _route(self, exchange: str, routing_key: str, message: Message) -> list[str]:
        kind = self._exchanges[exchange]
        reached: list[str] = []
        for bound_exchange, queue, key in self._bindings:
            if bound_exchange != exchange or queue in reached:
                continue
            if kind == "direct" and key != routing_key:
                continue
            if kind == "topic" and not _topic_matches(key, routing_key):
                continue
            reached.append(queue)

        for queue in reached:
            self._enqueue(
                queue,
                Delivery(
                    message=message.model_copy(deep=True),
                    exchange=exchange,
                    routing_key=routing_key,
                    delivery_tag=next(self._tags),
                ),
            )
        if not reached:
            logger.debug(
                "Message to %r with routing key %r was unroutable", exchange, routing_key
            )
        return reached

    def _enqueue(self, queue: str, delivery: Delivery) -> None:
        target = self._queues[queue]
        target.deliveries.append(delivery)
        target.arrivals.set()

    def get(self, queue: str) -> Delivery | None:
        """Remove and return the next delivery of *queue*, if any."""
        target = self._queue(queue)
        if not target.deliveries:
            target.arrivals.clear()
            return None
        return target.deliveries.popleft()

    async def wait(self, queue: str) -> None:
        """Block until *queue* has a delivery."""
        target = self._queue(queue)
        while not target.deliveries:
            target.arrivals.clear()
            await target.arrivals.wait()

    def requeue(self, queue: str, delivery: Delivery) -> None:
        delivery.redelivered = True
        delivery.delivery_tag = next(self._tags)
        target = self._queue(queue)
        target.deliveries.appendleft(delivery)
        target.arrivals.set()

    def reject(self, queue: str, delivery: Delivery) -> None:
        """Drop *delivery*, dead-lettering it when its queue says so."""
        exchange = self._queue(queue).arguments.get(DEAD_LETTER_EXCHANGE_ARG)
        if exchange is None:
            logger.debug("Dropped delivery %s from %r", delivery.delivery_tag, queue)
            return
        logger.debug(
            "Dead-lettering delivery %s from %r to %r",
            delivery.delivery_tag,
            queue,
            exchange,
        )
        self._route(exchange, delivery.routing_key, delivery.message)

    def add_consumer(self, queue: str, consumer_tag: str) -> None:
        self._queue(queue).consumers.add(consumer_tag)

    def cancel(self, queue: str, consumer_tag: str) -> None:
        self._queue(queue).consumers.discard(consumer_tag)

    def _queue(self, name: str) -> _MemoryQueue:
        try:
            return self._queues[name]
        except KeyError:
            raise MessagingError(f"Queue {name!r} not declared") from None

    # -- assertion helpers ------------------------------------------------

    def get_published(self) -> list[tuple[str, str, Message]]:
        """Return all (exchange, routing_key, message) published, in order."""
        return list(self._published)

    def messages(self, queue: str) -> list[Message]:
        """Return the messages waiting in *queue*."""
        return [d.message for d in self._queue(queue).deliveries]

    def queue_arguments(self, queue: str) -> dict[str, Any]:
        return dict(self._queue(queue).arguments)

    def consumers(self, queue: str) -> set[str]:
        return set(self._queue(queue).consumers)

    def declared_exchanges(self) -> dict[str, str]:
        """Return exchange name → kind."""
        return dict(self._exchanges)

    def declared_queues(self) -> list[str]:
        return list(self._queues)

    def bindings(self) -> list[tuple[str, str, str]]:
        """Return (exchange, queue, routing_key) triples."""
        return list(self._bindings)

    def clear(self) -> None:
        """Remove all topology and messages."""
        self._exchanges.clear()
        self._queues.clear()
        self._bindings.clear()
        self._published.clear()
