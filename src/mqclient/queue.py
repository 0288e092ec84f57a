"""Queue — immutable descriptor of a logical destination."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from .config import (
    DEAD_LETTER_EXCHANGE_ARG,
    DEFAULT_EXCHANGE_TYPE,
    DEFAULT_MESSAGE_TTL_MS,
    DEFAULT_QUEUE_EXPIRES_MS,
    EXCHANGE_TYPE_KEY,
    MESSAGE_TTL_ARG,
    QUEUE_EXPIRES_ARG,
    ROUTING_KEY_PROPERTY,
)

if TYPE_CHECKING:
    from collections.abc import Iterator


class Queue(BaseModel):
    """Describes a queue, the exchange (topic) feeding it and its dead-letter chain.

    Queues are immutable. Builders such as :meth:`with_topic` and
    :meth:`normalized` return new instances, so a descriptor handed to a
    connector is never changed by it.

    Recognized ``properties``:

    * ``exchange_type``: kind of the exchange named by the topic
      (``direct`` when absent).
    * ``_x_routing_key``: binding key between exchange and queue
      (the queue name when absent); never sent to the broker.
    * ``x-*`` keys on a dead-letter queue: copied onto the arguments of the
      queue that dead-letters into it (``x-message-ttl``, ``x-expires``, …).

    Usage::

        orders = Queue(
            name="orders",
            dead_letter_queue=Queue(
                name="orders.retry",
                properties={"x-message-ttl": 5000},
                dead_letter_queue=Queue(name="orders.dead"),
            ),
        )
    """

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., min_length=1)
    topic: str | None = None
    properties: dict[str, Any] = Field(default_factory=dict)
    dead_letter_queue: Queue | None = None

    @field_validator("topic")
    @classmethod
    def _blank_topic_is_absent(cls, value: str | None) -> str | None:
        return value or None

    @model_validator(mode="after")
    def _check_dead_letter_chain(self) -> Queue:
        seen = {self.name}
        for dlq in self.dead_letter_chain():
            if dlq.name in seen:
                raise ValueError(
                    f"Dead-letter chain of {self.name!r} revisits queue {dlq.name!r}"
                )
            seen.add(dlq.name)
        return self

    @property
    def effective_topic(self) -> str:
        """Exchange name: the topic, or the queue name when no topic is set."""
        return self.topic or self.name

    @property
    def exchange_type(self) -> str:
        return str(self.properties.get(EXCHANGE_TYPE_KEY) or DEFAULT_EXCHANGE_TYPE)

    @property
    def routing_key(self) -> str:
        return str(self.properties.get(ROUTING_KEY_PROPERTY) or self.name)

    def dead_letter_chain(self) -> Iterator[Queue]:
        """Yield the dead-letter queues, nearest first."""
        dlq = self.dead_letter_queue
        while dlq is not None:
            yield dlq
            dlq = dlq.dead_letter_queue

    def dead_letter_arguments(self) -> dict[str, Any]:
        """Queue arguments for a queue that dead-letters into this one.

        ``x-*`` properties are carried over; the dead-letter exchange is
        always this queue's topic, and the message TTL and queue expiry get
        72h defaults.
        """
        arguments = {
            key: value
            for key, value in self.properties.items()
            if key.startswith("x-")
        }
        arguments[DEAD_LETTER_EXCHANGE_ARG] = self.effective_topic
        arguments.setdefault(MESSAGE_TTL_ARG, DEFAULT_MESSAGE_TTL_MS)
        arguments.setdefault(QUEUE_EXPIRES_ARG, DEFAULT_QUEUE_EXPIRES_MS)
        return arguments

    def normalized(self) -> Queue:
        """Return a copy ready for declaration.

        The copy has its topic resolved, its exchange type filled in and the
        reserved routing-key property removed. Read :attr:`routing_key` from
        the original before normalizing.
        """
        properties = dict(self.properties)
        properties[EXCHANGE_TYPE_KEY] = self.exchange_type
        properties.pop(ROUTING_KEY_PROPERTY, None)
        return self.model_copy(
            update={"topic": self.effective_topic, "properties": properties}
        )

    def with_topic(self, topic: str | None) -> Queue:
        return self.model_copy(update={"topic": topic or None})

    def with_properties(self, properties: dict[str, Any]) -> Queue:
        return self.model_copy(update={"properties": dict(properties)})

    def with_property(self, key: str, value: Any) -> Queue:
        return self.with_properties({**self.properties, key: value})

    def with_dead_letter_queue(self, queue: Queue | None) -> Queue:
        # Rebuilt through the constructor so the chain is validated again.
        return type(self)(
            name=self.name,
            topic=self.topic,
            properties=dict(self.properties),
            dead_letter_queue=queue,
        )


Queue.model_rebuild()
