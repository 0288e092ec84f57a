"""Message payloads and the consumer outcome returned by handlers."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, ClassVar

from pydantic import BaseModel, Field, field_validator


class Message(BaseModel):
    """Opaque byte body plus a mutable header mapping.

    On delivery the headers also carry broker metadata: ``consumer_tag``,
    ``delivery_tag``, ``redelivered``, ``exchange``, ``routing_key``,
    ``body_size`` and ``message_count``.
    """

    body: bytes = b""
    headers: dict[str, Any] = Field(default_factory=dict)

    @field_validator("body", mode="before")
    @classmethod
    def _encode_text_body(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.encode("utf-8")
        return value

    def get_header(self, key: str, default: Any = None) -> Any:
        return self.headers.get(key, default)

    def with_header(self, key: str, value: Any) -> Message:
        """Set one header in place and return ``self`` for chaining."""
        self.headers[key] = value
        return self

    def with_headers(self, headers: dict[str, Any]) -> Message:
        """Merge *headers* in place and return ``self`` for chaining."""
        self.headers.update(headers)
        return self


@dataclass(frozen=True)
class Outcome:
    """Disposition a consumer handler returns for one delivered message.

    The three flags are independent:

    * ``nack``: negatively acknowledge instead of acknowledging.
    * ``requeue``: put a nacked message back on the queue; without it the
      broker drops the message or routes it to the dead-letter exchange.
      Has no effect unless ``nack`` is set.
    * ``exit``: stop the consumer after this delivery is settled.

    Outcomes combine with ``|``::

        return Outcome.NACK | Outcome.REQUEUE
        return Outcome.ACK | Outcome.EXIT

    A handler returning ``None`` acknowledges the message.
    """

    nack: bool = False
    requeue: bool = False
    exit: bool = False

    ACK: ClassVar[Outcome]
    NACK: ClassVar[Outcome]
    REQUEUE: ClassVar[Outcome]
    EXIT: ClassVar[Outcome]

    def __or__(self, other: object) -> Outcome:
        if not isinstance(other, Outcome):
            return NotImplemented
        return Outcome(
            nack=self.nack or other.nack,
            requeue=self.requeue or other.requeue,
            exit=self.exit or other.exit,
        )

    @property
    def acknowledge(self) -> bool:
        return not self.nack

    @classmethod
    def resolve(cls, result: Outcome | None) -> Outcome:
        """Map a handler return value to an outcome (``None`` acknowledges)."""
        if result is None:
            return cls.ACK
        if not isinstance(result, Outcome):
            raise TypeError(
                f"Handler must return Outcome or None, got {type(result).__name__}"
            )
        return result


Outcome.ACK = Outcome()
Outcome.NACK = Outcome(nack=True)
Outcome.REQUEUE = Outcome(requeue=True)
Outcome.EXIT = Outcome(exit=True)
