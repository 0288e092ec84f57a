from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol, Union, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from ..envelope import Envelope
    from ..message import Outcome
    from ..queue import Queue

    HandlerResult = Union[Outcome, None, Awaitable[Union[Outcome, None]]]
    ReceiveHandler = Callable[[Envelope], HandlerResult]
    ErrorHandler = Callable[[Envelope, BaseException], HandlerResult]


@runtime_checkable
class IConnector(Protocol):
    """
    Port for a broker connector (AMQP, in-memory, …).

    One implementation per wire protocol, selected by matching the scheme of
    a connection URI against :meth:`schema`. Implementations take the parsed
    URI and keyword options in their constructor.
    """

    @classmethod
    def schema(cls) -> frozenset[str]:
        """Return the URI schemes served by this connector."""
        ...

    async def connect(self) -> Any:
        """Open a transport connection and return it."""
        ...

    async def publish(self, envelope: Envelope) -> None:
        """
        Provision the topology of ``envelope.queue`` and publish its message.

        The queue descriptor of the envelope is never modified.
        """
        ...

    async def consume(
        self,
        queue: Queue,
        on_receive: ReceiveHandler,
        on_error: ErrorHandler,
        identification: str | None = None,
    ) -> None:
        """
        Provision the topology of *queue* and process deliveries until stopped.

        Args:
            queue: Queue to consume from (its dead-letter chain is declared too).
            on_receive: Called with each delivered envelope; returns an
                :class:`~mqclient.message.Outcome` or ``None`` (acknowledge).
            on_error: Called with the envelope and the failure when
                *on_receive* raises; its return value settles the delivery.
            identification: Consumer tag; defaults to the queue name.
        """
        ...
