"""Exceptions for mqclient."""

from __future__ import annotations


class MQClientError(Exception):
    """Root exception for the entire mqclient package."""


class ConfigurationError(MQClientError):
    """Raised when a connector is misconfigured.

    Always raised before any network I/O is attempted and never retried.
    """


class UnsupportedSchemeError(ConfigurationError):
    """Raised when no registered connector serves a URI scheme."""

    def __init__(self, scheme: str, known: list[str] | None = None) -> None:
        self.scheme = scheme
        self.known = known or []
        msg = f"No connector registered for scheme {scheme!r}"
        if self.known:
            msg += f" (known: {', '.join(self.known)})"
        super().__init__(msg)


class ConnectorRegistrationError(MQClientError):
    """Raised when two connector classes claim the same scheme."""


class MessagingError(MQClientError):
    """Base class for all broker-side errors."""


class MessagingConnectionError(MessagingError):
    """Raised when connectivity to the message broker fails."""


class TopologyError(MessagingError):
    """Raised when the broker rejects a queue, exchange or binding declaration.

    Usage: redeclaring an exchange with a different kind, or a queue with
    different arguments, surfaces as this error from ``publish``/``consume``.
    """

    def __init__(self, message: str, queue_name: str | None = None) -> None:
        self.queue_name = queue_name
        super().__init__(message)


class HandlerError(MQClientError):
    """Raised when the error handler of a consumer fails itself.

    The original failure of the receive handler (if any) is available as
    ``original``; the failure of the error handler is chained as ``__cause__``.
    """

    def __init__(
        self,
        message: str,
        *,
        consumer_tag: str | None = None,
        original: BaseException | None = None,
    ) -> None:
        self.consumer_tag = consumer_tag
        self.original = original
        super().__init__(message)
