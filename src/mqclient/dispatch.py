"""Handler invocation shared by all connectors' consume loops."""

from __future__ import annotations

import inspect
import logging
from typing import TYPE_CHECKING, Any

from .exceptions import HandlerError
from .message import Outcome

if TYPE_CHECKING:
    from collections.abc import Callable

    from .envelope import Envelope
    from .ports.connector import ErrorHandler, ReceiveHandler

logger = logging.getLogger("mqclient.dispatch")


async def _call(handler: Callable[..., Any], *args: Any) -> Outcome:
    result = handler(*args)
    if inspect.isawaitable(result):
        result = await result
    return Outcome.resolve(result)


async def run_handlers(
    envelope: Envelope,
    on_receive: ReceiveHandler,
    on_error: ErrorHandler,
    *,
    consumer_tag: str | None = None,
) -> Outcome:
    """Run *on_receive* for one delivery and return the outcome that settles it.

    A failure of *on_receive* (including an invalid return value) is handed to
    *on_error*, whose result is used instead. A failure of *on_error* is
    raised as :class:`HandlerError` with the original failure attached.
    """
    try:
        return await _call(on_receive, envelope)
    except Exception as e:
        logger.debug(
            "Receive handler failed for consumer %s: %r", consumer_tag, e
        )
        try:
            return await _call(on_error, envelope, e)
        except Exception as err:
            logger.exception(
                "Error handler failed for consumer %s while handling %r",
                consumer_tag,
                e,
            )
            raise HandlerError(
                f"Error handler failed: {err}",
                consumer_tag=consumer_tag,
                original=e,
            ) from err
