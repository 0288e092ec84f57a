"""Envelope — a message addressed to a queue."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict

from .message import Message
from .queue import Queue


class Envelope(BaseModel):
    """Pairs a :class:`Queue` with a :class:`Message`.

    The unit passed to ``publish`` and delivered to consumer handlers.
    """

    model_config = ConfigDict(frozen=True)

    queue: Queue
    message: Message
