# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
"""Async iteration over the events of a streaming run."""

import asyncio
import logging

from typing import AsyncIterator, Optional

from ..events.event_stream import EventStream
from ..types.event_types import BaseEvent, EventType, SystemLevel

logger = logging.getLogger(__name__)


class StreamAdapter:
    """Turns event stream subscriptions into async iterators."""

    def __init__(self, event_stream: EventStream, logger: Optional[logging.Logger] = None):
        self.event_stream = event_stream
        self._logger = logger or logging.getLogger(__name__)

    def create_stream(self) -> AsyncIterator[BaseEvent]:
        """Subscribe now and return an iterator over every later event.

        The iterator ends after yielding `agent_run_end`. Closing it early
        (`aclose`) removes the subscription.
        """
        queue: asyncio.Queue[BaseEvent] = asyncio.Queue()
        unsubscribe = self.event_stream.subscribe(queue.put_nowait)

        async def iterate() -> AsyncIterator[BaseEvent]:
            try:
                while True:
                    event = await queue.get()
                    yield event
                    if event.type == EventType.AGENT_RUN_END:
                        self._logger.debug("Run ended, closing event iterator")
                        break
            finally:
                unsubscribe()

        return iterate()

    def create_aborted_stream(self) -> AsyncIterator[BaseEvent]:
        """An iterator yielding a single warning that the request was aborted."""

        async def iterate() -> AsyncIterator[BaseEvent]:
            yield self.event_stream.create_event(
                EventType.SYSTEM, level=SystemLevel.WARNING, message="Request was aborted"
            )

        return iterate()
