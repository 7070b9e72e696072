# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
"""Event stream module: the ordered, append-only record of a run."""

import json
import logging

from pathlib import Path
from typing import Callable, Dict, Iterable, Iterator, List, Optional
from pydantic import BaseModel

from ..types.event_types import (
    EVENT_CLASSES,
    STREAMING_EVENT_TYPES,
    AssistantMessageEvent,
    BaseEvent,
    EventType,
    ToolResultEvent,
    event_from_dict,
)

logger = logging.getLogger(__name__)
logger.setLevel(logging.INFO)

Subscriber = Callable[[BaseEvent], None]
Unsubscribe = Callable[[], None]


class EventStreamOptions(BaseModel):
    max_events: int = 1000
    auto_trim: bool = True


class EventStream:
    """
    Append-only, typed event log that serves as the single source of truth for
    a run. The conversation context sent to the model is rebuilt from it on
    every turn.

    Features:
    - Synchronous publish/subscribe: global, per-type and streaming-only
    - Filtered reads that preserve insertion order
    - Optional FIFO capacity bound that never orphans a tool call
    - State persistence
    """

    def __init__(
        self,
        options: Optional[EventStreamOptions] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self.options = options or EventStreamOptions()
        self._logger = logger or logging.getLogger(__name__)
        self._events: List[BaseEvent] = []
        self._subscribers: List[Subscriber] = []
        self._type_subscribers: Dict[EventType, List[Subscriber]] = {}
        self._streaming_subscribers: List[Subscriber] = []

    def __len__(self) -> int:
        return len(self._events)

    def __iter__(self) -> Iterator[BaseEvent]:
        return iter(list(self._events))

    def create_event(self, event_type: EventType | str, **fields) -> BaseEvent:
        """Create an event of the given type with a fresh id and timestamp.

        Args:
            event_type: The event type tag
            **fields: Type-specific fields, by attribute or wire name

        Returns:
            The new (not yet appended) event
        """
        event_cls = EVENT_CLASSES[EventType(event_type)]
        return event_cls(**fields)

    def append(self, event: BaseEvent) -> None:
        """Add an event to the log and notify subscribers synchronously.

        Global subscribers run first, then subscribers to the event's type,
        then streaming subscribers for the streaming message types. A failing
        subscriber is logged and does not prevent the others from running.
        """
        self._events.append(event)
        self._logger.debug(f"Event appended: {event.type} ({event.id})")

        if self.options.auto_trim and len(self._events) > self.options.max_events:
            self._trim()

        event_type = EventType(event.type)
        for callback in list(self._subscribers):
            self._notify(callback, event)
        for callback in list(self._type_subscribers.get(event_type, [])):
            self._notify(callback, event)
        if event_type in STREAMING_EVENT_TYPES:
            for callback in list(self._streaming_subscribers):
                self._notify(callback, event)

    def _notify(self, callback: Subscriber, event: BaseEvent) -> None:
        try:
            callback(event)
        except Exception as e:
            self._logger.error(f"Error in event subscriber {callback}: {e}")

    def _trim(self) -> None:
        """Drop the oldest events until the log fits its capacity.

        A tool call is only dropped together with its result, and a tool call
        whose result has not been appended yet is kept.
        """
        excess = len(self._events) - self.options.max_events
        result_positions = {
            e.tool_call_id: i
            for i, e in enumerate(self._events)
            if e.type == EventType.TOOL_RESULT
        }

        dropped: set[int] = set()
        for i, event in enumerate(self._events):
            if len(dropped) >= excess:
                break
            if i in dropped:
                continue
            if event.type == EventType.TOOL_CALL:
                result_index = result_positions.get(event.tool_call_id)
                if result_index is None:
                    continue
                dropped.add(result_index)
            dropped.add(i)

        self._events = [e for i, e in enumerate(self._events) if i not in dropped]
        self._logger.debug(f"Trimmed {len(dropped)} events, {len(self._events)} remain")

    def read(
        self,
        filter_types: Optional[Iterable[EventType | str]] = None,
        limit: Optional[int] = None,
    ) -> List[BaseEvent]:
        """Get events, optionally filtered by type.

        Args:
            filter_types: Only return events of these types
            limit: Only return the last `limit` matching events

        Returns:
            The matching events in insertion order
        """
        events = self._events
        if filter_types is not None:
            wanted = {EventType(t) for t in filter_types}
            events = [e for e in events if EventType(e.type) in wanted]
        else:
            events = list(events)
        if limit is not None:
            events = events[-limit:] if limit > 0 else []
        return events

    def get_events_by_type(
        self, event_types: Iterable[EventType | str], limit: Optional[int] = None
    ) -> List[BaseEvent]:
        return self.read(event_types, limit)

    def clear(self) -> None:
        """Remove all events. Subscribers stay registered."""
        self._events.clear()

    def subscribe(self, callback: Subscriber) -> Unsubscribe:
        """Subscribe to every event.

        Returns:
            A function that removes the subscription
        """
        self._subscribers.append(callback)
        return self._make_unsubscribe(self._subscribers, callback)

    def subscribe_to_types(
        self, event_types: Iterable[EventType | str], callback: Subscriber
    ) -> Unsubscribe:
        """Subscribe to events of the given types only."""
        registrations = []
        for et in {EventType(t) for t in event_types}:
            subscribers = self._type_subscribers.setdefault(et, [])
            subscribers.append(callback)
            registrations.append(self._make_unsubscribe(subscribers, callback))

        def unsubscribe() -> None:
            for remove in registrations:
                remove()

        return unsubscribe

    def subscribe_to_streaming(self, callback: Subscriber) -> Unsubscribe:
        """Subscribe to the incremental assistant message and thinking events."""
        self._streaming_subscribers.append(callback)
        return self._make_unsubscribe(self._streaming_subscribers, callback)

    @staticmethod
    def _make_unsubscribe(subscribers: List[Subscriber], callback: Subscriber) -> Unsubscribe:
        removed = False

        def unsubscribe() -> None:
            nonlocal removed
            if removed:
                return
            removed = True
            if callback in subscribers:
                subscribers.remove(callback)

        return unsubscribe

    def latest_assistant_response(self) -> Optional[AssistantMessageEvent]:
        """The most recent assistant message, if any."""
        for event in reversed(self._events):
            if event.type == EventType.ASSISTANT_MESSAGE:
                return event
        return None

    def latest_tool_results(self) -> List[ToolResultEvent]:
        """Every tool result appended after the most recent assistant message."""
        start = 0
        for i in range(len(self._events) - 1, -1, -1):
            if self._events[i].type == EventType.ASSISTANT_MESSAGE:
                start = i + 1
                break
        else:
            return []
        return [e for e in self._events[start:] if e.type == EventType.TOOL_RESULT]

    def save_state(self, path: Path) -> None:
        """Write the events to a JSON file in their wire shape.

        Args:
            path: The file to write
        """
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps([e.to_dict() for e in self._events], indent=2))

    @classmethod
    def load_state(
        cls,
        path: Path,
        options: Optional[EventStreamOptions] = None,
        logger: Optional[logging.Logger] = None,
    ) -> "EventStream":
        """Rebuild an event stream from a file written by `save_state`.

        Subscribers are not notified of the loaded events.
        """
        stream = cls(options=options, logger=logger)
        data = json.loads(Path(path).read_text())
        stream._events = [event_from_dict(item) for item in data]
        return stream
