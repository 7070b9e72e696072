# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
"""Utility functions for rendering the event stream on a console."""

import json

from ..types.event_types import BaseEvent, EventType

MAX_CONTENT_LEN = 80
PREFIX_WIDTH = 16


def truncate(text: str, length: int = MAX_CONTENT_LEN) -> str:
    """Truncate text and flatten newlines"""
    text = text.replace("\n", " ")
    return f"{text[:length]}..." if len(text) > length else text


def format_event(event: BaseEvent) -> str | None:
    """Format the important events as one console line.

    Returns:
        The formatted line, or None for events that are not worth printing
    """

    def line(prefix: str, content: str, metadata: str = "") -> str:
        return f"{prefix:<{PREFIX_WIDTH}s} => {content}{' | ' + metadata if metadata else ''}"

    event_type = EventType(event.type)
    if event_type == EventType.USER_MESSAGE:
        return line("user", truncate(str(event.content)))
    elif event_type == EventType.ASSISTANT_MESSAGE:
        metadata = f"finish: {event.finish_reason}" if event.finish_reason else ""
        if event.tool_calls:
            names = ", ".join(tc.function.name for tc in event.tool_calls)
            metadata = f"{metadata}, tools: {names}" if metadata else f"tools: {names}"
        return line("assistant", truncate(event.content), metadata)
    elif event_type == EventType.ASSISTANT_THINKING_MESSAGE:
        return line("thinking", truncate(event.content))
    elif event_type == EventType.TOOL_CALL:
        args = truncate(json.dumps(event.arguments, ensure_ascii=False))
        return line("tool_call", f"{event.name}, {args}")
    elif event_type == EventType.TOOL_RESULT:
        content = event.content if isinstance(event.content, str) else json.dumps(
            event.content, ensure_ascii=False, default=str
        )
        status = f"error: {event.error}" if event.error else "ok"
        return line(
            "tool_result",
            f"{event.name}, {status}, {event.elapsed_ms}ms, {truncate(content)}",
        )
    elif event_type == EventType.SYSTEM:
        return line(f"system/{event.level.value}", truncate(event.message))
    elif event_type == EventType.AGENT_RUN_START:
        return line("run_start", event.session_id, f"{event.provider}/{event.model}")
    elif event_type == EventType.AGENT_RUN_END:
        return line(
            "run_end",
            event.session_id,
            f"status: {event.status.value}, iterations: {event.iterations}, {event.elapsed_ms}ms",
        )
    elif event_type == EventType.PLAN_UPDATE:
        done = sum(1 for step in event.steps if step.done)
        return line("plan", f"{done}/{len(event.steps)} steps done")
    return None


def log_to_stdout(event: BaseEvent) -> None:
    """Print important events to stdout with clear formatting."""
    formatted = format_event(event)
    if formatted is not None:
        print(formatted)


def print_streaming_content(event: BaseEvent) -> None:
    """Write incremental assistant output without newlines."""
    if event.type == EventType.ASSISTANT_STREAMING_MESSAGE:
        print(event.content, end="", flush=True)
