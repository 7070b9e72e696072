# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
"""Reconstruction of the provider conversation from the event log.

The log is the source of truth: the message list is rebuilt from scratch on
every turn and nothing here mutates an event.
"""

import copy
import logging

from datetime import datetime
from typing import Callable, List, Optional, Sequence

from ..llm.tool_call_engine.base import ToolCallEngine
from ..types.event_types import (
    AssistantMessageEvent,
    BaseEvent,
    EnvironmentInputEvent,
    EventType,
    PlanUpdateEvent,
    ToolResultEvent,
    UserMessageEvent,
)
from ..types.llm_types import AgentSingleLoopResponse, ChatMessage, ContentPart
from ..types.tool_types import ToolCallResult, ToolDefinition
from ..utils.multimodal import convert_to_multimodal_tool_call_result, is_image_part, text_part

logger = logging.getLogger(__name__)

IMAGE_PLACEHOLDER = "[Image omitted to conserve context]"


def default_clock() -> str:
    return datetime.now().strftime("%Y-%m-%d %H:%M:%S")


class MessageHistory:
    """Builds the chat messages for one model call.

    Args:
        max_images: Keep only this many of the newest images in the context
        clock: Returns the time string placed in the system prompt
        logger: Logger to use instead of the module logger
    """

    def __init__(
        self,
        max_images: Optional[int] = None,
        clock: Optional[Callable[[], str]] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self.max_images = max_images
        self.clock = clock or default_clock
        self._logger = logger or logging.getLogger(__name__)

    def build(
        self,
        events: Sequence[BaseEvent],
        engine: ToolCallEngine,
        instructions: str,
        tools: Sequence[ToolDefinition] = (),
        max_images: Optional[int] = None,
    ) -> List[ChatMessage]:
        """Build the message list for the next model call.

        Args:
            events: The event log, oldest first
            engine: The tool call engine shaping prompts and history messages
            instructions: The agent's base instructions
            tools: The tools offered this turn
            max_images: Overrides the instance image budget for this call

        Returns:
            A system message followed by the replayed conversation
        """
        prompt = engine.prepare_prompt(f"{instructions}\n\nCurrent time: {self.clock()}", tools)
        messages: List[ChatMessage] = [{"role": "system", "content": prompt}]

        events = list(events)
        for index, event in enumerate(events):
            if event.type == EventType.USER_MESSAGE:
                messages.append(self._user_message(event))
            elif event.type == EventType.ENVIRONMENT_INPUT:
                messages.append(self._environment_message(event))
            elif event.type == EventType.PLAN_UPDATE:
                messages.append(self._plan_message(event))
            elif event.type == EventType.ASSISTANT_MESSAGE:
                messages.extend(self._assistant_turn(event, events[index + 1 :], engine))

        budget = max_images if max_images is not None else self.max_images
        if budget is not None:
            self._apply_image_budget(messages, budget)

        self._logger.debug(f"Built {len(messages)} messages from {len(events)} events")
        return messages

    def _user_message(self, event: UserMessageEvent) -> ChatMessage:
        return {"role": "user", "content": copy.deepcopy(event.content)}

    def _environment_message(self, event: EnvironmentInputEvent) -> ChatMessage:
        label = f"[Environment: {event.description or 'Environment Input'}]"
        if isinstance(event.content, str):
            return {"role": "user", "content": f"{label} {event.content}"}

        parts: List[ContentPart] = copy.deepcopy(event.content)
        for i, part in enumerate(parts):
            if part.get("type") == "text":
                parts[i] = text_part(f"{label} {part.get('text', '')}")
                break
        else:
            parts.insert(0, text_part(label))
        return {"role": "user", "content": parts}

    def _plan_message(self, event: PlanUpdateEvent) -> ChatMessage:
        lines = [
            f"{i}. [{'DONE' if step.done else 'TODO'}] {step.content}"
            for i, step in enumerate(event.steps, start=1)
        ]
        plan = "\n".join(lines)
        return {
            "role": "system",
            "content": (
                f"Current plan status:\n{plan}\n\n"
                "Follow this plan. If a step is done, move to the next step."
            ),
        }

    def _assistant_turn(
        self,
        event: AssistantMessageEvent,
        following: Sequence[BaseEvent],
        engine: ToolCallEngine,
    ) -> List[ChatMessage]:
        tool_calls = copy.deepcopy(event.tool_calls) if event.tool_calls else None
        messages = [
            engine.build_assistant_history_message(
                AgentSingleLoopResponse(content=event.content, tool_calls=tool_calls)
            )
        ]
        if not tool_calls:
            return messages

        call_ids = {tc.id for tc in tool_calls}
        results = []
        for later in following:
            if later.type in (EventType.USER_MESSAGE, EventType.ASSISTANT_MESSAGE):
                break
            if later.type == EventType.TOOL_RESULT and later.tool_call_id in call_ids:
                results.append(self._multimodal_result(later))

        if results:
            messages.extend(engine.build_tool_result_history_messages(results))
        return messages

    def _multimodal_result(self, event: ToolResultEvent):
        return convert_to_multimodal_tool_call_result(
            ToolCallResult(
                tool_call_id=event.tool_call_id,
                tool_name=event.name,
                content=copy.deepcopy(event.content),
            )
        )

    def _apply_image_budget(self, messages: List[ChatMessage], max_images: int) -> None:
        """Replace all but the newest `max_images` image parts with a placeholder.

        Works on the freshly built messages, which share no objects with the
        events they came from.
        """
        seen = 0
        omitted = 0
        for message in reversed(messages):
            content = message.get("content")
            if not isinstance(content, list):
                continue
            for i in range(len(content) - 1, -1, -1):
                if not is_image_part(content[i]):
                    continue
                seen += 1
                if seen > max_images:
                    content[i] = text_part(IMAGE_PLACEHOLDER)
                    omitted += 1

        if omitted:
            self._logger.info(f"Omitted {omitted} images to stay within a budget of {max_images}")
