# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
"""Event variants recorded in the event stream.

Each variant is a frozen pydantic model tagged by its ``type`` field, and
``Event`` is the discriminated union over all of them. Attributes are
snake_case; the wire form (``to_dict``) uses the camelCase aliases.
"""

import time
import uuid

from enum import Enum
from typing import Annotated, Any, Dict, List, Literal, Optional, Type, Union
from pydantic import BaseModel, Field, TypeAdapter
from pydantic.alias_generators import to_camel

from .agent_types import AgentStatus, PlanStep
from .llm_types import ChatToolCall, ContentPart


class EventType(str, Enum):
    USER_MESSAGE = "user_message"
    ASSISTANT_MESSAGE = "assistant_message"
    ASSISTANT_THINKING_MESSAGE = "assistant_thinking_message"
    ASSISTANT_STREAMING_MESSAGE = "assistant_streaming_message"
    ASSISTANT_STREAMING_THINKING_MESSAGE = "assistant_streaming_thinking_message"
    TOOL_CALL = "tool_call"
    TOOL_RESULT = "tool_result"
    SYSTEM = "system"
    AGENT_RUN_START = "agent_run_start"
    AGENT_RUN_END = "agent_run_end"
    ENVIRONMENT_INPUT = "environment_input"
    PLAN_START = "plan_start"
    PLAN_UPDATE = "plan_update"
    PLAN_FINISH = "plan_finish"
    FINAL_ANSWER = "final_answer"
    FINAL_ANSWER_STREAMING = "final_answer_streaming"


STREAMING_EVENT_TYPES = frozenset(
    {
        EventType.ASSISTANT_STREAMING_MESSAGE,
        EventType.ASSISTANT_STREAMING_THINKING_MESSAGE,
    }
)


class SystemLevel(str, Enum):
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


def now_ms() -> int:
    return int(time.time() * 1000)


class BaseEvent(BaseModel):
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    type: str
    timestamp: int = Field(default_factory=now_ms)

    class Config:
        frozen = True
        alias_generator = to_camel
        populate_by_name = True

    def to_dict(self) -> dict:
        """The wire shape: ``{id, type, timestamp, ...camelCase fields}``."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class UserMessageEvent(BaseEvent):
    type: Literal["user_message"] = "user_message"
    content: Union[str, List[ContentPart]]


class AssistantMessageEvent(BaseEvent):
    type: Literal["assistant_message"] = "assistant_message"
    content: str = ""
    tool_calls: Optional[List[ChatToolCall]] = None
    finish_reason: Optional[str] = None
    elapsed_ms: Optional[int] = None
    message_id: Optional[str] = None


class AssistantThinkingMessageEvent(BaseEvent):
    type: Literal["assistant_thinking_message"] = "assistant_thinking_message"
    content: str
    is_complete: Optional[bool] = None
    message_id: Optional[str] = None


class AssistantStreamingMessageEvent(BaseEvent):
    type: Literal["assistant_streaming_message"] = "assistant_streaming_message"
    content: str
    is_complete: Optional[bool] = None
    message_id: Optional[str] = None


class AssistantStreamingThinkingMessageEvent(BaseEvent):
    type: Literal["assistant_streaming_thinking_message"] = (
        "assistant_streaming_thinking_message"
    )
    content: str
    is_complete: Optional[bool] = None
    message_id: Optional[str] = None


class ToolMeta(BaseModel):
    """Description of the tool a call was made against."""

    name: str
    description: str = ""
    input_schema: Dict[str, Any] = Field(default_factory=dict, alias="schema")

    class Config:
        frozen = True
        populate_by_name = True


class ToolCallEvent(BaseEvent):
    type: Literal["tool_call"] = "tool_call"
    tool_call_id: str
    name: str
    arguments: Dict[str, Any] = Field(default_factory=dict)
    start_time: int = Field(default_factory=now_ms)
    tool_meta: ToolMeta


class ToolResultEvent(BaseEvent):
    type: Literal["tool_result"] = "tool_result"
    tool_call_id: str
    name: str
    content: Any = None
    elapsed_ms: int = 0
    error: Optional[str] = None


class SystemEvent(BaseEvent):
    type: Literal["system"] = "system"
    level: SystemLevel = SystemLevel.INFO
    message: str
    details: Optional[Dict[str, Any]] = None


class AgentRunStartEvent(BaseEvent):
    type: Literal["agent_run_start"] = "agent_run_start"
    session_id: str
    run_options: Dict[str, Any] = Field(default_factory=dict)
    provider: Optional[str] = None
    model: Optional[str] = None


class AgentRunEndEvent(BaseEvent):
    type: Literal["agent_run_end"] = "agent_run_end"
    session_id: str
    iterations: int = 0
    elapsed_ms: int = 0
    status: AgentStatus = AgentStatus.IDLE


class EnvironmentInputEvent(BaseEvent):
    type: Literal["environment_input"] = "environment_input"
    content: Union[str, List[ContentPart]]
    description: Optional[str] = None


class PlanStartEvent(BaseEvent):
    type: Literal["plan_start"] = "plan_start"
    session_id: str


class PlanUpdateEvent(BaseEvent):
    type: Literal["plan_update"] = "plan_update"
    session_id: str
    steps: List[PlanStep] = Field(default_factory=list)


class PlanFinishEvent(BaseEvent):
    type: Literal["plan_finish"] = "plan_finish"
    session_id: str
    summary: str = ""


class FinalAnswerEvent(BaseEvent):
    type: Literal["final_answer"] = "final_answer"
    content: str
    message_id: Optional[str] = None


class FinalAnswerStreamingEvent(BaseEvent):
    type: Literal["final_answer_streaming"] = "final_answer_streaming"
    content: str
    is_complete: Optional[bool] = None
    message_id: Optional[str] = None


Event = Annotated[
    Union[
        UserMessageEvent,
        AssistantMessageEvent,
        AssistantThinkingMessageEvent,
        AssistantStreamingMessageEvent,
        AssistantStreamingThinkingMessageEvent,
        ToolCallEvent,
        ToolResultEvent,
        SystemEvent,
        AgentRunStartEvent,
        AgentRunEndEvent,
        EnvironmentInputEvent,
        PlanStartEvent,
        PlanUpdateEvent,
        PlanFinishEvent,
        FinalAnswerEvent,
        FinalAnswerStreamingEvent,
    ],
    Field(discriminator="type"),
]

event_adapter: TypeAdapter = TypeAdapter(Event)

EVENT_CLASSES: Dict[EventType, Type[BaseEvent]] = {
    EventType.USER_MESSAGE: UserMessageEvent,
    EventType.ASSISTANT_MESSAGE: AssistantMessageEvent,
    EventType.ASSISTANT_THINKING_MESSAGE: AssistantThinkingMessageEvent,
    EventType.ASSISTANT_STREAMING_MESSAGE: AssistantStreamingMessageEvent,
    EventType.ASSISTANT_STREAMING_THINKING_MESSAGE: AssistantStreamingThinkingMessageEvent,
    EventType.TOOL_CALL: ToolCallEvent,
    EventType.TOOL_RESULT: ToolResultEvent,
    EventType.SYSTEM: SystemEvent,
    EventType.AGENT_RUN_START: AgentRunStartEvent,
    EventType.AGENT_RUN_END: AgentRunEndEvent,
    EventType.ENVIRONMENT_INPUT: EnvironmentInputEvent,
    EventType.PLAN_START: PlanStartEvent,
    EventType.PLAN_UPDATE: PlanUpdateEvent,
    EventType.PLAN_FINISH: PlanFinishEvent,
    EventType.FINAL_ANSWER: FinalAnswerEvent,
    EventType.FINAL_ANSWER_STREAMING: FinalAnswerStreamingEvent,
}


def event_from_dict(data: dict) -> BaseEvent:
    """Rebuild an event from its wire shape."""
    return event_adapter.validate_python(data)
