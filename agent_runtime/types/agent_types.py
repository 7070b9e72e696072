# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
from enum import Enum
from typing import Any, Dict, List, Optional, Union
from pydantic import BaseModel, Field

from .llm_types import ChatMessage, ContentPart


class AgentStatus(str, Enum):
    """Possible states of an agent execution."""

    IDLE = "idle"
    EXECUTING = "executing"
    ABORTED = "aborted"
    ERROR = "error"


class ToolCallEngineType(str, Enum):
    NATIVE = "native"
    PROMPT_ENGINEERING = "prompt_engineering"
    STRUCTURED_OUTPUTS = "structured_outputs"


class ModelSelection(BaseModel):
    provider: Optional[str] = None
    model: Optional[str] = None
    base_url: Optional[str] = None
    api_key: Optional[str] = None


class ModelProvider(BaseModel):
    """A configured provider and the models it serves."""

    name: str
    models: List[str] = Field(default_factory=list)
    base_url: Optional[str] = None
    api_key: Optional[str] = None


class ModelOptions(BaseModel):
    providers: List[ModelProvider] = Field(default_factory=list)
    use: Optional[ModelSelection] = None


class ResolvedModel(BaseModel):
    """The model selection of a single run. Read-only once resolved."""

    provider: str
    model: str
    base_url: Optional[str] = None
    api_key: Optional[str] = None
    actual_provider: str

    class Config:
        frozen = True


class RunOptions(BaseModel):
    input: Union[str, List[ContentPart]]
    model: Optional[str] = None
    provider: Optional[str] = None
    session_id: Optional[str] = None
    tool_call_engine: Optional[ToolCallEngineType] = None
    stream: bool = False

    def summary(self) -> Dict[str, Any]:
        """The run options as recorded on the run start event."""
        return self.model_dump(mode="json", exclude={"input"}, exclude_none=True)


class LoopTerminationCheckResult(BaseModel):
    finished: bool = True
    message: Optional[str] = None


class LLMRequestHookPayload(BaseModel):
    provider: str
    request: Dict[str, Any]
    base_url: Optional[str] = None


class LLMResponseHookPayload(BaseModel):
    provider: str
    content: str = ""
    tool_calls: Optional[List[Dict[str, Any]]] = None
    finish_reason: str = "stop"
    chunk_count: int = 0


class PlanStep(BaseModel):
    content: str
    done: bool = False


__all__ = [
    "AgentStatus",
    "ToolCallEngineType",
    "ModelSelection",
    "ModelProvider",
    "ModelOptions",
    "ResolvedModel",
    "RunOptions",
    "LoopTerminationCheckResult",
    "LLMRequestHookPayload",
    "LLMResponseHookPayload",
    "PlanStep",
    "ChatMessage",
]
