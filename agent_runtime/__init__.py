# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
"""
An agent execution runtime: a bounded loop of model calls and tool
invocations over an append-only event stream.
"""

from .agent import Agent, AgentOptions
from .errors import (
    AgentRuntimeError,
    CancellationError,
    ConfigurationError,
    ConflictError,
    HookError,
    ToolExecutionError,
)
from .events import EventStream, EventStreamOptions
from .tools import BaseTool, ToolRegistry
from .types.agent_types import AgentStatus, ModelOptions, ModelProvider, ModelSelection, RunOptions
from .types.event_types import EventType
from .types.tool_types import ToolDefinition

__all__ = [
    "Agent",
    "AgentOptions",
    "AgentRuntimeError",
    "AgentStatus",
    "BaseTool",
    "CancellationError",
    "ConfigurationError",
    "ConflictError",
    "EventStream",
    "EventStreamOptions",
    "EventType",
    "HookError",
    "ModelOptions",
    "ModelProvider",
    "ModelSelection",
    "RunOptions",
    "ToolDefinition",
    "ToolExecutionError",
    "ToolRegistry",
]
