# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
"""Lifecycle hooks that specialised agents override.

Every hook may be a plain method or a coroutine. The runtime treats a hook
that raises as if it had returned its input unchanged.
"""

import inspect
import logging

from typing import Any, Dict, List, Optional

from ..errors import HookError
from ..types.agent_types import (
    LLMRequestHookPayload,
    LLMResponseHookPayload,
    LoopTerminationCheckResult,
)
from ..types.event_types import AssistantMessageEvent
from ..types.llm_types import ChatToolCall
from ..types.tool_types import ToolCallResult, ToolDefinition

logger = logging.getLogger(__name__)


async def maybe_await(value: Any) -> Any:
    if inspect.isawaitable(value):
        return await value
    return value


async def call_hook(
    agent: "BaseAgent",
    hook_name: str,
    fallback: Any,
    *args: Any,
    logger: Optional[logging.Logger] = None,
) -> Any:
    """Invoke a hook on the agent, returning `fallback` if it raises."""
    hook = getattr(agent, hook_name)
    try:
        return await maybe_await(hook(*args))
    except Exception as e:
        (logger or agent.logger).error(str(HookError(hook_name, e)))
        return fallback


class BaseAgent:
    """Base class providing the overridable hooks of the agent loop."""

    def __init__(self, logger: Optional[logging.Logger] = None):
        self.logger = logger or logging.getLogger(__name__)
        self._termination_requested = False

    def on_llm_request(self, session_id: str, payload: LLMRequestHookPayload) -> None:
        """Called with the final request parameters before each model call."""

    def on_llm_response(self, session_id: str, payload: LLMResponseHookPayload) -> None:
        """Called with the reassembled response after each model call."""

    def on_each_loop_start(self, session_id: str) -> None:
        """Called at the start of every loop iteration."""

    def on_before_tool_call(
        self, session_id: str, tool_call: ChatToolCall, args: Dict[str, Any]
    ) -> Dict[str, Any]:
        """Called before a tool runs. Returns the (possibly rewritten) arguments."""
        return args

    def on_after_tool_call(self, session_id: str, tool_call: ChatToolCall, result: Any) -> Any:
        """Called after a tool succeeds. Returns the (possibly rewritten) result."""
        return result

    def on_tool_call_error(self, session_id: str, tool_call: ChatToolCall, error: Exception) -> Any:
        """Called when a tool raises. Returns the content reported to the model."""
        return f"Error: {error}"

    def on_process_tool_calls(
        self, session_id: str, tool_calls: List[ChatToolCall]
    ) -> Optional[List[ToolCallResult]]:
        """Called before a batch of tool calls runs.

        Returning a list of results replaces real execution for the whole
        batch; returning None lets the tools run.
        """
        return None

    def on_before_loop_termination(
        self, session_id: str, final_event: AssistantMessageEvent
    ) -> LoopTerminationCheckResult:
        """Called when the loop is about to end with a final answer."""
        return LoopTerminationCheckResult(finished=True)

    def on_agent_loop_end(self, session_id: str) -> None:
        """Called once a run has finished, whatever its outcome."""

    def on_retrieve_tools(self, tools: List[ToolDefinition]) -> List[ToolDefinition]:
        """Filter or extend the tools offered to the model on each turn."""
        return tools

    def request_loop_termination(self) -> bool:
        """Ask the loop to stop after the current iteration.

        Returns:
            False if termination had already been requested
        """
        if self._termination_requested:
            return False
        self.logger.info("Loop termination requested")
        self._termination_requested = True
        return True

    def is_loop_termination_requested(self) -> bool:
        return self._termination_requested

    def _reset_loop_termination(self) -> None:
        self._termination_requested = False
