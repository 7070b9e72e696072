# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
"""Exceptions raised by the agent runtime."""


class AgentRuntimeError(Exception):
    """Base class for all runtime errors."""


class ConfigurationError(AgentRuntimeError):
    """The model, provider or tool call engine could not be resolved."""


class ConflictError(AgentRuntimeError):
    """A run was started while another one is still executing."""


class ToolExecutionError(AgentRuntimeError):
    """A registered tool raised while executing."""

    def __init__(self, tool_name: str, original: Exception):
        super().__init__(f"Tool {tool_name} failed: {original}")
        self.tool_name = tool_name
        self.original = original


class HookError(AgentRuntimeError):
    """A lifecycle hook raised. Only ever logged, never propagated."""

    def __init__(self, hook_name: str, original: Exception):
        super().__init__(f"Error in {hook_name} hook: {original}")
        self.hook_name = hook_name
        self.original = original


class CancellationError(AgentRuntimeError):
    """The current execution was aborted through its cancellation token."""
