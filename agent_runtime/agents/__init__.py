# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
"""
The agents module holds the machinery of a single agent run. An agent is
driven entirely by its event stream: nothing about the conversation is kept
anywhere else, and the messages sent to the model are rebuilt from the
events on every turn.

A run proceeds as follows:

- the execution controller admits the run (at most one at a time) and hands
  out a cancellation token, which every later stage polls
- the loop executor runs model turns until one produces an answer without
  tool calls, the run is aborted, or the iteration limit is reached
- each turn (the LLM processor) rebuilds the context through the message
  history, streams the model's response through the selected tool call
  engine, and records the resulting assistant message
- the tool processor then runs the requested tools one after another,
  recording a tool call and a tool result event for each

Subclasses of BaseAgent customise a run through its hooks, without touching
any of the above.
"""

from .base_agent import BaseAgent
from .execution_controller import CancellationToken, ExecutionController
from .llm_processor import LLMProcessor, RunContext
from .loop_executor import LoopExecutor
from .message_history import MessageHistory
from .stream_adapter import StreamAdapter
from .tool_processor import ToolProcessor
