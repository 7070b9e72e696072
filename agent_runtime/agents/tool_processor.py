# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
"""Sequential execution of the tool calls requested in one model turn."""

import logging

from typing import Any, Dict, List, Optional

from ..errors import CancellationError, ToolExecutionError
from ..events.event_stream import EventStream
from ..schemas import parse_json_object
from ..tools.base_tool import ToolRegistry
from ..types.event_types import EventType, ToolMeta, now_ms
from ..types.llm_types import ChatToolCall
from ..types.tool_types import ToolCallResult, ToolDefinition
from .base_agent import BaseAgent, call_hook
from .execution_controller import CancellationToken

logger = logging.getLogger(__name__)

ABORTED_CONTENT = "Tool execution aborted"
ABORTED_ERROR = "aborted"


class ToolProcessor:
    """Runs a batch of tool calls against the registry, one at a time.

    Every call yields exactly one ToolCallResult and one tool_result event,
    whether it succeeds, fails, is unknown, or is skipped by cancellation.
    """

    def __init__(
        self,
        agent: BaseAgent,
        tools: ToolRegistry,
        event_stream: EventStream,
        logger: Optional[logging.Logger] = None,
    ):
        self.agent = agent
        self.tools = tools
        self.event_stream = event_stream
        self._logger = logger or logging.getLogger(__name__)

    async def process_tool_calls(
        self,
        tool_calls: List[ChatToolCall],
        session_id: str,
        cancellation_token: Optional[CancellationToken] = None,
    ) -> List[ToolCallResult]:
        """Execute the tool calls of one turn.

        Args:
            tool_calls: The calls requested by the model, in order
            session_id: The current session
            cancellation_token: Polled before each call and again just before
                the tool is invoked

        Returns:
            One result per call, in call order
        """
        intercepted = await self._run_hook(
            "on_process_tool_calls", None, session_id, tool_calls
        )
        if intercepted is not None:
            self._logger.info(f"Tool execution intercepted for {len(tool_calls)} calls")
            return await self._record_intercepted(tool_calls, intercepted, session_id)

        results = []
        for tool_call in tool_calls:
            results.append(await self._process_one(tool_call, session_id, cancellation_token))
        return results

    async def _record_intercepted(
        self, tool_calls: List[ChatToolCall], results: List[ToolCallResult], session_id: str
    ) -> List[ToolCallResult]:
        """Record events for results supplied by the interception hook.

        The before and after hooks still run for each call. A call the hook
        gave no result for gets empty content.
        """
        by_id = {r.tool_call_id: r for r in results}
        recorded = []
        for tool_call in tool_calls:
            args = await self._apply_before_hook(
                session_id, tool_call, self._parse_arguments(tool_call)
            )
            self._emit_tool_call(tool_call, args, now_ms())

            result = by_id.get(tool_call.id)
            if result is None:
                self._logger.warning(f"No intercepted result for tool call {tool_call.id}")
                content = None
            else:
                content = await self._run_hook(
                    "on_after_tool_call", result.content, session_id, tool_call, result.content
                )
            recorded.append(self._emit_tool_result(tool_call, content, elapsed_ms=0))
        return recorded

    async def _process_one(
        self,
        tool_call: ChatToolCall,
        session_id: str,
        token: Optional[CancellationToken],
    ) -> ToolCallResult:
        name = tool_call.function.name

        if token is not None and token.is_cancelled():
            self._logger.info(f"Skipping tool {name}: execution aborted")
            self._emit_tool_call(tool_call, self._parse_arguments(tool_call), now_ms())
            return self._emit_tool_result(
                tool_call, ABORTED_CONTENT, elapsed_ms=0, error=ABORTED_ERROR
            )

        args = self._parse_arguments(tool_call)
        args = await self._apply_before_hook(session_id, tool_call, args)

        start_time = now_ms()
        tool = self.tools.get(name)
        self._emit_tool_call(tool_call, args, start_time, tool)

        if tool is None:
            self._logger.error(f"Tool not found: {name}")
            message = f'Error: Tool "{name}" not found'
            return self._emit_tool_result(tool_call, message, elapsed_ms=0, error=message)

        if token is not None and token.is_cancelled():
            self._logger.info(f"Tool {name} aborted before execution")
            return self._emit_tool_result(
                tool_call, ABORTED_CONTENT, elapsed_ms=0, error=ABORTED_ERROR
            )

        error: Optional[str] = None
        try:
            self._logger.info(f"Executing tool {name} ({tool_call.id})")
            result = await tool.execute(args)
        except CancellationError:
            return self._emit_tool_result(
                tool_call, ABORTED_CONTENT, elapsed_ms=now_ms() - start_time, error=ABORTED_ERROR
            )
        except Exception as e:
            failure = ToolExecutionError(name, e)
            self._logger.error(str(failure))
            error = str(e)
            content = await self._run_hook(
                "on_tool_call_error", f"Error: {e}", session_id, tool_call, e
            )
        else:
            content = await self._run_hook(
                "on_after_tool_call", result, session_id, tool_call, result
            )

        elapsed = now_ms() - start_time
        self._logger.info(f"Tool {name} finished in {elapsed}ms")
        return self._emit_tool_result(tool_call, content, elapsed_ms=elapsed, error=error)

    def _parse_arguments(self, tool_call: ChatToolCall) -> Dict[str, Any]:
        args, warning = parse_json_object(tool_call.function.arguments)
        if args is None:
            self._logger.warning(
                f"Could not parse arguments of {tool_call.function.name}: {warning}"
            )
            return {}
        return args

    async def _apply_before_hook(
        self, session_id: str, tool_call: ChatToolCall, args: Dict[str, Any]
    ) -> Dict[str, Any]:
        updated = await self._run_hook("on_before_tool_call", args, session_id, tool_call, args)
        if not isinstance(updated, dict):
            self._logger.warning(
                f"on_before_tool_call returned {type(updated).__name__} for "
                f"{tool_call.function.name}, keeping the parsed arguments"
            )
            return args
        return updated

    async def _run_hook(self, hook_name: str, fallback: Any, *args: Any) -> Any:
        return await call_hook(self.agent, hook_name, fallback, *args, logger=self._logger)

    def _emit_tool_call(
        self,
        tool_call: ChatToolCall,
        args: Dict[str, Any],
        start_time: int,
        tool: Optional[ToolDefinition] = None,
    ) -> None:
        if tool is None:
            tool = self.tools.get(tool_call.function.name)
        meta = tool.to_meta() if tool is not None else ToolMeta(name=tool_call.function.name)
        self.event_stream.append(
            self.event_stream.create_event(
                EventType.TOOL_CALL,
                tool_call_id=tool_call.id,
                name=tool_call.function.name,
                arguments=args,
                start_time=start_time,
                tool_meta=meta,
            )
        )

    def _emit_tool_result(
        self,
        tool_call: ChatToolCall,
        content: Any,
        elapsed_ms: int,
        error: Optional[str] = None,
    ) -> ToolCallResult:
        self.event_stream.append(
            self.event_stream.create_event(
                EventType.TOOL_RESULT,
                tool_call_id=tool_call.id,
                name=tool_call.function.name,
                content=content,
                elapsed_ms=elapsed_ms,
                error=error,
            )
        )
        return ToolCallResult(
            tool_call_id=tool_call.id, tool_name=tool_call.function.name, content=content
        )
