# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
"""Tests for sequential tool call dispatch."""
import pytest
from unittest.mock import AsyncMock, Mock
from pydantic import BaseModel

from agent_runtime.agents.base_agent import BaseAgent
from agent_runtime.agents.execution_controller import CancellationToken
from agent_runtime.agents.tool_processor import ToolProcessor
from agent_runtime.errors import CancellationError
from agent_runtime.events.event_stream import EventStream
from agent_runtime.tools.base_tool import ToolRegistry
from agent_runtime.types.event_types import EventType
from agent_runtime.types.llm_types import ChatToolCall, FunctionCall
from agent_runtime.types.tool_types import ToolCallResult, ToolDefinition


class AddArgs(BaseModel):
    a: int
    b: int = 1


def make_call(call_id, name, arguments="{}"):
    return ChatToolCall(id=call_id, function=FunctionCall(name=name, arguments=arguments))


class TestToolProcessor:
    """Test suite for ToolProcessor."""

    def setup_method(self):
        self.agent = BaseAgent()
        self.registry = ToolRegistry()
        self.stream = EventStream()
        self.processor = ToolProcessor(self.agent, self.registry, self.stream)

        self.registry.register(
            ToolDefinition(
                name="add",
                description="Add two numbers",
                function=lambda args: args["a"] + args["b"],
                schema=AddArgs,
            )
        )

    def event_types(self):
        return [e.type for e in self.stream.read()]

    @pytest.mark.asyncio
    async def test_successful_call(self):
        results = await self.processor.process_tool_calls(
            [make_call("c1", "add", '{"a": 2, "b": 3}')], "session"
        )

        assert results == [ToolCallResult(tool_call_id="c1", tool_name="add", content=5)]
        assert self.event_types() == ["tool_call", "tool_result"]
        call_event, result_event = self.stream.read()
        assert call_event.arguments == {"a": 2, "b": 3}
        assert call_event.tool_meta.name == "add"
        assert "a" in call_event.tool_meta.input_schema["properties"]
        assert result_event.content == 5
        assert result_event.error is None

    @pytest.mark.asyncio
    async def test_pydantic_schema_fills_defaults(self):
        results = await self.processor.process_tool_calls(
            [make_call("c1", "add", '{"a": 2}')], "session"
        )
        assert results[0].content == 3

    @pytest.mark.asyncio
    async def test_calls_run_in_order(self):
        order = []

        async def record(args):
            order.append(args["n"])
            return args["n"]

        self.registry.register(ToolDefinition(name="record", description="", function=record))
        calls = [make_call(f"c{i}", "record", f'{{"n": {i}}}') for i in range(3)]

        results = await self.processor.process_tool_calls(calls, "session")

        assert order == [0, 1, 2]
        assert [r.tool_call_id for r in results] == ["c0", "c1", "c2"]
        assert self.event_types() == ["tool_call", "tool_result"] * 3

    @pytest.mark.asyncio
    async def test_malformed_arguments_are_repaired(self):
        results = await self.processor.process_tool_calls(
            [make_call("c1", "add", '{"a": 4, "b": 4')], "session"
        )
        assert results[0].content == 8

    @pytest.mark.asyncio
    async def test_unknown_tool(self):
        results = await self.processor.process_tool_calls([make_call("c1", "missing")], "session")

        assert results[0].content == 'Error: Tool "missing" not found'
        call_event, result_event = self.stream.read()
        assert call_event.tool_meta.name == "missing"
        assert result_event.error == 'Error: Tool "missing" not found'

    @pytest.mark.asyncio
    async def test_tool_exception_goes_through_error_hook(self):
        def fail(args):
            raise ValueError("bad input")

        self.registry.register(ToolDefinition(name="fail", description="", function=fail))
        results = await self.processor.process_tool_calls([make_call("c1", "fail")], "session")

        assert results[0].content == "Error: bad input"
        result_event = self.stream.read()[-1]
        assert result_event.error == "bad input"

    @pytest.mark.asyncio
    async def test_hooks_rewrite_arguments_and_results(self):
        self.agent.on_before_tool_call = AsyncMock(return_value={"a": 10, "b": 10})
        self.agent.on_after_tool_call = Mock(side_effect=lambda sid, tc, result: result * 2)

        results = await self.processor.process_tool_calls(
            [make_call("c1", "add", '{"a": 1}')], "session"
        )

        assert results[0].content == 40
        self.agent.on_before_tool_call.assert_awaited_once()
        assert self.stream.read()[0].arguments == {"a": 10, "b": 10}

    @pytest.mark.asyncio
    async def test_failing_hook_keeps_input(self):
        self.agent.on_before_tool_call = Mock(side_effect=RuntimeError("hook failed"))
        self.agent.on_after_tool_call = Mock(side_effect=RuntimeError("hook failed"))

        results = await self.processor.process_tool_calls(
            [make_call("c1", "add", '{"a": 1, "b": 2}')], "session"
        )
        assert results[0].content == 3

    @pytest.mark.asyncio
    async def test_interception_replaces_execution(self):
        function = Mock(return_value=0)
        self.registry.register(ToolDefinition(name="spy", description="", function=function))
        mocked = [ToolCallResult(tool_call_id="c1", tool_name="spy", content="mocked")]
        self.agent.on_process_tool_calls = Mock(return_value=mocked)

        results = await self.processor.process_tool_calls([make_call("c1", "spy")], "session")

        assert results == mocked
        function.assert_not_called()
        assert self.event_types() == ["tool_call", "tool_result"]
        result_event = self.stream.read()[-1]
        assert result_event.content == "mocked"
        assert result_event.elapsed_ms == 0

    @pytest.mark.asyncio
    async def test_empty_interception_is_still_interception(self):
        self.agent.on_process_tool_calls = Mock(return_value=[])
        results = await self.processor.process_tool_calls([], "session")
        assert results == []

    @pytest.mark.asyncio
    async def test_cancelled_before_start(self):
        function = Mock(return_value=0)
        self.registry.register(ToolDefinition(name="spy", description="", function=function))
        token = CancellationToken()
        token.cancel()

        results = await self.processor.process_tool_calls(
            [make_call("c1", "spy"), make_call("c2", "spy")], "session", token
        )

        function.assert_not_called()
        assert [r.content for r in results] == ["Tool execution aborted"] * 2
        assert self.event_types() == ["tool_call", "tool_result"] * 2
        assert all(e.error == "aborted" for e in self.stream.get_events_by_type(["tool_result"]))

    @pytest.mark.asyncio
    async def test_cancellation_mid_batch(self):
        token = CancellationToken()

        def cancel_then_return(args):
            token.cancel()
            return "first"

        self.registry.register(ToolDefinition(name="cancel", description="", function=cancel_then_return))

        results = await self.processor.process_tool_calls(
            [make_call("c1", "cancel"), make_call("c2", "add", '{"a": 1}')], "session", token
        )

        assert [r.content for r in results] == ["first", "Tool execution aborted"]
        results_by_call = {e.tool_call_id: e for e in self.stream.get_events_by_type(["tool_result"])}
        assert set(results_by_call) == {"c1", "c2"}

    @pytest.mark.asyncio
    async def test_partial_interception_yields_result_per_call(self):
        mocked = [ToolCallResult(tool_call_id="c1", tool_name="add", content="mocked")]
        self.agent.on_process_tool_calls = Mock(return_value=mocked)

        results = await self.processor.process_tool_calls(
            [make_call("c1", "add"), make_call("c2", "add")], "session"
        )

        assert [r.tool_call_id for r in results] == ["c1", "c2"]
        assert [r.content for r in results] == ["mocked", None]
        assert self.event_types() == ["tool_call", "tool_result"] * 2

    @pytest.mark.asyncio
    async def test_interception_still_runs_tool_hooks(self):
        mocked = [ToolCallResult(tool_call_id="c1", tool_name="add", content="mocked")]
        self.agent.on_process_tool_calls = Mock(return_value=mocked)
        self.agent.on_before_tool_call = Mock(return_value={"a": 7})
        self.agent.on_after_tool_call = Mock(side_effect=lambda sid, tc, result: result.upper())

        results = await self.processor.process_tool_calls([make_call("c1", "add")], "session")

        self.agent.on_before_tool_call.assert_called_once()
        assert self.stream.read()[0].arguments == {"a": 7}
        assert results[0].content == "MOCKED"
        assert self.stream.read()[-1].content == "MOCKED"

    @pytest.mark.asyncio
    async def test_before_hook_without_arguments_keeps_parsed(self):
        self.agent.on_before_tool_call = Mock(return_value=None)

        results = await self.processor.process_tool_calls(
            [make_call("c1", "add", '{"a": 1, "b": 2}'), make_call("c2", "add", '{"a": 5}')],
            "session",
        )

        assert [r.content for r in results] == [3, 6]
        assert self.stream.read()[0].arguments == {"a": 1, "b": 2}
        assert self.event_types() == ["tool_call", "tool_result"] * 2

    @pytest.mark.asyncio
    async def test_cancelled_after_before_hook(self):
        function = Mock(return_value=0)
        self.registry.register(ToolDefinition(name="spy", description="", function=function))
        token = CancellationToken()

        def cancel(sid, tool_call, args):
            token.cancel()
            return args

        self.agent.on_before_tool_call = cancel

        results = await self.processor.process_tool_calls([make_call("c1", "spy")], "session", token)

        function.assert_not_called()
        assert results[0].content == "Tool execution aborted"
        assert self.event_types() == ["tool_call", "tool_result"]
        assert self.stream.read()[-1].error == "aborted"

    @pytest.mark.asyncio
    async def test_tool_raising_cancellation_is_aborted(self):
        def interrupted(args):
            raise CancellationError("stopped")

        self.registry.register(ToolDefinition(name="interrupted", description="", function=interrupted))
        error_hook = Mock()
        self.agent.on_tool_call_error = error_hook

        results = await self.processor.process_tool_calls(
            [make_call("c1", "interrupted"), make_call("c2", "add", '{"a": 1}')], "session"
        )

        assert [r.content for r in results] == ["Tool execution aborted", 2]
        assert self.stream.get_events_by_type(["tool_result"])[0].error == "aborted"
        error_hook.assert_not_called()
