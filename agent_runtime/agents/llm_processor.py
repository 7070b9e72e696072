# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
"""One model turn: build the context, stream the response, run the tools."""

import os
import time
import logging

from dataclasses import dataclass
from typing import Any, Awaitable, Callable, List, Optional

from ..events.event_stream import EventStream
from ..llm.tool_call_engine.base import ToolCallEngine
from ..types.agent_types import LLMRequestHookPayload, LLMResponseHookPayload, ResolvedModel
from ..types.event_types import EventType, now_ms
from ..types.tool_types import ToolDefinition
from .base_agent import BaseAgent, call_hook, maybe_await
from .execution_controller import CancellationToken
from .message_history import MessageHistory
from .tool_processor import ToolProcessor

logger = logging.getLogger(__name__)

ToolsProvider = Callable[[], Awaitable[List[ToolDefinition]]]


def generate_message_id() -> str:
    return f"msg_{int(time.time() * 1000)}_{os.urandom(4).hex()}"


@dataclass
class RunContext:
    """Everything a turn needs to know about the run it belongs to."""

    session_id: str
    resolved_model: ResolvedModel
    engine: ToolCallEngine
    client: Any
    cancellation_token: CancellationToken
    streaming: bool = False


class LLMProcessor:
    """Runs single model turns and records them in the event stream."""

    def __init__(
        self,
        agent: BaseAgent,
        event_stream: EventStream,
        tool_processor: ToolProcessor,
        message_history: MessageHistory,
        get_tools: ToolsProvider,
        instructions: str,
        temperature: float = 0.7,
        max_tokens: Optional[int] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self.agent = agent
        self.event_stream = event_stream
        self.tool_processor = tool_processor
        self.message_history = message_history
        self.get_tools = get_tools
        self.instructions = instructions
        self.temperature = temperature
        self.max_tokens = max_tokens
        self._logger = logger or logging.getLogger(__name__)

    async def process_request(self, ctx: RunContext) -> None:
        """Run one turn.

        Appends the streaming events (in streaming mode), the assistant
        message and any thinking message, then dispatches the requested tool
        calls. Provider errors propagate to the caller.
        """
        session_id = ctx.session_id
        token = ctx.cancellation_token
        await call_hook(self.agent, "on_each_loop_start", None, session_id, logger=self._logger)
        if token.is_cancelled():
            return

        tools = await self.get_tools()
        messages = self.message_history.build(
            self.event_stream.read(), ctx.engine, self.instructions, tools
        )

        request = ctx.engine.prepare_request(
            ctx.resolved_model.model, messages, tools, self.temperature
        )
        request["stream"] = True
        if self.max_tokens is not None:
            request["max_tokens"] = self.max_tokens

        await call_hook(
            self.agent,
            "on_llm_request",
            None,
            session_id,
            LLMRequestHookPayload(
                provider=ctx.resolved_model.provider,
                request=request,
                base_url=ctx.resolved_model.base_url,
            ),
            logger=self._logger,
        )

        self._logger.info(
            f"Sending request to {ctx.resolved_model.provider}/{ctx.resolved_model.model} "
            f"with {len(messages)} messages and {len(tools)} tools"
        )
        start_time = now_ms()
        message_id = generate_message_id()
        state = ctx.engine.init_stream_state()
        chunk_count = 0

        response = await ctx.client.chat.completions.create(**request)
        try:
            async for chunk in response:
                if token.is_cancelled():
                    self._logger.info("Request processing aborted while streaming")
                    break
                chunk_count += 1
                result = ctx.engine.process_chunk(chunk, state)

                if not ctx.streaming:
                    continue
                is_complete = bool(state.finish_reason)
                if result.reasoning_content:
                    self.event_stream.append(
                        self.event_stream.create_event(
                            EventType.ASSISTANT_STREAMING_THINKING_MESSAGE,
                            content=result.reasoning_content,
                            is_complete=is_complete,
                            message_id=message_id,
                        )
                    )
                if result.content:
                    self.event_stream.append(
                        self.event_stream.create_event(
                            EventType.ASSISTANT_STREAMING_MESSAGE,
                            content=result.content,
                            is_complete=is_complete,
                            message_id=message_id,
                        )
                    )
        finally:
            await self._close_response(response)

        if token.is_cancelled():
            return

        parsed = ctx.engine.finalize(state)
        elapsed = now_ms() - start_time
        self._logger.info(
            f"Response finished ({parsed.finish_reason}) after {chunk_count} chunks in {elapsed}ms"
        )

        if parsed.content or parsed.tool_calls:
            self.event_stream.append(
                self.event_stream.create_event(
                    EventType.ASSISTANT_MESSAGE,
                    content=parsed.content,
                    tool_calls=parsed.tool_calls,
                    finish_reason=parsed.finish_reason,
                    elapsed_ms=elapsed,
                    message_id=message_id,
                )
            )
        else:
            self._logger.warning("Model returned neither content nor tool calls")

        if parsed.reasoning_content:
            self.event_stream.append(
                self.event_stream.create_event(
                    EventType.ASSISTANT_THINKING_MESSAGE,
                    content=parsed.reasoning_content,
                    is_complete=True,
                    message_id=message_id,
                )
            )

        await call_hook(
            self.agent,
            "on_llm_response",
            None,
            session_id,
            LLMResponseHookPayload(
                provider=ctx.resolved_model.provider,
                content=parsed.content,
                tool_calls=(
                    [tc.to_message_param() for tc in parsed.tool_calls]
                    if parsed.tool_calls
                    else None
                ),
                finish_reason=parsed.finish_reason,
                chunk_count=chunk_count,
            ),
            logger=self._logger,
        )

        if parsed.tool_calls and not token.is_cancelled():
            self._logger.info(f"Processing {len(parsed.tool_calls)} tool calls")
            await self.tool_processor.process_tool_calls(parsed.tool_calls, session_id, token)

    async def _close_response(self, response: Any) -> None:
        """Release the provider connection, also when streaming stopped early."""
        close = getattr(response, "close", None) or getattr(response, "aclose", None)
        if close is None:
            return
        try:
            await maybe_await(close())
        except Exception as e:
            self._logger.warning(f"Failed to close the response stream: {e}")
