# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
"""
The main entrypoint to the runtime.
"""

import os
import time
import asyncio
import logging

from typing import Any, AsyncIterator, List, Optional, Union
from pydantic import BaseModel, Field

from .config import config
from .errors import CancellationError
from .agents.base_agent import BaseAgent, call_hook
from .agents.execution_controller import ExecutionController
from .agents.llm_processor import LLMProcessor, RunContext
from .agents.loop_executor import LoopExecutor
from .agents.message_history import MessageHistory
from .agents.stream_adapter import StreamAdapter
from .agents.tool_processor import ToolProcessor
from .events.event_stream import EventStream, EventStreamOptions
from .llm.client import get_llm_client
from .llm.model_resolver import ModelResolver
from .llm.tool_call_engine import create_tool_call_engine
from .tools.base_tool import BaseTool, ToolRegistry
from .types.agent_types import AgentStatus, ModelOptions, RunOptions, ToolCallEngineType
from .types.event_types import AssistantMessageEvent, BaseEvent, EventType, SystemLevel, now_ms
from .types.tool_types import ToolDefinition

logger = logging.getLogger(__name__)


class AgentOptions(BaseModel):
    instructions: str = config.DEFAULT_INSTRUCTIONS
    # ToolDefinition instances or BaseTool subclasses
    tools: List[Any] = Field(default_factory=list)
    model: ModelOptions = Field(default_factory=ModelOptions)
    max_iterations: int = config.DEFAULT_MAX_ITERATIONS
    temperature: float = config.DEFAULT_TEMPERATURE
    max_tokens: Optional[int] = config.DEFAULT_MAX_TOKENS
    tool_call_engine: ToolCallEngineType = ToolCallEngineType(config.DEFAULT_TOOL_CALL_ENGINE)
    max_images: Optional[int] = config.DEFAULT_MAX_IMAGES
    event_stream_options: EventStreamOptions = Field(
        default_factory=lambda: EventStreamOptions(
            max_events=config.DEFAULT_MAX_EVENTS, auto_trim=config.DEFAULT_AUTO_TRIM
        )
    )


def generate_session_id() -> str:
    return f"{int(time.time() * 1000)}-{os.urandom(4).hex()}"


class Agent(BaseAgent):
    """
    An agent that answers a request through a bounded loop of model calls and
    tool invocations, recording every step in its event stream.

    Args:
        options: The agent's instructions, tools, model and loop settings
        client: An OpenAI-compatible async client. Built from the resolved
            model on each run when not given.
        event_stream: The event stream to record into. A new one is created
            when not given.
        logger: Logger handed to every component instead of its module logger
    """

    def __init__(
        self,
        options: Optional[AgentOptions] = None,
        client: Any = None,
        event_stream: Optional[EventStream] = None,
        logger: Optional[logging.Logger] = None,
    ):
        super().__init__(logger=logger or logging.getLogger(__name__))
        self.options = options or AgentOptions()
        self.client = client

        self.event_stream = event_stream or EventStream(
            self.options.event_stream_options, logger=logger
        )
        self.tool_registry = ToolRegistry(logger=logger)
        for tool in self.options.tools:
            self.tool_registry.register(tool)

        self.execution_controller = ExecutionController(logger=logger)
        self.model_resolver = ModelResolver(self.options.model, logger=logger)
        self.message_history = MessageHistory(max_images=self.options.max_images, logger=logger)
        self.tool_processor = ToolProcessor(self, self.tool_registry, self.event_stream, logger=logger)
        self.llm_processor = LLMProcessor(
            self,
            self.event_stream,
            self.tool_processor,
            self.message_history,
            get_tools=self.get_available_tools,
            instructions=self.options.instructions,
            temperature=self.options.temperature,
            max_tokens=self.options.max_tokens,
            logger=logger,
        )
        self.loop_executor = LoopExecutor(
            self,
            self.event_stream,
            self.llm_processor,
            max_iterations=self.options.max_iterations,
            logger=logger,
        )
        self.stream_adapter = StreamAdapter(self.event_stream, logger=logger)
        self._run_task: Optional[asyncio.Task] = None

    @property
    def status(self) -> AgentStatus:
        return self.execution_controller.status

    def register_tool(self, tool: Union[ToolDefinition, type[BaseTool]]) -> ToolDefinition:
        return self.tool_registry.register(tool)

    def get_tools(self) -> List[ToolDefinition]:
        """All registered tools."""
        return self.tool_registry.get_tools()

    async def get_available_tools(self) -> List[ToolDefinition]:
        """The tools offered to the model, after the `on_retrieve_tools` hook."""
        tools = self.get_tools()
        filtered = await call_hook(self, "on_retrieve_tools", tools, tools)
        return list(filtered) if filtered is not None else tools

    def abort(self) -> bool:
        """Abort the current run.

        Returns:
            False when nothing was running
        """
        aborted = self.execution_controller.abort()
        if aborted:
            self.logger.info("Agent run aborted")
        return aborted

    async def run(
        self, run_options: Union[str, RunOptions]
    ) -> Union[AssistantMessageEvent, AsyncIterator[BaseEvent]]:
        """Run the agent on one request.

        Args:
            run_options: The user input, or full run options

        Returns:
            The final assistant message, or with `stream=True` an async
            iterator over the run's events ending with `agent_run_end`

        Raises:
            ConfigurationError: if the model or tool call engine is invalid
            ConflictError: if a run is already in progress
        """
        if isinstance(run_options, str):
            run_options = RunOptions(input=run_options)

        resolved = self.model_resolver.resolve(run_options.model, run_options.provider)
        engine = create_tool_call_engine(
            run_options.tool_call_engine or self.options.tool_call_engine, logger=self.logger
        )
        client = self.client or get_llm_client(resolved)

        token = self.execution_controller.begin_execution()
        session_id = run_options.session_id or generate_session_id()
        self._reset_loop_termination()
        ctx = RunContext(
            session_id=session_id,
            resolved_model=resolved,
            engine=engine,
            client=client,
            cancellation_token=token,
            streaming=run_options.stream,
        )
        start_time = now_ms()
        self.logger.info(f"Agent run started: session {session_id}")

        stream = self.stream_adapter.create_stream() if run_options.stream else None
        self.event_stream.append(
            self.event_stream.create_event(
                EventType.AGENT_RUN_START,
                session_id=session_id,
                run_options=run_options.summary(),
                provider=resolved.provider,
                model=resolved.model,
            )
        )
        self.event_stream.append(
            self.event_stream.create_event(EventType.USER_MESSAGE, content=run_options.input)
        )

        if stream is None:
            return await self._execute(ctx, start_time, raise_errors=True)

        if token.is_cancelled():
            await stream.aclose()
            await self._finish(ctx, start_time, AgentStatus.ABORTED)
            return self.stream_adapter.create_aborted_stream()

        self._run_task = asyncio.create_task(self._execute(ctx, start_time, raise_errors=False))
        return stream

    async def _execute(
        self, ctx: RunContext, start_time: int, raise_errors: bool
    ) -> Optional[AssistantMessageEvent]:
        try:
            final_event = await self.loop_executor.execute(ctx)
        except asyncio.CancelledError:
            await self._finish(ctx, start_time, AgentStatus.ABORTED)
            raise
        except CancellationError as e:
            self.logger.info(f"Agent run {ctx.session_id} cancelled: {e}")
            final_event = self.loop_executor.aborted()
            await self._finish(ctx, start_time, AgentStatus.ABORTED)
            return final_event
        except Exception as e:
            self.logger.error(f"Agent run {ctx.session_id} failed: {e}")
            self.event_stream.append(
                self.event_stream.create_event(
                    EventType.SYSTEM,
                    level=SystemLevel.ERROR,
                    message=f"Error in agent execution: {e}",
                    details={"error_type": type(e).__name__},
                )
            )
            await self._finish(ctx, start_time, AgentStatus.ERROR)
            if raise_errors:
                raise
            return None

        status = (
            AgentStatus.ABORTED if ctx.cancellation_token.is_cancelled() else AgentStatus.IDLE
        )
        await self._finish(ctx, start_time, status)
        return final_event

    async def _finish(self, ctx: RunContext, start_time: int, status: AgentStatus) -> None:
        await call_hook(self, "on_agent_loop_end", None, ctx.session_id)
        await self.execution_controller.end_execution(status)

        elapsed = now_ms() - start_time
        self.event_stream.append(
            self.event_stream.create_event(
                EventType.AGENT_RUN_END,
                session_id=ctx.session_id,
                iterations=self.loop_executor.iterations,
                elapsed_ms=elapsed,
                status=status,
            )
        )
        self.logger.info(
            f"Agent run {ctx.session_id} ended with status {status.value} "
            f"after {self.loop_executor.iterations} iterations in {elapsed}ms"
        )
