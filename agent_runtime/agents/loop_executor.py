# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
"""The bounded agent loop."""

import logging

from typing import Optional

from ..events.event_stream import EventStream
from ..types.agent_types import LoopTerminationCheckResult
from ..types.event_types import AssistantMessageEvent, EventType, SystemLevel, now_ms
from ..types.llm_types import FinishReason
from .base_agent import BaseAgent, call_hook
from .llm_processor import LLMProcessor, RunContext

logger = logging.getLogger(__name__)

MAX_ITERATIONS_MESSAGE = "Sorry, I could not complete this task. Maximum iterations reached."
ABORTED_MESSAGE = "Request was aborted"
FINISHED_MESSAGE = "Agent is finished"


class LoopExecutor:
    """Runs model turns until a final answer, an abort, or the iteration limit.

    A turn whose assistant message requests no tools is a final answer. The
    agent's `on_before_loop_termination` hook may reject it, in which case
    the loop carries on.
    """

    def __init__(
        self,
        agent: BaseAgent,
        event_stream: EventStream,
        llm_processor: LLMProcessor,
        max_iterations: int = 10,
        logger: Optional[logging.Logger] = None,
    ):
        self.agent = agent
        self.event_stream = event_stream
        self.llm_processor = llm_processor
        self.max_iterations = max_iterations
        self.iterations = 0
        self._logger = logger or logging.getLogger(__name__)

    async def execute(self, ctx: RunContext) -> AssistantMessageEvent:
        """Run the loop for one session.

        Returns:
            The final assistant message: the model's answer, or a message
            explaining why the run stopped without one
        """
        token = ctx.cancellation_token
        final_event: Optional[AssistantMessageEvent] = None
        self.iterations = 0

        while self.iterations < self.max_iterations:
            if token.is_cancelled() or self.agent.is_loop_termination_requested():
                break

            self.iterations += 1
            self._logger.info(f"Iteration {self.iterations}/{self.max_iterations} started")
            previous = self.event_stream.latest_assistant_response()
            await self.llm_processor.process_request(ctx)

            latest = self.event_stream.latest_assistant_response()
            if latest is None or latest is previous or latest.tool_calls:
                continue
            if token.is_cancelled():
                break

            check = await call_hook(
                self.agent,
                "on_before_loop_termination",
                LoopTerminationCheckResult(finished=True),
                ctx.session_id,
                latest,
                logger=self._logger,
            )
            if check is None or check.finished:
                final_event = latest
                break

            reason = check.message or "no reason given"
            self._logger.info(f"Loop continuation requested: {reason}")
            self._append_system(SystemLevel.INFO, f"Loop continuation requested: {reason}")

        if token.is_cancelled():
            return self.aborted()

        if final_event is not None:
            return final_event

        if self.agent.is_loop_termination_requested():
            self._logger.info("Loop terminated on request")
            latest = self.event_stream.latest_assistant_response()
            if latest is not None and not latest.tool_calls:
                return latest
            return self._append_final(FINISHED_MESSAGE, FinishReason.STOP)

        self._logger.warning(f"Maximum iterations ({self.max_iterations}) reached")
        self._append_system(
            SystemLevel.WARNING, f"Maximum iterations reached ({self.max_iterations})"
        )
        return self._append_final(MAX_ITERATIONS_MESSAGE, FinishReason.MAX_ITERATIONS)

    def aborted(self) -> AssistantMessageEvent:
        """Record the end of an aborted run and return its final message."""
        self._logger.info(f"Execution aborted after {self.iterations} iterations")
        self._append_system(SystemLevel.WARNING, "Execution aborted")
        return self._append_final(
            ABORTED_MESSAGE, FinishReason.ABORT, message_id=f"msg_abort_{now_ms()}"
        )

    def _append_system(self, level: SystemLevel, message: str) -> None:
        self.event_stream.append(
            self.event_stream.create_event(EventType.SYSTEM, level=level, message=message)
        )

    def _append_final(
        self, content: str, finish_reason: FinishReason, message_id: Optional[str] = None
    ) -> AssistantMessageEvent:
        event = self.event_stream.create_event(
            EventType.ASSISTANT_MESSAGE,
            content=content,
            finish_reason=finish_reason.value,
            message_id=message_id,
        )
        self.event_stream.append(event)
        return event
