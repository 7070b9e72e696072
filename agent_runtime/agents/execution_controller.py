# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
"""Single-flight execution state machine with cooperative cancellation."""

import inspect
import logging

from typing import Any, Awaitable, Callable, List, Optional, Union

from ..errors import CancellationError, ConflictError
from ..types.agent_types import AgentStatus

logger = logging.getLogger(__name__)

CleanupHandler = Callable[[], Union[None, Awaitable[None]]]


class CancellationToken:
    """A pollable cancellation signal passed through every suspension point.

    Nothing is ever interrupted: code that receives a token is expected to
    check it before doing further work.
    """

    def __init__(self, logger: Optional[logging.Logger] = None):
        self._cancelled = False
        self._callbacks: List[Callable[[], Any]] = []
        self._logger = logger or logging.getLogger(__name__)

    def is_cancelled(self) -> bool:
        return self._cancelled

    def on_cancel(self, callback: Callable[[], Any]) -> Callable[[], None]:
        """Register a callback for cancellation.

        The callback runs immediately if the token is already cancelled.

        Returns:
            A function that unregisters the callback
        """
        if self._cancelled:
            self._run_callback(callback)
            return lambda: None

        self._callbacks.append(callback)

        def unregister() -> None:
            if callback in self._callbacks:
                self._callbacks.remove(callback)

        return unregister

    def cancel(self) -> None:
        if self._cancelled:
            return
        self._cancelled = True
        callbacks, self._callbacks = self._callbacks, []
        for callback in callbacks:
            self._run_callback(callback)

    def raise_if_cancelled(self) -> None:
        if self._cancelled:
            raise CancellationError("Execution was aborted")

    def _run_callback(self, callback: Callable[[], Any]) -> None:
        try:
            callback()
        except Exception as e:
            self._logger.error(f"Error in cancellation callback {callback}: {e}")


class ExecutionController:
    """Owns the execution status of one agent.

    At most one execution may be in flight; a second `begin_execution` is
    rejected rather than queued.
    """

    def __init__(self, logger: Optional[logging.Logger] = None):
        self._logger = logger or logging.getLogger(__name__)
        self._status = AgentStatus.IDLE
        self._token: Optional[CancellationToken] = None
        self._cleanup_handlers: List[CleanupHandler] = []

    @property
    def status(self) -> AgentStatus:
        return self._status

    @property
    def cancellation_token(self) -> Optional[CancellationToken]:
        return self._token

    def is_executing(self) -> bool:
        return self._status == AgentStatus.EXECUTING

    def begin_execution(self) -> CancellationToken:
        """Start an execution.

        Returns:
            A fresh cancellation token for this execution

        Raises:
            ConflictError: if an execution is already in progress
        """
        if self.is_executing():
            raise ConflictError(
                "Agent is already executing a task. Complete or abort the current execution first."
            )

        self._token = CancellationToken(logger=self._logger)
        self._cleanup_handlers = []
        self._status = AgentStatus.EXECUTING
        self._logger.debug("Execution started")
        return self._token

    async def end_execution(self, final_status: AgentStatus = AgentStatus.IDLE) -> None:
        """Finish the current execution, running cleanup handlers newest first.

        A handler that raises is logged; the remaining handlers still run.
        """
        handlers = list(self._cleanup_handlers)
        for handler in reversed(handlers):
            try:
                result = handler()
                if inspect.isawaitable(result):
                    await result
            except Exception as e:
                self._logger.error(f"Error in cleanup handler: {e}")

        self._cleanup_handlers = []
        self._status = final_status
        self._logger.debug(f"Execution ended with status {final_status.value}")

    def abort(self) -> bool:
        """Abort the current execution.

        Returns:
            False when nothing was executing, True otherwise
        """
        if not self.is_executing():
            return False

        if self._token is not None:
            self._token.cancel()
        self._status = AgentStatus.ABORTED
        self._logger.info("Execution aborted")
        return True

    def register_cleanup_handler(self, handler: CleanupHandler) -> None:
        """Register a handler to run when the current execution ends."""
        self._cleanup_handlers.append(handler)
