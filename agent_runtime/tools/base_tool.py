# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
import logging

from abc import ABC, abstractmethod
from typing import Any, ClassVar, Dict, List, Optional
from pydantic import BaseModel

from ..types.tool_types import ToolDefinition

logger = logging.getLogger(__name__)
logger.setLevel(logging.INFO)


# Every BaseTool subclass, by TOOL_NAME
tool_registry: dict[str, type["BaseTool"]] = {}


class BaseTool(BaseModel, ABC):
    """Abstract base class for class-declared tools.

    The pydantic fields of a subclass are the tool's arguments, so the class
    itself is the argument schema.
    """

    TOOL_NAME: ClassVar[str]
    TOOL_DESCRIPTION: ClassVar[str]

    class Config:
        extra = "forbid"

    def __init_subclass__(cls, **kwargs):
        super().__init_subclass__(**kwargs)
        # Skip intermediate abstract classes without a name
        if getattr(cls, "TOOL_NAME", None):
            tool_registry[cls.TOOL_NAME] = cls

    @abstractmethod
    async def run(self) -> Any:
        """Execute the tool's functionality"""
        pass

    @classmethod
    def to_definition(cls) -> ToolDefinition:
        """Convert the tool class into a ToolDefinition that the agent can register."""

        async def execute(args: Dict[str, Any]) -> Any:
            return await cls(**args).run()

        return ToolDefinition(
            name=cls.TOOL_NAME,
            description=cls.TOOL_DESCRIPTION,
            function=execute,
            schema=cls,
        )


class ToolRegistry:
    """The tools available to one agent, by name."""

    def __init__(self, logger: Optional[logging.Logger] = None):
        self._logger = logger or logging.getLogger(__name__)
        self._tools: Dict[str, ToolDefinition] = {}

    def register(self, tool: ToolDefinition | type[BaseTool]) -> ToolDefinition:
        """Register a tool definition or a BaseTool subclass.

        Args:
            tool: The tool to register. A later registration under the same
                name replaces the earlier one.

        Returns:
            The registered definition
        """
        if isinstance(tool, type) and issubclass(tool, BaseTool):
            tool = tool.to_definition()
        if not isinstance(tool, ToolDefinition):
            raise TypeError(f"Cannot register {tool!r} as a tool")

        if tool.name in self._tools:
            self._logger.warning(f"Tool {tool.name} is already registered, replacing it")
        self._tools[tool.name] = tool
        self._logger.info(f"Registered tool: {tool.name}")
        return tool

    def unregister(self, name: str) -> bool:
        return self._tools.pop(name, None) is not None

    def get(self, name: str) -> Optional[ToolDefinition]:
        return self._tools.get(name)

    def get_tools(self) -> List[ToolDefinition]:
        return list(self._tools.values())

    def __contains__(self, name: str) -> bool:
        return name in self._tools

    def __len__(self) -> int:
        return len(self._tools)
