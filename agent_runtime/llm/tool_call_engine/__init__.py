# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
import logging

from typing import Optional

from ...errors import ConfigurationError
from ...types.agent_types import ToolCallEngineType
from .base import ToolCallEngine
from .native import NativeToolCallEngine
from .prompt_engineering import PromptEngineeringToolCallEngine
from .structured_outputs import StructuredOutputsToolCallEngine

ENGINES: dict[ToolCallEngineType, type[ToolCallEngine]] = {
    ToolCallEngineType.NATIVE: NativeToolCallEngine,
    ToolCallEngineType.PROMPT_ENGINEERING: PromptEngineeringToolCallEngine,
    ToolCallEngineType.STRUCTURED_OUTPUTS: StructuredOutputsToolCallEngine,
}


def create_tool_call_engine(
    kind: ToolCallEngineType | str = ToolCallEngineType.NATIVE,
    logger: Optional[logging.Logger] = None,
) -> ToolCallEngine:
    """Instantiate the tool call engine registered under `kind`."""
    try:
        engine_type = ToolCallEngineType(kind)
    except ValueError:
        raise ConfigurationError(
            f"Unknown tool call engine {kind!r}, expected one of "
            f"{', '.join(t.value for t in ToolCallEngineType)}"
        )
    return ENGINES[engine_type](logger=logger)
