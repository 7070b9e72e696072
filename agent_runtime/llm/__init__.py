# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
from .model_resolver import ModelResolver, PROVIDER_DEFAULTS
from .tool_call_engine import (
    ToolCallEngine,
    NativeToolCallEngine,
    PromptEngineeringToolCallEngine,
    StructuredOutputsToolCallEngine,
    create_tool_call_engine,
)
