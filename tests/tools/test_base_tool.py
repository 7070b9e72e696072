# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
"""Tests for the BaseTool class, tool definitions and the tool registry."""
import pytest
from pydantic import BaseModel, Field, ValidationError

from agent_runtime.tools.base_tool import BaseTool, ToolRegistry, tool_registry
from agent_runtime.types.tool_types import ToolDefinition


class TestBaseTool:
    """Test suite for BaseTool class."""

    def setup_method(self):
        """Setup for each test method."""
        # Save the original registry and clear it for testing
        self.original_registry = dict(tool_registry)
        tool_registry.clear()

    def teardown_method(self):
        """Teardown after each test method."""
        # Restore the original registry after each test
        tool_registry.clear()
        tool_registry.update(self.original_registry)

    def test_tool_registration(self):
        """Test that named subclasses are registered on definition."""

        class EchoTool(BaseTool):
            TOOL_NAME = "echo"
            TOOL_DESCRIPTION = "Echo the input"

            text: str

            async def run(self):
                return self.text

        class IntermediateTool(BaseTool):
            async def run(self):
                return None

        assert tool_registry == {"echo": EchoTool}

    @pytest.mark.asyncio
    async def test_to_definition(self):
        class RepeatTool(BaseTool):
            TOOL_NAME = "repeat"
            TOOL_DESCRIPTION = "Repeat text"

            text: str = Field(..., description="Text to repeat")
            times: int = 2

            async def run(self):
                return self.text * self.times

        definition = RepeatTool.to_definition()

        assert definition.name == "repeat"
        assert not definition.has_json_schema()
        assert definition.json_schema["properties"]["text"]["description"] == "Text to repeat"
        assert await definition.execute({"text": "ab"}) == "abab"

    @pytest.mark.asyncio
    async def test_extra_arguments_are_rejected(self):
        class StrictTool(BaseTool):
            TOOL_NAME = "strict"
            TOOL_DESCRIPTION = "Strict tool"

            value: int

            async def run(self):
                return self.value

        with pytest.raises(ValidationError):
            await StrictTool.to_definition().execute({"value": 1, "unexpected": True})


class TestToolDefinition:

    def test_json_schema_is_copied(self):
        schema = {"type": "object", "properties": {"x": {"type": "number"}}}
        definition = ToolDefinition(name="t", description="", function=lambda a: a, schema=schema)
        schema["properties"]["y"] = {"type": "string"}

        assert definition.has_json_schema()
        assert "y" not in definition.json_schema["properties"]

    def test_missing_schema_is_empty_object(self):
        definition = ToolDefinition(name="t", description="", function=lambda a: a)
        assert definition.json_schema == {"type": "object", "properties": {}}

    def test_empty_name_is_rejected(self):
        with pytest.raises(ValueError):
            ToolDefinition(name="", description="", function=lambda a: a)

    def test_invalid_schema_is_rejected(self):
        with pytest.raises(TypeError):
            ToolDefinition(name="t", description="", function=lambda a: a, schema="nope")

    @pytest.mark.asyncio
    async def test_execute_sync_and_async(self):
        async def async_fn(args):
            return args["n"] + 1

        sync_def = ToolDefinition(name="s", description="", function=lambda a: a["n"] * 2)
        async_def = ToolDefinition(name="a", description="", function=async_fn)

        assert await sync_def.execute({"n": 3}) == 6
        assert await async_def.execute({"n": 3}) == 4

    @pytest.mark.asyncio
    async def test_pydantic_schema_validates(self):
        class Args(BaseModel):
            n: int

        definition = ToolDefinition(name="p", description="", function=lambda a: a["n"], schema=Args)

        assert await definition.execute({"n": "5"}) == 5
        with pytest.raises(ValidationError):
            await definition.execute({"n": "five"})

    def test_to_meta(self):
        definition = ToolDefinition(name="t", description="desc", function=lambda a: a)
        meta = definition.to_meta()
        assert meta.name == "t"
        assert meta.model_dump(by_alias=True)["schema"] == definition.json_schema


class TestToolRegistry:

    def setup_method(self):
        self.registry = ToolRegistry()

    def test_register_and_get(self):
        definition = ToolDefinition(name="t", description="", function=lambda a: a)
        self.registry.register(definition)

        assert "t" in self.registry
        assert self.registry.get("t") is definition
        assert self.registry.get("missing") is None
        assert self.registry.get_tools() == [definition]

    def test_register_tool_class(self):
        class NamedTool(BaseTool):
            TOOL_NAME = "named"
            TOOL_DESCRIPTION = "A named tool"

            async def run(self):
                return "ran"

        try:
            definition = self.registry.register(NamedTool)
            assert definition.name == "named"
            assert len(self.registry) == 1
        finally:
            tool_registry.pop("named", None)

    def test_later_registration_replaces(self):
        first = ToolDefinition(name="t", description="first", function=lambda a: 1)
        second = ToolDefinition(name="t", description="second", function=lambda a: 2)
        self.registry.register(first)
        self.registry.register(second)

        assert len(self.registry) == 1
        assert self.registry.get("t").description == "second"

    def test_unregister(self):
        self.registry.register(ToolDefinition(name="t", description="", function=lambda a: a))
        assert self.registry.unregister("t")
        assert not self.registry.unregister("t")

    def test_register_rejects_other_objects(self):
        with pytest.raises(TypeError):
            self.registry.register(object())
