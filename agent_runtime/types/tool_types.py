# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
import inspect

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Type, Union
from pydantic import BaseModel

from ..schemas import to_json_schema, is_pydantic_schema
from .event_types import ToolMeta
from .llm_types import ContentPart


@dataclass(frozen=True)
class ToolDefinition:
    """A tool the agent may call.

    The schema may be given either as a pydantic model class or as a JSON
    Schema dict; either way it is normalised to `json_schema` on construction
    and only converted to a provider format when a request is prepared.
    """

    name: str
    description: str
    function: Callable[[Dict[str, Any]], Any]
    schema: Union[Type[BaseModel], Dict[str, Any], None] = None
    json_schema: Dict[str, Any] = field(init=False, repr=False, compare=False)

    def __post_init__(self):
        if not self.name:
            raise ValueError("Tool name must not be empty")
        object.__setattr__(self, "json_schema", to_json_schema(self.schema))

    def has_json_schema(self) -> bool:
        """True when the tool was declared with a raw JSON Schema."""
        return not is_pydantic_schema(self.schema)

    def to_meta(self) -> ToolMeta:
        return ToolMeta(
            name=self.name, description=self.description, input_schema=self.json_schema
        )

    async def execute(self, args: Dict[str, Any]) -> Any:
        """Run the tool. Pydantic schemas validate (and default) the arguments first."""
        if is_pydantic_schema(self.schema):
            args = self.schema.model_validate(args).model_dump()
        result = self.function(args)
        if inspect.isawaitable(result):
            result = await result
        return result


class ToolCallResult(BaseModel):
    """The outcome of one tool call, as fed back to the model."""

    tool_call_id: str
    tool_name: str
    content: Any = None


class MultimodalToolCallResult(BaseModel):
    tool_call_id: str
    tool_name: str
    content: List[ContentPart]

