# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
"""Tool call engine for models without a native tool channel.

Tools are described in the system prompt, and the model requests a call by
writing a JSON object inside `<tool_call>` tags. The tags are filtered out of
the streamed text as they are produced.
"""

from typing import Any, List, Optional, Sequence

from ...schemas import dumps_compact, parse_json_value
from ...types.llm_types import (
    AgentSingleLoopResponse,
    ChatMessage,
    ChatToolCall,
    FinishReason,
    FunctionCall,
    ParsedModelResponse,
    StreamChunkResult,
    StreamProcessingState,
)
from ...types.tool_types import MultimodalToolCallResult, ToolDefinition
from ...utils.parsing import extract_tagged_blocks, has_complete_block, visible_end
from .base import ToolCallEngine, generate_tool_call_id, get_field
from .utils import build_tool_call_result_messages

TOOL_CALL_OPEN = "<tool_call>"
TOOL_CALL_CLOSE = "</tool_call>"

TOOL_USE_INSTRUCTIONS = """To use a tool, your response MUST use the following format, you need to ensure that it is a valid JSON string:

<tool_call>
{
  "name": "tool_name",
  "parameters": {
    "param1": "value1",
    "param2": "value2"
  }
}
</tool_call>

If you want to provide a final answer without using tools, respond in a conversational manner WITHOUT using the tool_call format.

When you receive tool results, they will be provided in a user message. Use these results to continue your reasoning or provide a final answer.
"""


def describe_tool(tool: ToolDefinition) -> str:
    schema = tool.json_schema
    properties = schema.get("properties") or {}
    required = set(schema.get("required") or [])

    params = []
    for name, prop in properties.items():
        flag = " (required)" if name in required else ""
        description = prop.get("description") or "No description"
        params.append(f"- {name}{flag}: {description} (type: {prop.get('type', 'any')})")

    return f"""## {tool.name}

Description: {tool.description}

Parameters:
{chr(10).join(params) if params else 'No parameters required'}"""


class PromptEngineeringToolCallEngine(ToolCallEngine):

    def prepare_prompt(self, instructions: str, tools: Sequence[ToolDefinition]) -> str:
        if not tools:
            return instructions

        self._logger.info(f"Preparing prompt with {len(tools)} tools")
        tools_description = "\n\n".join(describe_tool(t) for t in tools)
        return f"""{instructions}

You have access to the following tools:

{tools_description}

{TOOL_USE_INSTRUCTIONS}"""

    def prepare_request(
        self,
        model: str,
        messages: List[ChatMessage],
        tools: Optional[Sequence[ToolDefinition]] = None,
        temperature: float = 0.7,
    ) -> dict:
        # Tools are already described in the system prompt
        return {"model": model, "messages": messages, "temperature": temperature}

    def process_chunk(self, chunk: Any, state: StreamProcessingState) -> StreamChunkResult:
        delta, reasoning = self._read_delta(chunk, state)

        new_content = get_field(delta, "content") or ""
        if not new_content:
            return StreamChunkResult(reasoning_content=reasoning, tool_calls=list(state.tool_calls))

        state.content_buffer += new_content
        buffer = state.content_buffer

        # Only the part of the new text before any (partial) tag is shown
        new_start = len(buffer) - len(new_content)

        if has_complete_block(buffer, TOOL_CALL_OPEN, TOOL_CALL_CLOSE):
            block_start = buffer.find(TOOL_CALL_OPEN)
            tool_calls, cleaned = self._extract_tool_calls(buffer)
            state.content_buffer = cleaned
            if tool_calls:
                state.tool_calls = tool_calls
            return StreamChunkResult(
                content=new_content[: max(0, block_start - new_start)],
                reasoning_content=reasoning,
                has_tool_call_update=bool(tool_calls),
                tool_calls=list(state.tool_calls),
            )

        shown = visible_end(buffer, TOOL_CALL_OPEN, TOOL_CALL_CLOSE) - new_start
        content = new_content[: max(0, shown)]
        return StreamChunkResult(
            content=content, reasoning_content=reasoning, tool_calls=list(state.tool_calls)
        )

    def _extract_tool_calls(self, content: str) -> tuple[List[ChatToolCall], str]:
        blocks, cleaned = extract_tagged_blocks(content, TOOL_CALL_OPEN, TOOL_CALL_CLOSE)
        tool_calls = []
        for block in blocks:
            data, warning = parse_json_value(block)
            if not isinstance(data, dict) or not data.get("name"):
                self._logger.error(f"Failed to parse tool call: {warning or block}")
                continue
            parameters = data.get("parameters") or {}
            call = ChatToolCall(
                id=generate_tool_call_id(),
                function=FunctionCall(name=data["name"], arguments=dumps_compact(parameters)),
            )
            self._logger.debug(f"Found tool call: {call.function.name} with id {call.id}")
            tool_calls.append(call)
        return tool_calls, cleaned

    def finalize(self, state: StreamProcessingState) -> ParsedModelResponse:
        if has_complete_block(state.content_buffer, TOOL_CALL_OPEN, TOOL_CALL_CLOSE):
            tool_calls, cleaned = self._extract_tool_calls(state.content_buffer)
            state.content_buffer = cleaned
            if tool_calls:
                state.tool_calls = tool_calls

        finish_reason = (
            FinishReason.TOOL_CALLS.value
            if state.tool_calls
            else state.finish_reason or FinishReason.STOP.value
        )
        return ParsedModelResponse(
            content=state.content_buffer,
            reasoning_content=state.reasoning_buffer or None,
            tool_calls=list(state.tool_calls) or None,
            finish_reason=finish_reason,
        )

    def build_assistant_history_message(self, response: AgentSingleLoopResponse) -> ChatMessage:
        # No tool_calls field: the provider has no tool channel
        return {"role": "assistant", "content": response.content}

    def build_tool_result_history_messages(
        self, results: List[MultimodalToolCallResult]
    ) -> List[ChatMessage]:
        return build_tool_call_result_messages(results, native=False)
