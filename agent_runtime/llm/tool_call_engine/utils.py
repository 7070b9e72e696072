# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
"""Shared conversion of tool results into history messages."""

import logging

from typing import List

from ...types.llm_types import ChatMessage
from ...types.tool_types import MultimodalToolCallResult
from ...utils.multimodal import join_text_parts, non_text_parts, text_part

logger = logging.getLogger(__name__)


def build_tool_call_result_messages(
    results: List[MultimodalToolCallResult], native: bool = False
) -> List[ChatMessage]:
    """Build chat messages from tool call results.

    Native engines put the text into a `tool` role message, since that slot is
    text only, and any other parts (images) into a following user message.
    Engines without a tool channel get one user message per result, labelled
    with the tool name, holding the text and any other parts together.
    """
    messages: List[ChatMessage] = []
    if not results:
        return messages

    logger.debug(f"Building {len(results)} tool call result messages")
    for result in results:
        text = join_text_parts(result.content)
        extra_parts = non_text_parts(result.content)

        if native:
            messages.append(
                {"role": "tool", "tool_call_id": result.tool_call_id, "content": text}
            )
            if extra_parts:
                messages.append({"role": "user", "content": extra_parts})
            continue

        labelled = f"Tool: {result.tool_name}\nResult:\n{text}"
        if extra_parts:
            messages.append({"role": "user", "content": [text_part(labelled), *extra_parts]})
        else:
            messages.append({"role": "user", "content": labelled})

    return messages
