# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
"""
Some parsing utilities.

This module provides utilities for locating tagged regions in streamed model
output, such as `<tool_call>...</tool_call>` blocks.
"""

import re


def extract_tagged_blocks(s: str, open_tag: str, close_tag: str) -> tuple[list[str], str]:
    """Pull every complete `open_tag ... close_tag` block out of a string.

    Returns:
        The stripped inner text of each block, in order, and the remaining
        text with the blocks removed and surrounding whitespace stripped.
    """
    pattern = re.compile(re.escape(open_tag) + r"(.*?)" + re.escape(close_tag), re.DOTALL)
    blocks = [m.group(1).strip() for m in pattern.finditer(s)]
    cleaned = pattern.sub("", s).strip()
    return blocks, cleaned


def has_complete_block(s: str, open_tag: str, close_tag: str) -> bool:
    start = s.find(open_tag)
    return start != -1 and s.find(close_tag, start + len(open_tag)) != -1


def partial_suffix_length(s: str, pattern: str) -> int:
    """Length of the longest proper prefix of `pattern` that the string ends with."""
    for i in range(len(pattern) - 1, 0, -1):
        if s.endswith(pattern[:i]):
            return i
    return 0


def open_block_start(s: str, open_tag: str, close_tag: str) -> int:
    """Index of the last `open_tag` if it has not been closed yet, else -1."""
    last_open = s.rfind(open_tag)
    if last_open == -1:
        return -1
    if s.find(close_tag, last_open + len(open_tag)) != -1:
        return -1
    return last_open


def visible_end(s: str, open_tag: str, close_tag: str) -> int:
    """Where the displayable text ends.

    Text from an unclosed `open_tag`, or from a partially typed tag at the
    very end, onwards is held back until it is known to be a block or not.
    """
    start = open_block_start(s, open_tag, close_tag)
    if start != -1:
        return start
    partial = max(partial_suffix_length(s, open_tag), partial_suffix_length(s, close_tag))
    return len(s) - partial
