# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
"""
Tests for the parsing utilities module.
"""
import pytest
from agent_runtime.utils.parsing import (
    extract_tagged_blocks,
    has_complete_block,
    open_block_start,
    partial_suffix_length,
    visible_end,
)

OPEN, CLOSE = "<tool_call>", "</tool_call>"


# Test extract_tagged_blocks
@pytest.mark.parametrize(
    "text, expected_blocks, expected_cleaned",
    [
        ("before <tool_call> a </tool_call> after", ["a"], "before  after"),
        ("<tool_call>a</tool_call><tool_call>\nb\n</tool_call>", ["a", "b"], ""),
        ("no blocks here", [], "no blocks here"),
        ("<tool_call>unclosed", [], "<tool_call>unclosed"),
        ("<tool_call>line1\nline2</tool_call>", ["line1\nline2"], ""),
    ],
    ids=["single", "multiple", "none", "unclosed", "multiline"],
)
def test_extract_tagged_blocks(text, expected_blocks, expected_cleaned):
    blocks, cleaned = extract_tagged_blocks(text, OPEN, CLOSE)
    assert blocks == expected_blocks
    assert cleaned == expected_cleaned


# Test has_complete_block
@pytest.mark.parametrize(
    "text, expected",
    [
        ("<tool_call>{}</tool_call>", True),
        ("<tool_call>{}", False),
        ("</tool_call><tool_call>", False),
        ("", False),
    ],
    ids=["complete", "open_only", "wrong_order", "empty"],
)
def test_has_complete_block(text, expected):
    assert has_complete_block(text, OPEN, CLOSE) is expected


# Test partial_suffix_length
@pytest.mark.parametrize(
    "text, expected",
    [
        ("hello <", 1),
        ("hello <tool_c", 7),
        ("hello <tool_call>", 0),  # The full tag is not partial
        ("hello", 0),
        ("", 0),
    ],
    ids=["bracket", "prefix", "full_tag", "none", "empty"],
)
def test_partial_suffix_length(text, expected):
    assert partial_suffix_length(text, OPEN) == expected


# Test open_block_start
@pytest.mark.parametrize(
    "text, expected",
    [
        ("abc <tool_call>{", 4),
        ("<tool_call>{}</tool_call>", -1),
        ("<tool_call>{}</tool_call> x <tool_call>", 28),
        ("plain", -1),
    ],
    ids=["open", "closed", "reopened", "plain"],
)
def test_open_block_start(text, expected):
    assert open_block_start(text, OPEN, CLOSE) == expected


# Test visible_end
@pytest.mark.parametrize(
    "text, expected",
    [
        ("Let me search. <", 15),
        ("Let me search. <tool_call>{\"name\"", 15),
        ("Let me search.", 14),
        ("done </tool", 5),
    ],
    ids=["partial_open", "open_block", "plain", "partial_close"],
)
def test_visible_end(text, expected):
    assert visible_end(text, OPEN, CLOSE) == expected
