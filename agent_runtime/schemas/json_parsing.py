# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
"""
Tolerant parsing of model-produced JSON: tool call arguments, structured
responses, and `<tool_call>` payloads.
"""

import json
import logging

from typing import Any
from json_repair import repair_json

logger = logging.getLogger(__name__)


def parse_json_value(json_str: str) -> tuple[Any, str | None]:
    """Parse a (possibly malformed) JSON string.

    A strict `json.loads` is attempted first; on failure the string is handed
    to json_repair, which also closes truncated objects and strings.

    Returns:
        The parsed value (None when nothing could be recovered) and a warning
        describing the repair, if one was needed.
    """
    try:
        return json.loads(json_str), None
    except (json.JSONDecodeError, TypeError):
        pass

    try:
        repaired = repair_json(json_str, return_objects=True)
    except Exception as e:
        return None, f"Could not repair JSON: {e}"

    # json_repair signals "nothing recoverable" with an empty string
    if repaired == "" and json_str.strip() not in ('""', "''"):
        return None, "Could not recover any JSON value"
    return repaired, "JSON was malformed and had to be repaired"


def parse_json_object(json_str: str | None) -> tuple[dict | None, str | None]:
    """Parse a JSON object, such as the arguments string of a tool call.

    An empty or missing string is an empty argument object.
    """
    if json_str is None or not json_str.strip():
        return {}, None

    value, warning = parse_json_value(json_str)
    if value is None:
        return None, warning
    if not isinstance(value, dict):
        return None, f"Expected a JSON object, got {type(value).__name__}"
    if warning:
        logger.debug(f"Repaired JSON object: {warning}")
    return value, warning


def dumps_compact(obj: Any) -> str:
    return json.dumps(obj, ensure_ascii=False)
