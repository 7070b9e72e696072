# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
"""
Conversion of raw tool outputs into chat content parts.

Tools may return plain strings, dicts, lists, or objects carrying base64
image payloads (screenshots in particular). These are turned into text parts
and `image_url` parts so that engines can place them in the conversation.
"""

import re
import json
import logging

from typing import Any, Optional

from ..types.llm_types import ContentPart
from ..types.tool_types import ToolCallResult, MultimodalToolCallResult

logger = logging.getLogger(__name__)

IMAGE_PART_TYPES = ("image_url", "image")

_BASE64_RE = re.compile(r"^[A-Za-z0-9+/=]+$")
_MAGIC_PREFIXES = (
    ("iVBOR", "image/png"),
    ("/9j/", "image/jpeg"),
    ("R0lGOD", "image/gif"),
    ("UklGR", "image/webp"),
)
_TYPE_HINTS = (
    ("png", "image/png"),
    ("jpg", "image/jpeg"),
    ("jpeg", "image/jpeg"),
    ("gif", "image/gif"),
    ("webp", "image/webp"),
)
_IMAGE_KEYS = ("data", "type", "mimeType")


def is_image_part(part: Any) -> bool:
    return isinstance(part, dict) and part.get("type") in IMAGE_PART_TYPES


def text_part(text: str) -> ContentPart:
    return {"type": "text", "text": text}


def extract_image_data(obj: dict) -> Optional[tuple[str, str]]:
    """Find a base64 image payload in a tool output object.

    Returns:
        (data, mime_type) or None when the object carries no image
    """
    data = obj.get("data")
    if not isinstance(data, str) or not data:
        return None

    obj_type = obj.get("type")
    if isinstance(obj_type, str) and ("screenshot" in obj_type or "image" in obj_type):
        mime_type = obj.get("mimeType")
        if isinstance(mime_type, str) and mime_type:
            return data, mime_type
        for hint, hinted_mime in _TYPE_HINTS:
            if hint in obj_type:
                return data, hinted_mime
        return data, "image/png"

    stripped = data.strip()
    if _BASE64_RE.match(stripped):
        for prefix, mime_type in _MAGIC_PREFIXES:
            if stripped.startswith(prefix):
                return stripped, mime_type
        return stripped, "image/png"

    return None


def _image_url_part(data: str, mime_type: str) -> ContentPart:
    logger.debug(f"Converting image data ({mime_type}, {len(data)} chars) to image_url")
    return {"type": "image_url", "image_url": {"url": f"data:{mime_type};base64,{data}"}}


def _without_image_keys(obj: dict) -> dict:
    return {k: v for k, v in obj.items() if k not in _IMAGE_KEYS}


def _to_json_text(value: Any) -> str:
    return json.dumps(value, indent=2, ensure_ascii=False, default=str)


def convert_to_multimodal_tool_call_result(
    result: ToolCallResult,
) -> MultimodalToolCallResult:
    """Turn a raw tool result into a list of content parts.

    Strings become a single text part. Dicts and lists have any embedded
    images lifted out into `image_url` parts, with the remaining data kept as
    indented JSON text. Anything else is stringified.
    """
    content = result.content
    parts: list[ContentPart] = []

    try:
        if isinstance(content, str):
            parts.append(text_part(content))
        elif isinstance(content, list):
            remaining = []
            for item in content:
                image = extract_image_data(item) if isinstance(item, dict) else None
                if image is None:
                    remaining.append(item)
                    continue
                parts.append(_image_url_part(*image))
                rest = _without_image_keys(item)
                if rest:
                    remaining.append(rest)
            if remaining or not parts:
                parts.append(text_part(_to_json_text(remaining if parts else content)))
        elif isinstance(content, dict):
            image = extract_image_data(content)
            if image is None:
                parts.append(text_part(_to_json_text(content)))
            else:
                parts.append(_image_url_part(*image))
                rest = _without_image_keys(content)
                if rest:
                    parts.append(text_part(_to_json_text(rest)))
        elif content is None:
            parts.append(text_part(""))
        else:
            parts.append(text_part(str(content)))
    except Exception as e:
        logger.error(f"Error converting tool result to multimodal content: {e}")
        parts = [text_part(f"Error processing content: {e}")]

    return MultimodalToolCallResult(
        tool_call_id=result.tool_call_id,
        tool_name=result.tool_name,
        content=parts,
    )


def join_text_parts(parts: list[ContentPart]) -> str:
    return "".join(p.get("text", "") for p in parts if p.get("type") == "text")


def non_text_parts(parts: list[ContentPart]) -> list[ContentPart]:
    return [p for p in parts if p.get("type") != "text"]
