# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
"""Normalisation of tool schemas to plain JSON Schema dicts."""

import copy

from typing import Any, Type
from pydantic import BaseModel

EMPTY_OBJECT_SCHEMA = {"type": "object", "properties": {}}


def is_pydantic_schema(schema: Any) -> bool:
    return isinstance(schema, type) and issubclass(schema, BaseModel)


def to_json_schema(schema: Type[BaseModel] | dict | None) -> dict:
    """Convert either a pydantic model class or a JSON Schema dict into a
    standalone JSON Schema dict.

    Args:
        schema: The schema as given when the tool was declared

    Returns:
        A JSON Schema object describing the tool arguments
    """
    if schema is None:
        return copy.deepcopy(EMPTY_OBJECT_SCHEMA)
    if is_pydantic_schema(schema):
        return schema.model_json_schema()
    if isinstance(schema, dict):
        return copy.deepcopy(schema)
    raise TypeError(
        f"Tool schema must be a pydantic model class or a JSON Schema dict, got {type(schema)}"
    )
