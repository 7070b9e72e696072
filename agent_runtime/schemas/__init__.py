# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
from .json_schema import to_json_schema, is_pydantic_schema
from .json_parsing import parse_json_value, parse_json_object, dumps_compact
