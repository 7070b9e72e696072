# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
"""
Shared fixtures: streamed chat completion chunks and a scripted chat client
standing in for an OpenAI-compatible provider.
"""
import pytest

from types import SimpleNamespace
from openai.types.chat import ChatCompletionChunk
from openai.types.chat.chat_completion_chunk import (
    Choice,
    ChoiceDelta,
    ChoiceDeltaToolCall,
    ChoiceDeltaToolCallFunction,
)


def build_chunk(content=None, tool_calls=None, finish_reason=None, reasoning=None):
    delta_fields = {"content": content}
    if tool_calls is not None:
        delta_fields["tool_calls"] = [
            ChoiceDeltaToolCall(
                index=tc.get("index", 0),
                id=tc.get("id"),
                type="function" if tc.get("id") else None,
                function=ChoiceDeltaToolCallFunction(
                    name=tc.get("name"), arguments=tc.get("arguments")
                ),
            )
            for tc in tool_calls
        ]
    if reasoning is not None:
        delta_fields["reasoning_content"] = reasoning

    return ChatCompletionChunk(
        id="chatcmpl-test",
        object="chat.completion.chunk",
        created=0,
        model="test-model",
        choices=[Choice(index=0, delta=ChoiceDelta(**delta_fields), finish_reason=finish_reason)],
    )


def text_response(text):
    """Chunks streaming `text` in two pieces, then a stop."""
    middle = len(text) // 2
    return [
        build_chunk(content=text[:middle]),
        build_chunk(content=text[middle:]),
        build_chunk(finish_reason="stop"),
    ]


def tool_call_response(call_id, name, arguments, content=None):
    """Chunks requesting one native tool call with split argument text."""
    middle = len(arguments) // 2
    chunks = [build_chunk(content=content)] if content else []
    chunks += [
        build_chunk(tool_calls=[{"index": 0, "id": call_id, "name": name, "arguments": arguments[:middle]}]),
        build_chunk(tool_calls=[{"index": 0, "arguments": arguments[middle:]}]),
        build_chunk(finish_reason="tool_calls"),
    ]
    return chunks


class ScriptedStream:
    """An async iterator over scripted chunks that records whether it was closed."""

    def __init__(self, chunks):
        self._chunks = iter(chunks)
        self.closed = False

    def __aiter__(self):
        return self

    async def __anext__(self):
        try:
            return next(self._chunks)
        except StopIteration:
            raise StopAsyncIteration

    async def close(self):
        self.closed = True


class ScriptedCompletions:
    """Answers each `create` call with the next scripted response.

    A response is a list of chunks, or an exception to raise.
    """

    def __init__(self, responses):
        self.responses = list(responses)
        self.requests = []
        self.streams = []

    async def create(self, **request):
        self.requests.append(request)
        if not self.responses:
            raise AssertionError("No scripted response left")
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        stream = ScriptedStream(response)
        self.streams.append(stream)
        return stream


@pytest.fixture
def chunk():
    return build_chunk


@pytest.fixture
def responses():
    return SimpleNamespace(text=text_response, tool_call=tool_call_response)


@pytest.fixture
def scripted_client():
    def factory(*scripted):
        completions = ScriptedCompletions(scripted)
        return SimpleNamespace(chat=SimpleNamespace(completions=completions))

    return factory
