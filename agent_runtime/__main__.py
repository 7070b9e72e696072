# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
"""
Main entrypoint when running the runtime with `python -m agent_runtime`.
"""

import sys
import logging
import asyncio
import argparse

from .agent import Agent, AgentOptions
from .config import RuntimeConfig
from .errors import AgentRuntimeError
from .events.event_stream_utils import log_to_stdout, print_streaming_content
from .types.agent_types import RunOptions, ToolCallEngineType
from .types.event_types import EventType

logging.captureWarnings(True)
logger = logging.getLogger(__name__)


def setup_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="agent_runtime", description="Run an agent on a single request"
    )
    parser.add_argument("prompt", type=str, help="The request to send to the agent")
    parser.add_argument("--model", type=str, default=None, help="Model to use for this run")
    parser.add_argument(
        "--provider", type=str, default=None, help="Provider serving the model (e.g. openai, ollama)"
    )
    parser.add_argument(
        "--engine",
        type=str,
        choices=[t.value for t in ToolCallEngineType],
        default=None,
        help="How tool calls are exchanged with the model",
    )
    parser.add_argument(
        "--stream", action="store_true", help="Print the answer as it is generated"
    )
    parser.add_argument(
        "--max-iterations", type=int, default=None, help="Maximum number of model turns"
    )
    parser.add_argument(
        "--instructions", type=str, default=None, help="System instructions for the agent"
    )
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")
    return parser


def build_agent(args: argparse.Namespace, settings: RuntimeConfig) -> Agent:
    options = AgentOptions(
        instructions=args.instructions or settings.DEFAULT_INSTRUCTIONS,
        model=settings.to_model_options(),
        max_iterations=args.max_iterations or settings.DEFAULT_MAX_ITERATIONS,
        temperature=settings.DEFAULT_TEMPERATURE,
        max_tokens=settings.DEFAULT_MAX_TOKENS,
        tool_call_engine=settings.DEFAULT_TOOL_CALL_ENGINE,
        max_images=settings.DEFAULT_MAX_IMAGES,
    )
    return Agent(options)


async def run(args: argparse.Namespace) -> int:
    settings = RuntimeConfig.from_env()
    agent = build_agent(args, settings)

    run_options = RunOptions(
        input=args.prompt,
        model=args.model,
        provider=args.provider,
        tool_call_engine=args.engine,
        stream=args.stream,
    )

    if not args.stream:
        agent.event_stream.subscribe(log_to_stdout)
        final_event = await agent.run(run_options)
        print(final_event.content)
        return 0

    status = 0
    async for event in await agent.run(run_options):
        if event.type == EventType.ASSISTANT_STREAMING_MESSAGE:
            print_streaming_content(event)
        elif event.type == EventType.ASSISTANT_MESSAGE:
            print()
        elif event.type != EventType.ASSISTANT_STREAMING_THINKING_MESSAGE:
            log_to_stdout(event)
        if event.type == EventType.AGENT_RUN_END and event.status == "error":
            status = 1
    return status


def main() -> int:
    parser = setup_parser()
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.debug else logging.WARNING,
        format="%(asctime)s - %(levelname)s - %(filename)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    try:
        return asyncio.run(run(args))
    except AgentRuntimeError as e:
        logger.error(f"Agent run failed: {e}")
        return 1
    except Exception as e:
        logger.error(f"Unexpected error: {e}")
        return 1
    except KeyboardInterrupt:
        return 130


if __name__ == "__main__":
    sys.exit(main())
