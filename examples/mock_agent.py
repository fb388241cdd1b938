#!/usr/bin/env python3
"""Offline react-loop example with scripted model responses.

Shows the full thinking -> acting -> observing cycle, every lifecycle
event, and the final result without calling any API.

Run:
    python examples/mock_agent.py
"""

import asyncio
import logging
import os
import sys

# Ensure the examples directory is importable when run from the project root
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from react_loop import Agent, ModelAdaptor, ModelResponse, Observer, ToolRequest
from tools import CalculatorTool, WebSearchTool


class ScriptedModel(ModelAdaptor):
    """Replays a fixed conversation and streams the final answer word by word."""

    def __init__(self):
        self.call_count = 0
        self.responses = [
            ModelResponse(
                content="I need the sum and the weather; both lookups are independent.",
                tool_requests=[
                    ToolRequest(
                        id="call-001",
                        tool_name="calculator",
                        raw_arguments='{"expression": "25 + 17"}',
                    ),
                    ToolRequest(
                        id="call-002",
                        tool_name="web_search",
                        raw_arguments='{"query": "weather in Lisbon"}',
                    ),
                ],
            ),
            ModelResponse(
                content="Let me double-check with a second calculation.",
                tool_requests=[
                    ToolRequest(
                        id="call-003",
                        tool_name="calculator",
                        raw_arguments='{"expression": "42 * 2"}',
                    ),
                ],
            ),
        ]
        self.final_answer = (
            "25 + 17 = 42, twice that is 84, and Lisbon is sunny at 24°C."
        )

    async def call(self, messages, tools, on_chunk=None, **kwargs) -> ModelResponse:
        self.call_count += 1
        if self.call_count <= len(self.responses):
            return self.responses[self.call_count - 1]

        if on_chunk is None:
            return ModelResponse(content=self.final_answer)
        for word in self.final_answer.split(" "):
            await on_chunk(word + " ")
            await asyncio.sleep(0.05)
        # streamed text becomes the answer when content is empty
        return ModelResponse(content="")


class ConsolePrinter(Observer):
    """Prints each lifecycle event as it happens."""

    async def on_phase_change(self, event):
        print(f"\n[{event.iteration}] {event.previous or 'start'} -> {event.phase}")

    async def on_thought(self, event):
        print(f"    thought: {event.thought}")

    async def on_action(self, event):
        print(f"    action:  {event.tool_name}({event.input})")

    async def on_observation(self, event):
        print(f"    result:  {event.observation[:80]}")

    async def on_chunk(self, event):
        print(event.chunk, end="", flush=True)

    async def on_error(self, event):
        print(f"    error:   {event.message}")


def print_result(result) -> None:
    print("\n" + "=" * 70)
    print(f"  success:    {result.success}")
    print(f"  iterations: {result.total_iterations}")
    print(f"  tokens:     ~{result.total_tokens}")
    print(f"  steps:      {len(result.steps)}")
    if result.success:
        print(f"  answer:     {result.final_answer}")
    else:
        print(f"  error:      {result.error}")
    print("=" * 70)

    for i, msg in enumerate(result.messages, 1):
        preview = msg.content.replace("\n", " ")[:60]
        print(f"  {i}. {msg.role:<9} {preview}")


async def main() -> int:
    logging.basicConfig(level=logging.WARNING)

    agent = Agent(
        model=ScriptedModel(),
        tools=[CalculatorTool(), WebSearchTool()],
        max_iterations=5,
        observers=[ConsolePrinter()],
        name="MockAgent",
    )
    result = await agent.run_async("What is 25 + 17, doubled? And how is the weather in Lisbon?")
    print_result(result)

    # The same run, consumed as an event stream
    print("\nEvent stream of a second run:")
    agent.model = ScriptedModel()
    agent.hooks.clear()
    async for event, _ in agent.events("Same question again"):
        print(f"  {event.value}")

    return 0 if result.success else 1


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
