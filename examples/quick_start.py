"""Minimal react-loop example with streaming and hooks. Requires OPENAI_API_KEY."""

import logging
import os

from pydantic import Field

from react_loop import Agent, OpenAIAdaptor, ShortTermMemory, Tool, ToolInput


class CityInput(ToolInput):
    city: str = Field(description="City name")


class GetPopulation(Tool):
    name = "get_population"
    description = "Returns the approximate population of a city"
    input_model = CityInput

    async def execute(self, city: str) -> str:
        populations = {"tokyo": "14M", "paris": "2.1M", "new york": "8.3M"}
        return populations.get(city.lower(), "unknown")


model = OpenAIAdaptor(api_key=os.environ["OPENAI_API_KEY"], model="gpt-4o-mini")

agent = Agent(
    model=model,
    tools=[GetPopulation()],
    compactor=ShortTermMemory(max_tokens=4000, summarizer=model),
    max_iterations=6,
)


@agent.hook("on_chunk")
def stream(event):
    print(event.chunk, end="", flush=True)


@agent.hook("on_action")
async def on_action(event):
    print(f"\n[hook] {event.tool_name}({event.input})")


@agent.hook("on_observation")
async def on_observation(event):
    print(f"[hook] -> {event.observation}")


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    result = agent.run("What's the population of Tokyo and Paris?")
    print()
    print(result.final_answer if result.success else f"Failed: {result.error}")
