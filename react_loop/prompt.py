"""System prompt and initial history for a run."""

import json
import time
from typing import Iterable, Optional

from react_loop.execution import Message
from react_loop.tools import ToolDescriptor

REACT_SYSTEM_PROMPT = """You are a helpful assistant that can use tools to complete the user's task.

## How you work
You follow the ReAct (Reasoning and Acting) pattern:
1. **Thought**: analyse the request and decide what to do next
2. **Action**: call a suitable tool if you need one
3. **Observation**: read what the tool returned
4. **Repeat** until you can give the final answer

## Rules
- Call one tool at a time
- Read tool results carefully
- If a tool call fails, try a different approach
- When you have enough information, answer the user directly without calling any tool
- If the task cannot be done, say so honestly

## Answer format
- To call a tool, use the tool_calls format
- To give the final answer, reply with plain text and no tool calls
"""


def build_system_prompt(tools: Iterable[ToolDescriptor], base: str = REACT_SYSTEM_PROMPT) -> str:
    tools = list(tools)
    if not tools:
        return base

    sections = [base, "\n\n## Available tools\n"]
    for tool in tools:
        sections.append(f"\n### {tool.name}\n")
        sections.append(f"{tool.description}\n")
        sections.append(
            f"Parameters: {json.dumps(tool.parameters, indent=2, ensure_ascii=False)}\n"
        )
    return "".join(sections)


def strip_tool_messages(messages: Iterable[Message]) -> list[Message]:
    """Drop tool-role messages (and the tool requests that point at them).

    Their ``tool_call_id`` belongs to a previous run, so they cannot be
    carried into a new one.
    """
    stripped = []
    for msg in messages:
        if msg.role == "tool":
            continue
        if msg.tool_requests:
            msg = Message(
                role=msg.role,
                content=msg.content,
                timestamp=msg.timestamp,
                name=msg.name,
            )
        stripped.append(msg)
    return stripped


def initial_messages(
    user_input: str,
    prior: Optional[Iterable[Message]],
    tools: Iterable[ToolDescriptor],
) -> list[Message]:
    """system prompt, then prior history, then the new user turn."""
    history = [Message(role="system", content=build_system_prompt(tools))]
    if prior:
        history.extend(prior)
    history.append(Message(role="user", content=user_input, timestamp=time.time()))
    return history
