"""Anthropic API adaptor for react-loop."""

import json
import os
from typing import Optional

from anthropic import AsyncAnthropic

from react_loop.execution import Message, ToolRequest
from react_loop.model import ChunkSink, ModelAdaptor, ModelResponse
from react_loop.tools import ToolDescriptor


class AnthropicAdaptor(ModelAdaptor):
    """Anthropic model adaptor using the official SDK.

    Args:
        api_key: Anthropic API key. Falls back to ANTHROPIC_API_KEY environment variable.
        model: Model name (default: claude-sonnet-4-5-20250929).
        max_tokens: Maximum tokens in the response (default: 1024).
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: str = "claude-sonnet-4-5-20250929",
        max_tokens: int = 1024,
    ):
        self.api_key = api_key or os.environ.get("ANTHROPIC_API_KEY")
        if not self.api_key:
            raise ValueError(
                "Anthropic API key not provided. "
                "Pass api_key argument or set ANTHROPIC_API_KEY environment variable."
            )

        self.model = model
        self.max_tokens = max_tokens
        self.client = AsyncAnthropic(api_key=self.api_key)

    async def call(
        self,
        messages: list[Message],
        tools: list[ToolDescriptor],
        on_chunk: Optional[ChunkSink] = None,
        **kwargs,
    ) -> ModelResponse:
        system, anthropic_messages = self._convert_messages(messages)
        anthropic_tools = [self._convert_tool(tool) for tool in tools] if tools else []

        create_kwargs = {
            "model": self.model,
            "max_tokens": kwargs.get("max_tokens", self.max_tokens),
            "messages": anthropic_messages,
        }
        if system:
            create_kwargs["system"] = system
        if anthropic_tools:
            create_kwargs["tools"] = anthropic_tools

        if on_chunk is None:
            response = await self.client.messages.create(**create_kwargs)
            return self._parse_response(response)

        async with self.client.messages.stream(**create_kwargs) as stream:
            async for text in stream.text_stream:
                await on_chunk(text)
            response = await stream.get_final_message()
        return self._parse_response(response)

    def _convert_messages(self, messages: list[Message]) -> tuple[str, list[dict]]:
        system_parts = []
        anthropic_messages = []
        for msg in messages:
            if msg.role == "system":
                system_parts.append(msg.content)
            elif msg.role == "user":
                anthropic_messages.append({"role": "user", "content": msg.content})
            elif msg.role == "assistant":
                content_blocks = []
                if msg.content:
                    content_blocks.append({"type": "text", "text": msg.content})
                for request in msg.tool_requests or []:
                    content_blocks.append({
                        "type": "tool_use",
                        "id": request.id,
                        "name": request.tool_name,
                        "input": request.arguments,
                    })
                anthropic_messages.append({
                    "role": "assistant",
                    "content": content_blocks or msg.content,
                })
            elif msg.role == "tool":
                result_block = {
                    "type": "tool_result",
                    "tool_use_id": msg.tool_call_id,
                    "content": msg.content,
                }
                # results of one assistant turn go back together in one user turn
                previous = anthropic_messages[-1] if anthropic_messages else None
                if (
                    previous is not None
                    and previous["role"] == "user"
                    and isinstance(previous["content"], list)
                    and previous["content"][-1]["type"] == "tool_result"
                ):
                    previous["content"].append(result_block)
                else:
                    anthropic_messages.append({"role": "user", "content": [result_block]})
        return "\n\n".join(system_parts), anthropic_messages

    def _convert_tool(self, tool: ToolDescriptor) -> dict:
        return {
            "name": tool.name,
            "description": tool.description,
            "input_schema": tool.parameters or {"type": "object", "properties": {}},
        }

    def _parse_response(self, response) -> ModelResponse:
        text = ""
        tool_requests = []
        for block in response.content:
            if block.type == "text" and not text:
                text = block.text
            elif block.type == "tool_use":
                tool_requests.append(
                    ToolRequest(
                        id=block.id,
                        tool_name=block.name,
                        raw_arguments=json.dumps(block.input),
                    )
                )
        return ModelResponse(content=text, tool_requests=tool_requests)
