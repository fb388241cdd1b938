"""OpenAI API adaptor for react-loop."""

import json
import os
from typing import Optional

import httpx

from react_loop.execution import Message, ToolRequest
from react_loop.model import ChunkSink, ModelAdaptor, ModelResponse
from react_loop.steps import generate_id
from react_loop.tools import ToolDescriptor


class OpenAIAdaptor(ModelAdaptor):
    """OpenAI-compatible model adaptor.

    Supports OpenAI API and compatible endpoints (local models, proxies, etc.).
    Streams over server-sent events when the agent passes a chunk sink.

    Args:
        api_key: OpenAI API key. Falls back to OPENAI_API_KEY environment variable.
        model: Model name (default: gpt-4o-mini).
        base_url: Base URL for the API (default: https://api.openai.com/v1).
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: str = "gpt-4o-mini",
        base_url: Optional[str] = None,
    ):
        self.api_key = api_key or os.environ.get("OPENAI_API_KEY")
        if not self.api_key:
            raise ValueError(
                "OpenAI API key not provided. "
                "Pass api_key argument or set OPENAI_API_KEY environment variable."
            )

        self.model = model
        self.base_url = base_url or "https://api.openai.com/v1"

    async def call(
        self,
        messages: list[Message],
        tools: list[ToolDescriptor],
        on_chunk: Optional[ChunkSink] = None,
        **kwargs,
    ) -> ModelResponse:
        """Call the OpenAI chat-completions API.

        Args:
            messages: Conversation history.
            tools: Tools the model may request.
            on_chunk: Awaited with each content delta; enables streaming.
            **kwargs: ``timeout``, ``tool_choice`` and ``temperature``.

        Returns:
            ModelResponse with content and every requested tool call.

        Raises:
            ValueError: If API response is malformed or unexpected.
            httpx.HTTPError: If the API request fails.
        """
        payload = self._build_payload(messages, tools, **kwargs)
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }
        url = f"{self.base_url}/chat/completions"
        timeout = kwargs.get("timeout", 60.0)

        async with httpx.AsyncClient() as client:
            if on_chunk is None:
                response = await client.post(
                    url, json=payload, headers=headers, timeout=timeout
                )
                if response.status_code != 200:
                    raise ValueError(f"OpenAI API error: {self._error_message(response)}")
                return self._parse_response(response.json())

            payload["stream"] = True
            async with client.stream(
                "POST", url, json=payload, headers=headers, timeout=timeout
            ) as response:
                if response.status_code != 200:
                    await response.aread()
                    raise ValueError(f"OpenAI API error: {self._error_message(response)}")
                return await self._read_stream(response, on_chunk)

    def _build_payload(self, messages: list[Message], tools: list[ToolDescriptor], **kwargs) -> dict:
        payload = {
            "model": self.model,
            "messages": self._convert_messages(messages),
        }
        if tools:
            payload["tools"] = [self._convert_tool(tool) for tool in tools]
            payload["tool_choice"] = kwargs.get("tool_choice", "auto")
        if "temperature" in kwargs:
            payload["temperature"] = kwargs["temperature"]
        return payload

    def _error_message(self, response: httpx.Response) -> str:
        try:
            return response.json().get("error", {}).get("message", "Unknown error")
        except ValueError:
            return response.text or f"HTTP {response.status_code}"

    def _convert_messages(self, messages: list[Message]) -> list[dict]:
        """Convert react-loop Message objects to OpenAI format."""
        openai_messages = []
        for msg in messages:
            openai_msg = {"role": msg.role, "content": msg.content}

            # Handle tool messages - include tool_call_id and name
            if msg.role == "tool":
                openai_msg["tool_call_id"] = msg.tool_call_id or ""
                openai_msg["name"] = msg.name or ""

            # Handle assistant messages with tool requests
            if msg.role == "assistant" and msg.tool_requests:
                openai_msg["tool_calls"] = self._format_tool_calls(msg.tool_requests)

            openai_messages.append(openai_msg)
        return openai_messages

    def _format_tool_calls(self, tool_requests: list[ToolRequest]) -> list[dict]:
        return [
            {
                "id": request.id,
                "type": "function",
                "function": {
                    "name": request.tool_name,
                    "arguments": request.raw_arguments,
                },
            }
            for request in tool_requests
        ]

    def _convert_tool(self, tool: ToolDescriptor) -> dict:
        return {
            "type": "function",
            "function": {
                "name": tool.name,
                "description": tool.description,
                "parameters": tool.parameters,
            },
        }

    def _parse_response(self, data: dict) -> ModelResponse:
        """Parse a non-streamed OpenAI API response into ModelResponse.

        Raises:
            ValueError: If response format is unexpected.
        """
        if not data.get("choices"):
            raise ValueError("OpenAI response missing 'choices' field")

        message = data["choices"][0].get("message", {})
        content = message.get("content") or ""
        tool_requests = [
            ToolRequest(
                id=tc["id"],
                tool_name=tc["function"]["name"],
                # kept as text; the agent decides what malformed JSON means
                raw_arguments=tc["function"].get("arguments") or "{}",
            )
            for tc in message.get("tool_calls") or []
        ]
        return ModelResponse(content=content, tool_requests=tool_requests)

    async def _read_stream(self, response: httpx.Response, on_chunk: ChunkSink) -> ModelResponse:
        content_parts: list[str] = []
        partial_calls: dict[int, dict] = {}

        async for line in response.aiter_lines():
            if not line.startswith("data:"):
                continue
            data = line[len("data:"):].strip()
            if data == "[DONE]":
                break
            event = json.loads(data)
            if not event.get("choices"):
                continue
            delta = event["choices"][0].get("delta", {})

            text = delta.get("content")
            if text:
                content_parts.append(text)
                await on_chunk(text)

            for tc in delta.get("tool_calls") or []:
                partial = partial_calls.setdefault(
                    tc.get("index", 0), {"id": "", "name": "", "arguments": ""}
                )
                if tc.get("id"):
                    partial["id"] = tc["id"]
                function = tc.get("function") or {}
                if function.get("name"):
                    partial["name"] += function["name"]
                if function.get("arguments"):
                    partial["arguments"] += function["arguments"]

        tool_requests = [
            ToolRequest(
                id=partial["id"] or generate_id(),
                tool_name=partial["name"],
                raw_arguments=partial["arguments"] or "{}",
            )
            for _, partial in sorted(partial_calls.items())
        ]
        return ModelResponse(content="".join(content_parts), tool_requests=tool_requests)
