"""Google Gemini API adaptor for react-loop."""

import json
import os
from typing import Any, Optional

from google import genai
from google.genai import types

from react_loop.execution import Message, ToolRequest
from react_loop.model import ChunkSink, ModelAdaptor, ModelResponse
from react_loop.steps import generate_id
from react_loop.tools import ToolDescriptor

# Function declarations accept only this subset of OpenAPI 3.0
_SCHEMA_KEYS = frozenset({
    "type", "description", "enum", "items", "properties", "required", "nullable",
})


def gemini_schema(schema: Any) -> Any:
    """Reduce a pydantic JSON schema to what Gemini function declarations accept.

    Drops ``title``, ``default``, ``additionalProperties``, ``$defs`` and
    the like. ``anyOf`` of one type plus ``null`` (pydantic's Optional)
    becomes that type with ``nullable: true``; wider unions are dropped.
    """
    if isinstance(schema, list):
        return [gemini_schema(item) for item in schema]
    if not isinstance(schema, dict):
        return schema

    cleaned = {}
    variants = schema.get("anyOf") or []
    concrete = [v for v in variants if v.get("type") != "null"]
    if len(concrete) == 1:
        cleaned.update(gemini_schema(concrete[0]))
        if len(concrete) < len(variants):
            cleaned["nullable"] = True

    for key in _SCHEMA_KEYS.intersection(schema):
        value = schema[key]
        if key == "properties":
            # property names are user-defined; never filter them
            cleaned[key] = {name: gemini_schema(prop) for name, prop in value.items()}
        else:
            cleaned[key] = gemini_schema(value)
    return cleaned


class GeminiAdaptor(ModelAdaptor):
    """Google Gemini model adaptor using the official google-genai SDK.

    Args:
        api_key: Google AI API key. Falls back to GOOGLE_API_KEY environment variable.
        model: Model name (default: gemini-2.5-flash).
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: str = "gemini-2.5-flash",
    ):
        self.api_key = api_key or os.environ.get("GOOGLE_API_KEY")
        if not self.api_key:
            raise ValueError(
                "Google API key not provided. "
                "Pass api_key argument or set GOOGLE_API_KEY environment variable."
            )

        self.model = model
        self.client = genai.Client(api_key=self.api_key)

    async def call(
        self,
        messages: list[Message],
        tools: list[ToolDescriptor],
        on_chunk: Optional[ChunkSink] = None,
        **kwargs,
    ) -> ModelResponse:
        system, contents = self._convert_messages(messages)
        gemini_tools = [self._convert_tools(tools)] if tools else []

        config = types.GenerateContentConfig(
            system_instruction=system or None,
            tools=gemini_tools or None,
            automatic_function_calling=types.AutomaticFunctionCallingConfig(
                disable=True,
            ),
        )

        request = {"model": self.model, "contents": contents, "config": config}
        if on_chunk is None:
            response = await self.client.aio.models.generate_content(**request)
            return self._parse_response(response.text, response.function_calls)

        text_parts = []
        function_calls = []
        async for chunk in await self.client.aio.models.generate_content_stream(**request):
            if chunk.text:
                text_parts.append(chunk.text)
                await on_chunk(chunk.text)
            function_calls.extend(chunk.function_calls or [])
        return self._parse_response("".join(text_parts), function_calls)

    def _convert_messages(self, messages: list[Message]) -> tuple[str, list]:
        system_parts = []
        contents = []
        previous_role = None
        for msg in messages:
            if msg.role == "system":
                system_parts.append(msg.content)
            elif msg.role == "user":
                contents.append(types.Content(
                    role="user",
                    parts=[types.Part(text=msg.content)],
                ))
            elif msg.role == "assistant":
                parts = []
                if msg.content:
                    parts.append(types.Part(text=msg.content))
                for request in msg.tool_requests or []:
                    parts.append(types.Part(
                        function_call=types.FunctionCall(
                            name=request.tool_name,
                            args=request.arguments,
                        ),
                    ))
                contents.append(types.Content(role="model", parts=parts))
            elif msg.role == "tool":
                part = types.Part(
                    function_response=types.FunctionResponse(
                        name=msg.name or self._find_tool_name(messages, msg.tool_call_id),
                        response={"result": msg.content},
                    ),
                )
                # consecutive results share one user turn
                if previous_role == "tool":
                    contents[-1].parts.append(part)
                else:
                    contents.append(types.Content(role="user", parts=[part]))
            previous_role = msg.role
        return "\n\n".join(system_parts), contents

    def _find_tool_name(self, messages: list[Message], tool_call_id: Optional[str]) -> str:
        for msg in messages:
            for request in msg.tool_requests or []:
                if request.id == tool_call_id:
                    return request.tool_name
        return "unknown"

    def _convert_tools(self, tools: list[ToolDescriptor]):
        declarations = []
        for tool in tools:
            declarations.append(types.FunctionDeclaration(
                name=tool.name,
                description=tool.description,
                parameters=gemini_schema(tool.parameters),
            ))
        return types.Tool(function_declarations=declarations)

    def _parse_response(self, text: Optional[str], function_calls) -> ModelResponse:
        tool_requests = [
            ToolRequest(
                id=getattr(fc, "id", None) or generate_id(),
                tool_name=fc.name,
                raw_arguments=json.dumps(dict(fc.args) if fc.args else {}),
            )
            for fc in function_calls or []
        ]
        return ModelResponse(content=text or "", tool_requests=tool_requests)
