"""Tests for OpenAI ModelAdaptor."""

import json
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest
from pydantic import BaseModel

from react_loop.adaptors.openai import OpenAIAdaptor
from react_loop.execution import Message, ToolRequest
from react_loop.tools import Tool


# --- Test Fixtures ---


class DummyToolInput(BaseModel):
    query: str


class DummyTool(Tool):
    name = "dummy"
    description = "A dummy tool for testing"
    input_model = DummyToolInput

    async def execute(self, query: str) -> str:
        return f"Result for {query}"


class AnotherToolInput(BaseModel):
    value: int


class AnotherTool(Tool):
    name = "another"
    description = "Another dummy tool"
    input_model = AnotherToolInput

    async def execute(self, value: int) -> str:
        return f"Value is {value}"


def completion(content="Hi there!", tool_calls=None):
    return {
        "choices": [
            {
                "message": {
                    "role": "assistant",
                    "content": content,
                    "tool_calls": tool_calls,
                }
            }
        ]
    }


def sse(*events):
    lines = [f"data: {json.dumps(event)}\n\n" for event in events]
    lines.append("data: [DONE]\n\n")
    return "".join(lines).encode()


def delta(**fields):
    return {"choices": [{"delta": fields}]}


def mock_transport_client(handler):
    """Patch target that builds real AsyncClients backed by a MockTransport."""
    real_client = httpx.AsyncClient
    return patch(
        "httpx.AsyncClient",
        side_effect=lambda *args, **kwargs: real_client(transport=httpx.MockTransport(handler)),
    )


# --- Tests for Initialization ---


class TestOpenAIAdaptorInit:
    def test_init_with_explicit_api_key(self):
        adaptor = OpenAIAdaptor(api_key="sk-test123", model="gpt-4")
        assert adaptor.api_key == "sk-test123"
        assert adaptor.model == "gpt-4"
        assert adaptor.base_url == "https://api.openai.com/v1"

    def test_init_with_env_var(self, monkeypatch):
        monkeypatch.setenv("OPENAI_API_KEY", "sk-env123")
        adaptor = OpenAIAdaptor()
        assert adaptor.api_key == "sk-env123"
        assert adaptor.model == "gpt-4o-mini"  # Default

    def test_init_custom_base_url(self):
        adaptor = OpenAIAdaptor(
            api_key="sk-test", base_url="http://localhost:8000/v1"
        )
        assert adaptor.base_url == "http://localhost:8000/v1"

    def test_init_missing_api_key(self, monkeypatch):
        monkeypatch.delenv("OPENAI_API_KEY", raising=False)
        with pytest.raises(ValueError, match="OpenAI API key not provided"):
            OpenAIAdaptor()

    def test_init_explicit_api_key_overrides_env(self, monkeypatch):
        monkeypatch.setenv("OPENAI_API_KEY", "sk-env")
        adaptor = OpenAIAdaptor(api_key="sk-explicit")
        assert adaptor.api_key == "sk-explicit"


# --- Tests for Message Conversion ---


class TestConvertMessages:
    def test_convert_multiple_messages(self):
        adaptor = OpenAIAdaptor(api_key="sk-test")
        messages = [
            Message(role="system", content="Be helpful"),
            Message(role="user", content="Hi"),
            Message(role="assistant", content="Hello there"),
        ]

        result = adaptor._convert_messages(messages)

        assert [m["role"] for m in result] == ["system", "user", "assistant"]
        assert result[1]["content"] == "Hi"
        assert "tool_calls" not in result[2]

    def test_convert_tool_message(self):
        adaptor = OpenAIAdaptor(api_key="sk-test")
        messages = [
            Message(role="tool", content="Tool result", tool_call_id="call_123", name="dummy")
        ]

        result = adaptor._convert_messages(messages)

        assert result[0]["role"] == "tool"
        assert result[0]["tool_call_id"] == "call_123"
        assert result[0]["name"] == "dummy"

    def test_convert_messages_with_tool_flow(self):
        """Test complete flow: assistant with tool requests -> tool messages."""
        adaptor = OpenAIAdaptor(api_key="sk-test")
        messages = [
            Message(role="user", content="Do something"),
            Message(
                role="assistant",
                content="Executing",
                tool_requests=[
                    ToolRequest(id="call_1", tool_name="dummy", raw_arguments='{"query": "a"}'),
                    ToolRequest(id="call_2", tool_name="another", raw_arguments='{"value": 42}'),
                ],
            ),
            Message(role="tool", content="first", tool_call_id="call_1", name="dummy"),
            Message(role="tool", content="second", tool_call_id="call_2", name="another"),
        ]

        result = adaptor._convert_messages(messages)

        calls = result[1]["tool_calls"]
        assert [c["id"] for c in calls] == ["call_1", "call_2"]
        assert calls[0]["type"] == "function"
        assert calls[1]["function"]["name"] == "another"
        assert json.loads(calls[1]["function"]["arguments"]) == {"value": 42}
        assert [m["tool_call_id"] for m in result[2:]] == ["call_1", "call_2"]


# --- Tests for Tool Conversion ---


class TestConvertTool:
    def test_convert_tool_basic(self):
        adaptor = OpenAIAdaptor(api_key="sk-test")

        result = adaptor._convert_tool(DummyTool().descriptor())

        assert result["type"] == "function"
        assert result["function"]["name"] == "dummy"
        assert result["function"]["description"] == "A dummy tool for testing"
        assert "query" in result["function"]["parameters"]["properties"]


# --- Tests for Response Parsing ---


class TestParseResponse:
    def test_parse_final_response(self):
        adaptor = OpenAIAdaptor(api_key="sk-test")

        result = adaptor._parse_response(completion("This is the final answer."))

        assert result.type == "final_response"
        assert result.content == "This is the final answer."
        assert result.tool_requests == []

    def test_parse_all_tool_calls(self):
        adaptor = OpenAIAdaptor(api_key="sk-test")
        response_data = completion(
            "Multiple calls",
            tool_calls=[
                {
                    "id": "call_1",
                    "type": "function",
                    "function": {"name": "dummy", "arguments": json.dumps({"query": "first"})},
                },
                {
                    "id": "call_2",
                    "type": "function",
                    "function": {"name": "another", "arguments": "{broken"},
                },
            ],
        )

        result = adaptor._parse_response(response_data)

        assert result.type == "tool_call"
        assert [r.id for r in result.tool_requests] == ["call_1", "call_2"]
        assert result.tool_requests[0].arguments == {"query": "first"}
        # malformed arguments are passed through untouched
        assert result.tool_requests[1].raw_arguments == "{broken"

    def test_parse_response_missing_choices(self):
        adaptor = OpenAIAdaptor(api_key="sk-test")

        with pytest.raises(ValueError, match="missing 'choices'"):
            adaptor._parse_response({})

    def test_parse_response_empty_content(self):
        adaptor = OpenAIAdaptor(api_key="sk-test")

        result = adaptor._parse_response(completion(None))

        assert result.type == "final_response"
        assert result.content == ""


# --- Tests for API Calls ---


class TestOpenAIAdaptorCall:
    @pytest.mark.asyncio
    async def test_call_final_response(self):
        adaptor = OpenAIAdaptor(api_key="sk-test")
        messages = [Message(role="user", content="Hello")]

        # Mock httpx.AsyncClient
        mock_response = MagicMock()
        mock_response.status_code = 200
        mock_response.json.return_value = completion("Hi there!")

        with patch("httpx.AsyncClient") as mock_client:
            mock_instance = AsyncMock()
            mock_client.return_value.__aenter__.return_value = mock_instance
            mock_instance.post.return_value = mock_response

            result = await adaptor.call(messages, [])

            assert result.type == "final_response"
            assert result.content == "Hi there!"
            payload = mock_instance.post.call_args.kwargs["json"]
            assert "stream" not in payload
            assert "tools" not in payload

    @pytest.mark.asyncio
    async def test_call_with_tools(self):
        adaptor = OpenAIAdaptor(api_key="sk-test")
        messages = [Message(role="user", content="Search for something")]
        tools = [DummyTool().descriptor()]

        mock_response = MagicMock()
        mock_response.status_code = 200
        mock_response.json.return_value = completion(
            "Searching",
            tool_calls=[
                {
                    "id": "call_1",
                    "type": "function",
                    "function": {"name": "dummy", "arguments": json.dumps({"query": "example"})},
                }
            ],
        )

        with patch("httpx.AsyncClient") as mock_client:
            mock_instance = AsyncMock()
            mock_client.return_value.__aenter__.return_value = mock_instance
            mock_instance.post.return_value = mock_response

            result = await adaptor.call(messages, tools)

            assert result.type == "tool_call"
            assert result.tool_requests[0].tool_name == "dummy"
            payload = mock_instance.post.call_args.kwargs["json"]
            assert payload["tool_choice"] == "auto"
            assert payload["tools"][0]["function"]["name"] == "dummy"

    @pytest.mark.asyncio
    async def test_call_api_error(self):
        adaptor = OpenAIAdaptor(api_key="sk-test")
        messages = [Message(role="user", content="Hello")]

        mock_response = MagicMock()
        mock_response.status_code = 401
        mock_response.json.return_value = {
            "error": {"message": "Invalid API key"}
        }

        with patch("httpx.AsyncClient") as mock_client:
            mock_instance = AsyncMock()
            mock_client.return_value.__aenter__.return_value = mock_instance
            mock_instance.post.return_value = mock_response

            with pytest.raises(ValueError, match="OpenAI API error: Invalid API key"):
                await adaptor.call(messages, [])

    @pytest.mark.asyncio
    async def test_call_custom_parameters(self):
        adaptor = OpenAIAdaptor(
            api_key="sk-test", model="gpt-4", base_url="http://localhost:8000/v1"
        )
        messages = [Message(role="user", content="Hello")]

        mock_response = MagicMock()
        mock_response.status_code = 200
        mock_response.json.return_value = completion("Response")

        with patch("httpx.AsyncClient") as mock_client:
            mock_instance = AsyncMock()
            mock_client.return_value.__aenter__.return_value = mock_instance
            mock_instance.post.return_value = mock_response

            await adaptor.call(messages, [], temperature=0.5, timeout=30.0)

            call_args = mock_instance.post.call_args
            payload = call_args.kwargs.get("json", {})
            assert payload["model"] == "gpt-4"
            assert payload["temperature"] == 0.5
            assert call_args.kwargs["timeout"] == 30.0
            assert call_args.args[0] == "http://localhost:8000/v1/chat/completions"


# --- Tests for Streaming ---


class TestOpenAIAdaptorStreaming:
    @pytest.mark.asyncio
    async def test_stream_text(self):
        adaptor = OpenAIAdaptor(api_key="sk-test")
        requests = []

        def handler(request):
            requests.append(json.loads(request.content))
            body = sse(delta(role="assistant"), delta(content="Hel"), delta(content="lo"))
            return httpx.Response(200, content=body, headers={"content-type": "text/event-stream"})

        chunks = []

        async def on_chunk(chunk):
            chunks.append(chunk)

        with mock_transport_client(handler):
            result = await adaptor.call(
                [Message(role="user", content="Hi")], [], on_chunk=on_chunk
            )

        assert requests[0]["stream"] is True
        assert chunks == ["Hel", "lo"]
        assert result.content == "Hello"
        assert result.type == "final_response"

    @pytest.mark.asyncio
    async def test_stream_assembles_tool_calls(self):
        adaptor = OpenAIAdaptor(api_key="sk-test")

        def handler(request):
            body = sse(
                delta(tool_calls=[{"index": 0, "id": "call_a", "function": {"name": "dummy", "arguments": ""}}]),
                delta(tool_calls=[{"index": 0, "function": {"arguments": '{"query": '}}]),
                delta(tool_calls=[{"index": 1, "function": {"name": "another"}}]),
                delta(tool_calls=[{"index": 0, "function": {"arguments": '"x"}'}}]),
            )
            return httpx.Response(200, content=body)

        async def on_chunk(chunk):
            pass

        with mock_transport_client(handler):
            result = await adaptor.call(
                [Message(role="user", content="Hi")],
                [DummyTool().descriptor(), AnotherTool().descriptor()],
                on_chunk=on_chunk,
            )

        assert result.type == "tool_call"
        first, second = result.tool_requests
        assert first.id == "call_a"
        assert first.arguments == {"query": "x"}
        assert second.id and second.id != first.id
        assert second.tool_name == "another"
        assert second.raw_arguments == "{}"

    @pytest.mark.asyncio
    async def test_stream_api_error(self):
        adaptor = OpenAIAdaptor(api_key="sk-test")

        def handler(request):
            return httpx.Response(429, json={"error": {"message": "Rate limit"}})

        async def on_chunk(chunk):
            pass

        with mock_transport_client(handler):
            with pytest.raises(ValueError, match="OpenAI API error: Rate limit"):
                await adaptor.call([Message(role="user", content="Hi")], [], on_chunk=on_chunk)
