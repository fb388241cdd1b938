from react_loop.execution import Message, RunResult, Step, ToolRequest, parse_arguments
from react_loop.model import ModelResponse


class TestMessage:
    def test_basic_message(self):
        msg = Message(role="user", content="hello")
        assert msg.role == "user"
        assert msg.content == "hello"
        assert msg.tool_call_id is None
        assert msg.tool_requests is None

    def test_tool_message(self):
        msg = Message(role="tool", content="result", tool_call_id="call_123", name="search")
        assert msg.tool_call_id == "call_123"
        assert msg.name == "search"


class TestParseArguments:
    def test_json_object(self):
        assert parse_arguments('{"q": "test", "n": 2}') == {"q": "test", "n": 2}

    def test_dict_is_copied(self):
        original = {"q": "test"}
        parsed = parse_arguments(original)
        assert parsed == original
        assert parsed is not original

    def test_malformed_json(self):
        assert parse_arguments("{not json") == {}

    def test_non_object_json(self):
        assert parse_arguments("[1, 2]") == {}
        assert parse_arguments('"text"') == {}

    def test_empty(self):
        assert parse_arguments("") == {}
        assert parse_arguments(None) == {}


class TestToolRequest:
    def test_default_arguments(self):
        request = ToolRequest(id="1", tool_name="search")
        assert request.raw_arguments == "{}"
        assert request.arguments == {}

    def test_arguments_decoded(self):
        request = ToolRequest(id="1", tool_name="search", raw_arguments='{"q": "x"}')
        assert request.arguments == {"q": "x"}


class TestStep:
    def test_step_defaults(self):
        step = Step(id="1", phase="thinking")
        assert step.thought is None
        assert step.action is None
        assert step.observation is None
        assert step.timestamp > 0


class TestRunResult:
    def test_result_defaults(self):
        result = RunResult(success=True)
        assert result.steps == []
        assert result.messages == []
        assert result.total_iterations == 0
        assert result.total_tokens == 0
        assert result.final_answer is None
        assert result.error is None

    def test_mutable_defaults_are_independent(self):
        r1 = RunResult(success=True)
        r2 = RunResult(success=False)
        r1.messages.append(Message(role="user", content="a"))
        assert len(r2.messages) == 0


class TestModelResponse:
    def test_final_response_type(self):
        assert ModelResponse(content="done").type == "final_response"

    def test_tool_call_type(self):
        response = ModelResponse(
            content="", tool_requests=[ToolRequest(id="1", tool_name="search")]
        )
        assert response.type == "tool_call"
