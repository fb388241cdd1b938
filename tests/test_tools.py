import pytest
from pydantic import BaseModel

from react_loop.exceptions import ToolNotFound, ToolValidationError
from react_loop.tools import Tool, ToolDescriptor, ToolExecutor, ToolInput, to_descriptors


class EchoInput(BaseModel):
    text: str


class EchoTool(Tool):
    name = "echo"
    description = "Echoes input"
    input_model = EchoInput

    async def execute(self, text: str) -> str:
        return f"echo: {text}"


class AddInput(ToolInput):
    a: int
    b: int = 1


class AddTool(Tool):
    name = "add"
    description = "Adds two numbers"
    input_model = AddInput

    async def execute(self, a: int, b: int) -> int:
        return a + b


class TestToolInput:
    def test_tool_input_is_base_model(self):
        assert issubclass(ToolInput, BaseModel)

    def test_custom_input_model(self):
        class SearchInput(ToolInput):
            query: str
            limit: int = 10

        inp = SearchInput(query="hello")
        assert inp.query == "hello"
        assert inp.limit == 10


class TestTool:
    def test_schema_returns_json_schema(self):
        schema = EchoTool().schema()
        assert "properties" in schema
        assert "text" in schema["properties"]

    def test_descriptor(self):
        descriptor = EchoTool().descriptor()
        assert isinstance(descriptor, ToolDescriptor)
        assert descriptor.name == "echo"
        assert descriptor.description == "Echoes input"
        assert descriptor.parameters["required"] == ["text"]

    @pytest.mark.asyncio
    async def test_execute_raises_not_implemented(self):
        class EmptyInput(BaseModel):
            pass

        class EmptyTool(Tool):
            name = "empty"
            description = "Does nothing"
            input_model = EmptyInput

        with pytest.raises(NotImplementedError):
            await EmptyTool().execute()


class TestToDescriptors:
    def test_mixes_tools_and_descriptors(self):
        search = ToolDescriptor(name="search", description="Search")
        descriptors = to_descriptors([EchoTool(), search])
        assert isinstance(descriptors, tuple)
        assert [d.name for d in descriptors] == ["echo", "search"]
        assert descriptors[1] is search

    def test_duplicate_names_rejected(self):
        with pytest.raises(ValueError, match="Duplicate tool names"):
            to_descriptors([EchoTool(), ToolDescriptor(name="echo", description="again")])


class TestToolExecutor:
    @pytest.mark.asyncio
    async def test_runs_tool_by_name(self):
        executor = ToolExecutor([EchoTool(), AddTool()])
        assert await executor("echo", {"text": "hi"}) == "echo: hi"

    @pytest.mark.asyncio
    async def test_non_string_result_is_stringified(self):
        executor = ToolExecutor([AddTool()])
        assert await executor("add", {"a": 2}) == "3"

    @pytest.mark.asyncio
    async def test_unknown_tool(self):
        executor = ToolExecutor([EchoTool()])
        with pytest.raises(ToolNotFound, match="Tool 'missing' not found"):
            await executor("missing", {})

    @pytest.mark.asyncio
    async def test_invalid_arguments(self):
        executor = ToolExecutor([EchoTool()])
        with pytest.raises(ToolValidationError, match="Invalid arguments for 'echo'"):
            await executor("echo", {"wrong": 1})

    def test_find(self):
        echo = EchoTool()
        assert ToolExecutor([echo]).find("echo") is echo
