from dataclasses import dataclass, field
from typing import Any, Iterable, Union

from pydantic import BaseModel, ValidationError

from react_loop.exceptions import ToolNotFound, ToolValidationError


@dataclass(frozen=True)
class ToolDescriptor:
    """What the model is told about a tool: name, description, JSON schema."""

    name: str
    description: str
    parameters: dict = field(default_factory=dict)


class ToolInput(BaseModel):
    """Subclass this for tool-specific input validation."""


class Tool:
    name: str
    description: str
    input_model: type[BaseModel]

    def schema(self) -> dict:
        """Return JSON schema from Pydantic model."""
        return self.input_model.model_json_schema()

    def descriptor(self) -> ToolDescriptor:
        return ToolDescriptor(
            name=self.name, description=self.description, parameters=self.schema()
        )

    async def execute(self, **kwargs) -> str:
        """Execute tool. Always async; sync tools wrap sync code.

        Pydantic validates inputs before this is called.
        """
        raise NotImplementedError


def to_descriptors(tools: Iterable[Union[Tool, ToolDescriptor]]) -> tuple[ToolDescriptor, ...]:
    descriptors = []
    for tool in tools:
        descriptors.append(tool if isinstance(tool, ToolDescriptor) else tool.descriptor())
    names = [d.name for d in descriptors]
    duplicates = sorted({n for n in names if names.count(n) > 1})
    if duplicates:
        raise ValueError(f"Duplicate tool names: {duplicates}")
    return tuple(descriptors)


class ToolExecutor:
    """Runs ``Tool`` instances by name; usable as the agent's ``execute_tool``.

    Usage:
        executor = ToolExecutor([SearchTool(), FetchTool()])
        agent = Agent(model=model, tools=executor.tools, execute_tool=executor)
    """

    def __init__(self, tools: Iterable[Tool] = ()):
        self.tools: list[Tool] = list(tools)

    def find(self, name: str) -> Tool:
        for tool in self.tools:
            if tool.name == name:
                return tool
        raise ToolNotFound(f"Tool '{name}' not found")

    async def __call__(self, name: str, arguments: dict[str, Any]) -> str:
        tool = self.find(name)
        try:
            validated = tool.input_model(**arguments)
        except ValidationError as e:
            raise ToolValidationError(f"Invalid arguments for '{name}': {e}") from e
        result = await tool.execute(**validated.model_dump())
        return result if isinstance(result, str) else str(result)
