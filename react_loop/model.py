from dataclasses import dataclass, field
from typing import Awaitable, Callable, Literal, Optional

from react_loop.execution import Message, ToolRequest
from react_loop.tools import ToolDescriptor

ChunkSink = Callable[[str], Awaitable[None]]


@dataclass
class ModelResponse:
    content: str
    tool_requests: list[ToolRequest] = field(default_factory=list)

    @property
    def type(self) -> Literal["final_response", "tool_call"]:
        return "tool_call" if self.tool_requests else "final_response"


class ModelAdaptor:
    async def call(
        self,
        messages: list[Message],
        tools: list[ToolDescriptor],
        on_chunk: Optional[ChunkSink] = None,
        **kwargs,
    ) -> ModelResponse:
        """Call the model with messages and available tools.

        Adaptors that stream await ``on_chunk`` with each text delta before
        returning. Retries, if any, belong here and not in the agent.
        """
        raise NotImplementedError
