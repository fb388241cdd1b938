import json
import time
from dataclasses import dataclass, field
from typing import Any, Optional


def parse_arguments(raw: Any) -> dict:
    """Decode a tool request's argument text; anything unusable becomes {}."""
    if isinstance(raw, dict):
        return dict(raw)
    if not raw:
        return {}
    try:
        parsed = json.loads(raw)
    except (TypeError, ValueError):
        return {}
    return parsed if isinstance(parsed, dict) else {}


@dataclass
class ToolRequest:
    id: str
    tool_name: str
    raw_arguments: str = "{}"  # serialized JSON, as produced by the model

    @property
    def arguments(self) -> dict:
        return parse_arguments(self.raw_arguments)


@dataclass
class Message:
    role: str  # "system" | "user" | "assistant" | "tool"
    content: str
    timestamp: Optional[float] = None
    tool_call_id: Optional[str] = None  # required when role == "tool"
    name: Optional[str] = None  # tool name, required when role == "tool"
    tool_requests: Optional[list[ToolRequest]] = None  # assistant turns only


@dataclass
class Action:
    tool: str
    input: dict[str, Any]
    tool_call_id: Optional[str] = None


@dataclass
class Step:
    id: str
    phase: str  # "thinking" | "acting" | "observing" | "completed" | "error"
    thought: Optional[str] = None
    action: Optional[Action] = None
    observation: Optional[str] = None
    timestamp: float = field(default_factory=time.time)


@dataclass
class RunResult:
    success: bool
    steps: list[Step] = field(default_factory=list)
    total_iterations: int = 0
    total_tokens: int = 0
    final_answer: Optional[str] = None
    error: Optional[str] = None
    messages: list[Message] = field(default_factory=list)
