from react_loop.adaptors.openai import OpenAIAdaptor

# Conditional imports for optional SDK-based adaptors
try:
    from react_loop.adaptors.anthropic import AnthropicAdaptor
except ImportError:
    pass

try:
    from react_loop.adaptors.gemini import GeminiAdaptor
except ImportError:
    pass

from react_loop.agent import Agent
from react_loop.cancellation import CancellationToken
from react_loop.config import AgentConfig
from react_loop.exceptions import (
    InvalidPhaseTransition,
    ModelCallError,
    ReactLoopError,
    RunCancelled,
    ToolNotFound,
    ToolValidationError,
)
from react_loop.execution import (
    Action,
    Message,
    RunResult,
    Step,
    ToolRequest,
    parse_arguments,
)
from react_loop.hooks import (
    ActionEventData,
    ChunkEventData,
    CompleteEventData,
    ErrorEventData,
    HookEvent,
    HookRegistry,
    ObservationEventData,
    Observer,
    PhaseChangeEventData,
    StepEventData,
    ThoughtEventData,
)
from react_loop.memory import (
    CompactedHistory,
    HistoryCompactor,
    NoCompaction,
    ShortTermMemory,
    estimate_tokens,
)
from react_loop.model import ModelAdaptor, ModelResponse
from react_loop.prompt import REACT_SYSTEM_PROMPT, build_system_prompt, strip_tool_messages
from react_loop.state import Phase, RunState
from react_loop.steps import StepRecorder, generate_id
from react_loop.tools import Tool, ToolDescriptor, ToolExecutor, ToolInput

__all__ = [
    # Core
    "Agent",
    "AgentConfig",
    "CancellationToken",
    "Message",
    "ModelAdaptor",
    "ModelResponse",
    "OpenAIAdaptor",
    "AnthropicAdaptor",
    "GeminiAdaptor",
    "Phase",
    "RunResult",
    "RunState",
    "Step",
    "Action",
    "StepRecorder",
    "Tool",
    "ToolDescriptor",
    "ToolExecutor",
    "ToolInput",
    "ToolRequest",
    "generate_id",
    "parse_arguments",
    # Prompt
    "REACT_SYSTEM_PROMPT",
    "build_system_prompt",
    "strip_tool_messages",
    # Memory
    "CompactedHistory",
    "HistoryCompactor",
    "NoCompaction",
    "ShortTermMemory",
    "estimate_tokens",
    # Hooks
    "HookRegistry",
    "HookEvent",
    "Observer",
    # Hook Event Data
    "PhaseChangeEventData",
    "StepEventData",
    "ThoughtEventData",
    "ActionEventData",
    "ObservationEventData",
    "ChunkEventData",
    "CompleteEventData",
    "ErrorEventData",
    # Exceptions
    "ReactLoopError",
    "InvalidPhaseTransition",
    "ModelCallError",
    "RunCancelled",
    "ToolNotFound",
    "ToolValidationError",
]
