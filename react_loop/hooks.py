"""Lifecycle hooks for react-loop.

Observers see every phase change, step, thought, action, observation,
streamed chunk, completion and error of a run, in the order they happen.
Each handler is awaited before the loop moves on, so a UI can render
"now searching" before the search result exists.

Architecture:
- HookRegistry is the CORE implementation
- Decorator (@hooks.on, @agent.hook) and Observer are convenience wrappers
- Everything goes through HookRegistry
"""

import inspect
import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

logger = logging.getLogger(__name__)


class HookEvent(str, Enum):
    """Lifecycle events emitted by a run."""

    PHASE_CHANGE = "on_phase_change"
    STEP = "on_step"
    THOUGHT = "on_thought"
    ACTION = "on_action"
    OBSERVATION = "on_observation"
    CHUNK = "on_chunk"
    COMPLETE = "on_complete"
    ERROR = "on_error"


# ============================================================================
# Hook Event Data Classes
# ============================================================================


@dataclass
class PhaseChangeEventData:
    """Called when the run moves to a new phase."""

    previous: Optional[str]  # None for the first phase of a run
    phase: str
    iteration: int
    timestamp: datetime = field(default_factory=datetime.now)


@dataclass
class StepEventData:
    """Called when a step is recorded."""

    step: Any  # Step instance


@dataclass
class ThoughtEventData:
    """Called once the model's reply for an iteration is known."""

    thought: str
    iteration: int


@dataclass
class ActionEventData:
    """Called before a tool is executed."""

    tool_name: str
    input: Dict[str, Any]
    tool_call_id: Optional[str]


@dataclass
class ObservationEventData:
    """Called after a tool has produced its observation."""

    tool_name: str
    observation: str
    tool_call_id: Optional[str]


@dataclass
class ChunkEventData:
    """Called for each streamed text delta from the model."""

    chunk: str


@dataclass
class CompleteEventData:
    """Called once per run with the final result, whatever the outcome."""

    result: Any  # RunResult instance


@dataclass
class ErrorEventData:
    """Called when a run ends because of an error."""

    error: Exception
    message: str


# ============================================================================
# Hook Registry
# ============================================================================


class HookRegistry:
    """Central registry for all hooks.

    Supports both decorator-style and direct registration. Handlers may be
    plain functions or coroutine functions.

    Usage:
        hooks = HookRegistry()

        @hooks.on('on_action')
        async def log_action(event):
            print(f"Tool: {event.tool_name}")

        # Or direct registration
        def my_hook(event):
            pass
        hooks.register_handler('on_step', my_hook)
    """

    def __init__(self):
        self._handlers: Dict[str, List[Callable]] = {
            event.value: [] for event in HookEvent
        }

    def on(self, hook_name: str):
        """Decorator for registering hook handlers.

        Args:
            hook_name: Name of the hook (e.g., 'on_step')

        Returns:
            Decorator function
        """

        def decorator(func: Callable) -> Callable:
            self.register_handler(hook_name, func)
            return func

        return decorator

    def register_handler(self, hook_name: str, handler: Callable) -> None:
        """Register a hook handler.

        Args:
            hook_name: Name of the hook
            handler: Function or coroutine function to call

        Raises:
            ValueError: If hook_name is not valid
        """
        hook_name = getattr(hook_name, "value", hook_name)
        if hook_name not in self._handlers:
            valid_hooks = [e.value for e in HookEvent]
            raise ValueError(
                f"Invalid hook name '{hook_name}'. Valid hooks: {valid_hooks}"
            )
        self._handlers[hook_name].append(handler)

    def register_observer(self, observer: "Observer") -> None:
        """Register every overridden event method of an Observer."""
        for event in HookEvent:
            handler = getattr(observer, event.value, None)
            if handler is None:
                continue
            if getattr(handler, "__func__", None) is getattr(Observer, event.value):
                continue
            self.register_handler(event.value, handler)

    async def trigger(self, hook_name: str, event_data: Any) -> None:
        """Execute all handlers for a hook, in registration order.

        A handler that raises is logged and skipped; it never affects the
        run or the remaining handlers.
        """
        hook_name = getattr(hook_name, "value", hook_name)
        for handler in self._handlers.get(hook_name, []):
            try:
                result = handler(event_data)
                if inspect.isawaitable(result):
                    await result
            except Exception as e:
                # Log but don't fail execution
                logger.warning(f"Hook '{hook_name}' raised exception: {e}")

    def has_handlers(self, hook_name: str) -> bool:
        """Check if hook has any registered handlers."""
        hook_name = getattr(hook_name, "value", hook_name)
        return len(self._handlers.get(hook_name, [])) > 0

    def copy(self) -> "HookRegistry":
        """Independent registry holding the same handlers."""
        clone = HookRegistry()
        for hook_name, handlers in self._handlers.items():
            clone._handlers[hook_name] = list(handlers)
        return clone

    def clear(self) -> None:
        """Clear all handlers (useful for testing)."""
        for hook_name in self._handlers:
            self._handlers[hook_name] = []


# ============================================================================
# Observer Base Class (Optional, for stateful handlers)
# ============================================================================


class Observer:
    """Base class for observers (stateful hook handlers).

    Override methods for events you want to handle.

    Usage:
        class Printer(Observer):
            async def on_action(self, event):
                print(f"Tool: {event.tool_name}")

        agent = Agent(model=model, tools=tools, observers=[Printer()])
    """

    async def on_phase_change(self, event: PhaseChangeEventData) -> None:
        pass

    async def on_step(self, event: StepEventData) -> None:
        pass

    async def on_thought(self, event: ThoughtEventData) -> None:
        pass

    async def on_action(self, event: ActionEventData) -> None:
        pass

    async def on_observation(self, event: ObservationEventData) -> None:
        pass

    async def on_chunk(self, event: ChunkEventData) -> None:
        pass

    async def on_complete(self, event: CompleteEventData) -> None:
        pass

    async def on_error(self, event: ErrorEventData) -> None:
        pass
