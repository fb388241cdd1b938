import asyncio
import inspect
import logging
import time
from typing import (
    TYPE_CHECKING,
    Any,
    AsyncIterator,
    Awaitable,
    Callable,
    Iterable,
    Optional,
    Union,
)

from react_loop.cancellation import CancellationToken
from react_loop.config import DEFAULT_MAX_ITERATIONS, AgentConfig
from react_loop.exceptions import ModelCallError
from react_loop.execution import Message, RunResult, ToolRequest
from react_loop.hooks import (
    ActionEventData,
    ChunkEventData,
    CompleteEventData,
    ErrorEventData,
    HookEvent,
    HookRegistry,
    ObservationEventData,
    PhaseChangeEventData,
    StepEventData,
    ThoughtEventData,
)
from react_loop.memory import HistoryCompactor, ShortTermMemory
from react_loop.model import ModelAdaptor
from react_loop.prompt import initial_messages
from react_loop.state import Phase, RunState
from react_loop.tools import Tool, ToolDescriptor, ToolExecutor, to_descriptors

if TYPE_CHECKING:
    from react_loop.hooks import Observer

logger = logging.getLogger(__name__)

ToolRunner = Callable[[str, dict], Union[Awaitable[str], str]]


class _EventForwarder:
    """Observer-shaped object that hands every event to an ``events()`` consumer.

    Each handler waits until the consumer comes back for the next item, so
    the run never gets ahead of whoever is iterating.
    """

    def __init__(self, queue: asyncio.Queue):
        self.queue = queue
        self.closed = False
        for event in HookEvent:
            setattr(self, event.value, self._forward(event))

    def _forward(self, event: HookEvent):
        async def handler(data):
            if self.closed:
                return
            taken = asyncio.get_running_loop().create_future()
            self.queue.put_nowait((event, data, taken))
            await taken

        return handler

    def close(self) -> None:
        self.closed = True
        while not self.queue.empty():
            item = self.queue.get_nowait()
            if item is not None and not item[2].done():
                item[2].set_result(None)


class Agent:
    def __init__(
        self,
        model: Optional[ModelAdaptor] = None,
        tools: Optional[list[Union[Tool, ToolDescriptor]]] = None,
        execute_tool: Optional[ToolRunner] = None,
        compactor: Optional[HistoryCompactor] = None,
        max_iterations: int = DEFAULT_MAX_ITERATIONS,
        enable_streaming: bool = True,
        verbose: bool = True,
        name: str = "Agent",
        hooks: Optional[HookRegistry] = None,
        observers: Optional[list["Observer"]] = None,
    ):
        self.model = model
        self.name = name
        self.compactor = compactor if compactor is not None else ShortTermMemory()
        self.config = AgentConfig(
            max_iterations=max_iterations,
            enable_streaming=enable_streaming,
            verbose=verbose,
        )
        self._tool_runner = execute_tool
        self._executor = ToolExecutor()
        self.set_tools(tools or [])

        # ALWAYS use HookRegistry as the foundation
        # User can pass one, or we create an internal one
        self.hooks = hooks if hooks is not None else HookRegistry()
        for observer in observers or []:
            self.hooks.register_observer(observer)

        self.state: Optional[RunState] = None
        self._cancellation: Optional[CancellationToken] = None

    # ------------------------------------------------------------------
    # Configuration
    # ------------------------------------------------------------------

    def update_config(self, **changes: Any) -> AgentConfig:
        """Merge ``changes`` into the current config. Not for use mid-run."""
        if "tools" in changes:
            self.set_tools(changes.pop("tools"))
        self.config = self.config.merge(**changes)
        logger.info(f"[{self.name}] Config updated: {self.config}")
        return self.config

    def set_tools(self, tools: Iterable[Union[Tool, ToolDescriptor]]) -> None:
        tools = list(tools)
        self.config = self.config.merge(tools=to_descriptors(tools))
        self._executor = ToolExecutor(t for t in tools if isinstance(t, Tool))
        logger.debug(f"[{self.name}] Tools set: {[t.name for t in self.config.tools]}")

    @property
    def execute_tool(self) -> ToolRunner:
        return self._tool_runner or self._executor

    def hook(self, hook_name: str):
        """Decorator for registering hooks directly on agent.

        Usage:
            agent = Agent(model=model, tools=tools)

            @agent.hook('on_action')
            async def log_action(event):
                print(f"Tool: {event.tool_name}")

        Under the hood, this just delegates to self.hooks.on(hook_name)
        """
        return self.hooks.on(hook_name)

    # ------------------------------------------------------------------
    # Run control
    # ------------------------------------------------------------------

    @property
    def is_running(self) -> bool:
        return self.state is not None and self.state.is_running

    def stop(self) -> None:
        """Ask the active run to stop at its next check. No-op when idle."""
        if self._cancellation is None:
            return
        logger.info(f"[{self.name}] Stop requested")
        self._cancellation.cancel()
        if self.state is not None:
            self.state.is_running = False

    def reset(self) -> None:
        """Discard the last run's state."""
        self.state = None
        self._cancellation = None

    def run(self, input: str, messages: Optional[list[Message]] = None, **kwargs) -> RunResult:
        """Run agent synchronously."""
        return asyncio.run(self.run_async(input, messages, **kwargs))

    async def events(
        self, input: str, messages: Optional[list[Message]] = None, **kwargs
    ) -> AsyncIterator[tuple[HookEvent, Any]]:
        """Run the agent, yielding ``(HookEvent, event_data)`` as they happen.

        The last pair is always ``(HookEvent.COMPLETE, CompleteEventData)``.
        The run is paused while the consumer handles an event, so nothing
        happens between an event and the consumer asking for the next one.
        Closing the iterator early (``aclose()``, or ``contextlib.aclosing``
        around a loop that breaks) stops the run.
        """
        queue: asyncio.Queue = asyncio.Queue()
        forwarder = _EventForwarder(queue)
        observers = list(kwargs.pop("observers", None) or [])
        observers.append(forwarder)

        task = asyncio.create_task(
            self.run_async(input, messages, observers=observers, **kwargs)
        )
        task.add_done_callback(lambda _: queue.put_nowait(None))
        try:
            while True:
                item = await queue.get()
                if item is None:
                    break
                event, data, taken = item
                try:
                    yield event, data
                finally:
                    if not taken.done():
                        taken.set_result(None)
            task.result()
        finally:
            if not task.done():
                # stop before the paused run resumes
                self.stop()
            forwarder.close()
            if not task.done():
                await task

    async def run_async(
        self,
        input: str,
        messages: Optional[list[Message]] = None,
        *,
        model: Optional[ModelAdaptor] = None,
        execute_tool: Optional[ToolRunner] = None,
        compactor: Optional[HistoryCompactor] = None,
        cancellation: Optional[CancellationToken] = None,
        observers: Optional[list["Observer"]] = None,
    ) -> RunResult:
        """Run the reasoning/acting loop until a final answer or a failure.

        Never raises for run-level failures: cancellation, model errors and
        iteration exhaustion all come back as ``RunResult(success=False)``.
        ``messages`` is prior history; it must not contain tool messages.
        """
        model = model or self.model
        execute_tool = execute_tool or self.execute_tool
        compactor = compactor or self.compactor
        config = self.config

        hooks = self.hooks
        if observers:
            hooks = hooks.copy()
            for observer in observers:
                hooks.register_observer(observer)

        token = cancellation or CancellationToken()
        self._cancellation = token
        state = RunState(max_iterations=config.max_iterations)
        self.state = state
        log = logger.info if config.verbose else logger.debug

        try:
            if not input or not input.strip():
                raise ValueError("User input must be a non-empty string")
            if model is None:
                raise ValueError("No model configured for this run")

            log(f"[{self.name}] Starting run: {input[:100]}")
            compactor.reset()
            state.messages = initial_messages(input, messages, config.tools)
            await hooks.trigger(
                HookEvent.PHASE_CHANGE,
                PhaseChangeEventData(previous=None, phase=state.phase.value, iteration=0),
            )

            while True:
                token.raise_if_cancelled()
                if not state.start_iteration():
                    break
                log(f"[{self.name}] Iteration {state.iteration}/{state.max_iterations}")

                # Compact the history the model will see
                compacted = await compactor.compact(state.messages)
                state.total_tokens = compacted.token_estimate

                # Think
                await self._set_phase(state, hooks, Phase.THINKING)
                thinking = state.recorder.thinking()
                await hooks.trigger(HookEvent.STEP, StepEventData(step=thinking))

                streamed: list[str] = []

                async def on_chunk(chunk: str) -> None:
                    streamed.append(chunk)
                    await hooks.trigger(HookEvent.CHUNK, ChunkEventData(chunk=chunk))

                call_kwargs = {"on_chunk": on_chunk} if config.enable_streaming else {}
                try:
                    response = await model.call(
                        compacted.messages, list(config.tools), **call_kwargs
                    )
                except Exception as e:
                    raise ModelCallError(f"Model call failed: {e}") from e

                content = response.content or "".join(streamed)
                state.recorder.fill_thought(thinking, content)
                await hooks.trigger(
                    HookEvent.THOUGHT,
                    ThoughtEventData(thought=content, iteration=state.iteration),
                )

                tool_requests = list(response.tool_requests or [])
                state.messages.append(
                    Message(
                        role="assistant",
                        content=content,
                        timestamp=time.time(),
                        tool_requests=tool_requests or None,
                    )
                )

                if not tool_requests:
                    await self._set_phase(state, hooks, Phase.COMPLETED)
                    log(f"[{self.name}] Final answer after {state.iteration} iteration(s)")
                    result = self._result(state, success=True, final_answer=content)
                    await hooks.trigger(HookEvent.COMPLETE, CompleteEventData(result=result))
                    return result

                # Act and observe, strictly in request order
                for request in tool_requests:
                    token.raise_if_cancelled()
                    await self._run_tool(state, hooks, execute_tool, request, token, log)

                state.total_tokens = compactor.count_tokens(state.messages)
                await self._set_phase(state, hooks, Phase.THINKING)

            state.error = f"max iterations reached ({config.max_iterations})"
            logger.warning(f"[{self.name}] {state.error}")
            await self._set_phase(state, hooks, Phase.ERROR)
            result = self._result(state, success=False, error=state.error)
            await hooks.trigger(HookEvent.COMPLETE, CompleteEventData(result=result))
            return result

        except Exception as e:
            message = str(e) or e.__class__.__name__
            logger.error(f"[{self.name}] Run failed: {message}")
            state.error = message
            if not state.is_terminal:
                await self._set_phase(state, hooks, Phase.ERROR)
            result = self._result(state, success=False, error=message)
            await hooks.trigger(HookEvent.ERROR, ErrorEventData(error=e, message=message))
            await hooks.trigger(HookEvent.COMPLETE, CompleteEventData(result=result))
            return result

        finally:
            state.is_running = False
            if self._cancellation is token:
                self._cancellation = None

    async def _run_tool(
        self,
        state: RunState,
        hooks: HookRegistry,
        execute_tool: ToolRunner,
        request: ToolRequest,
        token: CancellationToken,
        log: Callable[[str], None],
    ) -> None:
        arguments = request.arguments

        await self._set_phase(state, hooks, Phase.ACTING)
        step = state.recorder.acting(request.tool_name, arguments, request.id)
        await hooks.trigger(HookEvent.STEP, StepEventData(step=step))
        await hooks.trigger(
            HookEvent.ACTION,
            ActionEventData(
                tool_name=request.tool_name, input=arguments, tool_call_id=request.id
            ),
        )
        # a stop requested by an on_action handler keeps the tool from starting
        token.raise_if_cancelled()
        log(f"[{self.name}] Calling tool {request.tool_name} with {arguments}")

        await self._set_phase(state, hooks, Phase.OBSERVING)
        try:
            observation = execute_tool(request.tool_name, dict(arguments))
            if inspect.isawaitable(observation):
                observation = await observation
            observation = "" if observation is None else str(observation)
        except Exception as e:
            logger.warning(f"[{self.name}] Tool '{request.tool_name}' failed: {e}")
            observation = f"Tool execution failed: {e}"
        log(f"[{self.name}] Observation: {observation[:100]}")

        step = state.recorder.observing(observation)
        await hooks.trigger(HookEvent.STEP, StepEventData(step=step))
        await hooks.trigger(
            HookEvent.OBSERVATION,
            ObservationEventData(
                tool_name=request.tool_name,
                observation=observation,
                tool_call_id=request.id,
            ),
        )
        state.messages.append(
            Message(
                role="tool",
                content=observation,
                timestamp=time.time(),
                tool_call_id=request.id,
                name=request.tool_name,
            )
        )

    async def _set_phase(self, state: RunState, hooks: HookRegistry, phase: Phase) -> None:
        previous = state.transition(phase)
        if previous is not None:
            await hooks.trigger(
                HookEvent.PHASE_CHANGE,
                PhaseChangeEventData(
                    previous=previous.value, phase=phase.value, iteration=state.iteration
                ),
            )

    def _result(self, state: RunState, success: bool, **kwargs) -> RunResult:
        return RunResult(
            success=success,
            steps=state.steps,
            total_iterations=state.iteration,
            total_tokens=state.total_tokens,
            messages=state.messages,
            **kwargs,
        )
