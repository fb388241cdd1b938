"""Step records for a run.

Every step gets an id unique within the process: a millisecond timestamp
plus a random suffix. Steps are appended, never removed. The only field
ever written after recording is ``thought`` on the thinking step of the
current iteration, which starts out as a placeholder so observers see the
step before the model has answered.
"""

import secrets
import time
from typing import Any, Optional

from react_loop.execution import Action, Step

THINKING_PLACEHOLDER = "Analyzing the problem..."


def generate_id() -> str:
    return f"{int(time.time() * 1000)}_{secrets.token_hex(5)}"


class StepRecorder:
    def __init__(self):
        self.steps: list[Step] = []

    def _record(self, step: Step) -> Step:
        self.steps.append(step)
        return step

    def thinking(self, thought: str = THINKING_PLACEHOLDER) -> Step:
        return self._record(Step(id=generate_id(), phase="thinking", thought=thought))

    def fill_thought(self, step: Step, thought: str) -> None:
        if step.phase != "thinking":
            raise ValueError(f"Step {step.id} is a {step.phase} step, not thinking")
        step.thought = thought

    def acting(
        self, tool: str, input: dict[str, Any], tool_call_id: Optional[str] = None
    ) -> Step:
        return self._record(
            Step(
                id=generate_id(),
                phase="acting",
                action=Action(tool=tool, input=input, tool_call_id=tool_call_id),
            )
        )

    def observing(self, observation: str) -> Step:
        return self._record(
            Step(id=generate_id(), phase="observing", observation=observation)
        )

    def count(self, phase: str) -> int:
        return sum(1 for step in self.steps if step.phase == phase)
