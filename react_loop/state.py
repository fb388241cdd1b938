"""Run state and the phase machine that governs it.

thinking -> acting -> observing -> (acting | thinking)
thinking -> completed
any non-terminal phase -> error

``completed`` and ``error`` are terminal. Nothing leaves them; a finished
``RunState`` is discarded, not reused.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from react_loop.exceptions import InvalidPhaseTransition
from react_loop.execution import Message, Step
from react_loop.steps import StepRecorder


class Phase(str, Enum):
    THINKING = "thinking"
    ACTING = "acting"
    OBSERVING = "observing"
    COMPLETED = "completed"
    ERROR = "error"


TERMINAL_PHASES = frozenset({Phase.COMPLETED, Phase.ERROR})

_TRANSITIONS: dict[Phase, frozenset[Phase]] = {
    Phase.THINKING: frozenset({Phase.ACTING, Phase.COMPLETED, Phase.ERROR}),
    Phase.ACTING: frozenset({Phase.OBSERVING, Phase.ERROR}),
    Phase.OBSERVING: frozenset({Phase.ACTING, Phase.THINKING, Phase.ERROR}),
    Phase.COMPLETED: frozenset(),
    Phase.ERROR: frozenset(),
}


@dataclass
class RunState:
    max_iterations: int
    phase: Phase = Phase.THINKING
    messages: list[Message] = field(default_factory=list)
    iteration: int = 0
    total_tokens: int = 0
    is_running: bool = True
    error: Optional[str] = None
    recorder: StepRecorder = field(default_factory=StepRecorder)

    @property
    def steps(self) -> list[Step]:
        return self.recorder.steps

    @property
    def is_terminal(self) -> bool:
        return self.phase in TERMINAL_PHASES

    def can_transition(self, phase: Phase) -> bool:
        return phase == self.phase or phase in _TRANSITIONS[self.phase]

    def transition(self, phase: Phase) -> Optional[Phase]:
        """Move to ``phase``.

        Returns the previous phase, or None when already in ``phase``.

        Raises:
            InvalidPhaseTransition: If the move is not allowed from the
                current phase.
        """
        phase = Phase(phase)
        if phase == self.phase:
            if self.is_terminal:
                raise InvalidPhaseTransition(f"Run already ended in '{phase.value}'")
            return None
        if phase not in _TRANSITIONS[self.phase]:
            raise InvalidPhaseTransition(
                f"Cannot move from '{self.phase.value}' to '{phase.value}'"
            )
        previous = self.phase
        self.phase = phase
        if phase in TERMINAL_PHASES:
            self.is_running = False
        return previous

    def start_iteration(self) -> bool:
        """Advance the iteration counter unless the cap is reached."""
        if self.iteration >= self.max_iterations:
            return False
        self.iteration += 1
        return True
