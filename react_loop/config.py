import dataclasses
from dataclasses import dataclass
from typing import Any

from react_loop.tools import ToolDescriptor, to_descriptors

DEFAULT_MAX_ITERATIONS = 10


@dataclass(frozen=True)
class AgentConfig:
    max_iterations: int = DEFAULT_MAX_ITERATIONS
    tools: tuple[ToolDescriptor, ...] = ()
    enable_streaming: bool = True
    verbose: bool = True

    def __post_init__(self):
        if not isinstance(self.max_iterations, int) or self.max_iterations < 1:
            raise ValueError(
                f"max_iterations must be a positive integer, got {self.max_iterations!r}"
            )
        if not isinstance(self.tools, tuple):
            object.__setattr__(self, "tools", to_descriptors(self.tools))

    def merge(self, **changes: Any) -> "AgentConfig":
        """Return a copy with ``changes`` applied on top of this config."""
        unknown = set(changes) - {f.name for f in dataclasses.fields(self)}
        if unknown:
            raise TypeError(f"Unknown config options: {sorted(unknown)}")
        return dataclasses.replace(self, **changes)
