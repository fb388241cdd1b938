"""Model adaptors for react-loop.

This module provides implementations of ModelAdaptor for various LLM providers.
The agent never imports them; callers pick one and pass it in.
"""

from react_loop.adaptors.openai import OpenAIAdaptor

__all__ = ["OpenAIAdaptor"]

# Conditional imports for optional SDK-based adaptors
try:
    from react_loop.adaptors.anthropic import AnthropicAdaptor

    __all__.append("AnthropicAdaptor")
except ImportError:
    pass

try:
    from react_loop.adaptors.gemini import GeminiAdaptor

    __all__.append("GeminiAdaptor")
except ImportError:
    pass
