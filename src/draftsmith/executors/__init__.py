"""
Plan executors.

Provider executors need their SDK installed; they are exported only when it
is available.
"""

from draftsmith.executors.base import Executor, StreamingExecutor, StreamUsage

__all__ = ["Executor", "StreamingExecutor", "StreamUsage"]

# Optional imports for specific providers
try:
    from draftsmith.executors.anthropic import AnthropicExecutor  # noqa: F401

    __all__.append("AnthropicExecutor")
except ImportError:
    pass

try:
    from draftsmith.executors.openai import OpenAIExecutor  # noqa: F401

    __all__.append("OpenAIExecutor")
except ImportError:
    pass
