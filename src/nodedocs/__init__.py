"""nodedocs - Reference documentation for graph node definitions."""

from .models import (  # noqa: F401 -- public re-exports
    ChildProcessResult,
    GenerationSettings,
    ProcessingTally,
    RunReport,
    RunState,
    SourceObject,
    ToolConfig,
)
from .errors import ConfigError, NodeDocsError, ToolLaunchError
from .orchestrator import generate_docs

__version__ = "0.1.0"

__all__ = [
    "generate_docs",
    "ChildProcessResult",
    "ConfigError",
    "GenerationSettings",
    "NodeDocsError",
    "ProcessingTally",
    "RunReport",
    "RunState",
    "SourceObject",
    "ToolConfig",
    "ToolLaunchError",
]
