"""Exceptions raised by nodedocs."""

from __future__ import annotations


class NodeDocsError(Exception):
    """Base class for all nodedocs errors."""


class ConfigError(NodeDocsError):
    """The project configuration is missing, unreadable or invalid."""


class ToolLaunchError(NodeDocsError):
    """The external renderer could not be started at all."""

    def __init__(self, executable: str, reason: str) -> None:
        super().__init__(f"Could not launch {executable}: {reason}")
        self.executable = executable
        self.reason = reason
