"""Data models for the nodedocs generation pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


# ---------------------------------------------------------------------------
# Run inputs
# ---------------------------------------------------------------------------

class GenerationSettings(BaseModel):
    """Immutable input bundle for a single generation run."""

    model_config = ConfigDict(frozen=True)

    documentation_title: str
    native_modules: list[str] = Field(default_factory=list)
    """Dotted module names, walked in order."""

    content_paths: list[str] = Field(default_factory=list)
    """Root directories holding ``*.node.json`` definition files."""

    excluded_names: list[str] = Field(default_factory=list)
    output_directory: Path = Path("docs")
    clean_output: bool = False


class ToolConfig(BaseModel):
    """Where the external renderer lives and how it is driven."""

    executable: str = "nodedocs-render"
    intermediate_dir: Path = Path(".nodedocs/intermediate")
    clean_intermediate: bool = True
    poll_interval: float = Field(default=0.1, gt=0)


# ---------------------------------------------------------------------------
# Enumeration
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class SourceObject:
    """Handle to one discoverable graph-node definition.

    ``target`` is whatever the provider found (a class, a function, a
    definition file path); the pipeline never looks inside it.
    """

    name: str
    kind: str
    origin: str
    target: Any = field(default=None, compare=False, repr=False)


# ---------------------------------------------------------------------------
# Doc fragments (written by the processor, consumed by the external tool)
# ---------------------------------------------------------------------------

class Pin(BaseModel):
    """An input or output slot on a graph node."""

    name: str
    type: str = "any"
    default: str | None = None
    description: str = ""


class NodeDefinition(BaseModel):
    """Schema of a ``*.node.json`` content file."""

    name: str | None = None
    title: str | None = None
    description: str = ""
    category: str = ""
    inputs: list[Pin] = Field(default_factory=list)
    outputs: list[Pin] = Field(default_factory=list)


class NodeDoc(BaseModel):
    """Doc fragment for one documented node."""

    name: str
    title: str
    kind: str
    source: str
    category: str = ""
    description: str = ""
    inputs: list[Pin] = Field(default_factory=list)
    outputs: list[Pin] = Field(default_factory=list)


class ManifestEntry(BaseModel):
    name: str
    title: str
    category: str = ""
    doc: str      # path relative to the intermediate dir
    image: str    # path relative to the intermediate dir


class DocManifest(BaseModel):
    """Aggregate index written at finalize time."""

    title: str
    generator: str
    generated_at: str
    nodes: list[ManifestEntry] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Run bookkeeping
# ---------------------------------------------------------------------------

class RunState(Enum):
    idle = "idle"
    initializing = "initializing"
    processing = "processing"
    finalizing = "finalizing"
    invoking_tool = "invoking_tool"
    done = "done"
    aborted = "aborted"


@dataclass
class ProcessingTally:
    """Counters and durations accumulated over one run (seconds)."""

    objects_enumerated: int = 0
    objects_excluded: int = 0
    objects_processed: int = 0
    node_count: int = 0
    enumeration_time: float = 0.0
    processing_time: float = 0.0
    image_time: float = 0.0
    doc_time: float = 0.0


@dataclass(frozen=True)
class ChildProcessResult:
    exit_code: int
    drained: bool = True
    cancelled: bool = False
    duration_seconds: float = 0.0
    lines: tuple[str, ...] = ()

    @property
    def ok(self) -> bool:
        return self.exit_code == 0 and not self.cancelled


@dataclass
class RunReport:
    """What ``generate_docs`` hands back to its caller."""

    intermediate_dir: Path
    state: RunState = RunState.idle
    tally: ProcessingTally = field(default_factory=ProcessingTally)
    tool: ChildProcessResult | None = None
    tool_error: str | None = None
    transitions: list[RunState] = field(default_factory=list)

    def enter(self, state: RunState) -> None:
        self.state = state
        self.transitions.append(state)
