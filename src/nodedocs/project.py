"""Project configuration -- ``nodedocs.toml`` discovery and loading.

Precedence: CLI flag > environment > nodedocs.toml > default. Relative
paths in the file are resolved against the directory holding it.
"""

from __future__ import annotations

import os
import tomllib
from dataclasses import dataclass, field
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .errors import ConfigError
from .models import GenerationSettings, ToolConfig

CONFIG_NAME = "nodedocs.toml"
TOOL_ENV_VAR = "NODEDOCS_TOOL"

_TEMPLATE = """\
# nodedocs project configuration.

[docs]
title = {title}
# Dotted Python modules whose public classes/functions are documented.
native_modules = []
# Directories searched for *.node.json definition files.
content_paths = []
# Exact object names to leave out.
excluded = []
# Extra import roots (relative to this file) for native_modules.
python_path = []
output_dir = "docs"
clean_output = false

[tool]
executable = "nodedocs-render"
intermediate_dir = ".nodedocs/intermediate"
clean_intermediate = true
poll_interval = 0.1
"""


class _DocsTable(BaseModel):
    model_config = ConfigDict(extra="forbid")

    title: str = "Node Reference"
    native_modules: list[str] = Field(default_factory=list)
    content_paths: list[str] = Field(default_factory=list)
    excluded: list[str] = Field(default_factory=list)
    python_path: list[str] = Field(default_factory=list)
    output_dir: str = "docs"
    clean_output: bool = False


class _ToolTable(BaseModel):
    model_config = ConfigDict(extra="forbid")

    executable: str | None = None
    intermediate_dir: str | None = None
    clean_intermediate: bool | None = None
    poll_interval: float | None = None


@dataclass
class ProjectConfig:
    """Everything read from one project: run settings plus tool wiring."""

    root: Path
    settings: GenerationSettings
    tool: ToolConfig
    python_path: list[Path] = field(default_factory=list)


def find_project_root(start: Path) -> Path | None:
    """Walk up from *start* to the first directory holding ``nodedocs.toml``."""
    start = start.resolve()
    for d in [start, *start.parents]:
        if (d / CONFIG_NAME).is_file():
            return d
    return None


def _resolve(root: Path, value: str | Path) -> Path:
    p = Path(value).expanduser()
    return p if p.is_absolute() else root / p


def _read_toml(path: Path) -> dict:
    try:
        with path.open("rb") as f:
            return tomllib.load(f)
    except OSError as exc:
        raise ConfigError(f"Cannot read {path}: {exc}") from exc
    except tomllib.TOMLDecodeError as exc:
        raise ConfigError(f"Invalid TOML in {path}: {exc}") from exc


def load_config(root: Path) -> ProjectConfig:
    """Load ``<root>/nodedocs.toml``; a missing file yields pure defaults."""
    root = root.resolve()
    path = root / CONFIG_NAME
    data = _read_toml(path) if path.is_file() else {}

    unknown = set(data) - {"docs", "tool"}
    if unknown:
        raise ConfigError(f"Unknown table(s) in {path}: {', '.join(sorted(unknown))}")

    try:
        docs = _DocsTable.model_validate(data.get("docs", {}))
        tool_table = _ToolTable.model_validate(data.get("tool", {}))
    except ValidationError as exc:
        raise ConfigError(f"Invalid configuration in {path}:\n{exc}") from exc

    settings = GenerationSettings(
        documentation_title=docs.title,
        native_modules=docs.native_modules,
        content_paths=[str(_resolve(root, p)) for p in docs.content_paths],
        excluded_names=docs.excluded,
        output_directory=_resolve(root, docs.output_dir),
        clean_output=docs.clean_output,
    )

    tool_values: dict = {
        k: v for k, v in tool_table.model_dump().items() if v is not None
    }
    env_tool = os.environ.get(TOOL_ENV_VAR, "").strip()
    if env_tool:
        tool_values["executable"] = env_tool
    tool_values["intermediate_dir"] = _resolve(
        root, tool_values.get("intermediate_dir", ToolConfig().intermediate_dir)
    )
    try:
        tool = ToolConfig(**tool_values)
    except ValidationError as exc:
        raise ConfigError(f"Invalid [tool] table in {path}:\n{exc}") from exc

    return ProjectConfig(
        root=root,
        settings=settings,
        tool=tool,
        python_path=[_resolve(root, p) for p in docs.python_path],
    )


def init_project(root: Path, title: str = "Node Reference") -> Path:
    """Write a starter ``nodedocs.toml`` into *root*.

    Raises:
        FileExistsError: the project is already initialised.
    """
    root = root.resolve()
    path = root / CONFIG_NAME
    if path.exists():
        raise FileExistsError(path)
    root.mkdir(parents=True, exist_ok=True)
    escaped = title.replace("\\", "\\\\").replace('"', '\\"')
    path.write_text(_TEMPLATE.format(title=f'"{escaped}"'), encoding="utf-8")
    return path
