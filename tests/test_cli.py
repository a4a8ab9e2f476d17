"""CLI tests using Typer's runner."""

from __future__ import annotations

import json
from pathlib import Path

import pytest
from typer.testing import CliRunner

from nodedocs import cli, orchestrator
from nodedocs.models import ChildProcessResult
from nodedocs.project import CONFIG_NAME, TOOL_ENV_VAR

runner = CliRunner()


@pytest.fixture(autouse=True)
def _isolate(monkeypatch):
    monkeypatch.delenv(TOOL_ENV_VAR, raising=False)


def _project(tmp_path: Path, names: tuple[str, ...] = ("add", "sub")) -> Path:
    defs = tmp_path / "defs"
    defs.mkdir()
    for name in names:
        (defs / f"{name}.node.json").write_text(json.dumps({"title": name}), encoding="utf-8")
    (tmp_path / CONFIG_NAME).write_text(
        '[docs]\ntitle = "CLI Nodes"\ncontent_paths = ["defs"]\nexcluded = ["sub"]\n',
        encoding="utf-8",
    )
    return tmp_path


def test_init_then_config(tmp_path: Path) -> None:
    result = runner.invoke(cli.app, ["init", str(tmp_path), "--title", "Demo"])
    assert result.exit_code == 0
    assert (tmp_path / CONFIG_NAME).is_file()

    again = runner.invoke(cli.app, ["init", str(tmp_path)])
    assert again.exit_code == 0
    assert "Already initialised" in again.output

    shown = runner.invoke(cli.app, ["config", str(tmp_path)])
    assert shown.exit_code == 0
    assert "docs.documentation_title = 'Demo'" in shown.output


def test_list_marks_excluded(tmp_path: Path) -> None:
    result = runner.invoke(cli.app, ["list", str(_project(tmp_path))])
    assert result.exit_code == 0
    assert "add" in result.output
    assert "excluded" in result.output


def test_generate_runs_tool(tmp_path: Path, monkeypatch) -> None:
    calls: list[list[str]] = []

    def _fake_run_tool(executable, args, **_kwargs):
        calls.append([executable, *args])
        return ChildProcessResult(exit_code=0)

    monkeypatch.setattr(orchestrator, "run_tool", _fake_run_tool)
    root = _project(tmp_path)
    result = runner.invoke(cli.app, ["generate", str(root), "--tool", "my-renderer", "--clean-output"])

    assert result.exit_code == 0, result.output
    assert "Done!" in result.output
    assert "3 intermediate file(s) written." in result.output
    assert len(calls) == 1
    assert calls[0][0] == "my-renderer"
    assert "-name=CLI Nodes" in calls[0]
    assert calls[0][-1] == "-cleanoutput"
    assert (root / ".nodedocs" / "intermediate" / "nodes" / "add.json").is_file()
    assert not (root / ".nodedocs" / "intermediate" / "nodes" / "sub.json").exists()


def test_generate_flag_overrides(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.setattr(
        orchestrator, "run_tool",
        lambda *_a, **_k: ChildProcessResult(exit_code=0),
    )
    root = _project(tmp_path)
    result = runner.invoke(
        cli.app, ["generate", str(root), "--exclude", "add", "--exclude", "sub"],
    )
    assert result.exit_code == 0, result.output
    assert "0 node(s) documented" in result.output


def test_generate_reports_missing_renderer(tmp_path: Path) -> None:
    root = _project(tmp_path)
    result = runner.invoke(cli.app, ["generate", str(root), "--tool", str(tmp_path / "missing")])
    assert result.exit_code == 0
    assert "Renderer not run" in result.output


def test_generate_aborts_on_empty_title(tmp_path: Path) -> None:
    root = _project(tmp_path)
    result = runner.invoke(cli.app, ["generate", str(root), "--title", " "])
    assert result.exit_code == 1
    assert "Aborted" in result.output


def test_bad_config_exits_nonzero(tmp_path: Path) -> None:
    (tmp_path / CONFIG_NAME).write_text("[docs]\nnope = 1\n", encoding="utf-8")
    result = runner.invoke(cli.app, ["config", str(tmp_path)])
    assert result.exit_code == 1
    assert "Error" in result.output
