"""Tests for the generation run: enumerate, filter, process, finalize, render."""

from __future__ import annotations

import json
import logging
import sys
from pathlib import Path

import pytest

from nodedocs import orchestrator
from nodedocs.errors import ToolLaunchError
from nodedocs.models import (
    ChildProcessResult,
    GenerationSettings,
    RunState,
    SourceObject,
    ToolConfig,
)
from nodedocs.orchestrator import build_tool_args, generate_docs
from nodedocs.store import IntermediateStore


class CountingProcessor:
    """Stub processor that records every lifecycle call."""

    def __init__(self, nodes_per_object: int = 1, init_ok: bool = True) -> None:
        self.nodes_per_object = nodes_per_object
        self.init_ok = init_ok
        self.image_time = 0.25
        self.doc_time = 0.5
        self.calls: list[tuple[str, str]] = []

    @property
    def processed(self) -> list[str]:
        return [arg for call, arg in self.calls if call == "process"]

    def init(self, title: str) -> bool:
        self.calls.append(("init", title))
        return self.init_ok

    def process(self, obj: SourceObject, intermediate_dir: Path) -> int:
        self.calls.append(("process", obj.name))
        return self.nodes_per_object

    def finalize(self, intermediate_dir: Path) -> None:
        self.calls.append(("finalize", str(intermediate_dir)))


def _providers(native: dict[str, list[str]] | None = None, content: dict[str, list[str]] | None = None):
    def _factory(catalogue: dict[str, list[str]], kind: str):
        def make(identifier: str):
            return iter([
                SourceObject(name=n, kind=kind, origin=identifier)
                for n in catalogue.get(identifier, [])
            ])
        return make

    return {
        "native": _factory(native or {}, "native"),
        "content": _factory(content or {}, "content"),
    }


@pytest.fixture
def tool_calls(monkeypatch) -> list[tuple[str, list[str]]]:
    """Replace the renderer with a recorder that reports success."""
    calls: list[tuple[str, list[str]]] = []

    def _fake_run_tool(executable, args, **_kwargs):
        calls.append((executable, list(args)))
        return ChildProcessResult(exit_code=0, lines=("ok",))

    monkeypatch.setattr(orchestrator, "run_tool", _fake_run_tool)
    return calls


def _config(tmp_path: Path, **overrides) -> ToolConfig:
    values = {"executable": "renderer", "intermediate_dir": tmp_path / "intermediate"}
    values.update(overrides)
    return ToolConfig(**values)


def _settings(tmp_path: Path, **overrides) -> GenerationSettings:
    values = {"documentation_title": "Nodes", "output_directory": tmp_path / "out"}
    values.update(overrides)
    return GenerationSettings(**values)


class TestRun:
    def test_empty_settings_never_invoke_tool(self, tmp_path: Path, tool_calls, caplog):
        proc = CountingProcessor()
        with caplog.at_level(logging.WARNING):
            report = generate_docs(
                _settings(tmp_path), config=_config(tmp_path), processor=proc,
                providers=_providers(),
            )
        assert report.state is RunState.done
        assert report.tally.node_count == 0
        assert report.tool is None
        assert tool_calls == []
        assert "No nodes documented!" in caplog.text

    def test_excluded_objects_never_processed(self, tmp_path: Path, tool_calls):
        proc = CountingProcessor()
        settings = _settings(
            tmp_path, native_modules=["m"], content_paths=["c"], excluded_names=["B", "D"],
        )
        report = generate_docs(
            settings, config=_config(tmp_path), processor=proc,
            providers=_providers(native={"m": ["A", "B"]}, content={"c": ["C", "D"]}),
        )
        assert proc.processed == ["A", "C"]
        assert report.tally.objects_enumerated == 4
        assert report.tally.objects_excluded == 2
        assert report.tally.objects_processed == 2
        assert report.tally.node_count == 2

    def test_native_group_before_content_group(self, tmp_path: Path, tool_calls):
        proc = CountingProcessor()
        settings = _settings(tmp_path, native_modules=["m1", "m2"], content_paths=["c1"])
        generate_docs(
            settings, config=_config(tmp_path), processor=proc,
            providers=_providers(native={"m1": ["A", "B"], "m2": ["C"]}, content={"c1": ["D"]}),
        )
        assert proc.processed == ["A", "B", "C", "D"]

    def test_finalize_once_after_all_process_calls(self, tmp_path: Path, tool_calls):
        proc = CountingProcessor()
        settings = _settings(tmp_path, native_modules=["m"])
        generate_docs(
            settings, config=_config(tmp_path), processor=proc,
            providers=_providers(native={"m": ["A", "B", "C"]}),
        )
        names = [call for call, _ in proc.calls]
        assert names == ["init", "process", "process", "process", "finalize"]

    def test_finalize_once_with_zero_objects(self, tmp_path: Path, tool_calls):
        proc = CountingProcessor()
        settings = _settings(tmp_path, native_modules=["m"], excluded_names=["A"])
        generate_docs(
            settings, config=_config(tmp_path), processor=proc,
            providers=_providers(native={"m": ["A"]}),
        )
        assert [call for call, _ in proc.calls] == ["init", "finalize"]

    def test_finalize_runs_even_if_processing_raises(self, tmp_path: Path, tool_calls):
        class Exploding(CountingProcessor):
            def process(self, obj, intermediate_dir):
                raise RuntimeError("programming error")

        proc = Exploding()
        with pytest.raises(RuntimeError):
            generate_docs(
                _settings(tmp_path, native_modules=["m"]), config=_config(tmp_path),
                processor=proc, providers=_providers(native={"m": ["A"]}),
            )
        assert proc.calls[-1][0] == "finalize"

    def test_init_failure_aborts(self, tmp_path: Path, tool_calls, caplog):
        proc = CountingProcessor(init_ok=False)
        with caplog.at_level(logging.ERROR):
            report = generate_docs(
                _settings(tmp_path, native_modules=["m"]), config=_config(tmp_path),
                processor=proc, providers=_providers(native={"m": ["A"]}),
            )
        assert report.state is RunState.aborted
        assert proc.calls == [("init", "Nodes")]
        assert tool_calls == []
        assert not (tmp_path / "intermediate").exists()
        assert "Failed to initialize doc generator, aborting." in caplog.text

    def test_state_transitions(self, tmp_path: Path, tool_calls):
        report = generate_docs(
            _settings(tmp_path, native_modules=["m"]), config=_config(tmp_path),
            processor=CountingProcessor(), providers=_providers(native={"m": ["A"]}),
        )
        assert report.transitions == [
            RunState.idle,
            RunState.initializing,
            RunState.processing,
            RunState.finalizing,
            RunState.invoking_tool,
            RunState.done,
        ]

    def test_timings_reported(self, tmp_path: Path, tool_calls, caplog):
        with caplog.at_level(logging.INFO, logger="nodedocs.orchestrator"):
            report = generate_docs(
                _settings(tmp_path, native_modules=["m"]), config=_config(tmp_path),
                processor=CountingProcessor(), providers=_providers(native={"m": ["A"]}),
            )
        assert report.tally.image_time == 0.25
        assert report.tally.doc_time == 0.5
        assert report.tally.enumeration_time >= 0
        assert "Image gen: 0.250s, Doc gen: 0.500s" in caplog.text


class TestExternalTool:
    def test_end_to_end_two_nodes(self, tmp_path: Path, tool_calls):
        proc = CountingProcessor()
        settings = _settings(tmp_path, native_modules=["nodes.math"])
        config = _config(tmp_path)
        report = generate_docs(
            settings, config=config, processor=proc,
            providers=_providers(native={"nodes.math": ["Add", "Multiply"]}),
        )
        assert report.tally.node_count == 2
        assert report.state is RunState.done
        assert tool_calls == [(
            "renderer",
            [
                f"-outputdir={tmp_path / 'out'}",
                "-fromintermediate",
                f"-intermediatedir={tmp_path / 'intermediate'}",
                "-name=Nodes",
            ],
        )]
        assert report.tool is not None and report.tool.ok

    def test_module_with_failing_lazy_attribute(self, tmp_path: Path, monkeypatch, tool_calls):
        site = tmp_path / "site"
        site.mkdir()
        (site / "nd_lazy_nodes.py").write_text(
            "def node_a(x: int) -> int:\n"
            "    return x\n\n\n"
            "def __dir__():\n"
            "    return ['node_a', 'optional_thing']\n\n\n"
            "def __getattr__(name):\n"
            "    raise ImportError('optional dependency missing')\n",
            encoding="utf-8",
        )
        monkeypatch.syspath_prepend(str(site))

        settings = _settings(tmp_path, native_modules=["nd_lazy_nodes"])
        report = generate_docs(settings, config=_config(tmp_path))
        assert report.state is RunState.done
        assert report.tally.node_count == 1
        assert (tmp_path / "intermediate" / "nodes" / "node_a.json").is_file()
        assert len(tool_calls) == 1

    def test_nonzero_exit_is_not_fatal(self, tmp_path: Path, monkeypatch, caplog):
        monkeypatch.setattr(
            orchestrator, "run_tool",
            lambda *_a, **_k: ChildProcessResult(exit_code=2),
        )
        with caplog.at_level(logging.ERROR):
            report = generate_docs(
                _settings(tmp_path, native_modules=["m"]), config=_config(tmp_path),
                processor=CountingProcessor(), providers=_providers(native={"m": ["A"]}),
            )
        assert report.state is RunState.done
        assert report.tool is not None and report.tool.exit_code == 2
        assert report.tool_error is None
        records = [r for r in caplog.records if "see above output" in r.getMessage()]
        assert records and records[0].levelno == logging.ERROR

    def test_spawn_failure_is_more_severe(self, tmp_path: Path, monkeypatch, caplog):
        def _fail(executable, *_a, **_k):
            raise ToolLaunchError(executable, "No such file or directory")

        monkeypatch.setattr(orchestrator, "run_tool", _fail)
        with caplog.at_level(logging.ERROR):
            report = generate_docs(
                _settings(tmp_path, native_modules=["m"]), config=_config(tmp_path),
                processor=CountingProcessor(), providers=_providers(native={"m": ["A"]}),
            )
        assert report.state is RunState.done
        assert report.tool is None
        assert "Could not launch renderer" in report.tool_error
        assert any(r.levelno == logging.CRITICAL for r in caplog.records)

    def test_clean_output_flag(self):
        args = build_tool_args(Path("out"), Path("tmp"), "Docs", clean_output=True)
        assert args[-1] == "-cleanoutput"
        assert "-cleanoutput" not in build_tool_args(Path("out"), Path("tmp"), "Docs", clean_output=False)

    @pytest.mark.skipif(sys.platform == "win32", reason="uses a shebang script")
    def test_real_renderer_process(self, tmp_path: Path):
        script = tmp_path / "fake-renderer"
        script.write_text(
            f"#!{sys.executable}\n"
            "import json, sys\n"
            "opts = dict(a.lstrip('-').split('=', 1) for a in sys.argv[1:] if '=' in a)\n"
            "index = json.load(open(opts['intermediatedir'] + '/index.json'))\n"
            "print('title:', index['title'])\n"
            "print('nodes:', len(index['nodes']))\n",
            encoding="utf-8",
        )
        script.chmod(0o755)
        defs = tmp_path / "defs"
        defs.mkdir()
        for name in ("add", "sub"):
            (defs / f"{name}.node.json").write_text(json.dumps({"title": name.upper()}), encoding="utf-8")

        report = generate_docs(
            _settings(tmp_path, content_paths=[str(defs)], documentation_title="Math Nodes"),
            config=_config(tmp_path, executable=str(script), poll_interval=0.01),
        )
        assert report.tally.node_count == 2
        assert report.tool is not None
        assert report.tool.exit_code == 0
        assert report.tool.lines == ("title: Math Nodes", "nodes: 2")


class TestIntermediateStore:
    def test_clean_runs_are_idempotent(self, tmp_path: Path, tool_calls):
        defs = tmp_path / "defs"
        defs.mkdir()
        for name in ("add", "branch"):
            (defs / f"{name}.node.json").write_text("{}", encoding="utf-8")
        settings = _settings(tmp_path, content_paths=[str(defs)])
        config = _config(tmp_path)
        store = IntermediateStore(config.intermediate_dir)

        generate_docs(settings, config=config)
        first = store.artifacts()
        (config.intermediate_dir / "stale.txt").write_text("left over", encoding="utf-8")
        generate_docs(settings, config=config)
        second = store.artifacts()

        assert first == second == [
            "img/add.svg",
            "img/branch.svg",
            "index.json",
            "nodes/add.json",
            "nodes/branch.json",
        ]

    def test_reuse_keeps_existing_files(self, tmp_path: Path, tool_calls):
        config = _config(tmp_path, clean_intermediate=False)
        config.intermediate_dir.mkdir(parents=True)
        (config.intermediate_dir / "keep.txt").write_text("x", encoding="utf-8")
        generate_docs(_settings(tmp_path), config=config, processor=CountingProcessor(), providers=_providers())
        assert (config.intermediate_dir / "keep.txt").exists()

    def test_store_not_deleted_after_run(self, tmp_path: Path, tool_calls):
        config = _config(tmp_path)
        report = generate_docs(
            _settings(tmp_path), config=config, processor=CountingProcessor(), providers=_providers(),
        )
        assert report.intermediate_dir == config.intermediate_dir
        assert config.intermediate_dir.is_dir()
