"""Orchestrator -- drives one documentation run from settings to renderer."""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Mapping
from pathlib import Path

from .enumerators import CompositeEnumerator, ProviderFactory, get_provider, setup_providers
from .enumerators.content_path import KIND as CONTENT
from .enumerators.native_module import KIND as NATIVE
from .errors import ToolLaunchError
from .exclusion import ExclusionFilter
from .models import GenerationSettings, ProcessingTally, RunReport, RunState, ToolConfig
from .processor import NodeDocsGenerator, ObjectProcessor
from .store import IntermediateStore
from .supervisor import format_command_line, run_tool

logger = logging.getLogger(__name__)


def build_enumerators(
    settings: GenerationSettings,
    providers: Mapping[str, ProviderFactory] | None = None,
) -> list[CompositeEnumerator]:
    """Native-module group first, then content-path group."""
    setup_providers()

    def _factory(kind: str) -> ProviderFactory:
        if providers is not None and kind in providers:
            return providers[kind]
        factory = get_provider(kind)
        if factory is None:
            raise LookupError(f"no enumeration provider registered for {kind!r}")
        return factory

    return [
        CompositeEnumerator(_factory(NATIVE), settings.native_modules),
        CompositeEnumerator(_factory(CONTENT), settings.content_paths),
    ]


def build_tool_args(
    output_dir: Path,
    intermediate_dir: Path,
    title: str,
    clean_output: bool,
) -> list[str]:
    """Command-line arguments for the external renderer."""
    args = [
        f"-outputdir={output_dir}",
        "-fromintermediate",
        f"-intermediatedir={intermediate_dir}",
        f"-name={title}",
    ]
    if clean_output:
        args.append("-cleanoutput")
    return args


def _process_all(
    enumerators: list[CompositeEnumerator],
    exclusion: ExclusionFilter,
    processor: ObjectProcessor,
    intermediate_dir: Path,
    tally: ProcessingTally,
) -> None:
    for enumerator in enumerators:
        enum_start = time.perf_counter()
        for obj in enumerator:
            tally.enumeration_time += time.perf_counter() - enum_start
            tally.objects_enumerated += 1

            if exclusion.excludes(obj):
                tally.objects_excluded += 1
                logger.debug("Excluded %s (%s)", obj.name, obj.origin)
            else:
                proc_start = time.perf_counter()
                nodes = processor.process(obj, intermediate_dir)
                tally.processing_time += time.perf_counter() - proc_start
                tally.objects_processed += 1
                tally.node_count += nodes

            enum_start = time.perf_counter()
        tally.enumeration_time += time.perf_counter() - enum_start


def _invoke_tool(
    report: RunReport,
    settings: GenerationSettings,
    config: ToolConfig,
    cancel: threading.Event | None,
) -> None:
    args = build_tool_args(
        settings.output_directory,
        report.intermediate_dir,
        settings.documentation_title,
        settings.clean_output,
    )
    label = Path(config.executable).stem
    logger.info("Running %s", format_command_line(config.executable, args))

    try:
        result = run_tool(
            config.executable,
            args,
            poll_interval=config.poll_interval,
            cancel=cancel,
            label=label,
        )
    except ToolLaunchError as exc:
        logger.critical("%s; intermediate docs left in %s", exc, report.intermediate_dir)
        report.tool_error = str(exc)
        return

    report.tool = result
    if result.cancelled:
        logger.warning("%s cancelled after %.3fs.", label, result.duration_seconds)
    elif result.exit_code != 0:
        logger.error("%s failed (exit code %d), see above output.", label, result.exit_code)
    else:
        logger.info("%s finished in %.3fs.", label, result.duration_seconds)


def generate_docs(
    settings: GenerationSettings,
    *,
    config: ToolConfig | None = None,
    processor: ObjectProcessor | None = None,
    providers: Mapping[str, ProviderFactory] | None = None,
    cancel: threading.Event | None = None,
) -> RunReport:
    """Full pipeline: enumerate -> filter -> process -> finalize -> render.

    Blocks until the run is ``done`` or ``aborted``. Per-object and
    renderer failures are logged and reflected in the returned report;
    only programming errors propagate.
    """
    if config is None:
        config = ToolConfig()
    if processor is None:
        processor = NodeDocsGenerator()

    store = IntermediateStore(config.intermediate_dir)
    report = RunReport(intermediate_dir=store.root)
    report.enter(RunState.idle)

    # 1. Enumerators
    enumerators = build_enumerators(settings, providers)

    # 2. Processor init
    report.enter(RunState.initializing)
    if not processor.init(settings.documentation_title):
        logger.error("Failed to initialize doc generator, aborting.")
        report.enter(RunState.aborted)
        return report

    tally = report.tally
    try:
        # 3. Intermediate store
        intermediate_dir = store.prepare(clean=config.clean_intermediate)

        # 4. Exclusions
        exclusion = ExclusionFilter(settings.excluded_names)

        # 5. Enumerate and process
        report.enter(RunState.processing)
        _process_all(enumerators, exclusion, processor, intermediate_dir, tally)
    finally:
        # 6. Finalize, exactly once
        report.enter(RunState.finalizing)
        processor.finalize(store.root)

    tally.image_time = processor.image_time
    tally.doc_time = processor.doc_time

    # 7. Timings
    logger.info("Intermediate doc gen timing:")
    logger.info("Enumeration: %.3fs", tally.enumeration_time)
    logger.info(
        "Processing: %.3fs (Image gen: %.3fs, Doc gen: %.3fs)",
        tally.processing_time, tally.image_time, tally.doc_time,
    )
    if tally.objects_excluded:
        logger.info("Excluded %d object(s).", tally.objects_excluded)

    # 8. External renderer
    if tally.node_count > 0:
        logger.info("Intermediate docs generated for %d nodes.", tally.node_count)
        report.enter(RunState.invoking_tool)
        _invoke_tool(report, settings, config, cancel)
    else:
        logger.warning("No nodes documented!")

    report.enter(RunState.done)
    return report
