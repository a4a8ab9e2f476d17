"""Node docs generator -- the default object processor.

Each documented node produces one artifact group in the intermediate dir:

    nodes/<name>.json   doc fragment (``NodeDoc``)
    img/<name>.svg      node image drawn on the render surface

``finalize`` adds ``index.json`` (``DocManifest``) listing every group.
"""

from __future__ import annotations

import inspect
import logging
import time
from contextlib import ExitStack
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from ..models import DocManifest, ManifestEntry, NodeDefinition, NodeDoc, Pin, SourceObject
from .surface import RenderSurface

logger = logging.getLogger(__name__)

NODES_DIR = "nodes"
IMAGES_DIR = "img"
MANIFEST_NAME = "index.json"


class Unrenderable(Exception):
    """The object is not something we can draw as a node."""


def _format_annotation(annotation: Any) -> str:
    if annotation is inspect.Parameter.empty:
        return "any"
    if isinstance(annotation, str):
        return annotation
    return inspect.formatannotation(annotation)


def _first_paragraph(text: str | None) -> str:
    if not text:
        return ""
    return text.strip().split("\n\n", 1)[0].replace("\n", " ").strip()


def _signature_pins(target: Any, *, skip_self: bool) -> tuple[list[Pin], inspect.Signature]:
    try:
        sig = inspect.signature(target)
    except (TypeError, ValueError) as exc:
        raise Unrenderable(f"no introspectable signature ({exc})") from exc

    inputs: list[Pin] = []
    for i, param in enumerate(sig.parameters.values()):
        if skip_self and i == 0 and param.name in ("self", "cls"):
            continue
        if param.kind in (param.VAR_POSITIONAL, param.VAR_KEYWORD):
            prefix = "*" if param.kind is param.VAR_POSITIONAL else "**"
            inputs.append(Pin(name=prefix + param.name, type=_format_annotation(param.annotation)))
            continue
        default = None if param.default is param.empty else repr(param.default)
        inputs.append(
            Pin(name=param.name, type=_format_annotation(param.annotation), default=default)
        )
    return inputs, sig


def _return_pins(sig: inspect.Signature) -> list[Pin]:
    ret = sig.return_annotation
    if ret is inspect.Signature.empty or ret is None or ret == "None":
        return []
    return [Pin(name="return", type=_format_annotation(ret))]


def _native_doc(obj: SourceObject) -> NodeDoc:
    target = obj.target
    if inspect.isclass(target):
        if "__call__" in vars(target):
            inputs, sig = _signature_pins(target.__call__, skip_self=True)
            outputs = _return_pins(sig)
        else:
            inputs, _sig = _signature_pins(target, skip_self=False)
            outputs = [Pin(name="instance", type=target.__name__)]
    elif callable(target):
        inputs, sig = _signature_pins(target, skip_self=False)
        outputs = _return_pins(sig)
    else:
        raise Unrenderable(f"{type(target).__name__} is not a class or function")

    return NodeDoc(
        name=obj.name,
        title=getattr(target, "node_title", None) or obj.name,
        kind=obj.kind,
        source=f"{obj.origin}.{obj.name}",
        category=obj.origin,
        description=_first_paragraph(inspect.getdoc(target)),
        inputs=inputs,
        outputs=outputs,
    )


def _content_doc(obj: SourceObject) -> NodeDoc:
    path = Path(obj.target)
    try:
        definition = NodeDefinition.model_validate_json(path.read_text(encoding="utf-8"))
    except (OSError, ValidationError) as exc:
        raise Unrenderable(f"invalid definition file {path}: {exc}") from exc

    return NodeDoc(
        name=obj.name,
        title=definition.title or definition.name or obj.name,
        kind=obj.kind,
        source=path.as_posix(),
        category=definition.category,
        description=definition.description,
        inputs=definition.inputs,
        outputs=definition.outputs,
    )


class NodeDocsGenerator:
    """Default ``ObjectProcessor``: JSON doc fragments plus SVG node images."""

    def __init__(self) -> None:
        self.image_time = 0.0
        self.doc_time = 0.0
        self.title: str | None = None
        self._surface: RenderSurface | None = None
        self._resources: ExitStack | None = None
        self._entries: dict[str, ManifestEntry] = {}

    def init(self, title: str) -> bool:
        if not title or not title.strip():
            logger.error("Documentation title must not be empty")
            return False

        self.title = title.strip()
        self.image_time = 0.0
        self.doc_time = 0.0
        self._entries = {}
        self._resources = ExitStack()
        self._surface = self._resources.enter_context(RenderSurface())
        return True

    def process(self, obj: SourceObject, intermediate_dir: Path) -> int:
        if self._surface is None:
            raise RuntimeError("process() called outside init()..finalize()")

        if obj.name in self._entries:
            logger.warning(
                "Skipping %s from %s: a node named %r was already documented",
                obj.kind, obj.origin, obj.name,
            )
            return 0

        try:
            return self._render(obj, Path(intermediate_dir))
        except Unrenderable as exc:
            logger.warning("Skipping %s: %s", obj.name, exc)
        except Exception:
            logger.exception("Failed to document %s from %s", obj.name, obj.origin)
        return 0

    def _render(self, obj: SourceObject, intermediate_dir: Path) -> int:
        assert self._surface is not None

        start = time.perf_counter()
        try:
            doc = _content_doc(obj) if isinstance(obj.target, Path) else _native_doc(obj)
            doc_json = doc.model_dump_json(indent=2)
        finally:
            self.doc_time += time.perf_counter() - start

        start = time.perf_counter()
        try:
            svg = self._surface.draw(doc)
        finally:
            self.image_time += time.perf_counter() - start

        # Both artifacts exist in memory; write them as one group.
        img_rel = f"{IMAGES_DIR}/{obj.name}.svg"
        doc_rel = f"{NODES_DIR}/{obj.name}.json"
        img_path = intermediate_dir / img_rel
        doc_path = intermediate_dir / doc_rel
        start = time.perf_counter()
        try:
            img_path.parent.mkdir(parents=True, exist_ok=True)
            img_path.write_text(svg, encoding="utf-8")
            try:
                doc_path.parent.mkdir(parents=True, exist_ok=True)
                doc_path.write_text(doc_json, encoding="utf-8")
            except OSError:
                img_path.unlink(missing_ok=True)
                raise
        finally:
            self.doc_time += time.perf_counter() - start

        self._entries[obj.name] = ManifestEntry(
            name=doc.name,
            title=doc.title,
            category=doc.category,
            doc=doc_rel,
            image=img_rel,
        )
        return 1

    def finalize(self, intermediate_dir: Path) -> None:
        from .. import __version__

        try:
            if self.title is not None:
                manifest = DocManifest(
                    title=self.title,
                    generator=f"nodedocs {__version__}",
                    generated_at=datetime.now(timezone.utc).isoformat(),
                    nodes=[self._entries[k] for k in sorted(self._entries)],
                )
                root = Path(intermediate_dir)
                root.mkdir(parents=True, exist_ok=True)
                (root / MANIFEST_NAME).write_text(manifest.model_dump_json(indent=2), encoding="utf-8")
        finally:
            if self._resources is not None:
                self._resources.close()
            self._resources = None
            self._surface = None
