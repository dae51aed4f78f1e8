"""Aggregation entrypoint: resolve, parse into one artifact, convert."""

from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass, field
import logging
from pathlib import Path
from typing import Callable, Iterator, TextIO

from docmerge.converters.base import ConversionError, DocumentConverter
from docmerge.document.models import DEFAULT_OUTPUT_NAME, DocumentModel
from docmerge.document.modules import FileSet, ModuleRegistry
from docmerge.errors import AggregationError, ArtifactIOError, ParseError, RenderError
from docmerge.parsers.base import ParserRegistry
from docmerge.resolution import Resolution, ResolvedReference, SkippedReference, TocResolver
from docmerge.sink.aggregate_sink import AggregateSink
from docmerge.sink.base import Sink

logger = logging.getLogger(__name__)

ARTIFACT_EXTENSION = "xhtml"

SinkFactory = Callable[[TextIO, DocumentModel], Sink]


@dataclass(slots=True)
class RenderResult:
    """Locations and contents of a completed aggregation run."""

    artifact_path: Path
    output_path: Path
    documents: list[str] = field(default_factory=list)
    skipped: list[SkippedReference] = field(default_factory=list)

    def to_dict(self) -> dict[str, object]:
        return {
            "artifact": str(self.artifact_path),
            "output": str(self.output_path),
            "documents": list(self.documents),
            "skipped": [entry.to_dict() for entry in self.skipped],
        }


class Aggregator:
    """Merge the documents of a file set or TOC into one converted output."""

    def __init__(
        self,
        registry: ModuleRegistry,
        parsers: ParserRegistry,
        converter: DocumentConverter,
        *,
        sink_factory: SinkFactory = AggregateSink,
        keep_partial_artifact: bool = False,
    ) -> None:
        self._registry = registry
        self._parsers = parsers
        self._converter = converter
        self._resolver = TocResolver(registry)
        self._sink_factory = sink_factory
        self._keep_partial_artifact = keep_partial_artifact

        missing = [parser_id for parser_id in registry.parser_ids() if parser_id not in parsers]
        if missing:
            logger.warning("No parser registered for module parser id(s): %s", ", ".join(missing))

    @property
    def registry(self) -> ModuleRegistry:
        return self._registry

    def run(self, file_set: FileSet, document_model: DocumentModel, output_dir: str | Path) -> RenderResult:
        if document_model.output_name is None:
            logger.info(
                "No outputName is defined in the document descriptor. Using '%s.%s'",
                DEFAULT_OUTPUT_NAME,
                self._converter.extension,
            )
        model = document_model.normalized()

        output_root = Path(output_dir)
        artifact_path = output_root / f"{model.output_name}.{ARTIFACT_EXTENSION}"
        output_path = output_root / f"{model.output_name}.{self._converter.extension}"
        self._ensure_parent(artifact_path)
        self._ensure_parent(output_path)

        resolution = self._resolve(model, file_set)
        try:
            documents = self._write_artifact(artifact_path, resolution, model)
        except BaseException:
            self._discard_partial(artifact_path)
            raise

        self._convert(artifact_path, output_path)
        return RenderResult(
            artifact_path=artifact_path,
            output_path=output_path,
            documents=documents,
            skipped=resolution.skipped,
        )

    def _resolve(self, model: DocumentModel, file_set: FileSet) -> Resolution:
        try:
            return self._resolver.resolve(model, file_set)
        except OSError as exc:
            raise ArtifactIOError(
                f"Failed to look up source documents: {exc}",
                source=self._registry.base_dir,
            ) from exc

    def _write_artifact(self, artifact_path: Path, resolution: Resolution, model: DocumentModel) -> list[str]:
        with self._open_artifact(artifact_path) as writer:
            sink = self._sink_factory(writer, model)
            sink.begin()
            sink.cover_page()
            sink.toc(
                [(reference.title or reference.document_name, reference.document_name) for reference in resolution]
            )

            documents: list[str] = []
            for reference in resolution:
                self._parse_reference(reference, sink)
                documents.append(reference.document_name)

            sink.end()
        return documents

    def _parse_reference(self, reference: ResolvedReference, sink: Sink) -> None:
        sink.set_document_name(reference.document_name)
        if reference.title:
            sink.set_document_title(reference.title)

        logger.debug("Parsing file %s", reference.source_path)
        parser = self._parsers.get(reference.module.parser_id)
        try:
            parser.parse(reference.source_path, sink)
        except AggregationError:
            raise
        except Exception as exc:
            raise ParseError(str(exc) or type(exc).__name__, source=reference.source_path) from exc

    @contextmanager
    def _open_artifact(self, artifact_path: Path) -> Iterator[TextIO]:
        """Open the artifact for writing; the handle is closed on every exit path."""

        try:
            handle = artifact_path.open("w", encoding="utf-8")
        except OSError as exc:
            raise ArtifactIOError(f"Failed to open artifact: {exc}", source=artifact_path) from exc

        failed = False
        try:
            yield handle
        except OSError as exc:
            failed = True
            raise ArtifactIOError(f"Failed to write artifact: {exc}", source=artifact_path) from exc
        except BaseException:
            failed = True
            raise
        finally:
            try:
                handle.close()
            except OSError as exc:
                # A close failure never replaces the error that aborted the run.
                if failed:
                    logger.warning("Failed to close artifact %s", artifact_path, exc_info=True)
                else:
                    raise ArtifactIOError(f"Failed to close artifact: {exc}", source=artifact_path) from exc

    def _convert(self, artifact_path: Path, output_path: Path) -> None:
        logger.debug("Generating: %s", output_path)
        try:
            self._converter.convert(artifact_path, output_path)
        except ConversionError as exc:
            if exc.position is not None:
                source = artifact_path.resolve()
            else:
                source = artifact_path
            raise RenderError(
                exc.message,
                source=source,
                position=exc.position,
                format_name=self._converter.format_name,
            ) from exc

    def _ensure_parent(self, path: Path) -> None:
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise ArtifactIOError(f"Failed to create directory: {exc}", source=path.parent) from exc

    def _discard_partial(self, artifact_path: Path) -> None:
        if self._keep_partial_artifact:
            logger.info("Keeping partial artifact %s", artifact_path)
            return
        try:
            artifact_path.unlink(missing_ok=True)
        except OSError:
            logger.warning("Failed to remove partial artifact %s", artifact_path, exc_info=True)
