"""Ordered document references from an explicit TOC or the supplied file set."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
import logging
from pathlib import Path

from docmerge.document.models import DocumentModel, TocItem, normalize_reference
from docmerge.document.modules import FileSet, ModuleRegistry, SourceModule

logger = logging.getLogger(__name__)


class SkipReason(str, Enum):
    NO_REF = "no-ref"
    NO_SOURCE = "no-source"
    NO_DIRECTORY = "no-directory"


@dataclass(frozen=True, slots=True)
class SkipPolicy:
    level: int
    message: str


# Every skip is non-fatal; this table is the only place that decides how each
# one is reported.
SKIP_POLICY: dict[SkipReason, SkipPolicy] = {
    SkipReason.NO_REF: SkipPolicy(logging.INFO, "No ref defined for TOC item '%s', skipping"),
    SkipReason.NO_SOURCE: SkipPolicy(logging.INFO, "No source file found for TOC item '%s' (ref=%s), skipping"),
    SkipReason.NO_DIRECTORY: SkipPolicy(logging.DEBUG, "Module directory %s does not exist, skipping module"),
}


@dataclass(frozen=True, slots=True)
class ResolvedReference:
    """A concrete source file scheduled for parsing."""

    document_name: str
    source_path: Path
    module: SourceModule
    title: str | None = None


@dataclass(frozen=True, slots=True)
class SkippedReference:
    name: str
    ref: str | None
    reason: SkipReason

    def to_dict(self) -> dict[str, str | None]:
        return {"name": self.name, "ref": self.ref, "reason": self.reason.value}


@dataclass(slots=True)
class Resolution:
    references: list[ResolvedReference] = field(default_factory=list)
    skipped: list[SkippedReference] = field(default_factory=list)

    def __iter__(self):
        return iter(self.references)

    def __len__(self) -> int:
        return len(self.references)


def _report(reason: SkipReason, *args: object) -> None:
    policy = SKIP_POLICY[reason]
    logger.log(policy.level, policy.message, *args)


class TocResolver:
    """Turn a document model and file set into ordered references."""

    def __init__(self, registry: ModuleRegistry) -> None:
        self._registry = registry

    def resolve(self, document_model: DocumentModel, file_set: FileSet) -> Resolution:
        if not document_model.has_toc:
            logger.info("No TOC is defined in the document descriptor. Merging all documents.")
            return self._resolve_file_set(file_set)

        assert document_model.toc is not None
        return self._resolve_toc(document_model.toc.items)

    def _resolve_file_set(self, file_set: FileSet) -> Resolution:
        resolution = Resolution()
        for key, module in file_set.items():
            source_path = self._registry.module_root(module) / key
            resolution.references.append(ResolvedReference(document_name=key, source_path=source_path, module=module))
        return resolution

    def _resolve_toc(self, items: tuple[TocItem, ...]) -> Resolution:
        resolution = Resolution()
        roots = self._existing_module_roots()

        for item in items:
            if item.ref is None or not item.ref.strip():
                _report(SkipReason.NO_REF, item.name)
                resolution.skipped.append(SkippedReference(item.name, item.ref, SkipReason.NO_REF))
                continue

            reference = self._lookup(normalize_reference(item.ref), item.name, roots)
            if reference is None:
                _report(SkipReason.NO_SOURCE, item.name, item.ref)
                resolution.skipped.append(SkippedReference(item.name, item.ref, SkipReason.NO_SOURCE))
                continue
            resolution.references.append(reference)

        return resolution

    def _existing_module_roots(self) -> list[tuple[SourceModule, Path]]:
        roots: list[tuple[SourceModule, Path]] = []
        for module in self._registry:
            root = self._registry.module_root(module)
            if not root.is_dir():
                _report(SkipReason.NO_DIRECTORY, root)
                continue
            roots.append((module, root))
        return roots

    def _lookup(
        self,
        href: str,
        title: str,
        roots: list[tuple[SourceModule, Path]],
    ) -> ResolvedReference | None:
        for module, root in roots:
            document_name = f"{href}.{module.extension}"
            source = root / document_name
            if source.is_file():
                logger.debug("Resolved %s to %s", href, source)
                return ResolvedReference(
                    document_name=document_name,
                    source_path=source,
                    module=module,
                    title=title or None,
                )
        return None
