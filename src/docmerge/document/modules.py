"""Registered source modules and the lookups the resolver needs from them."""

from __future__ import annotations

from dataclasses import dataclass
import logging
from pathlib import Path
from typing import Iterable, Iterator, Mapping

logger = logging.getLogger(__name__)

DEFAULT_MODULE_FORMATS = ("txt", "xhtml", "fb2", "epub", "pdf")


@dataclass(frozen=True, slots=True)
class SourceModule:
    """A source kind: directory below the base dir, file extension, parser id."""

    source_directory: str
    extension: str
    parser_id: str

    def __post_init__(self) -> None:
        if not self.parser_id:
            raise ValueError("Module parser id cannot be empty")
        extension = self.extension.strip().lstrip(".")
        if not extension:
            raise ValueError("Module extension cannot be empty")
        object.__setattr__(self, "extension", extension)


FileSet = Mapping[str, SourceModule]


class ModuleRegistry:
    """Ordered, read-only set of source modules rooted at ``base_dir``."""

    def __init__(self, base_dir: str | Path, modules: Iterable[SourceModule]) -> None:
        self._base_dir = Path(base_dir)
        self._modules = tuple(modules)

    @classmethod
    def default(cls, base_dir: str | Path) -> "ModuleRegistry":
        modules = [SourceModule(name, name, name) for name in DEFAULT_MODULE_FORMATS]
        return cls(base_dir, modules)

    @property
    def base_dir(self) -> Path:
        return self._base_dir

    @property
    def modules(self) -> tuple[SourceModule, ...]:
        return self._modules

    def __iter__(self) -> Iterator[SourceModule]:
        return iter(self._modules)

    def __len__(self) -> int:
        return len(self._modules)

    def module_root(self, module: SourceModule) -> Path:
        return self._base_dir / module.source_directory

    def parser_ids(self) -> list[str]:
        """Distinct parser ids in registry order."""

        return list(dict.fromkeys(module.parser_id for module in self._modules))

    def collect_file_set(self) -> dict[str, SourceModule]:
        """Scan every existing module root for files with the module extension."""

        file_set: dict[str, SourceModule] = {}
        for module in self._modules:
            root = self.module_root(module)
            if not root.is_dir():
                logger.debug("Module directory %s does not exist, skipping", root)
                continue

            for path in sorted(root.rglob(f"*.{module.extension}")):
                if not path.is_file():
                    continue
                key = path.relative_to(root).as_posix()
                if key in file_set:
                    logger.warning("Document %s already provided by another module, keeping the first", key)
                    continue
                file_set[key] = module
        return file_set
