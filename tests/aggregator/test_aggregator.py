from __future__ import annotations

from io import StringIO
from pathlib import Path
from typing import TextIO

from lxml import etree
import pytest

from docmerge.aggregator import Aggregator
from docmerge.converters import ConversionError, HtmlConverter
from docmerge.document.models import DocumentModel, DocumentToc, TocItem
from docmerge.document.modules import ModuleRegistry, SourceModule
from docmerge.errors import ArtifactIOError, ParseError, Position, RenderError, UnknownParserError
from docmerge.parsers import ParserRegistry, TextParser
from docmerge.resolution import TocResolver
from docmerge.sink import AggregateSink

TXT = SourceModule("txt", "txt", "txt")
NS = {"x": "http://www.w3.org/1999/xhtml"}


class FakePdfConverter:
    format_name = "pdf"
    extension = "pdf"

    def __init__(self, error: ConversionError | None = None) -> None:
        self.error = error
        self.calls: list[tuple[Path, Path]] = []

    def convert(self, artifact_path: Path, output_path: Path) -> None:
        self.calls.append((artifact_path, output_path))
        if self.error is not None:
            raise self.error
        output_path.write_bytes(b"%PDF-fake")


class FailingParser:
    def parse(self, path: Path, sink) -> None:
        sink.paragraph("partial content")
        raise ValueError("unexpected token")


class HandleTrackingSinkFactory:
    def __init__(self) -> None:
        self.handles: list[TextIO] = []

    def __call__(self, writer: TextIO, model: DocumentModel) -> AggregateSink:
        self.handles.append(writer)
        return AggregateSink(writer, model)


def _write(path: Path, text: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")


def _aggregator(base_dir: Path, converter=None, **kwargs) -> Aggregator:
    return Aggregator(
        ModuleRegistry(base_dir, [TXT]),
        ParserRegistry({"txt": TextParser()}),
        converter or FakePdfConverter(),
        **kwargs,
    )


def _section_ids(artifact: Path) -> list[str]:
    root = etree.parse(str(artifact)).getroot()
    return [section.get("id") for section in root.findall(".//x:section", NS)]


def test_no_toc_run_keeps_file_set_order_and_default_name(tmp_path: Path) -> None:
    _write(tmp_path / "src" / "txt" / "a.txt", "Alpha content")
    _write(tmp_path / "src" / "txt" / "b.txt", "Bravo content")
    converter = FakePdfConverter()

    result = _aggregator(tmp_path / "src", converter).run(
        {"a.txt": TXT, "b.txt": TXT},
        DocumentModel(),
        tmp_path / "out",
    )

    assert result.artifact_path == tmp_path / "out" / "target.xhtml"
    assert result.output_path == tmp_path / "out" / "target.pdf"
    assert result.documents == ["a.txt", "b.txt"]
    artifact_text = result.artifact_path.read_text(encoding="utf-8")
    assert artifact_text.index("Alpha content") < artifact_text.index("Bravo content")
    assert converter.calls == [(result.artifact_path, result.output_path)]
    assert result.output_path.read_bytes() == b"%PDF-fake"


def test_file_set_iteration_order_is_rendering_order(tmp_path: Path) -> None:
    for name in ("c", "a", "b"):
        _write(tmp_path / "txt" / f"{name}.txt", f"Body {name}")

    result = _aggregator(tmp_path).run(
        {"c.txt": TXT, "a.txt": TXT, "b.txt": TXT},
        DocumentModel(output_name="ordered"),
        tmp_path / "out",
    )

    assert _section_ids(result.artifact_path) == ["c", "a", "b"]


def test_toc_run_orders_by_toc_and_omits_missing_items(tmp_path: Path) -> None:
    _write(tmp_path / "txt" / "intro.txt", "Intro text")
    _write(tmp_path / "txt" / "chapters" / "body.txt", "Body text")
    _write(tmp_path / "txt" / "unlisted.txt", "Unlisted text")
    model = DocumentModel(
        output_name="guide.pdf",
        toc=DocumentToc(
            items=(
                TocItem("Intro", "intro"),
                TocItem("Missing", None),
                TocItem("Body", "chapters\\body"),
                TocItem("Ghost", "ghost"),
            )
        ),
    )

    result = _aggregator(tmp_path).run({"unlisted.txt": TXT}, model, tmp_path / "out")

    artifact_text = result.artifact_path.read_text(encoding="utf-8")
    assert result.artifact_path.name == "guide.xhtml"
    assert result.documents == ["intro.txt", "chapters/body.txt"]
    assert _section_ids(result.artifact_path) == ["intro", "chapters-body"]
    assert artifact_text.index("Intro text") < artifact_text.index("Body text")
    assert "Missing" not in artifact_text
    assert "Unlisted text" not in artifact_text
    assert [(entry.name, entry.reason.value) for entry in result.skipped] == [
        ("Missing", "no-ref"),
        ("Ghost", "no-source"),
    ]
    assert model.output_name == "guide.pdf"


def test_toc_titles_are_written_before_document_content(tmp_path: Path) -> None:
    _write(tmp_path / "txt" / "intro.txt", "Intro text")
    model = DocumentModel(toc=DocumentToc(items=(TocItem("Welcome", "intro"),)))

    result = _aggregator(tmp_path).run({}, model, tmp_path / "out")

    root = etree.parse(str(result.artifact_path)).getroot()
    section = root.find(".//x:section", NS)
    assert section is not None
    assert [child.text for child in section] == ["Welcome", "Intro text"]


def test_nested_output_name_creates_directories(tmp_path: Path) -> None:
    _write(tmp_path / "txt" / "a.txt", "Alpha")
    out = tmp_path / "deep" / "out"

    result = _aggregator(tmp_path).run({"a.txt": TXT}, DocumentModel(output_name="books/manual.v2.pdf"), out)

    assert result.artifact_path == out / "books" / "manual.v2.xhtml"
    assert result.output_path.exists()

    again = _aggregator(tmp_path).run({"a.txt": TXT}, DocumentModel(output_name="books/manual.v2.pdf"), out)
    assert again.artifact_path == result.artifact_path


def test_parse_failure_aborts_releases_handle_and_discards_artifact(tmp_path: Path) -> None:
    _write(tmp_path / "txt" / "a.txt", "Alpha")
    _write(tmp_path / "txt" / "b.txt", "Bravo")
    factory = HandleTrackingSinkFactory()
    converter = FakePdfConverter()
    aggregator = Aggregator(
        ModuleRegistry(tmp_path, [TXT]),
        ParserRegistry({"txt": FailingParser()}),
        converter,
        sink_factory=factory,
    )

    with pytest.raises(ParseError) as info:
        aggregator.run({"a.txt": TXT, "b.txt": TXT}, DocumentModel(), tmp_path / "out")

    assert info.value.kind == "parse"
    assert info.value.source == tmp_path / "txt" / "a.txt"
    assert "unexpected token" in str(info.value)
    assert isinstance(info.value.__cause__, ValueError)
    assert len(factory.handles) == 1
    assert factory.handles[0].closed
    assert not (tmp_path / "out" / "target.xhtml").exists()
    assert converter.calls == []


def test_partial_artifact_can_be_kept_for_debugging(tmp_path: Path) -> None:
    _write(tmp_path / "txt" / "a.txt", "Alpha")
    aggregator = Aggregator(
        ModuleRegistry(tmp_path, [TXT]),
        ParserRegistry({"txt": FailingParser()}),
        FakePdfConverter(),
        keep_partial_artifact=True,
    )

    with pytest.raises(ParseError):
        aggregator.run({"a.txt": TXT}, DocumentModel(), tmp_path / "out")

    partial = tmp_path / "out" / "target.xhtml"
    assert "partial content" in partial.read_text(encoding="utf-8")


def test_handle_is_released_once_on_success(tmp_path: Path) -> None:
    _write(tmp_path / "txt" / "a.txt", "Alpha")
    factory = HandleTrackingSinkFactory()
    aggregator = Aggregator(
        ModuleRegistry(tmp_path, [TXT]),
        ParserRegistry({"txt": TextParser()}),
        FakePdfConverter(),
        sink_factory=factory,
    )

    aggregator.run({"a.txt": TXT}, DocumentModel(), tmp_path / "out")

    assert len(factory.handles) == 1
    assert factory.handles[0].closed


def test_unknown_parser_id_aborts_run(tmp_path: Path) -> None:
    module = SourceModule("apt", "apt", "apt")
    _write(tmp_path / "apt" / "doc.apt", "text")
    aggregator = Aggregator(ModuleRegistry(tmp_path, [module]), ParserRegistry(), FakePdfConverter())

    with pytest.raises(UnknownParserError):
        aggregator.run({"doc.apt": module}, DocumentModel(), tmp_path / "out")

    assert not (tmp_path / "out" / "target.xhtml").exists()


def test_positional_conversion_failure_reports_artifact_line_and_column(tmp_path: Path) -> None:
    _write(tmp_path / "txt" / "a.txt", "Alpha")
    converter = FakePdfConverter(ConversionError("element not allowed here", Position(12, 4)))

    with pytest.raises(RenderError) as info:
        _aggregator(tmp_path, converter).run({"a.txt": TXT}, DocumentModel(), tmp_path / "out")

    error = info.value
    message = str(error)
    artifact = (tmp_path / "out" / "target.xhtml").resolve()
    assert error.kind == "conversion"
    assert error.position == Position(12, 4)
    assert str(artifact) in message
    assert f"{artifact}:12:4" in message
    assert "element not allowed here" in message
    assert error.to_dict()["line"] == 12
    assert error.to_dict()["column"] == 4


def test_generic_conversion_failure_has_no_position(tmp_path: Path) -> None:
    _write(tmp_path / "txt" / "a.txt", "Alpha")
    converter = FakePdfConverter(ConversionError("renderer crashed"))

    with pytest.raises(RenderError) as info:
        _aggregator(tmp_path, converter).run({"a.txt": TXT}, DocumentModel(), tmp_path / "out")

    assert info.value.position is None
    assert str(info.value) == f"Error creating PDF from {tmp_path / 'out' / 'target.xhtml'}: renderer crashed"


def test_unwritable_output_directory_raises_io_error(tmp_path: Path) -> None:
    blocker = tmp_path / "blocker"
    blocker.write_text("not a directory", encoding="utf-8")

    with pytest.raises(ArtifactIOError) as info:
        _aggregator(tmp_path).run({}, DocumentModel(), blocker / "out")

    assert info.value.kind == "io"


def test_html_converter_end_to_end(tmp_path: Path) -> None:
    _write(tmp_path / "txt" / "a.txt", "Alpha & Omega")

    result = _aggregator(tmp_path, HtmlConverter()).run({"a.txt": TXT}, DocumentModel(title="Report"), tmp_path / "out")

    html = result.output_path.read_text(encoding="utf-8")
    assert result.output_path.name == "target.html"
    assert html.startswith("<!DOCTYPE html>")
    assert "Alpha &amp; Omega" in html


def test_missing_parsers_are_reported_at_construction(tmp_path: Path, caplog) -> None:
    registry = ModuleRegistry(tmp_path, [TXT, SourceModule("apt", "apt", "apt")])

    Aggregator(registry, ParserRegistry({"txt": TextParser()}), FakePdfConverter())

    assert "No parser registered for module parser id(s): apt" in caplog.text


class TitleRejectingSink(AggregateSink):
    def set_document_title(self, title: str) -> None:
        raise RuntimeError("title rejected")


class CloseFailingHandle(StringIO):
    def close(self) -> None:
        if self.closed:
            return
        super().close()
        raise OSError("device detached")


def _fail_artifact_close(monkeypatch: pytest.MonkeyPatch) -> None:
    real_open = Path.open

    def _open(self: Path, *args, **kwargs):
        if self.suffix == ".xhtml":
            return CloseFailingHandle()
        return real_open(self, *args, **kwargs)

    monkeypatch.setattr(Path, "open", _open)


def test_sink_failure_discards_partial_artifact(tmp_path: Path) -> None:
    _write(tmp_path / "txt" / "intro.txt", "Intro text")
    aggregator = Aggregator(
        ModuleRegistry(tmp_path, [TXT]),
        ParserRegistry({"txt": TextParser()}),
        FakePdfConverter(),
        sink_factory=TitleRejectingSink,
    )
    model = DocumentModel(toc=DocumentToc(items=(TocItem("Intro", "intro"),)))

    with pytest.raises(RuntimeError, match="title rejected"):
        aggregator.run({}, model, tmp_path / "out")

    assert not (tmp_path / "out" / "target.xhtml").exists()


def test_source_lookup_failure_is_an_io_error(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    def _resolve(self, model, file_set):
        raise OSError(36, "File name too long")

    monkeypatch.setattr(TocResolver, "resolve", _resolve)
    model = DocumentModel(toc=DocumentToc(items=(TocItem("Long", "x" * 300),)))

    with pytest.raises(ArtifactIOError, match="Failed to look up source documents") as info:
        _aggregator(tmp_path).run({}, model, tmp_path / "out")

    assert info.value.source == tmp_path
    assert not (tmp_path / "out" / "target.xhtml").exists()


def test_toc_links_only_resolved_documents(tmp_path: Path) -> None:
    _write(tmp_path / "txt" / "intro.txt", "Intro text")
    model = DocumentModel(
        toc=DocumentToc(
            items=(
                TocItem("Intro", "intro"),
                TocItem("Ghost", "ghost"),
                TocItem("Intro again", "intro.txt"),
            )
        )
    )

    result = _aggregator(tmp_path).run({}, model, tmp_path / "out")

    root = etree.parse(str(result.artifact_path)).getroot()
    links = root.findall(".//x:nav//x:a", NS)
    assert [link.text for link in links] == ["Intro", "Intro again"]
    assert [link.get("href") for link in links] == ["#intro", "#intro-2"]
    assert _section_ids(result.artifact_path) == ["intro", "intro-2"]


def test_close_failure_does_not_mask_parse_error(tmp_path: Path, monkeypatch: pytest.MonkeyPatch, caplog) -> None:
    _write(tmp_path / "txt" / "a.txt", "Alpha")
    aggregator = Aggregator(
        ModuleRegistry(tmp_path, [TXT]),
        ParserRegistry({"txt": FailingParser()}),
        FakePdfConverter(),
    )
    _fail_artifact_close(monkeypatch)

    with pytest.raises(ParseError, match="unexpected token"):
        aggregator.run({"a.txt": TXT}, DocumentModel(), tmp_path / "out")

    assert "Failed to close artifact" in caplog.text


def test_close_failure_after_success_is_an_io_error(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    _write(tmp_path / "txt" / "a.txt", "Alpha")
    converter = FakePdfConverter()
    _fail_artifact_close(monkeypatch)

    with pytest.raises(ArtifactIOError, match="Failed to close artifact"):
        _aggregator(tmp_path, converter).run({"a.txt": TXT}, DocumentModel(), tmp_path / "out")

    assert converter.calls == []
