"""Synthetic PDF builders used by stage and CLI tests."""

from __future__ import annotations

from pathlib import Path

from pypdf import PdfWriter
from pypdf.generic import DecodedStreamObject, DictionaryObject, NameObject

PAGE_WIDTH = 595
PAGE_HEIGHT = 842


def _escape_pdf_text(value: str) -> str:
    return value.replace("\\", "\\\\").replace("(", "\\(").replace(")", "\\)")


def _add_text_page(writer: PdfWriter, lines: list[str]) -> None:
    """Append one page; an empty `lines` list yields a page without text."""

    page = writer.add_blank_page(width=PAGE_WIDTH, height=PAGE_HEIGHT)
    if not lines:
        return
    font_ref = writer._add_object(
        DictionaryObject(
            {
                NameObject("/Type"): NameObject("/Font"),
                NameObject("/Subtype"): NameObject("/Type1"),
                NameObject("/BaseFont"): NameObject("/Helvetica"),
            }
        )
    )
    page[NameObject("/Resources")] = DictionaryObject(
        {NameObject("/Font"): DictionaryObject({NameObject("/F1"): font_ref})}
    )
    content_lines = ["BT", "/F1 12 Tf", "72 780 Td", "16 TL"]
    for index, line in enumerate(lines):
        content_lines.append(f"({_escape_pdf_text(line)}) Tj")
        if index < len(lines) - 1:
            content_lines.append("T*")
    content_lines.append("ET")

    stream = DecodedStreamObject()
    stream.set_data("\n".join(content_lines).encode("latin-1"))
    page[NameObject("/Contents")] = writer._add_object(stream)


def write_text_pdf(path: Path, pages: list[list[str]]) -> Path:
    """Write a PDF with one page per entry of `pages`."""

    writer = PdfWriter()
    for lines in pages:
        _add_text_page(writer, lines)
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("wb") as handle:
        writer.write(handle)
    return path


DEMO_PAGES = [
    ["# Cover", "OXI ONE MKII"],
    ["## Sequencer Basics", "Press PLAY to start the Sequencer."],
    [],
    ["## Mono Mode", "Each track sends MIDI and CV."],
]
