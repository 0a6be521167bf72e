"""Format-agnostic document tree consumed by every renderer.

The canonical document is walked exactly once here. Section content (normalised
prose with embedded list markup) is converted into typed blocks so renderers
never re-parse text themselves.
"""

import re
from dataclasses import dataclass, field
from datetime import datetime
from typing import Union

from sop_engine.core.schemas_export import ExportOptions
from sop_engine.core.schemas_sop import (
    CompleteSOPDocument,
    CoverImage,
    QualityCheckpoint,
    SOPSection,
    TOCEntry,
)
from sop_engine.core.toc_builder import DIAGRAM_GROUP_NUMBER, DIAGRAM_GROUP_TITLE

NOT_SPECIFIED = "Not specified"


@dataclass
class Paragraph:
    text: str


@dataclass
class ListItem:
    """One list line. ``marker`` is ``"3."`` / ``"3.1"`` for numbered items, empty for bullets."""

    text: str
    ordered: bool
    marker: str = ""
    depth: int = 0
    detail: str | None = None


@dataclass
class Table:
    header: list[str]
    rows: list[list[str]] = field(default_factory=list)


@dataclass
class CodeBlock:
    code: str
    language: str = "mermaid"


@dataclass
class Caption:
    text: str


@dataclass
class CheckpointBlock:
    index: int
    description: str
    criteria: list[str]
    method: str
    responsible: str
    required: bool = True


Block = Union[Paragraph, ListItem, Table, CodeBlock, Caption, CheckpointBlock]


@dataclass
class TreeSection:
    number: str
    title: str
    level: int
    blocks: list[Block] = field(default_factory=list)
    children: list["TreeSection"] = field(default_factory=list)

    @property
    def heading(self) -> str:
        return f"{self.number} {self.title}" if self.number else self.title

    @property
    def checkpoints(self) -> list[CheckpointBlock]:
        return [b for b in self.blocks if isinstance(b, CheckpointBlock)]


@dataclass
class DocumentTree:
    title: str
    subtitle: str
    document_number: str
    version: str
    effective_date: str
    generated_at: datetime
    author: str
    department: str
    status: str
    category: str
    tags: list[str]
    include_metadata: bool
    cover_image: CoverImage | None
    toc: list[TOCEntry]
    sections: list[TreeSection]
    purpose: str = NOT_SPECIFIED
    scope: str = NOT_SPECIFIED

    @property
    def generated_date(self) -> str:
        return self.generated_at.date().isoformat()

    @property
    def metadata_rows(self) -> list[tuple[str, str]]:
        return [
            ("Document No", self.document_number or "N/A"),
            ("Version", self.version),
            ("Author", self.author),
            ("Department", self.department),
            ("Effective Date", self.effective_date),
            ("Status", self.status),
            ("Category", self.category),
        ]


# ============================================================================
# Content -> blocks
# ============================================================================

_MAIN_ITEM_RE = re.compile(r"^(\d+)\.\s+(.+)$")
_SUB_ITEM_RE = re.compile(r"^(\d+(?:\.\d+)+)\.?\s+(.+)$")
_BULLET_RE = re.compile(r"^([ \t]*)[-*•]\s+(.+)$")
_TABLE_SEPARATOR_RE = re.compile(r"^\|?\s*:?-{3,}:?\s*(\|\s*:?-{3,}:?\s*)*\|?\s*$")
_BOLD_RE = re.compile(r"\*\*(.+?)\*\*")


def _indent_depth(indent: str) -> int:
    width = len(indent.replace("\t", "    "))
    return (width + 1) // 3


def _split_row(line: str) -> list[str]:
    cells = line.strip()
    if cells.startswith("|"):
        cells = cells[1:]
    if cells.endswith("|"):
        cells = cells[:-1]
    return [c.strip() for c in cells.split("|")]


def content_to_blocks(text: str) -> list[Block]:
    """Convert normalised section content into blocks.

    Recognises numbered items, ``N.M`` sub-items, ``-``/``*``/``•`` bullets
    (depth from indentation), pipe tables (separator rows dropped) and
    paragraphs. A prose line directly under a numbered item becomes its detail.
    """
    blocks: list[Block] = []
    paragraph: list[str] = []
    table: Table | None = None

    def flush_paragraph() -> None:
        if paragraph:
            blocks.append(Paragraph(" ".join(paragraph)))
            paragraph.clear()

    for raw in (text or "").split("\n"):
        line = raw.rstrip()
        stripped = line.strip()

        if stripped.startswith("|"):
            flush_paragraph()
            if _TABLE_SEPARATOR_RE.match(stripped):
                continue
            if table is None:
                table = Table(header=_split_row(stripped))
                blocks.append(table)
            else:
                table.rows.append(_split_row(stripped))
            continue
        table = None

        if not stripped:
            flush_paragraph()
            continue

        main = _MAIN_ITEM_RE.match(stripped)
        sub = _SUB_ITEM_RE.match(stripped)
        bullet = _BULLET_RE.match(line)

        if sub:
            flush_paragraph()
            blocks.append(ListItem(text=sub.group(2), ordered=True, marker=sub.group(1), depth=1))
        elif main:
            flush_paragraph()
            blocks.append(ListItem(text=main.group(2), ordered=True, marker=f"{main.group(1)}.", depth=0))
        elif bullet:
            flush_paragraph()
            blocks.append(
                ListItem(text=bullet.group(2).strip(), ordered=False, depth=_indent_depth(bullet.group(1)))
            )
        elif (
            not paragraph
            and blocks
            and isinstance(blocks[-1], ListItem)
            and blocks[-1].ordered
            and blocks[-1].depth == 0
            and blocks[-1].detail is None
        ):
            blocks[-1].detail = stripped
        else:
            paragraph.append(stripped)

    flush_paragraph()
    return blocks


def inline_spans(text: str) -> list[tuple[str, bool]]:
    """Split ``**bold**`` markup into ``(text, is_bold)`` spans."""
    spans: list[tuple[str, bool]] = []
    pos = 0
    for match in _BOLD_RE.finditer(text):
        if match.start() > pos:
            spans.append((text[pos : match.start()], False))
        spans.append((match.group(1), True))
        pos = match.end()
    if pos < len(text):
        spans.append((text[pos:], False))
    return spans


def strip_inline_markup(text: str) -> str:
    return _BOLD_RE.sub(r"\1", text)


# ============================================================================
# Document -> tree
# ============================================================================


def _checkpoint_blocks(checkpoints: list[QualityCheckpoint]) -> list[CheckpointBlock]:
    return [
        CheckpointBlock(
            index=i,
            description=cp.description,
            criteria=list(cp.criteria),
            method=cp.method,
            responsible=cp.responsible,
            required=cp.required,
        )
        for i, cp in enumerate(checkpoints, start=1)
    ]


def _tree_section(section: SOPSection, level: int) -> TreeSection:
    return TreeSection(
        number=section.number,
        title=section.title,
        level=level,
        blocks=content_to_blocks(section.content) + _checkpoint_blocks(section.checkpoints),
        children=[_tree_section(sub, level + 1) for sub in section.subsections],
    )


def _section_text(sections: list[SOPSection], title: str) -> str | None:
    for section in sections:
        if section.title.strip().lower() == title:
            text = " ".join(line.strip() for line in section.content.split("\n") if line.strip())
            return text or None
    return None


def build_document_tree(
    document: CompleteSOPDocument, options: ExportOptions | None = None
) -> DocumentTree:
    """Walk the canonical document once and produce the renderer tree."""
    options = options or ExportOptions()
    metadata = document.metadata

    diagrams = TreeSection(
        number=DIAGRAM_GROUP_NUMBER,
        title=DIAGRAM_GROUP_TITLE,
        level=1,
        children=[
            TreeSection(
                number=f"{DIAGRAM_GROUP_NUMBER}.{i}",
                title=chart.title,
                level=2,
                blocks=[
                    Paragraph(chart.description),
                    CodeBlock(chart.diagram_code),
                    Caption(f"Figure {DIAGRAM_GROUP_NUMBER}.{i}: {chart.caption}"),
                ],
            )
            for i, chart in enumerate(document.charts, start=1)
        ],
    )

    return DocumentTree(
        title=metadata.title,
        subtitle=document.cover_page.subtitle,
        document_number=metadata.document_number,
        version=metadata.version,
        effective_date=metadata.effective_date,
        generated_at=metadata.generated_at,
        author=options.author or metadata.author,
        department=options.department or metadata.department,
        status=metadata.status,
        category=metadata.category,
        tags=list(metadata.tags),
        include_metadata=options.include_metadata,
        cover_image=document.cover_page.cover_image,
        toc=list(document.table_of_contents),
        sections=[diagrams] + [_tree_section(s, 1) for s in document.sections],
        purpose=_section_text(document.sections, "purpose") or NOT_SPECIFIED,
        scope=_section_text(document.sections, "scope") or NOT_SPECIFIED,
    )
