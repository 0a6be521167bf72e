"""DOCX renderer using python-docx.

Every top-level section starts a new Word section (new page). Header and
footer are set once on the first section; later sections inherit them. Page
numbers are Word fields so the total is resolved by the reader.
"""

import re
from io import BytesIO

from docx import Document
from docx.enum.section import WD_ORIENT, WD_SECTION
from docx.enum.text import WD_ALIGN_PARAGRAPH
from docx.oxml import OxmlElement
from docx.oxml.ns import qn
from docx.shared import Mm, Pt, RGBColor

from sop_engine.core.export.base import BaseRenderer, RendererRegistry
from sop_engine.core.export.document_tree import (
    Block,
    Caption,
    CheckpointBlock,
    CodeBlock,
    DocumentTree,
    ListItem,
    Paragraph,
    Table,
    TreeSection,
    inline_spans,
)
from sop_engine.core.export.templates import render_template_text, template_values
from sop_engine.core.schemas_export import DocumentTemplate, ExportFormat, ExportOptions, PageLayout

MUTED = RGBColor(0x66, 0x66, 0x66)
WATERMARK = RGBColor(0xCC, 0xCC, 0xCC)

_PAGE_FIELDS = {"{{pageNumber}}": "PAGE", "{{totalPages}}": "NUMPAGES"}
_PAGE_FIELD_RE = re.compile(r"(\{\{pageNumber\}\}|\{\{totalPages\}\})")

# python-docx default template ships List Bullet, List Bullet 2 and List Bullet 3
_BULLET_STYLES = ["List Bullet", "List Bullet 2", "List Bullet 3"]


def _add_inline(paragraph, text: str, bold: bool = False) -> None:
    for part, strong in inline_spans(text):
        run = paragraph.add_run(part)
        run.bold = bold or strong


def _add_field(paragraph, instruction: str) -> None:
    field = OxmlElement("w:fldSimple")
    field.set(qn("w:instr"), instruction)
    run = OxmlElement("w:r")
    text = OxmlElement("w:t")
    text.text = "1"
    run.append(text)
    field.append(run)
    paragraph._p.append(field)


def _apply_layout(section, layout: PageLayout) -> None:
    if layout.orientation == "landscape":
        section.orientation = WD_ORIENT.LANDSCAPE
        section.page_width, section.page_height = Mm(297), Mm(210)
    else:
        section.orientation = WD_ORIENT.PORTRAIT
        section.page_width, section.page_height = Mm(210), Mm(297)
    section.top_margin = Pt(layout.margins.top)
    section.bottom_margin = Pt(layout.margins.bottom)
    section.left_margin = Pt(layout.margins.left)
    section.right_margin = Pt(layout.margins.right)
    section.header_distance = Pt(layout.header_height)
    section.footer_distance = Pt(layout.footer_height)


def _add_blocks(doc, blocks: list[Block]) -> None:
    for block in blocks:
        if isinstance(block, Paragraph):
            _add_inline(doc.add_paragraph(), block.text)
        elif isinstance(block, ListItem):
            _add_list_item(doc, block)
        elif isinstance(block, Table):
            _add_table(doc, block)
        elif isinstance(block, CodeBlock):
            para = doc.add_paragraph()
            run = para.add_run(block.code.rstrip())
            run.font.name = "Courier New"
            run.font.size = Pt(8)
        elif isinstance(block, Caption):
            para = doc.add_paragraph()
            para.alignment = WD_ALIGN_PARAGRAPH.CENTER
            run = para.add_run(block.text)
            run.italic = True
            run.font.color.rgb = MUTED


def _add_list_item(doc, item: ListItem) -> None:
    if item.ordered and item.depth == 0:
        para = doc.add_paragraph()
        _add_inline(para, f"{item.marker} {item.text}", bold=True)
        if item.detail:
            detail = doc.add_paragraph()
            detail.paragraph_format.left_indent = Pt(18)
            _add_inline(detail, item.detail)
    elif item.ordered:
        para = doc.add_paragraph()
        para.paragraph_format.left_indent = Pt(24)
        _add_inline(para, f"{item.marker} {item.text}")
    else:
        style = _BULLET_STYLES[min(item.depth, len(_BULLET_STYLES) - 1)]
        _add_inline(doc.add_paragraph(style=style), item.text)


def _add_table(doc, block: Table) -> None:
    width = max([len(block.header)] + [len(r) for r in block.rows])
    table = doc.add_table(rows=1, cols=width)
    table.style = "Table Grid"
    for cell, text in zip(table.rows[0].cells, block.header):
        cell.text = ""
        _add_inline(cell.paragraphs[0], text, bold=True)
    for row in block.rows:
        cells = table.add_row().cells
        for cell, text in zip(cells, row):
            cell.text = ""
            _add_inline(cell.paragraphs[0], text)
    doc.add_paragraph()


def _add_checkpoints(doc, checkpoints: list[CheckpointBlock], level: int) -> None:
    doc.add_heading("Quality Checkpoints", level=min(level + 1, 9))
    for cp in checkpoints:
        title = doc.add_paragraph()
        title.paragraph_format.left_indent = Pt(20)
        title.add_run(f"{cp.index}. {cp.description}").bold = True
        for label, value in (
            ("Criteria", ", ".join(cp.criteria)),
            ("Method", cp.method),
            ("Responsible", cp.responsible),
            ("Required", "Yes" if cp.required else "No"),
        ):
            field = doc.add_paragraph()
            field.paragraph_format.left_indent = Pt(30)
            field.paragraph_format.space_after = Pt(2)
            field.add_run(f"{label}: ").bold = True
            field.add_run(value).font.color.rgb = MUTED


def _add_section(doc, section: TreeSection) -> None:
    doc.add_heading(section.heading, level=min(section.level, 9))
    _add_blocks(doc, section.blocks)
    if section.checkpoints:
        _add_checkpoints(doc, section.checkpoints, section.level)
    for child in section.children:
        _add_section(doc, child)


class DOCXRenderer(BaseRenderer):
    format = ExportFormat.DOCX
    extension = ".docx"
    mime_type = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"

    def render(
        self,
        tree: DocumentTree,
        options: ExportOptions,
        template: DocumentTemplate,
    ) -> bytes:
        doc = Document()
        layout = template.page_layout
        first = doc.sections[0]
        _apply_layout(first, layout)

        props = doc.core_properties
        props.title = tree.title
        props.author = tree.author
        props.subject = tree.subtitle
        props.category = tree.category
        props.keywords = ", ".join(tree.tags)
        props.created = tree.generated_at
        props.modified = tree.generated_at
        props.revision = 1

        if options.header_footer.include_header or options.watermark:
            header_para = first.header.paragraphs[0]
            header_para.alignment = WD_ALIGN_PARAGRAPH.CENTER
            if options.header_footer.include_header:
                run = header_para.add_run(
                    render_template_text(template.header_template, template_values(tree))
                )
                run.font.size = Pt(9)
                run.font.color.rgb = MUTED
            if options.watermark:
                mark = first.header.add_paragraph()
                mark.alignment = WD_ALIGN_PARAGRAPH.CENTER
                run = mark.add_run(options.watermark)
                run.bold = True
                run.font.size = Pt(28)
                run.font.color.rgb = WATERMARK

        if options.header_footer.include_footer:
            footer_para = first.footer.paragraphs[0]
            footer_para.alignment = WD_ALIGN_PARAGRAPH.CENTER
            # page tokens survive the first pass and become Word fields
            text = render_template_text(
                template.footer_template, template_values(tree, "{{pageNumber}}", "{{totalPages}}")
            )
            for part in _PAGE_FIELD_RE.split(text):
                if part in _PAGE_FIELDS:
                    _add_field(footer_para, _PAGE_FIELDS[part])
                elif part:
                    footer_para.add_run(part).font.size = Pt(9)

        doc.add_heading(tree.title, level=0)
        subtitle = doc.add_paragraph()
        subtitle.alignment = WD_ALIGN_PARAGRAPH.CENTER
        subtitle_run = subtitle.add_run(tree.subtitle)
        subtitle_run.italic = True
        subtitle_run.font.color.rgb = MUTED

        if tree.include_metadata:
            for label, value in tree.metadata_rows:
                row = doc.add_paragraph()
                row.alignment = WD_ALIGN_PARAGRAPH.CENTER
                row.add_run(f"{label}: ").bold = True
                row.add_run(value)

        toc_section = doc.add_section(WD_SECTION.NEW_PAGE)
        _apply_layout(toc_section, layout)
        doc.add_heading("Table of Contents", level=1)
        for entry in tree.toc:
            doc.add_paragraph(f"{entry.number}  {entry.title}")
            for sub in entry.subsections:
                para = doc.add_paragraph(f"{sub.number}  {sub.title}")
                para.paragraph_format.left_indent = Pt(20)

        for section in tree.sections:
            word_section = doc.add_section(WD_SECTION.NEW_PAGE)
            _apply_layout(word_section, layout)
            _add_section(doc, section)

        buffer = BytesIO()
        doc.save(buffer)
        return buffer.getvalue()


RendererRegistry.register(DOCXRenderer())
