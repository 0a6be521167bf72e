"""PDF renderer using reportlab platypus.

Layout: cover page, table of contents, then one page per top-level section.
The header is drawn per page while the story is laid out; the footer is drawn
in a second pass by ``NumberedCanvas`` once the total page count is known.
"""

from collections.abc import Callable
from functools import partial
from io import BytesIO
from xml.sax.saxutils import escape

from reportlab.lib import colors
from reportlab.lib.enums import TA_CENTER, TA_JUSTIFY
from reportlab.lib.pagesizes import A4, landscape
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.pdfgen import canvas
from reportlab.platypus import (
    KeepTogether,
    PageBreak,
    Paragraph,
    Preformatted,
    SimpleDocTemplate,
    Spacer,
    Table,
    TableStyle,
)

from sop_engine.core.export.base import BaseRenderer, RendererRegistry
from sop_engine.core.export.document_tree import (
    Block,
    Caption,
    CheckpointBlock,
    CodeBlock,
    DocumentTree,
    ListItem,
    Table as TableBlock,
    TreeSection,
    inline_spans,
)
from sop_engine.core.export.document_tree import Paragraph as ParagraphBlock
from sop_engine.core.export.templates import render_template_text, template_values
from sop_engine.core.schemas_export import DocumentTemplate, ExportFormat, ExportOptions

HEADING_COLOR = colors.HexColor("#2c3e50")
MUTED_COLOR = colors.HexColor("#666666")
FOOTER_COLOR = colors.HexColor("#999999")
GRID_COLOR = colors.HexColor("#bdc3c7")


class NumberedCanvas(canvas.Canvas):
    """Canvas that defers page output so footers can show the total page count."""

    def __init__(
        self,
        *args,
        footer_text: Callable[[int, int], str] | None = None,
        footer_y: float = 36,
        **kwargs,
    ):
        super().__init__(*args, **kwargs)
        self._saved_page_states: list[dict] = []
        self._footer_text = footer_text
        self._footer_y = footer_y

    def showPage(self):
        self._saved_page_states.append(dict(self.__dict__))
        self._startPage()

    def save(self):
        total_pages = len(self._saved_page_states)
        for page_number, state in enumerate(self._saved_page_states, start=1):
            self.__dict__.update(state)
            if self._footer_text is not None:
                self._draw_footer(page_number, total_pages)
            super().showPage()
        super().save()

    def _draw_footer(self, page_number: int, total_pages: int) -> None:
        self.saveState()
        self.setFont("Helvetica", 9)
        self.setFillColor(FOOTER_COLOR)
        self.drawCentredString(
            self._pagesize[0] / 2, self._footer_y, self._footer_text(page_number, total_pages)
        )
        self.restoreState()


def _markup(text: str) -> str:
    return "".join(f"<b>{escape(part)}</b>" if bold else escape(part) for part, bold in inline_spans(text))


class _Styles:
    def __init__(self):
        sample = getSampleStyleSheet()
        self.title = ParagraphStyle(
            "SOPTitle", parent=sample["Title"], fontSize=28, leading=34, textColor=HEADING_COLOR, spaceAfter=24
        )
        self.subtitle = ParagraphStyle(
            "SOPSubtitle", parent=sample["Normal"], fontSize=12, alignment=TA_CENTER, textColor=MUTED_COLOR
        )
        self.cover_meta = ParagraphStyle(
            "SOPCoverMeta", parent=self.subtitle, fontSize=12, leading=18
        )
        self.h1 = ParagraphStyle(
            "SOPHeading1", parent=sample["Heading1"], fontSize=18, textColor=HEADING_COLOR, spaceAfter=12
        )
        self.h2 = ParagraphStyle(
            "SOPHeading2", parent=sample["Heading2"], fontSize=14, textColor=HEADING_COLOR, spaceAfter=8
        )
        self.h3 = ParagraphStyle(
            "SOPHeading3", parent=sample["Heading3"], fontSize=12, textColor=HEADING_COLOR, spaceAfter=6
        )
        self.body = ParagraphStyle(
            "SOPBody", parent=sample["Normal"], fontSize=11, leading=15, alignment=TA_JUSTIFY, spaceAfter=6
        )
        self.detail = ParagraphStyle("SOPStepDetail", parent=self.body, leftIndent=18)
        self.substep = ParagraphStyle("SOPSubstep", parent=self.body, leftIndent=24, spaceAfter=3)
        self.toc = ParagraphStyle("SOPTOC", parent=sample["Normal"], fontSize=11, leading=16)
        self.toc_sub = ParagraphStyle("SOPTOCSub", parent=self.toc, leftIndent=20)
        self.code = ParagraphStyle(
            "SOPCode", parent=sample["Code"], fontSize=8, leading=10, backColor=colors.HexColor("#f8f9fa")
        )
        self.caption = ParagraphStyle(
            "SOPCaption", parent=sample["Italic"], fontSize=9, alignment=TA_CENTER, textColor=MUTED_COLOR
        )
        self.cp_title = ParagraphStyle("SOPCheckpoint", parent=self.body, fontSize=11, leftIndent=20)
        self.cp_field = ParagraphStyle(
            "SOPCheckpointField", parent=self.body, fontSize=10, leftIndent=30, textColor=MUTED_COLOR, spaceAfter=2
        )
        self.cell = ParagraphStyle("SOPCell", parent=sample["Normal"], fontSize=9, leading=11)
        self._bullets: dict[int, ParagraphStyle] = {}

    def bullet(self, depth: int) -> ParagraphStyle:
        if depth not in self._bullets:
            self._bullets[depth] = ParagraphStyle(
                f"SOPBullet{depth}",
                parent=self.body,
                leftIndent=18 + 14 * depth,
                bulletIndent=6 + 14 * depth,
                spaceAfter=3,
            )
        return self._bullets[depth]

    def heading(self, level: int) -> ParagraphStyle:
        return {1: self.h1, 2: self.h2}.get(level, self.h3)


def _block_flowables(block: Block, styles: _Styles) -> list:
    if isinstance(block, ParagraphBlock):
        return [Paragraph(_markup(block.text), styles.body)]
    if isinstance(block, ListItem):
        if block.ordered and block.depth == 0:
            flowables = [Paragraph(f"<b>{escape(block.marker)} {_markup(block.text)}</b>", styles.body)]
            if block.detail:
                flowables.append(Paragraph(_markup(block.detail), styles.detail))
            return flowables
        if block.ordered:
            return [Paragraph(f"{escape(block.marker)} {_markup(block.text)}", styles.substep)]
        return [Paragraph(_markup(block.text), styles.bullet(block.depth), bulletText="•")]
    if isinstance(block, TableBlock):
        width = max([len(block.header)] + [len(r) for r in block.rows])
        data = [
            [Paragraph(_markup(c), styles.cell) for c in row + [""] * (width - len(row))]
            for row in [block.header] + block.rows
        ]
        table = Table(data, repeatRows=1)
        table.setStyle(
            TableStyle(
                [
                    ("GRID", (0, 0), (-1, -1), 0.5, GRID_COLOR),
                    ("BACKGROUND", (0, 0), (-1, 0), colors.HexColor("#ecf0f1")),
                    ("VALIGN", (0, 0), (-1, -1), "TOP"),
                ]
            )
        )
        return [table, Spacer(1, 8)]
    if isinstance(block, CodeBlock):
        return [Preformatted(block.code, styles.code), Spacer(1, 4)]
    if isinstance(block, Caption):
        return [Paragraph(escape(block.text), styles.caption), Spacer(1, 10)]
    return []


def _checkpoint_flowables(checkpoints: list[CheckpointBlock], styles: _Styles) -> list:
    flowables: list = [Spacer(1, 6), Paragraph("<u>Quality Checkpoints:</u>", styles.h3)]
    for cp in checkpoints:
        flowables.append(
            KeepTogether(
                [
                    Paragraph(f"{cp.index}. {escape(cp.description)}", styles.cp_title),
                    Paragraph(f"Criteria: {escape(', '.join(cp.criteria))}", styles.cp_field),
                    Paragraph(f"Method: {escape(cp.method)}", styles.cp_field),
                    Paragraph(f"Responsible: {escape(cp.responsible)}", styles.cp_field),
                    Paragraph(f"Required: {'Yes' if cp.required else 'No'}", styles.cp_field),
                    Spacer(1, 4),
                ]
            )
        )
    return flowables


def _section_flowables(section: TreeSection, styles: _Styles) -> list:
    flowables: list = [Paragraph(escape(section.heading), styles.heading(section.level))]
    for block in section.blocks:
        flowables.extend(_block_flowables(block, styles))
    if section.checkpoints:
        flowables.extend(_checkpoint_flowables(section.checkpoints, styles))
    for child in section.children:
        flowables.extend(_section_flowables(child, styles))
    return flowables


class PDFRenderer(BaseRenderer):
    format = ExportFormat.PDF
    extension = ".pdf"
    mime_type = "application/pdf"

    def render(
        self,
        tree: DocumentTree,
        options: ExportOptions,
        template: DocumentTemplate,
    ) -> bytes:
        styles = _Styles()
        layout = template.page_layout
        margins = layout.margins
        pagesize = landscape(A4) if layout.orientation == "landscape" else A4

        story: list = [
            Spacer(1, 120),
            Paragraph(escape(tree.title), styles.title),
            Paragraph(escape(tree.subtitle), styles.subtitle),
            Spacer(1, 36),
        ]
        if tree.include_metadata:
            story.extend(
                Paragraph(f"{escape(label)}: {escape(value)}", styles.cover_meta)
                for label, value in tree.metadata_rows
            )

        story.extend([PageBreak(), Paragraph("Table of Contents", styles.h1)])
        for entry in tree.toc:
            story.append(Paragraph(f"{escape(entry.number)}&nbsp;&nbsp;{escape(entry.title)}", styles.toc))
            story.extend(
                Paragraph(f"{escape(sub.number)}&nbsp;&nbsp;{escape(sub.title)}", styles.toc_sub)
                for sub in entry.subsections
            )

        for section in tree.sections:
            story.append(PageBreak())
            story.extend(_section_flowables(section, styles))

        header = (
            render_template_text(template.header_template, template_values(tree))
            if options.header_footer.include_header
            else None
        )

        def decorate(canv, doc):
            canv.saveState()
            if header:
                canv.setFont("Helvetica", 10)
                canv.setFillColor(MUTED_COLOR)
                canv.drawCentredString(pagesize[0] / 2, pagesize[1] - margins.top / 2, header)
            if options.watermark:
                canv.setFont("Helvetica-Bold", 72)
                canv.setFillColor(colors.Color(0, 0, 0, alpha=0.08))
                canv.translate(pagesize[0] / 2, pagesize[1] / 2)
                canv.rotate(45)
                canv.drawCentredString(0, 0, options.watermark)
            canv.restoreState()

        footer_text = None
        if options.header_footer.include_footer:

            def footer_text(page_number: int, total_pages: int) -> str:
                return render_template_text(
                    template.footer_template, template_values(tree, page_number, total_pages)
                )

        buffer = BytesIO()
        doc = SimpleDocTemplate(
            buffer,
            pagesize=pagesize,
            topMargin=margins.top,
            bottomMargin=margins.bottom,
            leftMargin=margins.left,
            rightMargin=margins.right,
            title=tree.title,
            author=tree.author,
            subject=tree.subtitle,
            invariant=1,
        )
        doc.build(
            story,
            onFirstPage=decorate,
            onLaterPages=decorate,
            canvasmaker=partial(NumberedCanvas, footer_text=footer_text, footer_y=margins.bottom / 2),
        )
        return buffer.getvalue()


RendererRegistry.register(PDFRenderer())
