"""HTML renderer driven by the selected document template."""

import html
import re

from sop_engine.core.cover_image import to_data_url
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
from sop_engine.core.export.markdown_renderer import GENERATOR_NAME
from sop_engine.core.export.templates import render_template_text, strip_page_fields, template_values
from sop_engine.core.schemas_export import (
    DocumentStyling,
    DocumentTemplate,
    ExportFormat,
    ExportOptions,
)

BASE_CSS = """
.header { text-align: center; border-bottom: 1px solid #dddddd; padding-bottom: 10px; margin-bottom: 20px; }
.footer { text-align: center; border-top: 1px solid #dddddd; padding-top: 10px; margin-top: 30px; font-size: 0.9em; color: #666666; }
.subtitle { text-align: center; color: #666666; }
.cover-image { display: block; max-width: 100%; margin: 20px auto; }
.toc ul { list-style-type: none; }
.step-detail { margin: 4px 0 8px 0; }
.substeps { list-style-type: none; padding-left: 20px; }
.diagram { background-color: #f8f9fa; padding: 12px; overflow-x: auto; }
.caption { font-style: italic; text-align: center; color: #666666; }
table { border-collapse: collapse; margin: 10px 0; }
th, td { border: 1px solid #bdc3c7; padding: 6px 10px; text-align: left; }
.watermark { position: fixed; top: 50%; left: 50%; transform: translate(-50%, -50%) rotate(-45deg); font-size: 72pt; color: rgba(0,0,0,0.1); z-index: -1; pointer-events: none; }
"""

_TEXT_COLOR_RE = re.compile(r"(?<![-\w])color:\s*#[0-9a-fA-F]{6}")
_BACKGROUND_COLOR_RE = re.compile(r"background-color:\s*#[0-9a-fA-F]{6}")


def inline_html(text: str) -> str:
    return "".join(
        f"<strong>{html.escape(part)}</strong>" if bold else html.escape(part)
        for part, bold in inline_spans(text)
    )


def _list_html(items: list[ListItem]) -> list[str]:
    """Nest a run of list items by depth."""
    out: list[str] = []
    stack: list[str] = []

    for item in items:
        if item.ordered and item.depth == 0:
            tag, li = "ol", f'<li value="{html.escape(item.marker.rstrip("."))}">'
            body = inline_html(item.text)
            if item.detail:
                body += f'<div class="step-detail">{inline_html(item.detail)}</div>'
        elif item.ordered:
            tag, li = 'ul class="substeps"', "<li>"
            body = f"{html.escape(item.marker)} {inline_html(item.text)}"
        else:
            tag, li = "ul", "<li>"
            body = inline_html(item.text)

        depth = min(item.depth, len(stack))
        if depth == len(stack):
            out.append(f"<{tag}>")
            stack.append(tag)
        else:
            while len(stack) > depth + 1:
                out.append(f"</li></{stack.pop().split()[0]}>")
            out.append("</li>")
            if stack[-1] != tag:
                out.append(f"</{stack.pop().split()[0]}><{tag}>")
                stack.append(tag)
        out.append(f"{li}{body}")

    while stack:
        out.append(f"</li></{stack.pop().split()[0]}>")
    return out


def _blocks_html(blocks: list[Block]) -> list[str]:
    out: list[str] = []
    pending: list[ListItem] = []

    def flush() -> None:
        if pending:
            out.extend(_list_html(pending))
            pending.clear()

    for block in blocks:
        if isinstance(block, ListItem):
            pending.append(block)
            continue
        flush()
        if isinstance(block, Paragraph):
            out.append(f"<p>{inline_html(block.text)}</p>")
        elif isinstance(block, Table):
            out.append("<table>")
            out.append("<tr>" + "".join(f"<th>{inline_html(c)}</th>" for c in block.header) + "</tr>")
            for row in block.rows:
                out.append("<tr>" + "".join(f"<td>{inline_html(c)}</td>" for c in row) + "</tr>")
            out.append("</table>")
        elif isinstance(block, CodeBlock):
            out.append(f'<pre class="diagram {block.language}">{html.escape(block.code)}</pre>')
        elif isinstance(block, Caption):
            out.append(f'<p class="caption">{html.escape(block.text)}</p>')
    flush()
    return out


def _checkpoint_html(cp: CheckpointBlock) -> str:
    required = "" if cp.required else " (optional)"
    return (
        '<div class="checkpoint">'
        f'<div class="checkpoint-title">{cp.index}. {html.escape(cp.description)}{required}</div>'
        f"<div><strong>Criteria:</strong> {html.escape(', '.join(cp.criteria))}</div>"
        f"<div><strong>Method:</strong> {html.escape(cp.method)}</div>"
        f"<div><strong>Responsible:</strong> {html.escape(cp.responsible)}</div>"
        "</div>"
    )


def _section_html(section: TreeSection) -> list[str]:
    level = min(section.level + 1, 6)
    anchor = f"section-{section.number.replace('.', '-')}" if section.number else ""
    out = ['<div class="section">'] if section.level == 1 else []
    out.append(f'<h{level} id="{anchor}">{html.escape(section.heading)}</h{level}>')
    out.extend(_blocks_html(section.blocks))
    if section.checkpoints:
        out.append(f"<h{min(level + 1, 6)}>Quality Checkpoints</h{min(level + 1, 6)}>")
        out.extend(_checkpoint_html(cp) for cp in section.checkpoints)
    for child in section.children:
        out.extend(_section_html(child))
    if section.level == 1:
        out.append("</div>")
    return out


def apply_styling(document_html: str, styling: DocumentStyling | None) -> str:
    """Wrap the body in a font/spacing override and substitute hex colours."""
    if styling is None:
        return document_html

    if styling.font_family or styling.font_size or styling.line_spacing:
        font_style = (
            f"font-family: {styling.font_family or 'Arial'}; "
            f"font-size: {styling.font_size or 12}pt; "
            f"line-height: {styling.line_spacing or 1.6};"
        )
        document_html = document_html.replace("<body>\n", f'<body>\n<div style="{html.escape(font_style)}">\n', 1)
        document_html = document_html.replace("\n</body>", "\n</div>\n</body>", 1)

    if styling.colors:
        document_html = _TEXT_COLOR_RE.sub(f"color: {styling.colors.text}", document_html)
        document_html = _BACKGROUND_COLOR_RE.sub(
            f"background-color: {styling.colors.background}", document_html
        )
    return document_html


class HTMLRenderer(BaseRenderer):
    format = ExportFormat.HTML
    extension = ".html"
    mime_type = "text/html"

    def render(
        self,
        tree: DocumentTree,
        options: ExportOptions,
        template: DocumentTemplate,
    ) -> bytes:
        values = template_values(tree)
        parts = [
            "<!DOCTYPE html>",
            '<html lang="en">',
            "<head>",
            '<meta charset="UTF-8">',
            '<meta name="viewport" content="width=device-width, initial-scale=1.0">',
            f"<title>{html.escape(tree.title)}</title>",
            f"<style>{template.stylesheet}{BASE_CSS}</style>",
            "</head>",
            "<body>",
        ]

        if options.watermark:
            parts.append(f'<div class="watermark">{html.escape(options.watermark)}</div>')

        if options.header_footer.include_header:
            header = render_template_text(template.header_template, values)
            parts.append(f'<div class="header">{html.escape(header)}</div>')

        parts.append(f"<h1>{html.escape(tree.title)}</h1>")
        parts.append(f'<p class="subtitle">{html.escape(tree.subtitle)}</p>')

        if tree.cover_image is not None:
            parts.append(
                f'<img class="cover-image" src="{to_data_url(tree.cover_image)}" alt="Cover image">'
            )

        if tree.include_metadata:
            rows = "<br>\n".join(
                f"{html.escape(label)}: {html.escape(value)}" for label, value in tree.metadata_rows
            )
            parts.append(f'<div class="metadata"><strong>Document Information:</strong><br>\n{rows}</div>')

        parts.append('<div class="toc"><h2>Table of Contents</h2><ul>')
        for entry in tree.toc:
            parts.append(f"<li>{html.escape(entry.number)} {html.escape(entry.title)}")
            if entry.subsections:
                parts.append("<ul>")
                parts.extend(
                    f"<li>{html.escape(sub.number)} {html.escape(sub.title)}</li>" for sub in entry.subsections
                )
                parts.append("</ul>")
            parts.append("</li>")
        parts.append("</ul></div>")

        for section in tree.sections:
            parts.extend(_section_html(section))

        if options.header_footer.include_footer:
            footer = render_template_text(strip_page_fields(template.footer_template), values)
        else:
            footer = f"Generated by {GENERATOR_NAME} on {tree.generated_date}"
        parts.append(f'<div class="footer">{html.escape(footer)}</div>')

        parts.extend(["</body>", "</html>"])
        document_html = apply_styling("\n".join(parts), options.styling)
        return (document_html + "\n").encode("utf-8")


RendererRegistry.register(HTMLRenderer())
