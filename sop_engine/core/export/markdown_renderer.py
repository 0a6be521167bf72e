"""Markdown renderer."""

from collections.abc import Callable

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
)
from sop_engine.core.schemas_export import DocumentTemplate, ExportFormat, ExportOptions
from sop_engine.core.schemas_sop import TOCEntry

GENERATOR_NAME = "SOP Engine"


def _escape_cell(text: str) -> str:
    return text.replace("|", "\\|")


def _list_line(item: ListItem) -> list[str]:
    if item.ordered and item.depth == 0:
        lines = [f"{item.marker} {item.text}"]
        if item.detail:
            lines.append(f"   {item.detail}")
        return lines
    if item.ordered:
        return [f"   {item.marker} {item.text}"]
    return [f"{'  ' * item.depth}- {item.text}"]


def render_markdown_blocks(blocks: list[Block]) -> list[str]:
    """Render content blocks; checkpoint blocks are left to the caller."""
    lines: list[str] = []
    in_list = False

    for block in blocks:
        if isinstance(block, ListItem):
            lines.extend(_list_line(block))
            in_list = True
            continue
        if in_list:
            lines.append("")
            in_list = False

        if isinstance(block, Paragraph):
            lines.extend([block.text, ""])
        elif isinstance(block, Table):
            width = max([len(block.header)] + [len(r) for r in block.rows])
            header = block.header + [""] * (width - len(block.header))
            lines.append("| " + " | ".join(_escape_cell(c) for c in header) + " |")
            lines.append("|" + "|".join(["---"] * width) + "|")
            for row in block.rows:
                row = row + [""] * (width - len(row))
                lines.append("| " + " | ".join(_escape_cell(c) for c in row) + " |")
            lines.append("")
        elif isinstance(block, CodeBlock):
            lines.extend([f"```{block.language}", block.code.rstrip(), "```", ""])
        elif isinstance(block, Caption):
            lines.extend([f"*{block.text}*", ""])

    if in_list:
        lines.append("")
    return lines


def render_markdown_toc(entries: list[TOCEntry]) -> list[str]:
    lines = []
    for entry in entries:
        lines.append(f"- {entry.number} {entry.title}")
        lines.extend(f"  - {sub.number} {sub.title}" for sub in entry.subsections)
    return lines + [""]


def _checkpoints_markdown(section: TreeSection, heading_level: int) -> list[str]:
    lines = [f"{'#' * heading_level} Quality Checkpoints", ""]
    for cp in section.checkpoints:
        lines.append(f"{cp.index}. **{cp.description}**")
        lines.append(f"   - **Criteria:** {', '.join(cp.criteria)}")
        lines.append(f"   - **Method:** {cp.method}")
        lines.append(f"   - **Responsible:** {cp.responsible}")
        lines.append("")
    return lines


def render_markdown_section(
    section: TreeSection,
    checkpoint_renderer: Callable[[TreeSection, int], list[str]] = _checkpoints_markdown,
) -> list[str]:
    level = min(section.level + 1, 6)
    lines = [f"{'#' * level} {section.heading}", ""]
    lines.extend(render_markdown_blocks(section.blocks))
    if section.checkpoints:
        lines.extend(checkpoint_renderer(section, min(level + 1, 6)))
    for child in section.children:
        lines.extend(render_markdown_section(child, checkpoint_renderer))
    return lines


def finish_markdown(lines: list[str]) -> bytes:
    text = "\n".join(lines)
    while "\n\n\n" in text:
        text = text.replace("\n\n\n", "\n\n")
    return (text.strip() + "\n").encode("utf-8")


class MarkdownRenderer(BaseRenderer):
    """Flat heading-per-section Markdown with a metadata block and footer."""

    format = ExportFormat.MARKDOWN
    extension = ".md"
    mime_type = "text/markdown"

    def render(
        self,
        tree: DocumentTree,
        options: ExportOptions,
        template: DocumentTemplate,
    ) -> bytes:
        lines = [f"# {tree.title}", "", f"*{tree.subtitle}*", ""]

        if tree.include_metadata:
            lines.extend(["## Document Information", ""])
            lines.extend(f"- **{label}:** {value}" for label, value in tree.metadata_rows)
            lines.append("")

        lines.extend(["## Table of Contents", ""])
        lines.extend(render_markdown_toc(tree.toc))

        for section in tree.sections:
            lines.extend(render_markdown_section(section))

        lines.extend(["---", "", f"*Generated by {GENERATOR_NAME} on {tree.generated_date}*"])
        return finish_markdown(lines)


RendererRegistry.register(MarkdownRenderer())
