"""Agent Markdown renderer: Markdown tuned for consumption by automated agents.

Adds a metadata table, explicit Purpose/Scope call-outs, checkpoint blocks
flagged required/optional and a fixed execution-notes trailer.
"""

from sop_engine.core.export.base import BaseRenderer, RendererRegistry
from sop_engine.core.export.document_tree import DocumentTree, TreeSection
from sop_engine.core.export.markdown_renderer import (
    GENERATOR_NAME,
    finish_markdown,
    render_markdown_section,
    render_markdown_toc,
)
from sop_engine.core.schemas_export import DocumentTemplate, ExportFormat, ExportOptions

AGENT_INSTRUCTIONS = (
    "> **Agent Instructions**: This is a Standard Operating Procedure document. "
    "Follow these steps precisely."
)

EXECUTION_NOTES = [
    "- Follow each step in sequence",
    "- Verify quality checkpoints before proceeding",
    "- Document any deviations or issues",
    "- Escalate critical failures immediately",
]


def _agent_checkpoints(section: TreeSection, heading_level: int) -> list[str]:
    lines = [f"{'#' * heading_level} Quality Checkpoints", ""]
    item_level = "#" * min(heading_level + 1, 6)
    for cp in section.checkpoints:
        lines.extend(
            [
                f"{item_level} Checkpoint {cp.index}: {cp.description}",
                "",
                f"- **Criteria**: {', '.join(cp.criteria)}",
                f"- **Method**: {cp.method}",
                f"- **Responsible**: {cp.responsible}",
                f"- **Required**: {'Yes' if cp.required else 'No'}",
                "",
            ]
        )
    return lines


class AgentMarkdownRenderer(BaseRenderer):
    format = ExportFormat.AGENT_MARKDOWN
    extension = ".agent.md"
    mime_type = "text/markdown"

    def render(
        self,
        tree: DocumentTree,
        options: ExportOptions,
        template: DocumentTemplate,
    ) -> bytes:
        lines = [f"# {tree.title}", "", AGENT_INSTRUCTIONS, ""]

        lines.extend(["## Document Metadata", "", "| Field | Value |", "|-------|-------|"])
        lines.extend(f"| **{label}** | {value} |" for label, value in tree.metadata_rows)
        if tree.tags:
            lines.append(f"| **Tags** | {', '.join(tree.tags)} |")
        lines.append("")

        lines.extend(["## Purpose", "", tree.purpose, "", "## Scope", "", tree.scope, ""])

        lines.extend(["## Execution Order", ""])
        lines.extend(render_markdown_toc(tree.toc))

        for section in tree.sections:
            lines.extend(render_markdown_section(section, checkpoint_renderer=_agent_checkpoints))

        lines.extend(["---", "", "## Agent Execution Notes", ""])
        lines.extend(EXECUTION_NOTES)
        lines.extend(
            [
                "",
                "---",
                "",
                f"*Generated by {GENERATOR_NAME} on {tree.generated_date}*",
                "*Document Format: Agent Markdown - Optimized for AI Agent Consumption*",
            ]
        )
        return finish_markdown(lines)


RendererRegistry.register(AgentMarkdownRenderer())
