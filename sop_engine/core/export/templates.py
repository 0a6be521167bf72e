"""Named document templates: stylesheet, header/footer text and page layout."""

import re

from sop_engine.core.exceptions import ExportFailure
from sop_engine.core.export.document_tree import DocumentTree
from sop_engine.core.schemas_export import DocumentTemplate, PageLayout, PageMargins

DEFAULT_TEMPLATE_ID = "standard-sop"

_PLACEHOLDER_RE = re.compile(r"\{\{\s*(\w+)\s*\}\}")
_PAGE_FIELD_RE = re.compile(r"\{\{\s*(pageNumber|totalPages)\s*\}\}")

STANDARD_CSS = """
body { font-family: 'Arial', sans-serif; font-size: 12pt; line-height: 1.6; color: #333333; margin: 0; padding: 20px; }
h1 { font-size: 24pt; font-weight: bold; color: #2c3e50; text-align: center; margin: 30px 0; border-bottom: 3px solid #3498db; padding-bottom: 10px; }
h2 { font-size: 18pt; font-weight: bold; color: #34495e; margin-top: 25px; margin-bottom: 15px; border-bottom: 1px solid #bdc3c7; padding-bottom: 5px; }
h3 { font-size: 14pt; font-weight: bold; color: #7f8c8d; margin-top: 20px; margin-bottom: 10px; }
.metadata { background-color: #ecf0f1; padding: 15px; border-radius: 5px; margin: 20px 0; border-left: 4px solid #3498db; }
.checkpoint { background-color: #e8f6f3; padding: 12px; margin: 10px 0; border-left: 4px solid #27ae60; border-radius: 3px; }
.section { margin: 25px 0; page-break-inside: avoid; }
ol, ul { margin: 10px 0; padding-left: 25px; }
li { margin: 6px 0; line-height: 1.6; }
ul ul { margin: 5px 0; padding-left: 20px; list-style-type: circle; }
"""

TRAINING_CSS = """
body { font-family: 'Calibri', sans-serif; font-size: 11pt; line-height: 1.8; color: #2c3e50; margin: 0; padding: 20px; }
h1 { font-size: 26pt; font-weight: bold; color: #8e44ad; text-align: center; margin-bottom: 35px; border-bottom: 3px solid #9b59b6; padding-bottom: 15px; }
h2 { font-size: 16pt; font-weight: bold; color: #8e44ad; margin-top: 30px; margin-bottom: 15px; background-color: #f8f9fa; padding: 10px; border-left: 5px solid #9b59b6; }
.learning-objective { background-color: #fef9e7; padding: 15px; border-left: 4px solid #f39c12; margin: 15px 0; font-style: italic; }
.checkpoint { background-color: #eaf2f8; padding: 12px; margin: 10px 0; border-left: 4px solid #3498db; border-radius: 3px; }
"""

PROCESS_IMPROVEMENT_CSS = """
body { font-family: 'Times New Roman', serif; font-size: 12pt; line-height: 1.5; color: #2c3e50; margin: 0; padding: 20px; }
h1 { font-size: 22pt; font-weight: bold; color: #e74c3c; text-align: center; margin-bottom: 30px; border-bottom: 2px solid #c0392b; padding-bottom: 10px; }
h2 { font-size: 16pt; font-weight: bold; color: #c0392b; margin-top: 25px; margin-bottom: 15px; border-bottom: 1px solid #e74c3c; padding-bottom: 5px; }
.metric { background-color: #fdf2e9; padding: 12px; border-left: 4px solid #e67e22; margin: 10px 0; font-weight: bold; }
.checkpoint { background-color: #eafaf1; padding: 10px; border-left: 4px solid #27ae60; margin: 10px 0; }
"""

TEMPLATES: dict[str, DocumentTemplate] = {
    t.id: t
    for t in (
        DocumentTemplate(
            id="standard-sop",
            name="Standard SOP Template",
            description="Standard corporate SOP template with consistent formatting",
            header_template="{{title}} - {{department}}",
            footer_template="Page {{pageNumber}} of {{totalPages}} | {{date}}",
            stylesheet=STANDARD_CSS,
            page_layout=PageLayout(margins=PageMargins(top=72, bottom=72, left=72, right=72)),
        ),
        DocumentTemplate(
            id="training-sop",
            name="Training SOP Template",
            description="Training-focused SOP template with learning objectives",
            header_template="Training Material: {{title}}",
            footer_template="Training Document | Page {{pageNumber}} of {{totalPages}} | {{date}}",
            stylesheet=TRAINING_CSS,
            page_layout=PageLayout(margins=PageMargins(top=90, bottom=90, left=72, right=72)),
        ),
        DocumentTemplate(
            id="process-improvement",
            name="Process Improvement Template",
            description="Template for process improvement SOPs with metrics focus",
            header_template="Process Improvement: {{title}}",
            footer_template="Improvement Initiative | {{version}} | Page {{pageNumber}} of {{totalPages}} | {{date}}",
            stylesheet=PROCESS_IMPROVEMENT_CSS,
            page_layout=PageLayout(margins=PageMargins(top=72, bottom=72, left=90, right=90)),
        ),
    )
}


def get_available_templates() -> list[DocumentTemplate]:
    return list(TEMPLATES.values())


def get_template(template_id: str | None) -> DocumentTemplate:
    """Resolve a template id; ``None`` means the standard template.

    Raises:
        ExportFailure: If the template does not exist
    """
    template = TEMPLATES.get(template_id or DEFAULT_TEMPLATE_ID)
    if template is None:
        raise ExportFailure(f"Template not found: {template_id}")
    return template


def render_template_text(template_text: str, values: dict[str, str]) -> str:
    """Substitute every ``{{name}}`` placeholder; unknown names are left as-is."""
    return _PLACEHOLDER_RE.sub(lambda m: str(values.get(m.group(1), m.group(0))), template_text)


def strip_page_fields(template_text: str) -> str:
    """Drop the ``|``-separated parts of a header/footer that mention page numbers.

    Used by unpaged formats; ``"Page {{pageNumber}} of {{totalPages}} | {{date}}"``
    becomes ``"{{date}}"``.
    """
    parts = [p.strip() for p in template_text.split("|")]
    kept = [p for p in parts if p and not _PAGE_FIELD_RE.search(p)]
    return " | ".join(kept)


def template_values(
    tree: DocumentTree, page_number: int | str = 1, total_pages: int | str = 1
) -> dict[str, str]:
    return {
        "title": tree.title,
        "department": tree.department,
        "version": tree.version,
        "author": tree.author,
        "date": tree.effective_date,
        "pageNumber": str(page_number),
        "totalPages": str(total_pages),
    }
