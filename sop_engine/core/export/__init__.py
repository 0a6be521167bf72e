"""Multi-format export of assembled SOP documents.

This package provides:
- A format-agnostic document tree built once per export
- Renderers for PDF, DOCX, HTML, Markdown and Agent Markdown
- Named templates, filename sanitising and advisory validation

Usage:
    from sop_engine.core.export import (
        ExportFormat,
        ExportOptions,
        export_document,
        validate_for_export,
    )
"""

from sop_engine.core.export.base import (
    BaseRenderer,
    RendererRegistry,
)

from sop_engine.core.export.document_tree import (
    DocumentTree,
    TreeSection,
    build_document_tree,
    content_to_blocks,
)

from sop_engine.core.export.exporter import (
    apply_template,
    export_document,
    get_supported_formats,
)

from sop_engine.core.export.filenames import (
    build_export_filename,
    sanitize_filename_stem,
)

from sop_engine.core.export.templates import (
    get_available_templates,
    get_template,
    render_template_text,
)

from sop_engine.core.export.validation import (
    validate_for_export,
)

from sop_engine.core.schemas_export import (
    ExportFormat,
    ExportOptions,
    ExportResult,
    ValidationResult,
)

# Import renderers to register them
from sop_engine.core.export import markdown_renderer  # noqa: F401
from sop_engine.core.export import agent_markdown_renderer  # noqa: F401
from sop_engine.core.export import html_renderer  # noqa: F401
from sop_engine.core.export import pdf_renderer  # noqa: F401
from sop_engine.core.export import docx_renderer  # noqa: F401

__all__ = [
    # Base types
    "BaseRenderer",
    "RendererRegistry",
    "ExportFormat",
    "ExportOptions",
    "ExportResult",
    "ValidationResult",
    # Document tree
    "DocumentTree",
    "TreeSection",
    "build_document_tree",
    "content_to_blocks",
    # Export
    "apply_template",
    "export_document",
    "get_supported_formats",
    # Filenames
    "build_export_filename",
    "sanitize_filename_stem",
    # Templates
    "get_available_templates",
    "get_template",
    "render_template_text",
    # Validation
    "validate_for_export",
]
