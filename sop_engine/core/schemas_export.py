"""Pydantic schemas for document export."""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field

from sop_engine.core.exceptions import ExportFailure


class ExportFormat(str, Enum):
    PDF = "pdf"
    DOCX = "docx"
    HTML = "html"
    MARKDOWN = "markdown"
    AGENT_MARKDOWN = "agent_markdown"

    @classmethod
    def from_value(cls, value: "ExportFormat | str") -> "ExportFormat":
        """Resolve a format name or alias.

        Raises:
            ExportFailure: If the format is not supported
        """
        if isinstance(value, cls):
            return value
        key = str(value).strip().lower()
        resolved = FORMAT_ALIASES.get(key)
        if resolved is None:
            raise ExportFailure(f"Unsupported format: {value}", export_format=str(value))
        return resolved


FORMAT_ALIASES: dict[str, ExportFormat] = {
    **{f.value: f for f in ExportFormat},
    "md": ExportFormat.MARKDOWN,
    "agent": ExportFormat.AGENT_MARKDOWN,
    "agent-md": ExportFormat.AGENT_MARKDOWN,
    "agent_md": ExportFormat.AGENT_MARKDOWN,
}


class HeaderFooterOptions(BaseModel):
    include_header: bool = True
    include_footer: bool = True


class ColorScheme(BaseModel):
    text: str = "#333333"
    background: str = "#ffffff"


class DocumentStyling(BaseModel):
    """Post-hoc styling override for HTML output."""

    font_family: str | None = None
    font_size: float | None = None
    line_spacing: float | None = None
    colors: ColorScheme | None = None


class ExportOptions(BaseModel):
    """Per-export rendering options. All fields are optional."""

    template: str | None = None
    watermark: str | None = None
    include_metadata: bool = True
    header_footer: HeaderFooterOptions = Field(default_factory=HeaderFooterOptions)
    styling: DocumentStyling | None = None
    author: str | None = None
    department: str | None = None
    output_dir: str | None = None
    write_file: bool = True


class ExportResult(BaseModel):
    """Outcome of one export call. Check ``success`` before using ``file_path``."""

    success: bool
    format: str
    file_path: str | None = None
    filename: str | None = None
    mime_type: str | None = None
    file_size: int = 0
    content: bytes | None = None
    checksum: str | None = None  # sha256 hex of the rendered bytes
    exported_at: datetime
    error: str | None = None


class ValidationIssue(BaseModel):
    code: str
    field: str
    message: str
    severity: str = "warning"  # "error" or "warning"


class ValidationResult(BaseModel):
    is_valid: bool
    errors: list[ValidationIssue] = Field(default_factory=list)
    warnings: list[ValidationIssue] = Field(default_factory=list)
    suggestions: list[str] = Field(default_factory=list)
    score: int = Field(ge=0, le=100)


class PageMargins(BaseModel):
    """Margins in points (72 pt = 1 inch)."""

    top: float = 72
    bottom: float = 72
    left: float = 72
    right: float = 72


class PageLayout(BaseModel):
    page_size: str = "A4"
    orientation: str = "portrait"
    margins: PageMargins = Field(default_factory=PageMargins)
    header_height: float = 36
    footer_height: float = 36


class DocumentTemplate(BaseModel):
    id: str
    name: str
    description: str
    header_template: str
    footer_template: str
    stylesheet: str
    page_layout: PageLayout = Field(default_factory=PageLayout)
