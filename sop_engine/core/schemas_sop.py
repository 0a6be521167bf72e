"""Pydantic schemas for the canonical SOP document model."""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, model_validator


class ChartType(str, Enum):
    """The three diagram kinds every document carries, in fixed order."""

    FLOWCHART = "flowchart"
    SEQUENCE = "sequence"
    DATAFLOW = "dataflow"


CHART_ORDER = (ChartType.FLOWCHART, ChartType.SEQUENCE, ChartType.DATAFLOW)


class GeneratedChart(BaseModel):
    """One diagram rendered as diagram-description-language text."""

    model_config = ConfigDict(frozen=True)

    type: ChartType
    title: str
    description: str
    diagram_code: str
    caption: str


class QualityCheckpoint(BaseModel):
    """A quality-control item attached to a section."""

    model_config = ConfigDict(frozen=True)

    description: str
    criteria: list[str] = Field(default_factory=list)
    method: str = ""
    responsible: str = ""
    required: bool = True


class SOPSection(BaseModel):
    """A narrative section. ``number`` stays empty until the assembler numbers it."""

    model_config = ConfigDict(frozen=True)

    number: str = ""
    title: str
    content: str = ""
    subsections: list["SOPSection"] = Field(default_factory=list)
    checkpoints: list[QualityCheckpoint] = Field(default_factory=list)


class GeneratedSOPText(BaseModel):
    """Output of the narrative text generator."""

    model_config = ConfigDict(frozen=True)

    title: str
    document_number: str
    version: str = "1.0"
    effective_date: str  # YYYY-MM-DD
    sections: list[SOPSection] = Field(default_factory=list)


class CoverImage(BaseModel):
    """Vector cover image, base64 encoded."""

    model_config = ConfigDict(frozen=True)

    image_data: str
    mime_type: str = "image/svg+xml"
    prompt: str  # what was requested, not a literal model prompt
    pattern: str = "generic"
    generated_at: datetime


class TOCEntry(BaseModel):
    """Table of contents node; one level of nesting."""

    model_config = ConfigDict(frozen=True)

    number: str
    title: str
    page: int | None = None
    subsections: list["TOCEntry"] = Field(default_factory=list)


class DocumentMetadata(BaseModel):
    model_config = ConfigDict(frozen=True)

    title: str
    document_number: str
    version: str
    effective_date: str
    generated_at: datetime
    author: str = "SOP Engine"
    department: str = "Operations"
    status: str = "active"
    category: str = "Process"
    tags: list[str] = Field(default_factory=list)


class CoverPage(BaseModel):
    model_config = ConfigDict(frozen=True)

    title: str
    subtitle: str
    cover_image: CoverImage | None = None


class CompleteSOPDocument(BaseModel):
    """The canonical, immutable artifact every exporter renders from.

    Invariants: exactly three charts (flowchart, sequence, dataflow); TOC
    entry "1" is the diagram group; narrative sections are numbered from 2.
    """

    model_config = ConfigDict(frozen=True)

    metadata: DocumentMetadata
    cover_page: CoverPage
    table_of_contents: list[TOCEntry] = Field(default_factory=list)
    charts: list[GeneratedChart]
    sections: list[SOPSection] = Field(default_factory=list)

    @model_validator(mode="after")
    def _check_charts(self) -> "CompleteSOPDocument":
        types = tuple(chart.type for chart in self.charts)
        if types != CHART_ORDER:
            raise ValueError(
                f"Expected charts {[t.value for t in CHART_ORDER]}, got {[t.value for t in types]}"
            )
        return self

    @property
    def title(self) -> str:
        return self.metadata.title
