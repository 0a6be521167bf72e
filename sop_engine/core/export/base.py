"""Base renderer interface and registry for document export.

Defines the contract every output format implements, plus a registry the
exporter uses to pick a renderer for a requested format. Renderer modules
register themselves on import.
"""

from abc import ABC, abstractmethod

from sop_engine.core.exceptions import ExportFailure
from sop_engine.core.export.document_tree import DocumentTree
from sop_engine.core.schemas_export import DocumentTemplate, ExportFormat, ExportOptions


class BaseRenderer(ABC):
    """Base class for format renderers.

    Each output format (PDF, DOCX, etc.) has its own renderer that turns a
    ``DocumentTree`` into bytes.
    """

    format: ExportFormat
    extension: str
    mime_type: str

    @abstractmethod
    def render(
        self,
        tree: DocumentTree,
        options: ExportOptions,
        template: DocumentTemplate,
    ) -> bytes:
        """Render the document tree.

        Args:
            tree: Document tree built from the canonical document
            options: Export options (watermark, header/footer, styling, ...)
            template: Resolved document template

        Returns:
            Rendered file content

        Raises:
            ExportFailure: If rendering fails in a way the renderer can describe
        """
        pass


class RendererRegistry:
    """Registry of renderers, one per format."""

    _renderers: dict[ExportFormat, BaseRenderer] = {}

    @classmethod
    def register(cls, renderer: BaseRenderer) -> None:
        cls._renderers[renderer.format] = renderer

    @classmethod
    def get(cls, export_format: ExportFormat | str) -> BaseRenderer:
        """Look up the renderer for a format name or alias.

        Raises:
            ExportFailure: If the format is unknown or has no renderer
        """
        fmt = ExportFormat.from_value(export_format)
        renderer = cls._renderers.get(fmt)
        if renderer is None:
            raise ExportFailure(f"No renderer registered for format: {fmt.value}", export_format=fmt.value)
        return renderer

    @classmethod
    def formats(cls) -> list[ExportFormat]:
        return [fmt for fmt in ExportFormat if fmt in cls._renderers]
