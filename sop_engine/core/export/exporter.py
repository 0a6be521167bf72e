"""Export entry point: canonical document in, bytes and metadata out.

``export_document`` never raises. Every failure (unsupported format, unknown
template, renderer error) comes back as ``ExportResult(success=False)`` so
callers check ``success`` before touching ``file_path``.
"""

import hashlib
import logging
import re
from datetime import datetime, timezone
from pathlib import Path

from sop_engine.core.config import get_settings
from sop_engine.core.exceptions import ExportFailure
from sop_engine.core.export.base import RendererRegistry
from sop_engine.core.export.document_tree import build_document_tree
from sop_engine.core.export.filenames import build_export_filename
from sop_engine.core.export.templates import get_template
from sop_engine.core.logging import get_logger, log_with_context
from sop_engine.core.schemas_export import ExportFormat, ExportOptions, ExportResult
from sop_engine.core.schemas_sop import CompleteSOPDocument, SOPSection

logger = get_logger(__name__)

TRAINING_TEMPLATE_ID = "training-sop"
TRAINING_CATEGORY = "Training"

_BULLET_RE = re.compile(r"(?m)^(\s*)[-*]\s+")


def get_supported_formats() -> list[ExportFormat]:
    return RendererRegistry.formats()


def export_document(
    document: CompleteSOPDocument,
    export_format: ExportFormat | str,
    options: ExportOptions | None = None,
) -> ExportResult:
    """Render a document into one format.

    Args:
        document: Canonical assembled document
        export_format: Format name or alias (``pdf``, ``docx``, ``html``, ``md``, ``agent``, ...)
        options: Rendering and output options

    Returns:
        ExportResult; ``success`` is False when anything went wrong
    """
    options = options or ExportOptions()
    exported_at = datetime.now(timezone.utc)
    format_name = str(getattr(export_format, "value", export_format))

    try:
        renderer = RendererRegistry.get(export_format)
        format_name = renderer.format.value
        template = get_template(options.template)
        tree = build_document_tree(document, options)

        content = renderer.render(tree, options, template)
        checksum = hashlib.sha256(content).hexdigest()
        filename = build_export_filename(document, renderer.extension)

        file_path = None
        if options.write_file:
            output_dir = Path(options.output_dir or get_settings().SOP_EXPORT_DIR)
            output_dir.mkdir(parents=True, exist_ok=True)
            path = output_dir / filename
            path.write_bytes(content)
            file_path = str(path)

        log_with_context(
            logger,
            logging.INFO,
            "Exported document",
            document_number=document.metadata.document_number,
            format=format_name,
            template=template.id,
            file_size=len(content),
            checksum=checksum,
        )

        return ExportResult(
            success=True,
            format=format_name,
            file_path=file_path,
            filename=filename,
            mime_type=renderer.mime_type,
            file_size=len(content),
            content=content,
            checksum=checksum,
            exported_at=exported_at,
        )

    except ExportFailure as e:
        log_with_context(
            logger,
            logging.WARNING,
            f"Export failed: {e.message}",
            document_number=document.metadata.document_number,
            format=format_name,
        )
        return ExportResult(success=False, format=format_name, exported_at=exported_at, error=e.message)

    except Exception as e:
        logger.error(f"Renderer error exporting {format_name}: {e}", exc_info=True)
        return ExportResult(
            success=False,
            format=format_name,
            exported_at=exported_at,
            error=f"Export to {format_name} failed: {e}",
        )


def _bulletize(section: SOPSection) -> SOPSection:
    return section.model_copy(
        update={
            "content": _BULLET_RE.sub(r"\1• ", section.content),
            "subsections": [_bulletize(sub) for sub in section.subsections],
        }
    )


def apply_template(document: CompleteSOPDocument, template_id: str) -> CompleteSOPDocument:
    """Return a copy of the document restyled for a template.

    Numbering and structure are untouched. Applying the same template twice
    gives the same document.

    Raises:
        ExportFailure: If the template does not exist
    """
    template = get_template(template_id)
    metadata = document.metadata

    tag = f"template:{template.id}"
    updates = {"tags": metadata.tags if tag in metadata.tags else [*metadata.tags, tag]}
    if template.id == TRAINING_TEMPLATE_ID:
        updates["category"] = TRAINING_CATEGORY

    return document.model_copy(
        update={
            "metadata": metadata.model_copy(update=updates),
            "sections": [_bulletize(s) for s in document.sections],
        }
    )
