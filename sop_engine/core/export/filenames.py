"""Export filename construction."""

import re

from sop_engine.core.schemas_sop import CompleteSOPDocument

MAX_TITLE_LENGTH = 60
FALLBACK_STEM = "SOP_Document"

_DISALLOWED_RE = re.compile(r"[^A-Za-z0-9 _-]")
_IDENTIFIER_RE = re.compile(r"[^A-Za-z0-9._-]")


def sanitize_filename_stem(title: str | None) -> str:
    """Filesystem-safe stem from a title.

    ``"Customer/Onboarding: Process!!"`` becomes ``"Customer_Onboarding_Process"``.
    """
    stem = _DISALLOWED_RE.sub(" ", title or "")
    stem = re.sub(r"\s+", "_", stem)
    stem = re.sub(r"_+", "_", stem).strip("_")
    stem = stem[:MAX_TITLE_LENGTH].rstrip("_")
    return stem or FALLBACK_STEM


def build_export_filename(document: CompleteSOPDocument, extension: str) -> str:
    """``{title}_{documentNumber}_v{version}{extension}``; the number is omitted when absent."""
    metadata = document.metadata
    filename = sanitize_filename_stem(metadata.title)

    document_number = _IDENTIFIER_RE.sub("", metadata.document_number or "")
    if document_number:
        filename += f"_{document_number}"

    version = _IDENTIFIER_RE.sub("", metadata.version or "") or "1.0"
    return f"{filename}_v{version}{extension}"
