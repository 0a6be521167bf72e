"""Advisory pre-export validation. Never blocks an export."""

from sop_engine.core.diagram_sanitizer import is_fallback
from sop_engine.core.schemas_export import ValidationIssue, ValidationResult
from sop_engine.core.schemas_sop import CompleteSOPDocument, SOPSection

SCORE_CLEAN = 100
SCORE_WARNINGS = 90
SCORE_ERRORS = 70


def _has_content(section: SOPSection) -> bool:
    if section.content.strip() or section.checkpoints:
        return True
    return any(_has_content(sub) for sub in section.subsections)


def validate_for_export(document: CompleteSOPDocument) -> ValidationResult:
    errors: list[ValidationIssue] = []
    warnings: list[ValidationIssue] = []
    suggestions: list[str] = []

    if not document.metadata.title or not document.metadata.title.strip():
        errors.append(
            ValidationIssue(
                code="MISSING_TITLE",
                field="title",
                message="Document title is required for export",
                severity="error",
            )
        )

    if not document.sections:
        warnings.append(
            ValidationIssue(code="NO_SECTIONS", field="sections", message="Document has no sections")
        )
        suggestions.append("Regenerate the narrative text or add sections before distributing")

    for section in document.sections:
        label = section.number or section.title or "?"
        if not section.title.strip():
            warnings.append(
                ValidationIssue(
                    code="EMPTY_SECTION_TITLE",
                    field=f"sections[{label}].title",
                    message=f"Section {label} is missing a title",
                )
            )
            suggestions.append(f"Add a title to section {label}")
        if not _has_content(section):
            warnings.append(
                ValidationIssue(
                    code="EMPTY_SECTION_CONTENT",
                    field=f"sections[{label}].content",
                    message=f"Section {label} is missing content",
                )
            )
            suggestions.append(f"Add content to section {label} or remove it")

    for i, chart in enumerate(document.charts, start=1):
        if is_fallback(chart.diagram_code):
            warnings.append(
                ValidationIssue(
                    code="FALLBACK_DIAGRAM",
                    field=f"charts[{i}]",
                    message=f"{chart.title} is the placeholder diagram",
                )
            )
            suggestions.append(f"Regenerate the {chart.title.lower()} for a process-specific diagram")

    if errors:
        score = SCORE_ERRORS
    elif warnings:
        score = SCORE_WARNINGS
    else:
        score = SCORE_CLEAN

    return ValidationResult(
        is_valid=not errors,
        errors=errors,
        warnings=warnings,
        suggestions=suggestions,
        score=score,
    )
