"""Tests for export_document, checksums and templates."""

import hashlib
from pathlib import Path
from unittest.mock import patch

import pytest

from sop_engine.core.exceptions import ExportFailure
from sop_engine.core.export import (
    apply_template,
    export_document,
    get_available_templates,
    get_supported_formats,
    get_template,
    render_template_text,
)
from sop_engine.core.export.markdown_renderer import MarkdownRenderer
from sop_engine.core.export.templates import strip_page_fields
from sop_engine.core.schemas_export import ExportFormat, ExportOptions
from tests.fixtures_sop import SAMPLE_SOP_TEXT, make_document

IN_MEMORY = ExportOptions(write_file=False)


class TestExportDocument:
    @pytest.mark.parametrize(
        "export_format,extension,mime_type",
        [
            ("pdf", ".pdf", "application/pdf"),
            (
                "docx",
                ".docx",
                "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
            ),
            ("html", ".html", "text/html"),
            ("markdown", ".md", "text/markdown"),
            ("agent_markdown", ".agent.md", "text/markdown"),
        ],
    )
    def test_every_format_succeeds(self, sample_document, export_format, extension, mime_type):
        result = export_document(sample_document, export_format, IN_MEMORY)

        assert result.success, result.error
        assert result.format == export_format
        assert result.filename == f"Customer_Onboarding_SOP-2026-03-042_v1.0{extension}"
        assert result.mime_type == mime_type
        assert result.file_size == len(result.content) > 0
        assert result.checksum == hashlib.sha256(result.content).hexdigest()
        assert result.file_path is None

    def test_writes_file_to_output_dir(self, sample_document, tmp_path):
        result = export_document(sample_document, "md", ExportOptions(output_dir=str(tmp_path)))

        assert result.success
        path = Path(result.file_path)
        assert path.parent == tmp_path
        assert path.read_bytes() == result.content

    def test_markdown_and_agent_markdown_do_not_collide(self, sample_document, tmp_path):
        options = ExportOptions(output_dir=str(tmp_path))
        md = export_document(sample_document, ExportFormat.MARKDOWN, options)
        agent = export_document(sample_document, ExportFormat.AGENT_MARKDOWN, options)
        assert md.file_path != agent.file_path
        assert len(list(tmp_path.iterdir())) == 2

    def test_unsupported_format_returns_failure(self, sample_document):
        result = export_document(sample_document, "rtf", IN_MEMORY)
        assert not result.success
        assert result.format == "rtf"
        assert "Unsupported format" in result.error
        assert result.file_path is None

    def test_unknown_template_returns_failure(self, sample_document):
        result = export_document(sample_document, "html", ExportOptions(template="nope", write_file=False))
        assert not result.success
        assert "Template not found" in result.error

    def test_renderer_error_returns_failure(self, sample_document):
        with patch.object(MarkdownRenderer, "render", side_effect=RuntimeError("disk on fire")):
            result = export_document(sample_document, "markdown", IN_MEMORY)
        assert not result.success
        assert "disk on fire" in result.error

    def test_zero_sections_still_exports(self, sample_document):
        result = export_document(sample_document.model_copy(update={"sections": []}), "markdown", IN_MEMORY)
        assert result.success

    def test_supported_formats(self):
        assert set(get_supported_formats()) == set(ExportFormat)


class TestChecksums:
    @pytest.mark.parametrize("export_format", ["markdown", "agent_markdown", "html"])
    def test_identical_documents_identical_checksums(self, export_format):
        first = export_document(make_document(), export_format, IN_MEMORY)
        second = export_document(make_document(), export_format, IN_MEMORY)
        assert first.checksum == second.checksum

    def test_one_character_changes_checksum(self):
        changed = SAMPLE_SOP_TEXT.replace("onboarded.", "onboarded!")
        first = export_document(make_document(), "markdown", IN_MEMORY)
        second = export_document(make_document(changed), "markdown", IN_MEMORY)
        assert first.checksum != second.checksum


class TestTemplates:
    def test_available_templates(self):
        assert [t.id for t in get_available_templates()] == [
            "standard-sop",
            "training-sop",
            "process-improvement",
        ]

    def test_default_template(self):
        assert get_template(None).id == "standard-sop"

    def test_unknown_template_raises(self):
        with pytest.raises(ExportFailure, match="Template not found"):
            get_template("missing")

    def test_margins(self):
        assert get_template("training-sop").page_layout.margins.top == 90
        assert get_template("process-improvement").page_layout.margins.left == 90

    def test_render_template_text(self):
        text = render_template_text(
            "{{title}} | {{ version }} | {{unknown}}", {"title": "Onboarding", "version": "2.0"}
        )
        assert text == "Onboarding | 2.0 | {{unknown}}"

    def test_strip_page_fields(self):
        assert strip_page_fields("Page {{pageNumber}} of {{totalPages}} | {{date}}") == "{{date}}"
        assert strip_page_fields("A | {{ pageNumber }} | B") == "A | B"
        assert strip_page_fields("{{title}}") == "{{title}}"


class TestApplyTemplate:
    def test_training_template(self, sample_document):
        styled = apply_template(sample_document, "training-sop")

        assert styled.metadata.category == "Training"
        assert styled.metadata.tags == ["onboarding", "template:training-sop"]
        escalation = styled.sections[2].subsections[0].content
        assert "• Contact the team lead" in escalation
        assert "  • If unavailable, contact operations" in escalation

    def test_numbering_untouched(self, sample_document):
        styled = apply_template(sample_document, "process-improvement")
        assert [s.number for s in styled.sections] == [s.number for s in sample_document.sections]
        assert styled.table_of_contents == sample_document.table_of_contents
        assert styled.metadata.category == sample_document.metadata.category

    def test_idempotent(self, sample_document):
        once = apply_template(sample_document, "training-sop")
        assert apply_template(once, "training-sop") == once

    def test_unknown_template_raises(self, sample_document):
        with pytest.raises(ExportFailure):
            apply_template(sample_document, "missing")

    def test_input_document_unchanged(self, sample_document):
        apply_template(sample_document, "training-sop")
        assert "- Contact the team lead" in sample_document.sections[2].subsections[0].content
