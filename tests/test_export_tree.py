"""Tests for the format-agnostic document tree, filenames and validation."""

import pytest

from sop_engine.core.diagram_sanitizer import FALLBACK_DIAGRAM
from sop_engine.core.export import (
    build_document_tree,
    build_export_filename,
    content_to_blocks,
    sanitize_filename_stem,
    validate_for_export,
)
from sop_engine.core.export.document_tree import (
    Caption,
    CodeBlock,
    ListItem,
    Paragraph,
    Table,
    inline_spans,
)
from sop_engine.core.schemas_export import ExportOptions
from sop_engine.core.schemas_sop import SOPSection
from tests.fixtures_sop import make_document


class TestContentToBlocks:
    def test_numbered_items_with_detail_and_sub_items(self):
        blocks = content_to_blocks(
            "1. Verify Identity\nConfirm the documents\n2. Create Account\n   2.1 Enter details"
        )
        assert blocks == [
            ListItem(text="Verify Identity", ordered=True, marker="1.", depth=0, detail="Confirm the documents"),
            ListItem(text="Create Account", ordered=True, marker="2.", depth=0),
            ListItem(text="Enter details", ordered=True, marker="2.1", depth=1),
        ]

    def test_bullets_take_depth_from_indentation(self):
        blocks = content_to_blocks("- Top\n   • Nested\n      * Deeper")
        assert [(b.text, b.depth, b.ordered) for b in blocks] == [
            ("Top", 0, False),
            ("Nested", 1, False),
            ("Deeper", 2, False),
        ]

    def test_table_separator_rows_dropped(self):
        blocks = content_to_blocks("| Version | Date |\n|---------|------|\n| 1.0 | 2026-03-14 |")
        assert blocks == [Table(header=["Version", "Date"], rows=[["1.0", "2026-03-14"]])]

    def test_paragraph_lines_joined(self):
        blocks = content_to_blocks("First line\nsecond line\n\nNew paragraph")
        assert blocks == [Paragraph("First line second line"), Paragraph("New paragraph")]

    def test_inline_bold_spans(self):
        assert inline_spans("Applies to **all** accounts") == [
            ("Applies to ", False),
            ("all", True),
            (" accounts", False),
        ]


class TestBuildDocumentTree:
    def test_diagram_group_first(self, sample_document):
        tree = build_document_tree(sample_document)
        diagrams = tree.sections[0]

        assert diagrams.heading == "1 Process Diagrams"
        assert [c.number for c in diagrams.children] == ["1.1", "1.2", "1.3"]
        first = diagrams.children[0].blocks
        assert isinstance(first[1], CodeBlock)
        assert first[2] == Caption("Figure 1.1: Complete process flow")

    def test_sections_follow_diagrams(self, sample_document):
        tree = build_document_tree(sample_document)
        assert [s.heading for s in tree.sections[1:]] == [
            "2 PURPOSE",
            "3 SCOPE",
            "4 PROCEDURE",
            "5 REVISION HISTORY",
        ]
        assert tree.sections[3].children[0].heading == "4.1 Escalation"

    def test_purpose_and_scope_extracted(self, sample_document):
        tree = build_document_tree(sample_document)
        assert tree.purpose == "This procedure defines how new customers are onboarded."
        assert tree.scope == "Applies to all **enterprise** accounts."

    def test_purpose_defaults_when_missing(self):
        tree = build_document_tree(make_document("### Procedure\n1. Do it"))
        assert tree.purpose == "Not specified"
        assert tree.scope == "Not specified"

    def test_options_override_author_and_department(self, sample_document):
        tree = build_document_tree(sample_document, ExportOptions(author="Dana", department="Finance"))
        rows = dict(tree.metadata_rows)
        assert rows["Author"] == "Dana"
        assert rows["Department"] == "Finance"
        assert rows["Document No"] == "SOP-2026-03-042"


class TestFilenames:
    @pytest.mark.parametrize(
        "title,stem",
        [
            ("Customer/Onboarding: Process!!", "Customer_Onboarding_Process"),
            ("  Multiple   spaces here ", "Multiple_spaces_here"),
            ("__leading and trailing__", "leading_and_trailing"),
            ("!!!", "SOP_Document"),
            ("", "SOP_Document"),
        ],
    )
    def test_sanitize(self, title, stem):
        assert sanitize_filename_stem(title) == stem

    def test_stem_capped_at_sixty(self):
        assert len(sanitize_filename_stem("A" * 100)) == 60

    def test_export_filename(self, sample_document):
        assert build_export_filename(sample_document, ".pdf") == "Customer_Onboarding_SOP-2026-03-042_v1.0.pdf"

    def test_export_filename_full_stem(self, sample_document):
        metadata = sample_document.metadata.model_copy(
            update={"title": "Customer Onboarding Process", "document_number": "SOP-2024-12-001", "version": "1.0"}
        )
        document = sample_document.model_copy(update={"metadata": metadata})
        assert build_export_filename(document, ".docx") == "Customer_Onboarding_Process_SOP-2024-12-001_v1.0.docx"

    def test_export_filename_without_document_number(self, sample_document):
        metadata = sample_document.metadata.model_copy(update={"document_number": ""})
        document = sample_document.model_copy(update={"metadata": metadata})
        assert build_export_filename(document, ".md") == "Customer_Onboarding_v1.0.md"


class TestValidateForExport:
    def test_clean_document(self, sample_document):
        result = validate_for_export(sample_document)
        assert result.is_valid
        assert result.score == 100
        assert result.errors == [] and result.warnings == []

    def test_no_sections_is_a_warning(self, sample_document):
        result = validate_for_export(sample_document.model_copy(update={"sections": []}))
        assert result.is_valid
        assert result.score == 90
        assert [w.code for w in result.warnings] == ["NO_SECTIONS"]
        assert result.suggestions

    def test_missing_title_is_an_error(self, sample_document):
        metadata = sample_document.metadata.model_copy(update={"title": "  "})
        result = validate_for_export(sample_document.model_copy(update={"metadata": metadata}))
        assert not result.is_valid
        assert result.score == 70
        assert result.errors[0].code == "MISSING_TITLE"

    def test_empty_section_and_fallback_diagram(self, sample_document):
        charts = list(sample_document.charts)
        charts[1] = charts[1].model_copy(update={"diagram_code": FALLBACK_DIAGRAM})
        sections = list(sample_document.sections) + [SOPSection(number="6", title="")]
        result = validate_for_export(sample_document.model_copy(update={"charts": charts, "sections": sections}))

        codes = {w.code for w in result.warnings}
        assert codes == {"EMPTY_SECTION_TITLE", "EMPTY_SECTION_CONTENT", "FALLBACK_DIAGRAM"}
        assert len(result.suggestions) == 3

    def test_section_with_only_subsection_content_is_not_empty(self, sample_document):
        section = SOPSection(number="6", title="Parent", subsections=[SOPSection(number="6.1", title="C", content="x")])
        result = validate_for_export(
            sample_document.model_copy(update={"sections": list(sample_document.sections) + [section]})
        )
        assert result.warnings == []
