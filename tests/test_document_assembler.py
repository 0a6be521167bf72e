"""Tests for section numbering, the table of contents and document assembly."""

import random

import pytest
from pydantic import ValidationError

from sop_engine.core.exceptions import AssemblyFailure
from sop_engine.core.schemas_sop import CompleteSOPDocument, SOPSection
from sop_engine.core.schemas_workflow import WorkflowDefinition
from sop_engine.core.toc_builder import build_table_of_contents, number_sections
from sop_engine.core.workflow_inputs import extract_actors, extract_keywords
from sop_engine.services.document_assembler import SOPDocumentAssembler
from tests.fixtures_sop import FIXED_NOW, SOP_TEXT_MARKER, make_charts, make_document


def _assembler(text_llm, chart_llm) -> SOPDocumentAssembler:
    return SOPDocumentAssembler(
        llm_text=text_llm,
        llm_charts=chart_llm,
        clock=lambda: FIXED_NOW,
        rng=random.Random(7),
    )


class TestWorkflowInputs:
    def test_actor_union_in_first_seen_order(self):
        workflow = WorkflowDefinition(
            steps=[
                {"description": "a", "actor": "Clerk", "role": "Reviewer"},
                {"description": "b", "responsible": "Clerk"},
            ],
            actors=["Manager"],
        )
        assert extract_actors(workflow) == ["Clerk", "Reviewer", "Manager"]

    def test_default_actors(self):
        assert extract_actors(WorkflowDefinition(steps=["a"])) == ["Process Owner", "Operator"]

    def test_keywords_capped_and_unique(self):
        workflow = WorkflowDefinition(
            title="Quarterly Finance Audit for Banking",
            tags=["finance", "compliance", "risk"],
            category="Audit",
        )
        assert extract_keywords(workflow) == ["quarterly", "finance", "audit", "banking", "compliance"]

    def test_default_keywords(self):
        workflow = WorkflowDefinition(title="Do it")
        assert extract_keywords(workflow) == ["process", "workflow", "quality", "efficiency"]

    def test_bare_strings_coerced(self, sample_workflow):
        workflow = WorkflowDefinition.model_validate(sample_workflow)
        assert workflow.steps[2].label == "Send welcome pack"
        assert workflow.inputs[0].name == "ID documents"


class TestNumbering:
    def test_sections_numbered_from_two(self):
        sections = [
            SOPSection(title="Purpose"),
            SOPSection(title="Procedure", subsections=[SOPSection(title="A"), SOPSection(title="B")]),
            SOPSection(title="References"),
        ]
        numbered = number_sections(sections)

        assert [s.number for s in numbered] == ["2", "3", "4"]
        assert [sub.number for sub in numbered[1].subsections] == ["3.1", "3.2"]

    def test_existing_numbers_are_overwritten(self):
        numbered = number_sections([SOPSection(number="7", title="Purpose")])
        assert numbered[0].number == "2"

    def test_toc_mirrors_diagrams_and_sections(self):
        sections = number_sections(
            [SOPSection(title="Purpose"), SOPSection(title="Procedure", subsections=[SOPSection(title="A")])]
        )
        toc = build_table_of_contents(make_charts(), sections)

        assert [e.number for e in toc] == ["1", "2", "3"]
        assert toc[0].title == "Process Diagrams"
        assert [(s.number, s.title) for s in toc[0].subsections] == [
            ("1.1", "Process Flowchart"),
            ("1.2", "Event Flow Diagram"),
            ("1.3", "Input-Process-Output Diagram"),
        ]
        assert [(s.number, s.title) for s in toc[2].subsections] == [("3.1", "A")]


class TestSOPDocumentAssembler:
    @pytest.mark.asyncio
    async def test_complete_document(self, sample_workflow, text_llm, chart_llm):
        document = await _assembler(text_llm, chart_llm).generate_complete_document(sample_workflow)

        assert document.title == "Customer Onboarding"
        assert len(document.charts) == 3
        assert [s.number for s in document.sections] == ["2", "3", "4", "5"]
        assert document.sections[2].subsections[0].number == "4.1"

        toc = document.table_of_contents
        assert toc[0].number == "1" and len(toc[0].subsections) == 3
        assert [e.number for e in toc[1:]] == [s.number for s in document.sections]
        assert [e.title for e in toc[1:]] == [s.title for s in document.sections]

    @pytest.mark.asyncio
    async def test_metadata_and_cover_page(self, sample_workflow, text_llm, chart_llm):
        document = await _assembler(text_llm, chart_llm).generate_complete_document(sample_workflow)
        metadata = document.metadata

        assert metadata.generated_at == FIXED_NOW
        assert metadata.effective_date == "2026-03-14"
        assert metadata.category == "Sales"
        assert metadata.tags == ["onboarding"]
        assert metadata.status == "active"
        assert document.cover_page.subtitle == f"Document No: {metadata.document_number} | Version 1.0"
        assert document.cover_page.cover_image is not None

    @pytest.mark.asyncio
    async def test_chart_failure_aborts_assembly(self, sample_workflow, text_llm, fake_llm):
        assembler = _assembler(text_llm, fake_llm(error=RuntimeError("chart service down")))

        with pytest.raises(AssemblyFailure) as exc_info:
            await assembler.generate_complete_document(sample_workflow)

        assert exc_info.value.producer == "charts"
        assert exc_info.value.recoverable is False
        assert exc_info.value.__cause__ is not None

    @pytest.mark.asyncio
    async def test_text_failure_aborts_assembly(self, sample_workflow, chart_llm, fake_llm):
        assembler = _assembler(fake_llm(default=""), chart_llm)

        with pytest.raises(AssemblyFailure) as exc_info:
            await assembler.generate_complete_document(sample_workflow)

        assert exc_info.value.producer == "text"

    @pytest.mark.asyncio
    async def test_accepts_workflow_model(self, sample_workflow, text_llm, chart_llm):
        workflow = WorkflowDefinition.model_validate(sample_workflow)
        document = await _assembler(text_llm, chart_llm).generate_complete_document(workflow)
        assert document.metadata.title == workflow.title

    @pytest.mark.asyncio
    async def test_narrative_without_headings(self, sample_workflow, chart_llm, fake_llm):
        text_llm = fake_llm({SOP_TEXT_MARKER: "The model answered in plain prose.\nNo headings at all."})
        document = await _assembler(text_llm, chart_llm).generate_complete_document(sample_workflow)

        assert document.sections == []
        assert [e.number for e in document.table_of_contents] == ["1"]
        assert [s.number for s in document.table_of_contents[0].subsections] == ["1.1", "1.2", "1.3"]


class TestCompleteSOPDocument:
    def test_accepts_three_charts_in_order(self):
        document = make_document()
        assert CompleteSOPDocument.model_validate(document.model_dump()) == document

    @pytest.mark.parametrize(
        "charts",
        [
            [],
            make_charts()[:2],
            make_charts() + make_charts()[:2],
            list(reversed(make_charts())),
        ],
    )
    def test_rejects_wrong_chart_set(self, charts):
        data = make_document().model_dump()
        data["charts"] = [c.model_dump() for c in charts]
        with pytest.raises(ValidationError, match="Expected charts"):
            CompleteSOPDocument.model_validate(data)
