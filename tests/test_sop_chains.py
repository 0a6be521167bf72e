"""Tests for the diagram and narrative chains with fake generators."""

import random
from datetime import datetime, timezone

import pytest

from sop_engine.chains.generate_sop_charts import (
    build_dataflow_prompt,
    build_sequence_prompt,
    generate_sop_charts,
)
from sop_engine.chains.generate_sop_text import (
    INITIAL_VERSION,
    build_sop_text_prompt,
    generate_document_number,
    generate_sop_text,
)
from sop_engine.core.diagram_sanitizer import FALLBACK_DIAGRAM
from sop_engine.core.exceptions import GenerationFailure
from sop_engine.core.schemas_sop import ChartType
from sop_engine.core.schemas_workflow import WorkflowDefinition
from sop_engine.core.workflow_inputs import build_chart_input, build_text_input, extract_actors
from tests.fixtures_sop import (
    DATAFLOW_CODE,
    FIXED_NOW,
    FLOWCHART_CODE,
    FLOWCHART_MARKER,
    SAMPLE_WORKFLOW,
    SEQUENCE_CODE,
)


def _workflow(**overrides) -> WorkflowDefinition:
    return WorkflowDefinition.model_validate({**SAMPLE_WORKFLOW, **overrides})


class TestGenerateSopCharts:
    @pytest.mark.asyncio
    async def test_three_charts_in_fixed_order(self, chart_llm):
        workflow = _workflow()
        charts = await generate_sop_charts(build_chart_input(workflow, extract_actors(workflow)), llm=chart_llm)

        assert [c.type for c in charts] == [ChartType.FLOWCHART, ChartType.SEQUENCE, ChartType.DATAFLOW]
        assert [c.title for c in charts] == [
            "Process Flowchart",
            "Event Flow Diagram",
            "Input-Process-Output Diagram",
        ]
        assert [c.diagram_code for c in charts] == [FLOWCHART_CODE, SEQUENCE_CODE, DATAFLOW_CODE]
        assert len(chart_llm.prompts) == 3

    @pytest.mark.asyncio
    async def test_unusable_diagram_replaced_by_fallback(self, fake_llm):
        llm = fake_llm({FLOWCHART_MARKER: FLOWCHART_CODE}, default="Sorry, I can't help with that.")
        workflow = _workflow()
        charts = await generate_sop_charts(build_chart_input(workflow, extract_actors(workflow)), llm=llm)

        assert charts[0].diagram_code == FLOWCHART_CODE
        assert charts[1].diagram_code == FALLBACK_DIAGRAM
        assert charts[2].diagram_code == FALLBACK_DIAGRAM

    @pytest.mark.asyncio
    async def test_single_actor_still_gets_sequence_diagram(self, chart_llm):
        workflow = WorkflowDefinition(title="Solo task", steps=["Do it"], actors=["Clerk"])
        charts = await generate_sop_charts(build_chart_input(workflow, extract_actors(workflow)), llm=chart_llm)
        assert len(charts) == 3
        assert charts[1].type is ChartType.SEQUENCE

    @pytest.mark.asyncio
    async def test_generator_error_raises_generation_failure(self, fake_llm):
        workflow = _workflow()
        with pytest.raises(GenerationFailure) as exc_info:
            await generate_sop_charts(
                build_chart_input(workflow, extract_actors(workflow)),
                llm=fake_llm(error=RuntimeError("service unavailable")),
            )
        assert exc_info.value.producer == "charts"
        assert isinstance(exc_info.value.__cause__, RuntimeError)

    def test_sequence_prompt_lists_actors(self):
        workflow = _workflow()
        prompt = build_sequence_prompt(build_chart_input(workflow, extract_actors(workflow)))
        assert "ACTORS: Account Manager, Operations" in prompt
        assert "1. Verify identity (Actor: Account Manager)" in prompt

    def test_dataflow_prompt_caps_steps(self):
        workflow = _workflow(steps=[f"Step {i}" for i in range(1, 9)])
        prompt = build_dataflow_prompt(build_chart_input(workflow, extract_actors(workflow)))
        assert "5. Step 5" in prompt
        assert "6. Step 6" not in prompt
        assert "2. Signed contract: Countersigned" in prompt


class TestGenerateSopText:
    @pytest.mark.asyncio
    async def test_parses_sections(self, text_llm):
        workflow = _workflow()
        result = await generate_sop_text(
            build_text_input(workflow, extract_actors(workflow)),
            llm=text_llm,
            now=FIXED_NOW,
            rng=random.Random(7),
        )

        assert result.title == "Customer Onboarding"
        assert result.version == INITIAL_VERSION
        assert result.effective_date == "2026-03-14"
        assert result.document_number.startswith("SOP-2026-03-")
        assert [s.title for s in result.sections] == ["PURPOSE", "SCOPE", "PROCEDURE", "REVISION HISTORY"]

    @pytest.mark.asyncio
    async def test_empty_response_raises(self, fake_llm):
        workflow = _workflow()
        with pytest.raises(GenerationFailure) as exc_info:
            await generate_sop_text(build_text_input(workflow, extract_actors(workflow)), llm=fake_llm(default="  \n"))
        assert exc_info.value.producer == "text"

    @pytest.mark.asyncio
    async def test_generator_error_is_wrapped(self, fake_llm):
        workflow = _workflow()
        with pytest.raises(GenerationFailure) as exc_info:
            await generate_sop_text(
                build_text_input(workflow, extract_actors(workflow)),
                llm=fake_llm(error=ConnectionError("reset")),
            )
        assert isinstance(exc_info.value.__cause__, ConnectionError)

    def test_prompt_includes_optional_blocks_only_when_present(self):
        workflow = _workflow(risks=["Fraudulent documents"], dependencies=["CRM access"])
        prompt = build_sop_text_prompt(build_text_input(workflow, extract_actors(workflow)), "2026-03-14")
        assert "IDENTIFIED RISKS:\n1. Fraudulent documents" in prompt
        assert "DEPENDENCIES:\n1. CRM access" in prompt
        assert "2. Signed contract - Countersigned" in prompt
        assert "1.0 | 2026-03-14 | Initial release" in prompt

        bare = build_sop_text_prompt(build_text_input(_workflow(), ["Clerk"]), "2026-03-14")
        assert "IDENTIFIED RISKS" not in bare
        assert "DEPENDENCIES:" not in bare


class TestDocumentNumber:
    def test_format(self):
        now = datetime(2026, 1, 5, tzinfo=timezone.utc)
        number = generate_document_number(now, random.Random(1))
        prefix, year, month, suffix = number.split("-")
        assert (prefix, year, month) == ("SOP", "2026", "01")
        assert len(suffix) == 3 and suffix.isdigit()

    def test_deterministic_with_seeded_rng(self):
        assert generate_document_number(FIXED_NOW, random.Random(3)) == generate_document_number(
            FIXED_NOW, random.Random(3)
        )
