"""Assemble a complete SOP document from its three producers.

Diagrams, narrative text and the cover image are produced concurrently and
joined all-or-nothing: the first producer failure cancels the others and is
raised as ``AssemblyFailure``. Numbering and the table of contents are built
only after every producer has finished.
"""

import asyncio
import logging
import random
from collections.abc import Callable
from datetime import datetime, timezone
from typing import Any

from sop_engine.chains.generate_sop_charts import generate_sop_charts
from sop_engine.chains.generate_sop_text import generate_sop_text
from sop_engine.core.config import get_settings
from sop_engine.core.cover_image import generate_cover_image
from sop_engine.core.exceptions import AssemblyFailure
from sop_engine.core.llm import TextGenerator
from sop_engine.core.logging import get_logger, log_with_context
from sop_engine.core.schemas_sop import (
    CompleteSOPDocument,
    CoverImage,
    CoverPage,
    DocumentMetadata,
    GeneratedSOPText,
)
from sop_engine.core.schemas_workflow import WorkflowDefinition
from sop_engine.core.toc_builder import build_table_of_contents, number_sections
from sop_engine.core.workflow_inputs import (
    build_chart_input,
    build_image_input,
    build_text_input,
    extract_actors,
    extract_keywords,
)

logger = get_logger(__name__)

DEFAULT_CATEGORY = "Process"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def build_cover_page(sop_text: GeneratedSOPText, cover_image: CoverImage) -> CoverPage:
    return CoverPage(
        title=sop_text.title,
        subtitle=f"Document No: {sop_text.document_number} | Version {sop_text.version}",
        cover_image=cover_image,
    )


class SOPDocumentAssembler:
    """Orchestrates the producers and builds the canonical document.

    Args:
        llm_text: Generator for the narrative; defaults to the configured text model
        llm_charts: Generator for diagrams; defaults to the configured chart model
        clock: Returns the current time; injected for deterministic tests
        rng: Random source for the document number suffix
    """

    def __init__(
        self,
        llm_text: TextGenerator | None = None,
        llm_charts: TextGenerator | None = None,
        clock: Callable[[], datetime] | None = None,
        rng: random.Random | None = None,
    ):
        self.llm_text = llm_text
        self.llm_charts = llm_charts
        self.clock = clock or _utcnow
        self.rng = rng

    async def generate_complete_document(
        self, workflow: WorkflowDefinition | dict[str, Any]
    ) -> CompleteSOPDocument:
        """
        Build a CompleteSOPDocument from a workflow definition.

        Raises:
            AssemblyFailure: If any producer fails; no partial document is returned
        """
        if not isinstance(workflow, WorkflowDefinition):
            workflow = WorkflowDefinition.model_validate(workflow)

        settings = get_settings()
        started_at = self.clock()
        actors = extract_actors(workflow)
        keywords = extract_keywords(workflow)

        log_with_context(
            logger,
            logging.INFO,
            "Generating complete SOP document",
            title=workflow.title,
            steps=len(workflow.steps),
            actors=len(actors),
        )

        charts, sop_text, cover_image = await self._run_producers(
            {
                "charts": generate_sop_charts(build_chart_input(workflow, actors), llm=self.llm_charts),
                "text": generate_sop_text(
                    build_text_input(workflow, actors),
                    llm=self.llm_text,
                    now=started_at,
                    rng=self.rng,
                ),
                "image": asyncio.to_thread(
                    generate_cover_image, build_image_input(workflow, keywords), started_at
                ),
            }
        )

        # Numbering runs strictly after every producer has finished
        sections = number_sections(sop_text.sections)
        table_of_contents = build_table_of_contents(charts, sections)

        document = CompleteSOPDocument(
            metadata=DocumentMetadata(
                title=sop_text.title,
                document_number=sop_text.document_number,
                version=sop_text.version,
                effective_date=sop_text.effective_date,
                generated_at=self.clock(),
                author=settings.SOP_DEFAULT_AUTHOR,
                department=settings.SOP_DEFAULT_DEPARTMENT,
                category=workflow.category or DEFAULT_CATEGORY,
                tags=list(workflow.tags),
            ),
            cover_page=build_cover_page(sop_text, cover_image),
            table_of_contents=table_of_contents,
            charts=charts,
            sections=sections,
        )

        log_with_context(
            logger,
            logging.INFO,
            "Complete SOP document generated",
            document_number=sop_text.document_number,
            chart_count=len(charts),
            section_count=len(sections),
        )
        return document

    async def _run_producers(self, producers: dict[str, Any]) -> list[Any]:
        """Run producer coroutines concurrently; first failure cancels the rest."""
        tasks = {name: asyncio.ensure_future(coro) for name, coro in producers.items()}
        try:
            return await asyncio.gather(*tasks.values())
        except Exception as e:
            for task in tasks.values():
                if not task.done():
                    task.cancel()
            await asyncio.gather(*tasks.values(), return_exceptions=True)

            failed = next(
                (
                    name
                    for name, task in tasks.items()
                    if task.done() and not task.cancelled() and task.exception() is e
                ),
                None,
            )
            log_with_context(
                logger,
                logging.ERROR,
                "SOP document generation failed",
                producer=failed,
                error=str(e),
            )
            raise AssemblyFailure(
                f"Failed to generate SOP document ({failed or 'unknown'} producer): {e}",
                producer=failed,
            ) from e


async def generate_complete_document(
    workflow: WorkflowDefinition | dict[str, Any],
) -> CompleteSOPDocument:
    """Build a document with the default generators."""
    return await SOPDocumentAssembler().generate_complete_document(workflow)
