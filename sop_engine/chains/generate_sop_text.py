"""Narrative chain: ISO 9001 style SOP text.

One generative call produces free-form markdown. It is parsed into unnumbered
sections by ``sop_text_parser``; numbering happens later in the assembler.
"""

import random
from datetime import datetime, timezone

from sop_engine.core.config import get_settings
from sop_engine.core.exceptions import GenerationFailure
from sop_engine.core.llm import TextGenerator, get_text_generator
from sop_engine.core.logging import get_logger
from sop_engine.core.schemas_sop import GeneratedSOPText
from sop_engine.core.sop_text_parser import parse_sop_sections
from sop_engine.core.workflow_inputs import SOPTextInput

logger = get_logger(__name__)

INITIAL_VERSION = "1.0"

SYSTEM_PROMPT = (
    "You are an expert technical writer specializing in Standard Operating "
    "Procedures (SOPs) following ISO 9001 standards."
)

SOP_TEXT_PROMPT = """Generate a comprehensive, professional SOP document with the following information:

PROCESS TITLE: {title}
DESCRIPTION: {description}

PROCESS STEPS:
{steps}

INPUTS REQUIRED:
{inputs}

EXPECTED OUTPUTS:
{outputs}
{actors}{risks}{dependencies}
Create a complete SOP document following ISO 9001 structure with these sections:

### PURPOSE
   - Why this SOP exists, its objectives and benefits

### SCOPE
   - What is covered, what is NOT covered, applicable departments

### DEFINITIONS AND ABBREVIATIONS
   - Key terms, acronyms and technical terminology

### RESPONSIBILITIES
   - Roles, their responsibilities and authority levels

### PROCEDURE
   Main steps use "1. Step Title" on ONE line with the description on the NEXT line.
   Sub-steps use 3-space indented sub-numbering: "   1.1", "   1.2".

1. Prepare Materials
Gather all required materials and tools for the process.
   1.1 Check material quality and expiration dates
   1.2 Verify quantities match requirements

2. Execute Process
Follow the documented procedure step by step.
   2.1 Monitor progress at each checkpoint
   2.2 Record observations and measurements

### REQUIRED RESOURCES
   - Materials, equipment, personnel and information systems

### DOCUMENTATION AND RECORDS
   - Forms, records, retention periods and storage requirements

### QUALITY CONTROL
   Main items use "-" bullets; sub-items are indented 3 spaces and use "•".

- Acceptance criteria
   • Criteria 1
   • Criteria 2

### SAFETY AND COMPLIANCE
   - Safety precautions, regulatory requirements and risk mitigation

### REFERENCES
   - Related SOPs, regulatory standards and supporting documents

### REVISION HISTORY
   A markdown table with columns Version, Date, Description, Author and ONE row:
   {version} | {date} | Initial release | SOP Engine

FORMATTING RULES (MUST FOLLOW EXACTLY):
1. Section headers are "### Section Title" on ONE line, with NO numbers; headers are numbered automatically
2. Optional subsections use "#### Subsection Title", also without numbers
3. Write procedures in the imperative mood ("Complete the form")
4. Do not add a document title or any text before the first section header"""


def _numbered(items: list[str]) -> str:
    return "\n".join(f"{i}. {item}" for i, item in enumerate(items, start=1)) or "Not specified"


def build_sop_text_prompt(text_input: SOPTextInput, effective_date: str) -> str:
    def io_line(item) -> str:
        return item.name + (f" - {item.description}" if item.description else "")

    actors = f"\nROLES/ACTORS INVOLVED:\n{', '.join(text_input.actors)}\n" if text_input.actors else ""
    risks = (
        f"\nIDENTIFIED RISKS:\n{_numbered([r.description for r in text_input.risks])}\n"
        if text_input.risks
        else ""
    )
    dependencies = (
        f"\nDEPENDENCIES:\n{_numbered(list(text_input.dependencies))}\n"
        if text_input.dependencies
        else ""
    )

    return SOP_TEXT_PROMPT.format(
        title=text_input.title,
        description=text_input.description or "Not specified",
        steps=_numbered([step.label for step in text_input.steps]),
        inputs=_numbered([io_line(i) for i in text_input.inputs]),
        outputs=_numbered([io_line(o) for o in text_input.outputs]),
        actors=actors,
        risks=risks,
        dependencies=dependencies,
        version=INITIAL_VERSION,
        date=effective_date,
    )


def generate_document_number(
    now: datetime | None = None,
    rng: random.Random | None = None,
) -> str:
    """SOP-YYYY-MM-NNN. Not globally unique."""
    now = now or datetime.now(timezone.utc)
    suffix = (rng or random).randint(0, 999)
    return f"SOP-{now.year}-{now.month:02d}-{suffix:03d}"


async def generate_sop_text(
    text_input: SOPTextInput,
    llm: TextGenerator | None = None,
    now: datetime | None = None,
    rng: random.Random | None = None,
) -> GeneratedSOPText:
    """
    Generate and parse the ISO narrative for a workflow.

    Args:
        text_input: Derived narrative input
        llm: Text generator; defaults to the configured Anthropic text model
        now: Generation time, used for the effective date and document number
        rng: Random source for the document number suffix

    Returns:
        GeneratedSOPText with unnumbered sections

    Raises:
        GenerationFailure: If the generative call fails or returns no text
    """
    if llm is None:
        settings = get_settings()
        llm = get_text_generator(
            model=settings.SOP_TEXT_MODEL,
            max_tokens=settings.SOP_TEXT_MAX_TOKENS,
            temperature=settings.SOP_TEXT_TEMPERATURE,
            chain="text",
            system=SYSTEM_PROMPT,
        )

    now = now or datetime.now(timezone.utc)
    effective_date = now.date().isoformat()

    logger.info(f"Generating SOP text for '{text_input.title}'")

    try:
        text = await llm.generate(build_sop_text_prompt(text_input, effective_date))
    except GenerationFailure:
        logger.error("SOP text generation failed", exc_info=True)
        raise
    except Exception as e:
        logger.error(f"SOP text generation failed: {e}", exc_info=True)
        raise GenerationFailure(f"Failed to generate SOP text: {e}", producer="text") from e

    if not text or not text.strip():
        logger.error("SOP text generation returned an empty response")
        raise GenerationFailure("Generative service returned no SOP text", producer="text")

    sections = parse_sop_sections(text)
    logger.info(f"Parsed {len(sections)} SOP sections")

    return GeneratedSOPText(
        title=text_input.title,
        document_number=generate_document_number(now, rng),
        version=INITIAL_VERSION,
        effective_date=effective_date,
        sections=sections,
    )
