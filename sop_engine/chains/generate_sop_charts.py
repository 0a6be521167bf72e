"""Diagram chain: three Mermaid diagrams per SOP.

Every document gets a process flowchart, an event (sequence) diagram and an
input-process-output diagram, always in that order, even when the workflow
has a single actor. The three calls run concurrently; if any of them fails
the whole batch fails. Unusable diagram text never fails the batch, it is
replaced by the sanitizer's fallback diagram.
"""

import asyncio
import logging

from sop_engine.core.config import get_settings
from sop_engine.core.diagram_sanitizer import clean_diagram_code, is_fallback
from sop_engine.core.exceptions import GenerationFailure
from sop_engine.core.llm import TextGenerator, get_text_generator
from sop_engine.core.logging import get_logger, log_with_context
from sop_engine.core.schemas_sop import ChartType, GeneratedChart
from sop_engine.core.schemas_workflow import WorkflowIO, WorkflowStep
from sop_engine.core.workflow_inputs import ChartInput

logger = get_logger(__name__)

MAX_DATAFLOW_STEPS = 5


# ============================================================================
# Prompt templates
# ============================================================================


FLOWCHART_PROMPT = """You are an expert in creating process flowcharts for Standard Operating Procedures (SOPs).

Generate a Mermaid flowchart diagram for the following process:

TITLE: {title}
DESCRIPTION: {description}

STEPS:
{steps}

INPUTS: {inputs}
OUTPUTS: {outputs}

Requirements:
1. Use ONLY Mermaid flowchart syntax: flowchart TD
2. Use simple node IDs without spaces (e.g., start, step1, decision1, end1)
3. Use this exact syntax for nodes:
   - Rectangle: nodeId["Label text"]
   - Diamond: nodeId{{"Decision text?"}}
   - Start/End: nodeId(["Label"])
4. Use arrows: nodeId1 --> nodeId2
5. Keep labels VERY SHORT (max 30 characters)
6. NO special characters, quotes or line breaks within labels
7. Include start and end nodes
8. Keep it COMPACT - max 8 nodes total, combine similar steps if needed

Example format:
flowchart TD
    start(["Start"])
    step1["Gather data"]
    decision1{{"Valid?"}}
    step2["Process"]
    end1(["End"])

    start --> step1
    step1 --> decision1
    decision1 -->|Yes| step2
    decision1 -->|No| end1
    step2 --> end1

Return ONLY valid Mermaid code, no explanations or markdown blocks."""


SEQUENCE_PROMPT = """You are an expert in creating event-driven process diagrams for Standard Operating Procedures (SOPs).

Generate a Mermaid sequence diagram showing the event flow and interactions between actors:

TITLE: {title}
DESCRIPTION: {description}

ACTORS: {actors}

STEPS:
{steps}

Requirements:
1. Use ONLY Mermaid sequence diagram syntax: sequenceDiagram
2. Declare a participant for each actor (max 3-4 participants)
3. Show message flow with arrows (->>, -->>)
4. Use activate/deactivate for processing
5. Keep labels SHORT (max 40 characters)
6. Show 6-8 interactions in temporal order

Example format:
sequenceDiagram
    participant E as Employee
    participant M as Manager
    participant S as System

    E->>M: Submit request
    activate M
    M->>S: Process request
    activate S
    S-->>M: Confirmation
    deactivate S
    M->>E: Send approval
    deactivate M

Return ONLY valid Mermaid code, no explanations."""


DATAFLOW_PROMPT = """You are an expert in creating data flow diagrams for Standard Operating Procedures (SOPs).

Generate a Mermaid flowchart showing data inputs, processing, and outputs:

TITLE: {title}

INPUTS:
{inputs}

PROCESS STEPS:
{steps}

OUTPUTS:
{outputs}

Requirements:
1. Use ONLY Mermaid flowchart syntax: flowchart LR
2. Simple node IDs without spaces (inp1, proc1, out1, etc.)
3. VERY SHORT labels (max 25 characters)
4. Input nodes: inp1[/"Input name"/], process nodes: proc1["Process step"], output nodes: out1[\\"Output name"\\]
5. Flow left to right: inputs --> process --> outputs
6. Keep it SIMPLE - max 3 inputs, 3 processes, 3 outputs

Example format:
flowchart LR
    inp1[/"Customer Data"/]
    proc1["Validate"]
    out1[\\"Report"\\]

    inp1 --> proc1
    proc1 --> out1

Return ONLY valid Mermaid code, no explanations or markdown."""


# ============================================================================
# Prompt helpers
# ============================================================================


def _format_steps(steps: tuple[WorkflowStep, ...], with_actor: bool = False) -> str:
    lines = []
    for i, step in enumerate(steps, start=1):
        line = f"{i}. {step.label}"
        if with_actor and step.actor:
            line += f" (Actor: {step.actor})"
        lines.append(line)
    return "\n".join(lines) or "Not specified"


def _format_io_inline(items: tuple[WorkflowIO, ...]) -> str:
    return ", ".join(item.name for item in items) or "Not specified"


def _format_io_list(items: tuple[WorkflowIO, ...]) -> str:
    lines = [
        f"{i}. {item.name}" + (f": {item.description}" if item.description else "")
        for i, item in enumerate(items, start=1)
    ]
    return "\n".join(lines) or "Not specified"


def build_flowchart_prompt(chart_input: ChartInput) -> str:
    return FLOWCHART_PROMPT.format(
        title=chart_input.title,
        description=chart_input.description or "Not specified",
        steps=_format_steps(chart_input.steps),
        inputs=_format_io_inline(chart_input.inputs),
        outputs=_format_io_inline(chart_input.outputs),
    )


def build_sequence_prompt(chart_input: ChartInput) -> str:
    return SEQUENCE_PROMPT.format(
        title=chart_input.title,
        description=chart_input.description or "Not specified",
        actors=", ".join(chart_input.actors),
        steps=_format_steps(chart_input.steps, with_actor=True),
    )


def build_dataflow_prompt(chart_input: ChartInput) -> str:
    return DATAFLOW_PROMPT.format(
        title=chart_input.title,
        inputs=_format_io_list(chart_input.inputs),
        steps=_format_steps(chart_input.steps[:MAX_DATAFLOW_STEPS]),
        outputs=_format_io_list(chart_input.outputs),
    )


# ============================================================================
# Chain
# ============================================================================


async def _generate_chart(
    llm: TextGenerator,
    prompt: str,
    chart_type: ChartType,
    title: str,
    description: str,
    caption: str,
) -> GeneratedChart:
    raw = await llm.generate(prompt)
    code = clean_diagram_code(raw)
    if is_fallback(code):
        log_with_context(
            logger,
            logging.WARNING,
            "Diagram output unusable, substituted fallback diagram",
            chart_type=chart_type.value,
            raw_length=len(raw or ""),
        )
    return GeneratedChart(
        type=chart_type,
        title=title,
        description=description,
        diagram_code=code,
        caption=caption,
    )


async def generate_sop_charts(
    chart_input: ChartInput,
    llm: TextGenerator | None = None,
) -> list[GeneratedChart]:
    """
    Generate the flowchart, event diagram and data-flow diagram for a workflow.

    Args:
        chart_input: Derived diagram input
        llm: Text generator; defaults to the configured Anthropic chart model

    Returns:
        Exactly three charts: flowchart, sequence, dataflow

    Raises:
        GenerationFailure: If any one of the three generative calls fails
    """
    if llm is None:
        settings = get_settings()
        llm = get_text_generator(
            model=settings.SOP_CHART_MODEL,
            max_tokens=settings.SOP_CHART_MAX_TOKENS,
            temperature=settings.SOP_CHART_TEMPERATURE,
            chain="charts",
        )

    logger.info(f"Generating SOP charts for '{chart_input.title}'")

    try:
        charts = await asyncio.gather(
            _generate_chart(
                llm,
                build_flowchart_prompt(chart_input),
                ChartType.FLOWCHART,
                "Process Flowchart",
                "Main process flow showing all steps and decision points",
                "Complete process flow with all steps and decision points",
            ),
            _generate_chart(
                llm,
                build_sequence_prompt(chart_input),
                ChartType.SEQUENCE,
                "Event Flow Diagram",
                "Shows the sequence of events and interactions between actors",
                "Event-driven process flow showing actor interactions",
            ),
            _generate_chart(
                llm,
                build_dataflow_prompt(chart_input),
                ChartType.DATAFLOW,
                "Input-Process-Output Diagram",
                "Shows the flow of information from inputs through processing to outputs",
                "Data flow from inputs through processing to final outputs",
            ),
        )
    except GenerationFailure:
        logger.error("Chart generation failed", exc_info=True)
        raise
    except Exception as e:
        logger.error(f"Chart generation failed: {e}", exc_info=True)
        raise GenerationFailure(f"Failed to generate SOP charts: {e}", producer="charts") from e

    logger.info(f"Generated {len(charts)} charts")
    return list(charts)
