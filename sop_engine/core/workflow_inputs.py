"""Derive producer inputs from a workflow definition.

Pure, synchronous transforms; nothing here touches the generative service.
"""

from dataclasses import dataclass, field

from sop_engine.core.schemas_workflow import (
    WorkflowDefinition,
    WorkflowIO,
    WorkflowRisk,
    WorkflowStep,
)

DEFAULT_ACTORS = ("Process Owner", "Operator")
DEFAULT_KEYWORDS = ("process", "workflow", "quality", "efficiency")
MAX_KEYWORDS = 5
MIN_TITLE_TOKEN_LENGTH = 4


@dataclass(frozen=True)
class ChartInput:
    title: str
    description: str
    steps: tuple[WorkflowStep, ...]
    inputs: tuple[WorkflowIO, ...]
    outputs: tuple[WorkflowIO, ...]
    actors: tuple[str, ...]
    dependencies: tuple[str, ...] = ()


@dataclass(frozen=True)
class SOPTextInput:
    title: str
    description: str
    steps: tuple[WorkflowStep, ...]
    inputs: tuple[WorkflowIO, ...]
    outputs: tuple[WorkflowIO, ...]
    actors: tuple[str, ...]
    risks: tuple[WorkflowRisk, ...] = ()
    dependencies: tuple[str, ...] = ()


@dataclass(frozen=True)
class ImageInput:
    title: str
    description: str
    industry: str | None = None
    process_type: str = "Business Process"
    keywords: tuple[str, ...] = field(default=DEFAULT_KEYWORDS)


def _unique(items: list[str]) -> list[str]:
    seen: set[str] = set()
    result = []
    for item in items:
        if item and item not in seen:
            seen.add(item)
            result.append(item)
    return result


def extract_actors(workflow: WorkflowDefinition) -> list[str]:
    """Union of per-step actor/role/responsible and explicit actors, in first-seen order."""
    actors: list[str] = []
    for step in workflow.steps:
        actors.extend(a for a in (step.actor, step.role, step.responsible) if a)
    actors.extend(workflow.actors)

    actors = _unique(actors)
    if not actors:
        return list(DEFAULT_ACTORS)
    return actors


def extract_keywords(workflow: WorkflowDefinition) -> list[str]:
    """Title tokens longer than 3 chars, then tags, then category; unique, max 5."""
    keywords: list[str] = []
    if workflow.title:
        keywords.extend(
            w for w in workflow.title.lower().split() if len(w) >= MIN_TITLE_TOKEN_LENGTH
        )
    keywords.extend(workflow.tags)
    if workflow.category:
        keywords.append(workflow.category)

    if not keywords:
        keywords = list(DEFAULT_KEYWORDS)

    return _unique(keywords)[:MAX_KEYWORDS]


def build_chart_input(workflow: WorkflowDefinition, actors: list[str]) -> ChartInput:
    return ChartInput(
        title=workflow.title,
        description=workflow.description,
        steps=tuple(workflow.steps),
        inputs=tuple(workflow.inputs),
        outputs=tuple(workflow.outputs),
        actors=tuple(actors),
        dependencies=tuple(workflow.dependencies),
    )


def build_text_input(workflow: WorkflowDefinition, actors: list[str]) -> SOPTextInput:
    return SOPTextInput(
        title=workflow.title,
        description=workflow.description,
        steps=tuple(workflow.steps),
        inputs=tuple(workflow.inputs),
        outputs=tuple(workflow.outputs),
        actors=tuple(actors),
        risks=tuple(workflow.risks),
        dependencies=tuple(workflow.dependencies),
    )


def build_image_input(workflow: WorkflowDefinition, keywords: list[str]) -> ImageInput:
    return ImageInput(
        title=workflow.title,
        description=workflow.description,
        industry=workflow.industry or workflow.category,
        process_type=workflow.process_type or "Business Process",
        keywords=tuple(keywords),
    )
