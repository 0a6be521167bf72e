"""Workflow summarization chain.

Summarizes a conversation captured so far, reports missing information and
suggests the next questions to ask. Rejected summaries for the same session
are fed back into the prompt through an injected ``FeedbackStore``.
"""

import re
import time
from datetime import datetime, timezone
from typing import Any

from sop_engine.core.config import get_settings
from sop_engine.core.exceptions import GenerationFailure
from sop_engine.core.feedback_store import FeedbackStore
from sop_engine.core.llm import TextGenerator, get_text_generator, strip_llm_fences
from sop_engine.core.logging import get_logger
from sop_engine.core.schemas_summary import (
    ConversationMessage,
    FeedbackStats,
    SummarizationFeedback,
    WorkflowSummary,
)

logger = get_logger(__name__)

RECENT_FEEDBACK_WINDOW = 3
DEFAULT_COMPLETENESS_SCORE = 50

SUMMARY_PROMPT = """You are an AI assistant helping to create Standard Operating Procedures (SOPs).
Your task is to analyze the conversation history and generate a comprehensive workflow summary.

CONVERSATION HISTORY:
{conversation}

CURRENT WORKFLOW DATA:
- Title: {title}
- Description: {description}
- Steps: {step_count} identified
- Inputs: {input_count} identified
- Outputs: {output_count} identified

INTERACTION COUNT: {interaction_count}
{feedback}
Please provide a structured summary in the following format:

SUMMARY:
[A clear, concise summary of the workflow in 2-3 sentences]

KEY STEPS:
[The main steps identified, one per line, starting with "-"]

INPUTS:
[The required inputs, one per line, starting with "-"]

OUTPUTS:
[The expected outputs, one per line, starting with "-"]

MISSING INFORMATION:
[Critical information that is still missing or unclear, one per line, starting with "-"]

COMPLETENESS SCORE:
[A score from 0-100 indicating how complete the workflow description is]

NEXT QUESTIONS:
[2-3 detailed questions, one per line, starting with "-". Each should gather several related
details at once: roles, responsibilities, timing, conditions, exceptions and dependencies.]

At the end of your response, add the question: Am I missing something important?"""

# Block name -> heading that terminates it
_BLOCKS = {
    "summary": ("SUMMARY", "KEY STEPS"),
    "key_steps": ("KEY STEPS", "INPUTS"),
    "inputs": ("INPUTS", "OUTPUTS"),
    "outputs": ("OUTPUTS", "MISSING INFORMATION"),
    "missing": ("MISSING INFORMATION", "COMPLETENESS SCORE"),
}
_SCORE_RE = re.compile(r"COMPLETENESS SCORE:\s*\n?\s*(\d+)", re.IGNORECASE)
_QUESTIONS_RE = re.compile(r"NEXT QUESTIONS:\s*\n(.*)$", re.IGNORECASE | re.DOTALL)
_LIST_ITEM_RE = re.compile(r"^[-*•\d.]")
_LIST_MARKER_RE = re.compile(r"^(?:[-*•]|\d+\.)\s*")


def _block(text: str, heading: str, next_heading: str) -> str:
    pattern = (
        rf"(?:^|\n)[ \t]*{re.escape(heading)}:[ \t]*\n(.*?)"
        rf"(?=\n\s*\n|\n[ \t]*{re.escape(next_heading)}:|$)"
    )
    match = re.search(pattern, text, re.IGNORECASE | re.DOTALL)
    return match.group(1).strip() if match else ""


def extract_list_items(text: str) -> list[str]:
    """Lines starting with -, *, • or a number, with the marker removed."""
    items = []
    for line in text.split("\n"):
        line = line.strip()
        if not _LIST_ITEM_RE.match(line):
            continue
        item = _LIST_MARKER_RE.sub("", line).strip()
        if item:
            items.append(item)
    return items


def parse_summary_response(text: str) -> dict[str, Any]:
    """Split a summary response into its labelled blocks."""
    text = strip_llm_fences(text) if text.lstrip().startswith("```") else text
    parsed: dict[str, Any] = {"summary": _block(text, *_BLOCKS["summary"])}
    for key in ("key_steps", "inputs", "outputs", "missing"):
        parsed[key] = extract_list_items(_block(text, *_BLOCKS[key]))

    score_match = _SCORE_RE.search(text)
    score = int(score_match.group(1)) if score_match else DEFAULT_COMPLETENESS_SCORE
    parsed["score"] = max(0, min(100, score))

    questions_match = _QUESTIONS_RE.search(text)
    parsed["questions"] = (
        [q for q in extract_list_items(questions_match.group(1)) if "missing something" not in q.lower()]
        if questions_match
        else []
    )
    return parsed


def build_feedback_context(history: list[SummarizationFeedback]) -> str:
    """Comments from rejected summaries among the last three entries."""
    rejected = [f for f in history[-RECENT_FEEDBACK_WINDOW:] if not f.is_approved]
    if not rejected:
        return ""

    comments = "\n- ".join(f.user_comments or "User rejected the summary" for f in rejected)
    return (
        "\nUSER FEEDBACK FROM PREVIOUS SUMMARIES:\n"
        "The user has provided the following feedback on previous summaries:\n"
        f"- {comments}\n\n"
        "Please take this feedback into account when generating the new summary.\n"
    )


def _count(workflow_data: dict[str, Any], key: str) -> int:
    value = workflow_data.get(key)
    return len(value) if isinstance(value, list) else 0


def build_summary_prompt(
    conversation_history: list[ConversationMessage],
    workflow_data: dict[str, Any],
    feedback_context: str = "",
) -> str:
    conversation = "\n".join(
        f"[Message {i}] {message.content}" for i, message in enumerate(conversation_history, start=1)
    )
    return SUMMARY_PROMPT.format(
        conversation=conversation or "No messages yet",
        title=workflow_data.get("title") or "Not specified",
        description=workflow_data.get("description") or "Not specified",
        step_count=_count(workflow_data, "steps"),
        input_count=_count(workflow_data, "inputs"),
        output_count=_count(workflow_data, "outputs"),
        interaction_count=len(conversation_history),
        feedback=feedback_context,
    )


async def summarize_workflow(
    session_id: str,
    conversation_history: list[ConversationMessage],
    workflow_data: dict[str, Any],
    feedback_store: FeedbackStore,
    llm: TextGenerator | None = None,
) -> WorkflowSummary:
    """
    Summarize the workflow captured in a session.

    Args:
        session_id: Session whose feedback history is consulted
        conversation_history: User messages, oldest first (read-only)
        workflow_data: Accumulated workflow fields for the session (read-only)
        feedback_store: Store holding prior summary feedback
        llm: Text generator; defaults to the configured Anthropic summary model

    Returns:
        WorkflowSummary

    Raises:
        GenerationFailure: If the generative call fails
    """
    if llm is None:
        settings = get_settings()
        llm = get_text_generator(
            model=settings.SOP_SUMMARY_MODEL,
            max_tokens=settings.SOP_SUMMARY_MAX_TOKENS,
            temperature=0.3,
            chain="summary",
        )

    history = feedback_store.get(session_id)
    prompt = build_summary_prompt(
        conversation_history,
        workflow_data,
        build_feedback_context(history),
    )

    logger.info(f"Generating workflow summary from {len(conversation_history)} messages")

    try:
        response = await llm.generate(prompt)
    except Exception as e:
        logger.error(f"Workflow summary failed: {e}", exc_info=True)
        raise GenerationFailure(
            f"Failed to generate workflow summary: {e}", producer="summary"
        ) from e

    parsed = parse_summary_response(response or "")
    summary = WorkflowSummary(
        id=f"summary-{int(time.time() * 1000)}",
        session_id=session_id,
        title=workflow_data.get("title") or "Workflow Process",
        description=parsed["summary"] or "Workflow summary in progress",
        key_steps=parsed["key_steps"],
        identified_inputs=parsed["inputs"],
        identified_outputs=parsed["outputs"],
        missing_information=parsed["missing"],
        completeness_score=parsed["score"],
        suggested_next_questions=parsed["questions"],
        last_updated=datetime.now(timezone.utc),
        iteration_number=len(history) + 1,
    )

    logger.info(f"Workflow summary generated, completeness {summary.completeness_score}")
    return summary


def record_feedback(
    feedback_store: FeedbackStore, session_id: str, feedback: SummarizationFeedback
) -> None:
    feedback_store.put(session_id, feedback)
    logger.info(
        f"Recorded feedback for summary {feedback.summary_id} "
        f"(approved={feedback.is_approved}, comments={bool(feedback.user_comments)})"
    )


def feedback_stats(feedback_store: FeedbackStore, session_id: str) -> FeedbackStats:
    history = feedback_store.get(session_id)
    approved = sum(1 for f in history if f.is_approved)
    return FeedbackStats(approved=approved, rejected=len(history) - approved, total=len(history))
