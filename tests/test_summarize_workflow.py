"""Tests for workflow summarization and the feedback store."""

from datetime import datetime, timezone

import pytest

from sop_engine.chains.summarize_workflow import (
    build_feedback_context,
    extract_list_items,
    feedback_stats,
    parse_summary_response,
    record_feedback,
    summarize_workflow,
)
from sop_engine.core.exceptions import GenerationFailure
from sop_engine.core.feedback_store import InMemoryFeedbackStore
from sop_engine.core.schemas_summary import ConversationMessage, SummarizationFeedback
from tests.fixtures_sop import SUMMARY_MARKER

NOW = datetime(2026, 3, 14, tzinfo=timezone.utc)

SUMMARY_RESPONSE = """SUMMARY:
New enterprise customers are verified, given an account and sent a welcome pack.

KEY STEPS:
- Verify identity
- Create account
- Send welcome pack

INPUTS:
- ID documents
- Signed contract

OUTPUTS:
- Active account

MISSING INFORMATION:
- Who approves exceptions
- Expected turnaround time

COMPLETENESS SCORE:
72

NEXT QUESTIONS:
- Who approves identity exceptions, and how quickly must they respond?
- What happens when the contract is unsigned?

Am I missing something important?"""


def _feedback(summary_id: str, approved: bool, comments: str | None = None) -> SummarizationFeedback:
    return SummarizationFeedback(summary_id=summary_id, is_approved=approved, user_comments=comments, timestamp=NOW)


class TestParseSummaryResponse:
    def test_all_blocks(self):
        parsed = parse_summary_response(SUMMARY_RESPONSE)

        assert parsed["summary"].startswith("New enterprise customers")
        assert parsed["key_steps"] == ["Verify identity", "Create account", "Send welcome pack"]
        assert parsed["inputs"] == ["ID documents", "Signed contract"]
        assert parsed["outputs"] == ["Active account"]
        assert parsed["missing"] == ["Who approves exceptions", "Expected turnaround time"]
        assert parsed["score"] == 72
        assert len(parsed["questions"]) == 2

    def test_missing_something_question_filtered(self):
        text = "NEXT QUESTIONS:\n- What is the SLA?\n- Am I missing something important?"
        assert parse_summary_response(text)["questions"] == ["What is the SLA?"]

    def test_score_defaults_and_clamps(self):
        assert parse_summary_response("SUMMARY:\nShort")["score"] == 50
        assert parse_summary_response("COMPLETENESS SCORE:\n250")["score"] == 100

    def test_missing_blocks_are_empty(self):
        parsed = parse_summary_response("nothing structured here")
        assert parsed["summary"] == ""
        assert parsed["key_steps"] == []
        assert parsed["questions"] == []

    def test_list_items(self):
        assert extract_list_items("- one\n* two\n• three\n4. four\nprose") == ["one", "two", "three", "four"]


class TestFeedbackContext:
    def test_only_recent_rejections(self):
        history = [
            _feedback("s1", False, "too old to matter"),
            _feedback("s2", True),
            _feedback("s3", False, "missing approvals"),
            _feedback("s4", False),
        ]
        context = build_feedback_context(history)

        assert "too old to matter" not in context
        assert "- missing approvals" in context
        assert "- User rejected the summary" in context

    def test_no_rejections(self):
        assert build_feedback_context([_feedback("s1", True)]) == ""


class TestSummarizeWorkflow:
    @pytest.mark.asyncio
    async def test_builds_summary(self, fake_llm):
        llm = fake_llm({SUMMARY_MARKER: SUMMARY_RESPONSE})
        store = InMemoryFeedbackStore(history_limit=5)
        record_feedback(store, "session-1", _feedback("s0", False, "Include approvers"))

        summary = await summarize_workflow(
            "session-1",
            [ConversationMessage(content="We onboard enterprise customers"), ConversationMessage(content="Sales does it")],
            {"title": "Customer Onboarding", "steps": ["a", "b"], "inputs": []},
            store,
            llm=llm,
        )

        assert summary.session_id == "session-1"
        assert summary.title == "Customer Onboarding"
        assert summary.completeness_score == 72
        assert summary.iteration_number == 2
        assert summary.key_steps[0] == "Verify identity"

        prompt = llm.prompts[0]
        assert "[Message 2] Sales does it" in prompt
        assert "- Steps: 2 identified" in prompt
        assert "INTERACTION COUNT: 2" in prompt
        assert "- Include approvers" in prompt

    @pytest.mark.asyncio
    async def test_empty_response_uses_defaults(self, fake_llm):
        summary = await summarize_workflow("s", [], {}, InMemoryFeedbackStore(history_limit=3), llm=fake_llm())
        assert summary.title == "Workflow Process"
        assert summary.description == "Workflow summary in progress"
        assert summary.completeness_score == 50
        assert summary.iteration_number == 1

    @pytest.mark.asyncio
    async def test_generator_error_raises(self, fake_llm):
        with pytest.raises(GenerationFailure) as exc_info:
            await summarize_workflow(
                "s", [], {}, InMemoryFeedbackStore(history_limit=3), llm=fake_llm(error=TimeoutError())
            )
        assert exc_info.value.producer == "summary"


class TestInMemoryFeedbackStore:
    def test_history_limit(self):
        store = InMemoryFeedbackStore(history_limit=2)
        for i in range(4):
            store.put("s", _feedback(f"id{i}", True))
        assert [f.summary_id for f in store.get("s")] == ["id2", "id3"]

    def test_get_returns_copy(self):
        store = InMemoryFeedbackStore(history_limit=2)
        store.put("s", _feedback("a", True))
        store.get("s").clear()
        assert len(store.get("s")) == 1

    def test_prune_inactive_sessions(self):
        store = InMemoryFeedbackStore(history_limit=2)
        for sid in ("a", "b", "c"):
            store.put(sid, _feedback(sid, True))

        assert store.prune({"b"}) == 2
        assert len(store) == 1
        assert store.get("a") == []
        assert store.get("b")

    def test_delete(self):
        store = InMemoryFeedbackStore(history_limit=2)
        store.put("s", _feedback("a", True))
        store.delete("s")
        store.delete("missing")
        assert store.get("s") == []

    def test_default_limit_from_settings(self):
        assert InMemoryFeedbackStore().history_limit == 10

    def test_invalid_limit(self):
        with pytest.raises(ValueError):
            InMemoryFeedbackStore(history_limit=0)

    def test_stats(self):
        store = InMemoryFeedbackStore(history_limit=5)
        record_feedback(store, "s", _feedback("a", True))
        record_feedback(store, "s", _feedback("b", False))
        record_feedback(store, "s", _feedback("c", False))
        stats = feedback_stats(store, "s")
        assert (stats.approved, stats.rejected, stats.total) == (1, 2, 3)
