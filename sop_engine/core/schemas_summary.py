"""Pydantic schemas for conversational workflow summarization."""

from datetime import datetime

from pydantic import BaseModel, Field


class SummarizationFeedback(BaseModel):
    """A user's verdict on one generated summary."""

    summary_id: str
    is_approved: bool
    user_comments: str | None = None
    timestamp: datetime


class ConversationMessage(BaseModel):
    """One user utterance from the session store."""

    content: str
    timestamp: datetime | None = None


class WorkflowSummary(BaseModel):
    """Structured summary of a workflow captured so far."""

    id: str
    session_id: str
    title: str
    description: str
    key_steps: list[str] = Field(default_factory=list)
    identified_inputs: list[str] = Field(default_factory=list)
    identified_outputs: list[str] = Field(default_factory=list)
    missing_information: list[str] = Field(default_factory=list)
    completeness_score: int = Field(default=50, ge=0, le=100)
    suggested_next_questions: list[str] = Field(default_factory=list)
    last_updated: datetime
    iteration_number: int = 1  # 1 + feedback entries held for the session


class FeedbackStats(BaseModel):
    approved: int = 0
    rejected: int = 0
    total: int = 0
