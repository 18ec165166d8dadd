"""Type definitions for dialog turns, summary records, context reports, and usage metrics."""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class TurnRole(str, Enum):
    """Author of a dialog turn."""

    USER = "user"
    ASSISTANT = "assistant"
    SYSTEM = "system"


class Turn(BaseModel):
    """A single raw message in the conversation.

    Turns are frozen. The turn log replaces a turn with a copy when it is
    folded into a summary, which is the only change a turn ever sees.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    role: TurnRole
    content: str
    created_at: datetime
    summarized: bool = False

    def to_message(self) -> dict[str, str]:
        """Render as a role-tagged chat message."""
        return {"role": self.role.value, "content": self.content}


class SummaryContent(BaseModel):
    """Structured result of one summarization call."""

    summary_text: str
    facts: list[str] = Field(default_factory=list)
    open_questions: list[str] = Field(default_factory=list)


class SummaryRecord(BaseModel):
    """A compressed replacement for a contiguous span of turns."""

    model_config = ConfigDict(frozen=True)

    id: str
    created_at: datetime
    summary_text: str
    facts: list[str] = Field(default_factory=list)
    open_questions: list[str] = Field(default_factory=list)
    source_turn_ids: list[str] = Field(default_factory=list)
    anchor_turn_id: str | None = None
    policy: str | None = None
    raw_token_count: int | None = None
    summary_token_count: int | None = None
    tokens_saved: int | None = None


class ContextRawTurn(BaseModel):
    """A raw turn that made it into the context window."""

    id: str
    role: TurnRole
    content_preview: str
    created_at: datetime


class ContextUsageReport(BaseModel):
    """Which summaries and raw turns were sent to the model."""

    summary_ids: list[str] = Field(default_factory=list)
    raw_turns: list[ContextRawTurn] = Field(default_factory=list)


class Usage(BaseModel):
    """Token usage reported by a model call."""

    prompt_tokens: int | None = None
    completion_tokens: int | None = None
    total_tokens: int | None = None


class TokenUsage(BaseModel):
    """Token accounting for one handled message.

    Every field is optional: a missing value means "unknown", never zero.
    ``hypothetical_prompt_tokens`` estimates the full raw history as it stood
    when the request was sent, so the assistant reply it produced is not counted.
    """

    prompt_tokens: int | None = None
    completion_tokens: int | None = None
    total_tokens: int | None = None
    hypothetical_prompt_tokens: int | None = None
    tokens_saved: int | None = None


class ResponseMetrics(BaseModel):
    """Result of handling one user message."""

    answer: str
    context_used: ContextUsageReport
    token_usage: TokenUsage
    summaries: list[SummaryRecord] = Field(default_factory=list)
    raw_turn_count: int
    effective_interval: int
    policy: str


class StateSnapshot(BaseModel):
    """Full copy of a session's turn log and summary store."""

    turns: list[Turn] = Field(default_factory=list)
    summaries: list[SummaryRecord] = Field(default_factory=list)


class ScenarioInfo(BaseModel):
    """Short description of a scripted comparison scenario."""

    id: str
    description: str = ""
    messages_count: int = 0


class ScenarioMetrics(BaseModel):
    """Totals collected while replaying a scenario once."""

    total_prompt_tokens: int | None = None
    total_completion_tokens: int | None = None
    total_tokens: int | None = None
    duration_ms: int = 0
    messages_processed: int = 0
    summaries_generated: int = 0
    quality_notes: str | None = None


class ComparisonReport(BaseModel):
    """A/B comparison of one scenario with and without compaction."""

    scenario_id: str
    description: str = ""
    with_compression: ScenarioMetrics
    without_compression: ScenarioMetrics
    tokens_saved: int | None = None
    summaries_generated: int = 0
    narrative_text: str = ""
