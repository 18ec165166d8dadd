"""Context window assembly: summaries first, then the most recent raw turns."""

from __future__ import annotations

from collections.abc import Sequence

from pydantic import BaseModel, Field

from ..types.types import ContextRawTurn, ContextUsageReport, SummaryRecord, Turn

PREVIEW_LENGTH = 120
CUMULATIVE_POLICY = "cumulative"


class AssembledContext(BaseModel):
    """Messages for the reply call plus a report of what went into them."""

    messages: list[dict[str, str]] = Field(default_factory=list)
    report: ContextUsageReport = Field(default_factory=ContextUsageReport)


def render_summary_body(
    summary_text: str, facts: Sequence[str], open_questions: Sequence[str]
) -> str:
    lines = [summary_text]
    if facts:
        lines.append("Facts:")
        lines.extend(f"- {fact}" for fact in facts)
    if open_questions:
        lines.append("Open questions:")
        lines.extend(f"- {q}" for q in open_questions)
    return "\n".join(lines).strip()


def render_summary(record: SummaryRecord) -> str:
    """Render a summary as the body of a system message.

    Example::

        Summary 3f2a... (2025-01-01T12:00:00+00:00):
        User is planning a trip to Lisbon in May.
        Facts:
        - Budget is 2000 EUR
    """
    body = render_summary_body(record.summary_text, record.facts, record.open_questions)
    return f"Summary {record.id} ({record.created_at.isoformat()}):\n{body}".strip()


def preview(text: str) -> str:
    return text[:PREVIEW_LENGTH]


class ContextAssembler:
    """Builds the message list sent to the model for a reply."""

    def build_context(
        self,
        log,
        max_summaries: int,
        policy_kind: str,
        raw_history_limit: int | None,
    ) -> AssembledContext:
        """
        Assemble the context window.

        Args:
            log: TurnLog to read from
            max_summaries: How many of the newest summaries to include
                (ignored by the cumulative policy, which always uses its one record)
            policy_kind: Name of the active compaction policy
            raw_history_limit: How many of the newest turns to include verbatim,
                whether or not they are already summarized; ``None`` means all

        Returns:
            AssembledContext with messages in order (summaries, then raw turns)
            and the usage report
        """
        summaries = self.select_summaries(log.summaries(), max_summaries, policy_kind)
        raw = self.select_raw_turns(log.raw_turns(), raw_history_limit)

        messages = [{"role": "system", "content": render_summary(s)} for s in summaries]
        messages.extend(turn.to_message() for turn in raw)

        report = ContextUsageReport(
            summary_ids=[s.id for s in summaries],
            raw_turns=[
                ContextRawTurn(
                    id=turn.id,
                    role=turn.role,
                    content_preview=preview(turn.content),
                    created_at=turn.created_at,
                )
                for turn in raw
            ],
        )
        return AssembledContext(messages=messages, report=report)

    @staticmethod
    def select_summaries(
        summaries: Sequence[SummaryRecord], max_summaries: int, policy_kind: str
    ) -> list[SummaryRecord]:
        if (policy_kind or "").lower() == CUMULATIVE_POLICY:
            return list(summaries[-1:])
        if max_summaries <= 0:
            return []
        return list(summaries[-max_summaries:])

    @staticmethod
    def select_raw_turns(turns: Sequence[Turn], raw_history_limit: int | None) -> list[Turn]:
        ordered = sorted(turns, key=lambda t: t.created_at)
        if raw_history_limit is None:
            return ordered
        if raw_history_limit <= 0:
            return []
        return ordered[-raw_history_limit:]
