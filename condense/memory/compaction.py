"""Compaction policies and the single compaction pass.

A policy decides what the summarizer sees and how its result is merged
into the summary store:

- ``independent``: each summary covers only its own span and is appended.
- ``cumulative``: each summary folds in every earlier summary and replaces
  them, so the store never holds more than one record.
"""

from __future__ import annotations

import logging
import uuid
from abc import ABC, abstractmethod
from collections.abc import Callable, Sequence
from datetime import datetime, timezone

from ..config import CompactionSettings
from ..llm.providers.base import LLMProvider
from ..types.types import SummaryContent, SummaryRecord, Turn
from .context import render_summary_body
from .parser import SummaryParser
from .tokens import TokenAccountant
from .turn_log import TurnLog

logger = logging.getLogger(__name__)

# -- Constants ----------------------------------------------------------------

COMPRESSION_TEMPERATURE = 0.2

SPAN_HEADER = "Below is a fragment of the dialog. Compress it according to the rules."
PREVIOUS_SUMMARIES_HEADER = "Previous dialog summaries:"
PREVIOUS_SUMMARY_LABEL = "Previous summary:"
NEW_MESSAGES_HEADER = "New dialog messages:"
CUMULATIVE_INSTRUCTION = (
    "Produce an updated summary that combines the information from the previous "
    "summaries and the new messages."
)

# -- Helpers ------------------------------------------------------------------


def format_span(span: Sequence[Turn]) -> str:
    """Render turns as ``role: content`` lines for the summarizer."""
    return "\n".join(f"{turn.role.value}: {turn.content}" for turn in span)


def _format_previous_summary(record: SummaryRecord) -> str:
    lines = [PREVIOUS_SUMMARY_LABEL, record.summary_text]
    if record.facts:
        lines.append("Facts:")
        lines.extend(f"- {fact}" for fact in record.facts)
    questions = [q for q in record.open_questions if q.strip() and q.strip().lower() != "none"]
    if questions:
        lines.append("Open questions:")
        lines.extend(f"- {q}" for q in questions)
    return "\n".join(lines).strip()


# -- Policies -----------------------------------------------------------------

_POLICY_REGISTRY: dict[str, type[CompactionPolicy]] = {}


def register_policy(name: str):
    """
    Decorator to register a compaction policy class.

    Usage:
        @register_policy("independent")
        class IndependentPolicy(CompactionPolicy):
            ...
    """

    def decorator(cls: type[CompactionPolicy]) -> type[CompactionPolicy]:
        cls.kind = name.lower()
        _POLICY_REGISTRY[cls.kind] = cls
        return cls

    return decorator


class CompactionPolicy(ABC):
    """How a span is turned into a summarizer prompt and merged back."""

    kind: str = ""

    @abstractmethod
    def build_prompt(
        self,
        span: Sequence[Turn],
        existing_summaries: Sequence[SummaryRecord],
        instructions: str,
    ) -> list[dict[str, str]]:
        """Build the summarizer messages for ``span``."""

    @abstractmethod
    def merge(self, log: TurnLog, record: SummaryRecord, span: Sequence[Turn]) -> None:
        """Store ``record`` and mark ``span`` as summarized."""


@register_policy("independent")
class IndependentPolicy(CompactionPolicy):
    """Summaries are self-contained and accumulate in creation order."""

    def build_prompt(self, span, existing_summaries, instructions):
        return [
            {"role": "system", "content": instructions.strip()},
            {"role": "user", "content": f"{SPAN_HEADER}\n{format_span(span)}"},
        ]

    def merge(self, log, record, span):
        log.apply_summary(record, span)


@register_policy("cumulative")
class CumulativePolicy(CompactionPolicy):
    """Each summary absorbs all earlier ones; only the newest is kept."""

    def build_prompt(self, span, existing_summaries, instructions):
        parts = []
        if existing_summaries:
            previous = "\n\n".join(_format_previous_summary(s) for s in existing_summaries)
            parts.append(f"{PREVIOUS_SUMMARIES_HEADER}\n{previous}\n\n")
        parts.append(f"{NEW_MESSAGES_HEADER}\n{format_span(span)}\n\n{CUMULATIVE_INSTRUCTION}")
        return [
            {"role": "system", "content": instructions.strip()},
            {"role": "user", "content": "".join(parts).strip()},
        ]

    def merge(self, log, record, span):
        log.replace_all_summaries_with(record, span)


def get_policy(name: str | None) -> CompactionPolicy:
    """Resolve a policy by name, case-insensitively.

    Unknown or empty names fall back to the independent policy.
    """
    key = (name or "").strip().lower()
    policy_class = _POLICY_REGISTRY.get(key)
    if policy_class is None:
        if key:
            logger.debug("Unknown compaction policy %r, using independent", name)
        policy_class = IndependentPolicy
    return policy_class()


def available_policies() -> list[str]:
    return sorted(_POLICY_REGISTRY)


# -- Single pass --------------------------------------------------------------


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Compactor:
    """Runs one compaction pass: prompt, summarize, parse, account, merge."""

    def __init__(
        self,
        provider: LLMProvider,
        settings: CompactionSettings,
        parser: SummaryParser | None = None,
        accountant: TokenAccountant | None = None,
        clock: Callable[[], datetime] | None = None,
    ):
        self.provider = provider
        self.settings = settings
        self.parser = parser or SummaryParser()
        self.accountant = accountant or TokenAccountant()
        self._clock = clock or _utcnow

    async def compact(
        self,
        log: TurnLog,
        span: Sequence[Turn],
        anchor_turn_id: str | None,
        policy: CompactionPolicy,
    ) -> SummaryRecord:
        """
        Summarize ``span`` and merge the result into ``log``.

        Nothing is written to the log unless every step succeeds.

        Args:
            log: Turn log that owns the span
            span: Contiguous un-summarized turns, oldest first
            anchor_turn_id: User turn whose arrival triggered this pass
            policy: Policy that builds the prompt and merges the record

        Returns:
            The stored SummaryRecord

        Raises:
            ValueError: If the span is empty or no longer valid for the log
            SummaryParseError: If the summarizer output cannot be parsed
        """
        if not span:
            raise ValueError("Cannot compact an empty span")

        messages = policy.build_prompt(
            span, log.summaries(), self.settings.compression_prompt_template
        )
        response = await self.provider.generate(
            messages,
            model=self.settings.compression_model,
            temperature=COMPRESSION_TEMPERATURE,
            json_mode=True,
        )
        content = self.parser.parse(response.content or "")

        record = self._build_record(content, span, anchor_turn_id, policy, response.usage)
        policy.merge(log, record, span)
        return record

    def _build_record(self, content: SummaryContent, span, anchor_turn_id, policy, usage):
        raw_tokens = self.accountant.estimate([turn.to_message() for turn in span])

        if usage is not None and usage.completion_tokens is not None:
            summary_tokens = usage.completion_tokens
        else:
            body = render_summary_body(content.summary_text, content.facts, content.open_questions)
            summary_tokens = self.accountant.estimate([{"role": "system", "content": body}])

        tokens_saved = None
        if raw_tokens is not None and summary_tokens is not None:
            tokens_saved = max(0, raw_tokens - summary_tokens)

        return SummaryRecord(
            id=str(uuid.uuid4()),
            created_at=self._clock(),
            summary_text=content.summary_text,
            facts=list(content.facts),
            open_questions=list(content.open_questions),
            source_turn_ids=[turn.id for turn in span],
            anchor_turn_id=anchor_turn_id,
            policy=policy.kind,
            raw_token_count=raw_tokens,
            summary_token_count=summary_tokens,
            tokens_saved=tokens_saved,
        )
