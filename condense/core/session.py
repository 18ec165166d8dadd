"""Dialog session: one conversation, its history, and its compaction loop."""

from __future__ import annotations

import asyncio
import logging
import sys
import time
import uuid

from ..config import EngineConfig, Scenario
from ..llm.providers.base import LLMProvider
from ..memory.compaction import CompactionPolicy, Compactor, get_policy
from ..memory.context import ContextAssembler
from ..memory.tokens import TokenAccountant, TokenEstimator
from ..memory.trigger import CompactionTrigger
from ..memory.turn_log import TurnLog
from ..tracing import get_tracer, mark_span_failed
from ..types.types import (
    ComparisonReport,
    ResponseMetrics,
    ScenarioInfo,
    ScenarioMetrics,
    StateSnapshot,
    SummaryRecord,
    TokenUsage,
    TurnRole,
)

logger = logging.getLogger(__name__)

# Interval used by the comparison baseline so the normal threshold never fires
NEVER = sys.maxsize


class InvalidMessageError(ValueError):
    """Raised when a user message is empty or whitespace only."""

    def __init__(self, message: str = "Message text must not be blank"):
        super().__init__(message)


class DialogSession:
    """
    Handles the messages of one conversation.

    Every public coroutine holds the session lock for its whole run, model
    calls included, so two requests to the same session never interleave.
    Separate sessions share nothing.

    Example:
        session = DialogSession(get_provider("openai"), load_config())
        metrics = await session.handle_message("Hi, I'm planning a trip")
        print(metrics.answer, metrics.token_usage.tokens_saved)
    """

    def __init__(
        self,
        provider: LLMProvider,
        config: EngineConfig | None = None,
        estimator: TokenEstimator | None = None,
        session_id: str | None = None,
    ):
        self.session_id = session_id or str(uuid.uuid4())
        self.provider = provider
        self.config = config or EngineConfig()
        self.accountant = TokenAccountant(estimator, model=self.config.model.model)
        self.log = TurnLog()
        self.assembler = ContextAssembler()
        self.trigger = CompactionTrigger(
            Compactor(provider, self.config.compaction, accountant=self.accountant)
        )
        self._lock = asyncio.Lock()

    # -- Public API -----------------------------------------------------------

    async def handle_message(
        self,
        text: str,
        summary_interval: int | None = None,
        max_summaries: int | None = None,
        policy: str | None = None,
    ) -> ResponseMetrics:
        """
        Append a user message, compact if due, and get the model's reply.

        Args:
            text: The user's message
            summary_interval: Per-call interval override; ``None`` or ``<= 0``
                uses the configured value
            max_summaries: Per-call override of summaries in context; ``None``
                or ``< 0`` uses the configured value
            policy: Compaction policy name; unknown names mean "independent"

        Returns:
            ResponseMetrics for this exchange

        Raises:
            InvalidMessageError: If ``text`` is blank or not a string (nothing is recorded)
        """
        if not isinstance(text, str) or not text.strip():
            raise InvalidMessageError()

        settings = self.config.compaction
        interval = summary_interval if summary_interval and summary_interval > 0 else None
        if max_summaries is None or max_summaries < 0:
            max_summaries = settings.max_summaries_in_context

        async with self._lock:
            metrics, _ = await self._handle_message_locked(
                text,
                interval=interval or settings.summary_interval,
                max_summaries=max_summaries,
                policy=self._resolve_policy(policy),
                raw_history_limit=settings.raw_history_limit,
            )
        return metrics

    async def reset(self) -> None:
        """Drop every turn and summary of this session."""
        async with self._lock:
            self.log.clear()

    async def get_state(self) -> StateSnapshot:
        async with self._lock:
            return StateSnapshot(
                turns=list(self.log.raw_turns()),
                summaries=self._copy_summaries(),
            )

    def list_scenarios(self) -> list[ScenarioInfo]:
        return [
            ScenarioInfo(
                id=s.id,
                description=s.description,
                messages_count=len(s.seed_messages),
            )
            for s in self.config.scenarios
        ]

    async def run_comparison_scenario(
        self, scenario_id: str, policy: str | None = None
    ) -> ComparisonReport:
        """
        Replay a scripted scenario without and then with compaction.

        The session's history is replaced by each replay and cleared at the end.

        Args:
            scenario_id: Id of a configured scenario
            policy: Compaction policy for the compressed run

        Returns:
            ComparisonReport with totals for both runs

        Raises:
            ConfigurationError: If the scenario is unknown (history untouched)
        """
        scenario = self.config.get_scenario(scenario_id)
        resolved_policy = self._resolve_policy(policy)

        async with self._lock:
            with get_tracer().start_as_current_span(
                "condense.comparison",
                attributes={
                    "condense.session_id": self.session_id,
                    "condense.scenario_id": scenario.id,
                    "condense.policy": resolved_policy.kind,
                },
            ):
                try:
                    without_compression = await self._replay(
                        scenario, resolved_policy, compress=False
                    )
                    with_compression = await self._replay(scenario, resolved_policy, compress=True)
                finally:
                    self.log.clear()

        tokens_saved = TokenAccountant.tokens_saved(
            with_compression.total_prompt_tokens, without_compression.total_prompt_tokens
        )
        logger.info(
            "Scenario %s: %s prompt tokens with compaction, %s without",
            scenario.id,
            with_compression.total_prompt_tokens,
            without_compression.total_prompt_tokens,
        )

        return ComparisonReport(
            scenario_id=scenario.id,
            description=scenario.description,
            with_compression=with_compression,
            without_compression=without_compression,
            tokens_saved=tokens_saved,
            summaries_generated=with_compression.summaries_generated,
            narrative_text=_narrative(with_compression, without_compression, tokens_saved),
        )

    # -- Internals ------------------------------------------------------------

    def _resolve_policy(self, name: str | None) -> CompactionPolicy:
        return get_policy(name or self.config.compaction.default_policy)

    def _copy_summaries(self) -> list[SummaryRecord]:
        # Deep copies: list fields of stored records stay private to the log
        return [record.model_copy(deep=True) for record in self.log.summaries()]

    async def _handle_message_locked(
        self,
        text: str,
        interval: int,
        max_summaries: int,
        policy: CompactionPolicy,
        raw_history_limit: int | None,
        force_eviction: bool = True,
    ) -> tuple[ResponseMetrics, list[SummaryRecord]]:
        with get_tracer().start_as_current_span(
            "condense.handle_message",
            attributes={
                "condense.session_id": self.session_id,
                "condense.policy": policy.kind,
                "condense.summary_interval": interval,
            },
        ) as span:
            user_turn = self.log.append_user_turn(text)

            created = await self.trigger.run(
                self.log,
                user_turn.id,
                interval,
                policy,
                raw_history_limit,
                force_eviction=force_eviction,
                session_id=self.session_id,
            )

            context = self.assembler.build_context(
                self.log, max_summaries, policy.kind, raw_history_limit
            )
            summaries = self._copy_summaries()
            full_history = [turn.to_message() for turn in self.log.raw_turns()]

            model_settings = self.config.model
            try:
                response = await self.provider.generate(
                    context.messages,
                    model=model_settings.model,
                    temperature=model_settings.temperature,
                    max_tokens=model_settings.max_tokens,
                    system_prompt=model_settings.system_prompt,
                )
            except Exception as e:
                mark_span_failed(span, e)
                raise

            answer = response.content or ""
            self.log.append_assistant_turn(answer)

            usage = response.usage
            prompt_tokens = usage.prompt_tokens if usage else None
            if prompt_tokens is None:
                prompt_tokens = self.accountant.estimate(context.messages)
            hypothetical = self.accountant.estimate(full_history) if summaries else None

            token_usage = TokenUsage(
                prompt_tokens=prompt_tokens,
                completion_tokens=usage.completion_tokens if usage else None,
                total_tokens=usage.total_tokens if usage else None,
                hypothetical_prompt_tokens=hypothetical,
                tokens_saved=TokenAccountant.tokens_saved(prompt_tokens, hypothetical),
            )
            span.set_attribute("condense.summaries_created", len(created))

        metrics = ResponseMetrics(
            answer=answer,
            context_used=context.report,
            token_usage=token_usage,
            summaries=summaries,
            raw_turn_count=self.log.unsummarized_count(),
            effective_interval=interval,
            policy=policy.kind,
        )
        return metrics, created

    async def _replay(
        self, scenario: Scenario, policy: CompactionPolicy, compress: bool
    ) -> ScenarioMetrics:
        """Replay ``scenario`` on a cleared log and total its token usage."""
        self.log.clear()
        settings = self.config.compaction
        if compress:
            interval = settings.summary_interval
            max_summaries = settings.max_summaries_in_context
            raw_history_limit = settings.raw_history_limit
        else:
            interval, max_summaries, raw_history_limit = NEVER, 0, None

        prompt_total = completion_total = total = 0
        summaries_generated = 0
        messages_processed = 0
        started = time.perf_counter()

        for seed in scenario.seed_messages:
            if seed.role == TurnRole.USER:
                metrics, created = await self._handle_message_locked(
                    seed.content,
                    interval=interval,
                    max_summaries=max_summaries,
                    policy=policy,
                    raw_history_limit=raw_history_limit,
                    force_eviction=compress,
                )
                messages_processed += 1
                summaries_generated += len(created)
                usage = metrics.token_usage
                prompt_total += usage.prompt_tokens or 0
                completion_total += usage.completion_tokens or 0
                total += usage.total_tokens or 0
            elif seed.role == TurnRole.SYSTEM:
                self.log.append_system_turn(seed.content)
            else:
                self.log.append_assistant_turn(seed.content)

        duration_ms = int((time.perf_counter() - started) * 1000)

        return ScenarioMetrics(
            total_prompt_tokens=prompt_total or None,
            total_completion_tokens=completion_total or None,
            total_tokens=total or None,
            duration_ms=duration_ms,
            messages_processed=messages_processed,
            summaries_generated=summaries_generated,
            quality_notes=_quality_notes(prompt_total, summaries_generated, compress),
        )


def _quality_notes(prompt_total: int, summaries_generated: int, compress: bool) -> str:
    if prompt_total == 0:
        return "Not enough data to judge quality."
    if compress and summaries_generated == 0:
        return "Compaction never triggered: fewer user messages than the interval."
    if compress:
        return "Compaction shortened the context; check that answers keep their meaning."
    return "Baseline without compaction: most precise answers, most expensive context."


def _narrative(
    with_compression: ScenarioMetrics,
    without_compression: ScenarioMetrics,
    tokens_saved: int | None,
) -> str:
    lines = [
        f"With compaction: {_or_unknown(with_compression.total_prompt_tokens)} prompt tokens",
        f"Without compaction: {_or_unknown(without_compression.total_prompt_tokens)} prompt tokens",
    ]
    if tokens_saved is not None:
        lines.append(f"Tokens saved: {tokens_saved}")
    lines.append(f"Summaries generated: {with_compression.summaries_generated}")
    return "\n".join(lines)


def _or_unknown(value: int | None) -> str:
    return "?" if value is None else str(value)
