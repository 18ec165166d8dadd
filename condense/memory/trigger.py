"""Decides when compaction passes run for a newly appended user turn."""

from __future__ import annotations

import logging

from ..tracing import get_tracer, mark_span_failed
from ..types.types import SummaryRecord, Turn, TurnRole
from .compaction import CompactionPolicy, Compactor
from .turn_log import TurnLog

logger = logging.getLogger(__name__)


def _user_count(span: list[Turn]) -> int:
    return sum(1 for t in span if t.role == TurnRole.USER)


class CompactionTrigger:
    """Runs compaction passes until no span qualifies.

    A span qualifies in one of three ways, checked in order:

    1. Forced eviction: the un-summarized backlog exceeds twice
       ``raw_history_limit`` and the surplus beyond the newest
       ``raw_history_limit`` turns holds at least ``interval`` user turns.
    2. Normal threshold: at least ``interval`` un-summarized user turns exist.
    3. Escape: the backlog is still over the forced threshold, so the surplus
       is compacted whatever its user-turn count.
    """

    def __init__(self, compactor: Compactor):
        self.compactor = compactor

    def select_span(
        self,
        log: TurnLog,
        anchor_turn_id: str,
        interval: int,
        raw_history_limit: int | None,
        force_eviction: bool = True,
    ) -> tuple[list[Turn], bool]:
        """Pick the next span to compact.

        Returns:
            ``(span, forced)``; an empty span means nothing qualifies.
        """
        surplus: list[Turn] = []
        over_threshold = False
        if force_eviction and raw_history_limit:
            over_threshold = log.unsummarized_count() > raw_history_limit * 2
            if over_threshold:
                surplus = log.surplus_span(raw_history_limit)
                if surplus and _user_count(surplus) >= interval:
                    return surplus, True

        if log.unsummarized_user_count() >= interval:
            span = log.take_span_for_compaction(anchor_turn_id, interval)
            if span:
                return span, False

        if over_threshold and surplus:
            return surplus, True

        return [], False

    async def run(
        self,
        log: TurnLog,
        anchor_turn_id: str,
        interval: int,
        policy: CompactionPolicy,
        raw_history_limit: int | None,
        force_eviction: bool = True,
        session_id: str | None = None,
    ) -> list[SummaryRecord]:
        """
        Run compaction passes for the turn ``anchor_turn_id``.

        Passes run one after another until no span qualifies. A failing pass
        is logged and ends the loop; summaries from earlier passes stay.

        Args:
            log: Turn log of the session
            anchor_turn_id: The user turn that was just appended
            interval: Un-summarized user turns needed for a normal pass
            policy: Compaction policy to apply
            raw_history_limit: Recent turns kept verbatim; drives forced eviction
            force_eviction: Set to False to disable forced eviction for this run
            session_id: Recorded on trace spans

        Returns:
            Summary records created by this run, oldest first
        """
        created: list[SummaryRecord] = []
        tracer = get_tracer()

        while True:
            span, forced = self.select_span(
                log, anchor_turn_id, interval, raw_history_limit, force_eviction
            )
            if not span:
                break

            user_turns = _user_count(span)
            logger.info(
                "Compacting %d turns (%d user, %s, policy=%s)",
                len(span),
                user_turns,
                "forced" if forced else "interval",
                policy.kind,
            )

            with tracer.start_as_current_span(
                "condense.compaction_pass",
                attributes={
                    "condense.session_id": session_id or "",
                    "condense.policy": policy.kind,
                    "condense.span_size": len(span),
                    "condense.forced": forced,
                },
            ) as otel_span:
                try:
                    record = await self.compactor.compact(log, span, anchor_turn_id, policy)
                except Exception as e:
                    mark_span_failed(otel_span, e)
                    logger.warning("Compaction pass failed, keeping turns raw: %s", e)
                    break

                otel_span.set_attribute("condense.summary_id", record.id)

            created.append(record)

        if not created:
            logger.debug("No compaction for turn %s", anchor_turn_id)
        return created
