"""Append-only turn log and the summary store that sits beside it."""

from __future__ import annotations

import uuid
from collections.abc import Callable, Iterable
from datetime import datetime, timezone

from ..types.types import SummaryRecord, Turn, TurnRole


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TurnLog:
    """Time-ordered raw turns of one conversation plus the summaries covering them.

    The log only grows: turns are appended and, once folded into a summary,
    flagged ``summarized``. Nothing is removed except by :meth:`clear`.
    Summaries are kept in creation order.
    """

    def __init__(self, clock: Callable[[], datetime] | None = None):
        self._clock = clock or _utcnow
        self._turns: list[Turn] = []
        self._positions: dict[str, int] = {}
        self._summaries: list[SummaryRecord] = []

    def __len__(self) -> int:
        return len(self._turns)

    # -- Appending ------------------------------------------------------------

    def append_user_turn(self, text: str) -> Turn:
        return self._append(TurnRole.USER, text)

    def append_assistant_turn(self, text: str, at: datetime | None = None) -> Turn:
        return self._append(TurnRole.ASSISTANT, text, at)

    def append_system_turn(self, text: str, at: datetime | None = None) -> Turn:
        return self._append(TurnRole.SYSTEM, text, at)

    def _append(self, role: TurnRole, text: str, at: datetime | None = None) -> Turn:
        created_at = at or self._clock()
        # created_at never goes backwards, so list order and time order agree
        if self._turns and created_at < self._turns[-1].created_at:
            created_at = self._turns[-1].created_at

        turn = Turn(
            id=str(uuid.uuid4()),
            role=role,
            content=text,
            created_at=created_at,
        )
        self._positions[turn.id] = len(self._turns)
        self._turns.append(turn)
        return turn

    # -- Reading --------------------------------------------------------------

    def raw_turns(self) -> tuple[Turn, ...]:
        """All turns in time order."""
        return tuple(self._turns)

    def summaries(self) -> tuple[SummaryRecord, ...]:
        """All summaries in creation order."""
        return tuple(self._summaries)

    def get(self, turn_id: str) -> Turn | None:
        position = self._positions.get(turn_id)
        return self._turns[position] if position is not None else None

    def unsummarized_count(self) -> int:
        return sum(1 for t in self._turns if not t.summarized)

    def unsummarized_user_count(self) -> int:
        return sum(1 for t in self._turns if t.role == TurnRole.USER and not t.summarized)

    # -- Span selection -------------------------------------------------------

    def take_span_for_compaction(self, anchor_turn_id: str, interval: int) -> list[Turn]:
        """Select the oldest run of un-summarized turns holding ``interval`` user turns.

        The run starts at the earliest un-summarized turn and closes at the
        ``interval``-th un-summarized user turn, never looking past the anchor.
        Returns an empty list when the anchor is unknown or not enough user
        turns are pending yet; that is the "nothing to compact" signal.
        """
        if interval <= 0:
            return []
        anchor_position = self._positions.get(anchor_turn_id)
        if anchor_position is None:
            return []

        span: list[Turn] = []
        user_count = 0
        for turn in self._turns[: anchor_position + 1]:
            if turn.summarized:
                if span:
                    # A summarized turn ends the contiguous run
                    break
                continue
            span.append(turn)
            if turn.role == TurnRole.USER:
                user_count += 1
                if user_count == interval:
                    return span
        return []

    def surplus_span(self, keep_recent: int) -> list[Turn]:
        """Oldest contiguous run of un-summarized turns, leaving the newest ``keep_recent`` of them.

        Used by forced eviction when the un-summarized backlog grows too large.
        """
        pending = [t for t in self._turns if not t.summarized]
        if keep_recent > 0:
            pending = pending[:-keep_recent]
        if not pending:
            return []

        span: list[Turn] = []
        start = self._positions[pending[0].id]
        for turn in self._turns[start:]:
            if turn.summarized or len(span) == len(pending):
                break
            span.append(turn)
        return span

    # -- Applying summaries ---------------------------------------------------

    def apply_summary(self, record: SummaryRecord, covered_turns: Iterable[Turn]) -> None:
        """Fold ``covered_turns`` into ``record`` and append it to the store."""
        self._mark_summarized(covered_turns)
        self._summaries.append(record)

    def replace_all_summaries_with(
        self, record: SummaryRecord, covered_turns: Iterable[Turn]
    ) -> None:
        """Fold ``covered_turns`` into ``record`` and make it the only summary."""
        self._mark_summarized(covered_turns)
        self._summaries = [record]

    def _mark_summarized(self, covered_turns: Iterable[Turn]) -> None:
        positions = []
        for turn in covered_turns:
            position = self._positions.get(turn.id)
            if position is None:
                raise ValueError(f"Turn {turn.id} is not part of this log")
            if self._turns[position].summarized:
                raise ValueError(f"Turn {turn.id} is already covered by a summary")
            positions.append(position)

        # Validate everything first so a rejected record leaves the log untouched
        for position in positions:
            self._turns[position] = self._turns[position].model_copy(update={"summarized": True})

    def clear(self) -> None:
        self._turns.clear()
        self._positions.clear()
        self._summaries.clear()
