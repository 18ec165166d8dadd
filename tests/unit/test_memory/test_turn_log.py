"""Unit tests for condense.memory.turn_log module."""

from datetime import datetime, timedelta, timezone

import pytest

from condense.memory.turn_log import TurnLog
from condense.types import SummaryRecord, TurnRole

# -- Helpers ----------------------------------------------------------------


def make_record(turns, record_id="summary-1") -> SummaryRecord:
    return SummaryRecord(
        id=record_id,
        created_at=datetime.now(timezone.utc),
        summary_text="summary",
        source_turn_ids=[t.id for t in turns],
    )


def build_dialog(log: TurnLog, exchanges: int):
    """Append ``exchanges`` user/assistant pairs and return the turns."""
    turns = []
    for i in range(exchanges):
        turns.append(log.append_user_turn(f"question {i}"))
        turns.append(log.append_assistant_turn(f"answer {i}"))
    return turns


# -- Appending ----------------------------------------------------------------


class TestAppend:
    """Tests for appending turns."""

    def test_append_user_turn(self):
        log = TurnLog()
        turn = log.append_user_turn("hello")
        assert turn.role == TurnRole.USER
        assert turn.content == "hello"
        assert turn.summarized is False
        assert log.raw_turns() == (turn,)

    def test_ids_are_unique(self):
        log = TurnLog()
        turns = build_dialog(log, 5)
        assert len({t.id for t in turns}) == 10

    def test_created_at_never_goes_backwards(self):
        now = datetime(2025, 1, 1, 12, 0, tzinfo=timezone.utc)
        log = TurnLog(clock=lambda: now)
        first = log.append_user_turn("first")
        second = log.append_assistant_turn("second", at=now - timedelta(minutes=5))
        assert second.created_at == first.created_at

    def test_explicit_timestamp_is_kept_when_later(self):
        now = datetime(2025, 1, 1, 12, 0, tzinfo=timezone.utc)
        log = TurnLog(clock=lambda: now)
        log.append_user_turn("first")
        later = now + timedelta(seconds=1)
        turn = log.append_system_turn("note", at=later)
        assert turn.role == TurnRole.SYSTEM
        assert turn.created_at == later

    def test_raw_turns_is_read_only_copy(self):
        log = TurnLog()
        log.append_user_turn("hello")
        snapshot = log.raw_turns()
        log.append_user_turn("again")
        assert len(snapshot) == 1
        assert len(log) == 2


# -- Span selection -----------------------------------------------------------


class TestTakeSpanForCompaction:
    """Tests for take_span_for_compaction."""

    def test_empty_when_not_enough_user_turns(self):
        log = TurnLog()
        turns = build_dialog(log, 2)
        anchor = log.append_user_turn("third")
        assert log.take_span_for_compaction(anchor.id, 4) == []
        assert len(turns) == 4

    def test_closes_at_interval_th_user_turn_including_anchor(self):
        log = TurnLog()
        build_dialog(log, 2)
        anchor = log.append_user_turn("third")
        span = log.take_span_for_compaction(anchor.id, 3)
        assert [t.role for t in span] == [
            TurnRole.USER,
            TurnRole.ASSISTANT,
            TurnRole.USER,
            TurnRole.ASSISTANT,
            TurnRole.USER,
        ]
        assert span[-1].id == anchor.id

    def test_oldest_first(self):
        log = TurnLog()
        turns = build_dialog(log, 4)
        anchor = log.append_user_turn("last")
        span = log.take_span_for_compaction(anchor.id, 2)
        assert [t.id for t in span] == [t.id for t in turns[:3]]

    def test_skips_summarized_turns(self):
        log = TurnLog()
        turns = build_dialog(log, 3)
        log.apply_summary(make_record(turns[:2]), turns[:2])
        anchor = log.append_user_turn("next")
        span = log.take_span_for_compaction(anchor.id, 2)
        assert span[0].id == turns[2].id
        assert all(not t.summarized for t in span)

    def test_never_looks_past_anchor(self):
        log = TurnLog()
        first = log.append_user_turn("one")
        log.append_user_turn("two")
        assert log.take_span_for_compaction(first.id, 2) == []

    def test_unknown_anchor_returns_empty(self):
        log = TurnLog()
        build_dialog(log, 3)
        assert log.take_span_for_compaction("missing", 1) == []

    def test_non_positive_interval_returns_empty(self):
        log = TurnLog()
        anchor = log.append_user_turn("one")
        assert log.take_span_for_compaction(anchor.id, 0) == []


class TestSurplusSpan:
    """Tests for surplus_span."""

    def test_keeps_most_recent_turns(self):
        log = TurnLog()
        turns = build_dialog(log, 5)
        span = log.surplus_span(4)
        assert [t.id for t in span] == [t.id for t in turns[:6]]

    def test_counts_only_unsummarized_turns(self):
        log = TurnLog()
        turns = build_dialog(log, 5)
        log.apply_summary(make_record(turns[:4]), turns[:4])
        span = log.surplus_span(4)
        assert [t.id for t in span] == [t.id for t in turns[4:6]]

    def test_empty_when_backlog_fits(self):
        log = TurnLog()
        build_dialog(log, 2)
        assert log.surplus_span(4) == []


# -- Applying summaries -------------------------------------------------------


class TestApplySummary:
    """Tests for apply_summary and replace_all_summaries_with."""

    def test_apply_marks_turns_and_appends(self):
        log = TurnLog()
        turns = build_dialog(log, 2)
        log.apply_summary(make_record(turns[:2], "a"), turns[:2])
        log.apply_summary(make_record(turns[2:], "b"), turns[2:])
        assert [s.id for s in log.summaries()] == ["a", "b"]
        assert all(t.summarized for t in log.raw_turns())
        assert log.unsummarized_user_count() == 0

    def test_replace_keeps_single_record(self):
        log = TurnLog()
        turns = build_dialog(log, 2)
        log.replace_all_summaries_with(make_record(turns[:2], "a"), turns[:2])
        log.replace_all_summaries_with(make_record(turns[2:], "b"), turns[2:])
        assert [s.id for s in log.summaries()] == ["b"]

    def test_rejects_already_summarized_turns(self):
        log = TurnLog()
        turns = build_dialog(log, 2)
        log.apply_summary(make_record(turns[:2]), turns[:2])
        with pytest.raises(ValueError, match="already covered"):
            log.apply_summary(make_record(turns[1:3], "b"), turns[1:3])

    def test_rejection_leaves_log_untouched(self):
        log = TurnLog()
        turns = build_dialog(log, 2)
        log.apply_summary(make_record(turns[1:2]), turns[1:2])
        with pytest.raises(ValueError):
            log.apply_summary(make_record(turns[:2], "b"), turns[:2])
        assert log.raw_turns()[0].summarized is False
        assert len(log.summaries()) == 1

    def test_rejects_foreign_turns(self):
        log = TurnLog()
        other = TurnLog()
        foreign = other.append_user_turn("elsewhere")
        with pytest.raises(ValueError, match="not part of this log"):
            log.apply_summary(make_record([foreign]), [foreign])

    def test_summarized_flag_is_monotonic(self):
        log = TurnLog()
        turns = build_dialog(log, 3)
        log.apply_summary(make_record(turns[:2], "a"), turns[:2])
        log.append_user_turn("more")
        log.replace_all_summaries_with(make_record(turns[2:4], "b"), turns[2:4])
        assert all(t.summarized for t in log.raw_turns()[:4])

    def test_clear(self):
        log = TurnLog()
        turns = build_dialog(log, 2)
        log.apply_summary(make_record(turns), turns)
        log.clear()
        assert log.raw_turns() == ()
        assert log.summaries() == ()
        assert log.unsummarized_user_count() == 0
