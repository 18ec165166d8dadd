"""Memory module - turn log, compaction, and context assembly for long conversations."""

from .compaction import (
    CompactionPolicy,
    Compactor,
    CumulativePolicy,
    IndependentPolicy,
    available_policies,
    get_policy,
    register_policy,
)
from .context import AssembledContext, ContextAssembler, render_summary
from .parser import SummaryParseError, SummaryParser
from .tokens import (
    HeuristicTokenEstimator,
    TiktokenEstimator,
    TokenAccountant,
    TokenEstimator,
    estimate_message_tokens,
    estimate_messages_tokens,
    estimate_tokens,
)
from .trigger import CompactionTrigger
from .turn_log import TurnLog

__all__ = [
    "AssembledContext",
    "CompactionPolicy",
    "CompactionTrigger",
    "Compactor",
    "ContextAssembler",
    "CumulativePolicy",
    "HeuristicTokenEstimator",
    "IndependentPolicy",
    "SummaryParseError",
    "SummaryParser",
    "TiktokenEstimator",
    "TokenAccountant",
    "TokenEstimator",
    "TurnLog",
    "available_policies",
    "estimate_message_tokens",
    "estimate_messages_tokens",
    "estimate_tokens",
    "get_policy",
    "register_policy",
    "render_summary",
]
