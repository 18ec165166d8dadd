from .types import (
    ComparisonReport,
    ContextRawTurn,
    ContextUsageReport,
    ResponseMetrics,
    ScenarioInfo,
    ScenarioMetrics,
    StateSnapshot,
    SummaryContent,
    SummaryRecord,
    TokenUsage,
    Turn,
    TurnRole,
    Usage,
)

__all__ = [
    "ComparisonReport",
    "ContextRawTurn",
    "ContextUsageReport",
    "ResponseMetrics",
    "ScenarioInfo",
    "ScenarioMetrics",
    "StateSnapshot",
    "SummaryContent",
    "SummaryRecord",
    "TokenUsage",
    "Turn",
    "TurnRole",
    "Usage",
]
