__version__ = "0.1.0"

from .config import (
    CompactionSettings,
    ConfigurationError,
    EngineConfig,
    ModelSettings,
    Scenario,
    ScenarioMessage,
    load_config,
)
from .core import DialogSession, InvalidMessageError, SessionRegistry
from .llm import LLMProvider, LLMResponse, get_provider, register_provider
from .memory import (
    CompactionPolicy,
    CumulativePolicy,
    HeuristicTokenEstimator,
    IndependentPolicy,
    SummaryParseError,
    SummaryParser,
    TiktokenEstimator,
    TokenAccountant,
    TurnLog,
    get_policy,
    register_policy,
)
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
    "__version__",
    # Sessions
    "DialogSession",
    "InvalidMessageError",
    "SessionRegistry",
    # Configuration
    "CompactionSettings",
    "ConfigurationError",
    "EngineConfig",
    "ModelSettings",
    "Scenario",
    "ScenarioMessage",
    "load_config",
    # LLM
    "LLMProvider",
    "LLMResponse",
    "get_provider",
    "register_provider",
    # Memory
    "CompactionPolicy",
    "CumulativePolicy",
    "HeuristicTokenEstimator",
    "IndependentPolicy",
    "SummaryParseError",
    "SummaryParser",
    "TiktokenEstimator",
    "TokenAccountant",
    "TurnLog",
    "get_policy",
    "register_policy",
    # Types
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
