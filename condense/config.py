"""Engine configuration: compaction thresholds, model settings, and scripted scenarios.

Configuration is read from a YAML file with three sections::

    lesson:            # compaction settings ("compaction" also accepted)
      summaryInterval: 3
      maxSummariesInContext: 3
      rawHistoryLimit: 6
      compressionModel: gpt-4o-mini
    model:
      provider: openai
      model: gpt-4o-mini
    scenarios:
      - id: travel
        description: Planning a trip
        seedMessages:
          - role: user
            content: ...

Keys may be written in camelCase or snake_case.
"""

import logging
import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError, field_validator
from pydantic.alias_generators import to_camel

from .types.types import TurnRole

logger = logging.getLogger(__name__)

CONFIG_PATH_ENV = "CONDENSE_CONFIG"

DEFAULT_COMPRESSION_PROMPT = (
    "You compress fragments of a dialog between a user and an assistant.\n"
    "Keep every fact, decision, number, name and constraint the user shared, "
    "and anything still unresolved. Drop greetings, filler and repetition.\n"
    "Answer with a single JSON object and nothing else:\n"
    '{"summary": "<short narrative of the fragment>", '
    '"facts": ["<fact>", ...], '
    '"openQuestions": ["<unresolved question>", ...]}\n'
    "Use an empty list when there are no facts or open questions."
)

DEFAULT_SYSTEM_PROMPT = (
    "You are a helpful assistant. Earlier parts of the conversation may be given "
    "to you as summaries; treat their facts as established."
)


class ConfigurationError(Exception):
    """Raised when configuration is missing, malformed, or refers to something unknown."""

    def __init__(self, message: str, path: str | None = None):
        self.path = path
        if path:
            message = f"{message} (config: {path})"
        super().__init__(message)


class _ConfigModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")


class CompactionSettings(_ConfigModel):
    """Thresholds and model used for compaction."""

    summary_interval: int = Field(default=3, ge=1)
    max_summaries_in_context: int = Field(default=3, ge=0)
    raw_history_limit: int = Field(default=6, ge=1)
    compression_model: str = "gpt-4o-mini"
    compression_prompt_template: str = DEFAULT_COMPRESSION_PROMPT
    default_scenario_id: str | None = None
    default_policy: str = "independent"

    @field_validator("compression_model", "compression_prompt_template")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        if not value or not value.strip():
            raise ValueError("must not be blank")
        return value


class ModelSettings(_ConfigModel):
    """Provider and model used for replies."""

    provider: str = "openai"
    model: str = "gpt-4o-mini"
    temperature: float | None = 0.7
    max_tokens: int | None = None
    system_prompt: str | None = DEFAULT_SYSTEM_PROMPT


class ScenarioMessage(_ConfigModel):
    role: TurnRole
    content: str

    @field_validator("role", mode="before")
    @classmethod
    def _lower_role(cls, value: Any) -> Any:
        return value.strip().lower() if isinstance(value, str) else value

    @field_validator("content")
    @classmethod
    def _content_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("must not be blank")
        return value


class Scenario(_ConfigModel):
    """A scripted dialog replayed by the comparison run."""

    id: str
    description: str = ""
    seed_messages: list[ScenarioMessage] = Field(default_factory=list)

    @field_validator("id")
    @classmethod
    def _id_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("must not be blank")
        return value


class EngineConfig(_ConfigModel):
    """Root configuration object."""

    compaction: CompactionSettings = Field(
        default_factory=CompactionSettings,
        validation_alias=AliasChoices("lesson", "compaction"),
    )
    model: ModelSettings = Field(default_factory=ModelSettings)
    scenarios: list[Scenario] = Field(default_factory=list)

    @field_validator("compaction", "model", mode="before")
    @classmethod
    def _none_as_default(cls, value: Any) -> Any:
        return {} if value is None else value

    @field_validator("scenarios", mode="before")
    @classmethod
    def _none_as_empty(cls, value: Any) -> Any:
        return [] if value is None else value

    def get_scenario(self, scenario_id: str) -> Scenario:
        """Look up a scenario by id.

        Raises:
            ConfigurationError: If no scenario has this id.
        """
        for scenario in self.scenarios:
            if scenario.id == scenario_id:
                return scenario
        known = ", ".join(s.id for s in self.scenarios) or "none"
        raise ConfigurationError(f"Unknown scenario: {scenario_id}. Known scenarios: {known}")


def _read_yaml(path: str) -> dict[str, Any]:
    try:
        raw = Path(path).read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigurationError(f"Cannot read configuration file: {e}", path=path) from e

    try:
        data = yaml.safe_load(raw)
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML: {e}", path=path) from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigurationError("Configuration root must be a mapping", path=path)
    return data


def load_config(path: str | os.PathLike | None = None) -> EngineConfig:
    """
    Load engine configuration.

    Reads YAML from ``path`` or, when omitted, from the file named by the
    ``CONDENSE_CONFIG`` environment variable. With neither set, defaults are
    used. ``CONDENSE_PROVIDER``, ``CONDENSE_MODEL`` and
    ``CONDENSE_COMPRESSION_MODEL`` override the file.

    Args:
        path: Optional path to a YAML configuration file

    Returns:
        EngineConfig

    Raises:
        ConfigurationError: If the file cannot be read or does not validate
    """
    config_path = os.fspath(path) if path is not None else os.getenv(CONFIG_PATH_ENV)

    data: dict[str, Any] = {}
    if config_path:
        data = _read_yaml(config_path)
        logger.debug("Loaded configuration from %s", config_path)

    try:
        config = EngineConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid configuration: {e}", path=config_path) from e

    model_updates = {}
    if os.getenv("CONDENSE_PROVIDER"):
        model_updates["provider"] = os.environ["CONDENSE_PROVIDER"]
    if os.getenv("CONDENSE_MODEL"):
        model_updates["model"] = os.environ["CONDENSE_MODEL"]
    if model_updates:
        config.model = config.model.model_copy(update=model_updates)

    if os.getenv("CONDENSE_COMPRESSION_MODEL"):
        config.compaction = config.compaction.model_copy(
            update={"compression_model": os.environ["CONDENSE_COMPRESSION_MODEL"]}
        )

    return config
