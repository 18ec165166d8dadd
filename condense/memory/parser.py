"""Parse summarizer output into structured summary content."""

from __future__ import annotations

import json
import re

from pydantic import AliasChoices, BaseModel, Field, ValidationError, field_validator

from ..types.types import SummaryContent

_CODE_FENCE = re.compile(r"^```[a-zA-Z0-9_-]*\s*\n?(.*?)\n?```$", re.DOTALL)


class SummaryParseError(ValueError):
    """Raised when summarizer output cannot be turned into a summary."""

    def __init__(self, message: str, raw_text: str | None = None):
        self.raw_text = raw_text
        super().__init__(message)


class _SummaryPayload(BaseModel):
    summary: str = Field(validation_alias=AliasChoices("summary", "summaryText", "summary_text"))
    facts: list[str] = Field(default_factory=list)
    open_questions: list[str] = Field(
        default_factory=list,
        validation_alias=AliasChoices("openQuestions", "open_questions"),
    )

    @field_validator("facts", "open_questions", mode="before")
    @classmethod
    def _none_as_empty(cls, value):
        return [] if value is None else value


def _strip_code_fence(text: str) -> str:
    match = _CODE_FENCE.match(text)
    return match.group(1).strip() if match else text


def _clean_items(items: list[str]) -> list[str]:
    return [item.strip() for item in items if item and item.strip()]


class SummaryParser:
    """Turns the summarizer's JSON reply into :class:`SummaryContent`.

    Accepts a bare JSON object or one wrapped in a markdown code fence.
    Open questions that are blank or just "none" are dropped.
    """

    def parse(self, text: str) -> SummaryContent:
        """Parse a summarizer reply.

        Args:
            text: Raw model output.

        Returns:
            The parsed summary, facts and open questions.

        Raises:
            SummaryParseError: If the text is empty, not a JSON object, or
                has no summary text.
        """
        if not text or not text.strip():
            raise SummaryParseError("Summarizer returned an empty response", raw_text=text)

        body = _strip_code_fence(text.strip())
        try:
            data = json.loads(body)
        except json.JSONDecodeError as e:
            raise SummaryParseError(
                f"Summarizer output is not valid JSON: {e}", raw_text=text
            ) from e

        if not isinstance(data, dict):
            raise SummaryParseError("Summarizer output must be a JSON object", raw_text=text)

        try:
            payload = _SummaryPayload.model_validate(data)
        except ValidationError as e:
            raise SummaryParseError(
                f"Summarizer output has an invalid shape: {e}", raw_text=text
            ) from e

        summary_text = payload.summary.strip()
        if not summary_text:
            raise SummaryParseError("Summarizer output has an empty summary", raw_text=text)

        return SummaryContent(
            summary_text=summary_text,
            facts=_clean_items(payload.facts),
            open_questions=[
                q for q in _clean_items(payload.open_questions) if q.lower() != "none"
            ],
        )
