"""Conversational test case models."""
import json
from typing import Any, Dict, List, Literal
from pydantic import ConfigDict, Field, field_validator
from models.base import WireModel


class ConversationTurn(WireModel):
    """One message of a simulated conversation."""
    model_config = ConfigDict(frozen=True)

    role: Literal["user", "assistant"]
    content: str = ""


class TestCase(WireModel):
    """A synthetic multi-turn conversation ending in extracted parameters."""
    model_config = ConfigDict(frozen=True, extra="allow")

    # Keep pytest from collecting this class
    __test__ = False

    input: str = ""
    expected_output: str = ""
    conversation: List[ConversationTurn] = Field(default_factory=list)
    final_output: Dict[str, Any] = Field(default_factory=dict)

    @field_validator("input", "expected_output", mode="before")
    @classmethod
    def _coerce_text(cls, value: Any) -> Any:
        """Models often emit the expected output as an object; keep it as JSON text."""
        if value is None:
            return ""
        if isinstance(value, (dict, list)):
            return json.dumps(value, separators=(",", ":"))
        if isinstance(value, (int, float, bool)):
            return str(value)
        return value

    @field_validator("conversation", mode="before")
    @classmethod
    def _coerce_conversation(cls, value: Any) -> Any:
        if value is None:
            return []
        if isinstance(value, list):
            return [
                {**turn, "role": str(turn.get("role", "")).lower()} if isinstance(turn, dict) else turn
                for turn in value
            ]
        return value

    @field_validator("final_output", mode="before")
    @classmethod
    def _coerce_final_output(cls, value: Any) -> Any:
        return {} if value is None else value


class TestCaseOptions(WireModel):
    """Caller-supplied hints for test case generation."""
    __test__ = False

    example_test_cases: List[TestCase] = Field(default_factory=list)
    test_case_prompt: str = ""

    @field_validator("example_test_cases", mode="before")
    @classmethod
    def _none_as_empty(cls, value: Any) -> Any:
        return [] if value is None else value

    @field_validator("test_case_prompt", mode="before")
    @classmethod
    def _none_as_blank(cls, value: Any) -> Any:
        return "" if value is None else value
