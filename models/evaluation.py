"""Evaluation models: self-reported step evaluations and measured results."""
from typing import Dict, List
from pydantic import Field
from models.base import WireModel


class StepEvaluation(WireModel):
    """Evaluation the oracle reports about its own rewrite."""
    pass_rate: float = Field(default=0, ge=0, le=100, description="Percentage 0-100")
    improvements: List[str] = Field(default_factory=list)
    issues: List[str] = Field(default_factory=list)


class EvaluationResult(WireModel):
    """Measured outcome for a single test case."""
    passed: bool
    actual_output: str
    similarity: float = Field(ge=0, le=1)


class PromptEvaluation(WireModel):
    """Measured outcome for a prompt over a batch of test cases."""
    results: Dict[str, EvaluationResult] = Field(default_factory=dict)
    pass_rate: float = Field(default=0, ge=0, le=1, description="Fraction 0-1")
