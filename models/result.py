"""Optimization result models."""
from datetime import datetime, timezone
from typing import List
from pydantic import Field
from models.base import WireModel
from models.evaluation import StepEvaluation
from models.test_case import TestCase


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class OptimizationStep(WireModel):
    """One rewrite produced during an optimization round."""
    iteration: int = Field(ge=1)
    prompt: str
    evaluation: StepEvaluation
    timestamp: str = Field(default_factory=_now_iso)


class OptimizationResult(WireModel):
    """Final result of an optimization run."""
    original_prompt: str
    optimized_prompt: str
    iterations: int = Field(ge=0)
    test_cases: List[TestCase] = Field(default_factory=list)
    convergence_reason: str
    optimization_steps: List[OptimizationStep] = Field(default_factory=list)
