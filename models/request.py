"""Optimization request model."""
from typing import Optional
from pydantic import field_validator
from models.base import WireModel
from models.test_case import TestCaseOptions


class OptimizePromptRequest(WireModel):
    """Input of an optimization run."""
    global_prompt: str
    prompt_to_optimize: str
    test_case_options: Optional[TestCaseOptions] = None

    @field_validator("global_prompt", "prompt_to_optimize")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("must not be empty")
        return value
