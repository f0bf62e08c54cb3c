"""Per-session prompt history models."""
from datetime import datetime, timezone
from typing import List, Optional
from pydantic import ConfigDict, Field
from models.base import WireModel
from models.test_case import TestCase


def _now() -> datetime:
    return datetime.now(timezone.utc)


class PromptIteration(WireModel):
    """A rewrite recorded in a session's history."""
    model_config = ConfigDict(frozen=True)

    iteration_number: int = Field(ge=1)
    prompt: str
    test_cases: List[TestCase] = Field(default_factory=list)
    timestamp: datetime = Field(default_factory=_now)


class PromptHistory(WireModel):
    """Trace of one optimization session."""
    id: str
    global_prompt: str
    original_prompt: str
    iterations: List[PromptIteration] = Field(default_factory=list)
    final_prompt: str = ""
    created_at: datetime = Field(default_factory=_now)
    completed_at: Optional[datetime] = None

    @property
    def is_finalized(self) -> bool:
        return self.completed_at is not None

    def add_iteration(self, iteration: PromptIteration):
        """Append an iteration; finalized histories are read-only."""
        if self.is_finalized:
            raise ValueError(f"Prompt history {self.id} is already finalized")
        self.iterations.append(iteration)

    def finalize(self, final_prompt: str) -> "PromptHistory":
        """Return a finalized copy carrying the final prompt."""
        return self.model_copy(
            update={
                "final_prompt": final_prompt,
                "completed_at": _now(),
                "iterations": list(self.iterations),
            }
        )
