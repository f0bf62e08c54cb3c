"""Pytest fixtures: a scripted completion oracle and sample inputs."""
import json
from typing import Callable, Dict, List, Optional, Union

import pytest

from models import OptimizePromptRequest, TestCase, TestCaseOptions
from utils.metrics import get_metrics_collector

Script = Union[str, Exception, Callable[[str, str], str], List[Union[str, Exception]]]


def classify_request(system_prompt: str) -> str:
    """Which component sent the request, judged by its system prompt."""
    if "diverse test cases" in system_prompt:
        return "generator"
    if "expert prompt engineer" in system_prompt:
        return "reviser"
    if "impartial judge" in system_prompt:
        return "judge"
    return "run"


class FakeOracle:
    """
    Deterministic stand-in for the completion oracle.

    Each request kind (generator, reviser, judge, run) gets its own script:
    a fixed reply, an exception to raise, a callable taking
    (system_prompt, user_prompt), or a list consumed in order whose last
    entry repeats once the list runs out.
    """

    def __init__(self, **scripts: Script):
        self.scripts: Dict[str, Script] = {
            "generator": "[]",
            "reviser": "",
            "judge": "no",
            "run": "",
        }
        self.scripts.update(scripts)
        self.calls: List[Dict[str, str]] = []

    def get_completion(self, system_prompt: str, user_prompt: str) -> str:
        kind = classify_request(system_prompt)
        self.calls.append({"kind": kind, "system_prompt": system_prompt, "user_prompt": user_prompt})

        script = self.scripts[kind]
        if isinstance(script, list):
            script = script.pop(0) if len(script) > 1 else script[0]
        if isinstance(script, Exception):
            raise script
        if callable(script):
            return script(system_prompt, user_prompt)
        return script

    def calls_of(self, kind: str) -> List[Dict[str, str]]:
        return [call for call in self.calls if call["kind"] == kind]


def rewrite_reply(
    prompt: str,
    pass_rate: float = 70,
    improvements: Optional[List[str]] = None,
    issues: Optional[List[str]] = None
) -> str:
    """A well-formed EVALUATION / OPTIMIZED_PROMPT reply."""
    evaluation = {
        "passRate": pass_rate,
        "improvements": improvements if improvements is not None else ["Clearer questions"],
        "issues": issues if issues is not None else [],
    }
    return f"EVALUATION:\n{json.dumps(evaluation, indent=2)}\n\nOPTIMIZED_PROMPT:\n{prompt}"


def cases_reply(count: int = 2, tag: str = "case") -> str:
    """A generator reply holding ``count`` well-formed test cases."""
    return json.dumps([
        {
            "input": f"{tag} {i}: book a table",
            "expectedOutput": "For how many people?",
            "conversation": [
                {"role": "user", "content": f"{tag} {i}: book a table"},
                {"role": "assistant", "content": "For how many people?"},
                {"role": "user", "content": "Four"},
            ],
            "finalOutput": {"guests": 4},
        }
        for i in range(1, count + 1)
    ])


@pytest.fixture
def fake_oracle():
    """A FakeOracle factory: fake_oracle(generator=..., reviser=..., ...)."""
    return FakeOracle


@pytest.fixture
def example_test_case():
    return TestCase(
        input="I want to book a flight to Paris",
        expected_output="When would you like to depart?",
        conversation=[
            {"role": "user", "content": "I want to book a flight to Paris"},
            {"role": "assistant", "content": "When would you like to depart?"},
            {"role": "user", "content": "Next Monday"},
        ],
        final_output={"destination": "Paris", "date": "next Monday"},
    )


@pytest.fixture
def optimize_request(example_test_case):
    return OptimizePromptRequest(
        global_prompt="You are a travel booking assistant.",
        prompt_to_optimize="Collect destination and date, then output JSON.",
        test_case_options=TestCaseOptions(example_test_cases=[example_test_case]),
    )


@pytest.fixture(autouse=True)
def clean_metrics():
    """The metrics collector is process-global; start every test empty."""
    collector = get_metrics_collector()
    collector.clear()
    yield collector
    collector.clear()
