"""Reviser component - rewrites a prompt and reports a self-evaluation."""
import json
from dataclasses import dataclass
from typing import List
from models.evaluation import StepEvaluation
from models.test_case import TestCase
from utils.llm_client import CompletionOracle
from utils.logging_utils import setup_logging
from utils.reply_decoder import (
    EVALUATION_MARKER,
    OPTIMIZED_PROMPT_MARKER,
    decode_rewrite_reply,
)

logger = setup_logging()

REVISER_SYSTEM_PROMPT = """You are an expert prompt engineer. Your task is to optimize a prompt based on test cases.

The prompt is used in a conversational AI system where:
1. The user provides some input
2. The AI responds based on the prompt
3. The conversation continues until all required information is collected

Your goal is to improve the prompt so that:
1. The AI correctly understands the user's intent
2. The AI asks for any missing information in a natural, conversational way
3. The AI provides the expected output format when all information is collected

Analyze the test cases to identify patterns and issues with the current prompt.
Then, provide an improved version of the prompt that addresses these issues."""


@dataclass(frozen=True)
class RewriteOutcome:
    """A rewritten prompt with the oracle's own assessment of it."""
    optimized_prompt: str
    evaluation: StepEvaluation


def serialize_test_cases(test_cases: List[TestCase]) -> str:
    return json.dumps([tc.to_wire() for tc in test_cases], indent=2)


class PromptReviser:
    """Improves prompts against a batch of test cases."""

    def __init__(self, oracle: CompletionOracle):
        self.oracle = oracle

    def optimize_prompt(
        self,
        global_prompt: str,
        candidate_prompt: str,
        test_cases: List[TestCase],
        iteration: int
    ) -> RewriteOutcome:
        """
        Ask the oracle for an improved prompt.

        Malformed replies degrade to a zeroed evaluation (see
        ``decode_rewrite_reply``); oracle errors propagate.

        Args:
            global_prompt: Global context shared by every prompt
            candidate_prompt: Prompt to improve
            test_cases: Test cases the prompt should handle
            iteration: Current round number (1-based)

        Returns:
            RewriteOutcome with the optimized prompt and self-reported evaluation
        """
        logger.info("Optimizing prompt", iteration=iteration, test_case_count=len(test_cases))

        user_prompt = f"""Global Context: {global_prompt}

Original Prompt:
{candidate_prompt}

Test Cases:
{serialize_test_cases(test_cases)}

Please optimize the prompt to better handle these test cases. The prompt should guide the assistant to:
1. Identify missing information
2. Ask for missing information in a conversational way
3. Confirm all details before finalizing
4. Output a JSON object with all parameters when confirmed

Also provide an evaluation of the current prompt with:
1. Pass rate (percentage of test cases handled correctly)
2. List of improvements made in this iteration
3. List of remaining issues to address

Format your response as:

{EVALUATION_MARKER}
{{
  "passRate": 70,
  "improvements": ["Improved handling of partial information", "Better confirmation step"],
  "issues": ["Doesn't handle ambiguous inputs well"]
}}

{OPTIMIZED_PROMPT_MARKER}
Your optimized prompt here..."""

        response = self.oracle.get_completion(REVISER_SYSTEM_PROMPT, user_prompt)
        decoded = decode_rewrite_reply(response, fallback_prompt=candidate_prompt)

        if decoded.strategy == "lenient":
            logger.warning(
                "Evaluation block did not match the expected shape; coerced leniently",
                iteration=iteration,
                error=decoded.error
            )
        elif decoded.error:
            logger.warning(f"Failed to parse evaluation: {decoded.error}", iteration=iteration)
        elif not decoded.followed_protocol:
            logger.warning(
                "Rewrite reply did not follow the EVALUATION/OPTIMIZED_PROMPT format",
                iteration=iteration,
                strategy=decoded.strategy
            )

        logger.info(
            "Prompt optimized",
            iteration=iteration,
            reported_pass_rate=decoded.evaluation.pass_rate,
            improvements=len(decoded.evaluation.improvements),
            issues=len(decoded.evaluation.issues)
        )
        return RewriteOutcome(
            optimized_prompt=decoded.optimized_prompt,
            evaluation=decoded.evaluation
        )
