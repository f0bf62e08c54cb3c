"""Judge component - decides whether a rewrite beats the original prompt."""
from typing import List
from models.test_case import TestCase
from core.reviser import serialize_test_cases
from utils.llm_client import CompletionOracle
from utils.logging_utils import setup_logging
from utils.reply_decoder import decode_judge_reply

logger = setup_logging()

JUDGE_SYSTEM_PROMPT = """You are an impartial judge evaluating prompt quality. Compare the original and
optimized prompts based on how well they would handle the provided test cases.

Consider clarity, specificity, robustness, and effectiveness."""


class Judge:
    """Strict yes/no comparison of two prompts."""

    def __init__(self, oracle: CompletionOracle):
        self.oracle = oracle

    def evaluate_optimization(
        self,
        global_prompt: str,
        original_prompt: str,
        optimized_prompt: str,
        test_cases: List[TestCase]
    ) -> bool:
        """
        Ask whether the optimized prompt is better than the original.

        Anything but a bare "yes" counts as no. Oracle errors propagate.
        """
        user_prompt = f"""Global Context: {global_prompt}

Original Prompt: {original_prompt}

Optimized Prompt: {optimized_prompt}

Test Cases:
{serialize_test_cases(test_cases)}

Is the optimized prompt better than the original? Answer with ONLY "yes" or "no"."""

        response = self.oracle.get_completion(JUDGE_SYSTEM_PROMPT, user_prompt)
        is_better = decode_judge_reply(response)

        logger.info("Judge verdict", is_better=is_better, raw_reply=response[:20])
        return is_better
