"""Prompt evaluator - runs a prompt over test cases and scores the replies."""
from typing import Dict, List, Optional
from tqdm import tqdm
from models.evaluation import EvaluationResult, PromptEvaluation
from models.test_case import TestCase
from config.optimization_config import OptimizationConfig
from utils.llm_client import CompletionOracle
from utils.logging_utils import setup_logging
from utils.similarity import calculate_similarity

logger = setup_logging()


def compose_system_prompt(global_prompt: str, prompt: str) -> str:
    """System prompt used when a prompt is run for real."""
    return f"{global_prompt}\n\n{prompt}"


class PromptEvaluator:
    """Scores a prompt by comparing oracle replies with expected outputs."""

    def __init__(self, oracle: CompletionOracle, pass_threshold: Optional[float] = None):
        self.oracle = oracle
        self.pass_threshold = (
            pass_threshold if pass_threshold is not None
            else OptimizationConfig.PASS_SIMILARITY_THRESHOLD
        )

    def evaluate_prompt(
        self,
        global_prompt: str,
        candidate_prompt: str,
        test_cases: List[TestCase]
    ) -> PromptEvaluation:
        """
        Evaluate a prompt against test cases, sequentially and in order.

        A test case passes when the similarity between the reply and its
        expected output is strictly above the threshold. Oracle errors abort
        the whole evaluation and propagate to the caller.

        Returns:
            PromptEvaluation keyed test_1, test_2, ... with pass rate 0-1
        """
        system_prompt = compose_system_prompt(global_prompt, candidate_prompt)
        results: Dict[str, EvaluationResult] = {}
        passed_count = 0

        for index, test_case in enumerate(
            tqdm(test_cases, desc="Evaluating test cases", unit="test", leave=False, disable=None),
            start=1
        ):
            actual_output = self.oracle.get_completion(system_prompt, test_case.input)
            similarity = calculate_similarity(actual_output, test_case.expected_output)
            passed = similarity > self.pass_threshold
            if passed:
                passed_count += 1

            results[f"test_{index}"] = EvaluationResult(
                passed=passed,
                actual_output=actual_output,
                similarity=similarity
            )
            logger.debug(
                "Evaluated test case",
                test_index=index,
                total=len(test_cases),
                similarity=round(similarity, 4),
                passed=passed
            )

        pass_rate = passed_count / len(test_cases) if test_cases else 0.0
        logger.info(
            "Prompt evaluation complete",
            test_count=len(test_cases),
            passed_count=passed_count,
            pass_rate=pass_rate
        )
        return PromptEvaluation(results=results, pass_rate=pass_rate)
