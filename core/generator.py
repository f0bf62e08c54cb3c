"""Test case generator - asks the oracle for synthetic conversations."""
import json
from typing import List, Optional
from pydantic import ValidationError
from models.test_case import TestCase, TestCaseOptions
from config.optimization_config import OptimizationConfig
from utils.llm_client import CompletionOracle
from utils.logging_utils import setup_logging
from utils.reply_decoder import decode_json_array

logger = setup_logging()

GENERATOR_INSTRUCTIONS = """Create {count} diverse test cases that simulate real user conversations. Each test case should:
1. Start with a user message that contains partial information
2. Include expected assistant responses that ask for missing information
3. Include follow-up user messages that provide the missing information
4. End with a final JSON output containing all parameters

Format each test case as a conversation with multiple turns, ending with the JSON output.
Each test case is an object with the keys "input", "expectedOutput", "conversation"
(a list of {{"role": "user" | "assistant", "content": "..."}}) and "finalOutput"
(an object with the extracted parameters).

IMPORTANT: Return your response as a valid JSON array of test cases. Make sure the JSON is properly formatted and can be parsed."""


class TestCaseGenerator:
    """Generates batches of conversational test cases for a prompt."""

    __test__ = False

    def __init__(self, oracle: CompletionOracle, batch_size: Optional[int] = None):
        self.oracle = oracle
        self.batch_size = batch_size or OptimizationConfig.TEST_CASES_PER_BATCH

    def generate_test_cases(
        self,
        global_prompt: str,
        candidate_prompt: str,
        options: Optional[TestCaseOptions] = None
    ) -> List[TestCase]:
        """
        Generate test cases for the candidate prompt.

        Never raises: oracle errors and unusable replies fall back to the
        example test cases from ``options`` (or an empty list).

        Args:
            global_prompt: Global context shared by every prompt
            candidate_prompt: Prompt the test cases should exercise
            options: Optional example test cases and extra instructions

        Returns:
            List of test cases
        """
        options = options or TestCaseOptions()
        fallback = list(options.example_test_cases)

        system_prompt = self._build_system_prompt(options)
        user_prompt = self._build_user_prompt(global_prompt, candidate_prompt)

        logger.info("Generating test cases", batch_size=self.batch_size)
        try:
            response = self.oracle.get_completion(system_prompt, user_prompt)
        except Exception as e:
            logger.error(
                f"Error generating test cases: {e}",
                exception_type=type(e).__name__,
                fallback_count=len(fallback)
            )
            return fallback

        decoded = decode_json_array(response)
        if not decoded.ok:
            logger.warning(
                "Could not parse response as test cases, using example test cases",
                error=decoded.error,
                strategy=decoded.strategy,
                fallback_count=len(fallback)
            )
            return fallback

        try:
            test_cases = [TestCase.model_validate(item) for item in decoded.value]
        except ValidationError as e:
            logger.warning(
                "Generated test cases do not match the test case shape, using example test cases",
                error=str(e),
                fallback_count=len(fallback)
            )
            return fallback

        logger.info(
            "Generated test cases",
            count=len(test_cases),
            strategy=decoded.strategy
        )
        return test_cases

    def _build_system_prompt(self, options: TestCaseOptions) -> str:
        parts = []
        if options.test_case_prompt:
            parts.append(options.test_case_prompt.strip())
        parts.append(GENERATOR_INSTRUCTIONS.format(count=self.batch_size))
        if options.example_test_cases:
            example = options.example_test_cases[0].to_wire()
            parts.append(f"Example test case:\n[{json.dumps(example, indent=2)}]")
        return "\n\n".join(parts)

    def _build_user_prompt(self, global_prompt: str, candidate_prompt: str) -> str:
        return f"""Create test cases for this assistant prompt.

Global Context:
{global_prompt}

Prompt:
{candidate_prompt}

Return ONLY a valid JSON array of test cases. Do not include any explanations or additional text."""
