"""Loading prompts and test case options from input files."""
import json
from pathlib import Path
from typing import Optional
from models.test_case import TestCaseOptions
from utils.logging_utils import setup_logging

logger = setup_logging()

DEFAULT_INPUT_DIR = Path("input")
GLOBAL_PROMPT_FILE = "global-prompt.txt"
PROMPT_TO_OPTIMIZE_FILE = "prompt-to-optimize.txt"
TEST_CASE_PROMPT_FILE = "test-case-prompt.txt"
EXAMPLE_TEST_CASES_FILE = "example-test-cases.json"


def read_prompt_file(path: Path) -> str:
    """Read a prompt file; a missing file is an error."""
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Prompt file not found: {path}")

    prompt = path.read_text(encoding="utf-8")
    logger.info("Loaded prompt", filepath=str(path))
    return prompt


def load_test_case_options(
    test_case_prompt_path: Optional[Path] = None,
    example_test_cases_path: Optional[Path] = None
) -> TestCaseOptions:
    """Build TestCaseOptions from the optional instruction and example files."""
    test_case_prompt = ""
    if test_case_prompt_path is not None:
        test_case_prompt = read_prompt_file(test_case_prompt_path)

    example_test_cases = []
    if example_test_cases_path is not None:
        example_test_cases = json.loads(read_prompt_file(example_test_cases_path))
        if isinstance(example_test_cases, dict):
            example_test_cases = [example_test_cases]

    return TestCaseOptions(
        test_case_prompt=test_case_prompt,
        example_test_cases=example_test_cases
    )
