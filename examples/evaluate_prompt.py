"""Example: compare the original and optimized prompts on saved test cases."""
import argparse
import json
import sys
from pathlib import Path

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from pydantic import TypeAdapter
from core.evaluator import PromptEvaluator
from models import TestCase
from utils.llm_client import LLMClient
from utils.prompt_files import DEFAULT_INPUT_DIR, GLOBAL_PROMPT_FILE, PROMPT_TO_OPTIMIZE_FILE, read_prompt_file


def main():
    parser = argparse.ArgumentParser(description="Evaluate original vs optimized prompt")
    parser.add_argument("--input", type=str, default=str(DEFAULT_INPUT_DIR), help="Directory with the prompt files")
    parser.add_argument("--output", type=str, default="output", help="Directory with the optimization results")
    args = parser.parse_args()

    input_dir = Path(args.input)
    output_dir = Path(args.output)

    test_cases_path = output_dir / "test-cases.json"
    if not test_cases_path.exists():
        print(f"Test cases file not found: {test_cases_path}")
        print("Run examples/optimize_prompt.py first to generate test cases.")
        sys.exit(1)

    test_cases = TypeAdapter(list[TestCase]).validate_json(test_cases_path.read_text(encoding="utf-8"))
    global_prompt = read_prompt_file(input_dir / GLOBAL_PROMPT_FILE)
    original_prompt = read_prompt_file(input_dir / PROMPT_TO_OPTIMIZE_FILE)
    optimized_prompt = read_prompt_file(output_dir / "optimized-prompt.txt")

    evaluator = PromptEvaluator(LLMClient())

    print("Evaluating original prompt...")
    original = evaluator.evaluate_prompt(global_prompt, original_prompt, test_cases)
    print("Evaluating optimized prompt...")
    optimized = evaluator.evaluate_prompt(global_prompt, optimized_prompt, test_cases)

    results_path = output_dir / "evaluation-results.json"
    with open(results_path, "w", encoding="utf-8") as f:
        json.dump(
            {
                "original": {"prompt": original_prompt, "results": original.to_wire()},
                "optimized": {"prompt": optimized_prompt, "results": optimized.to_wire()},
            },
            f,
            indent=2
        )

    print("\nEvaluation Results:")
    print("-------------------")
    print(f"Original Prompt Pass Rate: {original.pass_rate * 100:.2f}%")
    print(f"Optimized Prompt Pass Rate: {optimized.pass_rate * 100:.2f}%")
    print(f"Improvement: {(optimized.pass_rate - original.pass_rate) * 100:.2f}%")
    print(f"\nDetailed results written to: {results_path}")


if __name__ == "__main__":
    main()
