"""Example: optimize the prompt found in the input directory."""
import argparse
import sys
from pathlib import Path

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from core.orchestrator import Orchestrator
from models import OptimizePromptRequest
from utils.prompt_files import (
    DEFAULT_INPUT_DIR,
    EXAMPLE_TEST_CASES_FILE,
    GLOBAL_PROMPT_FILE,
    PROMPT_TO_OPTIMIZE_FILE,
    TEST_CASE_PROMPT_FILE,
    load_test_case_options,
    read_prompt_file,
)
from utils.result_saver import save_optimization_result
from utils.metrics import get_metrics_collector


def main():
    parser = argparse.ArgumentParser(description="Optimize a conversational parameter-extraction prompt")
    parser.add_argument("--input", type=str, default=str(DEFAULT_INPUT_DIR), help="Directory with the prompt files")
    parser.add_argument("--output", type=str, default="output", help="Directory for results and step artifacts")
    parser.add_argument("--max-iterations", type=int, default=None, help="Round limit (default: MAX_ITERATIONS)")
    parser.add_argument("--single-step", action="store_true", help="Run a single measured round")
    parser.add_argument("--cross-check", action="store_true", help="Measure each rewrite with the evaluator")
    parser.add_argument("--export-metrics", action="store_true", help="Write collected metrics under the output directory")
    args = parser.parse_args()

    input_dir = Path(args.input)
    output_dir = Path(args.output)

    test_case_prompt_path = input_dir / TEST_CASE_PROMPT_FILE
    examples_path = input_dir / EXAMPLE_TEST_CASES_FILE
    request = OptimizePromptRequest(
        global_prompt=read_prompt_file(input_dir / GLOBAL_PROMPT_FILE),
        prompt_to_optimize=read_prompt_file(input_dir / PROMPT_TO_OPTIMIZE_FILE),
        test_case_options=load_test_case_options(
            test_case_prompt_path if test_case_prompt_path.exists() else None,
            examples_path if examples_path.exists() else None
        )
    )

    orchestrator = Orchestrator(
        max_iterations=args.max_iterations,
        output_dir=output_dir,
        cross_check=args.cross_check
    )
    if args.single_step:
        result = orchestrator.optimize_single_step(request)
    else:
        result = orchestrator.optimize(request)

    paths = save_optimization_result(result, output_dir)

    print(f"\n{'='*60}")
    print("OPTIMIZATION RESULTS")
    print(f"{'='*60}")
    print(f"Iterations: {result.iterations}")
    print(f"Convergence Reason: {result.convergence_reason}")
    print(f"Test Cases Generated: {len(result.test_cases)}")
    print(f"\nOptimized Prompt:\n{result.optimized_prompt}")
    print(f"\nTest cases written to: {paths['test_cases']}")
    print(f"Optimized prompt written to: {paths['optimized_prompt']}")

    if args.export_metrics:
        metrics = get_metrics_collector()
        metrics.storage_path = output_dir / "metrics"
        print(f"Metrics written to: {metrics.export()}")


if __name__ == "__main__":
    main()
