"""Example: print the saved optimization steps."""
import argparse
import sys
from pathlib import Path

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from utils.result_saver import load_optimization_steps


def main():
    parser = argparse.ArgumentParser(description="Show saved optimization steps")
    parser.add_argument("--output", type=str, default="output", help="Directory with the step artifacts")
    args = parser.parse_args()

    steps = load_optimization_steps(Path(args.output))
    if not steps:
        print("No optimization steps found.")
        return

    print(f"Found {len(steps)} optimization steps:\n")
    for step in steps:
        print(f"=== Iteration {step.iteration} ({step.timestamp}) ===")
        print(f"Pass Rate: {step.evaluation.pass_rate}%")
        print("\nImprovements:")
        for improvement in step.evaluation.improvements:
            print(f"- {improvement}")
        print("\nRemaining Issues:")
        for issue in step.evaluation.issues:
            print(f"- {issue}")
        print("\nPrompt:")
        print("-----------------------------------")
        print(step.prompt)
        print("-----------------------------------\n")


if __name__ == "__main__":
    main()
