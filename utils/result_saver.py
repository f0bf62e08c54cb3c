"""Persistence of optimization artifacts on disk."""
import json
import time
from pathlib import Path
from typing import List, Optional
from pydantic import ValidationError
from models.result import OptimizationResult, OptimizationStep
from config.optimization_config import OptimizationConfig
from utils.logging_utils import setup_logging

logger = setup_logging()

STEPS_DIRNAME = "optimization-steps"


def get_steps_dir(output_dir: Optional[Path] = None) -> Path:
    """Directory holding step artifacts (defaults to OUTPUT_DIR/optimization-steps)."""
    return Path(output_dir or OptimizationConfig.OUTPUT_DIR) / STEPS_DIRNAME


def save_optimization_step(step: OptimizationStep, output_dir: Optional[Path] = None) -> Optional[Path]:
    """
    Save one optimization step as step-<iteration>-<epoch_ms>.json.

    Write failures are logged and swallowed; they never fail the loop.

    Returns:
        Path to the saved file, or None if saving failed
    """
    try:
        steps_dir = get_steps_dir(output_dir)
        steps_dir.mkdir(parents=True, exist_ok=True)

        filepath = steps_dir / f"step-{step.iteration}-{int(time.time() * 1000)}.json"
        with open(filepath, "w", encoding="utf-8") as f:
            json.dump(step.to_wire(), f, indent=2)

        logger.info("Saved optimization step", iteration=step.iteration, filepath=str(filepath))
        return filepath
    except (OSError, TypeError, ValueError) as e:
        logger.error(f"Failed to save optimization step: {e}", iteration=step.iteration)
        return None


def _step_sort_key(path: Path):
    parts = path.stem.split("-")
    try:
        return int(parts[1]), int(parts[2])
    except (IndexError, ValueError):
        return 0, 0


def load_optimization_steps(output_dir: Optional[Path] = None) -> List[OptimizationStep]:
    """
    Load saved steps ordered by iteration, then save time.

    Unreadable files are skipped with a warning.
    """
    steps_dir = get_steps_dir(output_dir)
    if not steps_dir.exists():
        return []

    steps = []
    for filepath in sorted(steps_dir.glob("step-*.json"), key=_step_sort_key):
        try:
            steps.append(OptimizationStep.model_validate_json(filepath.read_text(encoding="utf-8")))
        except (OSError, ValidationError) as e:
            logger.warning(f"Skipping unreadable step file: {e}", filepath=str(filepath))
    return steps


def save_optimization_result(result: OptimizationResult, output_dir: Optional[Path] = None) -> dict:
    """
    Write the accumulated test cases and the optimized prompt.

    Returns:
        {"test_cases": Path, "optimized_prompt": Path}
    """
    output_dir = Path(output_dir or OptimizationConfig.OUTPUT_DIR)
    output_dir.mkdir(parents=True, exist_ok=True)

    test_cases_path = output_dir / "test-cases.json"
    with open(test_cases_path, "w", encoding="utf-8") as f:
        json.dump([tc.to_wire() for tc in result.test_cases], f, indent=2)

    prompt_path = output_dir / "optimized-prompt.txt"
    prompt_path.write_text(result.optimized_prompt, encoding="utf-8")

    logger.info(
        "Saved optimization result",
        test_cases_path=str(test_cases_path),
        optimized_prompt_path=str(prompt_path)
    )
    return {"test_cases": test_cases_path, "optimized_prompt": prompt_path}
