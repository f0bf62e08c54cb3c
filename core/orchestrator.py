"""Orchestrator - main optimization loop."""
import sys
import uuid
import time
from pathlib import Path
from typing import List, Optional
from tqdm import tqdm

from models import (
    OptimizationResult,
    OptimizationStep,
    OptimizePromptRequest,
    PromptIteration,
    TestCase,
)
from core.generator import TestCaseGenerator
from core.evaluator import PromptEvaluator
from core.reviser import PromptReviser
from core.judge import Judge
from core.history import HistoryStore, InMemoryHistoryStore
from config.optimization_config import OptimizationConfig
from utils.llm_client import CompletionOracle, LLMClient
from utils.logging_utils import reset_session_id, setup_logging, set_session_id
from utils.metrics import get_metrics_collector
from utils.error_handling import handle_errors, ErrorSeverity
from utils.result_saver import save_optimization_step

logger = setup_logging()
metrics = get_metrics_collector()

REASON_NO_IMPROVEMENT = "No further improvement"
REASON_CONVERGED = "Reached convergence threshold"
REASON_MAX_ITERATIONS = "Maximum iterations reached"


def _check_round_limit(max_iterations: int):
    if max_iterations < 1:
        raise ValueError(f"max_iterations must be at least 1, got {max_iterations}")


class Orchestrator:
    """Drives generate -> rewrite -> judge rounds until a stop condition fires."""

    def __init__(
        self,
        oracle: Optional[CompletionOracle] = None,
        history_store: Optional[HistoryStore] = None,
        max_iterations: Optional[int] = None,
        convergence_threshold: Optional[float] = None,
        save_steps: Optional[bool] = None,
        output_dir: Optional[Path] = None,
        cross_check: bool = False
    ):
        """
        Initialize orchestrator.

        Args:
            oracle: Completion oracle (defaults to an LLMClient built from config)
            history_store: Session store (defaults to an in-memory store)
            max_iterations: Round limit (defaults to MAX_ITERATIONS)
            convergence_threshold: Self-reported pass fraction that ends the run
            save_steps: Write each step as a JSON artifact (defaults to SAVE_STEPS)
            output_dir: Root directory for step artifacts (defaults to OUTPUT_DIR)
            cross_check: Also measure each rewrite with the PromptEvaluator;
                the measurement is recorded but never changes the decision
        """
        self.oracle = oracle or LLMClient()
        self.history_store = history_store or InMemoryHistoryStore()
        self.generator = TestCaseGenerator(self.oracle)
        self.reviser = PromptReviser(self.oracle)
        self.judge = Judge(self.oracle)
        self.evaluator = PromptEvaluator(self.oracle)

        self.max_iterations = (
            max_iterations if max_iterations is not None
            else OptimizationConfig.MAX_ITERATIONS
        )
        _check_round_limit(self.max_iterations)
        self.convergence_threshold = (
            convergence_threshold if convergence_threshold is not None
            else OptimizationConfig.CONVERGENCE_THRESHOLD
        )
        self.save_steps = save_steps if save_steps is not None else OptimizationConfig.SAVE_STEPS
        self.output_dir = output_dir
        self.cross_check = cross_check
        self._last_session_id: Optional[str] = None

    def optimize_single_step(self, request: OptimizePromptRequest) -> OptimizationResult:
        """Run exactly one measured round."""
        return self.optimize(request, max_iterations=1)

    @handle_errors(severity=ErrorSeverity.HIGH, log_error=True, reraise=True)
    def optimize(
        self,
        request: OptimizePromptRequest,
        max_iterations: Optional[int] = None
    ) -> OptimizationResult:
        """
        Optimize a prompt through iterative rewriting.

        Each round generates test cases for the current candidate, asks for a
        rewrite, then asks the judge whether the rewrite is better. The run
        stops when the judge says no (rewrite discarded), when the
        self-reported pass rate reaches the convergence threshold (rewrite
        kept) or when the round limit is hit.

        The session's PromptHistory is finalized and saved whether the run
        succeeds or fails; errors are re-raised unchanged.

        Args:
            request: Global prompt, prompt to optimize and test case options
            max_iterations: Round limit for this run (defaults to the instance's)

        Returns:
            OptimizationResult with the final prompt and full step trace

        Raises:
            ValueError: if the round limit is below 1
        """
        if max_iterations is None:
            max_iterations = self.max_iterations
        _check_round_limit(max_iterations)

        session_id = str(uuid.uuid4())
        self._last_session_id = session_id
        token = set_session_id(session_id)
        try:
            return self._run_session(request, session_id, max_iterations)
        finally:
            reset_session_id(token)

    def _run_session(
        self,
        request: OptimizePromptRequest,
        session_id: str,
        max_iterations: int
    ) -> OptimizationResult:
        global_prompt = request.global_prompt
        current_prompt = request.prompt_to_optimize
        all_test_cases: List[TestCase] = []
        steps: List[OptimizationStep] = []
        convergence_reason = REASON_MAX_ITERATIONS
        rounds = 0
        start_time = time.time()

        history = self.history_store.create(
            session_id=session_id,
            global_prompt=global_prompt,
            original_prompt=request.prompt_to_optimize
        )

        logger.info(
            "Starting optimization session",
            session_id=session_id,
            max_iterations=max_iterations,
            convergence_threshold=self.convergence_threshold,
            initial_prompt_length=len(current_prompt)
        )
        metrics.increment("optimization.started")

        progress_bar = tqdm(
            total=max_iterations,
            desc="Optimizing",
            unit="iter",
            file=sys.stdout,  # logging uses stderr
            disable=None
        )

        try:
            while rounds < max_iterations:
                iteration_num = rounds + 1
                progress_bar.set_description(f"Optimizing [iter {iteration_num}/{max_iterations}]")

                # STEP 1: GENERATE test cases for the current candidate
                progress_bar.set_postfix_str("generating...")
                test_cases = self.generator.generate_test_cases(
                    global_prompt,
                    current_prompt,
                    request.test_case_options
                )
                all_test_cases.extend(test_cases)

                # STEP 2: REWRITE the candidate against those test cases
                progress_bar.set_postfix_str("rewriting...")
                rewrite = self.reviser.optimize_prompt(
                    global_prompt,
                    current_prompt,
                    test_cases,
                    iteration_num
                )

                step = OptimizationStep(
                    iteration=iteration_num,
                    prompt=rewrite.optimized_prompt,
                    evaluation=rewrite.evaluation
                )
                steps.append(step)
                if self.save_steps:
                    save_optimization_step(step, self.output_dir)

                history.add_iteration(PromptIteration(
                    iteration_number=iteration_num,
                    prompt=rewrite.optimized_prompt,
                    test_cases=test_cases
                ))
                self.history_store.save(history)

                if self.cross_check:
                    self._cross_check(global_prompt, rewrite.optimized_prompt, test_cases, step)

                # STEP 3: JUDGE the rewrite
                progress_bar.set_postfix_str("judging...")
                is_better = self.judge.evaluate_optimization(
                    global_prompt,
                    current_prompt,
                    rewrite.optimized_prompt,
                    test_cases
                )

                rounds += 1
                progress_bar.update(1)
                reported_rate = rewrite.evaluation.pass_rate
                metrics.gauge("optimization.iteration.reported_pass_rate", reported_rate, tags={"iteration": str(iteration_num)})

                # STEP 4: DECIDE
                if not is_better:
                    convergence_reason = REASON_NO_IMPROVEMENT
                    logger.info("Judge rejected the rewrite; keeping current prompt", iteration=iteration_num)
                    break

                current_prompt = rewrite.optimized_prompt

                if reported_rate >= self.convergence_threshold * 100:
                    convergence_reason = REASON_CONVERGED
                    logger.info(
                        "Reached convergence threshold",
                        iteration=iteration_num,
                        reported_pass_rate=reported_rate
                    )
                    break

                logger.info(
                    "Rewrite accepted; continuing",
                    iteration=iteration_num,
                    reported_pass_rate=reported_rate
                )

        except Exception as e:
            progress_bar.close()
            logger.error(
                f"Error during optimization: {e}",
                session_id=session_id,
                iteration=rounds + 1,
                exception_type=type(e).__name__
            )
            metrics.increment("optimization.failed")
            self.history_store.save(history.finalize(current_prompt))
            raise

        progress_bar.close()
        self.history_store.save(history.finalize(current_prompt))

        duration = time.time() - start_time
        logger.info(
            f"Optimization completed: {convergence_reason}",
            session_id=session_id,
            iterations=rounds,
            test_case_count=len(all_test_cases),
            duration_seconds=duration
        )
        metrics.increment("optimization.completed", tags={"reason": convergence_reason})
        metrics.histogram("optimization.duration", duration)

        return OptimizationResult(
            original_prompt=request.prompt_to_optimize,
            optimized_prompt=current_prompt,
            iterations=rounds,
            test_cases=all_test_cases,
            convergence_reason=convergence_reason,
            optimization_steps=steps
        )

    def _cross_check(
        self,
        global_prompt: str,
        optimized_prompt: str,
        test_cases: List[TestCase],
        step: OptimizationStep
    ):
        """Measure the rewrite and log it next to the self-reported pass rate."""
        measured = self.evaluator.evaluate_prompt(global_prompt, optimized_prompt, test_cases)
        measured_percent = measured.pass_rate * 100
        metrics.gauge(
            "optimization.iteration.measured_pass_rate",
            measured_percent,
            tags={"iteration": str(step.iteration)}
        )
        logger.info(
            "Cross-checked self-reported pass rate",
            iteration=step.iteration,
            reported_pass_rate=step.evaluation.pass_rate,
            measured_pass_rate=measured_percent,
            gap=step.evaluation.pass_rate - measured_percent
        )

    @property
    def last_session_id(self) -> Optional[str]:
        """Session id of the most recent optimize() call, or None before the first."""
        return self._last_session_id
