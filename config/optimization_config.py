"""Optimization configuration settings."""
from config.env_config import env_config


class OptimizationConfig:
    """Configuration for optimization parameters."""
    
    # Iteration limits
    MAX_ITERATIONS: int = int(env_config.get_number("MAX_ITERATIONS", 5))
    
    # Compared against the self-reported passRate / 100
    CONVERGENCE_THRESHOLD: float = env_config.get_number("CONVERGENCE_THRESHOLD", 0.9)
    
    # Evaluator: a reply passes when similarity is strictly above this
    PASS_SIMILARITY_THRESHOLD: float = 0.7
    
    # Test cases requested from the generator per round
    TEST_CASES_PER_BATCH: int = 5
    
    # Step artifacts
    SAVE_STEPS: bool = env_config.get_bool("SAVE_STEPS", True)
    OUTPUT_DIR: str = env_config.get("OUTPUT_DIR", "output")
    
    # Logging
    LOG_LEVEL: str = env_config.get("LOG_LEVEL", "INFO")
    LOG_FORMAT: str = env_config.get("LOG_FORMAT", "json")
