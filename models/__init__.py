"""Data models for the prompt optimizer."""
from models.test_case import ConversationTurn, TestCase, TestCaseOptions
from models.evaluation import StepEvaluation, EvaluationResult, PromptEvaluation
from models.result import OptimizationStep, OptimizationResult
from models.history import PromptIteration, PromptHistory
from models.request import OptimizePromptRequest

__all__ = [
    "ConversationTurn",
    "TestCase",
    "TestCaseOptions",
    "StepEvaluation",
    "EvaluationResult",
    "PromptEvaluation",
    "OptimizationStep",
    "OptimizationResult",
    "PromptIteration",
    "PromptHistory",
    "OptimizePromptRequest",
]
