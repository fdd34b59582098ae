"""Rule-based scoring of finished executions."""

from .schemas import EvalMetrics, EvaluationResult, LLMMetrics, SlowestNode
from .evaluator import EvaluatorConfig, WorkflowEvaluator, create_evaluator, evaluate_execution

__all__ = [
    "EvaluatorConfig",
    "WorkflowEvaluator",
    "create_evaluator",
    "evaluate_execution",
    "EvaluationResult",
    "EvalMetrics",
    "LLMMetrics",
    "SlowestNode",
]
