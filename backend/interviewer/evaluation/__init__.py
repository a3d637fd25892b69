from interviewer.evaluation.client import EvaluationClient
from interviewer.evaluation.orchestrator import EvaluationOrchestrator, Evaluator

__all__ = ["EvaluationClient", "EvaluationOrchestrator", "Evaluator"]
