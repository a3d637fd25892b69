from __future__ import annotations

import time
from typing import Protocol

from core.config import OPENING_PROMPT
from core.logger import log_event
from interviewer.errors import EvaluationError
from interviewer.evaluation.client import EvaluationClient
from interviewer.schemas import EvaluationRequest, EvaluationResult
from interviewer.session.models import Session
from interviewer.system_metrics import increment_metric, observe_evaluation_latency_ms


class Evaluator(Protocol):
    async def first_question(self) -> EvaluationResult:
        ...

    async def evaluate(self, prior_question: str, answer: str) -> EvaluationResult:
        ...


class EvaluationOrchestrator:
    """
    Sends (prior question, answer) for one session and returns the result.
    It never decides playback or phase; the session controller does.
    """

    def __init__(self, session: Session, client: EvaluationClient | None = None, opening_prompt: str = OPENING_PROMPT):
        self.session = session
        self.client = client or EvaluationClient()
        self.opening_prompt = opening_prompt

    async def first_question(self) -> EvaluationResult:
        result = await self.evaluate("", self.opening_prompt)
        if not result.has_next_question:
            raise EvaluationError("Evaluation backend returned no opening question")
        return result

    async def evaluate(self, prior_question: str, answer: str) -> EvaluationResult:
        request = EvaluationRequest(
            session_id=self.session.id,
            prior_question=prior_question or "",
            candidate_answer=answer,
        )
        started = time.monotonic()
        try:
            result = await self.client.evaluate(request, self.session.token)
        except EvaluationError as exc:
            increment_metric("evaluation_failures_total")
            log_event("evaluation", "failed", self.session.id, error=str(exc))
            raise

        latency_ms = (time.monotonic() - started) * 1000.0
        observe_evaluation_latency_ms(latency_ms)
        log_event(
            "evaluation",
            "completed",
            self.session.id,
            latency_ms=round(latency_ms, 1),
            interview_complete=result.interview_complete,
            has_next_question=result.has_next_question,
            score=result.score,
        )
        return result
