from __future__ import annotations

import logging

import httpx

from core.config import EVALUATION_TIMEOUT_SEC, EVALUATION_URL
from interviewer.auth import require_token
from interviewer.errors import EvaluationError
from interviewer.schemas import EvaluationRequest, EvaluationResult

logger = logging.getLogger("interviewer.evaluation.client")


class EvaluationClient:
    """
    HTTP client for the answer-evaluation backend.
    One attempt per call: a failed turn is handed back to the candidate, not retried.
    """

    def __init__(self, url: str = EVALUATION_URL, timeout_sec: float = EVALUATION_TIMEOUT_SEC, transport=None):
        self.url = url
        self.timeout_sec = timeout_sec
        self._transport = transport

    async def evaluate(self, request: EvaluationRequest, token: str | None) -> EvaluationResult:
        bearer = require_token(token)

        try:
            async with httpx.AsyncClient(timeout=self.timeout_sec, transport=self._transport) as client:
                response = await client.post(
                    self.url,
                    json=request.model_dump(by_alias=True),
                    headers={"Authorization": f"Bearer {bearer}"},
                )
        except httpx.TimeoutException as exc:
            logger.warning("evaluation timeout | url=%s", self.url)
            raise EvaluationError("Evaluation timed out") from exc
        except httpx.HTTPError as exc:
            logger.warning("evaluation transport failure | url=%s err=%s", self.url, exc)
            raise EvaluationError("Evaluation service unavailable") from exc

        if response.status_code != 200:
            logger.warning("evaluation rejected | status=%s", response.status_code)
            raise EvaluationError(f"Evaluation failed (status={response.status_code})")

        try:
            return EvaluationResult.model_validate(response.json())
        except ValueError as exc:
            raise EvaluationError("Evaluation response was malformed") from exc
