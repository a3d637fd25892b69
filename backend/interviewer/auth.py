from fastapi import HTTPException, Request
from jose import JWTError, jwt
import logging
import time
import httpx

from core.config import ADMISSION_TIMEOUT_SEC, ADMISSION_URL
from interviewer.errors import AdmissionError, AdmissionUnavailableError, MissingTokenError
from interviewer.schemas import AdmissionResponse

logger = logging.getLogger("interviewer.auth")


def token_is_usable(token: str | None) -> bool:
    value = str(token or "").strip()
    if not value:
        return False

    # Opaque tokens are accepted as-is; JWTs must not be expired.
    if value.count(".") != 2:
        return True

    try:
        claims = jwt.get_unverified_claims(value)
    except JWTError:
        return False

    exp = claims.get("exp")
    if exp is None:
        return True
    try:
        return float(exp) > time.time()
    except (TypeError, ValueError):
        return False


def require_token(token: str | None) -> str:
    if not token_is_usable(token):
        raise MissingTokenError("Session token is missing or expired")
    return str(token).strip()


def bearer_token(request: Request) -> str:
    auth = request.headers.get("Authorization")
    if not auth or not auth.startswith("Bearer "):
        raise HTTPException(401, "Unauthorized")

    token = auth.replace("Bearer ", "", 1)
    if not token_is_usable(token):
        raise HTTPException(401, "Invalid token")
    return token


class AdmissionClient:
    """
    Exchanges a passcode (+ optional session id) for a candidate identity and token.
    """

    def __init__(self, url: str = ADMISSION_URL, timeout_sec: float = ADMISSION_TIMEOUT_SEC, transport=None):
        self.url = url
        self.timeout_sec = timeout_sec
        self._transport = transport

    async def admit(self, passcode: str, session_id: str | None = None) -> AdmissionResponse:
        code = str(passcode or "").strip()
        if not code:
            raise AdmissionError("Passcode is required")

        try:
            async with httpx.AsyncClient(timeout=self.timeout_sec, transport=self._transport) as client:
                response = await client.post(self.url, json={"passcode": code, "sessionId": session_id})
        except httpx.HTTPError as exc:
            logger.warning("admission request failed | err=%s", exc)
            raise AdmissionUnavailableError("Admission service unavailable") from exc

        if response.status_code != 200:
            raise AdmissionError(f"Admission rejected (status={response.status_code})")

        try:
            data = response.json()
        except ValueError as exc:
            raise AdmissionError("Admission response was not JSON") from exc

        if not bool(data.get("valid")):
            raise AdmissionError("Invalid passcode")

        token = str(data.get("token") or "").strip()
        if not token_is_usable(token):
            raise AdmissionError("Admission returned no usable token")

        return AdmissionResponse(
            session_id=str(data.get("sessionId") or session_id or "").strip(),
            candidate_name=str(data.get("candidateName") or "Candidate").strip(),
            token=token,
        )
