import secrets

from fastapi import APIRouter, HTTPException, Request

from interviewer.auth import AdmissionClient, bearer_token
from interviewer.errors import AdmissionError, AdmissionUnavailableError
from interviewer.schemas import AdmissionRequest, AdmissionResponse, MicToggleRequest, SubmitAnswerRequest
from interviewer.session.registry import session_registry

router = APIRouter()

admission_client = AdmissionClient()


def _registered_controller(session_id: str):
    item = session_registry.get(session_id)
    if not item:
        raise HTTPException(status_code=404, detail="Session not found")
    controller = item.get("controller")
    if controller is None:
        raise HTTPException(status_code=404, detail="Session snapshot unavailable")
    return item, controller


def _authorized_controller(session_id: str, request: Request):
    token = bearer_token(request)
    item, controller = _registered_controller(session_id)
    if not secrets.compare_digest(token.encode("utf-8"), str(controller.session.token or "").encode("utf-8")):
        raise HTTPException(status_code=403, detail="Token does not match session")
    return item, controller


@router.post("/api/session/admit", response_model=AdmissionResponse)
async def admit_session(req: AdmissionRequest):
    try:
        return await admission_client.admit(req.passcode, req.session_id)
    except AdmissionUnavailableError as exc:
        raise HTTPException(status_code=502, detail=str(exc)) from exc
    except AdmissionError as exc:
        raise HTTPException(status_code=401, detail=str(exc)) from exc


@router.get("/api/session/{session_id}")
def get_session_snapshot(session_id: str, request: Request):
    _, controller = _authorized_controller(session_id, request)

    payload = controller.snapshot()
    payload.update(session_registry.entry_meta(session_id))
    return payload


@router.post("/api/session/{session_id}/submit")
async def submit_answer_route(session_id: str, req: SubmitAnswerRequest, request: Request):
    item, controller = _authorized_controller(session_id, request)
    if not item.get("active"):
        raise HTTPException(status_code=409, detail="Session is not active")

    accepted = controller.submit_answer(req.text)
    session_registry.touch(session_id)
    return {"accepted": accepted, "phase": controller.phase.value}


@router.post("/api/session/{session_id}/mic")
async def toggle_mic_route(session_id: str, req: MicToggleRequest, request: Request):
    item, controller = _authorized_controller(session_id, request)
    if not item.get("active"):
        raise HTTPException(status_code=409, detail="Session is not active")

    controller.toggle_mic(req.enabled)
    session_registry.touch(session_id)
    return {"mic_enabled": controller.mic_enabled, "phase": controller.phase.value}
