import asyncio
import json
import logging

from fastapi import APIRouter, WebSocket
from starlette.websockets import WebSocketState

from core.config import WS_MAX_TEXT_BYTES
from core.logger import log_event
from interviewer.api.ws_interview_components import (
    BrowserCaptureEngine,
    BrowserPlayback,
    WebSocketNotifier,
)
from interviewer.auth import token_is_usable
from interviewer.evaluation.orchestrator import EvaluationOrchestrator
from interviewer.playback.service import SilentPlayback
from interviewer.session.models import Session
from interviewer.session.registry import session_registry
from interviewer.session_controller import InterviewSessionController
from interviewer.system_metrics import decrement_metric, increment_metric

logger = logging.getLogger("ws_interview")

router = APIRouter()


def _token_from(websocket: WebSocket) -> str:
    auth_header = str(websocket.headers.get("authorization") or "").strip()
    token_from_header = auth_header.replace("Bearer ", "", 1).strip() if auth_header.lower().startswith("bearer ") else ""
    return (
        token_from_header
        or str(websocket.query_params.get("token") or "").strip()
        or str(websocket.query_params.get("access_token") or "").strip()
    )


def dispatch_client_message(
    controller: InterviewSessionController,
    capture: BrowserCaptureEngine,
    playback: BrowserPlayback,
    payload: dict,
) -> str | None:
    """
    Routes one decoded browser message. Returns a stop reason when the
    connection should close, otherwise None.
    """
    payload_type = str(payload.get("type") or "").strip().lower()

    if payload_type == "transcript":
        capture.deliver_fragment(
            str(payload.get("text") or ""),
            bool(payload.get("is_final")),
            payload.get("capture_id"),
        )
    elif payload_type == "capture_end":
        capture.deliver_end(str(payload.get("kind") or "end"), payload.get("capture_id"))
    elif payload_type == "capture_error":
        capture.deliver_error(str(payload.get("error") or "unknown"), payload.get("capture_id"))
    elif payload_type == "playback_done":
        playback.complete(str(payload.get("playback_id") or ""), payload.get("error"))
    elif payload_type == "start":
        controller.create_task(controller.start())
    elif payload_type == "submit_answer":
        text = payload.get("text")
        controller.submit_answer(None if text is None else str(text))
    elif payload_type == "toggle_mic":
        controller.toggle_mic(bool(payload.get("enabled")))
    elif payload_type in {"end_session", "stop"}:
        return "client_end"
    else:
        logger.info("Ignoring unknown message | session_id=%s type=%s", controller.session.id, payload_type or "unknown")
    return None


@router.websocket("/ws/interview/{session_id}")
async def interview_ws(websocket: WebSocket, session_id: str):
    token = _token_from(websocket)
    if not token_is_usable(token):
        await websocket.close(code=1008, reason="Unauthorized")
        return

    candidate_name = str(websocket.query_params.get("candidate") or "Candidate").strip() or "Candidate"
    text_only = str(websocket.query_params.get("audio") or "on").strip().lower() == "off"

    def _log_event(event: str, **fields):
        log_event("ws_interview", event, session_id, **fields)

    send_lock = asyncio.Lock()
    send_tasks: set[asyncio.Task] = set()

    async def _safe_send(payload: dict):
        if websocket.client_state != WebSocketState.CONNECTED:
            return
        try:
            encoded = json.dumps(payload)
        except (TypeError, ValueError) as exc:
            logger.warning("ws payload encode failed | session_id=%s err=%s", session_id, exc)
            return
        try:
            async with send_lock:
                await websocket.send_text(encoded)
        except Exception as exc:
            logger.warning("ws send failed | session_id=%s err=%s", session_id, exc)

    def _spawn(coro):
        task = asyncio.create_task(coro)
        send_tasks.add(task)
        task.add_done_callback(send_tasks.discard)
        return task

    session = Session(candidate_name=candidate_name, token=token, id=session_id)
    capture = BrowserCaptureEngine(_safe_send, _spawn)
    browser_playback = BrowserPlayback(_safe_send, _spawn)

    def _on_change(ctrl: InterviewSessionController) -> None:
        _spawn(_safe_send({"type": "state", **ctrl.snapshot()}))

    def _on_exit(finished: Session) -> None:
        _spawn(_safe_send({"type": "session_complete", "session": finished.to_dict()}))

    controller = InterviewSessionController(
        session,
        capture_engine=capture,
        playback=SilentPlayback() if text_only else browser_playback,
        evaluator=EvaluationOrchestrator(session),
        notifier=WebSocketNotifier(_safe_send, _spawn),
        on_exit=_on_exit,
        on_change=_on_change,
    )

    # Claim the slot before the first await.
    if not session_registry.try_register(session_id, controller):
        await websocket.close(code=1008, reason="Session already connected")
        return

    try:
        await websocket.accept()
    except Exception:
        session_registry.mark_inactive(session_id)
        raise

    _log_event("connect", text_only=text_only)
    increment_metric("ws_connections_active")
    increment_metric("sessions_active")
    stop_reason = "client_disconnect"

    try:
        await _safe_send({"type": "state", **controller.snapshot()})
        while True:
            msg = await websocket.receive()
            if msg["type"] == "websocket.disconnect":
                break

            text_payload = msg.get("text")
            if not text_payload:
                continue
            payload_bytes = len(text_payload.encode("utf-8"))
            if payload_bytes > WS_MAX_TEXT_BYTES:
                logger.warning("WS message too large | session_id=%s bytes=%s", session_id, payload_bytes)
                stop_reason = "message_too_large"
                break

            try:
                payload = json.loads(text_payload)
            except ValueError:
                logger.warning("Invalid JSON from client | session_id=%s", session_id)
                continue
            if not isinstance(payload, dict):
                continue

            session_registry.touch(session_id)
            payload_type = str(payload.get("type") or "").strip().lower()
            if payload_type == "ping":
                await _safe_send({"type": "pong"})
                continue
            if payload_type == "snapshot":
                await _safe_send({"type": "state", **controller.snapshot()})
                continue

            reason = dispatch_client_message(controller, capture, browser_playback, payload)
            if reason:
                stop_reason = reason
                break
    finally:
        await controller.end_session()
        if send_tasks:
            await asyncio.gather(*list(send_tasks), return_exceptions=True)
        session_registry.mark_inactive(session_id)
        decrement_metric("ws_connections_active")
        decrement_metric("sessions_active")
        increment_metric("ws_disconnects_total")
        _log_event("disconnect", reason=stop_reason, status=session.status.value)
        if websocket.client_state == WebSocketState.CONNECTED:
            try:
                await websocket.close()
            except RuntimeError:
                pass
