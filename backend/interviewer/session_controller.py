import asyncio
import logging
from dataclasses import dataclass
from typing import Callable, Optional

from core.config import (
    CAPTURE_BACKOFF_CAP_MS,
    CAPTURE_BACKOFF_FLOOR_MS,
    CAPTURE_RESTART_DELAY_MS,
    COMPLETION_EXIT_DELAY_MS,
    SILENCE_DEBOUNCE_MS,
)
from core.logger import log_event
from core.state import SessionStatus, SpeakerRole, TurnPhase
from interviewer.capture.coordinator import CaptureCoordinator
from interviewer.capture.recovery import RecoveryPolicy
from interviewer.capture.service import CaptureEngine
from interviewer.errors import EvaluationError
from interviewer.evaluation.orchestrator import Evaluator
from interviewer.notifier import LEVEL_ERROR, LEVEL_SUCCESS, LoggingNotifier, Notifier
from interviewer.playback.coordinator import PlaybackCoordinator
from interviewer.playback.service import PlaybackService
from interviewer.scheduler import LoopScheduler, Scheduler, TimerHandle, cancel_handle
from interviewer.schemas import EvaluationResult
from interviewer.services.silence_debounce import SilenceDebouncer
from interviewer.session.models import MessageLog, Session
from interviewer.system_metrics import increment_metric
from interviewer.transcript.models import TranscriptFragment
from interviewer.transcript.state import TranscriptBuffer
from interviewer.turn_lifecycle import CycleGuard, SubmissionGuard
from interviewer.turn_state import rules
from interviewer.turn_state.engine import TurnStateMachine
from interviewer.turn_state.models import TransitionRecord

logging.basicConfig(
    format="%(asctime)s | %(name)s | %(levelname)s | %(message)s",
    level=logging.INFO,
)

logger = logging.getLogger("session_controller")

NOTICE_START_FAILED = "Failed to start interview. Please refresh and try again."
NOTICE_ANSWER_FAILED = "Failed to process your response. Please try again."
NOTICE_COMPLETED = "Interview completed! Thank you for your time."
NOTICE_MIC_BLOCKED = "Microphone access is blocked. Allow access and turn the mic back on."


@dataclass
class TurnSettings:
    silence_debounce_ms: int = SILENCE_DEBOUNCE_MS
    restart_delay_ms: int = CAPTURE_RESTART_DELAY_MS
    backoff_floor_ms: int = CAPTURE_BACKOFF_FLOOR_MS
    backoff_cap_ms: int = CAPTURE_BACKOFF_CAP_MS
    completion_exit_delay_ms: int = COMPLETION_EXIT_DELAY_MS


class InterviewSessionController:
    """
    Lifecycle owner for ONE interview session.

    All phase, guard and cycle writes happen synchronously inside the handler
    that decides them; the only suspension points are playback, the evaluation
    round-trip and the silence timer.
    """

    def __init__(
        self,
        session: Session,
        capture_engine: CaptureEngine,
        playback: PlaybackService,
        evaluator: Evaluator,
        scheduler: Optional[Scheduler] = None,
        notifier: Optional[Notifier] = None,
        settings: Optional[TurnSettings] = None,
        on_exit: Optional[Callable[[Session], None]] = None,
        on_change: Optional[Callable[["InterviewSessionController"], None]] = None,
    ):
        self.session = session
        self.settings = settings or TurnSettings()
        self.scheduler = scheduler or LoopScheduler()
        self.notifier = notifier or LoggingNotifier()
        self.evaluator = evaluator

        self.messages = MessageLog()
        self.cycles = CycleGuard()
        self.turns = TurnStateMachine(self.cycles, on_transition=self._on_transition)
        self.submission = SubmissionGuard()
        self.transcript = TranscriptBuffer()

        self.mic_enabled = True
        self.initialized = False
        self.ended = False
        self.tasks: list[asyncio.Task] = []

        self._initializing = False
        self._exit_handle: Optional[TimerHandle] = None
        self._on_exit = on_exit
        self._on_change = on_change

        self.capture = CaptureCoordinator(
            engine=capture_engine,
            scheduler=self.scheduler,
            on_fragment=self.handle_fragment,
            on_blocked=self._on_capture_blocked,
            policy=RecoveryPolicy(
                restart_delay_ms=self.settings.restart_delay_ms,
                backoff_floor_ms=self.settings.backoff_floor_ms,
                backoff_cap_ms=self.settings.backoff_cap_ms,
            ),
            session_id=session.id,
        )
        self.playback = PlaybackCoordinator(playback, self.capture, session_id=session.id, on_change=self._changed)
        self.debouncer = SilenceDebouncer(
            scheduler=self.scheduler,
            cycles=self.cycles,
            on_quiet=self._submit_after_silence,
            can_submit=self._accepting_speech,
            quiet_ms=self.settings.silence_debounce_ms,
        )

    # -------------------------
    # UI-FACING STATE
    # -------------------------

    @property
    def phase(self) -> TurnPhase:
        return self.turns.phase

    @property
    def waiting_for_response(self) -> bool:
        return self.turns.waiting_for_response

    @property
    def ai_speaking(self) -> bool:
        return self.playback.speaking

    @property
    def mic_blocked(self) -> bool:
        return self.capture.blocked

    @property
    def submitting(self) -> bool:
        return self.submission.held

    @property
    def live_transcript(self) -> str:
        return self.transcript.text

    def snapshot(self) -> dict:
        return {
            "session": self.session.to_dict(),
            "phase": self.phase.value,
            "cycle": self.cycles.current,
            "messages": self.messages.to_list(),
            "live_transcript": self.live_transcript,
            "waiting_for_response": self.waiting_for_response,
            "mic_enabled": self.mic_enabled,
            "mic_blocked": self.mic_blocked,
            "ai_speaking": self.ai_speaking,
            "submitting": self.submitting,
            "initialized": self.initialized,
        }

    def create_task(self, coro) -> asyncio.Task:
        self.tasks = [task for task in self.tasks if not task.done()]
        task = asyncio.create_task(coro)
        self.tasks.append(task)
        return task

    async def settle(self) -> None:
        """Wait until no background turn work is pending."""
        while True:
            pending = [task for task in self.tasks if not task.done() and task is not asyncio.current_task()]
            if not pending:
                return
            await asyncio.gather(*pending, return_exceptions=True)

    # -------------------------
    # START
    # -------------------------

    async def start(self) -> bool:
        if self._initializing or self.initialized:
            logger.info("Interview already initializing or initialized | session_id=%s", self.session.id)
            return False
        if self.ended:
            return False

        self._initializing = True
        self.initialized = True
        increment_metric("sessions_started_total")
        self.turns.begin_question(rules.REASON_START)
        self._changed()

        try:
            result = await self.evaluator.first_question()
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            logger.warning("Failed to initialize interview | session_id=%s err=%s", self.session.id, exc)
            increment_metric("initialization_failures_total")
            self.initialized = False
            if not self.ended:
                self.turns.rest(rules.REASON_INIT_FAILED)
                self.notifier.notify(LEVEL_ERROR, NOTICE_START_FAILED)
            self._changed()
            return False
        finally:
            self._initializing = False

        if self.ended:
            return False

        self.messages.append(SpeakerRole.INTERVIEWER, str(result.next_question).strip())
        self._changed()
        await self._play_question(result.audio_payload)
        return True

    # -------------------------
    # SPEECH INPUT
    # -------------------------

    def _accepting_speech(self) -> bool:
        return (
            not self.ended
            and self.turns.phase == TurnPhase.RECORDING
            and self.turns.waiting_for_response
            and self.mic_enabled
            and not self.ai_speaking
            and not self.submission.held
        )

    def handle_fragment(self, fragment: TranscriptFragment) -> None:
        if fragment.is_empty or not self._accepting_speech():
            return

        self.transcript.ingest(fragment)
        self.debouncer.note_speech()
        self._changed()

    def _submit_after_silence(self) -> None:
        self._begin_submission(self.transcript.text, reason="silence")

    # -------------------------
    # SUBMISSION
    # -------------------------

    def submit_answer(self, text: Optional[str] = None) -> bool:
        """
        Explicit "submit now". Same guard as the silence timer.
        Returns True when the answer was accepted; evaluation continues in the background.
        """
        answer = self.transcript.text if text is None else text
        return self._begin_submission(answer, reason="manual") is not None

    def _begin_submission(self, answer: str, reason: str) -> Optional[asyncio.Task]:
        if self.submission.held:
            increment_metric("submissions_rejected")
            return None

        text = str(answer or "").strip()
        if self.ended or not text or not self.turns.waiting_for_response or not self.mic_enabled:
            logger.info(
                "Cannot submit answer | has_answer=%s waiting=%s mic_enabled=%s",
                bool(text),
                self.turns.waiting_for_response,
                self.mic_enabled,
            )
            increment_metric("submissions_rejected")
            return None

        if not self.submission.try_acquire(reason):
            return None

        try:
            self.turns.begin_evaluation()
            self.debouncer.cancel()
            self.transcript.clear(self.cycles.current)
            prior = self.messages.last(SpeakerRole.INTERVIEWER)
            self.messages.append(SpeakerRole.CANDIDATE, text)
        except Exception:
            self.submission.release()
            raise

        increment_metric("submissions_total")
        log_event("turn", "answer_submitted", self.session.id, reason=reason, cycle=self.cycles.current, answer=text)
        self._changed()
        return self.create_task(self._evaluate_answer(prior.content if prior else "", text))

    async def _evaluate_answer(self, prior_question: str, answer: str) -> None:
        try:
            try:
                result = await self.evaluator.evaluate(prior_question, answer)
            except asyncio.CancelledError:
                raise
            except Exception as exc:
                self._on_evaluation_failed(exc)
                return

            if self.ended:
                return
            await self._apply_result(result)
        finally:
            self.submission.release()
            self._changed()

    async def _apply_result(self, result: EvaluationResult) -> None:
        if result.interview_complete:
            await self._complete(result)
            return

        if not result.has_next_question:
            self._on_evaluation_failed(EvaluationError("Evaluation returned neither a question nor completion"))
            return

        self.messages.append(SpeakerRole.INTERVIEWER, str(result.next_question).strip())
        self.turns.begin_question(rules.REASON_NEXT_QUESTION)
        self._changed()
        await self._play_question(result.audio_payload)

    def _on_evaluation_failed(self, exc: Exception) -> None:
        logger.warning("Failed to submit answer | session_id=%s err=%s", self.session.id, exc)
        if self.ended:
            return
        self.notifier.notify(LEVEL_ERROR, NOTICE_ANSWER_FAILED)

        if self.mic_enabled and not self.capture.blocked:
            self._enter_recording(rules.REASON_EVALUATION_FAILED)
        else:
            self.turns.rest(rules.REASON_EVALUATION_FAILED, waiting_for_response=True)
        self._changed()

    # -------------------------
    # PLAYBACK / LISTENING
    # -------------------------

    async def _play_question(self, audio_payload: Optional[str]) -> None:
        await self.playback.play(audio_payload)

        if self.ended or self.turns.phase != TurnPhase.PLAYING_QUESTION:
            return

        if self.mic_enabled and not self.capture.blocked:
            self._enter_recording(rules.REASON_PLAYBACK_DONE)
        else:
            logger.info("Mic disabled - staying idle | session_id=%s", self.session.id)
            self.turns.rest(rules.REASON_PLAYBACK_DONE_MIC_OFF, waiting_for_response=True)
        self._changed()

    def _enter_recording(self, reason: str) -> None:
        self.debouncer.cancel()
        cycle = self.turns.enter_recording(reason)
        self.transcript.clear(cycle)
        self.capture.resume()

    # -------------------------
    # COMPLETION
    # -------------------------

    async def _complete(self, result: EvaluationResult) -> None:
        closing = str(result.next_question or "").strip()
        if closing:
            self.messages.append(SpeakerRole.INTERVIEWER, closing)
            self.turns.begin_question(rules.REASON_CLOSING_REMARK)
            self._changed()
            await self.playback.play(result.audio_payload)
            if self.ended:
                return

        self.debouncer.cancel()
        self.capture.suspend()
        self.turns.rest(rules.REASON_COMPLETED, waiting_for_response=False)
        self.session.mark(SessionStatus.COMPLETED)
        increment_metric("sessions_completed_total")
        log_event("turn", "interview_completed", self.session.id, score=result.score)
        self.notifier.notify(LEVEL_SUCCESS, NOTICE_COMPLETED)
        self._changed()

        cancel_handle(self._exit_handle)
        self._exit_handle = self.scheduler.call_later(self.settings.completion_exit_delay_ms, self._exit)

    def _exit(self) -> None:
        self._exit_handle = None
        if self._on_exit is not None:
            self._on_exit(self.session)

    # -------------------------
    # MIC
    # -------------------------

    def toggle_mic(self, enabled: bool) -> None:
        enabled = bool(enabled)
        if self.ended:
            return
        if enabled == self.mic_enabled and not (enabled and self.capture.blocked):
            return

        logger.info("Mic toggled | enabled=%s phase=%s", enabled, self.phase.value)
        self.mic_enabled = enabled

        if not enabled:
            self.debouncer.cancel()
            self.transcript.clear()
            self.capture.suspend()
            if self.turns.waiting_for_response and self.turns.is_in(TurnPhase.RECORDING, TurnPhase.PROCESSING_SPEECH):
                self.turns.rest(rules.REASON_MIC_OFF)
        else:
            self.capture.unblock()
            if self.turns.waiting_for_response and not self.ai_speaking and self.turns.phase == TurnPhase.IDLE:
                self._enter_recording(rules.REASON_MIC_ON)

        self._changed()

    def _on_capture_blocked(self, reason: str) -> None:
        logger.warning("Capture blocked | session_id=%s reason=%s", self.session.id, reason)
        self.mic_enabled = False
        self.debouncer.cancel()
        self.transcript.clear()
        if self.turns.is_in(TurnPhase.RECORDING, TurnPhase.PROCESSING_SPEECH):
            self.turns.rest(rules.REASON_CAPTURE_BLOCKED)
        self.notifier.notify(LEVEL_ERROR, NOTICE_MIC_BLOCKED)
        self._changed()

    # -------------------------
    # END
    # -------------------------

    async def end_session(self) -> None:
        if self.ended:
            return

        logger.info("Stopping session | session_id=%s phase=%s", self.session.id, self.phase.value)
        self.ended = True
        self.debouncer.cancel()
        cancel_handle(self._exit_handle)
        self._exit_handle = None
        self.capture.shutdown()
        self.playback.stop()
        self.turns.rest(rules.REASON_SESSION_END, waiting_for_response=False)
        self.transcript.clear()
        if self.session.status == SessionStatus.ACTIVE:
            self.session.mark(SessionStatus.PAUSED)

        current = asyncio.current_task()
        pending = [task for task in self.tasks if task is not current and not task.done()]
        for task in pending:
            task.cancel()
        await asyncio.gather(*pending, return_exceptions=True)
        self.tasks = []
        self.submission.release()
        self._changed()

    # -------------------------
    # HOOKS
    # -------------------------

    def _on_transition(self, record: TransitionRecord) -> None:
        log_event("turn", "transition", self.session.id, **record.to_dict())

    def _changed(self) -> None:
        if self._on_change is not None:
            self._on_change(self)
