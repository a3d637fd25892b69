import asyncio
import itertools
import sys
import time
from pathlib import Path

import pytest


ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from interviewer.schemas import EvaluationResult  # noqa: E402
from interviewer.session.models import Session  # noqa: E402
from interviewer.session_controller import InterviewSessionController, TurnSettings  # noqa: E402


@pytest.fixture(autouse=True)
def _test_env(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("ENV", "development")
    monkeypatch.setenv("QA_MODE", "true")
    monkeypatch.setenv("EVALUATION_URL", "http://evaluation.test/api/evaluate")
    monkeypatch.setenv("ADMISSION_URL", "http://admission.test/api/admit")


@pytest.fixture
def make_jwt():
    from jose import jwt

    def _make(exp_offset_sec: float = 3600.0, **claims) -> str:
        payload = {"sub": "pytest-candidate", "exp": int(time.time() + exp_offset_sec)}
        payload.update(claims)
        return jwt.encode(payload, "pytest-secret", algorithm="HS256")

    return _make


# -------------------------
# FAKES
# -------------------------

class FakeTimer:
    def __init__(self, due_ms: float, seq: int, callback):
        self.due_ms = due_ms
        self.seq = seq
        self.callback = callback
        self.cancelled = False
        self.fired = False

    def cancel(self) -> None:
        self.cancelled = True


class FakeScheduler:
    """Manual clock. advance() fires due callbacks in due order."""

    def __init__(self):
        self.now_ms = 0.0
        self._timers: list[FakeTimer] = []
        self._seq = itertools.count()

    def call_later(self, delay_ms, callback) -> FakeTimer:
        timer = FakeTimer(self.now_ms + max(0.0, float(delay_ms)), next(self._seq), callback)
        self._timers.append(timer)
        return timer

    @property
    def pending(self) -> list[FakeTimer]:
        return [timer for timer in self._timers if not timer.cancelled and not timer.fired]

    def advance(self, ms: float) -> None:
        target = self.now_ms + float(ms)
        while True:
            due = [timer for timer in self.pending if timer.due_ms <= target]
            if not due:
                break
            timer = min(due, key=lambda item: (item.due_ms, item.seq))
            self.now_ms = timer.due_ms
            timer.fired = True
            timer.callback()
        self.now_ms = target


class FakeCaptureEngine:
    def __init__(self):
        self.running = False
        self.listener = None
        self.starts = 0
        self.stops = 0
        self.fail_next_start = False

    @property
    def is_running(self) -> bool:
        return self.running

    def start(self, listener) -> None:
        if self.fail_next_start:
            self.fail_next_start = False
            raise RuntimeError("engine refused to start")
        if self.running:
            return
        self.listener = listener
        self.running = True
        self.starts += 1

    def stop(self) -> None:
        if not self.running:
            return
        self.running = False
        self.stops += 1

    def emit(self, text: str, is_final: bool = False) -> None:
        self.listener.on_fragment(text, is_final)

    def end(self, kind: str = "end") -> None:
        self.running = False
        self.listener.on_end(kind)

    def error(self, code: str) -> None:
        self.running = False
        self.listener.on_error(code)


class FakePlayback:
    def __init__(self):
        self.played: list[str] = []
        self.stops = 0
        self.fail = False
        self.gate: asyncio.Event | None = None

    async def play(self, audio_payload: str) -> None:
        self.played.append(audio_payload)
        if self.gate is not None:
            await self.gate.wait()
        if self.fail:
            raise RuntimeError("decode error")

    def stop(self) -> None:
        self.stops += 1
        if self.gate is not None:
            self.gate.set()


class FakeEvaluator:
    """Queued results; an Exception in the queue is raised instead."""

    def __init__(self):
        self.openings: list = []
        self.results: list = []
        self.calls: list[tuple[str, str]] = []
        self.gate: asyncio.Event | None = None

    async def first_question(self) -> EvaluationResult:
        self.calls.append(("", "start the interview"))
        item = self.openings.pop(0) if self.openings else EvaluationResult(
            next_question="Tell me about yourself.",
            audio_payload="opening-audio",
        )
        if isinstance(item, Exception):
            raise item
        return item

    async def evaluate(self, prior_question: str, answer: str) -> EvaluationResult:
        self.calls.append((prior_question, answer))
        if self.gate is not None:
            await self.gate.wait()
        item = self.results.pop(0)
        if isinstance(item, Exception):
            raise item
        return item


class RecordingNotifier:
    def __init__(self):
        self.notices: list[tuple[str, str]] = []

    def notify(self, level: str, message: str) -> None:
        self.notices.append((level, message))

    @property
    def levels(self) -> list[str]:
        return [level for level, _ in self.notices]


@pytest.fixture
def scheduler() -> FakeScheduler:
    return FakeScheduler()


@pytest.fixture
def capture_engine() -> FakeCaptureEngine:
    return FakeCaptureEngine()


@pytest.fixture
def playback() -> FakePlayback:
    return FakePlayback()


@pytest.fixture
def evaluator() -> FakeEvaluator:
    return FakeEvaluator()


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def make_controller(scheduler, capture_engine, playback, evaluator, notifier):
    def _make(**overrides) -> InterviewSessionController:
        kwargs = {
            "capture_engine": capture_engine,
            "playback": playback,
            "evaluator": evaluator,
            "scheduler": scheduler,
            "notifier": notifier,
            "settings": TurnSettings(),
        }
        kwargs.update(overrides)
        session = kwargs.pop("session", None) or Session(candidate_name="Ada", token="opaque-token")
        return InterviewSessionController(session, **kwargs)

    return _make
