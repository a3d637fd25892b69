import json
import logging

from core.logger import log_event


def test_log_event_redacts_candidate_text(caplog):
    caplog.set_level(logging.INFO, logger="interviewer.events")

    log_event("turn", "answer_submitted", "s-1", answer="my secret answer", cycle=3, reason="silence")

    payload = json.loads(caplog.records[-1].getMessage())
    assert payload["component"] == "turn"
    assert payload["event"] == "answer_submitted"
    assert payload["session_id"] == "s-1"
    assert payload["answer"] == {"redacted": True, "length": len("my secret answer")}
    assert payload["cycle"] == 3
    assert payload["reason"] == "silence"


def test_log_event_stringifies_unknown_values(caplog):
    caplog.set_level(logging.INFO, logger="interviewer.events")

    log_event("capture", "blocked", "s-2", detail=object(), codes=("not-allowed",))

    payload = json.loads(caplog.records[-1].getMessage())
    assert payload["detail"].startswith("<object object")
    assert payload["codes"] == ["not-allowed"]
