import pytest

from core.state import TurnPhase
from interviewer.errors import TurnTransitionError
from interviewer.turn_state import TurnStateMachine
from interviewer.turn_state import rules


def test_full_turn_walks_the_legal_path():
    seen = []
    machine = TurnStateMachine(on_transition=seen.append)

    machine.begin_question(rules.REASON_START)
    listen_cycle = machine.enter_recording(rules.REASON_PLAYBACK_DONE)
    assert machine.waiting_for_response is True

    eval_cycle = machine.begin_evaluation()
    assert machine.phase == TurnPhase.EVALUATING
    assert machine.waiting_for_response is False
    assert eval_cycle == listen_cycle + 1

    machine.begin_question(rules.REASON_NEXT_QUESTION)
    assert [record.target for record in seen] == [
        TurnPhase.PLAYING_QUESTION,
        TurnPhase.RECORDING,
        TurnPhase.EVALUATING,
        TurnPhase.PLAYING_QUESTION,
    ]


def test_illegal_transition_raises_and_keeps_phase():
    machine = TurnStateMachine()

    with pytest.raises(TurnTransitionError) as excinfo:
        machine.transition(TurnPhase.EVALUATING, "skip")

    assert machine.phase == TurnPhase.IDLE
    assert excinfo.value.target == TurnPhase.EVALUATING


def test_playing_question_cannot_jump_to_evaluating():
    machine = TurnStateMachine()
    machine.begin_question()

    with pytest.raises(TurnTransitionError):
        machine.begin_evaluation()


def test_any_phase_can_rest_in_idle():
    for phase in TurnPhase:
        assert rules.is_allowed(phase, TurnPhase.IDLE)


def test_rest_while_idle_only_records_history():
    seen = []
    machine = TurnStateMachine(on_transition=seen.append)

    record = machine.rest(rules.REASON_MIC_OFF, waiting_for_response=True)

    assert record.source == record.target == TurnPhase.IDLE
    assert machine.waiting_for_response is True
    assert seen == []
    assert machine.history_dicts()[-1]["reason"] == rules.REASON_MIC_OFF


def test_history_dict_shape():
    machine = TurnStateMachine()
    machine.begin_question(rules.REASON_START)

    item = machine.history_dicts()[0]

    assert item["from"] == "idle"
    assert item["to"] == "playing-question"
    assert item["reason"] == rules.REASON_START
    assert item["cycle"] == 0
