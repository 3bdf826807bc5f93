import pytest

from redgray.layout.phases import Action, Phase, PhaseMachine, PhaseSchedule


def _walk(machine):
    trace = []
    while not machine.done:
        trace.append((machine.phase, machine.step, machine.actions(), machine.temperature_step()))
        machine.advance()
    return trace


def test_default_schedule_runs_1830_steps():
    machine = PhaseMachine()
    trace = _walk(machine)
    assert len(trace) == 1830
    assert machine.total_step == 1830
    assert machine.step == 1000


def test_default_schedule_actions_fire_once_each():
    trace = _walk(PhaseMachine())
    fired = {}
    for phase, step, actions, _ in trace:
        for action in actions:
            fired.setdefault(action, []).append((phase, step))
    assert fired == {
        Action.FREEZE_REGION: [(Phase.WARMUP, 500)],
        Action.SET_BUDGET: [(Phase.REPLICATION_ACTIVE, 501)],
        Action.REACTIVATE_AND_FREEZE: [(Phase.REPLICATION_ACTIVE, 950)],
        Action.SPLIT_GRAY: [(Phase.FREEZE_REPLAY, 900)],
    }


def test_replays_rewind_to_step_511():
    trace = _walk(PhaseMachine())
    phases = [phase for phase, *_ in trace]
    first_replay = phases.index(Phase.FREEZE_REPLAY)
    first_expansion = phases.index(Phase.EXPANSION_REPLAY)
    assert trace[first_replay - 1][1] == 950
    assert trace[first_replay][1] == 511
    assert trace[first_expansion - 1][1] == 900
    assert trace[first_expansion][1] == 511
    assert trace[-1][:2] == (Phase.EXPANSION_REPLAY, 999)
    assert phases.count(Phase.WARMUP) == 501
    assert phases.count(Phase.REPLICATION_ACTIVE) == 450
    assert phases.count(Phase.FREEZE_REPLAY) == 390
    assert phases.count(Phase.EXPANSION_REPLAY) == 489


def test_temperature_step_follows_the_rewind():
    trace = _walk(PhaseMachine())
    by_position = {(phase, step): temp for phase, step, _, temp in trace}
    assert by_position[(Phase.WARMUP, 0)] == 0
    assert by_position[(Phase.REPLICATION_ACTIVE, 949)] == 949
    assert by_position[(Phase.REPLICATION_ACTIVE, 950)] == 510
    assert by_position[(Phase.FREEZE_REPLAY, 900)] == 510
    assert by_position[(Phase.EXPANSION_REPLAY, 999)] == 999


def test_short_schedule():
    schedule = PhaseSchedule(
        total_steps=40,
        freeze_step=10,
        budget_step=11,
        freeze_replay_step=30,
        expansion_replay_step=25,
        rewind_to=15,
    )
    trace = _walk(PhaseMachine(schedule))
    assert len(trace) == 11 + 20 + 10 + 24


@pytest.mark.parametrize(
    "changes",
    [
        {"total_steps": 0},
        {"budget_step": 400},
        {"rewind_to": 920},
        {"freeze_replay_step": 1200},
    ],
)
def test_invalid_schedules_are_rejected(changes):
    with pytest.raises(ValueError):
        PhaseSchedule(**changes)
