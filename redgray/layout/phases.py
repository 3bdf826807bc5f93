from __future__ import annotations

import enum
from dataclasses import dataclass

from redgray.article_refs import PHASES
from redgray.logging import LOGGER


class Phase(enum.Enum):
    WARMUP = "warmup"
    REPLICATION_ACTIVE = "replication_active"
    FREEZE_REPLAY = "freeze_replay"
    EXPANSION_REPLAY = "expansion_replay"
    DONE = "done"


class Action(enum.Enum):
    FREEZE_REGION = "freeze_region"
    SET_BUDGET = "set_budget"
    REACTIVATE_AND_FREEZE = "reactivate_and_freeze"
    SPLIT_GRAY = "split_gray"


@dataclass(frozen=True)
class PhaseSchedule:
    total_steps: int = 1000
    freeze_step: int = 500
    budget_step: int = 501
    freeze_replay_step: int = 950
    expansion_replay_step: int = 900
    rewind_to: int = 510

    def __post_init__(self) -> None:
        if self.total_steps <= 0:
            raise ValueError("total_steps must be positive")
        if not 0 <= self.freeze_step < self.budget_step:
            raise ValueError("budget_step must come after freeze_step")
        if not self.budget_step < self.rewind_to < self.expansion_replay_step:
            raise ValueError("rewind_to must lie between budget_step and expansion_replay_step")
        if not self.expansion_replay_step < self.freeze_replay_step < self.total_steps:
            raise ValueError("freeze_replay_step must lie between expansion_replay_step and total_steps")


class PhaseMachine:
    """Nominal step counter with the two scripted replay windows.

    ``actions()`` lists what the engine must do after the displacement of
    the current step; ``advance()`` moves to the next step, rewinding to
    ``rewind_to`` when a replay window starts. ``total_step`` counts every
    executed step and only labels snapshots.
    """

    def __init__(self, schedule: PhaseSchedule | None = None) -> None:
        self.schedule = schedule or PhaseSchedule()
        self.step = 0
        self.total_step = 0
        self.phase = Phase.WARMUP

    @property
    def done(self) -> bool:
        return self.phase is Phase.DONE

    @property
    def replication_started(self) -> bool:
        return self.phase not in (Phase.WARMUP, Phase.DONE)

    def actions(self) -> list[Action]:
        schedule = self.schedule
        step = self.step
        result: list[Action] = []
        if self.phase is Phase.WARMUP and step == schedule.freeze_step:
            result.append(Action.FREEZE_REGION)
        elif self.phase is Phase.REPLICATION_ACTIVE:
            if step == schedule.budget_step:
                result.append(Action.SET_BUDGET)
            if step == schedule.freeze_replay_step:
                result.append(Action.REACTIVATE_AND_FREEZE)
        elif self.phase is Phase.FREEZE_REPLAY and step == schedule.expansion_replay_step:
            result.append(Action.SPLIT_GRAY)
        return result

    def temperature_step(self) -> int:
        """Step index the temperature is derived from, after any rewind of this step."""
        if self.phase is Phase.REPLICATION_ACTIVE and self.step == self.schedule.freeze_replay_step:
            return self.schedule.rewind_to
        if self.phase is Phase.FREEZE_REPLAY and self.step == self.schedule.expansion_replay_step:
            return self.schedule.rewind_to
        return self.step

    def advance(self) -> Phase:
        schedule = self.schedule
        previous = self.phase
        next_step = self.temperature_step() + 1
        rewound = next_step != self.step + 1
        self.step = next_step
        self.total_step += 1
        if previous is Phase.WARMUP and self.step == schedule.freeze_step + 1:
            self.phase = Phase.REPLICATION_ACTIVE
        elif rewound and previous is Phase.REPLICATION_ACTIVE:
            self.phase = Phase.FREEZE_REPLAY
        elif rewound and previous is Phase.FREEZE_REPLAY:
            self.phase = Phase.EXPANSION_REPLAY
        if self.step >= schedule.total_steps:
            self.phase = Phase.DONE
        if self.phase is not previous:
            LOGGER.event(
                "phases.transition",
                section=PHASES,
                data={
                    "from": previous.value,
                    "to": self.phase.value,
                    "step": self.step,
                    "total_step": self.total_step,
                },
            )
        return self.phase
