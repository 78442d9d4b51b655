#!/usr/bin/env python3
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Protocol

from config import STRATEGY_CONFIG
from geometry import Point
from strategy import (
    ACTIVITY_OBSERVERS,
    ALLOCATORS,
    COMMANDERS,
    PARALLEL_WORKERS,
    TASK_ORGANIZERS,
    ZONE_EVALUATORS,
    Assignments,
    DroneKey,
    EnemyIntel,
    Level,
    PhaseRunner,
    Task,
)
from world import FIELD_HEIGHT, FIELD_WIDTH, GameState

logger = logging.getLogger(__name__)

# Strategy variants picked by name from JSON
ZONE_EVALUATOR: str = str(STRATEGY_CONFIG.get("zone_evaluator", "basic"))
ACTIVITY_OBSERVER: str = str(STRATEGY_CONFIG.get("activity_observer", "basic"))
TASK_ORGANIZER: str = str(STRATEGY_CONFIG.get("task_organizer", "one_per_zone"))
ALLOCATOR: str = str(STRATEGY_CONFIG.get("allocator", "priority"))  # "priority" | "focused" | "auto"
COMMANDER: str = str(STRATEGY_CONFIG.get("commander", "basic"))


class Agent(Protocol):
    team_id: int

    def initialize(self, state: GameState) -> None:
        ...

    def play(self, state: GameState) -> List[Point]:
        ...

    def dispose(self) -> None:
        ...


@dataclass
class AgentState:
    """Everything a task-based agent remembers during one match."""

    team_id: int
    zone_values: Dict[int, Level] = field(default_factory=dict)
    enemy_intel: Dict[DroneKey, EnemyIntel] = field(default_factory=dict)
    tasks: List[Task] = field(default_factory=list)
    assignments: Assignments = field(default_factory=dict)
    destinations: Dict[int, Point] = field(default_factory=dict)
    turns_played: int = 0


def _pick(registry: Dict[str, Callable], name: str, stage: str):
    try:
        return registry[name]()
    except KeyError:
        raise ValueError(f"Unknown {stage} '{name}', expected one of {sorted(registry)}") from None


class TaskBasedAgent:
    """
    Per turn: guess enemy intents, build one task per zone, staff the tasks
    with the nearest drones and send every drone to its task zone.
    """

    kind = "task_based"

    def __init__(
        self,
        team_id: int,
        zone_evaluator: str = ZONE_EVALUATOR,
        activity_observer: str = ACTIVITY_OBSERVER,
        task_organizer: str = TASK_ORGANIZER,
        allocator: str = ALLOCATOR,
        commander: str = COMMANDER,
        workers: int = PARALLEL_WORKERS,
    ):
        self.team_id = team_id
        self.zone_evaluator = _pick(ZONE_EVALUATORS, zone_evaluator, "zone evaluator")
        self.activity_observer = _pick(ACTIVITY_OBSERVERS, activity_observer, "activity observer")
        self.task_organizer = _pick(TASK_ORGANIZERS, task_organizer, "task organizer")
        self.allocator_name = allocator
        if allocator != "auto":
            self.allocator = _pick(ALLOCATORS, allocator, "allocator")
        self.commander = _pick(COMMANDERS, commander, "commander")
        self.workers = workers
        self.runner: Optional[PhaseRunner] = None
        self.state: Optional[AgentState] = None

    def initialize(self, state: GameState) -> None:
        if self.allocator_name == "auto":
            # more than two teams: stay close to the zones we hold
            self.allocator = _pick(ALLOCATORS, "focused" if len(state.teams) > 2 else "priority", "allocator")
        self.runner = PhaseRunner(self.workers)
        self.state = AgentState(
            team_id=self.team_id,
            zone_values=self.zone_evaluator.evaluate(state.zones, self.runner),
        )

    def play(self, state: GameState) -> List[Point]:
        if self.state is None or self.runner is None:
            raise RuntimeError("initialize() must be called before play()")
        memo = self.state
        team = self.team_id

        memo.enemy_intel = self.activity_observer.observe(state, team, self.runner)
        memo.tasks = self.task_organizer.define_tasks(state, team, memo.zone_values, memo.enemy_intel, self.runner)
        memo.assignments = self.allocator.allocate(state, team, memo.tasks)
        memo.destinations = self.commander.command(state, team, memo.assignments)
        memo.turns_played += 1

        return [memo.destinations[d.id] for d in state.drones_of_team(team)]

    def dispose(self) -> None:
        if self.runner is not None:
            self.runner.close()
            self.runner = None

    def debug_state(self) -> dict:
        """JSON-serializable view of the current plan, for the viewer."""
        if self.state is None:
            return {"team_id": self.team_id, "kind": self.kind}
        memo = self.state
        return {
            "team_id": self.team_id,
            "kind": self.kind,
            "turns_played": memo.turns_played,
            "zone_values": {zid: lvl.name for zid, lvl in memo.zone_values.items()},
            "tasks": [
                {
                    "zone_id": t.zone_id,
                    "type": t.type.value,
                    "required": t.required_drones,
                    "turn": t.turn,
                    "payoff": t.payoff,
                    "importance": t.importance.name,
                    "priority": t.priority,
                }
                for t in memo.tasks
            ],
            "assignments": {
                did: (task.zone_id if task is not None else None) for did, task in memo.assignments.items()
            },
        }


class CornerAgent:
    """Baseline opponent: every drone heads for the bottom-right corner."""

    kind = "corner"

    def __init__(self, team_id: int):
        self.team_id = team_id

    def initialize(self, state: GameState) -> None:
        pass

    def play(self, state: GameState) -> List[Point]:
        corner = Point(FIELD_WIDTH - 1, FIELD_HEIGHT - 1)
        return [corner for _ in state.drones_of_team(self.team_id)]

    def dispose(self) -> None:
        pass

    def debug_state(self) -> dict:
        return {"team_id": self.team_id, "kind": self.kind}


AGENT_TYPES: Dict[str, Callable[[int], Agent]] = {
    TaskBasedAgent.kind: TaskBasedAgent,
    CornerAgent.kind: CornerAgent,
}


def build_agent(kind: str, team_id: int) -> Agent:
    if kind not in AGENT_TYPES:
        raise ValueError(f"Unknown agent kind '{kind}', expected one of {sorted(AGENT_TYPES)}")
    return AGENT_TYPES[kind](team_id)
