#!/usr/bin/env python3
"""
Strategic pipeline stages used by the task-based bot.

Each stage is a small family of interchangeable implementations selected by
name from the ``strategy`` section of the config:

- zone evaluators:  static desirability tier per zone (run once per match)
- activity observers: guess what every enemy drone is up to
- task organizers:  build Attack/Defend tasks with required drones & priority
- allocators:       hand own drones to tasks
- commanders:       turn task assignments into destination points

Stages are pure functions of their arguments; the per-match memory lives in
bots.AgentState.
"""
from __future__ import annotations

import logging
import math
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from enum import Enum, IntEnum
from typing import Callable, Dict, Iterable, Iterator, List, Optional, Protocol, Sequence, Tuple, TypeVar

from config import STRATEGY_CONFIG
from geometry import Point, distance, distances_to_line, dot_product, intermediate_point, median_point
from world import MAX_MOVE_DISTANCE, ZONE_BORDER_MARGIN, Drone, GameState, Zone, next_owner

logger = logging.getLogger(__name__)

# Wave simulation lookahead (turns) and the ETA under which any enemy counts as involved
TASK_HORIZON_TURNS: int = int(STRATEGY_CONFIG.get("task_horizon_turns", 15))
SURROUNDING_TURNS: int = int(STRATEGY_CONFIG.get("surrounding_turns", 3))
# Presence-timeline organizer windows
MULTI_TASK_WINDOW_TURNS: int = int(STRATEGY_CONFIG.get("multi_task_window_turns", 25))
MULTI_TASK_NEAR_TURNS: int = int(STRATEGY_CONFIG.get("multi_task_near_turns", 3))
MULTI_TASK_MODERATE_TURNS: int = int(STRATEGY_CONFIG.get("multi_task_moderate_turns", 12))
# Enemy displacement below this is treated as "not moving"
MOTION_THRESHOLD: float = float(STRATEGY_CONFIG.get("motion_threshold", 2))
# Zones closer than factor * radius to an enemy's movement line are candidate targets
TARGET_CORRIDOR_FACTOR: float = float(STRATEGY_CONFIG.get("target_corridor_factor", 1.5))
PARALLEL_WORKERS: int = int(STRATEGY_CONFIG.get("parallel_workers", 0))

_WEIGHTS_CFG = STRATEGY_CONFIG.get("priority_weights", {})
_FOCUSED_WEIGHTS_CFG = STRATEGY_CONFIG.get("focused_priority_weights", {})

T = TypeVar("T")
R = TypeVar("R")


class TaskType(Enum):
    ATTACK = "attack"
    DEFEND = "defend"
    UNKNOWN = "unknown"


class Level(IntEnum):
    LOW = 0
    MEDIUM = 1
    HIGH = 2


@dataclass(frozen=True)
class PriorityWeights:
    payoff: float = 4.0
    importance: float = 2.0
    strategic_value: float = 0.5
    required_drones: float = 1.0


DEFAULT_WEIGHTS = PriorityWeights(
    payoff=float(_WEIGHTS_CFG.get("payoff", 4.0)),
    importance=float(_WEIGHTS_CFG.get("importance", 2.0)),
    strategic_value=float(_WEIGHTS_CFG.get("strategic_value", 0.5)),
    required_drones=float(_WEIGHTS_CFG.get("required_drones", 1.0)),
)
# FocusedAllocator ranking; required_drones scales sqrt(required / fleet size)
FOCUSED_WEIGHTS = PriorityWeights(
    payoff=float(_FOCUSED_WEIGHTS_CFG.get("payoff", 2.0)),
    importance=float(_FOCUSED_WEIGHTS_CFG.get("importance", 4.0)),
    strategic_value=float(_FOCUSED_WEIGHTS_CFG.get("strategic_value", 0.5)),
    required_drones=float(_FOCUSED_WEIGHTS_CFG.get("required_drones", 50.0)),
)


@dataclass
class Task:
    zone_id: int
    type: TaskType
    required_drones: int = 0
    turn: int = 0  # success turn (attack) / failure turn (defend)
    payoff: float = 0.0  # 0..1, share of the horizon the zone is expected to be ours
    importance: Level = Level.MEDIUM
    priority: float = 0.0
    strategic_value: Level = Level.LOW  # of the task zone


@dataclass(frozen=True)
class EnemyIntel:
    task_type: TaskType = TaskType.UNKNOWN
    zone_id: Optional[int] = None


DroneKey = Tuple[int, int]  # (team id, drone id)


class PhaseRunner:
    """
    Maps a function over independent work units of one pipeline phase.
    With workers > 0 the units run on a thread pool; results always come back
    in input order, one slot per unit.
    """

    def __init__(self, workers: int = 0):
        self.workers = workers
        self._pool: Optional[ThreadPoolExecutor] = None
        if workers > 0:
            self._pool = ThreadPoolExecutor(max_workers=workers, thread_name_prefix="drones-phase")

    def map(self, fn: Callable[[T], R], units: Iterable[T]) -> List[R]:
        items = list(units)
        if self._pool is None or len(items) < 2:
            return [fn(u) for u in items]
        return list(self._pool.map(fn, items))

    def close(self) -> None:
        if self._pool is not None:
            self._pool.shutdown(wait=True)
            self._pool = None


SEQUENTIAL = PhaseRunner(0)


def turns_to_reach(position: Point, zone: Zone, max_move: int = MAX_MOVE_DISTANCE) -> int:
    """ETA in turns until ``position`` is inside ``zone``."""
    return int(math.ceil(max(0.0, distance(position, zone.center) - zone.radius) / max_move))


def _zones_by_id(state: GameState) -> Dict[int, Zone]:
    return {z.id: z for z in state.zones}


# ---------- Zone evaluation ----------


class ZoneEvaluator(Protocol):
    def evaluate(self, zones: Sequence[Zone], runner: PhaseRunner = SEQUENTIAL) -> Dict[int, Level]:
        ...


class FlatZoneEvaluator:
    """Every zone is worth the same."""

    def evaluate(self, zones: Sequence[Zone], runner: PhaseRunner = SEQUENTIAL) -> Dict[int, Level]:
        return {z.id: Level.LOW for z in zones}


class BasicZoneEvaluator:
    """
    Rates zones by how close they sit to the crowded edge (left or right) of
    the zone cluster and by how close they are to the other zones.
    """

    BASELINE_RATIO = 0.5  # used when a normalisation span is zero

    @staticmethod
    def edge_points(distance_ratio: float, num_zones: int) -> float:
        return (1 - distance_ratio) * 100 * num_zones

    @staticmethod
    def neighbour_points(distance_ratio: float) -> float:
        return (1 - distance_ratio) * 100

    @staticmethod
    def level_from_score(score: float, num_zones: int) -> Level:
        if score >= 100 * num_zones * 1.2:
            return Level.HIGH
        if score < 100 * num_zones * 0.6:
            return Level.LOW
        return Level.MEDIUM

    def evaluate(self, zones: Sequence[Zone], runner: PhaseRunner = SEQUENTIAL) -> Dict[int, Level]:
        if not zones:
            return {}
        n = len(zones)
        xs = [z.center.x for z in zones]
        x_min, x_max = min(xs), max(xs)
        x_span = float(x_max - x_min)
        prefer_left = sum(xs) / n < x_min + x_span / 2

        pair_dist: Dict[Tuple[int, int], float] = {}
        for i in range(n):
            for j in range(i + 1, n):
                pair_dist[(i, j)] = pair_dist[(j, i)] = distance(zones[i].center, zones[j].center)
        dist_min = min(pair_dist.values(), default=0.0)
        dist_max = max(pair_dist.values(), default=0.0)
        dist_span = dist_max - dist_min

        def score(i: int) -> float:
            x = zones[i].center.x
            if x_span == 0:
                edge_ratio = self.BASELINE_RATIO
            elif prefer_left:
                edge_ratio = (x - x_min) / x_span
            else:
                edge_ratio = (x_max - x) / x_span
            total = self.edge_points(edge_ratio, n)
            for j in range(n):
                if j == i:
                    continue
                if dist_span == 0:
                    ratio = self.BASELINE_RATIO
                else:
                    ratio = (pair_dist[(i, j)] - dist_min) / dist_span
                total += self.neighbour_points(ratio)
            return total

        scores = runner.map(score, range(n))
        values = {zones[i].id: self.level_from_score(scores[i], n) for i in range(n)}
        logger.debug("zone values: %s (prefer_left=%s)", {k: v.name for k, v in values.items()}, prefer_left)
        return values


# ---------- Enemy activity ----------


class ActivityObserver(Protocol):
    def observe(
        self, state: GameState, team_id: int, runner: PhaseRunner = SEQUENTIAL
    ) -> Dict[DroneKey, EnemyIntel]:
        ...


class BasicActivityObserver:
    """Guesses each enemy drone's target zone from its last displacement."""

    def __init__(
        self,
        motion_threshold: float = MOTION_THRESHOLD,
        corridor_factor: float = TARGET_CORRIDOR_FACTOR,
    ):
        self.motion_threshold = motion_threshold
        self.corridor_factor = corridor_factor

    def target_zone(self, drone: Drone, zones: Sequence[Zone]) -> Optional[Zone]:
        position = drone.position
        previous = drone.previous_position

        if distance(position, previous) < self.motion_threshold:
            # not moving: is it parked inside a zone?
            return next((z for z in zones if z.contains(position)), None)

        line_dist = distances_to_line([z.center for z in zones], previous, position)
        candidates = [
            z
            for z, d in zip(zones, line_dist)
            if d < self.corridor_factor * z.radius and dot_product(previous, position, previous, z.center) > 0
        ]
        if not candidates:
            logger.debug(
                "no target for drone %d/%d moving %s -> %s", drone.team_id, drone.id, previous, position
            )
            return None
        return min(candidates, key=lambda z: (distance(z.center, position), z.id))

    def infer(self, drone: Drone, zones: Sequence[Zone]) -> EnemyIntel:
        zone = self.target_zone(drone, zones)
        if zone is None:
            return EnemyIntel()
        kind = TaskType.DEFEND if zone.owner == drone.team_id else TaskType.ATTACK
        return EnemyIntel(task_type=kind, zone_id=zone.id)

    def observe(
        self, state: GameState, team_id: int, runner: PhaseRunner = SEQUENTIAL
    ) -> Dict[DroneKey, EnemyIntel]:
        enemies = state.drones_of_other_teams(team_id)
        results = runner.map(lambda d: self.infer(d, state.zones), enemies)
        intel = {(d.team_id, d.id): info for d, info in zip(enemies, results)}
        for (tid, did), info in sorted(intel.items()):
            logger.debug("%d/%d: %s %s", tid, did, info.task_type.value, info.zone_id)
        return intel


# ---------- Combat-outcome simulation ----------


def _waves(ally_etas: Iterable[int], enemy_etas: Iterable[int], horizon: int) -> Iterator[Tuple[int, int, int]]:
    """Yield (eta, allies, enemies) arrival waves in ETA order, up to the horizon."""
    arrivals: Dict[int, List[int]] = {}
    for eta in ally_etas:
        arrivals.setdefault(eta, [0, 0])[0] += 1
    for eta in enemy_etas:
        arrivals.setdefault(eta, [0, 0])[1] += 1
    for eta in sorted(arrivals):
        if eta > horizon:
            break
        allies, enemies = arrivals[eta]
        yield eta, allies, enemies


def simulate_attack(
    ally_etas: Sequence[int], enemy_etas: Sequence[int], horizon: int = TASK_HORIZON_TURNS
) -> Tuple[int, int]:
    """
    Drones needed to take a zone held by ``enemy_etas`` and the turn it falls.
    Returns (0, horizon) when the attack cannot succeed within the horizon.
    """
    allies = enemies = 0
    for eta, wave_allies, wave_enemies in _waves(ally_etas, enemy_etas, horizon):
        if allies + wave_allies > enemies + wave_enemies:
            return enemies + wave_enemies + 1, eta
        allies += wave_allies
        enemies += wave_enemies
    return 0, horizon


def simulate_defense(
    ally_etas: Sequence[int], enemy_etas: Sequence[int], horizon: int = TASK_HORIZON_TURNS
) -> Tuple[int, int]:
    """
    Drones needed to keep a zone against ``enemy_etas`` and the turn it would
    fall. Returns (0, horizon) when the zone holds for the whole horizon.
    """
    allies = enemies = 0
    for eta, wave_allies, wave_enemies in _waves(ally_etas, enemy_etas, horizon):
        if allies + wave_allies < enemies + wave_enemies:
            return allies, eta
        allies += wave_allies
        enemies += wave_enemies
    return 0, horizon


# ---------- Task organisation ----------


@dataclass(frozen=True)
class _Arrival:
    team_id: int
    drone_id: int
    eta: int
    intel: EnemyIntel


def task_importance(state: GameState, team_id: int) -> Dict[TaskType, Level]:
    """Attack vs defense importance from our share of the zones."""
    owned = sum(1 for z in state.zones if z.owner == team_id)
    owned_ratio = owned / len(state.zones) if state.zones else 0.0
    fair_share = 1.0 / len(state.teams)

    if owned_ratio > 0.8 * fair_share:
        return {TaskType.ATTACK: Level.LOW, TaskType.DEFEND: Level.HIGH}
    if owned_ratio < 0.4 * fair_share:
        return {TaskType.ATTACK: Level.HIGH, TaskType.DEFEND: Level.LOW}
    return {TaskType.ATTACK: Level.MEDIUM, TaskType.DEFEND: Level.MEDIUM}


def task_priority(task: Task, strategic_value: Level, weights: PriorityWeights = DEFAULT_WEIGHTS) -> float:
    return (
        weights.payoff * task.payoff
        + weights.importance * int(task.importance)
        + weights.strategic_value * int(strategic_value)
        - weights.required_drones * task.required_drones
    )


class TaskOrganizer(Protocol):
    def define_tasks(
        self,
        state: GameState,
        team_id: int,
        zone_values: Dict[int, Level],
        intel: Dict[DroneKey, EnemyIntel],
        runner: PhaseRunner = SEQUENTIAL,
    ) -> List[Task]:
        ...


class OneTaskPerZoneOrganizer:
    """
    One Attack or Defend task per zone, sized with a wave simulation of the
    drones expected to reach the zone.
    """

    def __init__(
        self,
        weights: PriorityWeights = DEFAULT_WEIGHTS,
        horizon: int = TASK_HORIZON_TURNS,
        surrounding: int = SURROUNDING_TURNS,
    ):
        self.weights = weights
        self.horizon = horizon
        self.surrounding = surrounding

    def _attack(self, zone: Zone, allies: List[int], enemies: List[_Arrival]) -> Tuple[int, int]:
        owner = zone.owner

        def involved(a: _Arrival, kind: TaskType) -> bool:
            return a.eta <= self.surrounding or (a.intel.task_type == kind and a.intel.zone_id == zone.id)

        defenders = [a.eta for a in enemies if zone.has_owner and a.team_id == owner and involved(a, TaskType.DEFEND)]
        required, turn = simulate_attack(allies, defenders, self.horizon)
        logger.debug("attack zone %d vs defenders %s: req=%d turn=%d", zone.id, sorted(defenders), required, turn)

        # other squads going for the same zone: make sure we could take it back
        squads: Dict[int, List[int]] = {}
        for a in enemies:
            if a.team_id != owner and involved(a, TaskType.ATTACK):
                squads.setdefault(a.team_id, []).append(a.eta)
        for tid in sorted(squads):
            required2, turn2 = simulate_attack(allies, squads[tid], self.horizon)
            logger.debug("attack zone %d vs team %d: req=%d turn=%d", zone.id, tid, required2, turn2)
            if turn2 == turn:
                required = max(required, required2)
            elif turn2 > turn:
                required, turn = required2, turn2
        return required, turn

    def _defend(self, zone: Zone, allies: List[int], enemies: List[_Arrival]) -> Tuple[int, int]:
        squads: Dict[int, List[int]] = {}
        for a in enemies:
            if a.eta <= self.surrounding or (a.intel.task_type == TaskType.ATTACK and a.intel.zone_id == zone.id):
                squads.setdefault(a.team_id, []).append(a.eta)

        required: Optional[int] = None
        turn: Optional[int] = None
        for tid in sorted(squads):
            required2, turn2 = simulate_defense(allies, squads[tid], self.horizon)
            logger.debug("defend zone %d vs team %d: req=%d turn=%d", zone.id, tid, required2, turn2)
            if turn is None or turn2 < turn:
                required, turn = required2, turn2
            elif turn2 == turn and required2 > required:
                required = required2
        if turn is None:
            return 0, self.horizon
        return required or 0, turn

    def build_task(
        self,
        zone: Zone,
        state: GameState,
        team_id: int,
        strategic_value: Level,
        importance: Dict[TaskType, Level],
        intel: Dict[DroneKey, EnemyIntel],
    ) -> Task:
        kind = TaskType.DEFEND if zone.owner == team_id else TaskType.ATTACK
        allies = [turns_to_reach(d.position, zone) for d in state.drones_of_team(team_id)]
        enemies = [
            _Arrival(d.team_id, d.id, turns_to_reach(d.position, zone), intel.get((d.team_id, d.id), EnemyIntel()))
            for d in state.drones_of_other_teams(team_id)
        ]

        if kind == TaskType.ATTACK:
            required, turn = self._attack(zone, allies, enemies)
            payoff = (self.horizon - turn) / float(self.horizon)
        else:
            required, turn = self._defend(zone, allies, enemies)
            payoff = turn / float(self.horizon)

        task = Task(
            zone_id=zone.id,
            type=kind,
            required_drones=required,
            turn=turn,
            payoff=payoff,
            importance=importance[kind],
            strategic_value=strategic_value,
        )
        task.priority = task_priority(task, strategic_value, self.weights)
        return task

    def define_tasks(
        self,
        state: GameState,
        team_id: int,
        zone_values: Dict[int, Level],
        intel: Dict[DroneKey, EnemyIntel],
        runner: PhaseRunner = SEQUENTIAL,
    ) -> List[Task]:
        importance = task_importance(state, team_id)
        tasks = runner.map(
            lambda z: self.build_task(z, state, team_id, zone_values.get(z.id, Level.LOW), importance, intel),
            state.zones,
        )
        for t in tasks:
            logger.debug(
                "%d: %s Priority=%.2f Pts=%.2f Req=%d Imp=%s",
                t.zone_id, t.type.value, t.priority, t.payoff, t.required_drones, t.importance.name,
            )
        return tasks


class MultiTaskPerZoneOrganizer:
    """
    Replays a presence timeline for each zone and emits one task per own
    drone count that actually adds held turns, so the allocator can choose
    how much to invest in every zone.
    """

    def __init__(
        self,
        weights: PriorityWeights = DEFAULT_WEIGHTS,
        window: int = MULTI_TASK_WINDOW_TURNS,
        near: int = MULTI_TASK_NEAR_TURNS,
        moderate: int = MULTI_TASK_MODERATE_TURNS,
    ):
        self.weights = weights
        self.window = window
        self.near = near
        self.moderate = moderate

    def held_turns(self, zone: Zone, team_id: int, presences: List[Dict[int, int]]) -> int:
        owner = zone.owner
        held = 0
        for counts in presences:
            owner = next_owner(owner, counts)
            if owner == team_id:
                held += 1
        return held

    def build_tasks(
        self,
        zone: Zone,
        state: GameState,
        team_id: int,
        strategic_value: Level,
        importance: Dict[TaskType, Level],
        intel: Dict[DroneKey, EnemyIntel],
    ) -> List[Task]:
        kind = TaskType.DEFEND if zone.owner == team_id else TaskType.ATTACK

        mine = sorted(
            ((turns_to_reach(d.position, zone), d.id) for d in state.drones_of_team(team_id)),
        )
        mine = [(eta, did) for eta, did in mine if eta <= self.window]

        presences: List[Dict[int, int]] = [{} for _ in range(self.window)]
        for d in state.drones_of_other_teams(team_id):
            eta = turns_to_reach(d.position, zone)
            if eta > self.window:
                continue
            info = intel.get((d.team_id, d.id), EnemyIntel())
            heading_here = info.zone_id == zone.id or info.task_type == TaskType.UNKNOWN
            if eta <= self.near or (heading_here and eta <= self.moderate):
                for t in range(eta, self.window):
                    presences[t][d.team_id] = presences[t].get(d.team_id, 0) + 1

        held = [self.held_turns(zone, team_id, presences)]
        for eta, _ in mine:
            for t in range(eta, self.window):
                presences[t][team_id] = presences[t].get(team_id, 0) + 1
            held.append(self.held_turns(zone, team_id, presences))

        tasks: List[Task] = []
        for n, score in enumerate(held):
            added = score if n == 0 else max(0, score - held[n - 1])
            if added <= 0:
                continue
            task = Task(
                zone_id=zone.id,
                type=kind,
                required_drones=n,
                turn=self.window - score,
                payoff=score / float(self.window),
                importance=importance[kind],
                strategic_value=strategic_value,
            )
            task.priority = task_priority(task, strategic_value, self.weights)
            tasks.append(task)
        logger.debug("zone %d %s held turns per drone count: %s", zone.id, kind.value, held)
        return tasks

    def define_tasks(
        self,
        state: GameState,
        team_id: int,
        zone_values: Dict[int, Level],
        intel: Dict[DroneKey, EnemyIntel],
        runner: PhaseRunner = SEQUENTIAL,
    ) -> List[Task]:
        importance = task_importance(state, team_id)
        per_zone = runner.map(
            lambda z: self.build_tasks(z, state, team_id, zone_values.get(z.id, Level.LOW), importance, intel),
            state.zones,
        )
        return [t for tasks in per_zone for t in tasks]


# ---------- Allocation ----------


Assignments = Dict[int, Optional[Task]]  # own drone id -> task


class Allocator(Protocol):
    def allocate(self, state: GameState, team_id: int, tasks: Sequence[Task]) -> Assignments:
        ...


def _take_nearest(available: List[Drone], center: Point) -> Drone:
    # equidistant drones: lowest id wins
    best = min(available, key=lambda d: (distance(d.position, center), d.id))
    available.remove(best)
    return best


def _by_priority(tasks: Sequence[Task]) -> List[Task]:
    return sorted(tasks, key=lambda t: -t.priority)


class PriorityAllocator:
    """Greedy allocation by task priority, nearest drones first."""

    def allocate(self, state: GameState, team_id: int, tasks: Sequence[Task]) -> Assignments:
        zones = _zones_by_id(state)
        available = list(state.drones_of_team(team_id))
        assignments: Assignments = {d.id: None for d in available}
        ordered = _by_priority(tasks)

        for i, task in enumerate(ordered):
            if not available:
                break
            if len(available) < task.required_drones and i < len(ordered) - 1:
                # not enough drones; skip if the next task is within reach
                if len(available) >= ordered[i + 1].required_drones:
                    continue
            center = zones[task.zone_id].center
            for _ in range(task.required_drones):
                if not available:
                    break
                assignments[_take_nearest(available, center).id] = task

        # leftover drones: one per task, in priority order, until none remain
        while available and ordered:
            for task in ordered:
                if not available:
                    break
                assignments[_take_nearest(available, zones[task.zone_id].center).id] = task

        return assignments


class FocusedAllocator:
    """
    Concentrates on the zones nearest to the ones we already hold and only
    takes on tasks it can fully staff. Unused drones stay unassigned.

    Tasks are re-ranked here: importance comes from owned zones against the
    number of zones worth targeting, and the drone cost grows with the share
    of the fleet a task would tie up.
    """

    def __init__(self, weights: PriorityWeights = FOCUSED_WEIGHTS):
        self.weights = weights

    @staticmethod
    def importance(owned: int, zones_to_target: int) -> Dict[TaskType, Level]:
        if owned > zones_to_target:
            return {TaskType.ATTACK: Level.LOW, TaskType.DEFEND: Level.HIGH}
        if owned == zones_to_target:
            return {TaskType.ATTACK: Level.MEDIUM, TaskType.DEFEND: Level.HIGH}
        return {TaskType.ATTACK: Level.HIGH, TaskType.DEFEND: Level.MEDIUM}

    def priority(self, task: Task, importance: Level, fleet_size: int) -> float:
        w = self.weights
        return (
            w.payoff * task.payoff
            + w.importance * int(importance)
            + w.strategic_value * int(task.strategic_value)
            - w.required_drones * math.sqrt(task.required_drones / float(fleet_size))
        )

    def allocate(self, state: GameState, team_id: int, tasks: Sequence[Task]) -> Assignments:
        zones = _zones_by_id(state)
        available = list(state.drones_of_team(team_id))
        assignments: Assignments = {d.id: None for d in available}
        if not state.zones:
            return assignments

        zones_to_target = 1 + int(math.ceil(len(state.zones) / float(len(state.teams))))
        my_zones = [z for z in state.zones if z.owner == team_id]
        importance = self.importance(len(my_zones), zones_to_target)
        fleet_size = len(available)

        if my_zones:
            median = median_point(z.center for z in my_zones)
            nearest = sorted(state.zones, key=lambda z: (distance(median, z.center), z.id))
            target_ids = {z.id for z in nearest[:zones_to_target]}
        else:
            target_ids = set(zones)
        logger.debug("zones_to_target=%d target_ids=%s", zones_to_target, sorted(target_ids))

        candidates = [t for t in tasks if t.zone_id in target_ids]
        ranks = [self.priority(t, importance[t.type], fleet_size) for t in candidates]
        ordered = [t for _, t in sorted(zip(ranks, candidates), key=lambda pair: -pair[0])]
        for rank, t in zip(ranks, candidates):
            logger.debug("%d: %s focused priority=%.2f req=%d", t.zone_id, t.type.value, rank, t.required_drones)

        targeted: set[int] = set()
        for task in ordered:
            if len(targeted) >= zones_to_target or not available:
                break
            if task.zone_id in targeted or len(available) < task.required_drones:
                continue
            center = zones[task.zone_id].center
            for _ in range(task.required_drones):
                assignments[_take_nearest(available, center).id] = task
            targeted.add(task.zone_id)
        return assignments


# ---------- Commanding ----------


class Commander(Protocol):
    def command(self, state: GameState, team_id: int, assignments: Assignments) -> Dict[int, Point]:
        ...


class BasicCommander:
    """Send drones just inside their task zone; defenders already inside hold."""

    def __init__(self, border_margin: int = ZONE_BORDER_MARGIN):
        self.border_margin = border_margin

    def command(self, state: GameState, team_id: int, assignments: Assignments) -> Dict[int, Point]:
        zones = _zones_by_id(state)
        destinations: Dict[int, Point] = {}
        for drone in state.drones_of_team(team_id):
            task = assignments.get(drone.id)
            if task is None:
                destinations[drone.id] = drone.position
                continue
            zone = zones[task.zone_id]
            if task.type == TaskType.DEFEND and zone.contains(drone.position):
                destinations[drone.id] = drone.position
            else:
                destinations[drone.id] = intermediate_point(drone.position, zone.center, zone.radius - self.border_margin)
        return destinations


ZONE_EVALUATORS: Dict[str, Callable[[], ZoneEvaluator]] = {
    "basic": BasicZoneEvaluator,
    "flat": FlatZoneEvaluator,
}
ACTIVITY_OBSERVERS: Dict[str, Callable[[], ActivityObserver]] = {
    "basic": BasicActivityObserver,
}
TASK_ORGANIZERS: Dict[str, Callable[[], TaskOrganizer]] = {
    "one_per_zone": OneTaskPerZoneOrganizer,
    "multi_per_zone": MultiTaskPerZoneOrganizer,
}
ALLOCATORS: Dict[str, Callable[[], Allocator]] = {
    "priority": PriorityAllocator,
    "focused": FocusedAllocator,
}
COMMANDERS: Dict[str, Callable[[], Commander]] = {
    "basic": BasicCommander,
}
