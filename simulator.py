#!/usr/bin/env python3
"""Match driver: runs every agent on the same frozen snapshot each turn."""
from __future__ import annotations

import copy
import logging
import math
import numbers
import time
from typing import Dict, Iterable, List, Optional, Sequence

from bots import Agent
from config import SIM_CONFIG
from geometry import Point
from world import FIELD_HEIGHT, FIELD_WIDTH, GameState, TurnSummary, advance_world, create_match, in_field, winner_id

logger = logging.getLogger(__name__)

# Soft per-turn budget for one agent's play(); overruns are logged, not punished
TURN_TIME_BUDGET_MS: float = float(SIM_CONFIG.get("turn_time_budget_ms", 100))
# Requested points further than this outside the field are rejected as malformed
MOVE_MARGIN: int = int(SIM_CONFIG.get("move_margin", max(FIELD_WIDTH, FIELD_HEIGHT)))


def _coordinate(value: object) -> Optional[int]:
    if isinstance(value, bool) or not isinstance(value, numbers.Real):
        return None
    if isinstance(value, numbers.Integral):
        return int(value)
    if not math.isfinite(value):
        return None
    return int(value)


def sanitize_moves(raw: Iterable[object], drone_count: int) -> Optional[List[Point]]:
    """
    Validate an agent's answer: exactly one point (Point or (x, y) pair) per
    drone, no further than MOVE_MARGIN outside the field. Returns None when
    anything is malformed.
    """
    try:
        moves = list(raw)
    except TypeError:
        return None
    if len(moves) != drone_count:
        return None
    points: List[Point] = []
    for move in moves:
        if isinstance(move, Point):
            x, y = _coordinate(move.x), _coordinate(move.y)
        elif isinstance(move, (tuple, list)) and len(move) == 2:
            x, y = _coordinate(move[0]), _coordinate(move[1])
        else:
            return None
        if x is None or y is None:
            return None
        point = Point(x, y)
        if not in_field(point, margin=MOVE_MARGIN):
            return None
        points.append(point)
    return points


class MatchRunner:
    """
    Owns the canonical GameState of one match. Each turn every agent plays
    against its own copy of the pre-turn state, so nobody sees the others'
    moves; malformed answers make that team hold position for the turn.
    """

    def __init__(
        self,
        agents: Sequence[Agent],
        drones_per_team: Optional[int] = None,
        num_zones: Optional[int] = None,
        seed: Optional[int] = None,
        state: Optional[GameState] = None,
    ):
        if not agents:
            raise ValueError("A match needs at least one agent.")
        self.agents = list(agents)
        for tid, agent in enumerate(self.agents):
            agent.team_id = tid
        self.state = state if state is not None else create_match(len(self.agents), drones_per_team, num_zones, seed)
        if len(self.state.teams) != len(self.agents):
            raise ValueError(f"{len(self.agents)} agents for {len(self.state.teams)} teams.")
        self.last_summary: Optional[TurnSummary] = None

    def initialize(self) -> None:
        for agent in self.agents:
            agent.initialize(copy.deepcopy(self.state))

    @property
    def finished(self) -> bool:
        return self.state.finished

    @property
    def scores(self) -> List[int]:
        return list(self.state.scores)

    @property
    def winner_id(self) -> int:
        return winner_id(self.state)

    def collect_moves(self) -> Dict[int, List[Point]]:
        moves: Dict[int, List[Point]] = {}
        drone_count = self.state.drones_per_team
        for agent in self.agents:
            view = copy.deepcopy(self.state)
            started = time.perf_counter()
            try:
                raw = agent.play(view)
                points = sanitize_moves(raw, drone_count)
            except Exception:
                logger.exception("team %d: agent failed on turn %d; holding position", agent.team_id, self.state.turn + 1)
                continue
            elapsed_ms = (time.perf_counter() - started) * 1000.0
            if elapsed_ms > TURN_TIME_BUDGET_MS:
                logger.warning(
                    "team %d: play() took %.1f ms (budget %.0f ms)", agent.team_id, elapsed_ms, TURN_TIME_BUDGET_MS
                )
            if points is None:
                logger.warning("team %d: malformed moves on turn %d; holding position", agent.team_id, self.state.turn + 1)
                continue
            moves[agent.team_id] = points
        return moves

    def step(self) -> TurnSummary:
        if self.finished:
            raise RuntimeError("Match already finished.")
        summary = advance_world(self.state, self.collect_moves())
        for tid, lost in summary.losses.items():
            if lost:
                logger.info("turn %d: team %d lost %d zone(s)", summary.turn, tid, lost)
        self.last_summary = summary
        return summary

    def run(self) -> int:
        """Play the remaining turns and return the winner's team id."""
        while not self.finished:
            self.step()
        return self.winner_id

    def dispose(self) -> None:
        for agent in self.agents:
            agent.dispose()
