#!/usr/bin/env python3
from __future__ import annotations

import logging
import random
from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

from config import SIM_CONFIG
from geometry import Point, distance

logger = logging.getLogger(__name__)

# Field & rules config from JSON
FIELD_WIDTH: int = int(SIM_CONFIG.get("field_width", 4000))
FIELD_HEIGHT: int = int(SIM_CONFIG.get("field_height", 1800))
MAX_TURNS: int = int(SIM_CONFIG.get("max_turns", 200))  # match horizon
MAX_MOVE_DISTANCE: int = int(SIM_CONFIG.get("max_move_distance", 100))
ZONE_RADIUS: int = int(SIM_CONFIG.get("zone_radius", 100))
ZONE_BORDER_MARGIN: int = int(SIM_CONFIG.get("zone_border_margin", 5))
MIN_ZONE_SPACING: int = int(SIM_CONFIG.get("min_zone_spacing", 300))
MAX_EVENTS: int = int(SIM_CONFIG.get("max_events", 80))

# Match size ranges used when the config leaves counts open
MIN_ZONES_FLOOR = 4
MAX_ZONES = 8
MIN_DRONES = 3
MAX_DRONES = 11
ZONE_PLACEMENT_ATTEMPTS = 10_000


@dataclass
class Drone:
    team_id: int
    id: int
    position: Point
    previous_position: Point  # position before the last move

    def move_to(self, destination: Point) -> None:
        self.previous_position = self.position
        self.position = destination


@dataclass
class Zone:
    id: int
    center: Point
    radius: int = ZONE_RADIUS
    owner: Optional[int] = None  # team id or None

    @property
    def has_owner(self) -> bool:
        return self.owner is not None

    def contains(self, point: Point) -> bool:
        return distance(self.center, point) <= self.radius


@dataclass
class Team:
    id: int
    drones: List[Drone] = field(default_factory=list)


@dataclass
class MatchEvent:
    turn: int
    kind: str  # "capture" | "claim"
    zones: List[int]
    teams: List[int]
    text: str


@dataclass
class GameState:
    zones: List[Zone]
    teams: List[Team]
    remaining_turns: int = MAX_TURNS
    turn: int = 0
    scores: List[int] = field(default_factory=list)
    events: List[str] = field(default_factory=list)
    history: List[MatchEvent] = field(default_factory=list)

    def __post_init__(self) -> None:
        if not self.teams:
            raise ValueError("A match needs at least one team.")
        sizes = {len(team.drones) for team in self.teams}
        if len(sizes) != 1:
            raise ValueError(f"All teams must field the same number of drones, got {sorted(sizes)}.")
        if 0 in sizes:
            raise ValueError("Teams must field at least one drone.")
        for idx, team in enumerate(self.teams):
            if team.id != idx:
                raise ValueError(f"Team ids must be 0..n-1 in order, got {team.id} at index {idx}.")
        if not self.scores:
            self.scores = [0] * len(self.teams)

    @property
    def finished(self) -> bool:
        return self.remaining_turns <= 0

    @property
    def drones_per_team(self) -> int:
        return len(self.teams[0].drones)

    def all_drones(self) -> List[Drone]:
        return [d for team in self.teams for d in team.drones]

    def drones_of_team(self, team_id: int) -> List[Drone]:
        return self.teams[team_id].drones

    def drones_of_other_teams(self, team_id: int) -> List[Drone]:
        return [d for team in self.teams if team.id != team_id for d in team.drones]

    def drones_in_zone(self, zone: Zone) -> List[Drone]:
        return [d for d in self.all_drones() if zone.contains(d.position)]


@dataclass
class TurnSummary:
    """Outcome of a single turn."""

    turn: int
    captures: Dict[int, int]  # team id -> zones gained this turn
    losses: Dict[int, int]  # team id -> zones lost this turn
    owned: Dict[int, int]  # team id -> zones owned after resolution


def in_field(point: Point, width: int = FIELD_WIDTH, height: int = FIELD_HEIGHT, margin: int = 0) -> bool:
    return -margin <= point.x < width + margin and -margin <= point.y < height + margin


# ---------- Match generation ----------


def _validate_field(width: int, height: int, radius: int) -> None:
    if width <= 0 or height <= 0:
        raise ValueError(f"Invalid field size {width}x{height}.")
    if width - 2 * radius <= radius or height - 2 * radius <= radius:
        raise ValueError(f"Field {width}x{height} is too small for zones of radius {radius}.")


def create_match(
    num_teams: int,
    drones_per_team: Optional[int] = None,
    num_zones: Optional[int] = None,
    seed: Optional[int] = None,
) -> GameState:
    """
    Build a fresh match: zones spread over the field at least MIN_ZONE_SPACING
    apart, and drone #i of every team starting on the same random point.
    """
    if num_teams <= 0:
        raise ValueError("A match needs at least one team.")
    _validate_field(FIELD_WIDTH, FIELD_HEIGHT, ZONE_RADIUS)

    rng = random.Random(seed)
    if num_zones is None:
        num_zones = rng.randint(max(num_teams + 1, MIN_ZONES_FLOOR), MAX_ZONES)
    if drones_per_team is None:
        drones_per_team = rng.randint(MIN_DRONES, MAX_DRONES)
    if num_zones <= 0:
        raise ValueError("A match needs at least one zone.")
    if drones_per_team <= 0:
        raise ValueError("Teams must field at least one drone.")

    min_x, max_x = ZONE_RADIUS, FIELD_WIDTH - 2 * ZONE_RADIUS
    min_y, max_y = ZONE_RADIUS, FIELD_HEIGHT - 2 * ZONE_RADIUS

    zones: List[Zone] = []
    attempts = 0
    while len(zones) < num_zones:
        attempts += 1
        if attempts > ZONE_PLACEMENT_ATTEMPTS:
            raise ValueError(
                f"Could not place {num_zones} zones {MIN_ZONE_SPACING} apart on a "
                f"{FIELD_WIDTH}x{FIELD_HEIGHT} field."
            )
        center = Point(rng.randrange(min_x, max_x), rng.randrange(min_y, max_y))
        if any(distance(center, z.center) < MIN_ZONE_SPACING for z in zones):
            continue
        zones.append(Zone(id=len(zones), center=center))

    starts = [
        Point(rng.randrange(FIELD_WIDTH), rng.randrange(FIELD_HEIGHT))
        for _ in range(drones_per_team)
    ]
    teams = [
        Team(
            id=tid,
            drones=[Drone(team_id=tid, id=i, position=p, previous_position=p) for i, p in enumerate(starts)],
        )
        for tid in range(num_teams)
    ]
    logger.info(
        "New match: %d teams x %d drones, %d zones (seed=%s)", num_teams, drones_per_team, num_zones, seed
    )
    return GameState(zones=zones, teams=teams)


# ---------- Movement constraint ----------


def reachable_point(
    position: Point,
    destination: Point,
    max_move: int = MAX_MOVE_DISTANCE,
    width: int = FIELD_WIDTH,
    height: int = FIELD_HEIGHT,
) -> Point:
    """
    Clamp a requested destination to what a drone can reach in one turn:
    at most ``max_move`` away along the same direction, and inside the field.
    Fractional coordinates are truncated toward zero.
    """
    if position.x == destination.x:
        if position.y < destination.y:
            y = min(destination.y, position.y + max_move, height - 1)
        else:
            y = max(destination.y, position.y - max_move, 0)
        return Point(destination.x, y)

    if position.y == destination.y:
        if position.x < destination.x:
            x = min(destination.x, position.x + max_move, width - 1)
        else:
            x = max(destination.x, position.x - max_move, 0)
        return Point(x, destination.y)

    dx = float(destination.x - position.x)
    dy = float(destination.y - position.y)
    slope = dy / dx

    # max move distance
    if distance(position, destination) > max_move:
        dx = max_move / (1 + slope * slope) ** 0.5 * (1.0 if dx > 0 else -1.0)
        dy = slope * dx

    # field boundaries
    if position.x + int(dx) < 0:
        dx = float(0 - position.x)
        dy = slope * dx
    elif position.x + int(dx) >= width:
        dx = float((width - 1) - position.x)
        dy = slope * dx

    if position.y + int(dy) < 0:
        dy = float(0 - position.y)
        dx = dy / slope
    elif position.y + int(dy) >= height:
        dy = float((height - 1) - position.y)
        dx = dy / slope

    return Point(position.x + int(dx), position.y + int(dy))


# ---------- Simulation ----------


def zone_presence(state: GameState, zone: Zone) -> Dict[int, int]:
    """Drones inside ``zone`` per team (teams with nobody inside are omitted)."""
    counts: Dict[int, int] = {}
    for drone in state.drones_in_zone(zone):
        counts[drone.team_id] = counts.get(drone.team_id, 0) + 1
    return counts


def next_owner(owner: Optional[int], counts: Mapping[int, int]) -> Optional[int]:
    """
    Ownership rule for one zone given per-team occupant counts. An unowned
    zone goes to the largest squad (lowest team id on ties); an owned zone
    only flips when some squad strictly outnumbers the owner's own squad.
    """
    present = {tid: c for tid, c in counts.items() if c > 0}
    if not present:
        return owner
    max_count = max(present.values())
    leader = min(tid for tid, c in present.items() if c == max_count)
    if owner is None or present.get(owner, 0) < max_count:
        return leader
    return owner


def resolve_zone_ownership(state: GameState) -> List[Tuple[Zone, Optional[int]]]:
    """
    Apply the ownership rule to every zone. Returns (zone, previous owner)
    for every zone whose owner changed.
    """
    changes: List[Tuple[Zone, Optional[int]]] = []
    for zone in state.zones:
        new_owner = next_owner(zone.owner, zone_presence(state, zone))
        if new_owner != zone.owner:
            changes.append((zone, zone.owner))
            zone.owner = new_owner
    return changes


def owned_zone_counts(state: GameState) -> Dict[int, int]:
    owned = {team.id: 0 for team in state.teams}
    for zone in state.zones:
        if zone.owner in owned:
            owned[zone.owner] += 1
    return owned


def advance_world(state: GameState, destinations: Mapping[int, Sequence[Point]]) -> TurnSummary:
    """
    Advance the match by one turn. ``destinations`` maps a team id to one
    requested point per drone (drone-id order); teams missing from the map
    hold position. Requests are clamped with reachable_point() before any
    drone moves, so a failing request leaves the state untouched.
    """
    targets: List[Tuple[Drone, Point]] = []
    for team in state.teams:
        requested = destinations.get(team.id)
        for drone in team.drones:
            target = requested[drone.id] if requested is not None else drone.position
            targets.append((drone, reachable_point(drone.position, target)))

    state.turn += 1
    events: List[str] = []
    captures: Dict[int, int] = {team.id: 0 for team in state.teams}
    losses: Dict[int, int] = {team.id: 0 for team in state.teams}

    def log_event(kind: str, zone_ids: List[int], team_ids: List[int], text: str) -> None:
        events.append(text)
        state.history.append(MatchEvent(turn=state.turn, kind=kind, zones=zone_ids, teams=team_ids, text=text))

    # move drones
    for drone, target in targets:
        drone.move_to(target)

    # update zone ownerships
    for zone, old_owner in resolve_zone_ownership(state):
        captures[zone.owner] += 1
        if old_owner is None:
            log_event("claim", [zone.id], [zone.owner], f"t={state.turn}: Team {zone.owner} claimed zone #{zone.id}.")
        else:
            losses[old_owner] += 1
            log_event(
                "capture",
                [zone.id],
                [zone.owner, old_owner],
                f"t={state.turn}: Team {zone.owner} captured zone #{zone.id} from Team {old_owner}.",
            )

    # update scores
    owned = owned_zone_counts(state)
    for tid, count in owned.items():
        state.scores[tid] += count

    state.remaining_turns -= 1

    state.events.extend(events)
    if len(state.events) > MAX_EVENTS:
        state.events = state.events[-MAX_EVENTS:]

    logger.debug("turn %d: owned=%s scores=%s", state.turn, owned, state.scores)
    return TurnSummary(turn=state.turn, captures=captures, losses=losses, owned=owned)


def winner_id(state: GameState) -> int:
    """Team with the highest score; equal scores go to the lowest team id."""
    best = max(state.scores)
    return state.scores.index(best)
