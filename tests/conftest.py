from __future__ import annotations

from typing import Dict, Optional, Sequence

import pytest

from geometry import Point
from world import Drone, GameState, Team, Zone


def _point(value) -> Point:
    return value if isinstance(value, Point) else Point(*value)


def _make_state(
    zones: Sequence,
    teams: Sequence[Sequence],
    owners: Optional[Dict[int, int]] = None,
) -> GameState:
    """
    zones: zone centers; teams: per team, one entry per drone, either a
    position or a (position, previous_position) pair.
    """
    owners = owners or {}
    zone_objs = [Zone(id=i, center=_point(c), owner=owners.get(i)) for i, c in enumerate(zones)]
    team_objs = []
    for tid, drones in enumerate(teams):
        built = []
        for did, entry in enumerate(drones):
            if not isinstance(entry, Point) and isinstance(entry[0], (tuple, Point)):
                pos, prev = _point(entry[0]), _point(entry[1])
            else:
                pos = prev = _point(entry)
            built.append(Drone(team_id=tid, id=did, position=pos, previous_position=prev))
        team_objs.append(Team(id=tid, drones=built))
    return GameState(zones=zone_objs, teams=team_objs)


@pytest.fixture
def make_state():
    return _make_state
