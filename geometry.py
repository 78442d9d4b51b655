#!/usr/bin/env python3
"""Integer-plane geometry shared by the simulation engine and the bots."""
from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Iterable, List, Sequence


@dataclass(frozen=True)
class Point:
    x: int
    y: int


def distance(a: Point, b: Point) -> float:
    return math.hypot(float(a.x - b.x), float(a.y - b.y))


def distance_to_line(point: Point, line_a: Point, line_b: Point) -> float:
    """
    Perpendicular distance from ``point`` to the infinite line through
    ``line_a`` and ``line_b``. A degenerate line (coincident points) falls
    back to the plain distance to ``line_a``.
    """
    if line_a.x == line_b.x and line_a.y == line_b.y:
        return distance(point, line_a)
    if line_a.x == line_b.x:
        return float(abs(line_a.x - point.x))
    if line_a.y == line_b.y:
        return float(abs(line_a.y - point.y))
    dx = line_b.x - line_a.x
    dy = line_b.y - line_a.y
    cross = dx * (point.y - line_a.y) - dy * (point.x - line_a.x)
    return abs(cross) / math.sqrt(dx * dx + dy * dy)


def distances_to_line(points: Sequence[Point], line_a: Point, line_b: Point) -> List[float]:
    return [distance_to_line(p, line_a, line_b) for p in points]


def dot_product(v1a: Point, v1b: Point, v2a: Point, v2b: Point) -> float:
    """Dot product of the vectors v1a->v1b and v2a->v2b."""
    x1 = v1b.x - v1a.x
    y1 = v1b.y - v1a.y
    x2 = v2b.x - v2a.x
    y2 = v2b.y - v2a.y
    return float(x1 * x2 + y1 * y2)


def median_point(points: Iterable[Point]) -> Point:
    pts = list(points)
    if not pts:
        raise ValueError("median_point() needs at least one point")
    return Point(
        int(sum(p.x for p in pts) / len(pts)),
        int(sum(p.y for p in pts) / len(pts)),
    )


def intermediate_point(position: Point, destination: Point, distance_from_dest: int) -> Point:
    """
    Point on the line position->destination, ``distance_from_dest`` short of
    the destination. Coordinates are truncated toward zero.
    """
    if position.x == destination.x:
        if position.y < destination.y:
            return Point(destination.x, destination.y - distance_from_dest)
        return Point(destination.x, destination.y + distance_from_dest)

    if position.y == destination.y:
        if position.x < destination.x:
            return Point(destination.x - distance_from_dest, destination.y)
        return Point(destination.x + distance_from_dest, destination.y)

    dx = float(destination.x - position.x)
    dy = float(destination.y - position.y)
    slope = dy / dx
    dist = math.sqrt(dx * dx + dy * dy)

    dx = (dist - distance_from_dest) / math.sqrt(1 + slope * slope) * math.copysign(1.0, dx)
    dy = slope * dx
    return Point(position.x + int(dx), position.y + int(dy))
