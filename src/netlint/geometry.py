from __future__ import annotations

import math

from netlint.models import Pin, Point, SchematicComponent

# Shared by the connectivity resolver and every ERC check.
CONNECTION_TOLERANCE = 2.0


def distance(a: Point, b: Point) -> float:
    return math.hypot(a.x - b.x, a.y - b.y)


def coincident(a: Point, b: Point) -> bool:
    return distance(a, b) < CONNECTION_TOLERANCE


def pin_world_position(component: SchematicComponent, pin: Pin) -> Point:
    """Place a symbol-relative pin offset in sheet coordinates.

    Mirroring flips the local x offset before the rotation is applied.
    """
    px, py = pin.position.x, pin.position.y
    if component.mirrored:
        px = -px

    theta = math.radians(component.rotation or 0)
    rx = px * math.cos(theta) - py * math.sin(theta)
    ry = px * math.sin(theta) + py * math.cos(theta)

    return Point(component.position.x + rx, component.position.y + ry)
