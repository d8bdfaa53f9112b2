from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Union

from netlint.geometry import CONNECTION_TOLERANCE, coincident, pin_world_position
from netlint.models import Pin, Point, SchematicComponent, Sheet

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PinNode:
    component_id: str
    pin_number: str
    pin_name: str


@dataclass(frozen=True)
class WirePointNode:
    wire_id: str
    index: int


@dataclass(frozen=True)
class LabelNode:
    label_id: str
    name: str


@dataclass(frozen=True)
class PowerNode:
    port_id: str
    name: str


@dataclass(frozen=True)
class JunctionNode:
    junction_id: str


NodeRef = Union[PinNode, WirePointNode, LabelNode, PowerNode, JunctionNode]


class UnionFind:
    def __init__(self):
        self._parent: dict = {}
        self._rank: dict = {}

    def make(self, x):
        if x not in self._parent:
            self._parent[x] = x
            self._rank[x] = 0

    def find(self, x):
        self.make(x)
        root = x
        while self._parent[root] != root:
            root = self._parent[root]
        while x != root:
            parent = self._parent[x]
            self._parent[x] = root
            x = parent
        return root

    def union(self, a, b):
        ra, rb = self.find(a), self.find(b)
        if ra == rb:
            return
        rank_a, rank_b = self._rank[ra], self._rank[rb]
        if rank_a < rank_b:
            self._parent[ra] = rb
        elif rank_a > rank_b:
            self._parent[rb] = ra
        else:
            self._parent[rb] = ra
            self._rank[ra] = rank_a + 1

    def __contains__(self, x) -> bool:
        return x in self._parent

    def __len__(self) -> int:
        return len(self._parent)

    def groups(self) -> dict:
        result: dict = {}
        for key in self._parent:
            root = self.find(key)
            result.setdefault(root, []).append(key)
        return result


class Connectivity:
    """Arena of connectable nodes joined by a union-find over integer handles."""

    def __init__(self):
        self.uf = UnionFind()
        self._nodes: list[NodeRef] = []
        self._positions: list[Point] = []
        self._handles: dict[NodeRef, int] = {}
        self.pin_entries: list[tuple[int, SchematicComponent, Pin]] = []

    def add(self, node: NodeRef, position: Point) -> int:
        handle = len(self._nodes)
        self._nodes.append(node)
        self._positions.append(position)
        self._handles.setdefault(node, handle)
        self.uf.make(handle)
        return handle

    def node(self, handle: int) -> NodeRef:
        return self._nodes[handle]

    def position(self, handle: int) -> Point:
        return self._positions[handle]

    def root_of(self, node: NodeRef) -> int | None:
        handle = self._handles.get(node)
        if handle is None:
            return None
        return self.uf.find(handle)

    def groups(self) -> dict[int, list[int]]:
        return self.uf.groups()

    def join_coincident(self):
        """Union every pair of nodes closer than the connection tolerance.

        Cells are tolerance-sized, so any qualifying pair sits in the same
        or an adjacent cell.
        """
        grid: dict[tuple[int, int], list[int]] = {}
        for handle, pos in enumerate(self._positions):
            cx = math.floor(pos.x / CONNECTION_TOLERANCE)
            cy = math.floor(pos.y / CONNECTION_TOLERANCE)
            for dx in (-1, 0, 1):
                for dy in (-1, 0, 1):
                    for other in grid.get((cx + dx, cy + dy), ()):
                        if coincident(pos, self._positions[other]):
                            self.uf.union(other, handle)
            grid.setdefault((cx, cy), []).append(handle)

    def __len__(self) -> int:
        return len(self._nodes)


def build_connectivity(sheet: Sheet) -> Connectivity:
    conn = Connectivity()

    for comp in sheet.components:
        for pin in comp.pins:
            node = PinNode(comp.id, pin.number or "?", pin.name or "~")
            handle = conn.add(node, pin_world_position(comp, pin))
            conn.pin_entries.append((handle, comp, pin))

    for wire in sheet.wires:
        first = None
        for i, point in enumerate(wire.points):
            handle = conn.add(WirePointNode(wire.id, i), point)
            if first is None:
                first = handle
            else:
                conn.uf.union(first, handle)

    for label in sheet.net_labels:
        conn.add(LabelNode(label.id, label.text), label.position)

    for port in sheet.power_ports:
        conn.add(PowerNode(port.id, port.name), port.position)

    for junction in sheet.junctions:
        conn.add(JunctionNode(junction.id), junction.position)

    conn.join_coincident()
    logger.debug(
        "sheet %s: %d nodes in %d groups", sheet.id, len(conn), len(conn.groups())
    )
    return conn


def resolve_net_names(conn: Connectivity, sheet: Sheet) -> dict[int, tuple[str, bool]]:
    """Map group roots to (name, is_power).

    Labels are consulted first, then power ports, then inline wire net
    names. The first name found for a root is kept.
    """
    names: dict[int, tuple[str, bool]] = {}

    for label in sheet.net_labels:
        root = conn.root_of(LabelNode(label.id, label.text))
        if root is not None and root not in names:
            names[root] = (label.text, False)

    for port in sheet.power_ports:
        root = conn.root_of(PowerNode(port.id, port.name))
        if root is not None and root not in names:
            names[root] = (port.name, True)

    for wire in sheet.wires:
        if not wire.net_name:
            continue
        root = conn.root_of(WirePointNode(wire.id, 0))
        if root is not None and root not in names:
            names[root] = (wire.net_name, False)

    return names
