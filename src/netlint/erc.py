from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum

from netlint.connectivity import UnionFind, build_connectivity
from netlint.geometry import coincident, pin_world_position
from netlint.models import (
    Pin,
    PinType,
    Point,
    SchematicComponent,
    SchematicDocument,
    Sheet,
    Wire,
    require_document,
)

logger = logging.getLogger(__name__)

_DRIVER_TYPES = frozenset({PinType.OUTPUT, PinType.POWER_OUTPUT})


class ERCViolationType(str, Enum):
    UNCONNECTED_PIN = "UnconnectedPin"
    CONFLICTING_PIN_TYPES = "ConflictingPinTypes"
    MISSING_POWER_FLAG = "MissingPowerFlag"
    DUPLICATE_REFERENCE = "DuplicateReference"
    UNCONNECTED_WIRE = "UnconnectedWire"
    MISSING_NET_LABEL = "MissingNetLabel"


class Severity(str, Enum):
    ERROR = "error"
    WARNING = "warning"


@dataclass
class ERCViolation:
    type: ERCViolationType
    message: str
    severity: Severity
    location: Point
    object_ids: list[str] = field(default_factory=list)


PlacedPin = tuple[SchematicComponent, Pin, Point]


def check_document(document: SchematicDocument) -> list[ERCViolation]:
    """Run every electrical rule over the document.

    Sheet-local rules run sheet by sheet in a fixed order; duplicate
    references are checked once across all sheets at the end.
    """
    document = require_document(document)
    violations: list[ERCViolation] = []
    for sheet in document.sheets:
        placed = _placed_pins(sheet)
        violations.extend(check_unconnected_pins(sheet, placed))
        violations.extend(check_pin_conflicts(sheet))
        violations.extend(check_power_flags(sheet, placed))
        violations.extend(check_unconnected_wires(sheet))
        violations.extend(check_missing_net_labels(sheet, placed))
    violations.extend(check_duplicate_references(document))

    logger.debug("ERC found %d violations", len(violations))
    return violations


def are_pin_types_conflicting(a: PinType, b: PinType) -> bool:
    return a in _DRIVER_TYPES and b in _DRIVER_TYPES


def _pin_type(pin: Pin) -> PinType:
    return pin.type or PinType.PASSIVE


def _pin_label(pin: Pin) -> str:
    return pin.name or pin.number


def _placed_pins(sheet: Sheet) -> list[PlacedPin]:
    return [
        (comp, pin, pin_world_position(comp, pin))
        for comp in sheet.components
        for pin in comp.pins
    ]


def check_unconnected_pins(sheet: Sheet, placed: list[PlacedPin] | None = None) -> list[ERCViolation]:
    if placed is None:
        placed = _placed_pins(sheet)
    anchors = [p for wire in sheet.wires for p in wire.points]
    anchors.extend(j.position for j in sheet.junctions)

    violations = []
    for comp, pin, pos in placed:
        if any(coincident(a, pos) for a in anchors):
            continue
        if any(other.id != comp.id and coincident(other_pos, pos) for other, _, other_pos in placed):
            continue
        severity = Severity.WARNING if _pin_type(pin) is PinType.PASSIVE else Severity.ERROR
        violations.append(ERCViolation(
            type=ERCViolationType.UNCONNECTED_PIN,
            message=f'Pin "{_pin_label(pin)}" of {comp.display_ref} is unconnected',
            severity=severity,
            location=pos,
            object_ids=[comp.id],
        ))
    return violations


def check_pin_conflicts(sheet: Sheet) -> list[ERCViolation]:
    conn = build_connectivity(sheet)
    by_root: dict[int, list[tuple[SchematicComponent, Pin, Point]]] = {}
    for handle, comp, pin in conn.pin_entries:
        by_root.setdefault(conn.uf.find(handle), []).append((comp, pin, conn.position(handle)))

    violations = []
    for pins in by_root.values():
        for i, (comp_a, pin_a, pos_a) in enumerate(pins):
            for comp_b, pin_b, _ in pins[i + 1:]:
                type_a, type_b = _pin_type(pin_a), _pin_type(pin_b)
                if not are_pin_types_conflicting(type_a, type_b):
                    continue
                violations.append(ERCViolation(
                    type=ERCViolationType.CONFLICTING_PIN_TYPES,
                    message=(
                        f"Conflicting pin types on net: {type_a.value} and {type_b.value} "
                        f"({comp_a.display_ref}:{_pin_label(pin_a)} <-> "
                        f"{comp_b.display_ref}:{_pin_label(pin_b)})"
                    ),
                    severity=Severity.ERROR,
                    location=pos_a,
                    object_ids=list(dict.fromkeys([comp_a.id, comp_b.id])),
                ))
    return violations


def check_power_flags(sheet: Sheet, placed: list[PlacedPin] | None = None) -> list[ERCViolation]:
    if placed is None:
        placed = _placed_pins(sheet)

    violations = []
    for comp, pin, pos in placed:
        if _pin_type(pin) is not PinType.POWER_INPUT:
            continue
        if any(coincident(port.position, pos) for port in sheet.power_ports):
            continue
        if any(
            _pin_type(other_pin) is PinType.POWER_OUTPUT and coincident(other_pos, pos)
            for _, other_pin, other_pos in placed
        ):
            continue
        if _reaches_power_port(sheet, pos):
            continue
        violations.append(ERCViolation(
            type=ERCViolationType.MISSING_POWER_FLAG,
            message=f'Power input pin "{_pin_label(pin)}" of {comp.display_ref} has no power source',
            severity=Severity.WARNING,
            location=pos,
            object_ids=[comp.id],
        ))
    return violations


def check_duplicate_references(document: SchematicDocument) -> list[ERCViolation]:
    by_ref: dict[str, list[SchematicComponent]] = {}
    for sheet in document.sheets:
        for comp in sheet.components:
            if not comp.reference:
                continue
            by_ref.setdefault(comp.reference, []).append(comp)

    violations = []
    for ref, comps in by_ref.items():
        if len(comps) < 2:
            continue
        violations.append(ERCViolation(
            type=ERCViolationType.DUPLICATE_REFERENCE,
            message=f'Duplicate reference designator "{ref}" used by {len(comps)} components',
            severity=Severity.ERROR,
            location=comps[0].position,
            object_ids=[c.id for c in comps],
        ))
    return violations


def check_unconnected_wires(sheet: Sheet) -> list[ERCViolation]:
    points = _connection_points(sheet)

    violations = []
    for wire in sheet.wires:
        if len(wire.points) < 2:
            continue
        for endpoint in (wire.points[0], wire.points[-1]):
            if any(owner != wire.id and coincident(pos, endpoint) for pos, owner in points):
                continue
            violations.append(ERCViolation(
                type=ERCViolationType.UNCONNECTED_WIRE,
                message="Wire endpoint has no connections",
                severity=Severity.WARNING,
                location=endpoint,
                object_ids=[wire.id],
            ))
    return violations


def check_missing_net_labels(sheet: Sheet, placed: list[PlacedPin] | None = None) -> list[ERCViolation]:
    if placed is None:
        placed = _placed_pins(sheet)

    violations = []
    for network in _wire_networks(sheet.wires):
        points = [p for wire in network for p in wire.points]
        if any(coincident(p, label.position) for label in sheet.net_labels for p in points):
            continue
        pin_count = sum(1 for _, _, pos in placed if any(coincident(p, pos) for p in points))
        if pin_count < 2:
            continue
        first = network[0]
        violations.append(ERCViolation(
            type=ERCViolationType.MISSING_NET_LABEL,
            message=f"Wire network connecting {pin_count} pins has no net label",
            severity=Severity.WARNING,
            location=first.points[len(first.points) // 2],
            object_ids=[w.id for w in network],
        ))
    return violations


def _connection_points(sheet: Sheet) -> list[tuple[Point, str]]:
    points = [(p, wire.id) for wire in sheet.wires for p in wire.points]
    for comp in sheet.components:
        points.extend((pin_world_position(comp, pin), comp.id) for pin in comp.pins)
    points.extend((label.position, label.id) for label in sheet.net_labels)
    points.extend((port.position, port.id) for port in sheet.power_ports)
    points.extend((j.position, j.id) for j in sheet.junctions)
    return points


def _wires_connect(a: Wire, b: Wire) -> bool:
    return any(coincident(pa, pb) for pa in a.points for pb in b.points)


def _wire_networks(wires: list[Wire]) -> list[list[Wire]]:
    uf = UnionFind()
    for i in range(len(wires)):
        uf.make(i)
    for i in range(len(wires)):
        for j in range(i + 1, len(wires)):
            if _wires_connect(wires[i], wires[j]):
                uf.union(i, j)
    return [[wires[i] for i in members] for members in uf.groups().values()]


def _reaches_power_port(sheet: Sheet, pin_pos: Point) -> bool:
    wires = sheet.wires
    network = {i for i, w in enumerate(wires) if any(coincident(p, pin_pos) for p in w.points)}
    if not network:
        return False

    changed = True
    while changed:
        changed = False
        for i, wire in enumerate(wires):
            if i in network:
                continue
            if any(_wires_connect(wire, wires[j]) for j in network):
                network.add(i)
                changed = True

    return any(
        coincident(p, port.position)
        for port in sheet.power_ports
        for i in network
        for p in wires[i].points
    )
