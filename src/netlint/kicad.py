"""Import KiCad ``.kicad_sch`` files as single-sheet schematic documents.

KiCad works in millimetres on a 50 mil grid; coordinates are converted
to mils so the connection tolerance stays well below the grid pitch.
The symbol transform (rotation, mirroring, inverted y axis) is applied
here, and pins are stored as offsets from the symbol position with the
component left unrotated.
"""

from __future__ import annotations

import logging
import math
import re
from dataclasses import dataclass
from pathlib import Path

from skip import Schematic as SkipSchematic

from netlint.models import (
    Junction,
    NetLabel,
    Pin,
    PinType,
    Point,
    PowerPort,
    SchematicComponent,
    SchematicDocument,
    Sheet,
    Symbol,
    Wire,
)

logger = logging.getLogger(__name__)

MILS_PER_MM = 1000 / 25.4

_SKIPPED_POWER_SYMBOLS = {"PWR_FLAG"}

_KICAD_PIN_TYPES = {
    "input": PinType.INPUT,
    "output": PinType.OUTPUT,
    "bidirectional": PinType.BIDIRECTIONAL,
    "tri_state": PinType.BIDIRECTIONAL,
    "passive": PinType.PASSIVE,
    "free": PinType.UNSPECIFIED,
    "unspecified": PinType.UNSPECIFIED,
    "power_in": PinType.POWER_INPUT,
    "power_out": PinType.POWER_OUTPUT,
    "open_collector": PinType.OPEN_COLLECTOR,
    "open_emitter": PinType.OPEN_EMITTER,
    "no_connect": PinType.NOT_CONNECTED,
}


def load_kicad_schematic(path: str | Path) -> SchematicDocument:
    skip_sch = SkipSchematic(str(path))
    return document_from_skip(skip_sch, name=Path(path).stem)


def document_from_skip(sch, name: str = "") -> SchematicDocument:
    library = _index_library(sch)
    multi_unit_refs = _find_multi_unit_refs(sch)

    components = []
    ports = []
    for index, sym in enumerate(_collection(sch, "symbol")):
        if sym.is_power:
            value = sym.property.Value.value
            if value in _SKIPPED_POWER_SYMBOLS:
                continue
            ports.append(PowerPort(
                id=_uuid(sym, f"power-{index}"),
                position=_to_mils(sym.at.value[0], sym.at.value[1]),
                name=value,
            ))
            continue
        units = library.get(sym.lib_id.value, {})
        components.append(_component(sym, index, units, multi_unit_refs))

    wires = []
    for index, wire in enumerate(_collection(sch, "wire")):
        wires.append(Wire(
            id=_uuid(wire, f"wire-{index}"),
            points=[
                _to_mils(wire.start.value[0], wire.start.value[1]),
                _to_mils(wire.end.value[0], wire.end.value[1]),
            ],
        ))

    labels = []
    for kind in ("label", "global_label"):
        for index, label in enumerate(_collection(sch, kind)):
            labels.append(NetLabel(
                id=_uuid(label, f"{kind}-{index}"),
                position=_to_mils(label.at.value[0], label.at.value[1]),
                text=str(label.value),
            ))

    junctions = [
        Junction(id=_uuid(junc, f"junction-{index}"), position=_to_mils(junc.at.value[0], junc.at.value[1]))
        for index, junc in enumerate(_collection(sch, "junction"))
    ]

    logger.debug(
        "imported %s: %d components, %d wires, %d labels, %d power ports",
        name, len(components), len(wires), len(labels), len(ports),
    )
    sheet = Sheet(
        id=name or "root",
        name=name,
        components=components,
        wires=wires,
        net_labels=labels,
        power_ports=ports,
        junctions=junctions,
    )
    return SchematicDocument(id=name, name=name, sheets=[sheet])


@dataclass(frozen=True)
class _LibPin:
    number: str
    name: str
    electrical_type: str
    x: float
    y: float
    angle: int = 0


_UnitPins = dict[str, _LibPin]


def _collection(sch, name: str) -> list:
    items = getattr(sch, name, None)
    if items is None:
        return []
    return list(items)


def _uuid(obj, fallback: str) -> str:
    uuid = getattr(obj, "uuid", None)
    value = getattr(uuid, "value", None)
    return str(value) if value else fallback


def _to_mils(x: float, y: float) -> Point:
    return Point(round(x * MILS_PER_MM, 3), round(y * MILS_PER_MM, 3))


def _component(sym, index: int, units: dict[int, _UnitPins], multi_unit_refs: set[str]) -> SchematicComponent:
    lib_id = sym.lib_id.value
    unit_num = sym.unit.value
    reference = _unit_reference(sym.property.Reference.value, unit_num, units, multi_unit_refs)

    try:
        footprint = sym.property.Footprint.value
    except (AttributeError, KeyError):
        footprint = ""
    props = {
        prop.name: prop.value
        for prop in sym.property
        if prop.name not in ("Reference", "Value", "Footprint", "Datasheet")
    }

    origin = _to_mils(sym.at.value[0], sym.at.value[1])
    lib_pins = dict(units.get(0, {}))
    if unit_num != 0:
        lib_pins.update(units.get(unit_num, {}))
    if not lib_pins:
        logger.warning("%s: no library pins found for %s", reference, lib_id)

    pins = []
    for lib_pin in lib_pins.values():
        world = _pin_location(sym, lib_pin)
        pins.append(Pin(
            id=f"{reference}:{lib_pin.number}",
            name=lib_pin.name,
            number=lib_pin.number,
            type=_KICAD_PIN_TYPES.get(lib_pin.electrical_type, PinType.UNSPECIFIED),
            position=Point(round(world.x - origin.x, 3), round(world.y - origin.y, 3)),
            orientation=lib_pin.angle,
        ))

    return SchematicComponent(
        id=_uuid(sym, f"symbol-{index}"),
        position=origin,
        reference=reference,
        value=sym.property.Value.value,
        footprint=footprint,
        properties=props,
        symbol=Symbol(id=lib_id, name=lib_id, pins=pins),
    )


def _get_lib_symbol(sch, lib_id: str):
    # skip exposes lib symbols as attributes; names starting with a digit get an "n" prefix
    attr_name = re.sub(r"[^a-zA-Z0-9_]", "_", lib_id)
    for name in (attr_name, "n" + attr_name):
        lib_sym = getattr(sch.lib_symbols, name, None)
        if lib_sym is not None:
            return lib_sym
    return None


def _index_library(sch) -> dict[str, dict[int, _UnitPins]]:
    """Map each placed lib_id to {unit: {pin_number: pin}}.

    Library sub-symbols are named ``<name>_<unit>_<style>``; unit 0 holds
    pins shared by every unit. Only the first body style of a pin is kept.
    """
    library: dict[str, dict[int, _UnitPins]] = {}
    for sym in _collection(sch, "symbol"):
        if sym.is_power:
            continue
        lib_id = sym.lib_id.value
        if lib_id in library:
            continue
        units = library[lib_id] = {}
        lib_sym = _get_lib_symbol(sch, lib_id)
        if lib_sym is None:
            continue
        for sub in lib_sym.symbol:
            if getattr(sub, "pin", None) is None:
                continue
            unit = int(str(sub.raw[1]).rsplit("_", 2)[-2])
            unit_pins = units.setdefault(unit, {})
            for pin in sub.pin:
                number = str(pin.number.value)
                if number in unit_pins:
                    continue
                name = str(pin.name.value)
                at = pin.at.value
                unit_pins[number] = _LibPin(
                    number=number,
                    name=name if name and name != "~" else number,
                    electrical_type=str(pin.raw[1]),
                    x=at[0],
                    y=at[1],
                    angle=int(at[2]) if len(at) > 2 else 0,
                )
    return library


def _find_multi_unit_refs(sch) -> set[str]:
    units_per_ref: dict[str, set[int]] = {}
    for sym in _collection(sch, "symbol"):
        if not sym.is_power:
            units_per_ref.setdefault(sym.property.Reference.value, set()).add(sym.unit.value)
    return {ref for ref, units in units_per_ref.items() if len(units) > 1}


def _unit_reference(base_ref: str, unit_num: int, units: dict[int, _UnitPins], multi_unit_refs: set[str]) -> str:
    """Suffix functional units of multi-unit parts with a letter (U1A, U1B).

    A unit carrying only power pins keeps the bare package reference.
    """
    if base_ref not in multi_unit_refs:
        return base_ref
    own_pins = units.get(unit_num, {}).values()
    if all(pin.electrical_type == "power_in" for pin in own_pins):
        return base_ref
    return f"{base_ref}{chr(ord('A') + unit_num - 1)}"


def _mirror_axis(sym) -> str | None:
    mirror = getattr(sym, "mirror", None)
    if mirror is None:
        return None
    try:
        value = mirror.value
        if hasattr(value, "value"):
            value = value.value()
    except (AttributeError, TypeError):
        logger.warning("%s: unreadable mirror attribute ignored", sym.property.Reference.value)
        return None
    return value if value in ("x", "y") else None


def _pin_location(sym, lib_pin: _LibPin) -> Point:
    sx, sy = sym.at.value[0], sym.at.value[1]
    theta = math.radians(sym.at.value[2] if len(sym.at.value) > 2 else 0)

    rx = lib_pin.x * math.cos(theta) - lib_pin.y * math.sin(theta)
    ry = lib_pin.x * math.sin(theta) + lib_pin.y * math.cos(theta)

    axis = _mirror_axis(sym)
    if axis == "x":
        ry = -ry
    elif axis == "y":
        rx = -rx

    # Library y points up, sheet y points down.
    return _to_mils(sx + rx, sy - ry)
