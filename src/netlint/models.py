from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class InvalidDocumentError(ValueError):
    """Raised when something other than a schematic document is handed to the core."""


@dataclass(frozen=True)
class Point:
    x: float
    y: float


class PinType(str, Enum):
    INPUT = "input"
    OUTPUT = "output"
    BIDIRECTIONAL = "bidirectional"
    PASSIVE = "passive"
    POWER_INPUT = "power_input"
    POWER_OUTPUT = "power_output"
    OPEN_COLLECTOR = "open_collector"
    OPEN_EMITTER = "open_emitter"
    NOT_CONNECTED = "not_connected"
    UNSPECIFIED = "unspecified"


@dataclass
class Pin:
    id: str
    name: str
    number: str
    type: PinType = PinType.PASSIVE
    position: Point = Point(0.0, 0.0)
    orientation: int = 0


@dataclass
class Symbol:
    id: str
    name: str = ""
    pins: list[Pin] = field(default_factory=list)


@dataclass
class SchematicComponent:
    id: str
    position: Point
    reference: str = ""
    value: str = ""
    rotation: float = 0.0
    footprint: str = ""
    properties: dict[str, str] = field(default_factory=dict)
    mirrored: bool = False
    symbol: Symbol | None = None

    @property
    def pins(self) -> list[Pin]:
        if self.symbol is None:
            return []
        return self.symbol.pins

    @property
    def display_ref(self) -> str:
        return self.reference or self.id


@dataclass
class Wire:
    id: str
    points: list[Point] = field(default_factory=list)
    net_name: str | None = None


@dataclass
class NetLabel:
    id: str
    position: Point
    text: str


@dataclass
class PowerPort:
    id: str
    position: Point
    name: str
    style: str = "bar"


@dataclass
class Junction:
    id: str
    position: Point


@dataclass
class Sheet:
    id: str
    name: str = ""
    components: list[SchematicComponent] = field(default_factory=list)
    wires: list[Wire] = field(default_factory=list)
    net_labels: list[NetLabel] = field(default_factory=list)
    power_ports: list[PowerPort] = field(default_factory=list)
    junctions: list[Junction] = field(default_factory=list)


@dataclass
class SchematicDocument:
    id: str
    name: str = ""
    sheets: list[Sheet] = field(default_factory=list)


@dataclass
class PinConnection:
    component_ref: str
    pin_number: str
    pin_name: str


@dataclass
class Net:
    name: str
    connections: list[PinConnection]
    is_power: bool = False


@dataclass
class NetlistComponent:
    reference: str
    value: str
    footprint: str
    properties: dict[str, str] = field(default_factory=dict)


@dataclass
class Netlist:
    components: list[NetlistComponent]
    nets: list[Net]


def require_document(document) -> SchematicDocument:
    if not isinstance(document, SchematicDocument):
        raise InvalidDocumentError(
            f"invalid document: expected SchematicDocument, got {type(document).__name__}"
        )
    return document
