"""Pydantic models for the editor's JSON document.

Keys are camelCase as written by the editor; snake_case names are accepted
too. Missing fields and explicit nulls take the field default. Values of the
wrong type fail validation.
"""

from __future__ import annotations

import logging
import re
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

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

_PIN_TYPES_BY_INDEX = list(PinType)


def parse_pin_type(raw) -> PinType:
    if raw is None:
        return PinType.PASSIVE
    if isinstance(raw, int) and not isinstance(raw, bool):
        if 0 <= raw < len(_PIN_TYPES_BY_INDEX):
            return _PIN_TYPES_BY_INDEX[raw]
    elif isinstance(raw, str):
        key = re.sub(r"(?<=[a-z])(?=[A-Z])", "_", raw).lower().replace("-", "_")
        try:
            return PinType(key)
        except ValueError:
            pass
    logger.warning("unknown pin type %r, treating as unspecified", raw)
    return PinType.UNSPECIFIED


class EditorModel(BaseModel):
    model_config = ConfigDict(
        populate_by_name=True,
        coerce_numbers_to_str=True,
        allow_inf_nan=False,
    )

    @model_validator(mode="before")
    @classmethod
    def _drop_nulls(cls, data: Any) -> Any:
        if isinstance(data, dict):
            return {k: v for k, v in data.items() if v is not None}
        return data


class PointSchema(EditorModel):
    """A coordinate, written either as ``{"x": .., "y": ..}`` or ``[x, y]``."""

    x: float = 0.0
    y: float = 0.0

    @model_validator(mode="before")
    @classmethod
    def _from_pair(cls, data: Any) -> Any:
        if isinstance(data, (list, tuple)) and len(data) >= 2:
            return {"x": data[0], "y": data[1]}
        return data

    def to_model(self) -> Point:
        return Point(self.x, self.y)


class PinSchema(EditorModel):
    id: Optional[str] = None
    name: str = ""
    number: str = ""
    pin_type: PinType = Field(PinType.PASSIVE, alias="type")
    position: PointSchema = Field(default_factory=PointSchema)
    orientation: int = 0

    @field_validator("pin_type", mode="before")
    @classmethod
    def _pin_type(cls, value: Any) -> PinType:
        return parse_pin_type(value)

    def to_model(self, index: int) -> Pin:
        return Pin(
            id=self.id or self.number or str(index),
            name=self.name,
            number=self.number,
            type=self.pin_type,
            position=self.position.to_model(),
            orientation=self.orientation,
        )


class SymbolSchema(EditorModel):
    id: str = ""
    name: str = ""
    pins: list[PinSchema] = Field(default_factory=list)

    def to_model(self) -> Symbol:
        return Symbol(
            id=self.id,
            name=self.name,
            pins=[p.to_model(i) for i, p in enumerate(self.pins)],
        )


class ComponentSchema(EditorModel):
    id: Optional[str] = None
    position: PointSchema = Field(default_factory=PointSchema)
    reference: str = ""
    value: str = ""
    rotation: float = 0.0
    footprint: str = ""
    properties: dict[str, str] = Field(default_factory=dict)
    mirrored: bool = False
    symbol: Optional[SymbolSchema] = None

    def to_model(self, fallback_id: str) -> SchematicComponent:
        return SchematicComponent(
            id=self.id or fallback_id,
            position=self.position.to_model(),
            reference=self.reference,
            value=self.value,
            rotation=self.rotation,
            footprint=self.footprint,
            properties=dict(self.properties),
            mirrored=self.mirrored,
            symbol=self.symbol.to_model() if self.symbol is not None else None,
        )


class WireSchema(EditorModel):
    id: Optional[str] = None
    points: list[PointSchema] = Field(default_factory=list)
    net_name: Optional[str] = Field(None, alias="netName")

    def to_model(self, fallback_id: str) -> Wire:
        return Wire(
            id=self.id or fallback_id,
            points=[p.to_model() for p in self.points],
            net_name=self.net_name or None,
        )


class NetLabelSchema(EditorModel):
    id: Optional[str] = None
    position: PointSchema = Field(default_factory=PointSchema)
    text: str = ""
    # older documents carry the label text as "name"
    name: str = ""

    def to_model(self, fallback_id: str) -> NetLabel:
        return NetLabel(
            id=self.id or fallback_id,
            position=self.position.to_model(),
            text=self.text or self.name,
        )


class PowerPortSchema(EditorModel):
    id: Optional[str] = None
    position: PointSchema = Field(default_factory=PointSchema)
    name: str = ""
    style: str = "bar"

    def to_model(self, fallback_id: str) -> PowerPort:
        return PowerPort(
            id=self.id or fallback_id,
            position=self.position.to_model(),
            name=self.name,
            style=self.style or "bar",
        )


class JunctionSchema(EditorModel):
    id: Optional[str] = None
    position: PointSchema = Field(default_factory=PointSchema)

    def to_model(self, fallback_id: str) -> Junction:
        return Junction(id=self.id or fallback_id, position=self.position.to_model())


class SheetSchema(EditorModel):
    id: Optional[str] = None
    name: str = ""
    components: list[ComponentSchema] = Field(default_factory=list)
    wires: list[WireSchema] = Field(default_factory=list)
    net_labels: list[NetLabelSchema] = Field(default_factory=list, alias="netLabels")
    power_ports: list[PowerPortSchema] = Field(default_factory=list, alias="powerPorts")
    junctions: list[JunctionSchema] = Field(default_factory=list)

    def to_model(self, index: int) -> Sheet:
        sheet_id = self.id or f"sheet-{index}"
        # fallback ids carry the sheet id so they stay unique across the document
        return Sheet(
            id=sheet_id,
            name=self.name,
            components=[c.to_model(f"{sheet_id}/component-{i}") for i, c in enumerate(self.components)],
            wires=[w.to_model(f"{sheet_id}/wire-{i}") for i, w in enumerate(self.wires)],
            net_labels=[lb.to_model(f"{sheet_id}/label-{i}") for i, lb in enumerate(self.net_labels)],
            power_ports=[pp.to_model(f"{sheet_id}/power-{i}") for i, pp in enumerate(self.power_ports)],
            junctions=[j.to_model(f"{sheet_id}/junction-{i}") for i, j in enumerate(self.junctions)],
        )


class DocumentSchema(EditorModel):
    id: str = ""
    name: Optional[str] = None
    sheets: list[SheetSchema] = Field(default_factory=list)

    def to_model(self, default_name: str = "") -> SchematicDocument:
        return SchematicDocument(
            id=self.id,
            name=self.name if self.name is not None else default_name,
            sheets=[s.to_model(i) for i, s in enumerate(self.sheets)],
        )
