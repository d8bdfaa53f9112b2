"""Read schematic documents from the editor's JSON form and write results back out."""

from __future__ import annotations

import json
import logging
from pathlib import Path

from pydantic import ValidationError

from netlint.erc import ERCViolation
from netlint.models import InvalidDocumentError, Netlist, SchematicDocument
from netlint.schema import DocumentSchema

logger = logging.getLogger(__name__)


def load_document(path: str | Path) -> SchematicDocument:
    with open(path, encoding="utf-8") as f:
        try:
            data = json.load(f)
        except (json.JSONDecodeError, UnicodeDecodeError) as exc:
            raise InvalidDocumentError(f"invalid document: {path}: {exc}") from exc
    return document_from_dict(data, default_name=Path(path).stem)


def document_from_dict(data, default_name: str = "") -> SchematicDocument:
    if not isinstance(data, dict):
        raise InvalidDocumentError("invalid document: top level must be a JSON object")
    try:
        schema = DocumentSchema.model_validate(data)
    except ValidationError as exc:
        logger.debug("document validation failed: %s", exc)
        raise InvalidDocumentError(f"invalid document: {_describe(exc)}") from exc
    return schema.to_model(default_name)


def _describe(exc: ValidationError) -> str:
    errors = exc.errors()
    first = errors[0]
    where = ".".join(str(part) for part in first["loc"]) or "document"
    message = f"{where}: {first['msg']}"
    if len(errors) > 1:
        message += f" (and {len(errors) - 1} more)"
    return message


def netlist_to_dict(netlist: Netlist) -> dict:
    return {
        "components": [
            {
                "reference": c.reference,
                "value": c.value,
                "footprint": c.footprint,
                "properties": dict(c.properties),
            }
            for c in netlist.components
        ],
        "nets": [
            {
                "netName": net.name,
                "connections": [
                    {
                        "componentRef": conn.component_ref,
                        "pinNumber": conn.pin_number,
                        "pinName": conn.pin_name,
                    }
                    for conn in net.connections
                ],
            }
            for net in netlist.nets
        ],
    }


def violations_to_list(violations: list[ERCViolation]) -> list[dict]:
    return [
        {
            "type": v.type.value,
            "message": v.message,
            "severity": v.severity.value,
            "location": {"x": v.location.x, "y": v.location.y},
            "objectIds": list(v.object_ids),
        }
        for v in violations
    ]
